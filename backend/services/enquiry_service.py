"""Project enquiries: submission by applicants, answers by staff."""

from __future__ import annotations

from typing import Optional

from backend.domain.errors import (
    EmptyTextError,
    EnquiryLockedError,
    NotRequestOwnerError,
    OfficerNotAssignedError,
    ProjectNotVisibleError,
)
from backend.domain.models import Enquiry, RequestStatus, RequestType, SessionContext, UserRole
from backend.repository.data_repository import EntityKind
from backend.repository.entity_store import EntityStore
from backend.services.session_service import require_role
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

_ASKING_ROLES = (UserRole.APPLICANT, UserRole.OFFICER)


def _clean_text(text: str) -> str:
    cleaned = text.strip()
    if not cleaned:
        raise EmptyTextError("text must not be blank")
    return cleaned


def _enquiries(store: EntityStore, **filters) -> list[Enquiry]:
    return [
        request
        for request in store.find_requests(request_type=RequestType.ENQUIRY, **filters)
        if isinstance(request, Enquiry)
    ]


class EnquiryService:
    def __init__(self, store: EntityStore, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._store = store

    def submit(self, context: SessionContext, project_id: str, text: str) -> Enquiry:
        require_role(context, *_ASKING_ROLES)
        query = _clean_text(text)
        with self._store.transaction(EntityKind.REQUEST) as store:
            store.applicant(context.user_id)
            project = store.project(project_id)
            if not project.visible:
                raise ProjectNotVisibleError(f"Project {project_id} is not visible")
            enquiry = Enquiry(
                request_id=store.next_request_id(),
                user_id=context.user_id,
                project_id=project_id,
                query=query,
            )
            store.requests[enquiry.request_id] = enquiry

        logger.info(
            "Enquiry submitted | request_id=%s | user_id=%s | project_id=%s",
            enquiry.request_id,
            context.user_id,
            project_id,
        )
        return enquiry

    def _own_open_enquiry(self, context: SessionContext, request_id: str) -> Enquiry:
        enquiry = self._store.typed_request(request_id, Enquiry)
        if not enquiry.is_pending:
            raise EnquiryLockedError(f"Enquiry {request_id} was already answered")
        if enquiry.user_id != context.user_id:
            raise NotRequestOwnerError(f"Enquiry {request_id} belongs to another user")
        return enquiry

    def edit(self, context: SessionContext, request_id: str, text: str) -> Enquiry:
        require_role(context, *_ASKING_ROLES)
        query = _clean_text(text)
        with self._store.transaction(EntityKind.REQUEST):
            enquiry = self._own_open_enquiry(context, request_id)
            enquiry.query = query
        logger.info("Enquiry edited | request_id=%s | user_id=%s", request_id, context.user_id)
        return enquiry

    def delete(self, context: SessionContext, request_id: str) -> None:
        require_role(context, *_ASKING_ROLES)
        with self._store.transaction(EntityKind.REQUEST) as store:
            self._own_open_enquiry(context, request_id)
            del store.requests[request_id]
        logger.info("Enquiry deleted | request_id=%s | user_id=%s", request_id, context.user_id)

    def list_own(self, context: SessionContext) -> list[Enquiry]:
        with self._store.reading() as store:
            return _enquiries(store, user_id=context.user_id)

    def list_for_project(self, context: SessionContext, project_id: str) -> list[Enquiry]:
        """Enquiries on one project, for its officers and for managers."""
        require_role(context, UserRole.OFFICER, UserRole.MANAGER)
        with self._store.reading() as store:
            store.project(project_id)
            if context.role is UserRole.OFFICER:
                self._ensure_servicing(context.user_id, project_id)
            return _enquiries(store, project_id=project_id)

    def list_for_managed_projects(self, context: SessionContext) -> list[Enquiry]:
        require_role(context, UserRole.MANAGER)
        with self._store.reading() as store:
            managed = store.manager(context.user_id).project_ids
            return [enquiry for enquiry in _enquiries(store) if enquiry.project_id in managed]

    def answer(self, context: SessionContext, request_id: str, text: str) -> Enquiry:
        require_role(context, UserRole.OFFICER, UserRole.MANAGER)
        reply = _clean_text(text)
        with self._store.transaction(EntityKind.REQUEST) as store:
            enquiry = store.typed_request(request_id, Enquiry)
            if context.role is UserRole.OFFICER:
                self._ensure_servicing(context.user_id, enquiry.project_id)
            else:
                store.manager(context.user_id)
            if not enquiry.is_pending:
                raise EnquiryLockedError(f"Enquiry {request_id} was already answered")
            enquiry.answer = reply
            enquiry.answered_by = context.user_id
            enquiry.overall_status = RequestStatus.DONE

        logger.info(
            "Enquiry answered | request_id=%s | project_id=%s | answered_by=%s",
            request_id,
            enquiry.project_id,
            context.user_id,
        )
        return enquiry

    def _ensure_servicing(self, officer_id: str, project_id: str) -> None:
        officer = self._store.officer(officer_id)
        if project_id not in officer.registered_project_ids:
            raise OfficerNotAssignedError(
                f"Officer {officer_id} is not assigned to project {project_id}"
            )
