"""Officer project registrations and their approval."""

from __future__ import annotations

from typing import Optional

from backend.domain.constraints import windows_overlap
from backend.domain.errors import (
    AlreadyRegisteredError,
    ApplicantOnProjectError,
    InvalidTransitionError,
    ProjectNotVisibleError,
    RegistrationOverlapError,
)
from backend.domain.filters import apply_filters
from backend.domain.inventory import claim_officer_slot, release_officer_slot
from backend.domain.models import (
    ApprovedStatus,
    FilterCriteria,
    Officer,
    OfficerRegistration,
    Project,
    RegistrationStatus,
    RequestStatus,
    RequestType,
    SessionContext,
    UserRole,
)
from backend.repository.data_repository import EntityKind
from backend.repository.entity_store import EntityStore
from backend.services.session_service import require_role
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

# Officers register regardless of remaining flat stock.
_ALL_PROJECTS = FilterCriteria(include_sold_out=True)


class RegistrationService:
    def __init__(self, store: EntityStore, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._store = store

    def _is_applicant_on(self, user_id: str, project: Project) -> bool:
        applicant = self._store.applicants.get(user_id)
        if applicant is not None and applicant.active_project_id == project.project_id:
            return True
        return user_id in project.booked_applicant_ids

    def _overlapping_registration(self, officer: Officer, project: Project) -> Optional[Project]:
        for other_id in sorted(officer.active_registration_ids()):
            if other_id == project.project_id:
                continue
            other = self._store.projects.get(other_id)
            if other is None:
                continue
            if windows_overlap(other.open_date, other.close_date, project.open_date, project.close_date):
                return other
        return None

    def register(self, context: SessionContext, project_id: str) -> OfficerRegistration:
        require_role(context, UserRole.OFFICER)
        with self._store.transaction(EntityKind.OFFICER, EntityKind.REQUEST) as store:
            officer = store.officer(context.user_id)
            project = store.project(project_id)
            if not project.visible:
                raise ProjectNotVisibleError(f"Project {project_id} is not open for registration")
            if self._is_applicant_on(officer.user_id, project):
                raise ApplicantOnProjectError(
                    f"Officer {officer.user_id} has applied for project {project_id}"
                )
            current = officer.registration_status_by_project.get(project_id)
            if current is not None and current.is_active:
                raise AlreadyRegisteredError(
                    f"Already registered for project {project_id} ({current.value})"
                )
            clash = self._overlapping_registration(officer, project)
            if clash is not None:
                raise RegistrationOverlapError(
                    f"Project {project_id} overlaps registered project {clash.project_id}"
                )

            registration = OfficerRegistration(
                request_id=store.next_request_id(),
                user_id=officer.user_id,
                project_id=project_id,
            )
            officer.registration_status_by_project[project_id] = RegistrationStatus.PENDING
            store.requests[registration.request_id] = registration

        logger.info(
            "Registration submitted | request_id=%s | officer_id=%s | project_id=%s",
            registration.request_id,
            officer.user_id,
            project_id,
        )
        return registration

    def decide(
        self,
        context: SessionContext,
        request_id: str,
        decision: ApprovedStatus,
    ) -> OfficerRegistration:
        """Record a manager decision and keep slot accounting in step with it.

        An approval when no slot is left is recorded as APPROVED_UNASSIGNED.
        A rejection releases the officer's slot if one was held and is final.
        """
        require_role(context, UserRole.MANAGER)
        with self._store.transaction(
            EntityKind.PROJECT,
            EntityKind.OFFICER,
            EntityKind.REQUEST,
        ) as store:
            registration = store.typed_request(request_id, OfficerRegistration)
            if registration.approval is decision and decision is not ApprovedStatus.PENDING:
                return registration
            if registration.approval is ApprovedStatus.UNSUCCESSFUL:
                raise InvalidTransitionError(f"Registration {request_id} was already rejected")
            if decision is ApprovedStatus.PENDING and not registration.is_pending:
                raise InvalidTransitionError(f"Registration {request_id} was already decided")

            officer = store.officer(registration.user_id)
            project = store.project(registration.project_id)
            project_id = project.project_id

            if decision is ApprovedStatus.SUCCESSFUL:
                if officer.user_id in project.assigned_officer_ids or project.officer_slots_remaining > 0:
                    claim_officer_slot(project, officer.user_id)
                    officer.registered_project_ids.add(project_id)
                    status = RegistrationStatus.APPROVED
                else:
                    status = RegistrationStatus.APPROVED_UNASSIGNED
                    logger.warning(
                        "Registration approved without slot | request_id=%s | officer_id=%s | project_id=%s",
                        request_id,
                        officer.user_id,
                        project_id,
                    )
            elif decision is ApprovedStatus.UNSUCCESSFUL:
                release_officer_slot(project, officer.user_id)
                officer.registered_project_ids.discard(project_id)
                status = RegistrationStatus.REJECTED
            else:
                status = RegistrationStatus.PENDING

            officer.registration_status_by_project[project_id] = status
            registration.approval = decision
            registration.overall_status = (
                RequestStatus.PENDING if decision is ApprovedStatus.PENDING else RequestStatus.DONE
            )

        logger.info(
            "Registration decided | request_id=%s | officer_id=%s | project_id=%s | decision=%s | status=%s | slots_left=%s",
            request_id,
            officer.user_id,
            project_id,
            decision.value,
            status.value,
            project.officer_slots_remaining,
        )
        return registration

    def list_registrable_projects(
        self,
        context: SessionContext,
        criteria: Optional[FilterCriteria] = None,
    ) -> list[Project]:
        require_role(context, UserRole.OFFICER)
        with self._store.reading() as store:
            officer = store.officer(context.user_id)
            active = officer.active_registration_ids()
            candidates = [
                project
                for project in store.projects.values()
                if project.visible
                and project.project_id not in active
                and not self._is_applicant_on(officer.user_id, project)
                and self._overlapping_registration(officer, project) is None
            ]
            return apply_filters(candidates, criteria or _ALL_PROJECTS)

    def registered_projects(
        self,
        context: SessionContext,
        criteria: Optional[FilterCriteria] = None,
    ) -> list[Project]:
        """Projects the officer is assigned to service."""
        require_role(context, UserRole.OFFICER)
        with self._store.reading() as store:
            officer = store.officer(context.user_id)
            projects = [
                store.projects[project_id]
                for project_id in officer.registered_project_ids
                if project_id in store.projects
            ]
            return apply_filters(projects, criteria or _ALL_PROJECTS)

    def registration_history(self, context: SessionContext) -> list[OfficerRegistration]:
        require_role(context, UserRole.OFFICER)
        with self._store.reading() as store:
            return [
                request
                for request in store.find_requests(
                    user_id=context.user_id,
                    request_type=RequestType.REGISTRATION,
                )
                if isinstance(request, OfficerRegistration)
            ]
