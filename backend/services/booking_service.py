"""Flat booking by officers and booking receipts."""

from __future__ import annotations

from typing import Optional

from backend.domain.errors import (
    AlreadyBookedError,
    NoActiveApplicationError,
    NoUnitsAvailableError,
    NotYetApprovedError,
    OfficerNotAssignedError,
)
from backend.domain.inventory import consume_unit, has_units
from backend.domain.models import (
    Applicant,
    ApplicationStatus,
    BookingReceipt,
    Officer,
    Project,
    SessionContext,
    UserRole,
)
from backend.repository.data_repository import EntityKind
from backend.repository.entity_store import EntityStore
from backend.services.session_service import require_role
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def _ensure_assigned(officer: Officer, project_id: str) -> None:
    if project_id not in officer.registered_project_ids:
        raise OfficerNotAssignedError(
            f"Officer {officer.user_id} is not assigned to project {project_id}"
        )


def _receipt(applicant: Applicant, project: Project) -> BookingReceipt:
    flat_type = applicant.applied_flat_by_project[project.project_id]
    return BookingReceipt(
        applicant_id=applicant.user_id,
        applicant_name=applicant.name,
        age=applicant.age,
        marital_status=applicant.marital_status,
        project_id=project.project_id,
        project_name=project.name,
        neighborhoods=tuple(sorted(project.neighborhoods)),
        flat_type=flat_type,
        price=project.prices.get(flat_type),
    )


class BookingService:
    """Turns a SUCCESSFUL application into a BOOKED flat.

    ``book`` is the only place where a project's unit count goes down.
    """

    def __init__(self, store: EntityStore, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._store = store

    def book(self, context: SessionContext, applicant_id: str) -> BookingReceipt:
        require_role(context, UserRole.OFFICER)
        with self._store.transaction(EntityKind.PROJECT, EntityKind.APPLICANT) as store:
            applicant = store.applicant(applicant_id)
            project_id = applicant.active_project_id
            if project_id is None:
                raise NoActiveApplicationError(
                    f"Applicant {applicant_id} has no active application"
                )
            _ensure_assigned(store.officer(context.user_id), project_id)
            status = applicant.status_for(project_id)
            if status is ApplicationStatus.BOOKED:
                raise AlreadyBookedError(f"Applicant {applicant_id} has already booked a flat")
            if status is not ApplicationStatus.SUCCESSFUL:
                raise NotYetApprovedError(
                    f"Application of {applicant_id} is {status.value if status else 'NONE'}, not SUCCESSFUL"
                )
            project = store.project(project_id)
            flat_type = applicant.applied_flat_by_project.get(project_id)
            if flat_type is None or not has_units(project, flat_type):
                raise NoUnitsAvailableError(
                    f"No units left for the applied flat type in project {project_id}"
                )

            remaining = consume_unit(project, flat_type)
            project.booked_applicant_ids.add(applicant_id)
            applicant.application_status_by_project[project_id] = ApplicationStatus.BOOKED
            receipt = _receipt(applicant, project)

        logger.info(
            "Flat booked | applicant_id=%s | project_id=%s | flat_type=%s | officer_id=%s | units_left=%s",
            applicant_id,
            project_id,
            flat_type.value,
            context.user_id,
            remaining,
        )
        return receipt

    def applicants_for_project(
        self,
        context: SessionContext,
        project_id: str,
        status: Optional[ApplicationStatus] = None,
    ) -> list[tuple[Applicant, ApplicationStatus]]:
        """Applicants currently linked to a project the officer services."""
        require_role(context, UserRole.OFFICER)
        with self._store.reading() as store:
            _ensure_assigned(store.officer(context.user_id), project_id)
            store.project(project_id)
            rows = []
            for applicant in store.applicants.values():
                if applicant.active_project_id != project_id:
                    continue
                current = applicant.status_for(project_id)
                if current is None or (status is not None and current is not status):
                    continue
                rows.append((applicant, current))
            return sorted(rows, key=lambda row: row[0].user_id)

    def receipt(self, context: SessionContext, applicant_id: str) -> BookingReceipt:
        require_role(context, UserRole.OFFICER)
        with self._store.reading() as store:
            officer = store.officer(context.user_id)
            applicant = store.applicant(applicant_id)
            project_id = applicant.active_project_id
            if project_id is None:
                raise NoActiveApplicationError(f"Applicant {applicant_id} has no active application")
            _ensure_assigned(officer, project_id)
            if applicant.status_for(project_id) is not ApplicationStatus.BOOKED:
                raise NotYetApprovedError(f"Applicant {applicant_id} has not booked a flat")
            return _receipt(applicant, store.project(project_id))

    def receipts_for_project(self, context: SessionContext, project_id: str) -> list[BookingReceipt]:
        require_role(context, UserRole.OFFICER)
        with self._store.reading() as store:
            _ensure_assigned(store.officer(context.user_id), project_id)
            project = store.project(project_id)
            receipts = []
            for applicant_id in sorted(project.booked_applicant_ids):
                applicant = store.applicants.get(applicant_id)
                if applicant is None or applicant.status_for(project_id) is not ApplicationStatus.BOOKED:
                    continue
                receipts.append(_receipt(applicant, project))
            return receipts
