"""Applicant application state machine: submit and manager decisions."""

from __future__ import annotations

from datetime import date
from typing import Callable, Optional

from backend.domain.eligibility import allows_flat_type, eligible_flat_type
from backend.domain.errors import (
    AlreadyAppliedError,
    AlreadyBookedError,
    InvalidTransitionError,
    NoUnitsAvailableError,
    NotEligibleError,
    WithdrawalPendingError,
)
from backend.domain.filters import apply_filters
from backend.domain.inventory import has_units
from backend.domain.models import (
    Applicant,
    ApplicationStatus,
    ApprovedStatus,
    BTOApplication,
    FilterCriteria,
    FlatType,
    Project,
    Request,
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

_APPLYING_ROLES = (UserRole.APPLICANT, UserRole.OFFICER)


class ApplicationService:
    """Owns the applicant-side status and the BTOApplication approval field.

    Both are written together in ``apply_decision`` so the cached status on
    the applicant never drifts from the request's recorded decision.
    """

    def __init__(
        self,
        store: EntityStore,
        settings: Optional[Settings] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._store = store
        self._today = today or date.today

    def _eligibility_for(self, applicant: Applicant, project: Project) -> Optional[FlatType]:
        officer = self._store.officers.get(applicant.user_id)
        if officer is not None and project.project_id in officer.active_registration_ids():
            return None
        return eligible_flat_type(
            applicant,
            project,
            self._today(),
            married_min_age=self._settings.married_min_age,
            single_min_age=self._settings.single_min_age,
        )

    def eligibility(self, applicant_id: str, project_id: str) -> Optional[FlatType]:
        with self._store.reading() as store:
            return self._eligibility_for(store.applicant(applicant_id), store.project(project_id))

    def list_applicable_projects(
        self,
        context: SessionContext,
        criteria: Optional[FilterCriteria] = None,
    ) -> list[tuple[Project, FlatType]]:
        require_role(context, *_APPLYING_ROLES)
        with self._store.reading() as store:
            applicant = store.applicant(context.user_id)
            eligible_by_project: dict[str, FlatType] = {}
            for project in store.projects.values():
                eligible = self._eligibility_for(applicant, project)
                if eligible is not None:
                    eligible_by_project[project.project_id] = eligible
            candidates = [store.projects[project_id] for project_id in eligible_by_project]
            return [
                (project, eligible_by_project[project.project_id])
                for project in apply_filters(candidates, criteria)
            ]

    def applied_project(
        self,
        context: SessionContext,
    ) -> tuple[Optional[Project], Optional[ApplicationStatus]]:
        with self._store.reading() as store:
            applicant = store.applicant(context.user_id)
            if applicant.active_project_id is None:
                return None, None
            project = store.projects.get(applicant.active_project_id)
            return project, applicant.status_for(applicant.active_project_id)

    def list_requests(self, context: SessionContext) -> dict[str, list[Request]]:
        """Return the caller's application and withdrawal requests."""
        with self._store.reading() as store:
            own = [
                request
                for request in store.find_requests(user_id=context.user_id)
                if request.request_type in (RequestType.BTO_APPLICATION, RequestType.BTO_WITHDRAWAL)
            ]
        return {
            "pending": [request for request in own if request.is_pending],
            "history": [request for request in own if not request.is_pending],
        }

    def submit(
        self,
        context: SessionContext,
        project_id: str,
        flat_type: FlatType,
    ) -> BTOApplication:
        require_role(context, *_APPLYING_ROLES)
        with self._store.transaction(EntityKind.APPLICANT, EntityKind.REQUEST) as store:
            applicant = store.applicant(context.user_id)
            if applicant.active_project_id is not None:
                raise AlreadyAppliedError(
                    f"Already applied for project {applicant.active_project_id}"
                )
            project = store.project(project_id)
            booked_in = [
                candidate.project_id
                for candidate in store.projects.values()
                if applicant.user_id in candidate.booked_applicant_ids
            ]
            if booked_in:
                raise AlreadyBookedError(f"A flat in {booked_in[0]} is already booked")
            if store.find_requests(
                user_id=applicant.user_id,
                project_id=project_id,
                request_type=RequestType.BTO_WITHDRAWAL,
                pending_only=True,
            ):
                raise WithdrawalPendingError(
                    f"A withdrawal for project {project_id} is still awaiting a decision"
                )
            # A rejected withdrawal leaves the earlier application undecided or approved.
            open_application = next(
                (
                    request
                    for request in store.find_requests(
                        user_id=applicant.user_id,
                        project_id=project_id,
                        request_type=RequestType.BTO_APPLICATION,
                    )
                    if isinstance(request, BTOApplication)
                    and request.approval is not ApprovedStatus.UNSUCCESSFUL
                ),
                None,
            )
            if open_application is not None:
                raise AlreadyAppliedError(
                    f"Application {open_application.request_id} for project {project_id} is still open"
                )
            eligible = self._eligibility_for(applicant, project)
            if not allows_flat_type(eligible, flat_type):
                raise NotEligibleError(
                    f"Not eligible to apply for {flat_type.value} in project {project_id}"
                )
            if not has_units(project, flat_type):
                raise NoUnitsAvailableError(
                    f"No {flat_type.value} units available in project {project_id}"
                )

            application = BTOApplication(
                request_id=store.next_request_id(),
                user_id=applicant.user_id,
                project_id=project_id,
                flat_type=flat_type,
            )
            applicant.active_project_id = project_id
            applicant.application_status_by_project[project_id] = ApplicationStatus.PENDING
            applicant.applied_flat_by_project[project_id] = flat_type
            store.requests[application.request_id] = application

        logger.info(
            "Application submitted | request_id=%s | applicant_id=%s | project_id=%s | flat_type=%s",
            application.request_id,
            applicant.user_id,
            project_id,
            flat_type.value,
        )
        return application

    def decide(
        self,
        context: SessionContext,
        request_id: str,
        decision: ApprovedStatus,
    ) -> BTOApplication:
        require_role(context, UserRole.MANAGER)
        with self._store.transaction(EntityKind.APPLICANT, EntityKind.REQUEST) as store:
            application = store.typed_request(request_id, BTOApplication)
            self.apply_decision(application, decision)
        return application

    def apply_decision(self, application: BTOApplication, decision: ApprovedStatus) -> None:
        """Write ``decision`` to the request and the applicant's cached status.

        Must run inside an open store transaction.
        """
        applicant = self._store.applicant(application.user_id)
        target = self._plan_transition(application, applicant, decision)

        project_id = application.project_id
        if target is not None:
            applicant.application_status_by_project[project_id] = target
            if target is ApplicationStatus.UNSUCCESSFUL:
                if applicant.active_project_id == project_id:
                    applicant.active_project_id = None
                applicant.applied_flat_by_project.pop(project_id, None)
        application.approval = decision
        application.overall_status = (
            RequestStatus.PENDING if decision is ApprovedStatus.PENDING else RequestStatus.DONE
        )
        logger.info(
            "Application decided | request_id=%s | applicant_id=%s | project_id=%s | decision=%s | status=%s",
            application.request_id,
            applicant.user_id,
            project_id,
            decision.value,
            _label(applicant.status_for(project_id)),
        )

    @staticmethod
    def _plan_transition(
        application: BTOApplication,
        applicant: Applicant,
        decision: ApprovedStatus,
    ) -> Optional[ApplicationStatus]:
        """Return the applicant status to write, or None when nothing changes."""
        current = applicant.status_for(application.project_id)
        recorded = application.approval

        if decision is recorded and decision is not ApprovedStatus.PENDING:
            return None
        if recorded is ApprovedStatus.UNSUCCESSFUL:
            raise InvalidTransitionError(
                f"Application {application.request_id} was already rejected"
            )

        if decision is ApprovedStatus.SUCCESSFUL:
            if current is not ApplicationStatus.PENDING:
                raise InvalidTransitionError(
                    f"Cannot approve an application whose status is {_label(current)}"
                )
            return ApplicationStatus.SUCCESSFUL

        if decision is ApprovedStatus.UNSUCCESSFUL:
            if current is ApplicationStatus.BOOKED:
                raise InvalidTransitionError(
                    "A booked flat can only be released through a withdrawal"
                )
            return ApplicationStatus.UNSUCCESSFUL

        if current not in (ApplicationStatus.PENDING, ApplicationStatus.SUCCESSFUL):
            raise InvalidTransitionError(
                f"Cannot reopen an application whose status is {_label(current)}"
            )
        return ApplicationStatus.PENDING


def _label(status: Optional[ApplicationStatus]) -> str:
    return status.value if status is not None else "NONE"
