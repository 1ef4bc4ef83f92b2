"""Withdrawal of applications and the cascade run when a withdrawal is approved."""

from __future__ import annotations

from typing import Optional

from backend.domain.errors import (
    AlreadyWithdrawingError,
    InvalidTransitionError,
    NoPendingApplicationError,
)
from backend.domain.inventory import restore_unit
from backend.domain.models import (
    ApplicationStatus,
    ApprovedStatus,
    BTOApplication,
    BTOWithdrawal,
    RequestStatus,
    RequestType,
    SessionContext,
    UserRole,
)
from backend.repository.data_repository import EntityKind
from backend.repository.entity_store import EntityStore
from backend.services.application_service import ApplicationService
from backend.services.session_service import require_role
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class WithdrawalService:
    """Submits withdrawals and reverses bookings once a manager approves them.

    The applicant is unlinked as soon as the withdrawal is submitted, before
    any manager decision. A later rejection only closes the request.
    """

    def __init__(
        self,
        store: EntityStore,
        application_service: ApplicationService,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._store = store
        self._application_service = application_service

    def withdraw(self, context: SessionContext, project_id: str) -> BTOWithdrawal:
        require_role(context, UserRole.APPLICANT, UserRole.OFFICER)
        with self._store.transaction(EntityKind.APPLICANT, EntityKind.REQUEST) as store:
            applicant = store.applicant(context.user_id)
            store.project(project_id)
            outstanding = [
                request
                for request in store.find_requests(
                    user_id=applicant.user_id,
                    project_id=project_id,
                    request_type=RequestType.BTO_APPLICATION,
                )
                if isinstance(request, BTOApplication)
                and request.approval is not ApprovedStatus.UNSUCCESSFUL
            ]
            if not outstanding:
                raise NoPendingApplicationError(
                    f"No outstanding application for project {project_id}"
                )
            if store.find_requests(
                user_id=applicant.user_id,
                project_id=project_id,
                request_type=RequestType.BTO_WITHDRAWAL,
                pending_only=True,
            ):
                raise AlreadyWithdrawingError(
                    f"A withdrawal for project {project_id} is already pending"
                )

            application = outstanding[-1]
            previous_status = applicant.status_for(project_id)
            withdrawal = BTOWithdrawal(
                request_id=store.next_request_id(),
                user_id=applicant.user_id,
                project_id=project_id,
                application_request_id=application.request_id,
                status_at_submission=previous_status,
            )
            store.requests[withdrawal.request_id] = withdrawal
            applicant.application_status_by_project[project_id] = ApplicationStatus.WITHDRAWN
            if applicant.active_project_id == project_id:
                applicant.active_project_id = None
            applicant.applied_flat_by_project.pop(project_id, None)

        logger.info(
            "Withdrawal submitted | request_id=%s | applicant_id=%s | project_id=%s | previous_status=%s",
            withdrawal.request_id,
            context.user_id,
            project_id,
            previous_status.value if previous_status else None,
        )
        return withdrawal

    def approve_withdrawal(
        self,
        context: SessionContext,
        request_id: str,
        decision: ApprovedStatus,
    ) -> BTOWithdrawal:
        require_role(context, UserRole.MANAGER)
        with self._store.transaction(
            EntityKind.PROJECT,
            EntityKind.APPLICANT,
            EntityKind.REQUEST,
        ) as store:
            withdrawal = store.typed_request(request_id, BTOWithdrawal)
            if withdrawal.approval is decision and decision is not ApprovedStatus.PENDING:
                return withdrawal
            if withdrawal.approval is not ApprovedStatus.PENDING:
                raise InvalidTransitionError(
                    f"Withdrawal {request_id} was already decided {withdrawal.approval.value}"
                )

            released = False
            if decision is ApprovedStatus.SUCCESSFUL:
                released = self._run_cascade(withdrawal)

            withdrawal.approval = decision
            withdrawal.overall_status = (
                RequestStatus.PENDING if decision is ApprovedStatus.PENDING else RequestStatus.DONE
            )

        logger.info(
            "Withdrawal decided | request_id=%s | applicant_id=%s | project_id=%s | decision=%s | unit_released=%s",
            request_id,
            withdrawal.user_id,
            withdrawal.project_id,
            decision.value,
            released,
        )
        return withdrawal

    def _run_cascade(self, withdrawal: BTOWithdrawal) -> bool:
        """Reject the withdrawn application and release a booked unit."""
        store = self._store
        applicant = store.applicant(withdrawal.user_id)
        project_id = withdrawal.project_id
        application = store.requests.get(withdrawal.application_request_id or "")

        if isinstance(application, BTOApplication):
            self._application_service.apply_decision(application, ApprovedStatus.UNSUCCESSFUL)
            flat_type = application.flat_type
        else:
            logger.warning(
                "Withdrawn application missing | request_id=%s | applicant_id=%s | project_id=%s",
                withdrawal.request_id,
                applicant.user_id,
                project_id,
            )
            applicant.application_status_by_project[project_id] = ApplicationStatus.UNSUCCESSFUL
            if applicant.active_project_id == project_id:
                applicant.active_project_id = None
            flat_type = applicant.applied_flat_by_project.pop(project_id, None)

        project = store.projects.get(project_id)
        if project is None or applicant.user_id not in project.booked_applicant_ids:
            return False
        project.booked_applicant_ids.discard(applicant.user_id)
        if flat_type is not None:
            restore_unit(project, flat_type)
        return True
