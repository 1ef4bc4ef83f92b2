"""Manager request queue and decision dispatch."""

from __future__ import annotations

from typing import Optional

from backend.domain.errors import WrongRequestTypeError
from backend.domain.models import (
    ApprovedStatus,
    DecisionRequest,
    Request,
    RequestType,
    SessionContext,
    UserRole,
)
from backend.repository.entity_store import EntityStore
from backend.services.application_service import ApplicationService
from backend.services.registration_service import RegistrationService
from backend.services.session_service import require_role
from backend.services.withdrawal_service import WithdrawalService
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class ApprovalService:
    """Routes a manager decision to the state machine owning the request type."""

    def __init__(
        self,
        store: EntityStore,
        application_service: ApplicationService,
        withdrawal_service: WithdrawalService,
        registration_service: RegistrationService,
    ) -> None:
        self._store = store
        self._handlers = {
            RequestType.BTO_APPLICATION: application_service.decide,
            RequestType.BTO_WITHDRAWAL: withdrawal_service.approve_withdrawal,
            RequestType.REGISTRATION: registration_service.decide,
        }

    def list_requests(
        self,
        context: SessionContext,
        request_type: Optional[RequestType] = None,
        pending_only: bool = False,
    ) -> list[Request]:
        require_role(context, UserRole.MANAGER)
        with self._store.reading() as store:
            requests = store.find_requests(request_type=request_type, pending_only=pending_only)
        if request_type is None:
            requests = [request for request in requests if request.request_type is not RequestType.ENQUIRY]
        return requests

    def decide(
        self,
        context: SessionContext,
        request_id: str,
        decision: ApprovedStatus,
    ) -> DecisionRequest:
        require_role(context, UserRole.MANAGER)
        with self._store.reading() as store:
            request_type = store.request(request_id).request_type
        handler = self._handlers.get(request_type)
        if handler is None:
            raise WrongRequestTypeError(
                f"Request {request_id} is a {request_type.value} request and takes no decision"
            )
        logger.debug(
            "Dispatching decision | request_id=%s | request_type=%s | decision=%s",
            request_id,
            request_type.value,
            decision.value,
        )
        return handler(context, request_id, decision)
