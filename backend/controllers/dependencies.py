"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Any, Iterator, Optional

from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.domain.errors import (
    ConflictError,
    NotFoundError,
    NotRequestOwnerError,
    ProjectOwnershipError,
    ResourceExhaustedError,
    RoleNotPermittedError,
    WorkflowError,
)
from backend.domain.models import FilterCriteria, FlatType, SessionContext, SortKey
from backend.services.application_service import ApplicationService
from backend.services.approval_service import ApprovalService
from backend.services.booking_service import BookingService
from backend.services.enquiry_service import EnquiryService
from backend.services.project_service import ProjectService
from backend.services.registration_service import RegistrationService
from backend.services.report_service import ReportService
from backend.services.session_service import AuthenticationError, SessionService
from backend.services.withdrawal_service import WithdrawalService
from backend.utils.logger import get_logger


logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

_FORBIDDEN_ERRORS = (RoleNotPermittedError, ProjectOwnershipError, NotRequestOwnerError)


def to_http_exception(exc: WorkflowError) -> HTTPException:
    if isinstance(exc, _FORBIDDEN_ERRORS):
        status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (ConflictError, ResourceExhaustedError)):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(
        status_code=status_code,
        detail={"kind": exc.kind, "error": type(exc).__name__, "message": str(exc)},
    )


@contextmanager
def workflow_errors(action: str) -> Iterator[None]:
    """Translate workflow failures raised inside the block into HTTP errors."""
    try:
        yield
    except HTTPException:
        raise
    except WorkflowError as exc:
        logger.info("Request rejected | action=%s | kind=%s | reason=%s", action, exc.kind, exc)
        raise to_http_exception(exc) from exc
    except Exception as exc:
        logger.exception("Unexpected failure | action=%s", action)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}",
        ) from exc


def _state_service(request: Request, name: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{name} is not initialized",
        )
    return service


def get_session_service(request: Request) -> SessionService:
    return _state_service(request, "session_service")


def get_application_service(request: Request) -> ApplicationService:
    return _state_service(request, "application_service")


def get_withdrawal_service(request: Request) -> WithdrawalService:
    return _state_service(request, "withdrawal_service")


def get_booking_service(request: Request) -> BookingService:
    return _state_service(request, "booking_service")


def get_registration_service(request: Request) -> RegistrationService:
    return _state_service(request, "registration_service")


def get_project_service(request: Request) -> ProjectService:
    return _state_service(request, "project_service")


def get_enquiry_service(request: Request) -> EnquiryService:
    return _state_service(request, "enquiry_service")


def get_approval_service(request: Request) -> ApprovalService:
    return _state_service(request, "approval_service")


def get_report_service(request: Request) -> ReportService:
    return _state_service(request, "report_service")


def bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header with Bearer token is required",
        )
    return credentials.credentials


async def current_context(
    token: str = Depends(bearer_token),
    session_service: SessionService = Depends(get_session_service),
) -> SessionContext:
    try:
        return session_service.resolve(token)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


def filter_criteria(
    location: Optional[list[str]] = Query(default=None),
    price_min: Optional[int] = Query(default=None, ge=0),
    price_max: Optional[int] = Query(default=None, ge=0),
    flat_type: Optional[FlatType] = Query(default=None),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    sort: SortKey = Query(default=SortKey.NAME),
    include_sold_out: Optional[bool] = Query(default=None),
) -> Optional[FilterCriteria]:
    """Build FilterCriteria from query parameters; None when nothing was given.

    Returning None lets each service apply its own default view.
    """
    values = (location, price_min, price_max, flat_type, start_date, end_date, include_sold_out)
    if all(value is None for value in values) and sort is SortKey.NAME:
        return None
    if price_min is not None and price_max is not None and price_max < price_min:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="price_max must be >= price_min",
        )
    return FilterCriteria(
        locations=tuple(location or ()),
        price_min=price_min,
        price_max=price_max,
        flat_type=flat_type,
        start_date=start_date,
        end_date=end_date,
        sort_key=sort,
        include_sold_out=bool(include_sold_out),
    )
