"""Controller layer for applicant workflows: browse, apply, withdraw."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import (
    current_context,
    filter_criteria,
    get_application_service,
    get_withdrawal_service,
    workflow_errors,
)
from backend.controllers.schemas import ApplicableProjectResponse, RequestResponse
from backend.domain.models import ApplicationStatus, FilterCriteria, FlatType, SessionContext
from backend.services.application_service import ApplicationService
from backend.services.withdrawal_service import WithdrawalService
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/applicant", tags=["applicant"])


class ApplyRequest(BaseModel):
    project_id: str = Field(min_length=1)
    flat_type: FlatType


class WithdrawRequest(BaseModel):
    project_id: str = Field(min_length=1)


class AppliedProjectResponse(BaseModel):
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    status: Optional[ApplicationStatus] = None


class RequestHistoryResponse(BaseModel):
    pending: list[RequestResponse]
    history: list[RequestResponse]


@router.get("/projects", response_model=list[ApplicableProjectResponse])
async def list_applicable_projects(
    context: SessionContext = Depends(current_context),
    criteria: Optional[FilterCriteria] = Depends(filter_criteria),
    service: ApplicationService = Depends(get_application_service),
) -> list[ApplicableProjectResponse]:
    with workflow_errors("list projects"):
        rows = service.list_applicable_projects(context, criteria)
    return [ApplicableProjectResponse.from_project(project, eligible) for project, eligible in rows]


@router.get("/application", response_model=AppliedProjectResponse)
async def applied_project(
    context: SessionContext = Depends(current_context),
    service: ApplicationService = Depends(get_application_service),
) -> AppliedProjectResponse:
    with workflow_errors("load application"):
        project, current = service.applied_project(context)
    if project is None:
        return AppliedProjectResponse()
    return AppliedProjectResponse(
        project_id=project.project_id,
        project_name=project.name,
        status=current,
    )


@router.post(
    "/applications",
    response_model=RequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def apply(
    payload: ApplyRequest,
    context: SessionContext = Depends(current_context),
    service: ApplicationService = Depends(get_application_service),
) -> RequestResponse:
    with workflow_errors("submit application"):
        application = service.submit(context, payload.project_id, payload.flat_type)
    return RequestResponse.from_request(application)


@router.post(
    "/withdrawals",
    response_model=RequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def withdraw(
    payload: WithdrawRequest,
    context: SessionContext = Depends(current_context),
    service: WithdrawalService = Depends(get_withdrawal_service),
) -> RequestResponse:
    """Withdraw immediately; the manager decision only settles the unit."""
    with workflow_errors("submit withdrawal"):
        withdrawal = service.withdraw(context, payload.project_id)
    return RequestResponse.from_request(withdrawal)


@router.get("/requests", response_model=RequestHistoryResponse)
async def list_requests(
    context: SessionContext = Depends(current_context),
    service: ApplicationService = Depends(get_application_service),
) -> RequestHistoryResponse:
    with workflow_errors("list requests"):
        grouped = service.list_requests(context)
    return RequestHistoryResponse(
        pending=[RequestResponse.from_request(request) for request in grouped["pending"]],
        history=[RequestResponse.from_request(request) for request in grouped["history"]],
    )
