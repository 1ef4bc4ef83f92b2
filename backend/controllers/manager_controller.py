"""Controller layer for manager workflows: projects, decisions, reports."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field, field_validator

from backend.controllers.dependencies import (
    current_context,
    filter_criteria,
    get_approval_service,
    get_project_service,
    get_report_service,
    workflow_errors,
)
from backend.controllers.schemas import ProjectResponse, RequestResponse
from backend.domain.models import (
    ApprovedStatus,
    FilterCriteria,
    FlatType,
    MaritalStatus,
    ProjectDraft,
    RequestType,
    SessionContext,
)
from backend.services.approval_service import ApprovalService
from backend.services.project_service import ProjectService
from backend.services.report_service import ReportService, frame_records
from backend.utils.config import get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/manager", tags=["manager"])


class ProjectPayload(BaseModel):
    name: str = Field(min_length=1)
    neighborhoods: list[str] = Field(min_length=1)
    units: dict[FlatType, int]
    prices: dict[FlatType, int]
    open_date: date
    close_date: date
    officer_slots: int = Field(ge=0, le=settings.max_officer_slots)
    visible: bool = True

    @field_validator("neighborhoods")
    @classmethod
    def strip_neighborhoods(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip() for item in value]
        if any(not item for item in cleaned):
            raise ValueError("neighborhoods must not contain blank names")
        return cleaned

    @field_validator("units", "prices")
    @classmethod
    def validate_non_negative(cls, value: dict[FlatType, int]) -> dict[FlatType, int]:
        for flat_type, amount in value.items():
            if amount < 0:
                raise ValueError(f"{flat_type.value} value must be >= 0")
        return value

    def to_draft(self) -> ProjectDraft:
        return ProjectDraft(
            name=self.name,
            neighborhoods=frozenset(self.neighborhoods),
            units=dict(self.units),
            prices=dict(self.prices),
            open_date=self.open_date,
            close_date=self.close_date,
            officer_slots=self.officer_slots,
            visible=self.visible,
        )


class DecisionRequest(BaseModel):
    decision: ApprovedStatus


class BookingReportRow(BaseModel):
    applicant_id: str
    name: str
    age: int
    marital_status: MaritalStatus
    project_id: str
    project_name: str
    flat_type: FlatType
    price: Optional[int] = None


@router.get("/projects", response_model=list[ProjectResponse])
async def list_projects(
    mine: bool = Query(default=False),
    context: SessionContext = Depends(current_context),
    criteria: Optional[FilterCriteria] = Depends(filter_criteria),
    service: ProjectService = Depends(get_project_service),
) -> list[ProjectResponse]:
    with workflow_errors("list projects"):
        if mine:
            projects = service.list_managed_projects(context, criteria)
        else:
            projects = service.list_projects(context, criteria)
    return [ProjectResponse.from_project(project) for project in projects]


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectPayload,
    context: SessionContext = Depends(current_context),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    with workflow_errors("create project"):
        project = service.create(context, payload.to_draft())
    return ProjectResponse.from_project(project)


@router.put("/projects/{project_id}", response_model=ProjectResponse)
async def edit_project(
    project_id: str,
    payload: ProjectPayload,
    context: SessionContext = Depends(current_context),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    with workflow_errors("edit project"):
        project = service.edit(context, project_id, payload.to_draft())
    return ProjectResponse.from_project(project)


@router.post("/projects/{project_id}/visibility", response_model=ProjectResponse)
async def toggle_visibility(
    project_id: str,
    context: SessionContext = Depends(current_context),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    with workflow_errors("toggle visibility"):
        project = service.toggle_visibility(context, project_id)
    return ProjectResponse.from_project(project)


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    context: SessionContext = Depends(current_context),
    service: ProjectService = Depends(get_project_service),
) -> Response:
    with workflow_errors("delete project"):
        service.delete(context, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/requests", response_model=list[RequestResponse])
async def list_requests(
    request_type: Optional[RequestType] = Query(default=None),
    pending_only: bool = Query(default=False),
    context: SessionContext = Depends(current_context),
    service: ApprovalService = Depends(get_approval_service),
) -> list[RequestResponse]:
    with workflow_errors("list requests"):
        requests = service.list_requests(context, request_type, pending_only)
    return [RequestResponse.from_request(request) for request in requests]


@router.post("/requests/{request_id}/decision", response_model=RequestResponse)
async def decide_request(
    request_id: str,
    payload: DecisionRequest,
    context: SessionContext = Depends(current_context),
    service: ApprovalService = Depends(get_approval_service),
) -> RequestResponse:
    with workflow_errors("decide request"):
        request = service.decide(context, request_id, payload.decision)
    return RequestResponse.from_request(request)


@router.get("/reports/bookings", response_model=list[BookingReportRow])
async def booking_report(
    project_id: Optional[str] = Query(default=None),
    min_age: Optional[int] = Query(default=None, ge=0),
    max_age: Optional[int] = Query(default=None, ge=0),
    marital_status: Optional[MaritalStatus] = Query(default=None),
    flat_type: Optional[FlatType] = Query(default=None),
    context: SessionContext = Depends(current_context),
    service: ReportService = Depends(get_report_service),
) -> list[dict[str, Any]]:
    with workflow_errors("generate booking report"):
        frame = service.booking_report(
            context,
            project_id=project_id,
            min_age=min_age,
            max_age=max_age,
            marital_status=marital_status,
            flat_type=flat_type,
        )
    return frame_records(frame)
