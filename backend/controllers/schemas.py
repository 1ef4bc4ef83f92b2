"""Response DTOs shared by the role controllers."""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from backend.domain.models import (
    ApplicationStatus,
    ApprovedStatus,
    BookingReceipt,
    FlatType,
    MaritalStatus,
    Project,
    Request,
    RequestStatus,
    RequestType,
)


class ProjectResponse(BaseModel):
    project_id: str
    name: str
    neighborhoods: list[str]
    units: dict[FlatType, int]
    prices: dict[FlatType, int]
    open_date: date
    close_date: date
    manager_id: str
    officer_slots_remaining: int = Field(ge=0)
    assigned_officer_ids: list[str]
    visible: bool

    @classmethod
    def from_project(cls, project: Project) -> "ProjectResponse":
        return cls(
            project_id=project.project_id,
            name=project.name,
            neighborhoods=sorted(project.neighborhoods),
            units=dict(project.units),
            prices=dict(project.prices),
            open_date=project.open_date,
            close_date=project.close_date,
            manager_id=project.manager_id,
            officer_slots_remaining=project.officer_slots_remaining,
            assigned_officer_ids=sorted(project.assigned_officer_ids),
            visible=project.visible,
        )


class ApplicableProjectResponse(BaseModel):
    """Applicant view: only flat types the applicant may apply for are listed."""

    project_id: str
    name: str
    neighborhoods: list[str]
    units: dict[FlatType, int]
    prices: dict[FlatType, int]
    open_date: date
    close_date: date
    eligible_flat_type: FlatType

    @classmethod
    def from_project(cls, project: Project, eligible: FlatType) -> "ApplicableProjectResponse":
        offered = [flat_type for flat_type in FlatType if flat_type.rank <= eligible.rank]
        return cls(
            project_id=project.project_id,
            name=project.name,
            neighborhoods=sorted(project.neighborhoods),
            units={flat_type: project.units[flat_type] for flat_type in offered if flat_type in project.units},
            prices={flat_type: project.prices[flat_type] for flat_type in offered if flat_type in project.prices},
            open_date=project.open_date,
            close_date=project.close_date,
            eligible_flat_type=eligible,
        )


class RequestResponse(BaseModel):
    request_id: str
    request_type: RequestType
    user_id: str
    project_id: str
    overall_status: RequestStatus
    approval: Optional[ApprovedStatus] = None
    flat_type: Optional[FlatType] = None
    application_request_id: Optional[str] = None
    status_at_submission: Optional[ApplicationStatus] = None
    query: Optional[str] = None
    answer: Optional[str] = None
    answered_by: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request) -> "RequestResponse":
        return cls(
            request_id=request.request_id,
            request_type=request.request_type,
            user_id=request.user_id,
            project_id=request.project_id,
            overall_status=request.overall_status,
            approval=getattr(request, "approval", None),
            flat_type=getattr(request, "flat_type", None),
            application_request_id=getattr(request, "application_request_id", None),
            status_at_submission=getattr(request, "status_at_submission", None),
            query=getattr(request, "query", None),
            answer=getattr(request, "answer", None),
            answered_by=getattr(request, "answered_by", None),
        )


class ReceiptResponse(BaseModel):
    applicant_id: str
    applicant_name: str
    age: int = Field(ge=0)
    marital_status: MaritalStatus
    project_id: str
    project_name: str
    neighborhoods: list[str]
    flat_type: FlatType
    price: Optional[int] = None

    @classmethod
    def from_receipt(cls, receipt: BookingReceipt) -> "ReceiptResponse":
        return cls(
            applicant_id=receipt.applicant_id,
            applicant_name=receipt.applicant_name,
            age=receipt.age,
            marital_status=receipt.marital_status,
            project_id=receipt.project_id,
            project_name=receipt.project_name,
            neighborhoods=list(receipt.neighborhoods),
            flat_type=receipt.flat_type,
            price=receipt.price,
        )
