"""Controller layer for officer workflows: registration, booking, receipts."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import (
    current_context,
    filter_criteria,
    get_booking_service,
    get_registration_service,
    workflow_errors,
)
from backend.controllers.schemas import ProjectResponse, ReceiptResponse, RequestResponse
from backend.domain.models import (
    ApplicationStatus,
    FilterCriteria,
    MaritalStatus,
    SessionContext,
)
from backend.services.booking_service import BookingService
from backend.services.registration_service import RegistrationService
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/officer", tags=["officer"])


class RegisterRequest(BaseModel):
    project_id: str = Field(min_length=1)


class BookRequest(BaseModel):
    applicant_id: str = Field(min_length=1)


class ProjectApplicantResponse(BaseModel):
    applicant_id: str
    name: str
    age: int
    marital_status: MaritalStatus
    status: ApplicationStatus


@router.get("/registrable-projects", response_model=list[ProjectResponse])
async def list_registrable_projects(
    context: SessionContext = Depends(current_context),
    criteria: Optional[FilterCriteria] = Depends(filter_criteria),
    service: RegistrationService = Depends(get_registration_service),
) -> list[ProjectResponse]:
    with workflow_errors("list registrable projects"):
        projects = service.list_registrable_projects(context, criteria)
    return [ProjectResponse.from_project(project) for project in projects]


@router.get("/projects", response_model=list[ProjectResponse])
async def list_registered_projects(
    context: SessionContext = Depends(current_context),
    criteria: Optional[FilterCriteria] = Depends(filter_criteria),
    service: RegistrationService = Depends(get_registration_service),
) -> list[ProjectResponse]:
    with workflow_errors("list registered projects"):
        projects = service.registered_projects(context, criteria)
    return [ProjectResponse.from_project(project) for project in projects]


@router.post(
    "/registrations",
    response_model=RequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    payload: RegisterRequest,
    context: SessionContext = Depends(current_context),
    service: RegistrationService = Depends(get_registration_service),
) -> RequestResponse:
    with workflow_errors("register for project"):
        registration = service.register(context, payload.project_id)
    return RequestResponse.from_request(registration)


@router.get("/registrations", response_model=list[RequestResponse])
async def registration_history(
    context: SessionContext = Depends(current_context),
    service: RegistrationService = Depends(get_registration_service),
) -> list[RequestResponse]:
    with workflow_errors("list registrations"):
        registrations = service.registration_history(context)
    return [RequestResponse.from_request(request) for request in registrations]


@router.get("/projects/{project_id}/applicants", response_model=list[ProjectApplicantResponse])
async def list_project_applicants(
    project_id: str,
    application_status: Optional[ApplicationStatus] = Query(default=None, alias="status"),
    context: SessionContext = Depends(current_context),
    service: BookingService = Depends(get_booking_service),
) -> list[ProjectApplicantResponse]:
    with workflow_errors("list project applicants"):
        rows = service.applicants_for_project(context, project_id, application_status)
    return [
        ProjectApplicantResponse(
            applicant_id=applicant.user_id,
            name=applicant.name,
            age=applicant.age,
            marital_status=applicant.marital_status,
            status=current,
        )
        for applicant, current in rows
    ]


@router.post("/bookings", response_model=ReceiptResponse, status_code=status.HTTP_201_CREATED)
async def book_flat(
    payload: BookRequest,
    context: SessionContext = Depends(current_context),
    service: BookingService = Depends(get_booking_service),
) -> ReceiptResponse:
    with workflow_errors("book flat"):
        receipt = service.book(context, payload.applicant_id)
    return ReceiptResponse.from_receipt(receipt)


@router.get("/receipts/{applicant_id}", response_model=ReceiptResponse)
async def get_receipt(
    applicant_id: str,
    context: SessionContext = Depends(current_context),
    service: BookingService = Depends(get_booking_service),
) -> ReceiptResponse:
    with workflow_errors("load receipt"):
        receipt = service.receipt(context, applicant_id)
    return ReceiptResponse.from_receipt(receipt)


@router.get("/projects/{project_id}/receipts", response_model=list[ReceiptResponse])
async def list_project_receipts(
    project_id: str,
    context: SessionContext = Depends(current_context),
    service: BookingService = Depends(get_booking_service),
) -> list[ReceiptResponse]:
    with workflow_errors("list receipts"):
        receipts = service.receipts_for_project(context, project_id)
    return [ReceiptResponse.from_receipt(receipt) for receipt in receipts]
