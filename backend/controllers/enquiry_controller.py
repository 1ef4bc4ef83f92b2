"""Controller layer for project enquiries."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import current_context, get_enquiry_service, workflow_errors
from backend.controllers.schemas import RequestResponse
from backend.domain.models import SessionContext
from backend.services.enquiry_service import EnquiryService
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/enquiries", tags=["enquiries"])


class EnquiryRequest(BaseModel):
    project_id: str = Field(min_length=1)
    text: str = Field(min_length=1, max_length=2000)


class EnquiryTextRequest(BaseModel):
    text: str = Field(min_length=1, max_length=2000)


@router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_enquiry(
    payload: EnquiryRequest,
    context: SessionContext = Depends(current_context),
    service: EnquiryService = Depends(get_enquiry_service),
) -> RequestResponse:
    with workflow_errors("submit enquiry"):
        enquiry = service.submit(context, payload.project_id, payload.text)
    return RequestResponse.from_request(enquiry)


@router.get("/mine", response_model=list[RequestResponse])
async def list_own_enquiries(
    context: SessionContext = Depends(current_context),
    service: EnquiryService = Depends(get_enquiry_service),
) -> list[RequestResponse]:
    with workflow_errors("list enquiries"):
        enquiries = service.list_own(context)
    return [RequestResponse.from_request(enquiry) for enquiry in enquiries]


@router.get("/managed", response_model=list[RequestResponse])
async def list_managed_enquiries(
    context: SessionContext = Depends(current_context),
    service: EnquiryService = Depends(get_enquiry_service),
) -> list[RequestResponse]:
    with workflow_errors("list enquiries"):
        enquiries = service.list_for_managed_projects(context)
    return [RequestResponse.from_request(enquiry) for enquiry in enquiries]


@router.get("/projects/{project_id}", response_model=list[RequestResponse])
async def list_project_enquiries(
    project_id: str,
    context: SessionContext = Depends(current_context),
    service: EnquiryService = Depends(get_enquiry_service),
) -> list[RequestResponse]:
    with workflow_errors("list enquiries"):
        enquiries = service.list_for_project(context, project_id)
    return [RequestResponse.from_request(enquiry) for enquiry in enquiries]


@router.put("/{request_id}", response_model=RequestResponse)
async def edit_enquiry(
    request_id: str,
    payload: EnquiryTextRequest,
    context: SessionContext = Depends(current_context),
    service: EnquiryService = Depends(get_enquiry_service),
) -> RequestResponse:
    with workflow_errors("edit enquiry"):
        enquiry = service.edit(context, request_id, payload.text)
    return RequestResponse.from_request(enquiry)


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_enquiry(
    request_id: str,
    context: SessionContext = Depends(current_context),
    service: EnquiryService = Depends(get_enquiry_service),
) -> Response:
    with workflow_errors("delete enquiry"):
        service.delete(context, request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{request_id}/answer", response_model=RequestResponse)
async def answer_enquiry(
    request_id: str,
    payload: EnquiryTextRequest,
    context: SessionContext = Depends(current_context),
    service: EnquiryService = Depends(get_enquiry_service),
) -> RequestResponse:
    with workflow_errors("answer enquiry"):
        enquiry = service.answer(context, request_id, payload.text)
    return RequestResponse.from_request(enquiry)
