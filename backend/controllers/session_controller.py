"""Controller layer for opening and closing sessions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field, field_validator

from backend.controllers.dependencies import (
    bearer_token,
    current_context,
    get_session_service,
    workflow_errors,
)
from backend.domain.models import SessionContext, UserRole
from backend.services.session_service import AuthenticationError, SessionService
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


class LoginRequest(BaseModel):
    user_id: str = Field(min_length=1)

    @field_validator("user_id")
    @classmethod
    def normalize_user_id(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("user_id must not be blank")
        return value


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: UserRole


class SessionResponse(BaseModel):
    user_id: str
    role: UserRole


@router.post("", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def login(
    payload: LoginRequest,
    service: SessionService = Depends(get_session_service),
) -> LoginResponse:
    """Open a session for a user whose credentials were checked upstream."""
    with workflow_errors("open session"):
        token, context = service.open_session(payload.user_id)
    return LoginResponse(access_token=token, user_id=context.user_id, role=context.role)


@router.get("/me", response_model=SessionResponse)
async def whoami(context: SessionContext = Depends(current_context)) -> SessionResponse:
    return SessionResponse(user_id=context.user_id, role=context.role)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    token: str = Depends(bearer_token),
    service: SessionService = Depends(get_session_service),
) -> Response:
    try:
        service.close_session(token)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
