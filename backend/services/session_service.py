"""Session tokens binding a caller to an explicit SessionContext."""

from __future__ import annotations

import secrets
from threading import RLock
from typing import Optional

from backend.domain.errors import ApplicantNotFoundError, RoleNotPermittedError
from backend.domain.models import SessionContext, UserRole
from backend.repository.entity_store import EntityStore
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class AuthenticationError(Exception):
    """Base session failure."""


class InvalidSessionError(AuthenticationError):
    """Raised when a bearer token does not match an open session."""


def require_role(context: SessionContext, *roles: UserRole) -> None:
    if context.role not in roles:
        allowed = ", ".join(role.value for role in roles)
        raise RoleNotPermittedError(
            f"{context.role.value} cannot perform this operation (requires {allowed})"
        )


class SessionService:
    """Issues and validates session tokens.

    Credentials are checked by the external account layer; this service only
    resolves the user's role and remembers which token belongs to whom.
    """

    def __init__(self, store: EntityStore, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._store = store
        self._sessions: dict[str, SessionContext] = {}
        self._lock = RLock()

    def open_session(self, user_id: str) -> tuple[str, SessionContext]:
        with self._store.reading() as store:
            role = store.role_of(user_id)
        if role is None:
            raise ApplicantNotFoundError(f"User {user_id} is not registered")
        context = SessionContext(user_id=user_id, role=role)
        token = secrets.token_urlsafe(self._settings.session_token_bytes)
        with self._lock:
            # One live token per user; signing in again revokes the previous one.
            self._sessions = {
                existing: value
                for existing, value in self._sessions.items()
                if value.user_id != user_id
            }
            self._sessions[token] = context
        logger.info("Session opened | user_id=%s | role=%s", user_id, role.value)
        return token, context

    def resolve(self, bearer_token: str) -> SessionContext:
        with self._lock:
            for token, context in self._sessions.items():
                if secrets.compare_digest(bearer_token, token):
                    return context
        raise InvalidSessionError("Invalid or expired session token")

    def close_session(self, bearer_token: str) -> None:
        context = self.resolve(bearer_token)
        with self._lock:
            self._sessions = {
                token: value
                for token, value in self._sessions.items()
                if not secrets.compare_digest(bearer_token, token)
            }
        logger.info("Session closed | user_id=%s", context.user_id)
