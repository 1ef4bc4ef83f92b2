"""In-memory entity graph shared by the workflow services."""

from __future__ import annotations

from contextlib import contextmanager
from threading import RLock
from typing import Iterator, Optional, TypeVar

from backend.domain.errors import (
    ApplicantNotFoundError,
    ManagerNotFoundError,
    OfficerNotFoundError,
    ProjectNotFoundError,
    RequestNotFoundError,
    WrongRequestTypeError,
)
from backend.domain.models import (
    Applicant,
    Manager,
    Officer,
    Project,
    Request,
    RequestType,
    UserRole,
)
from backend.repository.data_repository import DataRepository, EntityKind
from backend.utils.logger import get_logger


logger = get_logger(__name__)

RequestT = TypeVar("RequestT", bound=Request)


class EntityStore:
    """Holds every collection in memory and writes touched kinds back on commit.

    Workflow services run each operation inside ``transaction``. All checks
    happen before the first mutation, so a raised error leaves both memory
    and storage untouched.
    """

    def __init__(self, repository: DataRepository) -> None:
        self._repository = repository
        self._lock = RLock()
        self.projects: dict[str, Project] = {}
        self.applicants: dict[str, Applicant] = {}
        self.officers: dict[str, Officer] = {}
        self.managers: dict[str, Manager] = {}
        self.requests: dict[str, Request] = {}

    @property
    def repository(self) -> DataRepository:
        return self._repository

    def load(self) -> None:
        with self._lock:
            self.projects = {
                project.project_id: project
                for project in self._repository.load_all(EntityKind.PROJECT)
            }
            self.applicants = {
                applicant.user_id: applicant
                for applicant in self._repository.load_all(EntityKind.APPLICANT)
            }
            self.officers = {
                officer.user_id: officer
                for officer in self._repository.load_all(EntityKind.OFFICER)
            }
            self.managers = {
                manager.user_id: manager
                for manager in self._repository.load_all(EntityKind.MANAGER)
            }
            self.requests = {
                request.request_id: request
                for request in self._repository.load_all(EntityKind.REQUEST)
            }
        logger.info(
            "Entity store loaded | projects=%s | applicants=%s | officers=%s | managers=%s | requests=%s",
            len(self.projects),
            len(self.applicants),
            len(self.officers),
            len(self.managers),
            len(self.requests),
        )

    @contextmanager
    def transaction(self, *kinds: EntityKind) -> Iterator["EntityStore"]:
        """Hold the store lock for one workflow operation, then persist ``kinds``."""
        with self._lock:
            yield self
            for kind in kinds:
                self._repository.save_all(kind, self._collection(kind))

    @contextmanager
    def reading(self) -> Iterator["EntityStore"]:
        with self._lock:
            yield self

    def _collection(self, kind: EntityKind) -> list:
        collections = {
            EntityKind.PROJECT: self.projects,
            EntityKind.APPLICANT: self.applicants,
            EntityKind.OFFICER: self.officers,
            EntityKind.MANAGER: self.managers,
            EntityKind.REQUEST: self.requests,
        }
        return list(collections[kind].values())

    # --- Lookups ---

    def project(self, project_id: str) -> Project:
        project = self.projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(f"Project {project_id} not found")
        return project

    def applicant(self, user_id: str) -> Applicant:
        applicant = self.applicants.get(user_id)
        if applicant is None:
            raise ApplicantNotFoundError(f"User {user_id} has no applicant profile")
        return applicant

    def officer(self, user_id: str) -> Officer:
        officer = self.officers.get(user_id)
        if officer is None:
            raise OfficerNotFoundError(f"User {user_id} is not an officer")
        return officer

    def manager(self, user_id: str) -> Manager:
        manager = self.managers.get(user_id)
        if manager is None:
            raise ManagerNotFoundError(f"User {user_id} is not a manager")
        return manager

    def request(self, request_id: str) -> Request:
        request = self.requests.get(request_id)
        if request is None:
            raise RequestNotFoundError(f"Request {request_id} not found")
        return request

    def typed_request(self, request_id: str, request_class: type[RequestT]) -> RequestT:
        request = self.request(request_id)
        if not isinstance(request, request_class):
            raise WrongRequestTypeError(
                f"Request {request_id} is a {request.request_type.value} request"
            )
        return request

    def role_of(self, user_id: str) -> Optional[UserRole]:
        if user_id in self.managers:
            return UserRole.MANAGER
        if user_id in self.officers:
            return UserRole.OFFICER
        if user_id in self.applicants:
            return UserRole.APPLICANT
        return None

    def find_requests(
        self,
        *,
        user_id: Optional[str] = None,
        project_id: Optional[str] = None,
        request_type: Optional[RequestType] = None,
        pending_only: bool = False,
    ) -> list[Request]:
        return [
            request
            for request in self.requests.values()
            if (user_id is None or request.user_id == user_id)
            and (project_id is None or request.project_id == project_id)
            and (request_type is None or request.request_type is request_type)
            and (not pending_only or request.is_pending)
        ]

    # --- Identity ---

    def next_project_id(self) -> str:
        return self._repository.next_project_id()

    def next_request_id(self) -> str:
        return self._repository.next_request_id()
