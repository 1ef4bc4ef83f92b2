"""Project creation, editing, visibility and the delete cascade."""

from __future__ import annotations

from typing import Optional

from backend.domain.constraints import validate_project_draft, windows_overlap
from backend.domain.errors import (
    DuplicateProjectNameError,
    ManagerOverlapError,
    ProjectOwnershipError,
    ProjectValidationError,
)
from backend.domain.filters import apply_filters
from backend.domain.models import (
    ApplicationStatus,
    FilterCriteria,
    Manager,
    Project,
    ProjectDraft,
    RegistrationStatus,
    SessionContext,
    UserRole,
)
from backend.repository.data_repository import EntityKind
from backend.repository.entity_store import EntityStore
from backend.services.session_service import require_role
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

_ALL_PROJECTS = FilterCriteria(include_sold_out=True)


def _ensure_owner(manager: Manager, project: Project) -> None:
    if project.manager_id != manager.user_id:
        raise ProjectOwnershipError(
            f"Project {project.project_id} is managed by {project.manager_id}"
        )


class ProjectService:
    """Manager-side project lifecycle.

    ``delete`` visits projects, managers, requests, applicants and officers in
    one transaction so no record is left pointing at a removed project.
    """

    def __init__(self, store: EntityStore, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._store = store

    def _check_draft(
        self,
        manager: Manager,
        draft: ProjectDraft,
        exclude_project_id: Optional[str] = None,
    ) -> None:
        validate_project_draft(draft, self._settings.max_officer_slots)
        name = draft.name.strip()
        for project in self._store.projects.values():
            if project.project_id == exclude_project_id:
                continue
            if project.name == name:
                raise DuplicateProjectNameError(f"A project named '{name}' already exists")
            if project.manager_id == manager.user_id and windows_overlap(
                project.open_date,
                project.close_date,
                draft.open_date,
                draft.close_date,
            ):
                raise ManagerOverlapError(
                    f"Dates overlap managed project {project.project_id}"
                )

    def create(self, context: SessionContext, draft: ProjectDraft) -> Project:
        require_role(context, UserRole.MANAGER)
        with self._store.transaction(EntityKind.PROJECT, EntityKind.MANAGER) as store:
            manager = store.manager(context.user_id)
            self._check_draft(manager, draft)

            project = Project(
                project_id=store.next_project_id(),
                name=draft.name.strip(),
                neighborhoods=set(draft.neighborhoods),
                units=dict(draft.units),
                prices=dict(draft.prices),
                open_date=draft.open_date,
                close_date=draft.close_date,
                manager_id=manager.user_id,
                officer_slots_remaining=draft.officer_slots,
                visible=draft.visible,
            )
            store.projects[project.project_id] = project
            manager.project_ids.add(project.project_id)

        logger.info(
            "Project created | project_id=%s | name=%s | manager_id=%s | open=%s | close=%s",
            project.project_id,
            project.name,
            manager.user_id,
            project.open_date.isoformat(),
            project.close_date.isoformat(),
        )
        return project

    def edit(self, context: SessionContext, project_id: str, draft: ProjectDraft) -> Project:
        """Replace the editable fields; id and manager never change.

        ``draft.officer_slots`` is the total; officers already assigned keep
        their slots.
        """
        require_role(context, UserRole.MANAGER)
        with self._store.transaction(EntityKind.PROJECT) as store:
            manager = store.manager(context.user_id)
            project = store.project(project_id)
            _ensure_owner(manager, project)
            self._check_draft(manager, draft, exclude_project_id=project_id)
            assigned = len(project.assigned_officer_ids)
            if draft.officer_slots < assigned:
                raise ProjectValidationError(
                    f"officer_slots must cover the {assigned} assigned officers"
                )

            project.name = draft.name.strip()
            project.neighborhoods = set(draft.neighborhoods)
            project.units = dict(draft.units)
            project.prices = dict(draft.prices)
            project.open_date = draft.open_date
            project.close_date = draft.close_date
            project.officer_slots_remaining = draft.officer_slots - assigned
            project.visible = draft.visible

        logger.info("Project edited | project_id=%s | manager_id=%s", project_id, manager.user_id)
        return project

    def toggle_visibility(self, context: SessionContext, project_id: str) -> Project:
        require_role(context, UserRole.MANAGER)
        with self._store.transaction(EntityKind.PROJECT) as store:
            project = store.project(project_id)
            _ensure_owner(store.manager(context.user_id), project)
            project.visible = not project.visible

        logger.info(
            "Project visibility toggled | project_id=%s | visible=%s",
            project_id,
            project.visible,
        )
        return project

    def delete(self, context: SessionContext, project_id: str) -> None:
        require_role(context, UserRole.MANAGER)
        with self._store.transaction(
            EntityKind.PROJECT,
            EntityKind.MANAGER,
            EntityKind.REQUEST,
            EntityKind.APPLICANT,
            EntityKind.OFFICER,
        ) as store:
            project = store.project(project_id)
            _ensure_owner(store.manager(context.user_id), project)

            del store.projects[project_id]

            owner = store.managers.get(project.manager_id)
            if owner is not None:
                owner.project_ids.discard(project_id)

            doomed = [
                request_id
                for request_id, request in store.requests.items()
                if request.project_id == project_id
            ]
            for request_id in doomed:
                del store.requests[request_id]

            unlinked_applicants = 0
            for applicant in store.applicants.values():
                if applicant.active_project_id != project_id:
                    continue
                applicant.active_project_id = None
                applicant.application_status_by_project[project_id] = ApplicationStatus.UNSUCCESSFUL
                applicant.applied_flat_by_project.pop(project_id, None)
                unlinked_applicants += 1

            rejected_officers = 0
            for officer in store.officers.values():
                status = officer.registration_status_by_project.get(project_id)
                registered = project_id in officer.registered_project_ids
                if not registered and (status is None or not status.is_active):
                    continue
                officer.registered_project_ids.discard(project_id)
                officer.registration_status_by_project[project_id] = RegistrationStatus.REJECTED
                rejected_officers += 1

        logger.info(
            "Project deleted | project_id=%s | requests_removed=%s | applicants_unlinked=%s | officers_rejected=%s",
            project_id,
            len(doomed),
            unlinked_applicants,
            rejected_officers,
        )

    def list_projects(
        self,
        context: SessionContext,
        criteria: Optional[FilterCriteria] = None,
    ) -> list[Project]:
        require_role(context, UserRole.MANAGER)
        with self._store.reading() as store:
            return apply_filters(list(store.projects.values()), criteria or _ALL_PROJECTS)

    def list_managed_projects(
        self,
        context: SessionContext,
        criteria: Optional[FilterCriteria] = None,
    ) -> list[Project]:
        require_role(context, UserRole.MANAGER)
        with self._store.reading() as store:
            manager = store.manager(context.user_id)
            projects = [
                store.projects[project_id]
                for project_id in manager.project_ids
                if project_id in store.projects
            ]
            return apply_filters(projects, criteria or _ALL_PROJECTS)
