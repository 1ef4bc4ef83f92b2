"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repository, the entity store and every workflow service,
registers the role routers, and loads the entity graph on startup.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date
from typing import Callable, Optional

from fastapi import FastAPI

from backend.controllers.applicant_controller import router as applicant_router
from backend.controllers.enquiry_controller import router as enquiry_router
from backend.controllers.manager_controller import router as manager_router
from backend.controllers.officer_controller import router as officer_router
from backend.controllers.session_controller import router as session_router
from backend.repository.data_repository import DataRepository
from backend.repository.entity_store import EntityStore
from backend.services.application_service import ApplicationService
from backend.services.approval_service import ApprovalService
from backend.services.booking_service import BookingService
from backend.services.enquiry_service import EnquiryService
from backend.services.project_service import ProjectService
from backend.services.registration_service import RegistrationService
from backend.services.report_service import ReportService
from backend.services.session_service import SessionService
from backend.services.withdrawal_service import WithdrawalService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    today: Optional[Callable[[], date]] = None,
) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Instantiates all services with explicit dependency injection via app.state.
    No global singletons; every dependency is traceable from this function.
    ``today`` overrides the clock used for application-window checks.
    """
    settings = settings or get_settings()

    # --- Persistence and the in-memory entity graph ---
    repository = DataRepository(settings)
    store = EntityStore(repository)

    # --- Workflow services ---
    application_service = ApplicationService(store, settings=settings, today=today)
    withdrawal_service = WithdrawalService(store, application_service, settings=settings)
    registration_service = RegistrationService(store, settings=settings)
    approval_service = ApprovalService(
        store,
        application_service=application_service,
        withdrawal_service=withdrawal_service,
        registration_service=registration_service,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(session_router)
    app.include_router(applicant_router)
    app.include_router(officer_router)
    app.include_router(manager_router)
    app.include_router(enquiry_router)

    # --- Inject services into app.state for dependency resolution ---
    app.state.settings = settings
    app.state.repository = repository
    app.state.store = store
    app.state.session_service = SessionService(store, settings=settings)
    app.state.application_service = application_service
    app.state.withdrawal_service = withdrawal_service
    app.state.booking_service = BookingService(store, settings=settings)
    app.state.registration_service = registration_service
    app.state.project_service = ProjectService(store, settings=settings)
    app.state.enquiry_service = EnquiryService(store, settings=settings)
    app.state.approval_service = approval_service
    app.state.report_service = ReportService(store)

    return app


def _startup(app: FastAPI) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Order matters:
      1. Schema must exist before seeding.
      2. Demo data is seeded only into an empty database.
      3. The entity graph is loaded last so it sees the seeded rows.
    """
    settings: Settings = app.state.settings
    repository: DataRepository = app.state.repository
    store: EntityStore = app.state.store

    logger.info("Startup: initializing database schema | path=%s", repository.database_path)
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo data (skipped if users exist)")
        repository.seed_demo_data_if_empty()

    logger.info("Startup: loading entity graph")
    store.load()

    logger.info("Startup complete; system ready")


# Module-level app object for uvicorn
app = create_app()
