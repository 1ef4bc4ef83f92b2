#!/usr/bin/env python3
"""Validate local BTO workflow environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import timedelta
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.domain.models import ApplicationStatus, ApprovedStatus, FlatType, SessionContext, UserRole
from backend.repository.data_repository import DataRepository, EntityKind
from backend.repository.entity_store import EntityStore
from backend.services.application_service import ApplicationService
from backend.services.booking_service import BookingService
from backend.services.withdrawal_service import WithdrawalService
from backend.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="bto-env-")

    # CHECK 1: Python version >= 3.11
    if sys.version_info >= (3, 11):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.11",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_specs = ["fastapi", "uvicorn", "pydantic", "pandas", "httpx", "pytest"]
    import_errors: list[str] = []
    for module_name in package_specs:
        try:
            importlib.import_module(module_name)
        except ImportError as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "bto_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 3: Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Demo seed
        try:
            repository.seed_demo_data_if_empty()
            applicants = repository.count(EntityKind.APPLICANT)
            projects = repository.count(EntityKind.PROJECT)
            if applicants == 0 or projects == 0:
                raise RuntimeError(f"expected seeded rows, got applicants={applicants} projects={projects}")
            ok, line = _print_result(
                "Demo seed",
                True,
                f": {applicants} users, {projects} project(s)",
            )
        except Exception as exc:
            ok, line = _print_result("Demo seed", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5: Apply, approve, book, withdraw on the seeded project
        try:
            store = EntityStore(repository)
            store.load()
            project = next(iter(store.projects.values()))
            officer_id = next(iter(project.assigned_officer_ids))
            today = project.open_date + timedelta(days=1)

            applications = ApplicationService(store, validation_settings, today=lambda: today)
            bookings = BookingService(store, validation_settings)
            withdrawals = WithdrawalService(store, applications, validation_settings)

            applicant = SessionContext("T7654321B", UserRole.APPLICANT)
            manager = SessionContext(project.manager_id, UserRole.MANAGER)
            officer = SessionContext(officer_id, UserRole.OFFICER)

            before = project.units[FlatType.THREE_ROOM]
            application = applications.submit(applicant, project.project_id, FlatType.THREE_ROOM)
            applications.decide(manager, application.request_id, ApprovedStatus.SUCCESSFUL)
            bookings.book(officer, applicant.user_id)
            booked = project.units[FlatType.THREE_ROOM]
            withdrawal = withdrawals.withdraw(applicant, project.project_id)
            withdrawals.approve_withdrawal(manager, withdrawal.request_id, ApprovedStatus.SUCCESSFUL)

            status = store.applicant(applicant.user_id).status_for(project.project_id)
            if booked != before - 1 or project.units[FlatType.THREE_ROOM] != before:
                raise RuntimeError("unit count was not conserved across book and withdraw")
            if status is not ApplicationStatus.UNSUCCESSFUL:
                raise RuntimeError(f"unexpected final status {status}")
            ok, line = _print_result("Workflow round trip", True, f": units {before}->{booked}->{before}")
        except Exception as exc:
            ok, line = _print_result("Workflow round trip", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" BTO Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
