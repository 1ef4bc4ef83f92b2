"""Application submission and manager decisions."""

from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from backend.domain.errors import (
    AlreadyAppliedError,
    InvalidTransitionError,
    NoUnitsAvailableError,
    NotEligibleError,
    ProjectNotFoundError,
    RoleNotPermittedError,
    WithdrawalPendingError,
    WrongRequestTypeError,
)
from backend.domain.models import (
    Applicant,
    ApplicationStatus,
    ApprovedStatus,
    FlatType,
    Manager,
    MaritalStatus,
    Officer,
    Project,
    RegistrationStatus,
    RequestStatus,
    SessionContext,
    UserRole,
)
from backend.repository.data_repository import DataRepository
from backend.repository.entity_store import EntityStore
from backend.services.application_service import ApplicationService
from backend.services.withdrawal_service import WithdrawalService
from backend.utils.config import get_settings


TODAY = date(2025, 6, 15)
MANAGER = SessionContext("S5678901G", UserRole.MANAGER)


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(get_settings(), database_path=tmp_path / filename, seed_demo_data=False)


def _build_store(tmp_path, filename: str) -> EntityStore:
    repository = DataRepository(_build_test_settings(tmp_path, filename))
    repository.initialize_database()
    store = EntityStore(repository)
    store.load()
    store.managers["S5678901G"] = Manager(user_id="S5678901G", project_ids={"P0001", "P0002"})
    store.projects["P0001"] = Project(
        project_id="P0001",
        name="Acacia Breeze",
        neighborhoods={"Yishun"},
        units={FlatType.TWO_ROOM: 1, FlatType.THREE_ROOM: 0},
        prices={FlatType.TWO_ROOM: 350000, FlatType.THREE_ROOM: 450000},
        open_date=date(2025, 6, 1),
        close_date=date(2025, 7, 1),
        manager_id="S5678901G",
        officer_slots_remaining=2,
    )
    store.projects["P0002"] = Project(
        project_id="P0002",
        name="Banyan Grove",
        neighborhoods={"Tampines"},
        units={FlatType.TWO_ROOM: 5, FlatType.THREE_ROOM: 5},
        prices={FlatType.TWO_ROOM: 300000, FlatType.THREE_ROOM: 420000},
        open_date=date(2025, 6, 1),
        close_date=date(2025, 7, 1),
        manager_id="S5678901G",
        officer_slots_remaining=2,
    )
    for user_id, name, age, status in [
        ("S1234567A", "John", 40, MaritalStatus.SINGLE),
        ("T7654321B", "Sarah", 30, MaritalStatus.MARRIED),
        ("S3456789E", "Rachel", 25, MaritalStatus.SINGLE),
        ("T2109876H", "Daniel", 36, MaritalStatus.MARRIED),
    ]:
        store.applicants[user_id] = Applicant(user_id=user_id, name=name, age=age, marital_status=status)
    return store


def _service(store: EntityStore) -> ApplicationService:
    return ApplicationService(store, today=lambda: TODAY)


def test_scenario_single_applicant_submits_without_touching_inventory(tmp_path) -> None:
    store = _build_store(tmp_path, "submit.db")
    service = _service(store)
    john = SessionContext("S1234567A", UserRole.APPLICANT)

    application = service.submit(john, "P0001", FlatType.TWO_ROOM)

    applicant = store.applicant("S1234567A")
    assert application.approval is ApprovedStatus.PENDING
    assert application.overall_status is RequestStatus.PENDING
    assert applicant.active_project_id == "P0001"
    assert applicant.status_for("P0001") is ApplicationStatus.PENDING
    assert applicant.applied_flat_by_project["P0001"] is FlatType.TWO_ROOM
    assert store.project("P0001").units[FlatType.TWO_ROOM] == 1


def test_scenario_manager_approval_keeps_units(tmp_path) -> None:
    store = _build_store(tmp_path, "approve.db")
    service = _service(store)
    application = service.submit(SessionContext("S1234567A", UserRole.APPLICANT), "P0001", FlatType.TWO_ROOM)

    service.decide(MANAGER, application.request_id, ApprovedStatus.SUCCESSFUL)

    assert store.applicant("S1234567A").status_for("P0001") is ApplicationStatus.SUCCESSFUL
    assert application.approval is ApprovedStatus.SUCCESSFUL
    assert application.overall_status is RequestStatus.DONE
    assert store.project("P0001").units[FlatType.TWO_ROOM] == 1


def test_second_application_is_rejected_while_one_is_active(tmp_path) -> None:
    store = _build_store(tmp_path, "single_active.db")
    service = _service(store)
    john = SessionContext("S1234567A", UserRole.APPLICANT)
    service.submit(john, "P0001", FlatType.TWO_ROOM)

    with pytest.raises(AlreadyAppliedError):
        service.submit(john, "P0002", FlatType.TWO_ROOM)
    assert store.applicant("S1234567A").active_project_id == "P0001"
    assert len(store.requests) == 1


def test_single_applicant_cannot_request_three_room(tmp_path) -> None:
    store = _build_store(tmp_path, "not_eligible.db")
    service = _service(store)

    with pytest.raises(NotEligibleError):
        service.submit(SessionContext("S1234567A", UserRole.APPLICANT), "P0002", FlatType.THREE_ROOM)
    with pytest.raises(NotEligibleError):
        service.submit(SessionContext("S3456789E", UserRole.APPLICANT), "P0002", FlatType.TWO_ROOM)
    assert store.applicant("S1234567A").active_project_id is None
    assert not store.requests


def test_married_applicant_may_choose_smaller_flat(tmp_path) -> None:
    store = _build_store(tmp_path, "smaller_flat.db")
    service = _service(store)

    application = service.submit(SessionContext("T7654321B", UserRole.APPLICANT), "P0002", FlatType.TWO_ROOM)

    assert application.flat_type is FlatType.TWO_ROOM


def test_sold_out_flat_type_is_rejected(tmp_path) -> None:
    store = _build_store(tmp_path, "sold_out.db")
    service = _service(store)

    with pytest.raises(NoUnitsAvailableError):
        service.submit(SessionContext("T7654321B", UserRole.APPLICANT), "P0001", FlatType.THREE_ROOM)


def test_unknown_project_is_not_found(tmp_path) -> None:
    store = _build_store(tmp_path, "unknown.db")
    with pytest.raises(ProjectNotFoundError):
        _service(store).submit(SessionContext("S1234567A", UserRole.APPLICANT), "P9999", FlatType.TWO_ROOM)


def test_officer_registered_on_project_cannot_apply_to_it(tmp_path) -> None:
    store = _build_store(tmp_path, "officer_apply.db")
    store.officers["T2109876H"] = Officer(
        user_id="T2109876H",
        registration_status_by_project={"P0002": RegistrationStatus.PENDING},
    )
    service = _service(store)
    daniel = SessionContext("T2109876H", UserRole.OFFICER)

    with pytest.raises(NotEligibleError):
        service.submit(daniel, "P0002", FlatType.TWO_ROOM)

    application = service.submit(daniel, "P0001", FlatType.TWO_ROOM)
    assert application.user_id == "T2109876H"


def test_manager_cannot_submit_and_applicant_cannot_decide(tmp_path) -> None:
    store = _build_store(tmp_path, "roles.db")
    service = _service(store)
    john = SessionContext("S1234567A", UserRole.APPLICANT)

    with pytest.raises(RoleNotPermittedError):
        service.submit(MANAGER, "P0001", FlatType.TWO_ROOM)
    application = service.submit(john, "P0001", FlatType.TWO_ROOM)
    with pytest.raises(RoleNotPermittedError):
        service.decide(john, application.request_id, ApprovedStatus.SUCCESSFUL)


def test_rejection_frees_applicant_to_apply_elsewhere(tmp_path) -> None:
    store = _build_store(tmp_path, "reject.db")
    service = _service(store)
    john = SessionContext("S1234567A", UserRole.APPLICANT)
    application = service.submit(john, "P0001", FlatType.TWO_ROOM)

    service.decide(MANAGER, application.request_id, ApprovedStatus.UNSUCCESSFUL)

    applicant = store.applicant("S1234567A")
    assert applicant.active_project_id is None
    assert applicant.status_for("P0001") is ApplicationStatus.UNSUCCESSFUL
    assert "P0001" not in applicant.applied_flat_by_project
    assert service.submit(john, "P0002", FlatType.TWO_ROOM).project_id == "P0002"


def test_repeating_a_decision_is_a_no_op(tmp_path) -> None:
    store = _build_store(tmp_path, "idempotent.db")
    service = _service(store)
    application = service.submit(SessionContext("S1234567A", UserRole.APPLICANT), "P0001", FlatType.TWO_ROOM)

    service.decide(MANAGER, application.request_id, ApprovedStatus.SUCCESSFUL)
    service.decide(MANAGER, application.request_id, ApprovedStatus.SUCCESSFUL)

    assert store.applicant("S1234567A").status_for("P0001") is ApplicationStatus.SUCCESSFUL


def test_rejected_application_cannot_be_reopened(tmp_path) -> None:
    store = _build_store(tmp_path, "terminal.db")
    service = _service(store)
    application = service.submit(SessionContext("S1234567A", UserRole.APPLICANT), "P0001", FlatType.TWO_ROOM)
    service.decide(MANAGER, application.request_id, ApprovedStatus.UNSUCCESSFUL)

    with pytest.raises(InvalidTransitionError):
        service.decide(MANAGER, application.request_id, ApprovedStatus.SUCCESSFUL)
    assert store.applicant("S1234567A").status_for("P0001") is ApplicationStatus.UNSUCCESSFUL


def test_booked_application_cannot_be_rejected_directly(tmp_path) -> None:
    store = _build_store(tmp_path, "booked_reject.db")
    service = _service(store)
    application = service.submit(SessionContext("S1234567A", UserRole.APPLICANT), "P0001", FlatType.TWO_ROOM)
    service.decide(MANAGER, application.request_id, ApprovedStatus.SUCCESSFUL)
    store.applicant("S1234567A").application_status_by_project["P0001"] = ApplicationStatus.BOOKED

    with pytest.raises(InvalidTransitionError):
        service.decide(MANAGER, application.request_id, ApprovedStatus.UNSUCCESSFUL)


def test_pending_decision_reopens_an_approved_application(tmp_path) -> None:
    store = _build_store(tmp_path, "reopen.db")
    service = _service(store)
    application = service.submit(SessionContext("S1234567A", UserRole.APPLICANT), "P0001", FlatType.TWO_ROOM)
    service.decide(MANAGER, application.request_id, ApprovedStatus.SUCCESSFUL)

    service.decide(MANAGER, application.request_id, ApprovedStatus.PENDING)

    assert application.overall_status is RequestStatus.PENDING
    assert store.applicant("S1234567A").status_for("P0001") is ApplicationStatus.PENDING


def test_decide_rejects_other_request_types(tmp_path) -> None:
    store = _build_store(tmp_path, "wrong_type.db")
    service = _service(store)
    john = SessionContext("S1234567A", UserRole.APPLICANT)
    service.submit(john, "P0001", FlatType.TWO_ROOM)
    withdrawal = WithdrawalService(store, service).withdraw(john, "P0001")

    with pytest.raises(WrongRequestTypeError):
        service.decide(MANAGER, withdrawal.request_id, ApprovedStatus.SUCCESSFUL)


def test_reapplying_while_withdrawal_pending_is_a_conflict(tmp_path) -> None:
    store = _build_store(tmp_path, "withdraw_pending.db")
    service = _service(store)
    john = SessionContext("S1234567A", UserRole.APPLICANT)
    service.submit(john, "P0001", FlatType.TWO_ROOM)
    WithdrawalService(store, service).withdraw(john, "P0001")

    with pytest.raises(WithdrawalPendingError):
        service.submit(john, "P0001", FlatType.TWO_ROOM)


def test_listings_show_only_eligible_projects(tmp_path) -> None:
    store = _build_store(tmp_path, "listing.db")
    service = _service(store)

    rows = service.list_applicable_projects(SessionContext("S1234567A", UserRole.APPLICANT))
    assert [(project.project_id, flat) for project, flat in rows] == [
        ("P0001", FlatType.TWO_ROOM),
        ("P0002", FlatType.TWO_ROOM),
    ]
    assert service.list_applicable_projects(SessionContext("S3456789E", UserRole.APPLICANT)) == []


def test_committed_submission_is_persisted(tmp_path) -> None:
    store = _build_store(tmp_path, "persisted.db")
    _service(store).submit(SessionContext("S1234567A", UserRole.APPLICANT), "P0001", FlatType.TWO_ROOM)

    reloaded = EntityStore(store.repository)
    reloaded.load()

    assert reloaded.applicant("S1234567A").active_project_id == "P0001"
    assert [request.request_id for request in reloaded.requests.values()] == ["R0001"]


def test_rejected_withdrawal_keeps_the_original_application_in_force(tmp_path) -> None:
    store = _build_store(tmp_path, "withdraw_rejected.db")
    service = _service(store)
    withdrawals = WithdrawalService(store, service)
    john = SessionContext("S1234567A", UserRole.APPLICANT)
    original = service.submit(john, "P0001", FlatType.TWO_ROOM)
    withdrawal = withdrawals.withdraw(john, "P0001")
    withdrawals.approve_withdrawal(MANAGER, withdrawal.request_id, ApprovedStatus.UNSUCCESSFUL)

    with pytest.raises(AlreadyAppliedError):
        service.submit(john, "P0001", FlatType.TWO_ROOM)

    assert [request.request_id for request in store.requests.values()] == [
        original.request_id,
        withdrawal.request_id,
    ]
    assert original.approval is ApprovedStatus.PENDING
    assert service.submit(john, "P0002", FlatType.TWO_ROOM).project_id == "P0002"
