from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from backend.domain.errors import (
    EmptyTextError,
    EnquiryLockedError,
    NotRequestOwnerError,
    OfficerNotAssignedError,
    ProjectNotVisibleError,
    RoleNotPermittedError,
    WrongRequestTypeError,
)
from backend.domain.models import (
    Applicant,
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
from backend.services.enquiry_service import EnquiryService
from backend.utils.config import get_settings


TODAY = date(2025, 6, 15)
MICHAEL = SessionContext("S5678901G", UserRole.MANAGER)
JESSICA = SessionContext("S8765432F", UserRole.MANAGER)
DANIEL = SessionContext("T2109876H", UserRole.OFFICER)
EMILY = SessionContext("S6543210I", UserRole.OFFICER)
JOHN = SessionContext("S1234567A", UserRole.APPLICANT)
GRACE = SessionContext("S9876543C", UserRole.APPLICANT)


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(get_settings(), database_path=tmp_path / filename, seed_demo_data=False)


def _build_store(tmp_path, filename: str) -> EntityStore:
    repository = DataRepository(_build_test_settings(tmp_path, filename))
    repository.initialize_database()
    store = EntityStore(repository)
    for project_id, name, manager_id in [
        ("P0001", "Acacia Breeze", "S5678901G"),
        ("P0002", "Banyan Grove", "S8765432F"),
    ]:
        store.projects[project_id] = Project(
            project_id=project_id,
            name=name,
            neighborhoods={"Yishun"},
            units={FlatType.TWO_ROOM: 1},
            prices={FlatType.TWO_ROOM: 350000},
            open_date=date(2025, 6, 1),
            close_date=date(2025, 7, 1),
            manager_id=manager_id,
            officer_slots_remaining=1,
        )
    store.project("P0001").assigned_officer_ids.add("T2109876H")
    store.managers["S5678901G"] = Manager(user_id="S5678901G", project_ids={"P0001"})
    store.managers["S8765432F"] = Manager(user_id="S8765432F", project_ids={"P0002"})
    for user_id, name in [
        ("S1234567A", "John"),
        ("S9876543C", "Grace"),
        ("T2109876H", "Daniel"),
        ("S6543210I", "Emily"),
    ]:
        store.applicants[user_id] = Applicant(
            user_id=user_id, name=name, age=40, marital_status=MaritalStatus.SINGLE
        )
    store.officers["T2109876H"] = Officer(
        user_id="T2109876H",
        registered_project_ids={"P0001"},
        registration_status_by_project={"P0001": RegistrationStatus.APPROVED},
    )
    store.officers["S6543210I"] = Officer(user_id="S6543210I")
    return store


def test_submit_strips_text_and_records_pending_enquiry(tmp_path) -> None:
    store = _build_store(tmp_path, "submit.db")

    enquiry = EnquiryService(store).submit(JOHN, "P0001", "  Is there a carpark?  ")

    assert enquiry.request_id == "R0001"
    assert enquiry.query == "Is there a carpark?"
    assert enquiry.overall_status is RequestStatus.PENDING
    assert enquiry.answer is None
    assert store.request("R0001") is enquiry


def test_submit_rejects_blank_text_and_hidden_projects(tmp_path) -> None:
    store = _build_store(tmp_path, "submit_invalid.db")
    service = EnquiryService(store)
    store.project("P0002").visible = False

    with pytest.raises(EmptyTextError):
        service.submit(JOHN, "P0001", "   ")
    with pytest.raises(ProjectNotVisibleError):
        service.submit(JOHN, "P0002", "Hello?")
    with pytest.raises(RoleNotPermittedError):
        service.submit(MICHAEL, "P0001", "Hello?")
    assert store.requests == {}


def test_owner_edits_and_deletes_open_enquiry(tmp_path) -> None:
    store = _build_store(tmp_path, "edit.db")
    service = EnquiryService(store)
    enquiry = service.submit(JOHN, "P0001", "First question")

    assert service.edit(JOHN, enquiry.request_id, "Second question").query == "Second question"
    with pytest.raises(NotRequestOwnerError):
        service.edit(GRACE, enquiry.request_id, "Not mine")
    with pytest.raises(NotRequestOwnerError):
        service.delete(GRACE, enquiry.request_id)

    service.delete(JOHN, enquiry.request_id)
    assert service.list_own(JOHN) == []


def test_answer_is_given_once_and_locks_the_enquiry(tmp_path) -> None:
    store = _build_store(tmp_path, "answer.db")
    service = EnquiryService(store)
    enquiry = service.submit(JOHN, "P0001", "Is there a carpark?")

    answered = service.answer(DANIEL, enquiry.request_id, "Yes, multi-storey.")

    assert answered.answer == "Yes, multi-storey."
    assert answered.answered_by == "T2109876H"
    assert answered.overall_status is RequestStatus.DONE
    with pytest.raises(EnquiryLockedError):
        service.answer(MICHAEL, enquiry.request_id, "Again")
    with pytest.raises(EnquiryLockedError):
        service.edit(JOHN, enquiry.request_id, "Changed my mind")
    with pytest.raises(EnquiryLockedError):
        service.delete(JOHN, enquiry.request_id)


def test_only_servicing_officers_see_or_answer_project_enquiries(tmp_path) -> None:
    store = _build_store(tmp_path, "servicing.db")
    service = EnquiryService(store)
    enquiry = service.submit(GRACE, "P0001", "When is key collection?")

    with pytest.raises(OfficerNotAssignedError):
        service.answer(EMILY, enquiry.request_id, "Soon")
    with pytest.raises(OfficerNotAssignedError):
        service.list_for_project(EMILY, "P0001")
    with pytest.raises(RoleNotPermittedError):
        service.list_for_project(JOHN, "P0001")

    assert [item.request_id for item in service.list_for_project(DANIEL, "P0001")] == [
        enquiry.request_id
    ]


def test_managers_answer_any_enquiry_and_list_their_projects(tmp_path) -> None:
    store = _build_store(tmp_path, "managers.db")
    service = EnquiryService(store)
    first = service.submit(JOHN, "P0001", "Question on Acacia")
    second = service.submit(EMILY, "P0002", "Question on Banyan")

    assert [item.request_id for item in service.list_for_managed_projects(MICHAEL)] == [
        first.request_id
    ]
    assert [item.request_id for item in service.list_for_managed_projects(JESSICA)] == [
        second.request_id
    ]

    answered = service.answer(MICHAEL, second.request_id, "Answer from another manager")
    assert answered.answered_by == "S5678901G"


def test_enquiry_ids_are_not_accepted_as_other_request_types(tmp_path) -> None:
    store = _build_store(tmp_path, "types.db")
    enquiry = EnquiryService(store).submit(JOHN, "P0001", "Question")
    application = ApplicationService(store, today=lambda: TODAY).submit(
        GRACE, "P0001", FlatType.TWO_ROOM
    )

    with pytest.raises(WrongRequestTypeError):
        EnquiryService(store).answer(DANIEL, application.request_id, "Not an enquiry")
    with pytest.raises(WrongRequestTypeError):
        ApplicationService(store, today=lambda: TODAY).decide(
            MICHAEL, enquiry.request_id, ApprovedStatus.SUCCESSFUL
        )


def test_enquiries_survive_reload(tmp_path) -> None:
    store = _build_store(tmp_path, "reload.db")
    service = EnquiryService(store)
    enquiry = service.submit(JOHN, "P0001", "Question")
    service.answer(DANIEL, enquiry.request_id, "Answer")

    reloaded = EntityStore(store.repository)
    reloaded.load()
    stored = reloaded.request(enquiry.request_id)
    assert stored.query == "Question"
    assert stored.answer == "Answer"
    assert stored.answered_by == "T2109876H"
    assert stored.overall_status is RequestStatus.DONE
