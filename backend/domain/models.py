"""Domain models for projects, applicants, officers, managers and requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import ClassVar, Optional


class FlatType(str, Enum):
    TWO_ROOM = "TWO_ROOM"
    THREE_ROOM = "THREE_ROOM"

    @property
    def rank(self) -> int:
        return _FLAT_RANKS[self]


_FLAT_RANKS = {FlatType.TWO_ROOM: 2, FlatType.THREE_ROOM: 3}


class MaritalStatus(str, Enum):
    SINGLE = "SINGLE"
    MARRIED = "MARRIED"


class UserRole(str, Enum):
    APPLICANT = "APPLICANT"
    OFFICER = "OFFICER"
    MANAGER = "MANAGER"


class ApplicationStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESSFUL = "SUCCESSFUL"
    UNSUCCESSFUL = "UNSUCCESSFUL"
    BOOKED = "BOOKED"
    WITHDRAWN = "WITHDRAWN"


class RegistrationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    # Approved while the project had no officer slot left; not assigned.
    APPROVED_UNASSIGNED = "APPROVED_UNASSIGNED"
    REJECTED = "REJECTED"

    @property
    def is_active(self) -> bool:
        return self is not RegistrationStatus.REJECTED


class ApprovedStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESSFUL = "SUCCESSFUL"
    UNSUCCESSFUL = "UNSUCCESSFUL"


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    DONE = "DONE"


class RequestType(str, Enum):
    BTO_APPLICATION = "BTO_APPLICATION"
    BTO_WITHDRAWAL = "BTO_WITHDRAWAL"
    REGISTRATION = "REGISTRATION"
    ENQUIRY = "ENQUIRY"


class SortKey(str, Enum):
    NAME = "NAME"
    PRICE = "PRICE"
    DATE = "DATE"


@dataclass(frozen=True)
class SessionContext:
    """Identity of the caller, passed explicitly into every workflow call."""

    user_id: str
    role: UserRole


@dataclass
class Project:
    project_id: str
    name: str
    neighborhoods: set[str]
    units: dict[FlatType, int]
    prices: dict[FlatType, int]
    open_date: date
    close_date: date
    manager_id: str
    officer_slots_remaining: int
    assigned_officer_ids: set[str] = field(default_factory=set)
    booked_applicant_ids: set[str] = field(default_factory=set)
    visible: bool = True


@dataclass
class Applicant:
    """Person profile; officers and managers reference one by user_id."""

    user_id: str
    name: str
    age: int
    marital_status: MaritalStatus
    active_project_id: Optional[str] = None
    application_status_by_project: dict[str, ApplicationStatus] = field(default_factory=dict)
    applied_flat_by_project: dict[str, FlatType] = field(default_factory=dict)

    def status_for(self, project_id: str) -> Optional[ApplicationStatus]:
        return self.application_status_by_project.get(project_id)


@dataclass
class Officer:
    user_id: str
    registered_project_ids: set[str] = field(default_factory=set)
    registration_status_by_project: dict[str, RegistrationStatus] = field(default_factory=dict)

    def active_registration_ids(self) -> set[str]:
        return {
            project_id
            for project_id, status in self.registration_status_by_project.items()
            if status.is_active
        }


@dataclass
class Manager:
    user_id: str
    project_ids: set[str] = field(default_factory=set)


@dataclass(kw_only=True)
class Request:
    request_type: ClassVar[RequestType]

    request_id: str
    user_id: str
    project_id: str
    overall_status: RequestStatus = RequestStatus.PENDING

    @property
    def is_pending(self) -> bool:
        return self.overall_status is RequestStatus.PENDING


@dataclass(kw_only=True)
class DecisionRequest(Request):
    """Request that carries a manager approval decision."""

    approval: ApprovedStatus = ApprovedStatus.PENDING


@dataclass(kw_only=True)
class BTOApplication(DecisionRequest):
    request_type: ClassVar[RequestType] = RequestType.BTO_APPLICATION

    flat_type: FlatType


@dataclass(kw_only=True)
class BTOWithdrawal(DecisionRequest):
    request_type: ClassVar[RequestType] = RequestType.BTO_WITHDRAWAL

    application_request_id: Optional[str] = None
    status_at_submission: Optional[ApplicationStatus] = None


@dataclass(kw_only=True)
class OfficerRegistration(DecisionRequest):
    request_type: ClassVar[RequestType] = RequestType.REGISTRATION


@dataclass(kw_only=True)
class Enquiry(Request):
    request_type: ClassVar[RequestType] = RequestType.ENQUIRY

    query: str
    answer: Optional[str] = None
    answered_by: Optional[str] = None


@dataclass(frozen=True)
class FilterCriteria:
    locations: tuple[str, ...] = ()
    price_min: Optional[int] = None
    price_max: Optional[int] = None
    flat_type: Optional[FlatType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    sort_key: SortKey = SortKey.NAME
    include_sold_out: bool = False


@dataclass(frozen=True)
class ProjectDraft:
    """Parameters for creating a project or replacing its editable fields."""

    name: str
    neighborhoods: frozenset[str]
    units: dict[FlatType, int]
    prices: dict[FlatType, int]
    open_date: date
    close_date: date
    officer_slots: int
    visible: bool = True


@dataclass(frozen=True)
class BookingReceipt:
    applicant_id: str
    applicant_name: str
    age: int
    marital_status: MaritalStatus
    project_id: str
    project_name: str
    neighborhoods: tuple[str, ...]
    flat_type: FlatType
    price: Optional[int]
