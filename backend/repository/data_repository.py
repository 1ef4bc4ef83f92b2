"""Repository layer responsible for all database access."""

from __future__ import annotations

import json
import sqlite3
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from backend.domain.models import (
    Applicant,
    ApplicationStatus,
    ApprovedStatus,
    BTOApplication,
    BTOWithdrawal,
    Enquiry,
    FlatType,
    Manager,
    MaritalStatus,
    Officer,
    OfficerRegistration,
    Project,
    RegistrationStatus,
    Request,
    RequestStatus,
    RequestType,
)
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class PersistenceError(RuntimeError):
    """Raised when the SQLite store cannot be read or written."""


class EntityKind(str, Enum):
    PROJECT = "PROJECT"
    APPLICANT = "APPLICANT"
    OFFICER = "OFFICER"
    MANAGER = "MANAGER"
    REQUEST = "REQUEST"


_TABLES = {
    EntityKind.PROJECT: "Projects",
    EntityKind.APPLICANT: "Applicants",
    EntityKind.OFFICER: "Officers",
    EntityKind.MANAGER: "Managers",
    EntityKind.REQUEST: "Requests",
}

_PROJECT_SEQUENCE = "project"
_REQUEST_SEQUENCE = "request"


def _dump_ids(values: Iterable[str]) -> str:
    return json.dumps(sorted(values))


def _dump_enum_map(values: dict[Any, Enum]) -> str:
    return json.dumps(
        {
            (key.value if isinstance(key, Enum) else key): value.value
            for key, value in sorted(values.items(), key=lambda item: str(item[0]))
        }
    )


def _dump_flat_counts(values: dict[FlatType, int]) -> str:
    return json.dumps({flat_type.value: int(count) for flat_type, count in values.items()})


def _load_flat_counts(raw: str) -> dict[FlatType, int]:
    return {FlatType(key): int(value) for key, value in json.loads(raw).items()}


def _optional_enum(enum_type: type[Enum], raw: Optional[str]):
    return enum_type(raw) if raw is not None else None


# --- Explicit per-kind row mapping ---

def project_to_row(project: Project) -> tuple:
    return (
        project.project_id,
        project.name,
        _dump_ids(project.neighborhoods),
        _dump_flat_counts(project.units),
        _dump_flat_counts(project.prices),
        project.open_date.isoformat(),
        project.close_date.isoformat(),
        project.manager_id,
        project.officer_slots_remaining,
        _dump_ids(project.assigned_officer_ids),
        _dump_ids(project.booked_applicant_ids),
        1 if project.visible else 0,
    )


def project_from_row(row: sqlite3.Row) -> Project:
    return Project(
        project_id=str(row["project_id"]),
        name=str(row["name"]),
        neighborhoods=set(json.loads(row["neighborhoods"])),
        units=_load_flat_counts(row["units"]),
        prices=_load_flat_counts(row["prices"]),
        open_date=date.fromisoformat(row["open_date"]),
        close_date=date.fromisoformat(row["close_date"]),
        manager_id=str(row["manager_id"]),
        officer_slots_remaining=int(row["officer_slots_remaining"]),
        assigned_officer_ids=set(json.loads(row["assigned_officer_ids"])),
        booked_applicant_ids=set(json.loads(row["booked_applicant_ids"])),
        visible=bool(row["visible"]),
    )


def applicant_to_row(applicant: Applicant) -> tuple:
    return (
        applicant.user_id,
        applicant.name,
        applicant.age,
        applicant.marital_status.value,
        applicant.active_project_id,
        _dump_enum_map(applicant.application_status_by_project),
        _dump_enum_map(applicant.applied_flat_by_project),
    )


def applicant_from_row(row: sqlite3.Row) -> Applicant:
    return Applicant(
        user_id=str(row["user_id"]),
        name=str(row["name"]),
        age=int(row["age"]),
        marital_status=MaritalStatus(row["marital_status"]),
        active_project_id=row["active_project_id"],
        application_status_by_project={
            project_id: ApplicationStatus(status)
            for project_id, status in json.loads(row["application_statuses"]).items()
        },
        applied_flat_by_project={
            project_id: FlatType(flat_type)
            for project_id, flat_type in json.loads(row["applied_flats"]).items()
        },
    )


def officer_to_row(officer: Officer) -> tuple:
    return (
        officer.user_id,
        _dump_ids(officer.registered_project_ids),
        _dump_enum_map(officer.registration_status_by_project),
    )


def officer_from_row(row: sqlite3.Row) -> Officer:
    return Officer(
        user_id=str(row["user_id"]),
        registered_project_ids=set(json.loads(row["registered_project_ids"])),
        registration_status_by_project={
            project_id: RegistrationStatus(status)
            for project_id, status in json.loads(row["registration_statuses"]).items()
        },
    )


def manager_to_row(manager: Manager) -> tuple:
    return (manager.user_id, _dump_ids(manager.project_ids))


def manager_from_row(row: sqlite3.Row) -> Manager:
    return Manager(
        user_id=str(row["user_id"]),
        project_ids=set(json.loads(row["project_ids"])),
    )


def request_to_row(request: Request) -> tuple:
    approval = getattr(request, "approval", None)
    flat_type = getattr(request, "flat_type", None)
    status_at_submission = getattr(request, "status_at_submission", None)
    return (
        request.request_id,
        request.request_type.value,
        request.user_id,
        request.project_id,
        request.overall_status.value,
        approval.value if approval is not None else None,
        flat_type.value if flat_type is not None else None,
        getattr(request, "application_request_id", None),
        status_at_submission.value if status_at_submission is not None else None,
        getattr(request, "query", None),
        getattr(request, "answer", None),
        getattr(request, "answered_by", None),
    )


def request_from_row(row: sqlite3.Row) -> Request:
    request_type = RequestType(row["request_type"])
    common = {
        "request_id": str(row["request_id"]),
        "user_id": str(row["user_id"]),
        "project_id": str(row["project_id"]),
        "overall_status": RequestStatus(row["overall_status"]),
    }
    if request_type is RequestType.ENQUIRY:
        return Enquiry(
            **common,
            query=str(row["query"] or ""),
            answer=row["answer"],
            answered_by=row["answered_by"],
        )

    approval = ApprovedStatus(row["approval"] or ApprovedStatus.PENDING.value)
    if request_type is RequestType.BTO_APPLICATION:
        return BTOApplication(**common, approval=approval, flat_type=FlatType(row["flat_type"]))
    if request_type is RequestType.BTO_WITHDRAWAL:
        return BTOWithdrawal(
            **common,
            approval=approval,
            application_request_id=row["application_request_id"],
            status_at_submission=_optional_enum(ApplicationStatus, row["status_at_submission"]),
        )
    return OfficerRegistration(**common, approval=approval)


_ROW_WRITERS = {
    EntityKind.PROJECT: project_to_row,
    EntityKind.APPLICANT: applicant_to_row,
    EntityKind.OFFICER: officer_to_row,
    EntityKind.MANAGER: manager_to_row,
    EntityKind.REQUEST: request_to_row,
}

_ROW_READERS = {
    EntityKind.PROJECT: project_from_row,
    EntityKind.APPLICANT: applicant_from_row,
    EntityKind.OFFICER: officer_from_row,
    EntityKind.MANAGER: manager_from_row,
    EntityKind.REQUEST: request_from_row,
}

_COLUMNS = {
    EntityKind.PROJECT: (
        "project_id", "name", "neighborhoods", "units", "prices", "open_date",
        "close_date", "manager_id", "officer_slots_remaining",
        "assigned_officer_ids", "booked_applicant_ids", "visible",
    ),
    EntityKind.APPLICANT: (
        "user_id", "name", "age", "marital_status", "active_project_id",
        "application_statuses", "applied_flats",
    ),
    EntityKind.OFFICER: ("user_id", "registered_project_ids", "registration_statuses"),
    EntityKind.MANAGER: ("user_id", "project_ids"),
    EntityKind.REQUEST: (
        "request_id", "request_type", "user_id", "project_id", "overall_status",
        "approval", "flat_type", "application_request_id", "status_at_submission",
        "query", "answer", "answered_by",
    ),
}


class DataRepository:
    """Encapsulates SQLite access so the workflow stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        return connection

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Projects (
                        project_id TEXT PRIMARY KEY,
                        name TEXT NOT NULL UNIQUE,
                        neighborhoods TEXT NOT NULL,
                        units TEXT NOT NULL,
                        prices TEXT NOT NULL,
                        open_date TEXT NOT NULL,
                        close_date TEXT NOT NULL,
                        manager_id TEXT NOT NULL,
                        officer_slots_remaining INTEGER NOT NULL
                            CHECK (officer_slots_remaining >= 0),
                        assigned_officer_ids TEXT NOT NULL,
                        booked_applicant_ids TEXT NOT NULL,
                        visible INTEGER NOT NULL CHECK (visible IN (0,1))
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Applicants (
                        user_id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        age INTEGER NOT NULL CHECK (age >= 0),
                        marital_status TEXT NOT NULL,
                        active_project_id TEXT,
                        application_statuses TEXT NOT NULL,
                        applied_flats TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Officers (
                        user_id TEXT PRIMARY KEY,
                        registered_project_ids TEXT NOT NULL,
                        registration_statuses TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Managers (
                        user_id TEXT PRIMARY KEY,
                        project_ids TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Requests (
                        request_id TEXT PRIMARY KEY,
                        request_type TEXT NOT NULL,
                        user_id TEXT NOT NULL,
                        project_id TEXT NOT NULL,
                        overall_status TEXT NOT NULL DEFAULT 'PENDING',
                        approval TEXT,
                        flat_type TEXT,
                        application_request_id TEXT,
                        status_at_submission TEXT,
                        query TEXT,
                        answer TEXT,
                        answered_by TEXT
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS IdSequences (
                        name TEXT PRIMARY KEY,
                        value INTEGER NOT NULL CHECK (value >= 0)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_requests_user_project
                    ON Requests(user_id, project_id, request_type);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Database initialization failed: {exc}") from exc

    def load_all(self, kind: EntityKind) -> list[Any]:
        """Load every entity of ``kind`` in insertion order."""
        table = _TABLES[kind]
        columns = ", ".join(_COLUMNS[kind])
        reader = _ROW_READERS[kind]
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(f"SELECT {columns} FROM {table} ORDER BY rowid ASC;")
                return [reader(row) for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            raise PersistenceError(f"Loading {table} failed: {exc}") from exc

    def save_all(self, kind: EntityKind, entities: Sequence[Any]) -> None:
        """Replace the stored collection of ``kind`` with ``entities``."""
        table = _TABLES[kind]
        columns = _COLUMNS[kind]
        writer = _ROW_WRITERS[kind]
        placeholders = ", ".join("?" for _ in columns)
        rows = [writer(entity) for entity in entities]
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(f"DELETE FROM {table};")
                cursor.executemany(
                    f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders});",
                    rows,
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Saving {table} failed: {exc}") from exc
        logger.debug("Collection saved | table=%s | rows=%s", table, len(rows))

    def count(self, kind: EntityKind) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT COUNT(*) AS count FROM {_TABLES[kind]};")
            return int(cursor.fetchone()["count"])

    def _next_sequence_value(self, name: str) -> int:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "INSERT OR IGNORE INTO IdSequences (name, value) VALUES (?, 0);",
                    (name,),
                )
                cursor.execute(
                    "UPDATE IdSequences SET value = value + 1 WHERE name = ?;",
                    (name,),
                )
                cursor.execute("SELECT value FROM IdSequences WHERE name = ?;", (name,))
                value = int(cursor.fetchone()["value"])
                conn.commit()
                return value
        except sqlite3.Error as exc:
            raise PersistenceError(f"ID sequence {name} failed: {exc}") from exc

    def _format_id(self, prefix: str, value: int) -> str:
        return f"{prefix}{value:0{self._settings.id_width}d}"

    def next_project_id(self) -> str:
        return self._format_id(
            self._settings.project_id_prefix,
            self._next_sequence_value(_PROJECT_SEQUENCE),
        )

    def next_request_id(self) -> str:
        return self._format_id(
            self._settings.request_id_prefix,
            self._next_sequence_value(_REQUEST_SEQUENCE),
        )

    def seed_demo_data_if_empty(self) -> bool:
        """Seed a small deterministic cast only when no users exist yet."""
        if self.count(EntityKind.APPLICANT) > 0:
            logger.info("Demo data already present; skipping seed")
            return False

        today = datetime.now(timezone.utc).date()
        people = [
            ("S1234567A", "John", 35, MaritalStatus.SINGLE),
            ("T7654321B", "Sarah", 40, MaritalStatus.MARRIED),
            ("S9876543C", "Grace", 37, MaritalStatus.MARRIED),
            ("T2345678D", "James", 30, MaritalStatus.MARRIED),
            ("S3456789E", "Rachel", 25, MaritalStatus.SINGLE),
            ("T2109876H", "Daniel", 36, MaritalStatus.SINGLE),
            ("S6543210I", "Emily", 28, MaritalStatus.SINGLE),
            ("T1234567J", "David", 29, MaritalStatus.MARRIED),
            ("T8765432F", "Michael", 36, MaritalStatus.SINGLE),
            ("S5678901G", "Jessica", 26, MaritalStatus.MARRIED),
        ]
        applicants = [
            Applicant(user_id=user_id, name=name, age=age, marital_status=status)
            for user_id, name, age, status in people
        ]

        project_id = self.next_project_id()
        registration_id = self.next_request_id()
        seeded_officer = "T2109876H"
        project = Project(
            project_id=project_id,
            name="Acacia Breeze",
            neighborhoods={"Yishun"},
            units={FlatType.TWO_ROOM: 2, FlatType.THREE_ROOM: 3},
            prices={FlatType.TWO_ROOM: 350000, FlatType.THREE_ROOM: 450000},
            open_date=today - timedelta(days=30),
            close_date=today + timedelta(days=60),
            manager_id="S5678901G",
            officer_slots_remaining=2,
            assigned_officer_ids={seeded_officer},
        )
        officers = [
            Officer(
                user_id=seeded_officer,
                registered_project_ids={project_id},
                registration_status_by_project={project_id: RegistrationStatus.APPROVED},
            ),
            Officer(user_id="S6543210I"),
            Officer(user_id="T1234567J"),
        ]
        managers = [
            Manager(user_id="T8765432F"),
            Manager(user_id="S5678901G", project_ids={project_id}),
        ]
        registration = OfficerRegistration(
            request_id=registration_id,
            user_id=seeded_officer,
            project_id=project_id,
            overall_status=RequestStatus.DONE,
            approval=ApprovedStatus.SUCCESSFUL,
        )

        self.save_all(EntityKind.APPLICANT, applicants)
        self.save_all(EntityKind.OFFICER, officers)
        self.save_all(EntityKind.MANAGER, managers)
        self.save_all(EntityKind.PROJECT, [project])
        self.save_all(EntityKind.REQUEST, [registration])
        logger.info(
            "Demo seed completed | applicants=%s | officers=%s | managers=%s | projects=1",
            len(applicants),
            len(officers),
            len(managers),
        )
        return True
