"""Booked-applicant report built as a pandas DataFrame."""

from __future__ import annotations

from typing import Any, Optional

import pandas as pd

from backend.domain.constraints import validate_age_range
from backend.domain.models import (
    ApplicationStatus,
    FlatType,
    MaritalStatus,
    SessionContext,
    UserRole,
)
from backend.repository.entity_store import EntityStore
from backend.services.session_service import require_role
from backend.utils.logger import get_logger


logger = get_logger(__name__)

REPORT_COLUMNS = [
    "applicant_id",
    "name",
    "age",
    "marital_status",
    "project_id",
    "project_name",
    "flat_type",
    "price",
]


class ReportService:
    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def booking_report(
        self,
        context: SessionContext,
        project_id: Optional[str] = None,
        min_age: Optional[int] = None,
        max_age: Optional[int] = None,
        marital_status: Optional[MaritalStatus] = None,
        flat_type: Optional[FlatType] = None,
    ) -> pd.DataFrame:
        """Return one row per booked flat, sorted by project then applicant.

        Every filter is optional; an empty result still carries the columns.
        """
        require_role(context, UserRole.MANAGER)
        validate_age_range(min_age, max_age)

        with self._store.reading() as store:
            projects = [store.project(project_id)] if project_id else list(store.projects.values())
            rows = []
            for project in projects:
                for applicant_id in project.booked_applicant_ids:
                    applicant = store.applicants.get(applicant_id)
                    if applicant is None:
                        continue
                    if applicant.status_for(project.project_id) is not ApplicationStatus.BOOKED:
                        continue
                    booked_flat = applicant.applied_flat_by_project.get(project.project_id)
                    if booked_flat is None:
                        continue
                    rows.append(
                        {
                            "applicant_id": applicant.user_id,
                            "name": applicant.name,
                            "age": applicant.age,
                            "marital_status": applicant.marital_status.value,
                            "project_id": project.project_id,
                            "project_name": project.name,
                            "flat_type": booked_flat.value,
                            "price": project.prices.get(booked_flat),
                        }
                    )

        frame = pd.DataFrame(rows, columns=REPORT_COLUMNS)
        frame["age"] = frame["age"].astype("Int64")
        frame["price"] = frame["price"].astype("Int64")
        if min_age is not None:
            frame = frame[frame["age"] >= min_age]
        if max_age is not None:
            frame = frame[frame["age"] <= max_age]
        if marital_status is not None:
            frame = frame[frame["marital_status"] == marital_status.value]
        if flat_type is not None:
            frame = frame[frame["flat_type"] == flat_type.value]

        frame = frame.sort_values(by=["project_id", "applicant_id"]).reset_index(drop=True)
        logger.info(
            "Booking report generated | manager_id=%s | project_id=%s | rows=%s",
            context.user_id,
            project_id,
            len(frame),
        )
        return frame


def frame_records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    """Plain dict rows with missing values as None."""
    return [
        {key: (None if pd.isna(value) else value) for key, value in record.items()}
        for record in frame.to_dict(orient="records")
    ]
