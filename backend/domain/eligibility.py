"""Applicant flat-type eligibility rule."""

from __future__ import annotations

from datetime import date
from typing import Optional

from backend.domain.models import Applicant, FlatType, MaritalStatus, Project


def is_application_window_open(project: Project, today: date) -> bool:
    """Applications are accepted strictly between the open and close dates."""
    return project.open_date < today < project.close_date


def eligible_flat_type(
    applicant: Applicant,
    project: Project,
    today: date,
    *,
    married_min_age: int = 21,
    single_min_age: int = 35,
) -> Optional[FlatType]:
    """Return the largest flat type the applicant may apply for, or None."""
    if not project.visible:
        return None
    if applicant.user_id in project.assigned_officer_ids:
        return None
    if not is_application_window_open(project, today):
        return None

    if applicant.marital_status is MaritalStatus.MARRIED and applicant.age >= married_min_age:
        return FlatType.THREE_ROOM
    if applicant.marital_status is MaritalStatus.SINGLE and applicant.age >= single_min_age:
        return FlatType.TWO_ROOM
    return None


def allows_flat_type(eligible: Optional[FlatType], requested: FlatType) -> bool:
    return eligible is not None and requested.rank <= eligible.rank
