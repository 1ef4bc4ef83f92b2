"""Domain-level validation rules for project parameters and date windows."""

from __future__ import annotations

from datetime import date

from backend.domain.errors import ProjectValidationError
from backend.domain.models import ProjectDraft


def windows_overlap(
    first_open: date,
    first_close: date,
    second_open: date,
    second_close: date,
) -> bool:
    """Closed-interval intersection; touching endpoints count as overlap."""
    return not (first_close < second_open or second_close < first_open)


def validate_project_draft(draft: ProjectDraft, max_officer_slots: int) -> None:
    if not draft.name.strip():
        raise ProjectValidationError("project name must not be blank")
    if draft.close_date < draft.open_date:
        raise ProjectValidationError("close_date must not be before open_date")
    if not draft.units:
        raise ProjectValidationError("at least one flat type must be offered")
    for flat_type, count in draft.units.items():
        if count < 0:
            raise ProjectValidationError(f"units for {flat_type.value} must be >= 0")
    for flat_type, price in draft.prices.items():
        if price < 0:
            raise ProjectValidationError(f"price for {flat_type.value} must be >= 0")
    missing_prices = set(draft.units) - set(draft.prices)
    if missing_prices:
        names = ", ".join(sorted(flat_type.value for flat_type in missing_prices))
        raise ProjectValidationError(f"price is required for offered flat types: {names}")
    if not 0 <= draft.officer_slots <= max_officer_slots:
        raise ProjectValidationError(
            f"officer_slots must be between 0 and {max_officer_slots}"
        )
    if any(not neighborhood.strip() for neighborhood in draft.neighborhoods):
        raise ProjectValidationError("neighborhood names must not be blank")


def validate_age_range(min_age: int | None, max_age: int | None) -> None:
    if min_age is not None and min_age < 0:
        raise ProjectValidationError("min_age must be >= 0")
    if max_age is not None and max_age < 0:
        raise ProjectValidationError("max_age must be >= 0")
    if min_age is not None and max_age is not None and max_age < min_age:
        raise ProjectValidationError("max_age must be >= min_age")
