"""Per-project unit and officer-slot accounting.

All counters are mutated only through these functions so the non-negativity
invariant is checked in one place.
"""

from __future__ import annotations

from backend.domain.errors import NoOfficerSlotsError, NoUnitsAvailableError
from backend.domain.models import FlatType, Project


def available_units(project: Project, flat_type: FlatType) -> int:
    return project.units.get(flat_type, 0)


def has_units(project: Project, flat_type: FlatType) -> bool:
    return available_units(project, flat_type) > 0


def consume_unit(project: Project, flat_type: FlatType) -> int:
    remaining = available_units(project, flat_type)
    if remaining <= 0:
        raise NoUnitsAvailableError(
            f"No {flat_type.value} units left in project {project.project_id}"
        )
    project.units[flat_type] = remaining - 1
    return project.units[flat_type]


def restore_unit(project: Project, flat_type: FlatType) -> int:
    project.units[flat_type] = available_units(project, flat_type) + 1
    return project.units[flat_type]


def claim_officer_slot(project: Project, officer_id: str) -> None:
    if officer_id in project.assigned_officer_ids:
        return
    if project.officer_slots_remaining <= 0:
        raise NoOfficerSlotsError(
            f"Project {project.project_id} has no officer slots remaining"
        )
    project.assigned_officer_ids.add(officer_id)
    project.officer_slots_remaining -= 1


def release_officer_slot(project: Project, officer_id: str) -> bool:
    """Unassign the officer; returns False when the officer held no slot."""
    if officer_id not in project.assigned_officer_ids:
        return False
    project.assigned_officer_ids.discard(officer_id)
    project.officer_slots_remaining += 1
    return True
