"""Project filtering and sorting shared by every role's project listings."""

from __future__ import annotations

import math
from typing import Iterable

from backend.domain.models import FilterCriteria, FlatType, Project, SortKey


def _has_stock(project: Project, flat_type: FlatType | None) -> bool:
    if flat_type is not None:
        return project.units.get(flat_type, 0) > 0
    return any(project.units.get(candidate, 0) > 0 for candidate in FlatType)


def _matches_location(project: Project, locations: tuple[str, ...]) -> bool:
    if not locations:
        return True
    return any(location in project.neighborhoods for location in locations)


def _within_price_bounds(project: Project, criteria: FilterCriteria) -> bool:
    prices = list(project.prices.values())
    if criteria.price_min is not None and any(price < criteria.price_min for price in prices):
        return False
    if criteria.price_max is not None and any(price > criteria.price_max for price in prices):
        return False
    return True


def _within_dates(project: Project, criteria: FilterCriteria) -> bool:
    if criteria.start_date is not None and project.open_date < criteria.start_date:
        return False
    if criteria.end_date is not None and project.close_date > criteria.end_date:
        return False
    return True


def _sort_key(criteria: FilterCriteria):
    if criteria.sort_key is SortKey.PRICE:
        price_type = criteria.flat_type or FlatType.TWO_ROOM

        def by_price(project: Project) -> tuple[float, str]:
            price = project.prices.get(price_type)
            return (math.inf if price is None else float(price), project.name)

        return by_price
    if criteria.sort_key is SortKey.DATE:
        return lambda project: (project.open_date, project.name)
    return lambda project: project.name


def apply_filters(
    projects: Iterable[Project],
    criteria: FilterCriteria | None = None,
) -> list[Project]:
    """Return the projects matching ``criteria``, sorted by its sort key."""
    criteria = criteria or FilterCriteria()
    matched = [
        project
        for project in projects
        if (criteria.flat_type is None or criteria.flat_type in project.units)
        and (criteria.include_sold_out or _has_stock(project, criteria.flat_type))
        and _matches_location(project, criteria.locations)
        and _within_price_bounds(project, criteria)
        and _within_dates(project, criteria)
    ]
    return sorted(matched, key=_sort_key(criteria))
