"""Sorting for list endpoints: ``field:direction`` strings mapped to ORDER BY."""

from __future__ import annotations

from sqlalchemy import asc, desc, inspect
from sqlalchemy.orm import Query

from payplan.core.database import Base

DIRECTIONS = {"asc": asc, "desc": desc}


def sortable_fields(model: type[Base]) -> set[str]:
    """Mapped column attribute names of ``model``."""
    return set(inspect(model).columns.keys())


def apply_order_by(
    query: Query,  # type: ignore[type-arg]
    model: type[Base],
    order_by: str | None,
    default_field: str = "created_at",
    default_direction: str = "desc",
) -> Query:  # type: ignore[type-arg]
    """Order ``query`` by ``order_by`` (e.g. ``"started_at:asc"``).

    A bare field sorts ascending. Unknown fields fall back to
    ``default_field`` and unknown directions to ``default_direction``, so a
    bad query string never fails the request.
    """
    field, direction = default_field, default_direction

    if order_by:
        name, _, requested = order_by.partition(":")
        if name in sortable_fields(model):
            field = name
            requested = requested or "asc"
            direction = requested if requested in DIRECTIONS else default_direction

    return query.order_by(DIRECTIONS[direction](getattr(model, field)))
