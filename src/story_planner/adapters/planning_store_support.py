"""Record construction shared by the planning store adapters."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from pydantic import ValidationError

from story_planner.core.planning_errors import PlanValidationError
from story_planner.core.planning_schema import (
    IMMUTABLE_FIELDS,
    RECORD_TYPES,
    EntityKind,
    PlanningRecord,
    new_record_id,
)

STORE_ASSIGNED_FIELDS = frozenset({"id", "created_at_utc", "updated_at_utc"})


def next_order(existing_orders: Iterable[int]) -> int:
    """One past the largest existing order; 1 for an empty collection."""
    return max([0, *existing_orders]) + 1


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "record"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def build_record(
    kind: EntityKind,
    fields: Mapping[str, object],
    *,
    order: int | None,
    now: str,
) -> PlanningRecord:
    """Validate caller fields into a new record with store-assigned metadata."""
    assigned = sorted(STORE_ASSIGNED_FIELDS.intersection(fields))
    if assigned:
        raise PlanValidationError(f"Fields {assigned} are assigned by the store.")
    payload: dict[str, object] = dict(fields)
    payload["id"] = new_record_id()
    payload["created_at_utc"] = now
    payload["updated_at_utc"] = now
    if kind != "plan" and payload.get("order") is None:
        payload["order"] = order if order is not None else 1
    try:
        return RECORD_TYPES[kind].model_validate(payload)
    except ValidationError as exc:
        raise PlanValidationError(f"Invalid {kind} fields: {_describe(exc)}") from exc


def merge_changes(
    record: PlanningRecord,
    changes: Mapping[str, object],
    *,
    now: str,
) -> PlanningRecord:
    """Apply a partial update, keeping identity fields and stamping `updated_at_utc`."""
    payload = record.model_dump()
    payload.update(changes)
    for name in IMMUTABLE_FIELDS:
        if name in payload and hasattr(record, name):
            payload[name] = getattr(record, name)
    payload["updated_at_utc"] = now
    try:
        return type(record).model_validate(payload)
    except ValidationError as exc:
        raise PlanValidationError(f"Invalid update for {record.id}: {_describe(exc)}") from exc
