"""Dictionary-backed planning store for tests and throwaway sessions."""

from __future__ import annotations

import itertools
from collections.abc import Mapping, Sequence

from story_planner.adapters.planning_store_support import build_record, merge_changes, next_order
from story_planner.core.planning_schema import (
    CHILD_KINDS,
    RECORD_TYPES,
    EntityKind,
    PlanningRecord,
    PlanOwnedRecord,
    PlanRecord,
    utc_now_iso,
)
from story_planner.domain.models import CascadeDeleteReport


class InMemoryPlanningStore:
    """Hold every planning collection in process memory."""

    def __init__(self) -> None:
        self._tables: dict[EntityKind, dict[str, PlanningRecord]] = {
            kind: {} for kind in RECORD_TYPES
        }
        self._sequence: dict[str, int] = {}
        self._counter = itertools.count()

    def _plan_children(self, kind: EntityKind, plan_id: str) -> list[PlanOwnedRecord]:
        return [
            record
            for record in self._tables[kind].values()
            if isinstance(record, PlanOwnedRecord) and record.plan_id == plan_id
        ]

    def _store(self, kind: EntityKind, record: PlanningRecord) -> None:
        if record.id not in self._sequence:
            self._sequence[record.id] = next(self._counter)
        self._tables[kind][record.id] = record

    def _default_order(self, kind: EntityKind, fields: Mapping[str, object]) -> int | None:
        if kind == "plan":
            return None
        plan_id = str(fields.get("plan_id", ""))
        return next_order(record.order for record in self._plan_children(kind, plan_id))

    def create(self, kind: EntityKind, fields: Mapping[str, object]) -> str:
        record = build_record(
            kind, fields, order=self._default_order(kind, fields), now=utc_now_iso()
        )
        self._store(kind, record)
        return record.id

    def bulk_create(self, kind: EntityKind, rows: Sequence[Mapping[str, object]]) -> list[str]:
        """Validate every row first, then insert them together."""
        now = utc_now_iso()
        staged: list[PlanningRecord] = []
        pending_orders: dict[str, int] = {}
        for row in rows:
            order: int | None = None
            if kind != "plan":
                plan_id = str(row.get("plan_id", ""))
                if plan_id not in pending_orders:
                    pending_orders[plan_id] = next_order(
                        record.order for record in self._plan_children(kind, plan_id)
                    )
                order = pending_orders[plan_id]
                if row.get("order") is None:
                    pending_orders[plan_id] += 1
            staged.append(build_record(kind, row, order=order, now=now))
        for record in staged:
            self._store(kind, record)
        return [record.id for record in staged]

    def get(self, kind: EntityKind, entity_id: str) -> PlanningRecord | None:
        return self._tables[kind].get(entity_id)

    def update(
        self, kind: EntityKind, entity_id: str, changes: Mapping[str, object]
    ) -> PlanningRecord | None:
        existing = self._tables[kind].get(entity_id)
        if existing is None:
            return None
        updated = merge_changes(existing, changes, now=utc_now_iso())
        self._store(kind, updated)
        return updated

    def delete(self, kind: EntityKind, entity_id: str) -> bool:
        self._sequence.pop(entity_id, None)
        return self._tables[kind].pop(entity_id, None) is not None

    def list_by_plan(self, kind: EntityKind, plan_id: str) -> list[PlanningRecord]:
        children = self._plan_children(kind, plan_id)
        children.sort(key=lambda record: (record.order, self._sequence[record.id]))
        return list(children)

    def list_plans(self) -> list[PlanRecord]:
        plans = [
            record for record in self._tables["plan"].values() if isinstance(record, PlanRecord)
        ]
        plans.sort(key=lambda record: self._sequence[record.id])
        return plans

    def reorder(self, kind: EntityKind, plan_id: str, ordered_ids: Sequence[str]) -> int:
        now = utc_now_iso()
        staged: list[PlanningRecord] = []
        for index, entity_id in enumerate(ordered_ids):
            record = self._tables[kind].get(entity_id)
            if not isinstance(record, PlanOwnedRecord) or record.plan_id != plan_id:
                continue
            staged.append(merge_changes(record, {"order": index}, now=now))
        for record in staged:
            self._store(kind, record)
        return len(staged)

    def delete_plan_cascade(self, plan_id: str) -> CascadeDeleteReport:
        doomed = {
            kind: [record.id for record in self._plan_children(kind, plan_id)]
            for kind in CHILD_KINDS
        }
        for kind, entity_ids in doomed.items():
            for entity_id in entity_ids:
                self.delete(kind, entity_id)
        plan_existed = self.delete("plan", plan_id)
        return CascadeDeleteReport(
            plan_id=plan_id,
            plan_existed=plan_existed,
            deleted_counts={kind: len(entity_ids) for kind, entity_ids in doomed.items()},
        )
