"""SQLite persistence adapter for plans and the records each plan owns."""

from __future__ import annotations

import sqlite3
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Final

from story_planner.adapters.planning_store_support import build_record, merge_changes, next_order
from story_planner.core.planning_errors import PartialBulkFailureError
from story_planner.core.planning_schema import (
    CHILD_KINDS,
    PLANNING_SCHEMA_VERSION,
    RECORD_TYPES,
    EntityKind,
    PlanningRecord,
    PlanOwnedRecord,
    PlanRecord,
    utc_now_iso,
)
from story_planner.domain.models import CascadeDeleteReport

CHILD_TABLES: Final[dict[EntityKind, str]] = {
    "arc": "plan_arcs",
    "beat": "plan_beats",
    "scene": "plan_scenes",
    "character_arc": "plan_character_arcs",
    "thread": "plan_threads",
}


class SQLitePlanningStore:
    """Persist planning records as validated JSON payloads, one table per kind."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_schema()
        self._ensure_schema_version()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(str(self._db_path))
        connection.row_factory = sqlite3.Row
        return connection

    def _initialize_schema(self) -> None:
        with self._connect() as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS planner_schema_versions (
                    schema_key TEXT PRIMARY KEY,
                    schema_version TEXT NOT NULL,
                    updated_at_utc TEXT NOT NULL
                )
                """
            )
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS plans (
                    id TEXT PRIMARY KEY,
                    writing_id TEXT NOT NULL,
                    payload_json TEXT NOT NULL,
                    created_at_utc TEXT NOT NULL,
                    updated_at_utc TEXT NOT NULL
                )
                """
            )
            connection.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_plans_writing
                ON plans(writing_id, created_at_utc)
                """
            )
            for table in CHILD_TABLES.values():
                connection.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        id TEXT PRIMARY KEY,
                        plan_id TEXT NOT NULL,
                        sort_order INTEGER NOT NULL,
                        payload_json TEXT NOT NULL,
                        created_at_utc TEXT NOT NULL,
                        updated_at_utc TEXT NOT NULL,
                        FOREIGN KEY (plan_id) REFERENCES plans(id)
                    )
                    """
                )
                connection.execute(
                    f"""
                    CREATE INDEX IF NOT EXISTS idx_{table}_plan_order
                    ON {table}(plan_id, sort_order)
                    """
                )

    def _ensure_schema_version(self) -> None:
        with self._connect() as connection:
            row = connection.execute(
                """
                SELECT schema_version
                FROM planner_schema_versions
                WHERE schema_key = 'story_planning'
                """
            ).fetchone()
            if row is None:
                connection.execute(
                    """
                    INSERT INTO planner_schema_versions (schema_key, schema_version, updated_at_utc)
                    VALUES (?, ?, ?)
                    """,
                    ("story_planning", PLANNING_SCHEMA_VERSION, utc_now_iso()),
                )
                return
            existing_version = str(row["schema_version"])
            if existing_version != PLANNING_SCHEMA_VERSION:
                raise RuntimeError(
                    "Planning schema version mismatch: "
                    f"database={existing_version}, expected={PLANNING_SCHEMA_VERSION}"
                )

    @staticmethod
    def _table(kind: EntityKind) -> str:
        if kind == "plan":
            return "plans"
        return CHILD_TABLES[kind]

    @staticmethod
    def _record_from_row(kind: EntityKind, row: sqlite3.Row) -> PlanningRecord:
        return RECORD_TYPES[kind].model_validate_json(str(row["payload_json"]))

    def _next_order(self, connection: sqlite3.Connection, kind: EntityKind, plan_id: str) -> int:
        row = connection.execute(
            f"SELECT MAX(sort_order) AS max_order FROM {self._table(kind)} WHERE plan_id = ?",
            (plan_id,),
        ).fetchone()
        existing = [] if row is None or row["max_order"] is None else [int(row["max_order"])]
        return next_order(existing)

    def _insert(
        self, connection: sqlite3.Connection, kind: EntityKind, record: PlanningRecord
    ) -> None:
        payload_json = record.model_dump_json()
        if isinstance(record, PlanRecord):
            connection.execute(
                """
                INSERT INTO plans (id, writing_id, payload_json, created_at_utc, updated_at_utc)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.writing_id,
                    payload_json,
                    record.created_at_utc,
                    record.updated_at_utc,
                ),
            )
            return
        assert isinstance(record, PlanOwnedRecord)
        connection.execute(
            f"""
            INSERT INTO {self._table(kind)}
                (id, plan_id, sort_order, payload_json, created_at_utc, updated_at_utc)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.plan_id,
                record.order,
                payload_json,
                record.created_at_utc,
                record.updated_at_utc,
            ),
        )

    def _replace(
        self, connection: sqlite3.Connection, kind: EntityKind, record: PlanningRecord
    ) -> None:
        payload_json = record.model_dump_json()
        if isinstance(record, PlanOwnedRecord):
            connection.execute(
                f"""
                UPDATE {self._table(kind)}
                SET sort_order = ?, payload_json = ?, updated_at_utc = ?
                WHERE id = ?
                """,
                (record.order, payload_json, record.updated_at_utc, record.id),
            )
            return
        connection.execute(
            "UPDATE plans SET payload_json = ?, updated_at_utc = ? WHERE id = ?",
            (payload_json, record.updated_at_utc, record.id),
        )

    def create(self, kind: EntityKind, fields: Mapping[str, object]) -> str:
        with self._connect() as connection:
            order = None
            if kind != "plan":
                order = self._next_order(connection, kind, str(fields.get("plan_id", "")))
            record = build_record(kind, fields, order=order, now=utc_now_iso())
            self._insert(connection, kind, record)
        return record.id

    def bulk_create(self, kind: EntityKind, rows: Sequence[Mapping[str, object]]) -> list[str]:
        """Insert every row in one transaction; nothing is kept when a write fails."""
        now = utc_now_iso()
        completed: list[str] = []
        try:
            with self._connect() as connection:
                pending_orders: dict[str, int] = {}
                staged: list[PlanningRecord] = []
                for row in rows:
                    order: int | None = None
                    if kind != "plan":
                        plan_id = str(row.get("plan_id", ""))
                        if plan_id not in pending_orders:
                            pending_orders[plan_id] = self._next_order(connection, kind, plan_id)
                        order = pending_orders[plan_id]
                        if row.get("order") is None:
                            pending_orders[plan_id] += 1
                    staged.append(build_record(kind, row, order=order, now=now))
                for record in staged:
                    self._insert(connection, kind, record)
                    completed.append(record.id)
        except sqlite3.Error as exc:
            raise PartialBulkFailureError(
                operation=f"bulk_create {kind}",
                completed_ids=tuple(completed),
                rolled_back=True,
                detail=str(exc),
            ) from exc
        return completed

    def get(self, kind: EntityKind, entity_id: str) -> PlanningRecord | None:
        with self._connect() as connection:
            row = connection.execute(
                f"SELECT payload_json FROM {self._table(kind)} WHERE id = ?",
                (entity_id,),
            ).fetchone()
        if row is None:
            return None
        return self._record_from_row(kind, row)

    def update(
        self, kind: EntityKind, entity_id: str, changes: Mapping[str, object]
    ) -> PlanningRecord | None:
        existing = self.get(kind, entity_id)
        if existing is None:
            return None
        updated = merge_changes(existing, changes, now=utc_now_iso())
        with self._connect() as connection:
            self._replace(connection, kind, updated)
        return updated

    def delete(self, kind: EntityKind, entity_id: str) -> bool:
        with self._connect() as connection:
            cursor = connection.execute(
                f"DELETE FROM {self._table(kind)} WHERE id = ?",
                (entity_id,),
            )
        return cursor.rowcount > 0

    def list_by_plan(self, kind: EntityKind, plan_id: str) -> list[PlanningRecord]:
        if kind == "plan":
            return []
        with self._connect() as connection:
            rows = connection.execute(
                f"""
                SELECT payload_json
                FROM {self._table(kind)}
                WHERE plan_id = ?
                ORDER BY sort_order ASC, rowid ASC
                """,
                (plan_id,),
            ).fetchall()
        return [self._record_from_row(kind, row) for row in rows]

    def list_plans(self) -> list[PlanRecord]:
        with self._connect() as connection:
            rows = connection.execute(
                "SELECT payload_json FROM plans ORDER BY rowid ASC"
            ).fetchall()
        return [PlanRecord.model_validate_json(str(row["payload_json"])) for row in rows]

    def reorder(self, kind: EntityKind, plan_id: str, ordered_ids: Sequence[str]) -> int:
        """Rewrite `order` for the listed ids in one transaction; foreign ids are skipped."""
        now = utc_now_iso()
        completed: list[str] = []
        try:
            with self._connect() as connection:
                for index, entity_id in enumerate(ordered_ids):
                    row = connection.execute(
                        f"SELECT payload_json FROM {self._table(kind)} "
                        "WHERE id = ? AND plan_id = ?",
                        (entity_id, plan_id),
                    ).fetchone()
                    if row is None:
                        continue
                    record = merge_changes(
                        self._record_from_row(kind, row), {"order": index}, now=now
                    )
                    self._replace(connection, kind, record)
                    completed.append(entity_id)
        except sqlite3.Error as exc:
            raise PartialBulkFailureError(
                operation=f"reorder {kind}",
                completed_ids=tuple(completed),
                rolled_back=True,
                detail=str(exc),
            ) from exc
        return len(completed)

    def delete_plan_cascade(self, plan_id: str) -> CascadeDeleteReport:
        deleted_counts: dict[str, int] = {}
        try:
            with self._connect() as connection:
                for kind in CHILD_KINDS:
                    cursor = connection.execute(
                        f"DELETE FROM {self._table(kind)} WHERE plan_id = ?",
                        (plan_id,),
                    )
                    deleted_counts[kind] = max(cursor.rowcount, 0)
                cursor = connection.execute("DELETE FROM plans WHERE id = ?", (plan_id,))
                plan_existed = cursor.rowcount > 0
        except sqlite3.Error as exc:
            raise PartialBulkFailureError(
                operation="delete_plan_cascade",
                completed_ids=(),
                rolled_back=True,
                detail=str(exc),
            ) from exc
        return CascadeDeleteReport(
            plan_id=plan_id,
            plan_existed=plan_existed,
            deleted_counts=deleted_counts,
        )
