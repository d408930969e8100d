"""Factory for selecting the planning persistence adapter."""

from __future__ import annotations

import os
from pathlib import Path

from story_planner.adapters.memory_planning_store import InMemoryPlanningStore
from story_planner.adapters.sqlite_planning_store import SQLitePlanningStore
from story_planner.domain.ports import PlanningStore

DEFAULT_DB_PATH = Path("work/local/story_planner.db")


def default_db_path() -> Path:
    """Resolve the SQLite path from `STORY_PLANNER_DB_PATH`, falling back to the work dir."""
    raw = os.environ.get("STORY_PLANNER_DB_PATH", "").strip()
    return Path(raw) if raw else DEFAULT_DB_PATH


def create_planning_store(*, db_path: Path | None = None) -> PlanningStore:
    """Build the configured planning store backend."""
    backend = os.environ.get("STORY_PLANNER_STORE_BACKEND", "sqlite").strip().lower()
    if backend in {"", "sqlite"}:
        return SQLitePlanningStore(db_path=db_path or default_db_path())
    if backend == "memory":
        return InMemoryPlanningStore()
    raise RuntimeError(
        "Unsupported STORY_PLANNER_STORE_BACKEND value. Expected sqlite or memory."
    )
