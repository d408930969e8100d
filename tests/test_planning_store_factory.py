from __future__ import annotations

from pathlib import Path

import pytest

from story_planner.adapters.memory_planning_store import InMemoryPlanningStore
from story_planner.adapters.planning_store_factory import (
    DEFAULT_DB_PATH,
    create_planning_store,
    default_db_path,
)
from story_planner.adapters.sqlite_planning_store import SQLitePlanningStore


def test_factory_defaults_to_sqlite_backend(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("STORY_PLANNER_STORE_BACKEND", raising=False)
    store = create_planning_store(db_path=tmp_path / "planner.db")
    assert isinstance(store, SQLitePlanningStore)
    assert (tmp_path / "planner.db").exists()


def test_factory_supports_memory_backend(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("STORY_PLANNER_STORE_BACKEND", " Memory ")
    store = create_planning_store(db_path=tmp_path / "planner.db")
    assert isinstance(store, InMemoryPlanningStore)
    assert not (tmp_path / "planner.db").exists()


def test_factory_rejects_unknown_backend(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("STORY_PLANNER_STORE_BACKEND", "postgres")
    with pytest.raises(RuntimeError, match="STORY_PLANNER_STORE_BACKEND"):
        create_planning_store(db_path=tmp_path / "planner.db")


def test_db_path_comes_from_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("STORY_PLANNER_DB_PATH", raising=False)
    assert default_db_path() == DEFAULT_DB_PATH

    configured = tmp_path / "configured.db"
    monkeypatch.setenv("STORY_PLANNER_DB_PATH", str(configured))
    monkeypatch.delenv("STORY_PLANNER_STORE_BACKEND", raising=False)
    assert default_db_path() == configured
    create_planning_store()
    assert configured.exists()
