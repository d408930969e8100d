from __future__ import annotations

import json
from pathlib import Path

import pytest

from story_planner.adapters import observability
from story_planner.cli.planner import build_arg_parser, main


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(observability, "_CONFIGURED", True)
    monkeypatch.delenv("STORY_PLANNER_STORE_BACKEND", raising=False)


def _run(db_path: Path, *args: str) -> None:
    main(["--db-path", str(db_path), *args])


def _created_plan_id(output: str) -> str:
    for line in output.splitlines():
        if line.startswith("Plan id: "):
            return line.removeprefix("Plan id: ").strip()
    raise AssertionError(f"no plan id in output: {output!r}")


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_arg_parser().parse_args([])


def test_frameworks_command_lists_catalog(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _run(tmp_path / "planner.db", "frameworks")
    frameworks = json.loads(capsys.readouterr().out)
    keys = [framework["key"] for framework in frameworks]
    assert keys[0] == "three-act"
    assert keys[-1] == "custom"
    three_act = frameworks[0]
    assert three_act["name"] == "Three-Act Structure"
    assert three_act["beats"][1] == {
        "template_id": "inciting-incident",
        "name": "Inciting Incident",
        "target_percent": 10,
        "act_number": 1,
    }


def test_create_show_and_progress_round_trip(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    db_path = tmp_path / "planner.db"
    _run(
        db_path,
        "create",
        "--writing-id",
        "writing-1",
        "--title",
        "Ledger",
        "--framework",
        "seven-point",
        "--genre",
        "mystery",
    )
    created = capsys.readouterr().out
    plan_id = _created_plan_id(created)
    assert "Beats created: 7" in created

    _run(db_path, "add-scene", "--plan-id", plan_id, "--title", "Opening", "--tension", "3")
    assert "Scene id: " in capsys.readouterr().out

    _run(db_path, "show", "--plan-id", plan_id)
    snapshot = json.loads(capsys.readouterr().out)
    assert snapshot["plan"]["title"] == "Ledger"
    assert snapshot["plan"]["genres"] == ["mystery"]
    assert [beat["name"] for beat in snapshot["beats"]][:2] == ["Hook", "Plot Turn 1"]
    assert snapshot["scenes"][0]["tension_level"] == 3

    _run(db_path, "progress", "--plan-id", plan_id)
    progress = json.loads(capsys.readouterr().out)
    assert progress["beats"]["total"] == 7
    assert progress["overall"]["total_items"] == 8
    assert progress["overall_percent"] == 0


def test_pacing_threads_and_reorder_commands(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    db_path = tmp_path / "planner.db"
    _run(db_path, "create", "--writing-id", "writing-1")
    plan_id = _created_plan_id(capsys.readouterr().out)
    scene_ids = []
    for title in ("A", "B", "C"):
        _run(db_path, "add-scene", "--plan-id", plan_id, "--title", title, "--tension", "6")
        scene_ids.append(capsys.readouterr().out.split("Scene id: ")[1].strip())

    _run(db_path, "pacing", "--plan-id", plan_id)
    pacing = json.loads(capsys.readouterr().out)
    assert [issue["location"] for issue in pacing["issues"]] == ["Scenes 1-3"]

    _run(db_path, "threads", "--plan-id", plan_id)
    assert json.loads(capsys.readouterr().out) == []

    _run(db_path, "reorder", "--plan-id", plan_id, "--kind", "scene", *reversed(scene_ids))
    assert "Reordered 3 scene record(s)." in capsys.readouterr().out
    _run(db_path, "show", "--plan-id", plan_id)
    snapshot = json.loads(capsys.readouterr().out)
    assert [scene["title"] for scene in snapshot["scenes"]] == ["C", "B", "A"]


def test_missing_plan_and_invalid_reorder_exit_with_message(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    db_path = tmp_path / "planner.db"
    with pytest.raises(SystemExit, match="Plan not found: ghost"):
        _run(db_path, "show", "--plan-id", "ghost")
    with pytest.raises(SystemExit, match="plan with id 'ghost' not found"):
        _run(db_path, "progress", "--plan-id", "ghost")

    _run(db_path, "create", "--writing-id", "writing-1")
    plan_id = _created_plan_id(capsys.readouterr().out)
    with pytest.raises(SystemExit, match="not scene records"):
        _run(db_path, "reorder", "--plan-id", plan_id, "--kind", "scene", "stray-id")


def test_delete_command_is_idempotent(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    db_path = tmp_path / "planner.db"
    _run(db_path, "create", "--writing-id", "writing-1", "--framework", "three-act")
    plan_id = _created_plan_id(capsys.readouterr().out)

    _run(db_path, "delete", "--plan-id", plan_id)
    assert "with 8 child record(s)" in capsys.readouterr().out
    _run(db_path, "delete", "--plan-id", plan_id)
    assert "nothing deleted" in capsys.readouterr().out


def test_db_path_defaults_to_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    db_path = tmp_path / "from-env.db"
    monkeypatch.setenv("STORY_PLANNER_DB_PATH", str(db_path))
    main(["create", "--writing-id", "writing-1"])
    assert "Plan id: " in capsys.readouterr().out
    assert db_path.exists()
