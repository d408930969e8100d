from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType

ROOT = Path(__file__).resolve().parents[1]


def _load_checker_module() -> ModuleType:
    module_path = ROOT / "tools" / "check_imports.py"
    spec = importlib.util.spec_from_file_location("check_imports_tool", module_path)
    assert spec is not None
    loader = spec.loader
    assert loader is not None
    module = importlib.util.module_from_spec(spec)
    loader.exec_module(module)
    return module


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_check_file_allows_core_internal_import(tmp_path: Path) -> None:
    checker = _load_checker_module()
    source_root = tmp_path / "src" / "story_planner"
    core_file = source_root / "core" / "relationships.py"
    _write(core_file, "from story_planner.core.planning_schema import SceneRecord\n")
    assert checker.check_file(core_file, source_root) == []


def test_check_file_rejects_core_importing_adapters(tmp_path: Path) -> None:
    checker = _load_checker_module()
    source_root = tmp_path / "src" / "story_planner"
    core_file = source_root / "core" / "relationships.py"
    _write(core_file, "from story_planner.adapters import sqlite_planning_store\n")
    violations = checker.check_file(core_file, source_root)
    assert len(violations) == 1
    assert "core must not import story_planner.adapters" in violations[0]


def test_check_file_rejects_relative_import_into_application(tmp_path: Path) -> None:
    checker = _load_checker_module()
    source_root = tmp_path / "src" / "story_planner"
    domain_file = source_root / "domain" / "ports.py"
    _write(domain_file, "from ..application.planning import StoryPlanningService\n")
    violations = checker.check_file(domain_file, source_root)
    assert violations == [
        f"{domain_file}: domain must not import story_planner.application"
    ]


def test_check_file_allows_cli_importing_adapters(tmp_path: Path) -> None:
    checker = _load_checker_module()
    source_root = tmp_path / "src" / "story_planner"
    cli_file = source_root / "cli" / "planner.py"
    _write(cli_file, "import story_planner.adapters.planning_store_factory\n")
    assert checker.check_file(cli_file, source_root) == []


def test_repository_source_tree_respects_layer_rules() -> None:
    checker = _load_checker_module()
    assert checker.check_import_boundaries() == []
