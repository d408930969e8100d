"""Fail when a story_planner layer imports a layer it must not depend on."""

from __future__ import annotations

import ast
from collections.abc import Iterator
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
PACKAGE_NAME = "story_planner"
DEFAULT_SOURCE_ROOT = PROJECT_ROOT / "src" / PACKAGE_NAME
KNOWN_LAYERS = {"core", "domain", "application", "adapters", "cli"}
# Inner layers never reach outward; adapters and cli may import anything.
RULES: dict[str, set[str]] = {
    "core": {"domain", "application", "adapters", "cli"},
    "domain": {"application", "adapters", "cli"},
    "application": {"adapters", "cli"},
}


def _module_parts(path: Path, source_root: Path) -> list[str] | None:
    try:
        relative = path.relative_to(source_root)
    except ValueError:
        return None
    if not relative.parts:
        return None
    return [PACKAGE_NAME, *relative.with_suffix("").parts]


def _absolute_targets(node: ast.Import | ast.ImportFrom, module_parts: list[str]) -> Iterator[str]:
    """Yield the absolute dotted names an import statement can bind."""
    if isinstance(node, ast.Import):
        yield from (alias.name for alias in node.names)
        return
    if node.level:
        package = module_parts[:-1]
        if node.level > len(package):
            return
        base = package[: len(package) - node.level + 1]
    else:
        base = []
    prefix = ".".join([*base, *(node.module.split(".") if node.module else [])])
    if not prefix:
        return
    yield prefix
    # `from story_planner import adapters` names the layer in the alias.
    for alias in node.names:
        yield f"{prefix}.{alias.name}"


def _layer_of(module_name: str) -> str | None:
    parts = module_name.split(".")
    if len(parts) < 2 or parts[0] != PACKAGE_NAME:
        return None
    return parts[1] if parts[1] in KNOWN_LAYERS else None


def check_file(path: Path, source_root: Path = DEFAULT_SOURCE_ROOT) -> list[str]:
    module_parts = _module_parts(path, source_root)
    if module_parts is None or len(module_parts) < 2:
        return []
    layer = module_parts[1]
    banned_layers = RULES.get(layer, set())
    if not banned_layers:
        return []

    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    violations: list[str] = []
    for node in ast.walk(tree):
        if not isinstance(node, (ast.Import, ast.ImportFrom)):
            continue
        imported = {_layer_of(name) for name in _absolute_targets(node, module_parts)}
        for imported_layer in sorted(item for item in imported if item in banned_layers):
            violations.append(f"{path}: {layer} must not import {PACKAGE_NAME}.{imported_layer}")
    return violations


def check_import_boundaries(source_root: Path = DEFAULT_SOURCE_ROOT) -> list[str]:
    violations: list[str] = []
    for path in sorted(source_root.rglob("*.py")):
        violations.extend(check_file(path, source_root))
    return violations


def main() -> None:
    violations = check_import_boundaries()
    if violations:
        raise SystemExit("\n".join(violations))
    print("import boundary checks passed")


if __name__ == "__main__":
    main()
