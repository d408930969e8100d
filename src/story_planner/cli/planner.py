"""CLI for creating, inspecting, and analyzing story plans."""

from __future__ import annotations

import argparse
import json
from dataclasses import asdict
from pathlib import Path
from typing import get_args

from story_planner.adapters.observability import configure_runtime_logging
from story_planner.adapters.planning_store_factory import create_planning_store, default_db_path
from story_planner.application.planning import StoryPlanningService
from story_planner.core.frameworks import list_frameworks
from story_planner.core.planning_errors import PlanningError
from story_planner.core.planning_schema import CHILD_KINDS, PacingType


def build_arg_parser() -> argparse.ArgumentParser:
    """Define CLI flags and subcommands for plan management."""
    parser = argparse.ArgumentParser(description="Plan story structure, scenes, and threads.")
    parser.add_argument(
        "--db-path",
        default=None,
        help="SQLite database path (default: STORY_PLANNER_DB_PATH or work/local).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("frameworks", help="List structure frameworks and their beats.")

    create = commands.add_parser("create", help="Create a plan for one piece of writing.")
    create.add_argument("--writing-id", required=True)
    create.add_argument("--title", default="")
    create.add_argument("--framework", default=None)
    create.add_argument("--premise", default="")
    create.add_argument("--theme", default="")
    create.add_argument("--genre", action="append", default=[], dest="genres")
    create.add_argument("--target-word-count", type=int, default=None)

    for name, help_text in (
        ("show", "Print a plan with every child record as JSON."),
        ("progress", "Print completion counts for a plan."),
        ("pacing", "Print the tension curve and pacing issues."),
        ("threads", "Print threads that are still unresolved."),
        ("delete", "Delete a plan and everything it owns."),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("--plan-id", required=True)

    add_scene = commands.add_parser("add-scene", help="Append a scene to a plan.")
    add_scene.add_argument("--plan-id", required=True)
    add_scene.add_argument("--title", required=True)
    add_scene.add_argument("--summary", default="")
    add_scene.add_argument("--chapter-id", default=None)
    add_scene.add_argument("--tension", type=int, default=5)
    add_scene.add_argument("--pacing", choices=list(get_args(PacingType)), default="action")

    reorder = commands.add_parser("reorder", help="Rewrite the order of a plan's records.")
    reorder.add_argument("--plan-id", required=True)
    reorder.add_argument("--kind", choices=list(CHILD_KINDS), required=True)
    reorder.add_argument("ids", nargs="+")
    return parser


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2))


def _run(service: StoryPlanningService, parsed: argparse.Namespace) -> None:
    command = str(parsed.command)
    if command == "frameworks":
        _print_json(
            [
                {
                    "key": framework.key,
                    "name": framework.name,
                    "description": framework.description,
                    "beats": [asdict(beat) for beat in framework.beats],
                }
                for framework in list_frameworks()
            ]
        )
        return
    if command == "create":
        plan_id = service.create_plan(
            str(parsed.writing_id),
            title=str(parsed.title),
            framework=parsed.framework,
            premise=str(parsed.premise),
            theme=str(parsed.theme),
            genres=[str(genre) for genre in parsed.genres],
            target_word_count=parsed.target_word_count,
        )
        print(f"Plan id: {plan_id}")
        print(f"Beats created: {len(service.beats(plan_id))}")
        return
    if command == "show":
        snapshot = service.get_plan_snapshot(str(parsed.plan_id))
        if snapshot is None:
            raise SystemExit(f"Plan not found: {parsed.plan_id}")
        _print_json(
            {
                "plan": snapshot.plan.model_dump(mode="json"),
                "arcs": [record.model_dump(mode="json") for record in snapshot.arcs],
                "beats": [record.model_dump(mode="json") for record in snapshot.beats],
                "scenes": [record.model_dump(mode="json") for record in snapshot.scenes],
                "character_arcs": [
                    record.model_dump(mode="json") for record in snapshot.character_arcs
                ],
                "threads": [record.model_dump(mode="json") for record in snapshot.threads],
            }
        )
        return
    if command == "progress":
        progress = service.progress(str(parsed.plan_id))
        _print_json({**asdict(progress), "overall_percent": progress.overall.percent})
        return
    if command == "pacing":
        _print_json(asdict(service.pacing(str(parsed.plan_id))))
        return
    if command == "threads":
        _print_json(
            [
                thread.model_dump(mode="json")
                for thread in service.unresolved_threads(str(parsed.plan_id))
            ]
        )
        return
    if command == "add-scene":
        scene_id = service.create_scene(
            str(parsed.plan_id),
            title=str(parsed.title),
            summary=str(parsed.summary),
            chapter_id=parsed.chapter_id,
            tension_level=int(parsed.tension),
            pacing_type=str(parsed.pacing),
        )
        print(f"Scene id: {scene_id}")
        return
    if command == "reorder":
        ids = [str(item) for item in parsed.ids]
        service.reorder(parsed.kind, str(parsed.plan_id), ids)
        print(f"Reordered {len(ids)} {parsed.kind} record(s).")
        return
    if command == "delete":
        report = service.delete_plan(str(parsed.plan_id))
        if not report.plan_existed:
            print(f"Plan not found, nothing deleted: {report.plan_id}")
            return
        print(f"Deleted plan {report.plan_id} with {report.total_deleted} child record(s).")
        return
    raise SystemExit(f"Unknown command: {command}")


def main(argv: list[str] | None = None) -> None:
    """Run one planning command against the configured store."""
    parser = build_arg_parser()
    parsed = parser.parse_args(argv)
    configure_runtime_logging()

    db_path = Path(str(parsed.db_path)) if parsed.db_path else default_db_path()
    service = StoryPlanningService(create_planning_store(db_path=db_path))
    try:
        _run(service, parsed)
    except PlanningError as exc:
        raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
    main()
