"""Derived progress, pacing, and timeline views over one plan's records."""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final, Literal

from story_planner.core.catalogs import PACING_TYPES
from story_planner.core.planning_schema import (
    ArcRecord,
    BeatRecord,
    CharacterArcRecord,
    PlanOwnedRecord,
    SceneRecord,
    ThreadRecord,
)

IN_PROGRESS_STATUSES: Final[frozenset[str]] = frozenset({"in-progress", "drafted"})
CLOSED_THREAD_STATUSES: Final[frozenset[str]] = frozenset({"resolved", "abandoned"})
PLATEAU_WINDOW: Final = 3
MIN_SCENES_FOR_REACTION_CHECK: Final = 5

PacingIssueType = Literal["tension_plateau", "missing_reaction"]


@dataclass(frozen=True)
class CollectionProgress:
    total: int
    complete: int
    in_progress: int
    percent: int


@dataclass(frozen=True)
class ThreadProgress:
    total: int
    resolved: int
    abandoned: int
    unresolved: int


@dataclass(frozen=True)
class OverallProgress:
    """Headline completion counted over beats and scenes only."""

    total_items: int
    completed_items: int

    @property
    def percent(self) -> int:
        return percent_complete(self.completed_items, self.total_items)


@dataclass(frozen=True)
class PlanProgress:
    beats: CollectionProgress
    scenes: CollectionProgress
    arcs: CollectionProgress
    character_arcs: CollectionProgress
    threads: ThreadProgress
    overall: OverallProgress


@dataclass(frozen=True)
class TensionPoint:
    scene_id: str
    title: str
    position: int
    tension: int


@dataclass(frozen=True)
class PacingIssue:
    issue_type: PacingIssueType
    location: str | None
    message: str
    suggestion: str


@dataclass(frozen=True)
class PacingAnalysis:
    tension_curve: list[TensionPoint]
    pacing_distribution: dict[str, int]
    issues: list[PacingIssue]


@dataclass(frozen=True)
class SceneTimelinePosition:
    scene_id: str
    position: float
    linked_beat_id: str | None


def percent_complete(complete: int, total: int) -> int:
    """Whole-number completion percentage, rounding halves up; 0 for empty sets."""
    if total <= 0:
        return 0
    return int(math.floor(complete / total * 100 + 0.5))


def collection_progress(records: Sequence[PlanOwnedRecord]) -> CollectionProgress:
    statuses = [str(getattr(record, "status", "")) for record in records]
    complete = sum(1 for status in statuses if status == "complete")
    in_progress = sum(1 for status in statuses if status in IN_PROGRESS_STATUSES)
    return CollectionProgress(
        total=len(statuses),
        complete=complete,
        in_progress=in_progress,
        percent=percent_complete(complete, len(statuses)),
    )


def unresolved_threads(threads: Sequence[ThreadRecord]) -> list[ThreadRecord]:
    """Threads that are neither resolved nor abandoned."""
    return [thread for thread in threads if thread.status not in CLOSED_THREAD_STATUSES]


def plan_progress(
    *,
    beats: Sequence[BeatRecord],
    scenes: Sequence[SceneRecord],
    arcs: Sequence[ArcRecord],
    character_arcs: Sequence[CharacterArcRecord],
    threads: Sequence[ThreadRecord],
) -> PlanProgress:
    """Summarize completion per collection plus the beat/scene headline ratio."""
    beat_progress = collection_progress(beats)
    scene_progress = collection_progress(scenes)
    return PlanProgress(
        beats=beat_progress,
        scenes=scene_progress,
        arcs=collection_progress(arcs),
        character_arcs=collection_progress(character_arcs),
        threads=ThreadProgress(
            total=len(threads),
            resolved=sum(1 for thread in threads if thread.status == "resolved"),
            abandoned=sum(1 for thread in threads if thread.status == "abandoned"),
            unresolved=len(unresolved_threads(threads)),
        ),
        overall=OverallProgress(
            total_items=beat_progress.total + scene_progress.total,
            completed_items=beat_progress.complete + scene_progress.complete,
        ),
    )


def _in_stored_order(scenes: Sequence[SceneRecord]) -> list[SceneRecord]:
    return sorted(scenes, key=lambda scene: scene.order)


def pacing_analysis(scenes: Sequence[SceneRecord]) -> PacingAnalysis:
    """Build the tension curve and apply the deterministic pacing rules.

    A plateau issue is emitted for every window of three consecutive scenes
    sharing one tension level, so overlapping windows each report. The
    missing-reaction issue needs at least five scenes and no reaction scene.
    """
    ordered = _in_stored_order(scenes)
    tension_curve = [
        TensionPoint(
            scene_id=scene.id,
            title=scene.title,
            position=index,
            tension=scene.tension_level,
        )
        for index, scene in enumerate(ordered)
    ]
    issues: list[PacingIssue] = []
    for start in range(len(ordered) - PLATEAU_WINDOW + 1):
        window = ordered[start : start + PLATEAU_WINDOW]
        levels = {scene.tension_level for scene in window}
        if len(levels) != 1:
            continue
        issues.append(
            PacingIssue(
                issue_type="tension_plateau",
                location=f"Scenes {start + 1}-{start + PLATEAU_WINDOW}",
                message=(
                    f"Tension stays at {window[0].tension_level}/10 "
                    f"for {PLATEAU_WINDOW} consecutive scenes"
                ),
                suggestion="Consider varying tension levels to maintain reader engagement",
            )
        )

    counts = Counter(scene.pacing_type for scene in ordered)
    distribution = {pacing_type: counts.get(pacing_type, 0) for pacing_type in PACING_TYPES}
    if len(ordered) >= MIN_SCENES_FOR_REACTION_CHECK and distribution["reaction"] == 0:
        issues.append(
            PacingIssue(
                issue_type="missing_reaction",
                location=None,
                message="No reaction scenes found",
                suggestion=(
                    "Add reaction scenes to give characters time to process events emotionally"
                ),
            )
        )
    return PacingAnalysis(
        tension_curve=tension_curve,
        pacing_distribution=distribution,
        issues=issues,
    )


def timeline_positions(
    scenes: Sequence[SceneRecord], beats: Sequence[BeatRecord]
) -> list[SceneTimelinePosition]:
    """Place scenes on a 0-100 axis.

    Scenes are spread evenly by stored order unless linked to a known beat,
    in which case the first such beat (in plan order) supplies the position.
    """
    ordered = _in_stored_order(scenes)
    ordered_beats = sorted(beats, key=lambda beat: beat.order)
    total = len(ordered)
    positions: list[SceneTimelinePosition] = []
    for index, scene in enumerate(ordered):
        position = (index + 0.5) / total * 100
        linked_beat_id: str | None = None
        if scene.linked_beat_ids:
            linked = next(
                (beat for beat in ordered_beats if beat.id in scene.linked_beat_ids), None
            )
            if linked is not None:
                position = float(linked.target_percentage)
                linked_beat_id = linked.id
        positions.append(
            SceneTimelinePosition(
                scene_id=scene.id, position=position, linked_beat_id=linked_beat_id
            )
        )
    return positions
