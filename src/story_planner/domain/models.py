"""Value types exchanged between the planning service and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field

from story_planner.core.planning_schema import (
    ArcRecord,
    BeatRecord,
    CharacterArcRecord,
    PlanRecord,
    SceneRecord,
    ThreadRecord,
)

UNKNOWN_CHARACTER_NAME = "Unknown Character"


@dataclass(frozen=True)
class CharacterProfile:
    """Read-only view of a person from the external character store."""

    character_id: str
    first_name: str
    last_name: str = ""
    bio: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or UNKNOWN_CHARACTER_NAME


@dataclass(frozen=True)
class CascadeDeleteReport:
    """Outcome of removing one plan with every record it owns."""

    plan_id: str
    plan_existed: bool
    deleted_counts: dict[str, int] = field(default_factory=dict)

    @property
    def total_deleted(self) -> int:
        return sum(self.deleted_counts.values())


@dataclass(frozen=True)
class PlanSnapshot:
    """One plan with all child collections in stored order."""

    plan: PlanRecord
    arcs: list[ArcRecord]
    beats: list[BeatRecord]
    scenes: list[SceneRecord]
    character_arcs: list[CharacterArcRecord]
    threads: list[ThreadRecord]
