"""Planning record schema shared by stores, services, and analytics."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Final, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

PLANNING_SCHEMA_VERSION: Final[Literal["story_planning.v1"]] = "story_planning.v1"

EntityKind = Literal["plan", "arc", "beat", "scene", "character_arc", "thread"]
ArcType = Literal["main", "subplot", "character", "thematic"]
CharacterArcType = Literal["positive", "negative", "flat", "corruption", "disillusionment"]
ThreadType = Literal["mystery", "romance", "conflict", "quest", "secret", "prophecy"]
PacingType = Literal["action", "reaction", "transition", "exposition"]
PlanStatus = Literal["planned", "in-progress", "drafted", "revised", "complete"]
SceneStatus = Literal["idea", "planned", "in-progress", "drafted", "revised", "complete"]
ThreadStatus = Literal["setup", "developing", "climax", "resolved", "abandoned"]

CHILD_KINDS: Final[tuple[EntityKind, ...]] = (
    "arc",
    "beat",
    "scene",
    "character_arc",
    "thread",
)
IMMUTABLE_FIELDS: Final[frozenset[str]] = frozenset(
    {"id", "plan_id", "created_at_utc", "updated_at_utc"}
)


def utc_now_iso() -> str:
    """Return current UTC timestamp in ISO-8601 form."""
    return datetime.now(UTC).isoformat()


def new_record_id() -> str:
    """Return a fresh opaque record identifier."""
    return uuid4().hex


def normalize_id_set(values: list[str]) -> list[str]:
    """Collapse an id list into its canonical set form (sorted, unique, non-blank)."""
    return sorted({value.strip() for value in values if value.strip()})


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


class SchemaModel(BaseModel):
    """Strict model configuration for planning records."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class PlanningRecord(SchemaModel):
    """Fields every stored planning record carries."""

    id: str = Field(min_length=1, max_length=64)
    created_at_utc: str = Field(min_length=1)
    updated_at_utc: str = Field(min_length=1)


class PlanRecord(PlanningRecord):
    """Top-level planning container for one piece of writing."""

    writing_id: str = Field(min_length=1, max_length=200)
    title: str = Field(default="Untitled Plan", max_length=300)
    framework: str = Field(default="three-act", min_length=1, max_length=60)
    premise: str = ""
    synopsis: str = ""
    theme: str = ""
    genres: list[str] = Field(default_factory=list)
    target_word_count: int | None = Field(default=None, ge=0)
    estimated_chapters: int | None = Field(default=None, ge=0)

    @field_validator("title")
    @classmethod
    def _default_title(cls, value: str) -> str:
        return value or "Untitled Plan"

    @field_validator("genres")
    @classmethod
    def _normalize_genres(cls, values: list[str]) -> list[str]:
        return normalize_id_set(values)


class PlanOwnedRecord(PlanningRecord):
    """Record that belongs to exactly one plan and sorts by `order` within it."""

    plan_id: str = Field(min_length=1, max_length=64)
    order: int = 0


class ArcRecord(PlanOwnedRecord):
    """Macro narrative arc spanning the plan."""

    name: str = Field(default="Untitled Arc", max_length=300)
    arc_type: ArcType = "subplot"
    description: str = ""
    starting_state: str = ""
    ending_state: str = ""
    value_at_stake: str = ""
    status: PlanStatus = "planned"
    linked_character_ids: list[str] = Field(default_factory=list)
    color: str = Field(default="#6b7280", max_length=32)

    @field_validator("name")
    @classmethod
    def _default_name(cls, value: str) -> str:
        return value or "Untitled Arc"

    @field_validator("linked_character_ids")
    @classmethod
    def _normalize_members(cls, values: list[str]) -> list[str]:
        return normalize_id_set(values)


class BeatRecord(PlanOwnedRecord):
    """Named structural milestone at a target percentage through the story."""

    arc_id: str | None = None
    name: str = Field(default="Untitled Beat", max_length=300)
    beat_type: str = Field(default="custom", min_length=1, max_length=120)
    description: str = ""
    target_percentage: int = Field(default=50, ge=0, le=100)
    target_word_count: int | None = Field(default=None, ge=0)
    actual_chapter_id: str | None = None
    status: PlanStatus = "planned"
    notes: str = ""
    act_number: int = Field(default=2, ge=1, le=3)

    @field_validator("name")
    @classmethod
    def _default_name(cls, value: str) -> str:
        return value or "Untitled Beat"

    @field_validator("arc_id", "actual_chapter_id")
    @classmethod
    def _optional_refs(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


class SceneRecord(PlanOwnedRecord):
    """Planned narrative unit using the scene/sequel fields."""

    chapter_id: str | None = None
    title: str = Field(default="Untitled Scene", max_length=300)
    summary: str = ""
    purpose: str = ""
    pov_character_id: str | None = None
    location_id: str | None = None
    timeline_position: str = ""
    goal: str = ""
    conflict: str = ""
    disaster: str = ""
    reaction: str = ""
    dilemma: str = ""
    decision: str = ""
    tension_level: int = Field(default=5, ge=1, le=10)
    emotional_tones: list[str] = Field(default_factory=list)
    pacing_type: PacingType = "action"
    linked_arc_ids: list[str] = Field(default_factory=list)
    present_character_ids: list[str] = Field(default_factory=list)
    linked_beat_ids: list[str] = Field(default_factory=list)
    estimated_word_count: int | None = Field(default=None, ge=0)
    status: SceneStatus = "idea"
    notes: str = ""

    @field_validator("title")
    @classmethod
    def _default_title(cls, value: str) -> str:
        return value or "Untitled Scene"

    @field_validator("chapter_id", "pov_character_id", "location_id")
    @classmethod
    def _optional_refs(cls, value: str | None) -> str | None:
        return _blank_to_none(value)

    @field_validator("linked_arc_ids", "present_character_ids", "linked_beat_ids")
    @classmethod
    def _normalize_members(cls, values: list[str]) -> list[str]:
        return normalize_id_set(values)

    @field_validator("emotional_tones")
    @classmethod
    def _normalize_tones(cls, values: list[str]) -> list[str]:
        normalized = [value.strip() for value in values if value.strip()]
        return list(dict.fromkeys(normalized))


class Milestone(SchemaModel):
    """One step of tracked character development."""

    id: str = Field(min_length=1, max_length=64)
    description: str = ""
    internal_shift: str = ""
    external_change: str = ""
    scene_id: str | None = None


class CharacterArcRecord(PlanOwnedRecord):
    """Psychological development of one character within a plan."""

    character_id: str = Field(min_length=1, max_length=200)
    arc_type: CharacterArcType = "positive"
    starting_belief: str = ""
    ending_belief: str = ""
    ghost: str = ""
    want: str = ""
    need: str = ""
    milestones: list[Milestone] = Field(default_factory=list)
    linked_arc_id: str | None = None
    status: PlanStatus = "planned"
    notes: str = ""

    @field_validator("linked_arc_id")
    @classmethod
    def _optional_refs(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


class Plant(SchemaModel):
    """Foreshadowing element planted for a thread."""

    id: str = Field(min_length=1, max_length=64)
    description: str = ""
    scene_id: str | None = None
    is_payoff: bool = False
    created_at_utc: str = Field(default_factory=utc_now_iso)


class ThreadRecord(PlanOwnedRecord):
    """Tracked narrative throughline with setup, payoff, and plants."""

    name: str = Field(default="Untitled Thread", max_length=300)
    description: str = ""
    thread_type: ThreadType = "mystery"
    setup_scene_id: str | None = None
    payoff_scene_id: str | None = None
    status: ThreadStatus = "setup"
    involved_character_ids: list[str] = Field(default_factory=list)
    linked_scene_ids: list[str] = Field(default_factory=list)
    linked_codex_entry_ids: list[str] = Field(default_factory=list)
    plants: list[Plant] = Field(default_factory=list)
    notes: str = ""

    @field_validator("name")
    @classmethod
    def _default_name(cls, value: str) -> str:
        return value or "Untitled Thread"

    @field_validator("setup_scene_id", "payoff_scene_id")
    @classmethod
    def _optional_refs(cls, value: str | None) -> str | None:
        return _blank_to_none(value)

    @field_validator("involved_character_ids", "linked_scene_ids", "linked_codex_entry_ids")
    @classmethod
    def _normalize_members(cls, values: list[str]) -> list[str]:
        return normalize_id_set(values)


RECORD_TYPES: Final[dict[EntityKind, type[PlanningRecord]]] = {
    "plan": PlanRecord,
    "arc": ArcRecord,
    "beat": BeatRecord,
    "scene": SceneRecord,
    "character_arc": CharacterArcRecord,
    "thread": ThreadRecord,
}

# Many-to-many relations stored as id sets; changed only through toggles.
MEMBERSHIP_FIELDS: Final[dict[EntityKind, frozenset[str]]] = {
    "plan": frozenset(),
    "arc": frozenset({"linked_character_ids"}),
    "beat": frozenset(),
    "scene": frozenset({"linked_arc_ids", "present_character_ids", "linked_beat_ids"}),
    "character_arc": frozenset(),
    "thread": frozenset(
        {"involved_character_ids", "linked_scene_ids", "linked_codex_entry_ids"}
    ),
}

# Ordered sub-record lists with dedicated add/remove operations.
NESTED_LIST_FIELDS: Final[dict[EntityKind, frozenset[str]]] = {
    "plan": frozenset(),
    "arc": frozenset(),
    "beat": frozenset(),
    "scene": frozenset(),
    "character_arc": frozenset({"milestones"}),
    "thread": frozenset({"plants"}),
}


def is_child_kind(kind: str) -> bool:
    """Return whether `kind` names a plan-owned entity collection."""
    return kind in CHILD_KINDS
