"""Display metadata for the closed planning enumerations."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Final

from story_planner.core.planning_schema import (
    ArcType,
    CharacterArcType,
    PacingType,
    SceneStatus,
    ThreadStatus,
    ThreadType,
)

FALLBACK_ARC_COLOR: Final = "#6b7280"


@dataclass(frozen=True)
class ArcTypeInfo:
    name: str
    color: str


@dataclass(frozen=True)
class CharacterArcTypeInfo:
    name: str
    description: str


@dataclass(frozen=True)
class ThreadTypeInfo:
    name: str
    icon: str


@dataclass(frozen=True)
class PacingTypeInfo:
    name: str
    description: str


ARC_TYPES: Final[Mapping[ArcType, ArcTypeInfo]] = MappingProxyType(
    {
        "main": ArcTypeInfo(name="Main Plot", color="#3b82f6"),
        "subplot": ArcTypeInfo(name="Subplot", color="#8b5cf6"),
        "character": ArcTypeInfo(name="Character Arc", color="#10b981"),
        "thematic": ArcTypeInfo(name="Thematic Arc", color="#f59e0b"),
    }
)

CHARACTER_ARC_TYPES: Final[Mapping[CharacterArcType, CharacterArcTypeInfo]] = MappingProxyType(
    {
        "positive": CharacterArcTypeInfo(name="Positive Change", description="Lie -> Truth"),
        "negative": CharacterArcTypeInfo(name="Negative Change", description="Truth -> Lie"),
        "flat": CharacterArcTypeInfo(name="Flat Arc", description="Holds Truth, Changes World"),
        "corruption": CharacterArcTypeInfo(
            name="Corruption Arc", description="Truth -> Corruption"
        ),
        "disillusionment": CharacterArcTypeInfo(
            name="Disillusionment Arc", description="Lie -> Tragic Truth"
        ),
    }
)

THREAD_TYPES: Final[Mapping[ThreadType, ThreadTypeInfo]] = MappingProxyType(
    {
        "mystery": ThreadTypeInfo(name="Mystery", icon="help-circle"),
        "romance": ThreadTypeInfo(name="Romance", icon="heart"),
        "conflict": ThreadTypeInfo(name="Conflict", icon="swords"),
        "quest": ThreadTypeInfo(name="Quest", icon="map"),
        "secret": ThreadTypeInfo(name="Secret", icon="lock"),
        "prophecy": ThreadTypeInfo(name="Prophecy", icon="scroll"),
    }
)

PACING_TYPES: Final[Mapping[PacingType, PacingTypeInfo]] = MappingProxyType(
    {
        "action": PacingTypeInfo(name="Action", description="High tension, fast pacing"),
        "reaction": PacingTypeInfo(name="Reaction", description="Emotional processing, slower"),
        "transition": PacingTypeInfo(
            name="Transition", description="Moving between story beats"
        ),
        "exposition": PacingTypeInfo(name="Exposition", description="Information delivery"),
    }
)

STATUS_LABELS: Final[Mapping[SceneStatus, str]] = MappingProxyType(
    {
        "idea": "Idea",
        "planned": "Planned",
        "in-progress": "In Progress",
        "drafted": "Drafted",
        "revised": "Revised",
        "complete": "Complete",
    }
)

THREAD_STATUS_LABELS: Final[Mapping[ThreadStatus, str]] = MappingProxyType(
    {
        "setup": "Setup",
        "developing": "Developing",
        "climax": "Climax",
        "resolved": "Resolved",
        "abandoned": "Abandoned",
    }
)


def arc_color(arc_type: str) -> str:
    """Return the display colour for an arc type, with a neutral fallback."""
    info = ARC_TYPES.get(arc_type)  # type: ignore[call-overload]
    return info.color if info is not None else FALLBACK_ARC_COLOR
