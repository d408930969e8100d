"""Compiled-in catalog of story structure frameworks and their beat templates."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Final, Literal

FrameworkKey = Literal[
    "three-act",
    "save-the-cat",
    "heros-journey",
    "seven-point",
    "story-circle",
    "custom",
]
CUSTOM_FRAMEWORK: Final[FrameworkKey] = "custom"
DEFAULT_FRAMEWORK: Final[FrameworkKey] = "three-act"


@dataclass(frozen=True)
class BeatTemplate:
    """One beat slot a framework pre-populates."""

    template_id: str
    name: str
    target_percent: int
    act_number: int


@dataclass(frozen=True)
class Framework:
    """Named planning template with an ordered list of beat slots."""

    key: FrameworkKey
    name: str
    description: str
    beats: tuple[BeatTemplate, ...]


def _beats(*rows: tuple[str, str, int, int]) -> tuple[BeatTemplate, ...]:
    return tuple(
        BeatTemplate(template_id=template_id, name=name, target_percent=percent, act_number=act)
        for template_id, name, percent, act in rows
    )


_FRAMEWORKS: dict[FrameworkKey, Framework] = {
    "three-act": Framework(
        key="three-act",
        name="Three-Act Structure",
        description="Classic beginning, middle, end structure",
        beats=_beats(
            ("setup", "Setup", 0, 1),
            ("inciting-incident", "Inciting Incident", 10, 1),
            ("plot-point-1", "Plot Point 1", 25, 1),
            ("rising-action", "Rising Action", 37, 2),
            ("midpoint", "Midpoint", 50, 2),
            ("plot-point-2", "Plot Point 2", 75, 2),
            ("climax", "Climax", 90, 3),
            ("resolution", "Resolution", 95, 3),
        ),
    ),
    "save-the-cat": Framework(
        key="save-the-cat",
        name="Save the Cat (15 Beats)",
        description="Blake Snyder's 15-beat structure for tight pacing",
        beats=_beats(
            ("opening-image", "Opening Image", 0, 1),
            ("theme-stated", "Theme Stated", 5, 1),
            ("setup", "Setup", 1, 1),
            ("catalyst", "Catalyst", 10, 1),
            ("debate", "Debate", 12, 1),
            ("break-into-two", "Break into Two", 20, 1),
            ("b-story", "B Story", 22, 2),
            ("fun-and-games", "Fun and Games", 30, 2),
            ("midpoint", "Midpoint", 50, 2),
            ("bad-guys-close-in", "Bad Guys Close In", 55, 2),
            ("all-is-lost", "All Is Lost", 75, 2),
            ("dark-night-of-soul", "Dark Night of the Soul", 77, 2),
            ("break-into-three", "Break into Three", 80, 3),
            ("finale", "Finale", 85, 3),
            ("final-image", "Final Image", 99, 3),
        ),
    ),
    "heros-journey": Framework(
        key="heros-journey",
        name="Hero's Journey",
        description="Joseph Campbell's monomyth structure",
        beats=_beats(
            ("ordinary-world", "Ordinary World", 0, 1),
            ("call-to-adventure", "Call to Adventure", 10, 1),
            ("refusal-of-call", "Refusal of the Call", 15, 1),
            ("meeting-mentor", "Meeting the Mentor", 20, 1),
            ("crossing-threshold", "Crossing the Threshold", 25, 1),
            ("tests-allies-enemies", "Tests, Allies, Enemies", 35, 2),
            ("approach-inmost-cave", "Approach to Inmost Cave", 45, 2),
            ("ordeal", "Ordeal", 50, 2),
            ("reward", "Reward", 60, 2),
            ("road-back", "The Road Back", 75, 3),
            ("resurrection", "Resurrection", 85, 3),
            ("return-with-elixir", "Return with Elixir", 95, 3),
        ),
    ),
    "seven-point": Framework(
        key="seven-point",
        name="Seven-Point Structure",
        description="Dan Wells' plot-driven structure",
        beats=_beats(
            ("hook", "Hook", 0, 1),
            ("plot-turn-1", "Plot Turn 1", 15, 1),
            ("pinch-1", "Pinch 1", 30, 2),
            ("midpoint", "Midpoint", 50, 2),
            ("pinch-2", "Pinch 2", 70, 2),
            ("plot-turn-2", "Plot Turn 2", 85, 3),
            ("resolution", "Resolution", 95, 3),
        ),
    ),
    "story-circle": Framework(
        key="story-circle",
        name="Story Circle (Dan Harmon)",
        description="Character transformation-focused 8-step structure",
        beats=_beats(
            ("you", "You (Comfort Zone)", 0, 1),
            ("need", "Need (Want Something)", 12, 1),
            ("go", "Go (Enter Unfamiliar)", 25, 1),
            ("search", "Search (Adapt)", 37, 2),
            ("find", "Find (Get What Wanted)", 50, 2),
            ("take", "Take (Pay the Price)", 62, 2),
            ("return", "Return (Go Back)", 75, 3),
            ("change", "Change (Capable of Change)", 87, 3),
        ),
    ),
    "custom": Framework(
        key="custom",
        name="Custom/Freeform",
        description="Create your own structure",
        beats=(),
    ),
}

FRAMEWORKS: Final = MappingProxyType(_FRAMEWORKS)


def get_framework(name: str) -> Framework | None:
    """Return one framework by key, or None for unknown names."""
    return FRAMEWORKS.get(name)  # type: ignore[call-overload]


def is_known_framework(name: str) -> bool:
    return name in FRAMEWORKS


def templates_for(name: str) -> tuple[BeatTemplate, ...]:
    """Return ordered beat templates; empty for `custom` and unknown names."""
    framework = get_framework(name)
    if framework is None:
        return ()
    return framework.beats


def list_frameworks() -> list[Framework]:
    """Return every framework in catalog order."""
    return list(FRAMEWORKS.values())
