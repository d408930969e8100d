"""Suggestion boundary between the planning service and a text generator.

Context is assembled from stored records, rendered into a prompt that asks
for a single JSON object, and the reply is parsed exactly once into a typed
payload. Every outcome is a tagged result; nothing is retried here.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Final, Generic, Literal, NoReturn, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from story_planner.application.planning import StoryPlanningService
from story_planner.core.catalogs import (
    ARC_TYPES,
    CHARACTER_ARC_TYPES,
    STATUS_LABELS,
    THREAD_STATUS_LABELS,
    THREAD_TYPES,
)
from story_planner.core.frameworks import get_framework
from story_planner.core.plan_analytics import unresolved_threads
from story_planner.core.planning_errors import SuggestionAdapterError
from story_planner.core.planning_schema import (
    ArcRecord,
    BeatRecord,
    CharacterArcRecord,
    PacingType,
    SceneRecord,
    ThreadRecord,
)
from story_planner.core.relationships import scenes_for_character_arc
from story_planner.domain.models import UNKNOWN_CHARACTER_NAME
from story_planner.domain.ports import CharacterDirectory, TextGenerator

logger = logging.getLogger(__name__)

JSON_OBJECT_PATTERN: Final = re.compile(r"\{[\s\S]*\}")
MAX_CONTEXT_BEATS: Final = 5
MIN_SCENES_FOR_PACING_ASSESSMENT: Final = 3
JSON_ONLY_FOOTER: Final = "Respond ONLY with valid JSON, no additional text."


class CamelModel(BaseModel):
    """Accepts both snake_case and camelCase keys; dumps camelCase by alias."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class SuggestionPayload(CamelModel):
    """Base for parsed generator replies; unknown reply keys are ignored."""

    model_config = ConfigDict(extra="ignore")


class BeatSuggestion(SuggestionPayload):
    description: str = Field(min_length=1)
    notes: str = ""


class ArcSuggestion(SuggestionPayload):
    description: str = Field(min_length=1)
    starting_state: str = ""
    ending_state: str = ""
    value_at_stake: str = ""
    key_turning_points: list[str] = Field(default_factory=list)


class ThreadSuggestion(SuggestionPayload):
    description: str = Field(min_length=1)
    notes: str = ""
    setup_suggestion: str = ""
    payoff_suggestion: str = ""
    suggested_plants: list[str] = Field(default_factory=list)


class CharacterArcSuggestion(SuggestionPayload):
    ghost: str
    want: str
    need: str
    starting_belief: str
    ending_belief: str


class SceneSuggestion(SuggestionPayload):
    refined_summary: str = Field(min_length=1)
    goal: str = ""
    conflict: str = ""
    disaster: str = ""
    tension_level: int | None = Field(default=None, ge=1, le=10)
    pacing_type: PacingType | None = None


class PacingAssessment(SuggestionPayload):
    overall_assessment: str = Field(min_length=1)
    priority_fix: str = ""
    strengths: list[str] = Field(default_factory=list)


class BeatContextEntry(CamelModel):
    name: str
    description: str


class BeatContext(CamelModel):
    beat_name: str
    beat_type: str
    framework: str
    premise: str
    existing_beats: list[BeatContextEntry] = Field(default_factory=list)


class ArcContext(CamelModel):
    arc_name: str
    arc_type: str
    current_description: str
    linked_characters: list[str] = Field(default_factory=list)


class ThreadContext(CamelModel):
    thread_name: str
    thread_type: str
    current_description: str
    involved_characters: list[str] = Field(default_factory=list)
    linked_scenes: list[str] = Field(default_factory=list)


class CharacterArcContext(CamelModel):
    character_name: str
    character_bio: str
    arc_type: str
    existing_scenes: list[str] = Field(default_factory=list)


class SceneContext(CamelModel):
    scene_title: str
    summary: str
    status: str
    chapter: str
    beat_name: str
    beat_description: str
    pov_character: str
    pov_background: str
    other_characters: list[str] = Field(default_factory=list)
    active_threads: list[str] = Field(default_factory=list)


class PacingSceneEntry(CamelModel):
    position: int
    title: str
    tension: int
    pacing: str


class PacingContext(CamelModel):
    scenes: list[PacingSceneEntry] = Field(default_factory=list)
    detected_issues: list[str] = Field(default_factory=list)


PayloadT = TypeVar("PayloadT", bound=SuggestionPayload)


@dataclass(frozen=True)
class SuggestionSuccess(Generic[PayloadT]):
    payload: PayloadT
    ok: Literal[True] = True

    def unwrap(self) -> PayloadT:
        return self.payload


@dataclass(frozen=True)
class SuggestionFailure:
    reason: str
    ok: Literal[False] = False

    def unwrap(self) -> NoReturn:
        raise SuggestionAdapterError(self.reason)


def parse_suggestion(
    raw: str, payload_type: type[PayloadT]
) -> SuggestionSuccess[PayloadT] | SuggestionFailure:
    """Extract the outermost JSON object from a reply and validate it."""
    match = JSON_OBJECT_PATTERN.search(raw)
    if match is None:
        return SuggestionFailure("reply did not contain a JSON object")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        return SuggestionFailure(f"reply JSON was invalid: {exc.msg}")
    try:
        payload = payload_type.model_validate(data)
    except ValidationError as exc:
        fields = sorted({".".join(str(item) for item in error["loc"]) for error in exc.errors()})
        return SuggestionFailure(
            f"reply did not match {payload_type.__name__}: invalid fields {fields}"
        )
    return SuggestionSuccess(payload)


def _bullets(lines: list[str], empty: str) -> str:
    return "\n".join(f"- {line}" for line in lines) if lines else empty


def _beat_prompt(context: BeatContext) -> str:
    existing = [f"{entry.name}: {entry.description}" for entry in context.existing_beats]
    return f"""You are a story structure expert helping develop one story beat.

FRAMEWORK: {context.framework}
BEAT: {context.beat_name}
BEAT TYPE: {context.beat_type}

STORY PREMISE:
{context.premise or "Not yet defined"}

EXISTING BEAT CONTENT:
{_bullets(existing, "No other beats developed yet")}

Suggest what should happen at the "{context.beat_name}" beat (2-3 sentences) and
planning notes for the writer. Respond in this JSON format:
{{
  "description": "What happens at this beat",
  "notes": "Planning notes and considerations"
}}

{JSON_ONLY_FOOTER}"""


def _arc_prompt(context: ArcContext) -> str:
    return f"""You are helping develop a story arc.

ARC NAME: {context.arc_name}
ARC TYPE: {context.arc_type}
CURRENT DESCRIPTION: {context.current_description or "None yet"}
LINKED CHARACTERS: {", ".join(context.linked_characters) or "None"}

A story arc tracks the change in a value at stake from a starting state to an
ending state. Respond in this JSON format:
{{
  "description": "2-3 sentences on the arc and its narrative purpose",
  "startingState": "Situation at the start of the arc",
  "endingState": "Situation at the resolution of the arc",
  "valueAtStake": "What could be lost or gained",
  "keyTurningPoints": ["turning point", "midpoint reversal", "crisis"]
}}

{JSON_ONLY_FOOTER}"""


def _thread_prompt(context: ThreadContext) -> str:
    return f"""You are helping weave a plot thread through a story.

THREAD NAME: {context.thread_name}
THREAD TYPE: {context.thread_type}
CURRENT DESCRIPTION: {context.current_description or "None yet"}
INVOLVED CHARACTERS: {", ".join(context.involved_characters) or "None"}
LINKED SCENES: {", ".join(context.linked_scenes) or "None"}

Respond in this JSON format:
{{
  "description": "2-3 sentences on the thread and its narrative purpose",
  "notes": "How to develop this thread effectively",
  "setupSuggestion": "How to set the thread up early",
  "payoffSuggestion": "How the thread could resolve satisfyingly",
  "suggestedPlants": ["foreshadowing element", "foreshadowing element"]
}}

{JSON_ONLY_FOOTER}"""


def _character_arc_prompt(context: CharacterArcContext) -> str:
    return f"""You are helping develop the psychological arc of a character.

CHARACTER: {context.character_name}
BACKGROUND: {context.character_bio or "Not provided"}
ARC TYPE: {context.arc_type}
SCENES FEATURING THIS CHARACTER: {", ".join(context.existing_scenes) or "None yet"}

Respond in this JSON format:
{{
  "ghost": "The backstory wound shaping their worldview",
  "want": "What they consciously pursue",
  "need": "What they actually need to grow",
  "startingBelief": "What they believe at the start",
  "endingBelief": "What they believe at the end"
}}

{JSON_ONLY_FOOTER}"""


def _scene_prompt(context: SceneContext) -> str:
    return f"""You are helping develop a scene.

SCENE: {context.scene_title}
CURRENT SUMMARY: {context.summary or "Not yet developed"}
STATUS: {context.status}
CHAPTER: {context.chapter}
BEAT BEING FULFILLED: {context.beat_name}
BEAT PURPOSE: {context.beat_description}
POV CHARACTER: {context.pov_character}
POV BACKGROUND: {context.pov_background or "Not provided"}
OTHER CHARACTERS PRESENT: {", ".join(context.other_characters) or "None specified"}

ACTIVE PLOT THREADS:
{_bullets(context.active_threads, "None specified")}

Respond in this JSON format:
{{
  "refinedSummary": "2-3 sentences on what should happen",
  "goal": "The POV character's goal in this scene",
  "conflict": "What opposes the goal",
  "disaster": "The complication or setback",
  "tensionLevel": 7,
  "pacingType": "action"
}}
pacingType must be one of action, reaction, transition, exposition.

{JSON_ONLY_FOOTER}"""


def _pacing_prompt(context: PacingContext) -> str:
    sequence = [
        f'{entry.position}. "{entry.title}" - Tension: {entry.tension}/10, Type: {entry.pacing}'
        for entry in context.scenes
    ]
    return f"""Analyze the pacing of this story from its scene tension and types.

SCENE SEQUENCE:
{chr(10).join(sequence)}

ISSUES ALREADY DETECTED:
{_bullets(context.detected_issues, "None")}

Respond in this JSON format:
{{
  "overallAssessment": "Good / Needs Work / Major Issues",
  "priorityFix": "The single most important thing to address",
  "strengths": ["What is working well"]
}}

{JSON_ONLY_FOOTER}"""


class PlanSuggestionAssistant:
    """Generator-backed suggestions for beats, arcs, threads, scenes, and pacing."""

    def __init__(
        self,
        service: StoryPlanningService,
        generator: TextGenerator,
        characters: CharacterDirectory | None = None,
    ) -> None:
        self._service = service
        self._generator = generator
        self._characters = characters

    def _ask(
        self, operation: str, prompt: str, payload_type: type[PayloadT]
    ) -> SuggestionSuccess[PayloadT] | SuggestionFailure:
        try:
            raw = self._generator.generate(prompt)
        except Exception as exc:  # noqa: BLE001
            logger.warning("suggestion.generator_failed operation=%s error=%s", operation, exc)
            return SuggestionFailure(f"generator raised {type(exc).__name__}: {exc}")
        result = parse_suggestion(raw, payload_type)
        if isinstance(result, SuggestionFailure):
            logger.warning(
                "suggestion.unusable_reply operation=%s reason=%s", operation, result.reason
            )
        else:
            logger.info("suggestion.ok operation=%s", operation)
        return result

    def _character_bio(self, character_id: str | None) -> str:
        if not character_id or self._characters is None:
            return ""
        profile = self._characters.lookup(character_id)
        return profile.bio if profile is not None else ""

    def beat_context(self, beat_id: str) -> BeatContext:
        beat = self._service.require("beat", beat_id)
        assert isinstance(beat, BeatRecord)
        plan = self._service.require_plan(beat.plan_id)
        framework = get_framework(plan.framework)
        described = [
            BeatContextEntry(name=other.name, description=other.description)
            for other in self._service.beats(plan.id)
            if other.id != beat.id and other.description
        ]
        return BeatContext(
            beat_name=beat.name,
            beat_type=beat.beat_type,
            framework=framework.name if framework is not None else "Custom Structure",
            premise=plan.premise,
            existing_beats=described[:MAX_CONTEXT_BEATS],
        )

    def suggest_beat_content(
        self, beat_id: str
    ) -> SuggestionSuccess[BeatSuggestion] | SuggestionFailure:
        context = self.beat_context(beat_id)
        return self._ask("beat_content", _beat_prompt(context), BeatSuggestion)

    def suggest_story_arc(
        self, arc_id: str
    ) -> SuggestionSuccess[ArcSuggestion] | SuggestionFailure:
        arc = self._service.require("arc", arc_id)
        assert isinstance(arc, ArcRecord)
        context = ArcContext(
            arc_name=arc.name,
            arc_type=ARC_TYPES[arc.arc_type].name,
            current_description=arc.description,
            linked_characters=[
                self._service.character_name(character_id)
                for character_id in arc.linked_character_ids
            ],
        )
        return self._ask("story_arc", _arc_prompt(context), ArcSuggestion)

    def suggest_plot_thread(
        self, thread_id: str
    ) -> SuggestionSuccess[ThreadSuggestion] | SuggestionFailure:
        thread = self._service.require("thread", thread_id)
        assert isinstance(thread, ThreadRecord)
        context = ThreadContext(
            thread_name=thread.name,
            thread_type=THREAD_TYPES[thread.thread_type].name,
            current_description=thread.description,
            involved_characters=[
                self._service.character_name(character_id)
                for character_id in thread.involved_character_ids
            ],
            linked_scenes=[
                self._service.scene_title(scene_id) for scene_id in thread.linked_scene_ids
            ],
        )
        return self._ask("plot_thread", _thread_prompt(context), ThreadSuggestion)

    def suggest_character_arc(
        self, character_arc_id: str
    ) -> SuggestionSuccess[CharacterArcSuggestion] | SuggestionFailure:
        character_arc = self._service.require("character_arc", character_arc_id)
        assert isinstance(character_arc, CharacterArcRecord)
        arc_info = CHARACTER_ARC_TYPES[character_arc.arc_type]
        scenes = scenes_for_character_arc(
            character_arc, self._service.scenes(character_arc.plan_id)
        )
        context = CharacterArcContext(
            character_name=self._service.character_name(character_arc.character_id),
            character_bio=self._character_bio(character_arc.character_id),
            arc_type=f"{arc_info.name} ({arc_info.description})",
            existing_scenes=[scene.title for scene in scenes],
        )
        return self._ask("character_arc", _character_arc_prompt(context), CharacterArcSuggestion)

    def develop_scene(
        self, scene_id: str
    ) -> SuggestionSuccess[SceneSuggestion] | SuggestionFailure:
        scene = self._service.require("scene", scene_id)
        assert isinstance(scene, SceneRecord)
        beats = {beat.id: beat for beat in self._service.beats(scene.plan_id)}
        beat = next(
            (beats[beat_id] for beat_id in scene.linked_beat_ids if beat_id in beats), None
        )
        pov_name = (
            self._service.character_name(scene.pov_character_id)
            if scene.pov_character_id
            else UNKNOWN_CHARACTER_NAME
        )
        context = SceneContext(
            scene_title=scene.title,
            summary=scene.summary,
            status=STATUS_LABELS[scene.status],
            chapter=self._service.chapter_title(scene.chapter_id),
            beat_name=beat.name if beat is not None else "Custom scene",
            beat_description=(
                beat.description if beat is not None and beat.description else "Advance the story"
            ),
            pov_character=pov_name,
            pov_background=self._character_bio(scene.pov_character_id),
            other_characters=[
                self._service.character_name(character_id)
                for character_id in scene.present_character_ids
                if character_id != scene.pov_character_id
            ],
            active_threads=[
                f"{thread.name}: {thread.description or THREAD_STATUS_LABELS[thread.status]}"
                for thread in unresolved_threads(self._service.threads(scene.plan_id))
            ],
        )
        return self._ask("develop_scene", _scene_prompt(context), SceneSuggestion)

    def assess_pacing(
        self, plan_id: str
    ) -> SuggestionSuccess[PacingAssessment] | SuggestionFailure:
        """Ask for a prose pacing review on top of the deterministic analysis."""
        analysis = self._service.pacing(plan_id)
        if len(analysis.tension_curve) < MIN_SCENES_FOR_PACING_ASSESSMENT:
            return SuggestionFailure(
                f"need at least {MIN_SCENES_FOR_PACING_ASSESSMENT} scenes to assess pacing"
            )
        scenes = {scene.id: scene for scene in self._service.scenes(plan_id)}
        context = PacingContext(
            scenes=[
                PacingSceneEntry(
                    position=point.position + 1,
                    title=point.title,
                    tension=point.tension,
                    pacing=scenes[point.scene_id].pacing_type,
                )
                for point in analysis.tension_curve
            ],
            detected_issues=[
                f"{issue.location}: {issue.message}" if issue.location else issue.message
                for issue in analysis.issues
            ],
        )
        return self._ask("assess_pacing", _pacing_prompt(context), PacingAssessment)
