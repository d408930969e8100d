from __future__ import annotations

import json

import pytest

from story_planner.adapters.character_directory import StaticCharacterDirectory
from story_planner.adapters.memory_planning_store import InMemoryPlanningStore
from story_planner.application.planning import StoryPlanningService
from story_planner.application.suggestions import (
    ArcSuggestion,
    BeatSuggestion,
    PlanSuggestionAssistant,
    SceneSuggestion,
    SuggestionFailure,
    SuggestionSuccess,
    parse_suggestion,
)
from story_planner.core.planning_errors import EntityNotFoundError, SuggestionAdapterError
from story_planner.domain.models import CharacterProfile


class _ScriptedGenerator:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


class _BrokenGenerator:
    def generate(self, prompt: str) -> str:
        raise TimeoutError("backend timed out")


def _assistant(
    reply: str,
) -> tuple[PlanSuggestionAssistant, StoryPlanningService, _ScriptedGenerator]:
    directory = StaticCharacterDirectory(
        [CharacterProfile(character_id="hero", first_name="Rhea", bio="Archivist's daughter.")]
    )
    service = StoryPlanningService(InMemoryPlanningStore(), characters=directory)
    generator = _ScriptedGenerator(reply)
    return PlanSuggestionAssistant(service, generator, directory), service, generator


def test_parse_suggestion_accepts_fenced_camel_case_json() -> None:
    raw = (
        "Here you go:\n```json\n"
        '{"description": "The ledger burns.", "startingState": "Hidden", '
        '"valueAtStake": "truth", "keyTurningPoints": ["theft", "trial"], "extra": 1}\n```'
    )
    result = parse_suggestion(raw, ArcSuggestion)
    assert isinstance(result, SuggestionSuccess)
    payload = result.unwrap()
    assert payload.starting_state == "Hidden"
    assert payload.value_at_stake == "truth"
    assert payload.key_turning_points == ["theft", "trial"]


@pytest.mark.parametrize(
    ("raw", "reason"),
    [
        ("I cannot help with that.", "did not contain a JSON object"),
        ("{description: unquoted}", "JSON was invalid"),
        ('{"notes": "no description"}', "did not match BeatSuggestion"),
        ('{"description": ""}', "did not match BeatSuggestion"),
    ],
)
def test_parse_suggestion_reports_unusable_replies(raw: str, reason: str) -> None:
    result = parse_suggestion(raw, BeatSuggestion)
    assert isinstance(result, SuggestionFailure)
    assert reason in result.reason
    with pytest.raises(SuggestionAdapterError, match="Suggestion adapter failed"):
        result.unwrap()


def test_beat_context_includes_described_beats_only() -> None:
    assistant, service, generator = _assistant(
        json.dumps({"description": "Rhea finds the forged page.", "notes": "Plant the seal."})
    )
    plan_id = service.create_plan("writing-1", framework="three-act", premise="A stolen ledger.")
    beats = service.beats(plan_id)
    for beat in beats[1:8]:
        service.update("beat", beat.id, {"description": f"{beat.name} happens."})

    context = assistant.beat_context(beats[0].id)
    assert context.framework == "Three-Act Structure"
    assert context.beat_type == "setup"
    assert context.premise == "A stolen ledger."
    assert len(context.existing_beats) == 5
    assert context.model_dump(by_alias=True)["existingBeats"][0] == {
        "name": "Inciting Incident",
        "description": "Inciting Incident happens.",
    }

    result = assistant.suggest_beat_content(beats[0].id)
    assert isinstance(result, SuggestionSuccess)
    assert result.unwrap().notes == "Plant the seal."
    assert "A stolen ledger." in generator.prompts[0]
    assert "Respond ONLY with valid JSON" in generator.prompts[0]


def test_generator_errors_become_failures() -> None:
    service = StoryPlanningService(InMemoryPlanningStore())
    assistant = PlanSuggestionAssistant(service, _BrokenGenerator())
    plan_id = service.create_plan("writing-1")
    arc_id = service.create_arc(plan_id, name="Main", arc_type="main")

    result = assistant.suggest_story_arc(arc_id)
    assert isinstance(result, SuggestionFailure)
    assert "TimeoutError" in result.reason
    assert not result.ok


def test_missing_records_raise_instead_of_failing() -> None:
    assistant, _, generator = _assistant("{}")
    with pytest.raises(EntityNotFoundError):
        assistant.suggest_plot_thread("missing-thread")
    assert generator.prompts == []


def test_thread_and_character_arc_prompts_resolve_names() -> None:
    reply = json.dumps(
        {
            "description": "A prophecy misread.",
            "ghost": "Lost her mother to the fire.",
            "want": "Restore the family name.",
            "need": "Accept the truth.",
            "startingBelief": "Records never lie.",
            "endingBelief": "People write records.",
            "suggestedPlants": ["ash on the binding"],
        }
    )
    assistant, service, generator = _assistant(reply)
    plan_id = service.create_plan("writing-1")
    scene_id = service.create_scene(plan_id, title="The Fire", pov_character_id="hero")
    thread_id = service.create_thread(plan_id, name="Prophecy", thread_type="prophecy")
    service.toggle_thread_character(thread_id, "hero")
    service.toggle_thread_character(thread_id, "stranger")
    service.toggle_thread_scene(thread_id, scene_id)
    character_arc_id = service.create_character_arc(plan_id, "hero")

    thread_result = assistant.suggest_plot_thread(thread_id)
    assert isinstance(thread_result, SuggestionSuccess)
    assert thread_result.unwrap().suggested_plants == ["ash on the binding"]
    assert "Rhea" in generator.prompts[0]
    assert "Unknown Character" in generator.prompts[0]
    assert "The Fire" in generator.prompts[0]

    arc_result = assistant.suggest_character_arc(character_arc_id)
    assert isinstance(arc_result, SuggestionSuccess)
    assert arc_result.unwrap().ending_belief == "People write records."
    assert "Archivist's daughter." in generator.prompts[1]
    assert "Positive Change" in generator.prompts[1]


def test_develop_scene_validates_tension_and_pacing() -> None:
    assistant, service, generator = _assistant(
        json.dumps(
            {
                "refinedSummary": "Rhea steals the key.",
                "tensionLevel": 7,
                "pacingType": "reaction",
            }
        )
    )
    plan_id = service.create_plan("writing-1", framework="seven-point")
    scene_id = service.create_scene(plan_id, title="Heist", pov_character_id="hero")
    service.toggle_scene_beat(scene_id, service.beats(plan_id)[3].id)
    service.create_thread(plan_id, name="Prophecy", status="developing")

    result = assistant.develop_scene(scene_id)
    assert isinstance(result, SuggestionSuccess)
    payload: SceneSuggestion = result.unwrap()
    assert payload.tension_level == 7
    assert payload.pacing_type == "reaction"
    prompt = generator.prompts[0]
    assert "STATUS: Idea" in prompt
    assert "CHAPTER: Untitled" in prompt
    assert "- Prophecy: Developing" in prompt

    bad = parse_suggestion('{"refinedSummary": "x", "tensionLevel": 14}', SceneSuggestion)
    assert isinstance(bad, SuggestionFailure)
    assert "tensionLevel" in bad.reason or "tension_level" in bad.reason


def test_assess_pacing_needs_three_scenes_and_feeds_detected_issues() -> None:
    assistant, service, generator = _assistant(
        json.dumps({"overallAssessment": "Needs Work", "priorityFix": "Vary tension."})
    )
    plan_id = service.create_plan("writing-1")
    service.create_scene(plan_id, title="Only")

    early = assistant.assess_pacing(plan_id)
    assert isinstance(early, SuggestionFailure)
    assert generator.prompts == []

    for title in ("Two", "Three"):
        service.create_scene(plan_id, title=title)
    result = assistant.assess_pacing(plan_id)
    assert isinstance(result, SuggestionSuccess)
    assert result.unwrap().priority_fix == "Vary tension."
    assert "Scenes 1-3: Tension stays at 5/10" in generator.prompts[0]
    assert '1. "Only" - Tension: 5/10, Type: action' in generator.prompts[0]
