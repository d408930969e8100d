"""Cross-reference queries over planning records."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from story_planner.core.planning_schema import (
    BeatRecord,
    CharacterArcRecord,
    SceneRecord,
    normalize_id_set,
)

UNLINKED_SCENE_ACT = 2
SNAP_DISTANCE_PERCENT = 10.0
UNTITLED_CHAPTER = "Untitled"


def toggle_membership(values: Iterable[str], item: str) -> list[str]:
    """Add `item` when absent, remove it when present; returns the canonical set form."""
    current = set(normalize_id_set(list(values)))
    current.symmetric_difference_update({item.strip()})
    return normalize_id_set(list(current))


def _in_plan_order(records: Sequence[BeatRecord]) -> list[BeatRecord]:
    return sorted(records, key=lambda record: record.order)


def scenes_linked_to_beat(beat_id: str, scenes: Sequence[SceneRecord]) -> list[SceneRecord]:
    return [scene for scene in scenes if beat_id in scene.linked_beat_ids]


def scenes_for_character_arc(
    character_arc: CharacterArcRecord, scenes: Sequence[SceneRecord]
) -> list[SceneRecord]:
    """Scenes told from the character's POV or with the character present."""
    character_id = character_arc.character_id
    return [
        scene
        for scene in scenes
        if scene.pov_character_id == character_id or character_id in scene.present_character_ids
    ]


def scenes_for_chapter(chapter_id: str, scenes: Sequence[SceneRecord]) -> list[SceneRecord]:
    return [scene for scene in scenes if scene.chapter_id == chapter_id]


def current_beat(beats: Sequence[BeatRecord], chapter_id: str | None) -> BeatRecord | None:
    """Pick the beat that frames writing for one chapter.

    Order of preference: the beat whose `actual_chapter_id` is the chapter,
    then the first beat that is not complete, then the first beat.
    """
    ordered = _in_plan_order(beats)
    if not ordered:
        return None
    if chapter_id is not None:
        for beat in ordered:
            if beat.actual_chapter_id == chapter_id:
                return beat
    for beat in ordered:
        if beat.status != "complete":
            return beat
    return ordered[0]


def scenes_by_act(
    beats: Sequence[BeatRecord], scenes: Sequence[SceneRecord]
) -> dict[int, list[SceneRecord]]:
    """Group scenes under the acts of their linked beats.

    A scene linked to beats in several acts appears in each of them. Scenes
    without linked beats land in act 2.
    """
    act_by_beat = {beat.id: beat.act_number for beat in beats}
    grouped: dict[int, list[SceneRecord]] = {1: [], 2: [], 3: []}
    for scene in scenes:
        if not scene.linked_beat_ids:
            grouped[UNLINKED_SCENE_ACT].append(scene)
            continue
        acts = {act_by_beat[beat_id] for beat_id in scene.linked_beat_ids if beat_id in act_by_beat}
        for act in sorted(acts):
            grouped[act].append(scene)
    return grouped


def nearest_beat(
    beats: Sequence[BeatRecord],
    position: float,
    *,
    max_distance: float = SNAP_DISTANCE_PERCENT,
) -> BeatRecord | None:
    """Return the beat closest to a timeline position, if within `max_distance`."""
    closest: BeatRecord | None = None
    closest_distance = 0.0
    for beat in _in_plan_order(beats):
        distance = abs(beat.target_percentage - position)
        if closest is None or distance < closest_distance:
            closest = beat
            closest_distance = distance
    if closest is None or closest_distance >= max_distance:
        return None
    return closest


def chapter_title(chapter_titles: Mapping[str, str], chapter_id: str | None) -> str:
    """Resolve an external chapter reference for display; misses read as untitled."""
    if not chapter_id:
        return UNTITLED_CHAPTER
    return chapter_titles.get(chapter_id, "").strip() or UNTITLED_CHAPTER
