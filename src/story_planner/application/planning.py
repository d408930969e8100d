"""Plan lifecycle, entity, relationship, and analytics operations over a planning store."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Final, TypeVar

from story_planner.core.catalogs import arc_color
from story_planner.core.frameworks import (
    CUSTOM_FRAMEWORK,
    DEFAULT_FRAMEWORK,
    is_known_framework,
    templates_for,
)
from story_planner.core.plan_analytics import (
    PacingAnalysis,
    PlanProgress,
    SceneTimelinePosition,
    pacing_analysis,
    plan_progress,
    timeline_positions,
)
from story_planner.core.plan_analytics import unresolved_threads as filter_unresolved
from story_planner.core.planning_errors import (
    EntityNotFoundError,
    PartialBulkFailureError,
    PlanValidationError,
)
from story_planner.core.planning_schema import (
    IMMUTABLE_FIELDS,
    MEMBERSHIP_FIELDS,
    NESTED_LIST_FIELDS,
    ArcRecord,
    BeatRecord,
    CharacterArcRecord,
    EntityKind,
    Milestone,
    Plant,
    PlanningRecord,
    PlanOwnedRecord,
    PlanRecord,
    SceneRecord,
    ThreadRecord,
    is_child_kind,
    new_record_id,
)
from story_planner.core.relationships import (
    chapter_title,
    current_beat,
    nearest_beat,
    scenes_by_act,
    scenes_for_chapter,
    scenes_linked_to_beat,
    toggle_membership,
)
from story_planner.core.relationships import (
    scenes_for_character_arc as filter_scenes_for_character_arc,
)
from story_planner.domain.models import (
    UNKNOWN_CHARACTER_NAME,
    CascadeDeleteReport,
    PlanSnapshot,
)
from story_planner.domain.ports import CharacterDirectory, PlanningStore

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=PlanningRecord)

UNKNOWN_SCENE_TITLE: Final = "Unknown Scene"

# Toggleable id-set fields; internal targets must live in the same plan when added.
LINK_TARGETS: Final[dict[tuple[EntityKind, str], EntityKind | None]] = {
    ("arc", "linked_character_ids"): None,
    ("scene", "linked_arc_ids"): "arc",
    ("scene", "linked_beat_ids"): "beat",
    ("scene", "present_character_ids"): None,
    ("thread", "involved_character_ids"): None,
    ("thread", "linked_scene_ids"): "scene",
    ("thread", "linked_codex_entry_ids"): None,
}


def _internal_link_fields(kind: EntityKind) -> list[tuple[str, EntityKind]]:
    return [
        (field, target_kind)
        for (owner, field), target_kind in LINK_TARGETS.items()
        if owner == kind and target_kind is not None
    ]


def _id_list(value: object) -> list[str]:
    if value is None or isinstance(value, str) or not isinstance(value, Iterable):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


class StoryPlanningService:
    """Coordinates plans and their child records on top of a `PlanningStore`.

    Single-entity operations raise `EntityNotFoundError` for unknown ids.
    Plan deletion is the exception: it cascades and is idempotent.
    """

    def __init__(
        self,
        store: PlanningStore,
        characters: CharacterDirectory | None = None,
        *,
        chapter_titles: Mapping[str, str] | None = None,
    ) -> None:
        self._store = store
        self._characters = characters
        self._chapter_titles: Mapping[str, str] = chapter_titles or {}

    # Plans

    def create_plan(
        self,
        writing_id: str,
        *,
        title: str = "",
        framework: str | None = None,
        premise: str = "",
        synopsis: str = "",
        theme: str = "",
        genres: Iterable[str] = (),
        target_word_count: int | None = None,
        estimated_chapters: int | None = None,
    ) -> str:
        """Store a plan and, when a framework is named, its template beats.

        Unknown framework names are stored as `custom` and produce no beats.
        """
        requested = framework.strip() if framework is not None else ""
        stored_framework = requested or DEFAULT_FRAMEWORK
        if not is_known_framework(stored_framework):
            logger.warning(
                "plan.create unknown_framework=%s fallback=%s", stored_framework, CUSTOM_FRAMEWORK
            )
            stored_framework = CUSTOM_FRAMEWORK
        plan_id = self._store.create(
            "plan",
            {
                "writing_id": writing_id,
                "title": title,
                "framework": stored_framework,
                "premise": premise,
                "synopsis": synopsis,
                "theme": theme,
                "genres": list(genres),
                "target_word_count": target_word_count,
                "estimated_chapters": estimated_chapters,
            },
        )
        beat_ids: list[str] = []
        if requested and stored_framework != CUSTOM_FRAMEWORK:
            beat_ids = self._create_template_beats(plan_id, stored_framework, prior=(plan_id,))
        logger.info(
            "plan.create plan_id=%s writing_id=%s framework=%s beats=%s",
            plan_id,
            writing_id,
            stored_framework,
            len(beat_ids),
        )
        return plan_id

    def instantiate_framework_beats(self, plan_id: str, framework: str) -> list[str]:
        """Create the template beats for a plan that has none yet."""
        plan = self.require_plan(plan_id)
        if self._store.list_by_plan("beat", plan_id):
            raise PlanValidationError(f"Plan '{plan_id}' already has beats.")
        if not is_known_framework(framework):
            raise PlanValidationError(f"Unknown framework '{framework}'.")
        if plan.framework != framework:
            self._store.update("plan", plan_id, {"framework": framework})
        beat_ids = self._create_template_beats(plan_id, framework, prior=())
        logger.info(
            "plan.instantiate_beats plan_id=%s framework=%s beats=%s",
            plan_id,
            framework,
            len(beat_ids),
        )
        return beat_ids

    def _create_template_beats(
        self, plan_id: str, framework: str, *, prior: tuple[str, ...]
    ) -> list[str]:
        rows = [
            {
                "plan_id": plan_id,
                "name": template.name,
                "beat_type": template.template_id,
                "target_percentage": template.target_percent,
                "act_number": template.act_number,
                "status": "planned",
                "order": index,
            }
            for index, template in enumerate(templates_for(framework))
        ]
        if not rows:
            return []
        try:
            return self._store.bulk_create("beat", rows)
        except PartialBulkFailureError as exc:
            logger.error(
                "plan.instantiate_beats_failed plan_id=%s framework=%s rolled_back=%s",
                plan_id,
                framework,
                exc.rolled_back,
            )
            kept = () if exc.rolled_back else exc.completed_ids
            raise PartialBulkFailureError(
                operation=f"instantiate {framework} beats",
                completed_ids=(*prior, *kept),
                rolled_back=exc.rolled_back,
                detail=exc.detail,
            ) from exc

    def get_plan(self, plan_id: str) -> PlanRecord | None:
        record = self._store.get("plan", plan_id)
        return record if isinstance(record, PlanRecord) else None

    def require_plan(self, plan_id: str) -> PlanRecord:
        plan = self.get_plan(plan_id)
        if plan is None:
            raise EntityNotFoundError("plan", plan_id)
        return plan

    def list_plans(self, writing_id: str | None = None) -> list[PlanRecord]:
        plans = self._store.list_plans()
        if writing_id is None:
            return plans
        return [plan for plan in plans if plan.writing_id == writing_id]

    def plan_for_writing(self, writing_id: str) -> PlanRecord | None:
        """Return the earliest plan created for a writing."""
        plans = self.list_plans(writing_id)
        if not plans:
            return None
        if len(plans) > 1:
            logger.warning(
                "plan.duplicate_for_writing writing_id=%s count=%s using=%s",
                writing_id,
                len(plans),
                plans[0].id,
            )
        return plans[0]

    def update_plan(self, plan_id: str, changes: Mapping[str, object]) -> PlanRecord:
        record = self.update("plan", plan_id, changes)
        assert isinstance(record, PlanRecord)
        return record

    def delete_plan(self, plan_id: str) -> CascadeDeleteReport:
        """Delete a plan with everything it owns; unknown plans are a no-op."""
        report = self._store.delete_plan_cascade(plan_id)
        logger.info(
            "plan.delete plan_id=%s existed=%s children=%s",
            plan_id,
            report.plan_existed,
            report.total_deleted,
        )
        return report

    def get_plan_snapshot(self, plan_id: str) -> PlanSnapshot | None:
        plan = self.get_plan(plan_id)
        if plan is None:
            return None
        return PlanSnapshot(
            plan=plan,
            arcs=self.arcs(plan_id),
            beats=self.beats(plan_id),
            scenes=self.scenes(plan_id),
            character_arcs=self.character_arcs(plan_id),
            threads=self.threads(plan_id),
        )

    # Generic entity operations

    def create(self, kind: EntityKind, plan_id: str, fields: Mapping[str, object]) -> str:
        """Create a plan-owned record; `order` defaults to the end of the plan."""
        if not is_child_kind(kind):
            raise PlanValidationError(f"'{kind}' is not a plan-owned kind; use create_plan.")
        self.require_plan(plan_id)
        if "plan_id" in fields:
            raise PlanValidationError("plan_id is taken from the owning plan argument.")
        for field, target_kind in _internal_link_fields(kind):
            for target_id in _id_list(fields.get(field)):
                self._require_same_plan(target_kind, target_id, plan_id)
        payload: dict[str, object] = {**fields, "plan_id": plan_id}
        if kind == "arc" and "color" not in payload:
            payload["color"] = arc_color(str(payload.get("arc_type", "subplot")))
        entity_id = self._store.create(kind, payload)
        logger.debug("entity.create kind=%s id=%s plan_id=%s", kind, entity_id, plan_id)
        return entity_id

    def get(self, kind: EntityKind, entity_id: str) -> PlanningRecord | None:
        return self._store.get(kind, entity_id)

    def require(self, kind: EntityKind, entity_id: str) -> PlanningRecord:
        record = self._store.get(kind, entity_id)
        if record is None:
            raise EntityNotFoundError(kind, entity_id)
        return record

    def _require_typed(
        self, kind: EntityKind, entity_id: str, record_type: type[RecordT]
    ) -> RecordT:
        record = self.require(kind, entity_id)
        if not isinstance(record, record_type):
            raise EntityNotFoundError(kind, entity_id)
        return record

    def update(
        self, kind: EntityKind, entity_id: str, changes: Mapping[str, object]
    ) -> PlanningRecord:
        """Apply scalar field changes.

        Identity fields, id-set memberships, milestones and plants have their
        own operations and are rejected here.
        """
        guarded = IMMUTABLE_FIELDS | MEMBERSHIP_FIELDS[kind] | NESTED_LIST_FIELDS[kind]
        rejected = sorted(guarded.intersection(changes))
        if rejected:
            raise PlanValidationError(f"Fields {rejected} cannot be changed through update.")
        if kind == "plan" and "framework" in changes:
            framework = str(changes["framework"])
            if not is_known_framework(framework):
                raise PlanValidationError(f"Unknown framework '{framework}'.")
        record = self._store.update(kind, entity_id, changes)
        if record is None:
            raise EntityNotFoundError(kind, entity_id)
        logger.debug("entity.update kind=%s id=%s fields=%s", kind, entity_id, sorted(changes))
        return record

    def delete(self, kind: EntityKind, entity_id: str) -> None:
        if not is_child_kind(kind):
            raise PlanValidationError("Plans are removed with delete_plan.")
        if not self._store.delete(kind, entity_id):
            raise EntityNotFoundError(kind, entity_id)
        logger.debug("entity.delete kind=%s id=%s", kind, entity_id)

    def list_by_plan(self, kind: EntityKind, plan_id: str) -> list[PlanningRecord]:
        return self._store.list_by_plan(kind, plan_id)

    def _records(
        self, kind: EntityKind, plan_id: str, record_type: type[RecordT]
    ) -> list[RecordT]:
        return [
            record
            for record in self._store.list_by_plan(kind, plan_id)
            if isinstance(record, record_type)
        ]

    def create_arc(self, plan_id: str, **fields: object) -> str:
        return self.create("arc", plan_id, fields)

    def create_beat(self, plan_id: str, **fields: object) -> str:
        return self.create("beat", plan_id, fields)

    def create_scene(self, plan_id: str, **fields: object) -> str:
        return self.create("scene", plan_id, fields)

    def create_character_arc(self, plan_id: str, character_id: str, **fields: object) -> str:
        return self.create("character_arc", plan_id, {**fields, "character_id": character_id})

    def create_thread(self, plan_id: str, **fields: object) -> str:
        return self.create("thread", plan_id, fields)

    def arcs(self, plan_id: str) -> list[ArcRecord]:
        return self._records("arc", plan_id, ArcRecord)

    def beats(self, plan_id: str) -> list[BeatRecord]:
        return self._records("beat", plan_id, BeatRecord)

    def scenes(self, plan_id: str) -> list[SceneRecord]:
        return self._records("scene", plan_id, SceneRecord)

    def character_arcs(self, plan_id: str) -> list[CharacterArcRecord]:
        return self._records("character_arc", plan_id, CharacterArcRecord)

    def threads(self, plan_id: str) -> list[ThreadRecord]:
        return self._records("thread", plan_id, ThreadRecord)

    def reorder(self, kind: EntityKind, plan_id: str, ordered_ids: Sequence[str]) -> None:
        """Set `order` to each id's list index.

        Ids left out of `ordered_ids` keep their current order, so only a
        complete list produces a clean total order.
        """
        if not is_child_kind(kind):
            raise PlanValidationError(f"'{kind}' records cannot be reordered.")
        self.require_plan(plan_id)
        duplicates = sorted({item for item in ordered_ids if list(ordered_ids).count(item) > 1})
        if duplicates:
            raise PlanValidationError(f"Duplicate ids in reorder request: {duplicates}")
        foreign = []
        for entity_id in ordered_ids:
            record = self._store.get(kind, entity_id)
            if not isinstance(record, PlanOwnedRecord) or record.plan_id != plan_id:
                foreign.append(entity_id)
        if foreign:
            raise PlanValidationError(
                f"Ids {foreign} are not {kind} records of plan '{plan_id}'."
            )
        total = len(self._store.list_by_plan(kind, plan_id))
        if len(ordered_ids) < total:
            logger.info(
                "entity.reorder_subset kind=%s plan_id=%s given=%s total=%s",
                kind,
                plan_id,
                len(ordered_ids),
                total,
            )
        self._store.reorder(kind, plan_id, ordered_ids)

    # Milestones and plants

    def add_milestone(
        self,
        character_arc_id: str,
        description: str,
        *,
        internal_shift: str = "",
        external_change: str = "",
        scene_id: str | None = None,
    ) -> Milestone:
        character_arc = self._require_typed(
            "character_arc", character_arc_id, CharacterArcRecord
        )
        milestone = Milestone(
            id=new_record_id(),
            description=description,
            internal_shift=internal_shift,
            external_change=external_change,
            scene_id=scene_id,
        )
        milestones = [item.model_dump() for item in character_arc.milestones]
        milestones.append(milestone.model_dump())
        self._store.update("character_arc", character_arc_id, {"milestones": milestones})
        return milestone

    def remove_milestone(self, character_arc_id: str, milestone_id: str) -> None:
        character_arc = self._require_typed(
            "character_arc", character_arc_id, CharacterArcRecord
        )
        kept = [item for item in character_arc.milestones if item.id != milestone_id]
        if len(kept) == len(character_arc.milestones):
            raise EntityNotFoundError("milestone", milestone_id)
        self._store.update(
            "character_arc",
            character_arc_id,
            {"milestones": [item.model_dump() for item in kept]},
        )

    def add_plant(
        self,
        thread_id: str,
        description: str,
        *,
        scene_id: str | None = None,
        is_payoff: bool = False,
    ) -> Plant:
        thread = self._require_typed("thread", thread_id, ThreadRecord)
        plant = Plant(
            id=new_record_id(),
            description=description,
            scene_id=scene_id,
            is_payoff=is_payoff,
        )
        plants = [item.model_dump() for item in thread.plants]
        plants.append(plant.model_dump())
        self._store.update("thread", thread_id, {"plants": plants})
        return plant

    def remove_plant(self, thread_id: str, plant_id: str) -> None:
        thread = self._require_typed("thread", thread_id, ThreadRecord)
        kept = [item for item in thread.plants if item.id != plant_id]
        if len(kept) == len(thread.plants):
            raise EntityNotFoundError("plant", plant_id)
        self._store.update("thread", thread_id, {"plants": [item.model_dump() for item in kept]})

    def character_arc_for_character(
        self, plan_id: str, character_id: str
    ) -> CharacterArcRecord | None:
        return next(
            (
                character_arc
                for character_arc in self.character_arcs(plan_id)
                if character_arc.character_id == character_id
            ),
            None,
        )

    # Relationships

    def toggle_link(
        self, kind: EntityKind, entity_id: str, field: str, target_id: str
    ) -> list[str]:
        """Flip membership of `target_id` in an id-set field and return the new set."""
        if (kind, field) not in LINK_TARGETS:
            raise PlanValidationError(f"'{field}' is not a toggleable {kind} relation.")
        target_id = target_id.strip()
        if not target_id:
            raise PlanValidationError("Cannot toggle a blank id.")
        record = self.require(kind, entity_id)
        assert isinstance(record, PlanOwnedRecord)
        current: list[str] = getattr(record, field)
        target_kind = LINK_TARGETS[(kind, field)]
        if target_kind is not None and target_id not in current:
            self._require_same_plan(target_kind, target_id, record.plan_id)
        updated = toggle_membership(current, target_id)
        self._store.update(kind, entity_id, {field: updated})
        logger.debug(
            "relation.toggle kind=%s id=%s field=%s target=%s linked=%s",
            kind,
            entity_id,
            field,
            target_id,
            target_id in updated,
        )
        return updated

    def _require_same_plan(self, target_kind: EntityKind, target_id: str, plan_id: str) -> None:
        target = self._store.get(target_kind, target_id)
        if not isinstance(target, PlanOwnedRecord) or target.plan_id != plan_id:
            raise PlanValidationError(
                f"{target_kind} '{target_id}' does not belong to plan '{plan_id}'."
            )

    def toggle_scene_arc(self, scene_id: str, arc_id: str) -> list[str]:
        return self.toggle_link("scene", scene_id, "linked_arc_ids", arc_id)

    def toggle_scene_beat(self, scene_id: str, beat_id: str) -> list[str]:
        return self.toggle_link("scene", scene_id, "linked_beat_ids", beat_id)

    def toggle_scene_character(self, scene_id: str, character_id: str) -> list[str]:
        return self.toggle_link("scene", scene_id, "present_character_ids", character_id)

    def toggle_arc_character(self, arc_id: str, character_id: str) -> list[str]:
        return self.toggle_link("arc", arc_id, "linked_character_ids", character_id)

    def toggle_thread_character(self, thread_id: str, character_id: str) -> list[str]:
        return self.toggle_link("thread", thread_id, "involved_character_ids", character_id)

    def toggle_thread_scene(self, thread_id: str, scene_id: str) -> list[str]:
        return self.toggle_link("thread", thread_id, "linked_scene_ids", scene_id)

    def toggle_thread_codex_entry(self, thread_id: str, codex_entry_id: str) -> list[str]:
        return self.toggle_link("thread", thread_id, "linked_codex_entry_ids", codex_entry_id)

    def scenes_for_beat(self, beat_id: str) -> list[SceneRecord]:
        beat = self._require_typed("beat", beat_id, BeatRecord)
        return scenes_linked_to_beat(beat_id, self.scenes(beat.plan_id))

    def scenes_for_character_arc(self, character_arc_id: str) -> list[SceneRecord]:
        character_arc = self._require_typed(
            "character_arc", character_arc_id, CharacterArcRecord
        )
        return filter_scenes_for_character_arc(character_arc, self.scenes(character_arc.plan_id))

    def scenes_for_chapter(self, plan_id: str, chapter_id: str) -> list[SceneRecord]:
        return scenes_for_chapter(chapter_id, self.scenes(plan_id))

    def current_beat(self, plan_id: str, chapter_id: str | None = None) -> BeatRecord | None:
        return current_beat(self.beats(plan_id), chapter_id)

    def scenes_by_act(self, plan_id: str) -> dict[int, list[SceneRecord]]:
        return scenes_by_act(self.beats(plan_id), self.scenes(plan_id))

    def nearest_beat(self, plan_id: str, position: float) -> BeatRecord | None:
        return nearest_beat(self.beats(plan_id), position)

    def character_name(self, character_id: str | None) -> str:
        """Display name from the character directory, or a placeholder for misses."""
        if not character_id or self._characters is None:
            return UNKNOWN_CHARACTER_NAME
        profile = self._characters.lookup(character_id)
        return profile.display_name if profile is not None else UNKNOWN_CHARACTER_NAME

    def chapter_title(self, chapter_id: str | None) -> str:
        return chapter_title(self._chapter_titles, chapter_id)

    def scene_title(self, scene_id: str | None) -> str:
        if not scene_id:
            return UNKNOWN_SCENE_TITLE
        scene = self._store.get("scene", scene_id)
        return scene.title if isinstance(scene, SceneRecord) else UNKNOWN_SCENE_TITLE

    # Analytics

    def progress(self, plan_id: str) -> PlanProgress:
        self.require_plan(plan_id)
        return plan_progress(
            beats=self.beats(plan_id),
            scenes=self.scenes(plan_id),
            arcs=self.arcs(plan_id),
            character_arcs=self.character_arcs(plan_id),
            threads=self.threads(plan_id),
        )

    def unresolved_threads(self, plan_id: str) -> list[ThreadRecord]:
        self.require_plan(plan_id)
        return filter_unresolved(self.threads(plan_id))

    def pacing(self, plan_id: str) -> PacingAnalysis:
        self.require_plan(plan_id)
        analysis = pacing_analysis(self.scenes(plan_id))
        logger.info(
            "analysis.pacing plan_id=%s scenes=%s issues=%s",
            plan_id,
            len(analysis.tension_curve),
            len(analysis.issues),
        )
        return analysis

    def timeline(self, plan_id: str) -> list[SceneTimelinePosition]:
        self.require_plan(plan_id)
        return timeline_positions(self.scenes(plan_id), self.beats(plan_id))
