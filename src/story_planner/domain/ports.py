"""Ports for persistence, text generation, and character lookup."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Protocol

from story_planner.core.planning_schema import EntityKind, PlanningRecord, PlanRecord
from story_planner.domain.models import CascadeDeleteReport, CharacterProfile


class PlanningStore(Protocol):
    """Keyed record collections for plans and everything a plan owns.

    `create` and `bulk_create` assign ids, timestamps, and a default `order`
    of one past the plan's current maximum. `bulk_create`, `reorder`, and
    `delete_plan_cascade` are all-or-nothing.
    """

    def create(self, kind: EntityKind, fields: Mapping[str, object]) -> str: ...

    def bulk_create(
        self, kind: EntityKind, rows: Sequence[Mapping[str, object]]
    ) -> list[str]: ...

    def get(self, kind: EntityKind, entity_id: str) -> PlanningRecord | None: ...

    def update(
        self, kind: EntityKind, entity_id: str, changes: Mapping[str, object]
    ) -> PlanningRecord | None: ...

    def delete(self, kind: EntityKind, entity_id: str) -> bool: ...

    def list_by_plan(self, kind: EntityKind, plan_id: str) -> list[PlanningRecord]: ...

    def list_plans(self) -> list[PlanRecord]: ...

    def reorder(self, kind: EntityKind, plan_id: str, ordered_ids: Sequence[str]) -> int: ...

    def delete_plan_cascade(self, plan_id: str) -> CascadeDeleteReport: ...


class TextGenerator(Protocol):
    """Opaque text-generation backend: prompt in, raw reply out."""

    def generate(self, prompt: str) -> str: ...


class CharacterDirectory(Protocol):
    """Read-only lookup into the external person/character store."""

    def lookup(self, character_id: str) -> CharacterProfile | None: ...
