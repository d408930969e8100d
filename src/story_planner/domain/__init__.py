"""Domain value types and ports for story planning."""

from story_planner.domain.models import CascadeDeleteReport, CharacterProfile, PlanSnapshot
from story_planner.domain.ports import CharacterDirectory, PlanningStore, TextGenerator

__all__ = [
    "CascadeDeleteReport",
    "CharacterDirectory",
    "CharacterProfile",
    "PlanSnapshot",
    "PlanningStore",
    "TextGenerator",
]
