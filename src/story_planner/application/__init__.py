"""Planning services and the suggestion boundary."""

from story_planner.application.planning import StoryPlanningService
from story_planner.application.suggestions import (
    PlanSuggestionAssistant,
    SuggestionFailure,
    SuggestionSuccess,
)

__all__ = [
    "PlanSuggestionAssistant",
    "StoryPlanningService",
    "SuggestionFailure",
    "SuggestionSuccess",
]
