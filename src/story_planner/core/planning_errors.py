"""Failure taxonomy for planning operations."""

from __future__ import annotations


class PlanningError(RuntimeError):
    """Base class for failures raised by the planning engine."""


class EntityNotFoundError(PlanningError):
    """Raised when a single-entity operation targets a missing id."""

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} with id '{entity_id}' not found.")
        self.kind = kind
        self.entity_id = entity_id


class PlanValidationError(PlanningError):
    """Raised when a request is structurally invalid for the targeted plan."""


class SuggestionAdapterError(PlanningError):
    """Raised when the suggestion adapter fails or returns unusable output."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Suggestion adapter failed: {reason}")
        self.reason = reason


class PartialBulkFailureError(PlanningError):
    """Raised when a multi-write operation stops partway.

    `completed_ids` lists the records written before the failure. When
    `rolled_back` is true those writes were undone by the store and are not
    visible to later reads.
    """

    def __init__(
        self,
        *,
        operation: str,
        completed_ids: tuple[str, ...],
        rolled_back: bool,
        detail: str,
    ) -> None:
        state = "rolled back" if rolled_back else "kept"
        super().__init__(
            f"{operation} failed after {len(completed_ids)} write(s) ({state}): {detail}"
        )
        self.operation = operation
        self.completed_ids = completed_ids
        self.rolled_back = rolled_back
        self.detail = detail
