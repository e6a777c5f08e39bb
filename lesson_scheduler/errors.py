"""Exception hierarchy for the lesson scheduler."""

from __future__ import annotations

from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for all scheduler exceptions."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InputValidationError(SchedulingError):
    """Raised when input data cannot be turned into a generation run."""


class CatalogError(InputValidationError):
    """Raised when a slot catalog is malformed (e.g. duplicate cells)."""


class DataIntegrityViolation(SchedulingError):
    """
    Raised when a produced schedule breaks a hard invariant.

    This always indicates a defect in the engine; the schedule must not be
    persisted.
    """

    def __init__(self, violations: list[str]):
        self.violations = violations
        super().__init__(
            f"{len(violations)} integrity violation(s): " + "; ".join(violations[:5]),
            details={"violations": violations},
        )


class ScheduleExistsError(SchedulingError):
    """Raised when a schedule exists and regeneration was not requested."""

    def __init__(self, institution_id: str, class_id: Optional[str] = None):
        self.institution_id = institution_id
        self.class_id = class_id
        owner = f"Class {class_id} of institution {institution_id}" if class_id else f"Institution {institution_id}"
        super().__init__(
            f"{owner} already has a timetable; pass regenerate=True to replace it",
            details={"institution_id": institution_id, "class_id": class_id},
        )


class StoreError(SchedulingError):
    """Raised when stored assignments cannot be read back as written."""
