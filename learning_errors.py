"""
Error taxonomy for the learning path engine.
Callers distinguish a bad id from bad input through `kind`.
"""

from typing import Any, Optional


class LearningPathError(Exception):
    """Base exception for learning path engine errors."""

    kind = "error"

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class NotFoundError(LearningPathError):
    """Unknown path, progress record, step or goal."""

    kind = "not_found"


class InvalidInputError(LearningPathError):
    """Malformed filters, empty required fields, or an invalid step graph."""

    kind = "invalid_input"
