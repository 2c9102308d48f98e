"""
Domain errors raised by the pipeline rules engine.

These are business rejections, not crashes. The API layer maps them to
4xx responses:
- ValidationError    -> 400
- NotFoundError      -> 404
- TransitionRejected -> 409
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True, slots=True)
class FieldError:
    """A single field-level validation failure."""

    field: str
    message: str
    index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"field": self.field, "message": self.message}
        if self.index is not None:
            data["index"] = self.index
        return data


class PipelineError(Exception):
    """Base class for every rejection produced by the rules engine."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(PipelineError):
    """Missing/malformed input or an out-of-range value."""

    def __init__(
        self,
        message: str,
        errors: Optional[List[FieldError]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.errors: List[FieldError] = list(errors or [])
        self.context: Dict[str, Any] = dict(context or {})

    @classmethod
    def for_field(cls, field_name: str, message: str) -> "ValidationError":
        return cls(message, [FieldError(field=field_name, message=message)])


class NotFoundError(PipelineError):
    """An event referenced an entity that does not exist."""

    def __init__(self, entity: str, identifier: Any) -> None:
        super().__init__(f"{entity} not found: {identifier}")
        self.entity = entity
        self.identifier = identifier


class TransitionRejected(PipelineError):
    """The event is not a legal transition from the entity's current state."""

    def __init__(self, message: str, current: Optional[str] = None, event: Optional[str] = None) -> None:
        super().__init__(message)
        self.current = current
        self.event = event


__all__ = [
    "FieldError",
    "PipelineError",
    "ValidationError",
    "NotFoundError",
    "TransitionRejected",
]
