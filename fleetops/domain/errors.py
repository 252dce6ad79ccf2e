"""
Typed failures raised by the dispatch core.

* ``ValidationError``  -- bad input, always raised before any write.
* ``NotFoundError``    -- order / trip / expense id missing for the tenant.
* ``PersistenceError`` -- storage failed part-way through a workflow.  Carries
  the step that failed and the trips whose financial snapshot may be stale;
  re-running ``recalculate`` on those ids restores consistency.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional


class DispatchError(Exception):
    """Base class for every failure the core surfaces to callers."""

    error_code = "ERR_DISPATCH"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(DispatchError):
    error_code = "ERR_VALIDATION"


class InvalidStateTransition(ValidationError):
    """Raised when an order status change violates the state machine."""

    error_code = "ERR_INVALID_TRANSITION"


class NotFoundError(DispatchError):
    error_code = "ERR_NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} {resource_id} not found"
        super().__init__(message, {"resource": resource, "id": str(resource_id)})
        self.resource = resource
        self.resource_id = resource_id


class PersistenceError(DispatchError):
    error_code = "ERR_PERSISTENCE"

    def __init__(
        self,
        message: str,
        step: Optional[str] = None,
        affected_trip_ids: Iterable[Any] = (),
    ):
        self.step = step
        self.affected_trip_ids = [t for t in affected_trip_ids if t is not None]
        super().__init__(
            message,
            {
                "step": step,
                "affected_trip_ids": [str(t) for t in self.affected_trip_ids],
            },
        )
