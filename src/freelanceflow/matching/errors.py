"""Domain errors raised by the matching core.

Each error knows its HTTP status and how to render itself as a JSON body, so
the API layer maps them with a single exception handler.
"""

from __future__ import annotations

from typing import Any, Iterable


class MatchingError(Exception):
    status_code = 500
    code = "SERVER_FAULT"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.code, "message": self.message}
        body.update(self.details)
        return body


class NotFound(MatchingError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any = None):
        if entity_id is None:
            message = f"{entity} not found"
        else:
            message = f"{entity} {entity_id} not found"
        super().__init__(message, {"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class Forbidden(MatchingError):
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, reason: str = "Permission denied"):
        super().__init__(reason)
        self.reason = reason


class Unauthenticated(MatchingError):
    status_code = 401
    code = "UNAUTHENTICATED"

    def __init__(self, reason: str = "Authentication required"):
        super().__init__(reason)


class ValidationFailed(MatchingError):
    status_code = 400
    code = "VALIDATION_FAILED"

    def __init__(self, errors: Iterable[dict[str, str]] | str, message: str = "Validation failed"):
        if isinstance(errors, str):
            errors = [{"field": None, "message": errors}]
        self.errors = list(errors)
        super().__init__(message, {"errors": self.errors})

    @classmethod
    def field(cls, field: str | None, message: str) -> "ValidationFailed":
        return cls([{"field": field, "message": message}])


class Conflict(MatchingError):
    """A transition whose source state no longer holds.

    ``current`` carries the authoritative state of the entity at the time the
    conflict was detected so callers can refresh without another round trip.
    """

    status_code = 409
    code = "CONFLICT"

    def __init__(
        self,
        entity: str,
        expected: Any,
        actual: Any,
        message: str | None = None,
        current: dict[str, Any] | None = None,
    ):
        expected_list = _as_state_list(expected)
        actual_value = _state_value(actual)
        if message is None:
            message = (
                f"{entity} is {actual_value!r}; expected "
                + " or ".join(repr(s) for s in expected_list)
            )
        super().__init__(
            message,
            {
                "entity": entity,
                "expected": expected_list,
                "actual": actual_value,
                "current": current,
            },
        )
        self.entity = entity
        self.expected = expected_list
        self.actual = actual_value
        self.current = current


class ServerFault(MatchingError):
    status_code = 500
    code = "SERVER_FAULT"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


def _state_value(state: Any) -> Any:
    return getattr(state, "value", state)


def _as_state_list(states: Any) -> list[Any]:
    if isinstance(states, (list, tuple, set, frozenset)):
        return sorted(_state_value(s) for s in states)
    return [_state_value(states)]
