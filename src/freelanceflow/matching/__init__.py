"""Project/proposal matching: query compilation, lifecycle rules and the
operations built on them."""

from .errors import (
    Conflict,
    Forbidden,
    MatchingError,
    NotFound,
    ServerFault,
    Unauthenticated,
    ValidationFailed,
)

__all__ = [
    "Conflict",
    "Forbidden",
    "MatchingError",
    "NotFound",
    "ServerFault",
    "Unauthenticated",
    "ValidationFailed",
]
