"""Core package for FreelanceFlow.

Projects posted by clients, proposals submitted by freelancers and the rules
that match the two. :func:`get_session` opens the persistence layer.
"""

from .db import get_session

__all__ = ["get_session"]
