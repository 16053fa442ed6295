# Models package: split into domain modules but re-exported for convenience
from freelanceflow.logging import get_logger

from .base import Base, make_timestamp_mixin, utcnow
from .core import (
    BudgetType,
    Category,
    ExperienceLevel,
    Member,
    MemberRole,
    Project,
    ProjectSize,
    ProjectSkill,
    ProjectStatus,
    Proposal,
    ProposalMilestone,
    ProposalStatus,
    TimelineDuration,
)
from .engine import sqlite_engine, initialize_db

logger = get_logger(__file__)

__all__ = [
    "Base",
    "make_timestamp_mixin",
    "utcnow",
    "BudgetType",
    "Category",
    "ExperienceLevel",
    "Member",
    "MemberRole",
    "Project",
    "ProjectSize",
    "ProjectSkill",
    "ProjectStatus",
    "Proposal",
    "ProposalMilestone",
    "ProposalStatus",
    "TimelineDuration",
    "sqlite_engine",
    "initialize_db",
    "logger",
]
