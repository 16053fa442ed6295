from .common import CamelModel, MemberSummary, dump
from .project import (
    FixedBudget,
    HourlyBudget,
    ProjectCreate,
    ProjectOut,
    ProjectStatusChange,
    ProjectUpdate,
)
from .proposal import (
    MilestoneIn,
    MilestoneOut,
    ProposalCreate,
    ProposalOut,
    ProposalStatusChange,
    ProposalUpdate,
)

__all__ = [
    "CamelModel",
    "MemberSummary",
    "dump",
    "FixedBudget",
    "HourlyBudget",
    "ProjectCreate",
    "ProjectOut",
    "ProjectStatusChange",
    "ProjectUpdate",
    "MilestoneIn",
    "MilestoneOut",
    "ProposalCreate",
    "ProposalOut",
    "ProposalStatusChange",
    "ProposalUpdate",
]
