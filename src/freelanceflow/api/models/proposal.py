# api/models/proposal.py
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import Field

from freelanceflow.db.models import ProposalStatus

from .common import CamelModel, MemberSummary


class MilestoneIn(CamelModel):
    description: str
    amount: float
    due_date: Optional[date] = None


class MilestoneOut(MilestoneIn):
    id: int
    position: int


class ProposalCreate(CamelModel):
    project_id: int
    bid_amount: float
    cover_letter: str
    timeline: Optional[str] = None
    milestones: list[MilestoneIn] = []


class ProposalUpdate(CamelModel):
    bid_amount: Optional[float] = None
    cover_letter: Optional[str] = None
    timeline: Optional[str] = None
    milestones: Optional[list[MilestoneIn]] = None


class ProposalStatusChange(CamelModel):
    status: Literal["accepted", "rejected", "withdrawn"]
    note: Optional[str] = Field(default=None, max_length=1000)


class ProposalOut(CamelModel):
    id: int
    project_id: int
    freelancer_id: int
    freelancer: Optional[MemberSummary] = None
    bid_amount: float
    cover_letter: str
    timeline: Optional[str] = None
    status: ProposalStatus
    client_response: Optional[str] = None
    milestones: list[MilestoneOut] = []
    submitted_at: datetime
    responded_at: Optional[datetime] = None
    updated_at: datetime
