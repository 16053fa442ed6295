# api/models/project.py
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Field

from freelanceflow.db.models import (
    Category,
    ExperienceLevel,
    ProjectSize,
    ProjectStatus,
    TimelineDuration,
)

from .common import CamelModel, MemberSummary


class FixedBudget(CamelModel):
    type: Literal["fixed"]
    amount: float


class HourlyBudget(CamelModel):
    type: Literal["hourly"]
    rate_min: float
    rate_max: float


Budget = Annotated[Union[FixedBudget, HourlyBudget], Field(discriminator="type")]

# bounds and enum membership are checked by ProjectCRUD so the messages match
# the ones raised for non-HTTP callers


class ProjectCreate(CamelModel):
    title: str
    description: str
    category: str
    skills: Union[list[str], str]
    budget: Budget
    experience_level: str
    project_size: str
    timeline_duration: str
    location: Optional[str] = None
    is_remote: bool = True
    is_urgent: bool = False
    featured: bool = False
    tags: Union[list[str], str, None] = None
    requirements: Union[list[str], str, None] = None
    deliverables: Union[list[str], str, None] = None
    application_deadline: Optional[datetime] = None


class ProjectUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    skills: Union[list[str], str, None] = None
    budget: Optional[Budget] = None
    experience_level: Optional[str] = None
    project_size: Optional[str] = None
    timeline_duration: Optional[str] = None
    location: Optional[str] = None
    is_remote: Optional[bool] = None
    is_urgent: Optional[bool] = None
    featured: Optional[bool] = None
    tags: Union[list[str], str, None] = None
    requirements: Union[list[str], str, None] = None
    deliverables: Union[list[str], str, None] = None
    application_deadline: Optional[datetime] = None


class ProjectStatusChange(CamelModel):
    status: str


class ProjectOut(CamelModel):
    id: int
    title: str
    description: str
    status: ProjectStatus
    budget: dict[str, Any]
    category: Category
    skills: list[str]
    experience_level: ExperienceLevel
    project_size: ProjectSize
    timeline_duration: TimelineDuration
    location: Optional[str] = None
    is_remote: bool
    is_urgent: bool
    featured: bool
    tags: list[str] = []
    requirements: list[str] = []
    deliverables: list[str] = []
    application_deadline: Optional[datetime] = None
    view_count: int
    proposal_count: int
    client: MemberSummary
    assigned_freelancer: Optional[MemberSummary] = Field(
        default=None, validation_alias="freelancer"
    )
    created_at: datetime
    updated_at: datetime
