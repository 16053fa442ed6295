import enum
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, make_timestamp_mixin

MemberTimestamp = make_timestamp_mixin("created_at", "updated_at")
ProjectTimestamp = make_timestamp_mixin("created_at", "updated_at")
ProposalTimestamp = make_timestamp_mixin("submitted_at", "updated_at")


def _enum(enum_cls):
    """Store enum *values* (``in-progress``) rather than member names."""

    return SAEnum(
        enum_cls,
        native_enum=False,
        validate_strings=True,
        length=32,
        values_callable=lambda members: [member.value for member in members],
    )


class MemberRole(str, enum.Enum):
    client = "client"
    freelancer = "freelancer"
    admin = "admin"


class ProjectStatus(str, enum.Enum):
    open = "open"
    in_progress = "in-progress"
    completed = "completed"
    cancelled = "cancelled"


class ProposalStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    withdrawn = "withdrawn"


class BudgetType(str, enum.Enum):
    fixed = "fixed"
    hourly = "hourly"


class Category(str, enum.Enum):
    web_development = "web-development"
    mobile_development = "mobile-development"
    ui_ux_design = "ui-ux-design"
    graphic_design = "graphic-design"
    content_writing = "content-writing"
    digital_marketing = "digital-marketing"
    data_science = "data-science"
    devops = "devops"
    blockchain = "blockchain"
    ai_ml = "ai-ml"
    consulting = "consulting"
    other = "other"


class ExperienceLevel(str, enum.Enum):
    entry = "entry"
    intermediate = "intermediate"
    expert = "expert"


class ProjectSize(str, enum.Enum):
    small = "small"
    medium = "medium"
    large = "large"


class TimelineDuration(str, enum.Enum):
    less_than_1_month = "less-than-1-month"
    one_to_3_months = "1-3-months"
    three_to_6_months = "3-6-months"
    more_than_6_months = "more-than-6-months"


class Member(MemberTimestamp, Base):
    __tablename__ = "member"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, unique=True, index=True)
    role: Mapped[MemberRole] = mapped_column(_enum(MemberRole), nullable=False)
    company: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating: Mapped[float] = mapped_column(Float, default=0.0)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)

    projects: Mapped[list["Project"]] = relationship(
        back_populates="client", foreign_keys="Project.client_id"
    )
    proposals: Mapped[list["Proposal"]] = relationship(back_populates="freelancer")


class Project(ProjectTimestamp, Base):
    __tablename__ = "project"
    __table_args__ = (
        CheckConstraint(
            "(budget_type = 'fixed' AND budget_amount > 0)"
            " OR (budget_type = 'hourly' AND rate_min > 0 AND rate_max > rate_min)",
            name="ck_project_budget",
        ),
        CheckConstraint(
            "(freelancer_id IS NOT NULL) = (status IN ('in-progress', 'completed'))",
            name="ck_project_assignment",
        ),
        CheckConstraint("proposal_count >= 0 AND view_count >= 0", name="ck_project_counters"),
        Index("ix_project_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("member.id"), index=True)
    freelancer_id: Mapped[int | None] = mapped_column(
        ForeignKey("member.id"), nullable=True, index=True
    )

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ProjectStatus] = mapped_column(
        _enum(ProjectStatus), default=ProjectStatus.open, nullable=False
    )

    budget_type: Mapped[BudgetType] = mapped_column(_enum(BudgetType), nullable=False)
    budget_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    rate_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    rate_max: Mapped[float | None] = mapped_column(Float, nullable=True)

    category: Mapped[Category] = mapped_column(_enum(Category), index=True)
    experience_level: Mapped[ExperienceLevel] = mapped_column(_enum(ExperienceLevel))
    project_size: Mapped[ProjectSize] = mapped_column(_enum(ProjectSize))
    timeline_duration: Mapped[TimelineDuration] = mapped_column(_enum(TimelineDuration))
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_remote: Mapped[bool] = mapped_column(Boolean, default=True)
    is_urgent: Mapped[bool] = mapped_column(Boolean, default=False)
    featured: Mapped[bool] = mapped_column(Boolean, default=False)

    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    requirements: Mapped[list[str]] = mapped_column(JSON, default=list)
    deliverables: Mapped[list[str]] = mapped_column(JSON, default=list)
    application_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    proposal_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    client: Mapped["Member"] = relationship(
        back_populates="projects", foreign_keys=[client_id]
    )
    freelancer: Mapped[Optional["Member"]] = relationship(foreign_keys=[freelancer_id])
    skill_rows: Mapped[list["ProjectSkill"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectSkill.id",
    )
    proposals: Mapped[list["Proposal"]] = relationship(back_populates="project")

    @property
    def skills(self) -> list[str]:
        return [row.name for row in self.skill_rows]

    @property
    def budget(self) -> dict:
        if self.budget_type == BudgetType.fixed:
            return {"type": BudgetType.fixed.value, "amount": self.budget_amount}
        return {
            "type": BudgetType.hourly.value,
            "rateMin": self.rate_min,
            "rateMax": self.rate_max,
        }


class ProjectSkill(Base):
    __tablename__ = "project_skill"

    id: Mapped[int] = mapped_column(primary_key=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("project.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    project: Mapped["Project"] = relationship(back_populates="skill_rows")


class Proposal(ProposalTimestamp, Base):
    __tablename__ = "proposal"
    __table_args__ = (
        # one live (non-withdrawn) bid per freelancer and project
        Index(
            "uq_proposal_active_bid",
            "project_id",
            "freelancer_id",
            unique=True,
            sqlite_where=text("status != 'withdrawn'"),
            postgresql_where=text("status != 'withdrawn'"),
        ),
        # at most one accepted proposal per project
        Index(
            "uq_proposal_accepted",
            "project_id",
            unique=True,
            sqlite_where=text("status = 'accepted'"),
            postgresql_where=text("status = 'accepted'"),
        ),
        CheckConstraint("bid_amount > 0", name="ck_proposal_bid_positive"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("project.id"), index=True)
    freelancer_id: Mapped[int] = mapped_column(ForeignKey("member.id"), index=True)

    bid_amount: Mapped[float] = mapped_column(Float, nullable=False)
    cover_letter: Mapped[str] = mapped_column(Text, nullable=False)
    timeline: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ProposalStatus] = mapped_column(
        _enum(ProposalStatus), default=ProposalStatus.pending, nullable=False, index=True
    )
    client_response: Mapped[str | None] = mapped_column(Text, nullable=True)
    responded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    project: Mapped["Project"] = relationship(back_populates="proposals")
    freelancer: Mapped["Member"] = relationship(back_populates="proposals")
    milestones: Mapped[list["ProposalMilestone"]] = relationship(
        back_populates="proposal",
        cascade="all, delete-orphan",
        order_by="ProposalMilestone.position",
    )


class ProposalMilestone(Base):
    __tablename__ = "proposal_milestone"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_milestone_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    proposal_id: Mapped[int] = mapped_column(
        ForeignKey("proposal.id", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    proposal: Mapped["Proposal"] = relationship(back_populates="milestones")
