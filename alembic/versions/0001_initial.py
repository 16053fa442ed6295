"""Create members, projects, proposals and their child tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def _timestamps(created: str = "created_at") -> list[sa.Column]:
    return [
        sa.Column(created, sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    if sa.inspect(op.get_bind()).has_table("project"):
        # already created by the application at startup; stamp only
        return

    op.create_table(
        "member",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("company", sa.Text(), nullable=True),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("rating", sa.Float(), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=True),
        *_timestamps(),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_member_email", "member", ["email"], unique=True)
    op.create_index("ix_member_created_at", "member", ["created_at"])

    op.create_table(
        "project",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("member.id"), nullable=False),
        sa.Column("freelancer_id", sa.Integer(), sa.ForeignKey("member.id"), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("budget_type", sa.String(32), nullable=False),
        sa.Column("budget_amount", sa.Float(), nullable=True),
        sa.Column("rate_min", sa.Float(), nullable=True),
        sa.Column("rate_max", sa.Float(), nullable=True),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("experience_level", sa.String(32), nullable=False),
        sa.Column("project_size", sa.String(32), nullable=False),
        sa.Column("timeline_duration", sa.String(32), nullable=False),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("is_remote", sa.Boolean(), nullable=False),
        sa.Column("is_urgent", sa.Boolean(), nullable=False),
        sa.Column("featured", sa.Boolean(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("requirements", sa.JSON(), nullable=False),
        sa.Column("deliverables", sa.JSON(), nullable=False),
        sa.Column("application_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("proposal_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint(
            "(budget_type = 'fixed' AND budget_amount > 0)"
            " OR (budget_type = 'hourly' AND rate_min > 0 AND rate_max > rate_min)",
            name="ck_project_budget",
        ),
        sa.CheckConstraint(
            "(freelancer_id IS NOT NULL) = (status IN ('in-progress', 'completed'))",
            name="ck_project_assignment",
        ),
        sa.CheckConstraint(
            "proposal_count >= 0 AND view_count >= 0", name="ck_project_counters"
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_project_client_id", "project", ["client_id"])
    op.create_index("ix_project_freelancer_id", "project", ["freelancer_id"])
    op.create_index("ix_project_category", "project", ["category"])
    op.create_index("ix_project_created_at", "project", ["created_at"])
    op.create_index("ix_project_status_created", "project", ["status", "created_at"])

    op.create_table(
        "project_skill",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "project_id",
            sa.Integer(),
            sa.ForeignKey("project.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
    )
    op.create_index("ix_project_skill_project_id", "project_skill", ["project_id"])
    op.create_index("ix_project_skill_name", "project_skill", ["name"])

    op.create_table(
        "proposal",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("project.id"), nullable=False),
        sa.Column("freelancer_id", sa.Integer(), sa.ForeignKey("member.id"), nullable=False),
        sa.Column("bid_amount", sa.Float(), nullable=False),
        sa.Column("cover_letter", sa.Text(), nullable=False),
        sa.Column("timeline", sa.Text(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("client_response", sa.Text(), nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps("submitted_at"),
        sa.CheckConstraint("bid_amount > 0", name="ck_proposal_bid_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_proposal_project_id", "proposal", ["project_id"])
    op.create_index("ix_proposal_freelancer_id", "proposal", ["freelancer_id"])
    op.create_index("ix_proposal_status", "proposal", ["status"])
    op.create_index("ix_proposal_submitted_at", "proposal", ["submitted_at"])
    op.create_index(
        "uq_proposal_active_bid",
        "proposal",
        ["project_id", "freelancer_id"],
        unique=True,
        sqlite_where=sa.text("status != 'withdrawn'"),
        postgresql_where=sa.text("status != 'withdrawn'"),
    )
    op.create_index(
        "uq_proposal_accepted",
        "proposal",
        ["project_id"],
        unique=True,
        sqlite_where=sa.text("status = 'accepted'"),
        postgresql_where=sa.text("status = 'accepted'"),
    )

    op.create_table(
        "proposal_milestone",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "proposal_id",
            sa.Integer(),
            sa.ForeignKey("proposal.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_milestone_amount_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_proposal_milestone_proposal_id", "proposal_milestone", ["proposal_id"])


def downgrade() -> None:
    op.drop_table("proposal_milestone")
    op.drop_table("proposal")
    op.drop_table("project_skill")
    op.drop_table("project")
    op.drop_table("member")
