# crud.py
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.orm import Session, selectinload

from freelanceflow.db.models import (
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
    utcnow,
)
from freelanceflow.logging import get_logger
from freelanceflow.matching.errors import ValidationFailed


logger = get_logger(__file__)


def split_list(value: Any, sep: str = ",") -> list[str]:
    """Accept ``"a, b"`` or ``["a", "b"]`` and return trimmed, non-empty items."""

    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(sep)
    else:
        items = [str(v) for v in value]
    return [item.strip() for item in items if item and item.strip()]


def _enum_value(enum_cls, value):
    if value is None:
        return None
    try:
        return enum_cls(getattr(value, "value", value))
    except ValueError:
        return None


class CRUDBase:

    def __init__(self, model, req_cols: Optional[List[str]] = None):
        self.model = model
        self.req_cols = req_cols

    def get_columns(self):
        return [col.name for col in self.model.__table__.columns]

    def validate_input(self, session: Session, record: dict = None) -> dict:

        if session is None:
            raise ValueError("A database session is required for validation.")

        allowed_keys = self.get_columns()
        cleaned_record = {}
        for k, v in (record or {}).items():
            if k in allowed_keys:
                cleaned_record[k] = v
            else:
                logger.debug("Key '%s' not in %s columns, removing from record.", k, self.model.__tablename__)

        if self.req_cols is not None:
            missing = [col for col in self.req_cols if cleaned_record.get(col) in (None, "")]
            if missing:
                raise ValidationFailed(
                    [{"field": col, "message": f"{col} is required"} for col in missing]
                )

        return cleaned_record

    def get(self, session: Session, id: int):
        return session.get(self.model, id)

    def create(self, session: Session, record: dict, *, commit: bool = True):
        record = self.validate_input(session, record)
        if record is None:
            logger.warning("Record is None after validation, skipping insert.")
            return None
        obj = self.model(**record)
        session.add(obj)
        self._finish(session, obj, commit)
        logger.info("Inserted into %s: id=%s", self.model.__tablename__, obj.id)
        return obj

    def compare_and_set_status(
        self,
        session: Session,
        id: int,
        expected: ProjectStatus | ProposalStatus | Iterable,
        new_status,
        **values,
    ) -> bool:
        """Move row ``id`` to ``new_status`` only if it is still in ``expected``.

        Returns ``True`` when exactly one row was updated. The check and the
        write are a single ``UPDATE ... WHERE status IN (...)`` so competing
        writers cannot both observe the old state.
        """

        if isinstance(expected, (ProjectStatus, ProposalStatus, str)):
            expected = [expected]
        stmt = (
            update(self.model)
            .where(self.model.id == id, self.model.status.in_(list(expected)))
            .values(status=new_status, **values)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        return result.rowcount == 1

    @staticmethod
    def _finish(session: Session, obj, commit: bool):
        if commit:
            session.commit()
        else:
            session.flush()
        session.refresh(obj)


class MemberCRUD(CRUDBase):

    def __init__(self):
        super().__init__(Member, req_cols=["name", "email", "role"])

    def validate_input(self, session: Session, record: dict) -> dict | None:
        record = super().validate_input(session, record)
        role = _enum_value(MemberRole, record.get("role"))
        if role is None:
            raise ValidationFailed.field("role", "Role must be client, freelancer or admin")
        record["role"] = role
        record["email"] = record["email"].strip().lower()

        existing = session.execute(
            select(Member).where(func.lower(Member.email) == record["email"])
        ).scalar_one_or_none()
        if existing:
            logger.info(
                "Member with email '%s' already exists (ID %s). Skipping insert.",
                record["email"],
                existing.id,
            )
            return None
        return record

    def by_email(self, session: Session, email: str) -> Member | None:
        return session.execute(
            select(Member).where(func.lower(Member.email) == email.strip().lower())
        ).scalar_one_or_none()


class ProjectCRUD(CRUDBase):
    """Project persistence; owns field validation and normalization."""

    TITLE_RANGE = (10, 100)
    DESCRIPTION_RANGE = (50, 5000)
    MIN_BUDGET = 5
    LOCATION_MAX = 100

    FLAG_FIELDS = ("is_remote", "is_urgent", "featured")
    BUDGET_FIELDS = ("budget_type", "budget_amount", "rate_min", "rate_max")

    ENUM_FIELDS = {
        "category": (Category, "Invalid category"),
        "experience_level": (ExperienceLevel, "Invalid experience level"),
        "project_size": (ProjectSize, "Invalid project size"),
        "timeline_duration": (TimelineDuration, "Invalid timeline duration"),
    }

    def __init__(self):
        super().__init__(
            Project,
            req_cols=[
                "client_id",
                "title",
                "description",
                "category",
                "experience_level",
                "project_size",
                "timeline_duration",
            ],
        )

    @staticmethod
    def _flatten_budget(record: dict) -> dict:
        budget = record.pop("budget", None)
        if budget is None:
            return record
        if hasattr(budget, "model_dump"):
            budget = budget.model_dump()
        if not isinstance(budget, dict):
            raise ValidationFailed.field("budget", "Budget must be an object")
        hourly = budget.get("hourly_rate") or budget.get("hourlyRate") or {}
        record["budget_type"] = budget.get("type")
        record["budget_amount"] = budget.get("amount")
        record["rate_min"] = budget.get("rate_min", budget.get("rateMin", hourly.get("min")))
        record["rate_max"] = budget.get("rate_max", budget.get("rateMax", hourly.get("max")))
        return record

    def normalize(self, record: dict) -> dict:
        """Split list-ish inputs and coerce enums; does not check bounds."""

        record = self._flatten_budget(dict(record))
        if "timeline" in record and "timeline_duration" not in record:
            timeline = record.pop("timeline")
            if isinstance(timeline, dict):
                timeline = timeline.get("duration")
            record["timeline_duration"] = timeline
        for key in ("title", "description", "location"):
            if isinstance(record.get(key), str):
                record[key] = record[key].strip()
        if "skills" in record:
            record["skills"] = split_list(record["skills"])
        if "tags" in record:
            record["tags"] = [tag.lower() for tag in split_list(record["tags"])]
        for key in ("requirements", "deliverables"):
            if key in record:
                record[key] = split_list(record[key], sep="\n")
        if record.get("budget_type") is not None:
            record["budget_type"] = _enum_value(BudgetType, record["budget_type"]) or record["budget_type"]
        if isinstance(record.get("application_deadline"), str):
            try:
                record["application_deadline"] = datetime.fromisoformat(
                    record["application_deadline"].replace("Z", "+00:00")
                )
            except ValueError:
                pass
        return record

    def check_fields(self, record: dict, *, creating: bool) -> None:
        """Raise :class:`ValidationFailed` listing every offending field."""

        errors: list[dict[str, str]] = []

        def fail(field, message):
            errors.append({"field": field, "message": message})

        title = record.get("title")
        if "title" in record or creating:
            lo, hi = self.TITLE_RANGE
            if not isinstance(title, str) or not lo <= len(title) <= hi:
                fail("title", f"Title must be between {lo} and {hi} characters")

        description = record.get("description")
        if "description" in record or creating:
            lo, hi = self.DESCRIPTION_RANGE
            if not isinstance(description, str) or not lo <= len(description) <= hi:
                fail("description", f"Description must be between {lo} and {hi} characters")

        for field, (enum_cls, message) in self.ENUM_FIELDS.items():
            if field in record or creating:
                value = _enum_value(enum_cls, record.get(field))
                if value is None:
                    fail(field, message)
                else:
                    record[field] = value

        if "skills" in record or creating:
            if not record.get("skills"):
                fail("skills", "At least one skill is required")

        for field in self.FLAG_FIELDS:
            if field in record and not isinstance(record[field], bool):
                fail(field, f"{field} must be true or false")

        if "budget_type" in record or creating:
            self._check_budget(record, fail)

        location = record.get("location")
        if location is not None and len(location) > self.LOCATION_MAX:
            fail("location", f"Location cannot exceed {self.LOCATION_MAX} characters")

        deadline = record.get("application_deadline")
        if deadline is not None:
            if not isinstance(deadline, datetime):
                fail("application_deadline", "Application deadline must be an ISO 8601 date")
            else:
                if deadline.tzinfo is None:
                    deadline = deadline.replace(tzinfo=timezone.utc)
                    record["application_deadline"] = deadline
                if deadline <= utcnow():
                    fail("application_deadline", "Application deadline must be in the future")

        if errors:
            raise ValidationFailed(errors)

    def _check_budget(self, record: dict, fail) -> None:
        budget_type = _enum_value(BudgetType, record.get("budget_type"))
        if budget_type is None:
            fail("budget.type", "Budget type must be fixed or hourly")
            return
        record["budget_type"] = budget_type
        if budget_type == BudgetType.fixed:
            amount = _number(record.get("budget_amount"))
            if amount is None or amount < self.MIN_BUDGET:
                fail("budget.amount", f"Fixed budget must be at least ${self.MIN_BUDGET}")
            record.update(budget_amount=amount, rate_min=None, rate_max=None)
            return
        rate_min = _number(record.get("rate_min"))
        rate_max = _number(record.get("rate_max"))
        if rate_min is None or rate_min < self.MIN_BUDGET:
            fail("budget.rateMin", f"Minimum hourly rate must be at least ${self.MIN_BUDGET}")
        elif rate_max is None or rate_max <= rate_min:
            fail("budget.rateMax", "Maximum hourly rate must be greater than minimum")
        record.update(budget_amount=None, rate_min=rate_min, rate_max=rate_max)

    def validate_input(self, session: Session, record: dict = None) -> dict:
        record = self.normalize(record or {})
        self.check_fields(record, creating=True)
        skills = record.pop("skills")
        cleaned = super().validate_input(session, record)
        cleaned["skills"] = skills
        return cleaned

    def create(self, session: Session, record: dict, *, commit: bool = True) -> Project:
        record = self.validate_input(session, record)
        skills = record.pop("skills")
        obj = Project(**record)
        obj.skill_rows = [ProjectSkill(name=name) for name in skills]
        session.add(obj)
        self._finish(session, obj, commit)
        logger.info("Inserted project %s for client %s", obj.id, obj.client_id)
        return obj

    def update(self, session: Session, project: Project, changes: dict, *, commit: bool = True) -> Project:
        """Apply a partial update.

        Budget columns are validated together: a change to one of them is
        checked against the project's current values for the others.
        """

        changes = self.normalize(changes)
        if any(key in changes for key in self.BUDGET_FIELDS):
            for key in self.BUDGET_FIELDS:
                changes.setdefault(key, getattr(project, key))
        self.check_fields(changes, creating=False)
        skills = changes.pop("skills", None)
        allowed = set(self.get_columns())
        for key, value in changes.items():
            if key not in allowed:
                logger.debug("Ignoring unknown project field '%s'", key)
                continue
            setattr(project, key, value)
        if skills is not None:
            project.skill_rows = [ProjectSkill(name=name) for name in skills]
        self._finish(session, project, commit)
        return project

    def delete_unclaimed(self, session: Session, project_id: int) -> bool:
        """Delete an open project that never received a proposal."""

        stmt = (
            delete(Project)
            .where(
                Project.id == project_id,
                Project.status == ProjectStatus.open,
                Project.proposal_count == 0,
            )
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).rowcount == 1

    def reserve_proposal_slot(self, session: Session, project_id: int) -> bool:
        """Increment ``proposal_count`` only while the project is open."""

        stmt = (
            update(Project)
            .where(Project.id == project_id, Project.status == ProjectStatus.open)
            .values(proposal_count=Project.proposal_count + 1)
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).rowcount == 1

    def increment_views(self, session: Session, project_id: int) -> bool:
        stmt = (
            update(Project)
            .where(Project.id == project_id)
            .values(view_count=Project.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).rowcount == 1

    def category_counts(self, session: Session, status: ProjectStatus = ProjectStatus.open) -> Dict[str, int]:
        count = func.count(Project.id)
        rows = session.execute(
            select(Project.category, count)
            .where(Project.status == status)
            .group_by(Project.category)
            .order_by(count.desc(), Project.category)
        ).all()
        return {_enum_value(Category, cat).value: n for cat, n in rows}

    def budget_stats(self, session: Session) -> dict:
        """Totals over every project; averages use fixed budgets only."""

        is_open = case((Project.status == ProjectStatus.open, 1), else_=0)
        total, open_count, avg, budget_sum = session.execute(
            select(
                func.count(Project.id),
                func.sum(is_open),
                func.avg(Project.budget_amount),
                func.sum(Project.budget_amount),
            )
        ).one()
        return {
            "totalProjects": total or 0,
            "openProjects": open_count or 0,
            "avgBudget": round(avg, 2) if avg is not None else 0,
            "totalBudget": budget_sum or 0,
        }


class ProposalCRUD(CRUDBase):
    """Proposals keyed by (project, freelancer)."""

    COVER_LETTER_RANGE = (50, 5000)
    TIMELINE_MAX = 200

    def __init__(self):
        super().__init__(
            Proposal,
            req_cols=["project_id", "freelancer_id", "bid_amount", "cover_letter"],
        )

    def check_content(self, record: dict, *, creating: bool) -> None:
        errors: list[dict[str, str]] = []

        bid = record.get("bid_amount")
        if bid is not None or creating:
            bid = _number(bid)
            if bid is None or bid <= 0:
                errors.append({"field": "bid_amount", "message": "Bid amount must be a positive number"})
            else:
                record["bid_amount"] = bid

        letter = record.get("cover_letter")
        if letter is not None or creating:
            lo, hi = self.COVER_LETTER_RANGE
            letter = letter.strip() if isinstance(letter, str) else letter
            if not isinstance(letter, str) or not lo <= len(letter) <= hi:
                errors.append(
                    {"field": "cover_letter", "message": f"Cover letter must be between {lo} and {hi} characters"}
                )
            else:
                record["cover_letter"] = letter

        timeline = record.get("timeline")
        if timeline is not None and len(str(timeline)) > self.TIMELINE_MAX:
            errors.append(
                {"field": "timeline", "message": f"Timeline cannot exceed {self.TIMELINE_MAX} characters"}
            )

        milestones = record.get("milestones")
        if milestones:
            total = 0.0
            for idx, ms in enumerate(milestones):
                if hasattr(ms, "model_dump"):
                    ms = ms.model_dump()
                    milestones[idx] = ms
                amount = _number(ms.get("amount"))
                if not (ms.get("description") or "").strip():
                    errors.append({"field": f"milestones[{idx}].description", "message": "Description is required"})
                if amount is None or amount <= 0:
                    errors.append({"field": f"milestones[{idx}].amount", "message": "Amount must be positive"})
                else:
                    total += amount
            bid_value = _number(record.get("bid_amount"))
            if bid_value is not None and total > bid_value:
                errors.append(
                    {"field": "milestones", "message": "Milestone amounts cannot exceed the bid amount"}
                )

        if errors:
            raise ValidationFailed(errors)

    def validate_input(self, session: Session, record: dict = None) -> dict:
        record = dict(record or {})
        self.check_content(record, creating=True)
        milestones = record.pop("milestones", None) or []
        cleaned = super().validate_input(session, record)
        cleaned["milestones"] = milestones
        return cleaned

    @staticmethod
    def _milestone_rows(milestones: Sequence[dict]) -> list[ProposalMilestone]:
        return [
            ProposalMilestone(
                position=idx,
                description=ms["description"].strip(),
                amount=_number(ms["amount"]),
                due_date=_as_date(ms.get("due_date") or ms.get("dueDate")),
            )
            for idx, ms in enumerate(milestones)
        ]

    def create(self, session: Session, record: dict, *, commit: bool = True) -> Proposal:
        record = self.validate_input(session, record)
        milestones = record.pop("milestones")
        obj = Proposal(**record)
        obj.milestones = self._milestone_rows(milestones)
        session.add(obj)
        self._finish(session, obj, commit)
        logger.info(
            "Inserted proposal %s on project %s by freelancer %s",
            obj.id,
            obj.project_id,
            obj.freelancer_id,
        )
        return obj

    def update_content(self, session: Session, proposal: Proposal, changes: dict, *, commit: bool = True) -> Proposal:
        changes = dict(changes)
        if changes.get("milestones") is not None and "bid_amount" not in changes:
            changes["bid_amount"] = proposal.bid_amount
        self.check_content(changes, creating=False)
        for key in ("bid_amount", "cover_letter", "timeline"):
            if key in changes and changes[key] is not None:
                setattr(proposal, key, changes[key])
        if changes.get("milestones") is not None:
            proposal.milestones = self._milestone_rows(changes["milestones"])
        elif "bid_amount" in changes:
            if sum(ms.amount for ms in proposal.milestones) > proposal.bid_amount:
                raise ValidationFailed.field(
                    "milestones", "Milestone amounts cannot exceed the bid amount"
                )
        self._finish(session, proposal, commit)
        return proposal

    def find_active(self, session: Session, project_id: int, freelancer_id: int) -> Proposal | None:
        """The freelancer's non-withdrawn proposal on ``project_id``, if any."""

        return session.execute(
            select(Proposal).where(
                Proposal.project_id == project_id,
                Proposal.freelancer_id == freelancer_id,
                Proposal.status != ProposalStatus.withdrawn,
            )
        ).scalar_one_or_none()

    def _listing(self, *conditions):
        return (
            select(Proposal)
            .where(*conditions)
            .options(selectinload(Proposal.milestones))
            .order_by(Proposal.submitted_at.desc(), Proposal.id.desc())
        )

    def list_by_project(self, session: Session, project_id: int, status: ProposalStatus | None = None) -> list[Proposal]:
        conditions = [Proposal.project_id == project_id]
        if status is not None:
            conditions.append(Proposal.status == status)
        return list(session.execute(self._listing(*conditions)).scalars())

    def list_by_freelancer(self, session: Session, freelancer_id: int, status: ProposalStatus | None = None) -> list[Proposal]:
        conditions = [Proposal.freelancer_id == freelancer_id]
        if status is not None:
            conditions.append(Proposal.status == status)
        return list(session.execute(self._listing(*conditions)).scalars())

    def list_by_status(self, session: Session, status: ProposalStatus) -> list[Proposal]:
        return list(session.execute(self._listing(Proposal.status == status)).scalars())

    def list_for_client(self, session: Session, client_id: int, status: ProposalStatus | None = None) -> list[Proposal]:
        conditions = [Proposal.project_id.in_(select(Project.id).where(Project.client_id == client_id))]
        if status is not None:
            conditions.append(Proposal.status == status)
        return list(session.execute(self._listing(*conditions)).scalars())

    def count_for_project(self, session: Session, project_id: int) -> int:
        return session.execute(
            select(func.count(Proposal.id)).where(Proposal.project_id == project_id)
        ).scalar_one()

    def reject_pending(self, session: Session, project_id: int, *, except_id: int, note: str) -> list[int]:
        """Reject every other pending proposal on ``project_id``; returns their ids."""

        ids = list(
            session.execute(
                select(Proposal.id).where(
                    Proposal.project_id == project_id,
                    Proposal.status == ProposalStatus.pending,
                    Proposal.id != except_id,
                )
            ).scalars()
        )
        if ids:
            session.execute(
                update(Proposal)
                .where(Proposal.id.in_(ids), Proposal.status == ProposalStatus.pending)
                .values(
                    status=ProposalStatus.rejected,
                    client_response=note,
                    responded_at=utcnow(),
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
        return ids


def _number(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_date(value) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationFailed.field("milestones.due_date", "Due date must be an ISO 8601 date")
