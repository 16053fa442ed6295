"""Operations callers use: listing, project edits and proposal handling.

Functions take an open :class:`~sqlalchemy.orm.Session` and the acting
:class:`~freelanceflow.db.models.Member`. Authorization and lookups happen
here; state changes are delegated to :mod:`freelanceflow.matching.lifecycle`.
"""

from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from freelanceflow.db.connect import SessionFactory
from freelanceflow.db.crud import ProjectCRUD, ProposalCRUD
from freelanceflow.db.models import (
    Member,
    MemberRole,
    Project,
    ProjectStatus,
    Proposal,
    ProposalStatus,
)
from freelanceflow.logging import get_logger
from freelanceflow.matching import lifecycle
from freelanceflow.matching.errors import (
    Conflict,
    Forbidden,
    NotFound,
    ServerFault,
    ValidationFailed,
)
from freelanceflow.matching.notify import notify
from freelanceflow.matching.query import (
    apply_plan,
    compile_query,
    count_statement,
    pagination_meta,
)

logger = get_logger(__file__)

projects = ProjectCRUD()
proposals = ProposalCRUD()

# server-maintained or lifecycle-controlled; never taken from an edit payload
PROTECTED_PROJECT_FIELDS = frozenset(
    {
        "id",
        "client",
        "client_id",
        "clientId",
        "freelancer",
        "freelancer_id",
        "freelancerId",
        "status",
        "proposal_count",
        "proposalCount",
        "view_count",
        "viewCount",
        "created_at",
        "createdAt",
        "updated_at",
        "updatedAt",
    }
)

EDITABLE_STATES = frozenset({ProjectStatus.open, ProjectStatus.in_progress})


def _parse_id(entity: str, raw: Any) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        raise NotFound(entity, raw)
    if value < 1:
        raise NotFound(entity, raw)
    return value


def _read(action: str, fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except SQLAlchemyError as exc:
        logger.exception("%s failed", action)
        raise ServerFault(f"{action} failed") from exc


def load_project(session: Session, project_id: Any) -> Project:
    pk = _parse_id("project", project_id)
    project = _read("load project", session.get, Project, pk)
    if project is None:
        raise NotFound("project", pk)
    return project


def load_proposal(session: Session, proposal_id: Any) -> Proposal:
    pk = _parse_id("proposal", proposal_id)
    proposal = _read("load proposal", session.get, Proposal, pk)
    if proposal is None:
        raise NotFound("proposal", pk)
    return proposal


def is_admin(member: Member) -> bool:
    return member.role == MemberRole.admin


def require_owner(member: Member, project: Project) -> None:
    if is_admin(member):
        return
    if member.role != MemberRole.client or project.client_id != member.id:
        raise Forbidden("Only the project owner may do this")


# -- projects ---------------------------------------------------------------


def list_projects(session: Session, params: Mapping[str, Any] | None) -> tuple[list[Project], dict]:
    """Return one page of projects and its pagination meta. Read-only."""

    plan = compile_query(params)
    stmt = apply_plan(
        select(Project).options(
            selectinload(Project.skill_rows),
            selectinload(Project.client),
            selectinload(Project.freelancer),
        ),
        plan,
    )

    def run():
        total = session.execute(count_statement(plan)).scalar_one()
        rows = list(session.execute(stmt).scalars())
        return rows, total

    rows, total = _read("list projects", run)
    logger.debug("listed %d of %d projects for %s", len(rows), total, plan.filters)
    return rows, pagination_meta(plan, total)


def get_project(session: Session, project_id: Any) -> Project:
    return load_project(session, project_id)


def record_view(session_factory: SessionFactory, project_id: Any) -> None:
    """Count one view. Runs after the read; failures are only logged."""

    try:
        pk = _parse_id("project", project_id)
        with session_factory() as session:
            projects.increment_views(session, pk)
    except NotFound:
        return
    except SQLAlchemyError:
        logger.warning("Could not record view for project %s", project_id, exc_info=True)


def create_project(session: Session, caller: Member, payload: Mapping[str, Any]) -> Project:
    if caller.role != MemberRole.client:
        raise Forbidden("Only clients may post projects")
    record = dict(payload)
    for key in PROTECTED_PROJECT_FIELDS:
        record.pop(key, None)
    record["client_id"] = caller.id
    with lifecycle.atomic(session, "create project"):
        project = projects.create(session, record, commit=False)
    notify("project.created", project_id=project.id, client_id=caller.id)
    return project


def update_project(session: Session, project_id: Any, caller: Member, payload: Mapping[str, Any]) -> Project:
    project = load_project(session, project_id)
    require_owner(caller, project)
    if project.status not in EDITABLE_STATES:
        raise Conflict(
            "project", EDITABLE_STATES, project.status, current=lifecycle.project_state(project)
        )

    changes = {k: v for k, v in payload.items() if k not in PROTECTED_PROJECT_FIELDS}
    stripped = sorted(set(payload) - set(changes))
    if stripped:
        logger.debug("update_project(%s): ignoring protected fields %s", project.id, stripped)

    with lifecycle.atomic(session, "update project"):
        projects.update(session, project, changes, commit=False)
    session.refresh(project)
    return project


def delete_project(session: Session, project_id: Any, caller: Member) -> None:
    project = load_project(session, project_id)
    require_owner(caller, project)
    pk = project.id
    lifecycle.delete(session, project)
    notify("project.deleted", project_id=pk)


def set_project_status(session: Session, project_id: Any, caller: Member, new_status: Any) -> Project:
    project = load_project(session, project_id)
    require_owner(caller, project)
    previous = project.status
    project = lifecycle.set_project_status(session, project, new_status)
    notify(
        "project.status_changed",
        project_id=project.id,
        previous=previous.value,
        status=project.status.value,
    )
    return project


def category_stats(session: Session) -> dict[str, Any]:
    """Open-project counts per category plus overall budget figures."""

    counts = _read("category stats", projects.category_counts, session)
    stats = _read("category stats", projects.budget_stats, session)
    categories = [
        {"name": name, "label": category_label(name), "count": count}
        for name, count in counts.items()
    ]
    return {"categories": categories, "stats": stats}


def category_label(name: str) -> str:
    return " ".join(word.capitalize() for word in name.split("-"))


# -- proposals --------------------------------------------------------------


def submit_proposal(session: Session, project_id: Any, freelancer: Member, payload: Mapping[str, Any]) -> Proposal:
    if freelancer.role != MemberRole.freelancer:
        raise Forbidden("Only freelancers may submit proposals")
    project = load_project(session, project_id)
    proposal = lifecycle.submit(session, project, freelancer.id, dict(payload))
    notify(
        "proposal.submitted",
        proposal_id=proposal.id,
        project_id=project.id,
        freelancer_id=freelancer.id,
        client_id=project.client_id,
    )
    return proposal


def get_proposal(session: Session, proposal_id: Any, caller: Member) -> Proposal:
    proposal = load_proposal(session, proposal_id)
    if is_admin(caller) or proposal.freelancer_id == caller.id:
        return proposal
    if proposal.project.client_id == caller.id:
        return proposal
    raise Forbidden("Only the project owner or the submitting freelancer may view this proposal")


def update_proposal(session: Session, proposal_id: Any, freelancer: Member, payload: Mapping[str, Any]) -> Proposal:
    """Edit bid, cover letter, timeline or milestones of a pending proposal."""

    proposal = load_proposal(session, proposal_id)
    if proposal.freelancer_id != freelancer.id:
        raise Forbidden("Only the submitting freelancer may edit this proposal")
    if proposal.status != ProposalStatus.pending:
        raise Conflict(
            "proposal",
            ProposalStatus.pending,
            proposal.status,
            current=lifecycle.proposal_state(proposal),
        )

    changes = {
        key: payload[key]
        for key in ("bid_amount", "cover_letter", "timeline", "milestones")
        if key in payload
    }
    with lifecycle.atomic(session, "update proposal"):
        # takes the write lock and proves the proposal is still pending
        if not proposals.compare_and_set_status(
            session, proposal.id, ProposalStatus.pending, ProposalStatus.pending
        ):
            raise lifecycle.stale_conflict(session, "proposal", proposal.id, ProposalStatus.pending)
        proposals.update_content(session, proposal, changes, commit=False)
    session.refresh(proposal)
    return proposal


def accept_proposal(session: Session, proposal_id: Any, client: Member, note: str | None = None) -> tuple[Proposal, Project]:
    proposal = load_proposal(session, proposal_id)
    project = proposal.project
    require_owner(client, project)
    proposal, rejected = lifecycle.accept(session, proposal, project, note=note)
    notify(
        "proposal.accepted",
        proposal_id=proposal.id,
        project_id=project.id,
        freelancer_id=proposal.freelancer_id,
    )
    for other in rejected:
        notify("proposal.rejected", proposal_id=other, project_id=project.id, automatic=True)
    return proposal, project


def reject_proposal(session: Session, proposal_id: Any, client: Member, note: str | None = None) -> Proposal:
    proposal = load_proposal(session, proposal_id)
    require_owner(client, proposal.project)
    proposal = lifecycle.reject(session, proposal, note=note)
    notify(
        "proposal.rejected",
        proposal_id=proposal.id,
        project_id=proposal.project_id,
        freelancer_id=proposal.freelancer_id,
    )
    return proposal


def withdraw_proposal(session: Session, proposal_id: Any, freelancer: Member) -> Proposal:
    proposal = load_proposal(session, proposal_id)
    if proposal.freelancer_id != freelancer.id:
        raise Forbidden("Only the submitting freelancer may withdraw this proposal")
    proposal = lifecycle.withdraw(session, proposal)
    notify("proposal.withdrawn", proposal_id=proposal.id, project_id=proposal.project_id)
    return proposal


def _parse_proposal_status(raw: Any) -> ProposalStatus | None:
    if raw is None or raw == "":
        return None
    try:
        return ProposalStatus(getattr(raw, "value", raw))
    except ValueError:
        raise ValidationFailed.field("status", f"Unknown proposal status {raw!r}")


def list_proposals(
    session: Session,
    caller: Member,
    project: Any = None,
    freelancer: Any = None,
    status: Any = None,
) -> list[Proposal]:
    """Proposals visible to ``caller``.

    Project owners see every proposal on their projects; freelancers only
    their own; admins everything.
    """

    wanted = _parse_proposal_status(status)

    if project is not None:
        target = load_project(session, project)
        rows = _read("list proposals", proposals.list_by_project, session, target.id, wanted)
        if is_admin(caller) or target.client_id == caller.id:
            pass
        elif caller.role == MemberRole.freelancer:
            rows = [p for p in rows if p.freelancer_id == caller.id]
        else:
            raise Forbidden("Only the project owner may list its proposals")
        if freelancer is not None:
            fid = _parse_id("member", freelancer)
            rows = [p for p in rows if p.freelancer_id == fid]
        return rows

    if freelancer is not None:
        fid = _parse_id("member", freelancer)
        if fid != caller.id and not is_admin(caller):
            raise Forbidden("Freelancers may only list their own proposals")
        return _read("list proposals", proposals.list_by_freelancer, session, fid, wanted)

    if is_admin(caller):
        if wanted is None:
            return list(
                _read(
                    "list proposals",
                    lambda: session.execute(
                        select(Proposal).order_by(Proposal.submitted_at.desc(), Proposal.id.desc())
                    ).scalars().all(),
                )
            )
        return _read("list proposals", proposals.list_by_status, session, wanted)
    if caller.role == MemberRole.client:
        return _read("list proposals", proposals.list_for_client, session, caller.id, wanted)
    return _read("list proposals", proposals.list_by_freelancer, session, caller.id, wanted)
