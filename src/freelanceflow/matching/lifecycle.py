"""Project and proposal state machines.

Every transition here is one transaction. The source state is never trusted
from a previous read: each write is a compare-and-set
(``UPDATE ... WHERE id = :id AND status IN (:expected)``) and a rowcount other
than one means somebody else moved the entity first, which is reported as a
:class:`~freelanceflow.matching.errors.Conflict` carrying the state that won.

Accepting is the contended path. The project row is claimed first
(``open -> in-progress``); only the caller whose update hits the row goes on
to accept the proposal and reject the competing ones. SQLite serializes the
writers, and the busy timeout on the engine makes the loser wait for the
winner's commit and then match zero rows.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from freelanceflow.db.crud import ProjectCRUD, ProposalCRUD
from freelanceflow.db.models import (
    Project,
    ProjectStatus,
    Proposal,
    ProposalStatus,
    utcnow,
)
from freelanceflow.logging import get_logger
from freelanceflow.matching.errors import (
    Conflict,
    MatchingError,
    NotFound,
    ServerFault,
    ValidationFailed,
)

logger = get_logger(__file__)

PROJECT_TRANSITIONS: dict[ProjectStatus, frozenset[ProjectStatus]] = {
    ProjectStatus.open: frozenset({ProjectStatus.in_progress, ProjectStatus.cancelled}),
    ProjectStatus.in_progress: frozenset({ProjectStatus.completed, ProjectStatus.cancelled}),
    ProjectStatus.completed: frozenset(),
    ProjectStatus.cancelled: frozenset(),
}

PROPOSAL_TRANSITIONS: dict[ProposalStatus, frozenset[ProposalStatus]] = {
    ProposalStatus.pending: frozenset(
        {ProposalStatus.accepted, ProposalStatus.rejected, ProposalStatus.withdrawn}
    ),
    ProposalStatus.accepted: frozenset(),
    ProposalStatus.rejected: frozenset(),
    ProposalStatus.withdrawn: frozenset(),
}

# in-progress is only entered through accept()
CLIENT_SETTABLE = frozenset({ProjectStatus.completed, ProjectStatus.cancelled})

AUTO_REJECT_NOTE = "Another proposal was accepted for this project."

# expected state reported when a freelancer bids twice on the same project
NO_ACTIVE_PROPOSAL = "none-active"

projects = ProjectCRUD()
proposals = ProposalCRUD()


def can_transition_project(current: ProjectStatus, new: ProjectStatus) -> bool:
    return new in PROJECT_TRANSITIONS.get(current, frozenset())


def can_transition_proposal(current: ProposalStatus, new: ProposalStatus) -> bool:
    return new in PROPOSAL_TRANSITIONS.get(current, frozenset())


def sources_of(new: ProjectStatus) -> frozenset[ProjectStatus]:
    return frozenset(s for s, targets in PROJECT_TRANSITIONS.items() if new in targets)


def project_state(project: Project | None) -> dict[str, Any] | None:
    if project is None:
        return None
    return {
        "id": project.id,
        "status": project.status.value,
        "freelancerId": project.freelancer_id,
        "proposalCount": project.proposal_count,
    }


def proposal_state(proposal: Proposal | None) -> dict[str, Any] | None:
    if proposal is None:
        return None
    return {
        "id": proposal.id,
        "projectId": proposal.project_id,
        "freelancerId": proposal.freelancer_id,
        "status": proposal.status.value,
        "respondedAt": proposal.responded_at.isoformat() if proposal.responded_at else None,
    }


def _reload(session: Session, model, obj_id: int):
    return session.get(model, obj_id, populate_existing=True)


def stale_conflict(session: Session, entity: str, obj_id: int, expected) -> Conflict:
    """Roll back and describe the state that made a guarded write miss."""

    session.rollback()
    if entity == "project":
        current = _reload(session, Project, obj_id)
        state = project_state(current)
    else:
        current = _reload(session, Proposal, obj_id)
        state = proposal_state(current)
    actual = current.status if current is not None else "missing"
    logger.info("%s %s conflict: expected %s, found %s", entity, obj_id, expected, actual)
    return Conflict(entity, expected, actual, current=state)


@contextmanager
def atomic(session: Session, action: str) -> Iterator[None]:
    """Commit on success; roll back and translate database errors otherwise."""

    try:
        yield
        session.commit()
    except MatchingError:
        session.rollback()
        raise
    except IntegrityError as exc:
        session.rollback()
        logger.warning("%s violated a constraint: %s", action, exc.orig)
        raise Conflict(
            "state",
            "consistent",
            "constraint violation",
            message=f"{action} conflicts with the current state",
        ) from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("%s failed", action)
        raise ServerFault(f"{action} failed") from exc


def _require_project_state(project: Project, expected: ProjectStatus) -> None:
    if project.status != expected:
        raise Conflict("project", expected, project.status, current=project_state(project))


def _require_pending(proposal: Proposal) -> None:
    if proposal.status != ProposalStatus.pending:
        raise Conflict(
            "proposal", ProposalStatus.pending, proposal.status, current=proposal_state(proposal)
        )


def submit(session: Session, project: Project, freelancer_id: int, content: dict) -> Proposal:
    """Create a pending proposal on an open project.

    The ``proposal_count`` increment doubles as the open-state guard: it only
    matches while the project is still open.
    """

    _require_project_state(project, ProjectStatus.open)
    existing = proposals.find_active(session, project.id, freelancer_id)
    if existing is not None:
        raise Conflict(
            "proposal",
            NO_ACTIVE_PROPOSAL,
            existing.status,
            message="Freelancer already has an active proposal on this project",
            current=proposal_state(existing),
        )

    record = dict(content, project_id=project.id, freelancer_id=freelancer_id)
    with atomic(session, "submit proposal"):
        if not projects.reserve_proposal_slot(session, project.id):
            raise stale_conflict(session, "project", project.id, ProjectStatus.open)
        proposal = proposals.create(session, record, commit=False)

    session.refresh(project)
    session.refresh(proposal)
    return proposal


def accept(session: Session, proposal: Proposal, project: Project, note: str | None = None) -> tuple[Proposal, list[int]]:
    """Accept ``proposal`` and close every competing bid.

    Returns the accepted proposal and the ids of the proposals rejected in
    the cascade. ``project`` is refreshed in place.
    """

    _require_pending(proposal)
    _require_project_state(project, ProjectStatus.open)

    now = utcnow()
    with atomic(session, "accept proposal"):
        claimed = projects.compare_and_set_status(
            session,
            project.id,
            ProjectStatus.open,
            ProjectStatus.in_progress,
            freelancer_id=proposal.freelancer_id,
        )
        if not claimed:
            raise stale_conflict(session, "project", project.id, ProjectStatus.open)

        accepted = proposals.compare_and_set_status(
            session,
            proposal.id,
            ProposalStatus.pending,
            ProposalStatus.accepted,
            client_response=note,
            responded_at=now,
        )
        if not accepted:
            raise stale_conflict(session, "proposal", proposal.id, ProposalStatus.pending)

        rejected = proposals.reject_pending(
            session, project.id, except_id=proposal.id, note=AUTO_REJECT_NOTE
        )

    session.refresh(project)
    session.refresh(proposal)
    logger.info(
        "accepted proposal %s on project %s; rejected %s", proposal.id, project.id, rejected
    )
    return proposal, rejected


def _close_proposal(session: Session, proposal: Proposal, new_status: ProposalStatus, action: str, **values) -> Proposal:
    _require_pending(proposal)
    with atomic(session, action):
        changed = proposals.compare_and_set_status(
            session,
            proposal.id,
            ProposalStatus.pending,
            new_status,
            responded_at=utcnow(),
            **values,
        )
        if not changed:
            raise stale_conflict(session, "proposal", proposal.id, ProposalStatus.pending)
    session.refresh(proposal)
    return proposal


def reject(session: Session, proposal: Proposal, note: str | None = None) -> Proposal:
    """Reject a pending proposal; a terminal proposal is a conflict."""

    return _close_proposal(
        session, proposal, ProposalStatus.rejected, "reject proposal", client_response=note
    )


def withdraw(session: Session, proposal: Proposal) -> Proposal:
    return _close_proposal(session, proposal, ProposalStatus.withdrawn, "withdraw proposal")


def set_project_status(session: Session, project: Project, new_status: ProjectStatus | str) -> Project:
    try:
        target = ProjectStatus(getattr(new_status, "value", new_status))
    except ValueError:
        raise ValidationFailed.field("status", f"Unknown project status {new_status!r}")
    if target == ProjectStatus.in_progress:
        raise ValidationFailed.field(
            "status", "A project moves to in-progress only by accepting a proposal"
        )
    if target not in CLIENT_SETTABLE:
        raise ValidationFailed.field("status", "Status must be completed or cancelled")

    expected = sources_of(target)
    if project.status not in expected:
        raise Conflict("project", expected, project.status, current=project_state(project))

    values: dict[str, Any] = {}
    if target == ProjectStatus.cancelled:
        values["freelancer_id"] = None

    with atomic(session, f"set project status to {target.value}"):
        if not projects.compare_and_set_status(session, project.id, expected, target, **values):
            raise stale_conflict(session, "project", project.id, expected)

    session.refresh(project)
    logger.info("project %s is now %s", project.id, project.status.value)
    return project


def ensure_deletable(session: Session, project: Project) -> None:
    """Projects are deleted only while open and before any proposal exists."""

    if project.status != ProjectStatus.open:
        raise ValidationFailed.field(
            "status", f"Cannot delete a project that is {project.status.value}"
        )
    if project.proposal_count or proposals.count_for_project(session, project.id) > 0:
        raise ValidationFailed.field(
            "proposals", "Cannot delete a project that has received proposals"
        )


def delete(session: Session, project: Project) -> None:
    ensure_deletable(session, project)
    project_id = project.id
    with atomic(session, "delete project"):
        if not projects.delete_unclaimed(session, project_id):
            session.rollback()
            current = _reload(session, Project, project_id)
            if current is not None:
                ensure_deletable(session, current)
            if current is None:
                raise NotFound("project", project_id)
            raise Conflict("project", ProjectStatus.open, current.status)
    session.expunge(project)
    logger.info("deleted project %s", project_id)
