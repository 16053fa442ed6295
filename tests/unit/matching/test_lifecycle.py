import pytest
from sqlalchemy import delete, select, update

from freelanceflow.db.crud import ProposalCRUD
from freelanceflow.db.models import Project, ProjectStatus, Proposal, ProposalStatus
from freelanceflow.matching import lifecycle
from freelanceflow.matching.errors import Conflict, NotFound, ValidationFailed


@pytest.fixture
def project(make_project):
    return make_project()


@pytest.fixture
def submit(db_session, proposal_payload):
    def _submit(project, member, **overrides):
        return lifecycle.submit(db_session, project, member.id, proposal_payload(**overrides))

    return _submit


def test_transition_tables():
    assert lifecycle.can_transition_project(ProjectStatus.open, ProjectStatus.in_progress)
    assert lifecycle.can_transition_project(ProjectStatus.in_progress, ProjectStatus.completed)
    assert not lifecycle.can_transition_project(ProjectStatus.open, ProjectStatus.completed)
    assert not lifecycle.can_transition_project(ProjectStatus.cancelled, ProjectStatus.open)
    assert lifecycle.can_transition_proposal(ProposalStatus.pending, ProposalStatus.withdrawn)
    assert not lifecycle.can_transition_proposal(ProposalStatus.rejected, ProposalStatus.accepted)
    assert lifecycle.sources_of(ProjectStatus.cancelled) == {ProjectStatus.open, ProjectStatus.in_progress}


def test_submit_counts_proposals(db_session, project, submit, freelancer, other_freelancer):
    first = submit(project, freelancer)
    submit(project, other_freelancer, bid_amount=400)

    assert first.status == ProposalStatus.pending
    assert first.id is not None
    db_session.refresh(project)
    assert project.proposal_count == 2


def test_duplicate_submission_conflicts(db_session, project, submit, freelancer):
    submit(project, freelancer)
    with pytest.raises(Conflict) as excinfo:
        submit(project, freelancer, bid_amount=300)
    assert excinfo.value.current["status"] == "pending"
    assert excinfo.value.expected == [lifecycle.NO_ACTIVE_PROPOSAL]
    db_session.refresh(project)
    assert project.proposal_count == 1


def test_resubmit_after_withdraw(db_session, project, submit, freelancer):
    first = submit(project, freelancer)
    lifecycle.withdraw(db_session, first)
    second = submit(project, freelancer, bid_amount=420)
    assert second.id != first.id
    db_session.refresh(project)
    assert project.proposal_count == 2


def test_submit_to_closed_project(db_session, project, submit, freelancer):
    lifecycle.set_project_status(db_session, project, "cancelled")
    with pytest.raises(Conflict) as excinfo:
        submit(project, freelancer)
    assert excinfo.value.actual == "cancelled"
    assert db_session.scalars(select(Proposal)).all() == []


def test_submit_when_project_closed_underneath(db_session, project, submit, freelancer):
    # the in-memory project still says open; the guarded increment sees the truth
    db_session.execute(
        update(Project)
        .where(Project.id == project.id)
        .values(status=ProjectStatus.cancelled)
        .execution_options(synchronize_session=False)
    )
    db_session.commit()
    assert project.status == ProjectStatus.open

    with pytest.raises(Conflict) as excinfo:
        submit(project, freelancer)
    assert excinfo.value.current["status"] == "cancelled"
    assert db_session.scalars(select(Proposal)).all() == []


def test_submit_validation_leaves_count_untouched(db_session, project, submit, freelancer):
    with pytest.raises(ValidationFailed):
        submit(project, freelancer, cover_letter="too short")
    db_session.refresh(project)
    assert project.proposal_count == 0


def test_accept_cascades(db_session, project, submit, freelancer, other_freelancer, make_member):
    winner = submit(project, freelancer)
    loser = submit(project, other_freelancer, bid_amount=400)
    third = submit(project, make_member(freelancer.role), bid_amount=480)
    lifecycle.withdraw(db_session, third)

    accepted, rejected = lifecycle.accept(db_session, winner, project, note="Welcome aboard")

    assert accepted.status == ProposalStatus.accepted
    assert accepted.client_response == "Welcome aboard"
    assert accepted.responded_at is not None
    assert rejected == [loser.id]
    assert project.status == ProjectStatus.in_progress
    assert project.freelancer_id == freelancer.id

    db_session.refresh(loser)
    db_session.refresh(third)
    assert loser.status == ProposalStatus.rejected
    assert loser.client_response == lifecycle.AUTO_REJECT_NOTE
    assert third.status == ProposalStatus.withdrawn


def test_second_accept_conflicts(db_session, project, submit, freelancer, other_freelancer):
    first = submit(project, freelancer)
    second = submit(project, other_freelancer, bid_amount=400)
    lifecycle.accept(db_session, first, project)
    db_session.refresh(second)

    with pytest.raises(Conflict) as excinfo:
        lifecycle.accept(db_session, second, project)
    assert excinfo.value.entity == "proposal"
    assert excinfo.value.actual == "rejected"


def test_accept_with_stale_project_snapshot(db_session, project, submit, freelancer, other_freelancer):
    first = submit(project, freelancer)
    second = submit(project, other_freelancer, bid_amount=400)
    db_session.execute(
        update(Project)
        .where(Project.id == project.id)
        .values(status=ProjectStatus.cancelled)
        .execution_options(synchronize_session=False)
    )
    db_session.commit()

    with pytest.raises(Conflict) as excinfo:
        lifecycle.accept(db_session, first, project)
    assert excinfo.value.entity == "project"
    assert excinfo.value.current["status"] == "cancelled"

    db_session.refresh(first)
    db_session.refresh(second)
    assert first.status == ProposalStatus.pending
    assert second.status == ProposalStatus.pending


def test_reject_and_terminal_states(db_session, project, submit, freelancer):
    proposal = submit(project, freelancer)
    lifecycle.reject(db_session, proposal, note="Budget too high")
    assert proposal.status == ProposalStatus.rejected
    assert proposal.client_response == "Budget too high"

    with pytest.raises(Conflict):
        lifecycle.reject(db_session, proposal)
    with pytest.raises(Conflict) as excinfo:
        lifecycle.withdraw(db_session, proposal)
    assert excinfo.value.expected == ["pending"]


def test_withdraw_keeps_proposal_count(db_session, project, submit, freelancer):
    proposal = submit(project, freelancer)
    lifecycle.withdraw(db_session, proposal)
    assert proposal.status == ProposalStatus.withdrawn
    assert proposal.responded_at is not None
    db_session.refresh(project)
    assert project.proposal_count == 1


@pytest.mark.parametrize("status", ["open", "in-progress", "archived"])
def test_set_status_rejects_targets(db_session, project, status):
    with pytest.raises(ValidationFailed):
        lifecycle.set_project_status(db_session, project, status)
    assert project.status == ProjectStatus.open


def test_complete_requires_in_progress(db_session, project):
    with pytest.raises(Conflict) as excinfo:
        lifecycle.set_project_status(db_session, project, ProjectStatus.completed)
    assert excinfo.value.expected == ["in-progress"]


def test_complete_after_accept(db_session, project, submit, freelancer):
    proposal = submit(project, freelancer)
    lifecycle.accept(db_session, proposal, project)
    lifecycle.set_project_status(db_session, project, "completed")
    assert project.status == ProjectStatus.completed
    assert project.freelancer_id == freelancer.id

    with pytest.raises(Conflict):
        lifecycle.set_project_status(db_session, project, "cancelled")


def test_cancel_in_progress_clears_assignment(db_session, project, submit, freelancer):
    proposal = submit(project, freelancer)
    lifecycle.accept(db_session, proposal, project)
    lifecycle.set_project_status(db_session, project, "cancelled")
    assert project.status == ProjectStatus.cancelled
    assert project.freelancer_id is None

    db_session.refresh(proposal)
    assert proposal.status == ProposalStatus.accepted


def test_delete_open_project_without_proposals(db_session, project):
    project_id = project.id
    lifecycle.delete(db_session, project)
    assert db_session.get(Project, project_id) is None


def test_delete_guard(db_session, project, submit, freelancer):
    proposal = submit(project, freelancer)
    lifecycle.withdraw(db_session, proposal)
    with pytest.raises(ValidationFailed) as excinfo:
        lifecycle.delete(db_session, project)
    assert excinfo.value.errors[0]["field"] == "proposals"
    assert db_session.get(Project, project.id) is not None


def test_delete_guard_for_closed_project(db_session, project):
    lifecycle.set_project_status(db_session, project, "cancelled")
    with pytest.raises(ValidationFailed) as excinfo:
        lifecycle.delete(db_session, project)
    assert excinfo.value.errors[0]["field"] == "status"


def test_delete_guard_sees_concurrent_submission(db_session, project):
    db_session.execute(
        update(Project)
        .where(Project.id == project.id)
        .values(proposal_count=1)
        .execution_options(synchronize_session=False)
    )
    db_session.commit()
    assert project.proposal_count == 0

    with pytest.raises(ValidationFailed):
        lifecycle.delete(db_session, project)
    assert db_session.get(Project, project.id) is not None


def test_delete_of_already_removed_project(db_session, project):
    db_session.execute(
        delete(Project).where(Project.id == project.id).execution_options(synchronize_session=False)
    )
    db_session.commit()

    with pytest.raises(NotFound):
        lifecycle.delete(db_session, project)


def test_atomic_translates_integrity_errors(db_session, project, freelancer):
    crud = ProposalCRUD()
    record = {
        "project_id": project.id,
        "freelancer_id": freelancer.id,
        "bid_amount": 100,
        "cover_letter": "x" * 60,
    }
    crud.create(db_session, record)
    with pytest.raises(Conflict):
        with lifecycle.atomic(db_session, "duplicate bid"):
            crud.create(db_session, record, commit=False)
    assert len(db_session.scalars(select(Proposal)).all()) == 1
