import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from freelanceflow.db.models import (
    BudgetType,
    Project,
    ProjectStatus,
    Proposal,
    ProposalStatus,
)


def _proposal(project, freelancer, status=ProposalStatus.pending, bid=100.0):
    return Proposal(
        project_id=project.id,
        freelancer_id=freelancer.id,
        bid_amount=bid,
        cover_letter="x" * 60,
        status=status,
    )


def test_budget_property_is_tagged(make_project):
    fixed = make_project()
    hourly = make_project(budget={"type": "hourly", "rateMin": 20, "rateMax": 45})

    assert fixed.budget == {"type": "fixed", "amount": 500.0}
    assert hourly.budget_type == BudgetType.hourly
    assert hourly.budget == {"type": "hourly", "rateMin": 20.0, "rateMax": 45.0}


def test_skills_property_lists_names(make_project):
    project = make_project(skills="Python, Django ,  ")
    assert project.skills == ["Python", "Django"]


def test_in_progress_requires_assigned_freelancer(db_session, make_project):
    project = make_project()
    with pytest.raises(IntegrityError):
        db_session.execute(
            update(Project)
            .where(Project.id == project.id)
            .values(status=ProjectStatus.in_progress)
        )
        db_session.flush()
    db_session.rollback()


def test_open_project_cannot_carry_freelancer(db_session, make_project, freelancer):
    project = make_project()
    with pytest.raises(IntegrityError):
        db_session.execute(
            update(Project).where(Project.id == project.id).values(freelancer_id=freelancer.id)
        )
    db_session.rollback()


def test_one_active_proposal_per_freelancer(db_session, make_project, freelancer):
    project = make_project()
    db_session.add(_proposal(project, freelancer))
    db_session.commit()

    db_session.add(_proposal(project, freelancer))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_withdrawn_proposal_frees_the_slot(db_session, make_project, freelancer):
    project = make_project()
    db_session.add(_proposal(project, freelancer, status=ProposalStatus.withdrawn))
    db_session.add(_proposal(project, freelancer))
    db_session.commit()

    statuses = sorted(p.status.value for p in db_session.query(Proposal).all())
    assert statuses == ["pending", "withdrawn"]


def test_at_most_one_accepted_proposal(db_session, make_project, freelancer, other_freelancer):
    project = make_project()
    db_session.add(_proposal(project, freelancer, status=ProposalStatus.accepted))
    db_session.commit()

    db_session.add(_proposal(project, other_freelancer, status=ProposalStatus.accepted))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_status_enums_store_values(db_session, make_project):
    project = make_project()
    raw = db_session.connection().exec_driver_sql(
        "SELECT status, category FROM project WHERE id = ?", (project.id,)
    ).one()
    assert tuple(raw) == ("open", "web-development")
