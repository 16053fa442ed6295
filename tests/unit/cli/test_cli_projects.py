import io
from unittest.mock import MagicMock

import pytest
from rich.console import Console

from freelanceflow.cli import projects as projects_cli
from freelanceflow.cli.main import main
from freelanceflow.db.connect import get_session
from freelanceflow.db.crud import MemberCRUD, ProjectCRUD
from freelanceflow.db.models import MemberRole
from freelanceflow.matching import service

DESCRIPTION = "Help us ship a small internal tool; details will be shared after a short intro call."


@pytest.fixture
def db_file(tmp_path, monkeypatch):
    path = tmp_path / "cli.db"
    monkeypatch.setenv("FREELANCEFLOW_DB_PATH", str(path))
    with get_session(path) as session:
        owner = MemberCRUD().create(
            session, {"name": "Cli Owner", "email": "owner@example.com", "role": MemberRole.client}
        )
        for title, skills, budget, urgent in (
            ("Python ETL pipeline", ["python"], {"type": "fixed", "amount": 800}, False),
            ("React admin screens", ["react"], {"type": "hourly", "rate_min": 25, "rate_max": 60}, True),
        ):
            ProjectCRUD().create(
                session,
                {
                    "client_id": owner.id,
                    "title": title,
                    "description": DESCRIPTION,
                    "category": "web-development",
                    "skills": skills,
                    "budget": budget,
                    "experience_level": "entry",
                    "project_size": "small",
                    "timeline_duration": "less-than-1-month",
                    "is_urgent": urgent,
                },
            )
    return path


def test_list_passes_filters(monkeypatch, db_file):
    render = MagicMock()
    monkeypatch.setattr(projects_cli, "render_projects", render)
    main(["projects", "list", "--file", str(db_file), "--skills", "python", "--limit", "5"])

    rows, pagination = render.call_args.args
    assert [p.title for p in rows] == ["Python ETL pipeline"]
    assert pagination["limit"] == 5


def test_list_flags(monkeypatch, db_file):
    render = MagicMock()
    monkeypatch.setattr(projects_cli, "render_projects", render)
    main(["projects", "list", "--file", str(db_file), "--urgent"])
    rows, _ = render.call_args.args
    assert [p.title for p in rows] == ["React admin screens"]


def test_render_projects(db_file):
    with get_session(db_file) as session:
        rows, pagination = service.list_projects(session, {"sort": "budget_low"})
        buffer = io.StringIO()
        projects_cli.render_projects(rows, pagination, console=Console(file=buffer, width=200))
    text = buffer.getvalue()
    assert "$25-60/h" in text
    assert "$800" in text
    assert "page 1 of 1 (2 projects)" in text


def test_categories(db_file, capsys):
    main(["projects", "categories"])
    out = capsys.readouterr().out
    assert "Web Development" in out
