import argparse
import io
from pathlib import Path
from unittest.mock import MagicMock

from rich.console import Console

from freelanceflow.cli import db as db_cli


def _parse(*argv):
    parser = argparse.ArgumentParser(prog="freelanceflow db")
    db_cli.register_subcommands(parser.add_subparsers(dest="subcommand", required=True))
    return parser.parse_args(list(argv))


def test_seed_arguments_reach_operations(monkeypatch):
    seed_mock = MagicMock(return_value={"members": 2})
    monkeypatch.setattr(db_cli.operations, "seed", seed_mock)
    db_cli.dispatch(_parse("seed", "--file", "demo.db", "--projects", "4", "--seed", "11"))
    seed_mock.assert_called_once_with(
        "demo.db",
        clients=3,
        freelancers=6,
        projects=4,
        proposals_per_project=3,
        random_seed=11,
    )


def test_upgrade_defaults_to_head(monkeypatch):
    upgrade = MagicMock()
    monkeypatch.setattr(db_cli.command, "upgrade", upgrade)
    db_cli.dispatch(_parse("upgrade", "--database", "/tmp/ff.db"))

    config, revision = upgrade.call_args.args
    assert revision == "head"
    assert config.get_main_option("sqlalchemy.url") == "sqlite:////tmp/ff.db"
    assert Path(config.get_main_option("script_location")).name == "alembic"


def test_downgrade_defaults_to_previous(monkeypatch):
    downgrade = MagicMock()
    monkeypatch.setattr(db_cli.command, "downgrade", downgrade)
    db_cli.dispatch(_parse("downgrade"))
    assert downgrade.call_args.args[1] == "-1"


def test_normalize_database_option():
    assert db_cli._normalize_database_option(None) is None
    assert db_cli._normalize_database_option("  ") is None
    assert db_cli._normalize_database_option("postgresql://db/ff") == "postgresql://db/ff"
    assert db_cli._normalize_database_option("data/ff.db") == "sqlite:///data/ff.db"


def test_render_table_overview():
    buffer = io.StringIO()
    console = Console(file=buffer, width=160)
    db_cli._render_table_overview(
        {
            "project": [
                {"name": "id", "type": "INTEGER", "nullable": False},
                {"name": "title", "type": "TEXT", "nullable": False},
            ],
            "member": [],
        },
        console=console,
    )
    text = buffer.getvalue()
    assert "project" in text and "title" in text
    assert text.index("member") < text.index("project")


def test_render_empty_overview():
    buffer = io.StringIO()
    db_cli._render_table_overview({}, console=Console(file=buffer, width=120))
    assert "No tables found" in buffer.getvalue()
