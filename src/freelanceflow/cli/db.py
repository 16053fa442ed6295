"""``freelanceflow db`` subcommands.

Schema inspection, demo data and Alembic migrations for the SQLite store.
"""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from alembic import command
from alembic.config import Config
from rich.console import Console
from rich.table import Table

from freelanceflow.db import operations
from freelanceflow.logging import get_logger


def register_subcommands(subparsers):
    """Attach database subcommands to an ``argparse`` parser.

    >>> import argparse
    >>> parser = argparse.ArgumentParser(prog="freelanceflow db")
    >>> subparsers = parser.add_subparsers(dest="subcommand", required=True)
    >>> register_subcommands(subparsers)
    >>> parser.parse_args(["init", "--file", "test.db"])
    Namespace(subcommand='init', file='test.db')
    """

    init_parser = subparsers.add_parser("init", help="initialize db")
    init_parser.add_argument("--file", required=False)

    _ = subparsers.add_parser("status", help="Check DB status")
    _ = subparsers.add_parser("show", help="Show tables")

    seed_parser = subparsers.add_parser("seed", help="Insert demo members, projects and proposals")
    seed_parser.add_argument("--file", required=False)
    seed_parser.add_argument("--clients", type=int, default=3)
    seed_parser.add_argument("--freelancers", type=int, default=6)
    seed_parser.add_argument("--projects", type=int, default=10)
    seed_parser.add_argument("--proposals-per-project", type=int, default=3)
    seed_parser.add_argument("--seed", type=int, default=None, help="Random seed for repeatable data")

    for action, default in (("upgrade", "head"), ("downgrade", "-1")):
        parser = subparsers.add_parser(
            action,
            help="Apply Alembic migrations up to a revision"
            if action == "upgrade"
            else "Revert Alembic migrations",
        )
        parser.add_argument(
            "revision",
            nargs="?",
            default=default,
            help=f"Alembic revision identifier (default: {default})",
        )
        parser.add_argument(
            "--database",
            dest="database",
            help="Database URL or filesystem path to migrate",
        )


def dispatch(args):
    """Run the database operation named by ``args.subcommand``."""

    logger = get_logger(__file__)

    if args.subcommand == "status":
        operations.check_status()
    elif args.subcommand == "show":
        _render_table_overview(operations.show_tables())
    elif args.subcommand == "init":
        operations.initialize(file_path=args.file)
    elif args.subcommand == "seed":
        counts = operations.seed(
            args.file,
            clients=args.clients,
            freelancers=args.freelancers,
            projects=args.projects,
            proposals_per_project=args.proposals_per_project,
            random_seed=args.seed,
        )
        Console().print(counts)
    elif args.subcommand in ("upgrade", "downgrade"):
        _run_alembic_command(args.subcommand, args.revision, database=args.database)
    else:
        logger.info("no dispatched function provided for %s", args.subcommand)


def _render_table_overview(
    table_definitions: Mapping[str, Sequence[Mapping[str, Any]]],
    console: Console | None = None,
) -> None:
    """Pretty-print table metadata using ``rich``."""

    console = console or Console()

    table = Table(title="FreelanceFlow Database Schema", show_lines=True)
    for header, style in (
        ("Table", "bold cyan"),
        ("Column", "magenta"),
        ("Type", "green"),
        ("Nullable", "yellow"),
        ("Default", "bright_black"),
    ):
        table.add_column(header, style=style)

    if not table_definitions:
        table.add_row("[dim]No tables found[/dim]", "", "", "", "")

    names = sorted(table_definitions)
    for position, table_name in enumerate(names):
        columns = table_definitions[table_name] or [{"name": "-", "type": "-"}]
        for index, column in enumerate(columns):
            default = column.get("default")
            table.add_row(
                table_name if index == 0 else "",
                str(column.get("name", "")),
                str(column.get("type", "")),
                "Yes" if column.get("nullable", True) else "No",
                "" if default in (None, "") else str(default),
            )
        if position < len(names) - 1:
            table.add_section()

    console.print(table)


def _run_alembic_command(action: str, revision: str, database: str | None) -> None:
    logger = get_logger(__file__)
    config = _build_alembic_config(database)
    logger.info("running alembic %s to %s", action, revision)

    if action == "upgrade":
        command.upgrade(config, revision)
    elif action == "downgrade":
        command.downgrade(config, revision)
    else:  # pragma: no cover - guarded by call sites
        raise ValueError(f"Unsupported Alembic action: {action}")


def _build_alembic_config(database: str | None) -> Config:
    project_root = _find_project_root()
    config_path = project_root / "alembic.ini"

    alembic_config = Config(str(config_path)) if config_path.exists() else Config()
    alembic_config.set_main_option("script_location", str(project_root / "alembic"))
    # empty url makes env.py fall back to FREELANCEFLOW_DB_PATH / the default file
    alembic_config.set_main_option("sqlalchemy.url", _normalize_database_option(database) or "")
    return alembic_config


def _find_project_root() -> Path:
    for parent in Path(__file__).resolve().parents:
        if (parent / "alembic").is_dir():
            return parent
    raise FileNotFoundError("Could not locate the Alembic directory.")


def _normalize_database_option(database: str | None) -> str | None:
    """Turn a path or URL argument into an Alembic-friendly URL."""

    database = (database or "").strip()
    if not database:
        return None
    if "://" in database:
        return database
    return f"sqlite:///{Path(database).expanduser()}"
