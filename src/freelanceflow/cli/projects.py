"""``freelanceflow projects list``: browse projects from the terminal."""

from rich.console import Console
from rich.table import Table

from freelanceflow.db.connect import get_session
from freelanceflow.matching import service

FILTER_OPTIONS = (
    "category",
    "skills",
    "budget_type",
    "budget_min",
    "budget_max",
    "experience_level",
    "project_size",
    "timeline",
    "status",
    "client",
    "freelancer",
    "search",
    "location",
    "sort",
    "page",
    "limit",
)


def register_subcommands(subparsers):
    list_parser = subparsers.add_parser("list", help="List projects")
    for option in FILTER_OPTIONS:
        list_parser.add_argument(f"--{option.replace('_', '-')}", dest=option, default=None)
    list_parser.add_argument("--remote", action="store_true", help="Remote projects only")
    list_parser.add_argument("--urgent", action="store_true", help="Urgent projects only")
    list_parser.add_argument("--file", default=None, help="SQLite database file")

    _ = subparsers.add_parser("categories", help="Open projects per category")


def _params(args) -> dict:
    params = {key: getattr(args, key) for key in FILTER_OPTIONS if getattr(args, key) is not None}
    if args.remote:
        params["is_remote"] = "true"
    if args.urgent:
        params["is_urgent"] = "true"
    return params


def _budget_label(project) -> str:
    if project.budget_amount is not None:
        return f"${project.budget_amount:,.0f}"
    return f"${project.rate_min:,.0f}-{project.rate_max:,.0f}/h"


def render_projects(rows, pagination, console: Console | None = None) -> None:
    console = console or Console()
    table = Table(title="Projects")
    table.add_column("ID", justify="right", style="bold")
    table.add_column("Title", style="cyan")
    table.add_column("Category", style="magenta")
    table.add_column("Budget", justify="right", style="green")
    table.add_column("Skills")
    table.add_column("Status", style="yellow")
    table.add_column("Proposals", justify="right")
    for project in rows:
        table.add_row(
            str(project.id),
            project.title,
            project.category.value,
            _budget_label(project),
            ", ".join(project.skills),
            project.status.value,
            str(project.proposal_count),
        )
    console.print(table)
    console.print(
        f"page {pagination['currentPage']} of {pagination['totalPages']}"
        f" ({pagination['totalProjects']} projects)"
    )


def dispatch(args):
    if args.subcommand == "list":
        with get_session(args.file) as session:
            rows, pagination = service.list_projects(session, _params(args))
            render_projects(rows, pagination)
    elif args.subcommand == "categories":
        with get_session() as session:
            stats = service.category_stats(session)
        console = Console()
        table = Table(title="Open projects by category")
        table.add_column("Category", style="cyan")
        table.add_column("Open", justify="right")
        for row in stats["categories"]:
            table.add_row(row["label"], str(row["count"]))
        console.print(table)
        console.print(stats["stats"])
    else:
        raise ValueError(f"No handler for projects subcommand: {args.subcommand}")
