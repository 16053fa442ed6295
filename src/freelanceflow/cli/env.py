"""Environment helpers for the CLI.

``--env-file`` loads ``KEY=value`` files (the same ones the deploy scripts
source) before any command runs; ``freelanceflow env audit`` checks the
resulting environment against :mod:`freelanceflow.config.contract`.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from pathlib import Path

from rich.console import Console
from rich.table import Table

from freelanceflow.config.audit import AuditReport, audit_environment


def extract_env_files(argv: Sequence[str]) -> tuple[list[str], list[str]]:
    """Split ``--env-file`` options out of ``argv``.

    Accepts ``--env-file path`` and ``--env-file=path`` anywhere on the
    command line, so the flag may follow the subcommand.
    """

    env_files: list[str] = []
    remaining: list[str] = []
    tokens = iter(argv)
    for token in tokens:
        if token == "--env-file":
            path = next(tokens, None)
            if path is None:
                raise SystemExit("--env-file requires a file path")
            env_files.append(path)
        elif token.startswith("--env-file="):
            env_files.append(token.partition("=")[2])
        else:
            remaining.append(token)
    return env_files, remaining


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    # an unquoted value ends at the first " #"
    hash_at = value.find(" #")
    return value[:hash_at].rstrip() if hash_at >= 0 else value


def parse_env_file_text(text: str) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        line = line.removeprefix("export ").lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        parsed[key] = _unquote(value.strip())
    return parsed


def load_env_files(paths: Iterable[str | Path], *, override: bool = True) -> dict[str, str]:
    """Load env files into ``os.environ`` in order; later files win."""

    merged: dict[str, str] = {}
    for path in paths:
        resolved = Path(path).expanduser()
        if not resolved.exists():
            raise SystemExit(f"--env-file does not exist: {resolved}")
        merged.update(parse_env_file_text(resolved.read_text(encoding="utf-8")))
    for key, value in merged.items():
        if override or key not in os.environ:
            os.environ[key] = value
    return merged


def register_subcommands(subparsers):
    audit_parser = subparsers.add_parser("audit", help="Check environment variables")
    audit_parser.add_argument("--profile", choices=("dev", "prod"), default="dev")
    audit_parser.add_argument("--json", action="store_true", help="Print the report as JSON")


def _render_report(report: AuditReport, console: Console | None = None) -> None:
    console = console or Console()
    table = Table(title=f"FreelanceFlow environment ({report.profile})")
    table.add_column("Variable", style="bold cyan")
    table.add_column("Group", style="magenta")
    table.add_column("Value")
    table.add_column("Default", style="bright_black")
    table.add_column("Problems", style="red")
    for item in report.vars:
        problems = "; ".join([*item.errors, *item.warnings])
        table.add_row(
            item.key,
            item.group,
            item.redacted_value() or "",
            item.default or "",
            problems,
        )
    console.print(table)
    console.print(f"errors: {report.errors}  warnings: {report.warnings}")


def dispatch(args) -> int:
    if args.subcommand != "audit":
        raise ValueError(f"No handler for env subcommand: {args.subcommand}")
    report = audit_environment(profile=args.profile)
    if args.json:
        print(report.to_json())
    else:
        _render_report(report)
    return 0 if report.ok else 1
