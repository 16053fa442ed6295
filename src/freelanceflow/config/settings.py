"""Runtime knobs resolved from the environment on every call.

Values are read lazily (never cached) so tests and the CLI ``--env-file``
loader can change them with ``monkeypatch.setenv``/``os.environ``. Fallbacks
come from the ``dev`` defaults declared in :mod:`freelanceflow.config.contract`.
"""

from __future__ import annotations

import os

from freelanceflow.config.contract import contract_by_key

_TRUTHY = {"1", "true", "yes", "y", "on"}


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in _TRUTHY


def parse_csv_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _fallback(key: str) -> str | None:
    spec = contract_by_key().get(key)
    return spec.default_for("dev") if spec is not None else None


def env_str(key: str) -> str | None:
    raw = os.getenv(key)
    if raw is not None and raw.strip():
        return raw.strip()
    return _fallback(key)


def env_int(key: str, *, minimum: int | None = None, maximum: int | None = None) -> int:
    """Read ``key`` as an int, falling back to the contract default on junk."""

    raw = env_str(key)
    try:
        value = int(raw) if raw is not None else int(_fallback(key) or 0)
    except ValueError:
        value = int(_fallback(key) or 0)
    if minimum is not None:
        value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


def env_float(key: str, *, minimum: float | None = None) -> float:
    raw = env_str(key)
    try:
        value = float(raw) if raw is not None else float(_fallback(key) or 0)
    except ValueError:
        value = float(_fallback(key) or 0)
    if minimum is not None:
        value = max(minimum, value)
    return value


def list_default_limit() -> int:
    return min(env_int("FREELANCEFLOW_LIST_DEFAULT_LIMIT", minimum=1), list_max_limit())


def list_max_limit() -> int:
    return env_int("FREELANCEFLOW_LIST_MAX_LIMIT", minimum=1, maximum=1000)


def list_max_page() -> int:
    return env_int("FREELANCEFLOW_LIST_MAX_PAGE", minimum=1)


def db_timeout_seconds() -> float:
    return env_float("FREELANCEFLOW_DB_TIMEOUT", minimum=1.0)


def notify_url() -> str | None:
    return env_str("FREELANCEFLOW_NOTIFY_URL")


def notify_timeout_seconds() -> float:
    return env_float("FREELANCEFLOW_NOTIFY_TIMEOUT", minimum=0.1)


def cors_origins() -> list[str]:
    return parse_csv_list(os.getenv("FREELANCEFLOW_CORS_ORIGINS"))


def sql_trace_enabled() -> bool:
    return is_truthy(os.getenv("FREELANCEFLOW_SQL_TRACE"))


def api_key() -> str | None:
    return env_str("FREELANCEFLOW_API_KEY")
