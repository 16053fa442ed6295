from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from typing import Literal


Profile = Literal["dev", "prod"]
VarKind = Literal["string", "bool", "int", "float", "path", "url", "csv"]


@dataclass(frozen=True)
class VarSpec:
    key: str
    kind: VarKind
    group: str
    description: str
    required_in: frozenset[Profile] = field(default_factory=frozenset)
    recommended_in: frozenset[Profile] = field(default_factory=frozenset)
    default_by_profile: dict[Profile, str] = field(default_factory=dict)
    choices: tuple[str, ...] = ()
    secret: bool = False
    min_value: int | None = None
    max_value: int | None = None
    min_length: int | None = None
    forbid_values: tuple[str, ...] = ()

    def default_for(self, profile: Profile) -> str | None:
        raw = (self.default_by_profile.get(profile) or "").strip()
        return raw or None


def spec_to_dict(spec: VarSpec) -> dict[str, Any]:
    return {
        "key": spec.key,
        "kind": spec.kind,
        "group": spec.group,
        "description": spec.description,
        "required_in": sorted(spec.required_in),
        "recommended_in": sorted(spec.recommended_in),
        "default_by_profile": dict(spec.default_by_profile),
        "choices": list(spec.choices),
        "secret": bool(spec.secret),
        "min_value": spec.min_value,
        "max_value": spec.max_value,
        "min_length": spec.min_length,
        "forbid_values": list(spec.forbid_values),
    }


def default_contract() -> tuple[VarSpec, ...]:
    """Environment variables understood by the API server and CLI."""

    return (
        VarSpec(
            key="FREELANCEFLOW_HOST",
            kind="string",
            group="Deploy",
            description="Host interface for the API server.",
            default_by_profile={"dev": "127.0.0.1", "prod": "0.0.0.0"},
        ),
        VarSpec(
            key="FREELANCEFLOW_PORT",
            kind="int",
            group="Deploy",
            description="Port for the API server.",
            default_by_profile={"dev": "8000", "prod": "8000"},
            min_value=1,
            max_value=65535,
        ),
        VarSpec(
            key="FREELANCEFLOW_CORS_ORIGINS",
            kind="csv",
            group="Deploy",
            description="Comma-separated list of allowed browser origins.",
        ),
        VarSpec(
            key="FREELANCEFLOW_DB_PATH",
            kind="path",
            group="Database",
            description="SQLite DB path or sqlite:/// URI.",
            recommended_in=frozenset({"prod"}),
            default_by_profile={"prod": "/var/lib/freelanceflow/freelanceflow.db"},
        ),
        VarSpec(
            key="FREELANCEFLOW_DB_DIR",
            kind="path",
            group="Database",
            description="Directory holding freelanceflow.db when FREELANCEFLOW_DB_PATH is unset.",
        ),
        VarSpec(
            key="FREELANCEFLOW_DB_TIMEOUT",
            kind="float",
            group="Database",
            description="Seconds a writer waits on a locked SQLite database before failing.",
            default_by_profile={"dev": "30", "prod": "30"},
            min_value=1,
        ),
        VarSpec(
            key="FREELANCEFLOW_SQL_TRACE",
            kind="bool",
            group="Database",
            description="Log every SQL statement at INFO (debugging only).",
            default_by_profile={"dev": "0", "prod": "0"},
        ),
        VarSpec(
            key="FREELANCEFLOW_API_KEY",
            kind="string",
            group="Security",
            description="Shared API key expected in X-API-Key or a bearer token.",
            required_in=frozenset({"prod"}),
            secret=True,
            min_length=20,
            forbid_values=("change-me",),
        ),
        VarSpec(
            key="FREELANCEFLOW_LIST_DEFAULT_LIMIT",
            kind="int",
            group="Listing",
            description="Page size used when a listing request omits limit.",
            default_by_profile={"dev": "12", "prod": "12"},
            min_value=1,
        ),
        VarSpec(
            key="FREELANCEFLOW_LIST_MAX_LIMIT",
            kind="int",
            group="Listing",
            description="Server-side cap on the page size of listing requests.",
            default_by_profile={"dev": "100", "prod": "100"},
            min_value=1,
            max_value=1000,
        ),
        VarSpec(
            key="FREELANCEFLOW_LIST_MAX_PAGE",
            kind="int",
            group="Listing",
            description="Highest page number a listing request may ask for.",
            default_by_profile={"dev": "1000", "prod": "1000"},
            min_value=1,
        ),
        VarSpec(
            key="FREELANCEFLOW_NOTIFY_URL",
            kind="url",
            group="Notifications",
            description="Webhook receiving JSON lifecycle events (optional).",
        ),
        VarSpec(
            key="FREELANCEFLOW_NOTIFY_TIMEOUT",
            kind="float",
            group="Notifications",
            description="Seconds to wait for the notification webhook.",
            default_by_profile={"dev": "3", "prod": "3"},
        ),
        VarSpec(
            key="FREELANCEFLOW_LOG_DIR",
            kind="path",
            group="Logging",
            description="Directory for freelanceflow.log.",
        ),
        VarSpec(
            key="FREELANCEFLOW_LOG_CONFIG",
            kind="path",
            group="Logging",
            description="JSON file holding the persisted log level.",
        ),
    )


def contract_by_key(contract: tuple[VarSpec, ...] | None = None) -> dict[str, VarSpec]:
    return {spec.key: spec for spec in (contract or default_contract())}
