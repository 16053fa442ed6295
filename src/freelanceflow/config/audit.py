from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
import json
from typing import Any

from freelanceflow.config.contract import Profile, VarSpec, default_contract


_TRUTHY = {"1", "true", "yes", "y", "on"}
_FALSY = {"0", "false", "no", "n", "off"}
NOTIFY_TIMEOUT_WARN = 10.0


def _normalize_raw(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _validate(spec: VarSpec, raw: str | None) -> list[str]:
    errors: list[str] = []
    value = _normalize_raw(raw)
    if value is None:
        return errors

    if spec.forbid_values and value in set(spec.forbid_values):
        errors.append(f"Value is a placeholder/insecure default ({value!r}).")

    if spec.kind == "bool":
        lower = value.lower()
        if lower not in _TRUTHY and lower not in _FALSY:
            errors.append("Must be a boolean-ish value (1/0/true/false/yes/no).")
        return errors

    if spec.kind in {"int", "float"}:
        try:
            parsed = int(value) if spec.kind == "int" else float(value)
        except ValueError:
            errors.append(f"Must be {'an integer' if spec.kind == 'int' else 'a number'}.")
            return errors
        if spec.min_value is not None and parsed < spec.min_value:
            errors.append(f"Must be >= {spec.min_value}.")
        if spec.max_value is not None and parsed > spec.max_value:
            errors.append(f"Must be <= {spec.max_value}.")
        return errors

    if spec.min_length is not None and len(value) < spec.min_length:
        errors.append(f"Must be at least {spec.min_length} characters.")

    if spec.choices and value not in set(spec.choices):
        errors.append(f"Must be one of: {', '.join(spec.choices)}.")

    if spec.kind == "url":
        if not (value.startswith("http://") or value.startswith("https://")):
            errors.append("Must start with http:// or https://")

    if spec.kind == "path":
        if "://" in value and not value.startswith("sqlite"):
            errors.append("Expected a filesystem path or sqlite:/// URI.")

    return errors


def _effective_number(env: dict[str, str], spec: VarSpec | None, profile: Profile) -> float | None:
    if spec is None:
        return None
    raw = _normalize_raw(env.get(spec.key)) or spec.default_for(profile)
    try:
        return float(raw) if raw is not None else None
    except ValueError:
        return None


def _marketplace_warnings(
    env: dict[str, str], contract: tuple[VarSpec, ...], profile: Profile
) -> dict[str, list[str]]:
    """Checks that span several variables of the listing and notification groups."""

    by_key = {spec.key: spec for spec in contract}
    warnings: dict[str, list[str]] = {}

    default_limit = _effective_number(env, by_key.get("FREELANCEFLOW_LIST_DEFAULT_LIMIT"), profile)
    max_limit = _effective_number(env, by_key.get("FREELANCEFLOW_LIST_MAX_LIMIT"), profile)
    if default_limit is not None and max_limit is not None and default_limit > max_limit:
        warnings.setdefault("FREELANCEFLOW_LIST_DEFAULT_LIMIT", []).append(
            f"Larger than FREELANCEFLOW_LIST_MAX_LIMIT ({max_limit:g}); listings are clamped to it."
        )

    notify_url = _normalize_raw(env.get("FREELANCEFLOW_NOTIFY_URL"))
    if notify_url is not None:
        if profile == "prod" and notify_url.startswith("http://"):
            warnings.setdefault("FREELANCEFLOW_NOTIFY_URL", []).append(
                "Lifecycle events carry member ids; prefer https:// in production."
            )
        timeout = _effective_number(env, by_key.get("FREELANCEFLOW_NOTIFY_TIMEOUT"), profile)
        if timeout is not None and timeout > NOTIFY_TIMEOUT_WARN:
            warnings.setdefault("FREELANCEFLOW_NOTIFY_TIMEOUT", []).append(
                f"Events are posted after each commit; more than {NOTIFY_TIMEOUT_WARN:g}s delays responses."
            )

    return warnings


@dataclass(frozen=True)
class VarAudit:
    key: str
    group: str
    required: bool
    present: bool
    value: str | None
    default: str | None
    errors: list[str]
    warnings: list[str]
    secret: bool = False

    def redacted_value(self) -> str | None:
        if not self.secret or self.value is None:
            return self.value
        return "<set>"


@dataclass(frozen=True)
class AuditReport:
    profile: Profile
    ok: bool
    errors: int
    warnings: int
    vars: list[VarAudit]

    def to_json(self, *, reveal_secrets: bool = False) -> str:
        payload: dict[str, Any] = {
            "profile": self.profile,
            "ok": self.ok,
            "errors": self.errors,
            "warnings": self.warnings,
            "vars": [],
        }
        for item in self.vars:
            entry = asdict(item)
            if item.secret and not reveal_secrets:
                entry["value"] = item.redacted_value()
            payload["vars"].append(entry)
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def audit_environment(
    env: dict[str, str] | None = None,
    *,
    profile: Profile = "dev",
    contract: tuple[VarSpec, ...] | None = None,
) -> AuditReport:
    """Check ``env`` (default: ``os.environ``) against the variable contract."""

    if env is None:
        import os

        env = dict(os.environ)

    contract = contract or default_contract()
    cross_warnings = _marketplace_warnings(env, contract, profile)
    items: list[VarAudit] = []
    error_count = 0
    warning_count = 0

    for spec in contract:
        raw = env.get(spec.key)
        required = profile in spec.required_in
        present = _normalize_raw(raw) is not None

        errs = _validate(spec, raw)
        warns: list[str] = [*cross_warnings.get(spec.key, ())]

        if required and not present:
            errs = [*errs, "Missing required value."]
        if not required and not present and profile in spec.recommended_in:
            warns.append("Missing recommended value.")

        if spec.kind == "path" and present and profile == "prod":
            val = str(raw).strip()
            if not val.startswith("sqlite") and not Path(val).is_absolute():
                warns.append("Relative path; prefer absolute in production.")

        if spec.key == "FREELANCEFLOW_SQL_TRACE" and profile == "prod" and present:
            if str(raw).strip().lower() in _TRUTHY:
                warns.append("SQL tracing logs every statement; disable in production.")

        if errs:
            error_count += 1
        if warns:
            warning_count += 1

        items.append(
            VarAudit(
                key=spec.key,
                group=spec.group,
                required=required,
                present=present,
                value=_normalize_raw(raw),
                default=spec.default_for(profile),
                errors=errs,
                warnings=warns,
                secret=spec.secret,
            )
        )

    return AuditReport(
        profile=profile,
        ok=error_count == 0,
        errors=error_count,
        warnings=warning_count,
        vars=items,
    )
