import json

from freelanceflow.config.audit import audit_environment
from freelanceflow.config.contract import contract_by_key, default_contract, spec_to_dict


def _find(report, key: str):
    for item in report.vars:
        if item.key == key:
            return item
    raise AssertionError(f"Missing audit entry for {key}")


def test_dev_profile_needs_nothing():
    report = audit_environment({}, profile="dev")
    assert report.ok is True
    assert report.errors == 0


def test_audit_environment_flags_prod_missing_api_key():
    report = audit_environment({}, profile="prod")
    assert report.ok is False
    assert _find(report, "FREELANCEFLOW_API_KEY").errors == ["Missing required value."]
    assert _find(report, "FREELANCEFLOW_DB_PATH").warnings == ["Missing recommended value."]


def test_audit_rejects_placeholder_and_short_keys():
    report = audit_environment({"FREELANCEFLOW_API_KEY": "change-me"}, profile="prod")
    errors = _find(report, "FREELANCEFLOW_API_KEY").errors
    assert any("placeholder" in msg for msg in errors)
    assert any("at least 20" in msg for msg in errors)


def test_audit_checks_numbers_and_urls():
    env = {
        "FREELANCEFLOW_PORT": "99999",
        "FREELANCEFLOW_LIST_MAX_LIMIT": "many",
        "FREELANCEFLOW_NOTIFY_URL": "hooks.example.com",
        "FREELANCEFLOW_SQL_TRACE": "perhaps",
    }
    report = audit_environment(env, profile="dev")
    assert _find(report, "FREELANCEFLOW_PORT").errors == ["Must be <= 65535."]
    assert _find(report, "FREELANCEFLOW_LIST_MAX_LIMIT").errors == ["Must be an integer."]
    assert _find(report, "FREELANCEFLOW_NOTIFY_URL").errors
    assert _find(report, "FREELANCEFLOW_SQL_TRACE").errors
    assert report.errors == 4


def test_prod_warnings():
    env = {
        "FREELANCEFLOW_API_KEY": "a" * 32,
        "FREELANCEFLOW_DB_PATH": "relative/ff.db",
        "FREELANCEFLOW_SQL_TRACE": "1",
    }
    report = audit_environment(env, profile="prod")
    assert report.ok is True
    assert _find(report, "FREELANCEFLOW_DB_PATH").warnings
    assert _find(report, "FREELANCEFLOW_SQL_TRACE").warnings


def test_report_json_redacts_secrets():
    report = audit_environment({"FREELANCEFLOW_API_KEY": "s" * 24}, profile="prod")
    payload = json.loads(report.to_json())
    api_key = next(v for v in payload["vars"] if v["key"] == "FREELANCEFLOW_API_KEY")
    assert api_key["value"] == "<set>"
    revealed = json.loads(report.to_json(reveal_secrets=True))
    assert "s" * 24 in json.dumps(revealed)


def test_contract_lookup():
    by_key = contract_by_key()
    assert len(by_key) == len(default_contract())
    assert spec_to_dict(by_key["FREELANCEFLOW_PORT"])["default_by_profile"] == {"dev": "8000", "prod": "8000"}


def test_default_limit_above_max_limit_warns():
    env = {"FREELANCEFLOW_LIST_DEFAULT_LIMIT": "50", "FREELANCEFLOW_LIST_MAX_LIMIT": "20"}
    report = audit_environment(env, profile="dev")
    assert report.ok is True
    warnings = _find(report, "FREELANCEFLOW_LIST_DEFAULT_LIMIT").warnings
    assert warnings == ["Larger than FREELANCEFLOW_LIST_MAX_LIMIT (20); listings are clamped to it."]
    assert _find(report, "FREELANCEFLOW_LIST_MAX_LIMIT").warnings == []


def test_notify_checks_only_apply_when_a_webhook_is_set():
    quiet = audit_environment({"FREELANCEFLOW_NOTIFY_TIMEOUT": "30"}, profile="prod")
    assert _find(quiet, "FREELANCEFLOW_NOTIFY_TIMEOUT").warnings == []

    env = {
        "FREELANCEFLOW_API_KEY": "k" * 24,
        "FREELANCEFLOW_NOTIFY_URL": "http://hooks.example.com/ff",
        "FREELANCEFLOW_NOTIFY_TIMEOUT": "30",
    }
    report = audit_environment(env, profile="prod")
    assert report.ok is True
    assert _find(report, "FREELANCEFLOW_NOTIFY_URL").warnings
    assert _find(report, "FREELANCEFLOW_NOTIFY_TIMEOUT").warnings

    dev = audit_environment(env, profile="dev")
    assert _find(dev, "FREELANCEFLOW_NOTIFY_URL").warnings == []
