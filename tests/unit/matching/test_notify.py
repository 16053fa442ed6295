from unittest.mock import MagicMock

import pytest
import requests

from freelanceflow.matching import notify as notify_module
from freelanceflow.matching.notify import notify, post_event


@pytest.fixture
def post(monkeypatch):
    mock = MagicMock()
    monkeypatch.setattr(notify_module.requests, "post", mock)
    return mock


def test_notify_without_url_only_logs(post, caplog, monkeypatch):
    monkeypatch.setattr(notify_module.logger, "propagate", True)
    with caplog.at_level("INFO"):
        notify("project.created", project_id=3)
    post.assert_not_called()
    assert "project.created" in caplog.text


def test_notify_posts_json(post, monkeypatch):
    monkeypatch.setenv("FREELANCEFLOW_NOTIFY_URL", "https://hooks.example.com/ff")
    monkeypatch.setenv("FREELANCEFLOW_NOTIFY_TIMEOUT", "1.5")
    notify("proposal.accepted", proposal_id=7, project_id=3)

    post.assert_called_once()
    args, kwargs = post.call_args
    assert args == ("https://hooks.example.com/ff",)
    assert kwargs["timeout"] == 1.5
    body = kwargs["json"]
    assert body["event"] == "proposal.accepted"
    assert body["proposal_id"] == 7
    assert "at" in body


def test_notify_failures_are_logged_not_raised(post, caplog, monkeypatch):
    monkeypatch.setenv("FREELANCEFLOW_NOTIFY_URL", "https://hooks.example.com/ff")
    monkeypatch.setattr(notify_module.logger, "propagate", True)
    post.side_effect = requests.ConnectionError("refused")

    with caplog.at_level("ERROR"):
        notify("proposal.rejected", proposal_id=1)
    assert "Failed to deliver proposal.rejected" in caplog.text


def test_post_event_raises_for_status(post):
    post.return_value.raise_for_status.side_effect = requests.HTTPError("502")
    with pytest.raises(requests.HTTPError):
        post_event("https://hooks.example.com/ff", {"event": "x"}, timeout=1)
