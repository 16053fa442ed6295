"""Transition notifications.

Events are emitted after the owning transaction commits. Delivery is best
effort: a failing webhook is logged and never surfaces to the caller.
"""

from __future__ import annotations

from typing import Any, Dict

import requests

from freelanceflow.config import settings
from freelanceflow.db.models import utcnow
from freelanceflow.logging import get_logger

logger = get_logger(__file__)


def post_event(url: str, data: Dict[str, Any], timeout: float) -> None:
    """POST ``data`` as JSON to ``url``."""

    response = requests.post(url, json=data, timeout=timeout)
    response.raise_for_status()


def notify(event: str, **payload: Any) -> None:
    """Record ``event`` and forward it to ``FREELANCEFLOW_NOTIFY_URL`` if set."""

    body = {"event": event, "at": utcnow().isoformat(), **payload}
    logger.info("event %s %s", event, payload)

    url = settings.notify_url()
    if not url:
        return
    try:
        post_event(url, body, settings.notify_timeout_seconds())
    except requests.RequestException as exc:
        logger.error("Failed to deliver %s to %s: %s", event, url, exc)
