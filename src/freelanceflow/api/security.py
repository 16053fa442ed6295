"""API security helpers for the FastAPI service.

Two layers:

1) Optional shared API key (env: ``FREELANCEFLOW_API_KEY``)
   - Accepted via ``X-API-Key`` header or ``Authorization: Bearer <key>``.

2) Caller identity from the upstream gateway
   - The gateway authenticates users and forwards the member id in
     ``X-User-Id``. The role is read from the local member record, never from
     the request.
"""

from __future__ import annotations

import secrets

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from freelanceflow.config import settings
from freelanceflow.db.connect import get_session_dep
from freelanceflow.db.models import Member
from freelanceflow.matching.errors import Unauthenticated

_API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)
_BEARER = HTTPBearer(auto_error=False)


def _provided_api_key(
    x_api_key: str | None = Depends(_API_KEY_HEADER),
    bearer: HTTPAuthorizationCredentials | None = Depends(_BEARER),
) -> str | None:
    if x_api_key:
        return x_api_key
    if bearer and bearer.credentials:
        return bearer.credentials
    return None


def require_api_key(provided: str | None = Depends(_provided_api_key)) -> None:
    """FastAPI dependency enforcing ``FREELANCEFLOW_API_KEY`` when configured."""

    expected = settings.api_key()
    if expected is None:
        return

    if provided is None or not secrets.compare_digest(provided, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid API key.",
        )


def require_caller(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    db: Session = Depends(get_session_dep),
) -> Member:
    """Resolve the acting member from ``X-User-Id``."""

    if not x_user_id or not x_user_id.strip().isdigit():
        raise Unauthenticated("Missing or invalid X-User-Id header")
    member = db.get(Member, int(x_user_id.strip()))
    if member is None:
        raise Unauthenticated("Unknown member")
    return member
