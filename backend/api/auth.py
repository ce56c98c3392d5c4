from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Optional

from fastapi import Header

from models.db import get_session_by_token, get_user
from .errors import Unauthorized


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def resolve_user(authorization: Optional[str]) -> Optional[sqlite3.Row]:
    """Return the user behind an Authorization header, or None when the session is missing or expired."""
    token = extract_bearer_token(authorization)
    if not token:
        return None

    s = get_session_by_token(token)
    if not s or not s["expires_at"]:
        return None

    exp = datetime.fromisoformat(s["expires_at"])
    if exp.tzinfo is None:
        exp = exp.replace(tzinfo=timezone.utc)
    if exp < datetime.now(timezone.utc):
        return None

    return get_user(s["user_id"])


def get_current_user(authorization: Optional[str] = Header(None)) -> sqlite3.Row:
    user = resolve_user(authorization)
    if user is None:
        raise Unauthorized()
    return user
