"""
app/api/dependencies.py

Shared FastAPI dependencies for request context.
"""

from __future__ import annotations

from fastapi import Header

USER_ID_HEADER = "X-User-Id"


def get_request_user_id(x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER)) -> str | None:
    """
    Return the caller's user id as set by the upstream auth layer, if any.
    """

    user_id = (x_user_id or "").strip()
    return user_id or None
