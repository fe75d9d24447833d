"""Caller identity helpers for session routes.

The upstream auth gateway authenticates the request and forwards the
caller as ``X-User-Id`` / ``X-User-Role`` headers.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Header

from core.exceptions import AuthenticationException, AuthorizationException
from sessions.models import Identity

SELF_ALIAS = "me"


async def get_identity(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Identity | None:
    user_id = (x_user_id or "").strip()
    if not user_id:
        return None
    role = (x_user_role or "").strip().lower() or None
    return Identity(user_id=user_id, role=role)


def require_identity(identity: Identity | None) -> Identity:
    if identity is None:
        msg = "Authentication required"
        raise AuthenticationException(msg)
    return identity


def resolve_owner(identity: Identity | None, user_id: str | None) -> str:
    """
    Map a path or body user id to the owner the caller may act on.

    ``me`` (or no id) is the caller. Anyone else's data needs superadmin.
    """
    caller = require_identity(identity)
    if not user_id or user_id == SELF_ALIAS or user_id == caller.user_id:
        return caller.user_id
    if not caller.is_superadmin:
        msg = "No permission to access another user's routes"
        raise AuthorizationException(msg, {"userId": user_id})
    return user_id
