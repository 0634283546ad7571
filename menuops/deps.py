from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request, status

from menuops.services.audit import Actor

logger = logging.getLogger(__name__)

ADMIN_ROLES = {"admin", "owner"}


def _normalize_admin_role(role: str | None) -> str:
    return (role or "").strip().lower()


def _log_access_denied(*, reason: str, user: Any, request: Request) -> None:
    endpoint = f"{request.method} {request.url.path}"
    logger.warning(
        "Access denied (%s): user_id=%s user_role=%s endpoint=%s",
        reason,
        getattr(user, "id", None),
        getattr(user, "role", None),
        endpoint,
    )


def require_admin_user(request: Request) -> Any:
    """Admin attached to the request by the session layer in front of the API."""
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin not authenticated")

    if _normalize_admin_role(getattr(user, "role", None)) not in ADMIN_ROLES:
        _log_access_denied(reason="role_denied", user=user, request=request)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    return user


def actor_from_user(user: Any) -> Actor:
    user_id = getattr(user, "id", None)
    return Actor(id=str(user_id) if user_id is not None else "unknown", name=getattr(user, "name", None))
