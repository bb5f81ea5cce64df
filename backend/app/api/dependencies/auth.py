# backend/app/api/dependencies/auth.py
"""
Shared-secret guards.

Admin routes expect ``X-Admin-Token``; the internal reaper trigger expects
``Authorization: Bearer <reaper_secret>``. Both compare in constant time.
"""

import logging
import secrets
from typing import Optional

from fastapi import Depends, Header, Request

from ...core.config import Settings, get_settings
from ...core.exceptions import UnauthorizedException

logger = logging.getLogger(__name__)


def _matches(candidate: Optional[str], expected: str) -> bool:
    if not candidate or not expected:
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def require_admin_token(
    request: Request,
    x_admin_token: Optional[str] = Header(None, alias="X-Admin-Token"),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject admin requests without the configured token."""
    if not _matches(x_admin_token, settings.admin_token.get_secret_value()):
        logger.warning("admin_auth_failed", extra={"path": request.url.path})
        raise UnauthorizedException(
            "Missing or invalid admin token", code="ADMIN_TOKEN_INVALID"
        ).to_http_exception()


def require_reaper_secret(
    request: Request,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject reaper triggers without ``Bearer <reaper_secret>``."""
    token: Optional[str] = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
    if not _matches(token, settings.reaper_secret.get_secret_value()):
        logger.warning("reaper_auth_failed", extra={"path": request.url.path})
        raise UnauthorizedException(
            "Missing or invalid reaper secret", code="REAPER_SECRET_INVALID"
        ).to_http_exception()
