# backend/pitchbook/api/dependencies/auth.py
"""
Caller identity.

Authentication happens at the gateway, which forwards the verified subject in
``X-User-Sub``. This service trusts that header and never sees credentials.
"""

import logging
from typing import Optional

from fastapi import Header

from ...core.exceptions import UnauthorizedException

logger = logging.getLogger(__name__)

USER_SUB_HEADER = "X-User-Sub"


def get_current_user_id(
    x_user_sub: Optional[str] = Header(default=None, alias=USER_SUB_HEADER),
) -> str:
    """Return the authenticated user id, or 401 when the gateway sent none."""
    user_id = (x_user_sub or "").strip()
    if not user_id:
        logger.debug("request_without_user_sub")
        raise UnauthorizedException(
            "Authentication required", code="NOT_AUTHENTICATED"
        ).to_http_exception()
    return user_id
