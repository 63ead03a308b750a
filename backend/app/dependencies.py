"""
BeeBark Backend — Request Dependencies
========================================

Caller identity is established upstream (the auth gateway in front of this
service verifies the session and forwards the user id in a header). This
module only reads and parses that header.
"""

import logging
from uuid import UUID

from fastapi import Request

from app.config import settings
from app.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


async def get_current_user_id(request: Request) -> UUID:
    """
    FastAPI dependency returning the authenticated caller's id.

    Raises:
        AuthenticationError: header missing or not a UUID (HTTP 401)
    """
    raw = request.headers.get(settings.auth_user_header)
    if not raw:
        raise AuthenticationError()
    try:
        return UUID(raw.strip())
    except ValueError:
        logger.warning("Rejected malformed %s header", settings.auth_user_header)
        raise AuthenticationError(
            message="Invalid user identity",
            context={"header": settings.auth_user_header},
        )
