"""
Caller identity.

Authentication happens upstream (the auth proxy validates the session and
forwards the user id). This module only turns that header into a user id.
"""
from fastapi import Header
from typing import Optional
import uuid

from flashrecall.core.exceptions import AuthenticationError

USER_ID_HEADER = "X-User-Id"


def get_current_user_id(x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER)) -> uuid.UUID:
    """Dependency returning the authenticated user's id, or raising 401."""
    if not x_user_id:
        raise AuthenticationError("Authentication required")
    try:
        return uuid.UUID(x_user_id)
    except ValueError:
        raise AuthenticationError("Authentication required")
