"""
Request dependencies.
"""

from fastapi import Header

from ..logging_config import bind_user


async def get_current_user_id(x_user_id: int = Header(..., description="Acting user id")) -> int:
    """Acting user, as identified by the host in the X-User-Id header."""
    bind_user(x_user_id)
    return x_user_id
