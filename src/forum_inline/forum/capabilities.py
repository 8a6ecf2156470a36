"""
Capability checks.

A user holds a capability when a grant exists for it, either site-wide
(context_id NULL) or in the context being checked.
"""

from typing import Optional

import structlog
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..exceptions import PermissionDeniedError
from ..storage.models import CapabilityGrant

logger = structlog.get_logger(__name__)

ACCESS_ALL_GROUPS = "moodle/site:accessallgroups"
MANAGE_ACTIVITIES = "moodle/course:manageactivities"
REPLY_POST = "mod/forum:replypost"
START_DISCUSSION = "mod/forum:startdiscussion"
EDIT_ANY_POST = "mod/forum:editanypost"
PIN_DISCUSSIONS = "mod/forum:pindiscussions"
POST_TO_MY_GROUPS = "mod/forum:canposttomygroups"
MOVE_DISCUSSIONS = "mod/forum:movediscussions"
POST_WITHOUT_THROTTLING = "mod/forum:postwithoutthrottling"


class CapabilityChecker:
    """Capability lookups for one user."""

    def __init__(self, session: Session, user_id: int):
        self.session = session
        self.user_id = user_id

    def has(self, capability: str, context_id: Optional[int] = None) -> bool:
        query = select(CapabilityGrant.id).where(
            CapabilityGrant.user_id == self.user_id,
            CapabilityGrant.capability == capability,
        )
        if context_id is None:
            query = query.where(CapabilityGrant.context_id.is_(None))
        else:
            query = query.where(
                or_(CapabilityGrant.context_id.is_(None), CapabilityGrant.context_id == context_id)
            )
        return self.session.execute(query).first() is not None

    def require(self, capability: str, context_id: Optional[int] = None) -> None:
        """
        Raises:
            PermissionDeniedError: When the user lacks the capability
        """
        if not self.has(capability, context_id):
            logger.warning(
                "capability_missing",
                user_id=self.user_id,
                capability=capability,
                context_id=context_id,
            )
            raise PermissionDeniedError(f"Missing capability {capability}")


def grant(session: Session, user_id: int, capability: str, context_id: Optional[int] = None) -> None:
    """Give a user a capability."""
    session.add(CapabilityGrant(user_id=user_id, capability=capability, context_id=context_id))
    session.flush()
