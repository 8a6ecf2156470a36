"""
Post threshold checks.

A forum can limit how many posts a user makes within a rolling period
(``blockafter`` posts per ``blockperiod`` seconds) and warn from
``warnafter`` posts on. Either limit set to 0 turns throttling off.
"""

import time
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..exceptions import PostThresholdError
from ..storage.models import Discussion, Forum, Post
from .capabilities import POST_WITHOUT_THROTTLING, CapabilityChecker
from .post_inline_form import ThresholdWarning

logger = structlog.get_logger(__name__)


def count_recent_posts(session: Session, forum_id: int, user_id: int, since: int) -> int:
    """Posts by ``user_id`` in the forum created after ``since``."""
    query = (
        select(func.count(Post.id))
        .join(Discussion, Discussion.id == Post.discussion_id)
        .where(Discussion.forum_id == forum_id, Post.userid == user_id, Post.created > since)
    )
    return session.execute(query).scalar_one()


def check_throttling(
    session: Session,
    forum: Forum,
    user_id: int,
    capabilities: CapabilityChecker,
    context_id: int,
    now: Optional[int] = None,
) -> Optional[ThresholdWarning]:
    """
    Threshold state of a user in a forum.

    Returns:
        None when the user is not near the threshold, otherwise a
        ThresholdWarning; ``canpost`` is False once the limit is reached
    """
    if not forum.blockafter or not forum.blockperiod:
        return None
    if capabilities.has(POST_WITHOUT_THROTTLING, context_id):
        return None

    now = int(time.time()) if now is None else now
    count = count_recent_posts(session, forum.id, user_id, now - forum.blockperiod)

    if count >= forum.blockafter:
        logger.info("forum_post_threshold_reached", forum_id=forum.id, user_id=user_id, posts=count)
        return ThresholdWarning(canpost=False, errorcode="forumblockingtoomanyposts")
    if forum.warnafter and count >= forum.warnafter:
        return ThresholdWarning(
            canpost=True,
            errorcode="postsremaining",
            additional={"remaining": forum.blockafter - count},
        )
    return None


def require_below_threshold(warning: Optional[ThresholdWarning]) -> None:
    """
    Raises:
        PostThresholdError: When the threshold blocks further posts
    """
    if warning is not None and not warning.canpost:
        raise PostThresholdError()
