"""Discussion subscription rules."""

import time

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..storage.models import (
    FORUM_DISALLOWSUBSCRIBE,
    FORUM_FORCESUBSCRIBE,
    Discussion,
    DiscussionSubscription,
    Forum,
)


def is_forcesubscribed(forum: Forum) -> bool:
    return forum.forcesubscribe == FORUM_FORCESUBSCRIBE


def subscription_disabled(forum: Forum) -> bool:
    return forum.forcesubscribe == FORUM_DISALLOWSUBSCRIBE


def is_subscribed_to_discussion(session: Session, user_id: int, discussion: Discussion) -> bool:
    return session.execute(
        select(DiscussionSubscription.id).where(
            DiscussionSubscription.user_id == user_id,
            DiscussionSubscription.discussion_id == discussion.id,
        )
    ).first() is not None


def set_discussion_subscription(
    session: Session,
    forum: Forum,
    discussion: Discussion,
    user_id: int,
    subscribe: bool,
) -> bool:
    """
    Subscribe or unsubscribe a user from a discussion.

    Forced and disallowed subscription modes leave the state alone.

    Returns:
        True when the subscription state was changed
    """
    if is_forcesubscribed(forum) or subscription_disabled(forum):
        return False

    subscribed = is_subscribed_to_discussion(session, user_id, discussion)
    if subscribe and not subscribed:
        session.add(
            DiscussionSubscription(
                forum_id=forum.id,
                user_id=user_id,
                discussion_id=discussion.id,
                preference=int(time.time()),
            )
        )
    elif not subscribe and subscribed:
        session.execute(
            delete(DiscussionSubscription).where(
                DiscussionSubscription.user_id == user_id,
                DiscussionSubscription.discussion_id == discussion.id,
            )
        )
    else:
        return False

    session.flush()
    return True
