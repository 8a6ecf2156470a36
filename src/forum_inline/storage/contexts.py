"""Context lookup for users, courses and forums."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import CONTEXT_COURSE, CONTEXT_MODULE, CONTEXT_USER, Context


def get_context(session: Session, contextlevel: int, instanceid: int) -> Context:
    """
    Get or create the context of an instance.

    Args:
        session: Database session
        contextlevel: One of CONTEXT_USER, CONTEXT_COURSE, CONTEXT_MODULE
        instanceid: Id of the user, course or forum

    Returns:
        Context row (flushed, so its id is set)
    """
    context = session.execute(
        select(Context).where(
            Context.contextlevel == contextlevel,
            Context.instanceid == instanceid,
        )
    ).scalar_one_or_none()

    if context is None:
        context = Context(contextlevel=contextlevel, instanceid=instanceid)
        session.add(context)
        session.flush()
    return context


def user_context_id(session: Session, user_id: int) -> int:
    return get_context(session, CONTEXT_USER, user_id).id


def course_context_id(session: Session, course_id: int) -> int:
    return get_context(session, CONTEXT_COURSE, course_id).id


def module_context_id(session: Session, forum_id: int) -> int:
    return get_context(session, CONTEXT_MODULE, forum_id).id
