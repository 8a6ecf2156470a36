"""Group helpers for group-mode forums."""

from typing import Dict, Set

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..storage.models import NOGROUPS, VISIBLEGROUPS, Forum, Group, GroupMember
from .capabilities import ACCESS_ALL_GROUPS, START_DISCUSSION, CapabilityChecker

ALL_PARTICIPANTS = -1


def get_activity_groupmode(forum: Forum) -> int:
    return forum.groupmode or NOGROUPS


def get_course_groups(session: Session, course_id: int) -> Dict[int, Group]:
    groups = session.execute(
        select(Group).where(Group.course_id == course_id).order_by(Group.id)
    ).scalars()
    return {group.id: group for group in groups}


def get_user_group_ids(session: Session, user_id: int, course_id: int) -> Set[int]:
    rows = session.execute(
        select(GroupMember.group_id)
        .join(Group, Group.id == GroupMember.group_id)
        .where(GroupMember.user_id == user_id, Group.course_id == course_id)
    ).scalars()
    return set(rows)


def get_activity_allowed_groups(
    session: Session,
    forum: Forum,
    capabilities: CapabilityChecker,
    context_id: int,
) -> Dict[int, Group]:
    """
    Groups the user may see in a forum.

    Visible-groups forums and users with access to all groups see every
    course group; everyone else sees the groups they belong to.
    """
    groups = get_course_groups(session, forum.course_id)
    if get_activity_groupmode(forum) == VISIBLEGROUPS or capabilities.has(ACCESS_ALL_GROUPS, context_id):
        return groups

    member_of = get_user_group_ids(session, capabilities.user_id, forum.course_id)
    return {group_id: group for group_id, group in groups.items() if group_id in member_of}


def user_can_post_discussion(
    session: Session,
    forum: Forum,
    group_id: int,
    capabilities: CapabilityChecker,
    context_id: int,
) -> bool:
    """
    Whether the user may start a discussion in ``group_id``.

    ``ALL_PARTICIPANTS`` (-1) requires access to all groups in a group-mode
    forum.
    """
    if not capabilities.has(START_DISCUSSION, context_id):
        return False
    if get_activity_groupmode(forum) == NOGROUPS:
        return True
    if capabilities.has(ACCESS_ALL_GROUPS, context_id):
        return True
    if group_id == ALL_PARTICIPANTS:
        return False
    return group_id in get_user_group_ids(session, capabilities.user_id, forum.course_id)
