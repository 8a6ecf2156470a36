"""
Inline post form definition.

Describes the fields of the reply/edit form shown under a post. The same
definition drives the rendered markup and the server-side validation of the
remote calls.
"""

import html as html_module
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import structlog

from ..config import settings
from ..storage.files import FileStorage
from ..storage.models import Course, Forum
from .capabilities import (
    MANAGE_ACTIVITIES,
    MOVE_DISCUSSIONS,
    PIN_DISCUSSIONS,
    POST_TO_MY_GROUPS,
    CapabilityChecker,
)
from .forms import PARAM_INT, PARAM_RAW, PARAM_TEXT, FormBuilder, FormField
from .groups import (
    ALL_PARTICIPANTS,
    get_activity_allowed_groups,
    get_activity_groupmode,
    get_course_groups,
    user_can_post_discussion,
)
from .strings import get_string
from .subscriptions import is_forcesubscribed, subscription_disabled

logger = structlog.get_logger(__name__)

EDITOR_UNLIMITED_FILES = -1
FILE_INTERNAL = 1
FILE_EXTERNAL = 2

SUBJECT_MAXLENGTH = 255


@dataclass(frozen=True)
class EditorOptions:
    maxfiles: int
    maxbytes: int
    trusttext: bool
    return_types: int
    subdirs: bool

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PostDraft:
    """
    The post the form is shown for.

    Attributes:
        id: Post id when editing, None for a new post
        parent: Parent post id, 0 for a discussion root
        groupid: Discussion group, -1 (or 0) for all participants
        edit: Whether an existing post is being edited
    """

    course: int
    forum: int
    discussion: int = 0
    id: Optional[int] = None
    parent: int = 0
    groupid: int = ALL_PARTICIPANTS
    edit: bool = False


@dataclass
class ThresholdWarning:
    """Post threshold state of the user, shown as a warning on new posts."""

    canpost: bool
    errorcode: str
    module: str = "forum"
    additional: Any = None


@dataclass
class PostFormContext:
    course: Course
    forum: Forum
    post: PostDraft
    capabilities: CapabilityChecker
    storage: FileStorage
    module_context_id: int
    course_context_id: int
    subscribe: bool = False
    threshold_warning: Optional[ThresholdWarning] = None


def get_user_max_upload_file_size(*limits: int) -> int:
    """Smallest non-zero limit, 0 (unlimited) when every limit is 0."""
    positive = [limit for limit in limits if limit and limit > 0]
    return min(positive) if positive else 0


def editor_options(
    storage: FileStorage,
    context_id: int,
    post_id: Optional[int],
    course: Course,
    forum: Forum,
) -> EditorOptions:
    """
    Options of the message editor.

    Args:
        storage: File store used to inspect the post's file area
        context_id: Forum module context
        post_id: Post being edited, None for a new post
        course: Course of the forum
        forum: Forum the post belongs to

    Returns:
        EditorOptions; subdirectories are allowed only when the post's file
        area already uses them
    """
    maxbytes = get_user_max_upload_file_size(forum.maxbytes, settings.max_upload_bytes, course.maxbytes)
    return EditorOptions(
        maxfiles=EDITOR_UNLIMITED_FILES,
        maxbytes=maxbytes,
        trusttext=True,
        return_types=FILE_INTERNAL | FILE_EXTERNAL,
        subdirs=storage.file_area_contains_subdirs(context_id, "mod_forum", "post", post_id),
    )


class PostInlineForm:
    """Field definition of the inline reply/edit form."""

    def __init__(self, builder: FormBuilder, context: PostFormContext):
        self.builder = builder
        self.context = context

    def definition(self) -> None:
        form = self.builder
        ctx = self.context
        post = ctx.post
        caps = ctx.capabilities

        # A user who can still post but is near the threshold gets a warning
        warning = ctx.threshold_warning
        if warning is not None and not post.edit and warning.canpost:
            message = get_string(warning.errorcode, warning.module, warning.additional)
            form.add_field(
                FormField(
                    "html",
                    "thresholdwarning",
                    value=f'<div class="alert alert-warning">{html_module.escape(message)}</div>',
                )
            )

        form.add_field(FormField("text", "subject", get_string("subject"), attributes={"size": "48"}))
        form.set_type("subject", PARAM_TEXT)
        form.add_rule("subject", "required", get_string("required", "core"))
        form.add_rule(
            "subject", "maxlength", get_string("maximumchars", "core", SUBJECT_MAXLENGTH), SUBJECT_MAXLENGTH
        )

        link = (
            f'<a href="#" id="id_morereplyingoptions">'
            f'{html_module.escape(get_string("morereplyingoptions"))}</a>'
        )
        form.add_field(
            FormField(
                "html",
                "morereplyingoptions",
                value=f'<div id="id_morereplyingoptions-div">{link}</div><div id="id_author" class="author"></div>',
            )
        )

        options = editor_options(ctx.storage, ctx.module_context_id, post.id, ctx.course, ctx.forum)
        form.add_field(FormField("editor", "message", get_string("message"), config=options.as_dict()))
        form.set_type("message", PARAM_RAW)
        form.add_rule("message", "required", get_string("required", "core"))

        self._add_subscription(caps.has(MANAGE_ACTIVITIES, ctx.course_context_id))

        if not post.parent and caps.has(PIN_DISCUSSIONS, ctx.module_context_id):
            form.add_field(FormField("checkbox", "pinned", get_string("discussionpinned")))
            form.add_help_button("pinned", "discussionpinned", "forum")

        if get_activity_groupmode(ctx.forum):
            self._add_groups()

        if post.edit:
            submit_label = get_string("savechanges", "core")
        else:
            submit_label = get_string("posttoforum")
        form.add_field(
            FormField(
                "group",
                "buttonar",
                elements=[
                    FormField("submit", "submitbutton", value=submit_label),
                    FormField("cancel", "cancel", value=get_string("cancel", "core")),
                ],
            )
        )

        hidden = {
            "course": post.course,
            "forum": post.forum,
            "discussion": post.discussion,
            "parent": post.parent,
            "groupid": post.groupid,
            "edit": post.id if post.edit and post.id else 0,
            "reply": post.parent if not post.edit else 0,
        }
        for name, value in hidden.items():
            form.add_field(FormField("hidden", name))
            form.set_type(name, PARAM_INT)
            form.set_default(name, value)

    def _add_subscription(self, manage_activities: bool) -> None:
        form = self.builder
        forum = self.context.forum
        label = get_string("discussionsubscription")

        form.add_field(FormField("checkbox", "discussionsubscribe", label))
        if is_forcesubscribed(forum):
            form.freeze("discussionsubscribe")
            form.set_default("discussionsubscribe", 0)
            form.add_help_button("discussionsubscribe", "forcesubscribed", "forum")
        elif subscription_disabled(forum) and not manage_activities:
            form.freeze("discussionsubscribe")
            form.set_default("discussionsubscribe", 0)
            form.add_help_button("discussionsubscribe", "disallowsubscription", "forum")
        else:
            form.set_default("discussionsubscribe", 1 if self.context.subscribe else 0)
            form.add_help_button("discussionsubscribe", "discussionsubscription", "forum")

    def _add_groups(self) -> None:
        form = self.builder
        ctx = self.context
        post = ctx.post
        caps = ctx.capabilities
        session = ctx.storage.session
        context_id = ctx.module_context_id

        groupdata = get_activity_allowed_groups(session, ctx.forum, caps, context_id)

        # Visible groups are listed even where the user cannot post
        groupinfo: Dict[int, str] = {}
        for group_id, group in list(groupdata.items()):
            if user_can_post_discussion(session, ctx.forum, group_id, caps, context_id):
                groupinfo[group_id] = group.name
            else:
                del groupdata[group_id]
        groupcount = len(groupinfo)

        # Posting a copy to each own group: new top-level posts of users in
        # more than one group, counted before the all-participants entry
        can_post_to_own_groups = (
            not post.edit
            and groupcount > 1
            and not post.parent
            and caps.has(POST_TO_MY_GROUPS, context_id)
        )
        if can_post_to_own_groups:
            form.add_field(FormField("checkbox", "posttomygroups", get_string("posttomygroups")))
            form.add_help_button("posttomygroups", "posttomygroups", "forum")
            form.disabled_if("groupinfo", "posttomygroups", "checked")

        if user_can_post_discussion(session, ctx.forum, ALL_PARTICIPANTS, caps, context_id):
            groupinfo = {ALL_PARTICIPANTS: get_string("allparticipants", "core"), **groupinfo}
            groupcount += 1

        can_select_for_new = not post.edit and groupcount > 1
        can_select_for_move = bool(groupcount) and post.edit and caps.has(MOVE_DISCUSSIONS, context_id)
        can_select = not post.parent and (can_select_for_new or can_select_for_move)

        if can_select:
            form.add_field(FormField("select", "groupinfo", get_string("group", "core"), options=groupinfo))
            form.set_default("groupinfo", post.groupid)
            form.set_type("groupinfo", PARAM_INT)
        else:
            form.add_field(
                FormField("static", "groupinfo", get_string("group", "core"), value=self._group_name(groupdata))
            )

        logger.debug(
            "post_form_groups",
            forum_id=ctx.forum.id,
            groups=groupcount,
            selectable=can_select,
            post_to_own_groups=can_post_to_own_groups,
        )

    def _group_name(self, groupdata: Dict[int, Any]) -> str:
        groupid = self.context.post.groupid
        if not groupid or groupid == ALL_PARTICIPANTS:
            return get_string("allparticipants", "core")
        group = groupdata.get(groupid)
        if group is None:
            group = get_course_groups(self.context.storage.session, self.context.forum.course_id).get(groupid)
        return group.name if group is not None else get_string("allparticipants", "core")
