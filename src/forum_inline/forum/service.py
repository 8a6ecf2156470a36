"""
Remote procedures used by the inline editing controller.

ForumService runs the calls for one acting user inside one database session.
execute() resolves a method name to the service method and validates the
arguments with the method's argument model.
"""

import secrets
import time
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

import structlog
from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..exceptions import (
    FormValidationError,
    ForumInlineError,
    InvalidParameterError,
    PermissionDeniedError,
    RecordNotFoundError,
)
from ..models.api_models import (
    AddDiscussionPostArgs,
    DeleteDraftAreaArgs,
    GetPostInlineEditorArgs,
    RenderForumDiscussionArgs,
    UpdateDiscussionPostArgs,
)
from ..storage.contexts import course_context_id, module_context_id, user_context_id
from ..storage.files import (
    DRAFT_COMPONENT,
    DRAFT_FILEAREA,
    FileStorage,
    rewrite_draftfile_urls,
    rewrite_pluginfile_urls,
)
from ..storage.models import Course, Discussion, Forum, Post, User
from .blockquotes import DraftCopyOptions, copy_files_to_draft_area
from .capabilities import EDIT_ANY_POST, PIN_DISCUSSIONS, REPLY_POST, CapabilityChecker
from .forms import Form
from .post_inline_form import PostDraft, PostFormContext, PostInlineForm, editor_options
from .rendering import render_discussion, render_discussion_page
from .subscriptions import is_subscribed_to_discussion, set_discussion_subscription
from .throttling import check_throttling, require_below_threshold

logger = structlog.get_logger(__name__)

POST_COMPONENT = "mod_forum"
POST_FILEAREA = "post"

INLINE_FORM_ID = "forum-inlineform"

_TRUE_VALUES = ("1", "true", "yes", "on")


def _option_bool(value: Any) -> bool:
    return str(value).strip().lower() in _TRUE_VALUES


def _option_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(f"Invalid integer option value '{value}'") from None


# Option name -> converter
POST_OPTIONS: Dict[str, Callable[[Any], Any]] = {
    "inlineattachmentsid": _option_int,
    "discussionsubscribe": _option_bool,
    "pinned": _option_bool,
}


def parse_post_options(options: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Convert ``[{name, value}]`` options to a dict.

    Raises:
        InvalidParameterError: For unknown option names
    """
    parsed: Dict[str, Any] = {}
    for option in options:
        name = option.get("name")
        converter = POST_OPTIONS.get(name)
        if converter is None:
            raise InvalidParameterError(f"Invalid option name '{name}'")
        parsed[name] = converter(option.get("value"))
    return parsed


class ForumService:
    """Forum operations performed on behalf of one user."""

    def __init__(self, session: Session, user_id: int, wwwroot: Optional[str] = None):
        self.session = session
        self.user = session.get(User, user_id)
        if self.user is None:
            raise RecordNotFoundError(f"User {user_id} does not exist")
        self.capabilities = CapabilityChecker(session, user_id)
        self.storage = FileStorage(session)
        self.wwwroot = (wwwroot or settings.wwwroot).rstrip("/")
        self.user_context_id = user_context_id(session, user_id)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _load_discussion(self, discussion_id: int) -> Tuple[Discussion, Forum, Course]:
        discussion = self.session.get(Discussion, discussion_id)
        if discussion is None:
            raise RecordNotFoundError(f"Discussion {discussion_id} does not exist")
        forum = self.session.get(Forum, discussion.forum_id)
        if forum is None:
            raise RecordNotFoundError(f"Forum {discussion.forum_id} does not exist")
        course = self.session.get(Course, forum.course_id)
        if course is None:
            raise RecordNotFoundError(f"Course {forum.course_id} does not exist")
        return discussion, forum, course

    def _load_post(self, post_id: int) -> Tuple[Post, Discussion, Forum, Course]:
        post = self.session.get(Post, post_id)
        if post is None:
            raise RecordNotFoundError(f"Post {post_id} does not exist")
        return (post,) + self._load_discussion(post.discussion_id)

    def can_edit_post(self, post: Post, context_id: int) -> bool:
        return post.userid == self.user.id or self.capabilities.has(EDIT_ANY_POST, context_id)

    # ------------------------------------------------------------------
    # Forms
    # ------------------------------------------------------------------

    def build_post_form(
        self,
        draft: PostDraft,
        forum: Forum,
        course: Course,
        discussion: Optional[Discussion] = None,
    ) -> Form:
        """Form for ``draft`` with the field set of the inline post form."""
        context_id = module_context_id(self.session, forum.id)
        subscribed = discussion is not None and is_subscribed_to_discussion(
            self.session, self.user.id, discussion
        )
        threshold = None
        if not draft.edit:
            threshold = check_throttling(self.session, forum, self.user.id, self.capabilities, context_id)
        form = Form(INLINE_FORM_ID)
        PostInlineForm(
            form,
            PostFormContext(
                course=course,
                forum=forum,
                post=draft,
                capabilities=self.capabilities,
                storage=self.storage,
                module_context_id=context_id,
                course_context_id=course_context_id(self.session, course.id),
                subscribe=subscribed,
                threshold_warning=threshold,
            ),
        ).definition()
        return form

    def _validated(self, form: Form, subject: str, message: str) -> Dict[str, Any]:
        data = {"subject": subject, "message": {"text": message}}
        errors = form.validate(data)
        if errors:
            logger.info("forum_post_rejected", fields=sorted(errors))
            raise FormValidationError(errors)
        return form.clean({"subject": subject})

    def _save_attachments(self, post: Post, context_id: int, draftitemid: Optional[int]) -> int:
        if not draftitemid:
            return 0
        post.message = rewrite_draftfile_urls(post.message, self.wwwroot, self.user_context_id, draftitemid)
        return self.storage.save_draft_area_files(
            draftitemid, self.user_context_id, context_id, POST_COMPONENT, POST_FILEAREA, post.id
        )

    # ------------------------------------------------------------------
    # Remote methods
    # ------------------------------------------------------------------

    def add_discussion_post(
        self,
        postid: int,
        subject: str,
        message: str,
        options: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Reply to a post.

        Args:
            postid: Parent post id
            subject: Reply subject
            message: Reply body (HTML)
            options: inlineattachmentsid, discussionsubscribe

        Returns:
            {"postid", "warnings"}
        """
        parent, discussion, forum, course = self._load_post(postid)
        context_id = module_context_id(self.session, forum.id)
        self.capabilities.require(REPLY_POST, context_id)
        opts = parse_post_options(options or [])

        draft = PostDraft(
            course=course.id,
            forum=forum.id,
            discussion=discussion.id,
            parent=parent.id,
            groupid=discussion.groupid,
        )
        require_below_threshold(
            check_throttling(self.session, forum, self.user.id, self.capabilities, context_id)
        )
        cleaned = self._validated(self.build_post_form(draft, forum, course, discussion), subject, message)

        now = int(time.time())
        post = Post(
            discussion_id=discussion.id,
            parent=parent.id,
            userid=self.user.id,
            subject=cleaned["subject"],
            message=message,
            created=now,
            modified=now,
        )
        self.session.add(post)
        self.session.flush()

        files = self._save_attachments(post, context_id, opts.get("inlineattachmentsid"))
        discussion.timemodified = now

        if "discussionsubscribe" in opts:
            set_discussion_subscription(
                self.session, forum, discussion, self.user.id, opts["discussionsubscribe"]
            )
        self.session.flush()

        logger.info(
            "forum_post_created",
            post_id=post.id,
            parent_id=parent.id,
            discussion_id=discussion.id,
            user_id=self.user.id,
            files=files,
        )
        return {"postid": post.id, "warnings": []}

    def update_discussion_post(
        self,
        postid: int,
        subject: str,
        message: str,
        options: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Update a post.

        Allowed for the author and for holders of the edit-any-post
        capability. A pinned option on a reply, or without the pin
        capability, is ignored and reported as a warning.

        Returns:
            {"status", "postid", "warnings"}
        """
        post, discussion, forum, course = self._load_post(postid)
        context_id = module_context_id(self.session, forum.id)
        if not self.can_edit_post(post, context_id):
            raise PermissionDeniedError(f"You can not edit post {postid}")
        opts = parse_post_options(options or [])

        draft = PostDraft(
            course=course.id,
            forum=forum.id,
            discussion=discussion.id,
            id=post.id,
            parent=post.parent,
            groupid=discussion.groupid,
            edit=True,
        )
        cleaned = self._validated(self.build_post_form(draft, forum, course, discussion), subject, message)

        now = int(time.time())
        post.subject = cleaned["subject"]
        post.message = message
        post.modified = now
        self.session.flush()
        files = self._save_attachments(post, context_id, opts.get("inlineattachmentsid"))

        warnings: List[Dict[str, Any]] = []
        if "pinned" in opts:
            if post.parent:
                warnings.append(self._warning(post.id, "pinnedonlyroot", "Only discussion starters can be pinned"))
            elif not self.capabilities.has(PIN_DISCUSSIONS, context_id):
                warnings.append(self._warning(post.id, "nopermissions", "You can not pin discussions"))
            else:
                discussion.pinned = opts["pinned"]

        if "discussionsubscribe" in opts:
            set_discussion_subscription(
                self.session, forum, discussion, self.user.id, opts["discussionsubscribe"]
            )
        discussion.timemodified = now
        self.session.flush()

        logger.info(
            "forum_post_updated",
            post_id=post.id,
            discussion_id=discussion.id,
            user_id=self.user.id,
            files=files,
            warnings=len(warnings),
        )
        return {"status": True, "postid": post.id, "warnings": warnings}

    def render_forum_discussion(self, postid: int) -> Dict[str, Any]:
        """Markup of the whole discussion the post belongs to."""
        post, discussion, forum, course = self._load_post(postid)
        html = render_discussion(
            self.session,
            discussion,
            forum,
            self.user,
            self.capabilities,
            module_context_id(self.session, forum.id),
            self.wwwroot,
        )
        return {"status": True, "html": html}

    def get_post_inline_editor(self, postid: int, discussionid: int, draftideditor: int = 0) -> Dict[str, Any]:
        """
        Editable content of a post, for quoting or editing it.

        The post's files replace the content of the editor's draft area and
        the links to them are rewritten to point at the draft copies.

        Returns:
            {"post": {...}, "currenttext", "draftideditor"}
        """
        post, discussion, forum, course = self._load_post(postid)
        if discussion.id != discussionid:
            raise InvalidParameterError(f"Post {postid} does not belong to discussion {discussionid}")

        context_id = module_context_id(self.session, forum.id)
        if not (self.capabilities.has(REPLY_POST, context_id) or self.can_edit_post(post, context_id)):
            raise PermissionDeniedError(f"You can not reply to or edit post {postid}")

        draftitemid = draftideditor or self.storage.get_unused_draft_itemid(self.user_context_id)
        options = editor_options(self.storage, context_id, post.id, course, forum)
        copied = copy_files_to_draft_area(
            self.storage,
            self.user_context_id,
            draftitemid,
            context_id,
            POST_COMPONENT,
            POST_FILEAREA,
            post.id,
            DraftCopyOptions(subdirs=options.subdirs, clean_draft_area=True),
        )

        logger.debug("post_inline_editor_prepared", post_id=post.id, draftitemid=draftitemid, files=copied)
        return {
            "post": {
                "id": post.id,
                "subject": post.subject,
                "message": post.message,
                "parent": post.parent,
                "discussion": discussion.id,
                "userid": post.userid,
            },
            "currenttext": rewrite_pluginfile_urls(post.message, self.wwwroot, self.user_context_id, draftitemid),
            "draftideditor": draftitemid,
        }

    # ------------------------------------------------------------------
    # Page
    # ------------------------------------------------------------------

    def discussion_page(self, discussion_id: int) -> str:
        """Full discussion page with the hidden inline form."""
        discussion, forum, course = self._load_discussion(discussion_id)
        context_id = module_context_id(self.session, forum.id)

        # The shared form is defined for a discussion starter; the page hides
        # what does not apply to replies.
        draft = PostDraft(
            course=course.id,
            forum=forum.id,
            discussion=discussion.id,
            groupid=discussion.groupid,
        )
        form = self.build_post_form(draft, forum, course, discussion)
        draftitemid = self.storage.get_unused_draft_itemid(self.user_context_id)
        form.set_default("message", {"text": "", "itemid": draftitemid})

        return render_discussion_page(
            discussion_html=render_discussion(
                self.session, discussion, forum, self.user, self.capabilities, context_id, self.wwwroot
            ),
            form=form,
            discussion=discussion,
            viewer=self.user,
            sesskey=secrets.token_urlsafe(8),
        )

    def delete_draft_area(self, draftitemid: int) -> Dict[str, Any]:
        """Empty one of the acting user's draft areas."""
        deleted = self.storage.delete_area_files(
            self.user_context_id, DRAFT_COMPONENT, DRAFT_FILEAREA, draftitemid
        )
        logger.debug("draft_area_cleared", draftitemid=draftitemid, files=deleted)
        return {"status": True, "deleted": deleted}

    @staticmethod
    def _warning(item_id: int, code: str, message: str) -> Dict[str, Any]:
        return {"item": "post", "itemid": item_id, "warningcode": code, "message": message}


# methodname -> (ForumService method, argument model)
SERVICE_METHODS: Dict[str, Tuple[str, Type[BaseModel]]] = {
    "mod_forum_add_discussion_post": ("add_discussion_post", AddDiscussionPostArgs),
    "mod_forum_update_discussion_post": ("update_discussion_post", UpdateDiscussionPostArgs),
    "mod_forum_render_forum_discussion": ("render_forum_discussion", RenderForumDiscussionArgs),
    "mod_forum_get_post_inline_editor": ("get_post_inline_editor", GetPostInlineEditorArgs),
    "core_files_delete_draft_area": ("delete_draft_area", DeleteDraftAreaArgs),
}


def execute(service: ForumService, methodname: str, args: Dict[str, Any]) -> Any:
    """
    Run one remote call.

    Raises:
        ForumInlineError: invalidmethod for unknown names, invalidparameter
            for arguments the method's model rejects, or the method's own error
    """
    entry = SERVICE_METHODS.get(methodname)
    if entry is None:
        raise ForumInlineError(f"Can not find web service function {methodname}", errorcode="invalidmethod")

    method_name, args_model = entry
    try:
        params = args_model.model_validate(args)
    except ValidationError as e:
        raise InvalidParameterError(f"Invalid parameters for {methodname}: {e.error_count()} error(s)") from e

    return getattr(service, method_name)(**params.model_dump())
