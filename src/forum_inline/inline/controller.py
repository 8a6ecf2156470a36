"""
Inline reply, quote and edit controller for a discussion page.

One shared form is moved below the post the user acts on. Replies and
quotes attach it below the parent post; an edit hides the post and puts the
form in its place. Submitting saves through the service, then replaces the
rendered discussion.

While a remote call is in flight every trigger, submit and cancel is
ignored, so at most one call sequence runs at a time.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

import httpx
import structlog

from ..config import settings
from ..forum.strings import get_string
from .ajax import AjaxClient, AjaxError
from .notification import LoggingNotifier, Notifier
from .page import DiscussionPage
from .session import InlineFormSession, Mode

logger = structlog.get_logger(__name__)

ADD_POST = "mod_forum_add_discussion_post"
UPDATE_POST = "mod_forum_update_discussion_post"
RENDER_DISCUSSION = "mod_forum_render_forum_discussion"
GET_POST_EDITOR = "mod_forum_get_post_inline_editor"
DELETE_DRAFT_AREA = "core_files_delete_draft_area"

TRIGGER_ACTIONS = ("reply", "quote", "edit")


def parse_trigger_id(link_id: str) -> Optional[Tuple[str, int]]:
    """
    Split a trigger link id such as ``forum-reply-12``.

    Returns:
        (action, post id), or None for ids that are not trigger links
    """
    parts = link_id.split("-")
    if len(parts) != 3 or parts[0] != "forum" or parts[1] not in TRIGGER_ACTIONS:
        return None
    try:
        return parts[1], int(parts[2])
    except ValueError:
        return None


class InlineEditingController:
    """
    Drives the inline form of one discussion page.

    Args:
        page: The rendered discussion page
        client: Remote call client
        notifier: Receives failed remote calls
        wwwroot: Base URL of the full-page post form
    """

    def __init__(
        self,
        page: DiscussionPage,
        client: AjaxClient,
        notifier: Optional[Notifier] = None,
        wwwroot: Optional[str] = None,
    ):
        self.page = page
        self.client = client
        self.notifier = notifier or LoggingNotifier()
        self.wwwroot = (wwwroot or settings.wwwroot).rstrip("/")
        self.discussion_id = page.discussion_id
        self.sesskey = page.sesskey
        self.state = InlineFormSession(draft_id=page.draft_id)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def click(self, link_id: str) -> bool:
        """
        Handle a click on a trigger link.

        Returns:
            True when the click started a new mode
        """
        trigger = parse_trigger_id(link_id)
        if trigger is None or self.page.link(link_id) is None:
            logger.debug("inline_click_ignored", link_id=link_id, reason="not_a_trigger")
            return False
        if self.page.is_link_disabled(link_id):
            logger.debug("inline_click_ignored", link_id=link_id, reason="link_disabled")
            return False

        action, post_id = trigger
        if action == "reply":
            return self.begin_reply(post_id)
        if action == "quote":
            return await self.begin_quote(post_id)
        return await self.begin_edit(post_id)

    def begin_reply(self, post_id: int) -> bool:
        """Open an empty reply below ``post_id``."""
        if not self._can_start(post_id):
            return False

        subject = self.page.post_subject(post_id)
        if subject is None:
            return False

        self._leave_mode()
        self.page.set_subject(f"{get_string('re')} {subject}")
        self.page.set_message("")
        self._attach_reply_form(post_id, quote=False)
        return True

    async def begin_quote(self, post_id: int) -> bool:
        """Open a reply below ``post_id`` with its text quoted."""
        if not self._can_start(post_id):
            return False

        with self._pending():
            response = await self._call(GET_POST_EDITOR, self._editor_args(post_id))
        if response is None:
            return False

        self._leave_mode()
        self._take_draft_id(response)
        self.page.set_subject(f"{get_string('re')} {response['post']['subject']}")
        self.page.set_message(f"<blockquote>{response['currenttext']}</blockquote><br/>")
        self._attach_reply_form(post_id, quote=True)
        return True

    async def begin_edit(self, post_id: int) -> bool:
        """Replace ``post_id`` with the form holding its current content."""
        if not self._can_start(post_id):
            return False

        with self._pending():
            response = await self._call(GET_POST_EDITOR, self._editor_args(post_id))
        if response is None:
            return False

        self._leave_mode()
        self._take_draft_id(response)
        self.page.set_subject(response["post"]["subject"])
        self.page.set_message(response["currenttext"])

        page = self.page
        page.set_hidden_value("edit", post_id)
        page.set_hidden_value("reply", 0)
        page.set_form_picture(page.post_picture_html(post_id))
        page.set_form_author(page.post_author_html(post_id))
        page.set_form_indent(False)
        self._highlight(f"forum-edit-{post_id}")
        page.set_more_options(
            get_string("moreeditingoptions"),
            f"{self.wwwroot}/mod/forum/post.php?edit={post_id}",
        )
        page.move_form_to(post_id)
        page.set_pinned_visible(not page.post_has_parent(post_id))
        page.hide_post(post_id)

        self.state.mode = Mode.EDIT
        self.state.quote = False
        self.state.active_post_id = post_id
        self.state.hidden_post_id = post_id
        logger.debug("inline_edit_started", post_id=post_id)
        return True

    async def submit(self) -> bool:
        """
        Save the form through the service and show the new discussion.

        Nothing changes on the page when validation or a remote call fails.

        Returns:
            True when the post was saved and the discussion re-rendered
        """
        state = self.state
        if state.pending or not state.active:
            return False

        errors = self.page.validate_form()
        if errors:
            self.page.show_errors(errors)
            logger.debug("inline_submit_invalid", fields=sorted(errors))
            return False
        self.page.show_errors({})
        self.page.sync_message()

        options: List[Dict[str, Any]] = [{"name": "inlineattachmentsid", "value": str(state.draft_id)}]
        if state.mode is Mode.EDIT:
            method = UPDATE_POST
            if self.page.has_pinned_field and self.page.pinned_visible:
                options.append({"name": "pinned", "value": "1" if self.page.pinned_checked else "0"})
        else:
            method = ADD_POST
        args = {
            "postid": state.active_post_id,
            "subject": self.page.subject,
            "message": self.page.message_html,
            "options": options,
        }

        with self._pending():
            if state.mode is Mode.REPLY and not state.quote and state.draft_has_copies:
                # Files copied for an abandoned quote or edit must not land on a plain reply
                if await self._call(DELETE_DRAFT_AREA, {"draftitemid": state.draft_id}) is None:
                    return False
                state.draft_has_copies = False
            result = await self._call(method, args)
            if result is None:
                return False
            post_id = result["postid"]
            rendered = await self._call(RENDER_DISCUSSION, {"postid": post_id})
        if rendered is None or not rendered.get("status"):
            return False

        self._hide_form()
        self.page.replace_discussion(rendered["html"])
        self.page.scroll_into_view_if_needed(post_id)
        logger.info("inline_post_saved", method=method, post_id=post_id)
        return True

    def cancel(self) -> bool:
        """Close the form and restore the page."""
        if self.state.pending or not self.state.active:
            return False
        self._hide_form()
        return True

    def more_options_href(self) -> Optional[str]:
        """
        Link to the full-page form carrying what was typed so far.

        Returns:
            The updated href, or None when the form is not attached
        """
        href = self.page.more_options_href
        if not self.state.active or not href or href == "#":
            return None

        url = httpx.URL(href).copy_merge_params(
            {
                "message[itemid]": str(self.state.draft_id),
                "sesskey": self.sesskey,
                "inlinemessage": self.page.message_html,
                "inlinesubject": self.page.subject,
            }
        )
        full = str(url)
        self.page.set_more_options(self.page.more_options_label or "", full)
        return full

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _can_start(self, post_id: int) -> bool:
        if self.state.pending:
            logger.debug("inline_action_ignored", post_id=post_id, reason="call_pending")
            return False
        if not self.page.has_post(post_id):
            logger.warning("inline_action_ignored", post_id=post_id, reason="post_not_on_page")
            return False
        return True

    @contextmanager
    def _pending(self) -> Iterator[None]:
        self.state.pending = True
        try:
            yield
        finally:
            self.state.pending = False

    async def _call(self, methodname: str, args: Dict[str, Any]) -> Optional[Any]:
        try:
            return await self.client.call_one(methodname, args)
        except (AjaxError, httpx.HTTPError) as e:
            self.notifier.exception(e)
            return None

    def _editor_args(self, post_id: int) -> Dict[str, Any]:
        return {"postid": post_id, "discussionid": self.discussion_id, "draftideditor": self.state.draft_id}

    def _take_draft_id(self, response: Dict[str, Any]) -> None:
        draft_id = response.get("draftideditor")
        self.state.draft_has_copies = True
        if draft_id and draft_id != self.state.draft_id:
            self.state.draft_id = draft_id
            self.page.set_draft_id(draft_id)

    def _highlight(self, link_id: str) -> None:
        if self.state.highlighted_link:
            self.page.set_link_highlight(self.state.highlighted_link, False)
        self.page.set_link_highlight(link_id, True)
        self.state.highlighted_link = link_id

    def _attach_reply_form(self, post_id: int, quote: bool) -> None:
        page = self.page
        page.set_hidden_value("reply", post_id)
        page.set_hidden_value("edit", 0)
        page.set_form_picture(page.current_user_picture_html())
        page.set_form_author(page.current_user_name_html())
        page.set_form_indent(True)

        link_id = f"forum-quote-{post_id}" if quote else f"forum-reply-{post_id}"
        self._highlight(link_id)

        href = f"{self.wwwroot}/mod/forum/post.php?reply={post_id}"
        if quote:
            href += "&quote=1"
        page.set_more_options(get_string("morereplyingoptions"), href)

        page.move_form_to(post_id)
        page.set_pinned_visible(not page.post_has_parent(post_id))
        page.editor.focus_end()

        self.state.mode = Mode.REPLY
        self.state.quote = quote
        self.state.active_post_id = post_id
        logger.debug("inline_reply_started", post_id=post_id, quote=quote)

    def _leave_mode(self) -> None:
        """Undo the previous mode's marks without moving the form."""
        state = self.state
        if state.hidden_post_id is not None:
            self.page.show_post(state.hidden_post_id)
        if state.highlighted_link:
            self.page.set_link_highlight(state.highlighted_link, False)
        state.reset()

    def _hide_form(self) -> None:
        self._leave_mode()
        page = self.page
        page.move_form_to_holding()
        page.clear_form()
        page.set_form_indent(False)
        page.set_hidden_value("reply", 0)
        page.set_hidden_value("edit", 0)
        page.editor.focused = False
