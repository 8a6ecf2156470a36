"""
Headless model of a rendered discussion page.

The page is kept as a BeautifulSoup document and changed in place, the way
a browser script changes the DOM. The message body of the inline form is an
EditorHost with the blockquote plugin, mirrored into the markup whenever it
is set or the page is serialised.

Lookups that find nothing return None or False; the controller treats a
missing element as a reason to abandon the action.
"""

from typing import Dict, Optional, Set

import structlog
from bs4 import BeautifulSoup, Tag

from ..richtext.editor import EditorHost, create_editor
from ..richtext.tree import contains_text

logger = structlog.get_logger(__name__)

HIGHLIGHT_CLASS = "forum-link-disable"
INDENT_CLASS = "indent"
HASPARENT_CLASS = "forum-post-hasparent"

DISCUSSION_CONTAINER_ID = "forum-discussion-container"
HOLDING_CONTAINER_ID = "forum-inlineform-container"
WRAPPER_ID = "forum-inlineform-wrapper"
FORM_ID = "forum-inlineform"
EDITABLE_ID = "id_messageeditable"
TEXTAREA_ID = "id_message"
MORE_OPTIONS_ID = "id_morereplyingoptions"


def _has_class(tag: Tag, name: str) -> bool:
    return name in (tag.get("class") or [])


def _add_class(tag: Tag, name: str) -> None:
    classes = list(tag.get("class") or [])
    if name not in classes:
        tag["class"] = classes + [name]


def _remove_class(tag: Tag, name: str) -> None:
    classes = [cls for cls in (tag.get("class") or []) if cls != name]
    if classes:
        tag["class"] = classes
    else:
        tag.attrs.pop("class", None)


def _set_inner_html(tag: Tag, html: str) -> None:
    tag.clear()
    fragment = BeautifulSoup(html, "html.parser")
    for node in list(fragment.contents):
        tag.append(node.extract())


def _hide(tag: Tag) -> None:
    tag["hidden"] = ""


def _show(tag: Tag) -> None:
    tag.attrs.pop("hidden", None)


class DiscussionPage:
    """A discussion page with the shared inline form."""

    def __init__(self, soup: BeautifulSoup):
        self.soup = soup
        editable = soup.find(id=EDITABLE_ID)
        self.editor: EditorHost = create_editor(editable.decode_contents() if editable is not None else "")
        # Posts the viewport currently shows; anything else needs scrolling
        self.visible_post_ids: Set[int] = set()
        self.scroll_target: Optional[int] = None
        self.field_errors: Dict[str, str] = {}

    @classmethod
    def from_html(cls, html: str) -> "DiscussionPage":
        return cls(BeautifulSoup(html, "html.parser"))

    @property
    def html(self) -> str:
        self.sync_message()
        return str(self.soup)

    def by_id(self, element_id: str) -> Optional[Tag]:
        return self.soup.find(id=element_id)

    # ------------------------------------------------------------------
    # Page-level values
    # ------------------------------------------------------------------

    @property
    def wrapper(self) -> Optional[Tag]:
        return self.by_id(WRAPPER_ID)

    @property
    def form(self) -> Optional[Tag]:
        return self.by_id(FORM_ID)

    @property
    def discussion_id(self) -> int:
        wrapper = self.wrapper
        return int(wrapper.get("data-discussionid", 0)) if wrapper is not None else 0

    @property
    def sesskey(self) -> str:
        wrapper = self.wrapper
        return wrapper.get("data-sesskey", "") if wrapper is not None else ""

    @property
    def draft_id(self) -> int:
        field = self.soup.find("input", attrs={"name": "message[itemid]"})
        try:
            return int(field.get("value", 0)) if field is not None else 0
        except ValueError:
            return 0

    def set_draft_id(self, draft_id: int) -> None:
        field = self.soup.find("input", attrs={"name": "message[itemid]"})
        if field is not None:
            field["value"] = str(draft_id)

    # ------------------------------------------------------------------
    # Posts and links
    # ------------------------------------------------------------------

    def post_container(self, post_id: int) -> Optional[Tag]:
        return self.by_id(f"p{post_id}")

    def post_body(self, post_id: int) -> Optional[Tag]:
        """The post's own ``div.forumpost``, the first one in its container."""
        container = self.post_container(post_id)
        if container is None:
            return None
        return container.find("div", class_="forumpost")

    def has_post(self, post_id: int) -> bool:
        return self.post_body(post_id) is not None and self.form_container(post_id) is not None

    def post_subject(self, post_id: int) -> Optional[str]:
        body = self.post_body(post_id)
        subject = body.find("div", class_="subject") if body is not None else None
        return subject.get_text() if subject is not None else None

    def post_picture_html(self, post_id: int) -> str:
        body = self.post_body(post_id)
        picture = body.find(class_="picture") if body is not None else None
        return picture.decode_contents() if picture is not None else ""

    def post_author_html(self, post_id: int) -> str:
        body = self.post_body(post_id)
        author = body.find(class_="author") if body is not None else None
        return author.decode_contents() if author is not None else ""

    def form_container(self, post_id: int) -> Optional[Tag]:
        return self.by_id(f"forum-inlineform-container-{post_id}")

    def post_has_parent(self, post_id: int) -> bool:
        container = self.form_container(post_id)
        return container is not None and _has_class(container, HASPARENT_CLASS)

    def hide_post(self, post_id: int) -> None:
        body = self.post_body(post_id)
        if body is not None:
            _hide(body)

    def show_post(self, post_id: int) -> None:
        body = self.post_body(post_id)
        if body is not None:
            _show(body)

    def is_post_hidden(self, post_id: int) -> bool:
        body = self.post_body(post_id)
        return body is not None and body.has_attr("hidden")

    @property
    def hidden_post_ids(self) -> Set[int]:
        hidden = set()
        for body in self.soup.find_all("div", class_="forumpost"):
            if not body.has_attr("hidden") or body.parent is None:
                continue
            container_id = str(body.parent.get("id", ""))
            if container_id.startswith("p") and container_id[1:].isdigit():
                hidden.add(int(container_id[1:]))
        return hidden

    def link(self, link_id: str) -> Optional[Tag]:
        return self.soup.find("a", id=link_id)

    def is_link_disabled(self, link_id: str) -> bool:
        link = self.link(link_id)
        return link is not None and _has_class(link, HIGHLIGHT_CLASS)

    def set_link_highlight(self, link_id: str, highlighted: bool) -> None:
        link = self.link(link_id)
        if link is None:
            return
        if highlighted:
            _add_class(link, HIGHLIGHT_CLASS)
        else:
            _remove_class(link, HIGHLIGHT_CLASS)

    @property
    def highlighted_link_ids(self) -> Set[str]:
        return {link["id"] for link in self.soup.find_all("a", class_=HIGHLIGHT_CLASS) if link.has_attr("id")}

    # ------------------------------------------------------------------
    # Form placement
    # ------------------------------------------------------------------

    def move_form_to(self, post_id: int) -> bool:
        container = self.form_container(post_id)
        wrapper = self.wrapper
        if container is None or wrapper is None:
            return False
        container.append(wrapper.extract())
        return True

    def move_form_to_holding(self) -> None:
        holding = self.by_id(HOLDING_CONTAINER_ID)
        wrapper = self.wrapper
        if holding is not None and wrapper is not None:
            holding.append(wrapper.extract())

    @property
    def form_location(self) -> Optional[str]:
        """Id of the element holding the form wrapper."""
        wrapper = self.wrapper
        if wrapper is None or wrapper.parent is None:
            return None
        return wrapper.parent.get("id")

    def set_form_indent(self, indent: bool) -> None:
        wrapper = self.wrapper
        if wrapper is None:
            return
        if indent:
            _add_class(wrapper, INDENT_CLASS)
        else:
            _remove_class(wrapper, INDENT_CLASS)

    @property
    def form_indented(self) -> bool:
        wrapper = self.wrapper
        return wrapper is not None and _has_class(wrapper, INDENT_CLASS)

    def set_form_picture(self, html: str) -> None:
        wrapper = self.wrapper
        picture = wrapper.find(class_="picture") if wrapper is not None else None
        if picture is not None:
            _set_inner_html(picture, html)

    def set_form_author(self, html: str) -> None:
        author = self.by_id("id_author")
        if author is not None:
            _set_inner_html(author, html)

    def current_user_picture_html(self) -> str:
        holder = self.by_id("forum-inlineform-authorpicture")
        return holder.decode_contents() if holder is not None else ""

    def current_user_name_html(self) -> str:
        holder = self.by_id("forum-inlineform-authorname")
        return holder.decode_contents() if holder is not None else ""

    # ------------------------------------------------------------------
    # Form fields
    # ------------------------------------------------------------------

    @property
    def subject(self) -> str:
        field = self.by_id("id_subject")
        return field.get("value", "") if field is not None else ""

    def set_subject(self, value: str) -> None:
        field = self.by_id("id_subject")
        if field is not None:
            field["value"] = value

    @property
    def message_html(self) -> str:
        return self.editor.html

    def set_message(self, html: str) -> None:
        self.editor.set_html(html)
        self.sync_message()

    def sync_message(self) -> None:
        """Copy the editor content into the editable area and its textarea."""
        html = self.editor.html
        editable = self.by_id(EDITABLE_ID)
        if editable is not None:
            _set_inner_html(editable, html)
        textarea = self.by_id(TEXTAREA_ID)
        if textarea is not None:
            textarea.string = html

    def hidden_value(self, name: str) -> Optional[str]:
        form = self.form
        field = form.find("input", attrs={"type": "hidden", "name": name}) if form is not None else None
        return field.get("value") if field is not None else None

    def set_hidden_value(self, name: str, value) -> None:
        form = self.form
        field = form.find("input", attrs={"type": "hidden", "name": name}) if form is not None else None
        if field is not None:
            field["value"] = str(value)

    @property
    def has_pinned_field(self) -> bool:
        return self.by_id("id_pinned") is not None

    @property
    def pinned_visible(self) -> bool:
        item = self.by_id("fitem_id_pinned")
        return item is not None and not item.has_attr("hidden")

    def set_pinned_visible(self, visible: bool) -> None:
        item = self.by_id("fitem_id_pinned")
        if item is None:
            return
        if visible:
            _show(item)
        else:
            _hide(item)

    @property
    def pinned_checked(self) -> bool:
        field = self.by_id("id_pinned")
        return field is not None and field.has_attr("checked")

    def set_pinned(self, checked: bool) -> None:
        field = self.by_id("id_pinned")
        if field is None:
            return
        if checked:
            field["checked"] = ""
        else:
            field.attrs.pop("checked", None)

    def set_more_options(self, label: str, href: str) -> None:
        link = self.by_id(MORE_OPTIONS_ID)
        if link is not None:
            link.string = label
            link["href"] = href

    @property
    def more_options_href(self) -> Optional[str]:
        link = self.by_id(MORE_OPTIONS_ID)
        return link.get("href") if link is not None else None

    @property
    def more_options_label(self) -> Optional[str]:
        link = self.by_id(MORE_OPTIONS_ID)
        return link.get_text() if link is not None else None

    def validate_form(self) -> Dict[str, str]:
        """
        Check the required and maxlength rules carried by the form markup.

        Returns:
            Field name to message for every failing field
        """
        errors: Dict[str, str] = {}
        form = self.form
        if form is None:
            return errors

        def has_rule(tag: Tag) -> bool:
            return tag.has_attr("data-rule-required") or tag.has_attr("data-rule-maxlength")

        for control in form.find_all(has_rule):
            if control.has_attr("contenteditable"):
                name = control.get("id", "")[len("id_"):-len("editable")]
                value = self.editor.html
                empty = not contains_text(self.editor.root)
            else:
                name = control.get("name", "")
                value = control.get("value", "")
                empty = not value.strip()

            if control.has_attr("data-rule-required") and empty:
                errors[name] = control["data-rule-required"]
            elif control.has_attr("data-rule-maxlength") and len(value) > int(control["data-rule-maxlength"]):
                errors[name] = control.get("data-rule-maxlength-message", "")
        return errors

    def show_errors(self, errors: Dict[str, str]) -> None:
        self.field_errors = dict(errors)

    def clear_form(self) -> None:
        self.set_subject("")
        self.set_message("")
        self.field_errors = {}

    # ------------------------------------------------------------------
    # Discussion
    # ------------------------------------------------------------------

    def replace_discussion(self, html: str) -> bool:
        container = self.by_id(DISCUSSION_CONTAINER_ID)
        if container is None:
            logger.warning("discussion_container_missing")
            return False
        _set_inner_html(container, html)
        return True

    def scroll_into_view_if_needed(self, post_id: int) -> bool:
        """
        Returns:
            True when the page had to scroll to the post
        """
        if post_id in self.visible_post_ids or self.post_container(post_id) is None:
            return False
        self.scroll_target = post_id
        self.visible_post_ids.add(post_id)
        return True
