"""
Server-rendered discussion markup.

The inline editing controller finds its way around the page by these ids
and classes:

- ``#p{id}``: container of a post and its replies, holding the post's own
  ``div.forumpost`` (``.picture``, ``.author``, ``div.subject``,
  ``div.content``) first
- ``#forum-inlineform-container-{id}``: where the inline form goes below a
  post, with class ``forum-post-hasparent`` on replies
- ``forum-reply-{id}``, ``forum-quote-{id}``, ``forum-edit-{id}``: trigger links
- ``#forum-discussion-container``, ``#forum-inlineform-container``,
  ``#forum-inlineform-wrapper``, ``#forum-inlineform``
"""

import html as html_module
import json
from typing import Any, Dict, List

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..storage.files import PLUGINFILE_PLACEHOLDER, pluginfile_base_url
from ..storage.models import Discussion, Forum, Post, User
from .blockquotes import can_do_quoted_reply, can_edit_inline
from .capabilities import EDIT_ANY_POST, REPLY_POST, CapabilityChecker
from .forms import Form, FormField
from .strings import get_string

logger = structlog.get_logger(__name__)

esc = html_module.escape


def _picture(user: User) -> str:
    src = user.picture_url or "/pix/u/f2.png"
    return f'<img src="{esc(src)}" alt="{esc(user.fullname)}" class="userpicture" width="35" height="35" />'


def render_post(
    post: Post,
    author: User,
    links: List[str],
    message: str,
    replies: str,
) -> str:
    """Markup of one post container, replies nested inside it."""
    container_class = "forum-inlineform-container"
    if post.parent:
        container_class += " forum-post-hasparent"
    starter = "" if post.parent else " firstpost starter"
    return (
        f'<div id="p{post.id}" class="forumpost-container">'
        f'<div class="forumpost clearfix{starter}" role="region">'
        f'<div class="row header clearfix">'
        f'<div class="left picture">{_picture(author)}</div>'
        f'<div class="topic">'
        f'<div class="subject" role="heading" aria-level="2">{esc(post.subject)}</div>'
        f'<div class="author">{esc(author.fullname)}</div>'
        f"</div></div>"
        f'<div class="row maincontent clearfix"><div class="content">{message}</div></div>'
        f'<div class="row side"><div class="commands">{" | ".join(links)}</div></div>'
        f"</div>"
        f'<div id="forum-inlineform-container-{post.id}" class="{container_class}"></div>'
        f'<div class="indent">{replies}</div>'
        f"</div>"
    )


def render_discussion(
    session: Session,
    discussion: Discussion,
    forum: Forum,
    viewer: User,
    capabilities: CapabilityChecker,
    context_id: int,
    wwwroot: str,
) -> str:
    """
    Markup of every post of a discussion, nested by parent.

    Trigger links are rendered for what the viewer may do: reply with the
    reply capability, quote when quoted replies are available too, and edit
    when inline editing is available and the viewer wrote the post or may
    edit any post.
    """
    posts = list(
        session.execute(
            select(Post).where(Post.discussion_id == discussion.id).order_by(Post.created, Post.id)
        ).scalars()
    )
    author_ids = {post.userid for post in posts}
    authors = {
        user.id: user
        for user in session.execute(select(User).where(User.id.in_(author_ids))).scalars()
    } if author_ids else {}

    children: Dict[int, List[Post]] = {}
    for post in posts:
        children.setdefault(post.parent, []).append(post)

    can_reply = capabilities.has(REPLY_POST, context_id)
    can_quote = can_reply and can_do_quoted_reply()
    inline_edit = can_edit_inline()
    edit_any = capabilities.has(EDIT_ANY_POST, context_id)

    def links_for(post: Post) -> List[str]:
        links = []
        if can_reply:
            links.append(
                f'<a href="{wwwroot}/mod/forum/post.php?reply={post.id}" id="forum-reply-{post.id}">'
                f'{esc(get_string("reply"))}</a>'
            )
        if can_quote:
            links.append(
                f'<a href="{wwwroot}/mod/forum/post.php?reply={post.id}&amp;quote=1" id="forum-quote-{post.id}">'
                f'{esc(get_string("quote"))}</a>'
            )
        if inline_edit and (post.userid == viewer.id or edit_any):
            links.append(
                f'<a href="{wwwroot}/mod/forum/post.php?edit={post.id}" id="forum-edit-{post.id}">'
                f'{esc(get_string("edit"))}</a>'
            )
        return links

    def render_branch(parent_id: int) -> str:
        parts = []
        for post in children.get(parent_id, []):
            author = authors.get(post.userid)
            if author is None:
                logger.warning("forum_post_author_missing", post_id=post.id, user_id=post.userid)
                author = User(id=post.userid, username=f"user{post.userid}", firstname="", lastname="")
            base = pluginfile_base_url(wwwroot, context_id, "mod_forum", "post", post.id)
            message = post.message.replace(PLUGINFILE_PLACEHOLDER, base)
            parts.append(render_post(post, author, links_for(post), message, render_branch(post.id)))
        return "".join(parts)

    logger.debug("forum_discussion_rendered", discussion_id=discussion.id, posts=len(posts))
    return render_branch(0)


# ============================================================================
# FORM
# ============================================================================

def _attrs(attributes: Dict[str, Any]) -> str:
    parts = []
    for name, value in attributes.items():
        if value is None or value is False:
            continue
        if value is True:
            parts.append(name)
        else:
            parts.append(f'{name}="{esc(str(value))}"')
    return (" " + " ".join(parts)) if parts else ""


def _help(form_field: FormField) -> str:
    if form_field.help is None:
        return ""
    identifier, component = form_field.help
    return f'<span class="helptooltip" data-identifier="{esc(identifier)}" data-component="{esc(component)}">?</span>'


def _rule_attributes(form_field: FormField) -> Dict[str, Any]:
    attributes: Dict[str, Any] = {}
    for rule in form_field.rules:
        if rule.type == "required":
            attributes["data-rule-required"] = rule.message
        elif rule.type == "maxlength":
            attributes["data-rule-maxlength"] = rule.argument
            attributes["data-rule-maxlength-message"] = rule.message
    return attributes


def _disabled_if(form: Form, name: str) -> Dict[str, Any]:
    dependencies = form.dependencies.get(name)
    if not dependencies:
        return {}
    return {"data-disabled-if": " ".join(f"{dep}:{condition}" for dep, condition in dependencies)}


def _form_group(form_field: FormField, label: str, control: str) -> str:
    return f'<div class="form-group fitem" id="fitem_id_{form_field.name}">{label}{control}{_help(form_field)}</div>'


def render_field(form: Form, form_field: FormField) -> str:
    """Markup of one form element."""
    name = form_field.name
    default = form.defaults.get(name)
    label = f'<label for="id_{name}">{esc(form_field.label)}</label>' if form_field.label else ""

    if form_field.type == "html":
        return form_field.value or ""

    if form_field.type == "hidden":
        return f'<input{_attrs({"type": "hidden", "name": name, "value": "" if default is None else default})} />'

    if form_field.type == "text":
        attributes = {"type": "text", "name": name, "id": f"id_{name}", "value": default or ""}
        attributes.update(form_field.attributes)
        attributes.update(_rule_attributes(form_field))
        attributes.update(_disabled_if(form, name))
        attributes["disabled"] = form_field.frozen
        return _form_group(form_field, label, f"<input{_attrs(attributes)} />")

    if form_field.type == "editor":
        value = default or {}
        text = value.get("text", "")
        editable = {
            "id": f"id_{name}editable",
            "class": "editor_atto_content",
            "contenteditable": "true",
            "data-editor-options": json.dumps(form_field.config, sort_keys=True),
        }
        editable.update(_rule_attributes(form_field))
        control = (
            f"<div{_attrs(editable)}>{text}</div>"
            f'<textarea id="id_{name}" name="{name}[text]" hidden>{esc(text)}</textarea>'
            f'<input{_attrs({"type": "hidden", "name": f"{name}[itemid]", "value": value.get("itemid", 0)})} />'
        )
        label = f'<label for="id_{name}editable">{esc(form_field.label)}</label>'
        return _form_group(form_field, label, control)

    if form_field.type == "checkbox":
        attributes = {
            "type": "checkbox",
            "name": name,
            "id": f"id_{name}",
            "value": "1",
            "checked": bool(default),
            "disabled": form_field.frozen,
        }
        attributes.update(_disabled_if(form, name))
        return _form_group(form_field, "", f"<input{_attrs(attributes)} />{label}")

    if form_field.type == "select":
        options = "".join(
            f'<option{_attrs({"value": key, "selected": key == default})}>{esc(text)}</option>'
            for key, text in form_field.options.items()
        )
        attributes = {"name": name, "id": f"id_{name}", "disabled": form_field.frozen}
        attributes.update(_disabled_if(form, name))
        return _form_group(form_field, label, f"<select{_attrs(attributes)}>{options}</select>")

    if form_field.type == "static":
        control = f'<div class="form-control-static" id="id_{name}">{esc(str(form_field.value or ""))}</div>'
        return _form_group(form_field, f"<label>{esc(form_field.label)}</label>", control)

    if form_field.type in ("submit", "cancel"):
        attributes = {"type": "submit", "name": name, "id": f"id_{name}", "value": form_field.value}
        return f"<input{_attrs(attributes)} />"

    if form_field.type == "group":
        members = "".join(render_field(form, element) for element in form_field.elements)
        return f'<div class="form-group fitem" id="fgroup_id_{name}">{members}</div>'

    raise ValueError(f"Unknown form field type '{form_field.type}'")


def render_form(form: Form) -> str:
    """Markup of a form, fields in definition order."""
    body = "".join(render_field(form, form_field) for form_field in form)
    return f'<form id="{esc(form.form_id)}" class="mform" method="post" action="#">{body}</form>'


def render_discussion_page(
    discussion_html: str,
    form: Form,
    discussion: Discussion,
    viewer: User,
    sesskey: str,
) -> str:
    """
    Discussion page: the posts, the hidden holding container with the
    inline form, and the current user's picture and name for the form
    header.
    """
    wrapper_attrs = _attrs(
        {
            "id": "forum-inlineform-wrapper",
            "class": "forumpost",
            "data-discussionid": discussion.id,
            "data-sesskey": sesskey,
        }
    )
    return (
        '<!DOCTYPE html><html><head><meta charset="utf-8" />'
        f"<title>{esc(discussion.name)}</title></head>"
        '<body id="page-mod-forum-discuss"><div id="region-main">'
        f"<h2>{esc(discussion.name)}</h2>"
        f'<div id="forum-discussion-container">{discussion_html}</div>'
        '<div id="forum-inlineform-container" hidden>'
        f"<div{wrapper_attrs}>"
        '<div class="picture"></div>'
        f"{render_form(form)}"
        "</div></div>"
        f'<div id="forum-inlineform-authorpicture" hidden>{_picture(viewer)}</div>'
        f'<div id="forum-inlineform-authorname" hidden>{esc(viewer.fullname)}</div>'
        "</div></body></html>"
    )
