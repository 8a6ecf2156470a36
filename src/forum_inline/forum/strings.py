"""
Language strings.

Strings are looked up by (component, identifier); ``{$a}`` and ``{$a->name}``
placeholders are filled from the ``a`` argument.
"""

from typing import Any, Dict, Tuple

STRINGS: Dict[Tuple[str, str], str] = {
    ("core", "allparticipants"): "All participants",
    ("core", "cancel"): "Cancel",
    ("core", "group"): "Group",
    ("core", "maximumchars"): "Maximum of {$a} characters",
    ("core", "required"): "Required",
    ("core", "savechanges"): "Save changes",
    ("forum", "discussionpinned"): "Pinned",
    ("forum", "discussionsubscription"): "Discussion subscription",
    ("forum", "disallowsubscription"): "Subscription not allowed",
    ("forum", "edit"): "Edit",
    ("forum", "forcesubscribed"): "This forum forces everyone to be subscribed",
    ("forum", "message"): "Message",
    ("forum", "moreeditingoptions"): "More editing options",
    ("forum", "morereplyingoptions"): "More replying options",
    ("forum", "posttoforum"): "Post to forum",
    ("forum", "posttomygroups"): "Post a copy to all groups",
    ("forum", "quote"): "Quote",
    ("forum", "re"): "Re:",
    ("forum", "reply"): "Reply",
    ("forum", "subject"): "Subject",
    ("forum", "forumblockingtoomanyposts"): "You have exceeded the posting threshold set for this forum",
    ("forum", "postsremaining"): "You can post {$a->remaining} more times before reaching the limit",
}


def get_string(identifier: str, component: str = "forum", a: Any = None) -> str:
    """
    Look up a language string.

    Unknown strings come back as ``[[identifier]]`` so that missing entries
    show up in the rendered page instead of failing it.
    """
    text = STRINGS.get((component, identifier))
    if text is None:
        return f"[[{identifier}]]"

    if a is None:
        return text
    if isinstance(a, dict):
        for key, value in a.items():
            text = text.replace("{$a->" + key + "}", str(value))
        return text
    return text.replace("{$a}", str(a))
