"""
Forum server side: inline post form, attachment helper and remote methods.
"""

from .blockquotes import DraftCopyOptions, can_do_quoted_reply, can_edit_inline, copy_files_to_draft_area
from .forms import Form, FormBuilder, FormField
from .post_inline_form import EditorOptions, PostDraft, PostFormContext, PostInlineForm, editor_options
from .service import SERVICE_METHODS, ForumService, execute

__all__ = [
    "DraftCopyOptions",
    "can_do_quoted_reply",
    "can_edit_inline",
    "copy_files_to_draft_area",
    "Form",
    "FormBuilder",
    "FormField",
    "EditorOptions",
    "PostDraft",
    "PostFormContext",
    "PostInlineForm",
    "editor_options",
    "SERVICE_METHODS",
    "ForumService",
    "execute",
]
