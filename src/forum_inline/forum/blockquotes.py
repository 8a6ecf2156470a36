"""
Quoted replies and inline editing helpers.

Feature switches and the copy of a post's attachments into the draft area
of the editor that quotes or edits it.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from ..config import settings
from ..storage.files import DRAFT_COMPONENT, DRAFT_FILEAREA, FileRecord, FileStorage

logger = structlog.get_logger(__name__)


def _atto_is_default_editor() -> bool:
    # "attoextended" and similar editors count as atto
    return settings.text_editors.strip().startswith("atto")


def can_do_quoted_reply() -> bool:
    """Quoted replies need the feature switch and atto as the preferred editor."""
    return settings.forum_enable_quoted_replies and _atto_is_default_editor()


def can_edit_inline() -> bool:
    """Inline editing needs the feature switch and atto as the preferred editor."""
    return settings.forum_enable_inline_editing and _atto_is_default_editor()


@dataclass(frozen=True)
class DraftCopyOptions:
    """
    Attributes:
        subdirs: Copy files below subdirectories too
        clean_draft_area: Empty the draft area before copying, used when the
            user switches to another post in the same editor
    """

    subdirs: bool = False
    clean_draft_area: bool = False


def copy_files_to_draft_area(
    storage: FileStorage,
    user_context_id: int,
    draftitemid: int,
    contextid: int,
    component: str,
    filearea: str,
    itemid: Optional[int],
    options: Optional[DraftCopyOptions] = None,
) -> int:
    """
    Copy the files of a post into the user's draft area.

    The area root marker is never copied so the draft area gets a fresh
    creation time. Files whose path already exists in the draft area are
    left alone, so repeated calls do not duplicate anything.

    Args:
        storage: File store
        user_context_id: Context of the user owning the draft area
        draftitemid: Draft item id of the editor
        contextid: Forum module context
        component: Component of the source area
        filearea: Source file area
        itemid: Post id, None copies nothing
        options: Copy options

    Returns:
        Number of records copied
    """
    options = options or DraftCopyOptions()

    if options.clean_draft_area:
        storage.delete_area_files(user_context_id, DRAFT_COMPONENT, DRAFT_FILEAREA, draftitemid)

    if itemid is None:
        return 0

    target = FileRecord(
        contextid=user_context_id,
        component=DRAFT_COMPONENT,
        filearea=DRAFT_FILEAREA,
        itemid=draftitemid,
    )

    copied = 0
    skipped = 0
    for stored_file in storage.get_area_files(contextid, component, filearea, itemid):
        if stored_file.is_directory and stored_file.filepath == "/":
            continue
        if not options.subdirs and (stored_file.is_directory or stored_file.filepath != "/"):
            continue

        pathnamehash = storage.get_pathname_hash(
            user_context_id,
            DRAFT_COMPONENT,
            DRAFT_FILEAREA,
            draftitemid,
            stored_file.filepath,
            stored_file.filename,
        )
        if storage.record_exists(pathnamehash):
            skipped += 1
            continue

        storage.create_file_from_storedfile(target, stored_file)
        copied += 1

    logger.info(
        "files_copied_to_draft",
        draftitemid=draftitemid,
        source_itemid=itemid,
        copied=copied,
        skipped=skipped,
        subdirs=options.subdirs,
    )
    return copied
