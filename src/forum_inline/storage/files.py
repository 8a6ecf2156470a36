"""
SQL-backed file store.

Files live in areas addressed by (contextid, component, filearea, itemid) and
are identified inside the store by a path hash. Content is kept once per
content hash and shared between copies.
"""

import hashlib
import mimetypes
import secrets
import time
from dataclasses import dataclass
from typing import List, Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..exceptions import StoredFileExistsError
from .models import FileContent, StoredFileRecord

logger = structlog.get_logger(__name__)

DRAFT_COMPONENT = "user"
DRAFT_FILEAREA = "draft"

PLUGINFILE_PLACEHOLDER = "@@PLUGINFILE@@/"

# Upper bound of generated draft item ids
_DRAFT_ITEMID_MAX = 999999999


@dataclass
class FileRecord:
    """
    Target of a file creation.

    filepath, filename and userid fall back to the source file's values when
    copying a stored file.
    """

    contextid: int
    component: str
    filearea: str
    itemid: int
    filepath: Optional[str] = None
    filename: Optional[str] = None
    userid: Optional[int] = None


def draftfile_base_url(wwwroot: str, user_context_id: int, draftitemid: int) -> str:
    return f"{wwwroot}/draftfile.php/{user_context_id}/{DRAFT_COMPONENT}/{DRAFT_FILEAREA}/{draftitemid}/"


def pluginfile_base_url(wwwroot: str, contextid: int, component: str, filearea: str, itemid: int) -> str:
    return f"{wwwroot}/pluginfile.php/{contextid}/{component}/{filearea}/{itemid}/"


def rewrite_pluginfile_urls(text: str, wwwroot: str, user_context_id: int, draftitemid: int) -> str:
    """Point stored ``@@PLUGINFILE@@`` links at the draft area copy of the files."""
    return text.replace(PLUGINFILE_PLACEHOLDER, draftfile_base_url(wwwroot, user_context_id, draftitemid))


def rewrite_draftfile_urls(text: str, wwwroot: str, user_context_id: int, draftitemid: int) -> str:
    """Inverse of rewrite_pluginfile_urls, used when a draft is saved."""
    return text.replace(draftfile_base_url(wwwroot, user_context_id, draftitemid), PLUGINFILE_PLACEHOLDER)


class FileStorage:
    """File operations bound to a database session."""

    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def get_pathname_hash(
        contextid: int,
        component: str,
        filearea: str,
        itemid: int,
        filepath: str,
        filename: str,
    ) -> str:
        """
        Content-addressed identifier of a file path.

        Returns:
            Hex SHA-1 of "/{contextid}/{component}/{filearea}/{itemid}{filepath}{filename}"
        """
        pathname = f"/{contextid}/{component}/{filearea}/{itemid}{filepath}{filename}"
        return hashlib.sha1(pathname.encode("utf-8")).hexdigest()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_area_files(
        self,
        contextid: int,
        component: str,
        filearea: str,
        itemid: Optional[int] = None,
        include_dirs: bool = True,
    ) -> List[StoredFileRecord]:
        """
        Files of an area, ordered by path then name.

        Args:
            itemid: Restrict to one item, or None for every item of the area
            include_dirs: Whether directory entries are returned
        """
        query = select(StoredFileRecord).where(
            StoredFileRecord.contextid == contextid,
            StoredFileRecord.component == component,
            StoredFileRecord.filearea == filearea,
        )
        if itemid is not None:
            query = query.where(StoredFileRecord.itemid == itemid)
        if not include_dirs:
            query = query.where(StoredFileRecord.filename != ".")
        query = query.order_by(StoredFileRecord.itemid, StoredFileRecord.filepath, StoredFileRecord.filename)
        return list(self.session.execute(query).scalars())

    def get_file(
        self,
        contextid: int,
        component: str,
        filearea: str,
        itemid: int,
        filepath: str,
        filename: str,
    ) -> Optional[StoredFileRecord]:
        pathnamehash = self.get_pathname_hash(contextid, component, filearea, itemid, filepath, filename)
        return self.session.execute(
            select(StoredFileRecord).where(StoredFileRecord.pathnamehash == pathnamehash)
        ).scalar_one_or_none()

    def record_exists(self, pathnamehash: str) -> bool:
        return self.session.execute(
            select(StoredFileRecord.id).where(StoredFileRecord.pathnamehash == pathnamehash)
        ).first() is not None

    def get_content(self, stored_file: StoredFileRecord) -> bytes:
        content = self.session.get(FileContent, stored_file.contenthash)
        return content.content if content is not None else b""

    def file_area_contains_subdirs(
        self,
        contextid: int,
        component: str,
        filearea: str,
        itemid: Optional[int],
    ) -> bool:
        """Whether an item's area uses any directory besides its root."""
        if itemid is None:
            return False
        for stored_file in self.get_area_files(contextid, component, filearea, itemid):
            if stored_file.filepath != "/":
                return True
        return False

    def get_unused_draft_itemid(self, user_context_id: int) -> int:
        """Random draft item id with no files in the user's draft area."""
        while True:
            itemid = secrets.randbelow(_DRAFT_ITEMID_MAX) + 1
            if not self.get_area_files(user_context_id, DRAFT_COMPONENT, DRAFT_FILEAREA, itemid):
                return itemid

    # ------------------------------------------------------------------
    # Changes
    # ------------------------------------------------------------------

    def delete_area_files(
        self,
        contextid: int,
        component: str,
        filearea: str,
        itemid: Optional[int] = None,
    ) -> int:
        """
        Delete every file of an area, directories included.

        Returns:
            Number of deleted records
        """
        query = delete(StoredFileRecord).where(
            StoredFileRecord.contextid == contextid,
            StoredFileRecord.component == component,
            StoredFileRecord.filearea == filearea,
        )
        if itemid is not None:
            query = query.where(StoredFileRecord.itemid == itemid)
        result = self.session.execute(query)
        self.session.flush()

        logger.debug(
            "file_area_deleted",
            contextid=contextid,
            component=component,
            filearea=filearea,
            itemid=itemid,
            count=result.rowcount,
        )
        return result.rowcount

    def create_directory(
        self,
        contextid: int,
        component: str,
        filearea: str,
        itemid: int,
        filepath: str,
        userid: Optional[int] = None,
    ) -> StoredFileRecord:
        """
        Create a directory and its parents, up to the area root marker.

        Existing directories are returned unchanged, so the root marker keeps
        the timestamp of the moment the area was first written to.
        """
        existing = self.get_file(contextid, component, filearea, itemid, filepath, ".")
        if existing is not None:
            return existing

        if filepath != "/":
            parent = filepath[: filepath.rstrip("/").rfind("/") + 1]
            self.create_directory(contextid, component, filearea, itemid, parent, userid)

        now = int(time.time())
        directory = StoredFileRecord(
            contenthash=self._store_content(b""),
            pathnamehash=self.get_pathname_hash(contextid, component, filearea, itemid, filepath, "."),
            contextid=contextid,
            component=component,
            filearea=filearea,
            itemid=itemid,
            filepath=filepath,
            filename=".",
            userid=userid,
            filesize=0,
            timecreated=now,
            timemodified=now,
        )
        self.session.add(directory)
        self.session.flush()
        return directory

    def create_file_from_string(self, record: FileRecord, content: bytes) -> StoredFileRecord:
        filepath = record.filepath or "/"
        if not record.filename:
            raise ValueError("A filename is required to create a file")
        return self._create_file(
            record,
            filepath=filepath,
            filename=record.filename,
            contenthash=self._store_content(content),
            filesize=len(content),
            mimetype=mimetypes.guess_type(record.filename)[0],
            userid=record.userid,
        )

    def create_file_from_storedfile(self, record: FileRecord, source: StoredFileRecord) -> StoredFileRecord:
        """
        Copy a stored file into another area.

        The content is shared with the source. Directory sources create the
        directory (idempotent); regular files fail when the target path is
        taken.
        """
        filepath = record.filepath or source.filepath
        filename = record.filename or source.filename
        userid = record.userid if record.userid is not None else source.userid

        if filename == ".":
            return self.create_directory(
                record.contextid, record.component, record.filearea, record.itemid, filepath, userid
            )

        return self._create_file(
            record,
            filepath=filepath,
            filename=filename,
            contenthash=source.contenthash,
            filesize=source.filesize,
            mimetype=source.mimetype,
            userid=userid,
        )

    def save_draft_area_files(
        self,
        draftitemid: int,
        user_context_id: int,
        contextid: int,
        component: str,
        filearea: str,
        itemid: int,
    ) -> int:
        """
        Replace an area with the contents of a draft area.

        Returns:
            Number of regular files in the area afterwards
        """
        self.delete_area_files(contextid, component, filearea, itemid)

        target = FileRecord(contextid=contextid, component=component, filearea=filearea, itemid=itemid)
        count = 0
        for draft_file in self.get_area_files(user_context_id, DRAFT_COMPONENT, DRAFT_FILEAREA, draftitemid):
            if draft_file.is_directory and draft_file.filepath == "/":
                continue
            self.create_file_from_storedfile(target, draft_file)
            if not draft_file.is_directory:
                count += 1

        logger.info(
            "draft_area_saved",
            draftitemid=draftitemid,
            component=component,
            filearea=filearea,
            itemid=itemid,
            files=count,
        )
        return count

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _store_content(self, content: bytes) -> str:
        contenthash = hashlib.sha1(content).hexdigest()
        if self.session.get(FileContent, contenthash) is None:
            self.session.add(FileContent(contenthash=contenthash, content=content))
            self.session.flush()
        return contenthash

    def _create_file(
        self,
        record: FileRecord,
        filepath: str,
        filename: str,
        contenthash: str,
        filesize: int,
        mimetype: Optional[str],
        userid: Optional[int],
    ) -> StoredFileRecord:
        pathnamehash = self.get_pathname_hash(
            record.contextid, record.component, record.filearea, record.itemid, filepath, filename
        )
        if self.record_exists(pathnamehash):
            raise StoredFileExistsError(f"File {filepath}{filename} already exists in the target area")

        self.create_directory(record.contextid, record.component, record.filearea, record.itemid, filepath, userid)

        now = int(time.time())
        stored_file = StoredFileRecord(
            contenthash=contenthash,
            pathnamehash=pathnamehash,
            contextid=record.contextid,
            component=record.component,
            filearea=record.filearea,
            itemid=record.itemid,
            filepath=filepath,
            filename=filename,
            userid=userid,
            filesize=filesize,
            mimetype=mimetype,
            timecreated=now,
            timemodified=now,
        )
        self.session.add(stored_file)
        self.session.flush()
        return stored_file
