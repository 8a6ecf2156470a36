# Persistence: models, sessions and the file store

from .database import (
    configure_engine,
    create_all_tables,
    drop_all_tables,
    get_db_session,
    get_engine,
)
from .files import (
    DRAFT_COMPONENT,
    DRAFT_FILEAREA,
    PLUGINFILE_PLACEHOLDER,
    FileRecord,
    FileStorage,
    pluginfile_base_url,
    rewrite_draftfile_urls,
    rewrite_pluginfile_urls,
)

__all__ = [
    "configure_engine",
    "create_all_tables",
    "drop_all_tables",
    "get_db_session",
    "get_engine",
    "DRAFT_COMPONENT",
    "DRAFT_FILEAREA",
    "PLUGINFILE_PLACEHOLDER",
    "FileRecord",
    "FileStorage",
    "pluginfile_base_url",
    "rewrite_draftfile_urls",
    "rewrite_pluginfile_urls",
]
