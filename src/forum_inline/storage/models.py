"""
SQLAlchemy models for forum data and stored files.

Ids, timestamps (integer unix seconds) and the file table layout follow the
host LMS conventions so that path hashes and draft areas line up with it.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Context levels
CONTEXT_USER = 30
CONTEXT_COURSE = 50
CONTEXT_MODULE = 70

# Forum subscription modes
FORUM_CHOOSESUBSCRIBE = 0
FORUM_FORCESUBSCRIBE = 1
FORUM_INITIALSUBSCRIBE = 2
FORUM_DISALLOWSUBSCRIBE = 3

# Group modes
NOGROUPS = 0
SEPARATEGROUPS = 1
VISIBLEGROUPS = 2


class Context(Base):
    """Permission and file-ownership scope of a user, course or forum."""

    __tablename__ = "contexts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    contextlevel = Column(Integer, nullable=False)
    instanceid = Column(Integer, nullable=False)

    __table_args__ = (UniqueConstraint("contextlevel", "instanceid", name="uq_context_instance"),)

    def __repr__(self):
        return f"<Context(id={self.id}, level={self.contextlevel}, instance={self.instanceid})>"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False, unique=True)
    firstname = Column(String(100), nullable=False, default="")
    lastname = Column(String(100), nullable=False, default="")
    picture_url = Column(String(255), nullable=False, default="")

    @property
    def fullname(self) -> str:
        return f"{self.firstname} {self.lastname}".strip() or self.username

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    fullname = Column(String(255), nullable=False)
    shortname = Column(String(100), nullable=False)
    maxbytes = Column(Integer, nullable=False, default=0)  # 0 = site limit


class Forum(Base):
    __tablename__ = "forums"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    forcesubscribe = Column(Integer, nullable=False, default=FORUM_CHOOSESUBSCRIBE)
    groupmode = Column(Integer, nullable=False, default=NOGROUPS)
    maxbytes = Column(Integer, nullable=False, default=0)
    # Post threshold: at most blockafter posts per blockperiod seconds, warn from warnafter
    blockperiod = Column(Integer, nullable=False, default=0)
    blockafter = Column(Integer, nullable=False, default=0)
    warnafter = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Forum(id={self.id}, name={self.name})>"


class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)


class GroupMember(Base):
    __tablename__ = "groups_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(Integer, nullable=False)
    user_id = Column(Integer, nullable=False)

    __table_args__ = (UniqueConstraint("group_id", "user_id", name="uq_group_member"),)


class Discussion(Base):
    __tablename__ = "forum_discussions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    forum_id = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    firstpost = Column(Integer, nullable=False, default=0)
    userid = Column(Integer, nullable=False)
    groupid = Column(Integer, nullable=False, default=-1)  # -1 = all participants
    pinned = Column(Boolean, nullable=False, default=False)
    timemodified = Column(Integer, nullable=False, default=0)

    __table_args__ = (Index("idx_discussion_forum", "forum_id"),)


class Post(Base):
    __tablename__ = "forum_posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    discussion_id = Column(Integer, nullable=False)
    parent = Column(Integer, nullable=False, default=0)  # 0 = discussion root
    userid = Column(Integer, nullable=False)
    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False, default="")
    created = Column(Integer, nullable=False, default=0)
    modified = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_post_discussion", "discussion_id"),
        Index("idx_post_parent", "parent"),
    )

    def __repr__(self):
        return f"<Post(id={self.id}, discussion={self.discussion_id}, parent={self.parent})>"


class DiscussionSubscription(Base):
    __tablename__ = "forum_discussion_subs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    forum_id = Column(Integer, nullable=False)
    user_id = Column(Integer, nullable=False)
    discussion_id = Column(Integer, nullable=False)
    preference = Column(Integer, nullable=False, default=0)

    __table_args__ = (UniqueConstraint("user_id", "discussion_id", name="uq_discussion_sub"),)


class CapabilityGrant(Base):
    """A capability held by a user, everywhere (context_id NULL) or in one context."""

    __tablename__ = "capability_grants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False)
    capability = Column(String(100), nullable=False)
    context_id = Column(Integer, nullable=True)

    __table_args__ = (Index("idx_capability_user", "user_id", "capability"),)


class StoredFileRecord(Base):
    """
    A file or directory in a file area.

    Directories have the filename ``.``; the area root marker is the
    directory with filepath ``/``.
    """

    __tablename__ = "files"

    id = Column(Integer, primary_key=True, autoincrement=True)
    contenthash = Column(String(40), nullable=False)
    pathnamehash = Column(String(40), nullable=False, unique=True)
    contextid = Column(Integer, nullable=False)
    component = Column(String(100), nullable=False)
    filearea = Column(String(50), nullable=False)
    itemid = Column(Integer, nullable=False)
    filepath = Column(String(255), nullable=False)
    filename = Column(String(255), nullable=False)
    userid = Column(Integer, nullable=True)
    filesize = Column(Integer, nullable=False, default=0)
    mimetype = Column(String(100), nullable=True)
    timecreated = Column(Integer, nullable=False, default=0)
    timemodified = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_file_area", "contextid", "component", "filearea", "itemid"),
    )

    @property
    def is_directory(self) -> bool:
        return self.filename == "."

    def __repr__(self):
        return (
            f"<StoredFileRecord(id={self.id}, "
            f"area={self.component}/{self.filearea}/{self.itemid}, "
            f"path={self.filepath}{self.filename})>"
        )


class FileContent(Base):
    __tablename__ = "file_contents"

    contenthash = Column(String(40), primary_key=True)
    content = Column(LargeBinary, nullable=False)
