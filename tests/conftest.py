"""
Global pytest fixtures and configuration for test suite.

This module provides reusable fixtures for:
- An in-memory database shared by the tests and the app
- A seeded course with a forum, a discussion and two users
- HTTP clients bound to the app, one per acting user
"""

from dataclasses import dataclass
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from forum_inline.api.app import app
from forum_inline.forum.capabilities import (
    ACCESS_ALL_GROUPS,
    EDIT_ANY_POST,
    MANAGE_ACTIVITIES,
    MOVE_DISCUSSIONS,
    PIN_DISCUSSIONS,
    REPLY_POST,
    START_DISCUSSION,
    grant,
)
from forum_inline.storage.contexts import course_context_id, module_context_id
from forum_inline.storage.database import configure_engine
from forum_inline.storage.models import (
    NOGROUPS,
    Base,
    Course,
    Discussion,
    Forum,
    Post,
    User,
)


@dataclass
class ForumData:
    """Ids of the seeded records."""

    course_id: int
    forum_id: int
    discussion_id: int
    teacher_id: int
    student_id: int
    root_post_id: int
    reply_post_id: int
    module_context_id: int
    course_context_id: int


def seed_forum(
    session: Session,
    groupmode: int = NOGROUPS,
    forcesubscribe: int = 0,
    root_message: str = "<p>Welcome to the course</p>",
) -> ForumData:
    """
    Create a course, a forum and a discussion with a teacher's starter post
    and a student's reply.
    """
    teacher = User(username="teacher", firstname="Tessa", lastname="Teacher", picture_url="/pix/teacher.png")
    student = User(username="student", firstname="Sam", lastname="Student", picture_url="/pix/student.png")
    course = Course(fullname="Course 101", shortname="C101", maxbytes=0)
    session.add_all([teacher, student, course])
    session.flush()

    forum = Forum(course_id=course.id, name="News", groupmode=groupmode, forcesubscribe=forcesubscribe)
    session.add(forum)
    session.flush()

    discussion = Discussion(forum_id=forum.id, name="Welcome", userid=teacher.id)
    session.add(discussion)
    session.flush()

    root = Post(
        discussion_id=discussion.id,
        parent=0,
        userid=teacher.id,
        subject="Welcome",
        message=root_message,
        created=1000,
        modified=1000,
    )
    session.add(root)
    session.flush()
    discussion.firstpost = root.id

    reply = Post(
        discussion_id=discussion.id,
        parent=root.id,
        userid=student.id,
        subject="Re: Welcome",
        message="<p>Thanks!</p>",
        created=2000,
        modified=2000,
    )
    session.add(reply)
    session.flush()

    module_ctx = module_context_id(session, forum.id)
    course_ctx = course_context_id(session, course.id)

    for capability in (REPLY_POST, START_DISCUSSION):
        grant(session, student.id, capability, module_ctx)
    for capability in (REPLY_POST, START_DISCUSSION, EDIT_ANY_POST, PIN_DISCUSSIONS, MOVE_DISCUSSIONS, ACCESS_ALL_GROUPS):
        grant(session, teacher.id, capability, module_ctx)
    grant(session, teacher.id, MANAGE_ACTIVITIES, course_ctx)

    session.commit()
    return ForumData(
        course_id=course.id,
        forum_id=forum.id,
        discussion_id=discussion.id,
        teacher_id=teacher.id,
        student_id=student.id,
        root_post_id=root.id,
        reply_post_id=reply.id,
        module_context_id=module_ctx,
        course_context_id=course_ctx,
    )


@pytest.fixture
def db_engine() -> Generator[Engine, None, None]:
    """
    In-memory SQLite engine, also used by the app's sessions.

    Yields:
        Engine with all tables created
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    configure_engine(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Generator[Session, None, None]:
    """
    Session independent of the app's scoped session.

    Yields:
        SQLAlchemy Session
    """
    session = Session(bind=db_engine, expire_on_commit=False)
    yield session
    session.close()


@pytest.fixture
def forum_data(db_session) -> ForumData:
    return seed_forum(db_session)


@pytest_asyncio.fixture
async def async_client(db_engine) -> AsyncGenerator[AsyncClient, None]:
    """
    Create async HTTP client for testing FastAPI endpoints.

    Yields:
        AsyncClient instance
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def teacher_client(db_engine, forum_data) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    headers = {"X-User-Id": str(forum_data.teacher_id)}
    async with AsyncClient(transport=transport, base_url="http://test", headers=headers) as client:
        yield client


@pytest_asyncio.fixture
async def student_client(db_engine, forum_data) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    headers = {"X-User-Id": str(forum_data.student_id)}
    async with AsyncClient(transport=transport, base_url="http://test", headers=headers) as client:
        yield client
