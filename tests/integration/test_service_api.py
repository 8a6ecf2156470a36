"""
Integration tests for the HTTP API.

Tests the batch service endpoint, the discussion page and the health and
version endpoints through the FastAPI app.
"""

import pytest
from sqlalchemy import select

from forum_inline.config import settings
from forum_inline.storage.contexts import user_context_id
from forum_inline.storage.files import FileRecord, FileStorage, draftfile_base_url
from forum_inline.storage.models import Discussion, Forum, Post

pytestmark = pytest.mark.asyncio

SERVICE_URL = "/api/v1/service"


async def call(client, methodname, args):
    response = await client.post(SERVICE_URL, json=[{"index": 0, "methodname": methodname, "args": args}])
    assert response.status_code == 200
    (entry,) = response.json()
    return entry


class TestHealthAndVersion:
    """Tests for the monitoring endpoints."""

    @pytest.mark.integration
    async def test_health(self, async_client):
        response = await async_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["uptime_seconds"] >= 0
        assert data["database"] == "ok"
        assert data["features"] == {"inline_editing": True, "quoted_replies": True}
        assert "X-Process-Time" in response.headers

    @pytest.mark.integration
    async def test_health_reports_disabled_features(self, async_client, monkeypatch):
        monkeypatch.setattr(settings, "text_editors", "tinymce,atto,textarea")
        response = await async_client.get("/health")

        assert response.json()["features"] == {"inline_editing": False, "quoted_replies": False}

    @pytest.mark.integration
    async def test_health_degraded_without_database(self, async_client, monkeypatch):
        from sqlalchemy.exc import OperationalError

        from forum_inline.api.routes import health

        def unreachable():
            raise OperationalError("SELECT 1", {}, Exception("no such database"))

        monkeypatch.setattr(health, "get_db_session", unreachable)
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["database"] == "unreachable"

    @pytest.mark.integration
    async def test_version(self, async_client):
        response = await async_client.get("/api/v1/version")

        assert response.status_code == 200
        assert set(response.json()["components"]) == {"blockquote_plugin", "inline_form", "service"}


class TestServiceEnvelope:
    """Tests for the batch call format."""

    @pytest.mark.integration
    async def test_user_header_required(self, async_client):
        response = await async_client.post(SERVICE_URL, json=[])
        assert response.status_code == 422

    @pytest.mark.integration
    async def test_unknown_method(self, teacher_client):
        entry = await call(teacher_client, "mod_forum_delete_post", {})

        assert entry["error"] is True
        assert entry["exception"]["errorcode"] == "invalidmethod"
        assert "data" not in entry

    @pytest.mark.integration
    async def test_invalid_arguments(self, teacher_client, forum_data):
        entry = await call(teacher_client, "mod_forum_add_discussion_post", {"postid": forum_data.root_post_id})

        assert entry["error"] is True
        assert entry["exception"]["errorcode"] == "invalidparameter"

    @pytest.mark.integration
    async def test_unknown_user(self, async_client, forum_data):
        response = await async_client.post(
            SERVICE_URL,
            json=[{"index": 0, "methodname": "mod_forum_render_forum_discussion", "args": {"postid": 1}}],
            headers={"X-User-Id": "999"},
        )

        (entry,) = response.json()
        assert entry["exception"]["errorcode"] == "invalidrecord"

    @pytest.mark.integration
    async def test_batch_stops_at_first_failure(self, teacher_client, forum_data):
        render = {"methodname": "mod_forum_render_forum_discussion", "args": {"postid": forum_data.root_post_id}}
        response = await teacher_client.post(
            SERVICE_URL,
            json=[
                {"index": 2, **render},
                {"index": 1, "methodname": "mod_forum_unknown", "args": {}},
                {"index": 0, **render},
            ],
        )

        entries = response.json()
        assert [entry["error"] for entry in entries] == [False, True]
        assert entries[0]["data"]["status"] is True
        assert entries[1]["exception"]["errorcode"] == "invalidmethod"


class TestAddDiscussionPost:
    """Tests for mod_forum_add_discussion_post."""

    @pytest.mark.integration
    async def test_reply(self, student_client, forum_data, db_session):
        entry = await call(
            student_client,
            "mod_forum_add_discussion_post",
            {"postid": forum_data.root_post_id, "subject": "Re: Welcome", "message": "<p>Answer</p>"},
        )

        assert entry["error"] is False
        assert entry["data"]["warnings"] == []
        post = db_session.get(Post, entry["data"]["postid"])
        assert post.parent == forum_data.root_post_id
        assert post.userid == forum_data.student_id
        assert post.subject == "Re: Welcome"
        assert post.message == "<p>Answer</p>"

    @pytest.mark.integration
    async def test_empty_message_is_rejected(self, student_client, forum_data, db_session):
        entry = await call(
            student_client,
            "mod_forum_add_discussion_post",
            {"postid": forum_data.root_post_id, "subject": "Re: Welcome", "message": "<p> </p>"},
        )

        assert entry["error"] is True
        assert entry["exception"]["errorcode"] == "formvalidation"
        assert "message" in entry["exception"]["message"]
        count = len(db_session.execute(select(Post.id)).all())
        assert count == 2

    @pytest.mark.integration
    async def test_threshold_blocks_reply(self, student_client, forum_data, db_session):
        forum = db_session.get(Forum, forum_data.forum_id)
        forum.blockperiod = 10**10
        forum.blockafter = 1
        db_session.commit()

        entry = await call(
            student_client,
            "mod_forum_add_discussion_post",
            {"postid": forum_data.root_post_id, "subject": "Re: Welcome", "message": "<p>Again</p>"},
        )

        assert entry["error"] is True
        assert entry["exception"]["errorcode"] == "forumblockingtoomanyposts"
        db_session.expire_all()
        assert len(db_session.execute(select(Post.id)).all()) == 2

    @pytest.mark.integration
    async def test_unknown_option(self, student_client, forum_data):
        entry = await call(
            student_client,
            "mod_forum_add_discussion_post",
            {
                "postid": forum_data.root_post_id,
                "subject": "Re: Welcome",
                "message": "<p>Answer</p>",
                "options": [{"name": "private", "value": "1"}],
            },
        )

        assert entry["exception"]["errorcode"] == "invalidparameter"

    @pytest.mark.integration
    async def test_draft_files_are_saved_with_post(self, student_client, forum_data, db_session):
        storage = FileStorage(db_session)
        userctx = user_context_id(db_session, forum_data.student_id)
        storage.create_file_from_string(FileRecord(userctx, "user", "draft", 555, "/", "pic.png"), b"png")
        db_session.commit()
        base = draftfile_base_url(settings.wwwroot.rstrip("/"), userctx, 555)

        entry = await call(
            student_client,
            "mod_forum_add_discussion_post",
            {
                "postid": forum_data.root_post_id,
                "subject": "Re: Welcome",
                "message": f'<p>See <img src="{base}pic.png"></p>',
                "options": [{"name": "inlineattachmentsid", "value": "555"}],
            },
        )

        postid = entry["data"]["postid"]
        db_session.expire_all()
        assert db_session.get(Post, postid).message == '<p>See <img src="@@PLUGINFILE@@/pic.png"></p>'
        files = storage.get_area_files(forum_data.module_context_id, "mod_forum", "post", postid, include_dirs=False)
        assert [f.filename for f in files] == ["pic.png"]


class TestDeleteDraftArea:
    """Tests for core_files_delete_draft_area."""

    @pytest.mark.integration
    async def test_clears_own_draft_area(self, student_client, forum_data, db_session):
        storage = FileStorage(db_session)
        userctx = user_context_id(db_session, forum_data.student_id)
        storage.create_file_from_string(FileRecord(userctx, "user", "draft", 555, "/", "pic.png"), b"png")
        storage.create_file_from_string(FileRecord(userctx, "user", "draft", 556, "/", "keep.png"), b"png")
        db_session.commit()

        entry = await call(student_client, "core_files_delete_draft_area", {"draftitemid": 555})

        assert entry["error"] is False
        assert entry["data"]["status"] is True
        assert entry["data"]["deleted"] >= 1
        db_session.expire_all()
        assert storage.get_area_files(userctx, "user", "draft", 555) == []
        assert [f.filename for f in storage.get_area_files(userctx, "user", "draft", 556, include_dirs=False)] == [
            "keep.png"
        ]

    @pytest.mark.integration
    async def test_draft_id_required(self, student_client, forum_data):
        entry = await call(student_client, "core_files_delete_draft_area", {"draftitemid": 0})

        assert entry["exception"]["errorcode"] == "invalidparameter"


class TestUpdateDiscussionPost:
    """Tests for mod_forum_update_discussion_post."""

    @pytest.mark.integration
    async def test_author_can_update(self, student_client, forum_data, db_session):
        entry = await call(
            student_client,
            "mod_forum_update_discussion_post",
            {"postid": forum_data.reply_post_id, "subject": "Thanks", "message": "<p>Thank you!</p>"},
        )

        assert entry["data"] == {"status": True, "postid": forum_data.reply_post_id, "warnings": []}
        db_session.expire_all()
        post = db_session.get(Post, forum_data.reply_post_id)
        assert post.subject == "Thanks"
        assert post.message == "<p>Thank you!</p>"

    @pytest.mark.integration
    async def test_other_users_post_is_denied(self, student_client, forum_data):
        entry = await call(
            student_client,
            "mod_forum_update_discussion_post",
            {"postid": forum_data.root_post_id, "subject": "Hacked", "message": "<p>Hacked</p>"},
        )

        assert entry["error"] is True
        assert entry["exception"]["errorcode"] == "nopermissions"

    @pytest.mark.integration
    async def test_pin_discussion(self, teacher_client, forum_data, db_session):
        entry = await call(
            teacher_client,
            "mod_forum_update_discussion_post",
            {
                "postid": forum_data.root_post_id,
                "subject": "Welcome",
                "message": "<p>Welcome to the course</p>",
                "options": [{"name": "pinned", "value": "1"}],
            },
        )

        assert entry["data"]["warnings"] == []
        db_session.expire_all()
        assert db_session.get(Discussion, forum_data.discussion_id).pinned is True

    @pytest.mark.integration
    async def test_pinning_a_reply_is_a_warning(self, teacher_client, forum_data):
        entry = await call(
            teacher_client,
            "mod_forum_update_discussion_post",
            {
                "postid": forum_data.reply_post_id,
                "subject": "Re: Welcome",
                "message": "<p>Thanks!</p>",
                "options": [{"name": "pinned", "value": "1"}],
            },
        )

        assert entry["error"] is False
        assert [w["warningcode"] for w in entry["data"]["warnings"]] == ["pinnedonlyroot"]


class TestRenderForumDiscussion:
    """Tests for mod_forum_render_forum_discussion."""

    @pytest.mark.integration
    async def test_links_follow_permissions(self, student_client, forum_data):
        entry = await call(
            student_client, "mod_forum_render_forum_discussion", {"postid": forum_data.reply_post_id}
        )

        html = entry["data"]["html"]
        assert f'id="p{forum_data.root_post_id}"' in html
        assert f'id="p{forum_data.reply_post_id}"' in html
        assert f'id="forum-reply-{forum_data.root_post_id}"' in html
        assert f'id="forum-quote-{forum_data.root_post_id}"' in html
        assert f'id="forum-edit-{forum_data.reply_post_id}"' in html
        assert f'id="forum-edit-{forum_data.root_post_id}"' not in html

    @pytest.mark.integration
    async def test_unknown_post(self, teacher_client):
        entry = await call(teacher_client, "mod_forum_render_forum_discussion", {"postid": 12345})
        assert entry["exception"]["errorcode"] == "invalidrecord"


class TestGetPostInlineEditor:
    """Tests for mod_forum_get_post_inline_editor."""

    @pytest.mark.integration
    async def test_files_are_copied_to_draft(self, teacher_client, forum_data, db_session):
        root = db_session.get(Post, forum_data.root_post_id)
        root.message = '<p><img src="@@PLUGINFILE@@/a.png"></p>'
        FileStorage(db_session).create_file_from_string(
            FileRecord(forum_data.module_context_id, "mod_forum", "post", root.id, "/", "a.png"), b"png"
        )
        db_session.commit()

        entry = await call(
            teacher_client,
            "mod_forum_get_post_inline_editor",
            {"postid": root.id, "discussionid": forum_data.discussion_id},
        )

        data = entry["data"]
        draft_id = data["draftideditor"]
        userctx = user_context_id(db_session, forum_data.teacher_id)
        base = draftfile_base_url(settings.wwwroot.rstrip("/"), userctx, draft_id)
        assert draft_id > 0
        assert data["currenttext"] == f'<p><img src="{base}a.png"></p>'
        assert data["post"]["subject"] == "Welcome"
        assert data["post"]["message"] == '<p><img src="@@PLUGINFILE@@/a.png"></p>'

        db_session.expire_all()
        draft_files = FileStorage(db_session).get_area_files(userctx, "user", "draft", draft_id, include_dirs=False)
        assert [f.filename for f in draft_files] == ["a.png"]

    @pytest.mark.integration
    async def test_given_draft_id_is_kept(self, teacher_client, forum_data):
        entry = await call(
            teacher_client,
            "mod_forum_get_post_inline_editor",
            {"postid": forum_data.reply_post_id, "discussionid": forum_data.discussion_id, "draftideditor": 31},
        )

        assert entry["data"]["draftideditor"] == 31
        assert entry["data"]["currenttext"] == "<p>Thanks!</p>"

    @pytest.mark.integration
    async def test_wrong_discussion(self, teacher_client, forum_data):
        entry = await call(
            teacher_client,
            "mod_forum_get_post_inline_editor",
            {"postid": forum_data.root_post_id, "discussionid": forum_data.discussion_id + 1},
        )

        assert entry["exception"]["errorcode"] == "invalidparameter"


class TestDiscussionPage:
    """Tests for GET /forum/discussions/{id}."""

    @pytest.mark.integration
    async def test_page(self, teacher_client, forum_data):
        response = await teacher_client.get(f"/forum/discussions/{forum_data.discussion_id}")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        html = response.text
        assert 'id="forum-inlineform-wrapper"' in html
        assert f'data-discussionid="{forum_data.discussion_id}"' in html
        assert 'id="forum-inlineform"' in html
        assert 'id="id_pinned"' in html

    @pytest.mark.integration
    async def test_unknown_discussion(self, teacher_client):
        response = await teacher_client.get("/forum/discussions/999")
        assert response.status_code == 404
