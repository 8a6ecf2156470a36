"""
Unit tests for the batch service client (inline/ajax.py).
"""

import json

import httpx
import pytest

from forum_inline.inline.ajax import SERVICE_PATH, AjaxClient, AjaxError


def make_client(handler, user_id=7):
    transport = httpx.MockTransport(handler)
    return AjaxClient(httpx.AsyncClient(transport=transport, base_url="http://lms.test"), user_id)


class TestAjaxClient:
    """Tests for AjaxClient.call() and call_one()."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_call_sends_batch(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["user"] = request.headers.get("X-User-Id")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=[{"error": False, "data": 1}, {"error": False, "data": {"a": 2}}])

        async with make_client(handler) as client:
            results = await client.call([("first", {"x": 1}), ("second", {})])

        assert results == [1, {"a": 2}]
        assert seen["path"] == SERVICE_PATH
        assert seen["user"] == "7"
        assert seen["body"] == [
            {"index": 0, "methodname": "first", "args": {"x": 1}},
            {"index": 1, "methodname": "second", "args": {}},
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_error_entry_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json=[{"error": True, "exception": {"errorcode": "nopermissions", "message": "Denied"}}],
            )

        async with make_client(handler) as client:
            with pytest.raises(AjaxError) as exc_info:
                await client.call_one("mod_forum_update_discussion_post", {})

        assert exc_info.value.errorcode == "nopermissions"
        assert exc_info.value.message == "Denied"
        assert exc_info.value.methodname == "mod_forum_update_discussion_post"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_short_response_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"error": False, "data": 1}])

        async with make_client(handler) as client:
            with pytest.raises(AjaxError) as exc_info:
                await client.call([("first", {}), ("second", {})])

        assert exc_info.value.errorcode == "invalidresponse"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": True})

        async with make_client(handler) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.call_one("first", {})

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_user_header_without_user(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["user"] = request.headers.get("X-User-Id")
            return httpx.Response(200, json=[{"error": False, "data": None}])

        async with make_client(handler, user_id=None) as client:
            assert await client.call_one("first", {}) is None

        assert seen["user"] is None
