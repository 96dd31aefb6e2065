"""
Posts API Backend: Middleware Tests
====================================

What:  Tests for request ID resolution and access-log levels.
"""

import logging

import pytest

from app.middleware.logging import level_for_status


class TestRequestId:

    @pytest.mark.asyncio
    async def test_client_id_is_kept(self, test_client):
        response = await test_client.get("/users", headers={"X-Request-ID": "frontend-42"})

        assert response.headers["x-request-id"] == "frontend-42"

    @pytest.mark.asyncio
    async def test_unsafe_client_id_is_replaced(self, test_client):
        response = await test_client.get("/users", headers={"X-Request-ID": "bad id!"})

        assert response.headers["x-request-id"] != "bad id!"
        assert len(response.headers["x-request-id"]) == 8

    @pytest.mark.asyncio
    async def test_cloud_trace_id_used(self, test_client):
        response = await test_client.get(
            "/users",
            headers={"X-Cloud-Trace-Context": "105445aa7843bc8bf206b12000100000/1;o=1"},
        )

        assert response.headers["x-request-id"] == "105445aa7843bc8bf206b12000100000"

    @pytest.mark.asyncio
    async def test_generated_when_absent(self, test_client):
        first = await test_client.get("/users")
        second = await test_client.get("/users")

        assert len(first.headers["x-request-id"]) == 8
        assert first.headers["x-request-id"] != second.headers["x-request-id"]


class TestAccessLog:

    @pytest.mark.parametrize(
        "status,level",
        [(200, logging.INFO), (302, logging.INFO), (404, logging.WARNING), (502, logging.ERROR)],
    )
    def test_level_for_status(self, status, level):
        assert level_for_status(status) == level

    @pytest.mark.asyncio
    async def test_failed_auth_logged_as_warning(self, test_client, caplog):
        with caplog.at_level(logging.INFO, logger="posts_api.access"):
            await test_client.get("/posts", headers={"X-Request-ID": "req-1"})

        records = [r for r in caplog.records if r.name == "posts_api.access"]
        assert len(records) == 1
        assert records[0].levelno == logging.WARNING
        assert records[0].status == 401
        assert "GET /posts 401" in records[0].getMessage()
        assert "[req-1]" in records[0].getMessage()

    @pytest.mark.asyncio
    async def test_health_not_logged(self, test_client, caplog):
        with caplog.at_level(logging.INFO, logger="posts_api.access"):
            await test_client.get("/health")

        assert not [r for r in caplog.records if r.name == "posts_api.access"]
