"""Unit tests for the HTTP routes."""

import re

import pytest
from httpx import ASGITransport, AsyncClient

from whatsbot.adapters.web import server
from whatsbot.adapters.web.server import app


@pytest.fixture
def transport():
    return ASGITransport(app=app)


@pytest.fixture(autouse=True)
def _reset_agent():
    server.agent.last_qr = None
    server.agent.last_qr_at = None
    yield
    server.agent.last_qr = None
    server.agent.last_qr_at = None


class TestHealth:
    @pytest.mark.asyncio
    async def test_health_ok(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "OK"
        assert data["message"] == "WhatsApp Bot is running"
        assert re.fullmatch(r"\d+d \d+h \d+m", data["uptime"])
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", data["timestamp"])

    @pytest.mark.asyncio
    async def test_root_serves_page(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/")
        assert resp.status_code == 200
        assert "WhatsApp Bot" in resp.text


class TestQR:
    @pytest.mark.asyncio
    async def test_no_pending_qr(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/qr")
        assert resp.status_code == 200
        data = resp.json()
        assert data["qr"] is None
        assert "logs" in data["message"]

    @pytest.mark.asyncio
    async def test_pending_qr(self, transport):
        server.agent.handle_qr("2@payload,abc")
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/qr")
        data = resp.json()
        assert data["qr"] == "2@payload,abc"
        assert data["received_at"] is not None


class TestStatus:
    @pytest.mark.asyncio
    async def test_status_snapshot(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/status")
        assert resp.status_code == 200
        data = resp.json()
        assert set(data) >= {"state", "ready", "messages_handled", "replies_sent", "uptime"}
        assert data["ready"] is False
