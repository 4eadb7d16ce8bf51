"""Tests for the HTTP health responder."""

from collections.abc import AsyncIterator

import aiohttp
import pytest
from aiohttp.test_utils import TestClient, TestServer, unused_port

from gen_alpha_bot.config.schema import HealthConfig
from gen_alpha_bot.utils.health_server import BANNER, HealthServer, create_app


@pytest.fixture
async def client() -> AsyncIterator[TestClient]:
    """Serve the health app on a test server."""
    async with TestClient(TestServer(create_app())) as test_client:
        yield test_client


class TestRoutes:
    """Tests for the health routes."""

    async def test_root_banner(self, client: TestClient) -> None:
        """Test the root path answers with the banner."""
        response = await client.get("/")

        assert response.status == 200
        assert await response.text() == BANNER

    async def test_health(self, client: TestClient) -> None:
        """Test the health path answers OK."""
        response = await client.get("/health")

        assert response.status == 200
        assert await response.text() == "OK"

    async def test_unknown_path(self, client: TestClient) -> None:
        """Test other paths are not found."""
        response = await client.get("/metrics")
        assert response.status == 404


class TestHealthServer:
    """Tests for HealthServer lifecycle."""

    async def test_start_and_stop(self) -> None:
        """Test the server binds the configured port and releases it."""
        port = unused_port()
        server = HealthServer(HealthConfig(host="127.0.0.1", port=port))

        await server.start()
        try:
            assert server.is_running
            async with aiohttp.ClientSession() as session:
                async with session.get(f"http://127.0.0.1:{port}/health") as response:
                    assert await response.text() == "OK"
        finally:
            await server.stop()

        assert not server.is_running

    async def test_stop_without_start(self) -> None:
        """Test stopping an idle server is a no-op."""
        server = HealthServer(HealthConfig())
        await server.stop()
        assert not server.is_running

    async def test_port_in_use(self) -> None:
        """Test a busy port raises OSError and leaves the server stopped."""
        port = unused_port()
        first = HealthServer(HealthConfig(host="127.0.0.1", port=port))
        second = HealthServer(HealthConfig(host="127.0.0.1", port=port))

        await first.start()
        try:
            with pytest.raises(OSError):
                await second.start()
            assert not second.is_running
        finally:
            await first.stop()
