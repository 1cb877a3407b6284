"""Tests for remote document transports."""

from __future__ import annotations

import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from docsync.client.api import (
    AuthenticationError,
    HTTPTransport,
    StoreTransport,
    TransportError,
)
from docsync.client.store import MemoryStore, load_json
from docsync.core.config import REMOTE_STORAGE_KEY, ServerConfig

BASE_URL = "https://docs.example.com"


@pytest.fixture
def server_config() -> ServerConfig:
    """Create a test server configuration."""
    return ServerConfig(server_url=BASE_URL + "/", token="test-token", timeout=5.0)


class TestStoreTransport:
    """Tests for StoreTransport."""

    @pytest.mark.asyncio
    async def test_pull_and_push(self) -> None:
        """Pushed documents are pulled back and persisted in the store."""
        store = MemoryStore()
        transport = StoreTransport(store)

        assert await transport.pull("work.tasks") is None
        await transport.push("work.tasks", [{"id": "t1"}])

        assert await transport.pull("work.tasks") == [{"id": "t1"}]
        assert load_json(store, REMOTE_STORAGE_KEY) == {"work.tasks": [{"id": "t1"}]}

    @pytest.mark.asyncio
    async def test_reads_existing_root(self) -> None:
        """An existing remote root is loaded from the store."""
        store = MemoryStore({REMOTE_STORAGE_KEY: '{"personal.calendar": {"events": []}}'})

        transport = StoreTransport(store)

        assert await transport.pull("personal.calendar") == {"events": []}

    @pytest.mark.asyncio
    async def test_simulated_failures(self) -> None:
        """A failure rate makes calls fail transiently."""
        transport = StoreTransport(MemoryStore(), failure_rate=0.5, random=lambda: 0.1)

        with pytest.raises(TransportError) as exc_info:
            await transport.pull("work.tasks")

        assert exc_info.value.transient
        assert str(exc_info.value) == "Network timeout while pulling document."

    @pytest.mark.asyncio
    async def test_failure_rate_not_hit(self) -> None:
        """Draws above the failure rate succeed."""
        transport = StoreTransport(MemoryStore(), failure_rate=0.5, random=lambda: 0.9)

        await transport.push("work.tasks", [])

        assert await transport.pull("work.tasks") == []


class TestHTTPTransport:
    """Tests for HTTPTransport."""

    @pytest.mark.asyncio
    async def test_pull(self, httpx_mock: HTTPXMock, server_config: ServerConfig) -> None:
        """Should fetch a document with the bearer token."""
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/api/documents/work.tasks",
            json={"tasks": [{"id": "t1"}]},
        )

        async with HTTPTransport(server_config) as transport:
            document = await transport.pull("work.tasks")

        assert document == {"tasks": [{"id": "t1"}]}
        request = httpx_mock.get_request()
        assert request.headers["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_pull_not_found(
        self, httpx_mock: HTTPXMock, server_config: ServerConfig
    ) -> None:
        """A 404 means the remote has no copy."""
        httpx_mock.add_response(status_code=404, json={"detail": "Not found"})

        async with HTTPTransport(server_config) as transport:
            assert await transport.pull("work.tasks") is None

    @pytest.mark.asyncio
    async def test_push(self, httpx_mock: HTTPXMock, server_config: ServerConfig) -> None:
        """Should PUT the whole document as JSON."""
        httpx_mock.add_response(
            method="PUT",
            url=f"{BASE_URL}/api/documents/work.tasks",
            status_code=204,
        )

        async with HTTPTransport(server_config) as transport:
            await transport.push("work.tasks", [{"id": "t1"}])

        request = httpx_mock.get_request()
        assert request.method == "PUT"
        assert json.loads(request.read()) == [{"id": "t1"}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [429, 500, 503])
    async def test_server_unavailable_is_transient(
        self, httpx_mock: HTTPXMock, server_config: ServerConfig, status_code: int
    ) -> None:
        """429 and 5xx responses are transient."""
        httpx_mock.add_response(status_code=status_code)

        async with HTTPTransport(server_config) as transport:
            with pytest.raises(TransportError) as exc_info:
                await transport.pull("work.tasks")

        assert exc_info.value.transient
        assert exc_info.value.status_code == status_code
        assert str(exc_info.value) == f"Server unavailable (HTTP {status_code})"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403])
    async def test_auth_failure_is_fatal(
        self, httpx_mock: HTTPXMock, server_config: ServerConfig, status_code: int
    ) -> None:
        """Rejected credentials raise a fatal AuthenticationError."""
        httpx_mock.add_response(status_code=status_code)

        async with HTTPTransport(server_config) as transport:
            with pytest.raises(AuthenticationError) as exc_info:
                await transport.push("work.tasks", [])

        assert not exc_info.value.transient

    @pytest.mark.asyncio
    async def test_rejected_request(
        self, httpx_mock: HTTPXMock, server_config: ServerConfig
    ) -> None:
        """Other 4xx responses are fatal and carry the server detail."""
        httpx_mock.add_response(status_code=400, json={"detail": "Document too large"})

        async with HTTPTransport(server_config) as transport:
            with pytest.raises(TransportError) as exc_info:
                await transport.push("work.tasks", [])

        assert not exc_info.value.transient
        assert str(exc_info.value) == "Request rejected (HTTP 400): Document too large"

    @pytest.mark.asyncio
    async def test_malformed_payload(
        self, httpx_mock: HTTPXMock, server_config: ServerConfig
    ) -> None:
        """A non-JSON body is a fatal error."""
        httpx_mock.add_response(text="<html>oops</html>")

        async with HTTPTransport(server_config) as transport:
            with pytest.raises(TransportError) as exc_info:
                await transport.pull("work.tasks")

        assert not exc_info.value.transient
        assert str(exc_info.value) == "Malformed payload for work.tasks"

    @pytest.mark.asyncio
    async def test_timeout_is_transient(
        self, httpx_mock: HTTPXMock, server_config: ServerConfig
    ) -> None:
        """Timeouts become transient errors."""
        httpx_mock.add_exception(httpx.ReadTimeout("Read timed out"))

        async with HTTPTransport(server_config) as transport:
            with pytest.raises(TransportError) as exc_info:
                await transport.pull("work.tasks")

        assert exc_info.value.transient
        assert str(exc_info.value).startswith("Request timed out")

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(
        self, httpx_mock: HTTPXMock, server_config: ServerConfig
    ) -> None:
        """Connection failures become transient errors."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        async with HTTPTransport(server_config) as transport:
            with pytest.raises(TransportError) as exc_info:
                await transport.push("work.tasks", [])

        assert exc_info.value.transient
        assert str(exc_info.value) == "Network error: Connection refused"
