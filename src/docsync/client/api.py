"""Remote document transports.

This module provides:
- RemoteTransport: Protocol for pulling and pushing whole documents
- TransportError / AuthenticationError: Failures flagged transient or fatal
- StoreTransport: Remote root kept in a key/value store (offline-first stand-in)
- HTTPTransport: HTTP client for a document server
"""

from __future__ import annotations

import logging
import random as _random
from collections.abc import Callable
from typing import Any, Protocol

import httpx

from docsync.client.store import KeyValueStore, load_json_object, save_json
from docsync.client.sync.types import SyncError
from docsync.core.config import REMOTE_STORAGE_KEY, ServerConfig

logger = logging.getLogger(__name__)


class TransportError(SyncError):
    """A pull or push failed.

    Attributes:
        transient: True if the failure is expected to resolve on retry.
        status_code: HTTP status code, when the failure came from a response.
    """

    def __init__(
        self,
        message: str,
        *,
        transient: bool = False,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.transient = transient
        self.status_code = status_code


class AuthenticationError(TransportError):
    """The server rejected the credentials."""


class RemoteTransport(Protocol):
    """Protocol for the remote document store."""

    async def pull(self, document_id: str) -> Any:
        """Fetch a document, or None if the remote has none."""
        ...

    async def push(self, document_id: str, document: Any) -> None:
        """Replace the remote copy of a document."""
        ...


class StoreTransport:
    """Remote root persisted as one JSON map in a key/value store.

    Keeps the engine fully exercisable without a server. A non-zero
    ``failure_rate`` makes pulls and pushes fail transiently at random.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str = REMOTE_STORAGE_KEY,
        failure_rate: float = 0.0,
        random: Callable[[], float] = _random.random,
    ) -> None:
        """Initialize the transport.

        Args:
            store: Store holding the remote root.
            key: Key of the remote root map.
            failure_rate: Probability of a simulated network timeout per call.
            random: Source of uniform values in [0, 1).
        """
        self._store = store
        self._key = key
        self._failure_rate = failure_rate
        self._random = random
        self._root: dict[str, Any] = load_json_object(store, key)

    def _maybe_fail(self, action: str) -> None:
        if self._failure_rate and self._random() < self._failure_rate:
            raise TransportError(
                f"Network timeout while {action} document.", transient=True
            )

    async def pull(self, document_id: str) -> Any:
        self._maybe_fail("pulling")
        return self._root.get(document_id)

    async def push(self, document_id: str, document: Any) -> None:
        self._maybe_fail("pushing")
        self._root[document_id] = document
        save_json(self._store, self._key, self._root)


class HTTPTransport:
    """HTTP client for a remote document server.

    Documents live at ``/api/documents/{id}``: GET returns the JSON document
    (404 when absent), PUT replaces it.
    """

    def __init__(
        self,
        config: ServerConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            config: Server configuration with URL, token, and settings.
            client: Optional preconfigured client (tests, connection sharing).
        """
        self._config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={"Authorization": f"Bearer {config.token}"},
        )

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> HTTPTransport:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Raise a TransportError for any failed response."""
        status = response.status_code
        if status in (401, 403):
            raise AuthenticationError("Invalid or expired token", status_code=status)
        if status == 429 or status >= 500:
            raise TransportError(
                f"Server unavailable (HTTP {status})", transient=True, status_code=status
            )
        if status >= 400:
            raise TransportError(
                f"Request rejected (HTTP {status}): {self._detail(response)}",
                status_code=status,
            )
        return response

    @staticmethod
    def _detail(response: httpx.Response) -> str:
        try:
            return str(response.json().get("detail", "Unknown error"))
        except (ValueError, AttributeError):
            return response.text or "Unknown error"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timed out: {e}", transient=True) from e
        except httpx.RequestError as e:
            raise TransportError(f"Network error: {e}", transient=True) from e

    async def pull(self, document_id: str) -> Any:
        """Fetch a document.

        Returns:
            The parsed document, or None if the server has none.

        Raises:
            TransportError: On failure or a malformed payload.
        """
        response = await self._request("GET", f"/api/documents/{document_id}")
        if response.status_code == 404:
            return None
        self._handle_response(response)

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Malformed payload for {document_id}") from e

    async def push(self, document_id: str, document: Any) -> None:
        """Replace a document on the server."""
        response = await self._request(
            "PUT", f"/api/documents/{document_id}", json=document
        )
        self._handle_response(response)
        logger.debug("Pushed %s", document_id)
