"""Shared fixtures for client tests."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Any

import pytest

from docsync.client.api import TransportError
from docsync.client.store import MemoryStore
from docsync.core.config import DocumentDescriptor
from docsync.core.timestamps import FixedClock


class FakeTransport:
    """In-memory remote that records calls and can fail or block on demand.

    Attributes:
        documents: Remote documents by id.
        pulls: Document ids in pull order.
        pushes: (document id, document) pairs in push order.
        failures: Errors raised by the next pulls, one per pull.
        failing_ids: Document ids whose pulls always fail transiently.
        gate: When set, pulls wait for it before returning.
    """

    def __init__(self, documents: dict[str, Any] | None = None) -> None:
        self.documents: dict[str, Any] = dict(documents or {})
        self.pulls: list[str] = []
        self.pushes: list[tuple[str, Any]] = []
        self.failures: list[Exception] = []
        self.failing_ids: set[str] = set()
        self.gate: asyncio.Event | None = None
        self.pull_started = asyncio.Event()

    async def pull(self, document_id: str) -> Any:
        self.pulls.append(document_id)
        self.pull_started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            raise self.failures.pop(0)
        if document_id in self.failing_ids:
            raise TransportError(f"Network timeout while pulling {document_id}", transient=True)
        return self.documents.get(document_id)

    async def push(self, document_id: str, document: Any) -> None:
        self.pushes.append((document_id, document))
        self.documents[document_id] = document


TASKS = DocumentDescriptor("work.tasks", "tasks.v1")
NOTES = DocumentDescriptor("personal.notes", "notes.v1")


def put_json(store: MemoryStore, key: str, value: Any) -> None:
    """Write a JSON value into a store."""
    store.set(key, json.dumps(value))


def get_json(store: MemoryStore, key: str) -> Any:
    """Read a JSON value from a store."""
    raw = store.get(key)
    return None if raw is None else json.loads(raw)


@pytest.fixture
def store() -> MemoryStore:
    """Create an empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def transport() -> FakeTransport:
    """Create an empty fake remote."""
    return FakeTransport()


@pytest.fixture
def documents() -> tuple[DocumentDescriptor, ...]:
    """Two registered documents."""
    return (TASKS, NOTES)


@pytest.fixture
def clock() -> FixedClock:
    """Create a clock frozen at 2030-06-01T12:00:00Z."""
    return FixedClock(datetime(2030, 6, 1, 12, 0, tzinfo=timezone.utc))
