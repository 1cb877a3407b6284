"""Shared configuration classes for docsync.

This module defines the retry policy, the registered document table and the
remote server settings used by the engine, the transports and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass

# Storage keys shared with the embedding application
SHADOW_STORAGE_KEY = "second-brain.sync.shadow.v1"
REMOTE_STORAGE_KEY = "second-brain.sync.remote.v1"
AUTH_STORAGE_KEY = "second-brain.sync.auth.v1"

# Seconds between scheduled cycles
DEFAULT_SYNC_INTERVAL = 30.0

# Triggers beyond this many pending ones are coalesced
DEFAULT_MAX_PENDING_TRIGGERS = 1


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff settings for the retry controller.

    Attributes:
        max_attempts: Total attempts, including the first one.
        base_delay: Delay before the second attempt, in seconds.
        max_delay: Upper bound for the exponential delay, in seconds.
        jitter_ratio: Extra random delay as a fraction of the computed delay.
    """

    max_attempts: int = 4
    base_delay: float = 0.7
    max_delay: float = 6.0
    jitter_ratio: float = 0.2

    def __post_init__(self) -> None:
        """Validate bounds."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")
        if self.jitter_ratio < 0:
            raise ValueError("jitter_ratio must be non-negative")


DEFAULT_RETRY_POLICY = RetryPolicy()


@dataclass(frozen=True)
class DocumentDescriptor:
    """A syncable document and the local storage key holding it.

    Attributes:
        id: Remote document id (e.g. "work.tasks").
        local_key: Key of the document in the local key/value store.
    """

    id: str
    local_key: str

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> DocumentDescriptor:
        """Create from a config file entry."""
        return cls(id=data["id"], local_key=data["local_key"])


SYNCABLE_DOCUMENTS: tuple[DocumentDescriptor, ...] = (
    DocumentDescriptor("work.tasks", "second-brain.work.tasks.work.v1"),
    DocumentDescriptor("work.projects", "second-brain.work.projects.work"),
    DocumentDescriptor("work.people", "second-brain.work.people.work.v1"),
    DocumentDescriptor("work.sprints", "second-brain.work.sprints.work"),
    DocumentDescriptor("work.meetings", "second-brain.work.meetings.work"),
    DocumentDescriptor("personal.tasks", "second-brain.personal.tasks.v1"),
    DocumentDescriptor("personal.projects", "second-brain.personal.projects.v1"),
    DocumentDescriptor("personal.people", "second-brain.personal.people.v1"),
    DocumentDescriptor("personal.daily-log", "second-brain.personal.daily-log.v1"),
    DocumentDescriptor("personal.exercise-log", "second-brain.personal.exercise-log.v1"),
    DocumentDescriptor("personal.calendar", "second-brain.personal.calendar.v1"),
)


@dataclass
class ServerConfig:
    """Configuration for connecting to a remote document server.

    Attributes:
        server_url: Base URL of the server (e.g., "https://docs.example.com").
        token: Bearer token for the account.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    token: str
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if server uses HTTPS.
        """
        return self.server_url.startswith("https://")
