"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError, RetryExhaustedError: Exception classes
- MergeResult: Output of the merge engine
- CycleResult: Output of one synchronization cycle
- SyncSnapshot: Immutable view of an engine's sync state
- Type aliases for callbacks
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from docsync.core.types import AuthStatus, SyncStatus


class SyncError(Exception):
    """Base exception for sync errors."""


class RetryExhaustedError(SyncError):
    """Every attempt of a retried operation failed with a transient error.

    The last underlying error is kept as ``last_error`` and as ``__cause__``.

    Attributes:
        attempts: Number of attempts made
        last_error: Error raised by the final attempt
    """

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Retry attempts exhausted after {attempts} attempt"
            f"{'s' if attempts != 1 else ''}: {last_error}"
        )


@dataclass
class MergeResult:
    """Result of merging a local and a remote document.

    Attributes:
        document: Merged document (None when both inputs were absent)
        conflicts: Number of field-level conflicts encountered
    """

    document: Any
    conflicts: int = 0


@dataclass
class CycleResult:
    """Result of one full pull/merge/push pass."""

    conflicts: int = 0
    conflicts_by_document: dict[str, int] = field(default_factory=dict)
    synced: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SyncSnapshot:
    """Immutable snapshot of an engine's sync state.

    Attributes:
        status: Current sync status
        auth_status: Whether cycles are allowed to run
        pending_changes: Local changes not yet reflected in the shadow
        conflict_count: Conflicts resolved by the last completed cycle
        last_successful_sync_at: ISO timestamp of the last success ("" if none)
        error_message: Explanation of the most recent failure ("" if clear)
        retries: Attempt index of the in-flight cycle
    """

    status: SyncStatus = SyncStatus.IDLE
    auth_status: AuthStatus = AuthStatus.SIGNED_OUT
    pending_changes: int = 0
    conflict_count: int = 0
    last_successful_sync_at: str = ""
    error_message: str = ""
    retries: int = 0

    def to_dict(self) -> dict[str, str | int]:
        """Convert to a JSON-friendly dict."""
        return {
            "status": self.status.value,
            "auth_status": self.auth_status.value,
            "pending_changes": self.pending_changes,
            "conflict_count": self.conflict_count,
            "last_successful_sync_at": self.last_successful_sync_at,
            "error_message": self.error_message,
            "retries": self.retries,
        }


# Type alias for state subscribers
StateListener = Callable[[SyncSnapshot], None]

# Type alias for retry attempt notifications (0-based attempt index)
AttemptCallback = Callable[[int], None]
