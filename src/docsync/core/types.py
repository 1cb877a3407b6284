"""Shared types for docsync.

This module defines the enums exposed through the engine's state snapshots.
"""

from __future__ import annotations

from enum import Enum


class SyncStatus(str, Enum):
    """Sync status of an engine instance.

    Subscribers receive this as part of every SyncSnapshot to render
    the current synchronization status.
    """

    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"
    OFFLINE = "offline"


class AuthStatus(str, Enum):
    """Persisted authentication flag gating whether cycles run at all."""

    SIGNED_IN = "signed-in"
    SIGNED_OUT = "signed-out"

    @classmethod
    def parse(cls, raw: str | None) -> AuthStatus:
        """Parse a persisted flag, treating anything unknown as signed out."""
        return cls.SIGNED_IN if raw == cls.SIGNED_IN.value else cls.SIGNED_OUT
