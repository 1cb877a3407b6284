"""Core module - Shared types, configuration, document shapes and timestamps."""

from docsync.core.config import (
    AUTH_STORAGE_KEY,
    DEFAULT_RETRY_POLICY,
    DEFAULT_SYNC_INTERVAL,
    REMOTE_STORAGE_KEY,
    SHADOW_STORAGE_KEY,
    SYNCABLE_DOCUMENTS,
    DocumentDescriptor,
    RetryPolicy,
    ServerConfig,
)
from docsync.core.documents import (
    EntityCollection,
    Opaque,
    canonical_json,
    classify_document,
)
from docsync.core.timestamps import (
    Clock,
    FixedClock,
    SystemClock,
    compare_timestamps,
    parse_timestamp,
)
from docsync.core.types import AuthStatus, SyncStatus

__all__ = [
    # Config
    "AUTH_STORAGE_KEY",
    "DEFAULT_RETRY_POLICY",
    "DEFAULT_SYNC_INTERVAL",
    "REMOTE_STORAGE_KEY",
    "SHADOW_STORAGE_KEY",
    "SYNCABLE_DOCUMENTS",
    "DocumentDescriptor",
    "RetryPolicy",
    "ServerConfig",
    # Documents
    "EntityCollection",
    "Opaque",
    "canonical_json",
    "classify_document",
    # Timestamps
    "Clock",
    "FixedClock",
    "SystemClock",
    "compare_timestamps",
    "parse_timestamp",
    # Types
    "AuthStatus",
    "SyncStatus",
]
