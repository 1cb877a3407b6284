"""Sync operations for local-first document synchronization.

Architecture:
    SyncEngine → run_sync_cycle → (pull → merge_documents → write → push)

Components:
- **merge**: Deterministic field-level merge of local and remote documents
- **changes**: Pending-change counts against the shadow snapshot
- **retry**: Exponential backoff with jitter for transient failures
- **cycle**: One pull/merge/push pass over every registered document
- **engine**: State machine gating cycles on auth and connectivity
"""

from docsync.client.sync.changes import count_document_changes, count_pending_changes
from docsync.client.sync.cycle import run_sync_cycle
from docsync.client.sync.engine import SyncEngine
from docsync.client.sync.merge import merge_documents, merge_entities
from docsync.client.sync.retry import (
    TRANSIENT_EXCEPTIONS,
    backoff_delay,
    is_transient_error,
    with_retry,
)
from docsync.client.sync.types import (
    AttemptCallback,
    CycleResult,
    MergeResult,
    RetryExhaustedError,
    StateListener,
    SyncError,
    SyncSnapshot,
)

__all__ = [
    # Engine
    "SyncEngine",
    "run_sync_cycle",
    # Merge and change detection
    "count_document_changes",
    "count_pending_changes",
    "merge_documents",
    "merge_entities",
    # Retry
    "TRANSIENT_EXCEPTIONS",
    "backoff_delay",
    "is_transient_error",
    "with_retry",
    # Types
    "AttemptCallback",
    "CycleResult",
    "MergeResult",
    "RetryExhaustedError",
    "StateListener",
    "SyncError",
    "SyncSnapshot",
]
