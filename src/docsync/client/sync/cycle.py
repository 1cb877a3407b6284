"""One full synchronization cycle.

For every registered document, in table order:
    read local → pull remote → merge → write local → push → stage shadow

The shadow map is written once, after every document succeeded. Any error
propagates so the caller can retry the whole cycle; a failed cycle never
commits a partial shadow map.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from docsync.client.store import load_json, load_json_object, save_json
from docsync.client.sync.merge import merge_documents
from docsync.client.sync.types import CycleResult
from docsync.core.config import SHADOW_STORAGE_KEY, DocumentDescriptor

if TYPE_CHECKING:
    from docsync.client.api import RemoteTransport
    from docsync.client.store import KeyValueStore
    from docsync.core.timestamps import Clock

logger = logging.getLogger(__name__)


async def run_sync_cycle(
    store: KeyValueStore,
    transport: RemoteTransport,
    documents: Iterable[DocumentDescriptor],
    shadow_key: str = SHADOW_STORAGE_KEY,
    clock: Clock | None = None,
) -> CycleResult:
    """Pull, merge, commit and push every registered document.

    Args:
        store: Local key/value store (documents and shadow map).
        transport: Remote document transport.
        documents: Registered documents, processed in the given order.
        shadow_key: Key of the shadow snapshot map.
        clock: Clock passed to the merge engine.

    Returns:
        CycleResult with total and per-document conflict counts.
    """
    shadow = load_json_object(store, shadow_key)
    result = CycleResult()

    for descriptor in documents:
        local_doc = load_json(store, descriptor.local_key)
        remote_doc = await transport.pull(descriptor.id)

        merged = merge_documents(local_doc, remote_doc, clock)
        result.conflicts += merged.conflicts
        result.conflicts_by_document[descriptor.id] = merged.conflicts

        if merged.document is None:
            result.skipped.append(descriptor.id)
            continue

        save_json(store, descriptor.local_key, merged.document)
        await transport.push(descriptor.id, merged.document)
        shadow[descriptor.id] = merged.document
        result.synced.append(descriptor.id)

        if merged.conflicts:
            logger.info("Resolved %d conflict(s) in %s", merged.conflicts, descriptor.id)

    save_json(store, shadow_key, shadow)
    logger.debug(
        "Cycle complete: %d synced, %d skipped, %d conflict(s)",
        len(result.synced),
        len(result.skipped),
        result.conflicts,
    )
    return result
