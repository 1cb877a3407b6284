"""Pending-change detection against the shadow snapshot.

The counts produced here are an over-approximation meant for display: one
per added, removed or modified entity, or one per opaque document that
differs from its shadow. Merge correctness never depends on them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from docsync.client.store import KeyValueStore, load_json
from docsync.core.config import DocumentDescriptor
from docsync.core.documents import EntityCollection, canonical_json, classify_document


def count_document_changes(local: Any, shadow: Any) -> int:
    """Count differences between a local document and its shadow copy.

    Args:
        local: Current local document (None if absent).
        shadow: Document as of the last successful sync (None if never synced).

    Returns:
        Number of entities that differ, or 1 for an opaque difference.
    """
    if canonical_json(local) == canonical_json(shadow):
        return 0

    if local is None or shadow is None:
        local_shape = shadow_shape = None
    else:
        local_shape = classify_document(local)
        shadow_shape = classify_document(shadow)

    if (
        not isinstance(local_shape, EntityCollection)
        or not isinstance(shadow_shape, EntityCollection)
        or local_shape.field != shadow_shape.field
    ):
        return 1

    shadow_by_id = shadow_shape.by_id()
    local_ids = {entity["id"] for entity in local_shape.entities}
    delta = 0

    for entity in local_shape.entities:
        other = shadow_by_id.get(entity["id"])
        if other is None or canonical_json(entity) != canonical_json(other):
            delta += 1

    for entity in shadow_shape.entities:
        if entity["id"] not in local_ids:
            delta += 1

    return delta


def count_pending_changes(
    store: KeyValueStore,
    documents: Iterable[DocumentDescriptor],
    shadow: Mapping[str, Any],
) -> int:
    """Sum pending changes over every registered document.

    Args:
        store: Local key/value store holding the documents.
        documents: Registered syncable documents.
        shadow: Shadow snapshot map (document id -> document).

    Returns:
        Total pending change count.
    """
    return sum(
        count_document_changes(load_json(store, descriptor.local_key), shadow.get(descriptor.id))
        for descriptor in documents
    )
