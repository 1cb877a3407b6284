"""Deterministic merge of local and remote documents.

Strategy:
1. A missing side never conflicts: the present side is kept as-is.
2. Entity collections sharing the same entity-array field are merged per
   entity id, and shared entities field by field using their
   ``lastUpdatedByField`` timestamps.
3. Anything else is merged as a whole: the newer document wins.

Every decision falls back to comparing canonical JSON text when timestamps
tie, so ``merge(a, b)`` and ``merge(b, a)`` pick the same winner. The
functions here are pure: inputs are never mutated and "now" comes from an
injected clock.
"""

from __future__ import annotations

import logging
from typing import Any

from docsync.client.sync.types import MergeResult
from docsync.core.documents import (
    CREATED_AT_FIELD,
    FIELD_TIMESTAMPS_FIELD,
    UPDATED_AT_FIELD,
    Entity,
    EntityCollection,
    canonical_json,
    classify_document,
    document_timestamp,
    field_timestamps,
)
from docsync.core.timestamps import (
    Clock,
    SystemClock,
    compare_timestamps,
    format_timestamp,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

# Fields merged separately from the per-field loop
BOOKKEEPING_FIELDS = frozenset({FIELD_TIMESTAMPS_FIELD, UPDATED_AT_FIELD})


class _Missing:
    """Marker for a field absent from one side."""

    def __repr__(self) -> str:
        return "<missing>"


MISSING: Any = _Missing()


def _tiebreak_key(value: Any) -> tuple[bool, str]:
    # Smaller key wins; a present value beats a missing one
    if value is MISSING:
        return (True, "")
    return (False, canonical_json(value))


def _as_timestamp(value: Any) -> str:
    return value if isinstance(value, str) else ""


def pick_latest(
    left_value: Any,
    right_value: Any,
    left_timestamp: str,
    right_timestamp: str,
) -> tuple[Any, str]:
    """Pick the value with the later timestamp.

    Ties (equal instants, or both unparseable) go to the value with the
    smaller canonical JSON text.

    Returns:
        (winning value, winning timestamp, falling back to the other side's)
    """
    winner = compare_timestamps(left_timestamp, right_timestamp)
    if winner == 0:
        winner = 1 if _tiebreak_key(left_value) <= _tiebreak_key(right_value) else -1

    if winner > 0:
        return left_value, left_timestamp or right_timestamp or ""
    return right_value, right_timestamp or left_timestamp or ""


def pick_latest_timestamp(left: Any, right: Any) -> str:
    """Return the later of two timestamps ("" if neither parses)."""
    left_text = _as_timestamp(left)
    right_text = _as_timestamp(right)
    if parse_timestamp(left_text) is None and parse_timestamp(right_text) is None:
        return ""

    winner = compare_timestamps(left_text, right_text)
    if winner > 0:
        return left_text
    if winner < 0:
        return right_text
    return min(left_text, right_text)


def _effective_timestamp(entity: Entity, updates: dict[str, Any], field: str) -> str:
    for candidate in (
        updates.get(field),
        entity.get(UPDATED_AT_FIELD),
        entity.get(CREATED_AT_FIELD),
    ):
        if isinstance(candidate, str) and candidate:
            return candidate
    return ""


def merge_entities(
    local: Entity,
    remote: Entity,
    clock: Clock | None = None,
) -> tuple[Entity, int]:
    """Merge two versions of the same entity field by field.

    Args:
        local: Local version of the entity.
        remote: Remote version with the same id.
        clock: Source of "now" when neither side has a usable updatedAt.

    Returns:
        (merged entity, number of conflicting fields)
    """
    if canonical_json(local) == canonical_json(remote):
        return local, 0

    local_updates = field_timestamps(local)
    remote_updates = field_timestamps(remote)

    fields = dict.fromkeys([*local, *remote, *local_updates, *remote_updates])
    merged_updates: dict[str, Any] = {**local_updates, **remote_updates}
    merged: Entity = {**local, **remote}
    conflicts = 0

    for field in fields:
        if field in BOOKKEEPING_FIELDS:
            continue

        local_value = local.get(field, MISSING)
        remote_value = remote.get(field, MISSING)
        local_timestamp = _effective_timestamp(local, local_updates, field)
        remote_timestamp = _effective_timestamp(remote, remote_updates, field)

        value, timestamp = pick_latest(
            local_value, remote_value, local_timestamp, remote_timestamp
        )

        if (
            _tiebreak_key(local_value) != _tiebreak_key(remote_value)
            and local_timestamp
            and remote_timestamp
        ):
            conflicts += 1

        if value is MISSING:
            merged.pop(field, None)
        else:
            merged[field] = value
        if timestamp:
            merged_updates[field] = timestamp

    merged[FIELD_TIMESTAMPS_FIELD] = merged_updates

    updated_at = pick_latest_timestamp(
        local.get(UPDATED_AT_FIELD), remote.get(UPDATED_AT_FIELD)
    )
    if not updated_at:
        updated_at = format_timestamp((clock or SystemClock()).now())
    merged[UPDATED_AT_FIELD] = updated_at

    return merged, conflicts


def _merge_collections(
    local_doc: Any,
    remote_doc: Any,
    local: EntityCollection,
    remote: EntityCollection,
    clock: Clock | None,
) -> MergeResult:
    merged_by_id: dict[str, Entity] = local.by_id()
    conflicts = 0

    for remote_entity in remote.entities:
        entity_id = remote_entity["id"]
        local_entity = merged_by_id.get(entity_id)
        if local_entity is None:
            merged_by_id[entity_id] = remote_entity
            continue

        merged_entity, entity_conflicts = merge_entities(local_entity, remote_entity, clock)
        merged_by_id[entity_id] = merged_entity
        conflicts += entity_conflicts

    entities = list(merged_by_id.values())
    if local.field is None:
        return MergeResult(document=entities, conflicts=conflicts)

    document = {**local_doc, **remote_doc, local.field: entities}
    return MergeResult(document=document, conflicts=conflicts)


def merge_documents(local: Any, remote: Any, clock: Clock | None = None) -> MergeResult:
    """Merge a local and a remote copy of one document.

    Args:
        local: Local document (None if absent).
        remote: Freshly pulled remote document (None if absent).
        clock: Source of "now" for entities without a usable updatedAt.

    Returns:
        MergeResult with the merged document and the conflict count.
    """
    if local is None and remote is None:
        return MergeResult(document=None)
    if local is None:
        return MergeResult(document=remote)
    if remote is None:
        return MergeResult(document=local)

    if canonical_json(local) == canonical_json(remote):
        return MergeResult(document=local)

    local_shape = classify_document(local)
    remote_shape = classify_document(remote)

    if (
        isinstance(local_shape, EntityCollection)
        and isinstance(remote_shape, EntityCollection)
        and local_shape.field == remote_shape.field
    ):
        return _merge_collections(local, remote, local_shape, remote_shape, clock)

    logger.debug("Merging whole documents (no shared entity collection)")
    document, _ = pick_latest(
        local, remote, document_timestamp(local), document_timestamp(remote)
    )
    return MergeResult(document=document)
