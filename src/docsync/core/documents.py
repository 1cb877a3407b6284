"""Document shapes and canonical serialization.

A document is either an entity collection (a bare list of entities, or an
object whose first non-empty list of entities is the entity-array field) or an
opaque JSON value that is only ever merged as a whole.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

# Keys used by merge and change detection
ID_FIELD = "id"
UPDATED_AT_FIELD = "updatedAt"
CREATED_AT_FIELD = "createdAt"
LAST_SYNCED_AT_FIELD = "lastSyncedAt"
FIELD_TIMESTAMPS_FIELD = "lastUpdatedByField"

Entity = dict[str, Any]


@dataclass(frozen=True)
class EntityCollection:
    """A document holding a list of addressable entities.

    Attributes:
        field: Name of the entity-array field, or None for a bare list.
        entities: The entities, in document order.
    """

    field: str | None
    entities: list[Entity]

    def by_id(self) -> dict[str, Entity]:
        """Map entity id to entity."""
        return {entity[ID_FIELD]: entity for entity in self.entities}


@dataclass(frozen=True)
class Opaque:
    """A document with no recognizable entity collection."""

    value: Any


DocumentShape = Union[EntityCollection, Opaque]


def is_entity(value: Any) -> bool:
    """Check whether a value is an object with a stable, non-empty string id."""
    if not isinstance(value, dict):
        return False
    entity_id = value.get(ID_FIELD)
    return isinstance(entity_id, str) and len(entity_id) > 0


def classify_document(document: Any) -> DocumentShape:
    """Classify a (non-null) document.

    Args:
        document: Parsed JSON value.

    Returns:
        EntityCollection when the document carries entities, Opaque otherwise.
    """
    if isinstance(document, list):
        if all(is_entity(item) for item in document):
            return EntityCollection(field=None, entities=document)
        return Opaque(document)

    if isinstance(document, dict):
        for name, value in document.items():
            if not isinstance(value, list) or not value:
                continue
            if all(is_entity(item) for item in value):
                return EntityCollection(field=name, entities=value)

    return Opaque(document)


def canonical_json(value: Any) -> str:
    """Serialize a JSON value deterministically (sorted keys, compact)."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def document_timestamp(document: Any) -> str:
    """Best-effort timestamp of a whole document ("" when it has none)."""
    if not isinstance(document, dict):
        return ""
    for key in (UPDATED_AT_FIELD, LAST_SYNCED_AT_FIELD):
        value = document.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def field_timestamps(entity: Entity) -> dict[str, Any]:
    """Return an entity's per-field timestamp map ({} when malformed)."""
    value = entity.get(FIELD_TIMESTAMPS_FIELD)
    return value if isinstance(value, dict) else {}
