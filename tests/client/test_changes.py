"""Tests for pending-change detection."""

from __future__ import annotations

from docsync.client.store import MemoryStore
from docsync.client.sync.changes import count_document_changes, count_pending_changes
from tests.client.conftest import NOTES, TASKS, put_json


class TestCountDocumentChanges:
    """Tests for count_document_changes."""

    def test_identical(self) -> None:
        """Equal documents have no changes, regardless of key order."""
        assert count_document_changes({"a": 1, "b": 2}, {"b": 2, "a": 1}) == 0
        assert count_document_changes(None, None) == 0

    def test_entity_delta(self) -> None:
        """One change per added, removed or modified entity."""
        shadow = [{"id": "1", "t": "x"}, {"id": "2", "t": "y"}, {"id": "3"}]
        local = [{"id": "1", "t": "x"}, {"id": "2", "t": "changed"}, {"id": "4"}]

        # 2 modified, 4 added, 3 removed
        assert count_document_changes(local, shadow) == 3

    def test_entity_field_documents(self) -> None:
        """Object documents with the same entity field are compared per entity."""
        shadow = {"tasks": [{"id": "1"}], "version": 1}
        local = {"tasks": [{"id": "1"}, {"id": "2"}], "version": 1}

        assert count_document_changes(local, shadow) == 1

    def test_opaque_difference(self) -> None:
        """Any difference in an opaque document counts once."""
        assert count_document_changes({"theme": "dark"}, {"theme": "light"}) == 1

    def test_never_synced(self) -> None:
        """A document without a shadow counts once."""
        assert count_document_changes([{"id": "1"}, {"id": "2"}], None) == 1
        assert count_document_changes(None, {"theme": "dark"}) == 1

    def test_shape_mismatch(self) -> None:
        """Documents of different shapes count once."""
        assert count_document_changes({"tasks": [{"id": "1"}]}, {"people": [{"id": "1"}]}) == 1


class TestCountPendingChanges:
    """Tests for count_pending_changes."""

    def test_sums_documents(self, store: MemoryStore) -> None:
        """Counts are summed over registered documents."""
        put_json(store, TASKS.local_key, [{"id": "1"}, {"id": "2"}])
        put_json(store, NOTES.local_key, {"text": "new"})
        shadow = {TASKS.id: [{"id": "1"}], NOTES.id: {"text": "old"}}

        assert count_pending_changes(store, [TASKS, NOTES], shadow) == 2

    def test_nothing_stored(self, store: MemoryStore) -> None:
        """No documents and no shadow means no changes."""
        assert count_pending_changes(store, [TASKS, NOTES], {}) == 0

    def test_malformed_local(self, store: MemoryStore) -> None:
        """Malformed local JSON is treated as absent."""
        store.set(TASKS.local_key, "[oops")

        assert count_pending_changes(store, [TASKS], {}) == 0
        assert count_pending_changes(store, [TASKS], {TASKS.id: []}) == 1
