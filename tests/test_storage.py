"""
Tests for the storage backends.

Google Sheets is exercised through an in-memory fake worksheet, so no
network access or credentials are needed.
"""

import pytest

from finance_tracker.config.settings import AppSettings
from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.services.storage import (
    BlobTooLargeError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBlobStore,
    InMemoryAuditStorage,
    InMemoryBlobStore,
    JsonFileBlobStore,
    StorageError,
    create_audit_storage,
    create_blob_store,
)
from finance_tracker.services.storage.google_sheets import (
    CELL_CHAR_LIMIT,
    MAX_CHUNKS,
    split_into_chunks,
)

from tests.fakes import FakeSheetsClient


class TestInMemoryBlobStore:
    def test_get_set_remove(self):
        store = InMemoryBlobStore()
        assert store.get("k") is None
        store.set("k", '{"a": 1}')
        assert store.get("k") == '{"a": 1}'
        store.remove("k")
        store.remove("k")
        assert store.keys() == []

    def test_initial_data_is_copied(self):
        initial = {"k": "v"}
        store = InMemoryBlobStore(initial)
        store.set("k", "changed")
        assert initial == {"k": "v"}


class TestJsonFileBlobStore:
    """Tests for the one-file-per-key store."""

    def test_round_trip(self, tmp_path):
        store = JsonFileBlobStore(tmp_path / "data")
        store.set("finance-tracker-data", '{"budgets": []}')
        assert (tmp_path / "data" / "finance-tracker-data.json").exists()
        assert store.get("finance-tracker-data") == '{"budgets": []}'

    def test_missing_key(self, tmp_path):
        assert JsonFileBlobStore(tmp_path).get("nothing") is None

    def test_overwrite_leaves_no_temp_file(self, tmp_path):
        store = JsonFileBlobStore(tmp_path)
        store.set("k", "one")
        store.set("k", "two")
        assert store.get("k") == "two"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["k.json"]

    def test_remove_is_idempotent(self, tmp_path):
        store = JsonFileBlobStore(tmp_path)
        store.set("k", "v")
        store.remove("k")
        store.remove("k")
        assert store.get("k") is None

    @pytest.mark.parametrize("key", ["", "../escape", "a/b", "a\\b", ".hidden"])
    def test_unsafe_keys_are_rejected(self, tmp_path, key):
        with pytest.raises(StorageError):
            JsonFileBlobStore(tmp_path).set(key, "v")


class TestGoogleSheetsBlobStore:
    """Tests for the chunked sheets store."""

    @pytest.fixture
    def client(self):
        return FakeSheetsClient()

    def test_round_trip(self, client):
        store = GoogleSheetsBlobStore(client)
        store.set("k", '{"a": 1}')
        assert store.get("k") == '{"a": 1}'
        assert len(client.data_sheet.rows) == 2

    def test_large_blob_is_chunked(self, client):
        store = GoogleSheetsBlobStore(client)
        value = "x" * (CELL_CHAR_LIMIT * 2 + 10)
        store.set("k", value)
        row = client.data_sheet.rows[1]
        assert len(row[2]) == CELL_CHAR_LIMIT
        assert len(row[4]) == 10
        assert store.get("k") == value

    def test_overwrite_clears_old_chunks(self, client):
        store = GoogleSheetsBlobStore(client)
        store.set("k", "x" * (CELL_CHAR_LIMIT + 1))
        store.set("k", "short")
        assert store.get("k") == "short"
        assert len(client.data_sheet.rows) == 2

    def test_too_large(self, client):
        store = GoogleSheetsBlobStore(client)
        with pytest.raises(BlobTooLargeError):
            store.set("k", "x" * (CELL_CHAR_LIMIT * MAX_CHUNKS + 1))
        assert store.get("k") is None

    def test_remove(self, client):
        store = GoogleSheetsBlobStore(client)
        store.set("a", "1")
        store.set("b", "2")
        store.remove("a")
        store.remove("missing")
        assert store.get("a") is None
        assert store.get("b") == "2"

    def test_split_into_chunks(self):
        assert split_into_chunks("") == [""]
        assert split_into_chunks("abcde", size=2) == ["ab", "cd", "e"]


class TestAuditStorage:
    """Tests for the audit sinks."""

    def test_sheets_round_trip(self):
        storage = GoogleSheetsAuditStorage(FakeSheetsClient())
        event = AuditEventBuilder.expenses_skipped("budget-1", {2023: 1}, dropped_unresolved=0)
        assert storage.append_event(event) is True

        recent = storage.get_recent_events()
        assert len(recent) == 1
        assert recent[0].event_id == event.event_id
        assert recent[0].details == event.details
        assert recent[0].severity == event.severity

    def test_sheets_append_failure_is_swallowed(self):
        class BrokenClient:
            def get_audit_sheet(self):
                raise RuntimeError("quota exceeded")

        storage = GoogleSheetsAuditStorage(BrokenClient())
        event = AuditEventBuilder.budget_saved("budget-1", "2024", created=True)
        assert storage.append_event(event) is False

    def test_sheets_read_failure_raises(self):
        class BrokenClient:
            def get_audit_sheet(self):
                raise RuntimeError("quota exceeded")

        with pytest.raises(StorageError):
            GoogleSheetsAuditStorage(BrokenClient()).get_recent_events()

    def test_memory_correlation_lookup(self):
        from uuid import uuid4
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        storage.append_event(AuditEventBuilder.csv_parsed(3, correlation_id))
        storage.append_event(AuditEventBuilder.budget_saved("b", "2024", created=True))
        assert len(storage.get_events_by_correlation_id(correlation_id)) == 1


class TestFactory:
    """Tests for picking the configured backend."""

    def test_memory(self, tmp_path):
        settings = AppSettings(storage_backend="memory", data_dir=tmp_path)
        assert isinstance(create_blob_store(settings), InMemoryBlobStore)
        assert create_audit_storage(settings) is None

    def test_file(self, tmp_path):
        settings = AppSettings(storage_backend="file", data_dir=tmp_path)
        store = create_blob_store(settings)
        assert isinstance(store, JsonFileBlobStore)
        assert store.data_dir == tmp_path.resolve()

    def test_sheets(self, tmp_path, monkeypatch):
        credentials = tmp_path / "credentials.json"
        credentials.write_text("{}")
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(credentials))
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-123")
        settings = AppSettings(storage_backend="sheets", data_dir=tmp_path)
        assert isinstance(create_blob_store(settings), GoogleSheetsBlobStore)
        assert isinstance(create_audit_storage(settings), GoogleSheetsAuditStorage)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
