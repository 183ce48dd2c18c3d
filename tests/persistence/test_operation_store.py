"""Tests for pending operation persistence."""

import os
import sqlite3
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from mealcycle_app.errors import PersistenceError, StorageCorruptionError
from mealcycle_app.persistence.operation_store import (
    PENDING_OPERATIONS_KEY,
    MemoryOperationStore,
    SqliteOperationStore,
    deserialize_operations,
    serialize_operations,
)
from mealcycle_app.sync.models import OperationKind, PendingOperation


def sample_ops():
    return [
        PendingOperation(
            kind=OperationKind.CREATE,
            collection="mealCycles",
            document_id="cycle-1",
            payload={"id": "cycle-1", "slots": {}},
            enqueued_at=1000,
        ),
        PendingOperation(
            kind=OperationKind.DELETE,
            collection="mealCycles",
            document_id="cycle-0",
            enqueued_at=2000,
        ),
    ]


class TestSerialization:
    """Test the stored list format."""

    def test_serialized_form_uses_document_keys(self):
        raw = serialize_operations(sample_ops()[1:])

        assert raw == (
            '[{"kind": "delete", "collection": "mealCycles", '
            '"documentId": "cycle-0", "payload": null, "enqueuedAt": 2000}]'
        )

    @pytest.mark.parametrize("raw", ["not json", '{"a": 1}', '[{"kind": "create"}]', "[1]"])
    def test_unreadable_data_raises_corruption(self, raw):
        with pytest.raises(StorageCorruptionError) as exc_info:
            deserialize_operations(raw)

        assert exc_info.value.target == PENDING_OPERATIONS_KEY
        assert exc_info.value.raw_data == raw


class TestMemoryOperationStore:
    """Test the in-memory store."""

    def test_save_and_load(self):
        store = MemoryOperationStore()
        store.save(sample_ops())

        assert store.load() == sample_ops()
        assert store.save_count == 1

    def test_clear(self):
        store = MemoryOperationStore()
        store.save(sample_ops())
        store.clear()

        assert store.load() == []


class TestSqliteOperationStore:
    """Test SQLite persistence."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "queue.db")
        self.store = SqliteOperationStore(self.db_path)

    def teardown_method(self):
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        os.rmdir(self.temp_dir)

    def test_database_initialization(self):
        assert Path(self.db_path).exists()

        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='local_storage'"
            )
            assert cursor.fetchone() is not None

    def test_empty_store_loads_empty_list(self):
        assert self.store.load() == []

    def test_save_replaces_single_entry(self):
        self.store.save(sample_ops())
        self.store.save(sample_ops()[:1])

        assert self.store.load() == sample_ops()[:1]
        with sqlite3.connect(self.db_path) as conn:
            count = conn.execute("SELECT COUNT(*) FROM local_storage").fetchone()[0]
        assert count == 1

    def test_survives_reopen(self):
        self.store.save(sample_ops())

        reopened = SqliteOperationStore(self.db_path)

        assert reopened.load() == sample_ops()

    def test_clear(self):
        self.store.save(sample_ops())
        self.store.clear()

        assert self.store.load() == []

    def test_corrupted_value_raises(self):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO local_storage (key, value, updated_at) VALUES (?, ?, ?)",
                (PENDING_OPERATIONS_KEY, "garbage", "2023-01-01T00:00:00Z")
            )
            conn.commit()

        with pytest.raises(StorageCorruptionError):
            self.store.load()

    def test_save_failure_raises_persistence_error(self):
        with patch("sqlite3.connect", side_effect=sqlite3.OperationalError("disk I/O error")):
            with pytest.raises(PersistenceError) as exc_info:
                self.store.save(sample_ops())

        assert exc_info.value.operation == "save"

    def test_non_database_file_is_recreated(self):
        os.remove(self.db_path)
        with open(self.db_path, "w") as f:
            f.write("this is not a sqlite database" * 100)

        store = SqliteOperationStore(self.db_path)

        assert store.load() == []
        store.save(sample_ops())
        assert store.load() == sample_ops()

    def test_locked_database_is_not_corruption(self):
        self.store.save(sample_ops())

        with patch("sqlite3.connect", side_effect=sqlite3.OperationalError("database is locked")):
            with pytest.raises(PersistenceError) as exc_info:
                self.store.load()

        assert not isinstance(exc_info.value, StorageCorruptionError)
        assert exc_info.value.operation == "load"
        assert self.store.load() == sample_ops()

    def test_malformed_database_on_load_is_corruption(self):
        with patch("sqlite3.connect", side_effect=sqlite3.DatabaseError("file is not a database")):
            with pytest.raises(StorageCorruptionError):
                self.store.load()
