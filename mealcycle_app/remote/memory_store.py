"""In-process document store with atomic batch semantics."""

import copy
import threading
from typing import Any, Optional, Sequence

from ..errors import RemoteStoreError, TransientStoreError
from ..logging.config import get_logger
from ..sync.models import PendingOperation
from .base import DocumentMap, RemoteStore, apply_operation

logger = get_logger(__name__)


class InMemoryRemoteStore(RemoteStore):
    """
    Remote store held in memory.

    Batches are applied to a copy of the data and swapped in only when every
    operation succeeded. `set_available(False)` simulates lost connectivity:
    every request then fails with TransientStoreError.
    """

    def __init__(self, documents: Optional[DocumentMap] = None):
        self._documents: DocumentMap = copy.deepcopy(documents) if documents else {}
        self._lock = threading.Lock()
        self._available = True
        self.commit_count = 0

    def set_available(self, available: bool) -> None:
        self._available = available

    def _check_available(self, operation: str) -> None:
        if not self._available:
            raise TransientStoreError("Remote store unreachable", operation=operation)

    def get_document(self, collection: str, document_id: str) -> Optional[dict[str, Any]]:
        self._check_available("get")
        with self._lock:
            doc = self._documents.get(collection, {}).get(document_id)
            return copy.deepcopy(doc) if doc is not None else None

    def query_documents(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        self._check_available("query")
        with self._lock:
            return [
                copy.deepcopy(doc)
                for doc in self._documents.get(collection, {}).values()
                if doc.get(field) == value
            ]

    def commit_batch(self, operations: Sequence[PendingOperation]) -> None:
        self._check_available("commit")
        with self._lock:
            staged = copy.deepcopy(self._documents)
            for op in operations:
                try:
                    apply_operation(staged, op)
                except RemoteStoreError:
                    logger.warning(
                        "Batch rejected",
                        collection=op.collection,
                        document_id=op.document_id,
                        kind=op.kind.value,
                        batch_size=len(operations)
                    )
                    raise
            self._documents = staged
            self.commit_count += 1

    def health_check(self) -> bool:
        return self._available

    def document_count(self, collection: str) -> int:
        with self._lock:
            return len(self._documents.get(collection, {}))
