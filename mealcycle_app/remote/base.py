"""Base classes for the remote document store boundary."""

import copy
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from ..errors import RemoteStoreError
from ..sync.models import OperationKind, PendingOperation

DocumentMap = dict[str, dict[str, dict[str, Any]]]


class RemoteStore(ABC):
    """Opaque document store: document reads plus an atomic batch write."""

    @abstractmethod
    def get_document(self, collection: str, document_id: str) -> Optional[dict[str, Any]]:
        """Fetch one document, or None if it does not exist."""
        pass

    @abstractmethod
    def query_documents(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        """Fetch every document in a collection whose field equals value."""
        pass

    @abstractmethod
    def commit_batch(self, operations: Sequence[PendingOperation]) -> None:
        """
        Apply operations atomically, in order.

        Either every operation is applied or none is. Raises RemoteStoreError
        (or a subclass) on failure.
        """
        pass

    def health_check(self) -> bool:
        """Check if the store is reachable."""
        return True


def set_field_path(document: dict[str, Any], path: str, value: Any) -> None:
    """Set a dotted field path ("slots.20") inside a document."""
    parts = path.split(".")
    target = document
    for part in parts[:-1]:
        child = target.get(part)
        if not isinstance(child, dict):
            child = {}
            target[part] = child
        target = child
    target[parts[-1]] = value


def apply_operation(documents: DocumentMap, op: PendingOperation) -> None:
    """
    Apply one pending operation to an in-memory collection map.

    Creates overwrite, updates merge field paths into an existing document,
    deletes are idempotent. Updating a missing document is an error.
    """
    collection = documents.setdefault(op.collection, {})

    if op.kind is OperationKind.CREATE:
        collection[op.document_id] = copy.deepcopy(op.payload or {})
    elif op.kind is OperationKind.UPDATE:
        existing = collection.get(op.document_id)
        if existing is None:
            raise RemoteStoreError(
                f"No document to update: {op.collection}/{op.document_id}",
                operation=op.kind.value,
            )
        for path, value in (op.payload or {}).items():
            set_field_path(existing, path, copy.deepcopy(value))
    elif op.kind is OperationKind.DELETE:
        collection.pop(op.document_id, None)
