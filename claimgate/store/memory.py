"""
In-memory document store for claimgate.
Provides the simulated backend every evaluation environment owns.
"""

from copy import deepcopy
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional
import asyncio
import logging

from ..authz.types import Resource
from ..types.errors import (
    DocumentExistsError,
    DocumentNotFoundError,
    StoreError,
)
from .types import Document, DocumentStore, StoreStats


logger = logging.getLogger(__name__)


class MemoryDocumentStore(DocumentStore):
    """
    In-memory document store.

    Suitable for:
    - Evaluation environments
    - Unit tests

    Supports a simulated response delay and injected faults so callers can
    exercise timeouts and backend failures.

    Note: All data is lost when the store is closed.
    """

    def __init__(self, response_delay: float = 0.0):
        # Document storage: path -> Document
        self._documents: Dict[str, Document] = {}
        self._lock = asyncio.Lock()
        self._closed = False

        self.response_delay = response_delay
        self._errors: Dict[str, Exception] = {}

        # Statistics
        self._operations_count = 0
        self._error_count = 0

    def set_error(self, method: str, error: Exception) -> None:
        """Make every subsequent call to a method raise the given error."""
        self._errors[method] = error

    def clear_errors(self) -> None:
        self._errors.clear()

    async def _enter(self, method: str, path: str = "") -> None:
        if self.response_delay:
            await asyncio.sleep(self.response_delay)

        if self._closed:
            raise StoreError(method, path, "Store is closed")

        if method in self._errors:
            self._error_count += 1
            raise self._errors[method]

    async def create(self, resource: Resource, data: Mapping[str, Any],
                     created_by: Optional[str] = None) -> Document:
        await self._enter("create", resource.path)
        async with self._lock:
            if resource.path in self._documents:
                self._error_count += 1
                raise DocumentExistsError("create", resource.path)

            document = Document(
                resource=resource,
                data=deepcopy(dict(data)),
                created_by=created_by
            )
            self._documents[resource.path] = document
            self._operations_count += 1
            return deepcopy(document)

    async def get(self, resource: Resource) -> Optional[Document]:
        await self._enter("get", resource.path)
        async with self._lock:
            self._operations_count += 1
            document = self._documents.get(resource.path)
            return deepcopy(document) if document else None

    async def update(self, resource: Resource, data: Mapping[str, Any]) -> Document:
        await self._enter("update", resource.path)
        async with self._lock:
            document = self._documents.get(resource.path)
            if document is None:
                self._error_count += 1
                raise DocumentNotFoundError("update", resource.path)

            document.data.update(deepcopy(dict(data)))
            document.updated_at = datetime.now()
            self._operations_count += 1
            return deepcopy(document)

    async def delete(self, resource: Resource) -> Document:
        await self._enter("delete", resource.path)
        async with self._lock:
            document = self._documents.pop(resource.path, None)
            if document is None:
                self._error_count += 1
                raise DocumentNotFoundError("delete", resource.path)

            self._operations_count += 1
            return document

    async def list_collection(self, collection: str) -> List[Document]:
        await self._enter("list_collection", collection)
        async with self._lock:
            self._operations_count += 1
            return [
                deepcopy(document)
                for document in self._documents.values()
                if document.resource.collection == collection
            ]

    async def get_stats(self) -> StoreStats:
        async with self._lock:
            return StoreStats(
                documents=len(self._documents),
                operations_count=self._operations_count,
                error_count=self._error_count
            )

    async def close(self) -> None:
        """Drop all documents; further calls raise StoreError."""
        async with self._lock:
            self._documents.clear()
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    # Memory-specific methods
    def get_document_count(self) -> int:
        """Get the current number of stored documents."""
        return len(self._documents)
