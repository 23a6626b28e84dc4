"""
Document store types and interfaces for claimgate.
Defines the simulated store abstraction and stored document structure.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from ..authz.types import Resource


@dataclass
class Document:
    """A stored document."""
    resource: Resource
    data: Dict[str, Any] = field(default_factory=dict)
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def path(self) -> str:
        return self.resource.path

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'path': self.path,
            'data': dict(self.data),
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat()
        }


@dataclass
class StoreStats:
    """Statistics about store usage."""
    documents: int = 0
    operations_count: int = 0
    error_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'documents': self.documents,
            'operations_count': self.operations_count,
            'error_count': self.error_count
        }


class DocumentStore(ABC):
    """
    Abstract document store.

    Stores never make access decisions; callers consult the policy engine
    first.
    """

    @abstractmethod
    async def create(self, resource: Resource, data: Mapping[str, Any],
                     created_by: Optional[str] = None) -> Document:
        """Create a document. Raises DocumentExistsError if present."""
        pass

    @abstractmethod
    async def get(self, resource: Resource) -> Optional[Document]:
        """Read a document; None when it does not exist."""
        pass

    @abstractmethod
    async def update(self, resource: Resource, data: Mapping[str, Any]) -> Document:
        """Merge fields into a document. Raises DocumentNotFoundError if absent."""
        pass

    @abstractmethod
    async def delete(self, resource: Resource) -> Document:
        """Delete a document. Raises DocumentNotFoundError if absent."""
        pass

    @abstractmethod
    async def list_collection(self, collection: str) -> List[Document]:
        """Return every document in a collection."""
        pass

    @abstractmethod
    async def get_stats(self) -> StoreStats:
        """Get store statistics."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the store and release resources."""
        pass
