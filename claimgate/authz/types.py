"""
Authorization types for claimgate.
Implements resources, operations and decisions.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from ..claims.types import Principal
from ..types.errors import ValidationError


# The one protected collection kind modelled by the default rule set.
ADMIN_DOCS = "admin_docs"


class OperationKind(Enum):
    """Document-store operation kinds."""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"

    @classmethod
    def parse(cls, value: Any) -> 'OperationKind':
        """Parse an operation kind from its name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Unknown operation '{value}'",
                field='operation',
                value=value
            )


@dataclass(frozen=True)
class Resource:
    """
    Protected resource, addressed as collection/document.
    """
    collection: str
    document_id: str

    def __post_init__(self):
        if not self.collection or '/' in self.collection:
            raise ValidationError("Invalid collection name", field='collection', value=self.collection)
        if not self.document_id or '/' in self.document_id:
            raise ValidationError("Invalid document id", field='document_id', value=self.document_id)

    @property
    def path(self) -> str:
        return f"{self.collection}/{self.document_id}"

    @classmethod
    def parse(cls, path: str) -> 'Resource':
        """Parse a 'collection/document' path."""
        parts = path.strip('/').split('/')
        if len(parts) != 2:
            raise ValidationError(
                f"Resource path must be 'collection/document', got '{path}'",
                field='resource',
                value=path
            )
        return cls(collection=parts[0], document_id=parts[1])

    def __str__(self) -> str:
        return self.path


def _freeze_payload(payload: Optional[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    if payload is None:
        return None
    return MappingProxyType(dict(payload))


@dataclass(frozen=True)
class Operation:
    """
    Operation on a resource, carrying an optional payload for writes.
    """
    kind: OperationKind
    resource: Resource
    payload: Optional[Mapping[str, Any]] = None

    def __post_init__(self):
        object.__setattr__(self, 'kind', OperationKind.parse(self.kind))
        object.__setattr__(self, 'payload', _freeze_payload(self.payload))

    @classmethod
    def create(cls, path: str, payload: Mapping[str, Any]) -> 'Operation':
        return cls(OperationKind.CREATE, Resource.parse(path), payload)

    @classmethod
    def read(cls, path: str) -> 'Operation':
        return cls(OperationKind.READ, Resource.parse(path))

    @classmethod
    def update(cls, path: str, payload: Mapping[str, Any]) -> 'Operation':
        return cls(OperationKind.UPDATE, Resource.parse(path), payload)

    @classmethod
    def delete(cls, path: str) -> 'Operation':
        return cls(OperationKind.DELETE, Resource.parse(path))

    def describe(self) -> str:
        return f"{self.kind.value} {self.resource.path}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'operation': self.kind.value,
            'resource': self.resource.path,
            'payload': dict(self.payload) if self.payload is not None else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Operation':
        """Create from dictionary representation."""
        return cls(
            kind=OperationKind.parse(data['operation']),
            resource=Resource.parse(data['resource']),
            payload=data.get('payload')
        )


@dataclass(frozen=True)
class Decision:
    """
    Authorization decision: allowed or not, and why.
    """
    allowed: bool
    reason: str
    rule: Optional[str] = None

    @classmethod
    def allow(cls, reason: str, rule: Optional[str] = None) -> 'Decision':
        return cls(allowed=True, reason=reason, rule=rule)

    @classmethod
    def deny(cls, reason: str, rule: Optional[str] = None) -> 'Decision':
        return cls(allowed=False, reason=reason, rule=rule)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'allowed': self.allowed,
            'reason': self.reason,
            'rule': self.rule
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Decision':
        """Create from dictionary representation."""
        return cls(
            allowed=data['allowed'],
            reason=data['reason'],
            rule=data.get('rule')
        )


@dataclass(frozen=True)
class AccessRequest:
    """
    Everything a decision may depend on: the principal, the operation kind,
    the target resource and the proposed payload.
    """
    principal: Principal
    kind: OperationKind
    resource: Resource
    payload: Optional[Mapping[str, Any]] = None

    @property
    def has_payload(self) -> bool:
        return self.payload is not None
