"""
Identity types for claimgate: user records, sessions and identifier resolution.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..claims.types import Claims, Principal
from ..types.errors import ValidationError


class IdentifierKind(Enum):
    """How an administrative identifier is looked up."""
    EMAIL = "email"
    KEY = "key"


@dataclass(frozen=True)
class IdentifierLookup:
    """Result of resolving an identifier: which lookup to run, with what value."""
    kind: IdentifierKind
    value: str


def resolve_identifier(identifier: str) -> IdentifierLookup:
    """
    Decide how an identifier is looked up.

    An identifier containing "@" is an email address; anything else is a
    principal key. A key can therefore never contain "@", and an email can
    never be looked up as a key.

    Raises:
        ValidationError: If the identifier is empty
    """
    if not isinstance(identifier, str) or not identifier.strip():
        raise ValidationError("Identifier must be a non-empty string", field='identifier', value=identifier)

    value = identifier.strip()
    if '@' in value:
        return IdentifierLookup(IdentifierKind.EMAIL, value)
    return IdentifierLookup(IdentifierKind.KEY, value)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        return datetime.fromisoformat(str(value))
    return datetime.now()


@dataclass
class UserRecord:
    """
    A principal as held by the identity provider's directory.
    """
    key: str
    email: Optional[str] = None
    custom_claims: Dict[str, Any] = field(default_factory=dict)
    disabled: bool = False
    created_at: datetime = field(default_factory=datetime.now)

    def to_principal(self) -> Principal:
        """Signed-in view of this user, with a snapshot of its claims."""
        return Principal(
            key=self.key,
            authenticated=not self.disabled,
            claims=Claims(self.custom_claims),
            email=self.email
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'key': self.key,
            'email': self.email,
            'custom_claims': dict(self.custom_claims),
            'disabled': self.disabled,
            'created_at': self.created_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserRecord':
        """Create from dictionary representation."""
        created_at = data.get('created_at')
        return cls(
            key=data['key'],
            email=data.get('email'),
            custom_claims=dict(data.get('custom_claims') or {}),
            disabled=bool(data.get('disabled', False)),
            created_at=_parse_timestamp(created_at)
        )


@dataclass
class Session:
    """
    Binds one principal to one evaluation environment for one scenario.
    """
    session_id: str
    principal: Principal
    environment_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    closed: bool = False

    def close(self) -> None:
        self.closed = True


@dataclass(frozen=True)
class ClaimMutationResult:
    """Outcome of a set_claim call."""
    user: UserRecord
    claim: str
    value: Any
    changed: bool

    def describe(self) -> str:
        state = "updated" if self.changed else "unchanged"
        return f"{self.claim}={self.value} for user {self.user.key} ({self.user.email}) [{state}]"
