"""
Claims model for claimgate.
Immutable principals and the typed claim bag attached to them.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple
import logging


logger = logging.getLogger(__name__)


def parse_bool_claim(value: Any) -> Optional[bool]:
    """
    Parse a boolean claim value.

    Only real booleans are accepted. Strings, numbers and containers are
    unparsable and yield None, which callers treat as an absent claim.
    """
    if isinstance(value, bool):
        return value
    return None


@dataclass(frozen=True)
class ClaimDefinition:
    """A recognized claim: its parser and the value used when absent or unparsable."""
    name: str
    parser: Callable[[Any], Any]
    default: Any = False
    description: str = ""


# Recognized claims. Anything else is carried as a raw value.
RECOGNIZED_CLAIMS: Dict[str, ClaimDefinition] = {
    'admin': ClaimDefinition(
        name='admin',
        parser=parse_bool_claim,
        default=False,
        description="Grants write access to admin-managed documents",
    ),
}


def register_claim(definition: ClaimDefinition) -> None:
    """Register an additional recognized claim."""
    RECOGNIZED_CLAIMS[definition.name] = definition


def strict_equals(left: Any, right: Any) -> bool:
    """Equality that refuses cross-type matches (1 != True, "true" != True)."""
    return type(left) is type(right) and left == right


class Claims(Mapping[str, Any]):
    """
    Immutable claim bag.

    Iteration and item access expose the raw values as supplied. Typed access
    goes through get_claim(), which parses recognized claims and falls back
    to the claim's safe default when the value is missing or malformed.
    """

    __slots__ = ('_data',)

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        raw = dict(data or {})
        for key in raw:
            if not isinstance(key, str):
                raise TypeError(f"Claim names must be strings, got {type(key).__name__}")
        self._data = MappingProxyType(raw)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            return dict(self._data) == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(sorted((k, repr(v)) for k, v in self._data.items())))

    def __repr__(self) -> str:
        return f"Claims({dict(self._data)!r})"

    def get_claim(self, name: str) -> Any:
        """
        Get a claim value.

        Recognized claims are parsed; a missing or unparsable value returns
        the claim's default. Unknown claims return the raw value or None.
        """
        definition = RECOGNIZED_CLAIMS.get(name)
        raw = self._data.get(name)

        if definition is None:
            return raw

        if raw is None:
            return definition.default

        parsed = definition.parser(raw)
        if parsed is None:
            logger.debug(f"Ignoring unparsable value for claim '{name}': {raw!r}")
            return definition.default
        return parsed

    def has_claim(self, name: str, expected: Any = True) -> bool:
        """Check a claim against an expected value using strict equality."""
        return strict_equals(self.get_claim(name), expected)

    @property
    def is_admin(self) -> bool:
        return self.has_claim('admin', True)

    def with_claim(self, name: str, value: Any) -> 'Claims':
        """Return a new claim bag with one claim set."""
        data = dict(self._data)
        data[name] = value
        return Claims(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary."""
        return dict(self._data)


@dataclass(frozen=True)
class Principal:
    """
    Identity attempting an operation.

    A principal never changes for the lifetime of a session; changing its
    claims means building a new principal and a new session.
    """
    key: str
    authenticated: bool = False
    claims: Claims = field(default_factory=Claims)
    email: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.claims, Claims):
            object.__setattr__(self, 'claims', Claims(self.claims))

    @classmethod
    def anonymous(cls, key: str = "anon") -> 'Principal':
        """Create an unauthenticated principal."""
        return cls(key=key, authenticated=False)

    @classmethod
    def authenticated_as(cls, key: str, claims: Optional[Mapping[str, Any]] = None,
                         email: Optional[str] = None) -> 'Principal':
        """Create an authenticated principal with the given claims."""
        return cls(key=key, authenticated=True, claims=Claims(claims), email=email)

    def describe(self) -> str:
        """Short human-readable description for reports."""
        state = "authenticated" if self.authenticated else "unauthenticated"
        return f"{self.key} ({state}, claims={self.claims.to_dict()})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'key': self.key,
            'authenticated': self.authenticated,
            'claims': self.claims.to_dict(),
            'email': self.email
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Principal':
        """Create from dictionary representation."""
        return cls(
            key=data['key'],
            authenticated=bool(data.get('authenticated', False)),
            claims=Claims(data.get('claims', {})),
            email=data.get('email')
        )


def recognized_claim_names() -> Tuple[str, ...]:
    """Names of all recognized claims."""
    return tuple(sorted(RECOGNIZED_CLAIMS))
