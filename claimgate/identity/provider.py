"""
Identity/session provider boundary for claimgate.

The provider stands in for an external identity service: it holds a user
directory, signs principals in (builds sessions) and mutates custom claims
out of band. Implementations here are in-process; a real backend would
implement the same interface over its SDK.
"""

from abc import ABC, abstractmethod
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
import asyncio
import logging
import uuid

import aiofiles

from ..claims.types import Claims, Principal, strict_equals
from ..types.errors import (
    ClaimGateError,
    ClaimMutationError,
    PrincipalNotFoundError,
    ValidationError,
)
from ..util.config import config_format, dump_config_text, parse_config_text
from .types import (
    ClaimMutationResult,
    IdentifierKind,
    Session,
    UserRecord,
    resolve_identifier,
)


logger = logging.getLogger(__name__)


class IdentityProvider(ABC):
    """
    Abstract identity provider.
    """

    @abstractmethod
    async def create_user(self, key: Optional[str] = None, email: Optional[str] = None,
                          password: Optional[str] = None) -> UserRecord:
        """Create a directory user."""
        pass

    @abstractmethod
    async def get_user(self, key: str) -> UserRecord:
        """Get a user by key."""
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> UserRecord:
        """Get a user by email address."""
        pass

    @abstractmethod
    async def set_claim(self, identifier: str, claim: str, value: Any) -> ClaimMutationResult:
        """Set one custom claim on the user the identifier resolves to."""
        pass

    async def lookup(self, identifier: str) -> UserRecord:
        """
        Resolve an email-or-key identifier to a user.

        See resolve_identifier() for the resolution rule.
        """
        resolved = resolve_identifier(identifier)
        if resolved.kind is IdentifierKind.EMAIL:
            return await self.get_user_by_email(resolved.value)
        return await self.get_user(resolved.value)

    async def build_session(
        self,
        principal_key: str,
        authenticated: bool,
        claims: Optional[Mapping[str, Any]] = None,
        environment_id: Optional[str] = None,
        email: Optional[str] = None
    ) -> Session:
        """
        Sign in a principal with an explicit claim set.

        The claims are snapshotted: later claim mutations do not reach an
        existing session.
        """
        if not principal_key:
            raise ValidationError("Principal key is required", field='principal_key')

        principal = Principal(
            key=principal_key,
            authenticated=bool(authenticated),
            claims=Claims(deepcopy(dict(claims or {}))),
            email=email
        )
        session = Session(
            session_id=str(uuid.uuid4()),
            principal=principal,
            environment_id=environment_id
        )
        logger.debug(f"Built session {session.session_id} for {principal.describe()}")
        return session

    async def session_for_user(self, key: str, environment_id: Optional[str] = None) -> Session:
        """Sign in a directory user with the claims currently stored for it."""
        user = await self.get_user(key)
        principal = user.to_principal()
        return await self.build_session(
            principal.key,
            principal.authenticated,
            principal.claims,
            environment_id=environment_id,
            email=principal.email
        )

    async def close(self) -> None:
        """Release provider resources."""
        pass


class MemoryIdentityProvider(IdentityProvider):
    """
    In-memory identity provider.

    Each instance owns its own directory; nothing is shared between
    instances.
    """

    def __init__(self, users: Optional[List[UserRecord]] = None):
        self._users: Dict[str, UserRecord] = {}
        self._email_index: Dict[str, str] = {}
        self._lock = asyncio.Lock()

        for user in users or []:
            self._add(user)

    def _add(self, user: UserRecord) -> None:
        if user.key in self._users:
            raise ValidationError(f"User '{user.key}' already exists", field='key', value=user.key)
        if user.email:
            email = user.email.lower()
            if email in self._email_index:
                raise ValidationError(f"Email '{user.email}' already in use", field='email', value=user.email)
            self._email_index[email] = user.key
        self._users[user.key] = user

    async def create_user(self, key: Optional[str] = None, email: Optional[str] = None,
                          password: Optional[str] = None) -> UserRecord:
        """Create a directory user. A key is generated when none is given."""
        if key is not None and '@' in key:
            raise ValidationError("User keys cannot contain '@'", field='key', value=key)

        user = UserRecord(key=key or uuid.uuid4().hex, email=email)
        async with self._lock:
            self._add(user)
        logger.debug(f"Created user {user.key} ({user.email})")
        return deepcopy(user)

    async def get_user(self, key: str) -> UserRecord:
        async with self._lock:
            user = self._users.get(key)
            if user is None:
                raise PrincipalNotFoundError(key, IdentifierKind.KEY.value)
            return deepcopy(user)

    async def get_user_by_email(self, email: str) -> UserRecord:
        async with self._lock:
            key = self._email_index.get(email.lower())
            if key is None:
                raise PrincipalNotFoundError(email, IdentifierKind.EMAIL.value)
            return deepcopy(self._users[key])

    async def set_claim(self, identifier: str, claim: str, value: Any) -> ClaimMutationResult:
        """
        Set one custom claim, leaving the user's other claims in place.

        Idempotent: setting a claim to the value it already holds reports
        changed=False and leaves the directory untouched.
        """
        if not claim:
            raise ValidationError("Claim name is required", field='claim')

        user = await self.lookup(identifier)

        async with self._lock:
            stored = self._users.get(user.key)
            if stored is None:
                raise PrincipalNotFoundError(user.key, IdentifierKind.KEY.value)

            had_claim = claim in stored.custom_claims
            current = stored.custom_claims.get(claim)
            changed = claim not in stored.custom_claims or not strict_equals(current, value)
            if changed:
                try:
                    stored.custom_claims[claim] = deepcopy(value)
                except Exception as e:
                    raise ClaimMutationError(
                        f"Failed to set claim '{claim}': {e}",
                        identifier=identifier,
                        claim=claim,
                        cause=e
                    )
            snapshot = deepcopy(stored)

        if changed:
            try:
                await self._persist()
            except ClaimGateError:
                await self._restore_claim(user.key, claim, had_claim, current)
                raise
            logger.info(f"Set {claim}={value!r} for user {snapshot.key}")
        else:
            logger.info(f"Claim {claim}={value!r} already set for user {snapshot.key}; no change")

        return ClaimMutationResult(user=snapshot, claim=claim, value=value, changed=changed)

    async def _restore_claim(self, key: str, claim: str, had_claim: bool, previous: Any) -> None:
        async with self._lock:
            stored = self._users.get(key)
            if stored is None:
                return
            if had_claim:
                stored.custom_claims[claim] = previous
            else:
                stored.custom_claims.pop(claim, None)
        logger.warning(f"Rolled back {claim} for user {key} after a failed write")

    async def list_users(self) -> List[UserRecord]:
        async with self._lock:
            return [deepcopy(user) for user in self._users.values()]

    async def _persist(self) -> None:
        """Hook for durable subclasses; memory directories have nothing to write."""
        pass

    async def close(self) -> None:
        async with self._lock:
            self._users.clear()
            self._email_index.clear()


class FileIdentityProvider(MemoryIdentityProvider):
    """
    Identity provider backed by a YAML or JSON user directory file.

    The file holds a top-level ``users`` list of user records. Claim changes
    are written back immediately.
    """

    def __init__(self, directory_path: str):
        super().__init__()
        self.directory_path = Path(directory_path)
        self._format = config_format(str(self.directory_path))

    @classmethod
    async def open(cls, directory_path: str) -> 'FileIdentityProvider':
        """Open a directory file; a missing file starts an empty directory."""
        provider = cls(directory_path)
        await provider.load()
        return provider

    async def load(self) -> None:
        if not self.directory_path.exists():
            logger.info(f"User directory {self.directory_path} does not exist; starting empty")
            return

        async with aiofiles.open(self.directory_path, 'r', encoding='utf-8') as f:
            data = parse_config_text(await f.read(), self._format) or {}

        users = data.get('users', []) if isinstance(data, dict) else None
        if not isinstance(users, list):
            raise ValidationError(
                f"User directory {self.directory_path} must contain a 'users' list",
                field='users'
            )

        async with self._lock:
            for entry in users:
                self._add(UserRecord.from_dict(entry))
        logger.info(f"Loaded {len(users)} users from {self.directory_path}")

    async def create_user(self, key: Optional[str] = None, email: Optional[str] = None,
                          password: Optional[str] = None) -> UserRecord:
        user = await super().create_user(key, email, password)
        await self._persist()
        return user

    async def _persist(self) -> None:
        users = await self.list_users()
        text = dump_config_text({'users': [user.to_dict() for user in users]}, self._format)
        try:
            self.directory_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.directory_path, 'w', encoding='utf-8') as f:
                await f.write(text)
        except OSError as e:
            raise ClaimMutationError(f"Failed to write user directory: {e}", cause=e)
