"""
Conformance scenarios for claimgate.

A scenario describes one check: who acts (a claim set), what they do
(operation and resource), and whether it should succeed or fail. Each
scenario brings its own fixtures, so it runs the same in any order and in
any fresh environment.
"""

from abc import ABC, abstractmethod
from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..authz.types import Decision, Operation, Resource
from ..claims.types import strict_equals
from ..environment.environment import EvaluationEnvironment
from ..types.errors import ClaimGateError


class Expectation(Enum):
    """Expected outcome of a scenario."""
    SUCCEED = "succeed"
    FAIL = "fail"


class ScenarioFailure(AssertionError):
    """
    Raised when a scenario's actual outcome differs from the expected one.
    Carries the scenario context for the report.
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 decision: Optional[Decision] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.decision = decision


@dataclass
class ScenarioOutcome:
    """What a passing scenario observed."""
    decision: Optional[Decision] = None
    detail: str = ""


@dataclass
class PrincipalSpec:
    """
    Claims description of the acting principal.

    With from_directory set, the principal is signed in from the
    environment's user directory using whatever claims are stored there
    (after the scenario's users and claim grants are applied).
    """
    key: str
    authenticated: bool = True
    claims: Dict[str, Any] = field(default_factory=dict)
    email: Optional[str] = None
    from_directory: bool = False

    def describe(self) -> str:
        state = "authenticated" if self.authenticated else "unauthenticated"
        source = ", from directory" if self.from_directory else ""
        return f"{self.key} ({state}, claims={self.claims}{source})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'authenticated': self.authenticated,
            'claims': dict(self.claims),
            'email': self.email,
            'from_directory': self.from_directory
        }


@dataclass
class SeedDocument:
    """Fixture document written before the scenario's operation."""
    path: str
    data: Dict[str, Any] = field(default_factory=dict)
    created_by: Optional[str] = None


@dataclass
class DirectoryUser:
    """Fixture user created in the environment's identity provider."""
    key: str
    email: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ClaimGrant:
    """Out-of-band claim mutation applied before the operation."""
    identifier: str
    claim: str = "admin"
    value: Any = True


async def provision_users(env: EvaluationEnvironment, users: List[DirectoryUser]) -> None:
    for user in users:
        await env.identity.create_user(key=user.key, email=user.email)
        for claim, value in user.claims.items():
            await env.identity.set_claim(user.key, claim, value)


class Scenario(ABC):
    """
    Base class for conformance scenarios.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description

    @abstractmethod
    async def run(self, env: EvaluationEnvironment) -> ScenarioOutcome:
        """
        Run the scenario in a fresh environment.

        Raises:
            ScenarioFailure: If the observed outcome is not the expected one
        """
        pass

    @abstractmethod
    def context(self) -> Dict[str, Any]:
        """Claims/operation/resource context for reports."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class OperationScenario(Scenario):
    """
    A principal performs one operation; the outcome must match.
    """

    def __init__(
        self,
        name: str,
        principal: PrincipalSpec,
        operation: Operation,
        expected: Expectation,
        expected_reason: Optional[str] = None,
        seed: Optional[List[SeedDocument]] = None,
        users: Optional[List[DirectoryUser]] = None,
        claim_grants: Optional[List[ClaimGrant]] = None,
        description: str = ""
    ):
        super().__init__(name, description)
        self.principal = principal
        self.operation = operation
        self.expected = expected
        self.expected_reason = expected_reason
        self.seed = list(seed or [])
        self.users = list(users or [])
        self.claim_grants = list(claim_grants or [])

    def context(self) -> Dict[str, Any]:
        return {
            'principal': self.principal.describe(),
            'operation': self.operation.kind.value,
            'resource': self.operation.resource.path,
            'payload': dict(self.operation.payload) if self.operation.payload is not None else None,
            'expected': self.expected.value
        }

    async def run(self, env: EvaluationEnvironment) -> ScenarioOutcome:
        await provision_users(env, self.users)
        for grant in self.claim_grants:
            await env.identity.set_claim(grant.identifier, grant.claim, grant.value)

        for doc in self.seed:
            await env.seed(Resource.parse(doc.path), doc.data, created_by=doc.created_by)

        if self.principal.from_directory:
            session = await env.session_for_user(self.principal.key)
        else:
            session = await env.session(
                self.principal.key,
                self.principal.authenticated,
                self.principal.claims,
                email=self.principal.email
            )

        result = await env.execute(session, self.operation)
        actual = Expectation.SUCCEED if result.succeeded else Expectation.FAIL

        if actual is not self.expected:
            raise ScenarioFailure(
                f"expected {self.expected.value}, got {actual.value} ({result.describe()}) "
                f"for {session.principal.describe()} {self.operation.describe()}",
                self.context(),
                result.decision
            )

        if self.expected_reason is not None and result.decision.reason != self.expected_reason:
            raise ScenarioFailure(
                f"expected reason '{self.expected_reason}', got '{result.decision.reason}' "
                f"for {session.principal.describe()} {self.operation.describe()}",
                self.context(),
                result.decision
            )

        return ScenarioOutcome(decision=result.decision, detail=result.describe())


class ClaimMutationScenario(Scenario):
    """
    Setting a claim repeatedly must behave exactly like setting it once.

    Every call must succeed, only the first may change anything, and the
    final claim state must equal the state after the first call.
    """

    def __init__(
        self,
        name: str,
        identifier: str,
        claim: str = "admin",
        value: Any = True,
        repeat: int = 2,
        users: Optional[List[DirectoryUser]] = None,
        description: str = ""
    ):
        super().__init__(name, description)
        if repeat < 1:
            raise ValueError("repeat must be at least 1")
        self.identifier = identifier
        self.claim = claim
        self.value = value
        self.repeat = repeat
        self.users = list(users or [])

    def context(self) -> Dict[str, Any]:
        return {
            'identifier': self.identifier,
            'claim': self.claim,
            'value': self.value,
            'repeat': self.repeat
        }

    async def run(self, env: EvaluationEnvironment) -> ScenarioOutcome:
        await provision_users(env, self.users)

        states = []
        for attempt in range(1, self.repeat + 1):
            try:
                result = await env.identity.set_claim(self.identifier, self.claim, self.value)
            except ClaimGateError as e:
                raise ScenarioFailure(
                    f"set_claim call {attempt} of {self.repeat} failed: {e}",
                    self.context()
                )
            if attempt > 1 and result.changed:
                raise ScenarioFailure(
                    f"set_claim call {attempt} changed state; expected a no-op",
                    self.context()
                )
            states.append(deepcopy(result.user.custom_claims))

        final = await env.identity.lookup(self.identifier)
        if not strict_equals(final.custom_claims.get(self.claim), self.value):
            raise ScenarioFailure(
                f"final claim {self.claim}={final.custom_claims.get(self.claim)!r}, "
                f"expected {self.value!r}",
                self.context()
            )
        if final.custom_claims != states[0]:
            raise ScenarioFailure(
                f"final claims {final.custom_claims} differ from a single application {states[0]}",
                self.context()
            )

        return ScenarioOutcome(detail=f"{self.claim}={self.value!r} set on {final.key} ({self.repeat} calls)")


ADMIN_DOC_PAYLOAD = {'title': 'Admin Doc', 'content': 'Secret', 'createdBy': 'adminUid'}


def default_scenarios() -> List[Scenario]:
    """
    The conformance suite for the admin_docs policy.
    """
    doc1 = SeedDocument('admin_docs/doc1', dict(ADMIN_DOC_PAYLOAD), created_by='adminUid')

    return [
        OperationScenario(
            "admin creates admin document",
            PrincipalSpec('adminUid', True, {'admin': True}, email='admin@example.com'),
            Operation.create('admin_docs/doc1', ADMIN_DOC_PAYLOAD),
            Expectation.SUCCEED,
        ),
        OperationScenario(
            "non-admin cannot create admin document",
            PrincipalSpec('userUid', True, {}, email='user@example.com'),
            Operation.create('admin_docs/doc2', {'title': 'User Doc', 'content': 'Nope'}),
            Expectation.FAIL,
            expected_reason="missing admin claim",
        ),
        OperationScenario(
            "authenticated user reads admin document",
            PrincipalSpec('userUid', True, {}, email='user@example.com'),
            Operation.read('admin_docs/doc1'),
            Expectation.SUCCEED,
            seed=[doc1],
        ),
        OperationScenario(
            "unauthenticated read is rejected",
            PrincipalSpec('anon', False, {}),
            Operation.read('admin_docs/doc1'),
            Expectation.FAIL,
            expected_reason="unauthenticated",
            seed=[doc1],
        ),
        ClaimMutationScenario(
            "admin claim mutation is idempotent",
            identifier='admin@example.com',
            claim='admin',
            value=True,
            repeat=2,
            users=[DirectoryUser('adminUser', 'admin@example.com')],
        ),
        OperationScenario(
            "granted admin claim allows create after sign-in",
            PrincipalSpec('e2eAdmin', from_directory=True),
            Operation.create('admin_docs/admin_doc_e2e', {
                'title': 'E2E Admin Doc',
                'content': 'Created by admin',
                'createdBy': 'e2eAdmin',
            }),
            Expectation.SUCCEED,
            users=[DirectoryUser('e2eAdmin', 'e2e-admin@example.com')],
            claim_grants=[ClaimGrant('e2e-admin@example.com', 'admin', True)],
        ),
        OperationScenario(
            "string admin claim is not an admin claim",
            PrincipalSpec('userUid', True, {'admin': 'true'}),
            Operation.create('admin_docs/doc3', {'title': 'Spoofed'}),
            Expectation.FAIL,
            expected_reason="missing admin claim",
        ),
        OperationScenario(
            "update is denied by default",
            PrincipalSpec('adminUid', True, {'admin': True}),
            Operation.update('admin_docs/doc1', {'title': 'Edited'}),
            Expectation.FAIL,
            seed=[doc1],
        ),
        OperationScenario(
            "delete is denied by default",
            PrincipalSpec('adminUid', True, {'admin': True}),
            Operation.delete('admin_docs/doc1'),
            Expectation.FAIL,
            seed=[doc1],
        ),
        OperationScenario(
            "unprotected collection is denied by default",
            PrincipalSpec('adminUid', True, {'admin': True}),
            Operation.read('other_docs/doc1'),
            Expectation.FAIL,
        ),
    ]
