# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Evaluation environments for claimgate.

An environment pairs one policy engine with one simulated document store and
one identity provider. Nothing is shared between environments; each is
created for a single scenario (or suite) and destroyed explicitly.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, List, Mapping, Optional
import logging
import uuid

from ..audit.logger import DecisionEvent, DecisionLog, MemoryDecisionLog
from ..authz.engine import PolicyEngine
from ..authz.rules import RuleSet, load_rule_set
from ..authz.types import Decision, Operation, OperationKind, Resource
from ..core.config import EnvironmentConfig
from ..identity.provider import IdentityProvider, MemoryIdentityProvider
from ..identity.types import Session
from ..metrics.collector import DecisionMetrics
from ..store.memory import MemoryDocumentStore
from ..store.types import Document, DocumentStore
from ..types.errors import (
    DocumentExistsError,
    DocumentNotFoundError,
    EvaluationEnvironmentError,
    InfrastructureError,
    StoreError,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    """
    Result of executing an operation: the decision, plus whatever the store
    returned when the operation was allowed.
    """
    operation: Operation
    decision: Decision
    document: Optional[Document] = None
    error: Optional[StoreError] = None

    @property
    def rejected(self) -> bool:
        """True when the policy denied the operation."""
        return not self.decision.allowed

    @property
    def succeeded(self) -> bool:
        """True when the operation was allowed and the store applied it."""
        return self.decision.allowed and self.error is None

    def describe(self) -> str:
        if self.rejected:
            return f"rejected: {self.decision.reason}"
        if self.error is not None:
            return f"allowed, store error: {self.error.message}"
        return "succeeded"


class EvaluationEnvironment:
    """
    Isolated, disposable evaluation environment.
    """

    def __init__(
        self,
        rule_set: RuleSet,
        config: Optional[EnvironmentConfig] = None,
        store: Optional[DocumentStore] = None,
        identity: Optional[IdentityProvider] = None,
        decision_log: Optional[DecisionLog] = None,
        metrics: Optional[DecisionMetrics] = None
    ):
        self.config = config or EnvironmentConfig()
        self.environment_id = f"{self.config.project_id}-{uuid.uuid4().hex[:12]}"
        self.rule_set = rule_set
        self.engine = PolicyEngine(rule_set)
        self.store = store or MemoryDocumentStore(response_delay=self.config.store_latency)
        self.identity = identity or MemoryIdentityProvider()
        self.decision_log = decision_log or MemoryDecisionLog()
        self.metrics = metrics
        self._sessions: List[Session] = []
        self._closed = False

    @classmethod
    async def create(cls, config: Optional[EnvironmentConfig] = None,
                     metrics: Optional[DecisionMetrics] = None) -> 'EvaluationEnvironment':
        """
        Create an environment, loading its rule source.

        Raises:
            RuleSourceError: If the rule source is missing or malformed
        """
        config = config or EnvironmentConfig()
        rule_set = await load_rule_set(config.rules_path)
        env = cls(rule_set, config, metrics=metrics)
        logger.info(f"Created evaluation environment {env.environment_id}")
        return env

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise EvaluationEnvironmentError(
                f"Environment {self.environment_id} has been destroyed",
                self.environment_id
            )

    async def session(
        self,
        principal_key: str,
        authenticated: bool,
        claims: Optional[Mapping[str, Any]] = None,
        email: Optional[str] = None
    ) -> Session:
        """Build a session bound to this environment."""
        self._ensure_open()
        session = await self.identity.build_session(
            principal_key,
            authenticated,
            claims,
            environment_id=self.environment_id,
            email=email
        )
        self._sessions.append(session)
        return session

    async def session_for_user(self, key: str) -> Session:
        """Sign in a user of this environment's identity provider."""
        self._ensure_open()
        session = await self.identity.session_for_user(key, environment_id=self.environment_id)
        self._sessions.append(session)
        return session

    async def seed(self, resource: Resource, data: Mapping[str, Any],
                   created_by: Optional[str] = None) -> Document:
        """Write a fixture document directly, bypassing the policy."""
        self._ensure_open()
        return await self.store.create(resource, data, created_by=created_by)

    async def execute(self, session: Session, operation: Operation) -> ExecutionResult:
        """
        Execute an operation on behalf of a session.

        The policy is consulted first; on deny the store is never touched.

        Raises:
            EvaluationEnvironmentError: If the environment is destroyed or the
                session belongs elsewhere
            InfrastructureError: If the store fails for reasons other than
                an invalid operation
        """
        self._ensure_open()
        if session.closed or session.environment_id != self.environment_id:
            raise EvaluationEnvironmentError(
                f"Session {session.session_id} is not bound to environment {self.environment_id}",
                self.environment_id
            )

        decision = self.engine.evaluate_operation(session.principal, operation)
        if self.metrics is not None:
            self.metrics.record_decision(operation.kind.value, operation.resource.collection, decision.allowed)

        if not decision.allowed:
            result = ExecutionResult(operation=operation, decision=decision)
            await self._record(session, result, "rejected")
            return result

        try:
            document = await self._apply(session, operation)
        except (DocumentExistsError, DocumentNotFoundError) as e:
            result = ExecutionResult(operation=operation, decision=decision, error=e)
            if self.metrics is not None:
                self.metrics.record_store_error(operation.kind.value, type(e).__name__)
            await self._record(session, result, "store_error")
            return result
        except Exception as e:
            logger.error(f"Backend failure on {operation.describe()} in {self.environment_id}: {e}")
            if self.metrics is not None:
                self.metrics.record_store_error(operation.kind.value, "infrastructure")
            await self._record(session, ExecutionResult(operation=operation, decision=decision), "infrastructure_error")
            raise InfrastructureError(
                f"Document store failed during {operation.describe()}: {e}",
                service_name="document_store",
                cause=e
            ) from e

        result = ExecutionResult(operation=operation, decision=decision, document=document)
        await self._record(session, result, "succeeded")
        return result

    async def _apply(self, session: Session, operation: Operation) -> Optional[Document]:
        resource = operation.resource
        payload = operation.payload or {}

        if operation.kind is OperationKind.CREATE:
            return await self.store.create(resource, payload, created_by=session.principal.key)
        elif operation.kind is OperationKind.READ:
            return await self.store.get(resource)
        elif operation.kind is OperationKind.UPDATE:
            return await self.store.update(resource, payload)
        else:
            return await self.store.delete(resource)

    async def _record(self, session: Session, result: ExecutionResult, outcome: str) -> None:
        await self.decision_log.log(DecisionEvent(
            principal=session.principal.key,
            operation=result.operation.kind.value,
            resource=result.operation.resource.path,
            allowed=result.decision.allowed,
            reason=result.decision.reason,
            environment_id=self.environment_id,
            session_id=session.session_id,
            outcome=outcome
        ))

    async def destroy(self) -> None:
        """
        Release everything the environment owns.

        Safe to call more than once. Every resource is released even if an
        earlier release fails; the first failure is re-raised afterwards.
        """
        if self._closed:
            return
        self._closed = True

        for session in self._sessions:
            session.close()
        self._sessions.clear()

        first_error: Optional[BaseException] = None
        for name, release in (
            ("store", self.store.close),
            ("identity", self.identity.close),
            ("decision_log", self.decision_log.close),
        ):
            try:
                await release()
            except Exception as e:
                logger.error(f"Failed to release {name} of {self.environment_id}: {e}")
                if first_error is None:
                    first_error = e

        logger.info(f"Destroyed evaluation environment {self.environment_id}")

        if first_error is not None:
            raise first_error


@asynccontextmanager
async def evaluation_environment(
    config: Optional[EnvironmentConfig] = None,
    metrics: Optional[DecisionMetrics] = None
) -> AsyncGenerator[EvaluationEnvironment, None]:
    """
    Context manager for an evaluation environment.

    The environment is destroyed on every exit path: normal completion,
    failed assertions, unexpected exceptions and cancellation.
    """
    env = await EvaluationEnvironment.create(config, metrics)
    try:
        yield env
    finally:
        await env.destroy()
