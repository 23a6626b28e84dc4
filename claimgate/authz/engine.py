"""
Core authorization engine for claimgate.
Implements policy evaluation and access control decisions.

The engine is a pure function of (principal, operation, resource, payload):
no clock, no I/O, no state. Anything not explicitly allowed is denied.
"""

from typing import Any, Mapping, Optional, Union
import logging

from ..claims.types import Principal
from .rules import RuleSet
from .types import AccessRequest, Decision, Operation, OperationKind, Resource


logger = logging.getLogger(__name__)

REASON_UNAUTHENTICATED = "unauthenticated"


class PolicyEngine:
    """
    Policy evaluation engine for authorization decisions.
    """

    def __init__(self, rule_set: RuleSet):
        self.rule_set = rule_set

    def evaluate(
        self,
        principal: Principal,
        operation: Union[OperationKind, str],
        resource: Resource,
        payload: Optional[Mapping[str, Any]] = None
    ) -> Decision:
        """
        Evaluate an operation against the rule set.

        Args:
            principal: The identity attempting the operation
            operation: Operation kind (create, read, update, delete)
            resource: The target resource
            payload: Proposed document for writes

        Returns:
            Decision: The authorization decision
        """
        kind = OperationKind.parse(operation)
        request = AccessRequest(principal=principal, kind=kind, resource=resource, payload=payload)

        decision = self._decide(request)
        logger.debug(
            f"{principal.key} {kind.value} {resource.path}: "
            f"{'allow' if decision.allowed else 'deny'} ({decision.reason})"
        )
        return decision

    def evaluate_operation(self, principal: Principal, operation: Operation) -> Decision:
        """Evaluate an Operation value."""
        return self.evaluate(principal, operation.kind, operation.resource, operation.payload)

    def _decide(self, request: AccessRequest) -> Decision:
        # Unauthenticated principals never get through, whatever the rules say.
        if not request.principal.authenticated:
            return Decision.deny(REASON_UNAUTHENTICATED)

        collection = request.resource.collection
        if not self.rule_set.has_collection(collection):
            return Decision.deny(f"no rules for collection '{collection}'")

        rule = self.rule_set.rule_for(collection, request.kind)
        if rule is None:
            return Decision.deny(
                f"{request.kind.value} is not permitted on '{collection}'"
            )

        try:
            satisfied = rule.condition.evaluate(request)
        except Exception as e:
            # Fail closed on anything a condition cannot handle.
            logger.warning(f"Condition for {rule.rule_id} raised {e!r}; denying")
            return Decision.deny(rule.deny_reason, rule.rule_id)

        if satisfied:
            return Decision.allow(f"allowed by {rule.rule_id}", rule.rule_id)
        return Decision.deny(rule.deny_reason, rule.rule_id)
