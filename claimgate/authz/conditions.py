"""
Authorization conditions for claimgate.
Implements the boolean condition nodes a rule set is built from.

Conditions are pure: they look only at the access request they are given.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ..claims.types import strict_equals
from .types import AccessRequest


class Condition(ABC):
    """
    Policy condition interface.
    """

    @abstractmethod
    def evaluate(self, request: AccessRequest) -> bool:
        """
        Evaluate the condition against an access request.

        Args:
            request: The access request to evaluate

        Returns:
            bool: True if condition is satisfied, False otherwise
        """
        pass

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Convert condition to its rule-source representation."""
        pass


class AuthenticatedCondition(Condition):
    """
    Matches on the principal's authentication state.
    """

    def __init__(self, required: bool = True):
        self.required = bool(required)

    def evaluate(self, request: AccessRequest) -> bool:
        return request.principal.authenticated is self.required

    def to_dict(self) -> Dict[str, Any]:
        return {'authenticated': self.required}

    def __repr__(self) -> str:
        return f"AuthenticatedCondition(required={self.required})"


class ClaimCondition(Condition):
    """
    Claim-based condition.
    Matches when the principal's claim equals the expected value.

    Recognized claims are parsed first, so a malformed value reads as the
    claim's safe default and can never satisfy a check for True.
    """

    def __init__(self, claim: str, equals: Any = True):
        self.claim = claim
        self.equals = equals

    def evaluate(self, request: AccessRequest) -> bool:
        return strict_equals(request.principal.claims.get_claim(self.claim), self.equals)

    def to_dict(self) -> Dict[str, Any]:
        return {'claim': self.claim, 'equals': self.equals}

    def __repr__(self) -> str:
        return f"ClaimCondition(claim={self.claim!r}, equals={self.equals!r})"


class PayloadPresentCondition(Condition):
    """
    Matches on whether the operation carries a payload.
    """

    def __init__(self, required: bool = True):
        self.required = bool(required)

    def evaluate(self, request: AccessRequest) -> bool:
        return request.has_payload is self.required

    def to_dict(self) -> Dict[str, Any]:
        return {'payload_present': self.required}

    def __repr__(self) -> str:
        return f"PayloadPresentCondition(required={self.required})"


class CompoundCondition(Condition):
    """
    Compound condition that combines multiple conditions with logical operators.
    """

    def __init__(self, conditions: List[Condition], operator: str = "AND"):
        """
        Initialize compound condition.

        Args:
            conditions: List of conditions to combine
            operator: Logical operator ("AND", "OR", "NOT")
        """
        self.conditions = list(conditions)
        self.operator = operator.upper()

        if self.operator not in ["AND", "OR", "NOT"]:
            raise ValueError(f"Unsupported operator: {operator}")

        if self.operator == "NOT" and len(self.conditions) != 1:
            raise ValueError("NOT operator requires exactly one condition")

        # An empty OR can never be satisfied; an empty AND would always be.
        if self.operator == "AND" and not self.conditions:
            raise ValueError("AND operator requires at least one condition")

    def evaluate(self, request: AccessRequest) -> bool:
        if self.operator == "AND":
            return all(condition.evaluate(request) for condition in self.conditions)

        elif self.operator == "OR":
            return any(condition.evaluate(request) for condition in self.conditions)

        elif self.operator == "NOT":
            return not self.conditions[0].evaluate(request)

        return False

    def to_dict(self) -> Dict[str, Any]:
        if self.operator == "NOT":
            return {'not': self.conditions[0].to_dict()}
        key = 'all' if self.operator == "AND" else 'any'
        return {key: [condition.to_dict() for condition in self.conditions]}

    def __repr__(self) -> str:
        return f"CompoundCondition({self.operator}, {self.conditions!r})"


def all_of(*conditions: Condition) -> CompoundCondition:
    return CompoundCondition(list(conditions), "AND")


def any_of(*conditions: Condition) -> CompoundCondition:
    return CompoundCondition(list(conditions), "OR")


def not_(condition: Condition) -> CompoundCondition:
    return CompoundCondition([condition], "NOT")
