"""
claimgate Python Package

Claims-based access policy engine with a disposable evaluation environment
and a conformance harness.
"""

__version__ = "0.1.0"

from .authz import (
    ADMIN_DOCS,
    Decision,
    Operation,
    OperationKind,
    PolicyEngine,
    Resource,
    RuleSet,
    load_rule_set,
)
from .claims import Claims, Principal
from .core import EnvironmentConfig, HarnessConfig
from .environment import EvaluationEnvironment, ExecutionResult, evaluation_environment
from .harness import (
    ConformanceHarness,
    Expectation,
    HarnessReport,
    default_scenarios,
    load_scenarios,
)
from .identity import FileIdentityProvider, MemoryIdentityProvider, resolve_identifier
from .types import ClaimGateError

__all__ = [
    '__version__',
    'ADMIN_DOCS',
    'Claims',
    'ClaimGateError',
    'ConformanceHarness',
    'Decision',
    'EnvironmentConfig',
    'EvaluationEnvironment',
    'ExecutionResult',
    'Expectation',
    'FileIdentityProvider',
    'HarnessConfig',
    'HarnessReport',
    'MemoryIdentityProvider',
    'Operation',
    'OperationKind',
    'PolicyEngine',
    'Principal',
    'Resource',
    'RuleSet',
    'default_scenarios',
    'evaluation_environment',
    'load_rule_set',
    'load_scenarios',
    'resolve_identifier',
]
