# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package types provides the shared error hierarchy for claimgate.
"""

from .errors import (
    ErrorCode,
    ClaimGateError,
    ValidationError,
    SetupError,
    RuleSourceError,
    CredentialsError,
    PrincipalNotFoundError,
    ClaimMutationError,
    StoreError,
    DocumentExistsError,
    DocumentNotFoundError,
    InfrastructureError,
    EvaluationEnvironmentError,
    ScenarioTimeoutError,
)

__all__ = [
    'ErrorCode',
    'ClaimGateError',
    'ValidationError',
    'SetupError',
    'RuleSourceError',
    'CredentialsError',
    'PrincipalNotFoundError',
    'ClaimMutationError',
    'StoreError',
    'DocumentExistsError',
    'DocumentNotFoundError',
    'InfrastructureError',
    'EvaluationEnvironmentError',
    'ScenarioTimeoutError',
]
