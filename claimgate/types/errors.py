"""
Error types and error codes for claimgate.
Provides structured error handling across all packages.

Policy denials are not errors: they are Decision values. The exceptions here
cover setup faults, infrastructure faults and invalid input.
"""

from enum import Enum
from typing import Dict, Any, Optional


class ErrorCode(str, Enum):
    """Standard error codes used across claimgate."""
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    TIMEOUT = "timeout"
    INTERNAL_ERROR = "internal_error"
    SERVICE_UNAVAILABLE = "service_unavailable"
    VALIDATION_FAILED = "validation_failed"
    CONFIGURATION_ERROR = "configuration_error"
    RULE_SOURCE_ERROR = "rule_source_error"
    CREDENTIALS_ERROR = "credentials_error"
    CLAIM_MUTATION_FAILED = "claim_mutation_failed"
    ENVIRONMENT_ERROR = "environment_error"

    def __str__(self) -> str:
        return self.value


# Error code constants for easy import
NOT_FOUND = ErrorCode.NOT_FOUND
ALREADY_EXISTS = ErrorCode.ALREADY_EXISTS
TIMEOUT = ErrorCode.TIMEOUT
INTERNAL_ERROR = ErrorCode.INTERNAL_ERROR
SERVICE_UNAVAILABLE = ErrorCode.SERVICE_UNAVAILABLE
VALIDATION_FAILED = ErrorCode.VALIDATION_FAILED
CONFIGURATION_ERROR = ErrorCode.CONFIGURATION_ERROR
RULE_SOURCE_ERROR = ErrorCode.RULE_SOURCE_ERROR
CREDENTIALS_ERROR = ErrorCode.CREDENTIALS_ERROR
CLAIM_MUTATION_FAILED = ErrorCode.CLAIM_MUTATION_FAILED
ENVIRONMENT_ERROR = ErrorCode.ENVIRONMENT_ERROR


class ClaimGateError(Exception):
    """Base exception for all claimgate errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            'error': self.error_code.value,
            'message': self.message,
            'details': self.details
        }

        if self.cause:
            result['cause'] = str(self.cause)

        return result

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"


class ValidationError(ClaimGateError):
    """Raised when validation fails."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, VALIDATION_FAILED, details)
        self.field = field
        self.value = value

        if field:
            self.details['field'] = field
        if value is not None:
            self.details['value'] = str(value)


class SetupError(ClaimGateError):
    """
    Raised when an evaluation run cannot be set up.

    Setup faults are fatal: the harness aborts before (or instead of)
    running further scenarios.
    """

    def __init__(
        self,
        message: str,
        artifact: Optional[str] = None,
        error_code: ErrorCode = CONFIGURATION_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message, error_code, details, cause)
        self.artifact = artifact

        if artifact:
            self.details['artifact'] = artifact


class RuleSourceError(SetupError):
    """Raised when the rule source is missing, unreadable or malformed."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message, path, RULE_SOURCE_ERROR, details, cause)
        self.path = path


class CredentialsError(SetupError):
    """Raised when the administrative credentials file is missing or invalid."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message, path, CREDENTIALS_ERROR, details, cause)
        self.path = path


class PrincipalNotFoundError(ClaimGateError):
    """Raised when an identifier does not resolve to a known principal."""

    def __init__(self, identifier: str, lookup: str = "key"):
        super().__init__(
            f"No principal found for {lookup} '{identifier}'",
            NOT_FOUND,
            {'identifier': identifier, 'lookup': lookup}
        )
        self.identifier = identifier
        self.lookup = lookup


class ClaimMutationError(ClaimGateError):
    """Raised when a claim cannot be written to a principal."""

    def __init__(
        self,
        message: str,
        identifier: Optional[str] = None,
        claim: Optional[str] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message, CLAIM_MUTATION_FAILED, cause=cause)
        if identifier:
            self.details['identifier'] = identifier
        if claim:
            self.details['claim'] = claim


class StoreError(ClaimGateError):
    """Base class for simulated document store errors."""

    def __init__(
        self,
        operation: str,
        path: str = "",
        message: str = "",
        error_code: ErrorCode = INTERNAL_ERROR,
        cause: Optional[Exception] = None
    ):
        super().__init__(
            f"Store error in {operation}: {message}",
            error_code,
            {'operation': operation, 'path': path},
            cause
        )
        self.operation = operation
        self.path = path


class DocumentExistsError(StoreError):
    """Raised when creating a document that already exists."""

    def __init__(self, operation: str, path: str):
        super().__init__(operation, path, f"Document {path} already exists", ALREADY_EXISTS)


class DocumentNotFoundError(StoreError):
    """Raised when updating or deleting a document that does not exist."""

    def __init__(self, operation: str, path: str):
        super().__init__(operation, path, f"Document {path} not found", NOT_FOUND)


class InfrastructureError(ClaimGateError):
    """
    Raised when a backend fails while executing an allowed operation.

    Never used for policy denials.
    """

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message, SERVICE_UNAVAILABLE, cause=cause)
        self.service_name = service_name

        if service_name:
            self.details['service_name'] = service_name


class EvaluationEnvironmentError(ClaimGateError):
    """Raised on misuse of an evaluation environment (closed, foreign session)."""

    def __init__(self, message: str, environment_id: Optional[str] = None):
        super().__init__(message, ENVIRONMENT_ERROR)
        self.environment_id = environment_id

        if environment_id:
            self.details['environment_id'] = environment_id


class ScenarioTimeoutError(ClaimGateError):
    """Raised when a scenario neither succeeds nor fails in time."""

    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        scenario: Optional[str] = None
    ):
        super().__init__(message, TIMEOUT)
        self.timeout_seconds = timeout_seconds
        self.scenario = scenario

        if timeout_seconds:
            self.details['timeout_seconds'] = timeout_seconds
        if scenario:
            self.details['scenario'] = scenario
