"""Service error hierarchy for upstream data access and quest validation.

This module defines the exception hierarchy for service-level errors:
- ServiceError: Base for all service errors
- TransientError: Retryable errors (network, rate limits, timeouts)
- PermanentError: Non-retryable errors (bad criteria, configuration)
"""


class ServiceError(Exception):
    """Base exception for all service errors."""

    pass


class TransientError(ServiceError):
    """Transient error that may succeed on retry.

    Examples:
    - Network timeouts
    - Upstream 5xx responses
    - Retry budget exhausted on a flaky endpoint
    """

    pass


class PermanentError(ServiceError):
    """Permanent error that will not succeed on retry.

    Examples:
    - Unsupported criteria type
    - Malformed criteria parameters
    """

    pass


# Kraxel data API errors
class KraxelError(ServiceError):
    """Base exception for Kraxel API errors."""

    pass


class RequestFailedError(KraxelError, TransientError):
    """Request still failing after all retry attempts.

    The last underlying error is available as ``cause`` and is chained as
    ``__cause__``.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


# Criteria errors
class CriteriaError(PermanentError):
    """Base exception for quest criteria errors."""

    pass


class UnsupportedCriteriaError(CriteriaError):
    """Criteria type tag is not one of the known kinds."""

    pass


class InvalidCriteriaError(CriteriaError):
    """Criteria parameters are missing or malformed."""

    pass


class QuestTimeoutError(TransientError):
    """Quest validation exceeded its time budget."""

    pass
