"""Domain-specific exceptions"""

from enum import Enum
from typing import Dict


class ErrorKind(str, Enum):
    """Failure classification used by the retry layer"""

    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    FATAL = "fatal"


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Financial inputs are negative or malformed"""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        detail = "; ".join(f"{field}: {message}" for field, message in self.errors.items())
        super().__init__(f"Invalid financial data: {detail}")


class RemoteServiceError(DomainException):
    """Reasoning service answered with an HTTP error status"""

    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        text = f"Reasoning service error {status_code}"
        super().__init__(f"{text}: {message}" if message else text)


class ContractError(DomainException):
    """Reasoning service payload is missing required fields or has the wrong shape"""

    pass


class InvocationError(DomainException):
    """Remote call failed after exhausting retries"""

    kind = ErrorKind.TRANSIENT

    def __init__(self, message: str, attempts: int = 0):
        self.attempts = attempts
        super().__init__(message)


class RateLimitError(InvocationError):
    """Quota exhausted on every attempt"""

    kind = ErrorKind.RATE_LIMITED


class TransientError(InvocationError):
    """Network or server failures persisted across every attempt"""

    kind = ErrorKind.TRANSIENT


class PipelineBusyError(DomainException):
    """An assessment is already in flight for this user"""

    pass


class ReportNotFoundError(DomainException):
    """Requested report is not in the user's history"""

    pass
