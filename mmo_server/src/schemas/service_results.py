"""
Structured result types for the character persistence layer.

Store and migration operations never raise to their callers. Instead they
return a ServiceResult carrying success, optional data, and a structured
error classification (what failed, and how severe it is), mirroring the
info / warning / severe tiers used in the logs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Generic, TypeVar

T = TypeVar('T')


class Severity(str, Enum):
    """Three-tier severity classification for swallowed errors."""

    INFO = "info"
    WARNING = "warning"
    SEVERE = "severe"


class ErrorKind(str, Enum):
    """What kind of failure a result or log record describes."""

    CONNECTIVITY = "connectivity"
    MIGRATION = "migration"
    STORE_OPERATION = "store_operation"
    CONSTRAINT_VIOLATION = "constraint_violation"
    NOT_FOUND = "not_found"
    CACHE_MISS = "cache_miss"


@dataclass
class ServiceResult(Generic[T]):
    """
    Generic service result with structured error information.

    Replaces the pattern of raising from repository calls: the caller decides
    what to do with a failure.
    """
    success: bool
    data: Optional[T] = None
    message: str = ""
    error_code: Optional[ErrorKind] = None
    severity: Optional[Severity] = None

    @classmethod
    def success_with_data(cls, data: T, message: str = "Operation successful") -> 'ServiceResult[T]':
        """Create successful result with data."""
        return cls(success=True, data=data, message=message)

    @classmethod
    def success_no_data(cls, message: str = "Operation successful") -> 'ServiceResult[None]':
        """Create successful result without data."""
        return cls(success=True, data=None, message=message)

    @classmethod
    def failure(
        cls,
        message: str,
        error_code: Optional[ErrorKind] = None,
        severity: Severity = Severity.SEVERE,
        data: Optional[T] = None,
    ) -> 'ServiceResult[T]':
        """Create failure result with error information."""
        return cls(
            success=False, data=data, message=message, error_code=error_code, severity=severity
        )

    def __bool__(self) -> bool:
        return self.success


def log_extra(error_code: ErrorKind, severity: Severity, **fields) -> dict:
    """Build the structured ``extra`` payload attached to failure log records."""
    return {"error_kind": error_code.value, "severity": severity.value, **fields}
