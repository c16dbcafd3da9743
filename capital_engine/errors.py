"""Exception Hierarchy.

Typed errors raised by the allocation, risk and governance engines, plus
the non-fatal warning attached to degraded results.
"""

from typing import Any, Dict, List, Optional


class CapitalEngineError(Exception):
    """Base exception for all engine errors.

    Lets callers running batches catch the whole hierarchy with a single
    handler while still distinguishing the concrete failure.
    """

    def __init__(
        self,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or []


class ConfigurationError(CapitalEngineError):
    """Raised when a caller invariant is violated (too few assets, bad method)."""


class InsufficientDataError(CapitalEngineError):
    """Raised when too few aligned observations exist for an estimate."""

    def __init__(
        self,
        message: str = "Insufficient history",
        observations: int = 0,
        required: int = 0,
    ):
        details = [{"observations": observations, "required": required}]
        super().__init__(message, details)
        self.observations = observations
        self.required = required


class DataValidationError(CapitalEngineError, ValueError):
    """Raised when supplied data contains null, NaN or non-positive values."""

    def __init__(self, message: str = "Validation failed", field: Optional[str] = None):
        details = [{"field": field, "issue": message}] if field else None
        super().__init__(message, details)
        self.field = field


class DegradedResultWarning(UserWarning):
    """Non-fatal caveat attached to an otherwise valid result.

    Never raised by the engines. Instances are collected on the result's
    ``warnings`` tuple so the presentation layer can show them inline.
    """

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"DegradedResultWarning(code={self.code!r}, message={self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DegradedResultWarning):
            return NotImplemented
        return (self.code, self.message) == (other.code, other.message)

    def __hash__(self) -> int:
        return hash((self.code, self.message))

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}
