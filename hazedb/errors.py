"""
Error types for HazeDB.

Only misuse is raised. Ordinary outcomes such as a missing collection,
a missing document, a version conflict or an unknown query operator are
return values (False, None, empty results) and never appear here.

- HazeError: Base exception
- InvalidRequestError: Request parameters failed validation
- InvalidQueryError: Query parameters are malformed
- UnknownOperationError: dispatch() called with an unknown operation

Invariants:
    - All errors inherit from HazeError
    - Errors carry a machine-readable code and a details dict
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class HazeError(Exception):
    """Base exception for all HazeDB errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "HAZE_ERROR"
        self.details = details or {}


class InvalidRequestError(HazeError):
    """Request parameters failed validation.

    Raised when:
    - A required parameter is missing
    - A parameter has the wrong type (e.g. "doc" is not a mapping)
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        code: str = "INVALID_REQUEST",
    ) -> None:
        super().__init__(
            message,
            code=code,
            details={"operation": operation, "errors": errors or []},
        )
        self.operation = operation
        self.errors = errors or []


class InvalidQueryError(InvalidRequestError):
    """Query parameters are malformed.

    A where-clause that is not a (field, operator, value) triple is
    malformed. An unrecognised operator is not: it yields an empty result.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        super().__init__(message, operation="query", errors=errors, code="INVALID_QUERY")


class UnknownOperationError(HazeError):
    """dispatch() was asked for an operation it does not know."""

    def __init__(self, operation: str, known: Optional[List[str]] = None) -> None:
        known = known or []
        msg = f"Unknown operation '{operation}'"
        if known:
            msg += f". Expected one of: {', '.join(known)}"

        super().__init__(
            msg,
            code="UNKNOWN_OPERATION",
            details={"operation": operation, "known": known},
        )
        self.operation = operation
        self.known = known
