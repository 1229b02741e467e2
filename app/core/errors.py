"""
Structured results for slot and booking operations.

Services never raise for business-rule failures. They return a
``ServiceResult`` carrying the error kind (which decides the HTTP status)
and a specific code (e.g. ``DUPLICATE_DATE``, ``CANNOT_CANCEL``) so callers
can tell "not found" from "illegal state" from "conflict".
"""

import enum
from typing import Any, Dict, Generic, Optional, TypeVar

from fastapi import HTTPException, status

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    STATE_ILLEGAL = "STATE_ILLEGAL"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"


HTTP_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.STATE_ILLEGAL: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CAPACITY_EXCEEDED: status.HTTP_409_CONFLICT,
    ErrorKind.DEPENDENCY_FAILURE: status.HTTP_400_BAD_REQUEST,
}


class ServiceResult(Generic[T]):
    __slots__ = ("success", "data", "kind", "code", "message", "details")

    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        kind: Optional[ErrorKind] = None,
        code: Optional[str] = None,
        message: str = "",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.success = success
        self.data = data
        self.kind = kind
        self.code = code
        self.message = message
        self.details = details or {}

    @classmethod
    def ok(cls, data: Optional[T] = None, message: str = "", **details) -> "ServiceResult[T]":
        return cls(True, data=data, message=message, details=details)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        code: str,
        message: str,
        **details,
    ) -> "ServiceResult[T]":
        return cls(False, kind=kind, code=code, message=message, details=details)

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        if self.success:
            return f"ServiceResult(success=True, data={self.data!r})"
        return f"ServiceResult(success=False, kind={self.kind}, code={self.code!r})"


def raise_for_result(result: ServiceResult) -> Any:
    """Return ``result.data`` or raise the HTTPException matching its kind."""
    if result.success:
        return result.data
    raise HTTPException(
        status_code=HTTP_STATUS_BY_KIND.get(result.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={
            "code": result.code,
            "message": result.message,
            "details": result.details,
        },
    )
