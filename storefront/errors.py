"""
Error taxonomy shared by the request pipeline and the services.

A `Rejection` is a value: pipeline stages return one to stop the chain.
A `ServiceError` is the exception services raise to carry a Rejection up to
the HTTP layer, where it is rendered as `{"message", "code"}`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Broad failure classes and the HTTP status each surfaces as."""

    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UPLOAD_REJECTED = "upload_rejected"
    DEPENDENCY_FAILURE = "dependency_failure"
    CONFIGURATION = "configuration"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UPLOAD_REJECTED: 400,
    ErrorKind.DEPENDENCY_FAILURE: 500,
    ErrorKind.CONFIGURATION: 500,
}


@dataclass(frozen=True)
class Rejection:
    """Why a request was refused."""

    kind: ErrorKind
    code: str
    message: str

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def to_body(self) -> dict[str, str]:
        return {"message": self.message, "code": self.code}


class ServiceError(Exception):
    """Raised by services and dependencies; carries a Rejection."""

    def __init__(self, rejection: Rejection):
        super().__init__(rejection.message)
        self.rejection = rejection

    @classmethod
    def of(cls, kind: ErrorKind, code: str, message: str) -> ServiceError:
        return cls(Rejection(kind=kind, code=code, message=message))


# =============================================================================
# Common rejections
# =============================================================================


def missing_field(message: str = "All fields are required") -> ServiceError:
    return ServiceError.of(ErrorKind.VALIDATION, "MISSING_FIELD", message)


def internal_error() -> Rejection:
    return Rejection(ErrorKind.DEPENDENCY_FAILURE, "INTERNAL_ERROR", "Internal Server Error")
