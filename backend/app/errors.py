"""Error taxonomy shared by the request pipeline and business handlers.

Pipeline stages return these as values; handlers may raise them. Either way
the routing layer renders one structured response per failed request.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Top-level failure kind exposed to clients."""

    validation_error = "validation_error"
    authentication_error = "authentication_error"
    authorization_error = "authorization_error"
    not_found = "not_found"
    conflict = "conflict"


class AuthFailure(str, Enum):
    """Why a credential was rejected."""

    missing_credential = "missing_credential"
    malformed_credential = "malformed_credential"
    expired_credential = "expired_credential"
    invalid_credential = "invalid_credential"


class AccessFailure(str, Enum):
    """Why an authenticated identity was denied."""

    not_a_member = "not_a_member"
    insufficient_role = "insufficient_role"


@dataclass(frozen=True)
class FieldError:
    """A single schema violation."""

    path: str
    message: str
    type: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "message": self.message, "type": self.type}


class ApiError(Exception):
    """Base class for request-scoped, non-retryable failures."""

    kind: ErrorKind
    status_code: int = 400

    def __init__(
        self,
        message: str,
        *,
        reason: str | None = None,
        field_errors: list[FieldError] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.field_errors = list(field_errors or [])

    def to_body(self) -> dict[str, Any]:
        """Render the structured error body."""
        body: dict[str, Any] = {
            "success": False,
            "kind": self.kind.value,
            "reason": self.reason,
            "message": self.message,
        }
        if self.field_errors:
            body["field_errors"] = [err.to_dict() for err in self.field_errors]
        return body

    def headers(self) -> dict[str, str]:
        return {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, reason={self.reason!r})"


class ValidationError(ApiError):
    """Malformed or out-of-bounds input."""

    kind = ErrorKind.validation_error
    status_code = 400


class AuthenticationError(ApiError):
    """Missing, malformed, expired or invalid credential."""

    kind = ErrorKind.authentication_error
    status_code = 401

    def __init__(self, message: str, *, reason: AuthFailure) -> None:
        super().__init__(message, reason=reason.value)

    def headers(self) -> dict[str, str]:
        return {"WWW-Authenticate": "Bearer"}


class AuthorizationError(ApiError):
    """Authenticated but not allowed (not a member, or role too low)."""

    kind = ErrorKind.authorization_error
    status_code = 403

    def __init__(self, message: str, *, reason: AccessFailure) -> None:
        super().__init__(message, reason=reason.value)


class NotFoundError(ApiError):
    """Referenced resource does not exist."""

    kind = ErrorKind.not_found
    status_code = 404


class ConflictError(ApiError):
    """Write would violate a uniqueness rule."""

    kind = ErrorKind.conflict
    status_code = 409
