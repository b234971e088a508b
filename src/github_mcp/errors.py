"""Safe error types and serialization helpers.

Errors returned to agents must be non-secret and stable. Parameter validation
failures carry the offending parameter name so callers can fix their request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class SafeError(Exception):
    """An error safe to expose to agents.

    This must never include secrets (tokens, authorization headers).
    """

    code: str
    message: str
    hint: str | None = None
    status_code: int | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class ParameterError(SafeError):
    """A tool argument failed validation."""

    parameter: str | None = None


class MissingParameterError(ParameterError):
    """A required parameter is absent from the argument bag."""


class EmptyValueError(ParameterError):
    """A required string parameter is present but zero-length."""


class TypeMismatchError(ParameterError):
    """A present value does not have the expected type."""


@dataclass(frozen=True, slots=True)
class AcceptedError(SafeError):
    """GitHub accepted the request but is still processing it (HTTP 202).

    Not a failure. Dispatch reports it as a qualified success.
    """

    raw: bytes = field(default=b"", repr=False)


def missing_parameter(name: str) -> MissingParameterError:
    return MissingParameterError(
        code="UserInput",
        message=f"Missing required parameter: {name}",
        parameter=name,
    )


def empty_value(name: str) -> EmptyValueError:
    return EmptyValueError(
        code="UserInput",
        message=f"Parameter '{name}' must not be empty",
        parameter=name,
    )


def type_mismatch(name: str, *, expected: str, actual: str) -> TypeMismatchError:
    return TypeMismatchError(
        code="UserInput",
        message=f"Parameter '{name}' must be of type {expected}, got {actual}",
        parameter=name,
    )


def invalid_value(name: str, requirement: str) -> ParameterError:
    """Error for a well-typed value outside the accepted range or set."""
    return ParameterError(
        code="UserInput",
        message=f"Parameter '{name}' {requirement}",
        parameter=name,
    )


def github_accepted(*, raw: bytes = b"") -> AcceptedError:
    """Return the marker error for a 202 Accepted response."""
    return AcceptedError(
        code="Accepted",
        message="GitHub accepted the request; processing continues asynchronously",
        status_code=202,
        raw=raw,
    )


def github_auth_forbidden(*, status_code: int) -> SafeError:
    """Return a safe Forbidden error for GitHub auth failures.

    Used when GitHub returns 401/403 (bad or expired token, or missing scopes).
    """
    return SafeError(
        code="Forbidden",
        message="GitHub token is not authorized for this operation",
        hint="Check that the personal access token is valid and has the required scopes",
        status_code=status_code,
    )


def safe_error_to_result(err: SafeError) -> dict[str, Any]:
    """Convert a SafeError into the standard tool envelope."""
    out = to_error_result(code=err.code, message=err.message, hint=err.hint)
    if isinstance(err, ParameterError) and err.parameter:
        out["parameter"] = err.parameter
    return out


def to_error_result(*, code: str, message: str, hint: str | None = None) -> dict[str, Any]:
    """Build a standard tool error envelope."""
    out: dict[str, Any] = {"ok": False, "code": code, "message": message}
    if hint:
        out["hint"] = hint
    return out


def accepted_result(err: AcceptedError) -> dict[str, Any]:
    """Build the qualified-success envelope for an accepted, pending request."""
    return {"ok": True, "status": "accepted", "message": err.message}


def user_input_error(message: str, hint: str | None = None) -> dict[str, Any]:
    """Error for invalid tool arguments or unsupported operations."""
    return to_error_result(code="UserInput", message=message, hint=hint)


def forbidden_error(message: str, hint: str | None = None) -> dict[str, Any]:
    """Error for authorization-denied actions."""
    return to_error_result(code="Forbidden", message=message, hint=hint)


def internal_error(message: str = "Internal error") -> dict[str, Any]:
    """Error for unexpected failures."""
    return to_error_result(code="Internal", message=message)
