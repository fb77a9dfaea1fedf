"""Exception classes for commsauth."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional


class CommsAuthError(Exception):
    """Base exception for all commsauth errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class NoAcceptableCredentialError(CommsAuthError):
    """Raised when no configured credential is accepted by an endpoint.

    The client was not configured with sufficient credentials for the
    operation. Retrying cannot succeed until a credential is added.
    """

    def __init__(self, available: Iterable[Any], acceptable: Iterable[Any]):
        self.available = tuple(available)
        self.acceptable = tuple(acceptable)
        available_values = [_type_name(t) for t in self.available]
        acceptable_values = [_type_name(t) for t in self.acceptable]
        available_names = ", ".join(sorted(available_values)) or "none"
        acceptable_names = ", ".join(acceptable_values) or "none"
        super().__init__(
            f"No acceptable credential available: configured [{available_names}], "
            f"endpoint accepts [{acceptable_names}]",
            error_code="NO_ACCEPTABLE_CREDENTIAL",
            details={"available": available_values, "acceptable": acceptable_values},
        )


def _type_name(credential_type: Any) -> str:
    return str(getattr(credential_type, "value", credential_type))


class CredentialConfigurationError(CommsAuthError):
    """Raised for incomplete or contradictory credential configuration."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="INVALID_CONFIGURATION", details=details)


class InvalidPrivateKeyError(CommsAuthError):
    """Raised when an application private key cannot be loaded."""

    def __init__(self, message: str):
        super().__init__(message, error_code="INVALID_PRIVATE_KEY")


class TokenUnavailableError(CommsAuthError):
    """Raised when a bearer token cannot be obtained for a request."""

    def __init__(self, message: str, source_id: Optional[str] = None):
        super().__init__(
            message,
            error_code="TOKEN_UNAVAILABLE",
            details={"source_id": source_id} if source_id else None,
        )
        self.source_id = source_id
