"""Authentication of outgoing requests.

Resolves a credential for an endpoint and applies it to the request's
parameters or headers, producing everything the transport needs.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional

from commsauth.credentials import (
    AsymmetricKey,
    Credential,
    CredentialType,
    KeyPair,
    PresharedSigningSecret,
    TokenSupplier,
)
from commsauth.negotiation import CredentialNegotiator
from commsauth.signing import Clock, sign
from commsauth.store import CredentialStore

logger = logging.getLogger(__name__)

PARAM_API_KEY = "api_key"
PARAM_API_SECRET = "api_secret"


@dataclass
class AuthenticatedRequest:
    """Result of authenticating a request.

    Attributes:
        params: Request parameters, including any credential parameters
        headers: HTTP headers to include
        credential_type: Type of the credential that was applied
    """

    params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    credential_type: Optional[CredentialType] = None

    def merge_headers(self, headers: Mapping[str, str]) -> "AuthenticatedRequest":
        """Return a copy with extra headers; authentication headers win."""
        return AuthenticatedRequest(
            params=dict(self.params),
            headers={**headers, **self.headers},
            credential_type=self.credential_type,
        )


def build_bearer_auth_header(token: str) -> str:
    """Build HTTP Bearer Authentication header value.

    Args:
        token: Bearer token

    Returns:
        Header value string (e.g., "Bearer abc123")
    """
    return f"Bearer {token}"


def apply_key_pair(credential: KeyPair, params: Dict[str, Any]) -> AuthenticatedRequest:
    params[PARAM_API_KEY] = credential.api_key
    params[PARAM_API_SECRET] = credential.api_secret
    return AuthenticatedRequest(params=params, credential_type=credential.credential_type)


def apply_signature(
    credential: PresharedSigningSecret,
    params: Dict[str, Any],
    clock: Clock = time.time,
) -> AuthenticatedRequest:
    """Attach the API key and sign the parameters.

    The account secret must never accompany a signed request, so any
    ``api_secret`` parameter is dropped before signing.
    """
    params.pop(PARAM_API_SECRET, None)
    params[PARAM_API_KEY] = credential.api_key
    config = credential.signing
    signed = sign(
        params,
        credential.secret,
        config.mode,
        hash_type=config.hash_type,
        clock=clock,
        signature_param=config.signature_param,
    )
    return AuthenticatedRequest(params=signed, credential_type=credential.credential_type)


def apply_token(credential: TokenSupplier, params: Dict[str, Any]) -> AuthenticatedRequest:
    return AuthenticatedRequest(
        params=params,
        headers={"Authorization": build_bearer_auth_header(credential.get_token())},
        credential_type=credential.credential_type,
    )


def apply_application_jwt(
    credential: AsymmetricKey,
    params: Dict[str, Any],
    clock: Clock = time.time,
) -> AuthenticatedRequest:
    return AuthenticatedRequest(
        params=params,
        headers={"Authorization": build_bearer_auth_header(credential.generate_jwt(clock=clock))},
        credential_type=credential.credential_type,
    )


class RequestAuthenticator:
    """Negotiates and applies authentication for outgoing requests.

    Performs no network I/O itself; the returned
    :class:`AuthenticatedRequest` is handed to the transport.
    """

    def __init__(self, store: CredentialStore, clock: Clock = time.time):
        """Initialize the authenticator.

        Args:
            store: Credentials configured on the client
            clock: Wall clock used for signature timestamps and JWT issue times
        """
        self._negotiator = CredentialNegotiator(store)
        self._clock = clock

    @property
    def negotiator(self) -> CredentialNegotiator:
        return self._negotiator

    def authenticate(
        self,
        acceptable: Iterable[CredentialType],
        params: Optional[Mapping[str, Any]] = None,
    ) -> AuthenticatedRequest:
        """Authenticate one outgoing request.

        Args:
            acceptable: Credential types the endpoint accepts, in preference order
            params: Request parameters; not modified

        Returns:
            AuthenticatedRequest ready for the transport

        Raises:
            NoAcceptableCredentialError: If no accepted credential is configured
        """
        credential = self._negotiator.select(acceptable)
        return self.apply(credential, params)

    def apply(
        self, credential: Credential, params: Optional[Mapping[str, Any]] = None
    ) -> AuthenticatedRequest:
        """Apply a specific credential to a copy of ``params``."""
        working = dict(params or {})
        logger.debug("Applying %s credential", type(credential).__name__)

        if isinstance(credential, PresharedSigningSecret):
            return apply_signature(credential, working, clock=self._clock)
        elif isinstance(credential, KeyPair):
            return apply_key_pair(credential, working)
        elif isinstance(credential, TokenSupplier):
            return apply_token(credential, working)
        elif isinstance(credential, AsymmetricKey):
            return apply_application_jwt(credential, working, clock=self._clock)
        else:
            raise TypeError(f"Unsupported credential: {type(credential).__name__}")
