"""Credential dataclasses.

A client holds at most one credential of each type. Endpoints declare which
:class:`CredentialType` tags they accept; see :mod:`commsauth.negotiation`.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union

from cryptography.hazmat.primitives.asymmetric import rsa

from commsauth.jwt_tokens import generate_application_jwt, load_private_key
from commsauth.signing import SigningConfig


class CredentialType(Enum):
    """Tag identifying one kind of authentication material."""

    KEY_PAIR = "key_pair"
    PRESHARED_SIGNING_SECRET = "preshared_signing_secret"
    TOKEN_SUPPLIER = "token_supplier"
    ASYMMETRIC_KEY = "asymmetric_key"


@dataclass(frozen=True)
class KeyPair:
    """API key and secret sent as request parameters.

    Attributes:
        api_key: Public account key
        api_secret: Account secret
    """

    api_key: str
    api_secret: str = field(repr=False)

    def __post_init__(self):
        if not self.api_key or not self.api_secret:
            raise ValueError("KeyPair requires both api_key and api_secret")

    @property
    def credential_type(self) -> CredentialType:
        return CredentialType.KEY_PAIR


@dataclass(frozen=True)
class PresharedSigningSecret:
    """Signature secret used to sign request parameters.

    The API key travels in clear; the secret never leaves the client.

    Attributes:
        api_key: Public account key
        secret: Pre-shared signing secret
        signing: Signing contract agreed with the platform
    """

    api_key: str
    secret: str = field(repr=False)
    signing: SigningConfig

    def __post_init__(self):
        if not self.api_key or not self.secret:
            raise ValueError("PresharedSigningSecret requires both api_key and secret")
        if not isinstance(self.signing, SigningConfig):
            raise ValueError("PresharedSigningSecret requires an explicit SigningConfig")

    @property
    def credential_type(self) -> CredentialType:
        return CredentialType.PRESHARED_SIGNING_SECRET


@dataclass(frozen=True)
class TokenSupplier:
    """Bearer token obtained from a provider on every request.

    The provider may cache and refresh tokens internally, e.g.
    :meth:`commsauth.token_manager.TokenManager.supplier`.

    Attributes:
        token_provider: Callable returning the current access token
    """

    token_provider: Callable[[], str]

    def __post_init__(self):
        if not callable(self.token_provider):
            raise ValueError("TokenSupplier requires a callable token_provider")

    @property
    def credential_type(self) -> CredentialType:
        return CredentialType.TOKEN_SUPPLIER

    def get_token(self) -> str:
        return self.token_provider()


@dataclass(frozen=True)
class AsymmetricKey:
    """Application id and RSA private key used to mint JWTs.

    Attributes:
        application_id: Application identifier
        private_key: RSA private key (PEM/DER data is loaded on construction)
        token_ttl_seconds: Optional lifetime of generated JWTs
    """

    application_id: str
    private_key: rsa.RSAPrivateKey = field(repr=False)
    token_ttl_seconds: Optional[int] = None

    def __post_init__(self):
        if not self.application_id:
            raise ValueError("AsymmetricKey requires an application_id")
        if isinstance(self.private_key, (bytes, str)):
            # frozen dataclass: replace raw key material with the loaded key
            object.__setattr__(self, "private_key", load_private_key(self.private_key))

    @property
    def credential_type(self) -> CredentialType:
        return CredentialType.ASYMMETRIC_KEY

    def generate_jwt(self, clock: Callable[[], float] = time.time) -> str:
        """Mint a fresh JWT for this application."""
        return generate_application_jwt(
            self.application_id,
            self.private_key,
            ttl_seconds=self.token_ttl_seconds,
            clock=clock,
        )


Credential = Union[KeyPair, PresharedSigningSecret, TokenSupplier, AsymmetricKey]
