"""Authentication for communications-platform API clients.

This package provides:
- Credential types and a per-client credential store
- Negotiation of the credential an endpoint accepts
- Canonical request signing and verification with a pre-shared secret
- Application JWTs for asymmetric-key authentication
- Bearer token supply with automatic renewal
- Verification of inbound callbacks in Flask applications
"""

from commsauth.authenticator import (
    AuthenticatedRequest,
    RequestAuthenticator,
    build_bearer_auth_header,
)
from commsauth.config import (
    ClientSettings,
    build_credential_store,
    load_credential_store,
    load_settings,
)
from commsauth.credentials import (
    AsymmetricKey,
    Credential,
    CredentialType,
    KeyPair,
    PresharedSigningSecret,
    TokenSupplier,
)
from commsauth.endpoints import EndpointDefinition, get_endpoint, list_endpoints
from commsauth.exceptions import (
    CommsAuthError,
    CredentialConfigurationError,
    InvalidPrivateKeyError,
    NoAcceptableCredentialError,
    TokenUnavailableError,
)
from commsauth.jwt_tokens import generate_application_jwt, load_private_key
from commsauth.negotiation import AcceptableCredentials, CredentialNegotiator
from commsauth.oauth2_flows import (
    ClientCredentialsFlow,
    OAuth2Error,
    RefreshTokenFlow,
    TokenResponse,
)
from commsauth.signing import (
    CanonicalizationMode,
    HashType,
    SigningConfig,
    canonical_string,
    sign,
)
from commsauth.store import CredentialStore
from commsauth.token_manager import TokenConfig, TokenManager
from commsauth.verification import SignatureVerifier, VerificationOutcome, verify
from commsauth.webhooks import CallbackValidator, extract_parameters, require_signed_callback

__all__ = [
    # Credentials
    "AsymmetricKey",
    "Credential",
    "CredentialType",
    "KeyPair",
    "PresharedSigningSecret",
    "TokenSupplier",
    "CredentialStore",
    # Negotiation
    "AcceptableCredentials",
    "CredentialNegotiator",
    "EndpointDefinition",
    "get_endpoint",
    "list_endpoints",
    # Signing
    "CanonicalizationMode",
    "HashType",
    "SigningConfig",
    "canonical_string",
    "sign",
    "SignatureVerifier",
    "VerificationOutcome",
    "verify",
    # Authenticator
    "AuthenticatedRequest",
    "RequestAuthenticator",
    "build_bearer_auth_header",
    # JWT
    "generate_application_jwt",
    "load_private_key",
    # Tokens
    "ClientCredentialsFlow",
    "RefreshTokenFlow",
    "TokenResponse",
    "OAuth2Error",
    "TokenConfig",
    "TokenManager",
    # Configuration
    "ClientSettings",
    "build_credential_store",
    "load_credential_store",
    "load_settings",
    # Webhooks
    "CallbackValidator",
    "extract_parameters",
    "require_signed_callback",
    # Errors
    "CommsAuthError",
    "CredentialConfigurationError",
    "InvalidPrivateKeyError",
    "NoAcceptableCredentialError",
    "TokenUnavailableError",
]
