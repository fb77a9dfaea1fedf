"""Client configuration.

Settings come from a YAML file (``config/credentials.yaml`` by default, or the
path in ``COMMSAUTH_CONFIG``) and can be overridden per value from the
environment. Example file::

    api_key: abc123
    api_secret: my-secret
    signature_secret: my-signing-secret
    signature_mode: delimited
    signature_hash: hmac-sha256
    application_id: aaaaaaaa-bbbb-cccc-dddd-0123456789ab
    private_key_path: config/private.key
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import yaml

from commsauth.credentials import AsymmetricKey, KeyPair, PresharedSigningSecret
from commsauth.exceptions import CredentialConfigurationError
from commsauth.jwt_tokens import load_private_key_file
from commsauth.signing import SigningConfig
from commsauth.store import CredentialStore

logger = logging.getLogger(__name__)

CONFIG_FILE = os.environ.get("COMMSAUTH_CONFIG", "config/credentials.yaml")

# Environment variable -> settings key
ENV_OVERRIDES = {
    "COMMSAUTH_API_KEY": "api_key",
    "COMMSAUTH_API_SECRET": "api_secret",
    "COMMSAUTH_SIGNATURE_SECRET": "signature_secret",
    "COMMSAUTH_SIGNATURE_MODE": "signature_mode",
    "COMMSAUTH_SIGNATURE_HASH": "signature_hash",
    "COMMSAUTH_APPLICATION_ID": "application_id",
    "COMMSAUTH_PRIVATE_KEY_PATH": "private_key_path",
}

_SECRET_FIELDS = ("api_secret", "signature_secret", "private_key")


def load_settings(file_path: str = CONFIG_FILE) -> Dict[str, Any]:
    if not os.path.exists(file_path):
        return {}
    try:
        with open(file_path, "r") as file:
            data = yaml.safe_load(file) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.error("Error loading config file %s: %s", file_path, exc)
        return {}
    if not isinstance(data, dict):
        logger.error("Config file %s does not contain a mapping", file_path)
        return {}
    return data


def apply_env_overrides(
    settings: Dict[str, Any], environ: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """Return a copy of ``settings`` with environment values applied."""
    environ = os.environ if environ is None else environ
    merged = dict(settings)
    for env_name, key in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            merged[key] = value
    return merged


@dataclass
class ClientSettings:
    """Raw credential settings for one client.

    Attributes:
        api_key: Public account key
        api_secret: Account secret for key/secret authentication
        signature_secret: Pre-shared secret for request signing
        signature_mode: Canonicalisation mode ("legacy" or "delimited")
        signature_hash: Signature digest (default "md5")
        signature_param: Name of the signature parameter
        application_id: Application identifier for JWT authentication
        private_key: Inline PEM private key
        private_key_path: Path to a PEM or DER private key file
        token_ttl_seconds: Lifetime of generated JWTs
    """

    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    signature_secret: Optional[str] = None
    signature_mode: Optional[str] = None
    signature_hash: Optional[str] = None
    signature_param: Optional[str] = None
    application_id: Optional[str] = None
    private_key: Optional[str] = None
    private_key_path: Optional[str] = None
    token_ttl_seconds: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientSettings":
        """Create from a settings dictionary, ignoring unknown keys."""
        ttl = data.get("token_ttl_seconds")
        return cls(
            api_key=data.get("api_key"),
            api_secret=data.get("api_secret"),
            signature_secret=data.get("signature_secret"),
            signature_mode=data.get("signature_mode"),
            signature_hash=data.get("signature_hash"),
            signature_param=data.get("signature_param"),
            application_id=data.get("application_id"),
            private_key=data.get("private_key"),
            private_key_path=data.get("private_key_path"),
            token_ttl_seconds=int(ttl) if ttl is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def describe(self) -> Dict[str, Any]:
        """Settings safe for logging, with secrets masked."""
        described = {}
        for key, value in self.to_dict().items():
            if value is not None and key in _SECRET_FIELDS:
                value = "****"
            described[key] = value
        return described


def _validate(settings: ClientSettings) -> List[str]:
    errors = []
    if settings.api_key and not (settings.api_secret or settings.signature_secret):
        errors.append("api_key requires api_secret or signature_secret")
    if (settings.api_secret or settings.signature_secret) and not settings.api_key:
        errors.append("api_secret and signature_secret require api_key")
    if settings.signature_secret and not settings.signature_mode:
        errors.append("signature_secret requires an explicit signature_mode")
    has_key_material = bool(settings.private_key or settings.private_key_path)
    if settings.application_id and not has_key_material:
        errors.append("application_id requires private_key or private_key_path")
    if has_key_material and not settings.application_id:
        errors.append("private_key requires application_id")
    return errors


def build_credential_store(settings: ClientSettings) -> CredentialStore:
    """Build the credential store described by ``settings``.

    Raises:
        CredentialConfigurationError: If the settings combine credentials
            incompletely or contain invalid values
        InvalidPrivateKeyError: If the private key cannot be loaded
    """
    errors = _validate(settings)
    if errors:
        raise CredentialConfigurationError(
            "Invalid credential configuration: " + "; ".join(errors),
            details={"errors": errors, "settings": settings.describe()},
        )

    store = CredentialStore()

    if settings.api_key and settings.api_secret:
        store.add(KeyPair(settings.api_key, settings.api_secret))

    if settings.api_key and settings.signature_secret:
        try:
            signing = SigningConfig.from_dict(
                {
                    "mode": settings.signature_mode,
                    "hash_type": settings.signature_hash,
                    "signature_param": settings.signature_param,
                }
            )
        except ValueError as exc:
            raise CredentialConfigurationError(
                str(exc), details={"settings": settings.describe()}
            ) from exc
        store.add(PresharedSigningSecret(settings.api_key, settings.signature_secret, signing))

    if settings.application_id:
        if settings.private_key:
            private_key = settings.private_key
        else:
            private_key = load_private_key_file(settings.private_key_path)
        store.add(
            AsymmetricKey(
                settings.application_id,
                private_key,
                token_ttl_seconds=settings.token_ttl_seconds,
            )
        )

    if len(store) == 0:
        logger.warning("No credentials configured")
    else:
        logger.debug("Configured credentials: %s", store)
    return store


def load_credential_store(file_path: Optional[str] = None) -> CredentialStore:
    """Load settings from file and environment and build the credential store."""
    settings = apply_env_overrides(load_settings(file_path or CONFIG_FILE))
    return build_credential_store(ClientSettings.from_dict(settings))
