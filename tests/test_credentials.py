"""Tests for commsauth.credentials module."""

from unittest.mock import Mock

import jwt
import pytest

from commsauth.credentials import (
    AsymmetricKey,
    CredentialType,
    KeyPair,
    PresharedSigningSecret,
    TokenSupplier,
)
from commsauth.exceptions import InvalidPrivateKeyError
from commsauth.signing import CanonicalizationMode, SigningConfig


class TestKeyPair:
    """Tests for KeyPair."""

    def test_create(self):
        credential = KeyPair("abc", "secret")

        assert credential.api_key == "abc"
        assert credential.credential_type is CredentialType.KEY_PAIR

    @pytest.mark.parametrize("api_key,api_secret", [("", "secret"), ("abc", ""), (None, "x")])
    def test_requires_both(self, api_key, api_secret):
        with pytest.raises(ValueError):
            KeyPair(api_key, api_secret)

    def test_repr_hides_secret(self):
        assert "secret" not in repr(KeyPair("abc", "secret")).replace("api_secret", "")


class TestPresharedSigningSecret:
    """Tests for PresharedSigningSecret."""

    def test_create(self):
        config = SigningConfig(mode=CanonicalizationMode.LEGACY)
        credential = PresharedSigningSecret("abc", "s3cr3t", config)

        assert credential.signing is config
        assert credential.credential_type is CredentialType.PRESHARED_SIGNING_SECRET
        assert "s3cr3t" not in repr(credential)

    def test_requires_signing_config(self):
        with pytest.raises(ValueError):
            PresharedSigningSecret("abc", "s3cr3t", None)

    def test_requires_secret(self):
        with pytest.raises(ValueError):
            PresharedSigningSecret("abc", "", SigningConfig(mode=CanonicalizationMode.LEGACY))


class TestTokenSupplier:
    """Tests for TokenSupplier."""

    def test_get_token_calls_provider_each_time(self):
        provider = Mock(side_effect=["first", "second"])
        credential = TokenSupplier(provider)

        assert credential.get_token() == "first"
        assert credential.get_token() == "second"
        assert credential.credential_type is CredentialType.TOKEN_SUPPLIER

    def test_requires_callable(self):
        with pytest.raises(ValueError):
            TokenSupplier("not-callable")


class TestAsymmetricKey:
    """Tests for AsymmetricKey."""

    def test_loads_pem(self, rsa_private_key_pem):
        credential = AsymmetricKey("app-id", rsa_private_key_pem)

        assert credential.private_key.key_size == 2048
        assert credential.credential_type is CredentialType.ASYMMETRIC_KEY

    def test_loads_pem_text(self, rsa_private_key_pem):
        credential = AsymmetricKey("app-id", rsa_private_key_pem.decode("utf-8"))

        assert credential.private_key.key_size == 2048

    def test_invalid_key(self):
        with pytest.raises(InvalidPrivateKeyError):
            AsymmetricKey("app-id", "not a key")

    def test_requires_application_id(self, rsa_private_key):
        with pytest.raises(ValueError):
            AsymmetricKey("", rsa_private_key)

    def test_generate_jwt(self, rsa_private_key, fixed_clock):
        credential = AsymmetricKey("app-id", rsa_private_key, token_ttl_seconds=60)

        token = credential.generate_jwt(clock=fixed_clock)
        claims = jwt.decode(
            token,
            rsa_private_key.public_key(),
            algorithms=["RS256"],
            options={"verify_exp": False},
        )

        assert claims["application_id"] == "app-id"
        assert claims["iat"] == 1000000000
        assert claims["exp"] == 1000000060
