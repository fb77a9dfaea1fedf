"""Tests for commsauth.signing module."""

import pytest

from commsauth.signing import (
    PARAM_SIGNATURE,
    CanonicalizationMode,
    HashType,
    SigningConfig,
    canonical_string,
    clean,
    compute_signature,
    sign,
)

LEGACY = CanonicalizationMode.LEGACY
DELIMITED = CanonicalizationMode.DELIMITED


@pytest.fixture
def sms_params():
    return {"api_key": "abc", "to": "447777111222", "text": "Hello"}


@pytest.fixture
def fruit_params():
    return {"a": "alphabet", "b": "bananas"}


class TestCanonicalString:
    """Tests for canonical string construction."""

    def test_legacy_concatenates_sorted_pairs(self, sms_params):
        params = dict(sms_params, timestamp="1000000000")

        assert (
            canonical_string(params, LEGACY)
            == "api_keyabctextHellotimestamp1000000000to447777111222"
        )

    def test_delimited_uses_separators(self, fruit_params):
        params = dict(fruit_params, timestamp="2100")

        assert canonical_string(params, DELIMITED) == "&a=alphabet&b=bananas&timestamp=2100"

    def test_delimited_cleans_names_and_values(self):
        params = {"a": "a=b&c", "x&y": "1"}

        assert canonical_string(params, DELIMITED) == "&a=a_b_c&x_y=1"

    def test_legacy_does_not_clean(self):
        assert canonical_string({"a": "a=b&c"}, LEGACY) == "aa=b&c"

    def test_signature_param_excluded(self):
        params = {"a": "1", "sig": "deadbeef"}

        assert canonical_string(params, LEGACY) == "a1"

    def test_custom_signature_param_excluded(self):
        params = {"a": "1", "sig": "2", "signature": "deadbeef"}

        assert canonical_string(params, LEGACY, signature_param="signature") == "a1sig2"

    def test_blank_and_none_values_skipped(self):
        params = {"a": "1", "b": "", "c": "   ", "d": None}

        assert canonical_string(params, DELIMITED) == "&a=1"

    def test_control_characters_count_as_blank(self):
        params = {"a": "\x01", "b": "x", "c": "\t\x1f "}

        assert canonical_string(params, LEGACY) == "bx"

    def test_unicode_space_is_signed(self):
        params = {"a": "\u2003", "b": "x"}

        assert canonical_string(params, LEGACY) == "a\u2003bx"

    def test_sorted_by_code_point(self):
        params = {"b": "1", "B": "2", "a": "3", "_": "4"}

        assert canonical_string(params, LEGACY) == "B2_4a3b1"

    def test_non_string_values_coerced(self):
        assert canonical_string({"count": 3, "flag": True}, LEGACY) == "count3flagTrue"

    def test_clean(self):
        assert clean("a=b&c=d") == "a_b_c_d"
        assert clean("plain") == "plain"


class TestComputeSignature:
    """Tests for digest computation."""

    def test_md5_appends_secret(self):
        canonical = "&a=alphabet&b=bananas&timestamp=2100"

        assert compute_signature(canonical, "abcde") == "7d43241108912b32cc315b48ce681acf"

    def test_hmac_does_not_append_secret(self):
        canonical = "&a=alphabet&b=bananas&timestamp=2100"

        assert (
            compute_signature(canonical, "abcde", HashType.HMAC_MD5)
            == "e0afe267aefd6dd18a848c1681517a19"
        )

    def test_lowercase_hex(self):
        digest = compute_signature("anything", "secret", HashType.HMAC_SHA256)

        assert digest == digest.lower()
        assert len(digest) == 64


class TestSign:
    """Tests for sign()."""

    def test_legacy_reference_vector(self, sms_params):
        signed = sign(sms_params, "s3cr3t", LEGACY, timestamp=1000000000)

        assert signed["timestamp"] == "1000000000"
        assert signed["sig"] == "c20345b48533530d6f88c51b1846f14f"

    def test_delimited_reference_vector(self, sms_params):
        signed = sign(sms_params, "s3cr3t", DELIMITED, timestamp=1000000000)

        assert signed["sig"] == "a6e30c89ea898d6f119aea276598e4a6"

    @pytest.mark.parametrize(
        "hash_type,expected",
        [
            (HashType.MD5, "7d43241108912b32cc315b48ce681acf"),
            (HashType.HMAC_MD5, "e0afe267aefd6dd18a848c1681517a19"),
            (HashType.HMAC_SHA1, "b7f749de27b4adcf736cc95c9a7e059a16c85127"),
            (
                HashType.HMAC_SHA256,
                "8d1b0428276b6a070578225914c3502cc0687a454dfbbbb370c76a14234cb546",
            ),
            (
                HashType.HMAC_SHA512,
                "1c834a1f6a377d4473971387b065cb38e2ad6c4869ba77b7b53e207a344e87ba"
                "04b456dfc697b371a2d1ce476d01dafd4394aa97525eff23badad39d2389a710",
            ),
        ],
    )
    def test_hash_types(self, fruit_params, hash_type, expected):
        signed = sign(fruit_params, "abcde", DELIMITED, hash_type=hash_type, timestamp=2100)

        assert signed["sig"] == expected

    def test_legacy_fruit_vector(self, fruit_params):
        signed = sign(fruit_params, "abcde", LEGACY, timestamp=2100)

        assert signed["sig"] == "47583d0df6e792b246351eb79949b962"

    def test_none_value_not_signed(self):
        signed = sign({"a": "alphabet", "b": None}, "abcde", DELIMITED, timestamp=2100)

        assert signed["sig"] == "a3368bf718ba104dcb392d8877e8eb2b"
        assert "b" in signed

    def test_delimiters_cleaned(self):
        signed = sign({"a": "a=b&c"}, "abcde", DELIMITED, timestamp=2100)

        assert signed["sig"] == "72120db0f95b5c492a7ca738ab870214"
        assert signed["a"] == "a=b&c"

    def test_deterministic(self, sms_params):
        first = sign(sms_params, "s3cr3t", DELIMITED, timestamp=1234)
        second = sign(sms_params, "s3cr3t", DELIMITED, timestamp=1234)

        assert first == second

    def test_order_independent(self, sms_params):
        reordered = dict(reversed(list(sms_params.items())))

        first = sign(sms_params, "s3cr3t", LEGACY, timestamp=1234)
        second = sign(reordered, "s3cr3t", LEGACY, timestamp=1234)

        assert first["sig"] == second["sig"]

    def test_existing_signature_replaced(self, sms_params):
        expected = sign(sms_params, "s3cr3t", LEGACY, timestamp=1000000000)
        params = dict(sms_params, sig="stale")

        signed = sign(params, "s3cr3t", LEGACY, timestamp=1000000000)

        assert signed["sig"] == expected["sig"]

    def test_existing_timestamp_overwritten(self, sms_params):
        params = dict(sms_params, timestamp="1")

        signed = sign(params, "s3cr3t", LEGACY, timestamp=1000000000)

        assert signed["timestamp"] == "1000000000"
        assert signed["sig"] == "c20345b48533530d6f88c51b1846f14f"

    def test_input_not_modified(self, sms_params):
        original = dict(sms_params)

        sign(sms_params, "s3cr3t", LEGACY, timestamp=1000000000)

        assert sms_params == original

    def test_timestamp_from_clock(self, sms_params, fixed_clock):
        signed = sign(sms_params, "s3cr3t", LEGACY, clock=fixed_clock)

        assert signed["timestamp"] == "1000000000"
        assert signed["sig"] == "c20345b48533530d6f88c51b1846f14f"

    def test_custom_signature_param(self, sms_params):
        signed = sign(
            sms_params, "s3cr3t", LEGACY, timestamp=1000000000, signature_param="signature"
        )

        assert signed["signature"] == "c20345b48533530d6f88c51b1846f14f"
        assert PARAM_SIGNATURE not in signed

    def test_different_secret_changes_signature(self, sms_params):
        first = sign(sms_params, "s3cr3t", LEGACY, timestamp=1234)
        second = sign(sms_params, "other", LEGACY, timestamp=1234)

        assert first["sig"] != second["sig"]


class TestSigningConfig:
    """Tests for SigningConfig."""

    def test_defaults(self):
        config = SigningConfig(mode=DELIMITED)

        assert config.hash_type is HashType.MD5
        assert config.signature_param == "sig"
        assert config.max_delta_ms == 300000

    def test_mode_required(self):
        with pytest.raises(TypeError):
            SigningConfig()

    def test_mode_must_be_enum(self):
        with pytest.raises(TypeError):
            SigningConfig(mode="legacy")

    def test_negative_delta_rejected(self):
        with pytest.raises(ValueError):
            SigningConfig(mode=LEGACY, max_delta_ms=-1)

    def test_from_dict(self):
        config = SigningConfig.from_dict(
            {"mode": "delimited", "hash_type": "HMAC_SHA256", "signature_param": "signature"}
        )

        assert config.mode is DELIMITED
        assert config.hash_type is HashType.HMAC_SHA256
        assert config.signature_param == "signature"

    def test_from_dict_accepts_values(self):
        config = SigningConfig.from_dict({"mode": "LEGACY", "hash_type": "hmac-sha1"})

        assert config.mode is LEGACY
        assert config.hash_type is HashType.HMAC_SHA1

    def test_from_dict_null_delta_uses_default(self):
        config = SigningConfig.from_dict({"mode": "legacy", "max_delta_ms": None})

        assert config.max_delta_ms == 300000

    def test_from_dict_zero_delta_kept(self):
        config = SigningConfig.from_dict({"mode": "legacy", "max_delta_ms": 0})

        assert config.max_delta_ms == 0

    def test_from_dict_requires_mode(self):
        with pytest.raises(ValueError) as exc_info:
            SigningConfig.from_dict({"hash_type": "md5"})

        assert "mode" in str(exc_info.value)

    def test_from_dict_invalid_hash(self):
        with pytest.raises(ValueError) as exc_info:
            SigningConfig.from_dict({"mode": "legacy", "hash_type": "sha3"})

        assert "hash type" in str(exc_info.value)

    def test_is_hmac(self):
        assert not HashType.MD5.is_hmac
        assert HashType.HMAC_SHA512.is_hmac
