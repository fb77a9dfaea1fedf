"""Verification of signed inbound requests.

Mirrors :mod:`commsauth.signing`: the digest is recomputed over every inbound
parameter except the signature and compared to the supplied value, after the
timestamp has been checked against the replay window.
"""

from __future__ import annotations

import hmac
import logging
import re
import time
from enum import Enum
from typing import Any, Mapping, Optional

from commsauth.signing import (
    MAX_ALLOWABLE_TIME_DELTA_MS,
    PARAM_SIGNATURE,
    PARAM_TIMESTAMP,
    CanonicalizationMode,
    Clock,
    HashType,
    SigningConfig,
    canonical_string,
    compute_signature,
)

logger = logging.getLogger(__name__)

_TIMESTAMP_PATTERN = re.compile(r"-?[0-9]+")


class VerificationOutcome(Enum):
    """Result of verifying one inbound request."""

    VALID = "valid"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED_OR_FUTURE_TIMESTAMP = "expired_or_future_timestamp"
    MALFORMED_TIMESTAMP = "malformed_timestamp"

    @property
    def is_valid(self) -> bool:
        return self is VerificationOutcome.VALID


def _parse_timestamp(raw: Any) -> Optional[int]:
    if raw is None:
        return None
    text = str(raw).strip()
    if not _TIMESTAMP_PATTERN.fullmatch(text):
        return None
    return int(text)


def verify(
    params: Mapping[str, Any],
    secret: str,
    mode: CanonicalizationMode,
    now_millis: Optional[int] = None,
    max_delta_ms: int = MAX_ALLOWABLE_TIME_DELTA_MS,
    hash_type: HashType = HashType.MD5,
    clock: Clock = time.time,
    signature_param: str = PARAM_SIGNATURE,
) -> VerificationOutcome:
    """Verify the signature and timestamp of an inbound parameter set.

    A timestamp exactly ``max_delta_ms`` away from ``now_millis`` is still
    accepted; anything further in the past or the future is rejected.

    Args:
        params: Inbound request parameters, including timestamp and signature
        secret: Pre-shared signing secret
        mode: Canonicalisation mode used by the sender
        now_millis: Current time in milliseconds (defaults to ``clock()``)
        max_delta_ms: Replay window in milliseconds
        hash_type: Digest used by the sender
        clock: Wall clock returning seconds since the epoch
        signature_param: Name of the signature parameter

    Returns:
        VerificationOutcome
    """
    timestamp = _parse_timestamp(params.get(PARAM_TIMESTAMP))
    if timestamp is None:
        logger.warning(
            "Signature verification failed: malformed timestamp [%s]",
            params.get(PARAM_TIMESTAMP),
        )
        return VerificationOutcome.MALFORMED_TIMESTAMP

    if now_millis is None:
        now_millis = int(clock() * 1000)

    delta = now_millis - timestamp * 1000
    if abs(delta) > max_delta_ms:
        logger.warning(
            "Signature verification failed: timestamp [%d] delta [%d ms] exceeds [%d ms]",
            timestamp,
            delta,
            max_delta_ms,
        )
        return VerificationOutcome.EXPIRED_OR_FUTURE_TIMESTAMP

    supplied = params.get(signature_param)
    if supplied is None:
        logger.warning("Signature verification failed: no %s parameter", signature_param)
        return VerificationOutcome.INVALID_SIGNATURE

    canonical = canonical_string(params, mode, signature_param)
    expected = compute_signature(canonical, secret, hash_type)
    logger.debug(
        "Verifying string [%s] signature [%s] supplied [%s]", canonical, expected, supplied
    )

    if not hmac.compare_digest(expected.encode("utf-8"), str(supplied).encode("utf-8")):
        logger.warning("Signature verification failed: signature mismatch")
        return VerificationOutcome.INVALID_SIGNATURE

    return VerificationOutcome.VALID


class SignatureVerifier:
    """Verifier bound to one secret and signing contract."""

    def __init__(self, secret: str, config: SigningConfig, clock: Clock = time.time):
        """Initialize the verifier.

        Args:
            secret: Pre-shared signing secret
            config: Signing contract agreed with the sender
            clock: Wall clock returning seconds since the epoch
        """
        self._secret = secret
        self.config = config
        self._clock = clock

    def verify(
        self, params: Mapping[str, Any], now_millis: Optional[int] = None
    ) -> VerificationOutcome:
        """Verify an inbound parameter set against this verifier's contract."""
        return verify(
            params,
            self._secret,
            self.config.mode,
            now_millis=now_millis,
            max_delta_ms=self.config.max_delta_ms,
            hash_type=self.config.hash_type,
            clock=self._clock,
            signature_param=self.config.signature_param,
        )

    def __repr__(self) -> str:
        return f"SignatureVerifier(config={self.config!r})"
