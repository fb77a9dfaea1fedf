"""Canonical request signing with a pre-shared secret.

Signing injects a ``timestamp`` parameter, builds a canonical string from the
sorted non-empty parameters, hashes it together with the shared secret and
appends the hex digest as the signature parameter.

Two canonicalisation modes exist and a deployment must pick exactly one,
because the signer and the verifier have to agree bit for bit:

- ``LEGACY``: ``name`` immediately followed by ``value`` for every parameter,
  no separators and no encoding.
- ``DELIMITED``: ``&name=value`` for every parameter, with any ``=`` or ``&``
  inside names and values replaced by ``_``.

Parameters whose value is ``None`` or blank are left out of the canonical
string but are still sent over the wire. A value is blank when nothing is
left after trimming the characters U+0000 to U+0020 from both ends, the same
set the platform trims. Other Unicode whitespace counts as content.

The appended signature entry travels as ``sig``, the parameter name the
platform reads. ``SigningConfig.signature_param`` renames it.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

# Name of the signature parameter the platform expects
PARAM_SIGNATURE = "sig"

PARAM_TIMESTAMP = "timestamp"

# Characters trimmed before deciding whether a value is blank
_TRIM_CHARS = "".join(map(chr, range(0x21)))

# Replay window in milliseconds, applied in both directions
MAX_ALLOWABLE_TIME_DELTA_MS = 5 * 60 * 1000

Clock = Callable[[], float]


class CanonicalizationMode(Enum):
    """How sorted parameters are joined before hashing."""

    LEGACY = "legacy"
    DELIMITED = "delimited"


class HashType(Enum):
    """Digest used to produce the signature.

    ``MD5`` appends the secret to the canonical string. The HMAC variants key
    the HMAC with the secret instead.
    """

    MD5 = "md5"
    HMAC_MD5 = "hmac-md5"
    HMAC_SHA1 = "hmac-sha1"
    HMAC_SHA256 = "hmac-sha256"
    HMAC_SHA512 = "hmac-sha512"

    @property
    def is_hmac(self) -> bool:
        return self is not HashType.MD5


_HMAC_DIGESTS = {
    HashType.HMAC_MD5: hashlib.md5,
    HashType.HMAC_SHA1: hashlib.sha1,
    HashType.HMAC_SHA256: hashlib.sha256,
    HashType.HMAC_SHA512: hashlib.sha512,
}


def _parse_enum(enum_cls: Any, value: Any, field_name: str) -> Any:
    """Accept enum members, values ("hmac-sha256") or names ("HMAC_SHA256")."""
    if isinstance(value, enum_cls):
        return value
    normalized = str(value).strip().lower().replace("_", "-")
    for member in enum_cls:
        if normalized in (member.value, member.name.lower().replace("_", "-")):
            return member
    allowed = ", ".join(member.value for member in enum_cls)
    raise ValueError(f"Invalid {field_name} {value!r}, expected one of: {allowed}")


@dataclass(frozen=True)
class SigningConfig:
    """The signing contract shared by a signer and its verifier.

    Attributes:
        mode: Canonicalisation mode. Deliberately has no default.
        hash_type: Digest used to produce the signature
        signature_param: Name of the parameter carrying the signature
        max_delta_ms: Replay window used when verifying
    """

    mode: CanonicalizationMode
    hash_type: HashType = HashType.MD5
    signature_param: str = PARAM_SIGNATURE
    max_delta_ms: int = MAX_ALLOWABLE_TIME_DELTA_MS

    def __post_init__(self):
        if not isinstance(self.mode, CanonicalizationMode):
            raise TypeError("mode must be a CanonicalizationMode")
        if not isinstance(self.hash_type, HashType):
            raise TypeError("hash_type must be a HashType")
        if self.max_delta_ms < 0:
            raise ValueError("max_delta_ms must not be negative")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SigningConfig":
        """Create from a configuration dictionary.

        ``mode`` is required; the remaining keys fall back to the defaults.
        """
        if not data.get("mode"):
            raise ValueError("Signing configuration requires an explicit 'mode'")
        max_delta_ms = data.get("max_delta_ms")
        if max_delta_ms is None:
            max_delta_ms = MAX_ALLOWABLE_TIME_DELTA_MS
        return cls(
            mode=_parse_enum(CanonicalizationMode, data["mode"], "signature mode"),
            hash_type=_parse_enum(HashType, data.get("hash_type") or "md5", "hash type"),
            signature_param=data.get("signature_param") or PARAM_SIGNATURE,
            max_delta_ms=int(max_delta_ms),
        )


def clean(value: str) -> str:
    """Replace the delimiter characters ``=`` and ``&`` with ``_``."""
    return value.replace("=", "_").replace("&", "_")


def _signable_items(
    params: Mapping[str, Any], signature_param: str
) -> List[Tuple[str, str]]:
    items = []
    for name, value in params.items():
        if name == signature_param:
            continue
        if value is None:
            continue
        value = str(value)
        if not value.strip(_TRIM_CHARS):
            continue
        items.append((name, value))
    return sorted(items, key=lambda item: item[0])


def canonical_string(
    params: Mapping[str, Any],
    mode: CanonicalizationMode,
    signature_param: str = PARAM_SIGNATURE,
) -> str:
    """Build the canonical string for a parameter set, without the secret.

    Args:
        params: Request parameters
        mode: Canonicalisation mode
        signature_param: Parameter excluded from the canonical string

    Returns:
        The canonical string
    """
    items = _signable_items(params, signature_param)
    if mode is CanonicalizationMode.LEGACY:
        return "".join(f"{name}{value}" for name, value in items)
    if mode is CanonicalizationMode.DELIMITED:
        return "".join(f"&{clean(name)}={clean(value)}" for name, value in items)
    raise ValueError(f"Unsupported canonicalization mode: {mode!r}")


def compute_signature(canonical: str, secret: str, hash_type: HashType = HashType.MD5) -> str:
    """Hash a canonical string with the shared secret.

    Args:
        canonical: Output of :func:`canonical_string`
        secret: Pre-shared signing secret
        hash_type: Digest to use

    Returns:
        Lowercase hex digest
    """
    if hash_type is HashType.MD5:
        return hashlib.md5((canonical + secret).encode("utf-8")).hexdigest()
    digestmod = _HMAC_DIGESTS[hash_type]
    return hmac.new(secret.encode("utf-8"), canonical.encode("utf-8"), digestmod).hexdigest()


def sign(
    params: Mapping[str, Any],
    secret: str,
    mode: CanonicalizationMode,
    hash_type: HashType = HashType.MD5,
    timestamp: Optional[int] = None,
    clock: Clock = time.time,
    signature_param: str = PARAM_SIGNATURE,
) -> Dict[str, Any]:
    """Sign a parameter set.

    The input mapping is not modified. The returned copy carries the
    ``timestamp`` and signature parameters after the original entries. Any
    signature already present in the input is ignored and replaced.

    Args:
        params: Request parameters to sign
        secret: Pre-shared signing secret
        mode: Canonicalisation mode
        hash_type: Digest to use
        timestamp: Signing time in whole seconds (defaults to ``clock()``)
        clock: Wall clock returning seconds since the epoch
        signature_param: Name of the signature parameter

    Returns:
        New parameter dictionary including timestamp and signature
    """
    if timestamp is None:
        timestamp = int(clock())

    signed = {name: value for name, value in params.items() if name != signature_param}
    signed[PARAM_TIMESTAMP] = str(timestamp)

    canonical = canonical_string(signed, mode, signature_param)
    signature = compute_signature(canonical, secret, hash_type)
    logger.debug(
        "Signed parameters (%s, %s): string [%s] signature [%s]",
        mode.value,
        hash_type.value,
        canonical,
        signature,
    )

    signed[signature_param] = signature
    return signed
