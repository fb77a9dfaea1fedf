"""Credential declarations for platform endpoints.

Each endpoint lists the credential types it accepts, strongest first, so
that a signing secret is preferred over a plain key/secret pair whenever
both are configured.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from commsauth.credentials import CredentialType
from commsauth.negotiation import AcceptableCredentials

REST_BASE_URL = "https://rest.nexmo.com"
API_BASE_URL = "https://api.nexmo.com"

_SIGNED_OR_KEY_PAIR = AcceptableCredentials.of(
    CredentialType.PRESHARED_SIGNING_SECRET, CredentialType.KEY_PAIR
)
_KEY_PAIR_ONLY = AcceptableCredentials.of(CredentialType.KEY_PAIR)
_APPLICATION = AcceptableCredentials.of(
    CredentialType.ASYMMETRIC_KEY, CredentialType.TOKEN_SUPPLIER
)


@dataclass(frozen=True)
class EndpointDefinition:
    """A platform operation and the credentials it accepts.

    Attributes:
        name: Dotted operation name (e.g. "sms.send")
        method: HTTP method
        url: Absolute endpoint URL
        acceptable: Accepted credential types in preference order
    """

    name: str
    method: str
    url: str
    acceptable: AcceptableCredentials


ENDPOINTS: Dict[str, EndpointDefinition] = {
    definition.name: definition
    for definition in [
        EndpointDefinition("sms.send", "POST", f"{REST_BASE_URL}/sms/json", _SIGNED_OR_KEY_PAIR),
        EndpointDefinition("sns.publish", "POST", f"{API_BASE_URL}/sns/xml", _SIGNED_OR_KEY_PAIR),
        EndpointDefinition(
            "verify.request", "POST", f"{API_BASE_URL}/verify/json", _SIGNED_OR_KEY_PAIR
        ),
        EndpointDefinition(
            "verify.check", "POST", f"{API_BASE_URL}/verify/check/json", _KEY_PAIR_ONLY
        ),
        EndpointDefinition(
            "verify.search", "GET", f"{API_BASE_URL}/verify/search/json", _KEY_PAIR_ONLY
        ),
        EndpointDefinition(
            "verify.control", "POST", f"{API_BASE_URL}/verify/control/json", _KEY_PAIR_ONLY
        ),
        EndpointDefinition(
            "insight.basic", "GET", f"{API_BASE_URL}/ni/basic/json", _KEY_PAIR_ONLY
        ),
        EndpointDefinition(
            "insight.standard", "GET", f"{API_BASE_URL}/ni/standard/json", _KEY_PAIR_ONLY
        ),
        EndpointDefinition(
            "insight.advanced", "GET", f"{API_BASE_URL}/ni/advanced/json", _KEY_PAIR_ONLY
        ),
        EndpointDefinition(
            "account.balance", "GET", f"{REST_BASE_URL}/account/get-balance", _KEY_PAIR_ONLY
        ),
        EndpointDefinition("voice.calls", "POST", f"{API_BASE_URL}/v1/calls", _APPLICATION),
        EndpointDefinition("voice.call_info", "GET", f"{API_BASE_URL}/v1/calls", _APPLICATION),
    ]
}


def get_endpoint(name: str) -> EndpointDefinition:
    """Look up an endpoint definition by name.

    Raises:
        KeyError: If the endpoint is unknown
    """
    try:
        return ENDPOINTS[name]
    except KeyError:
        raise KeyError(f"Unknown endpoint: {name}") from None


def list_endpoints() -> List[str]:
    """Return the names of all known endpoints."""
    return sorted(ENDPOINTS)
