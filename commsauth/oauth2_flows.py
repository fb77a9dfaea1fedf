"""OAuth 2.0 grants used to obtain bearer tokens.

Only the non-interactive grants are supported, since tokens are renewed in
the background without a user present:
- Client Credentials (RFC 6749 Section 4.4)
- Refresh Token (RFC 6749 Section 6)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

# Default timeout for token endpoint requests
DEFAULT_TIMEOUT = 30


@dataclass
class TokenResponse:
    """OAuth 2.0 token response.

    Attributes:
        access_token: The access token string
        token_type: Token type, usually "Bearer"
        expires_in: Token lifetime in seconds
        refresh_token: Optional refresh token for obtaining new access tokens
        scope: Space-separated list of granted scopes
        obtained_at: Timestamp when the token was obtained
    """

    access_token: str
    token_type: str = "Bearer"
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    obtained_at: datetime = field(default_factory=datetime.now)

    def is_expired(self, buffer_seconds: int = 60) -> bool:
        """Check if the token is expired.

        Args:
            buffer_seconds: Consider the token expired this many seconds early

        Returns:
            True if the token is expired or will expire within buffer_seconds
        """
        if self.expires_in is None:
            return False

        elapsed = (datetime.now() - self.obtained_at).total_seconds()
        return elapsed >= (self.expires_in - buffer_seconds)

    @classmethod
    def from_response(cls, response_data: Dict[str, Any]) -> "TokenResponse":
        """Create TokenResponse from a token endpoint JSON body."""
        expires_in = response_data.get("expires_in")
        return cls(
            access_token=response_data.get("access_token", ""),
            token_type=response_data.get("token_type", "Bearer"),
            expires_in=int(expires_in) if expires_in is not None else None,
            refresh_token=response_data.get("refresh_token"),
            scope=response_data.get("scope"),
        )


class OAuth2Error(Exception):
    """OAuth 2.0 error response."""

    def __init__(
        self,
        error: str,
        error_description: Optional[str] = None,
        error_uri: Optional[str] = None,
    ):
        self.error = error
        self.error_description = error_description
        self.error_uri = error_uri
        message = error
        if error_description:
            message = f"{error}: {error_description}"
        super().__init__(message)


class OAuth2FlowHandler(ABC):
    """Base class for token grants."""

    @abstractmethod
    def get_flow_type(self) -> str:
        """Return the grant type identifier."""

    def _post(
        self,
        token_url: str,
        data: Dict[str, str],
        auth: Optional[tuple],
        timeout: int,
    ) -> TokenResponse:
        logger.debug("Requesting %s token from %s", self.get_flow_type(), token_url)
        response = requests.post(token_url, data=data, auth=auth, timeout=timeout)
        return self._handle_token_response(response)

    def _handle_token_response(self, response: requests.Response) -> TokenResponse:
        try:
            data = response.json()
        except ValueError:
            raise OAuth2Error("invalid_response", "Token endpoint returned non-JSON response")

        if response.status_code != 200:
            raise OAuth2Error(
                data.get("error", "unknown_error"),
                data.get("error_description"),
                data.get("error_uri"),
            )

        token = TokenResponse.from_response(data)
        if not token.access_token:
            raise OAuth2Error("invalid_response", "Token endpoint returned no access_token")
        return token


class ClientCredentialsFlow(OAuth2FlowHandler):
    """Client Credentials Grant for machine-to-machine tokens."""

    def get_flow_type(self) -> str:
        return "client_credentials"

    def authenticate(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        scopes: Optional[List[str]] = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> TokenResponse:
        """Exchange client credentials for an access token.

        Args:
            token_url: OAuth 2.0 token endpoint URL
            client_id: Client identifier
            client_secret: Client secret
            scopes: List of requested scopes
            timeout: Request timeout in seconds

        Returns:
            TokenResponse with access token

        Raises:
            OAuth2Error: If the token endpoint rejects the request
            requests.RequestException: If the HTTP request fails
        """
        data = {"grant_type": "client_credentials"}
        if scopes:
            data["scope"] = " ".join(scopes)
        return self._post(token_url, data, (client_id, client_secret), timeout)


class RefreshTokenFlow(OAuth2FlowHandler):
    """Refresh Token Grant."""

    def get_flow_type(self) -> str:
        return "refresh_token"

    def refresh(
        self,
        token_url: str,
        refresh_token: str,
        client_id: str,
        client_secret: Optional[str] = None,
        scopes: Optional[List[str]] = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> TokenResponse:
        """Exchange a refresh token for a new access token.

        Raises:
            OAuth2Error: If the refresh is rejected
            requests.RequestException: If the HTTP request fails
        """
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": client_id,
        }
        if scopes:
            data["scope"] = " ".join(scopes)

        auth = (client_id, client_secret) if client_secret else None
        return self._post(token_url, data, auth, timeout)
