"""Bearer token supply with automatic renewal.

Provides the token providers behind :class:`commsauth.credentials.TokenSupplier`:
- Per-source token caching
- Renewal on demand when a cached token has expired
- Scheduled background renewal via APScheduler
- Exponential backoff on background renewal failure
"""

from __future__ import annotations

import functools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.jobstores.base import JobLookupError

from commsauth.credentials import TokenSupplier
from commsauth.exceptions import TokenUnavailableError
from commsauth.oauth2_flows import (
    DEFAULT_TIMEOUT,
    ClientCredentialsFlow,
    OAuth2Error,
    RefreshTokenFlow,
    TokenResponse,
)
from commsauth.token_store import TokenStore

logger = logging.getLogger(__name__)

# Maximum consecutive failures before disabling background renewal
MAX_FAILURES = 5

# Base backoff interval in seconds
BASE_BACKOFF_SECONDS = 60


@dataclass
class TokenConfig:
    """Configuration for token acquisition and renewal.

    Attributes:
        token_url: OAuth 2.0 token endpoint URL
        client_id: Client identifier
        client_secret: Client secret
        scopes: List of requested scopes
        refresh_token: Refresh token for renewal (if available)
        renewal_interval_minutes: How often to renew (0 = based on expires_in)
        buffer_seconds: Renew this many seconds before expiry
        timeout: Token endpoint timeout in seconds
    """

    token_url: str
    client_id: str
    client_secret: Optional[str] = None
    scopes: List[str] = field(default_factory=list)
    refresh_token: Optional[str] = None
    renewal_interval_minutes: float = 0
    buffer_seconds: int = 60
    timeout: int = DEFAULT_TIMEOUT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenConfig":
        """Create from a configuration dictionary."""
        scopes = data.get("scopes") or []
        if isinstance(scopes, str):
            scopes = scopes.split()
        return cls(
            token_url=data.get("token_url", ""),
            client_id=data.get("client_id", ""),
            client_secret=data.get("client_secret"),
            scopes=list(scopes),
            refresh_token=data.get("refresh_token"),
            renewal_interval_minutes=data.get("renewal_interval_minutes", 0),
            buffer_seconds=data.get("buffer_seconds", 60),
            timeout=data.get("timeout", DEFAULT_TIMEOUT),
        )


class TokenManager:
    """Manages bearer tokens for multiple token sources.

    Each source is identified by a unique source_id. The manager handles:
    - Storing and retrieving tokens
    - Renewing expired tokens when they are requested
    - Scheduling automatic renewal
    - Handling renewal failures with exponential backoff
    """

    def __init__(
        self,
        store: Optional[TokenStore] = None,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        """Initialize token manager.

        Args:
            store: Token cache (created if not provided)
            scheduler: APScheduler instance (created if not provided)
        """
        self._store = store or TokenStore()
        self._scheduler = scheduler or BackgroundScheduler()
        self._configs: Dict[str, TokenConfig] = {}
        self._failure_counts: Dict[str, int] = {}
        self._renewal_callbacks: Dict[str, Callable[[str, TokenResponse], None]] = {}
        self._renew_lock = threading.RLock()

        if not self._scheduler.running:
            self._scheduler.start()

    def shutdown(self) -> None:
        """Shutdown the scheduler gracefully."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    def register_source(
        self,
        source_id: str,
        config: TokenConfig,
        initial_token: Optional[TokenResponse] = None,
    ) -> None:
        """Register a token source.

        Args:
            source_id: Unique identifier for the token source
            config: Token configuration
            initial_token: Optional initial token to store
        """
        self._configs[source_id] = config
        self._failure_counts[source_id] = 0

        if initial_token:
            self._store.save_token(source_id, initial_token)
            if initial_token.refresh_token:
                config.refresh_token = initial_token.refresh_token

        if config.renewal_interval_minutes > 0:
            self.schedule_renewal(source_id, config.renewal_interval_minutes)
        elif initial_token and initial_token.expires_in:
            renewal_seconds = max(60, initial_token.expires_in - config.buffer_seconds)
            self.schedule_renewal(source_id, renewal_seconds / 60)

    def unregister_source(self, source_id: str) -> None:
        """Unregister a token source and cancel its renewal."""
        self.cancel_renewal(source_id)
        self._configs.pop(source_id, None)
        self._failure_counts.pop(source_id, None)
        self._renewal_callbacks.pop(source_id, None)
        self._store.delete_token(source_id)

    def get_config(self, source_id: str) -> Optional[TokenConfig]:
        return self._configs.get(source_id)

    def get_token(self, source_id: str) -> str:
        """Get a valid access token, renewing it if needed.

        Args:
            source_id: Token source identifier

        Returns:
            Access token string

        Raises:
            TokenUnavailableError: If the source is unknown or renewal fails
        """
        config = self._configs.get(source_id)
        token = self._store.load_token(source_id)
        buffer_seconds = config.buffer_seconds if config else 0
        if token and not token.is_expired(buffer_seconds):
            return token.access_token

        if config is None:
            raise TokenUnavailableError(
                f"Token source {source_id} is not registered", source_id=source_id
            )

        with self._renew_lock:
            # another thread may have renewed while we waited
            token = self._store.load_token(source_id)
            if token and not token.is_expired(buffer_seconds):
                return token.access_token
            try:
                return self.renew_now(source_id).access_token
            except Exception as exc:
                raise TokenUnavailableError(
                    f"Unable to obtain token for {source_id}: {exc}", source_id=source_id
                ) from exc

    def get_full_token(self, source_id: str) -> Optional[TokenResponse]:
        return self._store.load_token(source_id)

    def supplier(self, source_id: str) -> TokenSupplier:
        """Build a credential that draws tokens from a registered source.

        Args:
            source_id: Token source identifier

        Returns:
            TokenSupplier credential
        """
        return TokenSupplier(functools.partial(self.get_token, source_id))

    def schedule_renewal(self, source_id: str, interval_minutes: float) -> None:
        """Schedule automatic token renewal for a source.

        Args:
            source_id: Token source identifier
            interval_minutes: Renewal interval in minutes
        """
        self._scheduler.add_job(
            func=self._renewal_job,
            trigger="interval",
            minutes=interval_minutes,
            id=self._job_id(source_id),
            args=[source_id],
            replace_existing=True,
            misfire_grace_time=60,
        )

        logger.info(
            "Scheduled token renewal for %s every %.1f minutes",
            source_id,
            interval_minutes,
        )

    def cancel_renewal(self, source_id: str) -> None:
        try:
            self._scheduler.remove_job(self._job_id(source_id))
        except JobLookupError:
            return
        logger.info("Cancelled token renewal for %s", source_id)

    def renew_now(self, source_id: str) -> TokenResponse:
        """Force immediate token renewal.

        Args:
            source_id: Token source identifier

        Returns:
            New TokenResponse

        Raises:
            OAuth2Error: If token endpoint returns an error
            ValueError: If the source is not registered
        """
        config = self._configs.get(source_id)
        if not config:
            raise ValueError(f"Token source {source_id} is not registered")

        with self._renew_lock:
            existing = self._store.load_token(source_id)
            token = self._authenticate(config, existing)
            self._store.save_token(source_id, token)
            self._failure_counts[source_id] = 0

            if token.refresh_token:
                config.refresh_token = token.refresh_token

        callback = self._renewal_callbacks.get(source_id)
        if callback:
            try:
                callback(source_id, token)
            except Exception as e:
                logger.error("Renewal callback failed for %s: %s", source_id, e)

        return token

    def set_renewal_callback(
        self,
        source_id: str,
        callback: Callable[[str, TokenResponse], None],
    ) -> None:
        """Set a callback to be called after successful renewal.

        Args:
            source_id: Token source identifier
            callback: Function taking (source_id, token) as arguments
        """
        self._renewal_callbacks[source_id] = callback

    def get_failure_count(self, source_id: str) -> int:
        return self._failure_counts.get(source_id, 0)

    def is_renewal_active(self, source_id: str) -> bool:
        return self._scheduler.get_job(self._job_id(source_id)) is not None

    @staticmethod
    def _job_id(source_id: str) -> str:
        return f"token_renewal_{source_id}"

    def _renewal_job(self, source_id: str) -> None:
        """Background job that renews a token."""
        try:
            self.renew_now(source_id)
            logger.info("Successfully renewed token for %s", source_id)
        except Exception as e:
            self._handle_failure(source_id, e)

    def _handle_failure(self, source_id: str, error: Exception) -> None:
        """Handle background renewal failure with exponential backoff."""
        self._failure_counts[source_id] = self._failure_counts.get(source_id, 0) + 1
        count = self._failure_counts[source_id]

        if count >= MAX_FAILURES:
            self.cancel_renewal(source_id)
            logger.error(
                "Token renewal disabled for %s after %d failures: %s",
                source_id,
                count,
                error,
            )
        else:
            # 1, 2, 4, 8 minutes
            backoff_minutes = (2 ** (count - 1)) * (BASE_BACKOFF_SECONDS / 60)
            self.schedule_renewal(source_id, backoff_minutes)
            logger.warning(
                "Token renewal failed for %s (attempt %d), retry in %.1f min: %s",
                source_id,
                count,
                backoff_minutes,
                error,
            )

    def _authenticate(
        self,
        config: TokenConfig,
        existing_token: Optional[TokenResponse] = None,
    ) -> TokenResponse:
        """Obtain a token, preferring the refresh token when one is known."""
        refresh_token = config.refresh_token
        if existing_token and existing_token.refresh_token:
            refresh_token = existing_token.refresh_token

        if refresh_token:
            try:
                return RefreshTokenFlow().refresh(
                    token_url=config.token_url,
                    refresh_token=refresh_token,
                    client_id=config.client_id,
                    client_secret=config.client_secret,
                    scopes=config.scopes or None,
                    timeout=config.timeout,
                )
            except OAuth2Error as e:
                if e.error not in ("invalid_grant", "invalid_token"):
                    raise
                logger.info("Refresh token invalid for %s, re-authenticating", config.client_id)

        if not config.client_secret:
            raise ValueError(
                f"Client {config.client_id} has no client secret and no usable refresh token"
            )

        return ClientCredentialsFlow().authenticate(
            token_url=config.token_url,
            client_id=config.client_id,
            client_secret=config.client_secret,
            scopes=config.scopes or None,
            timeout=config.timeout,
        )
