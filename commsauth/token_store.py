"""In-memory cache of bearer tokens.

Tokens are kept per token source and never written to disk.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from commsauth.oauth2_flows import TokenResponse


class TokenStore:
    """Thread-safe mapping of token source id to its latest token."""

    def __init__(self):
        self._lock = threading.Lock()
        self._tokens: Dict[str, TokenResponse] = {}

    def save_token(self, source_id: str, token: TokenResponse) -> None:
        """Save the latest token for a source.

        Args:
            source_id: Token source identifier
            token: Token to store
        """
        with self._lock:
            self._tokens[source_id] = token

    def load_token(self, source_id: str) -> Optional[TokenResponse]:
        """Load the latest token for a source.

        Returns:
            Stored token or None if not found
        """
        with self._lock:
            return self._tokens.get(source_id)

    def delete_token(self, source_id: str) -> None:
        with self._lock:
            self._tokens.pop(source_id, None)

    def list_sources(self) -> List[str]:
        with self._lock:
            return list(self._tokens)
