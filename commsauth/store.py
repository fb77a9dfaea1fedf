"""Credential storage keyed by credential type."""

from __future__ import annotations

import logging
import threading
from typing import Dict, FrozenSet, Optional

from commsauth.credentials import Credential, CredentialType

logger = logging.getLogger(__name__)


class CredentialStore:
    """Holds at most one credential per :class:`CredentialType`.

    Credentials are normally added while building a client and only read
    afterwards, but ``add`` and ``get`` are safe to call from concurrent
    threads.
    """

    def __init__(self, *credentials: Credential):
        """Initialize the store.

        Args:
            credentials: Initial credentials, added in order
        """
        self._lock = threading.Lock()
        self._credentials: Dict[CredentialType, Credential] = {}
        for credential in credentials:
            self.add(credential)

    def add(self, credential: Credential) -> None:
        """Add a credential, replacing any existing one of the same type.

        Args:
            credential: Credential to store
        """
        credential_type = credential.credential_type
        with self._lock:
            replaced = credential_type in self._credentials
            self._credentials[credential_type] = credential
        if replaced:
            logger.debug("Replaced %s credential", credential_type.value)

    def get(self, credential_type: CredentialType) -> Optional[Credential]:
        """Look up the credential of a given type.

        Args:
            credential_type: Credential type tag

        Returns:
            The credential or None if none is configured
        """
        with self._lock:
            return self._credentials.get(credential_type)

    def remove(self, credential_type: CredentialType) -> bool:
        """Remove the credential of a given type.

        Returns:
            True if a credential was removed, False if none was configured
        """
        with self._lock:
            return self._credentials.pop(credential_type, None) is not None

    def variants_present(self) -> FrozenSet[CredentialType]:
        """Return the credential types currently configured."""
        with self._lock:
            return frozenset(self._credentials)

    def __contains__(self, credential_type: object) -> bool:
        with self._lock:
            return credential_type in self._credentials

    def __len__(self) -> int:
        with self._lock:
            return len(self._credentials)

    def __repr__(self) -> str:
        names = sorted(t.value for t in self.variants_present())
        return f"CredentialStore({', '.join(names)})"
