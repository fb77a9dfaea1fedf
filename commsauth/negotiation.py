"""Selection of a credential for an endpoint.

Each endpoint declares the credential types it accepts, strongest first.
The negotiator walks that list in order and returns the first credential
the client has been configured with.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple

from commsauth.credentials import Credential, CredentialType
from commsauth.exceptions import NoAcceptableCredentialError
from commsauth.store import CredentialStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AcceptableCredentials:
    """Ordered credential types accepted by an endpoint.

    Attributes:
        types: Accepted types in preference order, without duplicates
    """

    types: Tuple[CredentialType, ...] = ()

    def __post_init__(self):
        unique = []
        for credential_type in self.types:
            if not isinstance(credential_type, CredentialType):
                raise TypeError(f"Not a CredentialType: {credential_type!r}")
            if credential_type not in unique:
                unique.append(credential_type)
        object.__setattr__(self, "types", tuple(unique))

    @classmethod
    def of(cls, *types: CredentialType) -> "AcceptableCredentials":
        """Create from credential types in preference order."""
        return cls(tuple(types))

    def __iter__(self) -> Iterator[CredentialType]:
        return iter(self.types)

    def __len__(self) -> int:
        return len(self.types)

    def __contains__(self, credential_type: object) -> bool:
        return credential_type in self.types


class CredentialNegotiator:
    """Picks one usable credential from a :class:`CredentialStore`."""

    def __init__(self, store: CredentialStore):
        """Initialize the negotiator.

        Args:
            store: Credentials configured on the client
        """
        self._store = store

    @property
    def store(self) -> CredentialStore:
        return self._store

    def select(self, acceptable: Iterable[CredentialType]) -> Credential:
        """Select the preferred configured credential.

        Args:
            acceptable: Accepted credential types in preference order

        Returns:
            The first configured credential whose type is accepted

        Raises:
            TypeError: If an entry is not a CredentialType
            NoAcceptableCredentialError: If none of the accepted types is configured
        """
        acceptable = AcceptableCredentials(tuple(acceptable)).types
        for credential_type in acceptable:
            credential = self._store.get(credential_type)
            if credential is not None:
                logger.debug("Selected %s credential", credential_type.value)
                return credential

        raise NoAcceptableCredentialError(self._store.variants_present(), acceptable)
