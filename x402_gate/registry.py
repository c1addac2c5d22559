"""Scheme registry: (scheme, network) -> scheme server.

Populated by explicit ``register`` calls before the gateway serves traffic
and only read afterwards, so lookups need no locking.
"""

from __future__ import annotations

import logging

from .errors import UnsupportedSchemeError
from .interfaces import SchemeNetworkServer
from .schemas import Network

logger = logging.getLogger(__name__)


def network_family_wildcard(network: Network) -> Network:
    """Return the family wildcard for a CAIP-2 network (eip155:8453 -> eip155:*)."""
    prefix = network.split(":")[0]
    return f"{prefix}:*"


class SchemeRegistry:
    """Explicit capability table keyed by (scheme, network).

    A network may be registered as a family wildcard such as ``eip155:*``;
    an exact network registration always wins over the wildcard.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, Network], SchemeNetworkServer] = {}

    def register(self, scheme: str, network: Network, server: SchemeNetworkServer) -> None:
        """Insert or replace the scheme server for (scheme, network)."""
        key = (scheme, network)
        if key in self._entries and self._entries[key] is not server:
            logger.info("Replacing scheme server for %s on %s", scheme, network)
        self._entries[key] = server

    def lookup(self, scheme: str, network: Network) -> SchemeNetworkServer:
        """Find the scheme server for (scheme, network).

        Raises:
            UnsupportedSchemeError: If neither the network nor its family
                wildcard has the scheme registered.
        """
        server = self._entries.get((scheme, network))
        if server is None:
            server = self._entries.get((scheme, network_family_wildcard(network)))
        if server is None:
            raise UnsupportedSchemeError(scheme, network)
        return server

    def has(self, scheme: str, network: Network) -> bool:
        try:
            self.lookup(scheme, network)
        except UnsupportedSchemeError:
            return False
        return True

    def entries(self) -> list[tuple[str, Network]]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
