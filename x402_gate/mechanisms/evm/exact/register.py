"""Registration helpers for EVM exact payment schemes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..constants import EVM_NETWORK_WILDCARD
from .server import ExactEvmScheme as ExactEvmServerScheme

if TYPE_CHECKING:
    from ....server import x402ResourceServer


def register_exact_evm_server(
    server: x402ResourceServer,
    networks: str | list[str] | None = None,
) -> x402ResourceServer:
    """Register EVM exact payment schemes to x402ResourceServer.

    Args:
        server: x402ResourceServer instance.
        networks: Optional specific network(s) (default: eip155:* wildcard).

    Returns:
        Server for chaining.
    """
    scheme = ExactEvmServerScheme()

    if networks:
        if isinstance(networks, str):
            networks = [networks]
        for network in networks:
            server.register(network, scheme)
    else:
        server.register(EVM_NETWORK_WILDCARD, scheme)

    return server
