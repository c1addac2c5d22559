"""x402 protocol extensions."""

from .bazaar import (
    BAZAAR,
    BazaarResourceServerExtension,
    OutputConfig,
    bazaar_resource_server_extension,
    declare_discovery_extension,
)

__all__ = [
    "BAZAAR",
    "BazaarResourceServerExtension",
    "OutputConfig",
    "bazaar_resource_server_extension",
    "declare_discovery_extension",
]
