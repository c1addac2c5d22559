"""EVM mechanism for x402 payments."""

from .constants import NETWORK_CONFIGS, SCHEME_EXACT
from .utils import get_asset_info, get_evm_chain_id, get_network_config, normalize_address

__all__ = [
    "NETWORK_CONFIGS",
    "SCHEME_EXACT",
    "get_asset_info",
    "get_evm_chain_id",
    "get_network_config",
    "normalize_address",
]
