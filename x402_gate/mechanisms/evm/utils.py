"""EVM utility functions for networks, assets, addresses and amounts."""

import re
from decimal import Decimal, InvalidOperation

from eth_utils import is_address, to_checksum_address

from .constants import DEFAULT_DECIMALS, NETWORK_CONFIGS, AssetInfo, NetworkConfig


def get_evm_chain_id(network: str) -> int:
    """Extract chain ID from a CAIP-2 network identifier (eip155:CHAIN_ID).

    Raises:
        ValueError: If network format is invalid.
    """
    if network.startswith("eip155:"):
        try:
            return int(network.split(":")[1])
        except (IndexError, ValueError) as e:
            raise ValueError(f"Invalid CAIP-2 network format: {network}") from e

    raise ValueError(f"Unsupported network format: {network} (expected eip155:CHAIN_ID)")


def get_network_config(network: str) -> NetworkConfig:
    """Get configuration for a CAIP-2 network identifier.

    Returns a full config for known networks, or a minimal config (chain_id only)
    for any valid but unknown eip155 network.

    Raises:
        ValueError: If the network format is invalid or not an eip155 network.
    """
    if network in NETWORK_CONFIGS:
        return NETWORK_CONFIGS[network]

    return {"chain_id": get_evm_chain_id(network)}


def get_asset_info(network: str, asset_address: str) -> AssetInfo:
    """Get asset info by address.

    Known tokens (the network's default asset and any listed extra assets)
    return their full metadata; anything else gets a minimal entry.
    """
    config = get_network_config(network)
    known = []
    if "default_asset" in config:
        known.append(config["default_asset"])
    known.extend(config.get("assets", []))

    for asset in known:
        if asset["address"].lower() == asset_address.lower():
            return asset

    return {"address": asset_address, "name": "", "version": "", "decimals": DEFAULT_DECIMALS}


def normalize_address(address: str) -> str:
    """Normalize Ethereum address to EIP-55 checksummed format.

    Raises:
        ValueError: If the address is not a valid 20-byte hex address.
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid Ethereum address: {address}")
    return to_checksum_address(address)


def is_valid_address(address: str) -> bool:
    return isinstance(address, str) and is_address(address)


def parse_amount(amount: str | Decimal, decimals: int) -> int:
    """Convert decimal amount to smallest unit (wei)."""
    return int(Decimal(amount) * (Decimal(10) ** decimals))


def parse_money_to_decimal(money: str | float | int) -> Decimal:
    """Parse Money to Decimal.

    Handles formats like "$1.50", "1.50 USDC", 1.50.

    Raises:
        ValueError: If money format is invalid.
    """
    if isinstance(money, (int, float)):
        return Decimal(str(money))

    clean = money.strip().lstrip("$")
    clean = re.sub(r"\s*(USD|USDC|usd|usdc)\s*$", "", clean).strip()

    try:
        value = Decimal(clean)
    except InvalidOperation as e:
        raise ValueError(f"Invalid money format: {money}") from e

    if value < 0:
        raise ValueError(f"Negative price: {money}")
    return value
