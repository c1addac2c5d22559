"""EVM mechanism constants - network configs, token metadata, ABIs."""

from typing import TypedDict

# Scheme identifier
SCHEME_EXACT = "exact"

# Default token decimals for USDC
DEFAULT_DECIMALS = 6

# Transaction receipt status
TX_STATUS_SUCCESS = 1
TX_STATUS_FAILED = 0

# Family wildcard covering every EVM chain
EVM_NETWORK_WILDCARD = "eip155:*"

NETWORK_BASE = "eip155:8453"
NETWORK_BASE_SEPOLIA = "eip155:84532"


class _AssetInfoRequired(TypedDict):
    """Required fields for a token asset."""

    address: str
    name: str
    version: str
    decimals: int


class AssetInfo(_AssetInfoRequired, total=False):
    """Information about a token asset."""

    symbol: str


class _NetworkConfigRequired(TypedDict):
    """Required fields for an EVM network configuration."""

    chain_id: int


class NetworkConfig(_NetworkConfigRequired, total=False):
    """Configuration for an EVM network."""

    default_asset: AssetInfo
    assets: list[AssetInfo]


# XNY demo token on Base Sepolia (EIP-712 domain name "XNY", version "1")
XNY_BASE_SEPOLIA: AssetInfo = {
    "address": "0xc2983537C79A8f82ce6A7903Fe1F14D4761dBD17",
    "name": "XNY",
    "version": "1",
    "decimals": 18,
    "symbol": "XNY",
}

# Network configurations
NETWORK_CONFIGS: dict[str, NetworkConfig] = {
    # Base Mainnet
    NETWORK_BASE: {
        "chain_id": 8453,
        "default_asset": {
            "address": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
            "name": "USD Coin",
            "version": "2",
            "decimals": 6,
            "symbol": "USDC",
        },
    },
    # Base Sepolia (Testnet)
    NETWORK_BASE_SEPOLIA: {
        "chain_id": 84532,
        "default_asset": {
            "address": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
            "name": "USDC",
            "version": "2",
            "decimals": 6,
            "symbol": "USDC",
        },
        "assets": [XNY_BASE_SEPOLIA],
    },
}

# ERC-20 subset used by the client pre-flight gate
ERC20_ABI = [
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

# Demo wallet flow: token the user spends and the contract it approves
DEMO_TOKEN_ADDRESS = "0xe9fC6F3CcD332e84054D8Afd148ecE66BF18C2bA"
DEMO_SPENDER_ADDRESS = "0xc2983537C79A8f82ce6A7903Fe1F14D4761dBD17"
