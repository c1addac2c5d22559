"""Exact EVM payment scheme for x402 (server side)."""

from .register import register_exact_evm_server
from .server import ExactEvmScheme

ExactEvmServerScheme = ExactEvmScheme

__all__ = [
    "ExactEvmScheme",
    "ExactEvmServerScheme",
    "register_exact_evm_server",
]
