"""Client-side helpers: pre-flight gate and paying HTTP client."""

from .httpx import PaymentGatedClient
from .preflight import (
    DEFAULT_ALLOWANCE_THRESHOLD,
    DEFAULT_FAUCET_URL,
    LedgerAccess,
    PreflightGate,
    PreflightOutcome,
    PreflightResult,
    Web3LedgerAccess,
)

__all__ = [
    "DEFAULT_ALLOWANCE_THRESHOLD",
    "DEFAULT_FAUCET_URL",
    "LedgerAccess",
    "PaymentGatedClient",
    "PreflightGate",
    "PreflightOutcome",
    "PreflightResult",
    "Web3LedgerAccess",
]
