"""x402-gate: pay-per-request HTTP gateway built on the x402 protocol.

Core exports:
    x402ResourceServer: verifies and settles payments through facilitators.
    SchemeRegistry: (scheme, network) -> scheme server table.

HTTP, framework and client layers live in ``x402_gate.http``,
``x402_gate.fastapi`` and ``x402_gate.clients``.
"""

from .errors import (
    ApprovalFailedError,
    ConfigurationError,
    ErrorKind,
    FacilitatorUnavailableError,
    InsufficientBalanceError,
    InvalidProofError,
    NoMatchingRequirementError,
    PaymentAbortedError,
    PaymentAlreadyAttemptedError,
    PaymentError,
    RouteConfigurationError,
    RouteValidationError,
    SettlementFailureError,
    UnsupportedSchemeError,
    X402Error,
)
from .hooks import AbortResult, RecoveredSettleResult, RecoveredVerifyResult
from .registry import SchemeRegistry
from .schemas import (
    X402_VERSION,
    AssetAmount,
    PaymentOption,
    PaymentPayload,
    PaymentRequired,
    PaymentRequirements,
    ResourceInfo,
    SettleResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
)
from .server import FacilitatorClient, x402ResourceServer

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "X402_VERSION",
    "x402ResourceServer",
    "FacilitatorClient",
    "SchemeRegistry",
    "AbortResult",
    "RecoveredSettleResult",
    "RecoveredVerifyResult",
    "AssetAmount",
    "PaymentOption",
    "PaymentPayload",
    "PaymentRequired",
    "PaymentRequirements",
    "ResourceInfo",
    "SettleResponse",
    "SupportedKind",
    "SupportedResponse",
    "VerifyResponse",
    "ApprovalFailedError",
    "ConfigurationError",
    "ErrorKind",
    "FacilitatorUnavailableError",
    "InsufficientBalanceError",
    "InvalidProofError",
    "NoMatchingRequirementError",
    "PaymentAbortedError",
    "PaymentAlreadyAttemptedError",
    "PaymentError",
    "RouteConfigurationError",
    "RouteValidationError",
    "SettlementFailureError",
    "UnsupportedSchemeError",
    "X402Error",
]
