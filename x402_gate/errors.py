"""Exception hierarchy for x402-gate.

Configuration errors are raised while the gateway is being built and must
stop the process. Every other error is a per-request condition that the HTTP
layer converts into a structured response.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable error kinds reported in response bodies."""

    CONFIGURATION = "configuration_error"
    NO_MATCHING_REQUIREMENT = "no_matching_requirement"
    INVALID_PROOF = "invalid_proof"
    UNSUPPORTED_SCHEME = "unsupported_scheme"
    FACILITATOR_UNAVAILABLE = "facilitator_unavailable"
    SETTLEMENT_FAILURE = "settlement_failure"
    PAYMENT_ABORTED = "payment_aborted"


class X402Error(Exception):
    """Base class for all x402-gate errors."""

    kind: ErrorKind = ErrorKind.CONFIGURATION


# ============================================================================
# Startup
# ============================================================================


class ConfigurationError(X402Error):
    """Invalid or missing startup configuration. Fatal."""

    kind = ErrorKind.CONFIGURATION


@dataclass
class RouteValidationError:
    """One invalid payment option found while validating routes."""

    route_pattern: str
    scheme: str
    network: str
    reason: str
    message: str


class RouteConfigurationError(ConfigurationError):
    """Routes reference schemes or networks the server cannot handle."""

    def __init__(self, errors: list[RouteValidationError]) -> None:
        self.errors = errors
        lines = "\n".join(f"  - {e.message}" for e in errors)
        super().__init__(f"x402 route configuration errors:\n{lines}")


# ============================================================================
# Per-request
# ============================================================================


class NoMatchingRequirementError(X402Error):
    """Proof does not target any (scheme, network, asset) the route accepts."""

    kind = ErrorKind.NO_MATCHING_REQUIREMENT

    def __init__(self, scheme: str, network: str) -> None:
        self.scheme = scheme
        self.network = network
        super().__init__(f"No matching payment requirements for {scheme} on {network}")


class InvalidProofError(X402Error):
    """Facilitator reported the proof as invalid."""

    kind = ErrorKind.INVALID_PROOF

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason or "invalid_payment"
        super().__init__(f"Invalid payment: {self.reason}")


class UnsupportedSchemeError(X402Error):
    """No scheme server registered for the (scheme, network) pair."""

    kind = ErrorKind.UNSUPPORTED_SCHEME

    def __init__(self, scheme: str, network: str) -> None:
        self.scheme = scheme
        self.network = network
        super().__init__(f'No scheme "{scheme}" registered for network "{network}"')


class FacilitatorUnavailableError(X402Error):
    """Facilitator could not be reached or answered unusably. Retryable."""

    kind = ErrorKind.FACILITATOR_UNAVAILABLE


class SettlementFailureError(X402Error):
    """Settlement failed after the response was already produced."""

    kind = ErrorKind.SETTLEMENT_FAILURE

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Settlement failed: {reason}")


class PaymentAbortedError(X402Error):
    """A before-hook aborted verification or settlement."""

    kind = ErrorKind.PAYMENT_ABORTED

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Payment aborted: {reason}")


# ============================================================================
# Client side
# ============================================================================


class PaymentError(X402Error):
    """Base class for client-side payment errors."""


class PaymentAlreadyAttemptedError(PaymentError):
    """Raised when the server still answers 402 after a paid retry."""


class InsufficientBalanceError(PaymentError):
    """Wallet holds no tokens; the user must fund it first."""

    def __init__(self, address: str, faucet_url: str | None = None) -> None:
        self.address = address
        self.faucet_url = faucet_url
        message = f"Wallet {address} has no token balance"
        if faucet_url:
            message += f"; claim tokens at {faucet_url}"
        super().__init__(message)


class ApprovalFailedError(PaymentError):
    """Token approval transaction failed or reverted."""
