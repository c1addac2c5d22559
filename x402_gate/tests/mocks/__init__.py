"""Mock implementations for testing."""

from .cash import (
    CASH_NETWORK,
    CASH_SCHEME,
    CashFacilitatorClient,
    CashSchemeNetworkClient,
    CashSchemeNetworkServer,
    build_cash_payload,
    build_cash_payment_requirements,
    cash_option,
)
from .http import MockHTTPAdapter, make_context

__all__ = [
    "CASH_NETWORK",
    "CASH_SCHEME",
    "CashFacilitatorClient",
    "CashSchemeNetworkClient",
    "CashSchemeNetworkServer",
    "MockHTTPAdapter",
    "build_cash_payload",
    "build_cash_payment_requirements",
    "cash_option",
    "make_context",
]
