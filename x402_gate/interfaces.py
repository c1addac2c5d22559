"""Protocols implemented by payment schemes and server extensions."""

from __future__ import annotations

from typing import Any, Protocol

from .schemas import AssetAmount, Network, PaymentRequirements, Price, SupportedKind


class SchemeNetworkServer(Protocol):
    """Server-side half of a payment scheme for one network family.

    Turns a route's declared price into concrete requirements. Verification
    and settlement of proofs are delegated to the facilitator.
    """

    scheme: str

    def parse_price(self, price: Price, network: Network) -> AssetAmount:
        """Convert a declared price into an atomic asset amount."""
        ...

    def enhance_payment_requirements(
        self,
        requirements: PaymentRequirements,
        supported_kind: SupportedKind | None,
        facilitator_extensions: list[str],
    ) -> PaymentRequirements:
        """Add scheme-specific metadata to requirements."""
        ...


class ResourceServerExtension(Protocol):
    """Extension that enriches declared extension data per request."""

    key: str

    def enrich_declaration(self, declaration: Any, transport_context: Any) -> Any:
        ...
