"""In-memory "cash" payment scheme used across the test suite.

A cash payment is signed by prefixing the payer's name with "~". The mock
facilitator accepts a payload when its signature matches its name and
settles by describing the transfer.
"""

from __future__ import annotations

import asyncio
import time

from x402_gate.schemas import (
    AssetAmount,
    PaymentOption,
    PaymentPayload,
    PaymentRequired,
    PaymentRequirements,
    SettleResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
)

CASH_SCHEME = "cash"
CASH_NETWORK = "x402:cash"


class CashSchemeNetworkServer:
    """Server side of the cash scheme: "$N" is N USD."""

    scheme = CASH_SCHEME

    def parse_price(self, price, network):
        if isinstance(price, AssetAmount):
            return price
        if isinstance(price, (int, float)):
            return AssetAmount(amount=str(int(price)), asset="USD")

        amount = str(price).strip().lstrip("$")
        if not amount.isdigit():
            raise ValueError(f"Invalid cash price: {price}")
        return AssetAmount(amount=amount, asset="USD")

    def enhance_payment_requirements(self, requirements, supported_kind, facilitator_extensions):
        return requirements


class CashSchemeNetworkClient:
    """Signs the first offered requirement on behalf of ``name``."""

    def __init__(self, name: str, network: str | None = None) -> None:
        self.name = name
        self.network = network

    def create_payment_payload(self, payment_required: PaymentRequired) -> PaymentPayload:
        accepted = payment_required.accepts[0]
        if self.network is not None:
            accepted = next(r for r in payment_required.accepts if r.network == self.network)

        return PaymentPayload(
            resource=payment_required.resource,
            accepted=accepted,
            payload={
                "signature": f"~{self.name}",
                "name": self.name,
                "validUntil": str(int(time.time()) + accepted.max_timeout_seconds),
            },
        )


class CashFacilitatorClient:
    """FacilitatorClient that verifies and settles cash payments in memory.

    Records every call so tests can assert how often settlement happened.
    """

    def __init__(
        self,
        kinds: list[tuple[str, str]] | None = None,
        settle_success: bool = True,
        verify_error: Exception | None = None,
        settle_error: Exception | None = None,
        delay: float = 0,
    ) -> None:
        self.kinds = kinds if kinds is not None else [(CASH_SCHEME, CASH_NETWORK)]
        self.settle_success = settle_success
        self.verify_error = verify_error
        self.settle_error = settle_error
        self.delay = delay

        self.verify_calls: list[tuple[PaymentPayload, PaymentRequirements]] = []
        self.settle_calls: list[tuple[PaymentPayload, PaymentRequirements]] = []
        self.supported_calls = 0

    async def verify(self, payload, requirements):
        self.verify_calls.append((payload, requirements))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.verify_error is not None:
            raise self.verify_error

        signature = payload.payload.get("signature")
        if signature != f"~{payload.payload.get('name')}":
            return VerifyResponse(is_valid=False, invalid_reason="invalid_signature")
        return VerifyResponse(is_valid=True, payer=signature)

    async def settle(self, payload, requirements):
        self.settle_calls.append((payload, requirements))
        if self.settle_error is not None:
            raise self.settle_error

        if not self.settle_success:
            return SettleResponse(
                success=False,
                error_reason="insufficient_funds",
                network=requirements.network,
            )

        name = payload.payload.get("name")
        return SettleResponse(
            success=True,
            transaction=(
                f"{name} transferred {requirements.amount} {requirements.asset} "
                f"to {requirements.pay_to}"
            ),
            network=requirements.network,
            payer=payload.payload.get("signature"),
        )

    async def get_supported(self):
        self.supported_calls += 1
        return SupportedResponse(
            kinds=[
                SupportedKind(x402_version=2, scheme=scheme, network=network)
                for scheme, network in self.kinds
            ],
        )


def build_cash_payment_requirements(
    pay_to: str,
    asset: str,
    amount: str,
    network: str = CASH_NETWORK,
) -> PaymentRequirements:
    return PaymentRequirements(
        scheme=CASH_SCHEME,
        network=network,
        asset=asset,
        amount=amount,
        pay_to=pay_to,
        max_timeout_seconds=1000,
    )


def cash_option(pay_to: str = "Merchant", price="$1", network: str = CASH_NETWORK) -> PaymentOption:
    return PaymentOption(scheme=CASH_SCHEME, network=network, pay_to=pay_to, price=price)


def build_cash_payload(
    requirements: PaymentRequirements,
    name: str = "John",
    signature: str | None = None,
) -> PaymentPayload:
    return PaymentPayload(
        accepted=requirements,
        payload={
            "signature": signature if signature is not None else f"~{name}",
            "name": name,
        },
    )
