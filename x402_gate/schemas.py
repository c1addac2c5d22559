"""Wire types for the x402 payment protocol (version 2).

All models serialize with camelCase aliases (``payTo``, ``x402Version``) and
accept either spelling on input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

X402_VERSION = 2

# CAIP-2 chain identifier, e.g. "eip155:84532"
Network = str


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _validate_atomic_amount(v: str) -> str:
    try:
        value = int(v)
    except ValueError:
        raise ValueError("amount must be an integer encoded as a string")
    if value < 0:
        raise ValueError("amount must not be negative")
    return v


# ============================================================================
# Prices
# ============================================================================


class AssetAmount(_CamelModel):
    """Fixed token price: atomic amount of a specific asset."""

    amount: str
    asset: str
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("amount")
    def validate_amount(cls, v):
        return _validate_atomic_amount(v)


# Money is a fiat-denominated price ("$0.01", 0.01); converted by the scheme
Money = Union[str, int, float]
Price = Union[Money, AssetAmount]


# ============================================================================
# Requirements and proofs
# ============================================================================


class PaymentRequirements(_CamelModel):
    """One acceptable way to pay for a resource (an ``accepts`` entry)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
    )

    scheme: str
    network: Network
    asset: str
    amount: str
    pay_to: str
    max_timeout_seconds: int = 300
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("amount")
    def validate_amount(cls, v):
        return _validate_atomic_amount(v)


class ResourceInfo(_CamelModel):
    url: str
    description: str = ""
    mime_type: str = ""


class PaymentRequired(_CamelModel):
    """Body of an HTTP 402 challenge."""

    x402_version: int = X402_VERSION
    error: str | None = None
    resource: ResourceInfo | None = None
    accepts: list[PaymentRequirements]
    description: str | None = None
    mime_type: str | None = None
    extensions: dict[str, Any] | None = None


class PaymentPayload(_CamelModel):
    """Proof of payment submitted by the client.

    ``accepted`` echoes the requirement the client chose to pay, which is how
    the server knows the scheme, network and asset the proof targets.
    ``payload`` is opaque to the gateway and interpreted by the facilitator.
    """

    x402_version: int = X402_VERSION
    resource: ResourceInfo | None = None
    accepted: PaymentRequirements
    payload: dict[str, Any]
    extensions: dict[str, Any] | None = None

    def get_scheme(self) -> str:
        return self.accepted.scheme

    def get_network(self) -> Network:
        return self.accepted.network


# ============================================================================
# Facilitator responses
# ============================================================================


class VerifyResponse(_CamelModel):
    is_valid: bool
    invalid_reason: str | None = None
    payer: str | None = None


class SettleResponse(_CamelModel):
    success: bool
    error_reason: str | None = None
    payer: str | None = None
    transaction: str = ""
    network: Network = ""


class SupportedKind(_CamelModel):
    x402_version: int
    scheme: str
    network: Network
    extra: dict[str, Any] | None = None


class SupportedResponse(_CamelModel):
    kinds: list[SupportedKind]
    extensions: list[str] = Field(default_factory=list)
    signers: dict[str, list[str]] = Field(default_factory=dict)


# ============================================================================
# Route-level declarations
# ============================================================================


@dataclass(frozen=True)
class PaymentOption:
    """One way a route accepts payment, before price resolution.

    Attributes:
        scheme: Payment scheme identifier (e.g., "exact").
        network: CAIP-2 network (e.g., "eip155:84532").
        pay_to: Recipient address.
        price: Money ("$0.01") or an explicit AssetAmount.
        max_timeout_seconds: Optional validity window for the proof.
        extra: Additional scheme metadata merged into the requirements.
    """

    scheme: str
    network: Network
    pay_to: str
    price: Price
    max_timeout_seconds: int | None = None
    extra: dict[str, Any] | None = None
