"""HTTP-specific client helpers for x402 payment protocol."""

from __future__ import annotations

import inspect
import json
from typing import Any, Awaitable, Callable, Protocol, Union

from ..schemas import PaymentPayload, PaymentRequired, SettleResponse
from .constants import PAYMENT_REQUIRED_HEADER, PAYMENT_RESPONSE_HEADER, PAYMENT_SIGNATURE_HEADER
from .utils import (
    decode_payment_required_header,
    decode_payment_response_header,
    encode_payment_signature_header,
)


class PaymentPayloadFactory(Protocol):
    """Creates a signed proof for one of the offered requirements.

    Signing lives with the wallet; this package only transports the result.
    """

    def create_payment_payload(
        self,
        payment_required: PaymentRequired,
    ) -> Union[PaymentPayload, Awaitable[PaymentPayload]]:
        ...


class x402HTTPClient:
    """HTTP-specific client for x402 payment protocol.

    Wraps a PaymentPayloadFactory to provide HTTP encoding/decoding of the
    challenge, proof and receipt headers.
    """

    def __init__(self, factory: PaymentPayloadFactory) -> None:
        self._factory = factory

    # =========================================================================
    # Header Encoding/Decoding
    # =========================================================================

    def encode_payment_signature_header(self, payload: PaymentPayload) -> dict[str, str]:
        """Encode payment payload into the proof header.

        Returns:
            Dict with single header name -> value.
        """
        return {PAYMENT_SIGNATURE_HEADER: encode_payment_signature_header(payload)}

    def get_payment_required_response(
        self,
        get_header: Callable[[str], str | None],
        body: Any = None,
    ) -> PaymentRequired:
        """Extract the challenge from a 402 response.

        Prefers the PAYMENT-REQUIRED header and falls back to the JSON body.

        Raises:
            ValueError: If no payment required info found.
        """
        header = get_header(PAYMENT_REQUIRED_HEADER)
        if header:
            return decode_payment_required_header(header)

        if isinstance(body, (bytes, str)) and body:
            body = json.loads(body)
        if isinstance(body, dict) and "accepts" in body:
            return PaymentRequired.model_validate(body)

        raise ValueError("Invalid payment required response")

    def get_payment_settle_response(
        self,
        get_header: Callable[[str], str | None],
    ) -> SettleResponse:
        """Extract the settlement receipt from response headers.

        Raises:
            ValueError: If no payment response header found.
        """
        header = get_header(PAYMENT_RESPONSE_HEADER)
        if header:
            return decode_payment_response_header(header)

        raise ValueError("Payment response header not found")

    # =========================================================================
    # Payment Creation
    # =========================================================================

    async def create_payment_payload(self, payment_required: PaymentRequired) -> PaymentPayload:
        """Create a proof through the factory (sync or async)."""
        payload = self._factory.create_payment_payload(payment_required)
        if inspect.isawaitable(payload):
            payload = await payload
        return payload

    async def handle_402_response(
        self,
        headers: dict[str, str],
        body: bytes | None,
    ) -> tuple[dict[str, str], PaymentPayload]:
        """Handle a 402 response and create payment headers.

        Returns:
            Tuple of (headers_to_add, payment_payload).
        """
        normalized = {k.upper(): v for k, v in headers.items()}

        def get_header(name: str) -> str | None:
            return normalized.get(name.upper())

        body_data = None
        if body:
            try:
                body_data = json.loads(body)
            except json.JSONDecodeError:
                pass

        payment_required = self.get_payment_required_response(get_header, body_data)
        payment_payload = await self.create_payment_payload(payment_required)

        return self.encode_payment_signature_header(payment_payload), payment_payload
