"""httpx client that pays for 402 responses and retries once."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..errors import PaymentAlreadyAttemptedError, PaymentError
from ..http.x402_http_client import PaymentPayloadFactory, x402HTTPClient
from ..schemas import SettleResponse
from .preflight import PreflightGate

logger = logging.getLogger(__name__)


class PaymentGatedClient:
    """Calls protected resources, paying when challenged.

    Flow per request: optional pre-flight gate, the plain request, and on a
    402 one retry carrying a PAYMENT-SIGNATURE built from the challenge.

    Example:
        ```python
        async with httpx.AsyncClient(base_url="http://localhost:8000") as http:
            client = PaymentGatedClient(http, factory, gate=gate)
            response = await client.get("/api/weather")
        ```
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        factory: PaymentPayloadFactory | x402HTTPClient,
        gate: PreflightGate | None = None,
    ) -> None:
        self._http = http_client
        if isinstance(factory, x402HTTPClient):
            self._x402 = factory
        else:
            self._x402 = x402HTTPClient(factory)
        self._gate = gate

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, paying and retrying once on 402.

        Raises:
            InsufficientBalanceError: From the gate, before any request.
            ApprovalFailedError: From the gate, before any request.
            PaymentAlreadyAttemptedError: The paid retry was answered with 402.
            PaymentError: The 402 could not be turned into a payment.
        """
        if self._gate is not None:
            await self._gate.check()

        response = await self._http.request(method, url, **kwargs)
        if response.status_code != 402:
            return response

        try:
            payment_headers, _ = await self._x402.handle_402_response(
                dict(response.headers), response.content
            )
        except PaymentError:
            raise
        except Exception as e:
            raise PaymentError(f"Failed to handle payment: {e}") from e

        headers = dict(kwargs.pop("headers", None) or {})
        headers.update(payment_headers)

        logger.debug("Retrying %s %s with payment", method, url)
        retry = await self._http.request(method, url, headers=headers, **kwargs)

        if retry.status_code == 402:
            raise PaymentAlreadyAttemptedError("Payment was rejected by the server")
        return retry

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    def get_settle_response(self, response: httpx.Response) -> SettleResponse:
        """Decode the PAYMENT-RESPONSE receipt of a paid response.

        Raises:
            ValueError: If the response carries no receipt.
        """
        return self._x402.get_payment_settle_response(response.headers.get)
