"""Request state machine tying verification, the handler and settlement.

A protected request moves through::

    NO_PROOF -> CHALLENGED
    PROOF_PRESENT -> VERIFYING -> REJECTED
                              -> VERIFIED -> HANDLING -> HANDLING_FAILED
                                                      -> SETTLING -> SETTLED

Framework bindings drive one pass of this machine per request through
``PaymentGateway.process``. The handler runs at most once and settlement is
attempted at most once, only after the handler returned a success status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Generic, TypeVar

from ..errors import SettlementFailureError
from ..schemas import PaymentPayload, PaymentRequirements
from .types import (
    RESULT_NO_PAYMENT_REQUIRED,
    RESULT_PAYMENT_ERROR,
    HTTPRequestContext,
    HTTPResponseInstructions,
    ProcessSettleResult,
)
from .x402_http_server import x402HTTPResourceServer

logger = logging.getLogger(__name__)

R = TypeVar("R")


class GatewayState(str, Enum):
    """Terminal states of one pass through the gateway."""

    PASSED_THROUGH = "passed_through"
    CHALLENGED = "challenged"
    REJECTED = "rejected"
    HANDLING_FAILED = "handling_failed"
    SETTLED = "settled"
    SETTLEMENT_FAILED = "settlement_failed"


def is_successful_status(status: int) -> bool:
    """Only responses below 400 are paid for."""
    return status < 400


@dataclass
class GatewayOutcome(Generic[R]):
    """Result of one request.

    Exactly one of ``instructions`` (send this instead of the resource) and
    ``response`` (the handler's response) is set.
    """

    state: GatewayState
    instructions: HTTPResponseInstructions | None = None
    response: R | None = None
    settlement: ProcessSettleResult | None = None
    error: SettlementFailureError | None = None


class PaymentGateway:
    """Runs the verify -> handle -> settle sequence for one request at a time.

    Stateless between requests; a single instance serves all of them.
    """

    def __init__(self, http_server: x402HTTPResourceServer) -> None:
        self._http_server = http_server

    @property
    def http_server(self) -> x402HTTPResourceServer:
        return self._http_server

    async def process(
        self,
        context: HTTPRequestContext,
        handler: Callable[[], Awaitable[R]],
        status_of: Callable[[R], int],
    ) -> GatewayOutcome[R]:
        """Gate one request.

        Args:
            context: Request context for route matching and proof extraction.
            handler: Produces the protected response. Called at most once.
            status_of: Reads the status code from the handler's response.

        Returns:
            GatewayOutcome. Exceptions from ``handler`` propagate unchanged
            and nothing is settled.
        """
        result = await self._http_server.process_http_request(context)

        if result.type == RESULT_NO_PAYMENT_REQUIRED:
            return GatewayOutcome(GatewayState.PASSED_THROUGH, response=await handler())

        if result.type == RESULT_PAYMENT_ERROR:
            has_proof = context.payment_header or self._http_server.get_payment_header(context.adapter)
            state = GatewayState.REJECTED if has_proof else GatewayState.CHALLENGED
            return GatewayOutcome(state, instructions=result.response)

        response = await handler()

        settlement = await self.settle_after_response(
            status_of(response),
            result.payment_payload,
            result.payment_requirements,
        )

        error = None
        if settlement is None:
            state = GatewayState.HANDLING_FAILED
        elif settlement.success:
            state = GatewayState.SETTLED
        else:
            state = GatewayState.SETTLEMENT_FAILED
            error = SettlementFailureError(settlement.error_reason or "Settlement failed")

        return GatewayOutcome(state, response=response, settlement=settlement, error=error)

    async def settle_after_response(
        self,
        status: int,
        payment_payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> ProcessSettleResult | None:
        """Settle once if the handler succeeded.

        Returns:
            None when the status is 400 or above (nothing settled), otherwise
            the settlement result. A failed settlement is logged and
            returned, never raised.
        """
        if not is_successful_status(status):
            logger.info("x402: handler returned %s, payment not settled", status)
            return None

        settlement = await self._http_server.process_settlement(payment_payload, requirements)

        if settlement.success:
            logger.info(
                "x402: settled %s %s on %s (tx %s)",
                requirements.amount,
                requirements.asset,
                settlement.network or requirements.network,
                settlement.transaction,
            )
        else:
            logger.warning("x402: settlement failed: %s", settlement.error_reason)

        return settlement

