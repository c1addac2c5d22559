"""FastAPI bindings: a path-matching proxy and a per-route wrapper.

Both drive the same PaymentGateway, so they share one behaviour: challenge
without proof, verify before the handler, settle only after a response below
400, and hand back the computed response even when settlement fails.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from fastapi.encoders import jsonable_encoder
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, Response

from ..http.gateway import GatewayOutcome, PaymentGateway
from ..http.paywall import PaywallConfig, PaywallProvider
from ..http.types import HTTPResponseInstructions, RouteConfig, RoutesConfig
from ..http.x402_http_server import x402HTTPResourceServer
from ..server import x402ResourceServer
from .adapter import request_context

logger = logging.getLogger(__name__)

Endpoint = Callable[[Request], Awaitable[Any]]


def to_response(instructions: HTTPResponseInstructions) -> Response:
    """Turn gateway response instructions into a Starlette response."""
    if instructions.is_html:
        return HTMLResponse(
            content=instructions.body,
            status_code=instructions.status,
            headers=instructions.headers,
        )
    return JSONResponse(
        content=instructions.body,
        status_code=instructions.status,
        headers=instructions.headers,
    )


def _finish(outcome: GatewayOutcome[Response]) -> Response:
    if outcome.instructions is not None:
        return to_response(outcome.instructions)

    response = outcome.response
    if outcome.settlement is not None and outcome.settlement.success:
        response.headers.update(outcome.settlement.headers)
    return response


def payment_middleware(
    routes: RoutesConfig,
    server: x402ResourceServer,
    matcher: str | list[str] | None = None,
    paywall_config: PaywallConfig | None = None,
    paywall_provider: PaywallProvider | None = None,
) -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    """Generate a FastAPI HTTP middleware that gates payments by route.

    Args:
        routes: Route pattern -> RouteConfig (or raw camelCase dict).
        server: x402ResourceServer with schemes registered.
        matcher: Optional path pattern(s); other paths are never inspected.
        paywall_config: Paywall customization for browser requests.
        paywall_provider: Optional custom paywall renderer.

    Returns:
        Middleware for ``app.middleware("http")(...)``.

    Raises:
        RouteConfigurationError: If a route accepts an unregistered scheme.
    """
    http_server = x402HTTPResourceServer(
        server, routes, matcher=matcher, paywall_config=paywall_config
    )
    if paywall_provider is not None:
        http_server.register_paywall_provider(paywall_provider)
    gateway = PaymentGateway(http_server)

    async def middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]):
        outcome = await gateway.process(
            request_context(request),
            lambda: call_next(request),
            lambda response: response.status_code,
        )
        return _finish(outcome)

    middleware.gateway = gateway  # type: ignore[attr-defined]
    return middleware


def with_x402(
    route_config: RouteConfig | dict[str, Any],
    server: x402ResourceServer,
    paywall_config: PaywallConfig | None = None,
    paywall_provider: PaywallProvider | None = None,
) -> Callable[[Endpoint], Callable[[Request], Awaitable[Response]]]:
    """Decorate a single endpoint so it is only served after payment.

    The endpoint must take the Request as its only parameter. Plain return
    values are JSON-encoded.

    Example:
        ```python
        @app.get("/api/weather")
        @with_x402(weather_route, server)
        async def weather(request: Request):
            return {"report": {"weather": "sunny", "temperature": 72}}
        ```

    Raises:
        RouteConfigurationError: If the route accepts an unregistered scheme.
    """
    http_server = x402HTTPResourceServer(
        server, {"*": route_config}, paywall_config=paywall_config
    )
    if paywall_provider is not None:
        http_server.register_paywall_provider(paywall_provider)
    gateway = PaymentGateway(http_server)

    def decorator(endpoint: Endpoint) -> Callable[[Request], Awaitable[Response]]:
        async def call_endpoint(request: Request) -> Response:
            result = await endpoint(request)
            if isinstance(result, Response):
                return result
            return JSONResponse(content=jsonable_encoder(result))

        async def wrapper(request: Request) -> Response:
            outcome = await gateway.process(
                request_context(request),
                lambda: call_endpoint(request),
                lambda response: response.status_code,
            )
            return _finish(outcome)

        wrapper.__name__ = endpoint.__name__
        wrapper.__doc__ = endpoint.__doc__
        wrapper.gateway = gateway  # type: ignore[attr-defined]
        return wrapper

    return decorator
