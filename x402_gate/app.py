"""Demo application: a paid music page and a paid weather API.

Run with ``x402-gate`` (or ``python -m x402_gate.app``) after setting
FACILITATOR_URL and EVM_ADDRESS.
"""

from __future__ import annotations

import argparse
import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse

from .config import GatewaySettings, load_settings
from .errors import ConfigurationError
from .extensions.bazaar import bazaar_resource_server_extension, declare_discovery_extension
from .fastapi import payment_middleware, with_x402
from .http import FacilitatorConfig, HTTPFacilitatorClient, PaywallConfig, RouteConfig
from .logging_config import setup_logging
from .mechanisms.evm.constants import NETWORK_BASE_SEPOLIA, SCHEME_EXACT, XNY_BASE_SEPOLIA
from .mechanisms.evm.exact import register_exact_evm_server
from .schemas import AssetAmount, PaymentOption
from .server import x402ResourceServer

logger = logging.getLogger(__name__)

# 0.01 XNY (18 decimals)
XNY_PRICE = AssetAmount(
    amount="10000000000000000",
    asset=XNY_BASE_SEPOLIA["address"],
    extra={"name": XNY_BASE_SEPOLIA["name"], "version": XNY_BASE_SEPOLIA["version"]},
)

WEATHER_REPORT = {"report": {"weather": "sunny", "temperature": 72}}

PROTECTED_PAGE = """<!DOCTYPE html>
<html>
<head><title>Premium music: x402 Remix</title><meta charset="UTF-8"></head>
<body style="max-width: 600px; margin: 50px auto; font-family: system-ui;">
    <h1>x402 Remix</h1>
    <p>Thanks for your payment. Enjoy the track.</p>
    <audio controls src="/static/x402-remix.mp3"></audio>
</body>
</html>"""


def build_resource_server(settings: GatewaySettings) -> x402ResourceServer:
    """Facilitator client, resource server and scheme registration."""
    facilitator = HTTPFacilitatorClient(
        FacilitatorConfig(url=settings.FACILITATOR_URL, timeout=settings.FACILITATOR_TIMEOUT)
    )
    server = x402ResourceServer(facilitator, facilitator_timeout=settings.FACILITATOR_TIMEOUT)
    register_exact_evm_server(server)
    server.register_extension(bazaar_resource_server_extension)
    return server


def xny_option(pay_to: str) -> PaymentOption:
    return PaymentOption(
        scheme=SCHEME_EXACT,
        network=NETWORK_BASE_SEPOLIA,
        pay_to=pay_to,
        price=XNY_PRICE,
    )


def create_app(
    settings: GatewaySettings,
    server: x402ResourceServer | None = None,
) -> FastAPI:
    """Build the demo FastAPI app.

    Args:
        settings: Loaded gateway settings.
        server: Optional pre-built resource server (tests inject one with a
            fake facilitator).
    """
    server = server or build_resource_server(settings)
    paywall = PaywallConfig(
        app_name=settings.APP_NAME,
        app_logo=settings.APP_LOGO,
        testnet=settings.TESTNET,
    )

    gateways = []

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Facilitator support is checked before the first request is served
        for gateway in gateways:
            await gateway.http_server.initialize()
        yield
        for client in server.facilitator_clients:
            if isinstance(client, HTTPFacilitatorClient):
                await client.aclose()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

    # Proxy: every path under /protected costs 0.01 XNY
    proxy = payment_middleware(
        {
            "/protected/:path*": RouteConfig(
                accepts=(xny_option(settings.EVM_ADDRESS),),
                description="Premium music: x402 Remix",
                mime_type="text/html",
                extensions=declare_discovery_extension(),
            ),
        },
        server,
        matcher=["/protected/:path*"],
        paywall_config=paywall,
    )
    app.middleware("http")(proxy)
    gateways.append(proxy.gateway)

    @app.get("/protected", response_class=HTMLResponse)
    async def protected_page() -> str:
        return PROTECTED_PAGE

    weather_route = RouteConfig(
        accepts=(xny_option(settings.EVM_ADDRESS),),
        description="Access to weather API",
        mime_type="application/json",
        extensions=declare_discovery_extension(output={"example": WEATHER_REPORT}),
    )

    # Per-route wrapper: settles only after the handler answers below 400
    @app.get("/api/weather")
    @with_x402(weather_route, server, paywall_config=paywall)
    async def weather(request: Request):
        return WEATHER_REPORT

    gateways.append(weather.gateway)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="x402-gate", description="Run the x402 demo gateway")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=4021)
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logging.basicConfig()
        logger.error("%s", e)
        sys.exit(1)

    setup_logging(settings.LOG_LEVEL)
    logger.info("Using facilitator %s, paying to %s", settings.FACILITATOR_URL, settings.EVM_ADDRESS)

    uvicorn.run(create_app(settings), host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
