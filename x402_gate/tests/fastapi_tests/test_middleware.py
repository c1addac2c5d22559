import pytest
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from x402_gate import x402ResourceServer
from x402_gate.errors import RouteConfigurationError
from x402_gate.http import (
    PAYMENT_REQUIRED_HEADER,
    PAYMENT_RESPONSE_HEADER,
    PAYMENT_SIGNATURE_HEADER,
    PaywallConfig,
    RouteConfig,
    decode_payment_required_header,
    decode_payment_response_header,
    encode_payment_signature_header,
)
from x402_gate.fastapi import payment_middleware, with_x402
from x402_gate.schemas import PaymentOption

from ..mocks import (
    CASH_NETWORK,
    CashFacilitatorClient,
    CashSchemeNetworkServer,
    build_cash_payload,
    build_cash_payment_requirements,
    cash_option,
)

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml",
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0)",
}


def create_payment_header(signature=None):
    requirements = build_cash_payment_requirements("Merchant", "USD", "1")
    payload = build_cash_payload(requirements, "John", signature=signature)
    return encode_payment_signature_header(payload)


def create_server(**facilitator_kwargs):
    facilitator = CashFacilitatorClient(**facilitator_kwargs)
    server = x402ResourceServer(facilitator)
    server.register(CASH_NETWORK, CashSchemeNetworkServer())
    return server, facilitator


def create_proxy_app(**facilitator_kwargs):
    server, facilitator = create_server(**facilitator_kwargs)
    app = FastAPI()

    app.middleware("http")(
        payment_middleware(
            {
                "/protected/:path*": RouteConfig(
                    accepts=(cash_option(),),
                    description="Premium music",
                    mime_type="text/html",
                ),
            },
            server,
            matcher=["/protected/:path*"],
            paywall_config=PaywallConfig(app_name="Test Shop"),
        )
    )

    @app.get("/protected/song")
    async def song():
        return {"song": "x402 Remix"}

    @app.get("/protected/broken")
    async def broken():
        raise HTTPException(status_code=500, detail="broken")

    @app.get("/protected/crash")
    async def crash():
        raise RuntimeError("handler crashed")

    @app.api_route("/protected/echo", methods=["GET", "POST"])
    async def echo(request: Request):
        return {
            "method": request.method,
            "path": request.url.path,
            "query": dict(request.query_params),
            "trace": request.headers.get("x-trace-id"),
            "body": (await request.body()).decode(),
        }

    @app.get("/public")
    async def public():
        return {"public": True}

    return app, facilitator


class TestPaymentMiddleware:
    def setup_method(self):
        self.app, self.facilitator = create_proxy_app()
        self.client = TestClient(self.app)

    def test_unmatched_path_is_not_gated(self):
        response = self.client.get("/public")

        assert response.status_code == 200
        assert response.json() == {"public": True}
        assert self.facilitator.verify_calls == []

    def test_missing_payment_returns_402(self):
        response = self.client.get("/protected/song")

        assert response.status_code == 402
        data = response.json()
        assert data["error"] == "Payment required"
        assert data["accepts"][0]["payTo"] == "Merchant"
        assert data["description"] == "Premium music"
        assert "song" not in data

        challenge = decode_payment_required_header(response.headers[PAYMENT_REQUIRED_HEADER])
        assert challenge.accepts[0].network == CASH_NETWORK

    def test_browser_gets_paywall_page(self):
        response = self.client.get("/protected/song", headers=BROWSER_HEADERS)

        assert response.status_code == 402
        assert response.headers["content-type"].startswith("text/html")
        assert "Test Shop" in response.text
        assert "window.x402" in response.text

    def test_paid_request_is_served_and_settled(self):
        response = self.client.get(
            "/protected/song", headers={PAYMENT_SIGNATURE_HEADER: create_payment_header()}
        )

        assert response.status_code == 200
        assert response.json() == {"song": "x402 Remix"}
        receipt = decode_payment_response_header(response.headers[PAYMENT_RESPONSE_HEADER])
        assert receipt.success is True
        assert receipt.transaction == "John transferred 1 USD to Merchant"
        assert len(self.facilitator.settle_calls) == 1

    def test_handler_receives_original_request(self):
        response = self.client.post(
            "/protected/echo?track=7&format=mp3",
            headers={PAYMENT_SIGNATURE_HEADER: create_payment_header(), "X-Trace-Id": "abc-123"},
            content=b"play it again",
        )

        assert response.status_code == 200
        assert response.json() == {
            "method": "POST",
            "path": "/protected/echo",
            "query": {"track": "7", "format": "mp3"},
            "trace": "abc-123",
            "body": "play it again",
        }
        assert len(self.facilitator.settle_calls) == 1

    def test_invalid_payment_does_not_reach_handler(self):
        response = self.client.get(
            "/protected/song",
            headers={PAYMENT_SIGNATURE_HEADER: create_payment_header(signature="~Eve")},
        )

        assert response.status_code == 402
        assert response.json()["kind"] == "invalid_proof"
        assert "x402 Remix" not in response.text

    def test_handler_error_is_not_settled(self):
        response = self.client.get(
            "/protected/broken", headers={PAYMENT_SIGNATURE_HEADER: create_payment_header()}
        )

        assert response.status_code == 500
        assert PAYMENT_RESPONSE_HEADER not in response.headers
        assert len(self.facilitator.verify_calls) == 1
        assert self.facilitator.settle_calls == []

    def test_unknown_protected_path_is_not_settled(self):
        response = self.client.get(
            "/protected/missing", headers={PAYMENT_SIGNATURE_HEADER: create_payment_header()}
        )

        assert response.status_code == 404
        assert self.facilitator.settle_calls == []

    def test_handler_exception_propagates_without_settlement(self):
        with pytest.raises(RuntimeError, match="handler crashed"):
            self.client.get(
                "/protected/crash", headers={PAYMENT_SIGNATURE_HEADER: create_payment_header()}
            )

        assert self.facilitator.settle_calls == []

    def test_settlement_failure_still_delivers_content(self):
        app, facilitator = create_proxy_app(settle_success=False)
        client = TestClient(app)

        response = client.get(
            "/protected/song", headers={PAYMENT_SIGNATURE_HEADER: create_payment_header()}
        )

        assert response.status_code == 200
        assert response.json() == {"song": "x402 Remix"}
        assert PAYMENT_RESPONSE_HEADER not in response.headers
        assert len(facilitator.settle_calls) == 1

    def test_facilitator_outage_returns_502(self):
        app, _ = create_proxy_app(verify_error=RuntimeError("connection refused"))
        client = TestClient(app)

        response = client.get(
            "/protected/song", headers={PAYMENT_SIGNATURE_HEADER: create_payment_header()}
        )

        assert response.status_code == 502
        assert response.json()["kind"] == "facilitator_unavailable"

    def test_unregistered_scheme_fails_at_startup(self):
        server, _ = create_server()
        option = PaymentOption(scheme="exact", network="eip155:84532", pay_to="0x1", price="$1")

        with pytest.raises(RouteConfigurationError):
            payment_middleware({"/protected/*": RouteConfig(accepts=(option,))}, server)


class TestWithX402:
    def setup_method(self):
        server, self.facilitator = create_server()
        route = RouteConfig(
            accepts=(cash_option(),),
            description="Access to weather API",
            mime_type="application/json",
        )
        app = FastAPI()

        @app.get("/api/weather")
        @with_x402(route, server)
        async def weather(request: Request):
            """Weather report."""
            return {"report": {"weather": "sunny", "temperature": 72}}

        @app.get("/api/outage")
        @with_x402(route, server)
        async def outage(request: Request):
            return JSONResponse({"error": "upstream unavailable"}, status_code=503)

        self.weather = weather
        self.client = TestClient(app)

    def test_wrapper_keeps_endpoint_identity(self):
        assert self.weather.__name__ == "weather"
        assert self.weather.__doc__ == "Weather report."
        assert self.weather.gateway is not None

    def test_missing_payment_returns_402(self):
        response = self.client.get("/api/weather")

        assert response.status_code == 402
        data = response.json()
        assert data["description"] == "Access to weather API"
        assert data["resource"]["url"].endswith("/api/weather")

    def test_paid_request_returns_report_with_receipt(self):
        response = self.client.get(
            "/api/weather", headers={PAYMENT_SIGNATURE_HEADER: create_payment_header()}
        )

        assert response.status_code == 200
        assert response.json() == {"report": {"weather": "sunny", "temperature": 72}}
        assert PAYMENT_RESPONSE_HEADER in response.headers
        assert len(self.facilitator.settle_calls) == 1

    def test_error_response_is_returned_unsettled(self):
        response = self.client.get(
            "/api/outage", headers={PAYMENT_SIGNATURE_HEADER: create_payment_header()}
        )

        assert response.status_code == 503
        assert response.json() == {"error": "upstream unavailable"}
        assert PAYMENT_RESPONSE_HEADER not in response.headers
        assert self.facilitator.settle_calls == []
