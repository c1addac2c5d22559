"""Tests for the demo application wiring."""

import pytest
from fastapi.testclient import TestClient

from x402_gate import x402ResourceServer
from x402_gate.app import WEATHER_REPORT, build_resource_server, create_app, main
from x402_gate.config import GatewaySettings
from x402_gate.errors import RouteConfigurationError
from x402_gate.extensions.bazaar import BAZAAR, bazaar_resource_server_extension
from x402_gate.http import (
    PAYMENT_RESPONSE_HEADER,
    PAYMENT_SIGNATURE_HEADER,
    HTTPFacilitatorClient,
    encode_payment_signature_header,
)
from x402_gate.mechanisms.evm.constants import (
    NETWORK_BASE_SEPOLIA,
    SCHEME_EXACT,
    XNY_BASE_SEPOLIA,
)
from x402_gate.mechanisms.evm.exact import register_exact_evm_server
from x402_gate.schemas import PaymentRequired

from .mocks import CashFacilitatorClient, CashSchemeNetworkClient

PAY_TO = "0x1111111111111111111111111111111111111111"


def make_settings(**overrides):
    values = {
        "FACILITATOR_URL": "https://facilitator.test",
        "EVM_ADDRESS": PAY_TO,
        "_env_file": None,
    }
    values.update(overrides)
    return GatewaySettings(**values)


class TestDemoApp:
    def setup_method(self):
        self.settings = make_settings(APP_NAME="Weather Shop")
        self.facilitator = CashFacilitatorClient(kinds=[(SCHEME_EXACT, NETWORK_BASE_SEPOLIA)])
        server = x402ResourceServer(self.facilitator)
        register_exact_evm_server(server)
        server.register_extension(bazaar_resource_server_extension)
        self.client = TestClient(create_app(self.settings, server=server))

    def pay(self, challenge_body):
        payment_required = PaymentRequired.model_validate(challenge_body)
        payload = CashSchemeNetworkClient("John").create_payment_payload(payment_required)
        return {PAYMENT_SIGNATURE_HEADER: encode_payment_signature_header(payload)}

    def test_health_is_free(self):
        response = self.client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_weather_challenge_offers_xny(self):
        response = self.client.get("/api/weather")

        assert response.status_code == 402
        data = response.json()
        requirement = data["accepts"][0]
        assert requirement["scheme"] == SCHEME_EXACT
        assert requirement["network"] == NETWORK_BASE_SEPOLIA
        assert requirement["asset"] == XNY_BASE_SEPOLIA["address"]
        assert requirement["amount"] == "10000000000000000"
        assert requirement["payTo"] == PAY_TO
        assert requirement["extra"] == {"name": "XNY", "version": "1", "decimals": 18}
        assert data["description"] == "Access to weather API"
        assert data["mimeType"] == "application/json"

    def test_weather_challenge_declares_discovery_output(self):
        data = self.client.get("/api/weather").json()

        bazaar = data["extensions"][BAZAAR]
        assert bazaar["info"]["output"]["example"] == WEATHER_REPORT
        assert bazaar["info"]["input"]["method"] == "GET"

    def test_paid_weather_request(self):
        challenge = self.client.get("/api/weather").json()

        response = self.client.get("/api/weather", headers=self.pay(challenge))

        assert response.status_code == 200
        assert response.json() == WEATHER_REPORT
        assert PAYMENT_RESPONSE_HEADER in response.headers
        assert len(self.facilitator.settle_calls) == 1

    def test_protected_page_is_gated_by_proxy(self):
        response = self.client.get("/protected")

        assert response.status_code == 402
        data = response.json()
        assert data["description"] == "Premium music: x402 Remix"
        assert data["mimeType"] == "text/html"

    def test_protected_page_paywall_for_browsers(self):
        response = self.client.get(
            "/protected",
            headers={"Accept": "text/html", "User-Agent": "Mozilla/5.0"},
        )

        assert response.status_code == 402
        assert "Weather Shop" in response.text
        assert "0.01 XNY" in response.text

    def test_paid_protected_page(self):
        challenge = self.client.get("/protected").json()

        response = self.client.get("/protected", headers=self.pay(challenge))

        assert response.status_code == 200
        assert "x402 Remix" in response.text
        assert len(self.facilitator.settle_calls) == 1


class TestStartup:
    def make_server(self, facilitator):
        server = x402ResourceServer(facilitator)
        register_exact_evm_server(server)
        return server

    def test_startup_checks_facilitator_support(self):
        facilitator = CashFacilitatorClient(kinds=[(SCHEME_EXACT, NETWORK_BASE_SEPOLIA)])
        server = self.make_server(facilitator)

        with TestClient(create_app(make_settings(), server=server)) as client:
            assert server.initialized is True
            assert facilitator.supported_calls >= 1
            assert client.get("/health").status_code == 200

    def test_unsupported_network_refuses_to_start(self):
        facilitator = CashFacilitatorClient(kinds=[(SCHEME_EXACT, "eip155:8453")])
        app = create_app(make_settings(), server=self.make_server(facilitator))

        with pytest.raises(RouteConfigurationError):
            with TestClient(app):
                pass


class TestBuildResourceServer:
    def test_uses_http_facilitator_and_exact_evm(self):
        server = build_resource_server(make_settings(FACILITATOR_URL="https://facilitator.test/"))

        clients = server.facilitator_clients
        assert len(clients) == 1
        assert isinstance(clients[0], HTTPFacilitatorClient)
        assert clients[0].url == "https://facilitator.test"
        assert server.has_registered_scheme(NETWORK_BASE_SEPOLIA, SCHEME_EXACT)
        assert server.has_registered_scheme("eip155:8453", SCHEME_EXACT)


class TestMain:
    def test_missing_facilitator_url_refuses_to_start(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("FACILITATOR_URL", raising=False)
        monkeypatch.setenv("EVM_ADDRESS", PAY_TO)

        def fail_run(*args, **kwargs):
            raise AssertionError("server must not start")

        monkeypatch.setattr("x402_gate.app.uvicorn.run", fail_run)

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1

    def test_valid_settings_start_server(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("FACILITATOR_URL", "https://facilitator.test")
        monkeypatch.setenv("EVM_ADDRESS", PAY_TO)
        monkeypatch.setattr("x402_gate.app.setup_logging", lambda level: None)
        calls = []
        monkeypatch.setattr(
            "x402_gate.app.uvicorn.run",
            lambda app, **kwargs: calls.append(kwargs),
        )

        main(["--port", "8123"])

        assert calls == [{"host": "0.0.0.0", "port": 8123, "log_config": None}]
