"""HTTP-based facilitator client for x402 protocol."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..errors import FacilitatorUnavailableError
from ..schemas import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SupportedResponse,
    VerifyResponse,
)
from .constants import DEFAULT_FACILITATOR_TIMEOUT, DEFAULT_FACILITATOR_URL

logger = logging.getLogger(__name__)

ResponseModel = TypeVar("ResponseModel", bound=BaseModel)


# ============================================================================
# Auth Provider Protocol
# ============================================================================


@dataclass
class AuthHeaders:
    """Authentication headers for facilitator endpoints."""

    verify: dict[str, str] = field(default_factory=dict)
    settle: dict[str, str] = field(default_factory=dict)
    supported: dict[str, str] = field(default_factory=dict)


class AuthProvider(Protocol):
    """Generates authentication headers for facilitator requests."""

    def get_auth_headers(self) -> AuthHeaders:
        """Get authentication headers for each endpoint."""
        ...


class CreateHeadersAuthProvider:
    """AuthProvider that wraps a create_headers callable.

    Adapts a function returning ``{"verify": {...}, "settle": {...},
    "supported": {...}}`` to the AuthProvider protocol.
    """

    def __init__(self, create_headers: Callable[[], dict[str, dict[str, str]]]) -> None:
        self._create_headers = create_headers

    def get_auth_headers(self) -> AuthHeaders:
        result = self._create_headers()
        return AuthHeaders(
            verify=result.get("verify", {}),
            settle=result.get("settle", {}),
            supported=result.get("supported", result.get("list", {})),
        )


# ============================================================================
# Configuration
# ============================================================================


@dataclass
class FacilitatorConfig:
    """Configuration for HTTP facilitator client.

    Attributes:
        url: Base URL of the facilitator service.
        timeout: Upper bound in seconds for each facilitator call.
        http_client: Optional shared httpx.AsyncClient. Not closed by us.
        auth_provider: Optional per-endpoint auth header source.
        identifier: Name used in logs (defaults to the URL).
    """

    url: str = DEFAULT_FACILITATOR_URL
    timeout: float = DEFAULT_FACILITATOR_TIMEOUT
    http_client: httpx.AsyncClient | None = None
    auth_provider: AuthProvider | None = None
    identifier: str | None = None


# ============================================================================
# HTTP Facilitator Client
# ============================================================================


class HTTPFacilitatorClient:
    """HTTP-based facilitator client.

    Talks to a remote x402 facilitator over HTTP. A rejected proof is a
    normal answer (``VerifyResponse(is_valid=False)``); only an unreachable
    or misbehaving facilitator raises FacilitatorUnavailableError.
    """

    def __init__(self, config: FacilitatorConfig | dict[str, Any] | None = None) -> None:
        """Create HTTP facilitator client.

        Args:
            config: Optional configuration. Accepts either:
                - FacilitatorConfig dataclass (recommended)
                - Dict with 'url' and optional 'create_headers' / 'timeout'
                - None (uses defaults)
        """
        if isinstance(config, dict):
            create_headers = config.get("create_headers")
            config = FacilitatorConfig(
                url=config.get("url", DEFAULT_FACILITATOR_URL),
                timeout=config.get("timeout", DEFAULT_FACILITATOR_TIMEOUT),
                auth_provider=CreateHeadersAuthProvider(create_headers) if create_headers else None,
            )

        config = config or FacilitatorConfig()

        self._url = config.url.rstrip("/")
        self._timeout = config.timeout
        self._auth_provider = config.auth_provider
        self._identifier = config.identifier or self._url
        self._http_client = config.http_client
        self._owns_client = config.http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._http_client

    async def aclose(self) -> None:
        """Close HTTP client if we own it."""
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> HTTPFacilitatorClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    @property
    def url(self) -> str:
        return self._url

    @property
    def identifier(self) -> str:
        return self._identifier

    # =========================================================================
    # FacilitatorClient Implementation
    # =========================================================================

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """Verify a payment with the facilitator.

        Args:
            payload: Payment payload to verify.
            requirements: Requirements to verify against.

        Returns:
            VerifyResponse. ``is_valid=False`` for a rejected proof.

        Raises:
            FacilitatorUnavailableError: On transport failure, timeout or an
                unusable answer.
        """
        headers = self._headers("verify")
        body = self._request_body(payload, requirements)
        return await self._post("verify", headers, body, VerifyResponse)

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """Settle a payment with the facilitator.

        Args:
            payload: Payment payload to settle.
            requirements: Requirements for settlement.

        Returns:
            SettleResponse. ``success=False`` for a failed settlement.

        Raises:
            FacilitatorUnavailableError: On transport failure, timeout or an
                unusable answer.
        """
        headers = self._headers("settle")
        body = self._request_body(payload, requirements)
        return await self._post("settle", headers, body, SettleResponse)

    async def get_supported(self) -> SupportedResponse:
        """Get supported payment kinds and extensions.

        Raises:
            FacilitatorUnavailableError: If the listing cannot be fetched.
        """
        client = self._get_client()
        headers = self._headers("supported")

        try:
            response = await client.get(f"{self._url}/supported", headers=headers)
        except httpx.HTTPError as e:
            raise self._unavailable("supported", e) from e

        if response.status_code != 200:
            raise FacilitatorUnavailableError(
                f"Facilitator get_supported failed ({response.status_code}): {response.text}"
            )

        try:
            return SupportedResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise FacilitatorUnavailableError(
                f"Facilitator returned an invalid /supported response: {e}"
            ) from e

    # =========================================================================
    # Internal HTTP Methods
    # =========================================================================

    def _headers(self, endpoint: str) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._auth_provider:
            auth = self._auth_provider.get_auth_headers()
            headers.update(getattr(auth, endpoint))
        return headers

    def _request_body(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> dict[str, Any]:
        return {
            "x402Version": payload.x402_version,
            "paymentPayload": payload.model_dump(mode="json", by_alias=True, exclude_none=True),
            "paymentRequirements": requirements.model_dump(
                mode="json", by_alias=True, exclude_none=True
            ),
        }

    async def _post(
        self,
        endpoint: str,
        headers: dict[str, str],
        body: dict[str, Any],
        model: type[ResponseModel],
    ) -> ResponseModel:
        client = self._get_client()

        try:
            response = await client.post(f"{self._url}/{endpoint}", headers=headers, json=body)
        except httpx.HTTPError as e:
            raise self._unavailable(endpoint, e) from e

        if response.status_code >= 500:
            raise FacilitatorUnavailableError(
                f"Facilitator {endpoint} failed ({response.status_code}): {response.text}"
            )

        # Facilitators answer 4xx with a well-formed negative result
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise FacilitatorUnavailableError(
                f"Facilitator {endpoint} returned an unusable response "
                f"({response.status_code}): {response.text}"
            ) from e

    def _unavailable(self, endpoint: str, error: httpx.HTTPError) -> FacilitatorUnavailableError:
        if isinstance(error, httpx.TimeoutException):
            message = f"Facilitator {self._identifier} timed out on /{endpoint}"
        else:
            message = f"Facilitator {self._identifier} unreachable on /{endpoint}: {error}"
        logger.error(message)
        return FacilitatorUnavailableError(message)

