"""x402ResourceServer - Server-side component for protecting resources.

Builds payment requirements, verifies payments, and settles transactions
via facilitator clients.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Protocol, TypeVar

from typing_extensions import Self

from .errors import (
    FacilitatorUnavailableError,
    PaymentAbortedError,
    UnsupportedSchemeError,
    X402Error,
)
from .hooks import (
    AbortResult,
    AfterSettleHook,
    AfterVerifyHook,
    BeforeSettleHook,
    BeforeVerifyHook,
    OnSettleFailureHook,
    OnVerifyFailureHook,
    RecoveredSettleResult,
    RecoveredVerifyResult,
    SettleContext,
    SettleFailureContext,
    SettleResultContext,
    VerifyContext,
    VerifyFailureContext,
    VerifyResultContext,
)
from .interfaces import ResourceServerExtension, SchemeNetworkServer
from .registry import SchemeRegistry, network_family_wildcard
from .schemas import (
    X402_VERSION,
    Network,
    PaymentOption,
    PaymentPayload,
    PaymentRequired,
    PaymentRequirements,
    ResourceInfo,
    SettleResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================================================
# FacilitatorClient Protocol
# ============================================================================


class FacilitatorClient(Protocol):
    """Protocol for facilitator clients (HTTP or local).

    Used by x402ResourceServer to verify/settle payments.
    Implemented by HTTPFacilitatorClient for remote facilitators.
    """

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """Verify a payment. Returns is_valid=False for a rejected proof."""
        ...

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """Settle a payment. Returns success=False for a failed settlement."""
        ...

    async def get_supported(self) -> SupportedResponse:
        """Get supported payment kinds."""
        ...


async def _maybe_await(value: T | Awaitable[T]) -> T:
    if inspect.isawaitable(value):
        return await value
    return value


# ============================================================================
# x402ResourceServer
# ============================================================================


class x402ResourceServer:
    """Server-side component for protecting resources.

    Composes the scheme registry with facilitator clients. Holds no
    per-request state, so one instance serves concurrent requests.

    Example:
        ```python
        from x402_gate import x402ResourceServer
        from x402_gate.http import HTTPFacilitatorClient
        from x402_gate.mechanisms.evm.exact import register_exact_evm_server

        facilitator = HTTPFacilitatorClient(FacilitatorConfig(url="https://x402.org/facilitator"))
        server = x402ResourceServer(facilitator)
        register_exact_evm_server(server)

        await server.initialize()
        requirements = server.build_payment_requirements(option)
        result = await server.verify_payment(payload, requirements)
        ```
    """

    def __init__(
        self,
        facilitator_clients: FacilitatorClient | list[FacilitatorClient] | None = None,
        facilitator_timeout: float | None = None,
    ) -> None:
        """Initialize x402ResourceServer.

        Args:
            facilitator_clients: Facilitator client(s) for verify/settle.
                Can be single client, list, or None.
            facilitator_timeout: Optional upper bound in seconds on every
                facilitator call. Expiry surfaces as FacilitatorUnavailableError.
        """
        if facilitator_clients is None:
            self._facilitator_clients: list[FacilitatorClient] = []
        elif isinstance(facilitator_clients, list):
            self._facilitator_clients = facilitator_clients
        else:
            self._facilitator_clients = [facilitator_clients]

        self._facilitator_timeout = facilitator_timeout
        self._registry = SchemeRegistry()

        # network -> scheme -> client, from facilitator /supported
        self._facilitator_clients_map: dict[Network, dict[str, FacilitatorClient]] = {}
        self._supported_kinds: dict[Network, dict[str, SupportedKind]] = {}
        self._facilitator_extensions: list[str] = []

        self._extensions: dict[str, ResourceServerExtension] = {}

        self._before_verify_hooks: list[BeforeVerifyHook] = []
        self._after_verify_hooks: list[AfterVerifyHook] = []
        self._on_verify_failure_hooks: list[OnVerifyFailureHook] = []

        self._before_settle_hooks: list[BeforeSettleHook] = []
        self._after_settle_hooks: list[AfterSettleHook] = []
        self._on_settle_failure_hooks: list[OnSettleFailureHook] = []

        self._initialized = False

    # ========================================================================
    # Registration
    # ========================================================================

    @property
    def registry(self) -> SchemeRegistry:
        return self._registry

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def facilitator_clients(self) -> list[FacilitatorClient]:
        return list(self._facilitator_clients)

    def register(self, network: Network, server: SchemeNetworkServer) -> Self:
        """Register a scheme server for a network (or family wildcard).

        Args:
            network: Network to register for (e.g., "eip155:84532" or "eip155:*").
            server: Scheme server implementation.

        Returns:
            Self for chaining.
        """
        self._registry.register(server.scheme, network, server)
        return self

    def register_extension(self, extension: ResourceServerExtension) -> Self:
        """Register a resource server extension."""
        self._extensions[extension.key] = extension
        return self

    def has_registered_scheme(self, network: Network, scheme: str) -> bool:
        """Check if a scheme is registered for a network or its wildcard."""
        return self._registry.has(scheme, network)

    def get_supported_kind(self, network: Network, scheme: str) -> SupportedKind | None:
        """Get the facilitator's SupportedKind for a network/scheme, if any."""
        for net in (network, network_family_wildcard(network)):
            kind = self._supported_kinds.get(net, {}).get(scheme)
            if kind is not None:
                return kind
        return None

    # ========================================================================
    # Hook Registration
    # ========================================================================

    def on_before_verify(self, hook: BeforeVerifyHook) -> Self:
        """Register hook to run before verification. May return AbortResult."""
        self._before_verify_hooks.append(hook)
        return self

    def on_after_verify(self, hook: AfterVerifyHook) -> Self:
        self._after_verify_hooks.append(hook)
        return self

    def on_verify_failure(self, hook: OnVerifyFailureHook) -> Self:
        """Register hook to run on verification failure. May recover."""
        self._on_verify_failure_hooks.append(hook)
        return self

    def on_before_settle(self, hook: BeforeSettleHook) -> Self:
        """Register hook to run before settlement. May return AbortResult."""
        self._before_settle_hooks.append(hook)
        return self

    def on_after_settle(self, hook: AfterSettleHook) -> Self:
        self._after_settle_hooks.append(hook)
        return self

    def on_settle_failure(self, hook: OnSettleFailureHook) -> Self:
        """Register hook to run on settlement failure. May recover."""
        self._on_settle_failure_hooks.append(hook)
        return self

    # ========================================================================
    # Initialization
    # ========================================================================

    async def initialize(self) -> None:
        """Fetch supported kinds from facilitators.

        Earlier facilitators in the list get precedence. Safe to call more
        than once; later calls only fill gaps.

        Raises:
            FacilitatorUnavailableError: If a facilitator cannot be reached.
        """
        for client in self._facilitator_clients:
            supported = await self._call_facilitator(client.get_supported())

            for kind in supported.kinds:
                clients = self._facilitator_clients_map.setdefault(kind.network, {})
                clients.setdefault(kind.scheme, client)

                kinds = self._supported_kinds.setdefault(kind.network, {})
                kinds.setdefault(kind.scheme, kind)

            for ext in supported.extensions:
                if ext not in self._facilitator_extensions:
                    self._facilitator_extensions.append(ext)

        self._initialized = True

    # ========================================================================
    # Build Requirements
    # ========================================================================

    def build_payment_requirements(self, option: PaymentOption) -> PaymentRequirements:
        """Build concrete payment requirements for one payment option.

        Raises:
            UnsupportedSchemeError: If no scheme server is registered.
        """
        server = self._registry.lookup(option.scheme, option.network)

        asset_amount = server.parse_price(option.price, option.network)

        extra = dict(asset_amount.extra or {})
        if option.extra:
            extra.update(option.extra)

        requirements = PaymentRequirements(
            scheme=option.scheme,
            network=option.network,
            asset=asset_amount.asset,
            amount=asset_amount.amount,
            pay_to=option.pay_to,
            max_timeout_seconds=option.max_timeout_seconds or 300,
            extra=extra,
        )

        return server.enhance_payment_requirements(
            requirements,
            self.get_supported_kind(option.network, option.scheme),
            list(self._facilitator_extensions),
        )

    def create_payment_required_response(
        self,
        requirements: list[PaymentRequirements],
        resource: ResourceInfo | None = None,
        error: str | None = None,
        extensions: dict[str, Any] | None = None,
    ) -> PaymentRequired:
        """Create a 402 Payment Required body."""
        return PaymentRequired(
            x402_version=X402_VERSION,
            error=error,
            resource=resource,
            accepts=list(requirements),
            description=resource.description if resource else None,
            mime_type=resource.mime_type if resource else None,
            extensions=extensions,
        )

    # ========================================================================
    # Find Matching Requirements
    # ========================================================================

    def find_matching_requirements(
        self,
        available: list[PaymentRequirements],
        payload: PaymentPayload,
    ) -> PaymentRequirements | None:
        """Find the first requirement, in declaration order, a payload targets.

        Matches on scheme, network and asset. There is no price-based
        tie-break between structurally equal entries.
        """
        accepted = payload.accepted
        for req in available:
            if (
                accepted.scheme == req.scheme
                and accepted.network == req.network
                and accepted.asset.lower() == req.asset.lower()
            ):
                return req

        return None

    # ========================================================================
    # Verify Payment
    # ========================================================================

    async def verify_payment(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """Verify a payment via facilitator.

        Raises:
            UnsupportedSchemeError: If the scheme is not registered.
            FacilitatorUnavailableError: If the facilitator cannot answer.
            PaymentAbortedError: If a before hook aborts.
        """
        context = VerifyContext(payment_payload=payload, requirements=requirements)

        for hook in self._before_verify_hooks:
            result = await _maybe_await(hook(context))
            if isinstance(result, AbortResult):
                raise PaymentAbortedError(result.reason)

        try:
            self._registry.lookup(requirements.scheme, requirements.network)
            client = self._get_facilitator_client(requirements.network, requirements.scheme)

            verify_result = await self._call_facilitator(client.verify(payload, requirements))

            if not verify_result.is_valid:
                failure_context = VerifyFailureContext(
                    payment_payload=payload,
                    requirements=requirements,
                    error=Exception(verify_result.invalid_reason or "Verification failed"),
                )
                for hook in self._on_verify_failure_hooks:
                    recovered = await _maybe_await(hook(failure_context))
                    if isinstance(recovered, RecoveredVerifyResult):
                        verify_result = recovered.result
                        break
                else:
                    return verify_result

            result_context = VerifyResultContext(
                payment_payload=payload,
                requirements=requirements,
                result=verify_result,
            )
            for hook in self._after_verify_hooks:
                await _maybe_await(hook(result_context))

            return verify_result

        except Exception as e:
            failure_context = VerifyFailureContext(
                payment_payload=payload,
                requirements=requirements,
                error=e,
            )
            for hook in self._on_verify_failure_hooks:
                recovered = await _maybe_await(hook(failure_context))
                if isinstance(recovered, RecoveredVerifyResult):
                    return recovered.result

            raise

    # ========================================================================
    # Settle Payment
    # ========================================================================

    async def settle_payment(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """Settle a payment via facilitator.

        Raises:
            UnsupportedSchemeError: If the scheme is not registered.
            FacilitatorUnavailableError: If the facilitator cannot answer.
            PaymentAbortedError: If a before hook aborts.
        """
        context = SettleContext(payment_payload=payload, requirements=requirements)

        for hook in self._before_settle_hooks:
            result = await _maybe_await(hook(context))
            if isinstance(result, AbortResult):
                raise PaymentAbortedError(result.reason)

        try:
            self._registry.lookup(requirements.scheme, requirements.network)
            client = self._get_facilitator_client(requirements.network, requirements.scheme)

            settle_result = await self._call_facilitator(client.settle(payload, requirements))

            if not settle_result.success:
                failure_context = SettleFailureContext(
                    payment_payload=payload,
                    requirements=requirements,
                    error=Exception(settle_result.error_reason or "Settlement failed"),
                )
                for hook in self._on_settle_failure_hooks:
                    recovered = await _maybe_await(hook(failure_context))
                    if isinstance(recovered, RecoveredSettleResult):
                        settle_result = recovered.result
                        break
                else:
                    return settle_result

            result_context = SettleResultContext(
                payment_payload=payload,
                requirements=requirements,
                result=settle_result,
            )
            for hook in self._after_settle_hooks:
                await _maybe_await(hook(result_context))

            return settle_result

        except Exception as e:
            failure_context = SettleFailureContext(
                payment_payload=payload,
                requirements=requirements,
                error=e,
            )
            for hook in self._on_settle_failure_hooks:
                recovered = await _maybe_await(hook(failure_context))
                if isinstance(recovered, RecoveredSettleResult):
                    return recovered.result

            raise

    # ========================================================================
    # Extensions
    # ========================================================================

    def enrich_extensions(
        self,
        declared: dict[str, Any],
        transport_context: Any,
    ) -> dict[str, Any]:
        """Enrich extension declarations with transport-specific data."""
        result = dict(declared)

        for key, extension in self._extensions.items():
            if key in declared:
                result[key] = extension.enrich_declaration(declared[key], transport_context)

        return result

    # ========================================================================
    # Internal
    # ========================================================================

    def _get_facilitator_client(self, network: Network, scheme: str) -> FacilitatorClient:
        for net in (network, network_family_wildcard(network)):
            client = self._facilitator_clients_map.get(net, {}).get(scheme)
            if client is not None:
                return client

        if not self._facilitator_clients:
            raise FacilitatorUnavailableError("No facilitator client configured")

        if self._initialized and self._facilitator_clients_map:
            # Facilitators answered /supported and none lists this kind
            raise UnsupportedSchemeError(scheme, network)

        return self._facilitator_clients[0]

    async def _call_facilitator(self, call: Awaitable[T]) -> T:
        try:
            if self._facilitator_timeout is None:
                return await call
            return await asyncio.wait_for(call, timeout=self._facilitator_timeout)
        except X402Error:
            raise
        except asyncio.TimeoutError as e:
            raise FacilitatorUnavailableError(
                f"Facilitator did not answer within {self._facilitator_timeout}s"
            ) from e
        except Exception as e:
            logger.error("Facilitator call failed: %s", e)
            raise FacilitatorUnavailableError(str(e)) from e
