"""HTTP-enhanced resource server for x402 protocol."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote

from ..errors import (
    ErrorKind,
    InvalidProofError,
    NoMatchingRequirementError,
    RouteConfigurationError,
    RouteValidationError,
    X402Error,
)
from ..schemas import (
    PaymentOption,
    PaymentPayload,
    PaymentRequired,
    PaymentRequirements,
    ResourceInfo,
    SettleResponse,
)
from .constants import (
    HTTP_STATUS_PAYMENT_REQUIRED,
    PAYMENT_REQUIRED_HEADER,
    PAYMENT_RESPONSE_HEADER,
    PAYMENT_SIGNATURE_HEADER,
)
from .path import literal_prefix_length, normalize_matcher, path_is_match, pattern_to_regex
from .paywall import DefaultPaywallProvider, PaywallConfig, PaywallProvider, is_browser_request
from .types import (
    RESULT_NO_PAYMENT_REQUIRED,
    RESULT_PAYMENT_ERROR,
    RESULT_PAYMENT_VERIFIED,
    CompiledRoute,
    HTTPAdapter,
    HTTPProcessResult,
    HTTPRequestContext,
    HTTPResponseInstructions,
    ProcessSettleResult,
    RouteConfig,
    RoutesConfig,
)
from .utils import (
    decode_payment_signature_header,
    encode_payment_required_header,
    encode_payment_response_header,
)

if TYPE_CHECKING:
    from ..server import x402ResourceServer

logger = logging.getLogger(__name__)

# Status codes for errors that are not a payment challenge
_ERROR_STATUS = {
    ErrorKind.UNSUPPORTED_SCHEME: 400,
    ErrorKind.FACILITATOR_UNAVAILABLE: 502,
}


# ============================================================================
# x402HTTPResourceServer
# ============================================================================


class x402HTTPResourceServer:
    """HTTP-enhanced x402 resource server.

    Provides framework-agnostic HTTP protocol handling for payment-protected
    resources. Use with framework-specific middleware (see x402_gate.fastapi).

    Route patterns may be prefixed with an HTTP method ("GET /api/*") and use
    ``*`` wildcards, ``[param]`` and ``:param`` / ``:param*`` segments. When
    several patterns match a path, the one with the longest literal prefix
    wins; equal prefixes fall back to declaration order.
    """

    def __init__(
        self,
        server: x402ResourceServer,
        routes: RoutesConfig,
        matcher: str | list[str] | None = None,
        paywall_config: PaywallConfig | None = None,
    ) -> None:
        """Create HTTP resource server.

        Args:
            server: Core x402ResourceServer instance with schemes registered.
            routes: Route configuration for payment-protected endpoints.
            matcher: Optional path pattern(s) limiting which requests are
                inspected at all. Everything else passes straight through.
            paywall_config: Default paywall configuration for browsers.

        Raises:
            RouteConfigurationError: If a route accepts a scheme/network pair
                that has no registered scheme server.
        """
        self._server = server
        self._compiled_routes: list[CompiledRoute] = []
        self._matcher = normalize_matcher(matcher)
        self._paywall_config = paywall_config
        self._paywall_provider: PaywallProvider = DefaultPaywallProvider()

        self._compile_routes(routes)

        errors = self._validate_route_configuration(check_facilitator=False)
        if errors:
            raise RouteConfigurationError(errors)

    @property
    def server(self) -> x402ResourceServer:
        return self._server

    @property
    def routes(self) -> list[CompiledRoute]:
        return list(self._compiled_routes)

    def _compile_routes(self, routes: RoutesConfig) -> None:
        """Compile route patterns to regex for matching."""
        normalized: dict[str, RouteConfig] = {}

        if isinstance(routes, RouteConfig):
            # Single RouteConfig instance - apply to all paths
            normalized = {"*": routes}
        elif isinstance(routes, dict):
            if "accepts" in routes:
                # Single raw route config - apply to all paths
                normalized = {"*": self._parse_route_config(routes)}
            else:
                for pattern, config in routes.items():
                    if isinstance(config, RouteConfig):
                        normalized[pattern] = config
                    elif isinstance(config, dict):
                        normalized[pattern] = self._parse_route_config(config)
                    else:
                        raise RouteConfigurationError(
                            [
                                RouteValidationError(
                                    route_pattern=pattern,
                                    scheme="",
                                    network="",
                                    reason="invalid_config",
                                    message=f'Route "{pattern}": invalid route config',
                                )
                            ]
                        )

        compiled = []
        for order, (pattern, config) in enumerate(normalized.items()):
            verb, path = self._split_route_pattern(pattern)
            compiled.append(
                CompiledRoute(
                    pattern=pattern,
                    verb=verb,
                    regex=re.compile(pattern_to_regex(path), re.IGNORECASE),
                    specificity=literal_prefix_length(path),
                    order=order,
                    config=config,
                )
            )

        # Most specific first; sort is stable so declaration order breaks ties
        self._compiled_routes = sorted(compiled, key=lambda r: (-r.specificity, r.order))

    @staticmethod
    def _parse_route_config(config: dict[str, Any]) -> RouteConfig:
        """Parse a raw dict (camelCase or snake_case keys) into a RouteConfig."""
        accepts = config.get("accepts", [])

        if isinstance(accepts, (dict, PaymentOption)):
            accepts = [accepts]

        payment_options = []
        for acc in accepts:
            if isinstance(acc, PaymentOption):
                payment_options.append(acc)
            else:
                payment_options.append(
                    PaymentOption(
                        scheme=acc.get("scheme", ""),
                        pay_to=acc.get("payTo", acc.get("pay_to", "")),
                        price=acc.get("price", ""),
                        network=acc.get("network", ""),
                        max_timeout_seconds=acc.get(
                            "maxTimeoutSeconds", acc.get("max_timeout_seconds")
                        ),
                        extra=acc.get("extra"),
                    )
                )

        return RouteConfig(
            accepts=tuple(payment_options),
            resource=config.get("resource"),
            description=config.get("description"),
            mime_type=config.get("mimeType", config.get("mime_type")),
            extensions=config.get("extensions"),
            custom_paywall_html=config.get("customPaywallHtml", config.get("custom_paywall_html")),
        )

    # =========================================================================
    # Initialization
    # =========================================================================

    async def initialize(self) -> None:
        """Fetch facilitator support and check every route against it.

        Optional: the first request carrying a proof initializes lazily.
        Call at startup to fail fast.

        Raises:
            FacilitatorUnavailableError: If a facilitator cannot be reached.
            RouteConfigurationError: If a facilitator does not support a
                scheme/network pair a route accepts.
        """
        await self._server.initialize()

        errors = self._validate_route_configuration(check_facilitator=True)
        if errors:
            raise RouteConfigurationError(errors)

    def register_paywall_provider(self, provider: PaywallProvider) -> x402HTTPResourceServer:
        """Register custom paywall provider for HTML generation.

        Returns:
            Self for chaining.
        """
        self._paywall_provider = provider
        return self

    # =========================================================================
    # Request Processing
    # =========================================================================

    def requires_payment(self, context: HTTPRequestContext) -> bool:
        """Check if a request requires payment."""
        return self._get_route_config(context.path, context.method) is not None

    async def process_http_request(
        self,
        context: HTTPRequestContext,
        paywall_config: PaywallConfig | None = None,
    ) -> HTTPProcessResult:
        """Process HTTP request and return result.

        Main entry point for framework middleware.

        Returns:
            HTTPProcessResult indicating:
            - no-payment-required: Route doesn't require payment
            - payment-verified: Payment valid, proceed with request
            - payment-error: Send ``response`` instead of the resource
        """
        route_config = self._get_route_config(context.path, context.method)
        if route_config is None:
            return HTTPProcessResult(type=RESULT_NO_PAYMENT_REQUIRED)

        paywall_config = paywall_config or self._paywall_config
        header = context.payment_header or self.get_payment_header(context.adapter)

        try:
            # A challenge needs only static configuration
            if header and not self._server.initialized:
                await self._server.initialize()

            resource_info = ResourceInfo(
                url=route_config.resource or context.adapter.get_url(),
                description=route_config.description or "",
                mime_type=route_config.mime_type or "",
            )
            requirements = [self._server.build_payment_requirements(o) for o in route_config.accepts]
            extensions = self._enrich_extensions(route_config, context)
        except X402Error as e:
            return self._error_result(e)

        def challenge(error: str) -> PaymentRequired:
            return self._server.create_payment_required_response(
                requirements, resource_info, error, extensions
            )

        # No payment provided
        if not header:
            logger.info("x402: payment required for %s %s", context.method, context.path)
            return HTTPProcessResult(
                type=RESULT_PAYMENT_ERROR,
                response=self._create_http_response(
                    challenge("Payment required"),
                    is_web_browser=self._is_web_browser(context.adapter),
                    paywall_config=paywall_config,
                    custom_html=route_config.custom_paywall_html,
                ),
            )

        try:
            payment_payload = decode_payment_signature_header(header)
        except InvalidProofError as e:
            logger.warning("x402: malformed payment header on %s", context.path)
            return self._challenge_result(challenge(str(e)), e.kind)

        matching_reqs = self._server.find_matching_requirements(requirements, payment_payload)
        if matching_reqs is None:
            err = NoMatchingRequirementError(
                payment_payload.get_scheme(), payment_payload.get_network()
            )
            logger.warning("x402: %s", err)
            return self._challenge_result(challenge(str(err)), err.kind)

        try:
            verify_result = await self._server.verify_payment(payment_payload, matching_reqs)
        except X402Error as e:
            if e.kind in _ERROR_STATUS:
                return self._error_result(e)
            logger.warning("x402: payment rejected on %s: %s", context.path, e)
            return self._challenge_result(challenge(str(e)), e.kind)

        if not verify_result.is_valid:
            err = InvalidProofError(verify_result.invalid_reason)
            logger.warning("x402: invalid payment on %s: %s", context.path, err.reason)
            return self._challenge_result(challenge(str(err)), err.kind)

        return HTTPProcessResult(
            type=RESULT_PAYMENT_VERIFIED,
            payment_payload=payment_payload,
            payment_requirements=matching_reqs,
        )

    # =========================================================================
    # Settlement
    # =========================================================================

    async def process_settlement(
        self,
        payment_payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> ProcessSettleResult:
        """Settle a verified payment after the resource was produced.

        Never raises for settlement problems; they come back as
        ``success=False`` so the caller can still deliver the response.
        """
        try:
            settle_response = await self._server.settle_payment(payment_payload, requirements)
        except Exception as e:
            return ProcessSettleResult(success=False, error_reason=str(e))

        if not settle_response.success:
            return ProcessSettleResult(
                success=False,
                error_reason=settle_response.error_reason or "Settlement failed",
                payer=settle_response.payer,
                network=settle_response.network,
            )

        return ProcessSettleResult(
            success=True,
            headers=self._create_settlement_headers(settle_response),
            transaction=settle_response.transaction,
            network=settle_response.network,
            payer=settle_response.payer,
        )

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _get_route_config(self, path: str, method: str) -> RouteConfig | None:
        """Find the most specific matching route configuration."""
        if self._matcher is not None and not path_is_match(self._matcher, path.split("?")[0]):
            return None

        normalized_path = self._normalize_path(path)
        upper_method = method.upper()

        for route in self._compiled_routes:
            if route.regex.match(normalized_path):
                if route.verb == "*" or route.verb == upper_method:
                    return route.config

        return None

    def _enrich_extensions(
        self,
        route_config: RouteConfig,
        context: HTTPRequestContext,
    ) -> dict[str, Any] | None:
        if not route_config.extensions:
            return None
        return self._server.enrich_extensions(route_config.extensions, context)

    @staticmethod
    def get_payment_header(adapter: HTTPAdapter) -> str | None:
        return adapter.get_header(PAYMENT_SIGNATURE_HEADER) or adapter.get_header(
            PAYMENT_SIGNATURE_HEADER.lower()
        )

    @staticmethod
    def _is_web_browser(adapter: HTTPAdapter) -> bool:
        return is_browser_request(adapter.get_accept_header(), adapter.get_user_agent())

    def _challenge_result(
        self,
        payment_required: PaymentRequired,
        kind: ErrorKind,
    ) -> HTTPProcessResult:
        return HTTPProcessResult(
            type=RESULT_PAYMENT_ERROR,
            response=self._create_http_response(payment_required, is_web_browser=False, kind=kind),
        )

    @staticmethod
    def _error_result(error: X402Error) -> HTTPProcessResult:
        status = _ERROR_STATUS.get(error.kind, 500)
        if status >= 500:
            logger.error("x402: %s", error)
        else:
            logger.warning("x402: %s", error)
        return HTTPProcessResult(
            type=RESULT_PAYMENT_ERROR,
            response=HTTPResponseInstructions(
                status=status,
                headers={"Content-Type": "application/json"},
                body={"error": str(error), "kind": error.kind.value},
            ),
        )

    def _create_http_response(
        self,
        payment_required: PaymentRequired,
        is_web_browser: bool,
        paywall_config: PaywallConfig | None = None,
        custom_html: str | None = None,
        kind: ErrorKind | None = None,
    ) -> HTTPResponseInstructions:
        """Create 402 response instructions."""
        if is_web_browser:
            html_content = custom_html or self._paywall_provider.generate_html(
                payment_required, paywall_config
            )
            return HTTPResponseInstructions(
                status=HTTP_STATUS_PAYMENT_REQUIRED,
                headers={"Content-Type": "text/html"},
                body=html_content,
                is_html=True,
            )

        body = payment_required.model_dump(mode="json", by_alias=True, exclude_none=True)
        if kind is not None:
            body["kind"] = kind.value

        return HTTPResponseInstructions(
            status=HTTP_STATUS_PAYMENT_REQUIRED,
            headers={
                "Content-Type": "application/json",
                PAYMENT_REQUIRED_HEADER: encode_payment_required_header(payment_required),
            },
            body=body,
        )

    @staticmethod
    def _create_settlement_headers(settle_response: SettleResponse) -> dict[str, str]:
        return {PAYMENT_RESPONSE_HEADER: encode_payment_response_header(settle_response)}

    def _validate_route_configuration(self, check_facilitator: bool) -> list[RouteValidationError]:
        """Check every payment option against the registry and facilitators."""
        errors: list[RouteValidationError] = []

        for route in self._compiled_routes:
            for option in route.config.accepts:
                if not self._server.has_registered_scheme(option.network, option.scheme):
                    errors.append(
                        RouteValidationError(
                            route_pattern=route.pattern,
                            scheme=option.scheme,
                            network=option.network,
                            reason="missing_scheme",
                            message=f'Route "{route.pattern}": No scheme for "{option.scheme}" on "{option.network}"',
                        )
                    )
                    continue

                try:
                    self._server.build_payment_requirements(option)
                except ValueError as e:
                    errors.append(
                        RouteValidationError(
                            route_pattern=route.pattern,
                            scheme=option.scheme,
                            network=option.network,
                            reason="invalid_price",
                            message=f'Route "{route.pattern}": {e}',
                        )
                    )
                    continue

                if check_facilitator and not self._server.get_supported_kind(
                    option.network, option.scheme
                ):
                    errors.append(
                        RouteValidationError(
                            route_pattern=route.pattern,
                            scheme=option.scheme,
                            network=option.network,
                            reason="missing_facilitator",
                            message=f'Route "{route.pattern}": Facilitator doesn\'t support "{option.scheme}" on "{option.network}"',
                        )
                    )

        return errors

    @staticmethod
    def _split_route_pattern(pattern: str) -> tuple[str, str]:
        """Split "GET /path" into ("GET", "/path"); bare paths match any verb."""
        parts = pattern.split(None, 1)

        if len(parts) == 2:
            return parts[0].upper(), parts[1]
        return "*", pattern

    @staticmethod
    def _normalize_path(path: str) -> str:
        """Normalize path for matching."""
        # Remove query string and fragment
        path = path.split("?")[0].split("#")[0]
        path = unquote(path)

        path = re.sub(r"/+", "/", path)
        path = path.rstrip("/")

        return path or "/"
