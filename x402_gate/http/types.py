"""HTTP-layer types for the x402 gateway."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, Union

from ..schemas import PaymentOption, PaymentPayload, PaymentRequirements

# ============================================================================
# HTTP Adapter Protocol
# ============================================================================


class HTTPAdapter(Protocol):
    """Framework-agnostic view of an incoming HTTP request."""

    def get_header(self, name: str) -> str | None:
        """Get a header value (case-insensitive)."""
        ...

    def get_method(self) -> str:
        ...

    def get_path(self) -> str:
        ...

    def get_url(self) -> str:
        """Get the full request URL."""
        ...

    def get_accept_header(self) -> str:
        ...

    def get_user_agent(self) -> str:
        ...


# ============================================================================
# Request / Response
# ============================================================================


@dataclass
class HTTPRequestContext:
    """Everything the gateway needs to know about one request."""

    adapter: HTTPAdapter
    path: str
    method: str
    payment_header: str | None = None


@dataclass
class HTTPResponseInstructions:
    """Response the framework binding should send instead of the resource."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    is_html: bool = False


RESULT_NO_PAYMENT_REQUIRED = "no-payment-required"
RESULT_PAYMENT_VERIFIED = "payment-verified"
RESULT_PAYMENT_ERROR = "payment-error"

HTTPProcessResultType = Literal["no-payment-required", "payment-verified", "payment-error"]


@dataclass
class HTTPProcessResult:
    """Outcome of processing a request before the handler runs.

    Attributes:
        type: One of the RESULT_* constants.
        response: Response to send when type is payment-error.
        payment_payload: Verified proof when type is payment-verified.
        payment_requirements: Requirement the proof was verified against.
    """

    type: HTTPProcessResultType
    response: HTTPResponseInstructions | None = None
    payment_payload: PaymentPayload | None = None
    payment_requirements: PaymentRequirements | None = None


@dataclass
class ProcessSettleResult:
    """Outcome of settling after the handler produced its response."""

    success: bool
    headers: dict[str, str] = field(default_factory=dict)
    error_reason: str | None = None
    transaction: str | None = None
    network: str | None = None
    payer: str | None = None


# ============================================================================
# Route Configuration
# ============================================================================


@dataclass(frozen=True)
class RouteConfig:
    """Payment configuration for one route pattern.

    Built once at startup and never mutated afterwards.

    Attributes:
        accepts: Payment options in declaration order. Earlier options win
            when a proof could match more than one.
        resource: Optional explicit resource URL (defaults to request URL).
        description: Human-readable description of the resource.
        mime_type: MIME type of the resource.
        extensions: Extension declarations (e.g. bazaar discovery).
        custom_paywall_html: HTML served to browsers instead of the default.
    """

    accepts: tuple[PaymentOption, ...]
    resource: str | None = None
    description: str | None = None
    mime_type: str | None = None
    extensions: dict[str, Any] | None = None
    custom_paywall_html: str | None = None

    def __post_init__(self) -> None:
        accepts = self.accepts
        if isinstance(accepts, PaymentOption):
            accepts = (accepts,)
        object.__setattr__(self, "accepts", tuple(accepts))


RoutesConfig = Union[RouteConfig, dict[str, Union[RouteConfig, dict[str, Any]]]]


@dataclass(frozen=True)
class CompiledRoute:
    """Route pattern compiled for matching.

    Attributes:
        pattern: Original pattern text, used in error messages.
        verb: Upper-cased HTTP method or "*".
        regex: Compiled path regex.
        specificity: Length of the literal prefix; longer wins.
        order: Declaration index; lower wins on equal specificity.
        config: Route configuration.
    """

    pattern: str
    verb: str
    regex: re.Pattern[str]
    specificity: int
    order: int
    config: RouteConfig
