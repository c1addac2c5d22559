"""HTTP transport for x402: facilitator client, resource server, gateway."""

from .constants import (
    DEFAULT_FACILITATOR_URL,
    PAYMENT_REQUIRED_HEADER,
    PAYMENT_RESPONSE_HEADER,
    PAYMENT_SIGNATURE_HEADER,
)
from .facilitator_client import (
    AuthHeaders,
    AuthProvider,
    CreateHeadersAuthProvider,
    FacilitatorConfig,
    HTTPFacilitatorClient,
)
from .gateway import GatewayOutcome, GatewayState, PaymentGateway, is_successful_status
from .path import path_is_match
from .paywall import PaywallConfig, PaywallProvider, is_browser_request
from .types import (
    RESULT_NO_PAYMENT_REQUIRED,
    RESULT_PAYMENT_ERROR,
    RESULT_PAYMENT_VERIFIED,
    HTTPAdapter,
    HTTPProcessResult,
    HTTPRequestContext,
    HTTPResponseInstructions,
    ProcessSettleResult,
    RouteConfig,
    RoutesConfig,
)
from .utils import (
    decode_payment_required_header,
    decode_payment_response_header,
    decode_payment_signature_header,
    encode_payment_required_header,
    encode_payment_response_header,
    encode_payment_signature_header,
)
from .x402_http_client import PaymentPayloadFactory, x402HTTPClient
from .x402_http_server import x402HTTPResourceServer

__all__ = [
    "DEFAULT_FACILITATOR_URL",
    "PAYMENT_REQUIRED_HEADER",
    "PAYMENT_RESPONSE_HEADER",
    "PAYMENT_SIGNATURE_HEADER",
    "AuthHeaders",
    "AuthProvider",
    "CreateHeadersAuthProvider",
    "FacilitatorConfig",
    "HTTPFacilitatorClient",
    "GatewayOutcome",
    "GatewayState",
    "PaymentGateway",
    "is_successful_status",
    "path_is_match",
    "PaywallConfig",
    "PaywallProvider",
    "is_browser_request",
    "RESULT_NO_PAYMENT_REQUIRED",
    "RESULT_PAYMENT_ERROR",
    "RESULT_PAYMENT_VERIFIED",
    "HTTPAdapter",
    "HTTPProcessResult",
    "HTTPRequestContext",
    "HTTPResponseInstructions",
    "ProcessSettleResult",
    "RouteConfig",
    "RoutesConfig",
    "decode_payment_required_header",
    "decode_payment_response_header",
    "decode_payment_signature_header",
    "encode_payment_required_header",
    "encode_payment_response_header",
    "encode_payment_signature_header",
    "PaymentPayloadFactory",
    "x402HTTPClient",
    "x402HTTPResourceServer",
]
