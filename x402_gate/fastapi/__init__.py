"""FastAPI integration for x402-gate."""

from .adapter import FastAPIAdapter, request_context
from .middleware import payment_middleware, to_response, with_x402

__all__ = [
    "FastAPIAdapter",
    "payment_middleware",
    "request_context",
    "to_response",
    "with_x402",
]
