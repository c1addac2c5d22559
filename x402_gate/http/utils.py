"""Header encoding helpers.

x402 headers carry JSON documents encoded as standard base64.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from pydantic import ValidationError

from ..errors import InvalidProofError
from ..schemas import PaymentPayload, PaymentRequired, SettleResponse


def safe_base64_encode(data: str) -> str:
    return base64.b64encode(data.encode("utf-8")).decode("ascii")


def safe_base64_decode(data: str) -> str:
    """Decode base64 text, tolerating missing padding."""
    padded = data.strip()
    padded += "=" * (-len(padded) % 4)
    return base64.b64decode(padded, validate=True).decode("utf-8")


def _encode_model(model: Any) -> str:
    return safe_base64_encode(model.model_dump_json(by_alias=True, exclude_none=True))


def encode_payment_signature_header(payload: PaymentPayload) -> str:
    return _encode_model(payload)


def decode_payment_signature_header(header: str) -> PaymentPayload:
    """Decode the PAYMENT-SIGNATURE header into a PaymentPayload.

    Raises:
        InvalidProofError: If the header is not base64 JSON of a payload.
    """
    try:
        data = json.loads(safe_base64_decode(header))
        return PaymentPayload.model_validate(data)
    except (binascii.Error, UnicodeDecodeError, ValueError, ValidationError) as e:
        raise InvalidProofError("malformed_payment_header") from e


def encode_payment_required_header(payment_required: PaymentRequired) -> str:
    return _encode_model(payment_required)


def decode_payment_required_header(header: str) -> PaymentRequired:
    return PaymentRequired.model_validate(json.loads(safe_base64_decode(header)))


def encode_payment_response_header(settle_response: SettleResponse) -> str:
    return _encode_model(settle_response)


def decode_payment_response_header(header: str) -> SettleResponse:
    return SettleResponse.model_validate(json.loads(safe_base64_decode(header)))
