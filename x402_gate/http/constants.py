"""HTTP header names and defaults for the x402 transport."""

# Proof of payment sent by the client (base64 JSON PaymentPayload)
PAYMENT_SIGNATURE_HEADER = "PAYMENT-SIGNATURE"

# Challenge sent with a 402 (base64 JSON PaymentRequired)
PAYMENT_REQUIRED_HEADER = "PAYMENT-REQUIRED"

# Settlement receipt attached to a paid response (base64 JSON SettleResponse)
PAYMENT_RESPONSE_HEADER = "PAYMENT-RESPONSE"

DEFAULT_FACILITATOR_URL = "https://x402.org/facilitator"

DEFAULT_FACILITATOR_TIMEOUT = 30.0

HTTP_STATUS_PAYMENT_REQUIRED = 402
