"""Browser paywall rendering for 402 challenges.

Browsers get an HTML page instead of the JSON challenge. The page embeds the
full PaymentRequired document as ``window.x402`` so a wallet widget can pick
it up; the interactive widget itself lives outside this package.
"""

from __future__ import annotations

import html
import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Protocol

from ..schemas import PaymentRequired, PaymentRequirements

# ============================================================================
# Configuration
# ============================================================================


@dataclass
class PaywallConfig:
    """Configuration for paywall UI customization."""

    app_name: str = ""
    app_logo: str = ""
    testnet: bool = True


class PaywallProvider(Protocol):
    """Protocol for custom paywall HTML generation."""

    def generate_html(
        self,
        payment_required: PaymentRequired,
        config: PaywallConfig | None = None,
    ) -> str:
        """Generate HTML for the paywall.

        Args:
            payment_required: Payment requirements.
            config: Optional paywall configuration.

        Returns:
            HTML string.
        """
        ...


# ============================================================================
# Detection
# ============================================================================


def is_browser_request(accept: str | None, user_agent: str | None) -> bool:
    """Determine if a request comes from a browser rather than an API client."""
    return "text/html" in (accept or "") and "Mozilla" in (user_agent or "")


def is_browser_headers(headers: Mapping[str, Any]) -> bool:
    """Same as is_browser_request, for a header mapping with any key case."""
    headers_lower = {k.lower(): v for k, v in headers.items()}
    return is_browser_request(headers_lower.get("accept"), headers_lower.get("user-agent"))


# ============================================================================
# Rendering
# ============================================================================


def format_amount(requirements: PaymentRequirements) -> str:
    """Human-readable amount of a requirement.

    Uses ``extra["decimals"]`` when the scheme provides it, else the raw
    atomic amount.
    """
    decimals = requirements.extra.get("decimals")
    token = requirements.extra.get("name") or requirements.asset
    if decimals is None:
        return f"{requirements.amount} atomic units of {token}"
    value = Decimal(requirements.amount) / (Decimal(10) ** int(decimals))
    return f"{value.normalize():f} {token}"


def create_x402_config(
    payment_required: PaymentRequired,
    config: PaywallConfig | None = None,
) -> dict[str, Any]:
    """Build the ``window.x402`` object a paywall widget reads."""
    config = config or PaywallConfig()
    first = payment_required.accepts[0] if payment_required.accepts else None

    return {
        "paymentRequired": payment_required.model_dump(
            mode="json", by_alias=True, exclude_none=True
        ),
        "amount": format_amount(first) if first else "",
        "currentUrl": payment_required.resource.url if payment_required.resource else "",
        "testnet": config.testnet,
        "appName": config.app_name,
        "appLogo": config.app_logo,
    }


def render_paywall_html(
    payment_required: PaymentRequired,
    config: PaywallConfig | None = None,
) -> str:
    """Render the default paywall page."""
    config = config or PaywallConfig()
    x402_config = create_x402_config(payment_required, config)

    resource_desc = ""
    if payment_required.resource:
        resource_desc = payment_required.resource.description or payment_required.resource.url

    title = "Payment Required"
    if config.app_name:
        title = f"{html.escape(config.app_name)} - Payment Required"

    app_logo = ""
    if config.app_logo:
        app_logo = (
            f'<img src="{html.escape(config.app_logo)}" '
            f'alt="{html.escape(config.app_name)}" style="max-width: 200px;">'
        )

    # "</" must not appear inside the inline script
    script_data = json.dumps(x402_config).replace("</", "<\\/")

    return f"""<!DOCTYPE html>
<html>
<head>
    <title>{title}</title>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="max-width: 600px; margin: 50px auto; padding: 20px; font-family: system-ui;">
    {app_logo}
    <h1>{title}</h1>
    <p><strong>Resource:</strong> {html.escape(resource_desc)}</p>
    <p><strong>Amount:</strong> {html.escape(x402_config["amount"])}</p>
    <div id="payment-widget">
        <p style="padding: 1rem; background: #fef3c7;">
            Payment widget not available. Use an x402-compatible client.
        </p>
    </div>
    <script>window.x402 = {script_data};</script>
</body>
</html>"""


class DefaultPaywallProvider:
    """PaywallProvider rendering the built-in page."""

    def generate_html(
        self,
        payment_required: PaymentRequired,
        config: PaywallConfig | None = None,
    ) -> str:
        return render_paywall_html(payment_required, config)
