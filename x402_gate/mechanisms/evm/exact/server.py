"""Exact scheme server implementation for EVM networks."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import Any

from ....schemas import AssetAmount, Network, PaymentRequirements, Price, SupportedKind
from ..constants import SCHEME_EXACT
from ..utils import get_asset_info, get_network_config, parse_amount, parse_money_to_decimal

# Type alias for money parser
MoneyParser = Callable[[Decimal, str], "AssetAmount | None"]


class ExactEvmScheme:
    """Server scheme for EVM exact payments.

    Converts fiat prices into the network's default stablecoin and passes
    explicit token prices through unchanged.
    """

    def __init__(self) -> None:
        self.scheme = SCHEME_EXACT
        self._money_parsers: list[MoneyParser] = []

    def register_money_parser(self, parser: MoneyParser) -> ExactEvmScheme:
        """Register custom money parser in the parser chain.

        Parsers are tried in registration order and receive the decimal
        amount (1.50 for "$1.50"). Returning None defers to the next one;
        the default stablecoin conversion is always the final fallback.

        Returns:
            Self for chaining.
        """
        self._money_parsers.append(parser)
        return self

    def parse_price(self, price: Price | dict[str, Any], network: Network) -> AssetAmount:
        """Parse price into asset amount.

        Args:
            price: Money ("$0.01", 0.01), an AssetAmount, or its dict form.
            network: Network identifier.

        Returns:
            AssetAmount with amount, asset, and extra fields.

        Raises:
            ValueError: If the price cannot be converted on this network.
        """
        if isinstance(price, dict) and "amount" in price:
            price = AssetAmount.model_validate(price)

        if isinstance(price, AssetAmount):
            if not price.asset:
                raise ValueError(f"Asset required for AssetAmount on {network}")
            return price

        decimal_amount = parse_money_to_decimal(price)

        for parser in self._money_parsers:
            result = parser(decimal_amount, str(network))
            if result is not None:
                return result

        return self._default_money_conversion(decimal_amount, str(network))

    def _default_money_conversion(self, amount: Decimal, network: str) -> AssetAmount:
        config = get_network_config(network)
        asset = config.get("default_asset")
        if not asset:
            raise ValueError(f"No default asset configured for network {network}")

        return AssetAmount(
            amount=str(parse_amount(amount, asset["decimals"])),
            asset=asset["address"],
            extra={"name": asset["name"], "version": asset["version"]},
        )

    def enhance_payment_requirements(
        self,
        requirements: PaymentRequirements,
        supported_kind: SupportedKind | None,
        facilitator_extensions: list[str],
    ) -> PaymentRequirements:
        """Fill in the EIP-712 domain (name, version) and decimals for known tokens.

        Values the route already declared in ``extra`` are kept.
        """
        asset = get_asset_info(requirements.network, requirements.asset)

        extra = dict(requirements.extra)
        if asset["name"]:
            extra.setdefault("name", asset["name"])
            extra.setdefault("decimals", asset["decimals"])
        if asset["version"]:
            extra.setdefault("version", asset["version"])

        if extra == requirements.extra:
            return requirements
        return requirements.model_copy(update={"extra": extra})
