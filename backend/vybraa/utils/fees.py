from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from vybraa.errors import ConfigurationError, FeeConfigNotFoundError
from vybraa.models import FeeConfig, CalculationType
from vybraa.utils.currency import to_money


@dataclass(frozen=True)
class FeeSplit:
    platform_fee: Decimal
    payee_balance: Decimal

    def to_dict(self) -> dict:
        return {"platform_fee": str(self.platform_fee), "payee_balance": str(self.payee_balance)}


def fee_slug(fee_type: str) -> str:
    return f"{(fee_type or 'request').strip()}_fee_charge"


def split_percentage(price, percent) -> FeeSplit:
    price = to_money(price)
    fee = to_money(price * Decimal(str(percent)) / Decimal("100"))
    return FeeSplit(platform_fee=fee, payee_balance=price - fee)


def evaluate_fee(price_in_base, fee_type: str = "request") -> FeeSplit:
    """Split a base-currency price into platform fee and payee balance.

    Raises FeeConfigNotFoundError when the ``<fee_type>_fee_charge`` row is missing;
    callers decide whether a fallback applies. A row with an unknown
    calculation type raises plain ConfigurationError.
    """
    slug = fee_slug(fee_type)
    row = FeeConfig.query.filter_by(slug=slug).first()
    if not row:
        raise FeeConfigNotFoundError(
            f"Fee configuration '{slug}' not found in vybraa_config_settings",
            slug=slug,
        )

    price = to_money(price_in_base)
    kind = (row.calculation_type or "").strip().upper()
    if kind == CalculationType.PERCENTAGE:
        split = split_percentage(price, row.value)
    elif kind == CalculationType.FIXED:
        fee = to_money(row.value)
        split = FeeSplit(platform_fee=fee, payee_balance=price - fee)
    else:
        raise ConfigurationError(
            f"Fee configuration '{slug}' has unknown calculation type {row.calculation_type!r}",
            slug=slug,
        )

    current_app.logger.info(
        "fee evaluated slug=%s price=%s platform_fee=%s payee_balance=%s",
        slug, price, split.platform_fee, split.payee_balance,
    )
    return split
