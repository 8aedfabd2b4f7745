from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from vybraa.errors import ConfigurationError
from vybraa.models import ExchangeRate

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Coerce a number/str/Decimal to a 2dp Decimal. Floats go through str() first."""
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, float):
        d = Decimal(str(value))
    else:
        d = Decimal(value if value is not None else 0)
    return d.quantize(CENT, rounding=ROUND_HALF_UP)


def base_currency() -> str:
    return (current_app.config.get("BASE_CURRENCY") or "USD").strip().upper()


def convert_to_base(amount, currency: str | None) -> Decimal:
    """Convert ``amount`` in ``currency`` to the base currency.

    Rates are stored as base -> currency ("1 USD = 1500 NGN"), so going back to
    base divides. Every call reads the table; a missing rate is a config bug and
    is never treated as 1.
    """
    base = base_currency()
    code = (currency or base).strip().upper()
    value = Decimal(str(amount)) if not isinstance(amount, Decimal) else amount
    if code == base:
        return to_money(value)

    rate = ExchangeRate.query.filter_by(from_currency=base, to_currency=code, is_active=True).first()
    if not rate or not rate.rate:
        raise ConfigurationError(
            f"Exchange rate not found for {base} to {code}",
            from_currency=base,
            to_currency=code,
        )
    return to_money(value / Decimal(rate.rate))
