from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation


CENTS = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


class MoneyParseError(ValueError):
    def __init__(self, field: str, value) -> None:
        self.field = field
        self.value = value
        super().__init__(f"{field} is not a valid amount")


def parse_money(value, *, field: str = "amount", default: Decimal | None = ZERO) -> Decimal:
    """Accept a JSON number, numeric string or Decimal and return a Decimal.

    ``None`` and blank strings return ``default``; pass ``default=None`` to make
    the value required.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is None:
            raise MoneyParseError(field, value)
        return default
    if isinstance(value, bool):
        raise MoneyParseError(field, value)
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, int):
        parsed = Decimal(value)
    elif isinstance(value, float):
        parsed = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation as exc:
            raise MoneyParseError(field, value) from exc
    else:
        raise MoneyParseError(field, value)
    if not parsed.is_finite():
        raise MoneyParseError(field, value)
    return parsed


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    return amount * percentage / HUNDRED


def convert(amount: Decimal, rate: Decimal) -> Decimal:
    return quantize_money(amount * rate)
