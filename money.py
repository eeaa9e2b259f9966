from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

CURRENCY_SYMBOLS = {"PHP": "₱", "USD": "$", "EUR": "€"}


def parse_amount(value: Union[str, int, float, Decimal], *, allow_negative: bool = False) -> int:
    """Convert a user-facing decimal amount ("12.50", "1,234.5") to integer cents.

    Rounds half-up to the nearest cent; the float never survives past this call.
    """
    if isinstance(value, (int, Decimal)):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(str(value))
    else:
        clean = value.strip()
        for symbol in CURRENCY_SYMBOLS.values():
            clean = clean.replace(symbol, "")
        clean = clean.replace(" ", "").replace(",", "")
        try:
            amount = Decimal(clean)
        except InvalidOperation as exc:
            raise ValueError("Invalid amount") from exc
    if not amount.is_finite():
        raise ValueError("Invalid amount")
    cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents < 0 and not allow_negative:
        raise ValueError("Amount must be positive")
    return cents


def format_currency(cents: int, currency: str = "PHP") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{sign}{symbol}{whole:,}.{frac:02d}"


def format_date(value: Union[date, datetime]) -> str:
    return f"{value.strftime('%b')} {value.day}, {value.year}"
