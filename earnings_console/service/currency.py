import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN

from earnings_console.config.config import Config

CURRENCY_SYMBOLS = {"GBP": "£", "USD": "$", "EUR": "€"}
MINOR_UNIT = Decimal("0.01")

_NUMERIC_PART = re.compile(r"-?[\d,]+(?:\.\d+)?")


def to_money(value) -> Decimal:
    """Convert a wire value (int, float, str or Decimal) to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value) -> Decimal:
    return to_money(value).quantize(MINOR_UNIT, rounding=ROUND_HALF_EVEN)


def format_currency(amount, currency_code: str = Config.CURRENCY_CODE) -> str:
    """
    Format an amount as ``£1,234.50``.

    Rounds half-even to two decimals. Negative amounts are rendered as
    ``-£5.00``; currencies without a known symbol fall back to a code prefix
    (``CHF 10.00``).
    """
    rounded = round_money(amount)
    code = (currency_code or Config.CURRENCY_CODE).upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,.2f}"


def parse_currency(text: str) -> Decimal:
    """Recover the amount from a string produced by format_currency."""
    match = _NUMERIC_PART.search(text.replace(" ", ""))
    if not match:
        raise ValueError(f"No amount found in {text!r}")
    number = match.group(0).replace(",", "")
    if text.strip().startswith("-") and not number.startswith("-"):
        number = "-" + number
    try:
        return Decimal(number)
    except InvalidOperation as e:
        raise ValueError(f"No amount found in {text!r}") from e
