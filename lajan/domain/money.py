"""Pure helpers for converting and formatting money amounts.

All monetary amounts are in minor units (Money type).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from lajan.domain.models import Currency, Money


def parse_money(amount_str: str) -> Money | None:
    """Parse a decimal amount string to minor units.

    Args:
        amount_str: Amount in major units, e.g. "1250.50".

    Returns:
        Money amount in minor units, or None if invalid, negative or finer
        than two decimal places.
    """
    try:
        value = Decimal(amount_str.strip().replace(",", ""))
    except InvalidOperation:
        return None

    if not value.is_finite() or value < 0:
        return None

    minor = value * 100
    if minor != minor.to_integral_value():
        return None
    return Money(int(minor))


def format_money(amount: Money, currency: Currency | str | None = None) -> str:
    """Format minor units for display.

    Args:
        amount: Amount in minor units.
        currency: Optional currency; HTG is suffixed, USD is prefixed with $.

    Returns:
        Human readable amount, e.g. "1,250.50 HTG" or "-$3.00".
    """
    sign = "-" if amount < 0 else ""
    body = f"{abs(amount) / 100:,.2f}"
    code = Currency(currency).value if currency is not None else None

    if code == "USD":
        return f"{sign}${body}"
    if code == "HTG":
        return f"{sign}{body} HTG"
    return f"{sign}{body}"


def percent_of(part: Money, whole: Money) -> int:
    """Percentage of part in whole, rounded half up.

    Args:
        part: Numerator in minor units.
        whole: Denominator in minor units.

    Returns:
        Integer percentage (0 when whole is not positive).
    """
    if whole <= 0:
        return 0
    ratio = Decimal(part) * 100 / Decimal(whole)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
