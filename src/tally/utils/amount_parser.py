"""Amount parsing utilities."""

import re
from decimal import Decimal, InvalidOperation

_CURRENCY = re.compile(r"(?i)[$€£₴]|uah|usd|eur|грн\.?")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a signed Decimal.

    Handles the formats banks export:
    - "123.45", "-123.45", "+123.45"
    - "1,234.56" and "1 234,56" (thousands separators, comma decimals)
    - "₴123.45", "123.45 UAH", "$123.45"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    text = amount_str.strip()
    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]

    text = _CURRENCY.sub("", text)
    text = re.sub(r"[\s ']", "", text)

    if "," in text and "." in text:
        # The rightmost separator is the decimal point
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        whole, _, fraction = text.rpartition(",")
        if len(fraction) == 3 and whole.lstrip("+-"):
            text = text.replace(",", "")
        else:
            text = text.replace(",", ".")

    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if negative else amount
