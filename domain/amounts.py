"""Exact decimal amounts.

User input arrives in either the German ("1.234,56") or the English
("1,234.56") convention. Whichever separator appears last is the decimal
separator, the other one is dropped as a grouping separator.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Literal

from .errors import AmountParseError, ValidationError

AMOUNT_DECIMAL_PLACES = 2
MAX_MINOR_UNITS = 2**63 - 1

_PLAIN_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d+)?|\.\d+)")
_WHITESPACE = re.compile(r"\s+")

Convention = Literal["de", "en"]


def parse_amount(text: str) -> Decimal:
    if text is None:
        raise AmountParseError(text, "Amount is empty")
    raw = _WHITESPACE.sub("", str(text))
    if not raw:
        raise AmountParseError(text, "Amount is empty")

    last_comma = raw.rfind(",")
    last_dot = raw.rfind(".")
    if last_comma >= 0 and last_dot >= 0:
        if last_comma > last_dot:
            decimal_sep, group_sep = ",", "."
        else:
            decimal_sep, group_sep = ".", ","
        raw = raw.replace(group_sep, "")
    elif last_comma >= 0:
        decimal_sep = ","
    else:
        decimal_sep = "."

    if raw.count(decimal_sep) > 1:
        raise AmountParseError(text, "More than one decimal separator")
    if raw.endswith(decimal_sep):
        raise AmountParseError(text, "Amount ends with a decimal separator")

    normalized = raw.replace(decimal_sep, ".")
    if not _PLAIN_NUMBER.fullmatch(normalized):
        raise AmountParseError(text)
    try:
        value = Decimal(normalized)
    except InvalidOperation as exc:
        raise AmountParseError(text) from exc
    if not value.is_finite():
        raise AmountParseError(text, "Amount is not finite")
    return value


def coerce_amount(value: Decimal | int | float | str) -> Decimal:
    """Accept the amount types callers hand over and return a Decimal."""
    if isinstance(value, bool):
        raise ValidationError("Amount must be a number")
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValidationError("Amount is not finite")
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # repr() is the shortest string that round-trips, so 0.1 stays 0.1
        return parse_amount(repr(value))
    if isinstance(value, str):
        return parse_amount(value)
    raise ValidationError(f"Unsupported amount type: {type(value).__name__}")


def to_minor_units(value: Decimal, places: int = AMOUNT_DECIMAL_PLACES) -> int:
    exponent = value.normalize().as_tuple().exponent
    if isinstance(exponent, int) and exponent < -places:
        raise ValidationError(f"Amount has more than {places} decimal places: {value}")
    minor = int(value.scaleb(places))
    if abs(minor) > MAX_MINOR_UNITS:
        raise ValidationError(f"Amount is out of range: {value}")
    return minor


def from_minor_units(value: int | None, places: int = AMOUNT_DECIMAL_PLACES) -> Decimal:
    return Decimal(int(value or 0)).scaleb(-places)


def format_amount(
    value: Decimal,
    convention: Convention = "de",
    places: int = AMOUNT_DECIMAL_PLACES,
) -> str:
    quantized = value.quantize(Decimal(1).scaleb(-places))
    text = f"{quantized:,.{places}f}"
    if convention == "de":
        return text.replace(",", "\x00").replace(".", ",").replace("\x00", ".")
    if convention == "en":
        return text
    raise ValueError(f"Unknown number convention: {convention}")
