"""Decode raw uint256 token amounts into exact decimals."""

from __future__ import annotations

import re
from decimal import Decimal

from tradeledger.errors import InvalidDecimals, MalformedAmount

_DIGITS = re.compile(r"[0-9]+")


def decode_amount(raw: str, decimals: int) -> Decimal:
    """Return ``raw / 10**decimals`` without going through binary floats.

    The digit string is left-padded until it is longer than ``decimals`` and
    split at the decimal point, so amounts beyond 2**53 keep every digit.
    """
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise InvalidDecimals(f"decimals must be an int, got {decimals!r}")
    if decimals < 0:
        raise InvalidDecimals(f"decimals must be non-negative, got {decimals}")
    if not isinstance(raw, str) or not _DIGITS.fullmatch(raw):
        raise MalformedAmount(f"not an unsigned integer string: {raw!r}")

    if decimals == 0:
        return Decimal(raw)

    padded = raw.rjust(decimals + 1, "0")
    integer_part = padded[:-decimals]
    fraction = padded[-decimals:].rstrip("0")
    if not fraction:
        return Decimal(integer_part)
    return Decimal(f"{integer_part}.{fraction}")


def parse_decimals(value: str | int | None, default: int) -> int:
    """Coerce an explorer ``decimals`` field (often a string) to int."""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidDecimals(f"decimals is not an integer: {value!r}") from None
