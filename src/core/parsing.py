"""
Parsing helpers for externally reported numbers, order ids and timestamps.
"""

import math
import re
from datetime import date, datetime

from core.config import SOURCE_TIMESTAMP_FORMATS
from core.errors import ValidationError

_NON_NUMERIC = re.compile(r"[^0-9,.\-]")
_COMMA_DECIMAL = re.compile(r"^-?\d+,\d{1,2}$")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def round_to_step(value: float, step: int) -> int:
    """Round to the nearest multiple of step."""
    return round_half_up(value / step) * step


def parse_amount(value) -> float:
    """
    Parse a money value written in either "1,234.56" or "1.234,56" style.

    When both separators appear, the later one is the decimal point. A lone
    comma is a decimal point only with 1-2 digits after it ("1,5" -> 1.5,
    "1,234" -> 1234). Several dots are thousands separators. Blank is 0.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)

    text = _NON_NUMERIC.sub("", str(value).strip())
    if not text:
        if str(value).strip():
            raise ValidationError(f"Not a number: {value!r}")
        return 0.0
    if not any(ch.isdigit() for ch in text):
        raise ValidationError(f"Not a number: {value!r}")

    has_comma = "," in text
    has_dot = "." in text
    if has_comma and has_dot:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif has_comma:
        if _COMMA_DECIMAL.match(text):
            text = text.replace(",", ".")
        else:
            text = text.replace(",", "")
    elif has_dot and text.count(".") > 1:
        text = text.replace(".", "")

    try:
        return float(text)
    except ValueError as e:
        raise ValidationError(f"Not a number: {value!r}") from e


def normalize_order_id(value) -> str:
    """Trim, drop a spreadsheet ".0" artifact and collapse inner whitespace."""
    text = str(value if value is not None else "").strip()
    if text.endswith(".0"):
        text = text[:-2]
    return re.sub(r"\s+", " ", text)


def parse_source_timestamp(value) -> datetime:
    """Parse a local "day/month/year hour:minute[:second]" timestamp."""
    if isinstance(value, datetime):
        return value
    text = str(value or "").strip()
    for fmt in SOURCE_TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValidationError(f"Unrecognized timestamp: {value!r}")


def parse_iso_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD") from e
