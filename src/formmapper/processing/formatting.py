"""Value formatting helpers shared by the built-in transformations."""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

DATE_TOKEN_PATTERN = re.compile(r"\[([^\]]*)\]|YYYY|YY|MM|DD|HH|hh|mm|ss|A")
DEFAULT_DATE_FORMAT = "YYYY-MM-DD"

_FALLBACK_DATE_PATTERNS = ("%m/%d/%Y", "%Y/%m/%d", "%m/%d/%Y %H:%M", "%d %B %Y")


def parse_datetime(value: object) -> datetime | None:
    """Parse a date-like value.

    Accepts `datetime`/`date` objects, ISO-8601 strings (including a trailing `Z`)
    and a few common US/European layouts.

    Args:
        value (object): Candidate value.

    Returns:
        datetime | None: Parsed datetime, or None when the value is not a date.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        return None

    candidate = value.strip()
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        pass
    for pattern in _FALLBACK_DATE_PATTERNS:
        try:
            return datetime.strptime(candidate, pattern)  # noqa: DTZ007
        except ValueError:
            continue
    return None


def has_date_tokens(pattern: str) -> bool:
    """Return whether `pattern` contains at least one date token outside literals."""
    return any(match.group(1) is None for match in DATE_TOKEN_PATTERN.finditer(pattern))


def format_date(moment: datetime, pattern: str = DEFAULT_DATE_FORMAT) -> str:
    """Render `moment` with `YYYY-MM-DD` style tokens.

    Supported tokens: `YYYY`, `YY`, `MM`, `DD`, `HH` (24h), `hh` (12h), `mm`, `ss`
    and `A` (AM/PM). Text inside square brackets is copied verbatim.

    Args:
        moment (datetime): Value to render.
        pattern (str): Token pattern.

    Returns:
        str: Rendered date.
    """
    hour_12 = moment.hour % 12 or 12
    values = {
        "YYYY": f"{moment.year:04d}",
        "YY": f"{moment.year % 100:02d}",
        "MM": f"{moment.month:02d}",
        "DD": f"{moment.day:02d}",
        "HH": f"{moment.hour:02d}",
        "hh": f"{hour_12:02d}",
        "mm": f"{moment.minute:02d}",
        "ss": f"{moment.second:02d}",
        "A": "AM" if moment.hour < 12 else "PM",  # noqa: PLR2004
    }

    def _replace(match: re.Match[str]) -> str:
        literal = match.group(1)
        if literal is not None:
            return literal
        return values[match.group(0)]

    return DATE_TOKEN_PATTERN.sub(_replace, pattern)


def digits_only(value: str) -> str:
    """Strip every non-digit character."""
    return re.sub(r"\D", "", value)


def format_us_phone(value: str) -> str:
    """Format a 10-digit US phone number as `(XXX) XXX-XXXX`, else return `value` unchanged."""
    digits = digits_only(value)
    if len(digits) != 10:  # noqa: PLR2004
        return value
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def format_ssn(value: str) -> str:
    """Format a 9-digit SSN as `XXX-XX-XXXX`, else return `value` unchanged."""
    digits = digits_only(value)
    if len(digits) != 9:  # noqa: PLR2004
        return value
    return f"{digits[:3]}-{digits[3:5]}-{digits[5:]}"


def to_decimal(value: object) -> Decimal | None:
    """Convert a numeric-looking value into a finite `Decimal`.

    Args:
        value (object): Candidate value; booleans are rejected.

    Returns:
        Decimal | None: Parsed value, or None when the value is not numeric.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip().replace(" ", "")
        if not value:
            return None
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def round_half_up(number: Decimal, decimals: int) -> Decimal:
    """Round `number` to `decimals` places, halves away from zero."""
    quantum = Decimal(1).scaleb(-decimals)
    return number.quantize(quantum, rounding=ROUND_HALF_UP)


def format_number(number: Decimal, pattern: str) -> str:
    """Render `number` with a `0.00` / `#,##0.00` style pattern.

    The count of characters after the dot sets the decimal places and a comma
    before the dot enables thousands grouping.

    Args:
        number (Decimal): Value to render.
        pattern (str): Number pattern.

    Returns:
        str: Rendered number.
    """
    integer_part, _, fraction_part = pattern.partition(".")
    decimals = len(fraction_part)
    rounded = round_half_up(number, decimals)
    grouping = "," if "," in integer_part else ""
    return f"{rounded:{grouping}.{decimals}f}"
