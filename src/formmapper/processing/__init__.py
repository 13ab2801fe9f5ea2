"""Value processing helpers."""

from formmapper.processing.formatting import (
    DEFAULT_DATE_FORMAT,
    format_date,
    format_number,
    format_ssn,
    format_us_phone,
    parse_datetime,
    to_decimal,
)
from formmapper.processing.samples import global_samples, sample_value

__all__ = [
    "DEFAULT_DATE_FORMAT",
    "format_date",
    "format_number",
    "format_ssn",
    "format_us_phone",
    "global_samples",
    "parse_datetime",
    "sample_value",
    "to_decimal",
]
