from decimal import Decimal
import json
import re
from typing import Any

from .log_helpers import LOG_FMT, basic_log_config, suppress_logs

__all__ = [
    "LOG_FMT",
    "basic_log_config",
    "suppress_logs",
    "to_snake_case",
    "format_number",
    "format_json",
]


def to_snake_case(text: str) -> str:
    """Convert text to snake_case."""
    # Replace spaces and hyphens with underscores
    text = text.strip()
    text = re.sub(r"[\s-]+", "_", text)

    # Convert camelCase, PascalCase, and cases like HTTPHeader to snake_case
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", text)
    text = re.sub(r"([A-Z]+)([A-Z][a-z0-9])", r"\1_\2", text)

    return text.lower()


def format_number(value: int | float) -> str:
    """Format a number in canonical decimal form.

    No exponent, no locale-specific separators, and integral floats drop the trailing '.0'.

    Examples
    --------
    >>> format_number(3)
    '3'
    >>> format_number(2.0)
    '2'
    >>> format_number(0.5)
    '0.5'
    >>> format_number(1e-7)
    '0.0000001'
    """
    if isinstance(value, bool):
        raise TypeError("Booleans are not numbers for formatting purposes")
    if isinstance(value, int):
        return str(value)
    if value != value or value in (float("inf"), float("-inf")):  # NaN / inf
        raise ValueError(f"Cannot format non-finite number {value!r}")

    text = format(Decimal(repr(value)).normalize(), "f")
    return "0" if text in ("-0", "0") else text


def format_json(data: Any, indent: int = 2) -> str:
    """Format JSON-compatible data for logs and reprs."""
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError:
            return json.dumps(data)
    return json.dumps(data, indent=indent, default=str, ensure_ascii=False)
