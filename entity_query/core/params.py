"""SQL parameter normalization.

Converts `:name` parameter syntax to driver-specific format and converts
Python values to something every supported driver can bind.
"""

from __future__ import annotations

import datetime
import re
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any

# Matches :name but not ::typecast and not inside words
# Negative lookbehind for : (handles ::), \w (handles mid-word colons)
_PARAM_PATTERN = re.compile(r"(?<![:\w]):([a-zA-Z_]\w*)")

# Matches single-quoted string literals (with escaped quotes handled)
_STRING_LITERAL_PATTERN = re.compile(r"'(?:[^'\\]|\\.)*'")

_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
_DATE_FORMAT = "%Y-%m-%d"
_TIME_FORMAT = "%H:%M:%S"


def normalize_params(sql: str, paramstyle: str) -> str:
    """Convert :name parameters to the target param style.

    Args:
        sql: SQL string with :name parameters.
        paramstyle: Target style - 'named' (no conversion) or 'pyformat' (%(name)s).

    Returns:
        SQL with parameters converted to the target style.
    """
    if paramstyle == "named":
        return sql
    return _convert_to_pyformat(sql)


@lru_cache(maxsize=256)
def _convert_to_pyformat(sql: str) -> str:
    """Convert :name params to %(name)s, preserving string literals."""
    # Tokenize: split into string literals and non-literal segments
    parts: list[str] = []
    last_end = 0

    for match in _STRING_LITERAL_PATTERN.finditer(sql):
        start, end = match.span()
        # Replace params in the non-literal segment before this string
        if start > last_end:
            parts.append(_PARAM_PATTERN.sub(r"%(\1)s", sql[last_end:start]))
        # Keep string literal as-is
        parts.append(match.group())
        last_end = end

    # Handle remaining text after last string literal
    if last_end < len(sql):
        parts.append(_PARAM_PATTERN.sub(r"%(\1)s", sql[last_end:]))

    return "".join(parts)


def to_db_value(value: Any) -> Any:
    """Convert a Python value to a driver-bindable value.

    Booleans become 0/1, temporal values become ISO-like strings, enums
    bind by their identifier (or value), decimals bind as strings.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime.datetime):
        return value.strftime(_DATETIME_FORMAT)
    if isinstance(value, datetime.date):
        return value.strftime(_DATE_FORMAT)
    if isinstance(value, datetime.time):
        return value.strftime(_TIME_FORMAT)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        identifier = getattr(value, "id", None)
        return to_db_value(identifier if isinstance(identifier, int) else value.value)
    return value
