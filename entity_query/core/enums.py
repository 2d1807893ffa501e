"""Database backend enumeration."""

from __future__ import annotations

from enum import Enum


class DatabaseBackend(Enum):
    """Supported database backends.

    Both use backtick identifier quoting.
    """

    SQLITE = "sqlite"
    MYSQL = "mysql"
