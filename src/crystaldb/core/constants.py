"""
crystaldb core constants.

Defines built-in kind names and encoding constants consumed by the kind codecs and
by downstream IO layers. This module is zero-IO and uses only the Python standard
library.

Notes:
    - BUILT_IN_KINDS order is the seeding order of a fresh KindRegistry.
    - Percentages are stored as integer basis points (value * PERCENTAGE_BASIS_POINTS).
    - Canonical dates are UTC, millisecond precision, "Z" suffix.
"""

from __future__ import annotations

import re
from typing import Final

__all__ = [
    "BUILT_IN_KINDS",
    "PERCENTAGE_BASIS_POINTS",
    "PERCENTAGE_MIN",
    "PERCENTAGE_MAX",
    "MONTH_PATTERN",
    "STORE_BACKENDS",
    "DEFAULT_BACKEND",
    "DEFAULT_ROOT_DIR",
    "COMPRESSION",
]

BUILT_IN_KINDS: Final[tuple[str, ...]] = (
    "string",
    "markdown",
    "number",
    "numberRange",
    "boolean",
    "date",
    "month",
    "enum",
    "files",
    "formula",
    "dateRange",
    "distance",
    "icon",
    "percentage",
    "geoAddress",
    "reference",
)

PERCENTAGE_BASIS_POINTS: Final[int] = 100
PERCENTAGE_MIN: Final[float] = 0.0
PERCENTAGE_MAX: Final[float] = 100.0

MONTH_PATTERN: Final[re.Pattern[str]] = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

# Store defaults consumed by crystaldb.io.config.
STORE_BACKENDS: Final[tuple[str, ...]] = ("memory", "parquet")
DEFAULT_BACKEND: Final[str] = "memory"
DEFAULT_ROOT_DIR: Final[str] = "crystaldb-data"
COMPRESSION: Final[str] = "zstd"
