"""
Custom exceptions for the crystaldb.io module.

Purpose
- Provide store-layer error types for configuration, adapter and facade failures.
- Keep crystaldb.core as the source of truth for value/schema errors (see
  crystaldb.core.errors); those propagate through the store layer unchanged.

Boundaries
- crystaldb.core raises KindValueError/SchemaError/RegistryError for invalid input.
- crystaldb.io raises Store* errors:
  - StoreConfigError: invalid or unsupported configuration.
  - StoreWriteError: a persistence write failed (tmp write/fsync/rename).
  - StoreReadError: a persisted collection could not be read or parsed.
  - DuplicateDocumentError: an insert collided with an existing technical or business id.
  - UnitTypeNotFoundError: a write required a unit type that does not exist.
  - QueryError: a list query is malformed (unknown operator, bad direction).

Notes
- Lookups return None for missing documents; only writes that need a unit type raise
  UnitTypeNotFoundError.
- These exceptions do not perform any IO and are stdlib-only.
"""

from __future__ import annotations

__all__ = [
    "StoreError",
    "StoreConfigError",
    "StoreWriteError",
    "StoreReadError",
    "DuplicateDocumentError",
    "UnitTypeNotFoundError",
    "QueryError",
]


class StoreError(Exception):
    """
    Base class for store-related errors in crystaldb.io.

    Notes:
        Use this as a catch-all for store-layer failures, distinct from crystaldb.core errors.
    """


class StoreConfigError(StoreError):
    """
    Raised when store configuration is invalid or unsupported.

    Examples:
        - Unknown backend name
        - Parquet backend without a root directory
    """


class StoreWriteError(StoreError):
    """
    Raised when a write fails to complete atomically.

    Notes:
        The parquet write path is tmp parquet → fsync → os.replace(tmp, final). Failures at
        any step surface as StoreWriteError (with best-effort cleanup of tmp files).
    """


class StoreReadError(StoreError):
    """Raised when a persisted collection is missing columns or holds malformed JSON."""


class DuplicateDocumentError(StoreError):
    """Raised when inserting a unit whose technical or business id already exists."""


class UnitTypeNotFoundError(StoreError, LookupError):
    """Raised when a write references a unit type that is not stored."""


class QueryError(StoreError, ValueError):
    """Raised when a list query uses an unknown operator or order direction."""
