"""
Core exception types raised by kind codecs, the kind registry, record encoding, and
payload validation.

Provides typed exceptions for core-domain failures:
- KindValueError for values that do not match a kind's accepted shapes.
- KindRangeError for well-shaped values outside the kind's allowed range.
- SchemaError for payload/schema structural failures, with UnknownItemError,
  MissingRequiredValueError and SchemaMismatchError for the common cases.
- RegistryError for kind registry misuse (DuplicateKindError, UnknownKindError) and
  BindingError for class binding misuse.

Notes:
    - This module uses only the Python standard library and has no side effects.
    - KindValueError subclasses TypeError so callers can treat shape mismatches the way
      they treat any other type mismatch; KindRangeError additionally subclasses
      ValueError.
    - All schema integrity errors are programmer/config errors and are never retried.

Examples:
    Catch an unknown data item.

    >>> from crystaldb.core.errors import SchemaError, UnknownItemError
    >>> try:
    ...     raise UnknownItemError('Unknown data item "extra" for unit type "user"')
    ... except SchemaError as e:
    ...     msg = str(e)
    >>> '"extra"' in msg
    True
"""

from __future__ import annotations

__all__ = [
    "KindValueError",
    "KindRangeError",
    "SchemaError",
    "UnknownItemError",
    "MissingRequiredValueError",
    "SchemaMismatchError",
    "RegistryError",
    "DuplicateKindError",
    "UnknownKindError",
    "BindingError",
]


class KindValueError(TypeError):
    """Value does not match any shape accepted by its kind."""


class KindRangeError(KindValueError, ValueError):
    """Value is well-shaped but outside the kind's allowed range or ordering."""


class SchemaError(ValueError):
    """Payload or schema failed structural validation."""


class UnknownItemError(SchemaError):
    """A value is keyed by an identifier that the unit type does not declare."""


class MissingRequiredValueError(SchemaError):
    """A data item flagged ``required`` has no value."""


class SchemaMismatchError(SchemaError):
    """A unit or payload references a different unit type than the one supplied."""


class RegistryError(ValueError):
    """Kind registry misuse."""


class DuplicateKindError(RegistryError):
    """A kind name is already registered and replacement was not requested."""


class UnknownKindError(RegistryError, LookupError):
    """No codec is registered for a kind name."""


class BindingError(ValueError):
    """Class binding misuse (duplicate registration, unbound instance)."""
