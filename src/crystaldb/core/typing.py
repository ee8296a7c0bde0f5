"""
Lightweight typing aliases used across core models, codecs, and adapters.

Provides minimal NewTypes and aliases to improve readability and static checks.
This module contains no runtime logic and is zero-IO.

Notes:
    - BusinessId is the caller-facing identifier (unit type id, item id, unit id).
    - TechnicalId is the storage-only identifier generated by the IO layer.
    - Keep the surface small and stable to avoid churn in dependents.

Examples:
    Use aliases in annotations.

    >>> from crystaldb.core.typing import BusinessId, StoredValues
    >>> def first_key(values: StoredValues) -> BusinessId:
    ...     return BusinessId(next(iter(values)))
    >>> first_key({"name": "Alice"})
    'name'
"""

from __future__ import annotations

from typing import Any, NewType

__all__ = [
    "BusinessId",
    "TechnicalId",
    "KindName",
    "JsonDict",
    "BusinessValues",
    "StoredValues",
]

BusinessId = NewType("BusinessId", str)
TechnicalId = NewType("TechnicalId", str)
KindName = NewType("KindName", str)

# Convenient JSON-like mapping alias. Kept intentionally broad for serde boundaries.
JsonDict = dict[str, Any]

# Item id -> decoded value (dense after decode, sparse on input).
BusinessValues = dict[str, Any]
# Item id -> encoded value (only non-null encodings are present).
StoredValues = dict[str, Any]
