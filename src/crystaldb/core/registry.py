"""
Kind registry: maps kind names to codecs.

A KindRegistry is an explicit object handed to the record codec (and, through it,
to the serializer and the storage facade). Each registry is seeded with the
built-in codecs at construction, so tests build isolated registries instead of
mutating shared state.

Notes:
    - ``register`` refuses to overwrite an existing kind unless ``replace=True``.
      Built-in kinds can be replaced the same way (test doubles, domain extensions).
    - Lookups are plain dict reads; the registry is not synchronized. Register
      custom kinds at start-up or serialize registration in the embedding app.
    - Registration is logged at debug level (kind name only).

Examples:
    >>> from crystaldb.core.registry import KindRegistry
    >>> from crystaldb.core.kinds import FunctionCodec
    >>> registry = KindRegistry()
    >>> registry.register("upper", FunctionCodec(str.upper, str.lower))
    >>> registry.require("upper").encode("abc")
    'ABC'
    >>> "percentage" in registry
    True
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping

from ..observability.logging import get_logger
from .errors import DuplicateKindError, RegistryError, UnknownKindError
from .kinds import BUILT_IN_CODECS, KindCodec

__all__ = ["KindRegistry"]

logger = get_logger(__name__)


class KindRegistry:
    """
    Mutable mapping of kind name -> codec.

    Args:
        codecs (Mapping[str, KindCodec] | None): Initial codecs. Defaults to the
            built-in codecs; pass an empty mapping (or use ``empty()``) for a bare
            registry.
    """

    def __init__(self, codecs: Mapping[str, KindCodec] | None = None) -> None:
        source = BUILT_IN_CODECS if codecs is None else codecs
        self._codecs: dict[str, KindCodec] = dict(source)

    @classmethod
    def empty(cls) -> KindRegistry:
        """Build a registry with no kinds registered."""
        return cls({})

    def register(self, kind: str, codec: KindCodec, *, replace: bool = False) -> None:
        """
        Register a codec for a kind name.

        Args:
            kind (str): Kind name (non-empty).
            codec (KindCodec): Object exposing ``encode``/``decode``.
            replace (bool): Overwrite an existing registration.

        Raises:
            RegistryError: If ``kind`` is empty.
            TypeError: If ``codec`` lacks ``encode``/``decode``.
            DuplicateKindError: If ``kind`` is registered and ``replace`` is False.
        """
        if not isinstance(kind, str) or not kind:
            raise RegistryError("kind must be a non-empty string")
        if not isinstance(codec, KindCodec):
            raise TypeError(f"codec for kind {kind!r} must define encode() and decode()")
        existing = kind in self._codecs
        if existing and not replace:
            raise DuplicateKindError(f'Kind "{kind}" is already registered')
        self._codecs[kind] = codec
        logger.debug("kind_registered", kind=kind, replaced=existing)

    def resolve(self, kind: str) -> KindCodec | None:
        """Return the codec for ``kind``, or None when unregistered."""
        return self._codecs.get(kind)

    def require(self, kind: str) -> KindCodec:
        """
        Return the codec for ``kind``.

        Raises:
            UnknownKindError: If no codec is registered for ``kind``.
        """
        codec = self._codecs.get(kind)
        if codec is None:
            raise UnknownKindError(f'No codec configured for kind "{kind}"')
        return codec

    # Names used by the orchestration layer.
    register_kind = register
    resolve_kind = resolve

    def kinds(self) -> list[str]:
        """Registered kind names in registration order."""
        return list(self._codecs)

    def copy(self) -> KindRegistry:
        """Independent registry with the same registrations."""
        return type(self)(self._codecs)

    def __contains__(self, kind: object) -> bool:
        return kind in self._codecs

    def __iter__(self) -> Iterator[str]:
        return iter(self._codecs)

    def __len__(self) -> int:
        return len(self._codecs)

    def __repr__(self) -> str:
        return f"KindRegistry(kinds={len(self._codecs)})"
