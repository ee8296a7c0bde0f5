"""
Bind application classes to unit types through explicit accessor functions.

A UnitClassBinding pairs one unit type with one class and a set of accessors that
read and write the unit fields (id, unit type id, values, metadata, timestamps) on
instances. Defaults use plain attributes of the same names (``values``,
``metadata``, ``created_at``, ...). No attributes are generated on the class.

Notes:
    - Values and metadata are deep-copied in both directions; instances never share
      state with the Unit they were built from.
    - Lookup by class walks the MRO, so subclasses of a bound class resolve to the
      parent's binding unless bound themselves.

Examples:
    >>> from crystaldb.core.binding import UnitClassRegistry
    >>> from crystaldb.core.schema import DataItem, UnitType
    >>> class Task:
    ...     pass
    >>> registry = UnitClassRegistry()
    >>> ut = UnitType(id="task", items=[DataItem(id="title", type="string")])
    >>> binding = registry.register(ut, Task)
    >>> registry.for_class(Task) is binding
    True
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .errors import BindingError
from .schema import Unit, UnitType
from .typing import BusinessValues, JsonDict

__all__ = [
    "UnitClassAccessors",
    "UnitClassExtraction",
    "UnitClassBinding",
    "UnitClassRegistry",
]

Getter = Callable[[Any], Any]
Setter = Callable[[Any, Any], None]


def _getter(name: str) -> Getter:
    return lambda instance: getattr(instance, name, None)


def _setter(name: str) -> Setter:
    return lambda instance, value: setattr(instance, name, value)


@dataclass(frozen=True, slots=True)
class UnitClassAccessors:
    """
    Accessor functions for reading/writing unit fields on instances.

    Any accessor left as None falls back to the attribute of the same name.
    """

    get_id: Getter | None = None
    set_id: Setter | None = None
    get_unit_type_id: Getter | None = None
    set_unit_type_id: Setter | None = None
    get_values: Getter | None = None
    set_values: Setter | None = None
    get_metadata: Getter | None = None
    set_metadata: Setter | None = None
    get_created_at: Getter | None = None
    set_created_at: Setter | None = None
    get_updated_at: Getter | None = None
    set_updated_at: Setter | None = None

    def resolved(self) -> UnitClassAccessors:
        """Return a copy with every missing accessor replaced by its attribute default."""
        filled: dict[str, Callable[..., Any]] = {}
        for name in (
            "id",
            "unit_type_id",
            "values",
            "metadata",
            "created_at",
            "updated_at",
        ):
            get_name, set_name = f"get_{name}", f"set_{name}"
            filled[get_name] = getattr(self, get_name) or _getter(name)
            filled[set_name] = getattr(self, set_name) or _setter(name)
        return UnitClassAccessors(**filled)


@dataclass(frozen=True, slots=True)
class UnitClassExtraction:
    """Fields read back from a bound instance, ready for a create/update call."""

    unit_type_id: str
    values: BusinessValues
    id: str | None = None
    metadata: JsonDict | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class UnitClassBinding:
    """
    One unit type bound to one class.

    Attributes:
        unit_type (UnitType): Bound definition.
        cls (type): Bound class.
        accessors (UnitClassAccessors): Fully resolved accessors.
        factory (Callable[[], Any]): Builds empty instances (defaults to ``cls``).
    """

    unit_type: UnitType
    cls: type
    accessors: UnitClassAccessors
    factory: Callable[[], Any] = field(default=None)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.factory is None:
            object.__setattr__(self, "factory", self.cls)

    def instantiate(self, unit: Unit) -> Any:
        """Build a new instance populated from ``unit``."""
        instance = self.factory()
        self.apply(unit, instance)
        return instance

    def apply(self, unit: Unit, instance: Any) -> None:
        """Copy ``unit`` fields onto an existing instance."""
        acc = self.accessors
        acc.set_unit_type_id(instance, unit.unit_type_id)
        acc.set_id(instance, unit.id)
        acc.set_values(instance, copy.deepcopy(unit.values))
        acc.set_metadata(instance, copy.deepcopy(unit.metadata))
        acc.set_created_at(instance, unit.created_at)
        acc.set_updated_at(instance, unit.updated_at)

    def extract(self, instance: Any) -> UnitClassExtraction:
        """
        Read unit fields from an instance.

        ``unit_type_id`` falls back to the bound unit type; missing values become an
        empty mapping.
        """
        acc = self.accessors
        values = acc.get_values(instance)
        return UnitClassExtraction(
            unit_type_id=acc.get_unit_type_id(instance) or self.unit_type.id,
            values=copy.deepcopy(dict(values)) if values else {},
            id=acc.get_id(instance),
            metadata=copy.deepcopy(acc.get_metadata(instance)),
            created_at=acc.get_created_at(instance),
            updated_at=acc.get_updated_at(instance),
        )


class UnitClassRegistry:
    """Registry of class bindings, looked up by unit type id, class, or instance."""

    def __init__(self) -> None:
        self._by_unit_type: dict[str, UnitClassBinding] = {}
        self._by_class: dict[type, UnitClassBinding] = {}

    def register(
        self,
        unit_type: UnitType,
        cls: type,
        accessors: UnitClassAccessors | None = None,
        *,
        factory: Callable[[], Any] | None = None,
        replace: bool = False,
    ) -> UnitClassBinding:
        """
        Bind ``cls`` to ``unit_type``.

        Args:
            unit_type (UnitType): Definition to bind.
            cls (type): Class whose instances represent units of ``unit_type``.
            accessors (UnitClassAccessors | None): Custom accessors; attribute defaults
                otherwise.
            factory (Callable[[], Any] | None): Builds empty instances; ``cls`` when omitted.
            replace (bool): Replace an existing binding for the same unit type.

        Returns:
            UnitClassBinding: The new binding.

        Raises:
            BindingError: If ``cls`` is not a class, or the unit type is already bound
                and ``replace`` is False.
        """
        if not isinstance(cls, type):
            raise BindingError("register expects a class")
        if unit_type.id in self._by_unit_type and not replace:
            raise BindingError(f'A class is already registered for unit type "{unit_type.id}"')
        self.unregister(unit_type.id)
        binding = UnitClassBinding(
            unit_type=unit_type,
            cls=cls,
            accessors=(accessors or UnitClassAccessors()).resolved(),
            factory=factory,  # type: ignore[arg-type]
        )
        self._by_unit_type[unit_type.id] = binding
        self._by_class[cls] = binding
        return binding

    def unregister(self, unit_type_id: str) -> bool:
        """Remove the binding for ``unit_type_id``; returns False when none existed."""
        binding = self._by_unit_type.pop(unit_type_id, None)
        if binding is None:
            return False
        self._by_class.pop(binding.cls, None)
        return True

    def for_unit_type(self, unit_type_id: str) -> UnitClassBinding | None:
        return self._by_unit_type.get(unit_type_id)

    def for_class(self, cls: type) -> UnitClassBinding | None:
        """Binding for ``cls`` or its nearest bound base class."""
        for klass in cls.__mro__:
            binding = self._by_class.get(klass)
            if binding is not None:
                return binding
        return None

    def for_instance(self, instance: Any) -> UnitClassBinding | None:
        return self.for_class(type(instance))

    def require_instance(self, instance: Any) -> UnitClassBinding:
        """
        Binding for ``instance``.

        Raises:
            BindingError: If the instance's class is not bound.
        """
        binding = self.for_instance(instance)
        if binding is None:
            raise BindingError(
                f"No unit type is registered for class {type(instance).__name__}"
            )
        return binding

    def __contains__(self, unit_type_id: object) -> bool:
        return unit_type_id in self._by_unit_type

    def __len__(self) -> int:
        return len(self._by_unit_type)
