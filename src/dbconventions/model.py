"""Metadata view: read-only projection of mapping contexts, plus violation records."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

# ---------------------------------------------------------------------------
# Property kinds
# ---------------------------------------------------------------------------


class PropertyKind(str, enum.Enum):
    """Storage category of a mapped property."""

    INTEGER = "integer"
    GUID = "guid"
    STRING = "string"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    ENUM = "enum"
    OTHER = "other"


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PropertyDescriptor:
    """A single mapped column of an entity."""

    name: str
    kind: PropertyKind
    nullable: bool = False
    max_length: int | None = None  # strings only
    is_primary_key: bool = False
    is_foreign_key: bool = False

    def __post_init__(self) -> None:
        if self.max_length is not None and (
            isinstance(self.max_length, bool)
            or not isinstance(self.max_length, int)
            or self.max_length <= 0
        ):
            msg = (
                f"Property '{self.name}': max_length must be a positive integer, "
                f"got {self.max_length!r}"
            )
            raise ValueError(msg)


@dataclass(frozen=True)
class EntityDescriptor:
    """A mapped entity: its table and its ordered properties.

    The primary key is derived from the ``is_primary_key`` flags and keeps
    property order.  An empty primary key marks a keyless entity.
    """

    name: str
    table_name: str
    properties: tuple[PropertyDescriptor, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any iterable of properties but store a tuple.
        object.__setattr__(self, "properties", tuple(self.properties))

        seen: set[str] = set()
        for prop in self.properties:
            if prop.name in seen:
                msg = f"Entity '{self.name}': duplicate property name '{prop.name}'"
                raise ValueError(msg)
            seen.add(prop.name)

        key = self.primary_key
        if len(key) == 1 and key[0].nullable:
            msg = (
                f"Entity '{self.name}': single-column primary key "
                f"'{key[0].name}' cannot be nullable"
            )
            raise ValueError(msg)

    @property
    def primary_key(self) -> tuple[PropertyDescriptor, ...]:
        return tuple(p for p in self.properties if p.is_primary_key)

    @property
    def foreign_keys(self) -> tuple[PropertyDescriptor, ...]:
        return tuple(p for p in self.properties if p.is_foreign_key)

    def find_property(self, name: str) -> PropertyDescriptor | None:
        """Return the property called *name*, or ``None``."""
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


class MappingContext(NamedTuple):
    """A named collection of entity mappings.

    Any plain ``(name, entities)`` pair is interchangeable with this type.
    """

    name: str
    entities: Sequence[EntityDescriptor]


def as_contexts(
    contexts: Iterable[tuple[str, Iterable[EntityDescriptor]]],
) -> tuple[MappingContext, ...]:
    """Normalize ``(name, entities)`` pairs into a tuple of :class:`MappingContext`."""
    if isinstance(contexts, MappingContext):
        contexts = [contexts]
    return tuple(MappingContext(str(name), tuple(entities)) for name, entities in contexts)


# ---------------------------------------------------------------------------
# Violations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ViolationRecord:
    """A single convention violation.

    ``property_name`` is ``None`` for entity-level and table-level violations.
    """

    context_name: str
    entity_name: str
    property_name: str | None = None

    def __str__(self) -> str:
        if self.property_name is None:
            return f"{self.context_name} ({self.entity_name})"
        return f"{self.context_name} ({self.entity_name}) {self.property_name}"
