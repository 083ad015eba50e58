"""Context sources: build the metadata view from YAML snapshots or SQLAlchemy mappings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import yaml
from sqlalchemy import Column
from sqlalchemy import types as sqltypes
from sqlalchemy.orm import registry as orm_registry

from dbconventions.model import EntityDescriptor, MappingContext, PropertyDescriptor, PropertyKind

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.orm import Mapper

logger = logging.getLogger(__name__)

VALID_KINDS: frozenset[str] = frozenset(k.value for k in PropertyKind)

# ---------------------------------------------------------------------------
# YAML snapshots
# ---------------------------------------------------------------------------


def _parse_property(data: object, context: str) -> PropertyDescriptor:
    if not isinstance(data, dict):
        msg = f"{context} must be a mapping"
        raise ValueError(msg)

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        msg = f"{context}: missing required 'name' field"
        raise ValueError(msg)

    kind_raw = data.get("kind")
    if kind_raw is None:
        msg = f"{context} '{name}': missing required 'kind' field"
        raise ValueError(msg)
    kind_str = str(kind_raw).lower()
    if kind_str not in VALID_KINDS:
        msg = f"{context} '{name}': invalid kind '{kind_raw}', must be one of {sorted(VALID_KINDS)}"
        raise ValueError(msg)

    max_length_raw = data.get("max_length")
    max_length: int | None = None
    if max_length_raw is not None:
        if not isinstance(max_length_raw, int) or isinstance(max_length_raw, bool):
            msg = f"{context} '{name}': max_length must be an integer"
            raise ValueError(msg)
        max_length = max_length_raw

    return PropertyDescriptor(
        name=name,
        kind=PropertyKind(kind_str),
        nullable=bool(data.get("nullable", False)),
        max_length=max_length,
        is_primary_key=bool(data.get("primary_key", False)),
        is_foreign_key=bool(data.get("foreign_key", False)),
    )


def _parse_entity(data: object, context: str) -> EntityDescriptor:
    if not isinstance(data, dict):
        msg = f"{context} must be a mapping"
        raise ValueError(msg)

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        msg = f"{context}: missing required 'name' field"
        raise ValueError(msg)

    table = data.get("table", name)
    if not isinstance(table, str) or not table.strip():
        msg = f"{context} '{name}': 'table' must be a non-empty string"
        raise ValueError(msg)

    properties_raw = data.get("properties", [])
    if not isinstance(properties_raw, list):
        msg = f"{context} '{name}': 'properties' must be a list"
        raise ValueError(msg)

    properties = [
        _parse_property(prop, f"{context} '{name}' property at index {idx}")
        for idx, prop in enumerate(properties_raw)
    ]
    return EntityDescriptor(name=name, table_name=table, properties=tuple(properties))


def load_contexts(path: Path) -> list[MappingContext]:
    """Parse a YAML model snapshot into mapping contexts.

    Raises ``ValueError`` when the document does not have the expected shape
    or describes an invalid entity.
    """
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        msg = f"model file: invalid YAML: {exc}"
        raise ValueError(msg) from exc

    if not isinstance(data, dict):
        msg = "model file must be a YAML mapping"
        raise ValueError(msg)

    contexts_raw = data.get("contexts")
    if not isinstance(contexts_raw, list):
        msg = "model file: 'contexts' must be a list"
        raise ValueError(msg)

    contexts: list[MappingContext] = []
    seen_names: set[str] = set()
    for idx, context_data in enumerate(contexts_raw):
        if not isinstance(context_data, dict):
            msg = f"model file: context at index {idx} must be a mapping"
            raise ValueError(msg)

        name = context_data.get("name")
        if not isinstance(name, str) or not name.strip():
            msg = f"model file: context at index {idx} missing required 'name' field"
            raise ValueError(msg)
        if name in seen_names:
            msg = f"model file: duplicate context name '{name}'"
            raise ValueError(msg)
        seen_names.add(name)

        entities_raw = context_data.get("entities", [])
        if not isinstance(entities_raw, list):
            msg = f"Context '{name}': 'entities' must be a list"
            raise ValueError(msg)

        entities = tuple(
            _parse_entity(entity, f"Context '{name}' entity at index {e_idx}")
            for e_idx, entity in enumerate(entities_raw)
        )
        contexts.append(MappingContext(name, entities))

    logger.debug("Loaded %d context(s) from %s", len(contexts), path)
    return contexts


# ---------------------------------------------------------------------------
# SQLAlchemy declarative mappings
# ---------------------------------------------------------------------------


def _column_kind(column_type: sqltypes.TypeEngine[Any]) -> PropertyKind:
    """Classify a SQLAlchemy column type.

    Enum subclasses String and must be checked first.
    """
    if isinstance(column_type, sqltypes.TypeDecorator):
        column_type = column_type.impl

    if isinstance(column_type, sqltypes.Enum):
        return PropertyKind.ENUM
    if isinstance(column_type, sqltypes.Boolean):
        return PropertyKind.BOOLEAN
    if isinstance(column_type, sqltypes.Integer):
        return PropertyKind.INTEGER
    if isinstance(column_type, sqltypes.Uuid):
        return PropertyKind.GUID
    if isinstance(column_type, sqltypes.String):
        return PropertyKind.STRING
    if isinstance(column_type, (sqltypes.DateTime, sqltypes.Date)):
        return PropertyKind.DATETIME
    return PropertyKind.OTHER


def _mapper_entity(mapper: Mapper[Any]) -> EntityDescriptor:
    properties: list[PropertyDescriptor] = []
    for attr in mapper.column_attrs:
        column = attr.columns[0]
        # column_property() expressions are not table columns.
        if not isinstance(column, Column):
            continue
        kind = _column_kind(column.type)
        max_length = getattr(column.type, "length", None) if kind is PropertyKind.STRING else None
        properties.append(
            PropertyDescriptor(
                name=attr.key,
                kind=kind,
                nullable=bool(column.nullable),
                max_length=max_length,
                is_primary_key=bool(column.primary_key),
                is_foreign_key=bool(column.foreign_keys),
            )
        )

    table_name = getattr(mapper.local_table, "name", None) or mapper.class_.__name__
    return EntityDescriptor(
        name=mapper.class_.__name__,
        table_name=str(table_name),
        properties=tuple(properties),
    )


def context_from_sqlalchemy(base: Any, name: str | None = None) -> MappingContext:
    """Project a SQLAlchemy declarative base (or registry) into a mapping context.

    Entities are ordered by class name; properties keep declaration order.
    The context name defaults to the base class name.
    """
    registry = base if isinstance(base, orm_registry) else base.registry
    if name is None:
        name = getattr(base, "__name__", type(base).__name__)

    mappers = sorted(registry.mappers, key=lambda m: m.class_.__name__)
    entities = tuple(_mapper_entity(mapper) for mapper in mappers)
    logger.debug("Projected %d mapped class(es) from %s", len(entities), name)
    return MappingContext(name, entities)
