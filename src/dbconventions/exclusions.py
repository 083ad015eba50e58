"""Exclusion configuration: keys, resolver, builders, and YAML loading."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Union

import yaml

from dbconventions.rules import RuleId

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from pathlib import Path

    from dbconventions.model import EntityDescriptor

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMA_VERSIONS: frozenset[int] = frozenset({1})

EntityRef = Union[str, type]
PropertyRef = Union[str, Callable[[Any], Any]]
RuleRef = Union[RuleId, str, type]


class ConventionConfigError(ValueError):
    """Raised when the exclusion configuration is rejected."""


class UnusedExclusionPolicy(str, enum.Enum):
    """What to do with exclusion keys that match nothing in the model."""

    IGNORE = "ignore"
    WARN = "warn"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Keys and resolver
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExclusionKey:
    """Identity of an excluded entity, or of one property of an entity."""

    entity_name: str
    property_name: str | None = None

    @classmethod
    def for_entity(cls, entity_name: str) -> ExclusionKey:
        return cls(entity_name)

    @classmethod
    def for_property(cls, entity_name: str, property_name: str) -> ExclusionKey:
        return cls(entity_name, property_name)

    def __str__(self) -> str:
        if self.property_name is None:
            return self.entity_name
        return f"{self.entity_name}.{self.property_name}"


@dataclass(frozen=True)
class ExclusionConfiguration:
    """Frozen global and per-rule exclusion sets.

    Answers :meth:`is_excluded` for every rule during a validation pass.
    """

    global_exclusions: frozenset[ExclusionKey] = frozenset()
    rule_exclusions: Mapping[RuleId, frozenset[ExclusionKey]] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )

    def __post_init__(self) -> None:
        # Store read-only copies so a caller's set or dict cannot change the resolver.
        object.__setattr__(self, "global_exclusions", frozenset(self.global_exclusions))
        object.__setattr__(
            self,
            "rule_exclusions",
            MappingProxyType(
                {RuleId(rule_id): frozenset(keys) for rule_id, keys in self.rule_exclusions.items()}
            ),
        )

    def is_excluded(
        self, rule_id: RuleId, entity_name: str, property_name: str | None = None
    ) -> bool:
        """Return True if the entity (or entity.property) is excluded from *rule_id*.

        Global keys are consulted before rule keys, and within each tier the
        entity-level key before the property-level key.
        """
        entity_key = ExclusionKey.for_entity(entity_name)

        if entity_key in self.global_exclusions:
            return True
        if property_name is not None and (
            ExclusionKey.for_property(entity_name, property_name) in self.global_exclusions
        ):
            return True

        rule_keys = self.rule_exclusions.get(rule_id)
        if not rule_keys:
            return False

        if entity_key in rule_keys:
            return True
        return property_name is not None and (
            ExclusionKey.for_property(entity_name, property_name) in rule_keys
        )

    def all_keys(self) -> list[tuple[RuleId | None, ExclusionKey]]:
        """Return every configured key paired with its rule (``None`` for global)."""
        keys: list[tuple[RuleId | None, ExclusionKey]] = [
            (None, key) for key in sorted(self.global_exclusions, key=_key_sort)
        ]
        for rule_id in sorted(self.rule_exclusions, key=lambda r: r.value):
            rule_keys = sorted(self.rule_exclusions[rule_id], key=_key_sort)
            keys.extend((rule_id, key) for key in rule_keys)
        return keys


def _key_sort(key: ExclusionKey) -> tuple[str, str]:
    return (key.entity_name, key.property_name or "")


# ---------------------------------------------------------------------------
# Name resolution helpers
# ---------------------------------------------------------------------------


def _entity_name(entity: EntityRef) -> str:
    if isinstance(entity, type):
        return entity.__name__
    if not isinstance(entity, str) or not entity:
        msg = f"Entity must be a non-empty name or a class, got {entity!r}"
        raise ValueError(msg)
    return entity


class _MemberAccess:
    """Value returned by the recorder for the attribute a selector touched."""

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name


class _MemberRecorder:
    """Stand-in entity that records attribute accesses made by a selector."""

    def __init__(self) -> None:
        self._accessed: list[_MemberAccess] = []

    def __getattr__(self, name: str) -> _MemberAccess:
        access = _MemberAccess(name)
        self._accessed.append(access)
        return access


def property_name_from_selector(selector: Callable[[Any], Any]) -> str:
    """Resolve a selector such as ``lambda u: u.Email`` to ``"Email"``.

    Raises ``ValueError`` unless the selector performs exactly one direct
    attribute access on its argument and returns the result.
    """
    recorder = _MemberRecorder()
    try:
        result = selector(recorder)
    except Exception as exc:
        msg = "Property selector must be a simple member access expression"
        raise ValueError(msg) from exc

    accessed = recorder._accessed
    if len(accessed) != 1 or result is not accessed[0]:
        msg = "Property selector must be a simple member access expression"
        raise ValueError(msg)
    return accessed[0].name


def _property_name(prop: PropertyRef) -> str:
    if isinstance(prop, str):
        if not prop:
            msg = "Property name must be non-empty"
            raise ValueError(msg)
        return prop
    if callable(prop):
        return property_name_from_selector(prop)
    msg = f"Property must be a name or a selector, got {prop!r}"
    raise ValueError(msg)


def coerce_rule_id(rule: RuleRef) -> RuleId:
    """Turn a ``RuleId``, its string value, or a rule class/instance into a ``RuleId``."""
    if isinstance(rule, RuleId):
        return rule
    if isinstance(rule, str):
        try:
            return RuleId(rule)
        except ValueError:
            msg = f"Unknown rule '{rule}', must be one of {sorted(r.value for r in RuleId)}"
            raise ValueError(msg) from None
    rule_id = getattr(rule, "rule_id", None)
    if isinstance(rule_id, RuleId):
        return rule_id
    msg = f"Cannot determine rule identifier from {rule!r}"
    raise ValueError(msg)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


class RuleExclusionBuilder:
    """Collects entity and property exclusions for one rule."""

    def __init__(self) -> None:
        self._exclusions: set[ExclusionKey] = set()

    @property
    def exclusions(self) -> frozenset[ExclusionKey]:
        return frozenset(self._exclusions)

    def exclude_entity(self, entity: EntityRef) -> RuleExclusionBuilder:
        self._exclusions.add(ExclusionKey.for_entity(_entity_name(entity)))
        return self

    def exclude_property(self, entity: EntityRef, prop: PropertyRef) -> RuleExclusionBuilder:
        """Exclude one property; *prop* is a literal name or a member selector."""
        self._exclusions.add(ExclusionKey.for_property(_entity_name(entity), _property_name(prop)))
        return self


class ConventionOptionsBuilder:
    """Builds an :class:`ExclusionConfiguration` from explicit calls."""

    def __init__(self) -> None:
        self._global: set[ExclusionKey] = set()
        self._rules: dict[RuleId, RuleExclusionBuilder] = {}

    def for_rule(
        self, rule: RuleRef, configure: Callable[[RuleExclusionBuilder], object]
    ) -> ConventionOptionsBuilder:
        """Add exclusions scoped to *rule*; repeated calls accumulate."""
        rule_id = coerce_rule_id(rule)
        builder = self._rules.get(rule_id)
        if builder is None:
            builder = RuleExclusionBuilder()
            self._rules[rule_id] = builder
        configure(builder)
        return self

    def exclude_entity_from_all_rules(self, entity: EntityRef) -> ConventionOptionsBuilder:
        self._global.add(ExclusionKey.for_entity(_entity_name(entity)))
        return self

    def exclude_property_from_all_rules(
        self, entity: EntityRef, prop: PropertyRef
    ) -> ConventionOptionsBuilder:
        self._global.add(ExclusionKey.for_property(_entity_name(entity), _property_name(prop)))
        return self

    def merge(self, configuration: ExclusionConfiguration) -> ConventionOptionsBuilder:
        """Add every key of an already-built configuration."""
        self._global.update(configuration.global_exclusions)
        for rule_id, keys in configuration.rule_exclusions.items():
            builder = self._rules.setdefault(rule_id, RuleExclusionBuilder())
            builder._exclusions.update(keys)
        return self

    def build(self) -> ExclusionConfiguration:
        rule_exclusions = {
            rule_id: builder.exclusions
            for rule_id, builder in self._rules.items()
            if builder.exclusions
        }
        return ExclusionConfiguration(
            global_exclusions=frozenset(self._global),
            rule_exclusions=MappingProxyType(rule_exclusions),
        )


# ---------------------------------------------------------------------------
# Unused exclusions
# ---------------------------------------------------------------------------


def find_unused_exclusions(
    configuration: ExclusionConfiguration,
    contexts: Iterable[tuple[str, Iterable[EntityDescriptor]]],
) -> list[str]:
    """Return a warning for every exclusion key that matches nothing in the model."""
    properties_by_entity: dict[str, set[str]] = {}
    for _context_name, entities in contexts:
        for entity in entities:
            names = properties_by_entity.setdefault(entity.name, set())
            names.update(p.name for p in entity.properties)

    warnings: list[str] = []
    for rule_id, key in configuration.all_keys():
        scope = "all rules" if rule_id is None else f"rule '{rule_id.value}'"
        known_properties = properties_by_entity.get(key.entity_name)
        if known_properties is None:
            warnings.append(
                f"Exclusion '{key}' for {scope} references unknown entity '{key.entity_name}'"
            )
        elif key.property_name is not None and key.property_name not in known_properties:
            warnings.append(
                f"Exclusion '{key}' for {scope} references unknown property "
                f"'{key.property_name}' on entity '{key.entity_name}'"
            )
    return warnings


def apply_unused_exclusion_policy(
    configuration: ExclusionConfiguration,
    contexts: Iterable[tuple[str, Iterable[EntityDescriptor]]],
    policy: UnusedExclusionPolicy,
) -> list[str]:
    """Check for unused keys and act on them according to *policy*.

    Returns the warnings found (empty under ``IGNORE``).  Raises
    :class:`ConventionConfigError` under ``ERROR`` when any key is unused.
    """
    if policy is UnusedExclusionPolicy.IGNORE:
        return []

    warnings = find_unused_exclusions(configuration, contexts)
    if not warnings:
        return warnings

    if policy is UnusedExclusionPolicy.ERROR:
        msg = "Unused exclusions: " + "; ".join(warnings)
        raise ConventionConfigError(msg)

    for warning in warnings:
        logger.warning(warning)
    return warnings


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------


def _parse_property_list(data: object, context: str) -> list[tuple[str, str]]:
    if not isinstance(data, list):
        msg = f"{context} must be a list"
        raise ValueError(msg)

    pairs: list[tuple[str, str]] = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            msg = f"{context}[{idx}] must be a mapping with 'entity' and 'property'"
            raise ValueError(msg)
        entity = item.get("entity")
        prop = item.get("property")
        if not isinstance(entity, str) or not entity.strip():
            msg = f"{context}[{idx}]: 'entity' must be a non-empty string"
            raise ValueError(msg)
        if not isinstance(prop, str) or not prop.strip():
            msg = f"{context}[{idx}]: 'property' must be a non-empty string"
            raise ValueError(msg)
        pairs.append((entity, prop))
    return pairs


def _parse_entity_list(data: object, context: str) -> list[str]:
    if not isinstance(data, list):
        msg = f"{context} must be a list"
        raise ValueError(msg)

    names: list[str] = []
    for idx, item in enumerate(data):
        if not isinstance(item, str) or not item.strip():
            msg = f"{context}[{idx}] must be a non-empty string"
            raise ValueError(msg)
        names.append(item)
    return names


def load_exclusions(
    path: Path,
) -> tuple[ExclusionConfiguration, UnusedExclusionPolicy]:
    """Parse an exclusions YAML file.

    Returns the frozen configuration and the unused-exclusion policy declared
    in the file (``warn`` when absent).  Raises ``ValueError`` on schema errors.
    """
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        msg = f"exclusions file: invalid YAML: {exc}"
        raise ValueError(msg) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = "exclusions file must be a YAML mapping"
        raise ValueError(msg)

    version = data.get("version")
    if version is None:
        msg = "exclusions file: missing required 'version' field"
        raise ValueError(msg)
    if version not in SUPPORTED_SCHEMA_VERSIONS:
        expected = sorted(SUPPORTED_SCHEMA_VERSIONS)
        msg = f"exclusions file: unsupported version {version}, expected one of {expected}"
        raise ValueError(msg)

    policy_raw = data.get("unused_exclusions", UnusedExclusionPolicy.WARN.value)
    try:
        policy = UnusedExclusionPolicy(str(policy_raw))
    except ValueError:
        msg = (
            f"exclusions file: invalid unused_exclusions '{policy_raw}', "
            f"must be one of {sorted(p.value for p in UnusedExclusionPolicy)}"
        )
        raise ValueError(msg) from None

    builder = ConventionOptionsBuilder()

    for entity in _parse_entity_list(data.get("exclude_entities", []), "exclude_entities"):
        builder.exclude_entity_from_all_rules(entity)
    for entity, prop in _parse_property_list(
        data.get("exclude_properties", []), "exclude_properties"
    ):
        builder.exclude_property_from_all_rules(entity, prop)

    rules_data = data.get("rules", {})
    if not isinstance(rules_data, dict):
        msg = "exclusions file: 'rules' must be a mapping of rule name to exclusions"
        raise ValueError(msg)

    for rule_name, rule_data in rules_data.items():
        rule_id = coerce_rule_id(str(rule_name))
        if rule_data is None:
            continue
        if not isinstance(rule_data, dict):
            msg = f"Rule '{rule_name}': exclusions must be a mapping"
            raise ValueError(msg)

        entities = _parse_entity_list(rule_data.get("entities", []), f"rules.{rule_name}.entities")
        properties = _parse_property_list(
            rule_data.get("properties", []), f"rules.{rule_name}.properties"
        )

        def _configure(
            rule_builder: RuleExclusionBuilder,
            entities: list[str] = entities,
            properties: list[tuple[str, str]] = properties,
        ) -> None:
            for entity in entities:
                rule_builder.exclude_entity(entity)
            for entity, prop in properties:
                rule_builder.exclude_property(entity, prop)

        builder.for_rule(rule_id, _configure)

    return builder.build(), policy
