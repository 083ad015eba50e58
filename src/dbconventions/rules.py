"""Convention rule catalogue: fourteen naming and shape checks over the metadata view."""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, ClassVar, Protocol

from dbconventions.model import PropertyKind, ViolationRecord
from dbconventions.naming import is_pascal_case, is_plural

if TYPE_CHECKING:
    from collections.abc import Iterable

    from dbconventions.model import EntityDescriptor, PropertyDescriptor

# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


class RuleId(str, enum.Enum):
    """Closed set of rule identifiers, in catalogue order."""

    PRIMARY_KEYS_MUST_BE_INTS = "PrimaryKeysMustBeInts"
    PROHIBIT_GUID_PRIMARY_KEYS = "ProhibitGuidPrimaryKeys"
    PROHIBIT_NULLABLE_BOOLEANS = "ProhibitNullableBooleans"
    PROHIBIT_NULLABLE_STRINGS = "ProhibitNullableStrings"
    STRINGS_MUST_HAVE_MAX_LENGTH = "StringsMustHaveMaxLength"
    TABLE_NAMES_MUST_BE_PLURAL = "TableNamesMustBePlural"
    TABLE_NAMES_MUST_BE_PASCAL_CASE = "TableNamesMustBePascalCase"
    PROPERTY_NAMES_MUST_BE_PASCAL_CASE = "PropertyNamesMustBePascalCase"
    FOREIGN_KEYS_MUST_END_WITH_ID = "ForeignKeysMustEndWithId"
    PRIMARY_KEY_MUST_BE_ENTITY_NAME_ID = "PrimaryKeyMustBeEntityNameId"
    DATE_TIMES_MUST_END_WITH_DATE = "DateTimesMustEndWithDate"
    BOOLEANS_MUST_START_WITH_PREFIX = "BooleansMustStartWithPrefix"
    GUIDS_MUST_END_WITH_UNIQUE = "GuidsMustEndWithUnique"
    ENUMS_MUST_END_WITH_TYPE = "EnumsMustEndWithType"


BOOLEAN_PREFIXES: tuple[str, ...] = ("Is", "Has", "Can", "Are", "Does")


class ExclusionResolver(Protocol):
    def is_excluded(
        self, rule_id: RuleId, entity_name: str, property_name: str | None = None
    ) -> bool: ...


def _ends_with(name: str, suffix: str) -> bool:
    return name.lower().endswith(suffix.lower())


def _starts_with_any(name: str, prefixes: tuple[str, ...]) -> bool:
    lowered = name.lower()
    return any(lowered.startswith(p.lower()) for p in prefixes)


# ---------------------------------------------------------------------------
# Base classes
# ---------------------------------------------------------------------------


class ConventionRule:
    """A single convention check.

    Subclasses set ``rule_id`` and ``name`` and implement :meth:`validate`.
    Rules never mutate the model or the resolver.
    """

    rule_id: ClassVar[RuleId]
    name: ClassVar[str]

    def validate(
        self,
        contexts: Iterable[tuple[str, Iterable[EntityDescriptor]]],
        resolver: ExclusionResolver,
    ) -> list[ViolationRecord]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PropertyRule(ConventionRule):
    """Checks each property an entity exposes, one violation per offending property."""

    def properties(self, entity: EntityDescriptor) -> Iterable[PropertyDescriptor]:
        return entity.properties

    def is_violation(self, entity: EntityDescriptor, prop: PropertyDescriptor) -> bool:
        raise NotImplementedError

    def validate(
        self,
        contexts: Iterable[tuple[str, Iterable[EntityDescriptor]]],
        resolver: ExclusionResolver,
    ) -> list[ViolationRecord]:
        violations: list[ViolationRecord] = []
        for context_name, entities in contexts:
            for entity in entities:
                if resolver.is_excluded(self.rule_id, entity.name):
                    continue
                for prop in self.properties(entity):
                    if not self.is_violation(entity, prop):
                        continue
                    if resolver.is_excluded(self.rule_id, entity.name, prop.name):
                        continue
                    violations.append(ViolationRecord(context_name, entity.name, prop.name))
        return violations


class EntityRule(ConventionRule):
    """Checks each entity as a whole; violations carry no property name."""

    def is_violation(self, entity: EntityDescriptor) -> bool:
        raise NotImplementedError

    def validate(
        self,
        contexts: Iterable[tuple[str, Iterable[EntityDescriptor]]],
        resolver: ExclusionResolver,
    ) -> list[ViolationRecord]:
        violations: list[ViolationRecord] = []
        for context_name, entities in contexts:
            for entity in entities:
                if resolver.is_excluded(self.rule_id, entity.name):
                    continue
                if self.is_violation(entity):
                    violations.append(ViolationRecord(context_name, entity.name))
        return violations


# ---------------------------------------------------------------------------
# Key rules
# ---------------------------------------------------------------------------


class PrimaryKeysMustBeIntsRule(PropertyRule):
    rule_id = RuleId.PRIMARY_KEYS_MUST_BE_INTS
    name = "Primary keys must be integers"

    def properties(self, entity: EntityDescriptor) -> Iterable[PropertyDescriptor]:
        return entity.primary_key

    def is_violation(self, entity: EntityDescriptor, prop: PropertyDescriptor) -> bool:
        return prop.kind is not PropertyKind.INTEGER


class ProhibitGuidPrimaryKeysRule(PropertyRule):
    rule_id = RuleId.PROHIBIT_GUID_PRIMARY_KEYS
    name = "Primary keys cannot be Guid"

    def properties(self, entity: EntityDescriptor) -> Iterable[PropertyDescriptor]:
        return entity.primary_key

    def is_violation(self, entity: EntityDescriptor, prop: PropertyDescriptor) -> bool:
        return prop.kind is PropertyKind.GUID


class ForeignKeysMustEndWithIdRule(PropertyRule):
    rule_id = RuleId.FOREIGN_KEYS_MUST_END_WITH_ID
    name = "Foreign keys must end with Id"

    def properties(self, entity: EntityDescriptor) -> Iterable[PropertyDescriptor]:
        return entity.foreign_keys

    def is_violation(self, entity: EntityDescriptor, prop: PropertyDescriptor) -> bool:
        return not _ends_with(prop.name, "Id")


class PrimaryKeyMustBeEntityNameIdRule(ConventionRule):
    """Single-column primary keys must be named exactly ``{EntityName}Id``.

    Composite and keyless entities are skipped.
    """

    rule_id = RuleId.PRIMARY_KEY_MUST_BE_ENTITY_NAME_ID
    name = "Primary key must be EntityNameId"

    def validate(
        self,
        contexts: Iterable[tuple[str, Iterable[EntityDescriptor]]],
        resolver: ExclusionResolver,
    ) -> list[ViolationRecord]:
        violations: list[ViolationRecord] = []
        for context_name, entities in contexts:
            for entity in entities:
                if resolver.is_excluded(self.rule_id, entity.name):
                    continue
                key = entity.primary_key
                if len(key) != 1:
                    continue
                key_name = key[0].name
                if key_name == f"{entity.name}Id":
                    continue
                if resolver.is_excluded(self.rule_id, entity.name, key_name):
                    continue
                violations.append(ViolationRecord(context_name, entity.name, key_name))
        return violations


# ---------------------------------------------------------------------------
# Nullability and length rules
# ---------------------------------------------------------------------------


class ProhibitNullableBooleansRule(PropertyRule):
    rule_id = RuleId.PROHIBIT_NULLABLE_BOOLEANS
    name = "Properties cannot be nullable booleans"

    def is_violation(self, entity: EntityDescriptor, prop: PropertyDescriptor) -> bool:
        return prop.kind is PropertyKind.BOOLEAN and prop.nullable


class ProhibitNullableStringsRule(PropertyRule):
    rule_id = RuleId.PROHIBIT_NULLABLE_STRINGS
    name = "String properties cannot be nullable"

    def is_violation(self, entity: EntityDescriptor, prop: PropertyDescriptor) -> bool:
        return prop.kind is PropertyKind.STRING and prop.nullable


class StringsMustHaveMaxLengthRule(PropertyRule):
    rule_id = RuleId.STRINGS_MUST_HAVE_MAX_LENGTH
    name = "String properties must have max length"

    def is_violation(self, entity: EntityDescriptor, prop: PropertyDescriptor) -> bool:
        return prop.kind is PropertyKind.STRING and prop.max_length is None


# ---------------------------------------------------------------------------
# Table naming rules
# ---------------------------------------------------------------------------


class TableNamesMustBePluralRule(EntityRule):
    rule_id = RuleId.TABLE_NAMES_MUST_BE_PLURAL
    name = "Table names must be plural"

    def is_violation(self, entity: EntityDescriptor) -> bool:
        return not is_plural(entity.table_name)


class TableNamesMustBePascalCaseRule(EntityRule):
    rule_id = RuleId.TABLE_NAMES_MUST_BE_PASCAL_CASE
    name = "Table names must be PascalCase"

    def is_violation(self, entity: EntityDescriptor) -> bool:
        return not is_pascal_case(entity.table_name)


# ---------------------------------------------------------------------------
# Property naming rules
# ---------------------------------------------------------------------------


class PropertyNamesMustBePascalCaseRule(PropertyRule):
    rule_id = RuleId.PROPERTY_NAMES_MUST_BE_PASCAL_CASE
    name = "Property names must be PascalCase"

    def is_violation(self, entity: EntityDescriptor, prop: PropertyDescriptor) -> bool:
        return not is_pascal_case(prop.name)


class DateTimesMustEndWithDateRule(PropertyRule):
    rule_id = RuleId.DATE_TIMES_MUST_END_WITH_DATE
    name = "DateTime properties must end with Date"

    def is_violation(self, entity: EntityDescriptor, prop: PropertyDescriptor) -> bool:
        return prop.kind is PropertyKind.DATETIME and not _ends_with(prop.name, "Date")


class BooleansMustStartWithPrefixRule(PropertyRule):
    rule_id = RuleId.BOOLEANS_MUST_START_WITH_PREFIX
    name = "Boolean properties must start with Is, Has, Can, Are, or Does"

    def is_violation(self, entity: EntityDescriptor, prop: PropertyDescriptor) -> bool:
        return prop.kind is PropertyKind.BOOLEAN and not _starts_with_any(
            prop.name, BOOLEAN_PREFIXES
        )


class GuidsMustEndWithUniqueRule(PropertyRule):
    rule_id = RuleId.GUIDS_MUST_END_WITH_UNIQUE
    name = "Guid properties must end with Unique"

    def is_violation(self, entity: EntityDescriptor, prop: PropertyDescriptor) -> bool:
        return (
            prop.kind is PropertyKind.GUID
            and not prop.is_primary_key
            and not _ends_with(prop.name, "Unique")
        )


class EnumsMustEndWithTypeRule(PropertyRule):
    rule_id = RuleId.ENUMS_MUST_END_WITH_TYPE
    name = "Enum properties must end with Type"

    def is_violation(self, entity: EntityDescriptor, prop: PropertyDescriptor) -> bool:
        return prop.kind is PropertyKind.ENUM and not _ends_with(prop.name, "Type")


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------

RULE_CATALOGUE: tuple[type[ConventionRule], ...] = (
    PrimaryKeysMustBeIntsRule,
    ProhibitGuidPrimaryKeysRule,
    ProhibitNullableBooleansRule,
    ProhibitNullableStringsRule,
    StringsMustHaveMaxLengthRule,
    TableNamesMustBePluralRule,
    TableNamesMustBePascalCaseRule,
    PropertyNamesMustBePascalCaseRule,
    ForeignKeysMustEndWithIdRule,
    PrimaryKeyMustBeEntityNameIdRule,
    DateTimesMustEndWithDateRule,
    BooleansMustStartWithPrefixRule,
    GuidsMustEndWithUniqueRule,
    EnumsMustEndWithTypeRule,
)

_RULES_BY_ID: dict[RuleId, type[ConventionRule]] = {rule.rule_id: rule for rule in RULE_CATALOGUE}


def get_rule(rule_id: RuleId) -> ConventionRule:
    """Instantiate the rule registered for *rule_id*."""
    return _RULES_BY_ID[rule_id]()
