"""Tests for dbconventions.rules — the fourteen convention checks."""

from __future__ import annotations

import pytest

from dbconventions.exclusions import ConventionOptionsBuilder, ExclusionConfiguration
from dbconventions.model import (
    EntityDescriptor,
    MappingContext,
    PropertyDescriptor,
    PropertyKind,
    ViolationRecord,
)
from dbconventions.rules import (
    RULE_CATALOGUE,
    BooleansMustStartWithPrefixRule,
    DateTimesMustEndWithDateRule,
    EnumsMustEndWithTypeRule,
    ForeignKeysMustEndWithIdRule,
    GuidsMustEndWithUniqueRule,
    PrimaryKeyMustBeEntityNameIdRule,
    PrimaryKeysMustBeIntsRule,
    PropertyNamesMustBePascalCaseRule,
    ProhibitGuidPrimaryKeysRule,
    ProhibitNullableBooleansRule,
    ProhibitNullableStringsRule,
    RuleId,
    StringsMustHaveMaxLengthRule,
    TableNamesMustBePascalCaseRule,
    TableNamesMustBePluralRule,
    get_rule,
)

CTX = "SampleContext"
NO_EXCLUSIONS = ExclusionConfiguration()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _entity(
    name: str,
    *props: PropertyDescriptor,
    table: str | None = None,
    key: PropertyDescriptor | None = None,
) -> EntityDescriptor:
    """Build an entity with an integer ``{name}Id`` key unless *key* is given."""
    if key is None:
        key = PropertyDescriptor(f"{name}Id", PropertyKind.INTEGER, is_primary_key=True)
    return EntityDescriptor(name, table or f"{name}s", (key, *props))


def _run(
    rule_cls: type,
    *entities: EntityDescriptor,
    options: ExclusionConfiguration = NO_EXCLUSIONS,
) -> list[ViolationRecord]:
    return rule_cls().validate([MappingContext(CTX, entities)], options)


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


class TestCatalogue:
    def test_fourteen_rules_one_per_identifier(self) -> None:
        assert len(RULE_CATALOGUE) == 14
        assert [r.rule_id for r in RULE_CATALOGUE] == list(RuleId)

    def test_every_rule_has_a_human_name(self) -> None:
        for rule in RULE_CATALOGUE:
            assert rule.name
            assert rule.name != rule.rule_id.value

    def test_get_rule_returns_instance(self) -> None:
        rule = get_rule(RuleId.TABLE_NAMES_MUST_BE_PLURAL)
        assert isinstance(rule, TableNamesMustBePluralRule)
        assert repr(rule) == "TableNamesMustBePluralRule()"

    def test_compliant_model_passes_every_rule(self, sample_context: MappingContext) -> None:
        for rule_cls in RULE_CATALOGUE:
            assert rule_cls().validate([sample_context], NO_EXCLUSIONS) == [], rule_cls.rule_id

    def test_empty_model(self) -> None:
        for rule_cls in RULE_CATALOGUE:
            assert rule_cls().validate([], NO_EXCLUSIONS) == []
            assert rule_cls().validate([MappingContext(CTX, ())], NO_EXCLUSIONS) == []


# ---------------------------------------------------------------------------
# Key rules
# ---------------------------------------------------------------------------


class TestPrimaryKeyRules:
    def test_guid_key_flagged_by_both_key_rules(self) -> None:
        user = _entity(
            "User", key=PropertyDescriptor("UserId", PropertyKind.GUID, is_primary_key=True)
        )
        expected = [ViolationRecord(CTX, "User", "UserId")]
        assert _run(PrimaryKeysMustBeIntsRule, user) == expected
        assert _run(ProhibitGuidPrimaryKeysRule, user) == expected

    def test_string_key_not_a_guid(self) -> None:
        code = _entity(
            "Country", key=PropertyDescriptor("CountryId", PropertyKind.STRING, max_length=2,
                                              is_primary_key=True)
        )
        assert _run(PrimaryKeysMustBeIntsRule, code) == [ViolationRecord(CTX, "Country", "CountryId")]
        assert _run(ProhibitGuidPrimaryKeysRule, code) == []

    def test_composite_key_each_column_checked(self) -> None:
        tagging = EntityDescriptor(
            "Tagging",
            "Taggings",
            (
                PropertyDescriptor("PostId", PropertyKind.INTEGER, is_primary_key=True),
                PropertyDescriptor("TagUnique", PropertyKind.GUID, is_primary_key=True),
            ),
        )
        assert _run(PrimaryKeysMustBeIntsRule, tagging) == [
            ViolationRecord(CTX, "Tagging", "TagUnique")
        ]

    def test_keyless_entity_skipped(self) -> None:
        report = EntityDescriptor(
            "Report", "Reports", (PropertyDescriptor("Title", PropertyKind.STRING, max_length=50),)
        )
        assert _run(PrimaryKeysMustBeIntsRule, report) == []
        assert _run(ProhibitGuidPrimaryKeysRule, report) == []
        assert _run(PrimaryKeyMustBeEntityNameIdRule, report) == []

    def test_foreign_keys_must_end_with_id(self) -> None:
        post = _entity(
            "BlogPost",
            PropertyDescriptor("AuthorId", PropertyKind.INTEGER, is_foreign_key=True),
            PropertyDescriptor("Author", PropertyKind.INTEGER, is_foreign_key=True),
            PropertyDescriptor("Editor", PropertyKind.INTEGER),
        )
        assert _run(ForeignKeysMustEndWithIdRule, post) == [
            ViolationRecord(CTX, "BlogPost", "Author")
        ]


class TestPrimaryKeyMustBeEntityNameId:
    def test_exact_name_passes(self) -> None:
        assert _run(PrimaryKeyMustBeEntityNameIdRule, _entity("Invoice")) == []

    def test_bare_id_flagged(self) -> None:
        invoice = _entity(
            "Invoice", key=PropertyDescriptor("Id", PropertyKind.INTEGER, is_primary_key=True)
        )
        assert _run(PrimaryKeyMustBeEntityNameIdRule, invoice) == [
            ViolationRecord(CTX, "Invoice", "Id")
        ]

    def test_case_sensitive(self) -> None:
        invoice = _entity(
            "Invoice", key=PropertyDescriptor("InvoiceID", PropertyKind.INTEGER, is_primary_key=True)
        )
        assert len(_run(PrimaryKeyMustBeEntityNameIdRule, invoice)) == 1

    def test_composite_key_skipped(self) -> None:
        line = EntityDescriptor(
            "OrderLine",
            "OrderLines",
            (
                PropertyDescriptor("OrderId", PropertyKind.INTEGER, is_primary_key=True),
                PropertyDescriptor("LineNumber", PropertyKind.INTEGER, is_primary_key=True),
            ),
        )
        assert _run(PrimaryKeyMustBeEntityNameIdRule, line) == []

    def test_property_exclusion_applies_to_key(self) -> None:
        invoice = _entity(
            "Invoice", key=PropertyDescriptor("Id", PropertyKind.INTEGER, is_primary_key=True)
        )
        options = (
            ConventionOptionsBuilder()
            .for_rule(RuleId.PRIMARY_KEY_MUST_BE_ENTITY_NAME_ID,
                      lambda r: r.exclude_property("Invoice", "Id"))
            .build()
        )
        assert _run(PrimaryKeyMustBeEntityNameIdRule, invoice, options=options) == []


# ---------------------------------------------------------------------------
# Nullability and length rules
# ---------------------------------------------------------------------------


class TestNullabilityAndLength:
    def test_nullable_boolean(self) -> None:
        user = _entity(
            "User",
            PropertyDescriptor("IsActive", PropertyKind.BOOLEAN),
            PropertyDescriptor("IsAdmin", PropertyKind.BOOLEAN, nullable=True),
        )
        assert _run(ProhibitNullableBooleansRule, user) == [ViolationRecord(CTX, "User", "IsAdmin")]

    def test_nullable_string(self) -> None:
        user = _entity(
            "User",
            PropertyDescriptor("Name", PropertyKind.STRING, max_length=100),
            PropertyDescriptor("MiddleName", PropertyKind.STRING, nullable=True, max_length=50),
            PropertyDescriptor("ModifiedDate", PropertyKind.DATETIME, nullable=True),
        )
        assert _run(ProhibitNullableStringsRule, user) == [
            ViolationRecord(CTX, "User", "MiddleName")
        ]

    def test_string_without_max_length(self) -> None:
        user = _entity(
            "User",
            PropertyDescriptor("Name", PropertyKind.STRING, max_length=100),
            PropertyDescriptor("Bio", PropertyKind.STRING),
            PropertyDescriptor("Score", PropertyKind.INTEGER),
        )
        assert _run(StringsMustHaveMaxLengthRule, user) == [ViolationRecord(CTX, "User", "Bio")]


# ---------------------------------------------------------------------------
# Table naming rules
# ---------------------------------------------------------------------------


class TestTableNames:
    def test_singular_table_is_entity_level_violation(self) -> None:
        post = _entity("BlogPost", table="BlogPost")
        violations = _run(TableNamesMustBePluralRule, post)
        assert violations == [ViolationRecord(CTX, "BlogPost")]
        assert violations[0].property_name is None

    def test_plural_tables_pass(self) -> None:
        entities = [
            _entity("Category", table="Categories"),
            _entity("Person", table="People"),
            _entity("Status", table="Statuses"),
            _entity("Api", table="APIs"),
        ]
        assert _run(TableNamesMustBePluralRule, *entities) == []

    @pytest.mark.parametrize(
        "table", ["blog_posts", "blogPosts", "Blog_Posts", "__EFMigrationsHistory", "BlogPosts\n"]
    )
    def test_non_pascal_tables_flagged(self, table: str) -> None:
        assert _run(TableNamesMustBePascalCaseRule, _entity("BlogPost", table=table)) == [
            ViolationRecord(CTX, "BlogPost")
        ]

    def test_pascal_table_passes(self) -> None:
        assert _run(TableNamesMustBePascalCaseRule, _entity("BlogPost", table="BlogPosts")) == []


# ---------------------------------------------------------------------------
# Property naming rules
# ---------------------------------------------------------------------------


class TestPropertyNames:
    def test_property_name_with_trailing_newline_flagged(self) -> None:
        user = _entity("User", PropertyDescriptor("Email\n", PropertyKind.STRING, max_length=255))
        assert _run(PropertyNamesMustBePascalCaseRule, user) == [
            ViolationRecord(CTX, "User", "Email\n")
        ]

    def test_property_names_pascal_case(self) -> None:
        user = _entity(
            "User",
            PropertyDescriptor("first_name", PropertyKind.STRING, max_length=50),
            PropertyDescriptor("lastName", PropertyKind.STRING, max_length=50),
            PropertyDescriptor("Email", PropertyKind.STRING, max_length=255),
        )
        assert _run(PropertyNamesMustBePascalCaseRule, user) == [
            ViolationRecord(CTX, "User", "first_name"),
            ViolationRecord(CTX, "User", "lastName"),
        ]

    def test_datetime_must_end_with_date(self) -> None:
        post = _entity(
            "BlogPost",
            PropertyDescriptor("PublishedAt", PropertyKind.DATETIME),
            PropertyDescriptor("CreatedDate", PropertyKind.DATETIME),
            PropertyDescriptor("Title", PropertyKind.STRING, max_length=200),
        )
        assert _run(DateTimesMustEndWithDateRule, post) == [
            ViolationRecord("SampleContext", "BlogPost", "PublishedAt")
        ]

    @pytest.mark.parametrize("name", ["IsActive", "HasChildren", "CanEdit", "AreVisible",
                                      "DoesExpire"])
    def test_boolean_prefix_accepted(self, name: str) -> None:
        user = _entity("User", PropertyDescriptor(name, PropertyKind.BOOLEAN))
        assert _run(BooleansMustStartWithPrefixRule, user) == []

    def test_boolean_without_prefix_flagged(self) -> None:
        user = _entity("User", PropertyDescriptor("Active", PropertyKind.BOOLEAN))
        assert _run(BooleansMustStartWithPrefixRule, user) == [
            ViolationRecord(CTX, "User", "Active")
        ]

    def test_guid_must_end_with_unique(self) -> None:
        order = _entity(
            "Order",
            PropertyDescriptor("ExternalUnique", PropertyKind.GUID),
            PropertyDescriptor("TrackingCode", PropertyKind.GUID),
            PropertyDescriptor("CustomerKey", PropertyKind.GUID, is_foreign_key=True),
        )
        assert _run(GuidsMustEndWithUniqueRule, order) == [
            ViolationRecord(CTX, "Order", "TrackingCode"),
            ViolationRecord(CTX, "Order", "CustomerKey"),
        ]

    def test_guid_primary_key_not_checked_for_unique_suffix(self) -> None:
        user = _entity(
            "User", key=PropertyDescriptor("UserId", PropertyKind.GUID, is_primary_key=True)
        )
        assert _run(GuidsMustEndWithUniqueRule, user) == []

    def test_enum_must_end_with_type(self) -> None:
        user = _entity(
            "User",
            PropertyDescriptor("RoleType", PropertyKind.ENUM),
            PropertyDescriptor("Status", PropertyKind.ENUM),
        )
        assert _run(EnumsMustEndWithTypeRule, user) == [ViolationRecord(CTX, "User", "Status")]


# ---------------------------------------------------------------------------
# Exclusions and determinism
# ---------------------------------------------------------------------------


def _messy_user() -> EntityDescriptor:
    """A User entity that breaks every rule it can."""
    return EntityDescriptor(
        "User",
        "user",
        (
            PropertyDescriptor("Id", PropertyKind.GUID, is_primary_key=True),
            PropertyDescriptor("name", PropertyKind.STRING, nullable=True),
            PropertyDescriptor("Active", PropertyKind.BOOLEAN, nullable=True),
            PropertyDescriptor("Created", PropertyKind.DATETIME),
            PropertyDescriptor("Token", PropertyKind.GUID),
            PropertyDescriptor("Role", PropertyKind.ENUM),
            PropertyDescriptor("Owner", PropertyKind.INTEGER, is_foreign_key=True),
        ),
    )


class TestExclusionsAndDeterminism:
    def test_global_entity_exclusion_silences_all_rules(self) -> None:
        context = [MappingContext(CTX, (_messy_user(),))]
        options = ConventionOptionsBuilder().exclude_entity_from_all_rules("User").build()

        unexcluded = [r().validate(context, NO_EXCLUSIONS) for r in RULE_CATALOGUE]
        assert all(unexcluded)
        for rule_cls in RULE_CATALOGUE:
            assert rule_cls().validate(context, options) == []

    def test_rule_property_exclusion_affects_only_that_rule(self) -> None:
        context = [MappingContext(CTX, (_messy_user(),))]
        options = (
            ConventionOptionsBuilder()
            .for_rule(RuleId.PROHIBIT_NULLABLE_STRINGS, lambda r: r.exclude_property("User", "name"))
            .build()
        )
        assert ProhibitNullableStringsRule().validate(context, options) == []
        assert PropertyNamesMustBePascalCaseRule().validate(context, options) == [
            ViolationRecord(CTX, "User", "name")
        ]

    def test_exclusions_never_add_violations(self) -> None:
        context = [MappingContext(CTX, (_messy_user(), _entity("BlogPost", table="BlogPost")))]
        options = (
            ConventionOptionsBuilder()
            .exclude_property_from_all_rules("User", "Token")
            .for_rule(RuleId.TABLE_NAMES_MUST_BE_PLURAL, lambda r: r.exclude_entity("BlogPost"))
            .build()
        )
        for rule_cls in RULE_CATALOGUE:
            baseline = set(rule_cls().validate(context, NO_EXCLUSIONS))
            assert set(rule_cls().validate(context, options)) <= baseline

    def test_validation_is_repeatable_and_ordered(self) -> None:
        contexts = [
            MappingContext("First", (_messy_user(),)),
            MappingContext("Second", (_entity("Post", PropertyDescriptor("Bio", PropertyKind.STRING)),
                                      _entity("Note", PropertyDescriptor("Body", PropertyKind.STRING)))),
        ]
        rule = StringsMustHaveMaxLengthRule()
        first = rule.validate(contexts, NO_EXCLUSIONS)
        assert first == rule.validate(contexts, NO_EXCLUSIONS)
        assert first == [
            ViolationRecord("First", "User", "name"),
            ViolationRecord("Second", "Post", "Bio"),
            ViolationRecord("Second", "Note", "Body"),
        ]

    def test_plain_pairs_accepted(self) -> None:
        violations = TableNamesMustBePluralRule().validate(
            [("Legacy", [_entity("Order", table="Order")])], NO_EXCLUSIONS
        )
        assert violations == [ViolationRecord("Legacy", "Order")]
