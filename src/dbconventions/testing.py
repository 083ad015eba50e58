"""pytest base class running every convention check against a project's contexts.

Usage::

    class TestDatabaseConventions(ConventionTestSuite):
        def create_contexts(self):
            return [context_from_sqlalchemy(Base, "SampleContext")]

        def configure(self, builder):
            builder.exclude_entity_from_all_rules("__EFMigrationsHistory")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from dbconventions.exclusions import UnusedExclusionPolicy
from dbconventions.harness import ConventionHarness
from dbconventions.rules import RuleId

if TYPE_CHECKING:
    from collections.abc import Iterator

    from dbconventions.exclusions import ConventionOptionsBuilder


class ConventionTestSuite:
    """Inherit from this in a ``Test*`` class to get one test per convention."""

    unused_exclusions: UnusedExclusionPolicy = UnusedExclusionPolicy.WARN
    harness: ConventionHarness

    def create_contexts(self) -> Any:
        """Return the contexts to validate, or a context manager yielding them."""
        raise NotImplementedError

    def configure(self, builder: ConventionOptionsBuilder) -> None:
        """Override to add exclusions."""

    @pytest.fixture(autouse=True)
    def _convention_harness(self) -> Iterator[ConventionHarness]:
        harness = ConventionHarness(
            self.create_contexts,
            self.configure,
            unused_exclusions=self.unused_exclusions,
        )
        harness.setup()
        self.harness = harness
        try:
            yield harness
        finally:
            harness.teardown()

    def run_rule(self, rule_id: RuleId) -> None:
        self.harness.assert_check(rule_id)

    def test_primary_keys_must_be_ints(self) -> None:
        self.run_rule(RuleId.PRIMARY_KEYS_MUST_BE_INTS)

    def test_primary_keys_cannot_be_guids(self) -> None:
        self.run_rule(RuleId.PROHIBIT_GUID_PRIMARY_KEYS)

    def test_properties_cannot_be_nullable_booleans(self) -> None:
        self.run_rule(RuleId.PROHIBIT_NULLABLE_BOOLEANS)

    def test_string_properties_cannot_be_nullable(self) -> None:
        self.run_rule(RuleId.PROHIBIT_NULLABLE_STRINGS)

    def test_string_properties_must_have_max_length(self) -> None:
        self.run_rule(RuleId.STRINGS_MUST_HAVE_MAX_LENGTH)

    def test_table_names_must_be_plural(self) -> None:
        self.run_rule(RuleId.TABLE_NAMES_MUST_BE_PLURAL)

    def test_table_names_must_be_pascal_case(self) -> None:
        self.run_rule(RuleId.TABLE_NAMES_MUST_BE_PASCAL_CASE)

    def test_property_names_must_be_pascal_case(self) -> None:
        self.run_rule(RuleId.PROPERTY_NAMES_MUST_BE_PASCAL_CASE)

    def test_foreign_keys_must_end_with_id(self) -> None:
        self.run_rule(RuleId.FOREIGN_KEYS_MUST_END_WITH_ID)

    def test_primary_key_must_be_entity_name_id(self) -> None:
        self.run_rule(RuleId.PRIMARY_KEY_MUST_BE_ENTITY_NAME_ID)

    def test_date_times_must_end_with_date(self) -> None:
        self.run_rule(RuleId.DATE_TIMES_MUST_END_WITH_DATE)

    def test_booleans_must_start_with_prefix(self) -> None:
        self.run_rule(RuleId.BOOLEANS_MUST_START_WITH_PREFIX)

    def test_guids_must_end_with_unique(self) -> None:
        self.run_rule(RuleId.GUIDS_MUST_END_WITH_UNIQUE)

    def test_enums_must_end_with_type(self) -> None:
        self.run_rule(RuleId.ENUMS_MUST_END_WITH_TYPE)
