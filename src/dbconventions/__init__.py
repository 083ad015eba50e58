"""dbconventions: naming and shape convention checks for ORM mapping metadata."""

from dbconventions.exclusions import (
    ConventionConfigError,
    ConventionOptionsBuilder,
    ExclusionConfiguration,
    ExclusionKey,
    RuleExclusionBuilder,
    UnusedExclusionPolicy,
    find_unused_exclusions,
    load_exclusions,
)
from dbconventions.harness import (
    CheckOutcome,
    ConventionCheckFailed,
    ConventionHarness,
    HarnessState,
)
from dbconventions.model import (
    EntityDescriptor,
    MappingContext,
    PropertyDescriptor,
    PropertyKind,
    ViolationRecord,
)
from dbconventions.rules import RULE_CATALOGUE, ConventionRule, RuleId, get_rule

__version__ = "0.1.0"

__all__ = [
    "RULE_CATALOGUE",
    "CheckOutcome",
    "ConventionCheckFailed",
    "ConventionConfigError",
    "ConventionHarness",
    "ConventionOptionsBuilder",
    "ConventionRule",
    "EntityDescriptor",
    "ExclusionConfiguration",
    "ExclusionKey",
    "HarnessState",
    "MappingContext",
    "PropertyDescriptor",
    "PropertyKind",
    "RuleExclusionBuilder",
    "RuleId",
    "UnusedExclusionPolicy",
    "ViolationRecord",
    "__version__",
    "find_unused_exclusions",
    "get_rule",
    "load_exclusions",
]
