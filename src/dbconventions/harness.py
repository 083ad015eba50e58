"""Convention harness: acquire contexts, freeze exclusions, run checks, release contexts."""

from __future__ import annotations

import contextlib
import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from dbconventions.exclusions import (
    ConventionOptionsBuilder,
    ExclusionConfiguration,
    UnusedExclusionPolicy,
    apply_unused_exclusion_policy,
    coerce_rule_id,
)
from dbconventions.model import MappingContext, as_contexts
from dbconventions.rules import RULE_CATALOGUE, get_rule

if TYPE_CHECKING:
    from types import TracebackType

    from dbconventions.exclusions import RuleRef
    from dbconventions.model import ViolationRecord
    from dbconventions.rules import RuleId

logger = logging.getLogger(__name__)

# A provider returns contexts directly, or a context manager that yields them.
ContextProvider = Callable[[], Any]
Configure = Callable[[ConventionOptionsBuilder], object]


class HarnessState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    RUNNING = "running"
    TORN_DOWN = "torn_down"


class ConventionCheckFailed(AssertionError):
    """Raised by :meth:`ConventionHarness.assert_check` when a check finds violations."""

    def __init__(self, outcome: CheckOutcome) -> None:
        super().__init__(outcome.failure_message())
        self.outcome = outcome


@dataclass(frozen=True)
class CheckOutcome:
    """Result of running one rule over every context."""

    rule_id: RuleId
    rule_name: str
    violations: tuple[ViolationRecord, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        return not self.violations

    def failure_message(self) -> str:
        """Render every violation under the rule's human-readable name."""
        if self.passed:
            return f"All entities comply with the rule: {self.rule_name}"
        lines = [
            f"Expected no violations because all entities should comply with the rule: "
            f"{self.rule_name}, but found {len(self.violations)}:"
        ]
        lines.extend(f"  {v}" for v in self.violations)
        return "\n".join(lines)


class ConventionHarness:
    """Runs the rule catalogue over contexts supplied by a collaborator.

    Lifecycle: ``setup()`` (UNINITIALIZED -> READY), any number of
    ``run_check()`` / ``assert_check()`` / ``run_all()`` calls (READY ->
    RUNNING -> READY), then ``teardown()`` (READY -> TORN_DOWN).  Contexts
    acquired in ``setup()`` are released by ``teardown()``, or immediately if
    ``setup()`` fails.
    """

    def __init__(
        self,
        provider: ContextProvider,
        configure: Configure | None = None,
        *,
        unused_exclusions: UnusedExclusionPolicy = UnusedExclusionPolicy.WARN,
    ) -> None:
        self._provider = provider
        self._configure = configure
        self._unused_policy = UnusedExclusionPolicy(unused_exclusions)
        self._stack = contextlib.ExitStack()
        self._contexts: tuple[MappingContext, ...] = ()
        self._options = ExclusionConfiguration()
        self._state = HarnessState.UNINITIALIZED
        self.warnings: list[str] = []

    # -- lifecycle ---------------------------------------------------------

    @property
    def state(self) -> HarnessState:
        return self._state

    @property
    def contexts(self) -> tuple[MappingContext, ...]:
        return self._contexts

    @property
    def options(self) -> ExclusionConfiguration:
        return self._options

    def setup(self) -> None:
        if self._state is not HarnessState.UNINITIALIZED:
            msg = f"Cannot set up a harness in state '{self._state.value}'"
            raise RuntimeError(msg)

        try:
            source = self._provider()
            if isinstance(source, contextlib.AbstractContextManager):
                source = self._stack.enter_context(source)
            self._contexts = as_contexts(source)

            builder = ConventionOptionsBuilder()
            if self._configure is not None:
                self._configure(builder)
            self._options = builder.build()

            self.warnings = apply_unused_exclusion_policy(
                self._options, self._contexts, self._unused_policy
            )
        except BaseException:
            self._stack.close()
            self._contexts = ()
            raise

        self._state = HarnessState.READY
        logger.debug(
            "Harness ready: %d context(s), %d entities",
            len(self._contexts),
            sum(len(c.entities) for c in self._contexts),
        )

    def teardown(self) -> None:
        if self._state is HarnessState.TORN_DOWN:
            return
        try:
            self._stack.close()
        finally:
            self._contexts = ()
            self._state = HarnessState.TORN_DOWN

    def __enter__(self) -> ConventionHarness:
        self.setup()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.teardown()

    # -- checks ------------------------------------------------------------

    def run_check(self, rule: RuleRef) -> CheckOutcome:
        """Run one rule and return its outcome; violations never raise."""
        if self._state is not HarnessState.READY:
            msg = f"Cannot run checks in state '{self._state.value}'"
            raise RuntimeError(msg)

        rule_id = coerce_rule_id(rule)
        convention = get_rule(rule_id)
        self._state = HarnessState.RUNNING
        try:
            violations = tuple(convention.validate(self._contexts, self._options))
        finally:
            self._state = HarnessState.READY

        logger.debug("%s: %d violation(s)", rule_id.value, len(violations))
        return CheckOutcome(rule_id=rule_id, rule_name=convention.name, violations=violations)

    def assert_check(self, rule: RuleRef) -> CheckOutcome:
        outcome = self.run_check(rule)
        if not outcome.passed:
            raise ConventionCheckFailed(outcome)
        return outcome

    def run_all(self, rules: list[RuleRef] | None = None) -> list[CheckOutcome]:
        """Run every catalogued check (or the given subset), each independently."""
        selected = [r.rule_id for r in RULE_CATALOGUE] if rules is None else rules
        return [self.run_check(rule) for rule in selected]
