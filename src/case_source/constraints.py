"""Constraints and property indirection.

A ``Constraint`` evaluates a candidate value and returns a
``ConstraintResult`` describing what was expected and what was observed.
Constraints compose with ``&``, ``|`` and ``~``.

``PropertyConstraint`` redirects another constraint to a named property of
the candidate. When the property is missing it fails with
``ConstraintStatus.PROPERTY_NOT_FOUND`` and a description saying so, which
callers can tell apart from an ordinary mismatch.

Only the comparison constraints needed to drive property indirection are
provided here; richer assertion grammars plug in by subclassing
``Constraint``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
import logging
import operator
from typing import Any

from case_source.errors import ConstraintAssertionError, PropertyNotFoundError
from case_source.models import ConstraintResult, ConstraintStatus
from case_source.reflection import read_property

logger = logging.getLogger(__name__)


class Constraint(ABC):
    """Reusable pass/fail predicate with a descriptive failure message."""

    @property
    @abstractmethod
    def description(self) -> str:
        """What this constraint expects, e.g. ``"greater than 10"``."""

    @abstractmethod
    def evaluate(self, actual: Any) -> ConstraintResult:
        """Evaluate the constraint against *actual*."""

    def _result(self, passed: bool, actual: Any) -> ConstraintResult:
        return ConstraintResult(
            status=ConstraintStatus.SUCCESS if passed else ConstraintStatus.FAILURE,
            expected_description=self.description,
            actual_description=repr(actual),
        )

    def __and__(self, other: Constraint) -> AndConstraint:
        return AndConstraint(self, other)

    def __or__(self, other: Constraint) -> OrConstraint:
        return OrConstraint(self, other)

    def __invert__(self) -> NotConstraint:
        return NotConstraint(self)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.description}>"


# ---------------------------------------------------------------------------
# Comparison constraints
# ---------------------------------------------------------------------------


class ComparisonConstraint(Constraint):
    """Compare the actual value against an expected value with an operator.

    ``TypeError`` from an unsupported comparison propagates to the caller.
    """

    _label: str = ""
    _op: Callable[[Any, Any], bool] = operator.eq

    def __init__(self, expected: Any) -> None:
        self.expected = expected

    @property
    def description(self) -> str:
        if not self._label:
            return repr(self.expected)
        return f"{self._label} {self.expected!r}"

    def evaluate(self, actual: Any) -> ConstraintResult:
        return self._result(bool(type(self)._op(actual, self.expected)), actual)


class EqualTo(ComparisonConstraint):
    _op = operator.eq


class GreaterThan(ComparisonConstraint):
    _label = "greater than"
    _op = operator.gt


class GreaterThanOrEqual(ComparisonConstraint):
    _label = "greater than or equal to"
    _op = operator.ge


class LessThan(ComparisonConstraint):
    _label = "less than"
    _op = operator.lt


class LessThanOrEqual(ComparisonConstraint):
    _label = "less than or equal to"
    _op = operator.le


# ---------------------------------------------------------------------------
# Combinators
# ---------------------------------------------------------------------------


class NotConstraint(Constraint):
    """Invert another constraint.

    A missing property stays a missing property: negation does not turn it
    into a pass.
    """

    def __init__(self, base: Constraint) -> None:
        self.base = base

    @property
    def description(self) -> str:
        return f"not {self.base.description}"

    def evaluate(self, actual: Any) -> ConstraintResult:
        inner = self.base.evaluate(actual)
        if inner.status == ConstraintStatus.PROPERTY_NOT_FOUND:
            return inner
        return ConstraintResult(
            status=ConstraintStatus.FAILURE if inner.passed else ConstraintStatus.SUCCESS,
            expected_description=self.description,
            actual_description=inner.actual_description,
        )


class AndConstraint(Constraint):
    """Pass only when both constraints pass; stops at the first failure."""

    def __init__(self, left: Constraint, right: Constraint) -> None:
        self.left = left
        self.right = right

    @property
    def description(self) -> str:
        return f"{self.left.description} and {self.right.description}"

    def evaluate(self, actual: Any) -> ConstraintResult:
        result = self.left.evaluate(actual)
        if result.passed:
            result = self.right.evaluate(actual)
        return ConstraintResult(
            status=result.status,
            expected_description=self.description,
            actual_description=result.actual_description,
        )


class OrConstraint(Constraint):
    """Pass when either constraint passes."""

    def __init__(self, left: Constraint, right: Constraint) -> None:
        self.left = left
        self.right = right

    @property
    def description(self) -> str:
        return f"{self.left.description} or {self.right.description}"

    def evaluate(self, actual: Any) -> ConstraintResult:
        left = self.left.evaluate(actual)
        if left.passed:
            return left
        right = self.right.evaluate(actual)
        if right.passed:
            return right
        missing = ConstraintStatus.PROPERTY_NOT_FOUND
        status = (
            missing
            if left.status == missing and right.status == missing
            else ConstraintStatus.FAILURE
        )
        return ConstraintResult(
            status=status,
            expected_description=self.description,
            actual_description=right.actual_description,
        )


# ---------------------------------------------------------------------------
# Property indirection
# ---------------------------------------------------------------------------


def _missing_property(name: str, candidate: Any, exc: Exception | None = None) -> str:
    text = f"property '{name}' does not exist on {type(candidate).__name__}"
    if exc is not None:
        text += f" (reading it raised {type(exc).__name__}: {exc})"
    return text


class PropertyConstraint(Constraint):
    """Apply a base constraint to a named property of the candidate.

    The property name is matched exactly (case-sensitive); shorthand names
    must be mapped to the canonical name before construction, as the
    ``has_*`` builders do.

    Attributes:
        property_name: Name of the property to read.
        base_constraint: Constraint applied to the property value.
    """

    def __init__(self, property_name: str, base_constraint: Constraint) -> None:
        self.property_name = property_name
        self.base_constraint = base_constraint

    @property
    def description(self) -> str:
        return f"property '{self.property_name}': {self.base_constraint.description}"

    def evaluate(self, actual: Any) -> ConstraintResult:
        try:
            found, value = read_property(actual, self.property_name)
        except Exception as exc:
            logger.debug(
                "Reading property %r of %s raised", self.property_name,
                type(actual).__name__, exc_info=True,
            )
            return self._not_found(actual, exc)
        if not found:
            return self._not_found(actual)

        base = self.base_constraint.evaluate(value)
        return ConstraintResult(
            status=base.status,
            expected_description=f"property '{self.property_name}': {base.expected_description}",
            actual_description=base.actual_description,
        )

    def _not_found(self, actual: Any, exc: Exception | None = None) -> ConstraintResult:
        return ConstraintResult(
            status=ConstraintStatus.PROPERTY_NOT_FOUND,
            expected_description=self.description,
            actual_description=_missing_property(self.property_name, actual, exc),
        )


class PropertyExistsConstraint(Constraint):
    """Pass when the candidate exposes the named property."""

    def __init__(self, property_name: str) -> None:
        self.property_name = property_name

    @property
    def description(self) -> str:
        return f"property '{self.property_name}'"

    def evaluate(self, actual: Any) -> ConstraintResult:
        try:
            found, _ = read_property(actual, self.property_name)
        except Exception:
            logger.debug("Reading property %r raised", self.property_name, exc_info=True)
            found = False
        return ConstraintResult(
            status=ConstraintStatus.SUCCESS if found else ConstraintStatus.FAILURE,
            expected_description=self.description,
            actual_description=(
                repr(actual) if found else _missing_property(self.property_name, actual)
            ),
        )


# Canonical attribute names behind the exception shorthands.
CAUSE_PROPERTY = "__cause__"
CONTEXT_PROPERTY = "__context__"


def has_property(
    name: str, constraint: Constraint | None = None
) -> PropertyConstraint | PropertyExistsConstraint:
    """Build a property constraint.

    Args:
        name: Exact property name.
        constraint: Constraint for the property value. When omitted, the
            result only checks that the property exists.
    """
    if constraint is None:
        return PropertyExistsConstraint(name)
    return PropertyConstraint(name, constraint)


def has_cause(constraint: Constraint) -> PropertyConstraint:
    """Constrain the explicit cause (``raise ... from``) of an exception."""
    return PropertyConstraint(CAUSE_PROPERTY, constraint)


def has_context(constraint: Constraint) -> PropertyConstraint:
    """Constrain the exception that was being handled when one was raised."""
    return PropertyConstraint(CONTEXT_PROPERTY, constraint)


def assert_that(actual: Any, constraint: Constraint, message: str = "") -> None:
    """Assert that *actual* satisfies *constraint*.

    Args:
        actual: Value under test.
        constraint: Constraint to apply.
        message: Optional text placed before the expected/actual lines.

    Raises:
        PropertyNotFoundError: A property-indirection constraint could not
            find its property.
        ConstraintAssertionError: The constraint was not satisfied.
    """
    result = constraint.evaluate(actual)
    if result.passed:
        return
    text = f"  {result.description}"
    if message:
        text = f"{message}\n{text}"
    if result.status == ConstraintStatus.PROPERTY_NOT_FOUND:
        raise PropertyNotFoundError(text, result=result)
    raise ConstraintAssertionError(text, result=result)
