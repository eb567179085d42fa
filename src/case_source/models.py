"""Core data models for case_source.

Defines the Pydantic models and enums shared by the resolver, the
declaration-time decorator, and the constraint layer: source descriptors,
bound parameter sets, the pre-built ``CaseData`` builder, and constraint
results.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PropertyNames(StrEnum):
    """Well-known keys of a ``ParameterSet`` property bag."""

    CATEGORY = "category"
    DESCRIPTION = "description"
    SKIP_REASON = "skip_reason"


class RunState(StrEnum):
    """Whether a produced test case should be executed."""

    RUNNABLE = "runnable"
    IGNORED = "ignored"
    EXPLICIT = "explicit"


class MemberKind(StrEnum):
    """Kind of member that can supply test case data."""

    FIELD = "field"
    PROPERTY = "property"
    METHOD = "method"
    REGISTERED = "registered"


class ItemKind(StrEnum):
    """Classification of a single item yielded by a source.

    The four values form the complete decision table used to bind an item
    to the arguments of a test method.
    """

    EXPLICIT = "explicit"
    ARGUMENT_LIST = "argument_list"
    SINGLE_ARRAY = "single_array"
    SCALAR = "scalar"


class ConstraintStatus(StrEnum):
    """Outcome of evaluating a constraint."""

    SUCCESS = "success"
    FAILURE = "failure"
    PROPERTY_NOT_FOUND = "property_not_found"


def split_tags(value: Any) -> tuple[str, ...]:
    """Normalize category tags into an ordered tuple.

    Accepts ``None``, a single comma-joined string, or an iterable of strings
    (each of which may itself be comma-joined). Unlike a plain
    ``str.split(",")``, whitespace around a tag is stripped and empty tags
    are dropped, so ``"a, b,"`` yields ``("a", "b")`` rather than
    ``("a", " b", "")``.

    Args:
        value: Raw tag specification.

    Returns:
        Tags in declaration order.
    """
    if value is None:
        return ()
    parts = [value] if isinstance(value, str) else list(value)
    tags: list[str] = []
    for part in parts:
        for tag in str(part).split(","):
            tag = tag.strip()
            if tag:
                tags.append(tag)
    return tuple(tags)


class SourceSpec(BaseModel):
    """Immutable descriptor of a test case data source.

    Attributes:
        source_type: Class or module owning the data. ``None`` means the
            type that declares the target test method.
        source_name: Name of the field, property, or zero-argument method
            supplying the data. ``None`` means the source type itself is
            constructed and iterated.
        constructor_args: Positional arguments used to instantiate
            ``source_type``.
        category_tags: Category labels applied to every produced case.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    source_type: Any = None
    source_name: str | None = None
    constructor_args: tuple[Any, ...] = ()
    category_tags: tuple[str, ...] = ()

    @field_validator("category_tags", mode="before")
    @classmethod
    def _normalize_tags(cls, v: Any) -> tuple[str, ...]:
        """Split comma-joined tag strings into individual tags."""
        return split_tags(v)

    @field_validator("source_name")
    @classmethod
    def _name_not_blank(cls, v: str | None) -> str | None:
        """Reject an empty member name; use ``None`` for no member."""
        if v is not None and not v.strip():
            msg = "source_name must not be blank"
            raise ValueError(msg)
        return v

    def describe(self) -> str:
        """Return a short human-readable label for log and error messages."""
        if self.source_type is None:
            owner = "<declaring type>"
        else:
            owner = getattr(self.source_type, "__qualname__", None) or getattr(
                self.source_type, "__name__", repr(self.source_type)
            )
        if self.source_name is None:
            return str(owner)
        return f"{owner}.{self.source_name}"


class ParameterSet(BaseModel):
    """One fully-bound invocation of a parameterized test.

    Created once per source item during resolution and never modified
    afterwards; the test executor consumes it to invoke the method. The
    property bag is stored as a read-only mapping of tuples.

    Attributes:
        arguments: Positional arguments for the test method.
        properties: Property bag mapping keys to value tuples (categories,
            description, skip reason).
        is_explicit_data: True when the source yielded a pre-built case
            object rather than raw data.
        expected_result: Value the test method is expected to return.
        has_expected_result: Whether ``expected_result`` was set explicitly.
        test_name: Optional display name for the case.
        run_state: Whether the case should be executed.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    arguments: tuple[Any, ...] = ()
    properties: Mapping[str, tuple[Any, ...]] = Field(
        default_factory=dict, validate_default=True
    )
    is_explicit_data: bool = False
    expected_result: Any = None
    has_expected_result: bool = False
    test_name: str | None = None
    run_state: RunState = RunState.RUNNABLE

    @field_validator("properties")
    @classmethod
    def _freeze_properties(
        cls, v: Mapping[str, tuple[Any, ...]]
    ) -> Mapping[str, tuple[Any, ...]]:
        """Wrap the property bag so it cannot be changed in place."""
        return MappingProxyType({key: tuple(values) for key, values in v.items()})

    @property
    def categories(self) -> list[str]:
        """Category tags attached to this case, in insertion order."""
        return [str(c) for c in self.properties.get(PropertyNames.CATEGORY, [])]

    def get_property(self, key: str) -> list[Any]:
        """Return the values stored under *key* (empty list when absent)."""
        return list(self.properties.get(key, []))


class CaseData:
    """Pre-built test case data with a fluent builder interface.

    Sources yield ``CaseData`` instead of raw values when a case needs more
    than its arguments: an expected return value, a display name, categories,
    or a non-default run state.

    Example::

        def divide_cases():
            yield CaseData(12, 3).returns(4)
            yield CaseData(12, 0).set_name("by zero").ignore("not yet")
    """

    def __init__(self, *args: Any) -> None:
        self.arguments: tuple[Any, ...] = args
        self.properties: dict[str, list[Any]] = {}
        self.expected_result: Any = None
        self.has_expected_result = False
        self.test_name: str | None = None
        self.run_state = RunState.RUNNABLE

    def returns(self, result: Any) -> CaseData:
        """Set the value the test method is expected to return."""
        self.expected_result = result
        self.has_expected_result = True
        return self

    def set_name(self, name: str) -> CaseData:
        """Set the display name of the case."""
        self.test_name = name
        return self

    def set_description(self, description: str) -> CaseData:
        """Set the description property of the case."""
        self.properties[PropertyNames.DESCRIPTION] = [description]
        return self

    def set_category(self, category: str) -> CaseData:
        """Add a category tag to the case."""
        self.properties.setdefault(PropertyNames.CATEGORY, []).append(category)
        return self

    def set_property(self, key: str, value: Any) -> CaseData:
        """Append *value* to the property list stored under *key*."""
        self.properties.setdefault(key, []).append(value)
        return self

    def ignore(self, reason: str) -> CaseData:
        """Mark the case as ignored with the given reason."""
        self.run_state = RunState.IGNORED
        self.properties[PropertyNames.SKIP_REASON] = [reason]
        return self

    def explicit(self, reason: str | None = None) -> CaseData:
        """Mark the case as explicit: run only when selected directly."""
        self.run_state = RunState.EXPLICIT
        if reason is not None:
            self.properties[PropertyNames.SKIP_REASON] = [reason]
        return self

    def __repr__(self) -> str:
        return f"CaseData{self.arguments!r}"


class ConstraintResult(BaseModel):
    """Verdict produced by evaluating a constraint against a value.

    Attributes:
        status: Success, failure, or missing property.
        expected_description: What the constraint expected.
        actual_description: What was actually observed.
    """

    model_config = ConfigDict(frozen=True)

    status: ConstraintStatus
    expected_description: str
    actual_description: str

    @property
    def passed(self) -> bool:
        """True when the constraint was satisfied."""
        return self.status == ConstraintStatus.SUCCESS

    @property
    def description(self) -> str:
        """Two-line expected/actual message used in assertion failures."""
        return (
            f"Expected: {self.expected_description}\n"
            f"  But was:  {self.actual_description}"
        )
