"""Data-driven test case generation and property-indirection constraints."""

from case_source.config import ResolverConfig, configure_logging, load_config
from case_source.constraints import (
    AndConstraint,
    Constraint,
    EqualTo,
    GreaterThan,
    GreaterThanOrEqual,
    LessThan,
    LessThanOrEqual,
    NotConstraint,
    OrConstraint,
    PropertyConstraint,
    PropertyExistsConstraint,
    assert_that,
    has_cause,
    has_context,
    has_property,
)
from case_source.decorators import case_source, get_case_sources, get_test_cases_for
from case_source.errors import (
    AmbiguousSourceError,
    CaseSourceError,
    ConfigError,
    ConstraintAssertionError,
    ConstructionError,
    PropertyNotFoundError,
    SourceNotFoundError,
    SourceNotIterableError,
    SourceResolutionError,
)
from case_source.models import (
    CaseData,
    ConstraintResult,
    ConstraintStatus,
    ItemKind,
    MemberKind,
    ParameterSet,
    PropertyNames,
    RunState,
    SourceSpec,
)
from case_source.reflection import (
    ExplicitCaseData,
    PropertyBag,
    SourceRegistry,
    get_registry,
)
from case_source.resolver import SourceResolver, classify_item, resolve

__all__ = [
    "AmbiguousSourceError",
    "AndConstraint",
    "CaseData",
    "CaseSourceError",
    "ConfigError",
    "Constraint",
    "ConstraintAssertionError",
    "ConstraintResult",
    "ConstraintStatus",
    "ConstructionError",
    "EqualTo",
    "ExplicitCaseData",
    "GreaterThan",
    "GreaterThanOrEqual",
    "ItemKind",
    "LessThan",
    "LessThanOrEqual",
    "MemberKind",
    "NotConstraint",
    "OrConstraint",
    "ParameterSet",
    "PropertyBag",
    "PropertyConstraint",
    "PropertyExistsConstraint",
    "PropertyNames",
    "PropertyNotFoundError",
    "ResolverConfig",
    "RunState",
    "SourceNotFoundError",
    "SourceNotIterableError",
    "SourceRegistry",
    "SourceResolutionError",
    "SourceResolver",
    "SourceSpec",
    "assert_that",
    "case_source",
    "classify_item",
    "configure_logging",
    "get_case_sources",
    "get_registry",
    "get_test_cases_for",
    "has_cause",
    "has_context",
    "has_property",
    "load_config",
    "resolve",
]
