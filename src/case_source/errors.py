"""Exception taxonomy for case_source.

Two separate families keep "could not build this test" apart from "this
test failed":

- ``SourceResolutionError`` and its subclasses are raised while generating
  test cases and must be reported as test-setup failures.
- ``ConstraintAssertionError`` (an ``AssertionError``) is raised by
  ``assert_that`` when a constraint is not satisfied.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from case_source.models import ConstraintResult


class CaseSourceError(Exception):
    """Base class for all non-assertion errors raised by case_source."""


class SourceResolutionError(CaseSourceError):
    """Test case generation failed for a test method.

    Resolution failures are terminal: no partial list of cases is produced.
    The ``diagnostics`` dict carries structured context (source type, member
    name, target method) for reporting.

    Attributes:
        diagnostics: Structured information about the failed resolution.
    """

    def __init__(self, message: str, *, diagnostics: dict[str, Any] | None = None) -> None:
        """Initialize with a message and optional structured diagnostics.

        Args:
            message: Human-readable error description.
            diagnostics: Structured context about the source.
        """
        super().__init__(message)
        self.diagnostics: dict[str, Any] = dict(diagnostics or {})


class SourceNotFoundError(SourceResolutionError):
    """No member with the requested name exists on the source type."""


class AmbiguousSourceError(SourceResolutionError):
    """More than one member matches the requested source name."""


class SourceNotIterableError(SourceResolutionError):
    """The resolved source value cannot be iterated."""


class ConstructionError(SourceResolutionError):
    """The source type could not be instantiated with the given arguments."""


class ConfigError(CaseSourceError):
    """A configuration file could not be interpreted."""


class ConstraintAssertionError(AssertionError):
    """A constraint was not satisfied by the actual value.

    Attributes:
        result: The failing ``ConstraintResult``.
    """

    def __init__(self, message: str, *, result: ConstraintResult) -> None:
        """Initialize with the rendered message and the failing result.

        Args:
            message: Full assertion message.
            result: The constraint verdict that failed.
        """
        super().__init__(message)
        self.result = result


class PropertyNotFoundError(ConstraintAssertionError):
    """A property-indirection constraint could not find its property."""
