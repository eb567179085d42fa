"""Source resolution: turn a ``SourceSpec`` into bound ``ParameterSet``s.

``SourceResolver.resolve`` locates the source (the constructed source type
itself, or one of its members), iterates it once, and binds every yielded
item to the target method's arguments. Binding is driven by
``classify_item``, which assigns each item exactly one ``ItemKind``:

=====================  ==================================================
``EXPLICIT``           item satisfies ``ExplicitCaseData``; copied as-is
``ARGUMENT_LIST``      one-dimensional array-like whose length equals the
                       target parameter count; elements become arguments
``SINGLE_ARRAY``       any other array-like; passed as one argument
``SCALAR``             anything else; passed as one argument
=====================  ==================================================

The length match is a heuristic: an array-like meant as a single compound
argument is still spread when its length happens to equal the parameter
count.
"""

from __future__ import annotations

import logging
import types
from typing import Any, NoReturn

from pydantic import ValidationError

from case_source.config import ResolverConfig
from case_source.errors import (
    AmbiguousSourceError,
    SourceNotFoundError,
    SourceNotIterableError,
    SourceResolutionError,
)
from case_source.models import ItemKind, ParameterSet, RunState, SourceSpec
from case_source.reflection import (
    ExplicitCaseData,
    SourceRegistry,
    array_rank,
    construct,
    find_instance_members,
    find_members,
    is_array_like,
    is_iterable,
    read_member,
)

logger = logging.getLogger(__name__)


def classify_item(item: Any, target_parameter_count: int) -> ItemKind:
    """Classify a source item for argument binding.

    Args:
        item: A single value yielded by the source.
        target_parameter_count: Number of parameters of the test method.

    Returns:
        The binding rule that applies to *item*.
    """
    if isinstance(item, ExplicitCaseData):
        return ItemKind.EXPLICIT
    if is_array_like(item):
        if array_rank(item) == 1 and len(item) == target_parameter_count:
            return ItemKind.ARGUMENT_LIST
        return ItemKind.SINGLE_ARRAY
    return ItemKind.SCALAR


class SourceResolver:
    """Resolve test case sources into ordered parameter sets.

    The resolver holds no per-call state; one instance may serve any number
    of test methods, including from several threads, as long as each call
    works on its own source instance.

    Attributes:
        config: Resolution settings.
        registry: Explicit provider registry consulted during member lookup.
            ``None`` uses the shared registry.
    """

    def __init__(
        self,
        config: ResolverConfig | None = None,
        registry: SourceRegistry | None = None,
    ) -> None:
        """Initialize with optional configuration and registry."""
        self.config = config if config is not None else ResolverConfig()
        self.registry = registry

    # -- public API --------------------------------------------------------

    def resolve(
        self,
        spec: SourceSpec,
        target_parameter_count: int,
        declaring_type: Any = None,
    ) -> list[ParameterSet]:
        """Produce one ``ParameterSet`` per item of the described source.

        Args:
            spec: Description of the source.
            target_parameter_count: Number of parameters of the test method.
            declaring_type: Class or module that declares the test method;
                used when ``spec.source_type`` is not set.

        Returns:
            Parameter sets in source iteration order.

        Raises:
            SourceNotFoundError: No source type, or no member of that name.
            AmbiguousSourceError: Several members match the name.
            ConstructionError: The source type cannot be instantiated.
            SourceNotIterableError: The source value is not iterable.
            SourceResolutionError: Reading or iterating the source raised.
        """
        if target_parameter_count < 0:
            msg = f"target_parameter_count must be >= 0, got {target_parameter_count}"
            raise ValueError(msg)

        owner = spec.source_type if spec.source_type is not None else declaring_type
        if owner is None:
            self._fail(
                SourceNotFoundError,
                f"No source type given for {spec.describe()} and no declaring type to default to",
                spec,
            )

        source = self._get_source(spec, owner)
        items = self._materialize(spec, owner, source)

        parameter_sets = [
            self._bind(item, target_parameter_count, spec, owner) for item in items
        ]
        logger.debug(
            "Resolved %d test case(s) from %s", len(parameter_sets), spec.describe()
        )
        return parameter_sets

    # -- source lookup -----------------------------------------------------

    def _get_source(self, spec: SourceSpec, owner: Any) -> Any:
        """Return the iterable described by *spec* on *owner*."""
        if spec.source_name is None:
            source = construct(owner, spec.constructor_args)
            if not is_iterable(source):
                self._fail(
                    SourceNotIterableError,
                    f"Source type {spec.describe()} is not iterable "
                    f"(got {type(source).__name__})",
                    spec,
                    owner=owner,
                )
            return source

        members = find_members(
            owner,
            spec.source_name,
            search_non_public=self.config.search_non_public,
            registry=self.registry,
        )
        # Classes are always instantiated once, even for static members.
        instance = None
        if not members:
            instance = self._probe_instance(spec, owner)
            if instance is not None:
                members = find_instance_members(
                    instance,
                    spec.source_name,
                    search_non_public=self.config.search_non_public,
                )
        elif isinstance(owner, type):
            instance = construct(owner, spec.constructor_args)

        if not members:
            self._fail(
                SourceNotFoundError,
                f"Source {spec.source_name!r} not found on {_owner_name(owner)}",
                spec,
                owner=owner,
            )
        if len(members) > 1:
            kinds = ", ".join(f"{m.attribute_name} ({m.kind})" for m in members)
            self._fail(
                AmbiguousSourceError,
                f"Source {spec.source_name!r} is ambiguous on {_owner_name(owner)}: {kinds}",
                spec,
                owner=owner,
            )

        member = members[0]
        try:
            source = read_member(member, owner, instance)
        except Exception as exc:
            msg = f"Reading source {spec.describe()} raised {type(exc).__name__}: {exc}"
            logger.warning(msg)
            raise SourceResolutionError(
                msg, diagnostics=self._diagnostics(spec, owner)
            ) from exc

        if not is_iterable(source):
            self._fail(
                SourceNotIterableError,
                f"Source {spec.describe()} ({member.kind}) is not iterable "
                f"(got {type(source).__name__})",
                spec,
                owner=owner,
            )
        return source

    def _probe_instance(self, spec: SourceSpec, owner: Any) -> Any:
        """Construct *owner* to look for instance attributes.

        A type that cannot be constructed simply has no instance members, so
        the caller reports the member as not found.
        """
        if not isinstance(owner, type):
            return None
        try:
            return construct(owner, spec.constructor_args)
        except SourceResolutionError:
            logger.debug(
                "Could not construct %s to search instance members", _owner_name(owner)
            )
            return None

    def _materialize(self, spec: SourceSpec, owner: Any, source: Any) -> list[Any]:
        """Iterate *source* once, keeping the iteration order."""
        try:
            return list(source)
        except Exception as exc:
            msg = f"Iterating source {spec.describe()} raised {type(exc).__name__}: {exc}"
            logger.warning(msg)
            raise SourceResolutionError(
                msg, diagnostics=self._diagnostics(spec, owner)
            ) from exc

    # -- binding -----------------------------------------------------------

    def _bind(
        self, item: Any, target_parameter_count: int, spec: SourceSpec, owner: Any
    ) -> ParameterSet:
        """Build the ``ParameterSet`` for a single source item.

        A pre-built item whose metadata does not fit ``ParameterSet`` is a
        resolution failure of the whole source.
        """
        try:
            return self._build_parameter_set(item, target_parameter_count, spec)
        except (ValidationError, AttributeError, TypeError) as exc:
            msg = (
                f"Binding item {item!r} of source {spec.describe()} raised "
                f"{type(exc).__name__}: {exc}"
            )
            logger.warning(msg)
            raise SourceResolutionError(
                msg, diagnostics=self._diagnostics(spec, owner)
            ) from exc

    def _build_parameter_set(
        self, item: Any, target_parameter_count: int, spec: SourceSpec
    ) -> ParameterSet:
        kind = classify_item(item, target_parameter_count)
        category_key = self.config.category_property

        if kind == ItemKind.EXPLICIT:
            properties = {
                str(key): list(values) for key, values in item.properties.items()
            }
            fields: dict[str, Any] = {
                "arguments": tuple(item.arguments),
                "is_explicit_data": True,
                "expected_result": getattr(item, "expected_result", None),
                "has_expected_result": bool(getattr(item, "has_expected_result", False)),
                "test_name": getattr(item, "test_name", None),
                "run_state": getattr(item, "run_state", RunState.RUNNABLE),
            }
        else:
            properties = {}
            if kind == ItemKind.ARGUMENT_LIST:
                arguments = tuple(item)
            else:
                arguments = (item,)
            fields = {"arguments": arguments}

        if spec.category_tags:
            properties.setdefault(category_key, []).extend(spec.category_tags)

        return ParameterSet(properties=properties, **fields)

    # -- errors ------------------------------------------------------------

    def _diagnostics(self, spec: SourceSpec, owner: Any) -> dict[str, Any]:
        return {
            "source": spec.describe(),
            "source_type": _owner_name(owner) if owner is not None else None,
            "source_name": spec.source_name,
            "constructor_args": repr(spec.constructor_args),
        }

    def _fail(
        self,
        error_cls: type[SourceResolutionError],
        message: str,
        spec: SourceSpec,
        *,
        owner: Any = None,
    ) -> NoReturn:
        logger.warning(message)
        raise error_cls(message, diagnostics=self._diagnostics(spec, owner))


def _owner_name(owner: Any) -> str:
    if isinstance(owner, types.ModuleType):
        return f"module {owner.__name__}"
    return str(getattr(owner, "__qualname__", None) or repr(owner))


def resolve(
    spec: SourceSpec,
    target_parameter_count: int,
    declaring_type: Any = None,
    *,
    config: ResolverConfig | None = None,
) -> list[ParameterSet]:
    """Resolve *spec* with a default ``SourceResolver``.

    See ``SourceResolver.resolve`` for arguments and errors.
    """
    return SourceResolver(config=config).resolve(
        spec, target_parameter_count, declaring_type
    )
