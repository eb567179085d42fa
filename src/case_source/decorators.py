"""Declaration-time ``case_source`` decorator and case collection.

Decorating a test function records one ``SourceSpec`` per use; the
decorator can be stacked to draw cases from several sources. At collection
time ``get_test_cases_for`` resolves every recorded source against the
function's signature.

Example::

    class TestDivide:
        cases = [(12, 3, 4), (12, 4, 3)]

        @case_source("cases", category="arithmetic")
        def test_divide(self, n, d, q):
            assert n / d == q

    get_test_cases_for(TestDivide.test_divide)
"""

from __future__ import annotations

from collections.abc import Callable
import inspect
import logging
import sys
from typing import Any, TypeVar

from case_source.config import ResolverConfig
from case_source.models import ParameterSet, SourceSpec
from case_source.reflection import SourceRegistry
from case_source.resolver import SourceResolver

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_SOURCES_ATTR = "__case_sources__"


def case_source(
    source: Any = None,
    name: str | None = None,
    *constructor_args: Any,
    category: str | list[str] | None = None,
) -> Callable[[F], F]:
    """Declare a data source for a parameterized test function.

    Supported forms::

        @case_source("member")                  # member of the declaring type
        @case_source(SourceType, "member", *ctor_args)
        @case_source(SourceType)                # SourceType() is iterable

    Args:
        source: Source type, or the member name when a string is given.
        name: Member name when *source* is a type.
        *constructor_args: Arguments used to instantiate the source type.
        category: Category tag(s) applied to every case; a single string may
            hold several comma-separated tags.

    Returns:
        A decorator that records the source on the function.

    Raises:
        TypeError: If a member name is given twice.
    """
    if isinstance(source, str):
        if name is not None or constructor_args:
            msg = "case_source() takes a member name alone or a source type followed by a name"
            raise TypeError(msg)
        source, name = None, source

    spec = SourceSpec(
        source_type=source,
        source_name=name,
        constructor_args=constructor_args,
        category_tags=category,
    )

    def decorator(func: F) -> F:
        specs: list[SourceSpec] = list(getattr(func, _SOURCES_ATTR, ()))
        # Decorators apply bottom-up; keep top-to-bottom declaration order.
        specs.insert(0, spec)
        setattr(func, _SOURCES_ATTR, specs)
        return func

    return decorator


def get_case_sources(func: Callable[..., Any]) -> list[SourceSpec]:
    """Return the sources declared on *func*, in declaration order."""
    target = getattr(func, "__func__", func)
    return list(getattr(target, _SOURCES_ATTR, ()))


def count_parameters(func: Callable[..., Any]) -> int:
    """Return the number of arguments a test function takes per case.

    A leading ``self`` or ``cls`` of an unbound function is not counted;
    neither are ``*args`` or ``**kwargs``.
    """
    params = list(inspect.signature(func).parameters.values())
    if params and params[0].name in ("self", "cls") and not inspect.ismethod(func):
        params = params[1:]
    return sum(
        1
        for p in params
        if p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    )


def find_declaring_type(func: Callable[..., Any]) -> Any:
    """Locate the class (or module) that declares *func*.

    Bound methods report their class. Plain functions are located through
    ``__qualname__`` starting from their module; module-level functions are
    declared by the module itself.

    Returns:
        The declaring class or module, or ``None`` when it cannot be
        determined (e.g. functions defined inside another function).
    """
    if inspect.ismethod(func):
        owner = func.__self__
        return owner if isinstance(owner, type) else type(owner)

    module = sys.modules.get(getattr(func, "__module__", "") or "")
    qualname = getattr(func, "__qualname__", "")
    parts = qualname.split(".")[:-1]
    if "<locals>" in parts:
        return None

    owner: Any = module
    for part in parts:
        owner = getattr(owner, part, None)
        if owner is None:
            return None
    return owner


def get_test_cases_for(
    func: Callable[..., Any],
    declaring_type: Any = None,
    *,
    config: ResolverConfig | None = None,
    registry: SourceRegistry | None = None,
) -> list[ParameterSet]:
    """Resolve every source declared on *func* into parameter sets.

    Sources are resolved in declaration order and their cases concatenated.
    Any resolution error aborts collection for the whole function and should
    be reported as a setup failure of that test, not as a failed assertion.

    Args:
        func: Test function decorated with ``case_source``.
        declaring_type: Class or module used for sources without an explicit
            type. Determined from *func* when omitted.
        config: Resolution settings.
        registry: Explicit provider registry.

    Returns:
        All produced parameter sets.

    Raises:
        ValueError: If *func* declares no sources.
        SourceResolutionError: If any source cannot be resolved.
    """
    specs = get_case_sources(func)
    if not specs:
        msg = f"{getattr(func, '__qualname__', func)!r} declares no case sources"
        raise ValueError(msg)

    if declaring_type is None:
        declaring_type = find_declaring_type(func)
    parameter_count = count_parameters(func)
    resolver = SourceResolver(config=config, registry=registry)

    cases: list[ParameterSet] = []
    for spec in specs:
        cases.extend(resolver.resolve(spec, parameter_count, declaring_type))

    logger.debug(
        "Collected %d case(s) for %s from %d source(s)",
        len(cases), getattr(func, "__qualname__", func), len(specs),
    )
    return cases
