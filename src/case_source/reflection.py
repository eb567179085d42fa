"""Introspection boundary for locating and reading test case sources.

Everything that inspects arbitrary user objects lives here, so the resolver
and the constraint layer only deal with ``SourceMember`` records and plain
values. Two mechanisms back member lookup:

- Python introspection (``inspect.getattr_static``) over the owner's class
  hierarchy, which finds fields, properties, and zero-argument methods
  without triggering descriptors.
- An explicit ``SourceRegistry`` where providers can be registered under a
  ``(owner, name)`` key, for sources that are not attributes of the owner.

The module also defines the two capability protocols that user objects may
opt into: ``ExplicitCaseData`` for pre-built test cases and ``PropertyBag``
for objects that expose properties other than as attributes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
import functools
import inspect
import logging
import types
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from case_source.errors import ConstructionError
from case_source.models import MemberKind

logger = logging.getLogger(__name__)

_MISSING = object()

_TEXT_TYPES = (str, bytes, bytearray, memoryview)


# ---------------------------------------------------------------------------
# Capability protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class ExplicitCaseData(Protocol):
    """Pre-built test case data.

    Any object exposing an ``arguments`` sequence and a ``properties``
    mapping of key to value list satisfies this protocol. ``CaseData`` and
    ``ParameterSet`` both do.
    """

    arguments: Sequence[Any]
    properties: Mapping[str, Sequence[Any]]


@runtime_checkable
class PropertyBag(Protocol):
    """Object that exposes named properties through explicit accessors."""

    def has_property(self, name: str) -> bool:  # noqa: D102
        ...

    def get_property(self, name: str) -> Any:  # noqa: D102
        ...


# ---------------------------------------------------------------------------
# Member records
# ---------------------------------------------------------------------------


class SourceMember(BaseModel):
    """A located member that can supply test case data.

    Attributes:
        name: The requested source name.
        attribute_name: Actual attribute name (differs for mangled names).
        kind: Field, property, method, or registry entry.
        is_static: True when the member can be read without an instance.
        provider: Registered provider (only for ``MemberKind.REGISTERED``).
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    attribute_name: str
    kind: MemberKind
    is_static: bool
    provider: Any = None


# ---------------------------------------------------------------------------
# Explicit registry
# ---------------------------------------------------------------------------


class SourceRegistry:
    """Registry of named data providers keyed by ``(owner, name)``.

    A provider is either a zero-argument callable returning an iterable, or
    the iterable itself. Several providers may be registered under the same
    key; resolution then fails as ambiguous rather than picking one.

    Lookups on a class also see providers registered on its base classes.
    """

    def __init__(self) -> None:
        self._providers: dict[tuple[Any, str], list[Any]] = {}

    def register(
        self, owner: Any, name: str, provider: Any = _MISSING
    ) -> Any:
        """Register *provider* as source *name* of *owner*.

        Can be used directly or as a decorator::

            @registry.register(MyTests, "primes")
            def primes():
                return [2, 3, 5, 7]

        Args:
            owner: Class or module the source belongs to.
            name: Source name used in ``SourceSpec.source_name``.
            provider: Zero-argument callable or iterable. Omit to use the
                call as a decorator.

        Returns:
            The provider (or a decorator that registers and returns it).
        """
        if provider is _MISSING:

            def decorator(func: Callable[[], Any]) -> Callable[[], Any]:
                self.register(owner, name, func)
                return func

            return decorator

        self._providers.setdefault((owner, name), []).append(provider)
        logger.debug("Registered source provider %s for %r", name, owner)
        return provider

    def unregister(self, owner: Any, name: str) -> None:
        """Remove every provider registered as *name* on *owner*."""
        self._providers.pop((owner, name), None)

    def providers(self, owner: Any, name: str) -> list[Any]:
        """Return providers registered as *name* on *owner* or its bases."""
        owners = owner.__mro__ if isinstance(owner, type) else (owner,)
        found: list[Any] = []
        for candidate in owners:
            found.extend(self._providers.get((candidate, name), ()))
        return found

    def __len__(self) -> int:
        """Return the number of registered ``(owner, name)`` keys."""
        return len(self._providers)


_singleton_registry: SourceRegistry | None = None


def get_registry() -> SourceRegistry:
    """Return the shared ``SourceRegistry``, creating it on first use."""
    global _singleton_registry  # noqa: PLW0603
    if _singleton_registry is None:
        _singleton_registry = SourceRegistry()
    return _singleton_registry


def _reset_registry() -> None:
    """Reset the singleton registry (for testing only)."""
    global _singleton_registry  # noqa: PLW0603
    _singleton_registry = None


# ---------------------------------------------------------------------------
# Member lookup
# ---------------------------------------------------------------------------


def is_non_public(name: str) -> bool:
    """Return True for ``_private`` names; dunder names are public."""
    return name.startswith("_") and not (name.startswith("__") and name.endswith("__"))


def candidate_names(owner: Any, name: str) -> list[str]:
    """Return the attribute names under which *name* may be stored.

    A class-private ``__name`` is stored as ``_ClassName__name``.
    """
    names = [name]
    if (
        isinstance(owner, type)
        and name.startswith("__")
        and not name.endswith("__")
    ):
        names.append(f"_{owner.__name__.lstrip('_')}{name}")
    return names


def _accepts_no_arguments(func: Any, *, bound: bool) -> bool:
    """Check whether *func* can be called without arguments.

    Args:
        func: Plain function to inspect.
        bound: True when the first parameter is supplied by binding
            (``self`` or ``cls``).
    """
    try:
        params = list(inspect.signature(func).parameters.values())
    except (TypeError, ValueError):
        return True
    if bound and params:
        params = params[1:]
    return all(
        p.default is not inspect.Parameter.empty
        or p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        for p in params
    )


def _classify_attribute(
    owner: Any, name: str, attribute_name: str, attr: Any
) -> SourceMember | None:
    """Build a ``SourceMember`` for a statically looked-up attribute.

    Returns ``None`` for methods that require arguments.
    """
    is_module = isinstance(owner, types.ModuleType)
    if isinstance(attr, staticmethod):
        kind, is_static, ok = MemberKind.METHOD, True, _accepts_no_arguments(attr.__func__, bound=False)
    elif isinstance(attr, classmethod):
        kind, is_static, ok = MemberKind.METHOD, True, _accepts_no_arguments(attr.__func__, bound=True)
    elif isinstance(attr, (property, functools.cached_property)):
        kind, is_static, ok = MemberKind.PROPERTY, False, True
    elif inspect.isfunction(attr):
        kind, is_static = MemberKind.METHOD, is_module
        ok = _accepts_no_arguments(attr, bound=not is_module)
    else:
        kind, is_static, ok = MemberKind.FIELD, True, True

    if not ok:
        logger.debug("Ignoring %s.%s: method requires arguments", owner, attribute_name)
        return None
    return SourceMember(
        name=name, attribute_name=attribute_name, kind=kind, is_static=is_static
    )


def find_members(
    owner: Any,
    name: str,
    *,
    search_non_public: bool = True,
    registry: SourceRegistry | None = None,
) -> list[SourceMember]:
    """Find every static or registered member of *owner* matching *name*.

    Instance attributes only exist after construction and are located
    separately with ``find_instance_members``.

    Args:
        owner: Class or module to search.
        name: Requested source name.
        search_non_public: Whether ``_``-prefixed names may match.
        registry: Registry to consult in addition to introspection.

    Returns:
        All matching members; callers decide how to treat zero or several.
    """
    members: list[SourceMember] = []
    for attribute_name in candidate_names(owner, name):
        if is_non_public(attribute_name) and not search_non_public:
            continue
        attr = inspect.getattr_static(owner, attribute_name, _MISSING)
        if attr is _MISSING:
            continue
        member = _classify_attribute(owner, name, attribute_name, attr)
        if member is not None:
            members.append(member)

    reg = registry if registry is not None else get_registry()
    for provider in reg.providers(owner, name):
        members.append(
            SourceMember(
                name=name,
                attribute_name=name,
                kind=MemberKind.REGISTERED,
                is_static=True,
                provider=provider,
            )
        )
    return members


def find_instance_members(
    instance: Any, name: str, *, search_non_public: bool = True
) -> list[SourceMember]:
    """Find instance attributes (set in ``__init__``) matching *name*."""
    try:
        attrs = vars(instance)
    except TypeError:
        return []
    return [
        SourceMember(
            name=name, attribute_name=attribute_name, kind=MemberKind.FIELD, is_static=False
        )
        for attribute_name in candidate_names(type(instance), name)
        if attribute_name in attrs
        and (search_non_public or not is_non_public(attribute_name))
    ]


def construct(owner: Any, args: Sequence[Any] = ()) -> Any:
    """Instantiate *owner* with positional *args*.

    Modules are returned unchanged (they cannot take arguments). Classes and
    other callables are called with *args*.

    Raises:
        ConstructionError: If *owner* is not constructible or its
            constructor raises.
    """
    diagnostics = {"source_type": repr(owner), "constructor_args": repr(tuple(args))}
    if isinstance(owner, types.ModuleType):
        if args:
            msg = f"Module {owner.__name__} cannot be constructed with arguments"
            raise ConstructionError(msg, diagnostics=diagnostics)
        return owner
    if not callable(owner):
        msg = f"Source type {owner!r} is not constructible"
        raise ConstructionError(msg, diagnostics=diagnostics)
    try:
        return owner(*args)
    except Exception as exc:
        msg = f"Could not construct {getattr(owner, '__qualname__', owner)!r} with arguments {tuple(args)!r}: {exc}"
        raise ConstructionError(msg, diagnostics=diagnostics) from exc


def read_member(member: SourceMember, owner: Any, instance: Any = None) -> Any:
    """Obtain the value supplied by *member*.

    Fields and properties are read, methods are called without arguments,
    and registered providers are called when callable.
    """
    if member.kind == MemberKind.REGISTERED:
        provider = member.provider
        return provider() if callable(provider) else provider
    target = instance if instance is not None else owner
    value = getattr(target, member.attribute_name)
    if member.kind == MemberKind.METHOD:
        return value()
    return value


# ---------------------------------------------------------------------------
# Value shape checks
# ---------------------------------------------------------------------------


def is_iterable(value: Any) -> bool:
    """Return True when *value* supports iteration.

    Covers ``__iter__`` and the legacy ``__getitem__`` sequence protocol
    without calling either.
    """
    if isinstance(value, Iterable):
        return True
    return hasattr(type(value), "__getitem__") and not isinstance(value, type)


def is_array_like(item: Any) -> bool:
    """Return True for ordered aggregates that may hold an argument list.

    Lists, tuples, and other sequences count; text and byte strings do not.
    Objects exposing ``ndim`` with ``__len__`` and ``__getitem__`` (array
    libraries) count as well.
    """
    if isinstance(item, _TEXT_TYPES):
        return False
    if isinstance(item, Sequence):
        return True
    return (
        hasattr(item, "ndim")
        and hasattr(item, "__len__")
        and hasattr(item, "__getitem__")
    )


def array_rank(item: Any) -> int:
    """Return the number of dimensions of an array-like item."""
    try:
        return int(getattr(item, "ndim", 1))
    except (TypeError, ValueError):
        return 1


def read_property(candidate: Any, name: str) -> tuple[bool, Any]:
    """Read the property *name* from *candidate*.

    ``PropertyBag`` implementations are asked directly; other objects are
    read as attributes. The lookup is case-sensitive.

    Returns:
        ``(True, value)`` when the property exists, else ``(False, None)``.
        Exceptions raised by a getter other than ``AttributeError``
        propagate to the caller.
    """
    if isinstance(candidate, PropertyBag):
        if not candidate.has_property(name):
            return False, None
        return True, candidate.get_property(name)
    try:
        return True, getattr(candidate, name)
    except AttributeError:
        return False, None
