"""Tests for the introspection boundary in ``case_source.reflection``."""

from __future__ import annotations

import functools
import types
from typing import Any

from case_source.errors import ConstructionError
from case_source.models import CaseData, MemberKind, ParameterSet
from case_source.reflection import (
    ExplicitCaseData,
    PropertyBag,
    SourceRegistry,
    candidate_names,
    construct,
    find_instance_members,
    find_members,
    get_registry,
    is_array_like,
    is_iterable,
    is_non_public,
    read_member,
    read_property,
)
import pytest


class Base:
    inherited = [1]


class Provider(Base):
    field = [1, 2]
    __hidden = [3]

    def __init__(self, scale: int = 1) -> None:
        self.scale = scale
        self.late = [scale]

    @property
    def prop(self) -> list[int]:
        return [self.scale]

    @functools.cached_property
    def cached(self) -> list[int]:
        return [self.scale * 2]

    def method(self) -> list[int]:
        return [self.scale * 3]

    def with_default(self, n: int = 2) -> list[int]:
        return [n]

    def with_varargs(self, *args: int) -> list[int]:
        return list(args)

    def requires(self, n: int) -> list[int]:
        return [n]

    @staticmethod
    def static() -> list[int]:
        return [4]

    @classmethod
    def klass(cls) -> list[str]:
        return [cls.__name__]


class LegacySequence:
    """Iterable only through ``__getitem__``."""

    def __getitem__(self, index: int) -> int:
        if index >= 2:
            raise IndexError(index)
        return index


@pytest.mark.unit
class TestNames:
    """Name visibility and mangling."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [("public", False), ("_private", True), ("__mangled", True), ("__iter__", False)],
    )
    def test_is_non_public(self, name: str, expected: bool) -> None:
        assert is_non_public(name) is expected

    def test_mangled_candidate(self) -> None:
        assert candidate_names(Provider, "__hidden") == ["__hidden", "_Provider__hidden"]

    def test_mangling_strips_leading_underscores_of_class_name(self) -> None:
        owner = type("_Private", (), {})
        assert candidate_names(owner, "__x") == ["__x", "_Private__x"]

    def test_no_mangling_for_dunder_or_modules(self) -> None:
        assert candidate_names(Provider, "__iter__") == ["__iter__"]
        assert candidate_names(types.ModuleType("m"), "__x") == ["__x"]


@pytest.mark.unit
class TestFindMembers:
    """Member lookup by kind."""

    @pytest.mark.parametrize(
        ("name", "kind", "is_static"),
        [
            ("field", MemberKind.FIELD, True),
            ("inherited", MemberKind.FIELD, True),
            ("prop", MemberKind.PROPERTY, False),
            ("cached", MemberKind.PROPERTY, False),
            ("method", MemberKind.METHOD, False),
            ("with_default", MemberKind.METHOD, False),
            ("with_varargs", MemberKind.METHOD, False),
            ("static", MemberKind.METHOD, True),
            ("klass", MemberKind.METHOD, True),
        ],
    )
    def test_kinds(
        self, registry: SourceRegistry, name: str, kind: MemberKind, is_static: bool
    ) -> None:
        (member,) = find_members(Provider, name, registry=registry)
        assert member.kind == kind
        assert member.is_static is is_static

    def test_method_requiring_arguments_ignored(self, registry: SourceRegistry) -> None:
        assert find_members(Provider, "requires", registry=registry) == []

    def test_mangled_member(self, registry: SourceRegistry) -> None:
        (member,) = find_members(Provider, "__hidden", registry=registry)
        assert member.attribute_name == "_Provider__hidden"

    def test_non_public_excluded(self, registry: SourceRegistry) -> None:
        assert find_members(Provider, "__hidden", search_non_public=False, registry=registry) == []

    def test_instance_attribute_not_found_statically(self, registry: SourceRegistry) -> None:
        assert find_members(Provider, "late", registry=registry) == []

    def test_instance_members(self) -> None:
        (member,) = find_instance_members(Provider(5), "late")
        assert member.kind == MemberKind.FIELD
        assert member.is_static is False

    def test_instance_members_without_dict(self) -> None:
        assert find_instance_members(3, "real") == []

    def test_registry_entries_included(self, registry: SourceRegistry) -> None:
        registry.register(Provider, "field", [9])
        kinds = [m.kind for m in find_members(Provider, "field", registry=registry)]
        assert kinds == [MemberKind.FIELD, MemberKind.REGISTERED]


@pytest.mark.unit
class TestReadMember:
    """Reading values from located members."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("field", [1, 2]),
            ("prop", [7]),
            ("cached", [14]),
            ("method", [21]),
            ("static", [4]),
            ("klass", ["Provider"]),
        ],
    )
    def test_read(self, registry: SourceRegistry, name: str, expected: Any) -> None:
        (member,) = find_members(Provider, name, registry=registry)
        assert read_member(member, Provider, Provider(7)) == expected

    def test_static_read_without_instance(self, registry: SourceRegistry) -> None:
        (member,) = find_members(Provider, "static", registry=registry)
        assert read_member(member, Provider) == [4]

    def test_registered_callable_and_value(self, registry: SourceRegistry) -> None:
        registry.register(Base, "fn", lambda: [1])
        registry.register(Base, "val", (2,))
        (fn,) = find_members(Base, "fn", registry=registry)
        (val,) = find_members(Base, "val", registry=registry)
        assert read_member(fn, Base) == [1]
        assert read_member(val, Base) == (2,)


@pytest.mark.unit
class TestSourceRegistry:
    """Explicit provider registry."""

    def test_decorator_form(self, registry: SourceRegistry) -> None:
        @registry.register(Base, "primes")
        def primes() -> list[int]:
            return [2, 3]

        assert registry.providers(Base, "primes") == [primes]
        assert primes() == [2, 3]

    def test_base_class_registrations_visible(self, registry: SourceRegistry) -> None:
        registry.register(Base, "shared", [1])
        assert registry.providers(Provider, "shared") == [[1]]

    def test_unregister(self, registry: SourceRegistry) -> None:
        registry.register(Base, "x", [1])
        registry.unregister(Base, "x")
        assert registry.providers(Base, "x") == []
        assert len(registry) == 0

    def test_singleton(self) -> None:
        assert get_registry() is get_registry()


@pytest.mark.unit
class TestConstruct:
    """Source type construction."""

    def test_class(self) -> None:
        assert construct(Provider, (3,)).scale == 3

    def test_factory_callable(self) -> None:
        assert construct(lambda n: [n], (1,)) == [1]

    def test_module_returned_unchanged(self) -> None:
        module = types.ModuleType("m")
        assert construct(module) is module

    def test_module_with_arguments(self) -> None:
        with pytest.raises(ConstructionError, match="cannot be constructed"):
            construct(types.ModuleType("m"), (1,))

    def test_not_callable(self) -> None:
        with pytest.raises(ConstructionError, match="not constructible"):
            construct(42)

    def test_constructor_raises(self) -> None:
        with pytest.raises(ConstructionError) as info:
            construct(Provider, (1, 2, 3))
        assert isinstance(info.value.__cause__, TypeError)
        assert info.value.diagnostics["constructor_args"] == "(1, 2, 3)"


@pytest.mark.unit
class TestShapes:
    """Iterable and array-like detection."""

    @pytest.mark.parametrize(
        "value", [[1], (1,), "ab", {"a": 1}, {1}, iter([1]), range(2), LegacySequence()]
    )
    def test_iterable(self, value: Any) -> None:
        assert is_iterable(value) is True

    @pytest.mark.parametrize("value", [1, None, 1.5, object(), Provider])
    def test_not_iterable(self, value: Any) -> None:
        assert is_iterable(value) is False

    @pytest.mark.parametrize("value", [[1], (1, 2), range(3), ()])
    def test_array_like(self, value: Any) -> None:
        assert is_array_like(value) is True

    @pytest.mark.parametrize("value", ["ab", b"ab", bytearray(b"a"), {"a": 1}, {1}, 5, None])
    def test_not_array_like(self, value: Any) -> None:
        assert is_array_like(value) is False


@pytest.mark.unit
class TestProtocols:
    """Capability protocols."""

    def test_case_data_is_explicit(self) -> None:
        assert isinstance(CaseData(1), ExplicitCaseData)
        assert isinstance(ParameterSet(), ExplicitCaseData)

    def test_plain_values_are_not_explicit(self) -> None:
        assert not isinstance((1, 2), ExplicitCaseData)
        assert not isinstance({"arguments": []}, ExplicitCaseData)

    def test_property_bag(self) -> None:
        class Bag:
            def has_property(self, name: str) -> bool:
                return name == "Count"

            def get_property(self, name: str) -> Any:
                return 3

        bag = Bag()
        assert isinstance(bag, PropertyBag)
        assert read_property(bag, "Count") == (True, 3)
        assert read_property(bag, "count") == (False, None)

    def test_attribute_property(self) -> None:
        assert read_property(Provider(2), "scale") == (True, 2)
        assert read_property(Provider(2), "Scale") == (False, None)
