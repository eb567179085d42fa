"""Shared fixtures for the case_source test suite."""

from __future__ import annotations

from collections.abc import Iterator
import logging

from case_source.config import ResolverConfig
from case_source.reflection import SourceRegistry, _reset_registry
from case_source.resolver import SourceResolver
import pytest


@pytest.fixture()
def registry() -> SourceRegistry:
    """Return a fresh, private ``SourceRegistry``."""
    return SourceRegistry()


@pytest.fixture(autouse=True)
def _isolated_shared_registry() -> Iterator[None]:
    """Reset the shared registry around every test."""
    _reset_registry()
    yield
    _reset_registry()


@pytest.fixture()
def resolver(registry: SourceRegistry) -> SourceResolver:
    """Return a resolver with default config and a private registry."""
    return SourceResolver(config=ResolverConfig(), registry=registry)


@pytest.fixture()
def clean_logger() -> Iterator[logging.Logger]:
    """Yield the ``case_source`` logger and remove handlers added by a test."""
    pkg_logger = logging.getLogger("case_source")
    before = list(pkg_logger.handlers)
    level = pkg_logger.level
    yield pkg_logger
    for handler in list(pkg_logger.handlers):
        if handler not in before:
            pkg_logger.removeHandler(handler)
            handler.close()
    pkg_logger.setLevel(level)
