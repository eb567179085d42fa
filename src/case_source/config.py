"""Resolver configuration and logging setup.

``ResolverConfig`` is a frozen Pydantic model that can be built directly or
loaded from a YAML mapping with ``load_config``. ``configure_logging``
attaches handlers to the ``"case_source"`` logger.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
import yaml

from case_source.errors import ConfigError
from case_source.models import PropertyNames

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s — %(message)s"

_VALID_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class ResolverConfig(BaseModel):
    """Settings that control source resolution and logging.

    Attributes:
        log_level: Logging level name for the ``case_source`` logger.
        log_file: Optional path of a log file to append to.
        category_property: Property-bag key that receives category tags.
        search_non_public: Whether ``_``-prefixed and name-mangled members
            are considered when looking up a source by name.
    """

    model_config = ConfigDict(frozen=True)

    log_level: str = "INFO"
    log_file: str | None = None
    category_property: str = PropertyNames.CATEGORY.value
    search_non_public: bool = True

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        """Validate and upper-case the logging level name."""
        level = v.upper()
        if level not in _VALID_LEVELS:
            msg = f"Unknown log level {v!r}; expected one of {sorted(_VALID_LEVELS)}"
            raise ValueError(msg)
        return level

    @field_validator("category_property")
    @classmethod
    def _key_not_blank(cls, v: str) -> str:
        """Reject an empty property key."""
        if not v.strip():
            msg = "category_property must not be blank"
            raise ValueError(msg)
        return v


def load_config(path: str | Path) -> ResolverConfig:
    """Load a ``ResolverConfig`` from a YAML file.

    An empty file yields the default configuration.

    Args:
        path: Path to the YAML file.

    Returns:
        The validated configuration.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If the file is not valid YAML or not a mapping.
        pydantic.ValidationError: If a field value is invalid.
    """
    file_path = Path(path)
    if not file_path.exists():
        msg = f"config file not found: {path}"
        raise FileNotFoundError(msg)

    with open(file_path, encoding="utf-8") as f:
        try:
            data: Any = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            msg = f"config file is not valid YAML: {path}"
            raise ConfigError(msg) from exc

    if data is None:
        return ResolverConfig()
    if not isinstance(data, dict):
        msg = f"config file must contain a YAML mapping, got {type(data).__name__}"
        raise ConfigError(msg)

    return ResolverConfig(**data)


def configure_logging(config: ResolverConfig) -> None:
    """Configure Python logging for case_source.

    Sets up the ``"case_source"`` logger with a console handler and an
    optional file handler. Idempotent: repeated calls do not duplicate
    handlers.

    Args:
        config: Configuration providing ``log_level`` and optional
            ``log_file``.
    """
    pkg_logger = logging.getLogger("case_source")
    pkg_logger.setLevel(getattr(logging, config.log_level, logging.INFO))

    # FileHandler subclasses StreamHandler
    if not any(
        type(h) is logging.StreamHandler for h in pkg_logger.handlers
    ):
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(_LOG_FORMAT))
        pkg_logger.addHandler(console)

    if config.log_file is not None:
        has_file = any(
            isinstance(h, logging.FileHandler)
            and getattr(h, "baseFilename", None) == str(Path(config.log_file).resolve())
            for h in pkg_logger.handlers
        )
        if not has_file:
            file_handler = logging.FileHandler(config.log_file)
            file_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
            pkg_logger.addHandler(file_handler)
