"""Configuration for burnsignal feature extraction.

A frozen pydantic model holds the recognised options; a module-level
default is read from ``BURNSIGNAL_CONFIG`` on first use and can be
replaced with ``configure()``.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from burnsignal.exceptions import ConfigurationError

logger = logging.getLogger("burnsignal")

_CONFIG_ENV_VAR = "BURNSIGNAL_CONFIG"


class Config(BaseModel):
    """Feature-extraction settings.

    Immutable pydantic model. Every extraction call resolves a single
    ``Config`` up front, so later ``configure()`` calls never change a
    batch that is already running.

    Args:
        min_count: Minimum observations required for non-missing output.
        window: Observations used on each side of the drop for medians.
        workers: Worker processes for batch extraction (1 = inline).
        chunk_size: Units handed to a worker per task.

    Example:
        >>> cfg = Config(window=3)
        >>> cfg.min_count
        5
    """

    model_config = ConfigDict(frozen=True, validate_default=True, extra="forbid")

    min_count: int = 5
    window: int = 4
    workers: int = 1
    chunk_size: int = 10_000

    @field_validator("min_count")
    @classmethod
    def _validate_min_count(cls, v: int) -> int:
        """A drop needs at least two observations."""
        if v < 2:
            msg = "min_count must be at least 2"
            raise ValueError(msg)
        return v

    @field_validator("window", "workers", "chunk_size")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v < 1:
            msg = "value must be at least 1"
            raise ValueError(msg)
        return v


_default_config: Config | None = None


def configure(**kwargs: Any) -> None:
    """Set module-level default configuration.

    Creates a new ``Config`` from the current defaults merged with
    the provided keyword arguments.

    Args:
        **kwargs: Any ``Config`` field (e.g. ``min_count``, ``window``).

    Raises:
        ValidationError: If a provided value fails pydantic validation.

    Example:
        >>> configure(window=3, workers=4)
    """
    global _default_config  # noqa: PLW0603
    current = get_default_config().model_dump()
    current.update(kwargs)
    _default_config = Config(**current)


def get_default_config() -> Config:
    """Return the current module-level default configuration.

    On first use the default is loaded from the file named by the
    ``BURNSIGNAL_CONFIG`` environment variable when it exists, otherwise
    built from the ``Config`` field defaults.

    Raises:
        ConfigurationError: If the configured file cannot be loaded.
    """
    global _default_config  # noqa: PLW0603
    if _default_config is None:
        path = resolve_config_path()
        _default_config = load_config(path) if path is not None else Config()
    return _default_config


def resolve_config_path(explicit: Path | str | None = None) -> Path | None:
    """Resolve the configuration file path.

    Resolution order:
        1. *explicit* argument (highest priority)
        2. ``BURNSIGNAL_CONFIG`` environment variable

    Args:
        explicit: An explicit path to a JSON configuration file.

    Returns:
        Resolved ``Path``, or ``None`` if no candidate file exists.
    """
    if explicit is not None:
        path = Path(explicit).expanduser()
    elif os.environ.get(_CONFIG_ENV_VAR):
        path = Path(os.environ[_CONFIG_ENV_VAR]).expanduser()
    else:
        return None

    if not path.exists():
        logger.debug("Configuration file %s does not exist", path)
        return None
    return path


def load_config(path: Path | str) -> Config:
    """Load a ``Config`` from a JSON object file.

    Args:
        path: Absolute or ``~``-expanded path to the JSON file.

    Returns:
        Validated ``Config``.

    Raises:
        ConfigurationError: If the file is missing, unreadable, is not a
            JSON object, or holds invalid values.
    """
    resolved = Path(path).expanduser()
    try:
        text = resolved.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigurationError(
            what="Cannot read configuration file",
            cause=f"File not found: {resolved}",
            fix=(
                f"Create {resolved} or unset the {_CONFIG_ENV_VAR} "
                "environment variable"
            ),
        ) from None
    except PermissionError:
        raise ConfigurationError(
            what="Cannot read configuration file",
            cause=f"Permission denied: {resolved}",
            fix=f"Check file permissions on {resolved}",
        ) from None

    try:
        parsed: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            what="Invalid configuration file format",
            cause=f"JSON parse error in {resolved}: {exc}",
            fix='Ensure the file contains valid JSON, e.g. {"min_count": 5, "window": 4}',
        ) from None

    if not isinstance(parsed, dict):
        raise ConfigurationError(
            what="Invalid configuration file format",
            cause=f"Expected a JSON object in {resolved}, got {type(parsed).__name__}",
            fix='Ensure the file contains a JSON object, e.g. {"min_count": 5}',
        )

    try:
        config = Config(**parsed)
    except ValidationError as exc:
        raise ConfigurationError(
            what="Invalid configuration values",
            cause=f"{exc.error_count()} invalid field(s) in {resolved}",
            fix=f"Correct the fields reported by validation: {exc}",
        ) from None

    logger.debug("Loaded configuration from %s", resolved)
    return config
