"""Shared test fixtures for the burnsignal test suite."""

from __future__ import annotations

import numpy as np
import pytest

from burnsignal.config import Config


@pytest.fixture(autouse=True)
def _reset_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset module-level config before each test."""
    import burnsignal.config as _cfg

    monkeypatch.setattr(_cfg, "_default_config", Config())


@pytest.fixture
def test_config() -> Config:
    """Return a fresh default Config instance for test isolation."""
    return Config()


@pytest.fixture
def single_drop_series() -> tuple[np.ndarray, np.ndarray]:
    """Nine observations with one clear decline between t=3 and t=4."""
    values = np.array([0.50, 0.52, 0.48, 0.51, 0.10, 0.12, 0.15, 0.13, 0.14])
    times = np.arange(9, dtype=np.float64)
    return values, times
