"""Pytest fixtures for Roster Sync tests.

This module provides fixtures for test configuration and sample roster data.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import pytest

from rostersync.core.config import Config
from rostersync.core.local_cache import LocalCache
from rostersync.core.store import RosterStore
from tests.helpers import make_applicant


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create temporary config directory for tests.

    Args:
        tmp_path: pytest temporary directory fixture

    Returns:
        Path to temporary config directory.
    """
    config_dir = tmp_path / "rostersync_test"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


@pytest.fixture
def test_config(test_config_dir: Path) -> Config:
    """Create test configuration.

    Args:
        test_config_dir: Temporary config directory

    Returns:
        Config instance for testing.
    """
    return Config(config_dir=test_config_dir)


@pytest.fixture
def local_cache(test_config: Config) -> LocalCache:
    """Empty local cache inside the test config directory."""
    return LocalCache(test_config.get_cache_file())


@pytest.fixture
def sample_applicants() -> List[Dict[str, Any]]:
    """Three applicants with distinct passport numbers."""
    return [
        make_applicant("P1", "Alice", "Smith", group="Morning"),
        make_applicant("P2", "Bob", "Jones", group="Morning"),
        make_applicant("P3", "Carol", "White", group="Evening"),
    ]


@pytest.fixture
def empty_store() -> RosterStore:
    """Fresh roster store."""
    return RosterStore()


@pytest.fixture
def populated_store(sample_applicants: List[Dict[str, Any]]) -> RosterStore:
    """Roster store holding the sample applicants and two groups."""
    store = RosterStore()
    store.replace(sample_applicants, ["Morning", "Evening"])
    return store
