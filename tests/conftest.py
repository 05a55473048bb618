"""
Shared test fixtures for orgolin tests.

This module provides common fixtures used across the unit tests:
- Fake Orgo provider and desktop handles
- Temporary state and config locations
- A fully wired SessionLifecycleManager on top of the fakes
"""

from unittest.mock import Mock

import pytest

from orgolin.config_manager import ConfigManager
from orgolin.lifecycle_manager import SessionLifecycleManager
from orgolin.project_connector import ProjectConnector
from orgolin.project_store import ProjectStore
from orgolin.task_runner import TaskRunner
from tests.mocks.orgo_mock import FakeComputer, FakeProvider

VALID_UUID = "0f8fad5b-d9cb-469f-a165-70867728950e"
OTHER_UUID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"


# ============================================================================
# DIRECTORY FIXTURES
# ============================================================================


@pytest.fixture
def temp_config_dir(tmp_path, monkeypatch):
    """Temporary ~/.orgolin directory.

    Points ConfigManager at a temp directory so tests never touch the real
    configuration.
    """
    config_dir = tmp_path / ".orgolin"
    config_dir.mkdir(mode=0o700)
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_DIR", config_dir)
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_FILE", config_dir / "config.toml")
    return config_dir


@pytest.fixture
def state_file(tmp_path):
    """Path for a temporary project state file."""
    return tmp_path / ".orgolin" / "state.toml"


# ============================================================================
# ORGO FAKES
# ============================================================================


@pytest.fixture
def fake_provider():
    """Fake ComputerProvider that creates ready desktops."""
    return FakeProvider()


@pytest.fixture
def fake_computer():
    """Ready desktop with a valid project ID."""
    return FakeComputer(VALID_UUID)


@pytest.fixture
def mock_translator():
    """Translator stub that turns every request into a firefox search."""
    translator = Mock()
    translator.translate.return_value = 'firefox "https://www.google.com/search?q=cats"'
    return translator


# ============================================================================
# LIFECYCLE FIXTURES
# ============================================================================


@pytest.fixture
def connector(fake_provider):
    """ProjectConnector on the fake provider with a short readiness budget."""
    return ProjectConnector(fake_provider, readiness_timeout=1.0, poll_interval=0.001)


@pytest.fixture
def store(state_file):
    """ProjectStore backed by a temp file."""
    return ProjectStore(state_file)


@pytest.fixture
def task_runner(mock_translator):
    """TaskRunner using the stub translator."""
    return TaskRunner(translator=mock_translator)


@pytest.fixture
def manager(connector, store, task_runner):
    """SessionLifecycleManager wired to fakes."""
    return SessionLifecycleManager(connector, store, task_runner)
