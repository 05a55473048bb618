"""Pytest configuration for orgolin tests.

CRITICAL: Protects the real ~/.orgolin state from test modifications.
"""

import os
import shutil
from pathlib import Path

import pytest

PROTECTED_FILES = ("config.toml", "state.toml")


@pytest.fixture(scope="session", autouse=True)
def protect_production_state():
    """Back up ~/.orgolin/config.toml and state.toml and restore them afterwards.

    Tests should NEVER modify the real files. A stored project ID that a test
    overwrites would make the next real run create (and pay for) a new desktop.
    """
    state_dir = Path.home() / ".orgolin"
    backups = []

    for name in PROTECTED_FILES:
        path = state_dir / name
        if path.exists():
            backup = state_dir / f".{name}.pytest-backup"
            shutil.copy2(path, backup)
            backups.append((path, backup))

    yield

    for path, backup in backups:
        if backup.exists():
            shutil.copy2(backup, path)
            backup.unlink()


@pytest.fixture(scope="session", autouse=True)
def prevent_real_orgo_operations():
    """Keep real API keys out of the test session.

    Tests that need a key pass one explicitly; nothing should reach Orgo or
    Anthropic because a developer happens to have keys exported.
    """
    saved = {name: os.environ.pop(name, None) for name in ("ORGO_API_KEY", "ANTHROPIC_API_KEY")}
    os.environ["ORGOLIN_TEST_MODE"] = "true"

    yield

    os.environ.pop("ORGOLIN_TEST_MODE", None)
    for name, value in saved.items():
        if value is not None:
            os.environ[name] = value
