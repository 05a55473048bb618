"""Unit tests for manager wiring."""

from unittest.mock import patch

import pytest

from orgolin.command_translator import CommandTranslator
from orgolin.config_manager import OrgolinConfig
from orgolin.lifecycle_manager import SessionLifecycleManager
from orgolin.manager_factory import build_client, build_lifecycle_manager


class TestBuildLifecycleManager:
    """Test composition from config."""

    def test_without_anthropic_key(self, tmp_path):
        manager = build_lifecycle_manager(
            OrgolinConfig(), "sk_live_test", store_path=tmp_path / "state.toml"
        )

        assert isinstance(manager, SessionLifecycleManager)
        assert manager._task_runner.translator is None
        assert manager._store.path == tmp_path / "state.toml"

    def test_with_anthropic_key(self, tmp_path):
        config = OrgolinConfig(translation_model="claude-test", capture_screenshots=False)

        with patch("orgolin.command_translator.anthropic.Anthropic"):
            manager = build_lifecycle_manager(
                config, "sk_live_test", "sk-ant-test", store_path=tmp_path / "state.toml"
            )

        translator = manager._task_runner.translator
        assert isinstance(translator, CommandTranslator)
        assert translator.model == "claude-test"
        assert manager._task_runner.capture_screenshots is False

    def test_config_flows_to_connector(self, tmp_path):
        config = OrgolinConfig(readiness_timeout=42.0, poll_interval=2.0, strict_project_ids=True)

        manager = build_lifecycle_manager(config, "sk_live_test", store_path=tmp_path / "s.toml")

        assert manager._connector.readiness_timeout == 42.0
        assert manager._connector.poll_interval == 2.0
        assert manager._connector.strict_project_ids is True
        assert manager._store.strict_project_ids is True

    def test_requires_orgo_key(self):
        with pytest.raises(ValueError, match="ORGO_API_KEY"):
            build_lifecycle_manager(OrgolinConfig(), "")


class TestBuildClient:
    """Test client construction."""

    def test_uses_config(self):
        client = build_client(
            OrgolinConfig(api_base_url="https://staging.orgo.ai/api/", request_timeout=5.0),
            "sk_live_test",
        )

        assert client.base_url == "https://staging.orgo.ai/api"
        assert client.timeout == 5.0
