"""Wire a SessionLifecycleManager from configuration and API keys."""

import logging
from pathlib import Path

from orgolin.command_translator import CommandTranslator
from orgolin.computer import ComputerProvider
from orgolin.config_manager import OrgolinConfig
from orgolin.lifecycle_manager import SessionLifecycleManager
from orgolin.orgo_api import OrgoClient
from orgolin.project_connector import ProjectConnector
from orgolin.project_store import ProjectStore
from orgolin.task_runner import TaskRunner

logger = logging.getLogger(__name__)


def build_client(config: OrgolinConfig, orgo_api_key: str) -> OrgoClient:
    """Create the Orgo REST client for this configuration.

    Raises:
        ValueError: If the API key is missing or the base URL is not HTTPS
    """
    return OrgoClient(
        api_key=orgo_api_key, base_url=config.api_base_url, timeout=config.request_timeout
    )


def build_lifecycle_manager(
    config: OrgolinConfig,
    orgo_api_key: str,
    anthropic_api_key: str | None = None,
    store_path: Path | None = None,
) -> SessionLifecycleManager:
    """Build a fully wired manager.

    Natural language translation is only available when an Anthropic key is
    given; without one, the task runner accepts direct commands only.

    Raises:
        ValueError: If the Orgo API key is missing or the base URL is not HTTPS
    """
    provider = ComputerProvider(build_client(config, orgo_api_key))
    connector = ProjectConnector(
        provider,
        readiness_timeout=config.readiness_timeout,
        poll_interval=config.poll_interval,
        strict_project_ids=config.strict_project_ids,
    )
    store = ProjectStore(store_path, strict_project_ids=config.strict_project_ids)

    translator = None
    if anthropic_api_key:
        translator = CommandTranslator(api_key=anthropic_api_key, model=config.translation_model)
    else:
        logger.debug("No Anthropic API key; natural language requests are disabled")

    runner = TaskRunner(translator=translator, capture_screenshots=config.capture_screenshots)
    return SessionLifecycleManager(connector, store, runner)


__all__ = ["build_client", "build_lifecycle_manager"]
