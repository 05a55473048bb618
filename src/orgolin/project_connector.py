"""Obtain a ready Computer handle: reuse a project or provision a new one.

Philosophy:
- Stale IDs are never sent to the provider; they go straight to a fresh project
- A project the provider no longer knows (404) silently becomes a fresh project
- Auth, quota and network failures are never masked by that fallback
- No retries here; retry policy belongs to the lifecycle manager's caller

Public API (the "studs"):
    ProjectConnector: create_fresh() and attach()
    ConnectResult: Handle plus the project ID it settled on
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from orgolin.computer import Computer, ComputerProvider
from orgolin.exceptions import (
    AttachError,
    OrgoAPIError,
    ProvisionError,
    ReadinessAbandonedError,
    ReadinessTimeoutError,
    VMStartupError,
)
from orgolin.log_sanitizer import LogSanitizer
from orgolin.orgo_api import Attached, NotFound
from orgolin.project_id import NEW_PROJECT_SENTINEL, classify, describe_project_id, is_usable
from orgolin.readiness import DEFAULT_POLL_INTERVAL, DEFAULT_READINESS_TIMEOUT, wait_until_ready

logger = logging.getLogger(__name__)


@dataclass
class ConnectResult:
    """Outcome of a successful connect."""

    computer: Computer
    project_id: str
    is_new: bool


class ProjectConnector:
    """Create or reattach Orgo projects and wait for them to be ready.

    Example:
        >>> connector = ProjectConnector(ComputerProvider(OrgoClient(api_key)))
        >>> result = await connector.attach(stored_project_id)
        >>> result.is_new
        False
    """

    def __init__(
        self,
        provider: ComputerProvider,
        readiness_timeout: float = DEFAULT_READINESS_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        strict_project_ids: bool = False,
    ):
        self.provider = provider
        self.readiness_timeout = readiness_timeout
        self.poll_interval = poll_interval
        self.strict_project_ids = strict_project_ids

    async def _wait_ready(
        self, computer: Computer, is_active: Callable[[], bool] | None
    ) -> None:
        await wait_until_ready(
            computer,
            timeout=self.readiness_timeout,
            poll_interval=self.poll_interval,
            is_active=is_active,
        )

    async def create_fresh(
        self, is_active: Callable[[], bool] | None = None
    ) -> ConnectResult:
        """Provision a new project and wait for it to be ready.

        Args:
            is_active: Liveness check passed to the readiness poll

        Raises:
            ProvisionError: If creation or readiness fails
        """
        try:
            computer = await self.provider.create()
        except OrgoAPIError as e:
            raise ProvisionError(
                LogSanitizer.create_safe_error_message(e, "Failed to create new Orgo project")
            ) from e

        try:
            await self._wait_ready(computer, is_active)
        except ReadinessAbandonedError:
            await self._discard(computer)
            raise
        except (ReadinessTimeoutError, VMStartupError) as e:
            await self._discard(computer)
            raise ProvisionError(f"Failed to create new Orgo project: {e}") from e

        project_id = computer.project_id or NEW_PROJECT_SENTINEL
        if project_id == NEW_PROJECT_SENTINEL:
            logger.warning("Orgo did not report a project ID for the new project")

        return ConnectResult(computer=computer, project_id=project_id, is_new=True)

    async def attach(
        self,
        project_id: str | None = None,
        is_active: Callable[[], bool] | None = None,
    ) -> ConnectResult:
        """Reconnect to an existing project, falling back to a fresh one.

        Args:
            project_id: Previously used project ID (None to always create)
            is_active: Liveness check; readiness polling stops once it is False

        Returns:
            ConnectResult with is_new=True when a fresh project was created

        Raises:
            ProvisionError: If a fresh project was needed and could not be created
            AttachError: If the existing project could not be reused for a reason
                other than not-found
            ReadinessAbandonedError: is_active() turned False while waiting
        """
        if not project_id:
            return await self.create_fresh(is_active)

        if not is_usable(project_id, strict=self.strict_project_ids):
            info = describe_project_id(project_id, strict=self.strict_project_ids)
            logger.info(f"Not reusing project ID {project_id!r}: {info.reason}")
            return await self.create_fresh(is_active)

        outcome = await self.provider.attach(project_id)

        if isinstance(outcome, NotFound):
            source = " (matched by message)" if outcome.matched_message else ""
            logger.warning(
                f"Project {project_id} not found{source}; creating a new project instead"
            )
            return await self.create_fresh(is_active)

        if not isinstance(outcome, Attached):
            raise AttachError(
                f"Failed to reconnect to project {project_id}: {outcome.message}",
                project_id=project_id,
            ) from outcome.error

        project = dict(outcome.project)
        project.setdefault("id", project_id)
        computer = self.provider.handle_for(project)

        try:
            await self._wait_ready(computer, is_active)
        except (ReadinessTimeoutError, VMStartupError) as e:
            raise AttachError(
                f"Project {project_id} did not become ready: {e}", project_id=project_id
            ) from e

        actual_id = computer.project_id or project_id
        if actual_id != project_id:
            logger.info(f"Provider reports project {actual_id} for requested {project_id}")

        logger.debug(f"Reattached project {actual_id} ({classify(actual_id)})")
        return ConnectResult(computer=computer, project_id=actual_id, is_new=False)

    async def _discard(self, computer: Computer) -> None:
        """Best-effort teardown of a project that never became usable."""
        try:
            await computer.destroy()
        except Exception as e:
            logger.warning(LogSanitizer.create_safe_error_message(e, "Failed to clean up project"))


__all__ = ["ConnectResult", "ProjectConnector"]
