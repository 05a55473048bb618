"""Async handle for a live Orgo virtual desktop.

Computer wraps one project on the blocking OrgoClient and exposes the
operations the lifecycle manager and task runner need as coroutines. HTTP
calls run in a worker thread so the event loop never blocks.

Public API (the "studs"):
    Computer: Session handle for one project
    ComputerProvider: Creates and attaches Computer handles
    ComputerState: Remote desktop state
    ComputerStatus: Status snapshot
    CommandOutput: Result of a bash command
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from orgolin.exceptions import OrgoAPIError
from orgolin.orgo_api import (
    Attached,
    AttachOutcome,
    OrgoClient,
    attach_outcome_from_error,
)

logger = logging.getLogger(__name__)


class ComputerState(StrEnum):
    """Virtual desktop states reported by Orgo."""

    STARTING = "starting"
    READY = "ready"
    ERROR = "error"
    STOPPED = "stopped"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "ComputerState":
        """Map a raw status string onto a state (unrecognized -> UNKNOWN)."""
        aliases = {"running": cls.READY, "active": cls.READY, "failed": cls.ERROR}
        text = str(value or "").strip().lower()
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class ComputerStatus:
    """Status snapshot of a virtual desktop."""

    state: ComputerState
    project_id: str | None = None

    @property
    def is_running(self) -> bool:
        return self.state in (ComputerState.READY, ComputerState.STARTING)


@dataclass(frozen=True)
class CommandOutput:
    """Result of a bash command on the desktop."""

    output: str
    error: str | None = None
    success: bool = True


def _project_id_from(project: dict[str, Any]) -> str | None:
    for key in ("id", "project_id", "projectId"):
        value = project.get(key)
        if value:
            return str(value)
    return None


class Computer:
    """Live connection to one Orgo project.

    Example:
        >>> computer = await provider.create()
        >>> status = await computer.status()
        >>> result = await computer.exec("ls -la")
        >>> await computer.destroy()
    """

    def __init__(self, client: OrgoClient, project: dict[str, Any]):
        self._client = client
        self.info = dict(project)
        self._destroyed = False

    @property
    def project_id(self) -> str | None:
        """Provider-assigned project ID, or None if the provider omitted it."""
        return _project_id_from(self.info)

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def is_identified(self) -> bool:
        """True once there is an ID or name to address the desktop by."""
        return self._handle() is not None

    def _handle(self) -> str | None:
        handle = self.project_id or self.info.get("name")
        return str(handle) if handle else None

    def _resource_id(self) -> str:
        resource_id = self._handle()
        if resource_id is None:
            raise OrgoAPIError("Computer has no project ID yet")
        return resource_id

    async def status(self) -> ComputerStatus:
        """Fetch the current desktop state.

        An unidentified desktop cannot be polled; its state is whatever the
        create response reported, and ready when it reported nothing.
        """
        if not self.is_identified:
            raw = self.info.get("status") or self.info.get("state")
            state = ComputerState.parse(raw) if raw else ComputerState.READY
            return ComputerStatus(state=state)

        data = await asyncio.to_thread(self._client.get_status, self._resource_id())
        raw_state = data.get("status") or data.get("state")
        reported_id = _project_id_from(data)
        if reported_id:
            self.info["id"] = reported_id
        return ComputerStatus(state=ComputerState.parse(raw_state), project_id=self.project_id)

    async def exec(self, command: str) -> CommandOutput:
        """Run a bash command and return its output."""
        data = await asyncio.to_thread(self._client.run_bash, self._resource_id(), command)
        error = data.get("error") or None
        success = bool(data.get("success", error is None))
        if not success and not error:
            error = "Command failed"
        return CommandOutput(output=str(data.get("output") or ""), error=error, success=success)

    async def press_key(self, key: str) -> None:
        await asyncio.to_thread(self._client.press_key, self._resource_id(), key)

    async def screenshot_base64(self) -> str:
        return await asyncio.to_thread(self._client.screenshot, self._resource_id())

    async def destroy(self) -> None:
        """Delete the project. Calling it again on the same handle is a no-op."""
        if self._destroyed:
            return
        await asyncio.to_thread(self._client.delete_project, self._resource_id())
        self._destroyed = True
        logger.info(f"Destroyed Orgo project {self.project_id or self.info.get('name')}")

    def __repr__(self) -> str:
        return f"Computer(project_id={self.project_id!r}, destroyed={self._destroyed})"


class ComputerProvider:
    """Create and attach Computer handles for one Orgo account."""

    def __init__(self, client: OrgoClient):
        self.client = client

    async def create(self, config: dict[str, Any] | None = None) -> Computer:
        """Provision a brand-new project.

        Raises:
            OrgoAPIError: If the create call fails
        """
        project = await asyncio.to_thread(self.client.create_project, config)
        computer = Computer(self.client, project)
        logger.info(f"Created Orgo project {computer.project_id or '(id pending)'}")
        return computer

    async def attach(self, project_id: str) -> AttachOutcome:
        """Look up an existing project and start it if it is stopped.

        Never raises; failures are returned as AttachOutcome variants.
        """
        try:
            project = await asyncio.to_thread(self.client.get_project, project_id)
            if ComputerState.parse(project.get("status")) is ComputerState.STOPPED:
                logger.info(f"Starting stopped project {project_id}")
                await asyncio.to_thread(self.client.project_action, project_id, "start")
        except Exception as e:
            return attach_outcome_from_error(e)
        return Attached(project)

    def handle_for(self, project: dict[str, Any]) -> Computer:
        """Wrap an attached project in a Computer handle."""
        return Computer(self.client, project)

    async def destroy_project(self, project_id: str) -> None:
        """Delete a project without holding a live handle."""
        await asyncio.to_thread(self.client.delete_project, project_id)


__all__ = [
    "CommandOutput",
    "Computer",
    "ComputerProvider",
    "ComputerState",
    "ComputerStatus",
]
