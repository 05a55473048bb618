"""Session lifecycle manager for the Orgo desktop.

Philosophy:
- One live desktop per manager, owned exclusively by the manager
- Single-flight connect: concurrent connect requests are dropped, not queued
- A failed connect never leaves a handle installed
- Task failures are results, not exceptions; they never corrupt lifecycle state

State machine:
    disconnected --connect ok--> connected
    disconnected --connect fails--> error
    connected --disconnect--> disconnected
    connected --connect(other id)--> connected (old handle torn down first)
    error --connect--> connected | error

The _connecting flag is a plain boolean. That is only sound because all
callers share one asyncio event loop; a threaded host would need a lock
around the check-then-set.

Public API (the "studs"):
    SessionLifecycleManager: connect / disconnect / status / run
    ConnectionStatus: Snapshot of connection state
    ConnectionState, ConnectingPhase: State enums
"""

import logging
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any

from orgolin.computer import Computer
from orgolin.exceptions import (
    OrgoAPIError,
    ProjectIdValidationError,
    ReadinessAbandonedError,
)
from orgolin.log_sanitizer import LogSanitizer
from orgolin.project_connector import ProjectConnector
from orgolin.project_id import is_usable
from orgolin.project_store import ProjectStore, ProjectStoreError
from orgolin.task_runner import TaskOptions, TaskResult, TaskRunner

logger = logging.getLogger(__name__)


class ConnectionState(StrEnum):
    """Primary connection states."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class ConnectingPhase(StrEnum):
    """What a connect attempt is doing."""

    CREATING = "creating"
    RESTORING = "restoring"


@dataclass(frozen=True)
class ConnectionStatus:
    """Snapshot of the manager's connection state."""

    state: ConnectionState = ConnectionState.DISCONNECTED
    is_connected: bool = False
    is_running: bool = False
    project_id: str | None = None
    error: str | None = None
    phase: ConnectingPhase | None = None
    is_new_project: bool = False

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable form."""
        return {
            "state": str(self.state),
            "phase": str(self.phase) if self.phase else None,
            "is_connected": self.is_connected,
            "is_running": self.is_running,
            "project_id": self.project_id,
            "error": self.error,
            "is_new_project": self.is_new_project,
        }


class SessionLifecycleManager:
    """Own the single Orgo desktop for this process.

    Example:
        >>> manager = SessionLifecycleManager(connector, ProjectStore(), TaskRunner(translator))
        >>> status = await manager.connect()
        >>> result = await manager.run("ls -la")
        >>> await manager.disconnect()
    """

    def __init__(
        self,
        connector: ProjectConnector,
        store: ProjectStore,
        task_runner: TaskRunner,
    ):
        self._connector = connector
        self._store = store
        self._task_runner = task_runner

        self._status = ConnectionStatus()
        self._computer: Computer | None = None
        self._connecting = False
        # Bumped on every disconnect and handle install; in-flight work
        # compares against it to detect that its session was replaced.
        self._generation = 0

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def status(self) -> ConnectionStatus:
        """Current state. Never performs I/O."""
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status.is_connected

    @property
    def is_connecting(self) -> bool:
        return self._connecting

    @property
    def generation(self) -> int:
        """Changes whenever the active session is replaced or dropped."""
        return self._generation

    @property
    def computer(self) -> Computer | None:
        return self._computer

    # ------------------------------------------------------------------
    # Connect / disconnect
    # ------------------------------------------------------------------

    async def connect(self, project_id: str | None = None) -> ConnectionStatus:
        """Connect to a project, reusing the stored one when none is given.

        Args:
            project_id: Project to reattach; None uses the persisted ID (if any)

        Returns:
            Resulting status. If a connect is already in flight, the current
            status is returned unchanged and nothing else happens.

        Raises:
            ProvisionError: A fresh project was needed and could not be created
            AttachError: The existing project could not be reused
        """
        if self._connecting:
            logger.info("Connect already in progress; ignoring duplicate request")
            return self._status

        self._connecting = True
        try:
            requested = project_id if project_id is not None else self._store.get()
            strict = self._connector.strict_project_ids
            phase = (
                ConnectingPhase.RESTORING
                if is_usable(requested, strict=strict)
                else ConnectingPhase.CREATING
            )

            self._status = ConnectionStatus(
                state=ConnectionState.CONNECTING,
                phase=phase,
                project_id=self._status.project_id,
            )

            await self._teardown()
            generation = self._generation

            logger.info(
                f"Restoring project {requested}..."
                if phase is ConnectingPhase.RESTORING
                else "Creating a new Orgo project..."
            )
            try:
                result = await self._connector.attach(
                    requested, is_active=lambda: generation == self._generation
                )
            except ReadinessAbandonedError:
                logger.warning("Session was disconnected during connect; stopped waiting")
                return self._status

            if generation != self._generation:
                # disconnect() ran while we were provisioning
                logger.warning("Session was disconnected during connect; discarding new project")
                await self._destroy_quietly(result.computer)
                return self._status

            self._persist(result.project_id)
            self._computer = result.computer
            self._generation += 1
            self._status = ConnectionStatus(
                state=ConnectionState.CONNECTED,
                is_connected=True,
                is_running=True,
                project_id=result.project_id,
                is_new_project=result.is_new,
            )
            logger.info(
                f"Connected to {'new ' if result.is_new else ''}project {result.project_id}"
            )
            return self._status

        except Exception as e:
            message = LogSanitizer.create_safe_error_message(e)
            logger.error(f"Connection failed: {message}")
            self._computer = None
            self._status = ConnectionStatus(state=ConnectionState.ERROR, error=message)
            raise

        finally:
            self._connecting = False
            if self._status.state is ConnectionState.CONNECTING:
                # Cancelled mid-attempt
                self._status = ConnectionStatus()

    async def disconnect(self) -> None:
        """Tear down the desktop and forget the stored project.

        Safe to call repeatedly; only the first call destroys anything.
        """
        self._generation += 1
        await self._teardown()
        self._status = ConnectionStatus()
        try:
            self._store.clear()
        except ProjectStoreError as e:
            logger.warning(str(e))

    async def _teardown(self) -> None:
        """Destroy the current handle, if any. Failures are logged, not raised."""
        computer, self._computer = self._computer, None
        if computer is not None:
            await self._destroy_quietly(computer)

    async def _destroy_quietly(self, computer: Computer) -> None:
        try:
            await computer.destroy()
        except Exception as e:
            logger.warning(
                LogSanitizer.create_safe_error_message(e, "Failed to destroy previous project")
            )

    def _persist(self, project_id: str) -> None:
        try:
            self._store.set(project_id)
        except ProjectIdValidationError as e:
            logger.info(f"{e}; clearing stored project")
            try:
                self._store.clear()
            except ProjectStoreError as clear_error:
                logger.warning(str(clear_error))
        except ProjectStoreError as e:
            logger.warning(f"Connected, but could not remember the project: {e}")

    # ------------------------------------------------------------------
    # Remote status and tasks
    # ------------------------------------------------------------------

    async def refresh_remote_status(self) -> ConnectionStatus:
        """Ask the desktop for its state and update is_running.

        Fetch failures are logged and leave the status untouched.
        """
        computer = self._computer
        if computer is None or not self._status.is_connected:
            return self._status

        generation = self._generation
        try:
            remote = await computer.status()
        except OrgoAPIError as e:
            logger.debug(f"Failed to get remote status: {e}")
            return self._status

        if generation != self._generation:
            return self._status

        self._status = replace(
            self._status,
            is_running=remote.is_running,
            project_id=remote.project_id or self._status.project_id,
        )
        return self._status

    async def run(self, task_input: str, options: TaskOptions | None = None) -> TaskResult:
        """Run a task, connecting first if needed.

        Never raises for connection or task failures; they come back as a
        failed TaskResult.
        """
        if not self._status.is_connected:
            try:
                await self.connect()
            except Exception as e:
                return TaskResult.failure(
                    LogSanitizer.create_safe_error_message(e, "Not connected"),
                    original_input=task_input,
                )

        computer = self._computer
        if computer is None or not self._status.is_connected:
            return TaskResult.failure(
                "Not connected: another connection attempt is still in progress",
                original_input=task_input,
            )

        project_id = self._status.project_id
        try:
            return await self._task_runner.run(computer, task_input, options, project_id)
        except Exception as e:
            logger.exception("Task failed unexpectedly")
            return TaskResult.failure(
                LogSanitizer.create_safe_error_message(e),
                original_input=task_input,
                project_id=project_id,
            )


__all__ = [
    "ConnectingPhase",
    "ConnectionState",
    "ConnectionStatus",
    "SessionLifecycleManager",
]
