"""
Fake Orgo provider and desktop handles for testing.

These stand in for ComputerProvider and Computer without any HTTP calls.
Every call is recorded so tests can assert on what reached the "remote" side.
"""

import asyncio
import uuid
from typing import Any

from orgolin.computer import CommandOutput, ComputerState, ComputerStatus
from orgolin.orgo_api import Attached, AttachOutcome


def new_project_id() -> str:
    return str(uuid.uuid4())


class FakeComputer:
    """In-memory Computer with scripted status, exec and screenshot results."""

    def __init__(
        self,
        project_id: str | None = None,
        statuses: list[str | Exception] | None = None,
        exec_result: CommandOutput | Exception | None = None,
        screenshot: str | Exception = "aW1hZ2U=",
        destroy_error: Exception | None = None,
    ):
        self.info: dict[str, Any] = {"id": project_id} if project_id else {}
        self.statuses = list(statuses) if statuses is not None else ["ready"]
        self.exec_result = exec_result
        self.screenshot = screenshot
        self.destroy_error = destroy_error

        self.status_calls = 0
        self.commands: list[str] = []
        self.keys: list[str] = []
        self.destroy_calls = 0
        self._destroyed = False

    @property
    def project_id(self) -> str | None:
        return self.info.get("id")

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    async def status(self) -> ComputerStatus:
        self.status_calls += 1
        # Last scripted status repeats forever
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(item, Exception):
            raise item
        return ComputerStatus(state=ComputerState.parse(item), project_id=self.project_id)

    async def exec(self, command: str) -> CommandOutput:
        self.commands.append(command)
        if isinstance(self.exec_result, Exception):
            raise self.exec_result
        if self.exec_result is not None:
            return self.exec_result
        return CommandOutput(output=f"output of {command}\n")

    async def press_key(self, key: str) -> None:
        self.keys.append(key)

    async def screenshot_base64(self) -> str:
        if isinstance(self.screenshot, Exception):
            raise self.screenshot
        return self.screenshot

    async def destroy(self) -> None:
        self.destroy_calls += 1
        if self.destroy_error is not None:
            raise self.destroy_error
        self._destroyed = True


class FakeProvider:
    """In-memory ComputerProvider.

    Attributes:
        computers: Handles to return from create(), in order. When empty, a
            ready FakeComputer with a fresh UUID is created.
        attach_outcomes: project_id -> AttachOutcome (default: Attached)
        attach_statuses: Status script for handles produced by handle_for()
        create_gate: If set, create() waits on this event before returning
    """

    def __init__(self):
        self.computers: list[FakeComputer] = []
        self.attach_outcomes: dict[str, AttachOutcome] = {}
        self.attach_statuses: list[str | Exception] = ["ready"]
        self.create_error: Exception | None = None
        self.create_gate: asyncio.Event | None = None

        self.create_calls = 0
        self.attach_calls: list[str] = []
        self.created: list[FakeComputer] = []
        self.attached: list[FakeComputer] = []
        self.destroyed_projects: list[str] = []

    async def create(self, config: dict[str, Any] | None = None) -> FakeComputer:
        self.create_calls += 1
        if self.create_gate is not None:
            await self.create_gate.wait()
        if self.create_error is not None:
            raise self.create_error
        computer = self.computers.pop(0) if self.computers else FakeComputer(new_project_id())
        self.created.append(computer)
        return computer

    async def attach(self, project_id: str) -> AttachOutcome:
        self.attach_calls.append(project_id)
        return self.attach_outcomes.get(project_id, Attached({"id": project_id}))

    def handle_for(self, project: dict[str, Any]) -> FakeComputer:
        computer = FakeComputer(project.get("id"), statuses=list(self.attach_statuses))
        self.attached.append(computer)
        return computer

    async def destroy_project(self, project_id: str) -> None:
        self.destroyed_projects.append(project_id)
