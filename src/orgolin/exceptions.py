"""Custom exceptions for orgolin.

Identifier hygiene errors are absorbed locally (fresh-project fallback).
Remote, auth and network failures propagate with a readable message.
Command execution failures never leave the task runner; they become a
failed TaskResult.
"""


class OrgolinError(Exception):
    """Base exception for orgolin errors."""

    pass


class ProjectIdValidationError(OrgolinError):
    """Project ID is missing, legacy-format or the "new" sentinel."""

    def __init__(self, message: str, project_id: str | None = None):
        super().__init__(message)
        self.project_id = project_id


class OrgoAPIError(OrgolinError):
    """Orgo control API request failed.

    Attributes:
        status_code: HTTP status code, or None when no response was received
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ProjectNotFoundError(OrgoAPIError):
    """Project does not exist (HTTP 404)."""

    def __init__(self, message: str, status_code: int | None = 404):
        super().__init__(message, status_code=status_code)


class OrgoAuthError(OrgoAPIError):
    """API key rejected (HTTP 401/403)."""

    pass


class OrgoNetworkError(OrgoAPIError):
    """No usable response from the Orgo API (connection error, timeout, bad JSON)."""

    pass


class VMStartupError(OrgolinError):
    """The virtual desktop reported an error state while starting."""

    pass


class ReadinessTimeoutError(OrgolinError):
    """The virtual desktop did not become ready within the timeout."""

    def __init__(self, timeout: float):
        super().__init__(f"Timeout waiting for Orgo VM to be ready ({timeout:g}s)")
        self.timeout = timeout


class ReadinessAbandonedError(OrgolinError):
    """Readiness polling stopped because the session is no longer active."""

    pass


class ConnectError(OrgolinError):
    """Base class for failures obtaining a session handle."""

    @property
    def timed_out(self) -> bool:
        """True when the failure was a readiness timeout."""
        return isinstance(self.__cause__, ReadinessTimeoutError)


class ProvisionError(ConnectError):
    """Creating a fresh project failed."""

    pass


class AttachError(ConnectError):
    """Reconnecting to an existing project failed for a reason other than not-found."""

    def __init__(self, message: str, project_id: str | None = None):
        super().__init__(message)
        self.project_id = project_id


class TranslationError(OrgolinError):
    """Natural language could not be turned into a shell command."""

    def __init__(self, message: str, original_input: str = ""):
        super().__init__(message)
        self.original_input = original_input


class ExecutionError(OrgolinError):
    """A command failed on the remote desktop."""

    def __init__(self, message: str, command: str = ""):
        super().__init__(message)
        self.command = command


__all__ = [
    "AttachError",
    "ConnectError",
    "ExecutionError",
    "OrgoAPIError",
    "OrgoAuthError",
    "OrgoNetworkError",
    "OrgolinError",
    "ProjectIdValidationError",
    "ProjectNotFoundError",
    "ProvisionError",
    "ReadinessAbandonedError",
    "ReadinessTimeoutError",
    "TranslationError",
    "VMStartupError",
]
