"""Orgo control API client.

Thin REST client for the Orgo virtual desktop API. Every HTTP failure is
turned into an OrgoAPIError subclass carrying the status code, so callers can
branch on structured codes instead of message text.

Security Requirements:
- HTTPS only for API calls (localhost allowed for development)
- API key sent only in the Authorization header, never logged
- Timeout on every API call
"""

import logging
from dataclasses import dataclass
from typing import Any

import requests

from orgolin.config_manager import DEFAULT_API_BASE_URL
from orgolin.exceptions import (
    OrgoAPIError,
    OrgoAuthError,
    OrgoNetworkError,
    ProjectNotFoundError,
)
from orgolin.log_sanitizer import LogSanitizer
from orgolin.project_id import PROJECT_ID_PATTERN

logger = logging.getLogger(__name__)

PROJECT_ACTIONS = ("start", "stop", "restart")


# ============================================================================
# Attach outcomes
# ============================================================================


@dataclass(frozen=True)
class Attached:
    """Project exists and is reachable."""

    project: dict[str, Any]


@dataclass(frozen=True)
class NotFound:
    """Project does not exist on the provider.

    Attributes:
        matched_message: True if detected by the legacy "404" message match
            rather than a structured status code
    """

    message: str
    matched_message: bool = False


@dataclass(frozen=True)
class AuthFailure:
    """API key rejected."""

    message: str
    error: OrgoAPIError


@dataclass(frozen=True)
class NetworkFailure:
    """No usable response from the provider."""

    message: str
    error: OrgoAPIError


@dataclass(frozen=True)
class RemoteFailure:
    """Any other provider error (5xx, quota, malformed request)."""

    message: str
    error: Exception


AttachOutcome = Attached | NotFound | AuthFailure | NetworkFailure | RemoteFailure


def attach_outcome_from_error(error: Exception) -> AttachOutcome:
    """Map an attach failure onto the closed AttachOutcome set.

    Structured status codes are checked first. Providers that only report
    "404" inside the message text are handled by the compatibility shim below.
    """
    message = LogSanitizer.sanitize(str(error))

    if isinstance(error, ProjectNotFoundError):
        return NotFound(message)
    if isinstance(error, OrgoAPIError) and error.status_code == 404:
        return NotFound(message)
    if isinstance(error, OrgoAuthError):
        return AuthFailure(message, error)
    if isinstance(error, OrgoNetworkError):
        return NetworkFailure(message, error)

    # Compatibility shim: error without a structured code that mentions 404
    has_code = isinstance(error, OrgoAPIError) and error.status_code is not None
    if not has_code and "404" in str(error):
        return NotFound(message, matched_message=True)

    return RemoteFailure(message, error)


# ============================================================================
# Client
# ============================================================================


class OrgoClient:
    """REST client for the Orgo API.

    Example:
        >>> client = OrgoClient(api_key="sk_live_...")
        >>> project = client.create_project()
        >>> client.run_bash(project["id"], "ls -la")
    """

    API_TIMEOUT = 30.0

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float | None = None,
    ):
        """Initialize client.

        Args:
            api_key: Orgo API key
            base_url: API root URL
            timeout: Per-request timeout in seconds

        Raises:
            ValueError: If api_key is empty or base_url is not HTTPS
        """
        if not api_key:
            raise ValueError("ORGO_API_KEY environment variable or api_key parameter required")
        if not base_url.startswith("https://") and not base_url.startswith("http://localhost"):
            raise ValueError(f"Orgo API base URL must use HTTPS: {base_url}")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or self.API_TIMEOUT

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def list_projects(self) -> list[dict[str, Any]]:
        """List all projects for this API key."""
        data = self._request("GET", "/projects")
        if isinstance(data, dict):
            return list(data.get("projects", []))
        return list(data or [])

    def create_project(self, config: dict[str, Any] | None = None) -> dict[str, Any]:
        """Create a new project (provisions a fresh virtual desktop)."""
        return self._request("POST", "/projects", json=config or {})

    def get_project(self, project_id: str) -> dict[str, Any]:
        """Get a project by ID.

        Raises:
            ProjectNotFoundError: If the project does not exist
        """
        return self._request("GET", f"/projects/{self._segment(project_id)}")

    def project_action(self, project_id: str, action: str) -> dict[str, Any]:
        """Start, stop or restart a project.

        Raises:
            ValueError: If action is not supported
        """
        if action not in PROJECT_ACTIONS:
            raise ValueError(f"Unsupported project action: {action}")
        return self._request("POST", f"/projects/{self._segment(project_id)}/{action}")

    def delete_project(self, project_id: str) -> None:
        """Delete a project and its virtual desktop."""
        self._request("POST", f"/projects/{self._segment(project_id)}/delete")

    # ------------------------------------------------------------------
    # Computers
    # ------------------------------------------------------------------

    def get_status(self, project_id: str) -> dict[str, Any]:
        """Get the desktop status ({"status": "starting|ready|error|stopped"})."""
        return self._request("GET", f"/computers/{self._segment(project_id)}/status")

    def run_bash(self, project_id: str, command: str) -> dict[str, Any]:
        """Execute a bash command on the desktop."""
        try:
            return self._request(
                "POST", f"/computers/{self._segment(project_id)}/bash", json={"command": command}
            )
        except ProjectNotFoundError as e:
            raise ProjectNotFoundError(
                "Computer not found. The project may have expired. Please create a new project."
            ) from e
        except OrgoAPIError as e:
            if e.status_code == 500:
                raise OrgoAPIError(
                    "Command execution failed. The command may be invalid or the system may be "
                    "busy. Try a simpler command like 'ls' or 'pwd'.",
                    status_code=500,
                ) from e
            raise

    def press_key(self, project_id: str, key: str) -> dict[str, Any]:
        """Press a key (xdotool key name, e.g. "Return" or "ctrl+c")."""
        return self._request(
            "POST", f"/computers/{self._segment(project_id)}/key", json={"key": key}
        )

    def screenshot(self, project_id: str) -> str:
        """Capture a screenshot and return it base64-encoded.

        Raises:
            OrgoAPIError: If the response contains no image
        """
        data = self._request("GET", f"/computers/{self._segment(project_id)}/screenshot")
        image = data.get("image") if isinstance(data, dict) else None
        if not image:
            raise OrgoAPIError("Screenshot response contained no image")
        return image

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _segment(value: str) -> str:
        """Validate a URL path segment.

        Raises:
            ValueError: If value contains characters outside [A-Za-z0-9._-]
        """
        if not value or not PROJECT_ID_PATTERN.match(value):
            raise ValueError(f"Invalid project ID: {value!r}")
        return value

    def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.debug(f"Orgo API {method} {path}")
        try:
            response = requests.request(
                method, url, headers=headers, json=json, timeout=self.timeout
            )
        except requests.Timeout as e:
            raise OrgoNetworkError(f"Orgo API request timed out after {self.timeout:g}s") from e
        except requests.RequestException as e:
            raise OrgoNetworkError(
                LogSanitizer.create_safe_error_message(e, "Orgo API request failed")
            ) from e

        if not response.ok:
            raise self._error_for(response)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise OrgoNetworkError(
                f"Orgo API returned invalid JSON (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from e

    @staticmethod
    def _error_for(response: requests.Response) -> OrgoAPIError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        detail = body.get("error") if isinstance(body, dict) else None
        message = LogSanitizer.sanitize(
            detail or f"HTTP {response.status_code}: {response.reason}"
        )
        status = response.status_code

        if status == 404:
            return ProjectNotFoundError(message, status_code=404)
        if status in (401, 403):
            return OrgoAuthError(message, status_code=status)
        return OrgoAPIError(message, status_code=status)


__all__ = [
    "AttachOutcome",
    "Attached",
    "AuthFailure",
    "NetworkFailure",
    "NotFound",
    "OrgoClient",
    "PROJECT_ACTIONS",
    "RemoteFailure",
    "attach_outcome_from_error",
]
