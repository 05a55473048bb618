"""Action dispatch for JSON requests against a SessionLifecycleManager.

One request body in, one (http_status, payload) pair out. The transport
(stdin/stdout JSON lines, an HTTP framework) is the caller's concern.

Request body:
    {"action": "connect", "project_id": "..."}
    {"action": "disconnect"}
    {"action": "process", "input": "ls -la", "options": {...}}
    {"action": "status"}
    {"action": "remote_status"}

Responses always carry "success"; failures carry "error".
"""

import logging
from typing import Any

from orgolin.lifecycle_manager import SessionLifecycleManager
from orgolin.log_sanitizer import LogSanitizer
from orgolin.task_runner import TaskOptions

logger = logging.getLogger(__name__)

ACTIONS = ("connect", "disconnect", "process", "status", "remote_status")


def _error(status: int, message: str) -> tuple[int, dict[str, Any]]:
    return status, {"success": False, "error": message}


async def handle_request(
    manager: SessionLifecycleManager, body: Any
) -> tuple[int, dict[str, Any]]:
    """Dispatch one request.

    Args:
        manager: Manager that owns the session
        body: Decoded JSON request body

    Returns:
        (http_status, payload): 200 on success, 400 for a bad request or a
        failed operation, 500 for an unexpected error
    """
    if not isinstance(body, dict):
        return _error(400, "Request body must be a JSON object")

    logger.debug(f"Request: {LogSanitizer.sanitize_dict(body)}")
    action = body.get("action")
    if not action:
        return _error(400, 'Missing required "action" field')
    if action not in ACTIONS:
        return _error(400, "Invalid action")

    try:
        if action == "connect":
            project_id = body.get("project_id", body.get("projectId"))
            try:
                status = await manager.connect(project_id)
            except Exception as e:
                return _error(400, LogSanitizer.create_safe_error_message(e))
            return 200, {"success": True, "status": status.to_dict()}

        if action == "disconnect":
            await manager.disconnect()
            return 200, {"success": True}

        if action == "process":
            task_input = body.get("input")
            if not isinstance(task_input, str) or not task_input.strip():
                return _error(400, 'Missing required "input" field')
            options = TaskOptions.from_dict(body.get("options"))
            result = await manager.run(task_input, options)
            return 200, {"success": True, "result": result.to_dict()}

        if action == "remote_status":
            status = await manager.refresh_remote_status()
            return 200, {"success": True, "status": status.to_dict()}

        return 200, {"success": True, "status": manager.status().to_dict()}

    except Exception as e:
        logger.exception(f"Unexpected error handling {action!r}")
        return _error(500, LogSanitizer.create_safe_error_message(e))


__all__ = ["ACTIONS", "handle_request"]
