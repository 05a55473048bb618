"""Run user tasks against a connected Orgo desktop.

Input is either a direct shell command ("ls -la") or a natural language
request ("open google and search for cats"). Natural language is translated
into one bash command first. Every outcome, success or failure, comes back
as a TaskResult; nothing raised by the remote desktop escapes run().

No sandboxing or command validation happens here: input reaches the remote
shell as-is.
"""

import asyncio
import logging
import re
from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import Any

from orgolin.computer import Computer
from orgolin.exceptions import ExecutionError, OrgoAPIError, TranslationError
from orgolin.log_sanitizer import LogSanitizer

logger = logging.getLogger(__name__)

NATURAL_LANGUAGE_KEYWORDS = ("open", "search", "find", "click", "type", "go to", "navigate")

FALLBACK_COMMAND_SUGGESTIONS = ("ls", "pwd", "whoami", "date", "echo 'hello'")

# "go to" matches across any run of whitespace
_KEYWORD_PATTERN = re.compile(
    r"\b(?:"
    + "|".join(re.escape(k).replace(r"\ ", r"\s+") for k in NATURAL_LANGUAGE_KEYWORDS)
    + r")\b",
    re.IGNORECASE,
)


class TaskMode(StrEnum):
    """How a task input was interpreted."""

    COMMAND = "command"
    NATURAL_LANGUAGE = "natural_language"


@dataclass(frozen=True)
class TaskOptions:
    """Per-task options."""

    model: str | None = None
    thinking_enabled: bool = True
    max_iterations: int = 20
    capture_screenshot: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "TaskOptions":
        """Build options from a request body (camelCase or snake_case keys)."""
        data = data or {}
        return cls(
            model=data.get("model"),
            thinking_enabled=bool(data.get("thinking_enabled", data.get("thinkingEnabled", True))),
            max_iterations=int(data.get("max_iterations", data.get("maxIterations", 20))),
            capture_screenshot=bool(
                data.get("capture_screenshot", data.get("captureScreenshot", True))
            ),
        )


@dataclass(frozen=True)
class TaskResult:
    """Outcome of one task. Immutable once returned."""

    success: bool
    output: str
    screenshots: tuple[str, ...] = ()
    error: str | None = None
    project_id: str | None = None
    original_input: str = ""
    translated_command: str | None = None
    mode: TaskMode = TaskMode.COMMAND
    suggestions: tuple[str, ...] = ()

    @classmethod
    def failure(
        cls, error: str, original_input: str = "", project_id: str | None = None, **kwargs: Any
    ) -> "TaskResult":
        return cls(
            success=False,
            output="",
            error=error,
            original_input=original_input,
            project_id=project_id,
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable form."""
        data = asdict(self)
        data["screenshots"] = list(self.screenshots)
        data["suggestions"] = list(self.suggestions)
        data["mode"] = str(self.mode)
        return data


def is_natural_language(text: str) -> bool:
    """Return True if the input should be translated before execution.

    Single tokens are almost never useful standalone shell invocations, so
    they are treated as conversational; otherwise the input is natural
    language if it mentions one of the intent verbs.

    Example:
        >>> is_natural_language("ls -la")
        False
        >>> is_natural_language("open google and search for cats")
        True
    """
    stripped = text.strip()
    if not any(ch.isspace() for ch in stripped):
        return True
    return _KEYWORD_PATTERN.search(stripped) is not None


class TaskRunner:
    """Execute tasks on a Computer and normalize the result.

    Example:
        >>> runner = TaskRunner(translator=CommandTranslator())
        >>> result = await runner.run(computer, "ls -la")
        >>> result.success
        True
    """

    def __init__(self, translator: Any | None = None, capture_screenshots: bool = True):
        """Initialize runner.

        Args:
            translator: Object with translate(text, model=None) -> str (blocking),
                or None to reject natural language input
            capture_screenshots: Capture a screenshot after each successful command
        """
        self.translator = translator
        self.capture_screenshots = capture_screenshots

    async def run(
        self,
        computer: Computer,
        task_input: str,
        options: TaskOptions | None = None,
        project_id: str | None = None,
    ) -> TaskResult:
        """Run one task.

        Args:
            computer: Connected handle
            task_input: Shell command or natural language request
            options: Task options
            project_id: Project ID echoed into the result

        Returns:
            TaskResult (never raises for remote or translation failures)
        """
        options = options or TaskOptions()
        text = (task_input or "").strip()
        if not text:
            return TaskResult.failure("Task input is empty", project_id=project_id)

        if not is_natural_language(text):
            return await self._execute(
                computer, task_input, task_input, options, project_id, TaskMode.COMMAND
            )

        try:
            command = await self._translate(text, options)
        except TranslationError as e:
            logger.warning(f"Translation failed: {e}")
            return TaskResult.failure(
                f"Could not translate request into a command: {e}",
                original_input=text,
                project_id=project_id,
                mode=TaskMode.NATURAL_LANGUAGE,
            )

        logger.info(f"Running translated command: {command}")
        return await self._execute(
            computer, command, text, options, project_id, TaskMode.NATURAL_LANGUAGE
        )

    async def _translate(self, text: str, options: TaskOptions) -> str:
        if self.translator is None:
            raise TranslationError(
                "Natural language requests need ANTHROPIC_API_KEY; run it as a shell command instead",
                original_input=text,
            )
        try:
            return await asyncio.to_thread(self.translator.translate, text, options.model)
        except TranslationError:
            raise
        except Exception as e:
            raise TranslationError(
                LogSanitizer.create_safe_error_message(e), original_input=text
            ) from e

    async def _execute(
        self,
        computer: Computer,
        command: str,
        original_input: str,
        options: TaskOptions,
        project_id: str | None,
        mode: TaskMode,
    ) -> TaskResult:
        translated = command if mode is TaskMode.NATURAL_LANGUAGE else None

        partial_output = ""
        try:
            result = await computer.exec(command)
            if not result.success:
                partial_output = result.output
                raise ExecutionError(result.error or "Command failed", command=command)
        except (ExecutionError, OrgoAPIError) as e:
            logger.warning(f"Command failed: {command}: {e}")
            return TaskResult(
                success=False,
                output=partial_output,
                error=LogSanitizer.sanitize(str(e)),
                project_id=project_id,
                original_input=original_input,
                translated_command=translated,
                mode=mode,
                suggestions=FALLBACK_COMMAND_SUGGESTIONS,
            )

        screenshots: tuple[str, ...] = ()
        if self.capture_screenshots and options.capture_screenshot:
            screenshots = await self._screenshot(computer)

        return TaskResult(
            success=True,
            output=result.output,
            screenshots=screenshots,
            error=result.error,
            project_id=project_id,
            original_input=original_input,
            translated_command=translated,
            mode=mode,
        )

    async def _screenshot(self, computer: Computer) -> tuple[str, ...]:
        """Capture one screenshot; failures are omitted from the result."""
        try:
            image = await computer.screenshot_base64()
        except OrgoAPIError as e:
            logger.debug(f"Screenshot failed, continuing without it: {e}")
            return ()
        return (image,) if image else ()


__all__ = [
    "FALLBACK_COMMAND_SUGGESTIONS",
    "NATURAL_LANGUAGE_KEYWORDS",
    "TaskMode",
    "TaskOptions",
    "TaskResult",
    "TaskRunner",
    "is_natural_language",
]
