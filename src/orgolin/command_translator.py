"""Natural language to shell command translation.

This module uses the Claude API to turn a request such as "open google and
search for cats" into a single bash command for the Orgo Linux desktop.
"""

import logging
import os

import anthropic  # type: ignore[import-untyped]

from orgolin.config_manager import ANTHROPIC_API_KEY_ENV, DEFAULT_TRANSLATION_MODEL
from orgolin.exceptions import TranslationError
from orgolin.log_sanitizer import LogSanitizer

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """Convert this natural language request into a single bash command that can be executed on a Linux desktop:

Request: "{request}"

Rules:
- Return ONLY the bash command, nothing else
- Use firefox for web browsing
- Use xdotool for typing if needed
- Keep it simple and direct
- If it's a web search, use: firefox "https://www.google.com/search?q=SEARCH_TERMS"
- If it's opening an app, use: firefox URL or appropriate command

Bash command:"""


class CommandTranslator:
    """Translate natural language requests into bash commands with Claude."""

    def __init__(self, api_key: str | None = None, model: str = DEFAULT_TRANSLATION_MODEL):
        """Initialize translator.

        Args:
            api_key: Anthropic API key. If None, reads from ANTHROPIC_API_KEY env var.
            model: Claude model used for translation

        Raises:
            ValueError: If no API key is available
        """
        self.api_key = api_key or os.getenv(ANTHROPIC_API_KEY_ENV)
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable or api_key parameter required")

        self.model = model
        self.client = anthropic.Anthropic(api_key=self.api_key)

    def translate(self, request: str, model: str | None = None) -> str:
        """Translate a request into one bash command.

        Args:
            request: Natural language request
            model: Override the configured model for this call

        Returns:
            Bash command string

        Raises:
            TranslationError: If the API call fails or returns no command

        Example:
            >>> translator = CommandTranslator()
            >>> translator.translate("search for cats")
            'firefox "https://www.google.com/search?q=cats"'
        """
        try:
            message = self.client.messages.create(
                model=model or self.model,
                max_tokens=1000,
                messages=[{"role": "user", "content": PROMPT_TEMPLATE.format(request=request)}],
            )
            response_text = message.content[0].text  # type: ignore[union-attr]
        except anthropic.APIError as e:
            raise TranslationError(
                LogSanitizer.create_safe_error_message(e, "Claude API error"),
                original_input=request,
            ) from e
        except (IndexError, AttributeError) as e:
            raise TranslationError(
                f"Failed to parse Claude response: {e}", original_input=request
            ) from e

        command = self._extract_command(response_text)
        if not command:
            raise TranslationError("Claude returned an empty command", original_input=request)

        logger.debug(f"Translated {request!r} -> {command!r}")
        return command

    @staticmethod
    def _extract_command(response_text: str) -> str:
        """Extract the command from Claude's response.

        Claude sometimes wraps the command in a markdown code block or adds
        a leading "$ " prompt.
        """
        text = response_text.strip()

        if text.startswith("```"):
            text = text[3:]
            # Drop the language tag line (```bash)
            first_newline = text.find("\n")
            if first_newline != -1 and text[:first_newline].strip().isalpha():
                text = text[first_newline + 1 :]
        if text.endswith("```"):
            text = text[:-3]

        for line in text.splitlines():
            line = line.strip()
            if line:
                return line[2:].strip() if line.startswith("$ ") else line
        return ""


__all__ = ["CommandTranslator", "PROMPT_TEMPLATE"]
