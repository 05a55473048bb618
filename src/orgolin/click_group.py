"""Custom Click group with automatic help display on errors.

Also supports running a raw shell command on the desktop with
``orgolin -- <command>``; everything after ``--`` is handed to the
root command as ``ctx.obj["passthrough_command"]``.
"""

import sys
from typing import Any

import click

_USAGE_ERRORS = (
    click.exceptions.UsageError,
    click.exceptions.BadParameter,
    click.exceptions.MissingParameter,
)


def _show_error_with_help(error: click.exceptions.UsageError, ctx: click.Context | None) -> None:
    """Print the error and the help for the most specific context, then exit."""
    click.echo(f"Error: {error.format_message()}", err=True)
    error_ctx = error.ctx or ctx
    exit_code = getattr(error, "exit_code", 1)
    if error_ctx is None:
        sys.exit(exit_code)
    click.echo("")
    click.echo(error_ctx.get_help())
    error_ctx.exit(exit_code)


class OrgolinGroup(click.Group):
    """Click group that handles the -- delimiter and shows help on usage errors."""

    passthrough_command: str | None = None

    def main(self, args: Any = None, *rest: Any, **kwargs: Any) -> Any:
        """Split off a -- passthrough command before Click parses arguments."""
        args_list = list(args) if args is not None else sys.argv[1:]
        if "--" in args_list:
            delimiter_idx = args_list.index("--")
            passthrough = args_list[delimiter_idx + 1 :]
            if passthrough:
                self.passthrough_command = " ".join(passthrough)
                args_list = args_list[:delimiter_idx]

        try:
            return super().main(args_list, *rest, **kwargs)
        except _USAGE_ERRORS as e:
            _show_error_with_help(e, None)
            return None

    def invoke(self, ctx: click.Context) -> Any:
        """Expose the passthrough command to the context."""
        ctx.ensure_object(dict)
        ctx.obj["passthrough_command"] = self.passthrough_command
        self.passthrough_command = None

        try:
            return super().invoke(ctx)
        except _USAGE_ERRORS as e:
            _show_error_with_help(e, ctx)
            return None

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        """Show help when the command is not found."""
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as e:
            # Parameter errors are reported by invoke() with the subcommand's help
            if isinstance(e, click.exceptions.MissingParameter | click.exceptions.BadParameter):
                raise
            click.echo(f"Error: {e.format_message()}", err=True)
            click.echo("")
            click.echo(ctx.get_help())
            ctx.exit(1)
            return None, None, []


# Subgroups created with @main.group() also use OrgolinGroup
OrgolinGroup.group_class = OrgolinGroup


__all__ = ["OrgolinGroup"]
