"""CLI entry point for orgolin.

Commands:
    orgolin connect              # Reattach the stored project or create a new one
    orgolin run "ls -la"         # Run a shell command or natural language task
    orgolin -- uname -a          # Shorthand for run
    orgolin status               # Show the stored project
    orgolin shell                # Interactive session
    orgolin serve                # JSON-lines request loop on stdin/stdout
    orgolin disconnect           # Forget (or --destroy) the stored project
    orgolin projects list        # List Orgo projects
    orgolin config show          # Show configuration
"""

import asyncio
import base64
import contextlib
import json
import logging
import sys
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from orgolin import __version__
from orgolin.api_handler import handle_request
from orgolin.click_group import OrgolinGroup
from orgolin.computer import ComputerProvider
from orgolin.config_manager import (
    ANTHROPIC_API_KEY_ENV,
    ORGO_API_KEY_ENV,
    ConfigError,
    ConfigManager,
    OrgolinConfig,
)
from orgolin.exceptions import OrgolinError, ProjectNotFoundError
from orgolin.lifecycle_manager import ConnectionStatus, SessionLifecycleManager
from orgolin.log_sanitizer import LogSanitizer
from orgolin.manager_factory import build_client, build_lifecycle_manager
from orgolin.orgo_api import PROJECT_ACTIONS
from orgolin.project_id import describe_project_id
from orgolin.project_store import ProjectStore, ProjectStoreError
from orgolin.status_monitor import StatusMonitor
from orgolin.task_runner import TaskOptions, TaskResult

logger = logging.getLogger(__name__)

SHELL_EXIT_WORDS = ("exit", "quit")


# ============================================================================
# Helpers
# ============================================================================


@contextlib.contextmanager
def _cli_errors(console: Console, operation: str) -> Iterator[None]:
    """Print failures the same way in every command and exit non-zero."""
    try:
        yield
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled[/yellow]")
        sys.exit(130)
    except (OrgolinError, ConfigError, ProjectStoreError, ValueError) as e:
        console.print(f"[red]Error: {escape(LogSanitizer.sanitize(str(e)))}[/red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error: {escape(LogSanitizer.sanitize(str(e)))}[/red]")
        logger.exception(f"{operation} failed")
        sys.exit(1)


def _load_config(ctx: click.Context) -> OrgolinConfig:
    return ConfigManager.load_config(ctx.obj.get("config_path"))


def _orgo_api_key(ctx: click.Context) -> str:
    key = ConfigManager.get_api_key(ORGO_API_KEY_ENV, ctx.obj.get("orgo_api_key"))
    if not key:
        raise ConfigError(
            f"No Orgo API key. Set {ORGO_API_KEY_ENV} or pass --orgo-api-key."
        )
    return key


def _build_manager(ctx: click.Context, config: OrgolinConfig) -> SessionLifecycleManager:
    anthropic_key = ConfigManager.get_api_key(
        ANTHROPIC_API_KEY_ENV, ctx.obj.get("anthropic_api_key")
    )
    return build_lifecycle_manager(config, _orgo_api_key(ctx), anthropic_key)


def _print_status(console: Console, status: ConnectionStatus) -> None:
    if status.is_connected:
        label = "new project" if status.is_new_project else "project"
        console.print(f"[green]✓[/green] Connected to {label} [cyan]{status.project_id}[/cyan]")
    elif status.error:
        console.print(f"[red]Error: {escape(status.error)}[/red]")
    else:
        console.print(f"[dim]State:[/dim] {status.state}")


def _save_screenshots(screenshots: tuple[str, ...], directory: Path) -> list[Path]:
    """Decode base64 screenshots into PNG files."""
    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    saved = []
    for index, image in enumerate(screenshots, start=1):
        path = directory / f"screenshot-{stamp}-{index}.png"
        path.write_bytes(base64.b64decode(image))
        saved.append(path)
    return saved


def _print_task_result(
    console: Console, result: TaskResult, save_screenshots: Path | None = None
) -> None:
    if result.translated_command:
        console.print(f"[dim]$ {escape(result.translated_command)}[/dim]")

    if result.output:
        console.print(escape(result.output.rstrip("\n")))

    if not result.success:
        console.print(f"[red]Error: {escape(result.error or 'Task failed')}[/red]")
        if result.suggestions:
            console.print(f"[dim]Try a simpler command: {', '.join(result.suggestions)}[/dim]")
        return

    if result.screenshots:
        if save_screenshots:
            for path in _save_screenshots(result.screenshots, save_screenshots):
                console.print(f"[dim]Screenshot saved to {path}[/dim]")
        else:
            console.print(f"[dim]({len(result.screenshots)} screenshot captured)[/dim]")


# ============================================================================
# Root group
# ============================================================================


@click.group(
    cls=OrgolinGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", help="Config file path", type=click.Path())
@click.option("--orgo-api-key", help=f"Orgo API key (default: ${ORGO_API_KEY_ENV})")
@click.option("--anthropic-api-key", help=f"Anthropic API key (default: ${ANTHROPIC_API_KEY_ENV})")
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    config_path: str | None,
    orgo_api_key: str | None,
    anthropic_api_key: str | None,
) -> None:
    """orgolin - run commands on Orgo virtual desktops.

    Connects to an Orgo project (reusing the last one when it still exists),
    then runs shell commands or natural language tasks on it.

    \b
    EXAMPLES:
        $ orgolin connect
        $ orgolin run "ls -la"
        $ orgolin run "open google and search for cats"
        $ orgolin -- uname -a
        $ orgolin shell
        $ orgolin disconnect --destroy

    \b
    CONFIGURATION:
        Config file: ~/.orgolin/config.toml
        API keys:    ORGO_API_KEY, ANTHROPIC_API_KEY (natural language only)
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO, format="%(message)s"
    )

    ctx.ensure_object(dict)
    ctx.obj.update(
        config_path=config_path,
        orgo_api_key=orgo_api_key,
        anthropic_api_key=anthropic_api_key,
    )

    if ctx.invoked_subcommand is None:
        passthrough = ctx.obj.get("passthrough_command")
        if passthrough:
            ctx.invoke(run_command, text=passthrough)
            return
        click.echo(ctx.get_help())
        ctx.exit(0)


# ============================================================================
# Session commands
# ============================================================================


@main.command(name="connect")
@click.option("--project-id", help="Project to reattach (default: the stored project)")
@click.pass_context
def connect_command(ctx: click.Context, project_id: str | None) -> None:
    """Connect to an Orgo project.

    Reattaches the given or stored project and waits until it is ready. A
    project that no longer exists is replaced by a new one.
    """
    console = Console()
    with _cli_errors(console, "Connect"):
        config = _load_config(ctx)
        manager = _build_manager(ctx, config)
        with console.status("Connecting to Orgo..."):
            status = asyncio.run(manager.connect(project_id))
        _print_status(console, status)


@main.command(name="disconnect")
@click.option("--destroy", is_flag=True, help="Delete the project on Orgo as well")
@click.pass_context
def disconnect_command(ctx: click.Context, destroy: bool) -> None:
    """Forget the stored project.

    With --destroy the project is also deleted on Orgo.
    """
    console = Console()
    with _cli_errors(console, "Disconnect"):
        config = _load_config(ctx)
        store = ProjectStore(strict_project_ids=config.strict_project_ids)
        project_id = store.get()

        if project_id is None:
            console.print("[yellow]No stored project.[/yellow]")
            return

        if destroy:
            provider = ComputerProvider(build_client(config, _orgo_api_key(ctx)))
            try:
                asyncio.run(provider.destroy_project(project_id))
                console.print(f"[green]✓[/green] Deleted project [cyan]{project_id}[/cyan]")
            except ProjectNotFoundError:
                console.print(f"[dim]Project {project_id} no longer exists[/dim]")

        store.clear()
        console.print(f"[green]✓[/green] Forgot project [cyan]{project_id}[/cyan]")


@main.command(name="status")
@click.option("--remote", is_flag=True, help="Query the desktop state from Orgo")
@click.option("--verbose", is_flag=True, help="Show project ID diagnostics")
@click.pass_context
def status_command(ctx: click.Context, remote: bool, verbose: bool) -> None:
    """Show the stored project and, optionally, its remote state."""
    console = Console()
    with _cli_errors(console, "Status"):
        config = _load_config(ctx)
        store = ProjectStore(strict_project_ids=config.strict_project_ids)
        project_id = store.get()

        if project_id is None:
            console.print("[yellow]No stored project.[/yellow] Run 'orgolin connect' first.")
            return

        console.print(f"[bold]Project:[/bold] [cyan]{project_id}[/cyan]")

        if verbose:
            info = describe_project_id(project_id, strict=config.strict_project_ids)
            console.print(f"[dim]Format:[/dim] {info.format}")
            console.print(f"[dim]Valid:[/dim] {info.is_valid}")
            console.print(f"[dim]Details:[/dim] {info.reason}")
            console.print(f"[dim]State file:[/dim] {store.path}")

        if remote:
            provider = ComputerProvider(build_client(config, _orgo_api_key(ctx)))
            computer = provider.handle_for({"id": project_id})
            remote_status = asyncio.run(computer.status())
            color = "green" if remote_status.is_running else "yellow"
            console.print(f"[bold]Desktop:[/bold] [{color}]{remote_status.state}[/{color}]")


@main.command(name="run")
@click.argument("text")
@click.option("--no-screenshot", is_flag=True, help="Skip the screenshot after the command")
@click.option(
    "--save-screenshots",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to save screenshots in",
)
@click.option("--model", help="Claude model for natural language translation")
@click.pass_context
def run_command(
    ctx: click.Context,
    text: str,
    no_screenshot: bool = False,
    save_screenshots: Path | None = None,
    model: str | None = None,
) -> None:
    """Run a shell command or natural language task on the desktop.

    \b
    Examples:
        orgolin run "ls -la"
        orgolin run "open google and search for cats"
        orgolin run "df -h" --save-screenshots ./shots
    """
    console = Console()
    with _cli_errors(console, "Run"):
        config = _load_config(ctx)
        manager = _build_manager(ctx, config)
        options = TaskOptions(model=model, capture_screenshot=not no_screenshot)

        with console.status("Running task..."):
            result = asyncio.run(manager.run(text, options))

        _print_task_result(console, result, save_screenshots)
        if not result.success:
            sys.exit(1)


@main.command(name="key")
@click.argument("key")
@click.pass_context
def key_command(ctx: click.Context, key: str) -> None:
    """Press a key on the desktop (e.g. Return, ctrl+c)."""
    console = Console()

    async def press(manager: SessionLifecycleManager) -> None:
        await manager.connect()
        if manager.computer is None:
            raise OrgolinError("Not connected")
        await manager.computer.press_key(key)

    with _cli_errors(console, "Key"):
        config = _load_config(ctx)
        asyncio.run(press(_build_manager(ctx, config)))
        console.print(f"[green]✓[/green] Pressed {escape(key)}")


# ============================================================================
# Interactive and server modes
# ============================================================================


async def _shell(
    manager: SessionLifecycleManager,
    console: Console,
    refresh_interval: float,
    destroy_on_exit: bool,
) -> None:
    status = await manager.connect()
    _print_status(console, status)
    console.print("[dim]Type a command or request; 'exit' to quit.[/dim]")

    last_running = status.is_running

    def on_update(update: ConnectionStatus) -> None:
        nonlocal last_running
        if update.is_running != last_running:
            last_running = update.is_running
            state = "[green]running[/green]" if update.is_running else "[yellow]stopped[/yellow]"
            console.print(f"[dim]Desktop is now[/dim] {state}")

    monitor = StatusMonitor(manager, interval=refresh_interval, on_update=on_update)
    monitor.start()
    try:
        while True:
            try:
                line = await asyncio.to_thread(console.input, "[bold cyan]orgolin>[/bold cyan] ")
            except EOFError:
                break

            text = line.strip()
            if not text:
                continue
            if text.lower() in SHELL_EXIT_WORDS:
                break

            result = await manager.run(text)
            _print_task_result(console, result)
    finally:
        await monitor.stop()
        if destroy_on_exit:
            await manager.disconnect()
            console.print("[dim]Project destroyed[/dim]")


@main.command(name="shell")
@click.option("--destroy-on-exit", is_flag=True, help="Delete the project when the shell exits")
@click.pass_context
def shell_command(ctx: click.Context, destroy_on_exit: bool) -> None:
    """Start an interactive session on the desktop.

    The desktop state is refreshed in the background while the shell is open.
    """
    console = Console()
    with _cli_errors(console, "Shell"):
        config = _load_config(ctx)
        manager = _build_manager(ctx, config)
        asyncio.run(_shell(manager, console, config.status_refresh_interval, destroy_on_exit))


async def _serve(manager: SessionLifecycleManager) -> None:
    while True:
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line:
            break
        line = line.strip()
        if not line:
            continue

        request_id = None
        try:
            body = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON request: {e}")
            status, payload = 400, {"success": False, "error": f"Invalid JSON: {e}"}
        else:
            if isinstance(body, dict):
                request_id = body.get("id")
            status, payload = await handle_request(manager, body)

        response: dict[str, Any] = {"status": status, **payload}
        if request_id is not None:
            response["id"] = request_id
        click.echo(json.dumps(response, ensure_ascii=False))

    logger.info("Input closed, shutting down")


@main.command(name="serve")
@click.pass_context
def serve_command(ctx: click.Context) -> None:
    """Serve JSON requests, one per line, on stdin/stdout.

    \b
    Example request:
        {"action": "process", "input": "ls -la"}

    Logs go to stderr; stdout carries one JSON response per request.
    """
    console = Console(stderr=True)
    with _cli_errors(console, "Serve"):
        config = _load_config(ctx)
        manager = _build_manager(ctx, config)
        asyncio.run(_serve(manager))


# ============================================================================
# Projects
# ============================================================================


@main.group(name="projects")
def projects_group() -> None:
    """Manage Orgo projects."""
    pass


@projects_group.command(name="list")
@click.pass_context
def projects_list_command(ctx: click.Context) -> None:
    """List projects for this API key."""
    console = Console()
    with _cli_errors(console, "List projects"):
        config = _load_config(ctx)
        projects = build_client(config, _orgo_api_key(ctx)).list_projects()
        stored = ProjectStore(strict_project_ids=config.strict_project_ids).get()

        if not projects:
            console.print("[yellow]No projects found.[/yellow]")
            return

        table = Table(title="Orgo Projects")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Status")
        table.add_column("Created", style="dim")

        for project in projects:
            project_id = str(project.get("id") or project.get("project_id") or "")
            marker = " *" if project_id and project_id == stored else ""
            table.add_row(
                f"{project_id}{marker}",
                str(project.get("name") or ""),
                str(project.get("status") or ""),
                str(project.get("created_at") or project.get("createdAt") or ""),
            )

        console.print(table)
        if stored:
            console.print("[dim]* stored project[/dim]")


def _project_action(ctx: click.Context, project_id: str, action: str) -> None:
    console = Console()
    with _cli_errors(console, f"Project {action}"):
        config = _load_config(ctx)
        build_client(config, _orgo_api_key(ctx)).project_action(project_id, action)
        console.print(f"[green]✓[/green] {action.capitalize()} requested for [cyan]{project_id}[/cyan]")


def _make_action_command(action: str) -> click.Command:
    @click.argument("project_id")
    @click.pass_context
    def command(ctx: click.Context, project_id: str) -> None:
        _project_action(ctx, project_id, action)

    command.__doc__ = f"{action.capitalize()} a project."
    return projects_group.command(name=action)(command)


for _action in PROJECT_ACTIONS:
    _make_action_command(_action)


# ============================================================================
# Config
# ============================================================================


@main.group(name="config")
def config_group() -> None:
    """Show or change configuration."""
    pass


@config_group.command(name="show")
@click.pass_context
def config_show_command(ctx: click.Context) -> None:
    """Show the effective configuration."""
    console = Console()
    with _cli_errors(console, "Config show"):
        config = _load_config(ctx)
        path = ConfigManager.get_config_path(ctx.obj.get("config_path"))

        table = Table(title=f"Configuration ({path})")
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        for key, value in config.to_dict().items():
            table.add_row(key, str(value))
        console.print(table)


@config_group.command(name="set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set_command(ctx: click.Context, key: str, value: str) -> None:
    """Set a configuration value.

    \b
    Examples:
        orgolin config set readiness_timeout 300
        orgolin config set strict_project_ids true
    """
    console = Console()
    with _cli_errors(console, "Config set"):
        config = ConfigManager.update_config(key, value, ctx.obj.get("config_path"))
        console.print(f"[green]✓[/green] {key} = {getattr(config, key)}")


if __name__ == "__main__":
    main()


__all__ = ["main"]
