"""quarrybar CLI entrypoint.

Command-line front end for supervising the Quarry search backend.
"""

from __future__ import annotations

import functools
import logging
import sys
import threading
from pathlib import Path
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from quarrybar.domain.config import QuarryConfig

from quarrybar.core.errors import QuarryCliError
from quarrybar.core.presentation import QuarryColors, render_status
from quarrybar.domain.exceptions import QuarryDomainError
from quarrybar.domain.state import DaemonState, StateKind
from quarrybar.version import __version__

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def handle_cli_errors(command_name: str):
    """Decorator to handle common CLI errors.

    Converts domain errors to QuarryCliError and wraps unexpected exceptions,
    showing tracebacks in verbose mode. QuarryCliError exceptions are re-raised
    to use their built-in formatting.

    Args:
        command_name: Name of the command for error messages.

    Returns:
        Decorated function with error handling.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except QuarryCliError:
                raise
            except QuarryDomainError as e:
                raise QuarryCliError(e.message, hint=e.hint) from e
            except Exception as e:
                ctx = click.get_current_context()
                if ctx.obj.get("verbose", False):
                    import traceback

                    traceback.print_exc()
                raise QuarryCliError(
                    f"Unexpected error in {command_name}: {e}",
                    hint="Run with --verbose for more details",
                ) from e

        return wrapper

    return decorator


def get_log_path() -> Path:
    """Location of the quarrybar log file (~/.quarrybar/quarrybar.log)."""
    return Path.home() / ".quarrybar" / "quarrybar.log"


def _configure_logging(verbose: bool) -> None:
    """Send logs to the log file, and to stderr in verbose mode."""
    log_path = get_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [logging.FileHandler(log_path)]
    if verbose:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def _load_config(ctx: click.Context) -> QuarryConfig:
    """Load configuration for the current invocation.

    Merges the global config file with the --config file, if one was given.

    Returns:
        QuarryConfig with merged settings.
    """
    from quarrybar.adapters.factory import ConfigFactory

    provider = ConfigFactory().create_config_provider()
    return provider.load(ctx.obj.get("config_path"))


def format_state(state: DaemonState) -> str:
    """Render a state as one styled line for terminal output."""
    view = render_status(state)
    text = f"{view.icon} {view.badge}"
    if state.kind is StateKind.RUNNING:
        text += f" ({state.target})"
    return QuarryColors.click_state(text, state.kind)


@click.group()
@click.version_option(version=__version__, prog_name="quarrybar")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output.",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress non-essential output.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file layered over the global config.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, config_path: Path | None) -> None:
    """quarrybar - Supervisor for the Quarry search backend.

    Starts, stops and switches the local search daemon and shows its state.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = config_path
    _configure_logging(verbose)


@cli.command()
@click.option("--database", "-d", default=None, help="Database to open first.")
@click.option("--no-start", is_flag=True, help="Do not start the backend on open.")
@click.pass_context
@handle_cli_errors("panel")
def panel(ctx: click.Context, database: str | None, no_start: bool) -> None:
    """Open the interactive status panel.

    The backend starts when the panel opens and stops when you quit.
    """
    from quarrybar.adapters.factory import DaemonFactory
    from quarrybar.adapters.tui.panel_ui import StatusPanelUI

    factory = DaemonFactory(_load_config(ctx))
    selector = factory.create_selector(database)
    with factory.create_supervisor(selector.current) as supervisor:
        StatusPanelUI(supervisor, selector, auto_start=not no_start).run()


@cli.command()
@click.option("--database", "-d", default=None, help="Database to serve.")
@click.option(
    "--duration",
    type=float,
    default=None,
    help="Stop after this many seconds (default: until Ctrl-C).",
)
@click.pass_context
@handle_cli_errors("watch")
def watch(ctx: click.Context, database: str | None, duration: float | None) -> None:
    """Start the backend and print every state change."""
    from quarrybar.adapters.factory import DaemonFactory

    factory = DaemonFactory(_load_config(ctx))
    supervisor = factory.create_supervisor(database)
    supervisor.subscribe(lambda state: click.echo(format_state(state)))

    click.echo(format_state(supervisor.state))
    try:
        supervisor.start()
        threading.Event().wait(duration)
    except KeyboardInterrupt:
        click.echo("")
    finally:
        supervisor.close()


@cli.command()
@click.option("--database", "-d", default=None, help="Database to serve.")
@click.pass_context
@handle_cli_errors("check")
def check(ctx: click.Context, database: str | None) -> None:
    """Start the backend, wait until it is ready or fails, then stop it.

    Exits with status 1 if the backend could not be started.
    """
    from quarrybar.adapters.factory import DaemonFactory

    config = _load_config(ctx)
    supervisor = DaemonFactory(config).create_supervisor(database)
    quiet = ctx.obj.get("quiet", False)

    if not quiet:
        click.echo(f"Starting {config.daemon.executable}...")
    try:
        supervisor.start()
        # The probe enforces ready_timeout; the margin covers teardown
        state = supervisor.wait_for(
            {StateKind.RUNNING, StateKind.ERROR},
            timeout=config.daemon.ready_timeout + config.daemon.grace_period + 5,
        )
    finally:
        supervisor.close()

    if state.kind is StateKind.ERROR:
        raise QuarryCliError(
            f"Search backend failed to start: {state.message}",
            hint=f"See {get_log_path()} or run with --verbose",
        )
    if not quiet:
        click.echo(f"{format_state(state)} - backend is healthy")


@cli.command()
@click.option(
    "--set-default",
    "default_name",
    default=None,
    metavar="NAME",
    help="Save NAME as the database used on first start.",
)
@click.pass_context
@handle_cli_errors("databases")
def databases(ctx: click.Context, default_name: str | None) -> None:
    """List databases the backend can serve."""
    from quarrybar.adapters.factory import DaemonFactory

    selector = DaemonFactory(_load_config(ctx)).create_selector()

    if default_name is not None:
        from quarrybar.domain.config import QuarryConfig
        from quarrybar.shared.config_io import get_global_config_path, load_config, save_config

        selector.select(default_name)
        path = ctx.obj.get("config_path") or get_global_config_path()
        base = load_config(path) if path.exists() else QuarryConfig.default()
        save_config(
            QuarryConfig.from_partial(base, {"database": {"default": default_name}}),
            path,
        )
        if not ctx.obj.get("quiet", False):
            click.echo(f"✓ Default database set to '{default_name}' in {path}")

    for name in selector.list_databases():
        marker = "*" if name == selector.current else " "
        click.echo(f"{marker} {name}")


@cli.command()
@click.option("--init", "init_file", is_flag=True, help="Write a default config file.")
@click.option("--force", is_flag=True, help="Overwrite an existing file with --init.")
@click.pass_context
@handle_cli_errors("config")
def config(ctx: click.Context, init_file: bool, force: bool) -> None:
    """Show the effective configuration."""
    from quarrybar.shared.config_io import create_default_config_file, get_global_config_path

    path = ctx.obj.get("config_path") or get_global_config_path()

    if init_file:
        if path.exists() and not force:
            raise QuarryCliError(
                f"Config file already exists: {path}",
                hint="Use --force to overwrite it",
            )
        create_default_config_file(path)
        click.echo(f"✓ Wrote default config to {path}")
        return

    cfg = _load_config(ctx)
    source = path if path.exists() else "(built-in defaults)"
    click.echo(f"Config: {source}")
    click.echo("  [daemon]")
    click.echo(f"    executable = {cfg.daemon.executable}")
    click.echo(f"    args = {' '.join(cfg.daemon.args)}")
    click.echo(f"    readiness = {cfg.daemon.readiness}")
    if cfg.daemon.readiness == "socket":
        address = cfg.daemon.ready_socket or f"{cfg.daemon.ready_host}:{cfg.daemon.ready_port}"
        click.echo(f"    ready address = {address}")
    else:
        click.echo(f"    ready_pattern = {cfg.daemon.ready_pattern}")
    click.echo(f"    ready_timeout = {cfg.daemon.ready_timeout:g}")
    click.echo(f"    grace_period = {cfg.daemon.grace_period:g}")
    click.echo("  [database]")
    click.echo(f"    default = {cfg.database.default}")
    click.echo(f"    data_dir = {cfg.database.data_path}")


def main() -> int:
    """Main entrypoint for the CLI."""
    try:
        cli(obj={})
        return 0
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
