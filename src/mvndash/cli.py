"""CLI entry point for mvndash."""

from __future__ import annotations

import logging
import os
import time

import typer
from pydantic import ValidationError

from mvndash.config import DashConfig
from mvndash.errors import DiscoveryError, TabLimitError
from mvndash.process import ProcessOutcome
from mvndash.session.manager import SessionManager
from mvndash.session.tab import BuildFlag, Session

app = typer.Typer(
    name="mvndash",
    help="A terminal dashboard for running and re-running Maven builds.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05


def setup_logging(verbose: bool = False, log_file: str | None = None) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
    )
    logging.getLogger("watchdog").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def _load_config(config_file: str | None) -> DashConfig:
    """Load the config or exit with status 2."""
    try:
        return DashConfig.load(config_file)
    except (ValidationError, ValueError) as e:
        typer.echo(f"Error: invalid configuration: {e}", err=True)
        raise typer.Exit(2)


def _open(manager: SessionManager, path: str) -> Session:
    try:
        return manager.create_session(path)
    except (DiscoveryError, TabLimitError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def tui(
    paths: list[str] = typer.Argument(
        None, help="Project directories to open, one tab each (default: cwd)."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    log_file: str | None = typer.Option(
        None, "--log-file", help="Also write logs to this file."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Open the interactive dashboard."""
    # No basicConfig here: a stderr handler would corrupt the Textual
    # display. The app installs its own handlers on mount.
    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.INFO)
    for h in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(h)

    config = _load_config(config_file)

    from mvndash.tui.app import MvnDashApp

    manager = SessionManager(config)
    MvnDashApp(manager, paths=paths or [os.getcwd()], log_file=log_file).run()


@app.command()
def run(
    goals: list[str] = typer.Argument(..., help="Maven goals, e.g. clean install."),
    module: str | None = typer.Option(
        None, "--module", "-m", help="Module to build (default: the first one)."
    ),
    profiles: list[str] = typer.Option(
        [], "--profile", "-P", help="Profile to enable; prefix with ! to disable."
    ),
    flags: list[str] = typer.Option(
        [], "--flag", "-f", help="Extra flag, e.g. -DskipTests or '-T 4'."
    ),
    path: str = typer.Option(".", "--path", "-p", help="Project directory."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Run goals headlessly and stream the output; exits with the build's code."""
    setup_logging(verbose)
    config = _load_config(config_file)
    manager = SessionManager(config)
    session = _open(manager, path)

    if module is not None and not session.select_module(module):
        typer.echo(f"Error: unknown module {module!r} (known: {', '.join(session.modules)})", err=True)
        raise typer.Exit(1)
    session.apply_selection(session.selected_module(), profiles, [])
    for flag in flags:
        known = next((f for f in session.flags if f.flag == flag), None)
        if known is None:
            known = BuildFlag(flag, flag)
            session.flags.append(known)
        known.enabled = True

    if not session.run(goals):
        _print_new(session, -1)
        raise typer.Exit(1)

    last_index = -1
    try:
        while session.is_running:
            session.poll()
            last_index = _print_new(session, last_index)
            time.sleep(POLL_INTERVAL)
    except KeyboardInterrupt:
        typer.echo("Interrupted, stopping build...", err=True)
        session.kill()
        session.wait(timeout=config.process.kill_grace_period + 5)
    finally:
        session.poll()
        _print_new(session, last_index)
        manager.cleanup()

    result = session.last_result
    if result is None:
        raise typer.Exit(1)
    if result.outcome is not ProcessOutcome.SUCCESS:
        typer.echo(result.describe(), err=True)
    if result.outcome is ProcessOutcome.KILLED:
        raise typer.Exit(130)
    raise typer.Exit(result.code if result.code is not None and result.code >= 0 else 1)


def _print_new(session: Session, last_index: int) -> int:
    """Echo lines stored after ``last_index``; returns the new last index."""
    for line in session.output.lines():
        if line.index > last_index:
            typer.echo(line.text)
            last_index = line.index
    return last_index


@app.command()
def modules(
    path: str = typer.Option(".", "--path", "-p", help="Project directory."),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """List the modules of the project containing PATH."""
    setup_logging()
    config = _load_config(config_file)
    manager = SessionManager(config, persist=False)
    session = _open(manager, path)
    typer.echo(f"Project: {session.root}")
    for name in session.modules:
        typer.echo(f"  {'(root)' if name == '.' else name}")
    if session.profiles:
        typer.echo("Profiles: " + ", ".join(p.name for p in session.profiles))
    manager.cleanup()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
