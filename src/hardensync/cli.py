"""CLI commands for forward-porting the hardened patch series."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .config import DEFAULT_CONFIG_NAME, SyncSettings, load_settings
from .errors import HardenSyncError
from .naming import hardened_branch_name, previous_hardened_branch_name
from .publish import push_hardened_branch
from .sync import SyncPath, SyncRequest, run_sync
from .tools.vcs import GitError

APP_HELP = "Forward-port the hardened patch series onto new upstream releases."

app = typer.Typer(help=APP_HELP, no_args_is_help=True)


def _configure_logging(debug: bool) -> None:
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="[%(levelname)-7s] %(asctime)s %(name)s:%(lineno)d %(message)s",
        )
    else:
        logging.basicConfig(level=logging.INFO, format="[%(levelname)-7s] %(message)s")


def _settings(config: Optional[Path]) -> SyncSettings:
    """Load ``config``, the default config file in the cwd, or built-in defaults."""
    if config is None and Path(DEFAULT_CONFIG_NAME).exists():
        config = Path(DEFAULT_CONFIG_NAME)
    try:
        return load_settings(config)
    except HardenSyncError as error:
        typer.echo(f"Error: {error}", err=True)
        raise typer.Exit(code=1) from error


def _fail(error: Exception) -> typer.Exit:
    typer.echo(f"Error: {error}", err=True)
    return typer.Exit(code=1)


def _require_user(user: Optional[str]) -> str:
    if not user or not user.strip():
        raise _fail(HardenSyncError("a GitHub user is required (--user or $USER)"))
    return user.strip()


@app.command()
def rebase(
    tag: Optional[str] = typer.Option(
        None,
        "--tag",
        help="Upstream tag to rebase onto (defaults to the latest matching tag).",
    ),
    previous: Optional[str] = typer.Option(
        None,
        "--previous",
        help="Previous hardened branch to rebase from.",
    ),
    user: Optional[str] = typer.Option(None, "--user", "-u", envvar="USER", help="GitHub username."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to the sync configuration file."),
    debug: bool = typer.Option(False, "--debug", "-d", help="Debug mode."),
) -> None:
    """Attempt to rebase hardened changes onto a new upstream release."""
    _configure_logging(debug)
    settings = _settings(config)
    request = SyncRequest(user=_require_user(user), tag=tag, previous=previous)

    try:
        outcome = run_sync(settings, request)
    except (HardenSyncError, GitError) as error:
        raise _fail(error) from error

    for record in outcome.remediations:
        typer.echo(f"Remediated entry {record.index}: {record.entry.message} ({record.entry.action.value})")
    if outcome.path is SyncPath.REBASE:
        typer.echo(
            f"Rebased {outcome.replayed} hardened commit(s) of {outcome.branch} onto {outcome.tag}; "
            "use the 'push-user' command to publish it."
        )
    else:
        typer.echo(
            f"Created {outcome.branch} from {outcome.tag} and cherry-picked {outcome.replayed} "
            f"hardened commit(s) from {outcome.base_branch}; use the 'push-rancher' command to publish it."
        )


@app.command("push-user")
def push_user(
    user: Optional[str] = typer.Option(None, "--user", "-u", envvar="USER", help="GitHub username."),
    token: Optional[str] = typer.Option(
        None, "--token", "-t", envvar="GITHUB_TOKEN", help="GitHub read, workflow access token."
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to the sync configuration file."),
    debug: bool = typer.Option(False, "--debug", "-d", help="Debug mode."),
) -> None:
    """Push a hardened branch to the user fork for a PR."""
    _configure_logging(debug)
    settings = _settings(config)
    remote = _require_user(user)
    try:
        branch = push_hardened_branch(settings, remote, token or "", force=True)
    except HardenSyncError as error:
        raise _fail(error) from error
    typer.echo(f"Pushed {branch} to {remote}.")


@app.command("push-rancher")
def push_rancher(
    token: Optional[str] = typer.Option(
        None, "--token", "-t", envvar="GITHUB_TOKEN", help="GitHub read, workflow access token."
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to the sync configuration file."),
    debug: bool = typer.Option(False, "--debug", "-d", help="Debug mode."),
) -> None:
    """Push a new hardened branch to the organization fork."""
    _configure_logging(debug)
    settings = _settings(config)
    remote = settings.repository.organization
    try:
        branch = push_hardened_branch(settings, remote, token or "", force=False)
    except HardenSyncError as error:
        raise _fail(error) from error
    typer.echo(f"Pushed {branch} to {remote}.")


@app.command()
def branches(
    tag: str = typer.Argument(..., help="Upstream tag, e.g. controller-v1.9.3."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to the sync configuration file."),
) -> None:
    """Show the hardened branch names derived from a tag."""
    settings = _settings(config)
    try:
        current = hardened_branch_name(tag, settings.product)
    except HardenSyncError as error:
        raise _fail(error) from error
    typer.echo(f"current: {current}")
    try:
        typer.echo(f"previous: {previous_hardened_branch_name(tag, settings.product)}")
    except HardenSyncError as error:
        typer.echo(f"previous: unavailable ({error})")


@app.command()
def series(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to the sync configuration file."),
) -> None:
    """List the patch series, oldest commit first."""
    settings = _settings(config)
    for index, entry in enumerate(settings.series):
        files = ", ".join(entry.files) if entry.files else "-"
        typer.echo(f"{index:2d}  {entry.action.value:<6}  {entry.message}  [{files}]")


if __name__ == "__main__":
    app()
