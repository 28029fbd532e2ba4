"""CLI interface for vaultsync."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

import click
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn

from .api import VaultSyncClient
from .auth import require_auth_token
from .config import config
from .exceptions import (
    AuthenticationError,
    ConfigError,
    NotFoundError,
    TransportError,
    VaultSyncError,
)
from .output import OutputFormatter
from .sync import Phase, SyncAction, SyncEngine, SyncSettings
from .utils import DEFAULT_API_URL, DEFAULT_CREDENTIAL_FILE, DEFAULT_MAX_WORKERS

logger = logging.getLogger(__name__)


@click.group()
@click.option("--api-url", envvar="VAULTSYNC_API_URL", help="Sync server URL")
@click.option("--token", "-t", envvar="VAULTSYNC_AUTH_TOKEN", help="Bearer token")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="vaultsync")
@click.pass_context
def main(
    ctx: Any,
    api_url: Optional[str],
    token: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """VaultSync - Push and pull whole-vault snapshots to a sync server."""
    ctx.ensure_object(dict)
    ctx.obj["api_url"] = api_url
    ctx.obj["token"] = token
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("vaultsync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


def _build_settings(
    ctx: Any,
    vault_root: Path,
    vault: Optional[str],
    exclude: tuple[str, ...],
    workers: int,
    credential_file: str,
) -> SyncSettings:
    out: OutputFormatter = ctx.obj["out"]
    try:
        return SyncSettings(
            vault_name=vault or vault_root.resolve().name,
            credential_file=credential_file,
            exclude_patterns=list(exclude),
            max_workers=workers,
        )
    except ValueError as e:
        out.error(str(e))
        ctx.exit(1)
        raise  # Unreachable, but helps type checker


def _build_client(ctx: Any) -> VaultSyncClient:
    out: OutputFormatter = ctx.obj["out"]
    token = require_auth_token(ctx, out)
    try:
        return VaultSyncClient(auth_token=token, api_url=ctx.obj.get("api_url"))
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        raise  # Unreachable, but helps type checker


class _PhaseTracker:
    """Phase callback that remembers the last phase and updates a spinner."""

    def __init__(self) -> None:
        self.phase: Optional[Phase] = None
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def attach(self, progress: Progress, task: TaskID) -> None:
        self._progress = progress
        self._task = task

    def __call__(self, phase: Phase, label: str) -> None:
        self.phase = phase
        if self._progress is not None and self._task is not None:
            self._progress.update(self._task, description=f"{label}...")


@contextmanager
def _phase_display(
    out: OutputFormatter, tracker: _PhaseTracker
) -> Iterator[_PhaseTracker]:
    """Show a transient spinner with the current phase unless output is quiet."""
    if out.quiet or out.json_output:
        yield tracker
        return

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
    ) as progress:
        tracker.attach(progress, progress.add_task("Starting...", total=None))
        yield tracker


def _report_failure(
    ctx: Any,
    out: OutputFormatter,
    verb: str,
    e: Exception,
    tracker: _PhaseTracker,
) -> None:
    where = f" while {tracker.phase.value}" if tracker.phase else ""
    if isinstance(e, NotFoundError):
        out.error(f"{verb} failed{where}: no remote snapshot for this vault")
    elif isinstance(e, TransportError) and not isinstance(e, AuthenticationError):
        out.error(f"{verb} failed{where}: server error: {e}")
    else:
        out.error(f"{verb} failed{where}: {e}")
    ctx.exit(1)


def _common_options(func):
    func = click.option(
        "--credential-file",
        default=DEFAULT_CREDENTIAL_FILE,
        show_default=True,
        help="Credential file inside the vault (never synced or deleted)",
    )(func)
    func = click.option(
        "--workers",
        "-j",
        type=int,
        default=DEFAULT_MAX_WORKERS,
        show_default=True,
        help="Number of parallel file workers",
    )(func)
    func = click.option(
        "--exclude",
        "-e",
        multiple=True,
        help="Glob pattern never synced or deleted (repeatable)",
    )(func)
    func = click.option(
        "--vault",
        "-n",
        help="Vault name on the server (defaults to the directory name)",
    )(func)
    func = click.argument(
        "path",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        default=".",
    )(func)
    return func


@main.command()
@click.option(
    "--api-url",
    prompt="Sync server URL",
    default=DEFAULT_API_URL,
    help="Sync server URL",
)
@click.option(
    "--token",
    prompt="Auth token",
    hide_input=True,
    help="Bearer token",
)
@click.pass_context
def init(ctx: Any, api_url: str, token: str) -> None:
    """Initialize vaultsync configuration.

    Stores the server URL and token in ~/.config/vaultsync/config.json.
    """
    out: OutputFormatter = ctx.obj["out"]
    try:
        config.save_credentials(api_url, token)
    except (OSError, VaultSyncError) as e:
        out.error(f"Failed to save configuration: {e}")
        ctx.exit(1)
    out.success("Configuration saved successfully")
    out.info(f"Config file: {config.get_config_path()}")


@main.command()
@_common_options
@click.pass_context
def push(
    ctx: Any,
    path: Path,
    vault: Optional[str],
    exclude: tuple[str, ...],
    workers: int,
    credential_file: str,
) -> None:
    """Upload a full snapshot of PATH, replacing the remote one.

    Examples:
        vaultsync push ~/notes
        vaultsync push . --vault work -e "*.tmp"
    """
    out: OutputFormatter = ctx.obj["out"]
    settings = _build_settings(ctx, path, vault, exclude, workers, credential_file)
    client = _build_client(ctx)

    out.info(f"Started: backing up '{settings.vault_name}' to origin")
    tracker = _PhaseTracker()
    try:
        with client, _phase_display(out, tracker):
            result = SyncEngine(client, tracker).push(path, settings)
    except KeyboardInterrupt:
        out.warning("Push cancelled by user")
        ctx.exit(130)
    except VaultSyncError as e:
        _report_failure(ctx, out, "Push", e, tracker)
        return

    if result.skipped:
        logger.warning("%d file(s) skipped while zipping", len(result.skipped))

    if out.json_output:
        out.output_json(result.to_dict())
        return
    out.success(
        f"Succeeded: uploaded {result.files} file(s) "
        f"({out.format_size(result.archive_size)}) as '{result.vault_name}'"
    )


@main.command()
@_common_options
@click.option("--dry-run", is_flag=True, help="Show what would change, change nothing")
@click.pass_context
def pull(
    ctx: Any,
    path: Path,
    vault: Optional[str],
    exclude: tuple[str, ...],
    workers: int,
    credential_file: str,
    dry_run: bool,
) -> None:
    """Replace the contents of PATH with the remote snapshot.

    Local files missing from the snapshot are deleted and every file in
    the snapshot is written, overwriting local copies.

    Examples:
        vaultsync pull ~/notes
        vaultsync pull . --vault work --dry-run
    """
    out: OutputFormatter = ctx.obj["out"]
    settings = _build_settings(ctx, path, vault, exclude, workers, credential_file)
    client = _build_client(ctx)

    out.info(f"Started: syncing '{settings.vault_name}' from origin")
    tracker = _PhaseTracker()
    try:
        with client, _phase_display(out, tracker):
            result = SyncEngine(client, tracker).pull(path, settings, dry_run=dry_run)
    except KeyboardInterrupt:
        out.warning("Pull cancelled by user; the vault may be partially updated")
        ctx.exit(130)
    except VaultSyncError as e:
        _report_failure(ctx, out, "Pull", e, tracker)
        return

    if out.json_output:
        out.output_json(result.to_dict())
        return

    stats = result.diff.stats()
    if dry_run:
        _display_plan(out, result.diff)
        out.info(
            f"Dry run: would write {stats['writes']} file(s) "
            f"and delete {stats['deletes']} file(s)"
        )
        return

    # Per-path failures were already logged by the reconciler
    out.success(
        f"Succeeded: wrote {stats['writes']} file(s), "
        f"deleted {stats['deletes']} file(s)"
    )


@main.command()
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.option("--vault", "-n", help="Vault name on the server")
@click.option("--exclude", "-e", multiple=True, help="Glob pattern to exclude")
@click.option(
    "--credential-file",
    default=DEFAULT_CREDENTIAL_FILE,
    show_default=True,
    help="Credential file inside the vault",
)
@click.pass_context
def diff(
    ctx: Any,
    path: Path,
    vault: Optional[str],
    exclude: tuple[str, ...],
    credential_file: str,
) -> None:
    """Show what a pull into PATH would write and delete."""
    out: OutputFormatter = ctx.obj["out"]
    settings = _build_settings(
        ctx, path, vault, exclude, DEFAULT_MAX_WORKERS, credential_file
    )
    client = _build_client(ctx)

    tracker = _PhaseTracker()
    try:
        with client, _phase_display(out, tracker):
            plan = SyncEngine(client, tracker).preview(path, settings)
    except VaultSyncError as e:
        _report_failure(ctx, out, "Diff", e, tracker)
        return

    if out.json_output:
        out.output_json(
            {
                "vault": settings.vault_name,
                "to_write": sorted(plan.to_write),
                "to_delete": sorted(plan.to_delete),
            }
        )
        return

    if plan.is_empty:
        out.info("Remote snapshot is empty and nothing would be deleted")
        return
    _display_plan(out, plan)


def _display_plan(out: OutputFormatter, plan) -> None:
    rows = []
    for decision in plan.decisions():
        label = "write" if decision.action == SyncAction.WRITE else "delete"
        rows.append((label, decision.relative_path))
    out.output_table("Pull plan", rows)


@main.command()
@click.pass_context
def status(ctx: Any) -> None:
    """Show configuration status."""
    out: OutputFormatter = ctx.obj["out"]
    try:
        api_url = ctx.obj.get("api_url") or config.api_url
        configured = bool(ctx.obj.get("token")) or config.is_configured()
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(
            {
                "api_url": api_url,
                "configured": configured,
                "config_file": str(config.get_config_path()),
            }
        )
        return

    out.info(f"Server: {api_url}")
    out.info(f"Config file: {config.get_config_path()}")
    if configured:
        out.success("Auth token configured")
    else:
        out.warning("No auth token configured. Run 'vaultsync init'.")


if __name__ == "__main__":
    main()
