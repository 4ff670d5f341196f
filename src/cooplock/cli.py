"""cooplock CLI: inspect and manage cooperative locks in a local store."""

from datetime import UTC, datetime
from pathlib import Path

import typer

from cooplock import __version__

from .config import CoopLockConfig, load_config, write_config_template
from .constants import CONFIG_FILE
from .core import LockCoordinator
from .errors import LockError
from .logging import configure_logging
from .models import OperationType, ResourceId
from .output import OutputContext, get_output_context, record_data, set_output_context
from .storage import LocalObjectStore, ObjectStoreError


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"cooplock {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="cooplock",
    help="Cooperative locking over a shared lock file",
    no_args_is_help=True,
)

_config_path: Path = Path(CONFIG_FILE)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    config: Path = typer.Option(
        Path(CONFIG_FILE),
        "--config",
        "-c",
        help="Path to config file",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format for automation",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
) -> None:
    """cooplock - cooperative locking over a shared lock file."""
    global _config_path
    _config_path = config
    console = configure_logging(
        verbosity=verbose,
        quiet=quiet,
        no_color=no_color,
    )
    set_output_context(OutputContext(console=console, json_mode=json_output))


def _load_config() -> CoopLockConfig:
    ctx = get_output_context()
    try:
        return load_config(_config_path)
    except (OSError, ValueError) as e:
        ctx.error(f"Invalid config {_config_path}: {e}")
        raise typer.Exit(1) from None


def _coordinator() -> LockCoordinator:
    config = _load_config()
    return LockCoordinator(LocalObjectStore(config.store.root), config.locking)


def _parse_resources(values: list[str]) -> list[ResourceId]:
    ctx = get_output_context()
    try:
        return [ResourceId.parse(value) for value in values]
    except ValueError as e:
        ctx.error(f"Invalid resource: {e}")
        raise typer.Exit(1) from None


# ============================================================================
# cooplock init
# ============================================================================


@app.command()
def init() -> None:
    """Write a config template."""
    ctx = get_output_context()
    if _config_path.exists():
        ctx.print(f"[yellow]Config already exists:[/yellow] {_config_path}")
        return
    write_config_template(_config_path)
    ctx.success(f"Created config template: {_config_path}", {"path": str(_config_path)})


# ============================================================================
# cooplock list
# ============================================================================


@app.command("list")
def list_locks(
    namespace: str = typer.Argument(..., help="Namespace (bucket) to inspect"),
    expired: bool = typer.Option(False, "--expired", help="Only show expired locks"),
) -> None:
    """List locked operations of a namespace."""
    ctx = get_output_context()
    coordinator = _coordinator()
    try:
        if expired:
            records = coordinator.get_expired_operations(namespace)
        else:
            records = coordinator.get_locked_operations(namespace)
    except (LockError, ObjectStoreError) as e:
        ctx.error(str(e), {"namespace": namespace})
        raise typer.Exit(1) from None

    ctx.records(records, namespace)


# ============================================================================
# cooplock lock / unlock / relock
# ============================================================================


@app.command()
def lock(
    resources: list[str] = typer.Argument(..., help="Resources as namespace/path"),
    operation_id: str = typer.Option(..., "--operation-id", "-o", help="Operation holding the lock"),
    operation_type: OperationType = typer.Option(
        OperationType.DELETE, "--type", "-t", help="Operation type"
    ),
) -> None:
    """Lock resources, waiting until they are free."""
    ctx = get_output_context()
    resource_ids = _parse_resources(resources)
    coordinator = _coordinator()
    try:
        record = coordinator.lock_paths(
            operation_id, datetime.now(UTC), operation_type, *resource_ids
        )
    except LockError as e:
        ctx.error(str(e), {"operation_id": operation_id})
        raise typer.Exit(1) from None
    ctx.success(f"Locked {len(record.resources)} resource(s) for {operation_id}", record_data(record))


@app.command()
def unlock(
    resources: list[str] = typer.Argument(..., help="Resources as namespace/path"),
    operation_id: str = typer.Option(..., "--operation-id", "-o", help="Operation holding the lock"),
) -> None:
    """Release the lock an operation holds on exactly these resources."""
    ctx = get_output_context()
    resource_ids = _parse_resources(resources)
    coordinator = _coordinator()
    try:
        coordinator.unlock_paths(operation_id, *resource_ids)
    except LockError as e:
        ctx.error(str(e), {"operation_id": operation_id})
        raise typer.Exit(1) from None
    ctx.success(f"Unlocked {len(resource_ids)} resource(s) for {operation_id}", {"operation_id": operation_id})


@app.command()
def relock(
    namespace: str = typer.Argument(..., help="Namespace (bucket) of the lock"),
    operation_id: str = typer.Option(..., "--operation-id", "-o", help="Operation holding the lock"),
) -> None:
    """Renew an operation's lock expiration."""
    ctx = get_output_context()
    coordinator = _coordinator()
    try:
        held = next(
            (r for r in coordinator.get_locked_operations(namespace) if r.operation_id == operation_id),
            None,
        )
        if held is None:
            ctx.error(f"Operation {operation_id} holds no lock in {namespace}")
            raise typer.Exit(1)
        record = coordinator.relock_operation(namespace, held)
    except (LockError, ObjectStoreError) as e:
        ctx.error(str(e), {"operation_id": operation_id})
        raise typer.Exit(1) from None
    ctx.success(
        f"Renewed lock for {operation_id} until {record.lock_expiration.isoformat()}",
        record_data(record),
    )
