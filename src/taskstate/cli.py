"""taskstate CLI: inspect and maintain a task record store."""

import contextlib
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import typer
from rich.console import Console

from taskstate import __version__

from .config import StoreConfig, load_config, write_config_template
from .constants import CONFIG_FILE, DEFAULT_ROOT, ERROR_LOG_FILE, LOG_FILE
from .core import (
    ActiveRecordResolver,
    append_log_entry,
    archive_record,
    backup_file,
    check_record,
    configure_locks,
    create_record,
    get_lock,
    get_record_dir,
    install_signal_handlers,
    is_stale_lock,
    last_lines,
    merge_pending,
    repair_record,
    rotate_log,
    safe_join,
    set_active_record,
)
from .errors import RecordCorruptedError, RecordNotFoundError
from .logging import attach_error_log, configure_logging, detach_error_log
from .output import OutputContext

# Boundary failures go to the error log only; the console gets a short message
error_logger = logging.getLogger("taskstate.boundary")
error_logger.propagate = False


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"taskstate {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="taskstate",
    help="Crash-tolerant, multi-process-safe task record store",
    no_args_is_help=True,
)


@dataclass
class _State:
    root: Path = field(default_factory=lambda: Path(DEFAULT_ROOT))
    hook: bool = False
    ctx: OutputContext | None = None


_state = _State()


def get_output_context() -> OutputContext:
    """Get the current output context."""
    if _state.ctx is None:
        return OutputContext(Console())
    return _state.ctx


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
    root: Path = typer.Option(
        Path(DEFAULT_ROOT),
        "--root",
        "-r",
        envvar="TASKSTATE_ROOT",
        help="Records root directory",
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
    hook: bool = typer.Option(
        False,
        "--hook",
        help="Running from an automation hook: log failures and exit 0",
    ),
) -> None:
    """taskstate - task record store maintenance."""
    console = configure_logging(verbosity=verbose, quiet=quiet, no_color=no_color)
    _state.ctx = OutputContext(console=console, json_mode=json_output)
    _state.root = root
    _state.hook = hook
    install_signal_handlers()


@contextlib.contextmanager
def _boundary(command: str) -> Iterator[StoreConfig]:
    """Run a command, recording failures to the store's error log.

    Yields the store configuration. Any failure ends this invocation with
    exit code 1, or 0 under --hook so the calling pipeline is never blocked.
    If the records root does not exist yet it is created to hold the
    error log of the failure.
    """
    ctx = get_output_context()
    root = _state.root
    handler = attach_error_log(root / ERROR_LOG_FILE, error_logger) if root.is_dir() else None
    try:
        config = load_config(root)
        configure_locks(config.locks.stale_seconds, config.locks.retry_interval_seconds)
        yield config
    except Exception as e:
        if handler is None:
            with contextlib.suppress(OSError):
                root.mkdir(parents=True, exist_ok=True)
                handler = attach_error_log(root / ERROR_LOG_FILE, error_logger)
        error_logger.error("%s failed: %s", command, e, exc_info=True)
        data = {}
        if isinstance(e, RecordCorruptedError):
            data = {"missing": e.missing, "repairable": e.repairable}
        ctx.error(str(e), data)
        raise typer.Exit(0 if _state.hook else 1) from None
    finally:
        if handler is not None:
            detach_error_log(handler, error_logger)


def _resolve_record(record: str | None, config: StoreConfig) -> tuple[str, Path]:
    """Resolve an explicit or the active record to (id, directory)."""
    if record is None:
        resolver = ActiveRecordResolver(
            _state.root,
            ttl_seconds=config.resolver.ttl_seconds,
            lock_timeout=config.locks.timeout_seconds,
        )
        record = resolver.resolve()
        if record is None:
            raise RecordNotFoundError("No active task. Start one with: taskstate new <title>")
    return record, get_record_dir(_state.root, record)


_RECORD_OPTION = typer.Option(None, "--task", "-t", help="Task ID (defaults to active task)")
_FILE_OPTION = typer.Option(LOG_FILE, "--file", "-f", help="File within the task directory")


@app.command()
def init() -> None:
    """Initialize a task store."""
    ctx = get_output_context()
    with _boundary("init"):
        _state.root.mkdir(parents=True, exist_ok=True)
        config_path = _state.root / CONFIG_FILE
        if config_path.exists():
            ctx.print(f"[yellow]Config already exists:[/yellow] {config_path}")
        else:
            write_config_template(_state.root)
            ctx.print(f"[green]Created config template:[/green] {config_path}")
        ctx.success("Task store initialized", {"root": str(_state.root)})


@app.command("new")
def new_task(title: str = typer.Argument(..., help="Task title")) -> None:
    """Create a task and make it active."""
    ctx = get_output_context()
    with _boundary("new") as config:
        record_id = create_record(_state.root, title, lock_timeout=config.locks.timeout_seconds)
        ctx.success(f"Created task {record_id}", {"task": record_id})


@app.command()
def active(
    set_to: str | None = typer.Option(None, "--set", help="Make this task the active one"),
) -> None:
    """Show or set the active task."""
    ctx = get_output_context()
    with _boundary("active") as config:
        if set_to is not None:
            set_active_record(_state.root, set_to, config.locks.timeout_seconds)
            ctx.success(f"Active task: {set_to}", {"task": set_to})
            return
        record_id, record_dir = _resolve_record(None, config)
        ctx.result({"task": record_id, "path": str(record_dir)}, record_id)


@app.command("log")
def log_entry(
    message: str = typer.Argument(..., help="Entry text"),
    record: str | None = _RECORD_OPTION,
) -> None:
    """Append a timestamped entry to a task's activity log."""
    ctx = get_output_context()
    with _boundary("log") as config:
        record_id, record_dir = _resolve_record(record, config)
        appended = append_log_entry(
            record_dir / LOG_FILE,
            message,
            threshold=config.logs.rotation_threshold,
            keep_backups=config.logs.rotation_backups,
            timeout=config.locks.timeout_seconds,
        )
        if appended:
            ctx.result({"task": record_id, "pending": False}, "Logged")
        else:
            ctx.result(
                {"task": record_id, "pending": True},
                "[yellow]Log busy: entry saved to pending file[/yellow]",
            )


@app.command()
def tail(
    lines: int = typer.Option(20, "--lines", "-n", min=0, help="Number of lines"),
    record: str | None = _RECORD_OPTION,
    file: str = _FILE_OPTION,
) -> None:
    """Show the last lines of a task file."""
    ctx = get_output_context()
    with _boundary("tail") as config:
        record_id, record_dir = _resolve_record(record, config)
        result = last_lines(
            safe_join(record_dir, file),
            lines,
            whole_file_limit=config.tail.whole_file_limit,
            block_size=config.tail.block_size,
        )
        ctx.lines(result, {"task": record_id})


@app.command()
def rotate(
    record: str | None = _RECORD_OPTION,
    threshold: int | None = typer.Option(None, "--threshold", min=1, help="Lines to keep"),
) -> None:
    """Rotate a task's activity log if it is over the threshold."""
    ctx = get_output_context()
    with _boundary("rotate") as config:
        record_id, record_dir = _resolve_record(record, config)
        rotated = rotate_log(
            record_dir / LOG_FILE,
            threshold or config.logs.rotation_threshold,
            keep_backups=config.logs.rotation_backups,
            timeout=config.locks.timeout_seconds,
        )
        message = "Log rotated" if rotated else "No rotation needed"
        ctx.result({"task": record_id, "rotated": rotated}, message)


@app.command()
def backup(
    file: str = typer.Argument(..., help="File within the task directory"),
    record: str | None = _RECORD_OPTION,
) -> None:
    """Back up a task file, pruning old backups."""
    ctx = get_output_context()
    with _boundary("backup") as config:
        record_id, record_dir = _resolve_record(record, config)
        target = backup_file(safe_join(record_dir, file), config.backups.max_backups)
        ctx.success(f"Backed up to {target.name}", {"task": record_id, "backup": str(target)})


@app.command()
def check(record: str | None = _RECORD_OPTION) -> None:
    """Check that a task has all required files."""
    ctx = get_output_context()
    with _boundary("check") as config:
        record_id, _ = _resolve_record(record, config)
        health = check_record(_state.root, record_id)
        if not health.intact:
            raise RecordCorruptedError(record_id, health.missing, health.repairable)
        ctx.success(f"Task {record_id} is intact", health.model_dump())


@app.command()
def repair(record: str | None = _RECORD_OPTION) -> None:
    """Recreate missing files of a partially damaged task."""
    ctx = get_output_context()
    with _boundary("repair") as config:
        record_id, _ = _resolve_record(record, config)
        restored = repair_record(_state.root, record_id)
        message = f"Restored: {', '.join(restored)}" if restored else "Nothing to repair"
        ctx.result({"task": record_id, "restored": restored}, message)


@app.command()
def archive(record: str | None = _RECORD_OPTION) -> None:
    """Move a completed task to the archive."""
    ctx = get_output_context()
    with _boundary("archive") as config:
        record_id, _ = _resolve_record(record, config)
        target = archive_record(_state.root, record_id)
        ctx.success(f"Archived {record_id}", {"task": record_id, "path": str(target)})


@app.command("merge-pending")
def merge_pending_cmd(
    record: str | None = _RECORD_OPTION,
    file: str = _FILE_OPTION,
) -> None:
    """Merge entries diverted to a pending file back into the task file."""
    ctx = get_output_context()
    with _boundary("merge-pending") as config:
        record_id, record_dir = _resolve_record(record, config)
        merged = merge_pending(safe_join(record_dir, file), config.locks.timeout_seconds)
        ctx.result({"task": record_id, "merged": merged}, f"Merged {merged} line(s)")


@app.command()
def lock(
    record: str | None = _RECORD_OPTION,
    file: str = _FILE_OPTION,
) -> None:
    """Show who holds the lock on a task file."""
    ctx = get_output_context()
    with _boundary("lock") as config:
        record_id, record_dir = _resolve_record(record, config)
        current = get_lock(safe_join(record_dir, file))
        if current is None:
            ctx.result({"task": record_id, "locked": False}, "Not locked")
            return
        stale = is_stale_lock(current)
        ctx.result(
            {"task": record_id, "locked": True, "stale": stale, **current.model_dump()},
            f"Locked by pid {current.pid} for {current.age_seconds:.1f}s"
            + (" [yellow](stale)[/yellow]" if stale else ""),
        )


if __name__ == "__main__":
    app()
