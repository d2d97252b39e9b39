"""CLI interface for pypcloud."""

import logging
import signal
import threading
from pathlib import Path
from typing import Any, Optional

import click
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from .api import PCloudClient
from .config import load_config
from .exceptions import (
    PCloudConfigError,
    PCloudError,
    RetryExhaustedError,
    SyncCancelledError,
)
from .models import RemoteFile, RemoteFolder, file_from_metadata, folder_from_metadata
from .output import OutputFormatter
from .sync import CompareMethod, RemoteTree, SyncEngine, SyncStats, TransferPolicy
from .utils import (
    DEFAULT_RETRIES,
    EXIT_DATAERR,
    EXIT_INTERRUPTED,
    format_size,
    format_timestamp,
)

logger = logging.getLogger(__name__)


def get_client(ctx: Any, out: OutputFormatter) -> PCloudClient:
    """Build an API client from the configuration, or exit with an error."""
    config_path: Optional[Path] = ctx.obj.get("config_path")
    try:
        config = load_config(config_path)
    except PCloudConfigError as e:
        out.error(str(e))
        ctx.exit(EXIT_DATAERR)
        raise  # Unreachable, but helps type checker
    return PCloudClient(config)


def report_error(out: OutputFormatter, error: Exception) -> None:
    """Print an error, expanding the per-attempt errors of a retry failure."""
    out.error(str(error))
    if isinstance(error, RetryExhaustedError):
        for attempt, cause in enumerate(error.errors, start=1):
            out.warning(f"  attempt {attempt}: {cause}")


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=(
        "Path to the configuration file (default: ~/.config/pcloud.json). "
        "If not found, configuration is loaded from PCLOUD_* environment variables."
    ),
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pypcloud")
@click.pass_context
def main(
    ctx: Any,
    config_path: Optional[Path],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """pypcloud - Synchronize local folders with pCloud."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pypcloud").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


# =========================
# Folder commands
# =========================


@main.group()
def folder() -> None:
    """Folder related commands."""


@folder.command("list")
@click.argument("folder_id", type=int)
@click.pass_context
def list_folder(ctx: Any, folder_id: int) -> None:
    """List the content of a remote folder.

    FOLDER_ID: ID of the folder (0 is the root folder)
    """
    out: OutputFormatter = ctx.obj["out"]
    client = get_client(ctx, out)

    try:
        data = client.list_folder(folder_id)
        result = folder_from_metadata(data.get("metadata") or {})
    except PCloudError as e:
        out.error(f"Unable to list folder: {e}")
        ctx.exit(EXIT_DATAERR)
        return
    finally:
        client.close()

    # folders first, then files, each by name
    entries = sorted(
        result.contents or (),
        key=lambda e: (isinstance(e, RemoteFile), e.name.lower()),
    )

    if out.json_output:
        out.output_json(
            [
                {
                    "id": entry.id,
                    "type": "folder" if isinstance(entry, RemoteFolder) else "file",
                    "name": entry.name,
                    "modified": entry.modified,
                    "size": entry.size if isinstance(entry, RemoteFile) else None,
                }
                for entry in entries
            ]
        )
        return

    rows = []
    for entry in entries:
        if isinstance(entry, RemoteFolder):
            kind, size = "folder", ""
        else:
            kind, size = "file", format_size(entry.size)
        rows.append(
            [str(entry.id), kind, entry.name, size, format_timestamp(entry.modified)]
        )
    out.print_table(["ID", "Type", "Name", "Size", "Updated at"], rows)


def _retry_options(func: Any) -> Any:
    func = click.option(
        "--retry-delay",
        type=click.FloatRange(min=0),
        default=0.0,
        show_default=True,
        help="Base delay in seconds between attempts (doubled on each retry).",
    )(func)
    func = click.option(
        "--retries",
        type=click.IntRange(min=0),
        default=DEFAULT_RETRIES,
        show_default=True,
        help="Number of consecutive retries per transfer.",
    )(func)
    func = click.option(
        "--allow-partial-upload",
        is_flag=True,
        help="Keep partial file if upload fails.",
    )(func)
    func = click.option(
        "--remove-after-upload",
        is_flag=True,
        help="Remove local files when uploaded.",
    )(func)
    return func


def _install_interrupt_handler(
    cancel_event: threading.Event, out: OutputFormatter
) -> Any:
    """Turn the first Ctrl+C into a cancel request for the running engine.

    A second Ctrl+C raises KeyboardInterrupt right away.

    Returns:
        The previous SIGINT handler
    """

    def handle_interrupt(_signum, _frame) -> None:
        if cancel_event.is_set():
            raise KeyboardInterrupt
        out.warning("\nInterrupt received, finishing current transfer...")
        cancel_event.set()

    return signal.signal(signal.SIGINT, handle_interrupt)


def _run_engine(
    ctx: Any,
    out: OutputFormatter,
    mode: str,
    path: Path,
    folder_id: int,
    policy: TransferPolicy,
) -> None:
    client = get_client(ctx, out)
    cancel_event = threading.Event()
    engine = SyncEngine(RemoteTree(client), output=out, cancel_event=cancel_event)

    if not out.quiet:
        out.info(f"{mode.capitalize()}: {path} <-> folder {folder_id}")

    previous_handler = _install_interrupt_handler(cancel_event, out)
    stats: SyncStats
    try:
        if mode == "sync":
            stats = engine.sync_folder(path, folder_id, policy)
        else:
            stats = engine.upload_folder(path, folder_id, policy)
    except (KeyboardInterrupt, SyncCancelledError):
        out.warning("Sync cancelled by user")
        ctx.exit(EXIT_INTERRUPTED)
        return
    except (PCloudError, ValueError) as e:
        report_error(out, e)
        ctx.exit(EXIT_DATAERR)
        return
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)
        client.close()

    if out.json_output:
        out.output_json(stats.to_dict())
    else:
        engine.display_summary(stats)

    if stats.conflicts:
        ctx.exit(EXIT_DATAERR)


@folder.command()
@click.argument("folder_id", type=int)
@click.argument(
    "path", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option("--disable-upload", is_flag=True, help="Disable uploading local files.")
@click.option(
    "--disable-download", is_flag=True, help="Disable downloading remote files."
)
@click.option(
    "--remove-after-download",
    is_flag=True,
    help="Remove remote files when downloaded.",
)
@_retry_options
@click.pass_context
def sync(
    ctx: Any,
    folder_id: int,
    path: Path,
    disable_upload: bool,
    disable_download: bool,
    remove_after_download: bool,
    remove_after_upload: bool,
    allow_partial_upload: bool,
    retries: int,
    retry_delay: float,
) -> None:
    """Synchronize a local directory with a remote folder.

    Remote-only entries are downloaded, local-only entries are uploaded and
    folders present on both sides are synchronized recursively. Files that
    exist on both sides are left untouched.

    \b
    FOLDER_ID: ID of the remote folder
    PATH: Local folder to synchronize

    Examples:
        pcloud folder sync 12345 ./documents
        pcloud folder sync 12345 ./inbox --disable-upload --remove-after-download
    """
    out: OutputFormatter = ctx.obj["out"]
    policy = TransferPolicy(
        upload=not disable_upload,
        download=not disable_download,
        remove_after_upload=remove_after_upload,
        remove_after_download=remove_after_download,
        allow_partial_upload=allow_partial_upload,
        retries=retries,
        retry_delay=retry_delay,
    )
    _run_engine(ctx, out, "sync", path, folder_id, policy)


@folder.command()
@click.argument("folder_id", type=int)
@click.argument(
    "path", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option(
    "--compare-method",
    type=click.Choice([m.value for m in CompareMethod]),
    default=CompareMethod.CHECKSUM.value,
    show_default=True,
    help="Strategy used to check if a file should be uploaded.",
)
@_retry_options
@click.pass_context
def upload(
    ctx: Any,
    folder_id: int,
    path: Path,
    compare_method: str,
    remove_after_upload: bool,
    allow_partial_upload: bool,
    retries: int,
    retry_delay: float,
) -> None:
    """Upload a local directory into a remote folder.

    \b
    FOLDER_ID: ID of the remote folder
    PATH: Local folder to upload

    Compare methods:
      - force: always upload
      - presence: upload files missing remotely
      - checksum: upload files missing remotely or with a different checksum
    """
    out: OutputFormatter = ctx.obj["out"]
    policy = TransferPolicy(
        download=False,
        remove_after_upload=remove_after_upload,
        allow_partial_upload=allow_partial_upload,
        retries=retries,
        retry_delay=retry_delay,
        compare_method=CompareMethod(compare_method),
    )
    _run_engine(ctx, out, "upload", path, folder_id, policy)


# =========================
# File commands
# =========================


@main.group()
def file() -> None:
    """File related commands."""


@file.command()
@click.argument("file_id", type=int)
@click.argument("name")
@click.pass_context
def rename(ctx: Any, file_id: int, name: str) -> None:
    """Rename a remote file.

    \b
    FILE_ID: ID of the file
    NAME: New file name
    """
    out: OutputFormatter = ctx.obj["out"]
    client = get_client(ctx, out)

    try:
        data = client.rename_file(file_id, name)
        renamed = file_from_metadata(data.get("metadata") or {})
    except PCloudError as e:
        out.error(f"Unable to rename file: {e}")
        ctx.exit(EXIT_DATAERR)
        return
    finally:
        client.close()

    if out.json_output:
        out.output_json({"id": renamed.file_id, "name": renamed.name})
    else:
        out.success(f"File renamed: {renamed.name}")


@file.command()
@click.argument("file_id", type=int)
@click.pass_context
def delete(ctx: Any, file_id: int) -> None:
    """Delete a remote file.

    FILE_ID: ID of the file
    """
    out: OutputFormatter = ctx.obj["out"]
    client = get_client(ctx, out)

    try:
        client.delete_file(file_id)
    except PCloudError as e:
        out.error(f"Unable to delete file: {e}")
        ctx.exit(EXIT_DATAERR)
        return
    finally:
        client.close()

    out.success("File deleted")


@file.command()
@click.argument("file_id", type=int)
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--no-progress", is_flag=True, help="Disable progress bars")
@click.pass_context
def download(ctx: Any, file_id: int, path: Path, no_progress: bool) -> None:
    """Download a remote file.

    \b
    FILE_ID: ID of the file
    PATH: Local destination file
    """
    out: OutputFormatter = ctx.obj["out"]
    client = get_client(ctx, out)
    show_progress = not no_progress and not out.quiet and not out.json_output

    try:
        with open(path, "wb") as sink:
            if show_progress:
                with Progress(
                    "[progress.description]{task.description}",
                    BarColumn(),
                    DownloadColumn(),
                    TransferSpeedColumn(),
                    TimeRemainingColumn(),
                ) as progress:
                    task = progress.add_task(path.name, total=None)

                    def on_progress(done: int, total: int) -> None:
                        progress.update(task, completed=done, total=total or None)

                    size = client.download_file(file_id, sink, on_progress)
            else:
                size = client.download_file(file_id, sink)
    except OSError as e:
        out.error(f"Unable to write {path}: {e}")
        ctx.exit(EXIT_DATAERR)
        return
    except PCloudError as e:
        out.error(f"Unable to download file: {e}")
        ctx.exit(EXIT_DATAERR)
        return
    finally:
        client.close()

    if out.json_output:
        out.output_json({"path": str(path), "size": size})
    else:
        out.success(f"File downloaded: {path} ({format_size(size)})")


@file.command()
@click.argument("file_id", type=int)
@click.argument("to_folder_id", type=int)
@click.pass_context
def copy(ctx: Any, file_id: int, to_folder_id: int) -> None:
    """Copy a remote file into another folder.

    \b
    FILE_ID: ID of the file
    TO_FOLDER_ID: ID of the destination folder
    """
    out: OutputFormatter = ctx.obj["out"]
    client = get_client(ctx, out)

    try:
        data = client.copy_file(file_id, to_folder_id)
        copied = file_from_metadata(data.get("metadata") or {})
    except PCloudError as e:
        out.error(f"Unable to copy file: {e}")
        ctx.exit(EXIT_DATAERR)
        return
    finally:
        client.close()

    if out.json_output:
        out.output_json({"id": copied.file_id, "name": copied.name})
    else:
        out.success(f"File copied: {copied.name} (ID {copied.file_id})")
