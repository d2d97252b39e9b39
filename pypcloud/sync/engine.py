"""Core sync engine reconciling a local directory with a pCloud folder."""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..exceptions import LocalIOError, SyncCancelledError
from ..models import RemoteEntry, RemoteFile, RemoteFolder
from ..output import OutputFormatter
from .comparator import UploadDecision, classify, should_upload_file
from .policy import TransferPolicy, with_retry
from .remote import RemoteTree
from .scanner import LocalEntry, LocalFile, LocalFolder, LocalTree

logger = logging.getLogger(__name__)


@dataclass
class SyncConflict:
    """A name that is a file on one side and a folder on the other."""

    local_path: Path
    remote_entry: RemoteEntry
    reason: str


@dataclass
class SyncStats:
    """Counters collected during one run."""

    uploads: int = 0
    downloads: int = 0
    folders_created: int = 0
    deletes_local: int = 0
    deletes_remote: int = 0
    skips: int = 0
    conflicts: list[SyncConflict] = field(default_factory=list)

    @property
    def transfers(self) -> int:
        """Number of files moved in either direction."""
        return self.uploads + self.downloads

    def to_dict(self) -> dict:
        return {
            "uploads": self.uploads,
            "downloads": self.downloads,
            "folders_created": self.folders_created,
            "deletes_local": self.deletes_local,
            "deletes_remote": self.deletes_remote,
            "skips": self.skips,
            "conflicts": [
                {"path": str(c.local_path), "reason": c.reason} for c in self.conflicts
            ],
        }


class SyncEngine:
    """Reconciles local and remote trees level by level.

    Each directory level is listed fresh on both sides, its names are
    classified, then three phases run in order: download remote-only
    entries, upload local-only entries, recurse into common folders.
    Folders are handled depth-first. Both trees must be acyclic.

    A transfer that exhausts its retry budget aborts the whole run.
    """

    def __init__(
        self,
        remote: RemoteTree,
        local: Optional[LocalTree] = None,
        output: Optional[OutputFormatter] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """Initialize sync engine.

        Args:
            remote: Remote tree access
            local: Local tree access (default: LocalTree())
            output: Output formatter for displaying progress/status
            cancel_event: When set, the run stops at the next directory
                level or retry attempt with SyncCancelledError
        """
        self.remote = remote
        self.local = local or LocalTree()
        self.output = output or OutputFormatter()
        self.cancel_event = cancel_event

    # =========================
    # Entry points
    # =========================

    def sync_folder(
        self, local_path: Path, folder_id: int, policy: TransferPolicy
    ) -> SyncStats:
        """Two-way reconcile ``local_path`` with remote folder ``folder_id``.

        Args:
            local_path: Local directory
            folder_id: Remote folder ID
            policy: Transfer settings for this run

        Returns:
            Statistics of the run

        Raises:
            ValueError: If local_path is not an existing directory
            RetryExhaustedError: If a transfer failed every attempt
            PCloudError: On any other unrecovered remote or local failure

        Examples:
            >>> engine = SyncEngine(RemoteTree(client))  # doctest: +SKIP
            >>> stats = engine.sync_folder(Path("/docs"), 12345, TransferPolicy())
        """
        self._validate_local_path(local_path)
        stats = SyncStats()
        folder = self.remote.list(folder_id)
        self._sync_level(folder, local_path, policy, stats)
        return stats

    def upload_folder(
        self, local_path: Path, folder_id: int, policy: TransferPolicy
    ) -> SyncStats:
        """Upload ``local_path`` into remote folder ``folder_id``.

        Remote-only entries are left alone. Files that may already exist
        remotely go through ``policy.compare_method``.
        """
        self._validate_local_path(local_path)
        stats = SyncStats()
        folder = self.remote.list(folder_id)
        self._upload_level(local_path, folder, policy, stats)
        return stats

    def _validate_local_path(self, local_path: Path) -> None:
        if not local_path.exists():
            raise ValueError(f"Local directory does not exist: {local_path}")
        if not local_path.is_dir():
            raise ValueError(f"Local path is not a directory: {local_path}")

    def _check_cancelled(self, local_path: Path) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise SyncCancelledError(f"Sync cancelled at {local_path}")

    # =========================
    # Two-way sync
    # =========================

    def _sync_level(
        self,
        folder: RemoteFolder,
        local_path: Path,
        policy: TransferPolicy,
        stats: SyncStats,
    ) -> None:
        """Reconcile one directory level and recurse into its folders.

        Args:
            folder: Remote folder, listed with its contents
            local_path: Matching local directory
            policy: Transfer settings
            stats: Statistics to update
        """
        self._check_cancelled(local_path)

        remote_entries = folder.children()
        local_entries = self.local.list_children(local_path)
        names = classify(set(remote_entries), set(local_entries))
        logger.debug(
            "%s: %d remote-only, %d local-only, %d common",
            local_path,
            len(names.remote_only),
            len(names.local_only),
            len(names.common),
        )

        if policy.download:
            for name in sorted(names.remote_only):
                self._download_entry(
                    name, remote_entries[name], local_path, policy, stats
                )
        else:
            stats.skips += len(names.remote_only)

        if policy.upload:
            for name in sorted(names.local_only):
                self._upload_entry(name, local_entries[name], folder, policy, stats)
        else:
            stats.skips += len(names.local_only)

        for name in sorted(names.common):
            self._sync_common(
                remote_entries[name], local_entries[name], policy, stats
            )

    def _download_entry(
        self,
        name: str,
        entry: RemoteEntry,
        local_path: Path,
        policy: TransferPolicy,
        stats: SyncStats,
    ) -> None:
        """Download a remote-only entry into ``local_path``.

        Names taken by a local entry that list_children skipped (special
        files, dangling symlinks) are reported as conflicts and never
        written to.
        """
        target = local_path / name
        if self.local.exists(target):
            self._record_conflict(
                target, entry, "local entry is neither a file nor a folder", stats
            )
            return

        if isinstance(entry, RemoteFile):
            self._download_file(target, entry, policy, stats)
        elif isinstance(entry, RemoteFolder):
            self._download_folder(target, entry, policy, stats)
        else:
            raise TypeError(f"Unexpected remote entry: {entry!r}")

    def _download_file(
        self,
        target: Path,
        remote_file: RemoteFile,
        policy: TransferPolicy,
        stats: SyncStats,
    ) -> None:
        """Download a single file with retries, then apply removal policy."""
        logger.info("Downloading %s to %s", remote_file.name, target)
        with_retry(
            lambda: self._fetch_file(remote_file.file_id, target),
            policy.retries,
            f"download {target}",
            retry_delay=policy.retry_delay,
            cancel_event=self.cancel_event,
        )
        stats.downloads += 1
        self.output.info(f"↓ {target}")

        if policy.remove_after_download:
            logger.info("Deleting remote file %s", remote_file.name)
            self.remote.delete_file(remote_file.file_id)
            stats.deletes_remote += 1

    def _download_folder(
        self,
        target: Path,
        remote_folder: RemoteFolder,
        policy: TransferPolicy,
        stats: SyncStats,
    ) -> None:
        """Create the local directory and sync the remote folder into it."""
        logger.info("Downloading folder %s to %s", remote_folder.name, target)
        self.local.create_directory(target)
        stats.folders_created += 1

        child = self.remote.list(remote_folder.folder_id)
        self._sync_level(child, target, policy, stats)

        if policy.remove_after_download:
            logger.info("Deleting remote folder %s", remote_folder.name)
            self.remote.delete_folder_recursive(remote_folder.folder_id)
            stats.deletes_remote += 1

    def _upload_entry(
        self,
        name: str,
        entry: LocalEntry,
        folder: RemoteFolder,
        policy: TransferPolicy,
        stats: SyncStats,
    ) -> None:
        """Upload a local-only entry into ``folder``."""
        if isinstance(entry, LocalFile):
            self._upload_file(name, entry.path, folder, policy, stats)
        elif isinstance(entry, LocalFolder):
            self._upload_directory(name, entry.path, folder, policy, stats)
        else:
            raise TypeError(f"Unexpected local entry: {entry!r}")

    def _upload_file(
        self,
        name: str,
        path: Path,
        folder: RemoteFolder,
        policy: TransferPolicy,
        stats: SyncStats,
    ) -> None:
        """Upload a single file with retries, then apply removal policy."""
        logger.info("Uploading %s to folder %s", path, folder.folder_id)
        with_retry(
            lambda: self._send_file(name, path, folder.folder_id, policy),
            policy.retries,
            f"upload {path}",
            retry_delay=policy.retry_delay,
            cancel_event=self.cancel_event,
        )
        stats.uploads += 1
        self.output.info(f"↑ {path}")

        if policy.remove_after_upload:
            logger.info("Deleting local file %s", path)
            self.local.remove_file(path)
            stats.deletes_local += 1

    def _upload_directory(
        self,
        name: str,
        path: Path,
        parent: RemoteFolder,
        policy: TransferPolicy,
        stats: SyncStats,
    ) -> None:
        """Create the remote folder and sync the local directory into it."""
        logger.info("Uploading folder %s to folder %s", path, parent.folder_id)
        created = self.remote.create_folder(name, parent.folder_id, ignore_exists=True)
        stats.folders_created += 1

        self._sync_level(self.remote.list(created.folder_id), path, policy, stats)

        if policy.remove_after_upload:
            self._remove_local_directory(path, stats)

    def _sync_common(
        self,
        remote_entry: RemoteEntry,
        local_entry: LocalEntry,
        policy: TransferPolicy,
        stats: SyncStats,
    ) -> None:
        """Handle a name present on both sides.

        Folders are synced recursively, file pairs are left alone and a
        file facing a folder is recorded as a conflict.
        """
        if isinstance(remote_entry, RemoteFolder):
            if isinstance(local_entry, LocalFolder):
                child = self.remote.list(remote_entry.folder_id)
                self._sync_level(child, local_entry.path, policy, stats)
            else:
                self._record_conflict(
                    local_entry.path,
                    remote_entry,
                    "remote folder but local file",
                    stats,
                )
        elif isinstance(remote_entry, RemoteFile):
            if isinstance(local_entry, LocalFile):
                # content and timestamps are not compared
                logger.debug("%s exists on both sides, not compared", local_entry.path)
                stats.skips += 1
            else:
                self._record_conflict(
                    local_entry.path,
                    remote_entry,
                    "remote file but local folder",
                    stats,
                )
        else:
            raise TypeError(f"Unexpected remote entry: {remote_entry!r}")

    def _record_conflict(
        self,
        local_path: Path,
        remote_entry: RemoteEntry,
        reason: str,
        stats: SyncStats,
    ) -> None:
        logger.warning("Type conflict at %s: %s", local_path, reason)
        stats.conflicts.append(SyncConflict(local_path, remote_entry, reason))
        self.output.warning(f"⚠ Conflict: {local_path}: {reason}")

    def _remove_local_directory(self, path: Path, stats: SyncStats) -> None:
        """Remove an uploaded directory once everything in it is gone.

        Entries that were kept (conflicts, unverified files, special files)
        keep the directory in place.
        """
        if not self.local.is_empty_directory(path):
            logger.warning("Keeping local folder %s, it still has entries", path)
            return
        logger.info("Deleting local folder %s", path)
        self.local.remove_directory(path)
        stats.deletes_local += 1

    # =========================
    # Upload-only variant
    # =========================

    def _upload_level(
        self,
        local_path: Path,
        folder: RemoteFolder,
        policy: TransferPolicy,
        stats: SyncStats,
    ) -> None:
        """Upload the entries of one local directory into ``folder``.

        Remote-only entries are ignored. Names that are a file on one side
        and a folder on the other are recorded as conflicts.
        """
        self._check_cancelled(local_path)

        remote_entries = folder.children()
        for name, entry in sorted(self.local.list_children(local_path).items()):
            existing = remote_entries.get(name)
            if isinstance(entry, LocalFolder):
                if isinstance(existing, RemoteFile):
                    self._record_conflict(
                        entry.path, existing, "remote file but local folder", stats
                    )
                    continue
                self._upload_tree(name, entry.path, folder, policy, stats)
            elif isinstance(entry, LocalFile):
                if isinstance(existing, RemoteFolder):
                    self._record_conflict(
                        entry.path, existing, "remote folder but local file", stats
                    )
                    continue
                self._upload_file_checked(name, entry.path, folder, policy, stats)
            else:
                raise TypeError(f"Unexpected local entry: {entry!r}")

    def _upload_tree(
        self,
        name: str,
        path: Path,
        parent: RemoteFolder,
        policy: TransferPolicy,
        stats: SyncStats,
    ) -> None:
        """Ensure the remote folder exists, then upload the directory into it."""
        created = self.remote.create_folder(name, parent.folder_id, ignore_exists=True)
        if name not in parent.children():
            stats.folders_created += 1

        self._upload_level(path, self.remote.list(created.folder_id), policy, stats)

        if policy.remove_after_upload:
            self._remove_local_directory(path, stats)

    def _upload_file_checked(
        self,
        name: str,
        path: Path,
        folder: RemoteFolder,
        policy: TransferPolicy,
        stats: SyncStats,
    ) -> None:
        """Compare a file with its remote counterpart and upload it if needed.

        The comparison and the transfer share one retry budget. With
        ``remove_after_upload`` the local file is deleted after an upload
        or a confirmed match, never when it could not be compared.
        """

        def attempt() -> UploadDecision:
            decision = should_upload_file(
                policy.compare_method, self.remote, path, name, folder
            )
            if decision == UploadDecision.UPLOAD:
                self._send_file(name, path, folder.folder_id, policy)
            return decision

        decision = with_retry(
            attempt,
            policy.retries,
            f"upload {path}",
            retry_delay=policy.retry_delay,
            cancel_event=self.cancel_event,
        )
        if decision == UploadDecision.UPLOAD:
            stats.uploads += 1
            self.output.info(f"↑ {path}")
        else:
            stats.skips += 1

        if decision == UploadDecision.UNVERIFIED:
            self.output.warning(f"⚠ Not uploaded, cannot read: {path}")
            return

        if policy.remove_after_upload:
            logger.info("Deleting local file %s", path)
            self.local.remove_file(path)
            stats.deletes_local += 1

    # =========================
    # Single-item transfers
    # =========================

    def _fetch_file(self, file_id: int, target: Path) -> int:
        """One download attempt; truncates ``target`` each time."""
        try:
            with self.local.create_for_write(target) as sink:
                return self.remote.download(file_id, sink)
        except OSError as e:
            raise LocalIOError(target, e) from e

    def _send_file(
        self, name: str, path: Path, folder_id: int, policy: TransferPolicy
    ) -> RemoteFile:
        """One upload attempt."""
        try:
            with self.local.open_for_read(path) as source:
                return self.remote.upload(
                    name,
                    folder_id,
                    source,
                    allow_partial=policy.allow_partial_upload,
                )
        except OSError as e:
            raise LocalIOError(path, e) from e

    # =========================
    # Reporting
    # =========================

    def display_summary(self, stats: SyncStats) -> None:
        """Display the statistics of a finished run."""
        if self.output.quiet:
            return

        self.output.print("")
        self.output.success("Sync complete!")
        if stats.transfers or stats.deletes_local or stats.deletes_remote:
            self.output.info(f"  Uploaded: {stats.uploads}")
            self.output.info(f"  Downloaded: {stats.downloads}")
            if stats.deletes_local:
                self.output.info(f"  Deleted locally: {stats.deletes_local}")
            if stats.deletes_remote:
                self.output.info(f"  Deleted remotely: {stats.deletes_remote}")
        else:
            self.output.info("No changes needed - everything is in sync!")
        if stats.skips:
            self.output.info(f"  Skipped: {stats.skips}")
        if stats.conflicts:
            self.output.warning(f"  ⚠ Conflicts: {len(stats.conflicts)}")
            for conflict in stats.conflicts:
                self.output.warning(f"    {conflict.local_path}: {conflict.reason}")
