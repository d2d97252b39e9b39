"""Local directory access for sync operations."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Union

from ..exceptions import LocalIOError

logger = logging.getLogger(__name__)


def entry_name(path: Path) -> Optional[str]:
    """Return the name used to match a local path against remote entries.

    Returns None when the last path component is empty or is not valid
    text (undecodable bytes end up as lone surrogates in the str).
    """
    name = path.name
    if not name:
        return None
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return None
    return name


@dataclass(frozen=True)
class LocalFile:
    """A regular file in the local tree."""

    path: Path

    @property
    def name(self) -> Optional[str]:
        return entry_name(self.path)


@dataclass(frozen=True)
class LocalFolder:
    """A directory in the local tree."""

    path: Path

    @property
    def name(self) -> Optional[str]:
        return entry_name(self.path)


LocalEntry = Union[LocalFile, LocalFolder]


class LocalTree:
    """Filesystem primitives used by the sync engine.

    Every OSError is re-raised as LocalIOError so the engine only has to
    know about the pypcloud exception hierarchy.
    """

    def list_children(self, directory: Path) -> dict[str, LocalEntry]:
        """List the immediate children of a directory.

        Entries that are neither regular files nor directories, and entries
        whose name cannot be derived, are left out.

        Args:
            directory: Directory to list

        Returns:
            Mapping of entry name to LocalFile/LocalFolder

        Raises:
            LocalIOError: If the directory cannot be read
        """
        children: dict[str, LocalEntry] = {}
        try:
            items = list(directory.iterdir())
        except OSError as e:
            raise LocalIOError(directory, e) from e

        for item in items:
            entry: LocalEntry
            if item.is_file():
                entry = LocalFile(item)
            elif item.is_dir():
                entry = LocalFolder(item)
            else:
                logger.debug("Skipping special file %s", item)
                continue

            name = entry.name
            if name is None:
                logger.debug("Skipping entry without usable name: %r", item)
                continue
            children[name] = entry

        return children

    def exists(self, path: Path) -> bool:
        """Check for any entry at ``path``.

        Unlike ``Path.exists`` this is also true for dangling symlinks and
        for the special files that list_children leaves out.
        """
        return os.path.lexists(path)

    def is_empty_directory(self, path: Path) -> bool:
        try:
            with os.scandir(path) as it:
                return next(it, None) is None
        except OSError as e:
            raise LocalIOError(path, e) from e

    def create_directory(self, path: Path) -> None:
        try:
            path.mkdir()
        except OSError as e:
            raise LocalIOError(path, e) from e

    def remove_file(self, path: Path) -> None:
        try:
            path.unlink()
        except OSError as e:
            raise LocalIOError(path, e) from e

    def remove_directory(self, path: Path) -> None:
        """Remove an empty directory."""
        try:
            path.rmdir()
        except OSError as e:
            raise LocalIOError(path, e) from e

    def open_for_read(self, path: Path) -> BinaryIO:
        try:
            return open(path, "rb")
        except OSError as e:
            raise LocalIOError(path, e) from e

    def create_for_write(self, path: Path) -> BinaryIO:
        """Create (or truncate) a file for writing."""
        try:
            return open(path, "wb")
        except OSError as e:
            raise LocalIOError(path, e) from e
