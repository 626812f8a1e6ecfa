"""Directory listing and simple file operations."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class BrowserError(Exception):
    """A filesystem operation was refused or failed."""


@dataclass(frozen=True)
class DirEntry:
    name: str
    is_dir: bool


def list_directory(path: str | None = None) -> list[DirEntry]:
    """List a directory: sub-directories first, then files.

    Both groups are sorted case-insensitively by name. Defaults to the
    current working directory.
    """
    directory = Path(path) if path else Path.cwd()
    try:
        children = list(os.scandir(directory))
    except OSError as e:
        raise BrowserError(f"Failed to read directory: {e}") from e

    dirs: list[DirEntry] = []
    files: list[DirEntry] = []
    for child in children:
        try:
            is_dir = child.is_dir()
        except OSError:
            is_dir = False
        (dirs if is_dir else files).append(DirEntry(name=child.name, is_dir=is_dir))

    dirs.sort(key=lambda e: e.name.lower())
    files.sort(key=lambda e: e.name.lower())
    return dirs + files


def rename_entry(old_path: str, new_path: str) -> None:
    src = Path(old_path)
    if not src.exists():
        raise BrowserError(f"Source does not exist: {old_path}")
    dest = Path(new_path)
    if dest.exists():
        raise BrowserError(f"Destination already exists: {new_path}")
    try:
        src.rename(dest)
    except OSError as e:
        raise BrowserError(f"Rename failed: {e}") from e
    logger.info("Renamed %s -> %s", src, dest)


def delete_entry(path: str) -> None:
    """Delete a file, or a directory and everything under it."""
    p = Path(path)
    if not p.exists():
        raise BrowserError(f"Path does not exist: {path}")
    try:
        if p.is_dir() and not p.is_symlink():
            shutil.rmtree(p)
        else:
            p.unlink()
    except OSError as e:
        kind = "directory" if p.is_dir() else "file"
        raise BrowserError(f"Delete {kind} failed: {e}") from e
    logger.info("Deleted %s", p)


def move_entry(src: str, dest_dir: str) -> None:
    """Move ``src`` into ``dest_dir``, keeping its name."""
    src_path = Path(src)
    if not src_path.exists():
        raise BrowserError(f"Source does not exist: {src}")
    if not src_path.name:
        raise BrowserError("Cannot determine file name")
    dest_path = Path(dest_dir) / src_path.name
    if dest_path.exists():
        raise BrowserError(f"Destination already exists: {dest_path}")
    try:
        src_path.rename(dest_path)
    except OSError as e:
        raise BrowserError(f"Move failed: {e}") from e
    logger.info("Moved %s -> %s", src_path, dest_path)


def create_file(path: str) -> None:
    """Create an empty file; fails if anything already exists there."""
    try:
        with open(path, "x"):
            pass
    except OSError as e:
        raise BrowserError(f"Create file failed: {e}") from e


def create_dir(path: str) -> None:
    try:
        os.mkdir(path)
    except OSError as e:
        raise BrowserError(f"Create directory failed: {e}") from e
