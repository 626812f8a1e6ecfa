"""Filesystem browsing for the side panel."""

from sessiondeck.fs.browser import (
    BrowserError,
    DirEntry,
    create_dir,
    create_file,
    delete_entry,
    list_directory,
    move_entry,
    rename_entry,
)

__all__ = [
    "BrowserError",
    "DirEntry",
    "create_dir",
    "create_file",
    "delete_entry",
    "list_directory",
    "move_entry",
    "rename_entry",
]
