"""Filesystem helpers for assembling build trees.

This module handles:
- Mirroring a directory tree into a build (skipping VCS metadata)
- Symlinking the immediate children of a directory into a build
- Removing directory trees that must be cleared before linking

Symlink targets are always absolute so links keep working when the build
directory is reached through the project's ``www`` link.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from platform_build.errors import (
    COPY_ERROR,
    LINK_ERROR,
    LINK_EXISTS,
    REMOVE_ERROR,
    PlatformBuildError,
)

logger = logging.getLogger(__name__)

# Version control metadata never copied into a build
VCS_DIRS = frozenset({".git", ".svn", ".hg", ".bzr"})


class FilesystemError(PlatformBuildError):
    """Raised when a filesystem step of the build fails."""

    def __init__(self, message: str, code: str = "filesystem_error") -> None:
        super().__init__(message, code=code)


def copy_tree(source: Path, destination: Path) -> None:
    """Copy all files and folders from source into destination.

    Destination is created if missing. Existing files are overwritten.
    Version control metadata directories are skipped at every level.

    Args:
        source: Directory to copy from.
        destination: Directory to copy into.

    Raises:
        FilesystemError: If copying fails.
    """
    logger.debug("Copying %s -> %s", source, destination)
    try:
        shutil.copytree(
            source,
            destination,
            ignore=shutil.ignore_patterns(*VCS_DIRS),
            dirs_exist_ok=True,
        )
    except OSError as e:
        raise FilesystemError(
            f"Failed to copy {source} -> {destination}: {e}",
            code=COPY_ERROR,
        ) from e


def copy_file(source: Path, destination: Path) -> None:
    """Copy a single file, creating the destination's parent directory.

    Raises:
        FilesystemError: If copying fails.
    """
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
    except OSError as e:
        raise FilesystemError(
            f"Failed to copy {source} -> {destination}: {e}",
            code=COPY_ERROR,
        ) from e


def make_link(target: Path, link_path: Path) -> Path:
    """Create link_path as a symlink to the absolute target.

    Raises:
        FilesystemError: If link_path already exists or cannot be created.
    """
    target = target.absolute()
    try:
        link_path.symlink_to(target, target_is_directory=target.is_dir())
    except FileExistsError as e:
        raise FilesystemError(
            f"Cannot link {target}: {link_path} already exists",
            code=LINK_EXISTS,
        ) from e
    except OSError as e:
        raise FilesystemError(
            f"Failed to link {link_path} -> {target}: {e}",
            code=LINK_ERROR,
        ) from e
    return link_path


def link_children(source: Path, destination: Path) -> list[Path]:
    """Symlink all files and folders from source into destination.

    Only the immediate children of source are linked; subdirectories
    appear in destination as single symlinks, not merged trees.

    Args:
        source: Directory whose children are linked.
        destination: Directory receiving the links (created if missing).

    Returns:
        List of created link paths.

    Raises:
        FilesystemError: If an entry with the same name already exists in
            destination, or a link cannot be created.
    """
    # The links won't work if source is a relative path.
    source = source.resolve()

    try:
        destination.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(
            f"Failed to create link destination {destination}: {e}",
            code=LINK_ERROR,
        ) from e

    created: list[Path] = []
    for item in sorted(source.iterdir()):
        created.append(make_link(item, destination / item.name))

    logger.debug("Linked %d entries from %s into %s", len(created), source, destination)
    return created


def remove_tree(path: Path) -> None:
    """Delete a directory and all of its files.

    Does nothing if path is not a directory. Symlinks are removed as links
    and their targets are left untouched.

    Raises:
        FilesystemError: If removal fails.
    """
    if not path.is_dir():
        return

    logger.debug("Removing %s", path)
    try:
        if path.is_symlink():
            path.unlink()
        else:
            shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError(
            f"Failed to remove {path}: {e}",
            code=REMOVE_ERROR,
        ) from e


__all__ = [
    "VCS_DIRS",
    "FilesystemError",
    "copy_file",
    "copy_tree",
    "link_children",
    "make_link",
    "remove_tree",
]
