"""Build service module.

This module provides the high-level build API:
- build(): Main entry point - build the project and republish ``www``
- Per-project locking to prevent concurrent builds
- Atomic replacement of the live ``www`` symlink
- Listing and cleaning up old builds
"""

from __future__ import annotations

import fcntl
import logging
import os
import re
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from platform_build.builds.fsops import remove_tree
from platform_build.builds.strategy import build_log_path, resolve
from platform_build.config import get_settings
from platform_build.errors import LIVE_LINK_ERROR, LOCK_TIMEOUT, PlatformBuildError
from platform_build.types import BuildReport

if TYPE_CHECKING:
    from platform_build.config import Settings

logger = logging.getLogger(__name__)

BUILDS_DIRNAME = "builds"
LIVE_LINK_NAME = "www"
LOCK_FILENAME = ".build.lock"

TIMESTAMP_FORMAT = "%Y-%m-%d--%H-%M-%S"
BUILD_NAME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}--\d{2}-\d{2}-\d{2}--.+$")


class BuildServiceError(PlatformBuildError):
    """Base error for build service operations."""

    def __init__(self, message: str, code: str = "build_service_error") -> None:
        super().__init__(message, code=code)


@contextmanager
def project_lock(
    project_root: Path,
    timeout: float | None = None,
) -> Iterator[None]:
    """Acquire the build lock for a project.

    Uses a file-based lock so two builds of the same project never race on
    the build tree or the live link.

    Args:
        project_root: Project to lock.
        timeout: Lock acquisition timeout in seconds (None = blocking).

    Yields:
        None when lock is acquired.

    Raises:
        BuildServiceError: If lock cannot be acquired within timeout.
    """
    lock_file = project_root / LOCK_FILENAME

    logger.debug("Acquiring build lock: %s", lock_file)

    fd = os.open(str(lock_file), os.O_RDWR | os.O_CREAT, 0o600)
    lock_acquired = False
    try:
        if timeout is not None:
            start = time.monotonic()
            while True:
                try:
                    fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                    lock_acquired = True
                    break
                except BlockingIOError:
                    if time.monotonic() - start >= timeout:
                        raise BuildServiceError(
                            f"Another build of {project_root} is in progress",
                            code=LOCK_TIMEOUT,
                        ) from None
                    time.sleep(0.1)
        else:
            fcntl.flock(fd, fcntl.LOCK_EX)
            lock_acquired = True

        logger.debug("Build lock acquired: %s", lock_file)
        yield
    finally:
        if lock_acquired:
            fcntl.flock(fd, fcntl.LOCK_UN)
            logger.debug("Build lock released: %s", lock_file)
        os.close(fd)


def compute_build_dir(
    project_root: Path,
    environment_id: str,
    now: datetime | None = None,
) -> Path:
    """Compute the directory for a new build.

    Args:
        project_root: The project root.
        environment_id: Environment id, used as a build suffix.
        now: Build time (defaults to the current UTC time).

    Returns:
        ``<project_root>/builds/<Y-m-d--H-M-S>--<environment_id>``.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    name = f"{now.strftime(TIMESTAMP_FORMAT)}--{environment_id}"
    return project_root / BUILDS_DIRNAME / name


def publish_live_link(project_root: Path, build_dir: Path) -> Path:
    """Point the project's www link at a build.

    A fresh symlink is created beside ``www`` and renamed over it, so
    ``www`` always points at either the old or the new build.

    Args:
        project_root: The project root.
        build_dir: Build directory to publish.

    Returns:
        Path of the www link.

    Raises:
        BuildServiceError: If www is a real directory or the link cannot be
            replaced.
    """
    www_link = project_root / LIVE_LINK_NAME
    if www_link.exists() and not www_link.is_symlink():
        raise BuildServiceError(
            f"{www_link} exists and is not a symlink; refusing to replace it",
            code=LIVE_LINK_ERROR,
        )

    tmp_link = project_root / f".{LIVE_LINK_NAME}.{uuid.uuid4().hex[:8]}"
    try:
        tmp_link.symlink_to(build_dir.absolute(), target_is_directory=True)
        os.replace(tmp_link, www_link)
    except OSError as e:
        if tmp_link.is_symlink():
            tmp_link.unlink()
        raise BuildServiceError(
            f"Failed to point {www_link} at {build_dir}: {e}",
            code=LIVE_LINK_ERROR,
        ) from e

    logger.info("Pointed %s at %s", www_link, build_dir)
    return www_link


def get_live_build(project_root: Path) -> Path | None:
    """Return the build directory www currently points at, if any."""
    www_link = project_root / LIVE_LINK_NAME
    if not www_link.is_symlink():
        return None
    # Relative targets are relative to the link's directory, not the cwd.
    return www_link.parent / os.readlink(www_link)


def build(
    project_root: Path,
    environment_id: str,
    settings: Settings | None = None,
    copy: bool = False,
) -> BuildReport:
    """Build the project.

    Args:
        project_root: The path to the project to be built.
        environment_id: The environment id, used as a build suffix.
        settings: Application settings.
        copy: Copy repository content into the build instead of linking it.

    Returns:
        BuildReport; ``built`` is False when the repository has nothing to
        build, in which case www is left unchanged.

    Raises:
        PlatformBuildError: Any terminal error from the build.
    """
    if settings is None:
        settings = get_settings()

    project_root = project_root.resolve()

    with project_lock(project_root, timeout=settings.lock_timeout):
        build_dir = compute_build_dir(project_root, environment_id)
        logger.info("Building %s into %s", project_root, build_dir)

        if not resolve(build_dir, project_root, settings=settings, copy=copy):
            return BuildReport(built=False, build_dir=build_dir)

        www_link = publish_live_link(project_root, build_dir)

    return BuildReport(built=True, build_dir=build_dir, live_link=www_link)


def list_builds(project_root: Path) -> list[Path]:
    """List build directories of a project, newest first.

    Args:
        project_root: The project root.

    Returns:
        Build directories ordered by their timestamped names.
    """
    builds_dir = project_root / BUILDS_DIRNAME
    if not builds_dir.is_dir():
        return []
    builds = [
        p
        for p in builds_dir.iterdir()
        if p.is_dir() and not p.is_symlink() and BUILD_NAME_RE.match(p.name)
    ]
    return sorted(builds, key=lambda p: p.name, reverse=True)


def clean_builds(
    project_root: Path,
    keep: int | None = None,
    settings: Settings | None = None,
) -> list[Path]:
    """Remove old builds, keeping the most recent ones.

    The build that www points at is never removed.

    Args:
        project_root: The project root.
        keep: Number of builds to keep (defaults to settings.keep_builds).
        settings: Application settings.

    Returns:
        List of removed build directories.

    Raises:
        ValueError: If keep is less than 1.
        FilesystemError: If a build cannot be removed.
    """
    if settings is None:
        settings = get_settings()
    if keep is None:
        keep = settings.keep_builds
    if keep < 1:
        raise ValueError(f"keep must be at least 1, got {keep}")

    project_root = project_root.resolve()

    removed: list[Path] = []
    with project_lock(project_root, timeout=settings.lock_timeout):
        live = get_live_build(project_root)
        live_resolved = live.resolve() if live is not None else None
        for build_dir in list_builds(project_root)[keep:]:
            if live_resolved is not None and build_dir.resolve() == live_resolved:
                logger.info("Keeping live build %s", build_dir)
                continue
            remove_tree(build_dir)
            log_path = build_log_path(build_dir)
            if log_path.is_file():
                log_path.unlink()
            removed.append(build_dir)
            logger.info("Removed build %s", build_dir)

    return removed


__all__ = [
    "BUILDS_DIRNAME",
    "LIVE_LINK_NAME",
    "LOCK_FILENAME",
    "TIMESTAMP_FORMAT",
    "BuildServiceError",
    "build",
    "clean_builds",
    "compute_build_dir",
    "get_live_build",
    "list_builds",
    "project_lock",
    "publish_live_link",
]
