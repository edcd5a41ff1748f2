"""Build runner for executing drush make commands.

This module handles:
- Checking that drush is available before a build starts
- Composing `drush make` commands for core, contrib and site builds
- Executing drush with subprocess in an explicit working directory
- Capturing stdout/stderr to the build log file
- Enforcing optional build timeouts
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from platform_build.errors import (
    DRUSH_NOT_FOUND,
    EXECUTION_ERROR,
    MAKE_FAILED,
    MAKE_TIMEOUT,
    PlatformBuildError,
)

logger = logging.getLogger(__name__)

# Lines of drush output quoted in error messages
OUTPUT_TAIL_LINES = 20


class DrushError(PlatformBuildError):
    """Raised when drush is unavailable or a drush make run fails."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = MAKE_FAILED,
        log_path: Path | None = None,
        output: str = "",
    ) -> None:
        super().__init__(message, code=code)
        self.exit_code = exit_code
        self.log_path = log_path
        self.output = output


@dataclass
class MakeResult:
    """Result of a drush make execution.

    Attributes:
        exit_code: Process exit code.
        command: The command that was executed.
        log_path: Path to the build log file.
        started_at: Start time.
        finished_at: Finish time.
    """

    exit_code: int
    command: str
    log_path: Path
    started_at: datetime
    finished_at: datetime

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def duration(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


def ensure_drush_installed(drush_command: str = "drush") -> str:
    """Check that drush can be found on PATH.

    Args:
        drush_command: Drush executable name or path.

    Returns:
        Resolved path of the drush executable.

    Raises:
        DrushError: If drush is not installed.
    """
    drush_path = shutil.which(drush_command)
    if drush_path is None:
        raise DrushError(
            f"Drush is not installed or not on PATH: {drush_command}",
            code=DRUSH_NOT_FOUND,
        )
    logger.debug("Using drush: %s", drush_path)
    return drush_path


def compose_make_command(
    make_file: Path,
    build_dir: Path | None = None,
    drush_command: str = "drush",
    no_core: bool = False,
    contrib_destination: str | None = None,
) -> list[str]:
    """Compose a `drush make` command.

    Args:
        make_file: Make file to build.
        build_dir: Target directory; omitted for contrib-only builds, which
            build into the working directory.
        drush_command: Drush executable.
        no_core: Skip building Drupal core.
        contrib_destination: Where contrib projects are placed.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = [drush_command, "make", "-y"]

    if no_core:
        cmd.append("--no-core")
    if contrib_destination is not None:
        cmd.append(f"--contrib-destination={contrib_destination}")

    cmd.append(str(make_file))

    if build_dir is not None:
        cmd.append(str(build_dir))

    return cmd


def read_log_tail(log_path: Path, lines: int = OUTPUT_TAIL_LINES) -> str:
    """Return the last lines of a log file, or an empty string if unreadable."""
    try:
        with log_path.open(encoding="utf-8", errors="replace") as f:
            return "".join(deque(f, maxlen=lines)).rstrip()
    except OSError:
        return ""


def run_make(
    cmd: list[str],
    log_path: Path,
    cwd: Path | None = None,
    timeout: int | None = None,
) -> MakeResult:
    """Execute a drush make command, appending its output to a log file.

    The working directory is passed to the subprocess; the process-wide
    working directory is never changed.

    Args:
        cmd: Command from compose_make_command().
        log_path: Log file; several runs of one build share it.
        cwd: Working directory for drush (None = inherit).
        timeout: Timeout in seconds (None = no timeout).

    Returns:
        MakeResult with execution details.

    Raises:
        DrushError: If drush exits nonzero, times out or cannot be started.
    """
    log_path.parent.mkdir(parents=True, exist_ok=True)

    cmd_str = shlex.join(cmd)
    logger.info("Executing: %s", cmd_str)
    if cwd is not None:
        logger.info("Working directory: %s", cwd)

    started_at = datetime.now(timezone.utc)

    try:
        with log_path.open("a") as log_file:
            log_file.write(f"# Command: {cmd_str}\n")
            log_file.write(f"# Started: {started_at.isoformat()}\n")
            log_file.write(f"# CWD: {cwd or '(inherited)'}\n")
            log_file.write("# " + "=" * 70 + "\n\n")
            log_file.flush()

            result = subprocess.run(
                cmd,
                cwd=cwd,
                stdout=log_file,
                stderr=subprocess.STDOUT,
                timeout=timeout,
                check=False,
            )
            exit_code = result.returncode

    except subprocess.TimeoutExpired as e:
        message = f"drush make timed out after {timeout} seconds"
        logger.error("%s. See log: %s", message, log_path)

        output = read_log_tail(log_path)
        with log_path.open("a") as log_file:
            log_file.write(f"\n# TIMEOUT after {timeout} seconds\n")

        raise DrushError(
            f"{message}. See log: {log_path}",
            exit_code=-1,
            code=MAKE_TIMEOUT,
            log_path=log_path,
            output=output,
        ) from e

    except OSError as e:
        message = f"Failed to execute drush: {e}"
        logger.error(message)
        raise DrushError(
            message,
            exit_code=None,
            code=EXECUTION_ERROR,
            log_path=log_path,
        ) from e

    finished_at = datetime.now(timezone.utc)
    output = read_log_tail(log_path) if exit_code != 0 else ""

    with log_path.open("a") as log_file:
        log_file.write(f"\n# Finished: {finished_at.isoformat()}\n")
        log_file.write(f"# Exit code: {exit_code}\n")
        duration = (finished_at - started_at).total_seconds()
        log_file.write(f"# Duration: {duration:.1f}s\n\n")

    result_info = MakeResult(
        exit_code=exit_code,
        command=cmd_str,
        log_path=log_path,
        started_at=started_at,
        finished_at=finished_at,
    )

    if not result_info.success:
        message = f"drush make failed with exit code {exit_code}"
        logger.error("%s. See log: %s", message, log_path)
        raise DrushError(
            f"{message}. See log: {log_path}",
            exit_code=exit_code,
            code=MAKE_FAILED,
            log_path=log_path,
            output=output,
        )

    logger.info("drush make finished in %.1fs", result_info.duration)
    return result_info


__all__ = [
    "OUTPUT_TAIL_LINES",
    "DrushError",
    "MakeResult",
    "compose_make_command",
    "ensure_drush_installed",
    "read_log_tail",
    "run_make",
]
