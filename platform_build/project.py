"""Project and environment discovery.

A project root is a directory holding the ``.platform-project`` marker
file next to its ``repository/``, ``shared/`` and ``builds/`` folders.
The marker is a YAML mapping describing the project.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from platform_build.builds.strategy import REPOSITORY_DIRNAME
from platform_build.errors import (
    ENVIRONMENT_UNKNOWN,
    INVALID_PROJECT_CONFIG,
    PROJECT_NOT_FOUND,
    PlatformBuildError,
)

logger = logging.getLogger(__name__)

PROJECT_CONFIG_FILE = ".platform-project"


class ProjectError(PlatformBuildError):
    """Raised when the project or its environment cannot be determined."""

    def __init__(self, message: str, code: str = "project_error") -> None:
        super().__init__(message, code=code)


class ProjectConfig(BaseModel):
    """Contents of the project marker file."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    host: str | None = None
    environment: str | None = None


def find_project_root(start: Path | None = None) -> Path | None:
    """Find the project root containing start.

    Args:
        start: Directory to search from (defaults to the current directory).

    Returns:
        The nearest ancestor (or start itself) holding the marker file, or
        None when start is not inside a project.
    """
    if start is None:
        start = Path.cwd()
    start = start.resolve()

    for candidate in (start, *start.parents):
        if (candidate / PROJECT_CONFIG_FILE).is_file():
            return candidate
    return None


def load_project_config(project_root: Path) -> ProjectConfig:
    """Load the project marker file.

    Args:
        project_root: The project root.

    Returns:
        ProjectConfig; empty if the marker file is empty.

    Raises:
        ProjectError: If the marker is not a valid YAML mapping.
    """
    path = project_root / PROJECT_CONFIG_FILE
    try:
        with open(path, encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ProjectError(
            f"Failed to read {path}: {e}",
            code=INVALID_PROJECT_CONFIG,
        ) from e

    if data is None:
        return ProjectConfig()
    if not isinstance(data, dict):
        raise ProjectError(
            f"Expected a YAML mapping in {path}, got {type(data).__name__}",
            code=INVALID_PROJECT_CONFIG,
        )

    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as e:
        raise ProjectError(
            f"Invalid project config {path}: {e}",
            code=INVALID_PROJECT_CONFIG,
        ) from e


def get_repository_branch(repository_dir: Path, timeout: int = 30) -> str | None:
    """Return the checked-out git branch of a repository, if any."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--abbrev-ref", "HEAD"],
            cwd=repository_dir,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("Could not read git branch of %s: %s", repository_dir, e)
        return None

    branch = result.stdout.strip()
    # Detached checkouts report HEAD.
    if not branch or branch == "HEAD":
        return None
    return branch


def resolve_environment(
    project_root: Path,
    explicit: str | None = None,
    config: ProjectConfig | None = None,
) -> str | None:
    """Determine the environment id used as the build suffix.

    Precedence: explicit value > project config > repository git branch.

    Args:
        project_root: The project root.
        explicit: Environment given on the command line.
        config: Loaded project config.

    Returns:
        Environment id, or None if it cannot be determined.
    """
    if explicit:
        return explicit
    if config is not None and config.environment:
        return config.environment

    repository_dir = project_root / REPOSITORY_DIRNAME
    if repository_dir.is_dir():
        return get_repository_branch(repository_dir)
    return None


def require_project_root(start: Path | None = None) -> Path:
    """Like find_project_root(), but raise when start is not in a project.

    Raises:
        ProjectError: If no project root is found.
    """
    project_root = find_project_root(start)
    if project_root is None:
        raise ProjectError(
            "You must run this command from a project folder.",
            code=PROJECT_NOT_FOUND,
        )
    return project_root


def discover_build_target(
    start: Path | None = None,
    environment: str | None = None,
) -> tuple[Path, str]:
    """Find the project to build and its environment id.

    Raises:
        ProjectError: If start is not inside a project, or the environment
            cannot be determined.
    """
    project_root = require_project_root(start)
    config = load_project_config(project_root)
    environment_id = resolve_environment(project_root, environment, config)
    if not environment_id:
        raise ProjectError(
            "Could not determine the current environment.",
            code=ENVIRONMENT_UNKNOWN,
        )
    return project_root, environment_id


__all__ = [
    "PROJECT_CONFIG_FILE",
    "ProjectConfig",
    "ProjectError",
    "discover_build_target",
    "find_project_root",
    "get_repository_branch",
    "load_project_config",
    "require_project_root",
    "resolve_environment",
]
