"""Shared type definitions for platform_build.

This module contains enums and dataclasses shared across subpackages to
avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class BuildMode(str, Enum):
    """Build strategy selected from the repository contents."""

    PROFILE = "profile"
    SITE = "site"
    NONE = "none"


@dataclass
class BuildPlan:
    """What the strategy resolver found in a repository.

    Attributes:
        mode: Selected build mode.
        repository_dir: Absolute path of the repository checkout.
        profile_file: The single ``*.profile`` descriptor (profile mode).
        core_make: Core make file (profile mode).
        project_make: Project make file (profile and site mode).
    """

    mode: BuildMode
    repository_dir: Path
    profile_file: Path | None = None
    core_make: Path | None = None
    project_make: Path | None = None

    @property
    def profile_name(self) -> str | None:
        """Installation profile name derived from the descriptor file."""
        if self.profile_file is None:
            return None
        return self.profile_file.stem


@dataclass
class BuildReport:
    """Outcome of a project build.

    Attributes:
        built: Whether a build tree was produced.
        build_dir: Computed build directory (may not exist if nothing was built).
        live_link: Path of the ``www`` symlink when it was republished.
    """

    built: bool
    build_dir: Path
    live_link: Path | None = None

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON output."""
        return {
            "built": self.built,
            "build_dir": str(self.build_dir),
            "live_link": str(self.live_link) if self.live_link else None,
        }


__all__ = ["BuildMode", "BuildPlan", "BuildReport"]
