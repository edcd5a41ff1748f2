"""Drupal build strategy resolution.

For a build to happen the repository must have at least one drush make
file. There are two possible modes:

- installation profile: the repository holds exactly one ``*.profile``
  file and the matching make files (``project.make`` and
  ``project-core.make``, or the legacy ``drupal-org.make`` and
  ``drupal-org-core.make``). Core is built first, then the repository is
  linked into ``profiles/<name>`` and contrib is built into it.
- site: the repository holds just a ``project.make``. The build's
  ``sites/default`` is replaced by links to the repository's children.

After either build, a settings.php is provided if missing and the
project's shared directory is linked into ``sites/default``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from platform_build.builds.fsops import (
    copy_file,
    copy_tree,
    link_children,
    make_link,
    remove_tree,
)
from platform_build.builds.runner import (
    compose_make_command,
    ensure_drush_installed,
    read_log_tail,
    run_make,
)
from platform_build.config import get_settings
from platform_build.errors import (
    BUILD_DIR_EXISTS,
    BUILD_NOT_CREATED,
    MISSING_CORE_MAKE,
    MISSING_PROJECT_MAKE,
    MULTIPLE_PROFILES,
    PlatformBuildError,
)
from platform_build.types import BuildMode, BuildPlan

if TYPE_CHECKING:
    from platform_build.config import Settings

logger = logging.getLogger(__name__)

REPOSITORY_DIRNAME = "repository"
SHARED_DIRNAME = "shared"

PROFILE_PATTERN = "*.profile"

# (primary, legacy alias)
CORE_MAKE_FILES = ("project-core.make", "drupal-org-core.make")
PROJECT_MAKE_FILES = ("project.make", "drupal-org.make")


class BuildStrategyError(PlatformBuildError):
    """Raised when the repository cannot be built."""

    def __init__(
        self,
        message: str,
        code: str = "build_strategy_error",
        output: str = "",
    ) -> None:
        super().__init__(message, code=code)
        self.output = output


def find_make_file(repository_dir: Path, candidates: tuple[str, ...]) -> Path | None:
    """Return the first candidate make file present in the repository."""
    for name in candidates:
        path = repository_dir / name
        if path.is_file():
            return path
    return None


def build_log_path(build_dir: Path) -> Path:
    """Return the log file used for a build directory."""
    return build_dir.with_name(f"{build_dir.name}.log")


def detect_build_plan(repository_dir: Path) -> BuildPlan:
    """Inspect a repository and decide how it is built.

    Args:
        repository_dir: The project's repository checkout.

    Returns:
        BuildPlan; its mode is BuildMode.NONE when there is nothing to build.

    Raises:
        BuildStrategyError: If several profiles are found, or a profile is
            found without its make files.
    """
    repository_dir = repository_dir.resolve()
    profiles = sorted(repository_dir.glob(PROFILE_PATTERN))

    if len(profiles) > 1:
        raise BuildStrategyError(
            f"Found multiple files ending in '{PROFILE_PATTERN}' in the repository.",
            code=MULTIPLE_PROFILES,
        )

    if len(profiles) == 1:
        core_make = find_make_file(repository_dir, CORE_MAKE_FILES)
        if core_make is None:
            raise BuildStrategyError(
                "Couldn't find a project-core.make or drupal-org-core.make "
                "in the repository.",
                code=MISSING_CORE_MAKE,
            )
        project_make = find_make_file(repository_dir, PROJECT_MAKE_FILES)
        if project_make is None:
            raise BuildStrategyError(
                "Couldn't find a project.make or drupal-org.make in the repository.",
                code=MISSING_PROJECT_MAKE,
            )
        return BuildPlan(
            mode=BuildMode.PROFILE,
            repository_dir=repository_dir,
            profile_file=profiles[0],
            core_make=core_make,
            project_make=project_make,
        )

    # Site mode only recognises the primary make file name.
    project_make = find_make_file(repository_dir, PROJECT_MAKE_FILES[:1])
    if project_make is not None:
        return BuildPlan(
            mode=BuildMode.SITE,
            repository_dir=repository_dir,
            project_make=project_make,
        )

    return BuildPlan(mode=BuildMode.NONE, repository_dir=repository_dir)


def _ensure_build_created(build_dir: Path, log_path: Path) -> None:
    # Drush only creates the build directory when the build succeeds.
    if not build_dir.is_dir():
        raise BuildStrategyError(
            f"drush make did not create the build directory {build_dir}. "
            f"See log: {log_path}",
            code=BUILD_NOT_CREATED,
            output=read_log_tail(log_path),
        )


def build_profile(
    plan: BuildPlan,
    build_dir: Path,
    settings: Settings,
    copy: bool = False,
) -> Path:
    """Build an installation profile repository.

    Args:
        plan: Profile-mode BuildPlan.
        build_dir: Target build directory (must not exist yet).
        settings: Application settings.
        copy: Copy the repository into the profile instead of linking it.

    Returns:
        Path of the profile directory inside the build.

    Raises:
        DrushError: If a drush make run fails.
        BuildStrategyError: If drush did not create the build directory.
    """
    if (
        plan.core_make is None
        or plan.project_make is None
        or plan.profile_name is None
    ):
        raise ValueError("build_profile() requires a profile-mode plan")

    log_path = build_log_path(build_dir)

    run_make(
        compose_make_command(
            plan.core_make,
            build_dir,
            drush_command=settings.drush_command,
        ),
        log_path,
        timeout=settings.build_timeout,
    )
    _ensure_build_created(build_dir, log_path)

    profile_dir = build_dir / "profiles" / plan.profile_name
    profile_dir.parent.mkdir(parents=True, exist_ok=True)
    if copy:
        copy_tree(plan.repository_dir, profile_dir)
    else:
        make_link(plan.repository_dir, profile_dir)
    logger.info("Profile %s placed at %s", plan.profile_name, profile_dir)

    # Drush make refuses an existing target directory, so contrib is built
    # from inside the profile directory instead.
    run_make(
        compose_make_command(
            plan.project_make,
            drush_command=settings.drush_command,
            no_core=True,
            contrib_destination=".",
        ),
        log_path,
        cwd=profile_dir,
        timeout=settings.build_timeout,
    )
    return profile_dir


def build_site(
    plan: BuildPlan,
    build_dir: Path,
    settings: Settings,
    copy: bool = False,
) -> Path:
    """Build a single-site repository.

    Args:
        plan: Site-mode BuildPlan.
        build_dir: Target build directory (must not exist yet).
        settings: Application settings.
        copy: Copy the repository into sites/default instead of linking it.

    Returns:
        Path of the build's sites/default directory.

    Raises:
        DrushError: If the drush make run fails.
        BuildStrategyError: If drush did not create the build directory.
    """
    if plan.project_make is None:
        raise ValueError("build_site() requires a plan with a project make file")

    log_path = build_log_path(build_dir)
    run_make(
        compose_make_command(
            plan.project_make,
            build_dir,
            drush_command=settings.drush_command,
        ),
        log_path,
        timeout=settings.build_timeout,
    )
    _ensure_build_created(build_dir, log_path)

    # Remove sites/default to make room for the repository.
    site_dir = build_dir / "sites" / "default"
    remove_tree(site_dir)
    if copy:
        copy_tree(plan.repository_dir, site_dir)
    else:
        link_children(plan.repository_dir, site_dir)
    return site_dir


def finalize_build(build_dir: Path, project_root: Path, settings: Settings) -> None:
    """Provide settings.php and link shared files into sites/default.

    Args:
        build_dir: A build directory produced by drush.
        project_root: The project root holding the shared directory.
        settings: Application settings.

    Raises:
        FilesystemError: If copying or linking fails.
    """
    site_dir = build_dir / "sites" / "default"

    settings_php = site_dir / "settings.php"
    if not settings_php.exists():
        logger.info("Creating %s from template", settings_php)
        copy_file(settings.settings_template, settings_php)

    shared_dir = project_root / SHARED_DIRNAME
    if shared_dir.is_dir():
        link_children(shared_dir, site_dir)
    else:
        logger.info("No shared directory at %s, skipping", shared_dir)


def resolve(
    build_dir: Path,
    project_root: Path,
    settings: Settings | None = None,
    copy: bool = False,
) -> bool:
    """Build a Drupal project in the provided directory.

    Args:
        build_dir: The path to the build directory.
        project_root: The path to the project to be built.
        settings: Application settings.
        copy: Copy repository content into the build instead of linking it.

    Returns:
        True if a build tree was produced, False if the repository has
        nothing to build.

    Raises:
        DrushError: If drush is missing or a drush make run fails.
        BuildStrategyError: If the repository is ambiguous or incomplete, or
            build_dir already exists.
        FilesystemError: If assembling the build tree fails.
    """
    if settings is None:
        settings = get_settings()

    ensure_drush_installed(settings.drush_command)

    plan = detect_build_plan(project_root / REPOSITORY_DIRNAME)
    logger.info("Build mode: %s", plan.mode.value)

    if plan.mode is BuildMode.NONE:
        logger.info("Nothing to build in %s", plan.repository_dir)
        return False

    # An existing directory would pass for drush output.
    if build_dir.exists():
        raise BuildStrategyError(
            f"Build directory {build_dir} already exists.",
            code=BUILD_DIR_EXISTS,
        )
    build_dir.parent.mkdir(parents=True, exist_ok=True)

    if plan.mode is BuildMode.PROFILE:
        build_profile(plan, build_dir, settings, copy=copy)
    else:
        build_site(plan, build_dir, settings, copy=copy)

    finalize_build(build_dir, project_root, settings)
    return True


__all__ = [
    "CORE_MAKE_FILES",
    "PROFILE_PATTERN",
    "PROJECT_MAKE_FILES",
    "REPOSITORY_DIRNAME",
    "SHARED_DIRNAME",
    "BuildStrategyError",
    "build_log_path",
    "build_profile",
    "build_site",
    "detect_build_plan",
    "finalize_build",
    "find_make_file",
    "resolve",
]
