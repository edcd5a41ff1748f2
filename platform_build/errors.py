"""Error definitions for platform_build.

All terminal errors share a base class carrying a stable code so the CLI
can render them uniformly.
"""

# Filesystem
LINK_EXISTS = "link_exists"
LINK_ERROR = "link_error"
COPY_ERROR = "copy_error"
REMOVE_ERROR = "remove_error"

# External tool
DRUSH_NOT_FOUND = "drush_not_found"
MAKE_FAILED = "make_failed"
MAKE_TIMEOUT = "make_timeout"
EXECUTION_ERROR = "execution_error"

# Strategy
MULTIPLE_PROFILES = "multiple_profiles"
MISSING_CORE_MAKE = "missing_core_make"
MISSING_PROJECT_MAKE = "missing_project_make"
BUILD_NOT_CREATED = "build_not_created"
BUILD_DIR_EXISTS = "build_dir_exists"

# Service
LIVE_LINK_ERROR = "live_link_error"
LOCK_TIMEOUT = "lock_timeout"

# Project discovery
PROJECT_NOT_FOUND = "project_not_found"
INVALID_PROJECT_CONFIG = "invalid_project_config"
ENVIRONMENT_UNKNOWN = "environment_unknown"


class PlatformBuildError(Exception):
    """Base error for all platform_build failures.

    Attributes:
        code: Stable error code for programmatic handling.
    """

    def __init__(self, message: str, code: str = "platform_build_error") -> None:
        super().__init__(message)
        self.code = code


__all__ = [
    "BUILD_DIR_EXISTS",
    "BUILD_NOT_CREATED",
    "COPY_ERROR",
    "DRUSH_NOT_FOUND",
    "ENVIRONMENT_UNKNOWN",
    "EXECUTION_ERROR",
    "INVALID_PROJECT_CONFIG",
    "LINK_ERROR",
    "LINK_EXISTS",
    "LIVE_LINK_ERROR",
    "LOCK_TIMEOUT",
    "MAKE_FAILED",
    "MAKE_TIMEOUT",
    "MISSING_CORE_MAKE",
    "MISSING_PROJECT_MAKE",
    "MULTIPLE_PROFILES",
    "PROJECT_NOT_FOUND",
    "PlatformBuildError",
    "REMOVE_ERROR",
]
