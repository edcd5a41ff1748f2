"""Build orchestration module.

This module handles:
- Detecting the build mode of a repository (profile, site or none)
- Running drush make
- Assembling the build tree with links and copies
- Republishing the live www link and cleaning old builds
"""

from platform_build.types import BuildMode, BuildPlan, BuildReport

__all__ = ["BuildMode", "BuildPlan", "BuildReport"]

# Access submodules via platform_build.builds.service, etc.
