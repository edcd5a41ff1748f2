"""Platform Build - build orchestration for Drupal project checkouts.

This package assembles timestamped builds of a project repository with
drush make and republishes the project's live ``www`` symlink.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
