"""Shared fixtures for platform_build tests.

Builds never run a real drush: subprocess.run is replaced by FakeDrush,
which materializes a minimal Drupal tree the way drush make would.
"""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from platform_build.config import Settings


class FakeDrush:
    """Stand-in for `drush make` invoked through subprocess.run."""

    def __init__(self, returncode: int = 0, create_build: bool = True) -> None:
        self.returncode = returncode
        self.create_build = create_build
        self.calls: list[tuple[list[str], Path | None]] = []

    def __call__(self, cmd, cwd=None, stdout=None, stderr=None, **kwargs):
        self.calls.append((list(cmd), Path(cwd) if cwd is not None else None))
        if stdout is not None:
            stdout.write(f"fake drush: {' '.join(cmd)}\n")

        if self.returncode == 0 and self.create_build:
            positional = [a for a in cmd[2:] if not a.startswith("-")]
            if "--no-core" in cmd:
                (Path(cwd) / "modules" / "contrib").mkdir(parents=True, exist_ok=True)
            else:
                build_dir = Path(positional[1])
                site_dir = build_dir / "sites" / "default"
                site_dir.mkdir(parents=True)
                (site_dir / "default.settings.php").write_text("<?php\n")
                (build_dir / "profiles" / "standard").mkdir(parents=True)
                (build_dir / "index.php").write_text("<?php\n")

        return subprocess.CompletedProcess(cmd, self.returncode)


@pytest.fixture
def fake_drush():
    """Patch drush availability and execution with a FakeDrush."""
    drush = FakeDrush()
    with (
        patch("shutil.which", return_value="/usr/bin/drush"),
        patch("subprocess.run", side_effect=drush),
    ):
        yield drush


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with a small test template and no lock wait."""
    template = tmp_path / "template" / "settings.php"
    template.parent.mkdir()
    template.write_text("<?php // template\n")
    return Settings(settings_template=template, lock_timeout=0)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Create an empty project layout."""
    root = tmp_path / "project"
    (root / "repository").mkdir(parents=True)
    (root / "shared").mkdir()
    (root / "builds").mkdir()
    return root

