"""Tests for builds/runner.py module.

Tests drush command composition and execution.
Uses mocked subprocess for execution tests.
"""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from platform_build.builds.runner import (
    DrushError,
    MakeResult,
    compose_make_command,
    ensure_drush_installed,
    read_log_tail,
    run_make,
)


class TestEnsureDrushInstalled:
    """Tests for ensure_drush_installed function."""

    def test_found(self):
        """Should return the resolved drush path."""
        with patch("shutil.which", return_value="/usr/local/bin/drush"):
            assert ensure_drush_installed() == "/usr/local/bin/drush"

    def test_missing_raises(self):
        """Should raise a drush_not_found error."""
        with patch("shutil.which", return_value=None):
            with pytest.raises(DrushError) as exc_info:
                ensure_drush_installed("drush8")

        assert exc_info.value.code == "drush_not_found"
        assert "drush8" in str(exc_info.value)


class TestComposeMakeCommand:
    """Tests for compose_make_command function."""

    def test_core_build(self):
        """Should build a make file into a directory."""
        cmd = compose_make_command(
            Path("/repo/project-core.make"), Path("/project/builds/b1")
        )

        assert cmd == [
            "drush",
            "make",
            "-y",
            "/repo/project-core.make",
            "/project/builds/b1",
        ]

    def test_contrib_build(self):
        """Should skip core and build contrib into the working directory."""
        cmd = compose_make_command(
            Path("/repo/project.make"),
            no_core=True,
            contrib_destination=".",
        )

        assert cmd == [
            "drush",
            "make",
            "-y",
            "--no-core",
            "--contrib-destination=.",
            "/repo/project.make",
        ]

    def test_custom_drush(self):
        """Should use the configured drush executable."""
        cmd = compose_make_command(
            Path("/repo/project.make"), Path("/b"), drush_command="/opt/drush"
        )

        assert cmd[0] == "/opt/drush"


class TestReadLogTail:
    """Tests for read_log_tail function."""

    def test_returns_last_lines(self, tmp_path):
        """Should return only the last lines."""
        log = tmp_path / "build.log"
        log.write_text("".join(f"line {i}\n" for i in range(50)))

        tail = read_log_tail(log, lines=3)

        assert tail == "line 47\nline 48\nline 49"

    def test_missing_log(self, tmp_path):
        """Should return an empty string for a missing log."""
        assert read_log_tail(tmp_path / "missing.log") == ""


class TestRunMake:
    """Tests for run_make function with mocked subprocess."""

    @pytest.fixture
    def cmd(self):
        return ["drush", "make", "-y", "/repo/project.make", "/builds/b1"]

    def test_successful_run(self, cmd, tmp_path):
        """Should return a MakeResult and write the log."""
        log_path = tmp_path / "builds" / "b1.log"

        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)

            result = run_make(cmd, log_path)

        assert isinstance(result, MakeResult)
        assert result.success is True
        assert result.exit_code == 0
        assert result.command == "drush make -y /repo/project.make /builds/b1"
        log_content = log_path.read_text()
        assert "# Command: drush make -y" in log_content
        assert "# Exit code: 0" in log_content

    def test_passes_working_directory(self, cmd, tmp_path):
        """Should pass cwd to subprocess instead of changing directory."""
        profile_dir = tmp_path / "profile"
        profile_dir.mkdir()

        with (
            patch("subprocess.run") as mock_run,
            patch("os.chdir") as mock_chdir,
        ):
            mock_run.return_value = MagicMock(returncode=0)

            run_make(cmd, tmp_path / "b1.log", cwd=profile_dir, timeout=60)

        assert mock_run.call_args.kwargs["cwd"] == profile_dir
        assert mock_run.call_args.kwargs["timeout"] == 60
        mock_chdir.assert_not_called()

    def test_appends_to_log(self, cmd, tmp_path):
        """Several runs of one build share the log."""
        log_path = tmp_path / "b1.log"

        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)
            run_make(cmd, log_path)
            run_make(cmd, log_path)

        assert log_path.read_text().count("# Command:") == 2

    def test_nonzero_exit_raises(self, cmd, tmp_path):
        """Should raise with exit code, log path and output tail."""
        log_path = tmp_path / "b1.log"

        def fail(args, stdout=None, **kwargs):
            stdout.write("Project information for views retrieved.\n")
            stdout.write("Unable to download drupal.\n")
            return subprocess.CompletedProcess(args, 1)

        with patch("subprocess.run", side_effect=fail):
            with pytest.raises(DrushError) as exc_info:
                run_make(cmd, log_path)

        error = exc_info.value
        assert error.code == "make_failed"
        assert error.exit_code == 1
        assert error.log_path == log_path
        assert "Unable to download drupal." in error.output
        assert "exit code 1" in str(error)

    def test_timeout(self, cmd, tmp_path):
        """Should raise on timeout."""
        log_path = tmp_path / "b1.log"

        with patch("subprocess.run") as mock_run:
            mock_run.side_effect = subprocess.TimeoutExpired(cmd="drush", timeout=10)

            with pytest.raises(DrushError) as exc_info:
                run_make(cmd, log_path, timeout=10)

        assert exc_info.value.code == "make_timeout"
        assert "TIMEOUT after 10 seconds" in log_path.read_text()

    def test_execution_error(self, cmd, tmp_path):
        """Should raise when drush cannot be started."""
        with patch("subprocess.run") as mock_run:
            mock_run.side_effect = FileNotFoundError("drush")

            with pytest.raises(DrushError) as exc_info:
                run_make(cmd, tmp_path / "b1.log")

        assert exc_info.value.code == "execution_error"
        assert exc_info.value.exit_code is None
