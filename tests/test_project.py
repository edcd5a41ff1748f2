"""Tests for project.py module.

Tests project root discovery, the project marker file and environment
resolution.
"""

import subprocess
from unittest.mock import patch

import pytest

from platform_build.project import (
    ProjectConfig,
    ProjectError,
    discover_build_target,
    find_project_root,
    get_repository_branch,
    load_project_config,
    require_project_root,
    resolve_environment,
)


@pytest.fixture
def marked_project(project_root):
    """A project root with a marker file."""
    (project_root / ".platform-project").write_text("id: abc123\nhost: example.com\n")
    return project_root


class TestFindProjectRoot:
    """Tests for find_project_root function."""

    def test_from_root(self, marked_project):
        assert find_project_root(marked_project) == marked_project.resolve()

    def test_from_subdirectory(self, marked_project):
        """Should walk up from inside the repository."""
        nested = marked_project / "repository" / "modules"
        nested.mkdir()

        assert find_project_root(nested) == marked_project.resolve()

    def test_defaults_to_cwd(self, marked_project, monkeypatch):
        monkeypatch.chdir(marked_project / "repository")

        assert find_project_root() == marked_project.resolve()

    def test_not_in_project(self, tmp_path):
        assert find_project_root(tmp_path) is None

    def test_require_raises(self, tmp_path):
        with pytest.raises(ProjectError) as exc_info:
            require_project_root(tmp_path)

        assert exc_info.value.code == "project_not_found"
        assert "You must run this command from a project folder." in str(
            exc_info.value
        )


class TestLoadProjectConfig:
    """Tests for load_project_config function."""

    def test_loads_mapping(self, marked_project):
        config = load_project_config(marked_project)

        assert config.id == "abc123"
        assert config.host == "example.com"
        assert config.environment is None

    def test_empty_file(self, project_root):
        (project_root / ".platform-project").write_text("")

        assert load_project_config(project_root) == ProjectConfig()

    def test_extra_keys_allowed(self, project_root):
        (project_root / ".platform-project").write_text("id: a\nregion: eu\n")

        assert load_project_config(project_root).id == "a"

    def test_not_a_mapping(self, project_root):
        (project_root / ".platform-project").write_text("- a\n- b\n")

        with pytest.raises(ProjectError) as exc_info:
            load_project_config(project_root)

        assert exc_info.value.code == "invalid_project_config"

    def test_invalid_yaml(self, project_root):
        (project_root / ".platform-project").write_text("id: [unclosed\n")

        with pytest.raises(ProjectError) as exc_info:
            load_project_config(project_root)

        assert exc_info.value.code == "invalid_project_config"

    def test_invalid_field_type(self, project_root):
        (project_root / ".platform-project").write_text("environment: [a, b]\n")

        with pytest.raises(ProjectError) as exc_info:
            load_project_config(project_root)

        assert exc_info.value.code == "invalid_project_config"


class TestGetRepositoryBranch:
    """Tests for get_repository_branch function."""

    def test_returns_branch(self, tmp_path):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = subprocess.CompletedProcess(
                [], 0, stdout="feature-x\n", stderr=""
            )

            assert get_repository_branch(tmp_path) == "feature-x"

        assert mock_run.call_args.kwargs["cwd"] == tmp_path

    def test_detached_head(self, tmp_path):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = subprocess.CompletedProcess(
                [], 0, stdout="HEAD\n", stderr=""
            )

            assert get_repository_branch(tmp_path) is None

    def test_not_a_repository(self, tmp_path):
        with patch("subprocess.run") as mock_run:
            mock_run.side_effect = subprocess.CalledProcessError(128, ["git"])

            assert get_repository_branch(tmp_path) is None

    def test_git_missing(self, tmp_path):
        with patch("subprocess.run") as mock_run:
            mock_run.side_effect = FileNotFoundError("git")

            assert get_repository_branch(tmp_path) is None


class TestResolveEnvironment:
    """Tests for resolve_environment function."""

    def test_explicit_wins(self, project_root):
        config = ProjectConfig(environment="staging")

        assert resolve_environment(project_root, "dev", config) == "dev"

    def test_config_environment(self, project_root):
        config = ProjectConfig(environment="staging")

        with patch("subprocess.run") as mock_run:
            assert resolve_environment(project_root, None, config) == "staging"

        mock_run.assert_not_called()

    def test_git_branch_fallback(self, project_root):
        with patch(
            "platform_build.project.get_repository_branch", return_value="master"
        ) as mock_branch:
            assert resolve_environment(project_root) == "master"

        mock_branch.assert_called_once_with(project_root / "repository")

    def test_no_repository(self, tmp_path):
        assert resolve_environment(tmp_path) is None


class TestDiscoverBuildTarget:
    """Tests for discover_build_target function."""

    def test_returns_root_and_environment(self, marked_project):
        root, environment = discover_build_target(marked_project, "master")

        assert root == marked_project.resolve()
        assert environment == "master"

    def test_environment_unknown(self, marked_project):
        with patch("platform_build.project.get_repository_branch", return_value=None):
            with pytest.raises(ProjectError) as exc_info:
                discover_build_target(marked_project)

        assert exc_info.value.code == "environment_unknown"
        assert str(exc_info.value) == "Could not determine the current environment."

    def test_not_in_project(self, tmp_path):
        with pytest.raises(ProjectError) as exc_info:
            discover_build_target(tmp_path, "master")

        assert exc_info.value.code == "project_not_found"
