"""Tests for metarepo new (uses real git, no network)."""

import json

import pytest
import yaml

from metarepo.cli import main
from metarepo.commands import new as new_module
from metarepo.commands.new import create_project
from metarepo.core.config import MetaConfig, Workspace, save_config
from metarepo.core.manifest import DuplicateRepositoryError
from metarepo.core.retry import RetryExhaustedError
from metarepo.core.workspace import WorkspaceError
from metarepo.errors import MetarepoError
from metarepo.templates import NameCollisionError


@pytest.fixture
def config():
    return MetaConfig(
        organization="acme",
        template_content_files=["README.md", "template.cfg"],
    )


@pytest.fixture
def scaffold_workspace(git_workspace, make_repo, config):
    """Git workspace with a config and an acme/template repository."""
    save_config(git_workspace, config)
    template = make_repo(git_workspace / "repositories" / "acme" / "template")
    (template / "README.md").write_text("# Template\n\nSee template.cfg\n")
    (template / "template.cfg").write_text("name = template\n")
    (template / "src" / "Template").mkdir(parents=True)
    (template / "src" / "Template" / "Template.py").write_text("# Template module\n")
    return git_workspace


def log_messages(git_output, path):
    return git_output("log", "--format=%s", cwd=path).splitlines()


class TestCreateProject:

    def test_scaffolds_repository(self, scaffold_workspace):
        result = create_project(Workspace(scaffold_workspace), "Acme.Widgets")

        target = scaffold_workspace / "repositories" / "acme" / "acme-widgets"
        assert result.path == target
        assert (target / "README.md").read_text() == "# Acme.Widgets\n\nSee acme-widgets.cfg\n"
        assert (target / "acme-widgets.cfg").read_text() == "name = acme-widgets\n"
        # Not allow-listed: renamed but contents kept
        module = target / "src" / "Acme.Widgets" / "Acme.Widgets.py"
        assert module.read_text() == "# Template module\n"

    def test_fresh_history(self, scaffold_workspace, git_output):
        result = create_project(Workspace(scaffold_workspace), "Acme.Widgets")

        assert log_messages(git_output, result.path) == ["Add template files", "Initialize repository"]
        assert git_output("symbolic-ref", "--short", "HEAD", cwd=result.path) == "master"
        assert git_output("status", "--porcelain", cwd=result.path) == ""

    def test_custom_branch(self, scaffold_workspace, git_output):
        result = create_project(Workspace(scaffold_workspace), "Tools", branch="main")
        assert git_output("symbolic-ref", "--short", "HEAD", cwd=result.path) == "main"
        assert result.repository.to_entry() == "https://github.com/acme/tools#main"

    def test_manifest_updated_and_committed(self, scaffold_workspace, git_output):
        ws = Workspace(scaffold_workspace)
        ws.manifest_path.write_text(yaml.safe_dump(["https://github.com/acme/zeta#master"]))
        zeta = scaffold_workspace / "repositories" / "acme" / "zeta"
        zeta.mkdir(parents=True)
        git_output("init", cwd=zeta)

        result = create_project(ws, "Acme.Widgets")

        assert yaml.safe_load(ws.manifest_path.read_text()) == [
            "https://github.com/acme/acme-widgets#master",
            "https://github.com/acme/zeta#master",
        ]
        assert result.manifest_committed
        assert log_messages(git_output, scaffold_workspace)[0] == "Add acme-widgets"

    def test_origin_set_by_final_sync(self, scaffold_workspace, git_output):
        result = create_project(Workspace(scaffold_workspace), "Acme.Widgets")

        origin = git_output("remote", "get-url", "origin", cwd=result.path)
        assert origin == "git@github.com:acme/acme-widgets.git"
        assert [r.repository.identifier for r in result.report.results] == ["acme/acme-widgets"]

    def test_https_origin(self, scaffold_workspace, git_output):
        result = create_project(Workspace(scaffold_workspace), "Acme.Widgets", use_https=True)
        origin = git_output("remote", "get-url", "origin", cwd=result.path)
        assert origin == "https://github.com/acme/acme-widgets"

    def test_workspace_file_lists_new_repository(self, scaffold_workspace):
        ws = Workspace(scaffold_workspace)
        create_project(ws, "Acme.Widgets")
        names = [f["name"] for f in json.loads(ws.workspace_file.read_text())["folders"]]
        assert "acme/acme-widgets" in names

    def test_root_not_a_repository(self, workspace_root, make_repo, config):
        save_config(workspace_root, config)
        template = make_repo(workspace_root / "repositories" / "acme" / "template")
        (template / "README.md").write_text("# Template\n")
        (template / "template.cfg").write_text("x\n")

        result = create_project(Workspace(workspace_root), "Widgets")

        assert not result.manifest_committed
        assert Workspace(workspace_root).manifest().load()[0].identifier == "acme/widgets"

    def test_restores_working_directory(self, scaffold_workspace, monkeypatch, tmp_path_factory):
        elsewhere = tmp_path_factory.mktemp("elsewhere")
        monkeypatch.chdir(elsewhere)
        create_project(Workspace(scaffold_workspace), "Acme.Widgets")
        assert elsewhere.samefile(".")


class TestCreateProjectFailures:

    def test_requires_organization(self, scaffold_workspace):
        ws = Workspace(scaffold_workspace, MetaConfig())
        with pytest.raises(MetarepoError, match="organization"):
            create_project(ws, "Widgets")

    def test_duplicate(self, scaffold_workspace):
        ws = Workspace(scaffold_workspace)
        ws.manifest_path.write_text(yaml.safe_dump(["https://github.com/acme/widgets#master"]))
        with pytest.raises(DuplicateRepositoryError):
            create_project(ws, "Widgets")

    def test_non_empty_target(self, scaffold_workspace):
        target = scaffold_workspace / "repositories" / "acme" / "widgets"
        target.mkdir()
        (target / "keep.txt").write_text("mine")
        with pytest.raises(MetarepoError, match="not empty"):
            create_project(Workspace(scaffold_workspace), "Widgets")
        assert (target / "keep.txt").read_text() == "mine"

    def test_name_collision_leaves_nothing_behind(self, scaffold_workspace, git_output):
        template = scaffold_workspace / "repositories" / "acme" / "template"
        (template / "widgets.cfg").write_text("clash\n")
        ws = Workspace(scaffold_workspace)
        head_before = git_output("rev-parse", "HEAD", cwd=scaffold_workspace)

        with pytest.raises(NameCollisionError):
            create_project(ws, "Widgets")

        assert not (scaffold_workspace / "repositories" / "acme" / "widgets").exists()
        assert not ws.manifest_path.exists()
        assert git_output("rev-parse", "HEAD", cwd=scaffold_workspace) == head_before

    def test_failure_restores_existing_empty_target(self, scaffold_workspace):
        template = scaffold_workspace / "repositories" / "acme" / "template"
        (template / "widgets.cfg").write_text("clash\n")
        target = scaffold_workspace / "repositories" / "acme" / "widgets"
        target.mkdir()
        ws = Workspace(scaffold_workspace)

        with pytest.raises(NameCollisionError):
            create_project(ws, "Widgets")

        assert target.is_dir()
        assert list(target.iterdir()) == []
        assert not ws.manifest_path.exists()

    def test_missing_template(self, scaffold_workspace):
        ws = Workspace(scaffold_workspace, MetaConfig(organization="other"))
        with pytest.raises(MetarepoError, match="Template directory not found"):
            create_project(ws, "Widgets")
        assert not (scaffold_workspace / "repositories" / "other" / "widgets").exists()


class TestWorkspaceRetry:

    def test_transient_failures_are_retried(self, scaffold_workspace, monkeypatch):
        real = new_module.write_workspace_file
        calls = []

        def flaky(*args, **kwargs):
            calls.append(1)
            if len(calls) < 3:
                raise WorkspaceError("not visible yet")
            return real(*args, **kwargs)

        monkeypatch.setattr(new_module, "write_workspace_file", flaky)
        create_project(Workspace(scaffold_workspace), "Widgets")
        assert len(calls) == 3

    def test_exhausted_retries_abort(self, scaffold_workspace, monkeypatch):
        calls = []

        def never(*args, **kwargs):
            calls.append(1)
            raise WorkspaceError("not visible")

        monkeypatch.setattr(new_module, "write_workspace_file", never)
        with pytest.raises(RetryExhaustedError):
            create_project(Workspace(scaffold_workspace), "Widgets", retry_attempts=2)
        assert len(calls) == 2
        assert not (scaffold_workspace / "repositories" / "acme" / "widgets").exists()


class TestNewCommand:

    def test_creates_project(self, scaffold_workspace, cli_runner, monkeypatch):
        monkeypatch.chdir(scaffold_workspace)
        result = cli_runner.invoke(main, ["new", "Acme.Widgets"])
        assert result.exit_code == 0, result.output
        assert "Repository created" in result.output
        assert (scaffold_workspace / "repositories" / "acme" / "acme-widgets").is_dir()

    def test_org_option(self, scaffold_workspace, cli_runner, monkeypatch):
        save_config(scaffold_workspace, MetaConfig(template_content_files=[]))
        monkeypatch.chdir(scaffold_workspace)
        result = cli_runner.invoke(main, ["new", "Widgets", "--org", "acme"])
        assert result.exit_code == 0, result.output

    def test_error_exit_code(self, scaffold_workspace, cli_runner, monkeypatch):
        save_config(scaffold_workspace, MetaConfig())
        monkeypatch.chdir(scaffold_workspace)
        result = cli_runner.invoke(main, ["new", "Widgets"])
        assert result.exit_code == 1
        assert "Error" in result.output
