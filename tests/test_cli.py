import json

import pytest
from click.testing import CliRunner
from conftest import ScriptedPrompter, write_package

from scriptrunner.main import EXIT_INTERRUPTED, cli
from scriptrunner.menu import ExitSelection
from scriptrunner.preferences import HistoryStore


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def prompters(monkeypatch):
    """Replace the terminal prompter; each instance answers from the queued lists."""
    created = []
    answers = []

    def factory():
        prompter = ScriptedPrompter(answers.pop(0) if answers else [ExitSelection()])
        created.append(prompter)
        return prompter

    monkeypatch.setattr("scriptrunner.main.TerminalPrompter", factory)
    return created, answers


@pytest.fixture
def foreground_runs(monkeypatch):
    runs = []

    def fake_run_foreground(self, argv, directory):
        runs.append((argv, directory))
        return 3 if argv[-1] == "test" else 0

    monkeypatch.setattr("scriptrunner.runner.ProcessLauncher.run_foreground", fake_run_foreground)
    return runs


def test_help(runner):
    result = runner.invoke(cli, ["-h"])
    assert result.exit_code == 0
    assert "--directory" in result.output
    assert "scriptrunner dev" in result.output


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "ScriptRunner v1.2.0" in result.output


def test_list_scripts(runner, project, foreground_runs):
    result = runner.invoke(cli, ["-d", str(project), "-l"])
    assert result.exit_code == 0
    assert "Available scripts:" in result.output
    assert "build" in result.output
    assert "Start dev server" in result.output
    assert foreground_runs == []


def test_missing_manifest(runner, tmp_path):
    result = runner.invoke(cli, ["-d", str(tmp_path / "nowhere")])
    assert result.exit_code == 1
    assert "package.json not found in:" in result.output


def test_invalid_manifest(runner, tmp_path):
    (tmp_path / "package.json").write_text("{")
    result = runner.invoke(cli, ["-d", str(tmp_path)])
    assert result.exit_code == 1
    assert "invalid JSON" in result.output


def test_no_scripts(runner, tmp_path):
    write_package(tmp_path, name="bare")
    result = runner.invoke(cli, ["-d", str(tmp_path)])
    assert result.exit_code == 1
    assert "No scripts found in package.json" in result.output


def test_unknown_script_runs_nothing(runner, project, config_dir, foreground_runs):
    result = runner.invoke(cli, ["-d", str(project), "deploy"])
    assert result.exit_code == 1
    assert 'Script "deploy" not found' in result.output
    assert foreground_runs == []
    assert not (config_dir / "history.json").exists()


def test_direct_run_exits_with_script_code(runner, project, foreground_runs):
    result = runner.invoke(cli, ["-d", str(project), "test"])

    assert result.exit_code == 3
    assert foreground_runs == [(["npm", "run", "test"], project.resolve())]
    assert "Script exited with code 3" in result.output
    assert [r.script for r in HistoryStore().recent(str(project.resolve()))] == ["test"]


def test_direct_run_success(runner, project, foreground_runs):
    (project / "yarn.lock").write_text("")
    result = runner.invoke(cli, ["-d", str(project), "build"])
    assert result.exit_code == 0
    assert foreground_runs[0][0] == ["yarn", "run", "build"]


def test_configured_package_manager_spawn_failure(runner, project, config_dir):
    config_dir.mkdir(parents=True)
    (config_dir / "config.toml").write_text('[runner]\npackage_manager = "/nonexistent/pm"\n')

    result = runner.invoke(cli, ["-d", str(project), "build"])

    assert result.exit_code == 1
    assert "Could not start /nonexistent/pm" in result.output


def test_interactive_exit(runner, project, prompters):
    created, _ = prompters
    result = runner.invoke(cli, ["-d", str(project)])

    assert result.exit_code == 0
    assert "See you later!" in result.output
    assert created[0].messages == ["Select script to run:"]


def test_interrupt_exits_130(runner, project, prompters):
    created, answers = prompters

    def interrupt(config):
        raise KeyboardInterrupt

    answers.append([interrupt])
    result = runner.invoke(cli, ["-d", str(project)])
    assert result.exit_code == EXIT_INTERRUPTED


def test_monorepo_starts_at_workspace_menu(runner, tmp_path, prompters):
    created, _ = prompters
    write_package(tmp_path, name="mono", workspaces=["packages/*"])
    write_package(tmp_path / "packages" / "web", name="web", scripts={"dev": "vite"})

    result = runner.invoke(cli, ["-d", str(tmp_path)])

    assert result.exit_code == 0
    assert created[0].messages == ["Select workspace:"]


def test_monorepo_without_workspaces_falls_back(runner, tmp_path, prompters):
    created, _ = prompters
    (tmp_path / "package.json").write_text(json.dumps({
        "name": "mono", "workspaces": ["packages/*"], "scripts": {"lint": "eslint ."},
    }))

    result = runner.invoke(cli, ["-d", str(tmp_path)])

    assert result.exit_code == 0
    assert created[0].messages == ["Select script to run:"]


def test_directory_that_is_a_file_is_a_missing_manifest(runner, tmp_path):
    target = tmp_path / "notes.txt"
    target.write_text("")
    result = runner.invoke(cli, ["-d", str(target)])
    assert result.exit_code == 1
    assert "package.json not found in:" in result.output


def test_workspaces_without_packages_list_starts_single_project(runner, tmp_path, prompters):
    created, _ = prompters
    write_package(tmp_path, name="mono", workspaces={"packages": None}, scripts={"lint": "eslint ."})

    result = runner.invoke(cli, ["-d", str(tmp_path)])

    assert result.exit_code == 0
    assert created[0].messages == ["Select script to run:"]
