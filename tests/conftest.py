import json
import sys
from pathlib import Path

import pytest
from loguru import logger

from scriptrunner.menu import Choice
from scriptrunner.runner import ProcessLauncher


@pytest.fixture(autouse=True)
def config_dir(tmp_path: Path, monkeypatch) -> Path:
    """Keep history/favorites/config out of the real home directory."""
    directory = tmp_path / "config"
    monkeypatch.setenv("SCRIPTRUNNER_CONFIG_DIR", str(directory))
    monkeypatch.delenv("SCRIPTRUNNER_DEBUG", raising=False)
    monkeypatch.setattr("scriptrunner.main.setup_logger", lambda: None)
    logger.remove()
    return directory


def write_package(directory: Path, **fields) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "package.json").write_text(json.dumps(fields), encoding="utf-8")
    return directory


@pytest.fixture
def project(tmp_path: Path) -> Path:
    return write_package(
        tmp_path / "app",
        name="my-app",
        version="2.1.0",
        scripts={"build": "tsc", "test": "jest", "dev": "vite"},
        scriptsDescriptions={"dev": "Start dev server"},
    )


class PythonLauncher(ProcessLauncher):
    """Runs `python -c <program>` instead of `<pm> run <script>`."""

    def __init__(self, programs: dict[str, str]):
        super().__init__()
        self.programs = programs

    def script_argv(self, script_name, directory):
        return [sys.executable, "-c", self.programs[script_name]]


class ScriptedPrompter:
    """Answers select() calls from a queue; callables receive the SelectConfig."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.configs = []

    def select(self, config):
        self.configs.append(config)
        assert self.answers, f"unexpected prompt: {config.message!r}"
        answer = self.answers.pop(0)
        return answer(config) if callable(answer) else answer

    @property
    def messages(self) -> list[str]:
        return [c.message for c in self.configs]


def pick(title: str):
    def _pick(config):
        for item in config.choices:
            if isinstance(item, Choice) and item.title == title:
                return item.value
        raise AssertionError(f"{title!r} not in menu {config.message!r}")
    return _pick


def pick_type(value_type):
    def _pick(config):
        for item in config.choices:
            if isinstance(item, Choice) and isinstance(item.value, value_type):
                return item.value
        raise AssertionError(f"no {value_type.__name__} in menu {config.message!r}")
    return _pick


def choice_titles(items) -> list[str]:
    return [item.title for item in items if isinstance(item, Choice)]


class RecordingView:
    """Stands in for scriptrunner.ui and records every call."""

    def __init__(self):
        self.calls = []

    def __getattr__(self, name):
        def record(*args):
            self.calls.append((name, args))
        return record

    def messages(self, kind: str) -> list[str]:
        return [args[0] for name, args in self.calls if name == f"show_{kind}"]

    def count(self, name: str) -> int:
        return sum(1 for call_name, _ in self.calls if call_name == name)
