import os
import subprocess
from collections.abc import Generator
from pathlib import Path
from typing import Optional, Sequence

import pytest

_PROVIDER_ENV_HINTS = ("GEMINI", "GOOGLE_API_KEY", "OPENAI", "CODESTRAL", "MISTRAL", "OLLAMA")


@pytest.fixture(autouse=True)
def isolated_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Generator[None, None, None]:
    # No provider keys or sagecmt settings leak in from the developer's shell
    for name in list(os.environ):
        upper = name.upper()
        if upper.startswith("SAGECMT_") or any(h in upper for h in _PROVIDER_ENV_HINTS):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SAGECMT_CONFIG_HOME", str(tmp_path / "home" / ".sagecmt"))

    gitconfig = tmp_path / "gitconfig"
    gitconfig.write_text("")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Alice")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "alice@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Alice")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "alice@example.com")
    yield


def _git(repo: Path, *args: str, author: Optional[str] = None) -> str:
    env = dict(os.environ)
    if author:
        env["GIT_AUTHOR_NAME"] = author
        env["GIT_COMMITTER_NAME"] = author
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True, env=env
    )
    return result.stdout


@pytest.fixture
def git():
    """Run a git command in a repository and return stdout."""
    return _git


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    path = tmp_path / "repo"
    path.mkdir()
    _git(path, "init", "-q")
    return path


@pytest.fixture
def committed_repo(repo: Path) -> Path:
    (repo / "app.py").write_text("line1\nline2\nline3\n")
    _git(repo, "add", "app.py")
    _git(repo, "commit", "-q", "-m", "init")
    return repo


class FakeHost:
    """Scriptable host recording everything the workflow asks of it."""

    def __init__(
        self,
        pick_index: Optional[int] = None,
        warning_choice: Optional[str] = None,
        inputs: Sequence[Optional[str]] = (),
    ) -> None:
        self.pick_index = pick_index
        self.warning_choice = warning_choice
        self.inputs = list(inputs)
        self.messages: dict[Path, str] = {}
        self.progress: list[tuple[str, int]] = []
        self.picks: list[list[str]] = []
        self.warnings: list[tuple[str, list[str]]] = []
        self.prompts: list[tuple[str, bool]] = []

    def set_commit_message(self, repo, message):
        self.messages[Path(repo)] = message

    def get_commit_message(self, repo):
        return self.messages.get(Path(repo), "")

    def report_progress(self, message, increment):
        self.progress.append((message, increment))

    def quick_pick(self, items, placeholder):
        self.picks.append(list(items))
        return self.pick_index

    def show_warning(self, message, choices):
        self.warnings.append((message, list(choices)))
        return self.warning_choice

    def prompt_input(self, prompt, password=False):
        self.prompts.append((prompt, password))
        return self.inputs.pop(0) if self.inputs else None


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def make_host():
    return FakeHost
