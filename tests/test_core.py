import json

import httpx
import pytest

from sagecmt.config import Config
from sagecmt.core import SageCMTWorkflow, WorkflowState
from sagecmt.credentials import MemorySecretStore
from sagecmt.exceptions import (
    AutoCommitFailedError,
    AutoPushFailedError,
    GitError,
    NoChangesDetectedError,
    NoRepositoriesFoundError,
    NoRepositorySelectedError,
)
from sagecmt.git import GitRepo
from sagecmt.llm import LLMClient
from sagecmt.providers.base import CommitMessage
from sagecmt.validation import PUSH_DISABLED_FOR_RUN


class StubLLM:
    def __init__(self, text="feat(app): extend app module"):
        self.text = text
        self.requests = []

    def generate(self, request, reporter=None, on_retry=None):
        self.requests.append(request)
        return CommitMessage(text=self.text, model="stub-model")


def _config(repo, **kw):
    params = dict(
        provider="gemini",
        model="gemini-2.0-flash",
        llm_endpoint="https://generativelanguage.googleapis.com/v1beta",
        api_key_env="GEMINI_API_KEY",
        git_repo_path=str(repo),
    )
    params.update(kw)
    return Config(**params)


def _workflow(repo, host, llm=None, **kw):
    return SageCMTWorkflow(
        _config(repo, **kw), host, MemorySecretStore(), llm_client=llm or StubLLM()
    )


def _stage_change(repo, git):
    (repo / "app.py").write_text("line1\nline2\nline3\nline4\n")
    git(repo, "add", "app.py")


def _commit_count(repo, git):
    return int(git(repo, "rev-list", "--count", "HEAD").strip())


def test_generate_only_applies_message(committed_repo, git, host):
    _stage_change(committed_repo, git)
    llm = StubLLM()

    result = _workflow(committed_repo, host, llm).run()

    assert result.state is WorkflowState.DONE
    assert result.message == "feat(app): extend app module"
    assert result.model == "stub-model"
    assert result.committed is False
    assert host.get_commit_message(result.repo_path) == result.message
    assert _commit_count(committed_repo, git) == 1
    assert result.history == [
        WorkflowState.IDLE,
        WorkflowState.RESOLVING_REPOSITORY,
        WorkflowState.FETCHING_CHANGES,
        WorkflowState.ANALYZING_AUTHORSHIP,
        WorkflowState.GENERATING,
        WorkflowState.APPLYING_RESULT,
        WorkflowState.DONE,
    ]
    request = llm.requests[0]
    assert "+line4" in request.diff_text
    assert "File: app.py" in request.authorship_text
    assert [label for label, _ in host.progress if label][:3] == [
        "Finding repository...",
        "Fetching Git diff...",
        "Analyzing changes...",
    ]


def test_auto_commit_and_push(committed_repo, git, host, tmp_path):
    remote = tmp_path / "remote.git"
    git(tmp_path, "init", "-q", "--bare", str(remote))
    git(committed_repo, "remote", "add", "origin", str(remote))
    git(committed_repo, "push", "-q", "-u", "origin", "HEAD")
    _stage_change(committed_repo, git)

    result = _workflow(committed_repo, host, auto_commit=True, auto_push=True).run()

    assert result.state is WorkflowState.DONE
    assert result.committed is True
    assert result.pushed is True
    head = git(committed_repo, "rev-parse", "HEAD").strip()
    assert head in git(committed_repo, "ls-remote", "origin")
    assert git(committed_repo, "log", "-1", "--format=%s").strip() == result.message


def test_auto_commit_stages_everything_when_index_is_empty(committed_repo, git, host):
    (committed_repo / "new.txt").write_text("hello\n")

    result = _workflow(committed_repo, host, auto_commit=True).run()

    assert result.committed is True
    assert git(committed_repo, "status", "--porcelain").strip() == ""
    assert _commit_count(committed_repo, git) == 2


def test_auto_commit_uses_message_from_input_surface(committed_repo, git, host, monkeypatch):
    _stage_change(committed_repo, git)
    original = host.set_commit_message

    def edited(repo, message):
        original(repo, message + "\n\nEdited-by: reviewer")

    monkeypatch.setattr(host, "set_commit_message", edited)

    _workflow(committed_repo, host, auto_commit=True).run()

    assert "Edited-by: reviewer" in git(committed_repo, "log", "-1", "--format=%B")


def test_auto_push_without_remotes_warns(committed_repo, git, host):
    _stage_change(committed_repo, git)

    result = _workflow(committed_repo, host, auto_commit=True, auto_push=True).run()

    assert result.state is WorkflowState.DONE
    assert result.committed is True
    assert result.pushed is False
    assert any("no configured remotes" in w for w in result.warnings)
    assert WorkflowState.AUTO_PUSHING in result.history


def test_push_without_commit_is_disabled_when_dialog_dismissed(committed_repo, git, host):
    _stage_change(committed_repo, git)

    result = _workflow(committed_repo, host, auto_push=True).run()

    assert result.state is WorkflowState.DONE
    assert result.committed is False
    assert result.pushed is False
    assert PUSH_DISABLED_FOR_RUN in result.warnings
    assert host.warnings[0][1] == ["Enable Auto Commit", "Disable Auto Push"]
    assert WorkflowState.AUTO_COMMITTING not in result.history


def test_push_without_commit_enable_choice_commits(committed_repo, git, make_host):
    host = make_host(warning_choice="Enable Auto Commit")
    _stage_change(committed_repo, git)

    result = _workflow(committed_repo, host, auto_push=True).run()

    assert result.committed is True
    assert result.pushed is False  # no remote configured


def test_auto_commit_failure_keeps_message(committed_repo, git, host, monkeypatch):
    _stage_change(committed_repo, git)

    def failing_commit(self, message):
        raise GitError("hook rejected", stderr="pre-commit hook failed")

    monkeypatch.setattr(GitRepo, "commit", failing_commit)

    result = _workflow(committed_repo, host, auto_commit=True).run()

    assert result.state is WorkflowState.FAILED
    assert isinstance(result.error, AutoCommitFailedError)
    assert "pre-commit hook failed" in str(result.error)
    assert result.message == "feat(app): extend app module"
    assert host.get_commit_message(result.repo_path) == result.message


def test_push_failure_is_classified(committed_repo, git, host, tmp_path):
    git(committed_repo, "remote", "add", "origin", str(tmp_path / "missing.git"))
    _stage_change(committed_repo, git)

    result = _workflow(committed_repo, host, auto_commit=True, auto_push=True).run()

    assert result.state is WorkflowState.FAILED
    assert isinstance(result.error, AutoPushFailedError)
    assert result.committed is True


def test_no_changes_fails(committed_repo, host):
    result = _workflow(committed_repo, host).run()

    assert result.state is WorkflowState.FAILED
    assert isinstance(result.error, NoChangesDetectedError)
    assert result.history[-1] is WorkflowState.FAILED
    assert WorkflowState.GENERATING not in result.history


def test_staged_only_mode(committed_repo, host):
    (committed_repo / "untracked.txt").write_text("x\n")

    result = _workflow(committed_repo, host, only_staged_changes=True).run()

    assert isinstance(result.error, NoChangesDetectedError)


def test_refs_are_appended_after_blank_line(committed_repo, git, make_host):
    host = make_host(inputs=["#123, JIRA-456"])
    _stage_change(committed_repo, git)

    result = _workflow(committed_repo, host, prompt_for_refs=True).run()

    assert result.message == "feat(app): extend app module\n\n#123, JIRA-456"


def test_empty_refs_leave_message_untouched(committed_repo, git, make_host):
    host = make_host(inputs=[""])
    _stage_change(committed_repo, git)

    result = _workflow(committed_repo, host, prompt_for_refs=True).run()

    assert result.message == "feat(app): extend app module"


def test_custom_instructions_reach_request(committed_repo, git, host):
    _stage_change(committed_repo, git)
    llm = StubLLM()

    _workflow(
        committed_repo,
        host,
        llm,
        use_custom_instructions=True,
        custom_instructions="Mention the ticket.",
    ).run()

    assert llm.requests[0].custom_instructions == "Mention the ticket."


def test_repository_selection(tmp_path, git, make_host):
    repos = []
    for name in ("one", "two"):
        path = tmp_path / name
        path.mkdir()
        git(path, "init", "-q")
        (path / "f.txt").write_text(name + "\n")
        repos.append(path)

    host = make_host(pick_index=1)
    wf = SageCMTWorkflow(
        _config(repos[0]),
        host,
        MemorySecretStore(),
        candidates=[str(p) for p in repos],
        llm_client=StubLLM(),
    )
    result = wf.run()

    assert result.repo_path.resolve() == repos[1].resolve()
    assert len(host.picks[0]) == 2

    host.pick_index = None
    cancelled = wf.run()
    assert isinstance(cancelled.error, NoRepositorySelectedError)


def test_no_repository_found(tmp_path, host):
    plain = tmp_path / "plain"
    plain.mkdir()

    result = _workflow(plain, host).run()

    assert isinstance(result.error, NoRepositoriesFoundError)


def test_explicit_path_wins(committed_repo, git, host, tmp_path):
    _stage_change(committed_repo, git)
    other = tmp_path / "other"
    other.mkdir()

    result = _workflow(other, host).run(str(committed_repo))

    assert result.state is WorkflowState.DONE
    assert result.repo_path.resolve() == committed_repo.resolve()


def test_retry_is_visible_in_history(committed_repo, git, host):
    _stage_change(committed_repo, git)
    responses = [
        httpx.Response(429),
        httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "fix: ok"}]}}]}),
    ]
    config = _config(committed_repo)
    llm = LLMClient(
        config,
        MemorySecretStore({"gemini": "key"}),
        host=host,
        sleep=lambda s: None,
        http_client=httpx.Client(transport=httpx.MockTransport(lambda r: responses.pop(0))),
    )

    result = SageCMTWorkflow(config, host, MemorySecretStore(), llm_client=llm).run()

    assert result.message == "fix: ok"
    assert result.history.index(WorkflowState.RETRYING) > result.history.index(
        WorkflowState.GENERATING
    )


@pytest.mark.parametrize("max_retries", [1, 2])
def test_generation_failure_is_classified(committed_repo, git, host, max_retries):
    _stage_change(committed_repo, git)
    config = _config(committed_repo, max_retries=max_retries)
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    llm = LLMClient(
        config,
        MemorySecretStore({"gemini": "key"}),
        sleep=lambda s: None,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )

    result = SageCMTWorkflow(config, host, MemorySecretStore(), llm_client=llm).run()

    assert result.state is WorkflowState.FAILED
    assert result.error.status_code == 503
    assert result.message is None
    assert len(calls) == max_retries


def test_staged_greeting_goes_through_prompt_driver_and_cleanup(committed_repo, git, host):
    (committed_repo / "app.py").write_text("line1\nline2\nline3\nhello world\n")
    git(committed_repo, "add", "app.py")
    config = _config(
        committed_repo,
        provider="codestral",
        model="codestral-latest",
        llm_endpoint="https://codestral.mistral.ai/v1",
        api_key_env="CODESTRAL_API_KEY",
    )
    sent = []

    def handler(request):
        sent.append(request)
        content = "```\nfeat: add greeting\n```"
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    llm = LLMClient(
        config,
        MemorySecretStore({"codestral": "abc123"}),
        host=host,
        sleep=lambda s: None,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )

    result = SageCMTWorkflow(config, host, MemorySecretStore(), llm_client=llm).run()

    assert result.state is WorkflowState.DONE
    assert result.message == "feat: add greeting"
    assert result.model == "codestral-latest"
    assert host.get_commit_message(result.repo_path) == "feat: add greeting"

    assert len(sent) == 1
    assert str(sent[0].url) == "https://codestral.mistral.ai/v1/chat/completions"
    assert sent[0].headers["Authorization"] == "Bearer abc123"
    prompt = json.loads(sent[0].content)["messages"][0]["content"]
    assert "Git diff to analyze:" in prompt
    assert "+hello world" in prompt
    assert "File: app.py\nChange analysis based on git blame:" in prompt
    assert "modified 1 line(s) (4)" in prompt
    assert prompt.index("+hello world") < prompt.index("Git blame analysis:")
