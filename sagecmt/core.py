"""Core workflow logic for sagecmt."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .blame import AuthorshipAnalyzer
from .changeset import ChangeSet, ChangeSetResolver, ScopePolicy
from .config import Config
from .credentials import SecretStore
from .exceptions import (
    AutoCommitFailedError,
    AutoPushFailedError,
    GitError,
    LLMError,
    NoRemotesConfiguredError,
    NoRepositoriesFoundError,
    NoRepositorySelectedError,
    SageCMTError,
)
from .git import GitRepo, discover_repositories, find_git_repo_root
from .host import Host
from .llm import LLMClient
from .prompts import GenerationRequest
from .providers.base import CommitMessage
from .validation import SettingsValidator

logger = logging.getLogger(__name__)


class WorkflowState(Enum):
    IDLE = "idle"
    RESOLVING_REPOSITORY = "resolving_repository"
    FETCHING_CHANGES = "fetching_changes"
    ANALYZING_AUTHORSHIP = "analyzing_authorship"
    GENERATING = "generating"
    RETRYING = "retrying"
    APPLYING_RESULT = "applying_result"
    AUTO_COMMITTING = "auto_committing"
    AUTO_PUSHING = "auto_pushing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class WorkflowResult:
    """Outcome of one generation run."""

    state: WorkflowState = WorkflowState.IDLE
    message: Optional[str] = None
    model: Optional[str] = None
    repo_path: Optional[Path] = None
    committed: bool = False
    pushed: bool = False
    warnings: List[str] = field(default_factory=list)
    error: Optional[SageCMTError] = None
    history: List[WorkflowState] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state is WorkflowState.DONE


class SageCMTWorkflow:
    """Drive one request from repository selection to an applied message.

    Strictly sequential: each step finishes before the next begins and
    failures at any step end the run in ``FAILED`` with the classified
    error attached to the result.
    """

    def __init__(
        self,
        config: Config,
        host: Host,
        secrets: SecretStore,
        candidates: Optional[Sequence[str]] = None,
        llm_client: Optional[LLMClient] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.host = host
        self.secrets = secrets
        self.candidates = list(candidates) if candidates else None
        self._llm_client = llm_client
        self._sleep = sleep
        self.state = WorkflowState.IDLE
        self._result = WorkflowResult()

    # ------------------------------------------------------------------
    def _transition(self, state: WorkflowState, label: str, increment: int = 0) -> None:
        self.state = state
        self._result.state = state
        self._result.history.append(state)
        logger.info("%s: %s", state.name, label or "-")
        self.host.report_progress(label, increment)

    def _warn(self, message: str) -> None:
        self._result.warnings.append(message)

    def run(self, repo_path: Optional[str] = None) -> WorkflowResult:
        self._result = WorkflowResult(history=[WorkflowState.IDLE])
        self.state = WorkflowState.IDLE
        try:
            self._run(repo_path)
        except SageCMTError as exc:
            logger.debug("Workflow failed in %s", self.state.name, exc_info=True)
            self._result.error = exc
            self._transition(WorkflowState.FAILED, "")
        return self._result

    def _run(self, repo_path: Optional[str]) -> None:
        result = self._result

        self._transition(WorkflowState.RESOLVING_REPOSITORY, "Finding repository...")
        root = self.select_repository(repo_path)
        result.repo_path = root

        validation = SettingsValidator(self.config, self.host).validate()
        config = validation.config
        for warning in validation.warnings:
            self._warn(warning)

        staged_only = config.only_staged_changes
        self._transition(
            WorkflowState.FETCHING_CHANGES,
            f"Fetching Git diff{' (staged changes only)' if staged_only else ''}...",
        )
        git_repo = GitRepo(root)
        changeset = ChangeSetResolver(git_repo, config.max_diff_length).resolve(
            ScopePolicy.STAGED_ONLY if staged_only else ScopePolicy.AUTO
        )
        logger.info(
            "Git diff fetched: %d characters across %d file(s)",
            len(changeset.diff_text),
            len(changeset.files),
        )

        self._transition(WorkflowState.ANALYZING_AUTHORSHIP, "Analyzing changes...", 25)
        authorship = AuthorshipAnalyzer(git_repo).analyze_files(changeset.files)

        self._transition(WorkflowState.GENERATING, "Generating commit message...", 25)
        commit = self._generate(config, changeset, authorship)
        text = commit.text
        result.model = commit.model

        if config.prompt_for_refs:
            refs = self.host.prompt_input(
                "Enter references (e.g. #123, JIRA-456) to add below the commit message"
            )
            if refs and refs.strip():
                text = f"{text}\n\n{refs.strip()}"

        self._transition(WorkflowState.APPLYING_RESULT, "Setting commit message...", 25)
        self.host.set_commit_message(root, text)
        result.message = text

        if config.auto_commit:
            self._transition(WorkflowState.AUTO_COMMITTING, "Committing changes...")
            self._auto_commit(git_repo, root)
            result.committed = True

            if config.auto_push:
                self._transition(WorkflowState.AUTO_PUSHING, "Pushing to remote...")
                result.pushed = self._auto_push(git_repo)

        self._transition(WorkflowState.DONE, f"Commit message set ({result.model})", 25)

    # ------------------------------------------------------------------
    def select_repository(self, repo_path: Optional[str] = None) -> Path:
        """Pick the repository to work on.

        An explicit path wins; otherwise a single candidate is used as is
        and several candidates are offered to the host for selection.
        """
        if repo_path:
            root = find_git_repo_root(Path(repo_path))
            if root is None:
                raise NoRepositoriesFoundError(f"No Git repository found at {repo_path}")
            return root

        roots = discover_repositories(self.candidates or [self.config.git_repo_path])
        if not roots:
            raise NoRepositoriesFoundError()
        if len(roots) == 1:
            return roots[0]
        index = self.host.quick_pick(
            [str(r) for r in roots], "Select repository to generate commit message"
        )
        if index is None or not 0 <= index < len(roots):
            raise NoRepositorySelectedError()
        return roots[index]

    def _generate(
        self, config: Config, changeset: ChangeSet, authorship: str
    ) -> CommitMessage:
        custom = config.custom_instructions if config.use_custom_instructions else None
        request = GenerationRequest(
            diff_text=changeset.diff_text,
            authorship_text=authorship,
            commit_format=config.commit_format,
            language=config.commit_language,
            custom_instructions=custom,
        )
        client = self._llm_client or LLMClient(
            config, self.secrets, host=self.host, sleep=self._sleep
        )
        return client.generate(
            request, reporter=self.host.report_progress, on_retry=self._on_retry
        )

    def _on_retry(self, attempt: int, delay: float, error: LLMError) -> None:
        self._transition(
            WorkflowState.RETRYING,
            f"Attempt {attempt} failed ({error}); retrying in {delay:g}s",
        )

    def _auto_commit(self, git_repo: GitRepo, root: Path) -> None:
        message = self.host.get_commit_message(root)
        try:
            if not git_repo.has_staged_changes():
                git_repo.stage_all()
            git_repo.commit(message)
        except GitError as exc:
            raise AutoCommitFailedError(
                f"Auto commit failed: {exc.stderr or exc}"
            ) from exc
        logger.info("Committed %s", git_repo.head_commit())

    def _auto_push(self, git_repo: GitRepo) -> bool:
        if not git_repo.has_remotes():
            warning = str(NoRemotesConfiguredError())
            self._warn(warning)
            self.host.show_warning(warning, [])
            return False
        try:
            git_repo.push()
        except GitError as exc:
            raise AutoPushFailedError(f"Auto push failed: {exc.stderr or exc}") from exc
        return True
