"""Resolve pending repository changes into a single diff text."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from .config import DEFAULT_MAX_DIFF_LENGTH
from .diffparse import (
    synthesize_deleted_file_diff,
    synthesize_new_file_diff,
    truncate_diff,
)
from .exceptions import NoChangesDetectedError
from .git import GitRepo

logger = logging.getLogger(__name__)

UNSTAGED_HEADER = "# Unstaged changes:"
NEW_FILES_HEADER = "# New files:"
DELETED_FILES_HEADER = "# Deleted files:"


class ScopePolicy(Enum):
    STAGED_ONLY = "staged_only"
    AUTO = "auto"


@dataclass(frozen=True)
class ChangeSet:
    """The diff handed to generation plus the files it covers."""

    diff_text: str
    files: Tuple[str, ...] = ()
    scope: Tuple[str, ...] = ()
    truncated: bool = False

    def __post_init__(self) -> None:
        if not self.diff_text or not self.diff_text.strip():
            raise NoChangesDetectedError()


class ChangeSetResolver:
    """Collect staged, unstaged, untracked and deleted changes."""

    def __init__(
        self,
        git_repo: GitRepo,
        max_diff_length: int = DEFAULT_MAX_DIFF_LENGTH,
    ) -> None:
        self.git_repo = git_repo
        self.max_diff_length = max_diff_length

    def resolve(self, policy: ScopePolicy = ScopePolicy.AUTO) -> ChangeSet:
        """Return the ChangeSet for ``policy``.

        Staged changes always win when present. With ``STAGED_ONLY`` an
        empty index is an error even if the worktree has new files.
        """
        staged = self._collect_staged()
        if staged is not None:
            return staged
        if policy is ScopePolicy.STAGED_ONLY:
            logger.info("No staged changes and staged-only mode is enabled")
            raise NoChangesDetectedError("No staged changes detected.")
        return self._collect_worktree()

    # ------------------------------------------------------------------
    def _collect_staged(self) -> ChangeSet | None:
        files = [f for f in self.git_repo.staged_files() if not self.git_repo.is_submodule(f)]
        diffs: List[str] = []
        kept: List[str] = []
        for path in files:
            diff = self.git_repo.get_staged_diff(path)
            if diff.strip():
                diffs.append(diff.rstrip("\n"))
                kept.append(path)
        if not diffs:
            return None
        return self._build("\n\n".join(diffs), kept, ("staged",))

    def _collect_worktree(self) -> ChangeSet:
        sections: List[str] = []
        files: List[str] = []
        scope: List[str] = []

        deleted = set(self.git_repo.deleted_files())

        unstaged_diffs: List[str] = []
        for path in self.git_repo.unstaged_files():
            if path in deleted or self.git_repo.is_submodule(path):
                continue
            diff = self.git_repo.get_working_diff(path)
            if diff.strip():
                unstaged_diffs.append(diff.rstrip("\n"))
                files.append(path)
        if unstaged_diffs:
            sections.append(UNSTAGED_HEADER + "\n" + "\n\n".join(unstaged_diffs))
            scope.append("unstaged")

        new_diffs: List[str] = []
        for path in self.git_repo.untracked_files():
            rendered = self._render_untracked(path)
            if rendered:
                new_diffs.append(rendered)
                files.append(path)
        if new_diffs:
            sections.append(NEW_FILES_HEADER + "\n" + "\n\n".join(new_diffs))
            scope.append("untracked")

        if deleted and self.git_repo.has_head():
            deleted_diffs: List[str] = []
            for path in sorted(deleted):
                if self.git_repo.is_submodule(path):
                    continue
                content = self.git_repo.show_head_content(path)
                deleted_diffs.append(synthesize_deleted_file_diff(path, content))
                files.append(path)
            if deleted_diffs:
                sections.append(DELETED_FILES_HEADER + "\n" + "\n\n".join(deleted_diffs))
                scope.append("deleted")
        elif deleted:
            logger.debug("Repository has no HEAD; skipping %d deleted file(s)", len(deleted))

        if not sections:
            raise NoChangesDetectedError()
        return self._build("\n\n".join(sections), files, tuple(scope))

    def _render_untracked(self, path: str) -> str:
        if path.endswith("/"):
            # nested repository or an untracked directory entry
            return ""
        try:
            data = self.git_repo.read_worktree_file(path)
        except OSError as exc:
            logger.warning("Skipping unreadable new file %s: %s", path, exc)
            return ""
        if b"\x00" in data:
            return f"Binary file {path} added"
        return synthesize_new_file_diff(path, data.decode("utf-8", "replace"))

    def _build(self, diff_text: str, files: List[str], scope: Tuple[str, ...]) -> ChangeSet:
        text, truncated = truncate_diff(diff_text, self.max_diff_length)
        if truncated:
            logger.info(
                "Diff truncated from %d to %d characters",
                len(diff_text),
                self.max_diff_length,
            )
        logger.debug("Resolved %d file(s) in scope %s", len(files), ",".join(scope))
        return ChangeSet(
            diff_text=text,
            files=tuple(files),
            scope=scope,
            truncated=truncated,
        )
