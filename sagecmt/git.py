"""Git operations for sagecmt."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional

from .diffparse import split_nul
from .exceptions import GitError, VersionControlUnavailableError

logger = logging.getLogger(__name__)

# git exits 128 for "fatal" conditions such as a missing HEAD
SOFT_EMPTY_EXIT = 128

# keep non-ASCII paths unquoted in diff headers and blame output
GIT_PREFIX = ["git", "-c", "core.quotepath=off"]


def find_git_repo_root(start_path: Optional[Path] = None) -> Optional[Path]:
    """Return the top-level Git repository directory for ``start_path``.

    Attempts ``git rev-parse --show-toplevel`` first so worktrees and
    submodules are handled correctly. Falls back to walking parent
    directories looking for a ``.git`` directory or file. Returns ``None``
    when no Git repository can be found starting from ``start_path``.
    """

    path = Path(start_path or Path.cwd()).expanduser().resolve(strict=False)
    if path.is_file():
        path = path.parent

    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=path,
            capture_output=True,
            text=True,
            check=True,
        )
        top = result.stdout.strip()
        if top:
            return Path(top)
    except (subprocess.CalledProcessError, FileNotFoundError):
        pass

    for candidate in (path, *path.parents):
        if (candidate / ".git").exists():
            return candidate

    return None


def discover_repositories(paths: Iterable[str]) -> List[Path]:
    """Resolve each path to its repository root, dropping non-repos and duplicates."""
    roots: List[Path] = []
    for raw in paths:
        root = find_git_repo_root(Path(raw))
        if root is not None and root not in roots:
            roots.append(root)
    return roots


class GitRepo:
    """Handles Git repository operations."""

    def __init__(self, repo_path: str | Path) -> None:
        """Initialize Git repository handler."""
        self.repo_path = Path(repo_path)
        if not self._is_git_repo():
            raise GitError(f"Not a Git repository: {self.repo_path}")

    def _is_git_repo(self) -> bool:
        """Check if the current directory is a Git repository."""
        try:
            self._run_git_command(["rev-parse", "--git-dir"])
            return True
        except VersionControlUnavailableError:
            raise
        except GitError:
            return False

    def _run_git_command(
        self,
        args: list[str],
        tolerate: Iterable[int] = (),
        strip: bool = True,
    ) -> str:
        """Run a Git command and return its output.

        Exit codes listed in ``tolerate`` are treated as an empty result
        instead of an error.
        """
        logger.debug("git %s (cwd=%s)", " ".join(args), self.repo_path)
        try:
            result = subprocess.run(
                GIT_PREFIX + args,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except FileNotFoundError as exc:
            raise VersionControlUnavailableError() from exc
        if result.returncode != 0:
            if result.returncode in tuple(tolerate):
                logger.debug(
                    "git %s exited %s; treating as empty",
                    args[0],
                    result.returncode,
                )
                return ""
            cmd = " ".join(args)
            stderr = (result.stderr or "").strip()
            raise GitError(
                f"Git command failed: {cmd}\n{stderr}",
                stderr=stderr,
                returncode=result.returncode,
            )
        out = result.stdout or ""
        return out.strip() if strip else out

    # ------------------------------------------------------------------
    # Repository state
    # ------------------------------------------------------------------
    def has_head(self) -> bool:
        """True once the repository has at least one commit."""
        return bool(
            self._run_git_command(
                ["rev-parse", "--verify", "HEAD"], tolerate=(SOFT_EMPTY_EXIT,)
            )
        )

    def has_remotes(self) -> bool:
        return bool(self._run_git_command(["remote"]))

    def _list_paths(self, args: list[str]) -> List[str]:
        return split_nul(self._run_git_command(args + ["-z"], strip=False))

    def staged_files(self) -> List[str]:
        return self._list_paths(["diff", "--staged", "--name-only"])

    def unstaged_files(self) -> List[str]:
        return self._list_paths(["diff", "--name-only"])

    def untracked_files(self) -> List[str]:
        return self._list_paths(["ls-files", "--others", "--exclude-standard"])

    def deleted_files(self) -> List[str]:
        return self._list_paths(["ls-files", "--deleted"])

    def has_staged_changes(self) -> bool:
        return bool(self.staged_files())

    def is_submodule(self, file_path: str) -> bool:
        staged = self._run_git_command(["ls-files", "--stage", "--", file_path])
        return staged.startswith("160000")

    def is_in_head(self, file_path: str) -> bool:
        """True when ``file_path`` exists in the HEAD commit."""
        out = self._run_git_command(
            ["ls-tree", "--name-only", "HEAD", "--", file_path],
            tolerate=(SOFT_EMPTY_EXIT,),
        )
        return bool(out)

    # ------------------------------------------------------------------
    # Diffs and content
    # ------------------------------------------------------------------
    def get_staged_diff(self, file_path: Optional[str] = None) -> str:
        """Get the diff of staged changes, optionally for one file."""
        args = ["diff", "--staged"]
        if file_path:
            args += ["--", file_path]
        return self._run_git_command(args, strip=False)

    def get_working_diff(self, file_path: Optional[str] = None) -> str:
        """Get the diff of working directory changes, optionally for one file."""
        args = ["diff"]
        if file_path:
            args += ["--", file_path]
        return self._run_git_command(args, strip=False)

    def get_head_diff(self, file_path: str) -> str:
        """Diff of ``file_path`` between HEAD and the working tree."""
        return self._run_git_command(
            ["diff", "HEAD", "--", file_path],
            tolerate=(SOFT_EMPTY_EXIT,),
            strip=False,
        )

    def show_head_content(self, file_path: str) -> str:
        return self._run_git_command(
            ["show", f"HEAD:{file_path}"],
            tolerate=(SOFT_EMPTY_EXIT,),
            strip=False,
        )

    def blame_porcelain(self, file_path: str) -> str:
        return self._run_git_command(
            ["blame", "--line-porcelain", "--", file_path],
            tolerate=(SOFT_EMPTY_EXIT,),
            strip=False,
        )

    def read_worktree_file(self, file_path: str) -> bytes:
        return (self.repo_path / file_path).read_bytes()

    def worktree_exists(self, file_path: str) -> bool:
        return (self.repo_path / file_path).exists()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def stage_all(self) -> None:
        """Stage all changes (including new and deleted files)."""
        self._run_git_command(["add", "-A"])

    def commit(self, message: str) -> None:
        """Create a commit with the given message."""
        self._run_git_command(["commit", "-m", message])

    def push(self) -> str:
        """Push the current branch to its configured upstream."""
        return self._run_git_command(["push"])

    def head_commit(self) -> str:
        return self._run_git_command(
            ["rev-parse", "--short", "HEAD"], tolerate=(SOFT_EMPTY_EXIT,)
        )
