"""Per-author attribution of changed lines using git blame."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .diffparse import BlameLine, parse_blame_porcelain, parse_changed_lines
from .exceptions import GitError
from .git import GitRepo

logger = logging.getLogger(__name__)

BLAME_HEADING = "Change analysis based on git blame:"

__all__ = [
    "BLAME_HEADING",
    "AuthorStats",
    "AuthorshipAnalyzer",
    "AuthorshipSummary",
    "BlameLine",
    "summarize_authorship",
]


@dataclass
class AuthorStats:
    changed_line_count: int = 0
    line_numbers: List[int] = field(default_factory=list)


@dataclass
class AuthorshipSummary:
    """Changed-line counts per author for one file."""

    authors: Dict[str, AuthorStats] = field(default_factory=dict)

    def ordered(self) -> List[Tuple[str, AuthorStats]]:
        return sorted(
            self.authors.items(),
            key=lambda item: (-item[1].changed_line_count, item[0]),
        )

    @property
    def total_lines(self) -> int:
        return sum(s.changed_line_count for s in self.authors.values())

    def format(self) -> str:
        if not self.authors:
            return ""
        lines = [BLAME_HEADING]
        for author, stats in self.ordered():
            numbers = ", ".join(str(n) for n in stats.line_numbers)
            lines.append(
                f"{author} modified {stats.changed_line_count} line(s) ({numbers})"
            )
        return "\n".join(lines)


def summarize_authorship(
    blame: Sequence[BlameLine], changed_lines: set[int]
) -> AuthorshipSummary:
    """Attribute each changed line to the author blame reports for it.

    Line numbers missing from the blame output are ignored.
    """
    summary = AuthorshipSummary()
    for number in sorted(changed_lines):
        if number < 1 or number > len(blame):
            continue
        author = blame[number - 1].author or "Unknown"
        stats = summary.authors.setdefault(author, AuthorStats())
        stats.changed_line_count += 1
        stats.line_numbers.append(number)
    return summary


class AuthorshipAnalyzer:
    """Produce the authorship text sent alongside the diff."""

    def __init__(self, git_repo: GitRepo, max_workers: int = 4) -> None:
        self.git_repo = git_repo
        self.max_workers = max(1, max_workers)
        self._has_head: Optional[bool] = None

    def _repo_has_head(self) -> bool:
        if self._has_head is None:
            self._has_head = self.git_repo.has_head()
        return self._has_head

    def analyze_file(self, file_path: str) -> str:
        if not self.git_repo.worktree_exists(file_path):
            return f"Deleted file: {file_path}"
        if not self._repo_has_head() or not self.git_repo.is_in_head(file_path):
            return f"New file: {file_path}"

        diff = self.git_repo.get_head_diff(file_path)
        if not diff.strip():
            return ""
        blame = parse_blame_porcelain(self.git_repo.blame_porcelain(file_path))
        if not blame:
            return ""
        return summarize_authorship(blame, parse_changed_lines(diff)).format()

    def _analyze_isolated(self, file_path: str) -> str:
        try:
            body = self.analyze_file(file_path)
        except (GitError, OSError) as exc:
            logger.warning("Unable to analyze %s: %s", file_path, exc)
            return f"File: {file_path}\nUnable to analyze: {exc}"
        return f"File: {file_path}\n{body}" if body else f"File: {file_path}"

    def analyze_files(self, file_paths: Sequence[str]) -> str:
        """Analyze files concurrently, keeping input order in the output."""
        if not file_paths:
            return ""
        # resolve once before fanning out
        self._repo_has_head()
        workers = min(self.max_workers, len(file_paths))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            parts = list(pool.map(self._analyze_isolated, file_paths))
        return "\n\n".join(parts)
