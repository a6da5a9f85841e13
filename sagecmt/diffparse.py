"""Pure parsers for git text output.

Nothing in this module runs git; every function maps text to structured
data so it can be tested against literal fixtures.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

TRUNCATION_MARKER = "\n...(truncated)"

_HUNK_RE = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")
_SHA_RE = re.compile(r"^[0-9a-f]{40} ")


@dataclass(frozen=True)
class BlameLine:
    """One source line attributed by ``git blame --line-porcelain``."""

    author: str
    email: str
    commit_id: str
    timestamp: int
    line_content: str


def parse_changed_lines(diff: str) -> Set[int]:
    """Return the new-file line numbers of every added line in ``diff``.

    A hunk header ``@@ -a,b +c,d @@`` resets the counter to ``c``. Added
    lines are recorded then advance the counter, context lines advance it,
    removed lines do not.
    """
    changed: Set[int] = set()
    current: Optional[int] = None
    for line in diff.splitlines():
        if line.startswith("@@"):
            match = _HUNK_RE.match(line)
            current = int(match.group(1)) if match else None
            continue
        if current is None:
            continue
        if line.startswith("+++") or line.startswith("---"):
            continue
        if line.startswith("\\"):
            # "\ No newline at end of file"
            continue
        if line.startswith("+"):
            changed.add(current)
            current += 1
        elif line.startswith("-"):
            continue
        else:
            current += 1
    return changed


def count_added_lines(diff: str) -> int:
    return sum(
        1
        for line in diff.splitlines()
        if line.startswith("+") and not line.startswith("+++")
    )


def parse_blame_porcelain(output: str) -> List[BlameLine]:
    """Parse ``git blame --line-porcelain`` output, one entry per line."""
    entries: List[BlameLine] = []
    commit_id = author = email = ""
    timestamp = 0
    for raw in output.split("\n"):
        if raw.startswith("\t"):
            entries.append(
                BlameLine(
                    author=author,
                    email=email,
                    commit_id=commit_id,
                    timestamp=timestamp,
                    line_content=raw[1:],
                )
            )
            commit_id = author = email = ""
            timestamp = 0
        elif _SHA_RE.match(raw):
            commit_id = raw.split(" ", 1)[0]
        elif raw.startswith("author-mail "):
            email = raw[len("author-mail "):].strip().strip("<>")
        elif raw.startswith("author "):
            author = raw[len("author "):]
        elif raw.startswith("committer-time "):
            try:
                timestamp = int(raw[len("committer-time "):])
            except ValueError:
                timestamp = 0
    return entries


def split_nul(output: str) -> List[str]:
    """Split NUL-terminated path listings (git's ``-z`` output)."""
    return [entry for entry in output.split("\0") if entry]


def _content_lines(content: str) -> List[str]:
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def synthesize_new_file_diff(path: str, content: str) -> str:
    """Render an untracked file as a unified diff adding every line."""
    lines = _content_lines(content)
    digest = hashlib.sha1(content.encode("utf-8", "replace")).hexdigest()[:7]
    header = [
        f"diff --git a/{path} b/{path}",
        "new file mode 100644",
        f"index 0000000..{digest}",
        "--- /dev/null",
        f"+++ b/{path}",
    ]
    if not lines:
        return "\n".join(header)
    header.append(f"@@ -0,0 +1,{len(lines)} @@")
    return "\n".join(header + [f"+{line}" for line in lines])


def synthesize_deleted_file_diff(path: str, content: str) -> str:
    """Render a deleted file's last committed content as all-removed lines."""
    lines = _content_lines(content)
    header = [
        f"diff --git a/{path} b/{path}",
        "deleted file mode 100644",
        f"--- a/{path}",
        "+++ /dev/null",
    ]
    if not lines:
        return "\n".join(header)
    header.append(f"@@ -1,{len(lines)} +0,0 @@")
    return "\n".join(header + [f"-{line}" for line in lines])


def truncate_diff(diff: str, limit: int) -> Tuple[str, bool]:
    """Cut ``diff`` to ``limit`` characters, appending an explicit marker.

    Already-truncated text is returned unchanged.
    """
    if limit <= 0 or len(diff) <= limit or diff.endswith(TRUNCATION_MARKER):
        return diff, False
    return diff[:limit] + TRUNCATION_MARKER, True
