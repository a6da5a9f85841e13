"""Host collaborator: where messages land and how the user is asked things."""

from __future__ import annotations

import getpass
import sys
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, TextIO

RESET = "\033[0m"
BOLD = "\033[1m"
CYAN = "\033[96m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
DIM = "\033[2m"
RED = "\033[91m"


class Host(Protocol):
    """Operations the workflow needs from its embedding environment."""

    def set_commit_message(self, repo: Path, message: str) -> None: ...

    def get_commit_message(self, repo: Path) -> str: ...

    def report_progress(self, message: str, increment: int) -> None: ...

    def quick_pick(self, items: Sequence[str], placeholder: str) -> Optional[int]: ...

    def show_warning(self, message: str, choices: Sequence[str]) -> Optional[str]: ...

    def prompt_input(self, prompt: str, password: bool = False) -> Optional[str]: ...


class TerminalHost:
    """Host implementation for an interactive terminal.

    The commit message "input surface" is an in-memory buffer per
    repository; the CLI prints it once the workflow finishes.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        interactive: Optional[bool] = None,
        color: Optional[bool] = None,
    ) -> None:
        self.stream = stream or sys.stderr
        if interactive is None:
            interactive = sys.stdin.isatty()
        self.interactive = interactive
        if color is None:
            color = bool(getattr(self.stream, "isatty", lambda: False)())
        self.color = color
        self._messages: Dict[Path, str] = {}
        self._progress = 0
        self.warnings: List[str] = []

    def _c(self, code: str, text: str) -> str:
        return f"{code}{text}{RESET}" if self.color else text

    def _write(self, text: str) -> None:
        self.stream.write(text + "\n")
        self.stream.flush()

    # Input surface
    def set_commit_message(self, repo: Path, message: str) -> None:
        self._messages[Path(repo)] = message

    def get_commit_message(self, repo: Path) -> str:
        return self._messages.get(Path(repo), "")

    def report_progress(self, message: str, increment: int) -> None:
        self._progress = min(100, self._progress + max(0, increment))
        if not message:
            return
        self._write(self._c(DIM, f"[{self._progress:>3}%] {message}"))

    def quick_pick(self, items: Sequence[str], placeholder: str) -> Optional[int]:
        if not items:
            return None
        if not self.interactive:
            return None
        self._write(self._c(BOLD, placeholder))
        for idx, item in enumerate(items, start=1):
            self._write(f"  {self._c(CYAN, str(idx))}) {item}")
        try:
            raw = input("> ").strip()
        except EOFError:
            return None
        if not raw.isdigit():
            return None
        choice = int(raw) - 1
        return choice if 0 <= choice < len(items) else None

    def show_warning(self, message: str, choices: Sequence[str]) -> Optional[str]:
        self.warnings.append(message)
        self._write(self._c(YELLOW, f"Warning: {message}"))
        if not choices or not self.interactive:
            return None
        for idx, choice in enumerate(choices, start=1):
            self._write(f"  {self._c(CYAN, str(idx))}) {choice}")
        try:
            raw = input("Select an option (Enter to dismiss): ").strip()
        except EOFError:
            return None
        if raw.isdigit() and 0 < int(raw) <= len(choices):
            return choices[int(raw) - 1]
        return None

    def prompt_input(self, prompt: str, password: bool = False) -> Optional[str]:
        if not self.interactive:
            return None
        try:
            if password:
                value = getpass.getpass(f"{prompt}: ")
            else:
                value = input(f"{prompt}: ")
        except EOFError:
            return None
        return value or None

    def error(self, message: str) -> None:
        self._write(self._c(RED, f"Error: {message}"))

    def success(self, message: str) -> None:
        self._write(self._c(GREEN, message))
