from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from rich.console import Console

from repo_to_text.exceptions import GateDecisionError
from repo_to_text.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from repo_to_text.config import OversizedFile


@runtime_checkable
class DecisionProvider(Protocol):
    """Source of keep/drop decisions for oversized files."""

    def present_and_collect_decisions(self, entries: Sequence[OversizedFile]) -> list[bool]:
        """Return one decision per entry, True meaning the file is kept."""
        ...


class AcceptAllDecisions:
    """Non-interactive provider: every large file is kept."""

    def present_and_collect_decisions(self, entries: Sequence[OversizedFile]) -> list[bool]:
        return [True] * len(entries)


class TerminalSelector:
    """Interactive provider rendering a cursor list with rich.

    Commands, one per line: `y` keeps the current file and moves down, `n` drops
    it and moves down, `k`/`up` and `j`/`down` move the cursor, an empty line
    confirms. Every file starts as kept. There is no timeout; confirming (or
    closing stdin) is the only way out.
    """

    KEEP = frozenset({"y", "yes"})
    DROP = frozenset({"n", "no"})
    UP = frozenset({"k", "up"})
    DOWN = frozenset({"j", "down"})

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render(self, entries: Sequence[OversizedFile], selection: list[bool], cursor: int) -> None:
        self.console.clear()
        self.console.print(
            "Select files to include (y/n for current item, k/j to move, Enter to finish):\n",
            markup=False,
        )
        for idx, entry in enumerate(entries):
            prefix = ">" if idx == cursor else " "
            status = "Y" if selection[idx] else "N"
            self.console.print(f"{prefix} [{status}] {entry.label}", markup=False, highlight=False)

    def present_and_collect_decisions(self, entries: Sequence[OversizedFile]) -> list[bool]:
        selection = [True] * len(entries)
        if not entries:
            return selection
        cursor = 0
        last = len(entries) - 1
        while True:
            self.render(entries, selection, cursor)
            try:
                command = self.console.input("> ").strip().lower()
            except EOFError:
                break
            if not command:
                break
            if command in self.KEEP or command in self.DROP:
                selection[cursor] = command in self.KEEP
                cursor = min(cursor + 1, last)
            elif command in self.UP:
                cursor = max(cursor - 1, 0)
            elif command in self.DOWN:
                cursor = min(cursor + 1, last)
        return selection


def gate(
    files: Sequence[Path],
    oversized: Sequence[OversizedFile],
    provider: DecisionProvider,
) -> list[Path]:
    """Drop the oversized files the provider rejects.

    Files under the threshold are always kept, and the input order is preserved.
    The provider is not consulted when nothing is oversized.

    Args:
        files (Sequence[Path]): the walker's candidates
        oversized (Sequence[OversizedFile]): the oversized subset of `files`
        provider (DecisionProvider): where the keep/drop decisions come from

    Raises:
        GateDecisionError: if the provider does not return one decision per entry

    Returns:
        list[Path]: the final file list
    """
    if not oversized:
        return list(files)

    decisions = provider.present_and_collect_decisions(oversized)
    if len(decisions) != len(oversized):
        raise GateDecisionError(expected=len(oversized), received=len(decisions))

    rejected = {entry.path for entry, keep in zip(oversized, decisions, strict=True) if not keep}
    if rejected:
        logger.info("large_files_rejected", count=len(rejected), paths=sorted(str(p) for p in rejected))
    return [f for f in files if f not in rejected]
