"""Append-only status ledger.

One tab-separated line per finished task::

    stage<TAB>scope<TAB>target<TAB>status<TAB>log_path

Each append opens the file in append mode and writes a single line, so an
interrupted run never damages earlier entries.  Reading skips partial or
malformed lines and keeps file order, which is also execution order.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from oav.models import Stage, StatusEntry


class StatusLedger:
    """The ``status.tsv`` file of one ``validate`` run."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def reset(self) -> None:
        """Truncate the ledger so it only holds entries of the coming run."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("", encoding="utf-8")

    def append(self, entry: StatusEntry) -> StatusEntry:
        """Append *entry* as one line.

        Raises:
            OSError: If the ledger cannot be opened for appending.
        """
        with open(self.path, "a", encoding="utf-8") as fh:
            fh.write(entry.to_line() + "\n")
        return entry

    def load(self) -> list[StatusEntry]:
        """Every well-formed entry, in file order.  A missing file reads as empty."""
        if not self.path.exists():
            return []
        entries: list[StatusEntry] = []
        for line in self.path.read_text(encoding="utf-8", errors="replace").splitlines():
            entry = StatusEntry.from_line(line)
            if entry is not None:
                entries.append(entry)
        return entries

    def entries_for(self, stage: Stage, scope: Optional[str] = None) -> list[StatusEntry]:
        return [
            e for e in self.load()
            if e.stage is stage and (scope is None or e.scope == scope)
        ]

    def counts(self) -> tuple[int, int]:
        """``(passed, failed)`` task counts over the whole ledger."""
        entries = self.load()
        passed = sum(1 for e in entries if e.passed)
        return passed, len(entries) - passed
