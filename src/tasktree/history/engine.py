# src/tasktree/history/engine.py

"""
Bounded undo/redo history.

The engine keeps an ordered list of executed commands and a cursor
(`current_index`) pointing at the last applied one (-1 = nothing applied).

Two kinds of history exist and are kept apart on purpose:
- session history: live Command objects, replayable (undo/redo);
- imported history: HistoryRecord values loaded from a previous session,
  display-only. Commands hold live object references and are not persisted,
  so prior-session actions can be shown but never undone.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from ..core.ports import Command

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY_SIZE = 20


@dataclass(frozen=True, slots=True)
class HistoryRecord:
    """Portable history entry: what happened and when. Not replayable."""

    description: str
    timestamp: datetime

    def to_portable(self) -> dict[str, str]:
        return {"description": self.description, "timestamp": self.timestamp.isoformat()}

    @classmethod
    def from_portable(cls, raw: Mapping[str, Any]) -> HistoryRecord:
        return cls(
            description=str(raw.get("description", "")),
            timestamp=_parse_ts(raw.get("timestamp")),
        )


def _parse_ts(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        ts = raw
    elif isinstance(raw, str) and raw.strip():
        # JS toISOString() emits a trailing "Z".
        ts = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"invalid history timestamp: {raw!r}")
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=UTC)


def parse_history_records(
    records: Iterable[HistoryRecord | Mapping[str, Any]],
) -> list[HistoryRecord]:
    """Parse stored records, dropping (and logging) the ones that do not parse."""
    parsed: list[HistoryRecord] = []
    for raw in records:
        if isinstance(raw, HistoryRecord):
            parsed.append(raw)
            continue
        try:
            parsed.append(HistoryRecord.from_portable(raw))
        except (AttributeError, TypeError, ValueError):
            logger.warning("Skipping malformed history record: %r", raw)
    return parsed


@dataclass(frozen=True, slots=True)
class ImportedEntry:
    """Display row for a prior-session action. Never undoable."""

    description: str
    timestamp: datetime
    index: int  # negative: position relative to the start of the session

    @property
    def can_undo(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class SessionEntry:
    """Display row for a replayable command of the current session."""

    command: Command
    index: int

    @property
    def description(self) -> str:
        return self.command.description

    @property
    def timestamp(self) -> datetime:
        return self.command.timestamp

    @property
    def can_undo(self) -> bool:
        return True


DisplayEntry = ImportedEntry | SessionEntry


class HistoryEngine:
    """Command manager for one task collection (one project)."""

    def __init__(self, max_history_size: int = DEFAULT_MAX_HISTORY_SIZE) -> None:
        if max_history_size < 1:
            raise ValueError("max_history_size must be >= 1")
        self._max_history_size = int(max_history_size)
        self._history: list[Command] = []
        self._current_index = -1
        self._imported: list[HistoryRecord] = []

    # ---- state ----

    @property
    def max_history_size(self) -> int:
        return self._max_history_size

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def history(self) -> tuple[Command, ...]:
        return tuple(self._history)

    @property
    def imported_history(self) -> tuple[HistoryRecord, ...]:
        return tuple(self._imported)

    def can_undo(self) -> bool:
        return self._current_index >= 0

    def can_redo(self) -> bool:
        return self._current_index < len(self._history) - 1

    # ---- transitions ----

    def execute(self, command: Command) -> None:
        """
        Run `command` and record it.

        Any redo branch after the cursor is discarded. When the bound is
        exceeded the oldest command is evicted and the cursor shifts down so it
        keeps pointing at the same command. Exceptions from the command
        propagate before history is touched.
        """
        command.execute()

        if self.can_redo():
            dropped = len(self._history) - (self._current_index + 1)
            del self._history[self._current_index + 1 :]
            logger.debug("History branch discarded: %d command(s)", dropped)

        self._history.append(command)
        self._current_index += 1

        if len(self._history) > self._max_history_size:
            evicted = self._history.pop(0)
            self._current_index -= 1
            logger.debug("History full (%d); evicted %r", self._max_history_size, evicted.description)

    def undo(self) -> bool:
        if not self.can_undo():
            return False
        self._history[self._current_index].undo()
        self._current_index -= 1
        return True

    def redo(self) -> bool:
        if not self.can_redo():
            return False
        self._current_index += 1
        self._history[self._current_index].execute()
        return True

    def clear(self) -> None:
        """Forget session history. Tree state is left as it is."""
        self._history = []
        self._current_index = -1

    # ---- views ----

    def recent_history(self, count: int = 10) -> tuple[Command, ...]:
        if count <= 0:
            return ()
        return tuple(self._history[-count:])

    def full_history_for_display(self, count: int = 10) -> list[DisplayEntry]:
        """
        Imported entries followed by session commands, oldest first, limited to
        the last `count` rows. Imported rows get negative indices.
        """
        if count <= 0:
            return []
        n_imported = len(self._imported)
        rows: list[DisplayEntry] = [
            ImportedEntry(description=r.description, timestamp=r.timestamp, index=i - n_imported)
            for i, r in enumerate(self._imported)
        ]
        rows.extend(SessionEntry(command=cmd, index=i) for i, cmd in enumerate(self._history))
        return rows[-count:]

    # ---- export / import ----

    def export_history(self) -> list[dict[str, str]]:
        return [
            HistoryRecord(description=cmd.description, timestamp=cmd.timestamp).to_portable()
            for cmd in self._history
        ]

    def import_history(self, records: Iterable[HistoryRecord | Mapping[str, Any]]) -> None:
        """Replace the display-only log. Does not create replayable commands."""
        imported = parse_history_records(records)
        self._imported = imported
        logger.debug("Imported %d history record(s)", len(imported))
