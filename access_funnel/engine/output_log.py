"""Append-only Output Log owned by one funnel session."""
from __future__ import annotations

from typing import TYPE_CHECKING

from access_funnel.types import EntryKind, LogEntry

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from access_funnel.errors import FunnelError


class OutputLog:
    def __init__(self, boot: Iterable[str] = ()):
        self._boot = tuple(LogEntry(EntryKind.BOOT, text) for text in boot)
        self._entries: list[LogEntry] = list(self._boot)

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    @property
    def boot_count(self) -> int:
        return len(self._boot)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(tuple(self._entries))

    def echo(self, text: str) -> None:
        self._entries.append(LogEntry(EntryKind.ECHO, text))

    def success(self, text: str) -> None:
        self._entries.append(LogEntry(EntryKind.SUCCESS, text))

    def system(self, text: str) -> None:
        self._entries.append(LogEntry(EntryKind.SYSTEM, text))

    def help(self, text: str) -> None:
        self._entries.append(LogEntry(EntryKind.HELP, text))

    def error(self, exc: FunnelError) -> None:
        self._entries.append(LogEntry(EntryKind.ERROR, exc.message, error=exc))

    def clear(self) -> None:
        """Drop everything except the original boot entries."""
        self._entries = list(self._boot)

    def since(self, position: int) -> list[LogEntry]:
        return self._entries[position:]

    def render(self) -> str:
        lines = []
        for entry in self._entries:
            lines.append(f"> {entry.text}" if entry.kind is EntryKind.ECHO else entry.text)
        return "\n".join(lines)
