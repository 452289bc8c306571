"""Plain-text overview of the catalog for terminals without Rich styling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from ..services.overview import SubjectOverview, collect_overview
from ..services.storage import LectureStorage


@dataclass
class ConsoleSection:
    title: str
    entries: Iterable[str]


class ConsoleUI:
    """Minimal console UI listing lectures per subject."""

    def __init__(self, storage: LectureStorage, *, write: Callable[[str], None] = print) -> None:
        self._storage = storage
        self._write = write

    def run(self) -> None:
        snapshot = collect_overview(self._storage)
        self._write("Lecture Hub – Console Overview")
        self._write("=" * 40)
        for section in self._build_sections(snapshot.subjects):
            self._write(section.title)
            self._write("-" * len(section.title))
            has_entries = False
            for entry in section.entries:
                has_entries = True
                self._write(entry)
            if not has_entries:
                self._write("(empty)")
            self._write("")
        self._write(
            f"{snapshot.live_count} live, {snapshot.recorded_count} recorded, "
            f"{snapshot.total_views} total views"
        )

    def _build_sections(self, subjects: Iterable[SubjectOverview]) -> Iterable[ConsoleSection]:
        for entry in subjects:
            yield ConsoleSection(
                title=f"Subject: {entry.subject.value.capitalize()}",
                entries=self._format_entries(entry),
            )

    @staticmethod
    def _format_entries(entry: SubjectOverview) -> Iterable[str]:
        for live in entry.live:
            yield f"  [live] {live.title} ({live.viewers} viewers)"
        for recorded in entry.recorded:
            marker = " *" if recorded.is_bookmarked else ""
            yield f"  {recorded.title} ({recorded.views} views){marker}"


__all__ = ["ConsoleUI"]
