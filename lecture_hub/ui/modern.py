"""A Rich-powered console overview of the lecture catalog."""

from __future__ import annotations

from typing import Iterable, Optional

from rich import box
from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from ..models import LiveLecture, RecordedLecture
from ..services.overview import CatalogSnapshot, SubjectOverview, collect_overview
from ..services.storage import LectureStorage


class ModernUI:
    """Render the catalog grouped by subject using Rich widgets."""

    def __init__(self, storage: LectureStorage, *, console: Optional[Console] = None) -> None:
        self._storage = storage
        self._console = console or Console()

    def run(self) -> None:
        snapshot = collect_overview(self._storage)
        console = self._console

        console.rule("[bold magenta]Lecture Hub Overview")

        if snapshot.live_count == 0 and snapshot.recorded_count == 0:
            console.print(
                Panel(
                    "No lectures have been added yet.\n"
                    "Use [bold]python run.py seed[/bold] to load the sample catalog.",
                    border_style="yellow",
                    box=box.ROUNDED,
                )
            )
            return

        tree_panel = Panel(
            self._build_tree(snapshot.subjects),
            title="Subjects",
            border_style="cyan",
            box=box.ROUNDED,
        )
        console.print(Columns([tree_panel, self._build_stats_panel(snapshot)], expand=True, equal=True))

    def _build_tree(self, subjects: Iterable[SubjectOverview]) -> Tree:
        tree = Tree("[bold cyan]Catalog", guide_style="cyan")
        for entry in subjects:
            node = tree.add(Text(entry.label, style="bold"))
            if not entry.live and not entry.recorded:
                node.add("[dim]No lectures yet")
                continue
            for live in entry.live:
                node.add(self._build_live_label(live))
            for recorded in entry.recorded:
                node.add(self._build_recorded_label(recorded))
        return tree

    @staticmethod
    def _build_live_label(lecture: LiveLecture) -> Text:
        label = Text("● LIVE ", style="bold red" if lecture.is_live else "dim")
        label.append(lecture.title, style="white")
        label.append(f"  {lecture.viewers} watching", style="dim")
        return label

    @staticmethod
    def _build_recorded_label(lecture: RecordedLecture) -> Text:
        label = Text(lecture.title, style="white")
        label.append(f"  {lecture.views} views", style="green")
        if lecture.is_bookmarked:
            label.append("  ★", style="yellow")
        return label

    @staticmethod
    def _build_stats_panel(snapshot: CatalogSnapshot) -> Panel:
        metrics = Table.grid(expand=True, padding=(0, 1))
        metrics.add_column(style="dim")
        metrics.add_column(justify="right", style="bold")
        metrics.add_row("Live lectures", str(snapshot.live_count))
        metrics.add_row("Recorded lectures", str(snapshot.recorded_count))
        metrics.add_row("Total views", str(snapshot.total_views))
        metrics.add_row("Bookmarked", str(snapshot.bookmarked_count))

        subject_table = Table.grid(expand=True, padding=(0, 1))
        subject_table.add_column(style="dim")
        subject_table.add_column(justify="right", style="bold")
        for entry in snapshot.subjects:
            subject_table.add_row(entry.label, str(len(entry.recorded)))

        body = Group(metrics, Rule(style="magenta"), subject_table)
        return Panel(body, title="At a glance", border_style="magenta", box=box.ROUNDED)


__all__ = ["ModernUI"]
