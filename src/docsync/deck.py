"""Sync Deck - a TUI for watching folder sync state and trying searches."""

from __future__ import annotations

from datetime import datetime

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.message import Message
from textual.widgets import (
    DataTable,
    Footer,
    Header,
    Input,
    Label,
    Log,
    Rule,
    Static,
)

from docsync.models import SyncFolder, SyncOutcome, SyncOutcomeKind
from docsync.services import Services
from docsync.sync import SyncStatusReport

STATUS_COLORS = {
    "pending": "yellow",
    "syncing": "green",
    "synced": "cyan",
    "error": "red",
    "paused": "dim",
}


class StatsPanel(Static):
    """Aggregated sync status."""

    def compose(self) -> ComposeResult:
        yield Static(id="stats-content")

    def update_display(self, report: SyncStatusReport, folders: list[SyncFolder]) -> None:
        content = self.query_one("#stats-content", Static)
        if not report.is_enabled:
            content.update("[b]SYNC[/b]  [red]DISABLED[/]")
            return

        state = "[green]SYNCING[/]" if report.is_syncing else "[dim]IDLE[/]"
        files = sum(f.file_count for f in folders)
        chunks = sum(f.chunk_count for f in folders)
        content.update(f"""[b]SYNC[/b]    {state}

[b]FOLDERS[/b]
  Total       [cyan]{report.total_folders:,}[/]
  Syncing     [green]{len(report.active_syncs):,}[/]
  Pending     [yellow]{len(report.pending_syncs):,}[/]
  Errors      [red]{len(report.recent_errors):,}[/]

[b]INDEX[/b]
  Files       [blue]{files:,}[/]
  Chunks      [magenta]{chunks:,}[/]""")


class FolderTable(DataTable):
    """One row per registered folder."""

    def on_mount(self) -> None:
        self.add_columns("Folder", "Status", "Files", "Chunks", "Last synced", "Error")
        self.cursor_type = "row"

    def show(self, folders: list[SyncFolder]) -> None:
        self.clear()
        for f in folders:
            color = STATUS_COLORS.get(f.status.value, "white")
            name = f.display_name or f.folder_path
            if len(name) > 30:
                name = name[:27] + "..."
            last_synced = f.last_synced_at[:19].replace("T", " ") if f.last_synced_at else "--"
            error = (f.last_error or "")[:40]
            self.add_row(
                name,
                f"[{color}]{f.status.value}[/]",
                str(f.file_count),
                str(f.chunk_count),
                last_synced,
                f"[red]{error}[/]" if error else "",
                key=f.id,
            )


class SyncDeck(App):
    """Live view over every sync folder, with manual sync and search."""

    # Messages for thread-safe communication
    class LogMessage(Message):
        def __init__(self, message: str) -> None:
            self.message = message
            super().__init__()

    class SyncFinished(Message):
        def __init__(self, outcome: SyncOutcome) -> None:
            self.outcome = outcome
            super().__init__()

    CSS = """
    Screen {
        background: $surface;
    }

    #main-container {
        layout: horizontal;
        height: 100%;
    }

    #left-panel {
        width: 35;
        background: $surface-darken-1;
        border-right: solid $primary-darken-2;
        padding: 1;
    }

    #center-panel {
        width: 1fr;
        padding: 1;
    }

    StatsPanel {
        height: auto;
        padding: 1;
        background: $surface-darken-2;
        border: round $primary;
        margin-bottom: 1;
    }

    FolderTable {
        height: 1fr;
        border: round $primary-darken-1;
    }

    #log-panel {
        height: 14;
        border: round $primary-darken-2;
        background: $surface-darken-2;
    }

    .section-title {
        text-style: bold;
        color: $text;
        margin-bottom: 1;
    }
    """

    BINDINGS = [
        Binding("s", "sync_all", "Sync all", show=True),
        Binding("r", "refresh", "Refresh", show=True),
        Binding("c", "clear", "Clear log", show=True),
        Binding("q", "quit", "Quit", show=True),
    ]

    TITLE = "docsync Deck"
    SUB_TITLE = "Folder Sync Console"

    REFRESH_SECONDS = 2.0

    def __init__(self, services: Services) -> None:
        super().__init__()
        self.services = services

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Container(id="main-container"):
            with Vertical(id="left-panel"):
                yield Label("STATUS", classes="section-title")
                yield StatsPanel()
                yield Rule()
                yield Label("Search")
                yield Input(placeholder="Query, then Enter...", id="search-input")

            with Vertical(id="center-panel"):
                yield Label("FOLDERS", classes="section-title")
                yield FolderTable(id="folder-table")
                yield Rule()
                yield Label("LOG", classes="section-title")
                yield Log(id="log-panel", highlight=True, auto_scroll=True)
        yield Footer()

    def on_mount(self) -> None:
        self._log("Sync deck ready. Press s to sync all folders.")
        self.action_refresh()
        self.set_interval(self.REFRESH_SECONDS, self.action_refresh)

    def _log(self, message: str) -> None:
        timestamp = datetime.now().strftime("%H:%M:%S")
        self.query_one("#log-panel", Log).write_line(f"[{timestamp}] {message}")

    def action_refresh(self) -> None:
        """Re-read folder state from the store."""
        folders = self.services.store.list_folders()
        report = self.services.status()
        self.query_one(StatsPanel).update_display(report, folders)
        self.query_one("#folder-table", FolderTable).show(folders)

    def action_clear(self) -> None:
        self.query_one("#log-panel", Log).clear()

    def action_sync_all(self) -> None:
        if not self.services.config.enabled:
            self._log("Folder sync is disabled")
            return
        self.run_sync_all()

    # Message handlers for thread-safe updates
    def on_sync_deck_log_message(self, event: LogMessage) -> None:
        self._log(event.message)

    def on_sync_deck_sync_finished(self, event: SyncFinished) -> None:
        outcome = event.outcome
        if outcome.kind is SyncOutcomeKind.FAILED:
            self._log(f"{outcome.folder_id}: failed: {outcome.error}")
        else:
            self._log(
                f"{outcome.folder_id}: {outcome.kind.value} "
                f"(+{outcome.added} ~{outcome.updated} -{outcome.removed}, "
                f"{outcome.failed} failed)"
            )
        self.action_refresh()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        query = event.value.strip()
        if query:
            self.run_search(query)

    @work(exclusive=True, thread=True, group="sync")
    def run_sync_all(self) -> None:
        """Schedule every unpaused folder and report outcomes as they land."""
        futures = self.services.scheduler.schedule_all()
        self.post_message(self.LogMessage(f"Syncing {len(futures)} folder(s)..."))
        for future in futures:
            try:
                self.post_message(self.SyncFinished(future.result()))
            except Exception as e:
                self.post_message(self.LogMessage(f"Sync task failed: {e}"))

    @work(exclusive=True, thread=True, group="search")
    def run_search(self, query: str) -> None:
        result = self.services.searcher.try_search(query, top_k=5)
        if not result.ok:
            self.post_message(self.LogMessage(f"Search failed: {result.message}"))
            return
        hits = result.value
        self.post_message(self.LogMessage(f"{len(hits)} result(s) for {query!r}"))
        for hit in hits:
            line = f":{hit.start_line}" if hit.start_line is not None else ""
            snippet = hit.text[:60].replace("\n", " ")
            self.post_message(
                self.LogMessage(f"  [{hit.score:.3f}] {hit.relative_path}{line}  {snippet}")
            )
