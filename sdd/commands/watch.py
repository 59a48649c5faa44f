"""
sdd watch - Watch .sdd/specs and re-validate on change.

Dashboard TUI by default; --plain streams results to stdout.
Validation runs on the watcher thread, one batch at a time.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, VerticalScroll
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Static

from sdd.lib.cache import load_cache, save_cache
from sdd.lib.errors import ExitCode
from sdd.lib.watcher import BatchResult, ChangeEvent, SpecWatcher, WatchSession
from sdd.spec.locate import specs_dir
from sdd.spec.validator import ValidationSummary

HISTORY_DISPLAY_COUNT = 8
EVENT_SYMBOLS = {"created": "+", "modified": "~", "deleted": "-", "moved": ">"}


def _relative(path: Path, base: Path) -> str:
    return str(path.relative_to(base)) if path.is_relative_to(base) else str(path)


def _summary_line(summary: Optional[ValidationSummary]) -> str:
    if summary is None:
        return "validation off"
    text = f"{summary.passed} passed, {summary.failed} failed"
    if summary.warnings:
        text += f", {summary.warnings} warnings"
    return text


def _failure_lines(summary: ValidationSummary, base: Path) -> list[str]:
    lines = []
    for result in summary.files:
        if result.valid:
            continue
        lines.append(f"✗ {_relative(Path(result.file), base)}")
        lines += [f"    {error}" for error in result.errors]
    return lines


class ContentScreen(ModalScreen):
    """Full screen viewer for validation errors."""

    BINDINGS = [
        Binding("q", "back", "Back"),
        Binding("escape", "back", "Back"),
    ]

    def __init__(self, content: str, title: str = "") -> None:
        super().__init__()
        self.content = content
        self.screen_title = title

    def compose(self) -> ComposeResult:
        yield Header()
        yield VerticalScroll(
            Static(self.content, id="content-body", markup=False),
            id="content-scroll",
        )
        yield Footer()

    def on_mount(self) -> None:
        if self.screen_title:
            self.title = self.screen_title

    def action_back(self) -> None:
        self.app.pop_screen()


class SummaryWidget(Static):
    """Watched path, change count and the last validation summary."""

    watching: reactive[str] = reactive("")
    change_count: reactive[int] = reactive(0)
    summary: reactive[Optional[ValidationSummary]] = reactive(None, always_update=True)
    validate_enabled: reactive[bool] = reactive(True)

    def render(self) -> str:
        lines = [
            f"[bold]Watching[/bold] {self.watching}",
            f"Changes: {self.change_count}",
        ]
        if not self.validate_enabled:
            lines.append("Validation: [dim]off[/dim]")
        elif self.summary is None:
            lines.append("Validation: [dim]pending[/dim]")
        else:
            color = "green" if self.summary.ok else "red"
            lines.append(f"Validation: [{color}]{_summary_line(self.summary)}[/{color}]")
        return "\n".join(lines)


class HistoryWidget(Static):
    """Recent change batches, newest first."""

    batches: reactive[list] = reactive(list, always_update=True)
    base: Path = Path(".")

    def render(self) -> str:
        if not self.batches:
            return "[dim]No changes yet[/dim]"

        lines = ["[bold]Recent:[/bold]"]
        for batch in list(reversed(self.batches))[:HISTORY_DISPLAY_COUNT]:
            files = ", ".join(
                f"{EVENT_SYMBOLS.get(e.type, '?')}{_relative(e.path, self.base)}" for e in batch.events[:3]
            )
            more = f" +{len(batch.events) - 3}" if len(batch.events) > 3 else ""
            status = ""
            if batch.summary is not None and batch.summary.files:
                status = " [green]ok[/green]" if batch.summary.ok else " [red]failed[/red]"
            lines.append(f"  [dim]{batch.at.strftime('%H:%M:%S')}[/dim] {files}{more}{status}")
        return "\n".join(lines)


class WatchApp(App):
    """Spec watch dashboard."""

    CSS = """
    #main-container {
        layout: vertical;
        padding: 1;
    }

    #summary-box {
        border: solid green;
        padding: 1;
        margin-bottom: 1;
        height: auto;
    }

    #history-box {
        border: solid blue;
        padding: 1;
        height: 1fr;
    }

    #content-scroll {
        height: 1fr;
    }

    #content-body {
        padding: 1;
    }

    SummaryWidget {
        height: auto;
    }

    HistoryWidget {
        height: auto;
    }
    """

    BINDINGS = [
        Binding("v", "validate_all", "Validate all"),
        Binding("e", "show_errors", "Errors"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, session: WatchSession, debounce_ms: int = 500) -> None:
        super().__init__()
        self.session = session
        self.debounce_ms = debounce_ms
        self.watcher: Optional[SpecWatcher] = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Container(
            Container(SummaryWidget(id="summary"), id="summary-box"),
            Container(HistoryWidget(id="history"), id="history-box"),
            id="main-container",
        )
        yield Footer()

    def on_mount(self) -> None:
        self.title = "sdd watch"
        summary = self.query_one("#summary", SummaryWidget)
        summary.watching = str(self.session.specs_dir)
        summary.validate_enabled = self.session.validate
        self.query_one("#history", HistoryWidget).base = self.session.specs_dir
        summary.summary = self.session.initial()

        self.watcher = SpecWatcher(self.session.specs_dir, self._on_batch, self.debounce_ms)
        self.watcher.start()

    def on_unmount(self) -> None:
        if self.watcher:
            self.watcher.stop()

    def _on_batch(self, events: list[ChangeEvent]) -> None:
        # Watcher thread
        result = self.session.handle(events)
        self.call_from_thread(self.show_batch, result)

    def show_batch(self, result: BatchResult) -> None:
        summary = self.query_one("#summary", SummaryWidget)
        summary.change_count = self.session.change_count
        if result.summary is not None and result.summary.files:
            summary.summary = result.summary
            if not result.summary.ok:
                self.notify(f"{result.summary.failed} spec(s) failed validation", severity="error")
        self.query_one("#history", HistoryWidget).batches = self.session.history

    def action_validate_all(self) -> None:
        if not self.session.validate:
            self.notify("Validation is off (--no-validate)", severity="warning")
            return
        self.query_one("#summary", SummaryWidget).summary = self.session.initial()
        self.notify("Validated all specs", severity="information")

    def action_show_errors(self) -> None:
        if self.session.last is None:
            self.notify("No validation results yet", severity="warning")
            return
        lines = _failure_lines(self.session.last, self.session.specs_dir)
        if not lines:
            self.notify("All specs valid", severity="information")
            return
        self.push_screen(ContentScreen("\n".join(lines), title="Validation errors"))


def run_plain(session: WatchSession, debounce_ms: int, quiet: bool = False) -> None:
    """Stream batch results to stdout until Ctrl-C."""
    base = session.specs_dir

    def on_batch(events: list[ChangeEvent]) -> None:
        result = session.handle(events)
        failed = result.summary is not None and not result.summary.ok
        if quiet and not failed:
            return
        stamp = datetime.now().strftime("%H:%M:%S")
        for event in events:
            print(f"[{stamp}] {event.type}: {_relative(event.path, base)}")
        if result.summary is not None and result.summary.files:
            print(f"  {_summary_line(result.summary)}")
            for line in _failure_lines(result.summary, base):
                print(f"  {line}")

    initial = session.initial()
    print(f"Watching {base} (Ctrl-C to stop)")
    if initial is not None and not quiet:
        print(f"  {_summary_line(initial)}")
    SpecWatcher(base, on_batch, debounce_ms).run()


def cmd_watch(args, sdd_dir: Path, config) -> int:
    """Watch specs."""
    target = specs_dir(sdd_dir)
    if not target.is_dir():
        print(f"ERROR: Specs directory not found: {target}")
        return ExitCode.FILE_SYSTEM_ERROR

    debounce = args.debounce if args.debounce is not None else config.watch_debounce_ms
    cache = load_cache(sdd_dir, config)
    session = WatchSession(target, validate=args.validate, cache=cache)

    if args.plain:
        run_plain(session, debounce, quiet=args.quiet)
        print(f"Stopped after {session.change_count} change(s).")
    else:
        app = WatchApp(session, debounce)
        app.run()

    if cache is not None:
        save_cache(sdd_dir, cache)
    return ExitCode.SUCCESS
