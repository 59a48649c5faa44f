"""
Spec tree watcher.

Uses watchdog to observe .sdd/specs. Markdown events are collected and
delivered as one batch once no new event has arrived for debounce_ms.
Batches are handled one at a time.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from sdd.lib.cache import SpecCache
from sdd.spec.validator import ValidationSummary, validate_spec_file, validate_specs

logger = logging.getLogger(__name__)

WATCH_SUFFIX = ".md"


@dataclass
class ChangeEvent:
    type: str  # created, modified, deleted, moved
    path: Path


@dataclass
class BatchResult:
    at: datetime
    events: list[ChangeEvent]
    summary: Optional[ValidationSummary] = None


class SpecChangeHandler(FileSystemEventHandler):
    """Collects markdown events and flushes them after a quiet period."""

    def __init__(self, on_batch: Callable[[list[ChangeEvent]], None], debounce_ms: int = 500):
        self.on_batch = on_batch
        self.debounce = debounce_ms / 1000
        self._pending: dict[Path, ChangeEvent] = {}
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._batch_lock = threading.Lock()

    def on_any_event(self, event):
        if event.is_directory or event.event_type not in ("created", "modified", "deleted", "moved"):
            return
        path = Path(getattr(event, "dest_path", "") or event.src_path)
        if path.suffix != WATCH_SUFFIX or path.name.startswith("."):
            return

        with self._lock:
            self._pending[path] = ChangeEvent(event.event_type, path)
            if self._timer:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> None:
        with self._lock:
            events = list(self._pending.values())
            self._pending.clear()
            self._timer = None
        if not events:
            return
        with self._batch_lock:
            try:
                self.on_batch(events)
            except Exception as e:
                logger.error(f"[watch] batch handler failed: {e}")

    def cancel(self) -> None:
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None
            self._pending.clear()


class SpecWatcher:
    """
    Owns the watchdog observer.

    start() returns immediately; run() blocks until KeyboardInterrupt.
    """

    def __init__(self, specs_dir: Path, on_batch: Callable[[list[ChangeEvent]], None], debounce_ms: int = 500):
        self.specs_dir = specs_dir
        self.handler = SpecChangeHandler(on_batch, debounce_ms)
        self.observer: Optional[Observer] = None

    @property
    def is_running(self) -> bool:
        return self.observer is not None

    def start(self) -> None:
        if self.observer:
            logger.warning("[watch] already running")
            return
        self.observer = Observer()
        self.observer.schedule(self.handler, str(self.specs_dir), recursive=True)
        self.observer.start()
        logger.info(f"[watch] watching {self.specs_dir}")

    def run(self) -> None:
        self.start()
        try:
            while self.observer:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if not self.observer:
            return
        self.handler.cancel()
        self.observer.stop()
        self.observer.join()
        self.observer = None
        logger.info("[watch] stopped")


class WatchSession:
    """Validation state shared by the plain and dashboard front ends."""

    def __init__(self, specs_dir: Path, validate: bool = True, cache: Optional[SpecCache] = None):
        self.specs_dir = specs_dir
        self.validate = validate
        self.cache = cache
        self.history: list[BatchResult] = []
        self.change_count = 0
        self.last: Optional[ValidationSummary] = None

    def initial(self) -> Optional[ValidationSummary]:
        if self.validate:
            self.last = validate_specs(self.specs_dir, cache=self.cache)
        return self.last

    def handle(self, events: list[ChangeEvent]) -> BatchResult:
        self.change_count += len(events)
        result = BatchResult(at=datetime.now(), events=events)
        if self.validate:
            summary = ValidationSummary()
            for event in events:
                if event.type == "deleted" or event.path.name != "spec.md" or not event.path.exists():
                    continue
                file_result = validate_spec_file(event.path, cache=self.cache)
                summary.files.append(file_result)
                if file_result.valid:
                    summary.passed += 1
                else:
                    summary.failed += 1
                summary.warnings += len(file_result.warnings)
            result.summary = summary
            self._merge(summary, [e.path for e in events if e.type == "deleted"])
        self.history.append(result)
        logger.info(f"[watch] batch of {len(events)} change(s)")
        return result

    def _merge(self, batch: ValidationSummary, deleted: list[Path]) -> None:
        """Fold a batch into the whole-tree summary in self.last."""
        if self.last is None:
            return
        files = {f.file: f for f in self.last.files}
        for path in deleted:
            files.pop(str(path), None)
        for result in batch.files:
            files[result.file] = result
        merged = ValidationSummary(files=list(files.values()))
        merged.passed = sum(1 for f in merged.files if f.valid)
        merged.failed = len(merged.files) - merged.passed
        merged.warnings = sum(len(f.warnings) for f in merged.files)
        self.last = merged
