"""
Directory watcher for incoming generation reports.

The watchdog observer thread only enqueues paths. A single-worker executor drains them in
arrival order, so at most one file is ever between decoding and writing the shared output.
"""

import threading
from collections import Counter, deque
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from src.functions.generation_calculator.config import DEFAULT_FILE_EXTENSION
from src.functions.generation_calculator.errors import ConfigError
from src.functions.generation_calculator.pipeline import ProcessingResult, ReportProcessor

# Most recent results kept for inspection; older ones only survive in the counts
RECENT_RESULTS_LIMIT = 100
SUMMARY_KEYS = ("processed_files", "failed_files", "skipped_emissions", "skipped_heat_rates")


class ReportEventHandler(FileSystemEventHandler):
    """Forwards created and moved-in report files to the watcher queue."""

    def __init__(self, watcher: "GenerationWatcher") -> None:
        super().__init__()
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.submit(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.submit(event.dest_path)


class GenerationWatcher:
    """Watches input_dir and processes matching files one at a time, in arrival order."""

    def __init__(
        self,
        processor: ReportProcessor,
        input_dir: str,
        extension: str = DEFAULT_FILE_EXTENSION,
    ) -> None:
        self.processor = processor
        self.input_dir = Path(input_dir)
        self.extension = extension.lower()
        self.recent: deque[ProcessingResult] = deque(maxlen=RECENT_RESULTS_LIMIT)
        self._counts: Counter[str] = Counter()
        self._executor: ThreadPoolExecutor | None = None
        self._observer: Observer | None = None
        self._lock = threading.Lock()

    def matches(self, file_path: str | bytes) -> bool:
        """True for files with the watched extension, excluding the processor's own output."""
        path = Path(file_path.decode() if isinstance(file_path, bytes) else file_path)
        if path.suffix.lower() != self.extension:
            return False
        return path.resolve() != self.processor.output_path.resolve()

    def submit(self, file_path: str | bytes) -> Future | None:
        """Queue a file for processing. Returns None when the file is ignored or the watcher is stopped."""
        if not self.matches(file_path):
            logger.bind(file=str(file_path)).debug("Ignoring file")
            return None

        path = file_path.decode() if isinstance(file_path, bytes) else file_path
        with self._lock:
            if self._executor is None:
                logger.bind(file=path).warning("Watcher not running, file not queued")
                return None
            logger.bind(file=path).info("New file detected")
            return self._executor.submit(self._process, path)

    def _process(self, file_path: str) -> ProcessingResult:
        result = self.processor.process_file(file_path)
        with self._lock:
            self.recent.append(result)
            self._counts["processed_files" if result.succeeded else "failed_files"] += 1
            self._counts["skipped_emissions"] += result.skipped_emissions_count
            self._counts["skipped_heat_rates"] += result.skipped_heat_rates_count
        return result

    def start(self) -> None:
        """
        Start watching.

        Raises:
            ConfigError: If the input directory does not exist
        """
        if not self.input_dir.is_dir():
            raise ConfigError(f"Input directory does not exist: {self.input_dir}")

        with self._lock:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="report-worker")
            self._observer = Observer()
            self._observer.schedule(ReportEventHandler(self), str(self.input_dir), recursive=False)
            self._observer.start()

        logger.bind(input_dir=str(self.input_dir), extension=self.extension).info("Watching for new report files")

    def stop(self) -> None:
        """Stop watching. Queued files are dropped; the in-flight file is allowed to finish."""
        with self._lock:
            observer, self._observer = self._observer, None
            executor, self._executor = self._executor, None

        if observer is not None:
            observer.stop()
            observer.join()
        if executor is not None:
            executor.shutdown(wait=True, cancel_futures=True)
        logger.bind(input_dir=str(self.input_dir), **self.summary()).info("Watcher stopped")

    def summary(self) -> dict[str, int]:
        """Counts of processed and failed files and of skipped rows since the watcher was created."""
        with self._lock:
            return {key: self._counts[key] for key in SUMMARY_KEYS}

    def drain(self) -> None:
        """Block until every file queued so far has finished."""
        with self._lock:
            if self._executor is None:
                return
            # Single worker runs tasks in submission order, so the sentinel finishes last
            sentinel = self._executor.submit(lambda: None)
        # A concurrent stop() may cancel the sentinel; wait() returns either way
        wait([sentinel])

    def run_forever(self, stop_event: threading.Event) -> None:
        """Start, block until stop_event is set, then stop."""
        self.start()
        try:
            stop_event.wait()
        finally:
            self.stop()
