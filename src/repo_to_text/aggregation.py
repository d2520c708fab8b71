from __future__ import annotations

import os
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from datetime import UTC, datetime
from enum import StrEnum, auto
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple, TextIO

from repo_to_text.config import RUN_HEADER_RULE, display_path
from repo_to_text.exceptions import FileProcessingError, OutputWriteError
from repo_to_text.extraction import extract
from repo_to_text.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    ProgressFn = Callable[[int, int, Path], None]
    ExtractFn = Callable[[Path], str]


class ErrorPolicy(StrEnum):
    """What the aggregator does when one file cannot be extracted."""

    FAIL_FAST = auto()
    SKIP = auto()


class AggregationReport(NamedTuple):
    written: int
    skipped: list[Path]


def now_iso() -> str:
    """Return the current date and time in ISO 8601 format with timezone.

    Returns:
        str: the current date and time in ISO 8601 format with timezone
    """
    return datetime.now(UTC).astimezone().isoformat(timespec="seconds")


class OutputWriter:
    """Append-only sink shared by all workers.

    Every append holds the lock for the whole block, so two blocks never
    interleave. The lock is never held while a file is being read.
    """

    def __init__(self, stream: TextIO, path: Path | None = None) -> None:
        self._stream = stream
        self._lock = threading.Lock()
        self.path = path or Path(getattr(stream, "name", "<stream>"))
        self.blocks = 0

    def _write(self, text: str) -> None:
        try:
            self._stream.write(text)
        except OSError as e:
            raise OutputWriteError(path=self.path, reason=e.strerror or str(e)) from e

    def write_header(self, generated_at: str) -> None:
        with self._lock:
            self._write(f"Repository Content Extraction\nGenerated on: {generated_at}\n{RUN_HEADER_RULE}\n\n")

    def append_block(self, block: str) -> None:
        with self._lock:
            self._write(block)
            self.blocks += 1


class ProgressCounter:
    """Monotonic, lock-guarded completion counter."""

    def __init__(self, total: int) -> None:
        self.total = total
        self._value = 0
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value


def print_progress(count: int, total: int, path: Path) -> None:
    """Default progress reporter: one carriage-returned status line on stdout."""
    print(f"\rProcessing file {count} of {total}: {display_path(path)}", end="", flush=True)


class Aggregator:
    """Fan files out to a thread pool and append each block to one writer.

    Block order in the output is completion order, which is not stable across
    runs even for identical inputs.
    """

    def __init__(
        self,
        writer: OutputWriter,
        *,
        max_workers: int | None = None,
        on_error: ErrorPolicy = ErrorPolicy.FAIL_FAST,
        progress: ProgressFn | None = None,
        extract_fn: ExtractFn = extract,
    ) -> None:
        self.writer = writer
        self.max_workers = max_workers or os.cpu_count()
        self.on_error = on_error
        self.progress = progress
        self.extract_fn = extract_fn

    def _process(
        self,
        path: Path,
        writer: OutputWriter,
        counter: ProgressCounter,
        skipped: list[Path],
        skipped_lock: threading.Lock,
        abort: threading.Event,
    ) -> None:
        if abort.is_set():
            return
        try:
            block = self.extract_fn(path)
        except FileProcessingError as e:
            if self.on_error is ErrorPolicy.FAIL_FAST:
                abort.set()
                raise
            logger.warning("skipping_unreadable_file", path=str(path), error=e.reason)
            with skipped_lock:
                skipped.append(path)
        else:
            writer.append_block(block)
        count = counter.increment()
        if self.progress is not None:
            self.progress(count, counter.total, path)

    def run(self, files: Sequence[Path]) -> AggregationReport:
        """Extract every file and append its block to the writer.

        Args:
            files (Sequence[Path]): the final file list

        Raises:
            FileProcessingError: under FAIL_FAST, the first file that could not be read
            OutputWriteError: if the output stream fails

        Returns:
            AggregationReport: how many blocks were written and which files were skipped
        """
        counter = ProgressCounter(len(files))
        blocks_before = self.writer.blocks
        skipped: list[Path] = []
        skipped_lock = threading.Lock()
        abort = threading.Event()
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(self._process, f, self.writer, counter, skipped, skipped_lock, abort) for f in files
            ]
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()
            for future in done:
                exc = future.exception()
                if exc is not None:
                    raise exc
        return AggregationReport(written=self.writer.blocks - blocks_before, skipped=skipped)


def write_document(
    output: Path,
    files: Sequence[Path],
    *,
    max_workers: int | None = None,
    on_error: ErrorPolicy = ErrorPolicy.FAIL_FAST,
    progress: ProgressFn | None = print_progress,
) -> AggregationReport:
    """Write the run header and one block per file to `output`.

    The output file is opened (and truncated) exactly once for the whole run.

    Args:
        output (Path): the document to create
        files (Sequence[Path]): the final file list
        max_workers (int | None, optional): thread pool size. Defaults to the CPU count.
        on_error (ErrorPolicy, optional): fail fast or skip unreadable files. Defaults to FAIL_FAST.
        progress (ProgressFn | None, optional): per-completion callback. Defaults to `print_progress`.

    Raises:
        OutputWriteError: if the output cannot be opened or written

    Returns:
        AggregationReport: how many blocks were written and which files were skipped
    """
    try:
        with output.open("w", encoding="utf-8") as stream:
            writer = OutputWriter(stream, output)
            writer.write_header(now_iso())
            aggregator = Aggregator(writer, max_workers=max_workers, on_error=on_error, progress=progress)
            report = aggregator.run(files)
    except OSError as e:
        raise OutputWriteError(path=output, reason=e.strerror or str(e)) from e
    logger.info("document_written", output=str(output), blocks=report.written, skipped=len(report.skipped))
    return report
