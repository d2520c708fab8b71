from __future__ import annotations

import io
import os
import re
import threading
from pathlib import Path

import pytest

from repo_to_text.aggregation import (
    Aggregator,
    ErrorPolicy,
    OutputWriter,
    ProgressCounter,
    print_progress,
    write_document,
)
from repo_to_text.config import BANNER, RUN_HEADER_RULE
from repo_to_text.exceptions import FileProcessingError, OutputWriteError
from repo_to_text.extraction import render_block

FILE_MARKER = re.compile(r"^--- File: (.+) ---$", re.MULTILINE)


def make_files(root: Path, count: int) -> list[Path]:
    files = []
    for i in range(count):
        path = root / f"module_{i}.py"
        path.write_text("".join(f"value_{i}_{n} = {n}\n" for n in range(50)), encoding="utf-8")
        files.append(path)
    return files


@pytest.mark.unit
def test_output_writer_header_and_blocks() -> None:
    buf = io.StringIO()
    writer = OutputWriter(buf, Path("out.txt"))

    writer.write_header("2024-01-01T00:00:00+00:00")
    writer.append_block("block\n")

    assert buf.getvalue() == (
        f"Repository Content Extraction\nGenerated on: 2024-01-01T00:00:00+00:00\n{RUN_HEADER_RULE}\n\nblock\n"
    )
    assert writer.blocks == 1


@pytest.mark.unit
def test_output_writer_wraps_os_errors() -> None:
    class BrokenStream(io.StringIO):
        def write(self, s: str) -> int:
            raise OSError(28, "No space left on device")

    writer = OutputWriter(BrokenStream(), Path("out.txt"))

    with pytest.raises(OutputWriteError) as exc_info:
        writer.append_block("block")

    assert exc_info.value.reason == "No space left on device"


@pytest.mark.unit
def test_progress_counter_is_monotonic_under_threads() -> None:
    counter = ProgressCounter(total=800)
    seen: list[int] = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(100):
            value = counter.increment()
            with lock:
                seen.append(value)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert counter.value == 800
    assert sorted(seen) == list(range(1, 801))


@pytest.mark.unit
def test_write_document_writes_one_intact_block_per_file(tmp_path: Path) -> None:
    files = make_files(tmp_path, 40)
    output = tmp_path / "repo_content.txt"

    report = write_document(output, files, max_workers=8, progress=None)

    content = output.read_text(encoding="utf-8")
    assert report.written == len(files)
    assert report.skipped == []
    assert content.count("Repository Content Extraction") == 1
    assert sorted(FILE_MARKER.findall(content)) == sorted(str(f) for f in files)
    assert content.count("--- End of File ---") == len(files)
    assert content.splitlines().count(BANNER) == 3 * len(files)
    for f in files:
        assert render_block(f, f.read_text(encoding="utf-8")) in content


@pytest.mark.unit
def test_write_document_truncates_existing_output(tmp_path: Path) -> None:
    output = tmp_path / "repo_content.txt"
    output.write_text("stale content\n", encoding="utf-8")

    write_document(output, [], progress=None)

    content = output.read_text(encoding="utf-8")
    assert "stale content" not in content
    assert content.startswith("Repository Content Extraction\nGenerated on: ")


@pytest.mark.unit
def test_write_document_reports_progress_for_each_file(tmp_path: Path) -> None:
    files = make_files(tmp_path, 10)
    calls: list[tuple[int, int, Path]] = []
    lock = threading.Lock()

    def progress(count: int, total: int, path: Path) -> None:
        with lock:
            calls.append((count, total, path))

    write_document(tmp_path / "out.txt", files, max_workers=4, progress=progress)

    assert sorted(c for c, _, _ in calls) == list(range(1, 11))
    assert {t for _, t, _ in calls} == {10}
    assert {p for _, _, p in calls} == set(files)


@pytest.mark.unit
def test_aggregator_fails_fast_on_unreadable_file(tmp_path: Path) -> None:
    files = make_files(tmp_path, 5)
    missing = tmp_path / "missing.py"

    with pytest.raises(FileProcessingError) as exc_info:
        write_document(tmp_path / "out.txt", [*files, missing], max_workers=2, progress=None)

    assert exc_info.value.path == missing


@pytest.mark.unit
def test_aggregator_skip_policy_continues(tmp_path: Path) -> None:
    files = make_files(tmp_path, 5)
    missing = tmp_path / "missing.py"
    output = tmp_path / "out.txt"

    report = write_document(output, [files[0], missing, *files[1:]], on_error=ErrorPolicy.SKIP, progress=None)

    assert report.written == 5
    assert report.skipped == [missing]
    content = output.read_text(encoding="utf-8")
    assert str(missing) not in content
    assert len(FILE_MARKER.findall(content)) == 5


@pytest.mark.unit
def test_aggregator_uses_injected_extractor() -> None:
    buf = io.StringIO()
    writer = OutputWriter(buf, Path("out.txt"))
    aggregator = Aggregator(writer, max_workers=3, extract_fn=lambda p: f"<{p}>\n")

    report = aggregator.run([Path("a"), Path("b"), Path("c")])

    assert report.written == 3
    assert sorted(buf.getvalue().splitlines()) == ["<a>", "<b>", "<c>"]


@pytest.mark.unit
def test_write_document_unwritable_output(tmp_path: Path) -> None:
    output = tmp_path / "no_such_dir" / "out.txt"

    with pytest.raises(OutputWriteError) as exc_info:
        write_document(output, [], progress=None)

    assert exc_info.value.path == output


@pytest.mark.unit
def test_print_progress_renders_undecodable_names(capsys: pytest.CaptureFixture[str]) -> None:
    print_progress(1, 2, Path(os.fsdecode(b"caf\xe9.py")))

    assert capsys.readouterr().out == "\rProcessing file 1 of 2: caf\ufffd.py"


@pytest.mark.unit
def test_aggregator_reports_blocks_appended_by_this_run() -> None:
    buf = io.StringIO()
    writer = OutputWriter(buf, Path("out.txt"))
    writer.append_block("earlier\n")
    aggregator = Aggregator(writer, max_workers=2, extract_fn=lambda p: f"<{p}>\n")

    report = aggregator.run([Path("a"), Path("b")])

    assert report.written == 2
    assert writer.blocks == 3
