from __future__ import annotations

import os
import re
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from repo_to_text import cli
from repo_to_text.config import BANNER, SIZE_THRESHOLD
from repo_to_text.extraction import render_block

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repo_to_text.config import OversizedFile

FILE_MARKER = re.compile(r"^--- File: (.+) ---$", re.MULTILINE)


class RejectAll:
    def present_and_collect_decisions(self, entries: Sequence[OversizedFile]) -> list[bool]:
        return [False] * len(entries)


def test_end_to_end_skips_vendored_and_binary_files(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    main_rs = repo / "src" / "main.rs"
    main_rs.parent.mkdir(parents=True)
    source = "".join(f"// line {i}\n" for i in range(9)) + "fn main() {}\n"
    main_rs.write_text(source, encoding="utf-8")
    (repo / "node_modules").mkdir()
    (repo / "node_modules" / "x.js").write_text("module.exports = 1;\n", encoding="utf-8")
    (repo / "image.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00")
    output = tmp_path / "repo_content.txt"

    exit_code = cli.main(["--root", str(repo), "--output", str(output), "--no-suggest"])

    assert exit_code == 0
    content = output.read_text(encoding="utf-8")
    assert FILE_MARKER.findall(content) == [str(main_rs)]
    assert render_block(main_rs, source) in content
    assert content.splitlines().count(BANNER) == 3


def test_end_to_end_redacts_binary_literal(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    repo.mkdir()
    (repo / "payload.py").write_bytes(b'import x\nDATA = b"""\x00\x9c\xff\xfegarbage\x01"""\nprint(x)\n')
    output = tmp_path / "repo_content.txt"

    exit_code = cli.main(["--root", str(repo), "--output", str(output), "--no-suggest"])

    assert exit_code == 0
    content = output.read_text(encoding="utf-8")
    assert 'import x\nDATA = b"""<binary data removed>"""\nprint(x)\n' in content
    assert "garbage" not in content
    assert "\ufffd" not in content


def test_end_to_end_rejected_large_file_is_left_out(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    repo.mkdir()
    small = repo / "small.py"
    small.write_text("answer = 42\n", encoding="utf-8")
    big = repo / "big.txt"
    big.write_text("x" * (SIZE_THRESHOLD + 10), encoding="utf-8")
    output = tmp_path / "repo_content.txt"
    settings = cli.parse_args(["--root", str(repo), "--output", str(output), "--no-suggest"])

    exit_code = cli.run(settings, provider=RejectAll())

    assert exit_code == 0
    content = output.read_text(encoding="utf-8")
    assert FILE_MARKER.findall(content) == [str(small)]
    assert render_block(small, "answer = 42\n") in content
    assert "x" * 100 not in content


def test_end_to_end_large_file_kept_with_yes(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    repo.mkdir()
    big = repo / "big.txt"
    big.write_text("y" * (SIZE_THRESHOLD + 10), encoding="utf-8")
    output = tmp_path / "repo_content.txt"

    exit_code = cli.main(["--root", str(repo), "--output", str(output), "--no-suggest", "--yes"])

    assert exit_code == 0
    assert FILE_MARKER.findall(output.read_text(encoding="utf-8")) == [str(big)]


def test_end_to_end_allow_list_mode(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    repo.mkdir()
    (repo / "app.py").write_text("print('ok')\n", encoding="utf-8")
    (repo / "data.bin").write_bytes(b"\x00\x01")
    (repo / "notes.weird").write_text("skip me\n", encoding="utf-8")
    output = tmp_path / "repo_content.txt"

    exit_code = cli.main(["--root", str(repo), "--output", str(output), "--no-suggest", "--allow-list", "-I", "weird"])

    assert exit_code == 0
    markers = FILE_MARKER.findall(output.read_text(encoding="utf-8"))
    assert sorted(markers) == sorted([str(repo / "app.py"), str(repo / "notes.weird")])


def test_end_to_end_second_run_does_not_ingest_previous_output(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    repo = tmp_path / "repo"
    (repo / "src").mkdir(parents=True)
    (repo / "src" / "main.rs").write_text("fn main() {}\n", encoding="utf-8")
    monkeypatch.chdir(repo)

    assert cli.main(["--no-suggest"]) == 0
    assert cli.main(["--no-suggest"]) == 0

    content = (repo / "repo_content.txt").read_text(encoding="utf-8")
    assert FILE_MARKER.findall(content) == ["src/main.rs"]
    assert content.count("Repository Content Extraction") == 1


@pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem that accepts non UTF-8 names")
def test_end_to_end_non_utf8_file_name(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo = tmp_path / "repo"
    repo.mkdir()
    (repo / "ok.py").write_text("ok = True\n", encoding="utf-8")
    (repo / os.fsdecode(b"caf\xe9.py")).write_text("cafe = 1\n", encoding="utf-8")
    output = tmp_path / "repo_content.txt"

    exit_code = cli.main(["--root", str(repo), "--output", str(output), "--no-suggest"])

    assert exit_code == 0
    assert "Error" not in capsys.readouterr().err
    markers = FILE_MARKER.findall(output.read_text(encoding="utf-8"))
    assert sorted(markers) == sorted([str(repo / "ok.py"), f"{repo}/caf\ufffd.py"])
