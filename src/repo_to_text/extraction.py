from __future__ import annotations

import io
from typing import TYPE_CHECKING

from repo_to_text.config import BANNER, display_path
from repo_to_text.exceptions import FileProcessingError
from repo_to_text.redaction import decode_lossy, redact

if TYPE_CHECKING:
    from pathlib import Path


def render_block(path: Path, body: str) -> str:
    """Wrap an already processed body in the banner-delimited block layout.

    Args:
        path (Path): the file path shown in the header, rendered lossily if not UTF-8
        body (str): the redacted file content

    Returns:
        str: the complete, self-contained block
    """
    out = io.StringIO()
    out.write(f"{BANNER}\n")
    out.write(f"--- File: {display_path(path)} ---\n")
    out.write(f"{BANNER}\n")
    out.write("\n")
    out.write(body)
    out.write("\n")
    out.write("--- End of File ---\n")
    out.write("\n")
    out.write(f"{BANNER}\n")
    return out.getvalue()


def extract(path: Path) -> str:
    """Read, decode, redact and wrap one file.

    Args:
        path (Path): the file to extract

    Raises:
        FileProcessingError: if the file cannot be read

    Returns:
        str: the extraction block for `path`
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise FileProcessingError(path=path, reason=e.strerror or str(e)) from e
    return render_block(path, redact(decode_lossy(data)))
