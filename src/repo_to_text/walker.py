from __future__ import annotations

import os
import stat
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

from repo_to_text.config import SIZE_THRESHOLD, OversizedFile
from repo_to_text.filters import PathFilter, is_resource_fork
from repo_to_text.logging import logger

if TYPE_CHECKING:
    from collections.abc import Collection, Iterator


class OversizedFiles:
    """Lock-guarded accumulator for files above the size threshold.

    Workers append concurrently during the walk; `freeze` hands out the
    read-only result once the walk is over.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[OversizedFile] = []

    def append(self, item: OversizedFile) -> None:
        with self._lock:
            self._items.append(item)

    def freeze(self) -> tuple[OversizedFile, ...]:
        with self._lock:
            return tuple(self._items)


class WalkResult(NamedTuple):
    """Candidates found by `walk`, plus the oversized subset."""

    files: list[Path]
    oversized: tuple[OversizedFile, ...]


def _log_walk_error(err: OSError) -> None:
    logger.warning("skipping_unreadable_directory", path=err.filename, error=err.strerror)


def iter_directory_files(root: Path, path_filter: PathFilter) -> Iterator[Path]:
    """Yield every file under `root`, pruning ignored directories before descent.

    Directories are pruned on their base name, so an ignored dependency cache is
    never listed. The root itself is never pruned. Symlinked directories are not
    followed and unreadable directories are skipped.

    Args:
        root (Path): the directory to traverse
        path_filter (PathFilter): the decision function for directory names

    Yields:
        Path: each file entry (not yet filtered by extension)
    """
    for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
        dirnames[:] = sorted(d for d in dirnames if not path_filter.should_ignore_directory(d))
        base = Path(dirpath)
        for name in sorted(filenames):
            yield base / name


def check_candidate(
    path: Path,
    path_filter: PathFilter,
    oversized: OversizedFiles,
    threshold: int,
    exclude: frozenset[Path] = frozenset(),
) -> Path | None:
    """Filter a single file entry and record it if it is oversized.

    Args:
        path (Path): the file entry to check
        path_filter (PathFilter): the decision function for file names
        oversized (OversizedFiles): the shared accumulator for large files
        threshold (int): size in bytes above which a file is oversized
        exclude (frozenset[Path], optional): resolved paths that are never candidates

    Returns:
        Path | None: `path` if it is a candidate, None if it is skipped
    """
    if is_resource_fork(path.name) or path_filter.should_ignore_file(path):
        return None
    if exclude and path.resolve() in exclude:
        return None
    try:
        st = path.stat()
    except OSError as e:
        # dangling symlink or entry deleted since listing
        logger.debug("skipping_unreadable_file", path=str(path), error=str(e))
        return None
    if not stat.S_ISREG(st.st_mode):
        return None
    if st.st_size > threshold:
        oversized.append(OversizedFile(path=path, size=st.st_size))
    return path


def walk(
    root: Path,
    path_filter: PathFilter,
    *,
    threshold: int = SIZE_THRESHOLD,
    max_workers: int | None = None,
    exclude: Collection[Path] = (),
) -> WalkResult:
    """Collect candidate files under `root` and the subset above `threshold`.

    Traversal entries that cannot be read are skipped, the walk always
    completes. The per-file checks run on a thread pool, so the order of the
    returned candidates must not be relied on.

    Args:
        root (Path): the directory to walk
        path_filter (PathFilter): pruning and exclusion rules
        threshold (int, optional): oversized limit in bytes. Defaults to 1 MiB.
        max_workers (int | None, optional): thread pool size. Defaults to the CPU count.
        exclude (Collection[Path], optional): files left out whatever the rules say,
            e.g. the output document of a previous run under `root`.

    Returns:
        WalkResult: the candidate paths and the oversized entries
    """
    oversized = OversizedFiles()
    excluded = frozenset(p.resolve() for p in exclude)
    files: list[Path] = []
    with ThreadPoolExecutor(max_workers=max_workers or os.cpu_count()) as executor:
        results = executor.map(
            lambda p: check_candidate(p, path_filter, oversized, threshold, excluded),
            iter_directory_files(root, path_filter),
        )
        files.extend(p for p in results if p is not None)
    result = WalkResult(files=files, oversized=oversized.freeze())
    logger.info("walk_completed", root=str(root), files=len(result.files), oversized=len(result.oversized))
    return result
