"""
repo_to_text — Snapshot a source tree into a single text document for an LLM.

Overview
--------
The tool walks the current directory (or `--root`), prunes vendored and build
directories, drops binaries and other noise by extension, lets you decide
whether files above 1 MiB are kept, strips embedded binary literals, and
concatenates everything into `repo_content.txt`:

    ===============================================
    --- File: src/main.rs ---
    ===============================================

    <content>
    --- End of File ---

    ===============================================

Blocks are written as worker threads finish, so their order is not stable
across runs.

Usage
-----
Run `python -m repo_to_text.cli --help` for full options. Common examples:
    - Default deny-list, extra ignores:
        repo-to-text --ignore docs,.md --ignore fixtures
    - Keep JSON and YAML files that are ignored by default:
        repo-to-text -I json yaml
    - Allow-list mode, no prompt for large files:
        repo-to-text --allow-list --yes
    - Ask a model which directories to skip (needs OPENAI_API_KEY):
        REPO_TO_TEXT_SUGGEST=1 repo-to-text
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from repo_to_text import __version__
from repo_to_text.aggregation import ErrorPolicy, write_document
from repo_to_text.config import DEFAULT_OUTPUT_FILE, FilterConfig
from repo_to_text.exceptions import RepoToTextError
from repo_to_text.filters import PathFilter
from repo_to_text.gate import AcceptAllDecisions, DecisionProvider, TerminalSelector, gate
from repo_to_text.logging import logger, setup_logging
from repo_to_text.settings import Settings, SuggestionSettings
from repo_to_text.suggestions import suggest_ignores
from repo_to_text.walker import walk

if TYPE_CHECKING:
    from collections.abc import Sequence


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    p = argparse.ArgumentParser(
        prog="repo-to-text",
        description="Concatenate a repository's text sources into one document for LLM consumption.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--root", type=str, default=".", help="Directory to extract.")
    p.add_argument(
        "-o",
        "--output",
        type=str,
        default=DEFAULT_OUTPUT_FILE,
        help=f"Output file (default: {DEFAULT_OUTPUT_FILE}).",
    )
    p.add_argument(
        "-i",
        "--ignore",
        nargs="+",
        action="extend",
        default=[],
        help="Additional directories and/or extensions to ignore. Space or comma separated, repeatable.",
    )
    p.add_argument(
        "-I",
        "--include",
        nargs="+",
        action="extend",
        default=[],
        help="Extensions to include even if ignored by default. Space or comma separated, repeatable.",
    )
    p.add_argument(
        "--allow-list",
        action="store_true",
        help="Keep only allow-listed extensions instead of dropping deny-listed ones.",
    )
    p.add_argument("--workers", type=int, default=None, help="Worker threads (default: CPU count).")
    p.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Keep all files above 1MB without prompting.",
    )
    p.add_argument(
        "--skip-unreadable",
        action="store_true",
        help="Skip files that cannot be read instead of aborting the run.",
    )
    suggest = p.add_mutually_exclusive_group()
    suggest.add_argument(
        "--suggest",
        dest="suggest",
        action="store_const",
        const=True,
        default=None,
        help="Ask the suggestion service for extra ignores.",
    )
    suggest.add_argument(
        "--no-suggest",
        dest="suggest",
        action="store_const",
        const=False,
        help="Never query the suggestion service.",
    )
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug events, including silently skipped entries.",
    )
    args = p.parse_args(argv)
    return Settings(**vars(args))


def build_filter(settings: Settings, suggestion_settings: SuggestionSettings | None = None) -> PathFilter:
    """Assemble the filtering rules from defaults, CLI values and remote suggestions.

    Args:
        settings (Settings): the parsed CLI settings
        suggestion_settings (SuggestionSettings | None, optional): service settings;
            read from the environment when omitted

    Returns:
        PathFilter: the decision function used for the walk
    """
    config = FilterConfig.build(settings.mode, ignores=settings.ignore, includes=settings.include)

    service = suggestion_settings or SuggestionSettings.from_env()
    if settings.suggest is not None:
        service = service.model_copy(update={"enabled": settings.suggest})
    suggestions = suggest_ignores(settings.root, PathFilter(config), service)
    if suggestions:
        # same merge path as --ignore, so explicit includes still win
        config = FilterConfig.build(
            settings.mode,
            ignores=[*settings.ignore, *suggestions],
            includes=settings.include,
        )
        logger.info("suggestions_merged", suggestions=len(suggestions))
    return PathFilter(config)


def choose_provider(settings: Settings) -> DecisionProvider:
    if settings.yes or not sys.stdin.isatty():
        return AcceptAllDecisions()
    return TerminalSelector()


def run(settings: Settings, provider: DecisionProvider | None = None) -> int:
    root = Path(settings.root)
    path_filter = build_filter(settings)

    print("Collecting files...")
    # a previous run's document under the root is never re-ingested
    result = walk(root, path_filter, max_workers=settings.workers, exclude=[Path(settings.output)])

    if result.oversized:
        print("\nFound large files (>1MB).")
    files = gate(result.files, result.oversized, provider or choose_provider(settings))

    print(f"Processing {len(files)} files...")
    on_error = ErrorPolicy.SKIP if settings.skip_unreadable else ErrorPolicy.FAIL_FAST
    report = write_document(Path(settings.output), files, max_workers=settings.workers, on_error=on_error)

    if report.skipped:
        print(f"\nSkipped {len(report.skipped)} unreadable files.")
    print(f"\nFinished processing. Output saved to {settings.output}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file or settings.verbose:
        setup_logging(
            settings.log_file or None,
            level=logging.DEBUG if settings.verbose else logging.INFO,
            force=True,
        )

    try:
        return run(settings)
    except RepoToTextError as e:
        logger.error("run_failed", error=str(e))
        print(f"\nError: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
