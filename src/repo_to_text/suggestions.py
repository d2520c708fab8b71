"""Optional remote suggestions of extra directories and extensions to ignore.

A shallow pre-scan summarizes which extensions and directory names exist near
the root; a chat-completions endpoint is asked which of them are noise. The
answer is merged exactly like `--ignore`. When the service is disabled or
unconfigured no request is made, and a bad answer means "no suggestions".
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

import requests

from repo_to_text.exceptions import SuggestionError
from repo_to_text.logging import logger

if TYPE_CHECKING:
    from repo_to_text.filters import PathFilter
    from repo_to_text.settings import SuggestionSettings

PRESCAN_DEPTH = 2

PROMPT = """You help prepare a source repository for a language model.
Below are the file extensions and directory names found near the repository root.
Reply with a JSON array of strings naming the directories and extensions (without
leading dots) that hold build artifacts, dependencies, binaries or generated data
and should be skipped. Reply with [] if nothing should be skipped. Reply with the
JSON array only.

Extensions: {extensions}
Directories: {directories}
"""


class ScanSummary(NamedTuple):
    extensions: list[str]
    directories: list[str]


def prescan(root: Path, path_filter: PathFilter, max_depth: int = PRESCAN_DEPTH) -> ScanSummary:
    """List distinct extensions and directory names up to `max_depth` levels deep.

    Directories already ignored are neither reported nor descended into.

    Args:
        root (Path): the directory to scan
        path_filter (PathFilter): the current filtering rules
        max_depth (int, optional): how many directory levels to look at. Defaults to 2.

    Returns:
        ScanSummary: sorted extensions (lower-cased, no dot) and directory names
    """
    extensions: set[str] = set()
    directories: set[str] = set()
    root_depth = len(root.parts)
    for dirpath, dirnames, filenames in os.walk(root):
        depth = len(Path(dirpath).parts) - root_depth
        dirnames[:] = [d for d in dirnames if not path_filter.should_ignore_directory(d)]
        directories.update(dirnames)
        if depth + 1 >= max_depth:
            dirnames[:] = []
        for name in filenames:
            suffix = Path(name).suffix.lower().removeprefix(".")
            if suffix:
                extensions.add(suffix)
    return ScanSummary(extensions=sorted(extensions), directories=sorted(directories))


def parse_suggestions(content: str) -> list[str]:
    """Parse the model reply into a list of ignore entries.

    Markdown code fences around the JSON are tolerated.

    Args:
        content (str): the raw reply text

    Raises:
        SuggestionError: if the reply is empty, not JSON, or not a list of strings

    Returns:
        list[str]: the suggested entries
    """
    text = content.strip()
    if text.startswith("```"):
        text = text.strip("`").removeprefix("json").strip()
    if not text:
        raise SuggestionError(reason="empty reply")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SuggestionError(reason=f"reply is not JSON: {e.msg}") from e
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise SuggestionError(reason="reply is not a JSON array of strings")
    return [item for item in data if item.strip()]


def request_suggestions(summary: ScanSummary, settings: SuggestionSettings) -> list[str]:
    """Send one chat-completions request and parse its answer. No retry.

    Raises:
        SuggestionError: on transport, HTTP or payload errors
    """
    payload = {
        "model": settings.model,
        "messages": [
            {
                "role": "user",
                "content": PROMPT.format(
                    extensions=", ".join(summary.extensions) or "(none)",
                    directories=", ".join(summary.directories) or "(none)",
                ),
            },
        ],
        "temperature": 0,
    }
    headers = {
        "Authorization": f"Bearer {settings.api_key}",
        "Content-Type": "application/json",
    }
    try:
        resp = requests.post(
            f"{settings.base_url.rstrip('/')}/chat/completions",
            headers=headers,
            json=payload,
            timeout=settings.timeout,
        )
        resp.raise_for_status()
        data = resp.json()
    except requests.exceptions.RequestException as e:
        raise SuggestionError(reason=str(e)) from e
    except ValueError as e:
        raise SuggestionError(reason="response body is not JSON") from e

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise SuggestionError(reason="unexpected response shape") from e
    return parse_suggestions(content or "")


def suggest_ignores(root: Path, path_filter: PathFilter, settings: SuggestionSettings) -> list[str]:
    """Ask the suggestion service for extra ignores, or return [] when it is unavailable.

    Args:
        root (Path): the directory that will be extracted
        path_filter (PathFilter): the current filtering rules, used by the pre-scan
        settings (SuggestionSettings): service connection settings

    Returns:
        list[str]: entries to merge like `--ignore` values; empty when disabled,
            unconfigured or when the service answer is unusable
    """
    if not settings.enabled:
        return []
    if not settings.api_key:
        logger.info("suggestions_skipped", reason="no API key configured")
        return []
    summary = prescan(root, path_filter)
    try:
        suggestions = request_suggestions(summary, settings)
    except SuggestionError as e:
        logger.warning("suggestions_unavailable", reason=e.reason)
        return []
    logger.info("suggestions_received", suggestions=suggestions)
    return suggestions
