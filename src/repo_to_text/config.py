from __future__ import annotations

import os
from enum import StrEnum, auto
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, computed_field

if TYPE_CHECKING:
    from collections.abc import Iterable

SIZE_THRESHOLD = 1024 * 1024
RESOURCE_FORK_PREFIX = "._"
DEFAULT_OUTPUT_FILE = "repo_content.txt"
BANNER = "=" * 47
RUN_HEADER_RULE = "=" * 49
BINARY_PLACEHOLDER = "<binary data removed>"


class FilterMode(StrEnum):
    """Extension filtering policy.

    `DENY` drops files whose extension is listed, `ALLOW` keeps only files whose
    extension is listed. Both share the same directory deny-list.
    """

    DENY = auto()
    ALLOW = auto()


DEFAULT_IGNORED_DIRECTORIES = frozenset({
    "git",
    "svn",
    "node_modules",
    "vendor",
    "idea",
    "target",
})

DEFAULT_IGNORED_EXTENSIONS = frozenset({
    # archives and packages
    "lock",
    "pack",
    "xz",
    "7z",
    "bz2",
    "gz",
    "lz",
    "lzma",
    "lzo",
    "rar",
    "tar",
    "z",
    "zip",
    "deb",
    "rpm",
    "apk",
    "ipa",
    "app",
    "dmg",
    "pkg",
    # native and bytecode binaries
    "exe",
    "dll",
    "so",
    "o",
    "a",
    "pyc",
    "pyo",
    "pyd",
    "class",
    "jar",
    "war",
    # data, logs and tool configuration noise
    "csv",
    "env",
    "log",
    "gitignore",
    "json",
    "npmrc",
    "prettierrc",
    "eslintrc",
    "babelrc",
    "yml",
    "yaml",
    # images and documents
    "jpg",
    "jpeg",
    "png",
    "gif",
    "bmp",
    "ico",
    "svg",
    "webp",
    "pdf",
    # fonts
    "woff",
    "woff2",
    "ttf",
    "eot",
    "bcmap",
    "pfb",
    "pfm",
    "afm",
    "otf",
    "cff",
    "fon",
})

DEFAULT_ALLOWED_EXTENSIONS = frozenset({
    "bash",
    "c",
    "cc",
    "cfg",
    "cpp",
    "cs",
    "css",
    "cxx",
    "dart",
    "ex",
    "exs",
    "go",
    "h",
    "hpp",
    "hs",
    "html",
    "ini",
    "java",
    "js",
    "jsx",
    "kt",
    "lua",
    "md",
    "mjs",
    "php",
    "pl",
    "proto",
    "py",
    "rb",
    "rs",
    "rst",
    "scala",
    "scss",
    "sh",
    "sql",
    "svelte",
    "swift",
    "toml",
    "ts",
    "tsx",
    "txt",
    "vue",
    "xml",
    "zig",
    "zsh",
})


def display_path(path: str | os.PathLike[str]) -> str:
    """Render a path for the output, replacing undecodable name bytes with U+FFFD.

    Non UTF-8 file names come back from `os.walk` with surrogate escapes, which
    cannot be written to a UTF-8 stream.

    Args:
        path (str | os.PathLike[str]): the path to render

    Returns:
        str: a printable, UTF-8 encodable rendering of `path`
    """
    return os.fsencode(path).decode("utf-8", errors="replace")


def clean_item(item: str) -> str:
    """Normalize one user-supplied ignore/include entry.

    Strips surrounding whitespace and a single leading dot, then lower-cases.

    Args:
        item (str): the raw entry, e.g. ".PNG" or "node_modules"

    Returns:
        str: the normalized entry, e.g. "png"
    """
    return item.strip().removeprefix(".").lower()


def split_items(values: Iterable[str] | None) -> list[str]:
    """Split raw CLI values on commas and whitespace and normalize each entry.

    Args:
        values (Iterable[str] | None): raw values, each possibly holding several entries

    Returns:
        list[str]: the normalized, non-empty entries in input order
    """
    out: list[str] = []
    for value in values or []:
        for part in value.replace(",", " ").split():
            item = clean_item(part)
            if item:
                out.append(item)
    return out


class FilterConfig(BaseModel):
    """Immutable filtering policy shared by the walker and its workers.

    Attributes:
        mode: Whether `extensions` is a deny-list or an allow-list.
        ignored_directories: Directory base names pruned during the walk.
        extensions: Lower-cased extensions without the leading dot; the single
            active set for `mode`.
    """

    model_config = ConfigDict(frozen=True)

    mode: FilterMode = Field(default=FilterMode.DENY, description="Extension filtering policy")
    ignored_directories: frozenset[str] = Field(
        default=DEFAULT_IGNORED_DIRECTORIES,
        description="Directory base names to prune",
    )
    extensions: frozenset[str] = Field(
        default=DEFAULT_IGNORED_EXTENSIONS,
        description="Extensions denied (DENY mode) or allowed (ALLOW mode)",
    )

    @classmethod
    def build(
        cls,
        mode: FilterMode = FilterMode.DENY,
        ignores: Iterable[str] | None = None,
        includes: Iterable[str] | None = None,
    ) -> FilterConfig:
        """Merge the default tables for `mode` with user-supplied ignores and includes.

        Ignores are added to the directory deny-list, and to the extension
        deny-list in DENY mode (removed from the allow-list in ALLOW mode).
        Includes are applied last so they win over ignores: they are removed from
        both deny-lists in DENY mode and added to the allow-list in ALLOW mode.

        Args:
            mode (FilterMode): the extension filtering policy
            ignores (Iterable[str] | None): extra directory names and/or extensions to deny
            includes (Iterable[str] | None): extensions to force-allow

        Returns:
            FilterConfig: the frozen configuration
        """
        defaults = DEFAULT_IGNORED_EXTENSIONS if mode is FilterMode.DENY else DEFAULT_ALLOWED_EXTENSIONS
        base = cls(mode=mode, extensions=defaults).merged(ignores or [])
        directories = set(base.ignored_directories)
        extensions = set(base.extensions)

        for item in split_items(includes):
            if mode is FilterMode.DENY:
                extensions.discard(item)
                directories.discard(item)
            else:
                extensions.add(item)

        return cls(
            mode=mode,
            ignored_directories=frozenset(directories),
            extensions=frozenset(extensions),
        )

    def merged(self, ignores: Iterable[str]) -> FilterConfig:
        """Return a copy with extra ignores merged through the `--ignore` path.

        Args:
            ignores (Iterable[str]): additional directory names and/or extensions to deny

        Returns:
            FilterConfig: a new configuration; `self` is left untouched
        """
        directories = set(self.ignored_directories)
        extensions = set(self.extensions)
        for item in split_items(ignores):
            directories.add(item)
            if self.mode is FilterMode.DENY:
                extensions.add(item)
            else:
                extensions.discard(item)
        return self.model_copy(
            update={"ignored_directories": frozenset(directories), "extensions": frozenset(extensions)},
        )


class OversizedFile(BaseModel):
    """A candidate above the size threshold, subject to the large-file gate."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="File path as discovered under the root")
    size: int = Field(..., ge=0, description="File size in bytes")

    @computed_field
    @property
    def size_mib(self) -> float:
        """Size in mebibytes."""
        return self.size / (1024 * 1024)

    @computed_field
    @property
    def label(self) -> str:
        """Display label used by the interactive selector."""
        return f"{display_path(self.path)} ({self.size_mib:.2f}MB)"
