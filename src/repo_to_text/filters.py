from __future__ import annotations

from pathlib import PurePath

from repo_to_text.config import RESOURCE_FORK_PREFIX, FilterConfig, FilterMode


def is_resource_fork(name: str) -> bool:
    """Check if a file name is a resource-fork sidecar (`._foo`).

    Args:
        name (str): the file base name

    Returns:
        bool: True if the name starts with the sidecar prefix
    """
    return name.startswith(RESOURCE_FORK_PREFIX)


class PathFilter:
    """Pure ignore/allow decisions over a frozen `FilterConfig`.

    The sets are never mutated after construction, so one instance can be
    shared by every walker worker without locking.
    """

    def __init__(self, config: FilterConfig) -> None:
        self.config = config
        self._case_insensitive = config.mode is FilterMode.ALLOW
        if self._case_insensitive:
            self._directories = frozenset(d.lower() for d in config.ignored_directories)
        else:
            self._directories = config.ignored_directories

    def should_ignore_directory(self, name: str) -> bool:
        """Decide whether a directory subtree must be pruned.

        The name matches with or without a single leading dot, so `git` in the
        deny-list covers `.git`. Matching is case-sensitive in deny-list mode and
        case-insensitive in allow-list mode.

        Args:
            name (str): the directory base name

        Returns:
            bool: True if the directory must be skipped
        """
        if self._case_insensitive:
            name = name.lower()
        return name in self._directories or name.removeprefix(".") in self._directories

    def should_ignore_file(self, path: str | PurePath) -> bool:
        """Decide whether a file must be excluded from the output.

        Args:
            path (str | PurePath): the file path; only its base name is inspected

        Returns:
            bool: True if the file has no usable extension, looks like a versioned
                shared library (`libfoo.so.1`), or fails the extension policy
        """
        name = PurePath(path).name
        if "." not in name or name.endswith("."):
            return True
        lowered = name.lower()
        if ".so." in lowered:
            return True
        extension = PurePath(lowered).suffix.removeprefix(".")
        if not extension:
            return True
        if self.config.mode is FilterMode.DENY:
            return extension in self.config.extensions
        return extension not in self.config.extensions
