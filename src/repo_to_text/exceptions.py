from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class RepoToTextError(Exception):
    """Base exception for errors in the repo_to_text package."""


@dataclass(frozen=True)
class FileProcessingError(RepoToTextError):
    """Raised when a candidate file cannot be read during extraction."""

    path: Path
    reason: str

    def __str__(self) -> str:
        return f"Failed to process {self.path}: {self.reason}"


@dataclass(frozen=True)
class OutputWriteError(RepoToTextError):
    """Raised when the output document cannot be opened or written."""

    path: Path
    reason: str

    def __str__(self) -> str:
        return f"Failed to write output {self.path}: {self.reason}"


@dataclass(frozen=True)
class GateDecisionError(RepoToTextError):
    """Raised when a decision provider does not answer for every large file."""

    expected: int
    received: int
    message: str = "The decision provider returned a wrong number of decisions."

    def __str__(self) -> str:
        return f"{self.message} expected={self.expected} received={self.received}"


@dataclass(frozen=True)
class SuggestionError(RepoToTextError):
    """Raised when the ignore-suggestion service gives an unusable answer."""

    reason: str
