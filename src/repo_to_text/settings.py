from __future__ import annotations

import os
from pathlib import Path

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field

from repo_to_text.config import DEFAULT_OUTPUT_FILE, FilterMode

ENV_FILE = find_dotenv(usecwd=True)

TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Configuration settings for one repo_to_text run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    root: Path = Field(default_factory=Path.cwd, description="Directory to extract.")
    output: Path = Field(default=Path(DEFAULT_OUTPUT_FILE), description="Output document.")
    ignore: list[str] = Field(
        default_factory=list,
        description="Extra directory names and/or extensions to ignore.",
    )
    include: list[str] = Field(
        default_factory=list,
        description="Extensions to include even if ignored by default.",
    )
    allow_list: bool = Field(
        default=False,
        description="Keep only allow-listed extensions instead of dropping deny-listed ones.",
    )
    workers: int | None = Field(default=None, ge=1, description="Worker threads (default: CPU count).")
    yes: bool = Field(default=False, description="Keep all large files without prompting.")
    skip_unreadable: bool = Field(
        default=False,
        description="Skip files that cannot be read instead of aborting the run.",
    )
    suggest: bool | None = Field(
        default=None,
        description="Ask the suggestion service for extra ignores (default: from environment).",
    )
    log_file: str = Field(default="", description="Log file path.")
    verbose: bool = Field(default=False, description="Log debug events.")

    @property
    def mode(self) -> FilterMode:
        return FilterMode.ALLOW if self.allow_list else FilterMode.DENY


class SuggestionSettings(BaseModel):
    """Connection settings for the ignore-suggestion service.

    Read from the process environment, falling back to the nearest `.env` file.
    """

    enabled: bool = Field(default=False, description="Whether to query the service at all.")
    api_key: str = Field(default="", description="Bearer token for the chat-completions endpoint.")
    base_url: str = Field(default="https://api.openai.com/v1", description="API base URL.")
    model: str = Field(default="gpt-4o-mini", description="Model name.")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds.")

    @classmethod
    def from_env(cls, env_file: str | None = None) -> SuggestionSettings:
        path = env_file or ENV_FILE
        values = {k: v for k, v in dotenv_values(path).items() if v is not None} if path else {}
        values.update(os.environ)
        data: dict[str, object] = {
            "enabled": values.get("REPO_TO_TEXT_SUGGEST", "").strip().lower() in TRUTHY,
            "api_key": values.get("OPENAI_API_KEY", ""),
        }
        if values.get("OPENAI_BASE_URL"):
            data["base_url"] = values["OPENAI_BASE_URL"]
        if values.get("REPO_TO_TEXT_MODEL"):
            data["model"] = values["REPO_TO_TEXT_MODEL"]
        if values.get("REPO_TO_TEXT_SUGGEST_TIMEOUT"):
            data["timeout"] = values["REPO_TO_TEXT_SUGGEST_TIMEOUT"]
        return cls(**data)
