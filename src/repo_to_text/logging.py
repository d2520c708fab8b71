from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

_LOGGING_CONFIGURED = False


def setup_logging(
    filename: str | Path | None = None,
    *,
    level: int = logging.INFO,
    force: bool = False,
) -> structlog.BoundLogger:
    """Set up structured JSON logging for the repo_to_text package.

    The first call happens at import time with the defaults; `main` calls it
    again with `force=True` once `--log-file` and `--verbose` are known.

    Args:
        filename: Optional path to a log file. If None, logs are written to stderr.
        level: Minimum level emitted. `logging.DEBUG` also shows the entries the
            walker skips silently (dangling symlinks, race-deleted files).
        force: Replace the handlers and level of an earlier call.

    Returns:
        A structlog logger instance bound to the repo_to_text name.
    """
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if not _LOGGING_CONFIGURED or force:
        handler: logging.Handler = (
            logging.FileHandler(str(filename), encoding="utf-8") if filename else logging.StreamHandler(sys.stderr)
        )
        logging.basicConfig(level=level, handlers=[handler], format="%(message)s", force=force)
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(level),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            # module-level loggers are created before `main` reconfigures the level
            cache_logger_on_first_use=False,
        )
        _LOGGING_CONFIGURED = True

    return structlog.get_logger("repo_to_text")


logger = setup_logging()
