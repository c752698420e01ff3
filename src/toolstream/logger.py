"""Logging setup for toolstream.

Library modules only ask for a namespaced logger; importing them never
touches the filesystem.  An application opts in by calling
init_logging(), which attaches a rotating file log under
<workspace>/.toolstream_output/ and, in debug mode, a stderr handler.
Calling it again (another workspace, debug switched on) replaces the
previous handlers.

Usage in any module:
    from .logger import get_logger
    log = get_logger("parser")
    log.debug("tool opened: %s", name)
"""

import logging
import os
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "toolstream"
LOG_DIR_NAME = ".toolstream_output"
LOG_FILE_NAME = "toolstream.log"

_FILE_HANDLER = "toolstream-file"
_STDERR_HANDLER = "toolstream-stderr"

_FORMATTER = logging.Formatter(
    fmt="%(asctime)s.%(msecs)03d | %(levelname)-5s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Silent until init_logging(); keeps logging.lastResort off the caller's stderr.
logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())


def log_path_for(workspace: Optional[str] = None) -> Path:
    """Where init_logging() writes for the given workspace (default: cwd)."""
    base = Path(workspace) if workspace else Path.cwd()
    return base / LOG_DIR_NAME / LOG_FILE_NAME


def close_logging() -> None:
    """Detach and close the handlers installed by init_logging()."""
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        if handler.get_name() in (_FILE_HANDLER, _STDERR_HANDLER):
            root.removeHandler(handler)
            handler.close()


def init_logging(
    workspace: Optional[str] = None,
    level: int = logging.DEBUG,
    debug: bool = False,
) -> Path:
    """(Re)configure the toolstream handlers and return the log file path."""
    close_logging()

    log_path = log_path_for(workspace)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)

    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=5 * 1024 * 1024,   # 5 MB per file
        backupCount=5,
        encoding="utf-8",
    )
    handler.set_name(_FILE_HANDLER)
    handler.setLevel(level)
    handler.setFormatter(_FORMATTER)
    root.addHandler(handler)

    if debug:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.set_name(_STDERR_HANDLER)
        stderr_handler.setLevel(logging.DEBUG)
        stderr_handler.setFormatter(_FORMATTER)
        root.addHandler(stderr_handler)

    root.info(
        "logging configured: pid=%d python=%s log=%s debug=%s",
        os.getpid(),
        sys.version.split()[0],
        log_path,
        debug,
    )
    return log_path


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the 'toolstream' namespace."""
    if name.startswith(ROOT_LOGGER + "."):
        name = name[len(ROOT_LOGGER) + 1:]
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


# ── Convenience helpers ──────────────────────────────────────

def log_exception(logger: logging.Logger, msg: str, exc: BaseException) -> None:
    """Log an exception with full traceback."""
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("%s: %s\n%s", msg, exc, "".join(tb))


def truncate(text: str, max_len: int = 200) -> str:
    """Shorten a string for a single log line."""
    if not text:
        return "(empty)"
    text = text.replace("\n", "\\n")
    if len(text) <= max_len:
        return text
    return text[:max_len] + f"...[{len(text)} chars]"
