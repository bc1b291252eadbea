"""Root-logger configuration for confrescue runs.

One run writes one log file, ``<workdir>/confrescue.log``, plus an optional
stderr handler. Tool output echoed to the terminal is written to stdout
directly and reaches these handlers at DEBUG only, so the console never shows
a tool line twice.

Environment variables:
    CONFRESCUE_LOG_LEVEL   Root log level (default: INFO).

Public API:
    setup_logging(log_path, also_console=True, suppress_initial_message=False)
    log_run_header(step_name)
    reset_logging()
"""
from __future__ import annotations

import logging
import os
from logging.handlers import WatchedFileHandler
from pathlib import Path

from confrescue import __version__ as _confrescue_version

_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class ResilientWatchedFileHandler(WatchedFileHandler):
    """WatchedFileHandler that recreates its parent directory if it vanished.

    pytest's tmp_path cleanup can delete the directory while the handler is
    still attached to the root logger. The emit is retried once.
    """

    def emit(self, record):  # type: ignore[override]
        try:
            return super().emit(record)
        except FileNotFoundError:
            Path(self.baseFilename).parent.mkdir(parents=True, exist_ok=True)
        super().emit(record)


def _is_console_handler(h: logging.Handler) -> bool:
    return isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)


def _drop(root: logging.Logger, handler: logging.Handler) -> None:
    root.removeHandler(handler)
    handler.close()


def _apply_env_level(root: logging.Logger) -> None:
    name = os.getenv("CONFRESCUE_LOG_LEVEL", "INFO").upper()
    wanted = getattr(logging, name, logging.INFO)
    # never make an already more verbose root (e.g. DEBUG from a test) quieter
    if root.level == logging.NOTSET or root.level > wanted:
        root.setLevel(wanted)


def _keep_only_file_handler_for(root: logging.Logger, path: Path) -> bool:
    """Close file handlers for other paths; True if one for ``path`` remains."""
    found = False
    for h in [h for h in root.handlers if isinstance(h, logging.FileHandler)]:
        current = Path(h.baseFilename)
        if current.parent.exists() and current.resolve() == path:
            found = True
        else:
            _drop(root, h)
    return found


def _with_format(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT))
    return handler


def setup_logging(log_path, also_console: bool = True, suppress_initial_message: bool = False) -> None:
    """Point the root logger at ``log_path`` for the current run.

    Parameters
    ----------
    log_path : str | Path
        Run log file, created (with parents) if missing and appended to.
    also_console : bool, default True
        Keep exactly one stderr handler when True, none when False.
    suppress_initial_message : bool, default False
        Skip the "Logging initialized" record.

    Calling it again with the same path is a no-op apart from the console
    toggle.
    """
    path = Path(log_path).resolve()
    root = logging.getLogger()
    _apply_env_level(root)

    already_attached = _keep_only_file_handler_for(root, path)

    consoles = [h for h in root.handlers if _is_console_handler(h)]
    if not also_console:
        for h in consoles:
            _drop(root, h)
    elif not consoles:
        root.addHandler(_with_format(logging.StreamHandler(), root.level))

    if already_attached:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    root.addHandler(_with_format(ResilientWatchedFileHandler(path, mode="a", encoding="utf-8"), root.level))
    if not suppress_initial_message:
        root.info(f"Logging initialized. Log file: {path} (level={logging.getLevelName(root.level)})")


def log_run_header(step_name: str) -> None:
    """Emit ``confrescue <version> | step=<step_name>``."""
    logging.getLogger().info(f"confrescue {_confrescue_version} | step={step_name}")


def reset_logging() -> None:
    """Detach and close every handler on the root and on named loggers."""
    loggers = [logging.getLogger()]
    loggers += [logging.getLogger(name) for name in list(logging.Logger.manager.loggerDict)]
    for logger in loggers:
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
        logger.filters = []
