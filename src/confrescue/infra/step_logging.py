"""Stage prefixes and aligned key/value tables for the run log.

Environment switches:
    CONFRESCUE_LOG_TABLE        '0' disables table rendering everywhere.
    CONFRESCUE_LOG_TABLE_MODE   'table' (default), 'line' or 'both' for the
                                configuration summary.
"""
from __future__ import annotations
from typing import Any, Callable, Iterable, Sequence
import os
import logging

StepLogFn = Callable[[str], None]

_KEY_WIDTH_CAP = 40


def tables_enabled() -> bool:
    return os.environ.get('CONFRESCUE_LOG_TABLE', '1') not in {'0', 'false', 'False'}


def lookup_dotted(obj: Any, path: str) -> Any:
    """Resolve ``"run.nconfs"`` against nested attributes or dicts; None if absent."""
    cur = obj
    for part in path.split('.'):
        if isinstance(cur, dict):
            cur = cur.get(part)
        else:
            cur = getattr(cur, part, None)
        if cur is None:
            return None
    return cur


def render_rows(prefix: str, title: str, rows: Sequence[tuple[str, str]], log_fn: StepLogFn) -> None:
    """Emit ``rows`` under a title line, keys padded to a common width."""
    if not rows:
        return
    width = min(max(len(k) for k, _ in rows), _KEY_WIDTH_CAP)
    log_fn(f"{prefix} ── {title} ──")
    for key, value in rows:
        if len(key) > _KEY_WIDTH_CAP:
            key = key[:_KEY_WIDTH_CAP - 3] + '...'
        log_fn(f"{prefix} {key.ljust(width)} : {value}")


def log_step_header(step: str, msg: str, log_fn: StepLogFn | None = None) -> None:
    (log_fn or logging.info)(f"[{step}] {msg}")


def log_relevant_config(step: str, cfg: Any, fields: Iterable[str], log_fn: StepLogFn | None = None) -> dict[str, Any]:
    """Log the selected dotted config paths and return them as a mapping."""
    summary = {f: lookup_dotted(cfg, f) for f in fields}
    emit = log_fn or logging.info
    mode = os.environ.get('CONFRESCUE_LOG_TABLE_MODE', 'table').lower()

    if mode in {'both', 'line', ''}:
        emit(f"[{step}][cfg] " + ", ".join(f"{k}={v!r}" for k, v in summary.items()))
    if mode in {'both', 'table'} and tables_enabled():
        render_rows(f"[{step}][cfg]", "configuration summary", [(k, repr(v)) for k, v in summary.items()], emit)
    return summary


__all__ = [
    'tables_enabled',
    'lookup_dotted',
    'render_rows',
    'log_step_header',
    'log_relevant_config',
]
