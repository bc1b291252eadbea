"""Effective-configuration snapshot for a run.

The merged configuration (defaults, TOML layers, CLI flags) is written to
``<workdir>/confrescue.snapshot.toml`` at the start of every run and
overwritten on reruns. Feeding it back with ``--config`` reproduces the run.
"""
from __future__ import annotations
from dataclasses import asdict
from pathlib import Path
from typing import Callable
import logging

import tomli_w

from confrescue.config.loader import Config

SNAPSHOT_FILENAME = "confrescue.snapshot.toml"


def _drop_none(payload: dict) -> dict:
    # TOML has no null; unset values are simply omitted.
    out = {}
    for k, v in payload.items():
        if isinstance(v, dict):
            out[k] = _drop_none(v)
        elif v is not None:
            out[k] = v
    return out


def snapshot_payload(cfg: Config) -> dict:
    return _drop_none({
        "run": asdict(cfg.run),
        "tools": asdict(cfg.tools),
        "runtime": asdict(cfg.runtime),
    })


def write_config_snapshot(cfg: Config, log_fn: Callable[[str], None] = logging.info) -> Path:
    snap = Path(cfg.workdir) / SNAPSHOT_FILENAME
    snap.write_text(tomli_w.dumps(snapshot_payload(cfg)))
    log_fn(f"[snapshot] wrote {snap.name}")
    return snap


__all__ = ["SNAPSHOT_FILENAME", "snapshot_payload", "write_config_snapshot"]
