# src/confrescue/config/loader.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field, is_dataclass, fields
from pathlib import Path
import typing as t

try:
    import tomllib  # py>=3.11
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore

"""TOML configuration loader.

Layering (lowest to highest precedence):
    1. dataclass defaults
    2. ``<workdir>/confrescue.toml``
    3. explicit ``--config`` file
    4. command-line flags (passed in as an override mapping)
"""

CONFIG_FILENAME = "confrescue.toml"

# -----------------
# Dataclass schema
# -----------------

@dataclass
class RunSection:
    nconfs: int = 10
    forcefield: str = "uff"
    charge: int | None = None
    theory: str = "--gfnff"
    rescue: bool = True

@dataclass
class ToolsSection:
    builder: str = "obabel"
    conformer_search: str = "obabel"
    optimizer: str = "xtb"
    screening: str = "crest"
    # Open Babel output format whose text carries a "<charge> <multiplicity>" line
    charge_format: str = "gzmat"

@dataclass
class RuntimeSection:
    timeout_s: float | None = None
    echo_output: bool = True

@dataclass
class Config:
    workdir: Path
    run: RunSection = field(default_factory=RunSection)
    tools: ToolsSection = field(default_factory=ToolsSection)
    runtime: RuntimeSection = field(default_factory=RuntimeSection)


# -----------------
# Helpers
# -----------------

def _load_toml(path: Path) -> dict:
    with path.open("rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _merge_into_dataclass(section, payload: dict):
    """Recursively merge a dict into a (possibly nested) dataclass instance."""
    for k, v in payload.items():
        if not hasattr(section, k):
            logging.getLogger(__name__).warning(
                "[config] ignoring unknown key '%s' in [%s]", k, type(section).__name__
            )
            continue
        current = getattr(section, k)
        if is_dataclass(current) and isinstance(v, dict):
            _merge_into_dataclass(current, v)
        else:
            if v is not None:
                setattr(section, k, v)


def _flatten_dataclass(obj, prefix: str = ""):
    """Yield (key_path, value) for leaf attributes of nested dataclasses."""
    for f in fields(obj):
        val = getattr(obj, f.name)
        key = f"{prefix}.{f.name}" if prefix else f.name
        if is_dataclass(val):
            yield from _flatten_dataclass(val, key)
        else:
            yield key, val


def dump_config(cfg: Config, log_fn=print, header: bool = True):
    """Log all config settings (flattened) with a stable ordering.

    Format: [config] section.key = value
    """
    if header:
        log_fn("[config] -- begin full config dump --")
    for key, val in _flatten_dataclass(cfg):
        log_fn(f"[config] {key} = {val}")
    if header:
        log_fn("[config] -- end full config dump --")


def _coerce_charge(raw) -> int | None:
    # An empty string means "not supplied" and keeps charge autodetection on.
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValueError(f"run.charge must be an integer, got {raw!r}")
    if isinstance(raw, int):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"run.charge must be an integer, got {raw!r}") from None


def validate_config(cfg: Config) -> Config:
    run = cfg.run
    run.charge = _coerce_charge(run.charge)
    if isinstance(run.nconfs, bool) or not isinstance(run.nconfs, int) or run.nconfs < 1:
        raise ValueError(f"run.nconfs must be a positive integer, got {run.nconfs!r}")
    if not str(run.forcefield).strip():
        raise ValueError("run.forcefield must not be empty")
    if not str(run.theory).strip():
        raise ValueError("run.theory must not be empty")
    for name in ("builder", "conformer_search", "optimizer", "screening", "charge_format"):
        if not str(getattr(cfg.tools, name)).strip():
            raise ValueError(f"tools.{name} must not be empty")
    for key, section in (("run.rescue", run), ("runtime.echo_output", cfg.runtime)):
        value = getattr(section, key.split(".")[1])
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be true or false, got {value!r}")
    timeout = cfg.runtime.timeout_s
    if timeout is not None:
        if isinstance(timeout, bool):
            raise ValueError(f"runtime.timeout_s must be a number of seconds, got {timeout!r}")
        try:
            seconds = float(timeout)
        except (TypeError, ValueError):
            raise ValueError(f"runtime.timeout_s must be a number of seconds, got {timeout!r}") from None
        if seconds <= 0:
            raise ValueError(f"runtime.timeout_s must be positive, got {timeout!r}")
        cfg.runtime.timeout_s = seconds
    return cfg


# -----------------
# Loader
# -----------------

def load_config(
    workdir: t.Union[str, Path],
    config_path: t.Union[str, Path, None] = None,
    overrides: dict | None = None,
) -> Config:
    root = Path(workdir).resolve()
    logger = logging.getLogger(__name__)

    tomls: list[Path] = []
    local_toml = root / CONFIG_FILENAME
    if local_toml.is_file():
        tomls.append(local_toml)
    if config_path:
        provided = Path(config_path).resolve()
        if not provided.is_file():
            raise FileNotFoundError(f"Config file not found: {provided}")
        if provided not in tomls:
            tomls.append(provided)

    data: dict = {}
    for p in tomls:
        logger.debug("[config] merging %s", p)
        data = _deep_merge(data, _load_toml(p))
    if overrides:
        data = _deep_merge(data, overrides)

    cfg = Config(workdir=root)
    for section_name in ("run", "tools", "runtime"):
        payload = data.get(section_name, {})
        if isinstance(payload, dict):
            _merge_into_dataclass(getattr(cfg, section_name), payload)
    for unknown in sorted(set(data) - {"run", "tools", "runtime"}):
        logger.warning("[config] ignoring unknown section [%s]", unknown)

    return validate_config(cfg)


__all__ = [
    "CONFIG_FILENAME",
    "Config",
    "RunSection",
    "ToolsSection",
    "RuntimeSection",
    "load_config",
    "dump_config",
    "validate_config",
]
