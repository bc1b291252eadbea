"""Net charge detection and the ``.CHRG`` side channel.

xtb and CREST pick the molecular charge up from a ``.CHRG`` file in their
working directory. This module writes that file either from a manual
override or from a heuristic scrape of Open Babel output.

The scrape converts the structure to a format that carries a
"<charge> <multiplicity>" line (Gaussian Z-matrix by default) and takes the
first line containing two whitespace-separated integers, the first
optionally signed. Anything else on the line is ignored, as are later
matching lines. This is deliberately a heuristic,
not a parser of the format: if nothing matches, no ``.CHRG`` is written and
the downstream tools fall back to their own default (neutral).
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from confrescue.adapters.openbabel import charge_format_command
from confrescue.cli.run_commands import stream_command
from confrescue.config.loader import Config
from confrescue.domain.context import PipelineContext

__all__ = ["CHARGE_LINE", "ChargeResult", "parse_charge", "write_charge", "extract_charge"]

CHARGE_LINE = re.compile(r"([+-]?\d+)\s+(\d+)")


@dataclass(slots=True)
class ChargeResult:
    charge: int | None
    origin: str  # 'manual' | 'detected' | 'none'


def parse_charge(lines: Iterable[str]) -> int | None:
    """Return the charge from the first line containing "<int> <int>", or None.

    The iterable is always consumed to the end so a live process stream is
    fully drained.
    """
    charge = None
    for line in lines:
        if charge is not None:
            continue
        m = CHARGE_LINE.search(line)
        if m:
            charge = int(m.group(1))
    return charge


def write_charge(path: Path, charge: int) -> None:
    Path(path).write_text(f"{charge}\n")
    logging.info(f"[charge] wrote {Path(path).name} = {charge}")


def extract_charge(ctx: PipelineContext, cfg: Config) -> ChargeResult:
    if cfg.run.charge is not None:
        logging.info(f"[charge] manual override: {cfg.run.charge}")
        write_charge(ctx.charge_path, cfg.run.charge)
        return ChargeResult(cfg.run.charge, "manual")

    command = charge_format_command(ctx.structure, cfg.tools.charge_format, cfg.tools.builder)
    with stream_command(
        command,
        cwd=ctx.workdir,
        timeout=cfg.runtime.timeout_s,
        echo=cfg.runtime.echo_output,
    ) as run:
        charge = parse_charge(run)

    if charge is None:
        logging.warning(
            f"[charge] no charge line found in '{cfg.tools.charge_format}' output; "
            f"{ctx.charge_file} not written"
        )
        if ctx.charge_path.exists():
            logging.warning(f"[charge] a {ctx.charge_file} from an earlier run is present and will be used")
        return ChargeResult(None, "none")

    logging.info(f"[charge] detected net charge {charge}")
    write_charge(ctx.charge_path, charge)
    return ChargeResult(charge, "detected")
