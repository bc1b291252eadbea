"""Final screening of the conformer set (terminal stage)."""
from __future__ import annotations

import logging
from pathlib import Path

from confrescue.adapters import crest
from confrescue.config.loader import Config
from confrescue.domain.context import PipelineContext


def run_screening(ctx: PipelineContext, cfg: Config) -> Path | None:
    """Screen ``confs.xyz`` at the configured level of theory.

    The tool output is the deliverable and is not inspected. A non-zero exit
    propagates as ToolExitError. Returns the screened ensemble path when the
    tool wrote one.
    """
    if not ctx.conformers_path.is_file():
        logging.warning(f"[screen] {ctx.conformers} does not exist; screening anyway")
    crest.screen(
        ctx.conformers,
        cfg.run.theory,
        cwd=ctx.workdir,
        tool=cfg.tools.screening,
        timeout=cfg.runtime.timeout_s,
    )
    screened = ctx.path(crest.SCREENED_ENSEMBLE)
    if screened.is_file():
        logging.info(f"[screen] screened ensemble: {screened.name}")
        return screened
    logging.info(f"[screen] finished; {crest.SCREENED_ENSEMBLE} not found")
    return None
