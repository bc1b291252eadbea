"""Pipeline orchestration: input -> 3D build -> charge -> conformer search
-> (rescue) -> screening.

Responsibility: thread one :class:`PipelineContext` through the stages in a
fixed order and take the single conditional branch (rescue). Each stage
lives in :mod:`confrescue.domain`; this module only sequences them and
records the decisions taken.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from confrescue.config.loader import Config
from confrescue.domain.charge import ChargeResult, extract_charge
from confrescue.domain.context import PipelineContext
from confrescue.domain.generation import GenerationResult, generate_conformers
from confrescue.domain.inputs import build_initial_structure, resolve_input
from confrescue.domain.rescue import RescueResult, RescueState, run_rescue, should_rescue
from confrescue.domain.screening import run_screening
from confrescue.infra.decisions import build_run_decision
from confrescue.infra.logging import log_run_header
from confrescue.infra.step_logging import log_relevant_config, log_step_header

__all__ = ["PipelineResult", "run_pipeline"]

_RELEVANT_FIELDS = [
    "run.nconfs",
    "run.forcefield",
    "run.charge",
    "run.theory",
    "run.rescue",
    "runtime.timeout_s",
]


@dataclass(slots=True)
class PipelineResult:
    context: PipelineContext
    charge: ChargeResult
    first_generation: GenerationResult
    rescue: RescueResult
    conformer_count: int
    screened: Path | None


def run_pipeline(cfg: Config, input_spec: str, cwd: str | os.PathLike | None = None) -> PipelineResult:
    """Run the whole pipeline in ``cfg.workdir``.

    ``cwd`` is where a relative input path is looked up (defaults to the
    process working directory). Fatal conditions raise PipelineError
    subclasses; zero conformers without rescue is tolerated.
    """
    log_run_header("run")
    log_relevant_config("run", cfg, _RELEVANT_FIELDS)

    ctx = PipelineContext(
        workdir=Path(cfg.workdir),
        input_file=resolve_input(input_spec, Path(cfg.workdir), Path(cwd) if cwd else None),
    )

    log_step_header("build", f"building 3D structure from {ctx.input_file}")
    build_initial_structure(ctx, cfg)

    log_step_header("charge", f"determining net charge of {ctx.structure}")
    charge = extract_charge(ctx, cfg)

    log_step_header("confsearch", f"searching {cfg.run.nconfs} conformer(s) with {cfg.run.forcefield}")
    first = generate_conformers(ctx, cfg)

    rescue = RescueResult(state=RescueState.NOT_TRIGGERED)
    if should_rescue(first.outcome, cfg.run.rescue):
        log_step_header("rescue", "conformer search failed; starting rescue")
        rescue = run_rescue(ctx, cfg)
    elif first.outcome.failed:
        logging.warning(
            "[rescue] disabled; screening proceeds with the current "
            f"{ctx.conformers} (it may be empty or stale)"
        )

    conformer_count = rescue.conformer_count
    if conformer_count is None:
        conformer_count = first.conformer_count

    decision = build_run_decision(
        charge_origin=charge.origin,
        charge=charge.charge,
        first_outcome=first.outcome.value,
        rescue_enabled=cfg.run.rescue,
        rescue_state=rescue.state.value,
        fallback_used=rescue.fallback_used,
        second_outcome=rescue.generation.outcome.value if rescue.generation else None,
        conformer_count=conformer_count,
    )
    decision.log("run")

    log_step_header("screen", f"screening {ctx.conformers} with {cfg.run.theory}")
    screened = run_screening(ctx, cfg)
    logging.info("[run] pipeline finished")
    return PipelineResult(
        context=ctx,
        charge=charge,
        first_generation=first,
        rescue=rescue,
        conformer_count=conformer_count,
        screened=screened,
    )
