"""Geometry rescue after a failed conformer search.

Force-field conformer search depends on the bond topology perceived from the
starting geometry and can fail outright on a poor one. The rescue strips the
bonding information (XYZ), lets xtb optimise the bare coordinates, rebuilds
``step2.mol`` from the optimised geometry so bonds are perceived afresh, and
runs the conformer search once more.

States::

    NOT_TRIGGERED -> ATTEMPTING -> CONVERGED | UNCONVERGED

UNCONVERGED is fatal. There is exactly one rescue attempt: if the second
search fails too, the optimised structure itself becomes the single entry of
the conformer set.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from confrescue.adapters import openbabel, xtb
from confrescue.config.loader import Config
from confrescue.domain.context import RESCUE_LOG, RESCUE_XYZ, STEP2_STRUCTURE, PipelineContext
from confrescue.domain.generation import GenerationOutcome, GenerationResult, generate_conformers
from confrescue.errors import (
    PipelineError,
    RescueNotConvergedError,
    RescueWorkspaceError,
    ToolExitError,
)
from confrescue.io.files import copy_if_present, is_nonempty_file, replace_file

__all__ = [
    "RescueState",
    "RescueResult",
    "should_rescue",
    "prepare_workspace",
    "run_rescue",
]


class RescueState(str, Enum):
    NOT_TRIGGERED = "not_triggered"
    ATTEMPTING = "attempting"
    CONVERGED = "converged"
    UNCONVERGED = "unconverged"


@dataclass(slots=True)
class RescueResult:
    state: RescueState
    generation: GenerationResult | None = None
    fallback_used: bool = False

    @property
    def conformer_count(self) -> int | None:
        if self.fallback_used:
            return 1
        return self.generation.conformer_count if self.generation else None


def should_rescue(outcome: GenerationOutcome, enabled: bool) -> bool:
    return enabled and outcome is GenerationOutcome.ZERO_CONFORMERS


def prepare_workspace(ctx: PipelineContext, cfg: Config) -> Path:
    """Create ``rescue/`` and stage the bonding-free coordinates plus charge/spin files."""
    workspace = ctx.rescue_path
    try:
        workspace.mkdir()
    except FileExistsError:
        raise RescueWorkspaceError(
            f"Rescue workspace '{workspace}' already exists (left over from an earlier run?). "
            "Remove it and rerun."
        ) from None
    except OSError as e:
        raise RescueWorkspaceError(f"Could not create rescue workspace '{workspace}': {e}") from e
    logging.info(f"[rescue] created workspace {workspace}")

    openbabel.convert(
        ctx.structure,
        f"{ctx.rescue_dir}/{RESCUE_XYZ}",
        cwd=ctx.workdir,
        builder=cfg.tools.builder,
        timeout=cfg.runtime.timeout_s,
    )
    copy_if_present(ctx.charge_path, workspace)
    copy_if_present(ctx.spin_path, workspace)
    return workspace


def _optimise(workspace: Path, cfg: Config) -> RescueState:
    try:
        xtb.optimize(
            RESCUE_XYZ,
            cwd=workspace,
            log_file=workspace / RESCUE_LOG,
            optimizer=cfg.tools.optimizer,
            timeout=cfg.runtime.timeout_s,
        )
    except ToolExitError as e:
        # Convergence is decided by the marker file alone.
        logging.warning(f"[rescue] {cfg.tools.optimizer} exited with code {e.returncode}; see {RESCUE_LOG}")
    if (workspace / xtb.CONVERGENCE_MARKER).is_file():
        return RescueState.CONVERGED
    return RescueState.UNCONVERGED


def run_rescue(ctx: PipelineContext, cfg: Config) -> RescueResult:
    state = RescueState.ATTEMPTING
    logging.info(f"[rescue] {state.value}: re-optimising {ctx.structure} without bonding information")
    workspace = prepare_workspace(ctx, cfg)

    state = _optimise(workspace, cfg)
    if state is RescueState.UNCONVERGED:
        raise RescueNotConvergedError(
            f"Rescue optimisation did not converge (no {xtb.CONVERGENCE_MARKER} in {workspace}); "
            f"see {workspace / RESCUE_LOG}"
        )
    logging.info(f"[rescue] {state.value}: optimised geometry in {ctx.rescue_dir}/{xtb.OPTIMIZED_XYZ}")

    optimised = f"{ctx.rescue_dir}/{xtb.OPTIMIZED_XYZ}"
    ctx.path(STEP2_STRUCTURE).unlink(missing_ok=True)
    openbabel.convert(
        optimised,
        STEP2_STRUCTURE,
        cwd=ctx.workdir,
        builder=cfg.tools.builder,
        timeout=cfg.runtime.timeout_s,
    )
    if not is_nonempty_file(ctx.path(STEP2_STRUCTURE)):
        raise PipelineError(f"Could not regenerate {STEP2_STRUCTURE} from {optimised}")
    ctx.structure = STEP2_STRUCTURE

    second = generate_conformers(ctx, cfg)
    if second.outcome is GenerationOutcome.SUCCESS:
        return RescueResult(state=state, generation=second)

    logging.warning(
        f"[rescue] conformer search failed again; using {optimised} as the only conformer"
    )
    replace_file(ctx.path(optimised), ctx.conformers_path)
    return RescueResult(state=state, generation=second, fallback_used=True)
