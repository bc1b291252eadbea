"""Force-field conformer search stage.

The conformer search does not use its exit status to report that it found
nothing: it exits 0 and prints ``Initial conformer count: 0``. The outcome
is therefore read from the output text. Classification lives in pure
functions so it can be tested without running a process.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from confrescue.adapters.openbabel import ZERO_CONFORMERS_MARKER, conformer_search_command
from confrescue.cli.run_commands import stream_command
from confrescue.config.loader import Config
from confrescue.domain.context import PipelineContext
from confrescue.errors import ToolExitError
from confrescue.io.files import count_xyz_frames

__all__ = [
    "GenerationOutcome",
    "GenerationResult",
    "has_zero_conformer_marker",
    "classify_generation",
    "classify_generation_output",
    "generate_conformers",
]


class GenerationOutcome(str, Enum):
    SUCCESS = "success"
    ZERO_CONFORMERS = "zero_conformers"
    TOOL_ERROR = "tool_error"

    @property
    def failed(self) -> bool:
        return self is not GenerationOutcome.SUCCESS


@dataclass(slots=True)
class GenerationResult:
    outcome: GenerationOutcome
    structure: str
    conformer_count: int


def has_zero_conformer_marker(lines: Iterable[str]) -> bool:
    """True if any line contains the zero-conformer marker.

    Consumes the whole iterable even after a hit so a live process stream is
    echoed and drained to the end.
    """
    seen = False
    for line in lines:
        if not seen and ZERO_CONFORMERS_MARKER in line:
            seen = True
    return seen


def classify_generation(saw_zero_marker: bool, returncode: int | None = 0) -> GenerationOutcome:
    if returncode != 0:
        return GenerationOutcome.TOOL_ERROR
    if saw_zero_marker:
        return GenerationOutcome.ZERO_CONFORMERS
    return GenerationOutcome.SUCCESS


def classify_generation_output(lines: Iterable[str], returncode: int | None = 0) -> GenerationOutcome:
    return classify_generation(has_zero_conformer_marker(lines), returncode)


def _count_conformers(ctx: PipelineContext) -> int:
    try:
        return count_xyz_frames(ctx.conformers_path)
    except ValueError as e:
        logging.warning(f"[confsearch] could not count conformers: {e}")
        return 0


def generate_conformers(ctx: PipelineContext, cfg: Config) -> GenerationResult:
    """Run the conformer search on the current structure.

    Returns SUCCESS or ZERO_CONFORMERS. An abnormal exit of the tool is fatal
    and raised as ToolExitError.
    """
    command = conformer_search_command(
        ctx.structure,
        ctx.conformers,
        cfg.run.nconfs,
        cfg.run.forcefield,
        tool=cfg.tools.conformer_search,
    )
    with stream_command(
        command,
        cwd=ctx.workdir,
        timeout=cfg.runtime.timeout_s,
        echo=cfg.runtime.echo_output,
        check=False,
    ) as run:
        saw_zero = has_zero_conformer_marker(run)

    outcome = classify_generation(saw_zero, run.returncode)
    if outcome is GenerationOutcome.TOOL_ERROR:
        logging.error(f"[confsearch] conformer search terminated abnormally (exit {run.returncode})")
        raise ToolExitError(run.returncode, run.command)

    count = _count_conformers(ctx)
    if outcome is GenerationOutcome.ZERO_CONFORMERS:
        logging.warning(f"[confsearch] no conformers generated from {ctx.structure}")
    else:
        logging.info(f"[confsearch] {count} conformer(s) written to {ctx.conformers} from {ctx.structure}")
    return GenerationResult(outcome=outcome, structure=ctx.structure, conformer_count=count)
