"""Input resolution and initial 3D structure build.

The positional argument is either a path to an existing structure file or a
literal chemical identifier (SMILES). A literal is persisted to
``input.smi`` so the builder reads it like any other file.
"""
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from confrescue.adapters import openbabel
from confrescue.adapters.crest import SCREENED_ENSEMBLE
from confrescue.config.loader import Config
from confrescue.domain.context import (
    CONFORMER_SET,
    INPUT_SMILES,
    STEP1_STRUCTURE,
    STEP2_STRUCTURE,
    PipelineContext,
)
from confrescue.errors import InvalidInputError
from confrescue.io.files import is_nonempty_file

# Files the pipeline writes in the working directory.
OWNED_NAMES = frozenset({STEP1_STRUCTURE, STEP2_STRUCTURE, CONFORMER_SET, SCREENED_ENSEMBLE})
STAGED_PREFIX = "input_"


def resolve_input(source: str, workdir: Path, cwd: Path | None = None) -> str:
    """Return the builder input file for ``source``.

    An existing file is used as is: by bare name when it already lives in
    ``workdir``, by absolute path otherwise. A file in ``workdir`` whose name
    the pipeline writes to (``step1.mol`` ...) is first copied to
    ``input_<name>`` and that copy is used, so the run cannot clobber it.
    Anything else is written verbatim (plus a newline) to
    ``<workdir>/input.smi``.
    """
    workdir = Path(workdir).resolve()
    candidate = Path(source)
    if not candidate.is_absolute():
        candidate = Path(cwd or os.getcwd()) / candidate
    if source and candidate.is_file():
        candidate = candidate.resolve()
        logging.info(f"[input] using structure file {candidate}")
        if candidate.parent != workdir:
            return str(candidate)
        if candidate.name in OWNED_NAMES:
            staged = workdir / f"{STAGED_PREFIX}{candidate.name}"
            shutil.copy2(candidate, staged)
            logging.warning(
                f"[input] {candidate.name} is overwritten by the pipeline; using a copy, {staged.name}"
            )
            return staged.name
        return candidate.name
    smi = workdir / INPUT_SMILES
    smi.write_text(f"{source}\n")
    logging.info(f"[input] '{source}' is not a file; treating it as a chemical identifier ({INPUT_SMILES})")
    return INPUT_SMILES


def build_initial_structure(ctx: PipelineContext, cfg: Config) -> None:
    """Build ``step1.mol`` from the resolved input with the builder tool.

    Raises InvalidInputError when the builder leaves no or an empty file,
    which is how Open Babel reports an unparsable identifier.
    """
    target = ctx.path(STEP1_STRUCTURE)
    # A leftover from an earlier run would mask a failed build.
    target.unlink(missing_ok=True)
    openbabel.build_3d(
        ctx.input_file,
        STEP1_STRUCTURE,
        cfg.run.forcefield,
        cwd=ctx.workdir,
        builder=cfg.tools.builder,
        timeout=cfg.runtime.timeout_s,
    )
    if not is_nonempty_file(target):
        raise InvalidInputError(
            f"The builder produced no structure for input '{ctx.input_file}'. "
            "Check the file or chemical identifier."
        )
    ctx.structure = STEP1_STRUCTURE
