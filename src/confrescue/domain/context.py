"""Named artifacts threaded between pipeline stages.

Every external tool runs with the working directory as cwd and exchanges
data through files there. :class:`PipelineContext` names those files in one
place and tracks which structure file is canonical at the current stage
boundary, so stages never pick up a stale copy by guessing a file name.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

INPUT_SMILES = "input.smi"
STEP1_STRUCTURE = "step1.mol"
STEP2_STRUCTURE = "step2.mol"
CHARGE_FILE = ".CHRG"
SPIN_FILE = ".UHF"
CONFORMER_SET = "confs.xyz"
RESCUE_DIR = "rescue"
RESCUE_XYZ = "rescue.xyz"
RESCUE_LOG = "xtb.log"
RUN_LOG = "confrescue.log"


@dataclass(slots=True)
class PipelineContext:
    workdir: Path
    input_file: str
    structure: str = STEP1_STRUCTURE
    conformers: str = CONFORMER_SET
    charge_file: str = CHARGE_FILE
    spin_file: str = SPIN_FILE
    rescue_dir: str = RESCUE_DIR

    def path(self, name: str) -> Path:
        return self.workdir / name

    @property
    def structure_path(self) -> Path:
        return self.path(self.structure)

    @property
    def conformers_path(self) -> Path:
        return self.path(self.conformers)

    @property
    def charge_path(self) -> Path:
        return self.path(self.charge_file)

    @property
    def spin_path(self) -> Path:
        return self.path(self.spin_file)

    @property
    def rescue_path(self) -> Path:
        return self.path(self.rescue_dir)


__all__ = [
    "INPUT_SMILES",
    "STEP1_STRUCTURE",
    "STEP2_STRUCTURE",
    "CHARGE_FILE",
    "SPIN_FILE",
    "CONFORMER_SET",
    "RESCUE_DIR",
    "RESCUE_XYZ",
    "RESCUE_LOG",
    "RUN_LOG",
    "PipelineContext",
]
