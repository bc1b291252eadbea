"""CREST adapter: energy/RMSD screening of the final conformer set."""
from __future__ import annotations

from confrescue.cli.run_commands import run_command

__all__ = ["SCREENED_ENSEMBLE", "screen_command", "screen"]

SCREENED_ENSEMBLE = "crest_ensemble.xyz"


def screen_command(conformers: str, theory: str, tool: str = "crest") -> list[str]:
    # The theory flag is passed through untouched ("--gfnff", "--gfn2", ...).
    return [tool, "--screen", conformers, theory]


def screen(conformers: str, theory: str, cwd, tool: str = "crest", timeout: float | None = None) -> str:
    return run_command(screen_command(conformers, theory, tool), cwd=cwd, timeout=timeout)
