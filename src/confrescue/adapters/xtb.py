"""xtb adapter: geometry optimisation used by the rescue stage."""
from __future__ import annotations
import logging

from confrescue.cli.run_commands import run_command

__all__ = ["CONVERGENCE_MARKER", "OPTIMIZED_XYZ", "optimize_command", "optimize"]

# Written by xtb into its working directory when --opt converged.
CONVERGENCE_MARKER = ".xtboptok"
OPTIMIZED_XYZ = "xtbopt.xyz"


def optimize_command(xyz_file: str, optimizer: str = "xtb") -> list[str]:
    return [optimizer, xyz_file, "--opt"]


def optimize(xyz_file: str, cwd, log_file, optimizer: str = "xtb", timeout: float | None = None) -> None:
    """
    Runs an xtb geometry optimisation in ``cwd``.

    xtb reads ``.CHRG``/``.UHF`` from ``cwd`` on its own. Output goes to
    ``log_file`` only; convergence is judged by the caller from the marker
    file, not from this call.

    Parameters:
    - xyz_file (str): Coordinates file name inside cwd.
    - cwd (str | Path): Directory where xtb runs and writes its outputs.
    - log_file (str | Path): Destination for stdout and stderr.
    """
    run_command(optimize_command(xyz_file, optimizer), cwd=cwd, timeout=timeout, log_file=log_file)
    logging.info(f"xtb optimisation of '{xyz_file}' finished (log: {log_file}).")
