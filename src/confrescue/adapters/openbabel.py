"""Open Babel adapter.

Builds the argument lists for every ``obabel`` invocation the pipeline makes
(3D build, format conversion, charge-format emission, conformer search) so
domain code never assembles command lines itself. Execution goes through
:mod:`confrescue.cli.run_commands`.
"""
from __future__ import annotations
import logging

from confrescue.cli.run_commands import run_command

__all__ = [
    "ZERO_CONFORMERS_MARKER",
    "gen3d_command",
    "convert_command",
    "charge_format_command",
    "conformer_search_command",
    "build_3d",
    "convert",
]

# Printed by the conformer search when it finds no starting conformer.
ZERO_CONFORMERS_MARKER = "Initial conformer count: 0"


def gen3d_command(input_file: str, output_file: str, forcefield: str, builder: str = "obabel") -> list[str]:
    return [builder, input_file, "-O", output_file, "--gen3d", "--minimize", "--ff", forcefield]


def convert_command(input_file: str, output_file: str, builder: str = "obabel") -> list[str]:
    # Formats are taken from the file extensions.
    return [builder, input_file, "-O", output_file]


def charge_format_command(structure: str, fmt: str = "gzmat", builder: str = "obabel") -> list[str]:
    # No -O: the converted text goes to stdout, where the charge line is scraped.
    return [builder, structure, f"-o{fmt}"]


def conformer_search_command(
    structure: str,
    output_file: str,
    nconfs: int,
    forcefield: str,
    tool: str = "obabel",
) -> list[str]:
    return [
        tool, structure, "-O", output_file,
        "--conformer", "--nconf", str(nconfs), "--ff", forcefield,
        "--writeconformers",
    ]


def build_3d(input_file: str, output_file: str, forcefield: str, cwd, builder: str = "obabel", timeout: float | None = None) -> None:
    """
    Generates and force-field-minimises a 3D structure.

    Parameters:
    - input_file (str): Structure or SMILES file, relative to cwd.
    - output_file (str): Destination structure file, relative to cwd.
    - forcefield (str): Force field identifier (e.g. 'uff', 'mmff94').
    - cwd (str | Path): Directory where the command is executed.
    """
    run_command(gen3d_command(input_file, output_file, forcefield, builder), cwd=cwd, timeout=timeout)
    logging.info(f"3D structure '{output_file}' generated from '{input_file}'.")


def convert(input_file: str, output_file: str, cwd, builder: str = "obabel", timeout: float | None = None) -> None:
    run_command(convert_command(input_file, output_file, builder), cwd=cwd, timeout=timeout)
    logging.info(f"Converted '{input_file}' -> '{output_file}'.")
