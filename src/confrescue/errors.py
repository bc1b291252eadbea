"""Exception hierarchy for fatal pipeline conditions.

Everything derived from :class:`PipelineError` terminates the run; the CLI
catches it, logs the message and exits non-zero. Semantic tool failures that
the pipeline tolerates (zero generated conformers, no charge line found) are
*not* represented here; they are ordinary return values.
"""
from __future__ import annotations

import subprocess

__all__ = [
    "PipelineError",
    "InvalidInputError",
    "ToolLaunchError",
    "ToolExitError",
    "ToolTimeoutError",
    "RescueWorkspaceError",
    "RescueNotConvergedError",
]


class PipelineError(RuntimeError):
    """Base class for unrecoverable pipeline errors."""


class InvalidInputError(PipelineError):
    """The builder produced no (or an empty) structure for the given input."""


class ToolLaunchError(PipelineError):
    """An external executable could not be started."""

    def __init__(self, program: str, reason: str):
        self.program = program
        self.reason = reason
        super().__init__(f"Could not launch '{program}': {reason}")


class ToolExitError(PipelineError, subprocess.CalledProcessError):
    """An external tool terminated with a non-zero status or by a signal."""

    def __init__(self, returncode: int, cmd, output: str | None = None):
        subprocess.CalledProcessError.__init__(self, returncode, cmd, output)

    def __str__(self) -> str:
        return subprocess.CalledProcessError.__str__(self)


class ToolTimeoutError(PipelineError):
    """An external tool exceeded the configured timeout and was killed."""

    def __init__(self, cmd, timeout: float):
        self.cmd = cmd
        self.timeout = timeout
        super().__init__(f"Command '{cmd}' timed out after {timeout:g} s")


class RescueWorkspaceError(PipelineError):
    """The rescue workspace already exists or cannot be created."""


class RescueNotConvergedError(PipelineError):
    """The rescue geometry optimisation finished without a convergence marker."""
