"""confrescue: conformer generation pipeline with a geometry-rescue fallback."""

__version__ = "0.1.0"
