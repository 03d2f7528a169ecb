"""Command line interface for PhaseFlow."""

from phaseflow.cli.main import cli

__all__ = ["cli"]
