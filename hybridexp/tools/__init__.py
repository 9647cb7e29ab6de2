"""Adapters for the external tools driven by hybridexp."""

from hybridexp.tools.runner import CommandError, run_command, run_commands
from hybridexp.tools.singularity import SingularityAdapter

__all__ = ["CommandError", "run_command", "run_commands", "SingularityAdapter"]
