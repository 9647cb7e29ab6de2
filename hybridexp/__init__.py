"""
hybridexp - Host vs. container MPI experiment runner

Builds an MPI implementation on the host and inside a Singularity image,
runs a workload across both and records pass/fail results.
"""

__version__ = "0.1.0"


__all__ = ["SystemSettings", "ToolConfig", "load_config", "get_hybridexp_home"]

from .config import SystemSettings, ToolConfig, load_config, get_hybridexp_home
