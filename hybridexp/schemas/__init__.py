"""
hybridexp.schemas - Data structures shared by the experiment pipeline.

ExperimentSpec -> (HostConfig, ContainerConfig) -> ExecutionResult -> ExperimentOutcome

Lifecycle:
1. ExperimentSpec: caller-assembled description of one host/container pairing
2. HostConfig / ContainerConfig: per-run resolved configuration with derived names and paths
3. ExecutionResult: outcome of one external action (install, build, run)
4. ExperimentOutcome: durable pass/fail result, persisted and used for pruning
"""

from .experiment import (
    HYBRID_MODEL,
    AppInfo,
    BuildEnv,
    ContainerDescriptor,
    ExperimentSpec,
    ImplementationInfo,
)
from .resolved import (
    ContainerConfig,
    ContainerInfo,
    HostConfig,
)
from .results import (
    ExecutionResult,
    ExperimentOutcome,
)

__all__ = [
    # Experiment
    "HYBRID_MODEL",
    "AppInfo",
    "BuildEnv",
    "ContainerDescriptor",
    "ExperimentSpec",
    "ImplementationInfo",
    # Resolved
    "ContainerConfig",
    "ContainerInfo",
    "HostConfig",
    # Results
    "ExecutionResult",
    "ExperimentOutcome",
]
