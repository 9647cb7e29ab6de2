"""
Error classes for hybridexp experiment runs.

These error types let callers tell pipeline stages apart without inspecting
internal state:
- ConfigurationError: configuration derivation or directory creation failed
- ToolingError: an install, build, pull, run or analysis step failed
- FatalError: something failed after the experiment result was produced

Logical failures (the workload itself reporting a failing outcome) are not
exceptions; they are returned as an ExperimentOutcome with passed=False.

Error handling contract:
- Non-fatal errors are returned on RunResult.exec_result.error
- The original cause is always chained via __cause__
- FatalError is raised, never returned
"""


class HybridExpError(Exception):
    """Base exception for hybridexp."""
    pass


class ConfigurationError(HybridExpError):
    """
    Configuration error - aborts before any install or build work.

    Examples:
    - Build or scratch directory cannot be created
    - Invalid or incomplete config.yaml
    - Experiment batch mixing MPI implementations
    """
    pass


class UnregisteredImplementationError(ConfigurationError):
    """Raised when no builder is registered for an implementation id."""

    def __init__(self, implementation_id: str, registered: list[str] | None = None):
        self.implementation_id = implementation_id
        self.registered = registered or []
        message = f"no builder registered for implementation: {implementation_id}"
        if self.registered:
            message += f" (registered: {', '.join(self.registered)})"
        super().__init__(message)


class ToolingError(HybridExpError):
    """
    Tooling failure - an external step reported an error.

    Carries the pipeline stage it happened in so that callers can report
    "<stage>: <message>" without knowing the pipeline internals.
    """

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}")


class BuildError(ToolingError):
    """Container definition file generation or image creation failed."""
    pass


class PullError(ToolingError):
    """Pulling a pre-built container image failed."""
    pass


class AnalysisError(ToolingError):
    """The workload output could not be analyzed."""

    def __init__(self, message: str):
        super().__init__("analyzing", message)


class FatalError(HybridExpError):
    """
    Fatal condition - cannot be represented as a returned result.

    Raised after the pipeline already produced its outcome. The caller
    decides whether to terminate the process.
    """
    pass


class UninstallError(FatalError):
    """Removing the host MPI installation after a run failed."""
    pass
