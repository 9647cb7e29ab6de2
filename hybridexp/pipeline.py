"""
Experiment pipeline: run one host/container MPI experiment end to end.

States, strictly forward:

    CONFIGURING -> INSTALLING_HOST -> PROVISIONING_CONTAINER -> RUNNING -> ANALYZING -> DONE

Any state may move to FAILED, which is terminal. Tooling failures (install,
image, run, analysis) trigger one attempt to save error details; a workload
reporting a failing outcome is a logical failure and is returned as is.

The host installation is a scoped acquisition: unless the settings are
persistent, its release (uninstall) runs on every exit path once the install
succeeded. A failing release raises UninstallError after the result was
produced; it is never folded into the returned RunResult.
"""

import logging
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, Optional, Sequence, Tuple

from hybridexp.analysis import analyze_output
from hybridexp.builders.base import Builder
from hybridexp.builders.registry import BuilderRegistry
from hybridexp.config import SystemSettings
from hybridexp.configure import derive_configs
from hybridexp.container import ImagePuller, provision_image, pull_image
from hybridexp.errors import ConfigurationError, ToolingError, UninstallError
from hybridexp.jobmgr import JobManager, detect_job_manager
from hybridexp.launcher import launch, save_error_details
from hybridexp.schemas import (
    AppInfo,
    BuildEnv,
    ContainerConfig,
    ExecutionResult,
    ExperimentOutcome,
    ExperimentSpec,
    HostConfig,
    ImplementationInfo,
)

logger = logging.getLogger(__name__)

Launcher = Callable[
    [AppInfo, HostConfig, BuildEnv, ContainerConfig, JobManager, SystemSettings, Optional[Sequence[str]]],
    Tuple[ExperimentOutcome, ExecutionResult],
]
ErrorDetailsSaver = Callable[[ImplementationInfo, ImplementationInfo, SystemSettings, ExecutionResult], Any]
OutputAnalyzer = Callable[[ExecutionResult, ExperimentOutcome, AppInfo, SystemSettings], None]


class PipelineState(str, Enum):
    """State of an experiment run."""
    CONFIGURING = "configuring"
    INSTALLING_HOST = "installing_host"
    PROVISIONING_CONTAINER = "provisioning_container"
    RUNNING = "running"
    ANALYZING = "analyzing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Collaborators:
    """
    External collaborators used by the pipeline.

    Every field can be replaced, which is how tests and alternative
    launchers plug in.
    """
    builders: BuilderRegistry
    detect_job_manager: Callable[[], JobManager] = detect_job_manager
    launcher: Launcher = launch
    puller: ImagePuller = pull_image
    save_error_details: ErrorDetailsSaver = save_error_details
    analyze_output: OutputAnalyzer = analyze_output

    @classmethod
    def create_default(cls) -> "Collaborators":
        """Collaborators backed by the shipped builders and the singularity CLI."""
        return cls(builders=BuilderRegistry.create_default())


@dataclass
class RunResult:
    """
    Result of one pipeline run.

    outcome.passed is the authoritative success signal; ok mirrors it.
    exec_result is the ExecutionResult of the last attempted stage and
    carries the (wrapped) error of a failed run.
    """
    ok: bool
    outcome: ExperimentOutcome
    exec_result: ExecutionResult
    state: PipelineState
    failed_stage: Optional[PipelineState] = None

    @property
    def logical_failure(self) -> bool:
        """The workload itself failed; no tooling error occurred."""
        return not self.outcome.passed and self.exec_result.error is None

    def __iter__(self) -> Iterator[Any]:
        return iter((self.ok, self.outcome, self.exec_result))

    def to_dict(self) -> dict[str, Any]:
        result = {
            "ok": self.ok,
            "state": self.state.value,
            "outcome": self.outcome.to_dict(),
            "error": str(self.exec_result.error) if self.exec_result.error else None,
        }
        if self.failed_stage is not None:
            result["failed_stage"] = self.failed_stage.value
        return result


@dataclass
class HostInstallation:
    """Release handle of a host MPI installation."""
    builder: Builder
    host_cfg: HostConfig
    settings: SystemSettings
    released: bool = field(default=False, init=False)

    def release(self) -> None:
        """
        Uninstall the host MPI.

        Raises:
            UninstallError: If the uninstall fails
        """
        if self.released:
            return
        self.released = True
        res = self.builder.uninstall_host(self.host_cfg.implementation, self.host_cfg.build_env, self.settings)
        if res.error is not None:
            raise UninstallError(f"failed to uninstall MPI: {res.error}") from res.error


def _describe(error: BaseException) -> str:
    if isinstance(error, ToolingError):
        return error.message
    return str(error)


def _tooling_error(stage: PipelineState, message: str, cause: Optional[BaseException]) -> ToolingError:
    error = ToolingError(stage.value, message)
    error.__cause__ = cause
    return error


class ExperimentPipeline:
    """
    Sequencer for a single experiment.

    Coordinates configuration, host install, image provisioning, the run
    and output analysis, with error classification and diagnostics.
    """

    def __init__(self, settings: SystemSettings, collaborators: Optional[Collaborators] = None):
        """
        Initialize pipeline.

        Args:
            settings: Immutable system settings
            collaborators: External collaborators (defaults to the shipped ones)
        """
        self.settings = settings
        self.collaborators = collaborators or Collaborators.create_default()
        self.state = PipelineState.CONFIGURING

    def _enter(self, state: PipelineState, spec: ExperimentSpec) -> None:
        self.state = state
        logger.info(
            f"[{spec.label()}] {state.value}",
            extra={"stage": state.value, "event": "state_entered"},
        )

    def _fail(self, outcome: ExperimentOutcome, exec_result: ExecutionResult) -> RunResult:
        failed_stage = self.state
        self.state = PipelineState.FAILED
        outcome.passed = False
        logger.error(
            f"Experiment failed at {failed_stage.value}: {exec_result.error or outcome.note}",
            extra={
                "stage": failed_stage.value,
                "event": "experiment_failed",
                "metadata": {"error": str(exec_result.error) if exec_result.error else None},
            },
        )
        return RunResult(
            ok=False,
            outcome=outcome,
            exec_result=exec_result,
            state=PipelineState.FAILED,
            failed_stage=failed_stage,
        )

    def _tooling_failure(
        self,
        spec: ExperimentSpec,
        outcome: ExperimentOutcome,
        exec_result: ExecutionResult,
    ) -> RunResult:
        """Save error details (once), then fail with the original cause."""
        try:
            self.collaborators.save_error_details(
                spec.host_mpi, spec.container_mpi, self.settings, exec_result
            )
        except Exception as e:
            original = exec_result.error
            exec_result.error = _tooling_error(
                self.state,
                f"{_describe(original)}; failed to save error details: {e}",
                original,
            )
        return self._fail(outcome, exec_result)

    def run(self, spec: ExperimentSpec) -> RunResult:
        """
        Configure, install and execute an experiment.

        Args:
            spec: Experiment to run

        Returns:
            RunResult; check outcome.passed

        Raises:
            UninstallError: If removing the host MPI after the run fails
        """
        outcome = ExperimentOutcome(host=spec.host_mpi, container=spec.container_mpi)
        exec_result = ExecutionResult()

        self._enter(PipelineState.CONFIGURING, spec)
        try:
            host_cfg, container_cfg = derive_configs(spec, self.settings)
        except ConfigurationError as e:
            exec_result.error = ConfigurationError(f"failed to set experiment's configuration: {e}")
            exec_result.error.__cause__ = e
            return self._fail(outcome, exec_result)

        self._enter(PipelineState.INSTALLING_HOST, spec)
        jobmgr = self.collaborators.detect_job_manager()
        try:
            builder = self.collaborators.builders.load(host_cfg.implementation)
        except ConfigurationError as e:
            exec_result.error = ConfigurationError(f"unable to load a builder: {e}")
            exec_result.error.__cause__ = e
            return self._fail(outcome, exec_result)

        exec_result = builder.install_on_host(host_cfg.implementation, host_cfg.build_env, self.settings)
        if exec_result.error is not None:
            exec_result.error = _tooling_error(
                self.state,
                f"failed to install MPI on host: {_describe(exec_result.error)}",
                exec_result.error,
            )
            return self._tooling_failure(spec, outcome, exec_result)

        with ExitStack() as stack:
            if not self.settings.is_persistent:
                stack.callback(HostInstallation(builder, host_cfg, self.settings).release)
            return self._run_installed(spec, host_cfg, container_cfg, jobmgr, outcome)

    def _run_installed(
        self,
        spec: ExperimentSpec,
        host_cfg: HostConfig,
        container_cfg: ContainerConfig,
        jobmgr: JobManager,
        outcome: ExperimentOutcome,
    ) -> RunResult:
        c = self.collaborators

        self._enter(PipelineState.PROVISIONING_CONTAINER, spec)
        exec_result = provision_image(spec.app, container_cfg, self.settings, c.builders, c.puller)
        if exec_result.error is not None:
            exec_result.error = _tooling_error(
                self.state,
                f"failed to prepare container: {_describe(exec_result.error)}",
                exec_result.error,
            )
            return self._tooling_failure(spec, outcome, exec_result)

        self._enter(PipelineState.RUNNING, spec)
        try:
            outcome, exec_result = c.launcher(
                spec.app, host_cfg, host_cfg.build_env, container_cfg, jobmgr, self.settings, None
            )
        except Exception as e:
            exec_result = ExecutionResult(error=_tooling_error(self.state, f"failed to run experiment: {e}", e))
            return self._tooling_failure(spec, outcome, exec_result)

        if outcome.host is None:
            outcome.host = spec.host_mpi
        if outcome.container is None:
            outcome.container = spec.container_mpi

        if not outcome.passed:
            return self._fail(outcome, exec_result)

        if exec_result.error is not None:
            exec_result.error = _tooling_error(
                self.state,
                f"failed to run experiment: {_describe(exec_result.error)}",
                exec_result.error,
            )
            return self._tooling_failure(spec, outcome, exec_result)

        self._enter(PipelineState.ANALYZING, spec)
        try:
            c.analyze_output(exec_result, outcome, spec.app, self.settings)
        except Exception as e:
            exec_result.error = _tooling_error(self.state, f"failed to process output: {_describe(e)}", e)
            return self._tooling_failure(spec, outcome, exec_result)

        self._enter(PipelineState.DONE, spec)
        outcome.passed = True
        if not outcome.note:
            outcome.note = "Experiment successfully executed"
        logger.info(
            f"Experiment successfully executed: {outcome.note}",
            extra={"stage": self.state.value, "event": "experiment_completed", "metadata": outcome.metrics},
        )
        return RunResult(ok=outcome.passed, outcome=outcome, exec_result=exec_result, state=PipelineState.DONE)


def run_experiment(
    spec: ExperimentSpec,
    settings: SystemSettings,
    collaborators: Optional[Collaborators] = None,
) -> RunResult:
    """Run one experiment with a fresh pipeline."""
    return ExperimentPipeline(settings, collaborators).run(spec)
