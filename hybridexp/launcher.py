"""
Workload launcher and error detail persistence.

The launcher spawns the application inside the container image with the
host MPI and reports whether the workload passed. A workload exiting with a
non-zero status is a logical failure (passed=False, no error); failing to
spawn it at all is a tooling failure and raises.
"""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence, Tuple

from hybridexp.config import SystemSettings
from hybridexp.jobmgr import JobManager
from hybridexp.schemas import (
    AppInfo,
    BuildEnv,
    ContainerConfig,
    ExecutionResult,
    ExperimentOutcome,
    HostConfig,
    ImplementationInfo,
)
from hybridexp.tools.runner import CommandError, run_command
from hybridexp.tools.singularity import SingularityAdapter

logger = logging.getLogger(__name__)

ERRORS_DIRNAME = "errors"


def host_environment(host_env: BuildEnv) -> dict[str, str]:
    """Current environment with the host MPI first on PATH and LD_LIBRARY_PATH."""
    env = dict(os.environ)
    install_dir = Path(host_env.install_dir)
    env["PATH"] = os.pathsep.join(filter(None, [str(install_dir / "bin"), env.get("PATH", "")]))
    env["LD_LIBRARY_PATH"] = os.pathsep.join(
        filter(None, [str(install_dir / "lib"), env.get("LD_LIBRARY_PATH", "")])
    )
    return env


def launch_command(
    app: AppInfo,
    host_cfg: HostConfig,
    container_cfg: ContainerConfig,
    jobmgr: JobManager,
    settings: SystemSettings,
    extra: Optional[Sequence[str]] = None,
) -> list[str]:
    """Full command line running the application in the container."""
    binary = app.bin_path or app.bin_name
    if not binary:
        raise ValueError(f"application {app.name} has no binary to run")
    args = [binary] + list(extra or [])
    return jobmgr.launch_prefix(host_cfg, app.np) + SingularityAdapter(settings).exec_command(
        container_cfg.container.path, args
    )


def launch(
    app: AppInfo,
    host_cfg: HostConfig,
    host_env: BuildEnv,
    container_cfg: ContainerConfig,
    jobmgr: JobManager,
    settings: SystemSettings,
    extra: Optional[Sequence[str]] = None,
) -> Tuple[ExperimentOutcome, ExecutionResult]:
    """
    Run the application and observe its outcome.

    Returns:
        (ExperimentOutcome, ExecutionResult); outcome.passed reflects the
        workload exit status

    Raises:
        RuntimeError: If the workload could not be spawned
    """
    cmd = launch_command(app, host_cfg, container_cfg, jobmgr, settings, extra)
    logger.info(
        f"Running {app.name}: {' '.join(cmd)}",
        extra={"stage": "running", "event": "launch", "metadata": {"jobmgr": jobmgr.name}},
    )

    result = run_command(cmd, cwd=Path(host_env.scratch_dir), env=host_environment(host_env))
    outcome = ExperimentOutcome(
        host=host_cfg.implementation,
        container=container_cfg.implementation,
    )

    if result.error is not None and not isinstance(result.error, CommandError):
        raise RuntimeError(f"failed to spawn {cmd[0]}: {result.error}") from result.error

    if isinstance(result.error, CommandError):
        outcome.passed = False
        outcome.note = f"{app.name} exited with status {result.returncode}"
        # The workload ran; a failing exit status is the experiment's answer
        result.error = None
        return outcome, result

    outcome.passed = True
    return outcome, result


def error_details_path(host: ImplementationInfo, container: ImplementationInfo, settings: SystemSettings) -> Path:
    """Where the error report of a host/container pairing is written."""
    filename = f"{host.id}-{host.version}_{container.id}-{container.version}.log"
    return Path(settings.results_dir) / ERRORS_DIRNAME / filename


def save_error_details(
    host: ImplementationInfo,
    container: ImplementationInfo,
    settings: SystemSettings,
    exec_result: ExecutionResult,
) -> Path:
    """
    Write a diagnostic report for a failed experiment.

    Returns:
        Path of the written report

    Raises:
        OSError: If the report cannot be written
    """
    path = error_details_path(host, container, settings)
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        f"date: {datetime.now(timezone.utc).isoformat()}",
        f"host MPI: {host}",
        f"container MPI: {container}",
        f"error: {exec_result.error}",
        f"returncode: {exec_result.returncode}",
        "",
        "--- stdout ---",
        exec_result.stdout,
        "--- stderr ---",
        exec_result.stderr,
    ]
    path.write_text("\n".join(lines) + "\n")

    logger.info(
        f"Error details saved to {path}",
        extra={"event": "error_details_saved", "metadata": {"path": str(path)}},
    )
    return path
