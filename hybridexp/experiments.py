"""
Experiment matrices and batch runs.

An experiment file lists the MPI versions to build on the host and in the
container; every host version is paired with every container version.

Experiment YAML schema:
    implementation: openmpi
    distro: ubuntu:20.04
    workdir: /scratch/hybridexp
    app:
      name: helloworld
      source: https://example.org/helloworld.c
      bin_name: helloworld
      bin_path: /opt/app/helloworld
      install_cmd: mpicc -o /opt/app/helloworld helloworld.c
      np: 2
    host:
      "4.0.0": https://download.open-mpi.org/release/open-mpi/v4.0/openmpi-4.0.0.tar.bz2
    container:
      "4.0.0": https://download.open-mpi.org/release/open-mpi/v4.0/openmpi-4.0.0.tar.bz2
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from hybridexp.config import SystemSettings
from hybridexp.errors import ConfigurationError
from hybridexp.pipeline import Collaborators, ExperimentPipeline, RunResult
from hybridexp.pruning import common_implementation, prune
from hybridexp.results import append_result, load_results, output_filename
from hybridexp.schemas import (
    AppInfo,
    BuildEnv,
    ContainerDescriptor,
    ExperimentSpec,
    ImplementationInfo,
)

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("implementation", "distro", "workdir", "app", "host", "container")


def build_env_for(workdir: Path, side: str, version: str) -> BuildEnv:
    """Directory layout of one side of an experiment under workdir."""
    base = workdir / side / version
    return BuildEnv(
        build_dir=base / "build",
        scratch_dir=base / "scratch",
        install_dir=base / "install",
    )


def _versions(data: Any, side: str) -> Dict[str, str]:
    if not isinstance(data, dict) or not data:
        raise ConfigurationError(f"'{side}' must map versions to source URLs")
    return {str(version): str(url or "") for version, url in data.items()}


def experiments_from_dict(data: Dict[str, Any]) -> List[ExperimentSpec]:
    """
    Expand an experiment matrix mapping into ExperimentSpecs.

    Raises:
        ConfigurationError: If required keys are missing or malformed
    """
    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise ConfigurationError(f"experiment file missing keys: {', '.join(missing)}")

    implementation_id = str(data["implementation"])
    workdir = Path(data["workdir"]).expanduser().resolve()
    try:
        app = AppInfo.from_dict(data["app"])
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"invalid app description: {e}") from e

    host_versions = _versions(data["host"], "host")
    container_versions = _versions(data["container"], "container")
    container = ContainerDescriptor(distro=str(data["distro"]))

    experiments = []
    for host_version, host_url in host_versions.items():
        for container_version, container_url in container_versions.items():
            experiments.append(
                ExperimentSpec(
                    host_mpi=ImplementationInfo(implementation_id, host_version, host_url),
                    container_mpi=ImplementationInfo(implementation_id, container_version, container_url),
                    container=container,
                    host_build_env=build_env_for(workdir, "host", host_version),
                    container_build_env=build_env_for(workdir, "container", container_version),
                    app=app,
                )
            )
    return experiments


def load_experiments(path: Path) -> List[ExperimentSpec]:
    """
    Load an experiment matrix from YAML.

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationError: If the file is invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"Experiment file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML syntax in {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")
    return experiments_from_dict(data)


def results_path_for(experiments: Sequence[ExperimentSpec], settings: SystemSettings) -> Path:
    """Results file of a batch, named after its MPI implementation."""
    implementation = common_implementation(experiments)
    return Path(settings.results_dir) / output_filename(implementation.id, settings)


@dataclass
class BatchSummary:
    """Result of running a batch of experiments."""

    results_path: Path
    total: int = 0
    skipped: int = 0
    passed: int = 0
    failed: int = 0
    runs: List[RunResult] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results_path": str(self.results_path),
            "total": self.total,
            "skipped": self.skipped,
            "passed": self.passed,
            "failed": self.failed,
            "duration_seconds": self.duration_seconds,
            "runs": [run.to_dict() for run in self.runs],
        }


def run_batch(
    experiments: Sequence[ExperimentSpec],
    settings: SystemSettings,
    collaborators: Optional[Collaborators] = None,
    results_path: Optional[Path] = None,
) -> BatchSummary:
    """
    Run the experiments of a batch that have no recorded result yet.

    Experiments run sequentially. Passed and logically failed outcomes are
    appended to the results file as soon as they are known.

    Args:
        experiments: Experiment matrix
        settings: System settings
        collaborators: Pipeline collaborators (defaults to the shipped ones)
        results_path: Results file (defaults to results_dir/output_filename)

    Returns:
        BatchSummary

    Raises:
        FatalError: Propagated from a pipeline run; the batch stops
    """
    start_time = time.time()
    if results_path is None:
        results_path = results_path_for(experiments, settings)
    else:
        common_implementation(experiments)

    to_run = prune(experiments, load_results(results_path))
    summary = BatchSummary(
        results_path=results_path,
        total=len(experiments),
        skipped=len(experiments) - len(to_run),
    )

    logger.info(
        f"Running {len(to_run)} of {len(experiments)} experiment(s)",
        extra={
            "event": "batch_started",
            "metadata": {"results_path": str(results_path), "skipped": summary.skipped},
        },
    )

    collaborators = collaborators or Collaborators.create_default()
    for spec in to_run:
        run = ExperimentPipeline(settings, collaborators).run(spec)
        summary.runs.append(run)
        # Tooling failures are not recorded so that the next batch retries them
        if run.exec_result.error is None:
            append_result(results_path, run.outcome)
        if run.outcome.passed:
            summary.passed += 1
        else:
            summary.failed += 1

    summary.duration_seconds = time.time() - start_time
    logger.info(
        f"Batch completed: {summary.passed} passed, {summary.failed} failed, {summary.skipped} skipped",
        extra={
            "event": "batch_completed",
            "metadata": {k: v for k, v in summary.to_dict().items() if k != "runs"},
        },
    )
    return summary
