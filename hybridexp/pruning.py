"""Result pruning: skip experiments that already have recorded results."""

import logging
from typing import Iterable, List, Sequence

from hybridexp.errors import ConfigurationError
from hybridexp.schemas import ExperimentOutcome, ExperimentSpec, ImplementationInfo

logger = logging.getLogger(__name__)


def prune(experiments: Sequence[ExperimentSpec], existing_results: Iterable[ExperimentOutcome]) -> List[ExperimentSpec]:
    """
    Remove the experiments for which results already exist.

    An experiment is covered when a result has exactly the same host and
    container versions. Input order is preserved.

    Args:
        experiments: Experiments to filter
        existing_results: Previously recorded outcomes

    Returns:
        Experiments without a matching result
    """
    results = list(existing_results)
    to_run = []
    for experiment in experiments:
        covered = any(
            experiment.host_mpi.version == result.host_version
            and experiment.container_mpi.version == result.container_version
            for result in results
        )
        if covered:
            logger.info(
                f"Results already exist for {experiment.host_mpi.version} on the host and "
                f"{experiment.container_mpi.version} in a container, skipping",
                extra={"event": "experiment_pruned"},
            )
            continue
        to_run.append(experiment)
    return to_run


def common_implementation(experiments: Sequence[ExperimentSpec]) -> ImplementationInfo:
    """
    Return the MPI implementation shared by a batch of experiments.

    Raises:
        ValueError: If the batch is empty
        ConfigurationError: If the batch mixes implementations
    """
    if not experiments:
        raise ValueError("no experiment")

    implementation = experiments[0].host_mpi
    expected = implementation.id.lower()
    for experiment in experiments:
        for side in (experiment.host_mpi, experiment.container_mpi):
            if side.id.lower() != expected:
                raise ConfigurationError(
                    f"experiments mix MPI implementations: {implementation.id} and {side.id}"
                )
    return implementation
