"""
Results store: one ExperimentOutcome per line, JSON encoded.

The results file of a batch is named after the MPI implementation and the
workload, see output_filename.
"""

import json
import logging
from pathlib import Path
from typing import List

from hybridexp.config import SystemSettings
from hybridexp.errors import ConfigurationError
from hybridexp.schemas import ExperimentOutcome

logger = logging.getLogger(__name__)


def output_filename(implementation_id: str, settings: SystemSettings) -> str:
    """
    Name of the results file for an implementation.

    IMB takes precedence over NetPIPE when both flags are set.
    """
    if settings.imb:
        return f"{implementation_id}-imb-results.txt"
    if settings.netpipe:
        return f"{implementation_id}-netpipe-results.txt"
    return f"{implementation_id}-init-results.txt"


def load_results(path: Path) -> List[ExperimentOutcome]:
    """
    Load recorded outcomes.

    Args:
        path: Results file

    Returns:
        Outcomes in file order (empty if the file does not exist)

    Raises:
        ConfigurationError: If a line is not a valid outcome record
    """
    if not path.exists():
        return []

    outcomes = []
    with open(path, "r") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:  # Skip empty lines
                continue
            try:
                outcomes.append(ExperimentOutcome.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError) as e:
                raise ConfigurationError(f"{path}:{lineno}: invalid result record: {e}") from e

    logger.debug(
        f"Loaded {len(outcomes)} result(s) from {path}",
        extra={"event": "results_loaded", "metadata": {"file": str(path)}},
    )
    return outcomes


def append_result(path: Path, outcome: ExperimentOutcome) -> None:
    """Append one outcome to the results file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a") as f:
        f.write(json.dumps(outcome.to_dict(), sort_keys=True) + "\n")
