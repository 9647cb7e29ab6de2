"""
Job manager detection.

The job manager decides how MPI ranks are spawned: directly through the
host mpirun, or through Slurm's srun when running inside an allocation.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List

from hybridexp.schemas import HostConfig

logger = logging.getLogger(__name__)

NATIVE = "native"
SLURM = "slurm"


@dataclass(frozen=True)
class JobManager:
    """Opaque handle passed through to the launcher."""
    name: str

    def launch_prefix(self, host_cfg: HostConfig, np: int) -> List[str]:
        """Command prefix spawning np ranks with the host MPI."""
        if self.name == SLURM:
            return ["srun", "-n", str(np)]
        mpirun = Path(host_cfg.build_env.install_dir) / "bin" / "mpirun"
        return [str(mpirun), "-np", str(np)]


def detect_job_manager() -> JobManager:
    """
    Detect the job manager to use.

    Slurm is selected when srun is available and the process runs inside a
    Slurm allocation; otherwise ranks are spawned with the host mpirun.
    """
    if shutil.which("srun") and os.environ.get("SLURM_JOB_ID"):
        jobmgr = JobManager(SLURM)
    else:
        jobmgr = JobManager(NATIVE)
    logger.debug(f"Using job manager: {jobmgr.name}", extra={"event": "jobmgr_detected"})
    return jobmgr
