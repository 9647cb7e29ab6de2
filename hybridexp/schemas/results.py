"""
Result schemas - what external actions and whole experiments produce.

ExecutionResult is the ephemeral outcome of one low-level action (install,
build, run). ExperimentOutcome is the durable result of a whole experiment,
persisted one JSON object per line and read back by the pruner.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .experiment import ImplementationInfo


@dataclass
class ExecutionResult:
    """
    Outcome of a low-level external action.

    Attributes:
        error: Exception describing the failure, None on success
        returncode: Exit status of the process (None if it never ran)
        stdout: Captured standard output
        stderr: Captured standard error
    """
    error: Optional[BaseException] = None
    returncode: Optional[int] = None
    stdout: str = ""
    stderr: str = ""

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": str(self.error) if self.error is not None else None,
            "returncode": self.returncode,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }


@dataclass
class ExperimentOutcome:
    """
    Durable result of one experiment.

    passed is True only once every pipeline stage completed and the output
    was analyzed. host/container identify the pairing so that later batches
    can skip it.
    """
    passed: bool = False
    host: Optional[ImplementationInfo] = None
    container: Optional[ImplementationInfo] = None
    note: str = ""
    metrics: dict[str, Any] = field(default_factory=dict)

    @property
    def host_version(self) -> Optional[str]:
        return self.host.version if self.host else None

    @property
    def container_version(self) -> Optional[str]:
        return self.container.version if self.container else None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSONL output."""
        result: dict[str, Any] = {
            "pass": self.passed,
            "host": self.host.to_dict() if self.host else None,
            "container": self.container.to_dict() if self.container else None,
            "note": self.note,
        }
        if self.metrics:
            result["metrics"] = self.metrics
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExperimentOutcome":
        """Deserialize from dictionary."""
        host = data.get("host")
        container = data.get("container")
        return cls(
            passed=bool(data.get("pass", False)),
            host=ImplementationInfo.from_dict(host) if host else None,
            container=ImplementationInfo.from_dict(container) if container else None,
            note=data.get("note", ""),
            metrics=data.get("metrics", {}),
        )
