"""Singularity tool adapter for hybridexp."""

from pathlib import Path
from typing import List, Sequence

from hybridexp.config import SystemSettings
from hybridexp.schemas import ExecutionResult
from hybridexp.tools.runner import run_command


class SingularityAdapter:
    """
    Adapter for the singularity command line tool.

    Builds command lines for image creation, pulls and execution according to
    the privilege settings, and runs them through run_command.
    """

    def __init__(self, settings: SystemSettings):
        """
        Initialize SingularityAdapter.

        Args:
            settings: System settings (binary path, nopriv and sudo flags)
        """
        self.settings = settings
        self.binary = settings.singularity_bin

    def _prefix(self) -> List[str]:
        if self.settings.tool.sudo and not self.settings.nopriv:
            return ["sudo", self.binary]
        return [self.binary]

    def build_command(self, image: Path, definition_file: Path) -> List[str]:
        """Command building image from definition_file."""
        cmd = self._prefix() + ["build"]
        if self.settings.nopriv:
            cmd.append("--fakeroot")
        return cmd + [str(image), str(definition_file)]

    def pull_command(self, image: Path, url: str) -> List[str]:
        """Command pulling url into image."""
        return [self.binary, "pull", str(image), url]

    def exec_command(self, image: Path, args: Sequence[str]) -> List[str]:
        """Command running args inside image."""
        return [self.binary, "exec", str(image)] + list(args)

    def build(self, image: Path, definition_file: Path) -> ExecutionResult:
        """
        Execute singularity build.

        Returns:
            ExecutionResult (error set on failure)
        """
        return run_command(self.build_command(image, definition_file), cwd=definition_file.parent)

    def pull(self, image: Path, url: str) -> ExecutionResult:
        """
        Execute singularity pull.

        Returns:
            ExecutionResult (error set on failure)
        """
        return run_command(self.pull_command(image, url), cwd=image.parent)
