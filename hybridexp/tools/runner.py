"""Subprocess execution returning ExecutionResult values."""

import logging
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Sequence

from hybridexp.schemas import ExecutionResult

logger = logging.getLogger(__name__)

# Length of stderr kept in error messages
STDERR_EXCERPT = 500


class CommandError(RuntimeError):
    """A command exited with a non-zero status."""

    def __init__(self, cmd: Sequence[str], returncode: int, stderr: str = ""):
        self.cmd = list(cmd)
        self.returncode = returncode
        message = f"{cmd[0]} failed with exit code {returncode}"
        if stderr:
            message += f": {stderr[:STDERR_EXCERPT]}"
        super().__init__(message)


def run_command(
    cmd: Sequence[str],
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ExecutionResult:
    """
    Run a command and capture its output.

    A non-zero exit status or a failure to spawn the process is reported on
    the result's error; this function does not raise for either.

    Args:
        cmd: Command and arguments
        cwd: Working directory
        env: Full environment for the child (defaults to the current one)

    Returns:
        ExecutionResult with returncode, stdout and stderr
    """
    cmd = [str(c) for c in cmd]
    logger.debug(f"Executing: {' '.join(cmd)}", extra={"event": "command_started"})

    try:
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        return ExecutionResult(error=e)

    result = ExecutionResult(
        returncode=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )
    if proc.returncode != 0:
        result.error = CommandError(cmd, proc.returncode, result.stderr)
        logger.debug(
            f"Command failed: {result.error}",
            extra={"event": "command_failed", "metadata": {"returncode": proc.returncode}},
        )
    return result


def run_commands(
    commands: Sequence[Sequence[str]],
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ExecutionResult:
    """
    Run commands in order, stopping at the first failure.

    Output of all executed commands is accumulated on the returned result.
    """
    combined = ExecutionResult(returncode=0)
    for cmd in commands:
        result = run_command(cmd, cwd=cwd, env=env)
        combined.stdout += result.stdout
        combined.stderr += result.stderr
        combined.returncode = result.returncode
        if result.failed:
            combined.error = result.error
            break
    return combined
