"""
Environment preparation: make build and scratch directories ready.

Directories are created with parents if absent; pre-existing directories
are logged and left untouched. Concurrent runs sharing the same directories
must be serialized by the caller.
"""

import logging
from pathlib import Path

from hybridexp.errors import ConfigurationError
from hybridexp.schemas import BuildEnv

logger = logging.getLogger(__name__)

DIRECTORY_MODE = 0o755


def ensure_directory(directory: Path, label: str = "directory") -> bool:
    """
    Create a directory (with parents) unless it already exists.

    Args:
        directory: Directory to create
        label: Description used in log messages

    Returns:
        True if the directory was created, False if it already existed

    Raises:
        ConfigurationError: If the path cannot be created
    """
    if directory.is_dir():
        logger.info(
            f"{label} already exists: {directory}",
            extra={"event": "directory_exists", "metadata": {"path": str(directory)}},
        )
        return False

    try:
        directory.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"failed to create {directory}: {e}") from e

    logger.debug(
        f"Created {label}: {directory}",
        extra={"event": "directory_created", "metadata": {"path": str(directory)}},
    )
    return True


def prepare_build_env(env: BuildEnv, side: str) -> None:
    """
    Ensure the build and scratch directories of a build environment exist.

    The install directory is left to the builder.

    Args:
        env: Build environment to prepare
        side: "host" or "container", used in log messages

    Raises:
        ConfigurationError: If a directory cannot be created
    """
    ensure_directory(Path(env.build_dir), f"Build directory on {side}")
    ensure_directory(Path(env.scratch_dir), f"Scratch directory on {side}")
