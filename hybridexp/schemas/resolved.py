"""
Resolved configuration schemas - per-run working state.

HostConfig and ContainerConfig are produced by the configuration deriver
from an ExperimentSpec. They live for the duration of one pipeline run and
are never persisted.
"""

from dataclasses import dataclass
from pathlib import Path

from .experiment import BuildEnv, HYBRID_MODEL, ImplementationInfo


@dataclass(frozen=True)
class ContainerInfo:
    """
    Fully qualified container image description.

    Attributes:
        name: Image file name (e.g. ubuntu-openmpi-4.0.0-init-test-hybrid.sif)
        path: Absolute image path (install_dir / name)
        url: Where a pre-built image is pulled from
        build_dir: Directory holding the definition file
        install_dir: Directory holding the image
        distro: Base distribution (docker reference, e.g. ubuntu:20.04)
        model: Packaging model
    """
    name: str
    path: Path
    url: str
    build_dir: Path
    install_dir: Path
    distro: str
    model: str = HYBRID_MODEL

    @property
    def definition_file(self) -> Path:
        """Path of the Singularity definition file for this image."""
        stem = self.name[:-len(".sif")] if self.name.endswith(".sif") else self.name
        return self.build_dir / f"{stem}.def"


@dataclass(frozen=True)
class HostConfig:
    """MPI to build and install on the host."""
    implementation: ImplementationInfo
    build_env: BuildEnv


@dataclass(frozen=True)
class ContainerConfig:
    """MPI to package in the container, plus the container it lands in."""
    implementation: ImplementationInfo
    build_env: BuildEnv
    container: ContainerInfo
