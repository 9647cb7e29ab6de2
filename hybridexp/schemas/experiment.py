"""
Experiment schemas - the unit of work handed to the pipeline.

An ExperimentSpec describes one host MPI / container MPI pairing, where
each side is built and how the workload is compiled and launched. Specs are
assembled by the caller (usually from an experiment matrix file) and are
consumed read-only by the pipeline.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

# Packaging model: MPI installed both on the host and in the container
HYBRID_MODEL = "hybrid"


@dataclass(frozen=True)
class ImplementationInfo:
    """
    Identity of an MPI implementation.

    Attributes:
        id: Implementation identifier (e.g. "openmpi", "OpenMPI", "mpich")
        version: Version string, compared verbatim when pruning
        url: Where the source tarball is fetched from
    """
    id: str
    version: str
    url: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        result = {"id": self.id, "version": self.version}
        if self.url:
            result["url"] = self.url
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ImplementationInfo":
        """Deserialize from dictionary."""
        return cls(
            id=data["id"],
            version=str(data["version"]),
            url=data.get("url", ""),
        )

    def __str__(self) -> str:
        return f"{self.id} {self.version}"


@dataclass(frozen=True)
class BuildEnv:
    """Directories used to build and install software for one side of an experiment."""
    build_dir: Path
    scratch_dir: Path
    install_dir: Path

    def to_dict(self) -> dict[str, Any]:
        return {
            "build_dir": str(self.build_dir),
            "scratch_dir": str(self.scratch_dir),
            "install_dir": str(self.install_dir),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BuildEnv":
        return cls(
            build_dir=Path(data["build_dir"]),
            scratch_dir=Path(data["scratch_dir"]),
            install_dir=Path(data["install_dir"]),
        )


@dataclass(frozen=True)
class ContainerDescriptor:
    """
    Container requested by the caller.

    Name and path are usually left empty; the configuration deriver computes
    them from the distro, the implementation and the application.
    """
    distro: str
    model: str = HYBRID_MODEL
    name: str = ""
    path: Optional[Path] = None


@dataclass(frozen=True)
class AppInfo:
    """
    Workload to compile inside the container and run.

    Attributes:
        name: Short application name, part of the image name
        bin_name: Name of the binary produced by install_cmd
        bin_path: Absolute path of the binary inside the container
        source: URL of the application source, fetched into the image
        install_cmd: Command compiling the application inside the container
        np: Number of MPI ranks to launch
    """
    name: str
    bin_name: str = ""
    bin_path: str = ""
    source: str = ""
    install_cmd: str = ""
    np: int = 2

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "bin_name": self.bin_name,
            "bin_path": self.bin_path,
            "source": self.source,
            "install_cmd": self.install_cmd,
            "np": self.np,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppInfo":
        return cls(
            name=data["name"],
            bin_name=data.get("bin_name", ""),
            bin_path=data.get("bin_path", ""),
            source=data.get("source", ""),
            install_cmd=data.get("install_cmd", ""),
            np=int(data.get("np", 2)),
        )


@dataclass(frozen=True)
class ExperimentSpec:
    """
    One host/container MPI pairing to run.

    Host and container implementations are specified independently but a
    batch is expected to use a single implementation family; see
    hybridexp.pruning.common_implementation.
    """
    host_mpi: ImplementationInfo
    container_mpi: ImplementationInfo
    container: ContainerDescriptor
    host_build_env: BuildEnv
    container_build_env: BuildEnv
    app: AppInfo
    result: Optional[Any] = field(default=None, compare=False)

    def label(self) -> str:
        """Human readable identifier used in logs."""
        return f"host {self.host_mpi} / container {self.container_mpi}"
