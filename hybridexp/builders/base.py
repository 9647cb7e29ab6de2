"""Base class for MPI builders."""

from abc import ABC, abstractmethod
from pathlib import Path

from hybridexp.config import SystemSettings
from hybridexp.schemas import AppInfo, BuildEnv, ContainerInfo, ExecutionResult, ImplementationInfo


class Builder(ABC):
    """
    Implementation-specific capability set.

    A builder knows how to install and remove an MPI implementation on the
    host and how to describe and create a container image embedding it.
    Definition file generation and image creation raise on failure; host
    install/uninstall report failures on the returned ExecutionResult so that
    the captured output is kept for diagnostics.
    """

    @abstractmethod
    def generate_definition_file(
        self,
        app: AppInfo,
        implementation: ImplementationInfo,
        env: BuildEnv,
        container: ContainerInfo,
        settings: SystemSettings,
    ) -> Path:
        """
        Write the container definition file.

        Returns:
            Path of the written definition file

        Raises:
            ValueError: If the definition cannot be rendered
            OSError: If the file cannot be written
        """
        pass

    @abstractmethod
    def create_image(self, container: ContainerInfo, settings: SystemSettings) -> None:
        """
        Create the container image from its definition file.

        Raises:
            RuntimeError: If image creation fails
        """
        pass

    @abstractmethod
    def install_on_host(self, implementation: ImplementationInfo, env: BuildEnv, settings: SystemSettings) -> ExecutionResult:
        """Build and install the implementation on the host."""
        pass

    @abstractmethod
    def uninstall_host(self, implementation: ImplementationInfo, env: BuildEnv, settings: SystemSettings) -> ExecutionResult:
        """Remove a host installation made by install_on_host."""
        pass
