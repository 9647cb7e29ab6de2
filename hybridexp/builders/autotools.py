"""Builders for MPI implementations using the configure/make/make install flow."""

import logging
import os
import shlex
import shutil
from pathlib import Path
from typing import List, Tuple

from hybridexp.builders.base import Builder
from hybridexp.builders.deffile import render_definition, source_dir_name, tarball_name
from hybridexp.config import SystemSettings
from hybridexp.schemas import AppInfo, BuildEnv, ContainerInfo, ExecutionResult, ImplementationInfo
from hybridexp.tools.runner import run_commands
from hybridexp.tools.singularity import SingularityAdapter

logger = logging.getLogger(__name__)


class AutotoolsBuilder(Builder):
    """
    Builder for autotools-based MPI implementations.

    Host installs fetch the release tarball into the build directory, unpack
    it, configure with the install directory as prefix and run make install.
    """

    # Extra configure flags, set by subclasses
    host_configure_flags: Tuple[str, ...] = ()
    container_configure_flags: Tuple[str, ...] = ()

    def __init__(self, make_jobs: int | None = None):
        self.make_jobs = make_jobs or os.cpu_count() or 1

    def container_prefix(self, implementation: ImplementationInfo) -> str:
        """MPI installation prefix inside the image."""
        return f"/opt/{implementation.id.lower()}"

    def host_commands(self, implementation: ImplementationInfo, env: BuildEnv) -> List[List[str]]:
        """
        Commands installing the implementation on the host.

        Paths are absolute so the commands do not depend on the working
        directory they are run from.
        """
        build_dir = Path(env.build_dir).resolve()
        install_dir = Path(env.install_dir).resolve()
        tarball = build_dir / tarball_name(implementation.url)
        source_dir = build_dir / source_dir_name(tarball.name)
        commands = []
        if not tarball.exists():
            commands.append(["curl", "-fsSL", "-o", str(tarball), implementation.url])
        commands.append(["tar", "-xf", str(tarball), "-C", str(build_dir)])
        configure = ["./configure", f"--prefix={install_dir}", *self.host_configure_flags]
        commands.append(
            ["sh", "-c", f"cd {shlex.quote(str(source_dir))} && " + " ".join(shlex.quote(a) for a in configure)]
        )
        commands.append(["make", "-C", str(source_dir), f"-j{self.make_jobs}"])
        commands.append(["make", "-C", str(source_dir), "install"])
        return commands

    def install_on_host(self, implementation: ImplementationInfo, env: BuildEnv, settings: SystemSettings) -> ExecutionResult:
        if not implementation.url:
            return ExecutionResult(error=ValueError(f"no source URL for {implementation}"))

        mpirun = Path(env.install_dir) / "bin" / "mpirun"
        if settings.is_persistent and mpirun.exists():
            logger.info(
                f"{implementation} already installed in {env.install_dir}, skipping",
                extra={"event": "host_install_skipped", "metadata": {"install_dir": str(env.install_dir)}},
            )
            return ExecutionResult(returncode=0)

        logger.info(
            f"Installing {implementation} in {env.install_dir}",
            extra={"event": "host_install_started", "metadata": {"build_dir": str(env.build_dir)}},
        )
        return run_commands(self.host_commands(implementation, env), cwd=Path(env.build_dir))

    def uninstall_host(self, implementation: ImplementationInfo, env: BuildEnv, settings: SystemSettings) -> ExecutionResult:
        install_dir = Path(env.install_dir)
        logger.info(
            f"Uninstalling {implementation} from {install_dir}",
            extra={"event": "host_uninstall", "metadata": {"install_dir": str(install_dir)}},
        )
        try:
            if install_dir.exists():
                shutil.rmtree(install_dir)
        except OSError as e:
            return ExecutionResult(error=e)
        return ExecutionResult(returncode=0)

    def generate_definition_file(
        self,
        app: AppInfo,
        implementation: ImplementationInfo,
        env: BuildEnv,
        container: ContainerInfo,
        settings: SystemSettings,
    ) -> Path:
        content = render_definition(
            container.distro,
            implementation,
            app,
            prefix=self.container_prefix(implementation),
            configure_flags=self.container_configure_flags,
        )
        path = container.definition_file
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        logger.info(
            f"Definition file written to {path}",
            extra={"event": "deffile_written", "metadata": {"path": str(path)}},
        )
        return path

    def create_image(self, container: ContainerInfo, settings: SystemSettings) -> None:
        Path(container.install_dir).mkdir(parents=True, exist_ok=True)
        result = SingularityAdapter(settings).build(container.path, container.definition_file)
        if result.failed:
            raise RuntimeError(str(result.error)) from result.error


class OpenMPIBuilder(AutotoolsBuilder):
    """Open MPI builder."""

    host_configure_flags = ("--enable-orterun-prefix-by-default",)
    container_configure_flags = ("--disable-mpi-fortran",)


class MPICHBuilder(AutotoolsBuilder):
    """MPICH builder."""

    host_configure_flags = ("--disable-fortran",)
    container_configure_flags = ("--disable-fortran",)

