from pathlib import Path
from unittest.mock import MagicMock

import pytest

from hybridexp.builders.base import Builder
from hybridexp.builders.registry import BuilderRegistry
from hybridexp.config import SystemSettings, ToolConfig
from hybridexp.jobmgr import NATIVE, JobManager
from hybridexp.pipeline import Collaborators
from hybridexp.schemas import (
    AppInfo,
    BuildEnv,
    ContainerDescriptor,
    ExecutionResult,
    ExperimentOutcome,
    ExperimentSpec,
    ImplementationInfo,
)

OPENMPI_URL = "https://download.open-mpi.org/release/open-mpi/v4.0/openmpi-4.0.0.tar.bz2"


@pytest.fixture(autouse=True)
def hybridexp_home(tmp_path, monkeypatch):
    # Never read the developer's real config
    home = tmp_path / "hybridexp_home"
    monkeypatch.setenv("HYBRIDEXP_HOME", str(home))
    return home


@pytest.fixture
def settings(tmp_path):
    return SystemSettings(results_dir=tmp_path / "results", console_log=False)


@pytest.fixture
def privileged_settings(settings):
    return settings.with_overrides(tool=ToolConfig(build_privilege=True))


def make_spec(
    root: Path,
    host_version: str = "4.0.0",
    container_version: str = "4.0.0",
    implementation_id: str = "OpenMPI",
    distro: str = "ubuntu",
) -> ExperimentSpec:
    def env(side, version):
        base = root / side / version
        return BuildEnv(base / "build", base / "scratch", base / "install")

    return ExperimentSpec(
        host_mpi=ImplementationInfo(implementation_id, host_version, OPENMPI_URL),
        container_mpi=ImplementationInfo(implementation_id, container_version, OPENMPI_URL),
        container=ContainerDescriptor(distro=distro),
        host_build_env=env("host", host_version),
        container_build_env=env("container", container_version),
        app=AppInfo(name="init-test", bin_name="init-test", bin_path="/opt/app/init-test"),
    )


@pytest.fixture
def spec(tmp_path):
    return make_spec(tmp_path / "work")


class FakeBuilder(Builder):
    """Builder recording calls; results and failures are configurable."""

    def __init__(self):
        self.install_result = ExecutionResult(returncode=0)
        self.uninstall_result = ExecutionResult(returncode=0)
        self.deffile_error = None
        self.image_error = None
        self.calls = []

    def generate_definition_file(self, app, implementation, env, container, settings):
        self.calls.append("generate_definition_file")
        if self.deffile_error:
            raise self.deffile_error
        return container.definition_file

    def create_image(self, container, settings):
        self.calls.append("create_image")
        if self.image_error:
            raise self.image_error

    def install_on_host(self, implementation, env, settings):
        self.calls.append("install_on_host")
        return self.install_result

    def uninstall_host(self, implementation, env, settings):
        self.calls.append("uninstall_host")
        return self.uninstall_result


@pytest.fixture
def fake_builder():
    return FakeBuilder()


@pytest.fixture
def registry(fake_builder):
    registry = BuilderRegistry()
    registry.register("openmpi", fake_builder)
    return registry


def passing_launcher(app, host_cfg, host_env, container_cfg, jobmgr, settings, extra=None):
    outcome = ExperimentOutcome(passed=True, host=host_cfg.implementation, container=container_cfg.implementation)
    return outcome, ExecutionResult(returncode=0, stdout="rank 0 ok\nrank 1 ok\n")


@pytest.fixture
def collaborators(registry):
    """Collaborators that never touch singularity, mpirun or the network."""
    return Collaborators(
        builders=registry,
        detect_job_manager=lambda: JobManager(NATIVE),
        launcher=MagicMock(side_effect=passing_launcher),
        puller=MagicMock(return_value=None),
        save_error_details=MagicMock(return_value=None),
        analyze_output=MagicMock(return_value=None),
    )
