"""Tests for hybridexp schema dataclasses."""

from pathlib import Path

import pytest

from hybridexp.schemas import (
    AppInfo,
    BuildEnv,
    ContainerInfo,
    ExecutionResult,
    ExperimentOutcome,
    ImplementationInfo,
)


class TestImplementationInfo:
    def test_str(self):
        assert str(ImplementationInfo("OpenMPI", "4.0.0")) == "OpenMPI 4.0.0"

    def test_url_omitted_when_empty(self):
        assert ImplementationInfo("mpich", "3.3").to_dict() == {"id": "mpich", "version": "3.3"}

    def test_version_read_as_string(self):
        assert ImplementationInfo.from_dict({"id": "mpich", "version": 3.3}).version == "3.3"

    def test_frozen(self):
        info = ImplementationInfo("mpich", "3.3")
        with pytest.raises(AttributeError):
            info.version = "3.4"


class TestBuildEnv:
    def test_from_dict(self):
        env = BuildEnv.from_dict({"build_dir": "/b", "scratch_dir": "/s", "install_dir": "/i"})
        assert env.install_dir == Path("/i")
        assert env.to_dict()["scratch_dir"] == "/s"


class TestAppInfo:
    def test_defaults(self):
        app = AppInfo.from_dict({"name": "netpipe"})
        assert app.np == 2
        assert app.bin_path == ""


class TestContainerInfo:
    def test_definition_file(self):
        info = ContainerInfo(
            name="ubuntu-mpich-3.3-netpipe-hybrid.sif",
            path=Path("/i/ubuntu-mpich-3.3-netpipe-hybrid.sif"),
            url="library://x/mpich:3.3",
            build_dir=Path("/b"),
            install_dir=Path("/i"),
            distro="ubuntu",
        )
        assert info.definition_file == Path("/b/ubuntu-mpich-3.3-netpipe-hybrid.def")


class TestExecutionResult:
    def test_failed(self):
        assert ExecutionResult().failed is False
        assert ExecutionResult(error=RuntimeError("x")).failed is True

    def test_to_dict(self):
        assert ExecutionResult(error=RuntimeError("boom"), returncode=1).to_dict()["error"] == "boom"


class TestExperimentOutcome:
    def test_versions(self):
        outcome = ExperimentOutcome(host=ImplementationInfo("OpenMPI", "4.0.0"))
        assert outcome.host_version == "4.0.0"
        assert outcome.container_version is None

    def test_metrics_only_when_present(self):
        assert "metrics" not in ExperimentOutcome().to_dict()
        data = ExperimentOutcome(metrics={"samples": 3}).to_dict()
        assert data["metrics"] == {"samples": 3}

    def test_from_dict(self):
        outcome = ExperimentOutcome.from_dict({
            "pass": True,
            "host": {"id": "OpenMPI", "version": "4.0.0"},
            "container": {"id": "OpenMPI", "version": "3.1.6"},
            "note": "ok",
        })
        assert outcome.passed is True
        assert outcome.container_version == "3.1.6"
        assert outcome.note == "ok"
