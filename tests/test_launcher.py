"""Tests for the workload launcher, job manager detection and error details."""

from unittest.mock import patch

import pytest

from hybridexp.configure import derive_configs
from hybridexp.jobmgr import NATIVE, SLURM, JobManager, detect_job_manager
from hybridexp.launcher import (
    error_details_path,
    launch,
    launch_command,
    save_error_details,
)
from hybridexp.schemas import AppInfo, ExecutionResult
from hybridexp.tools.runner import CommandError


@pytest.fixture
def configs(spec, settings):
    return derive_configs(spec, settings)


class TestJobManager:
    """Tests for job manager detection."""

    def test_native_by_default(self, monkeypatch):
        monkeypatch.delenv("SLURM_JOB_ID", raising=False)
        assert detect_job_manager().name == NATIVE

    def test_slurm_inside_allocation(self, monkeypatch):
        monkeypatch.setenv("SLURM_JOB_ID", "1234")
        with patch("hybridexp.jobmgr.shutil.which", return_value="/usr/bin/srun"):
            assert detect_job_manager().name == SLURM

    def test_native_prefix_uses_host_mpirun(self, configs):
        host_cfg, _ = configs
        prefix = JobManager(NATIVE).launch_prefix(host_cfg, 4)
        assert prefix == [str(host_cfg.build_env.install_dir / "bin" / "mpirun"), "-np", "4"]

    def test_slurm_prefix(self, configs):
        host_cfg, _ = configs
        assert JobManager(SLURM).launch_prefix(host_cfg, 2) == ["srun", "-n", "2"]


class TestLaunch:
    """Tests for launch."""

    def test_command(self, spec, configs, settings):
        host_cfg, container_cfg = configs
        cmd = launch_command(spec.app, host_cfg, container_cfg, JobManager(NATIVE), settings, ["--iterations", "3"])
        assert cmd[3:] == [
            "singularity", "exec", str(container_cfg.container.path), "/opt/app/init-test", "--iterations", "3",
        ]

    def test_command_without_binary(self, configs, settings):
        host_cfg, container_cfg = configs
        with pytest.raises(ValueError):
            launch_command(AppInfo(name="nothing"), host_cfg, container_cfg, JobManager(NATIVE), settings)

    def test_passed(self, spec, configs, settings):
        host_cfg, container_cfg = configs
        ok = ExecutionResult(returncode=0, stdout="hello\n")
        with patch("hybridexp.launcher.run_command", return_value=ok) as run:
            outcome, res = launch(spec.app, host_cfg, spec.host_build_env, container_cfg, JobManager(NATIVE), settings)

        assert outcome.passed is True
        assert outcome.host == spec.host_mpi
        assert outcome.container == spec.container_mpi
        assert res.stdout == "hello\n"
        assert run.call_args.kwargs["cwd"] == spec.host_build_env.scratch_dir
        env = run.call_args.kwargs["env"]
        assert env["PATH"].startswith(str(spec.host_build_env.install_dir / "bin"))

    def test_nonzero_exit_is_logical_failure(self, spec, configs, settings):
        """A failing workload is reported on the outcome without an error."""
        host_cfg, container_cfg = configs
        failed = ExecutionResult(error=CommandError(["mpirun"], 1), returncode=1)
        with patch("hybridexp.launcher.run_command", return_value=failed):
            outcome, res = launch(spec.app, host_cfg, spec.host_build_env, container_cfg, JobManager(NATIVE), settings)

        assert outcome.passed is False
        assert outcome.note == "init-test exited with status 1"
        assert res.error is None

    def test_spawn_failure_raises(self, spec, configs, settings):
        host_cfg, container_cfg = configs
        missing = ExecutionResult(error=FileNotFoundError("mpirun"))
        with patch("hybridexp.launcher.run_command", return_value=missing):
            with pytest.raises(RuntimeError, match="failed to spawn"):
                launch(spec.app, host_cfg, spec.host_build_env, container_cfg, JobManager(NATIVE), settings)


class TestErrorDetails:
    """Tests for error detail reports."""

    def test_path(self, spec, settings):
        path = error_details_path(spec.host_mpi, spec.container_mpi, settings)
        assert path == settings.results_dir / "errors" / "OpenMPI-4.0.0_OpenMPI-4.0.0.log"

    def test_save(self, spec, settings):
        res = ExecutionResult(error=RuntimeError("make failed"), returncode=2, stdout="out", stderr="err")
        path = save_error_details(spec.host_mpi, spec.container_mpi, settings, res)

        content = path.read_text()
        assert "error: make failed" in content
        assert "returncode: 2" in content
        assert "--- stderr ---\nerr" in content

    def test_save_failure_raises(self, tmp_path, spec, settings):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        settings = settings.with_overrides(results_dir=blocker)
        with pytest.raises(OSError):
            save_error_details(spec.host_mpi, spec.container_mpi, settings, ExecutionResult())
