"""Tests for the results store and result pruning."""

import json

import pytest

from conftest import make_spec
from hybridexp.errors import ConfigurationError
from hybridexp.pruning import common_implementation, prune
from hybridexp.results import append_result, load_results, output_filename
from hybridexp.schemas import ExperimentOutcome, ImplementationInfo


def outcome(host_version, container_version, passed=True):
    return ExperimentOutcome(
        passed=passed,
        host=ImplementationInfo("OpenMPI", host_version),
        container=ImplementationInfo("OpenMPI", container_version),
    )


class TestOutputFilename:
    """Tests for output_filename."""

    def test_init(self, settings):
        assert output_filename("OpenMPI", settings) == "OpenMPI-init-results.txt"

    def test_netpipe(self, settings):
        assert output_filename("OpenMPI", settings.with_overrides(netpipe=True)) == "OpenMPI-netpipe-results.txt"

    def test_imb(self, settings):
        assert output_filename("mpich", settings.with_overrides(imb=True)) == "mpich-imb-results.txt"

    def test_imb_precedence(self, settings):
        """IMB wins when both workload flags are set."""
        settings = settings.with_overrides(netpipe=True, imb=True)
        assert output_filename("OpenMPI", settings) == "OpenMPI-imb-results.txt"


class TestResultsFile:
    """Tests for load_results and append_result."""

    def test_missing_file(self, tmp_path):
        assert load_results(tmp_path / "none.txt") == []

    def test_append_then_load(self, tmp_path):
        path = tmp_path / "results" / "OpenMPI-init-results.txt"
        append_result(path, outcome("4.0.0", "4.0.0"))
        append_result(path, outcome("4.0.0", "3.1.6", passed=False))

        loaded = load_results(path)
        assert [(o.host_version, o.container_version, o.passed) for o in loaded] == [
            ("4.0.0", "4.0.0", True),
            ("4.0.0", "3.1.6", False),
        ]

    def test_record_format(self, tmp_path):
        path = tmp_path / "results.txt"
        append_result(path, outcome("4.0.0", "4.0.0"))
        record = json.loads(path.read_text().splitlines()[0])
        assert record["pass"] is True
        assert record["host"] == {"id": "OpenMPI", "version": "4.0.0"}

    def test_blank_lines_skipped(self, tmp_path):
        path = tmp_path / "results.txt"
        path.write_text('\n{"pass": true, "host": {"id": "OpenMPI", "version": "1"}}\n\n')
        assert len(load_results(path)) == 1

    def test_invalid_line(self, tmp_path):
        path = tmp_path / "results.txt"
        path.write_text("not json\n")
        with pytest.raises(ConfigurationError, match="results.txt:1"):
            load_results(path)


class TestPrune:
    """Tests for prune."""

    def test_no_results(self, tmp_path):
        experiments = [make_spec(tmp_path, "4.0.0", "4.0.0")]
        assert prune(experiments, []) == experiments

    def test_pruned_by_exact_pair(self, tmp_path):
        experiments = [
            make_spec(tmp_path, "4.0.0", "4.0.0"),
            make_spec(tmp_path, "4.0.0", "3.1.6"),
            make_spec(tmp_path, "3.1.6", "4.0.0"),
        ]
        remaining = prune(experiments, [outcome("4.0.0", "4.0.0")])
        assert remaining == experiments[1:]

    def test_versions_matched_jointly(self, tmp_path):
        """Matching host and container versions in different results do not prune."""
        experiments = [make_spec(tmp_path, "4.0.0", "3.1.6")]
        results = [outcome("4.0.0", "4.0.0"), outcome("3.1.6", "3.1.6")]
        assert prune(experiments, results) == experiments

    def test_failed_results_also_prune(self, tmp_path):
        experiments = [make_spec(tmp_path, "4.0.0", "4.0.0")]
        assert prune(experiments, [outcome("4.0.0", "4.0.0", passed=False)]) == []

    def test_versions_compared_verbatim(self, tmp_path):
        experiments = [make_spec(tmp_path, "4.0", "4.0")]
        assert prune(experiments, [outcome("4.0.0", "4.0.0")]) == experiments

    def test_order_preserved(self, tmp_path):
        experiments = [make_spec(tmp_path, v, v) for v in ("1", "2", "3", "4")]
        remaining = prune(experiments, [outcome("2", "2")])
        assert [e.host_mpi.version for e in remaining] == ["1", "3", "4"]
    def test_idempotent(self, tmp_path):
        """Pruning an already pruned batch removes nothing more."""
        experiments = [
            make_spec(tmp_path, "4.0.0", "4.0.0"),
            make_spec(tmp_path, "4.0.0", "3.1.6"),
            make_spec(tmp_path, "3.1.6", "4.0.0"),
            make_spec(tmp_path, "3.1.6", "3.1.6"),
        ]
        results = [outcome("4.0.0", "4.0.0"), outcome("3.1.6", "3.1.6", passed=False), outcome("2.1.0", "2.1.0")]

        once = prune(experiments, results)
        assert once == [experiments[1], experiments[2]]
        assert prune(once, results) == once



class TestCommonImplementation:
    """Tests for common_implementation."""

    def test_empty(self):
        with pytest.raises(ValueError):
            common_implementation([])

    def test_single_implementation(self, tmp_path):
        experiments = [make_spec(tmp_path, "4.0.0", "3.1.6")]
        assert common_implementation(experiments).id == "OpenMPI"

    def test_mixed(self, tmp_path):
        experiments = [make_spec(tmp_path), make_spec(tmp_path, implementation_id="mpich")]
        with pytest.raises(ConfigurationError, match="mix"):
            common_implementation(experiments)
