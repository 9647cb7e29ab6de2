"""
Output analysis: turn a successful run's output into the outcome note.

Which parser applies is selected by the workload flags of the settings.
IMB is checked before NetPIPE, matching the result file naming.
"""

import re
from typing import Any, Dict, List

from hybridexp.config import SystemSettings
from hybridexp.errors import AnalysisError
from hybridexp.schemas import AppInfo, ExecutionResult, ExperimentOutcome

NETPIPE_LINE = re.compile(
    r"^\s*\d+:\s+(?P<bytes>\d+) bytes\s+(?P<times>\d+) times -->\s+"
    r"(?P<mbps>[\d.]+) Mbps in\s+(?P<usec>[\d.]+) usec"
)
IMB_BENCHMARK = re.compile(r"^#\s*Benchmarking\s+(?P<name>\S+)")


def parse_netpipe(output: str) -> Dict[str, Any]:
    """
    Extract peak bandwidth and minimum latency from NetPIPE output.

    Raises:
        AnalysisError: If the output holds no NetPIPE measurement
    """
    bandwidths: List[float] = []
    latencies: List[float] = []
    for line in output.splitlines():
        match = NETPIPE_LINE.match(line)
        if match:
            bandwidths.append(float(match.group("mbps")))
            latencies.append(float(match.group("usec")))

    if not bandwidths:
        raise AnalysisError("no NetPIPE data in output")

    return {
        "max_bandwidth_mbps": max(bandwidths),
        "min_latency_usec": min(latencies),
        "samples": len(bandwidths),
    }


def _numeric_row(line: str) -> List[float] | None:
    fields = line.split()
    if len(fields) < 2:
        return None
    try:
        return [float(f) for f in fields]
    except ValueError:
        return None


def parse_imb(output: str) -> Dict[str, Any]:
    """
    Extract the last benchmark table row from Intel MPI Benchmarks output.

    Raises:
        AnalysisError: If the output holds no IMB table
    """
    benchmark = None
    columns: List[str] = []
    last_row: List[float] | None = None

    for line in output.splitlines():
        stripped = line.strip()
        match = IMB_BENCHMARK.match(stripped)
        if match:
            benchmark = match.group("name")
            columns = []
            continue
        if stripped.startswith("#bytes") or stripped.startswith("#repetitions"):
            columns = [c.lstrip("#") for c in stripped.split()]
            continue
        if benchmark and columns:
            row = _numeric_row(stripped)
            if row is not None and len(row) == len(columns):
                last_row = row

    if benchmark is None or last_row is None:
        raise AnalysisError("no IMB data in output")

    return {"benchmark": benchmark, **dict(zip(columns, last_row))}


def analyze_output(
    exec_result: ExecutionResult,
    outcome: ExperimentOutcome,
    app: AppInfo,
    settings: SystemSettings,
) -> None:
    """
    Populate the outcome note and metrics from the run output.

    Raises:
        AnalysisError: If the selected parser finds no data
    """
    output = exec_result.stdout

    if settings.imb:
        metrics = parse_imb(output)
        outcome.metrics.update(metrics)
        outcome.note = f"IMB {metrics['benchmark']} completed"
        return

    if settings.netpipe:
        metrics = parse_netpipe(output)
        outcome.metrics.update(metrics)
        outcome.note = (
            f"NetPIPE max bandwidth {metrics['max_bandwidth_mbps']:.2f} Mbps, "
            f"min latency {metrics['min_latency_usec']:.2f} usec"
        )
        return

    lines = [line for line in output.splitlines() if line.strip()]
    outcome.note = f"{app.name}: {len(lines)} line(s) of output"
