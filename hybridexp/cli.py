"""
CLI interface for hybridexp.

Provides commands to initialize the configuration, run experiment matrices,
preview pruning and inspect recorded results.
"""

import sys
from pathlib import Path

import click

from hybridexp import __version__


@click.group()
@click.version_option(version=__version__, prog_name="hybridexp")
@click.pass_context
def main(ctx):
    """
    hybridexp - Host vs. container MPI experiments.

    Build MPI on the host and in a Singularity image, run a workload across
    both and record the results.
    """
    from hybridexp.config import load_config

    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_config()
    except Exception as e:
        # init works without a config; other commands report the error
        ctx.obj["config_error"] = str(e)


def _require_config(ctx):
    if "config" not in ctx.obj:
        click.echo(f"✗ Config not loaded: {ctx.obj.get('config_error', 'Unknown error')}", err=True)
        click.echo("Run 'hybridexp init' to create a configuration file.", err=True)
        raise SystemExit(1)
    return ctx.obj["config"]


def _load_experiments_or_exit(experiments: str):
    from hybridexp.experiments import load_experiments

    try:
        return load_experiments(Path(experiments))
    except Exception as e:
        click.echo(f"✗ Cannot load experiments: {e}", err=True)
        raise SystemExit(1)


@main.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Initialize hybridexp configuration."""
    import yaml

    from hybridexp.config import SystemSettings, get_hybridexp_home

    home = get_hybridexp_home()
    if not home.exists():
        home.mkdir(parents=True)

    cfg_path = home / "config.yaml"
    if cfg_path.exists() and not force:
        click.echo(f"Config already exists at {cfg_path}. Use --force to overwrite.", err=True)
        raise SystemExit(1)

    default_cfg = SystemSettings(results_dir=home / "results").to_dict()
    default_cfg["env_file"] = str(home / ".env")
    cfg_path.write_text(yaml.safe_dump(default_cfg, sort_keys=False))

    env_path = home / ".env"
    if not env_path.exists():
        env_path.write_text("# SINGULARITY_CACHEDIR=...\n# SINGULARITY_TMPDIR=...\n")

    click.echo(f"Initialized hybridexp config at {cfg_path}")


@main.command("run")
@click.argument("experiments", type=click.Path(exists=True, dir_okay=False))
@click.option("--netpipe", is_flag=True, help="Run and analyze NetPIPE")
@click.option("--imb", is_flag=True, help="Run and analyze the Intel MPI Benchmarks (wins over --netpipe)")
@click.option("--nopriv", is_flag=True, help="Build images with --fakeroot")
@click.option("--persistent", type=click.Path(file_okay=False), help="Install host MPIs under this directory and keep them between runs")
@click.option("--results", "results_path", type=click.Path(dir_okay=False), help="Results file to use")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def run(ctx, experiments: str, netpipe: bool, imb: bool, nopriv: bool, persistent: str, results_path: str, verbose: bool):
    """
    Run the experiments of EXPERIMENTS that have no result yet.

    Examples:

        hybridexp run openmpi.yaml

        hybridexp run openmpi.yaml --netpipe --persistent ~/mpi
    """
    from hybridexp.errors import FatalError
    from hybridexp.experiments import run_batch
    from hybridexp.utils import (
        format_duration,
        print_banner,
        print_error,
        print_info,
        print_success,
        print_warning,
        setup_logging,
    )

    settings = _require_config(ctx)
    overrides = {}
    if netpipe:
        overrides["netpipe"] = True
    if imb:
        overrides["imb"] = True
    if nopriv:
        overrides["nopriv"] = True
    if persistent:
        overrides["persistent_dir"] = Path(persistent).expanduser()
    if verbose:
        overrides["log_level"] = "DEBUG"
    settings = settings.with_overrides(**overrides)

    setup_logging(
        settings.get_log_file_path(),
        settings.log_level,
        settings.log_format,
        settings.console_log,
    )

    specs = _load_experiments_or_exit(experiments)
    print_banner(f"hybridexp v{__version__}: {len(specs)} experiment(s)")

    try:
        summary = run_batch(
            specs,
            settings,
            results_path=Path(results_path) if results_path else None,
        )
    except FatalError as e:
        print_error(f"Fatal: {e}")
        raise SystemExit(2)
    except Exception as e:
        print_error(f"Batch failed: {e}")
        raise SystemExit(1)

    if summary.skipped:
        print_info(f"{summary.skipped} experiment(s) already have results, skipped")

    for result in summary.runs:
        outcome = result.outcome
        label = f"host {outcome.host} / container {outcome.container}"
        if outcome.passed:
            print_success(f"{label}: {outcome.note}")
        elif result.logical_failure:
            print_warning(f"{label}: {outcome.note or 'workload failed'}")
        else:
            print_error(f"{label}: {result.exec_result.error}")

    click.echo(
        f"{summary.passed} passed, {summary.failed} failed, {summary.skipped} skipped "
        f"in {format_duration(summary.duration_seconds)} -> {summary.results_path}"
    )
    if not summary.success:
        raise SystemExit(1)


@main.command("prune")
@click.argument("experiments", type=click.Path(exists=True, dir_okay=False))
@click.option("--results", "results_path", type=click.Path(dir_okay=False), help="Results file to use")
@click.pass_context
def prune_cmd(ctx, experiments: str, results_path: str):
    """List the experiments of EXPERIMENTS that still need to run."""
    from hybridexp.experiments import results_path_for
    from hybridexp.pruning import prune
    from hybridexp.results import load_results

    settings = _require_config(ctx)
    specs = _load_experiments_or_exit(experiments)

    try:
        path = Path(results_path) if results_path else results_path_for(specs, settings)
        to_run = prune(specs, load_results(path))
    except Exception as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1)

    if not to_run:
        click.echo("All experiments already have results.")
        return
    for spec in to_run:
        click.echo(f"  {spec.label()}")


@main.command("results")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def results_cmd(path: str):
    """Show the outcomes recorded in a results file."""
    from hybridexp.results import load_results

    try:
        outcomes = load_results(Path(path))
    except Exception as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1)

    if not outcomes:
        click.echo("No results recorded.")
        return
    for outcome in outcomes:
        status = "PASS" if outcome.passed else "FAIL"
        click.echo(f"{status}  host {outcome.host_version}  container {outcome.container_version}  {outcome.note}")


if __name__ == "__main__":
    sys.exit(main())
