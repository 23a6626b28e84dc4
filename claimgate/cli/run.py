"""
claimgate run: execute the conformance suite.

Exit codes:
    0  every scenario passed
    1  at least one scenario failed or errored
    2  setup fault (rule source, scenario file, configuration)
"""

import asyncio
import sys
from typing import List, Optional

import click

from ..core.config import HarnessConfig
from ..harness.loader import load_scenarios
from ..harness.report import HarnessReport, ScenarioResult, ScenarioStatus
from ..harness.runner import ConformanceHarness
from ..harness.scenarios import Scenario, default_scenarios
from ..metrics.collector import DecisionMetrics
from ..types.errors import SetupError, ValidationError
from ..util.config import parse_duration_string
from .common import configure_logging


EXIT_SETUP_ERROR = 2

_MARKS = {
    ScenarioStatus.PASSED: "✓",
    ScenarioStatus.FAILED: "✗",
    ScenarioStatus.ERROR: "!",
}


def format_result(result: ScenarioResult) -> str:
    line = f"{_MARKS[result.status]} {result.scenario_name}"
    if result.status is not ScenarioStatus.PASSED:
        line += f" [{result.status.value}] {result.message}"
    return line


def print_report(report: HarnessReport) -> None:
    click.echo("claimgate conformance run")
    click.echo("=" * 50)
    for result in report.results:
        click.echo(format_result(result))
    click.echo("-" * 50)
    click.echo(report.summary())


async def run_suite(config: HarnessConfig, metrics: Optional[DecisionMetrics] = None) -> HarnessReport:
    scenarios: List[Scenario]
    if config.scenarios_path:
        scenarios = await load_scenarios(config.scenarios_path)
    else:
        scenarios = default_scenarios()
    return await ConformanceHarness(config, metrics).run(scenarios)


@click.command("run")
@click.option("--rules", "rules_path", type=click.Path(dir_okay=False), default=None,
              help="Rule source file (defaults to the bundled admin_docs policy).")
@click.option("--scenarios", "scenarios_path", type=click.Path(dir_okay=False), default=None,
              help="YAML or JSON scenario file (defaults to the built-in suite).")
@click.option("--timeout", default=None, help="Per-scenario timeout, e.g. 30s or 1m.")
@click.option("--shuffle-seed", type=int, default=None,
              help="Run scenarios in a random order derived from this seed.")
@click.option("--log-level", default=None,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Logging level (default: CLAIMGATE_LOG_LEVEL or WARNING).")
@click.option("--metrics-file", type=click.Path(dir_okay=False, writable=True), default=None,
              help="Write Prometheus metrics for the run to this file.")
def run_command(
    rules_path: Optional[str],
    scenarios_path: Optional[str],
    timeout: Optional[str],
    shuffle_seed: Optional[int],
    log_level: Optional[str],
    metrics_file: Optional[str],
) -> None:
    """
    Run the access policy conformance suite.

    \b
    Examples:
      claimgate run
      claimgate run --scenarios scenarios.yaml --timeout 10s
      claimgate run --shuffle-seed 42
    """
    try:
        config = HarnessConfig.from_env()
    except ValueError as e:
        click.echo(f"Invalid CLAIMGATE_* configuration: {e}", err=True)
        sys.exit(EXIT_SETUP_ERROR)

    if rules_path:
        config.rules_path = rules_path
    if scenarios_path:
        config.scenarios_path = scenarios_path
    if shuffle_seed is not None:
        config.shuffle_seed = shuffle_seed
    if timeout:
        try:
            config.scenario_timeout = parse_duration_string(timeout)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--timeout")

    configure_logging(log_level or config.log_level)
    metrics = DecisionMetrics()

    try:
        report = asyncio.run(run_suite(config, metrics))
    except (SetupError, ValidationError) as e:
        click.echo(f"Setup error: {e.message}", err=True)
        sys.exit(EXIT_SETUP_ERROR)

    print_report(report)
    if metrics_file:
        try:
            with open(metrics_file, "w", encoding="utf-8") as f:
                f.write(metrics.export_prometheus_metrics())
        except OSError as e:
            click.echo(f"Cannot write metrics file {metrics_file}: {e.strerror or e}", err=True)
            sys.exit(1)
    sys.exit(report.exit_code)
