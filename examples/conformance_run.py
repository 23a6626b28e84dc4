"""
Conformance harness example.

This example demonstrates:
- Running the built-in suite programmatically
- Adding a custom scenario
- Shuffled runs
- Reading the report and metrics
"""

import asyncio
from datetime import timedelta
from pathlib import Path

from claimgate import Operation
from claimgate.core import HarnessConfig
from claimgate.harness import (
    ConformanceHarness,
    Expectation,
    OperationScenario,
    PrincipalSpec,
    default_scenarios,
    load_scenarios,
)


async def conformance_example():
    """Run the suite plus one custom scenario"""
    print("claimgate Conformance Example")
    print("=" * 30)

    config = HarnessConfig(scenario_timeout=timedelta(seconds=5), shuffle_seed=42)
    harness = ConformanceHarness(config)

    custom = OperationScenario(
        "admin cannot write outside admin_docs",
        PrincipalSpec('adminUid', True, {'admin': True}),
        Operation.create('public_docs/readme', {'title': 'Hello'}),
        Expectation.FAIL,
    )

    report = await harness.run(default_scenarios() + [custom])
    for result in report.results:
        mark = "✓" if result.passed else "✗"
        print(f"{mark} {result.scenario_name}")
    print(report.summary())

    # Scenario files run the same way
    scenario_file = Path(__file__).parent / "scenarios.yaml"
    file_report = await ConformanceHarness().run(await load_scenarios(str(scenario_file)))
    print(f"✓ {scenario_file.name}: {file_report.summary()}")

    print("\nMetrics:")
    print(harness.metrics.export_prometheus_metrics())


if __name__ == "__main__":
    asyncio.run(conformance_example())
