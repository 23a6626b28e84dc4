"""
Conformance harness: runs scenarios, each in its own evaluation environment.
"""

import asyncio
import logging
import random
import time
from typing import Iterable, List, Optional

from ..authz.rules import RuleSet, load_rule_set
from ..core.config import HarnessConfig
from ..environment.environment import evaluation_environment
from ..metrics.collector import DecisionMetrics
from ..types.errors import InfrastructureError, ScenarioTimeoutError, SetupError
from .report import HarnessReport, ScenarioResult, ScenarioStatus
from .scenarios import Scenario, ScenarioFailure, ScenarioOutcome


class ConformanceHarness:
    """
    Runs conformance scenarios against the policy.

    A failed scenario is recorded and the run continues. A setup fault
    (missing or malformed rule source, invalid configuration) aborts the
    run with SetupError.
    """

    def __init__(self, config: Optional[HarnessConfig] = None,
                 metrics: Optional[DecisionMetrics] = None):
        self.config = config or HarnessConfig()
        self.metrics = metrics or DecisionMetrics()
        self.logger = logging.getLogger(__name__)

    async def preflight(self) -> RuleSet:
        """
        Check configuration and rule source before any scenario runs.

        Raises:
            SetupError: If the configuration or the rule source is unusable
        """
        self.config.validate()
        rule_set = await load_rule_set(self.config.rules_path)
        self.logger.info(
            f"Rule source {rule_set.source} covers {', '.join(rule_set.collections()) or 'no collections'}"
        )
        return rule_set

    def order(self, scenarios: Iterable[Scenario]) -> List[Scenario]:
        """Run order: as given, or shuffled deterministically by shuffle_seed."""
        ordered = list(scenarios)
        if self.config.shuffle_seed is not None:
            random.Random(self.config.shuffle_seed).shuffle(ordered)
        return ordered

    async def run(self, scenarios: Iterable[Scenario]) -> HarnessReport:
        """Run every scenario and aggregate the results."""
        await self.preflight()
        ordered = self.order(scenarios)
        self.logger.info(f"Running {len(ordered)} conformance scenarios")

        report = HarnessReport()
        start_time = time.time()
        for scenario in ordered:
            report.results.append(await self.run_scenario(scenario))
        report.duration = time.time() - start_time

        self.logger.info(f"Conformance run completed: {report.summary()}")
        return report

    async def run_scenario(self, scenario: Scenario) -> ScenarioResult:
        """
        Run a single scenario in a fresh environment.

        The environment is destroyed whatever the outcome, including on
        timeout.
        """
        self.logger.info(f"Running scenario: {scenario.name}")
        timeout = self.config.scenario_timeout.total_seconds()
        start_time = time.time()

        def result(status: ScenarioStatus, message: Optional[str] = None,
                   outcome: Optional[ScenarioOutcome] = None, decision=None) -> ScenarioResult:
            scenario_result = ScenarioResult(
                scenario_name=scenario.name,
                status=status,
                duration=time.time() - start_time,
                message=message,
                decision=decision if decision is not None else (outcome.decision if outcome else None),
                context=scenario.context()
            )
            self.metrics.record_scenario(status.value, scenario_result.duration)
            return scenario_result

        try:
            outcome = await asyncio.wait_for(self._execute(scenario), timeout=timeout)
        except SetupError:
            raise
        except asyncio.TimeoutError:
            error = ScenarioTimeoutError(
                f"Scenario '{scenario.name}' did not finish within {timeout:g}s",
                timeout_seconds=timeout,
                scenario=scenario.name
            )
            self.logger.error(str(error))
            return result(ScenarioStatus.ERROR, error.message)
        except ScenarioFailure as e:
            self.logger.warning(f"Scenario {scenario.name} failed: {e.message}")
            return result(ScenarioStatus.FAILED, e.message, decision=e.decision)
        except InfrastructureError as e:
            self.logger.error(f"Scenario {scenario.name} hit an infrastructure error: {e.message}")
            return result(ScenarioStatus.ERROR, f"infrastructure error: {e.message}")
        except Exception as e:
            self.logger.error(f"Scenario {scenario.name} raised {type(e).__name__}: {e}")
            return result(ScenarioStatus.ERROR, f"{type(e).__name__}: {e}")

        return result(ScenarioStatus.PASSED, outcome.detail, outcome=outcome)

    async def _execute(self, scenario: Scenario) -> ScenarioOutcome:
        async with evaluation_environment(self.config.environment_config(), self.metrics) as env:
            return await scenario.run(env)
