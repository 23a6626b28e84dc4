"""
Tests for the conformance harness.
"""

from datetime import timedelta

import pytest
import yaml

from claimgate.authz import Operation
from claimgate.core import HarnessConfig
from claimgate.harness import (
    ClaimGrant,
    ClaimMutationScenario,
    ConformanceHarness,
    DirectoryUser,
    Expectation,
    HarnessReport,
    OperationScenario,
    PrincipalSpec,
    Scenario,
    ScenarioOutcome,
    ScenarioStatus,
    SeedDocument,
    default_scenarios,
    load_scenarios,
    scenario_from_dict,
)
from claimgate.types import RuleSourceError, SetupError, ValidationError


PAYLOAD = {'title': 'Admin Doc', 'content': 'Secret', 'createdBy': 'adminUid'}


class Explodes(Scenario):
    """Scenario that fails with an unexpected exception"""

    def context(self):
        return {}

    async def run(self, env):
        raise KeyError("unexpected")


class TestDefaultSuite:
    """Test the built-in conformance suite"""

    @pytest.mark.asyncio
    async def test_default_scenarios_pass(self):
        report = await ConformanceHarness().run(default_scenarios())
        failures = [r.to_dict() for r in report.results if not r.passed]
        assert failures == []
        assert report.all_passed
        assert report.exit_code == 0
        assert report.total == len(default_scenarios())

    def test_default_scenarios_cover_required_cases(self):
        names = [s.name for s in default_scenarios()]
        assert len(names) == len(set(names))
        assert "admin creates admin document" in names
        assert "non-admin cannot create admin document" in names
        assert "authenticated user reads admin document" in names
        assert "unauthenticated read is rejected" in names
        assert "admin claim mutation is idempotent" in names

    @pytest.mark.asyncio
    async def test_shuffled_order_gives_same_outcomes(self):
        plain = await ConformanceHarness().run(default_scenarios())
        shuffled = await ConformanceHarness(HarnessConfig(shuffle_seed=7)).run(default_scenarios())

        assert {r.scenario_name: r.status for r in plain.results} == \
            {r.scenario_name: r.status for r in shuffled.results}

    def test_shuffle_is_deterministic(self):
        harness = ConformanceHarness(HarnessConfig(shuffle_seed=3))
        first = [s.name for s in harness.order(default_scenarios())]
        second = [s.name for s in harness.order(default_scenarios())]
        assert first == second
        assert sorted(first) == sorted(s.name for s in default_scenarios())

    @pytest.mark.asyncio
    async def test_each_scenario_alone_passes(self):
        harness = ConformanceHarness()
        for scenario in default_scenarios():
            result = await harness.run_scenario(scenario)
            assert result.status is ScenarioStatus.PASSED, result.message


class TestScenarioOutcomes:
    """Test how outcomes are classified"""

    @pytest.mark.asyncio
    async def test_wrong_expectation_is_failed_not_fatal(self):
        wrong = OperationScenario(
            "user expected to create",
            PrincipalSpec('userUid', True, {}),
            Operation.create('admin_docs/doc2', PAYLOAD),
            Expectation.SUCCEED,
        )
        right = default_scenarios()[0]

        report = await ConformanceHarness().run([wrong, right])

        assert report.failed == 1
        assert report.passed == 1
        assert report.exit_code == 1
        failed = report.result_for("user expected to create")
        assert failed.status is ScenarioStatus.FAILED
        assert "userUid" in failed.message
        assert "create admin_docs/doc2" in failed.message
        assert "missing admin claim" in failed.message
        assert failed.context['resource'] == "admin_docs/doc2"
        assert failed.decision.reason == "missing admin claim"

    @pytest.mark.asyncio
    async def test_wrong_reason_is_failed(self):
        scenario = OperationScenario(
            "reason mismatch",
            PrincipalSpec('anon', False),
            Operation.read('admin_docs/doc1'),
            Expectation.FAIL,
            expected_reason="missing admin claim",
        )
        result = await ConformanceHarness().run_scenario(scenario)
        assert result.status is ScenarioStatus.FAILED
        assert "unauthenticated" in result.message

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_error(self):
        report = await ConformanceHarness().run([Explodes("explodes"), default_scenarios()[0]])
        assert report.errors == 1
        assert report.passed == 1
        assert "KeyError" in report.result_for("explodes").message

    @pytest.mark.asyncio
    async def test_timeout_is_error(self):
        config = HarnessConfig(scenario_timeout=timedelta(seconds=0.05), store_latency=0.5)
        scenario = OperationScenario(
            "slow backend",
            PrincipalSpec('userUid', True),
            Operation.read('admin_docs/doc1'),
            Expectation.SUCCEED,
            seed=[SeedDocument('admin_docs/doc1', PAYLOAD)],
        )
        result = await ConformanceHarness(config).run_scenario(scenario)
        assert result.status is ScenarioStatus.ERROR
        assert "did not finish" in result.message

    @pytest.mark.asyncio
    async def test_missing_rule_source_aborts_run(self, tmp_path):
        config = HarnessConfig(rules_path=str(tmp_path / "missing.yaml"))
        with pytest.raises(RuleSourceError):
            await ConformanceHarness(config).run(default_scenarios())

    @pytest.mark.asyncio
    async def test_invalid_config_aborts_run(self):
        config = HarnessConfig(scenario_timeout=timedelta(seconds=0))
        with pytest.raises(SetupError):
            await ConformanceHarness(config).run(default_scenarios())

    @pytest.mark.asyncio
    async def test_metrics_count_scenarios(self):
        harness = ConformanceHarness()
        await harness.run([Explodes("explodes"), default_scenarios()[0]])
        assert harness.metrics.count("scenarios_passed") == 1
        assert harness.metrics.count("scenarios_error") == 1

    def test_empty_report(self):
        assert HarnessReport().summary().startswith("0/0 scenarios passed")
        assert HarnessReport().all_passed


class TestClaimScenarios:
    """Test claim mutation and sign-in scenarios"""

    @pytest.mark.asyncio
    async def test_mutation_of_unknown_user_fails(self):
        scenario = ClaimMutationScenario("unknown user", identifier="ghost@example.com")
        result = await ConformanceHarness().run_scenario(scenario)
        assert result.status is ScenarioStatus.FAILED
        assert "ghost@example.com" in result.message

    @pytest.mark.asyncio
    async def test_mutation_repeated_three_times(self):
        scenario = ClaimMutationScenario(
            "three times",
            identifier="adminUser",
            repeat=3,
            users=[DirectoryUser('adminUser', 'admin@example.com', {'tier': 'gold'})],
        )
        result = await ConformanceHarness().run_scenario(scenario)
        assert result.status is ScenarioStatus.PASSED

    def test_repeat_must_be_positive(self):
        with pytest.raises(ValueError):
            ClaimMutationScenario("never", identifier="adminUser", repeat=0)

    @pytest.mark.asyncio
    async def test_without_grant_directory_user_cannot_create(self):
        scenario = OperationScenario(
            "no grant",
            PrincipalSpec('e2eUser', from_directory=True),
            Operation.create('admin_docs/x', PAYLOAD),
            Expectation.FAIL,
            expected_reason="missing admin claim",
            users=[DirectoryUser('e2eUser', 'e2e-user@example.com')],
        )
        result = await ConformanceHarness().run_scenario(scenario)
        assert result.status is ScenarioStatus.PASSED

    @pytest.mark.asyncio
    async def test_revoked_grant_denies_create(self):
        scenario = OperationScenario(
            "revoked",
            PrincipalSpec('e2eAdmin', from_directory=True),
            Operation.create('admin_docs/x', PAYLOAD),
            Expectation.FAIL,
            users=[DirectoryUser('e2eAdmin', 'e2e-admin@example.com', {'admin': True})],
            claim_grants=[ClaimGrant('e2e-admin@example.com', 'admin', False)],
        )
        result = await ConformanceHarness().run_scenario(scenario)
        assert result.status is ScenarioStatus.PASSED


class TestScenarioFiles:
    """Test loading scenarios from files"""

    SCENARIOS = {
        'scenarios': [
            {
                'name': 'admin creates',
                'principal': {'key': 'adminUid', 'claims': {'admin': True}},
                'operation': 'create',
                'resource': 'admin_docs/doc1',
                'payload': PAYLOAD,
                'expect': 'succeed',
            },
            {
                'name': 'anon read',
                'principal': {'key': 'anon', 'authenticated': False},
                'operation': 'read',
                'resource': 'admin_docs/doc1',
                'expect': 'fail',
                'reason': 'unauthenticated',
                'seed': [{'path': 'admin_docs/doc1', 'data': PAYLOAD}],
            },
            {
                'name': 'idempotent grant',
                'type': 'claim_mutation',
                'identifier': 'admin@example.com',
                'users': [{'key': 'adminUser', 'email': 'admin@example.com'}],
            },
        ]
    }

    @pytest.mark.asyncio
    async def test_load_and_run(self, tmp_path):
        path = tmp_path / "scenarios.yaml"
        path.write_text(yaml.safe_dump(self.SCENARIOS))

        scenarios = await load_scenarios(str(path))
        assert [s.name for s in scenarios] == ['admin creates', 'anon read', 'idempotent grant']

        report = await ConformanceHarness().run(scenarios)
        assert report.all_passed, report.to_dict()

    def test_scenario_from_dict(self):
        scenario = scenario_from_dict(self.SCENARIOS['scenarios'][1])
        assert isinstance(scenario, OperationScenario)
        assert scenario.expected is Expectation.FAIL
        assert scenario.expected_reason == "unauthenticated"
        assert scenario.seed[0].path == "admin_docs/doc1"

    @pytest.mark.parametrize("entry", [
        {'principal': {'key': 'a'}, 'operation': 'read', 'resource': 'admin_docs/d', 'expect': 'fail'},
        {'name': 'x', 'operation': 'read', 'resource': 'admin_docs/d', 'expect': 'fail'},
        {'name': 'x', 'principal': {'key': 'a'}, 'operation': 'list', 'resource': 'admin_docs/d', 'expect': 'fail'},
        {'name': 'x', 'principal': {'key': 'a'}, 'operation': 'read', 'resource': 'admin_docs', 'expect': 'fail'},
        {'name': 'x', 'principal': {'key': 'a'}, 'operation': 'read', 'resource': 'admin_docs/d', 'expect': 'maybe'},
        {'name': 'x', 'principal': {}, 'operation': 'read', 'resource': 'admin_docs/d', 'expect': 'fail'},
        {'name': 'x', 'principal': {'key': 'a', 'authenticated': 'false'}, 'operation': 'read',
         'resource': 'admin_docs/d', 'expect': 'fail'},
        {'name': 'x', 'principal': {'key': 'a', 'from_directory': 1}, 'operation': 'read',
         'resource': 'admin_docs/d', 'expect': 'fail'},
        {'name': 'x', 'type': 'bulk'},
    ])
    def test_malformed_entries(self, entry):
        with pytest.raises(ValidationError):
            scenario_from_dict(entry)

    @pytest.mark.asyncio
    async def test_duplicate_names_rejected(self, tmp_path):
        entry = self.SCENARIOS['scenarios'][0]
        path = tmp_path / "scenarios.yaml"
        path.write_text(yaml.safe_dump({'scenarios': [entry, entry]}))
        with pytest.raises(ValidationError):
            await load_scenarios(str(path))

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(ValidationError):
            await load_scenarios(str(tmp_path / "missing.yaml"))

    @pytest.mark.asyncio
    async def test_unparsable_file(self, tmp_path):
        path = tmp_path / "scenarios.yaml"
        path.write_text("scenarios: [unclosed")
        with pytest.raises(ValidationError):
            await load_scenarios(str(path))


class TestScenarioOutcomeValues:
    """Test small value types"""

    def test_outcome_defaults(self):
        outcome = ScenarioOutcome()
        assert outcome.decision is None
        assert outcome.detail == ""

    def test_principal_spec_describe(self):
        text = PrincipalSpec('anon', False).describe()
        assert "anon" in text
        assert "unauthenticated" in text
