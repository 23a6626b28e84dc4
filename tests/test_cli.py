"""
Tests for the claimgate command line.
"""

import json

import pytest
import yaml
from click.testing import CliRunner

from claimgate.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def credentials_file(tmp_path):
    path = tmp_path / "serviceAccountKey.json"
    path.write_text(json.dumps({
        'project_id': 'demo-project',
        'client_email': 'svc@demo-project.example.com',
        'private_key': 'secret-key',
    }))
    return path


@pytest.fixture
def directory_file(tmp_path):
    path = tmp_path / "users.yaml"
    path.write_text(yaml.safe_dump({'users': [{'key': 'adminUser', 'email': 'admin@example.com'}]}))
    return path


class TestRunCommand:
    """Test claimgate run"""

    def test_default_suite_passes(self, runner):
        result = runner.invoke(cli, ["run"])
        assert result.exit_code == 0, result.output
        assert "✓ admin creates admin document" in result.output
        assert "✓ unauthenticated read is rejected" in result.output
        assert "scenarios passed" in result.output

    def test_shuffle_seed(self, runner):
        result = runner.invoke(cli, ["run", "--shuffle-seed", "11"])
        assert result.exit_code == 0, result.output

    def test_failing_scenario_exits_one(self, runner, tmp_path):
        path = tmp_path / "scenarios.yaml"
        path.write_text(yaml.safe_dump({'scenarios': [{
            'name': 'user creates admin doc',
            'principal': {'key': 'userUid'},
            'operation': 'create',
            'resource': 'admin_docs/doc2',
            'payload': {'title': 'x'},
            'expect': 'succeed',
        }]}))

        result = runner.invoke(cli, ["run", "--scenarios", str(path)])
        assert result.exit_code == 1
        assert "✗ user creates admin doc [failed]" in result.output
        assert "missing admin claim" in result.output

    def test_missing_rule_source_exits_two(self, runner, tmp_path):
        result = runner.invoke(cli, ["run", "--rules", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 2
        assert "Setup error" in result.output

    def test_undecodable_rule_source_exits_two(self, runner, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_bytes(b"version: 1\ncollections: {}\n# \xff\xfe\n")
        result = runner.invoke(cli, ["run", "--rules", str(path)])
        assert result.exit_code == 2
        assert "Setup error" in result.output
        assert "rules.yaml" in result.output

    def test_bad_scenario_file_exits_two(self, runner, tmp_path):
        path = tmp_path / "scenarios.yaml"
        path.write_text("scenarios: nope\n")
        result = runner.invoke(cli, ["run", "--scenarios", str(path)])
        assert result.exit_code == 2

    def test_bad_timeout(self, runner):
        result = runner.invoke(cli, ["run", "--timeout", "soon"])
        assert result.exit_code == 2

    def test_metrics_file(self, runner, tmp_path):
        path = tmp_path / "metrics.prom"
        result = runner.invoke(cli, ["run", "--metrics-file", str(path)])
        assert result.exit_code == 0, result.output
        assert "claimgate_scenarios_total" in path.read_text()

    def test_unwritable_metrics_file(self, runner, tmp_path):
        path = tmp_path / "missing-dir" / "metrics.prom"
        result = runner.invoke(cli, ["run", "--metrics-file", str(path)])
        assert result.exit_code == 1
        assert "Cannot write metrics file" in result.output

    def test_environment_configuration(self, runner, tmp_path):
        result = runner.invoke(
            cli, ["run"],
            env={"CLAIMGATE_RULES_PATH": str(tmp_path / "missing.yaml")}
        )
        assert result.exit_code == 2


class TestSetClaimCommand:
    """Test claimgate set-claim"""

    def test_grant_admin_by_email(self, runner, credentials_file, directory_file):
        result = runner.invoke(cli, [
            "set-claim", "admin@example.com",
            "--credentials", str(credentials_file),
            "--directory", str(directory_file),
        ])
        assert result.exit_code == 0, result.output
        assert "Set admin=true for user adminUser" in result.output

        data = yaml.safe_load(directory_file.read_text())
        assert data['users'][0]['custom_claims'] == {'admin': True}

    def test_running_twice_is_a_no_op(self, runner, credentials_file, directory_file):
        args = [
            "set-claim", "adminUser", "true",
            "--credentials", str(credentials_file),
            "--directory", str(directory_file),
        ]
        first = runner.invoke(cli, args)
        contents = directory_file.read_text()
        second = runner.invoke(cli, args)

        assert first.exit_code == 0
        assert second.exit_code == 0
        assert "already set" in second.output
        assert directory_file.read_text() == contents

    def test_revoke(self, runner, credentials_file, directory_file):
        common = ["--credentials", str(credentials_file), "--directory", str(directory_file)]
        runner.invoke(cli, ["set-claim", "adminUser", *common])
        result = runner.invoke(cli, ["set-claim", "adminUser", "false", *common])

        assert result.exit_code == 0
        data = yaml.safe_load(directory_file.read_text())
        assert data['users'][0]['custom_claims'] == {'admin': False}

    def test_missing_credentials(self, runner, tmp_path, directory_file):
        result = runner.invoke(cli, [
            "set-claim", "admin@example.com",
            "--credentials", str(tmp_path / "serviceAccountKey.json"),
            "--directory", str(directory_file),
        ])
        assert result.exit_code != 0
        assert "Credentials error" in result.output

    def test_unknown_user(self, runner, credentials_file, directory_file):
        result = runner.invoke(cli, [
            "set-claim", "ghost@example.com",
            "--credentials", str(credentials_file),
            "--directory", str(directory_file),
        ])
        assert result.exit_code != 0
        assert "ghost@example.com" in result.output

    def test_invalid_flag(self, runner, credentials_file, directory_file):
        result = runner.invoke(cli, [
            "set-claim", "adminUser", "maybe",
            "--credentials", str(credentials_file),
            "--directory", str(directory_file),
        ])
        assert result.exit_code == 2
