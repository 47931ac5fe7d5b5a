"""Tests for the runrep CLI."""

from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from runrep.cli import EXIT_FAILURE, EXIT_RUNREP_FAILURE, app
from runrep.types import ReportRun

runner = CliRunner()

CONFIG = """
ssh:
  host: geneva.example.com
  user: geneva
  settle_interval: 0s

runrep:
  user: usr
  password: s3cret
  aga: "9999"
  output_path: /tmp/r1.csv

report:
  kind: rsl
  name: netassets
"""


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "runrep.yaml"
    path.write_text(CONFIG)
    return path


class TestInit:
    def test_writes_template(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert "report:" in (tmp_path / "runrep.yaml").read_text()

    def test_keeps_existing_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "runrep.yaml").write_text("mine")

        result = runner.invoke(app, ["init"], input="n\n")

        assert result.exit_code == 0
        assert (tmp_path / "runrep.yaml").read_text() == "mine"


class TestValidate:
    def test_valid(self, config_path):
        result = runner.invoke(app, ["validate", "--config", str(config_path)])
        assert result.exit_code == 0
        assert "valid" in result.output

    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["validate", "--config", str(tmp_path / "nope.yaml")])
        assert result.exit_code == EXIT_FAILURE
        assert "not found" in result.output

    def test_empty_config(self, tmp_path):
        path = tmp_path / "runrep.yaml"
        path.write_text("")
        result = runner.invoke(app, ["validate", "--config", str(path)])
        assert result.exit_code == EXIT_FAILURE

    def test_invalid_parameters(self, config_path):
        config_path.write_text(
            CONFIG.replace(
                'aga: "9999"',
                'aga: "9999"\n  period_start_date: "2023-02-01T00:00:00"\n  period_end_date: "2023-01-01T00:00:00"',
            )
        )
        result = runner.invoke(app, ["validate", "--config", str(config_path)])
        assert result.exit_code == EXIT_FAILURE
        assert "Invalid parameters" in result.output


class TestShow:
    def test_password_is_masked(self, config_path):
        result = runner.invoke(app, ["show", "--config", str(config_path)])

        assert result.exit_code == 0
        assert "connect usr/********* -k 9999" in result.output
        assert "s3cret" not in result.output
        assert "geneva@geneva.example.com:22" in result.output


class TestRun:
    def run_with(self, config_path, tmp_path, result):
        executor = MagicMock()
        executor.__enter__.return_value = executor
        with patch("runrep.cli.SSHCommandExecutor", return_value=executor), patch(
            "runrep.cli.run_report", return_value=result
        ) as run_report:
            outcome = runner.invoke(
                app, ["run", "--config", str(config_path), "--output", str(tmp_path / "out.csv")]
            )
        return outcome, run_report

    def make_result(self, status, **kwargs):
        return ReportRun(status=status, command="redacted", output_resource="/tmp/r1.csv", **kwargs)

    def test_success(self, config_path, tmp_path):
        outcome, run_report = self.run_with(
            config_path, tmp_path, self.make_result("success", bytes_fetched=8)
        )

        assert outcome.exit_code == 0
        assert "Saved report" in outcome.output
        assert run_report.call_args.kwargs["keep_remote"] is False

    def test_runrep_failure(self, config_path, tmp_path):
        outcome, _ = self.run_with(
            config_path,
            tmp_path,
            self.make_result("runrep_failure", error="Failed", remote_error_line="ERROR: [bad] portfolio"),
        )

        assert outcome.exit_code == EXIT_RUNREP_FAILURE
        assert "ERROR: [bad] portfolio" in outcome.output

    def test_transport_failure(self, config_path, tmp_path):
        outcome, _ = self.run_with(
            config_path, tmp_path, self.make_result("failure", error="Cannot connect")
        )

        assert outcome.exit_code == EXIT_FAILURE
        assert "Cannot connect" in outcome.output
