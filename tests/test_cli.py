"""
Tests for the calctl command line interface.
"""

import pytest
import yaml
from click.testing import CliRunner

from cal_engine.cli.calctl import cli

from conftest import HOLDING


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "cal_config.yaml"
    path.write_text(yaml.safe_dump({
        "holding_location": HOLDING,
        "exemptions": {"name_patterns": ["vmaster"]},
        "directory": {"mock_mode": True},
        "audit_dir": str(tmp_path / "audit"),
        "report_dir": str(tmp_path / "reports"),
    }), encoding="utf-8")
    return path


class TestCalctl:
    """Test cases for calctl commands."""

    def test_run_writes_report(self, runner, config_file, tmp_path):
        result = runner.invoke(cli, ["-c", str(config_file), "--mock", "run"])

        assert result.exit_code == 0, result.output
        assert list((tmp_path / "reports").glob("*.html"))

    def test_run_with_missing_config(self, runner, tmp_path):
        result = runner.invoke(cli, ["-c", str(tmp_path / "missing.yaml"), "run"])

        assert result.exit_code == 2
        assert "Configuration error" in result.output

    def test_show_config(self, runner, config_file):
        result = runner.invoke(cli, ["-c", str(config_file), "show-config"])

        assert result.exit_code == 0, result.output
        assert "vmaster" in result.output
        assert "report-only" in result.output

    def test_audit_trail_empty(self, runner, config_file):
        result = runner.invoke(cli, ["-c", str(config_file), "audit-trail"])

        assert result.exit_code == 0, result.output
        assert "No audit records found" in result.output
