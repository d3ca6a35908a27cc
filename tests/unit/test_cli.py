"""Unit tests for the consent-gate CLI."""

import json
import logging
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import structlog
from rich.console import Console
from typer.testing import CliRunner

from consent_gate import cli

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch: pytest.MonkeyPatch) -> Generator[MagicMock, None, None]:
    """Keep log lines out of command output and give rich a wide console."""
    configure = MagicMock()
    monkeypatch.setattr(cli, "configure_structlog", configure)
    monkeypatch.setattr(cli, "console", Console(width=400))
    for key in ("CONSENT_GATE_VENDOR", "CONSENT_GATE_GDPR_MODE", "CONSENT_GATE_POLICY_PATH"):
        monkeypatch.delenv(key, raising=False)
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL))
    yield configure


def _seed_vendor_files(root: Path) -> Path:
    cache = root / "cache"
    cache.mkdir(parents=True)
    queued = cache / "AF_queue_1.json"
    queued.write_text('{"event": "x"}')
    (cache / "unrelated.txt").write_text("keep")
    return queued


class TestRootCallback:
    """Tests for --version and configuration loading."""

    def test_version(self) -> None:
        result = runner.invoke(cli.app, ["--version"])

        assert result.exit_code == 0
        assert "consent-gate version 0.1.0" in result.stdout

    def test_invalid_configuration_exits_with_code_2(self) -> None:
        result = runner.invoke(cli.app, ["policy"], env={"CONSENT_GATE_VENDOR": "BOGUS"})

        assert result.exit_code == 2
        assert "CONSENT_GATE_VENDOR" in result.stdout

    def test_configures_logging_for_environment(self, quiet_cli: MagicMock) -> None:
        result = runner.invoke(cli.app, ["policy"], env={"ENVIRONMENT": "production"})

        assert result.exit_code == 0
        quiet_cli.assert_called_once_with("production")


class TestPolicyCommand:
    """Tests for the policy command."""

    def test_shows_packaged_policy(self) -> None:
        result = runner.invoke(cli.app, ["policy"])

        assert result.exit_code == 0
        assert "APPSFLYER" in result.stdout
        assert "ANALYTICS, MARKETING" in result.stdout
        assert "requires no consent" not in result.stdout

    def test_unreadable_policy_file_exits_with_code_1(self, tmp_path: Path) -> None:
        bad = tmp_path / "policy.json"
        bad.write_text("{not json")

        result = runner.invoke(cli.app, ["policy", "-f", str(bad)])

        assert result.exit_code == 1
        assert "Error" in result.stdout

    def test_non_utf8_policy_file_exits_with_code_1(self, tmp_path: Path) -> None:
        bad = tmp_path / "policy.json"
        bad.write_bytes(b"\xff\xfe")

        result = runner.invoke(cli.app, ["policy", "-f", str(bad)])

        assert result.exit_code == 1
        assert "not valid UTF-8" in result.stdout

    def test_warns_about_empty_requirements(self, tmp_path: Path) -> None:
        """An SDK without consent requirements is flagged."""
        path = tmp_path / "policy.json"
        path.write_text(
            json.dumps(
                {"version": "7", "sdks": [{"id": "APPSFLYER", "requiredConsent": []}]}
            )
        )

        result = runner.invoke(cli.app, ["policy", "--file", str(path)])

        assert result.exit_code == 0
        assert "version 7" in result.stdout
        assert "requires no consent" in result.stdout


class TestScenarioCommand:
    """Tests for the diagnostic scenarios."""

    def _run_json(self, name: str, workdir: Path) -> dict:
        result = runner.invoke(cli.app, ["scenario", name, "-o", "json", "-w", str(workdir)])
        assert result.exit_code == 0, result.stdout
        return json.loads(result.stdout)

    def test_stopped_log_queues_to_disk(self, tmp_path: Path) -> None:
        """A direct call while stopped is queued by the vendor and left on disk."""
        report = self._run_json("stopped-log", tmp_path)

        assert report["final_state"] == "BOOTSTRAPPED_STOPPED"
        assert report["is_started"] is False
        assert report["queued_events"] == ["scenario_1_stopped"]
        assert report["sent_events"] == []
        assert report["cache_status"].startswith("Found 1")
        assert report["violations"] == []

    def test_granted_log_sends_event(self, tmp_path: Path) -> None:
        report = self._run_json("granted-log", tmp_path)

        assert report["final_state"] == "STARTED"
        assert report["is_started"] is True
        assert report["sent_events"] == ["scenario_3_granted"]
        assert report["cache_status"] == "No vendor cache files"

    def test_denied_log_never_starts(self, tmp_path: Path) -> None:
        report = self._run_json("denied-log", tmp_path)

        assert report["is_started"] is False
        assert "start" not in report["vendor_calls"]
        assert report["queued_events"] == ["scenario_2_consent_denied"]

    def test_rapid_withdrawal_ends_stopped(self, tmp_path: Path) -> None:
        """The withdrawal wins over the grant that preceded it."""
        report = self._run_json("rapid-withdrawal", tmp_path)

        assert report["is_started"] is False
        assert report["final_state"] != "STARTED"
        assert report["cache_status"] == "No vendor cache files"

    def test_text_output(self, tmp_path: Path) -> None:
        result = runner.invoke(cli.app, ["scenario", "stopped-log", "-w", str(tmp_path)])

        assert result.exit_code == 0
        assert "Scenario stopped-log" in result.stdout
        assert "Queued while stopped" in result.stdout
        assert "Diagnostic events" in result.stdout

    def test_temporary_workdir_by_default(self) -> None:
        result = runner.invoke(cli.app, ["scenario", "granted-log", "-o", "json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["name"] == "granted-log"

    def test_unknown_scenario_rejected(self) -> None:
        result = runner.invoke(cli.app, ["scenario", "nope"])

        assert result.exit_code != 0


class TestCacheCommands:
    """Tests for inspect-cache and purge."""

    def test_inspect_empty_root(self, tmp_path: Path) -> None:
        result = runner.invoke(cli.app, ["inspect-cache", "--root", str(tmp_path)])

        assert result.exit_code == 0
        assert "No vendor cache files" in result.stdout

    def test_inspect_lists_vendor_files_only(self, tmp_path: Path) -> None:
        _seed_vendor_files(tmp_path)

        result = runner.invoke(cli.app, ["inspect-cache", "-r", str(tmp_path)])

        assert result.exit_code == 0
        assert "Found 1 vendor cache files" in result.stdout
        assert "AF_queue_1.json" in result.stdout
        assert "unrelated.txt" not in result.stdout

    def test_purge_with_yes(self, tmp_path: Path) -> None:
        queued = _seed_vendor_files(tmp_path)

        result = runner.invoke(cli.app, ["purge", "-r", str(tmp_path), "--yes"])

        assert result.exit_code == 0
        assert "Deleted 1 vendor files" in result.stdout
        assert not queued.exists()
        assert (tmp_path / "cache" / "unrelated.txt").exists()

    def test_purge_declined_keeps_files(self, tmp_path: Path) -> None:
        queued = _seed_vendor_files(tmp_path)

        result = runner.invoke(cli.app, ["purge", "-r", str(tmp_path)], input="n\n")

        assert result.exit_code == 1
        assert queued.exists()

    def test_purge_confirmed(self, tmp_path: Path) -> None:
        queued = _seed_vendor_files(tmp_path)

        result = runner.invoke(cli.app, ["purge", "-r", str(tmp_path)], input="y\n")

        assert result.exit_code == 0
        assert not queued.exists()
