"""CLI tests for the `automation` entrypoint."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from integration_automation.engine import main as cli


@pytest.fixture(autouse=True)
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    monkeypatch.setenv("AUTOMATION_STATE_PATH", str(tmp_path / "state"))
    monkeypatch.setenv("AUTOMATION_HARNESS_MIN_LATENCY_MS", "0")
    monkeypatch.setenv("AUTOMATION_HARNESS_MAX_LATENCY_MS", "0")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    # main() reconfigures the root logger.
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def _write_config(path: Path, payload: dict[str, object]) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


VALID = {
    "trigger": {"app": "TaskMaster", "event": "task_created"},
    "conditions": [],
    "actions": [{"app": "CollabSpace", "action": "send_message"}],
}


def test_validate_valid_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_config(tmp_path / "wf.json", VALID)

    assert cli.main(["validate", str(path)]) == cli.EXIT_OK

    out = json.loads(capsys.readouterr().out)
    assert out["is_valid"] is True


def test_validate_invalid_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_config(tmp_path / "wf.json", {"actions": []})

    assert cli.main(["validate", str(path)]) == cli.EXIT_INVALID

    out = json.loads(capsys.readouterr().out)
    assert out["errors"] == ["missing trigger", "at least one action required"]


def test_validate_unreadable_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text("{", encoding="utf-8")

    assert cli.main(["validate", str(bad)]) == cli.EXIT_CONFIG_ERROR
    assert cli.main(["validate", str(tmp_path / "missing.json")]) == cli.EXIT_CONFIG_ERROR
    assert "Could not read workflow configuration" in capsys.readouterr().err


def test_test_run_reports_summary(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_config(tmp_path / "wf.json", VALID)

    code = cli.main(["test-run", str(path), "--seed", "3", "--no-latency"])

    out = json.loads(capsys.readouterr().out)
    assert code == (cli.EXIT_OK if out["overallStatus"] == "success" else cli.EXIT_INVALID)
    assert len(out["results"]) == 4


def test_test_run_missing_trigger_app(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_config(
        tmp_path / "wf.json",
        {"trigger": {"app": ""}, "actions": [{"app": "CollabSpace", "action": "send_message"}]},
    )

    assert cli.main(["test-run", str(path)]) == cli.EXIT_INVALID

    out = json.loads(capsys.readouterr().out)
    assert out["halted"] is True
    assert out["pending"] == 3


def test_templates_listing(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["templates", "--category", "Finance"]) == cli.EXIT_OK

    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 1
    assert lines[0].startswith("tpl-budget-alert")


def test_install_conflict_and_uninstall(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    assert cli.main(["install", "--user", "u1", "--template", "tpl-task-time-sync"]) == cli.EXIT_OK
    assert cli.main(["install", "--user", "u1", "--template", "tpl-task-time-sync"]) == cli.EXIT_CONFLICT

    installations = json.loads((tmp_path / "state" / "installations.json").read_text(encoding="utf-8"))
    assert len(installations) == 1

    assert cli.main(["uninstall", "--installation", installations[0]["id"]]) == cli.EXIT_OK
    assert "Uninstalled" in capsys.readouterr().out


def test_unknown_ids(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["install", "--user", "u1", "--template", "tpl-nope"]) == cli.EXIT_NOT_FOUND
    assert cli.main(["uninstall", "--installation", "inst_nope"]) == cli.EXIT_NOT_FOUND
    assert "not found" in capsys.readouterr().err


def test_bad_settings_exit_with_config_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("AUTOMATION_HARNESS_MIN_LATENCY_MS", "10")
    monkeypatch.setenv("AUTOMATION_HARNESS_MAX_LATENCY_MS", "1")
    path = _write_config(tmp_path / "wf.json", VALID)

    assert cli.main(["validate", str(path)]) == cli.EXIT_CONFIG_ERROR
    assert "Configuration error" in capsys.readouterr().err
