"""Tests for the conductor CLI."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from rich.console import Console

from conductor import cli
from conductor.cli import main
from conductor.service import Conductor

PLAN = {
    "id": "plan-cli",
    "name": "CLI plan",
    "description": "",
    "actions": [
        {"id": "a", "name": "Build", "description": "Build it", "target": {"kind": "delegated"}},
    ],
}


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "console", Console(width=200))


@pytest.fixture
def plan_file(tmp_path: Path) -> Path:
    path = tmp_path / "plan.json"
    path.write_text(json.dumps(PLAN))
    return path


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CONDUCTOR_HOME", str(tmp_path))
    monkeypatch.delenv("CONDUCTOR_AGENTS_DIR", raising=False)
    monkeypatch.delenv("CONDUCTOR_TOOLS_FILE", raising=False)
    return tmp_path


def local_conductor(fail: bool = False) -> Conductor:
    conductor = Conductor()

    async def handler(work):
        if fail:
            raise RuntimeError("compiler crashed")
        return "built"

    conductor.register_handler("local", ["code"], handler)
    return conductor


def test_version() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_infer() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["infer", "Research and test the design"])
    assert result.exit_code == 0
    assert "testing, aesthetics, research" in result.output


def test_executors_lists_remote_agent(isolated_home: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["executors"])
    assert result.exit_code == 0
    assert "remote-agent" in result.output


def test_run(plan_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "_get_conductor", local_conductor)
    runner = CliRunner()
    result = runner.invoke(main, ["run", str(plan_file)])
    assert result.exit_code == 0
    assert "CLI plan" in result.output
    assert "completed" in result.output


def test_run_failure_exits_nonzero(plan_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "_get_conductor", lambda: local_conductor(fail=True))
    runner = CliRunner()
    result = runner.invoke(main, ["run", str(plan_file)])
    assert result.exit_code == 1
    assert "Plan failed" in result.output


def test_run_rejects_invalid_plan(tmp_path: Path) -> None:
    path = tmp_path / "plan.json"
    path.write_text(json.dumps({"id": "p"}))
    runner = CliRunner()
    result = runner.invoke(main, ["run", str(path)])
    assert result.exit_code == 1
    assert "Invalid plan" in result.output


def test_run_rejects_bad_json(tmp_path: Path) -> None:
    path = tmp_path / "plan.json"
    path.write_text("{")
    runner = CliRunner()
    result = runner.invoke(main, ["run", str(path)])
    assert result.exit_code == 1
    assert "not valid JSON" in result.output


def test_workflow(plan_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "_get_conductor", local_conductor)
    runner = CliRunner()
    result = runner.invoke(main, ["workflow", str(plan_file), "--parallel"])
    assert result.exit_code == 0
    assert "parallel" in result.output
    assert "built" in result.output
