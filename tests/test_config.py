"""Tests for settings and executor/tool-server config loading."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from rich.logging import RichHandler

from conductor.config import (
    Settings,
    config_to_descriptor,
    configure_logging,
    load_executor_configs,
    load_tool_servers,
    validate_executor_config,
)

AGENT = {
    "id": "frontend",
    "name": "Frontend Agent",
    "description": "Builds UI",
    "systemPrompt": "You build interfaces.",
    "capabilities": ["code", "aesthetics"],
    "url": "http://frontend.test",
    "model": "large",
}


def write(path: Path, data: object) -> Path:
    path.write_text(json.dumps(data))
    return path


def test_settings_defaults(tmp_path: Path) -> None:
    settings = Settings.from_env({"CONDUCTOR_HOME": str(tmp_path)})
    assert settings.home == tmp_path
    assert settings.agents_dir == tmp_path / "agents"
    assert settings.tools_file == tmp_path / "tools.json"
    assert settings.remote_url == "http://localhost:3001"
    assert settings.remote_api_key is None
    assert settings.log_level == "INFO"


def test_settings_overrides(tmp_path: Path) -> None:
    settings = Settings.from_env(
        {
            "CONDUCTOR_HOME": str(tmp_path),
            "CONDUCTOR_AGENTS_DIR": str(tmp_path / "elsewhere"),
            "CONDUCTOR_AGENT_URL": "http://agent.test",
            "CONDUCTOR_AGENT_API_KEY": "key",
            "CONDUCTOR_TOOL_AUTH_TOKEN": "",
            "CONDUCTOR_LOG_LEVEL": "debug",
        }
    )
    assert settings.agents_dir == tmp_path / "elsewhere"
    assert settings.remote_url == "http://agent.test"
    assert settings.remote_api_key == "key"
    assert settings.tool_auth_token is None
    assert settings.log_level == "DEBUG"


def test_configure_logging_is_idempotent() -> None:
    configure_logging("DEBUG")
    configure_logging("WARNING")
    logger = logging.getLogger("conductor")
    assert logger.level == logging.WARNING
    assert sum(isinstance(h, RichHandler) for h in logger.handlers) == 1


def test_validate_executor_config() -> None:
    valid = dict(AGENT, system_prompt="x")
    assert validate_executor_config(valid) is True
    assert validate_executor_config([]) is False
    assert validate_executor_config(dict(valid, id="")) is False
    assert validate_executor_config(dict(valid, capabilities="code")) is False
    assert validate_executor_config({k: v for k, v in valid.items() if k != "system_prompt"}) is False


def test_load_executor_configs(tmp_path: Path, caplog) -> None:
    write(tmp_path / "b_frontend.json", AGENT)
    write(tmp_path / "a_broken.json", {"id": "broken"})
    (tmp_path / "c_bad.json").write_text("{not json")
    (tmp_path / "d_agent.yaml").write_text("id: yaml")
    (tmp_path / "notes.txt").write_text("ignored")

    with caplog.at_level(logging.WARNING, logger="conductor"):
        configs = load_executor_configs(tmp_path)

    assert [c["id"] for c in configs] == ["frontend"]
    assert configs[0]["system_prompt"] == "You build interfaces."
    assert "systemPrompt" not in configs[0]
    messages = " ".join(r.getMessage() for r in caplog.records)
    assert "a_broken.json" in messages
    assert "c_bad.json" in messages
    assert "d_agent.yaml" in messages


def test_load_executor_configs_missing_dir(tmp_path: Path) -> None:
    assert load_executor_configs(tmp_path / "nope") == []


def test_config_to_descriptor() -> None:
    descriptor = config_to_descriptor(dict(AGENT, system_prompt="You build interfaces."))
    assert descriptor.id == "frontend"
    assert descriptor.capabilities == ["code", "aesthetics"]
    assert descriptor.metadata["system_prompt"] == "You build interfaces."
    assert descriptor.metadata["url"] == "http://frontend.test"
    assert descriptor.metadata["model"] == "large"


def test_load_tool_servers(tmp_path: Path) -> None:
    path = write(
        tmp_path / "tools.json",
        [
            {"id": "cms", "url": "http://cms.test/", "capabilities": ["tools"]},
            {"id": "no-url"},
            "garbage",
        ],
    )
    servers = load_tool_servers(path)
    assert len(servers) == 1
    assert servers[0].name == "cms"
    assert servers[0].url == "http://cms.test"


def test_load_tool_servers_missing_or_invalid(tmp_path: Path) -> None:
    assert load_tool_servers(tmp_path / "tools.json") == []
    (tmp_path / "tools.json").write_text("[")
    assert load_tool_servers(tmp_path / "tools.json") == []
