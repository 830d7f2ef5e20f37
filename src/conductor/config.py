"""Settings, logging setup and executor/tool-server config loading."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

from conductor.engine.executor import DEFAULT_REMOTE_URL
from conductor.engine.registry import Availability, ExecutorDescriptor
from conductor.engine.tools import ToolServer

logger = logging.getLogger(__name__)

# Keys every executor definition must carry
REQUIRED_EXECUTOR_KEYS = ("id", "name", "description", "system_prompt", "capabilities")


@dataclass
class Settings:
    """Runtime settings, resolved from the environment."""

    home: Path
    agents_dir: Path
    tools_file: Path
    remote_url: str = DEFAULT_REMOTE_URL
    remote_api_key: str | None = None
    tool_auth_token: str | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        home = Path(env.get("CONDUCTOR_HOME", str(Path.home() / ".conductor"))).expanduser()
        return cls(
            home=home,
            agents_dir=Path(env.get("CONDUCTOR_AGENTS_DIR", str(home / "agents"))).expanduser(),
            tools_file=Path(env.get("CONDUCTOR_TOOLS_FILE", str(home / "tools.json"))).expanduser(),
            remote_url=env.get("CONDUCTOR_AGENT_URL", DEFAULT_REMOTE_URL),
            remote_api_key=env.get("CONDUCTOR_AGENT_API_KEY") or None,
            tool_auth_token=env.get("CONDUCTOR_TOOL_AUTH_TOKEN") or None,
            log_level=env.get("CONDUCTOR_LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    """Route ``conductor`` logs through rich."""
    root = logging.getLogger("conductor")
    root.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(RichHandler(show_path=False, rich_tracebacks=True))


def _normalize_executor_config(raw: dict[str, Any]) -> dict[str, Any]:
    config = dict(raw)
    if "system_prompt" not in config and "systemPrompt" in config:
        config["system_prompt"] = config.pop("systemPrompt")
    return config


def validate_executor_config(config: Any) -> bool:
    """Check the required fields of an executor definition."""
    if not isinstance(config, dict):
        return False
    if not isinstance(config.get("id"), str) or not config["id"]:
        return False
    if not isinstance(config.get("name"), str) or not config["name"]:
        return False
    if not isinstance(config.get("description"), str):
        return False
    if not isinstance(config.get("system_prompt"), str):
        return False
    if not isinstance(config.get("capabilities"), list):
        return False
    return True


def load_executor_configs(agents_dir: Path) -> list[dict[str, Any]]:
    """
    Load executor definitions from a directory of JSON files.

    Invalid files are skipped with a warning; a missing directory yields
    no configs.
    """
    if not agents_dir.is_dir():
        logger.debug("Agents directory not found: %s", agents_dir)
        return []

    configs: list[dict[str, Any]] = []
    for path in sorted(agents_dir.iterdir()):
        if path.suffix in (".yaml", ".yml"):
            logger.warning("YAML executor configs are not supported: %s", path.name)
            continue
        if path.suffix != ".json":
            continue

        try:
            raw = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Failed to load executor config %s: %s", path.name, exc)
            continue

        config = _normalize_executor_config(raw) if isinstance(raw, dict) else raw
        if not validate_executor_config(config):
            logger.warning("Invalid executor config %s: requires %s", path.name, ", ".join(REQUIRED_EXECUTOR_KEYS))
            continue
        configs.append(config)

    return configs


def config_to_descriptor(config: dict[str, Any]) -> ExecutorDescriptor:
    """Turn an executor definition into an available descriptor."""
    metadata = dict(config.get("metadata") or {})
    metadata["system_prompt"] = config["system_prompt"]
    for key in ("url", "allowed_tools", "denied_tools", "model"):
        if key in config:
            metadata[key] = config[key]
    return ExecutorDescriptor(
        id=config["id"],
        name=config["name"],
        description=config["description"],
        capabilities=list(config["capabilities"]),
        availability=Availability.AVAILABLE,
        metadata=metadata,
    )


def load_tool_servers(tools_file: Path) -> list[ToolServer]:
    """Load tool server definitions from a JSON list. A missing file yields none."""
    if not tools_file.is_file():
        return []

    try:
        raw = json.loads(tools_file.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Failed to load tool servers from %s: %s", tools_file, exc)
        return []

    servers: list[ToolServer] = []
    for entry in raw if isinstance(raw, list) else []:
        try:
            servers.append(
                ToolServer(
                    id=entry["id"],
                    name=entry.get("name", entry["id"]),
                    url=entry["url"],
                    description=entry.get("description", ""),
                    capabilities=list(entry.get("capabilities") or []),
                )
            )
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            logger.warning("Skipping invalid tool server entry %r: %s", entry, exc)
    return servers
