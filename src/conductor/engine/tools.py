"""Tool Server Client - Dispatches tool-call plan actions to registered tool servers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from conductor.engine.executor import http_session

logger = logging.getLogger(__name__)


@dataclass
class ToolServer:
    """A remote tool server reachable over HTTP."""

    id: str
    name: str
    url: str
    description: str = ""
    capabilities: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Tool server id cannot be empty")
        if not self.url:
            raise ValueError(f"Tool server {self.id} has no url")
        self.url = self.url.rstrip("/")


@dataclass
class ToolAction:
    """A single tool invocation on a named server."""

    server_id: str
    name: str
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResponse:
    """Outcome of a tool invocation."""

    success: bool
    data: Any = None
    error: str | None = None


class ToolServerClient:
    """
    Registry of tool servers plus the HTTP calls that reach them.

    Failures of any kind (unknown server, transport error, non-2xx status)
    come back as an unsuccessful ToolResponse; nothing is raised.
    """

    DEFAULT_TIMEOUT = 60.0  # seconds

    def __init__(
        self,
        auth_token: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.auth_token = auth_token
        self.timeout = timeout
        self._client = client
        self._servers: dict[str, ToolServer] = {}

    def register_server(self, server: ToolServer) -> None:
        self._servers[server.id] = server

    def unregister_server(self, server_id: str) -> bool:
        return self._servers.pop(server_id, None) is not None

    def get_server(self, server_id: str) -> ToolServer | None:
        return self._servers.get(server_id)

    @property
    def servers(self) -> list[ToolServer]:
        return list(self._servers.values())

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    async def execute_action(self, action: ToolAction) -> ToolResponse:
        """Run one tool action on its server."""
        server = self._servers.get(action.server_id)
        if server is None:
            return ToolResponse(success=False, error=f"Tool server not found: {action.server_id}")

        logger.debug("Calling tool %s on server %s", action.name, server.id)
        try:
            async with http_session(self._client, self.timeout) as client:
                response = await client.post(
                    f"{server.url}/execute",
                    json={"action": action.name, "parameters": action.parameters},
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            return ToolResponse(success=False, error=f"{type(exc).__name__}: {exc}")

        try:
            data: Any = response.json()
        except ValueError:
            data = response.text

        if response.is_success:
            return ToolResponse(success=True, data=data)

        error = data.get("error") if isinstance(data, dict) else None
        return ToolResponse(
            success=False,
            data=data,
            error=error or f"Tool server {server.id} returned HTTP {response.status_code}",
        )

    async def get_available_tools(self) -> dict[str, list[str]]:
        """Tool names per server. Unreachable servers report no tools."""
        tools: dict[str, list[str]] = {}

        async with http_session(self._client, self.timeout) as client:
            for server_id, server in self._servers.items():
                try:
                    response = await client.get(f"{server.url}/tools")
                    response.raise_for_status()
                    data = response.json()
                    tools[server_id] = list(data.get("tools") or []) if isinstance(data, dict) else []
                except (httpx.HTTPError, ValueError):
                    logger.debug("Could not list tools on server %s", server_id, exc_info=True)
                    tools[server_id] = []

        return tools
