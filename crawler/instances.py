"""Client for querying running Unity editors through the MCP for Unity server."""
from __future__ import annotations

import itertools
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import anyio
import httpx
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2025-03-26"
SESSION_HEADER = "mcp-session-id"


class McpProtocolError(Exception):
    """Exception raised when the MCP server returns an error or malformed data."""

    def __init__(self, method: str, error_msg: str):
        self.method = method
        self.error_msg = error_msg
        super().__init__(f"MCP request {method} failed: {error_msg}")


class UnityInstance(BaseModel):
    """A Unity editor connected to the MCP server."""

    id: str = Field(description="Instance identifier, usually Name@hash")
    name: Optional[str] = Field(default=None, description="Project name")
    path: Optional[str] = Field(default=None, description="Project path, if advertised")


class McpInstanceClient:
    """Reads instance and project metadata over MCP streamable HTTP."""

    def __init__(
        self,
        url: str,
        instances_uri: str = "mcpforunity://instances",
        project_info_uri: str = "mcpforunity://project/info",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: MCP endpoint of the MCP for Unity server
            instances_uri: Resource listing connected editors
            project_info_uri: Resource exposing ``projectRoot`` per editor
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.url = url
        self.instances_uri = instances_uri
        self.project_info_uri = project_info_uri
        self.timeout = timeout
        self.transport = transport
        self._ids = itertools.count(1)
        self._session_id: Optional[str] = None

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json, text/event-stream",
            "Content-Type": "application/json",
        }
        if self._session_id:
            headers[SESSION_HEADER] = self._session_id
        return headers

    @staticmethod
    def _parse_body(response: httpx.Response, request_id: int) -> Dict[str, Any]:
        """Extract the JSON-RPC message answering ``request_id``."""
        content_type = response.headers.get("content-type", "")
        if content_type.startswith("text/event-stream"):
            for line in response.text.splitlines():
                if not line.startswith("data:"):
                    continue
                message = json.loads(line[len("data:"):].strip())
                if isinstance(message, dict) and message.get("id") == request_id:
                    return message
            raise ValueError(f"no response for request {request_id} in event stream")
        return response.json()

    async def _request(
        self, client: httpx.AsyncClient, method: str, params: Dict[str, Any]
    ) -> Dict[str, Any]:
        request_id = next(self._ids)
        response = await client.post(
            self.url,
            json={"jsonrpc": "2.0", "id": request_id, "method": method, "params": params},
            headers=self._headers(),
        )
        response.raise_for_status()

        if SESSION_HEADER in response.headers:
            self._session_id = response.headers[SESSION_HEADER]

        try:
            message = self._parse_body(response, request_id)
        except ValueError as e:
            raise McpProtocolError(method, f"malformed response: {e}") from e

        if not isinstance(message, dict):
            raise McpProtocolError(method, "response is not a JSON-RPC object")
        if "error" in message:
            error = message["error"]
            detail = error.get("message", error) if isinstance(error, dict) else error
            raise McpProtocolError(method, str(detail))

        result = message.get("result") or {}
        if not isinstance(result, dict):
            raise McpProtocolError(method, "result is not an object")
        return result

    async def _notify(self, client: httpx.AsyncClient, method: str) -> None:
        response = await client.post(
            self.url,
            json={"jsonrpc": "2.0", "method": method},
            headers=self._headers(),
        )
        response.raise_for_status()

    async def _initialize(self, client: httpx.AsyncClient) -> None:
        await self._request(
            client,
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": "unity-package-switch", "version": "0.1.0"},
            },
        )
        await self._notify(client, "notifications/initialized")

    async def _read_resource(
        self,
        client: httpx.AsyncClient,
        uri: str,
        instance_id: Optional[str] = None,
    ) -> Any:
        """Read a resource and decode its first text content as JSON."""
        params: Dict[str, Any] = {"uri": uri}
        if instance_id:
            params["_meta"] = {"unity_instance": instance_id}

        result = await self._request(client, "resources/read", params)
        contents = result.get("contents") or []
        if (
            not isinstance(contents, list)
            or not contents
            or not isinstance(contents[0], dict)
            or not isinstance(contents[0].get("text"), str)
        ):
            raise McpProtocolError("resources/read", f"{uri} returned no text content")

        try:
            return json.loads(contents[0]["text"])
        except json.JSONDecodeError as e:
            raise McpProtocolError("resources/read", f"{uri} is not JSON: {e}") from e

    async def list_instances(self, client: httpx.AsyncClient) -> List[UnityInstance]:
        """Read the instance list resource, skipping entries that are not valid instances."""
        data = await self._read_resource(client, self.instances_uri)
        if isinstance(data, dict):
            data = data.get("data", data)
            data = data.get("instances", []) if isinstance(data, dict) else data
        if not isinstance(data, list):
            raise McpProtocolError("resources/read", f"{self.instances_uri} is not a list")

        instances = []
        for item in data:
            if not isinstance(item, dict) or not (item.get("id") or item.get("name")):
                logger.warning(f"Ignoring malformed instance entry: {item!r}")
                continue
            try:
                instances.append(
                    UnityInstance(
                        id=item.get("id") or item["name"],
                        name=item.get("name"),
                        path=item.get("path") or item.get("projectRoot"),
                    )
                )
            except ValidationError as e:
                logger.warning(f"Ignoring malformed instance entry {item!r}: {e}")
        return instances

    async def _fetch_project_root(
        self,
        client: httpx.AsyncClient,
        instance: UnityInstance,
        roots: Dict[str, Path],
    ) -> None:
        try:
            info = await self._read_resource(client, self.project_info_uri, instance.id)
        except (httpx.HTTPError, McpProtocolError) as e:
            logger.warning(f"Could not read project info for {instance.id}: {e}")
            info = {}

        if isinstance(info, dict):
            info = info.get("data", info)
        project_root = info.get("projectRoot") if isinstance(info, dict) else None
        if project_root is not None and not isinstance(project_root, str):
            logger.warning(f"Instance {instance.id} reported a non-string project root: {project_root!r}")
            project_root = None
        project_root = project_root or instance.path
        if not project_root:
            logger.warning(f"Instance {instance.id} did not report a project root")
            return

        roots[instance.id] = Path(project_root)

    async def list_project_roots(self) -> List[Path]:
        """Return the project root of every connected Unity editor.

        Project info is requested for all instances concurrently and every
        request is awaited before returning.

        Returns:
            Project roots in instance order. Empty when no server is listening.

        Raises:
            httpx.HTTPError: If the server answers with an HTTP error
            McpProtocolError: If the server answers with a JSON-RPC error
        """
        self._session_id = None
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                await self._initialize(client)
            except (httpx.ConnectError, httpx.ConnectTimeout) as e:
                logger.info(f"No MCP server reachable at {self.url}: {e}")
                return []

            instances = await self.list_instances(client)
            logger.info(f"Found {len(instances)} connected Unity instance(s)")

            roots: Dict[str, Path] = {}
            async with anyio.create_task_group() as tg:
                for instance in instances:
                    tg.start_soon(
                        self._fetch_project_root,
                        client,
                        instance,
                        roots,
                        name=f"project-info-{instance.id}",
                    )

        return [roots[i.id] for i in instances if i.id in roots]
