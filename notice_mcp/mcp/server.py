"""JSON-RPC 2.0 protocol adapter.

Decodes one inbound line, routes it to ``initialize``, ``ping``,
``tools/list`` or ``tools/call`` and encodes the reply. Nothing raised while
handling a message escapes ``handle_message``: every failure becomes a
JSON-RPC error object.
"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from notice_mcp import __version__
from notice_mcp.backends.registry import BackendRegistry
from notice_mcp.config import ConfigProvider
from notice_mcp.dispatch import NotificationDispatcher
from notice_mcp.exceptions import ValidationError

logger = structlog.get_logger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "notice-mcp"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

SEND_NOTIFICATION = "send_notification"
GET_BACKENDS = "get_backends"


class JsonRpcError(Exception):
    """Error answered to the client as a JSON-RPC error object."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


def make_response(request_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def make_error(request_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


def text_content(payload: Any) -> Dict[str, Any]:
    """Wrap ``payload`` as a single JSON text item of a tool result."""
    return {
        "content": [{"type": "text", "text": json.dumps(payload, indent=2, ensure_ascii=False)}],
        "isError": False,
    }


class NoticeMCPServer:
    """Request/response adapter in front of the dispatch engine."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        registry: Optional[BackendRegistry] = None,
        config: Optional[ConfigProvider] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.registry = registry or dispatcher.registry
        self.config = config or dispatcher.config
        self._methods: Dict[str, Callable[[Dict[str, Any]], Awaitable[Any]]] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }

    def tools(self) -> List[Dict[str, Any]]:
        return [
            {
                "name": SEND_NOTIFICATION,
                "description": (
                    "Send a notification to every enabled backend, or to one backend "
                    "when 'backend' is given. Returns the outcome of each backend."
                ),
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string", "description": "Notification title"},
                        "message": {"type": "string", "description": "Notification body"},
                        "backend": {
                            "type": "string",
                            "description": "Deliver only through this backend",
                            "enum": self.registry.names(),
                        },
                        "config": {
                            "type": "object",
                            "description": "Per-call backend options, merged over the stored configuration",
                            "additionalProperties": True,
                        },
                    },
                    "required": ["title", "message"],
                },
            },
            {
                "name": GET_BACKENDS,
                "description": "List the registered backends and whether each is enabled",
                "inputSchema": {"type": "object", "properties": {}},
            },
        ]

    async def handle_message(self, line: str) -> Optional[Dict[str, Any]]:
        """Handle one raw line. Returns the response, or None when no reply is due."""
        line = line.strip()
        if not line:
            return None

        try:
            message = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning("jsonrpc_parse_error", error=str(e))
            return make_error(None, PARSE_ERROR, "Parse error")

        if not isinstance(message, dict):
            return make_error(None, INVALID_REQUEST, "Invalid Request: expected a JSON object")

        request_id = message.get("id")
        method = message.get("method")

        if "id" not in message and isinstance(method, str) and method.startswith("notifications/"):
            logger.debug("jsonrpc_notification", method=method)
            return None

        try:
            result = await self.handle_request(message)
        except JsonRpcError as e:
            logger.info("jsonrpc_error", method=method, code=e.code, error=e.message)
            return make_error(request_id, e.code, e.message)
        except Exception as e:
            logger.exception("jsonrpc_internal_error", method=method)
            return make_error(request_id, INTERNAL_ERROR, f"Internal error: {e}")

        return make_response(request_id, result)

    async def handle_request(self, request: Dict[str, Any]) -> Any:
        """Route a decoded request and return its ``result``.

        Raises JsonRpcError for anything that must be answered as an error.
        """
        if request.get("jsonrpc") != "2.0":
            raise JsonRpcError(INVALID_REQUEST, "Invalid Request: jsonrpc must be \"2.0\"")

        method = request.get("method")
        if not isinstance(method, str) or not method:
            raise JsonRpcError(INVALID_REQUEST, "Invalid Request: method must be a string")

        handler = self._methods.get(method)
        if handler is None:
            raise JsonRpcError(METHOD_NOT_FOUND, f"Method not found: {method}")

        params = request.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise JsonRpcError(INVALID_PARAMS, "params must be an object")

        return await handler(params)

    async def _initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        client = params.get("clientInfo") or {}
        logger.info(
            "client_initialized",
            client=client.get("name") if isinstance(client, dict) else None,
            protocol_version=params.get("protocolVersion"),
        )
        server = self.config.server
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {
                "name": server.get("name", SERVER_NAME),
                "version": server.get("version", __version__),
            },
        }

    async def _ping(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    async def _list_tools(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"tools": self.tools()}

    async def _call_tool(self, params: Dict[str, Any]) -> Dict[str, Any]:
        name = params.get("name")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}

        if name == SEND_NOTIFICATION:
            try:
                result = await self.dispatcher.dispatch(arguments)
            except ValidationError as e:
                raise JsonRpcError(INVALID_PARAMS, e.message) from e
            return text_content(result.to_wire())

        if name == GET_BACKENDS:
            return text_content({"backends": self.describe_backends()})

        raise JsonRpcError(INVALID_PARAMS, f"Unknown tool: {name}")

    def describe_backends(self) -> List[Dict[str, Any]]:
        backends = []
        for name in self.registry.names():
            description = self.registry.get(name).describe()
            description["name"] = name
            description["enabled"] = self.config.is_enabled(name)
            backends.append(description)
        return backends
