"""MCP-style JSON-RPC server and its stdio transport."""

from .server import JsonRpcError, NoticeMCPServer
from .transport import StdioTransport

__all__ = ["JsonRpcError", "NoticeMCPServer", "StdioTransport"]
