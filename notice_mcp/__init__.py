"""notice-mcp: notification dispatch over a JSON-RPC stdio channel."""

__version__ = "1.0.0"
