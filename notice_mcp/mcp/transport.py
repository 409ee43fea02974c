"""Newline-delimited JSON-RPC over stdin/stdout.

Each inbound line is handled in its own task so a slow dispatch does not hold
up later requests. Responses are written one per line and flushed. On EOF or
SIGINT/SIGTERM the transport stops reading and waits for in-flight requests
to be answered.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import signal
import sys
from typing import Any, Dict, Optional, Set, TextIO

import structlog

from notice_mcp.mcp.server import PARSE_ERROR, NoticeMCPServer, make_error

logger = structlog.get_logger(__name__)

# Largest accepted request line
STREAM_LIMIT = 16 * 1024 * 1024


class StdioTransport:
    def __init__(
        self,
        server: NoticeMCPServer,
        output: Optional[TextIO] = None,
        limit: int = STREAM_LIMIT,
    ) -> None:
        self.server = server
        self.limit = limit
        self._output = output
        self._tasks: Set[asyncio.Task] = set()

    @property
    def output(self) -> TextIO:
        return self._output or sys.stdout

    def write(self, message: Dict[str, Any]) -> None:
        self.output.write(json.dumps(message, separators=(",", ":")) + "\n")
        self.output.flush()

    async def serve(self, reader: asyncio.StreamReader) -> None:
        """Read requests from ``reader`` until EOF, then drain."""
        try:
            while True:
                try:
                    raw = await reader.readline()
                except ValueError:
                    logger.warning("request_line_too_long", limit=self.limit)
                    self.write(make_error(None, PARSE_ERROR, "Parse error: line too long"))
                    continue
                if not raw:
                    logger.info("stdin_closed")
                    break

                task = asyncio.create_task(self._handle(raw.decode("utf-8", errors="replace")))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        finally:
            await self.drain()

    async def drain(self) -> None:
        """Wait for every in-flight request to be answered."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _handle(self, line: str) -> None:
        response = await self.server.handle_message(line)
        if response is None:
            return
        try:
            self.write(response)
        except OSError as e:
            logger.warning("response_write_failed", id=response.get("id"), error=str(e))

    async def run(self) -> None:
        """Serve stdin until EOF or a termination signal."""
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader(limit=self.limit)
        protocol = asyncio.StreamReaderProtocol(reader)
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)

        stop = asyncio.Event()
        signals = (signal.SIGINT, signal.SIGTERM)
        for sig in signals:
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, stop.set)

        logger.info("server_started", transport="stdio")
        serve_task = asyncio.create_task(self.serve(reader))
        stop_task = asyncio.create_task(stop.wait())
        try:
            done, _ = await asyncio.wait(
                {serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
            )
            if stop_task in done:
                logger.info("shutdown_requested")
                serve_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await serve_task
                await self.drain()
            else:
                stop_task.cancel()
                serve_task.result()
        finally:
            for sig in signals:
                with contextlib.suppress(NotImplementedError):
                    loop.remove_signal_handler(sig)
        logger.info("server_stopped")
