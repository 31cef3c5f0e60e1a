#!/usr/bin/env python3
"""
Health Check Server
Liveness probe: every connection gets the same HTTP 200 reply
"""

import asyncio
import logging
from typing import Optional

from .config import DEFAULT_HEALTHCHECK_HOST, DEFAULT_HEALTHCHECK_PORT

logger = logging.getLogger(__name__)

RESPONSE = b"HTTP/1.1 200 OK\r\n\r\n"


class HealthCheckServer:
    """
    Minimal TCP liveness endpoint

    Reads the request header block up to the first blank line, discards it,
    answers with RESPONSE and closes. Failing to bind, or an I/O error on any
    probe connection, makes serve_forever raise so the whole process stops
    and an external supervisor restarts it.
    """

    def __init__(self, host: str = DEFAULT_HEALTHCHECK_HOST, port: int = DEFAULT_HEALTHCHECK_PORT):
        self.host = host
        self.port = port
        self._server: Optional[asyncio.AbstractServer] = None
        self._failure: Optional[asyncio.Future] = None

    async def start(self) -> None:
        self._failure = asyncio.get_running_loop().create_future()
        self._server = await asyncio.start_server(self._handle, self.host, self.port)
        # Port 0 binds an ephemeral port
        self.port = self._server.sockets[0].getsockname()[1]
        logger.info(f"Health check listening on {self.host}:{self.port}")

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        try:
            await self._failure
        finally:
            await self.stop()

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            while True:
                try:
                    line = await reader.readline()
                except ValueError:
                    # Header line longer than the stream limit
                    break
                if not line or not line.strip():
                    break
            writer.write(RESPONSE)
            await writer.drain()
        except OSError as e:
            logger.error(f"Health check connection failed: {e}")
            if not self._failure.done():
                self._failure.set_exception(e)
        finally:
            writer.close()
