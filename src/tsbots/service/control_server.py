"""Control socket server for managing the running bot service."""

from __future__ import annotations

import asyncio
import socket
from typing import TYPE_CHECKING, Any

from tsbots.core.errors import MalformedRequestError
from tsbots.core.types import ControlCommand
from tsbots.log import get_logger
from tsbots.service.bot_action import BotActionHandler
from tsbots.service.protocol import (
    TERMINATOR,
    decode_request,
    encode_response,
    status_response,
    stop_response,
    version_response,
)

if TYPE_CHECKING:
    from tsbots.config import ControlServiceConfig
    from tsbots.core.manager import BotManager

logger = get_logger(__name__)

MAX_REQUEST_SIZE = 4096
LISTEN_BACKLOG = 10


class ControlServer:
    """Non-blocking TCP listener answering one request per client connection.

    Each ``poll`` accepts every pending client, reads one request line,
    writes one response and closes the connection.
    """

    def __init__(self, config: ControlServiceConfig, manager: BotManager):
        self._config = config
        self._bot_actions = BotActionHandler(manager)
        self._socket: socket.socket | None = None
        self._terminate = False

    @property
    def address(self) -> tuple[str, int] | None:
        if self._socket is None:
            return None
        return self._socket.getsockname()[:2]

    def initialize(self, host: str | None = None, port: int | None = None) -> bool:
        addr = host if host is not None else self._config.host
        port = port if port is not None else self._config.port
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setblocking(False)
            sock.bind((addr, port))
            sock.listen(LISTEN_BACKLOG)
        except OSError as e:
            sock.close()
            logger.warning("control_server_setup_failed", host=addr, port=port, error=str(e))
            return False
        self._socket = sock
        logger.info("control_server_listening", host=addr, port=self.address[1])
        return True

    def terminate(self) -> bool:
        """True once a ``stop`` request was received."""
        return self._terminate

    def shutdown(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None
            logger.info("control_server_closed")

    async def poll(self) -> None:
        if self._socket is None:
            return
        while True:
            try:
                conn, peer = self._socket.accept()
            except (BlockingIOError, InterruptedError):
                break
            except OSError as e:
                logger.warning("control_accept_failed", error=str(e))
                break
            try:
                await self._serve(conn)
            except Exception as e:
                logger.warning("control_client_failed", peer=str(peer), error=str(e))

    async def _serve(self, conn: socket.socket) -> None:
        reader, writer = await asyncio.open_connection(sock=conn)
        try:
            line = await asyncio.wait_for(self._read_line(reader), self._config.request_timeout)
            if line is None:
                return
            response = await self.handle_request(line)
            if response is not None:
                writer.write((encode_response(response) + TERMINATOR).encode("utf-8"))
                await asyncio.wait_for(writer.drain(), self._config.request_timeout)
        except asyncio.TimeoutError:
            logger.debug("control_client_timeout")
        finally:
            writer.close()

    async def _read_line(self, reader: asyncio.StreamReader) -> str | None:
        buf = b""
        while len(buf) < MAX_REQUEST_SIZE:
            chunk = await reader.read(256)
            if not chunk:
                break
            buf += chunk
            if b"\r" in chunk or b"\n" in chunk:
                break
        for sep in (b"\r", b"\n"):
            buf = buf.split(sep, 1)[0]
        if not buf:
            return None
        return buf.decode("utf-8", errors="replace")

    async def handle_request(self, line: str) -> dict[str, Any] | None:
        """Answer one request line, None for requests which get no response."""
        try:
            request = decode_request(line)
        except MalformedRequestError:
            logger.warning("control_request_malformed", request=line)
            return None

        # status is polled periodically, keep it out of the log
        if request.command != ControlCommand.STATUS:
            logger.debug("control_request", request=line.strip())

        if self._bot_actions.handles(request):
            try:
                return await self._bot_actions.handle(request)
            except MalformedRequestError as e:
                logger.warning("control_request_malformed", request=line, error=str(e))
                return None

        version = self._config.version
        match request.command:
            case ControlCommand.VERSION:
                return version_response(version)
            case ControlCommand.STATUS:
                return status_response(version)
            case ControlCommand.STOP:
                self._terminate = True
                logger.info("control_stop_requested")
                return stop_response()
            case _:
                logger.warning("control_request_unexpected", request=line.strip())
                return None
