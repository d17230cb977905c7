"""Client side of the control socket protocol."""

from __future__ import annotations

import asyncio

from tsbots.log import get_logger
from tsbots.service.protocol import TERMINATOR

logger = get_logger(__name__)


class ControlClient:
    """Sends single requests to a running bot service.

    Every method returns the raw response line, or None if the service
    could not be reached or did not answer.
    """

    def __init__(self, host: str, port: int, timeout: float = 1.0):
        self._host = host
        self._port = port
        self._timeout = timeout

    async def request(self, text: str) -> str | None:
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port), self._timeout
            )
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug("control_connect_failed", host=self._host, port=self._port, error=str(e))
            return None
        try:
            writer.write((text + TERMINATOR).encode("utf-8"))
            await writer.drain()
            raw = await asyncio.wait_for(reader.readuntil(TERMINATOR.encode()), self._timeout)
        except asyncio.IncompleteReadError as e:
            raw = e.partial
        except (OSError, asyncio.TimeoutError, asyncio.LimitOverrunError) as e:
            logger.debug("control_request_failed", request=text, error=str(e))
            return None
        finally:
            writer.close()
        response = raw.decode("utf-8", errors="replace").strip()
        return response or None

    async def get_version(self) -> str | None:
        return await self.request("version")

    async def get_status(self) -> str | None:
        return await self.request("status")

    async def stop_service(self) -> str | None:
        return await self.request("stop")

    async def bot_add(self, bot_type: str, bot_id: int) -> str | None:
        return await self.request(f"botadd {bot_type} {bot_id}")

    async def bot_update(self, bot_type: str, bot_id: int) -> str | None:
        return await self.request(f"botupdate {bot_type} {bot_id}")

    async def bot_delete(self, bot_type: str, bot_id: int) -> str | None:
        return await self.request(f"botdelete {bot_type} {bot_id}")

    async def bot_message(self, bot_type: str, bot_id: int, text: str) -> str | None:
        return await self.request(f"botmsg {bot_type} {bot_id} {text}")
