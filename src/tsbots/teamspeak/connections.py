"""Pool of persistent ServerQuery connections."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol
from urllib.parse import quote

from tsbots.config import QueryServerConfig
from tsbots.core.errors import ConnectFailedError
from tsbots.core.types import NOTIFY_EVENT_NAMES, NotifyFlag
from tsbots.log import get_logger
from tsbots.teamspeak.models import QueryEvent
from tsbots.teamspeak.query import QueryClient

logger = get_logger(__name__)


class QueryConnection(Protocol):
    """What the pool and the bots need from a query session."""

    stream_identity: Any
    last_activity: float

    def subscribe(self, signal: str, callback: Callable[..., Any]) -> None: ...

    async def register_notifications(self, category: str) -> None: ...

    async def wait_for_event(self, timeout: float) -> QueryEvent | None: ...

    async def keepalive(self) -> None: ...

    async def quit(self) -> None: ...

    def reset_channel_list(self) -> None: ...

    def reset_client_list(self) -> None: ...

    async def client_id(self) -> int: ...

    async def client_move(self, client_id: int, channel_id: int) -> None: ...

    async def send_text_message(self, target_mode: int, target: int, msg: str) -> None: ...


EventCallback = Callable[[QueryEvent, QueryConnection, Any], None]
Connector = Callable[[str], Awaitable[QueryConnection]]


@dataclass
class Connection:
    nickname: str
    client: QueryConnection
    callback: EventCallback | None
    keepalive_due: bool = False

    @property
    def stream_identity(self) -> Any:
        return self.client.stream_identity


class ConnectionPool:
    """Owns all query server connections and pumps their notifications.

    Each connection is tagged with the stream identity of its session;
    inbound notifications are handed to the callback registered for the
    connection which produced them.
    """

    def __init__(self, config: QueryServerConfig, connector: Connector | None = None):
        self._config = config
        self._connector = connector or self._connect
        self._connections: list[Connection] = []
        # nicknames are never released while the pool lives
        self._nicknames: set[str] = set()

    async def _connect(self, uri: str) -> QueryConnection:
        return await QueryClient.connect(uri, timeout=self._config.connect_timeout)

    def _build_uri(self, nickname: str) -> str:
        cfg = self._config
        return (
            f"serverquery://{quote(cfg.username, safe='')}:{quote(cfg.password, safe='')}"
            f"@{cfg.host}:{cfg.port}/?server_port={cfg.virtual_server_port}"
            f"&nickname={nickname}"
        )

    def create_unique_nickname(self, wished: str) -> str:
        nickname = wished
        suffix = 0
        while nickname in self._nicknames:
            suffix += 1
            nickname = f"{wished}{suffix}"
        self._nicknames.add(nickname)
        return nickname

    async def create_connection(
        self,
        nickname: str,
        callback: EventCallback | None,
        flags: NotifyFlag = NotifyFlag.DEFAULT,
    ) -> QueryConnection:
        """Open a new connection, register it for ``flags`` and add it to the pool.

        Raises ``ConnectFailedError``; a failed connection is never added.
        """
        nick = quote(nickname.strip(), safe="")
        if not nick:
            raise ConnectFailedError("Invalid (empty) nickname")

        logger.debug("query_connecting", host=self._config.host, nickname=nickname)
        client: QueryConnection | None = None
        try:
            client = await self._connector(self._build_uri(nick))
            categories = [name for flag, name in NOTIFY_EVENT_NAMES.items() if flag in flags]
            for category in categories:
                await client.register_notifications(category)
        except Exception as e:
            if client is not None:
                await self._quit(client)
            raise ConnectFailedError(
                f"Could not connect to query server as {nickname!r}: {e}"
            ) from e

        connection = Connection(nickname=nickname, client=client, callback=callback)
        client.subscribe("event", lambda event, host: self._dispatch(connection, event, host))
        client.subscribe("wait_timeout", lambda host: self._check_idle(connection))
        self._connections.append(connection)
        logger.info(
            "query_connection_added",
            nickname=nickname,
            stream=client.stream_identity,
            notify=categories,
        )
        return client

    def _dispatch(self, connection: Connection, event: QueryEvent, host: QueryConnection) -> None:
        if connection.callback is not None:
            connection.callback(event, host, connection.stream_identity)

    def _check_idle(self, connection: Connection) -> None:
        idle = time.monotonic() - connection.client.last_activity
        if idle > self._config.keepalive_interval:
            connection.keepalive_due = True

    def find(self, stream_identity: Any) -> Connection | None:
        for connection in self._connections:
            if connection.stream_identity == stream_identity:
                return connection
        return None

    async def close_connection(self, client: QueryConnection) -> bool:
        """Quit one connection and drop it from the pool."""
        connection = self.find(client.stream_identity)
        if connection is None:
            return False
        self._connections.remove(connection)
        await self._quit(client)
        logger.info("query_connection_closed", nickname=connection.nickname)
        return True

    def count_connections(self) -> int:
        return len(self._connections)

    async def poll(self, timeout_ms: int) -> None:
        """Drain pending notifications of every connection once, then keep idle ones alive.

        A wait timeout on an idle connection marks it for keep-alive, as
        does a drain that hit the per-poll event limit.
        """
        if not self._connections:
            await asyncio.sleep(timeout_ms / 1000)
            return

        timeout = timeout_ms / 1000
        for connection in list(self._connections):
            client = connection.client
            try:
                for _ in range(self._config.max_events_per_poll):
                    if await client.wait_for_event(timeout) is None:
                        break
                else:
                    self._check_idle(connection)
                if connection.keepalive_due:
                    connection.keepalive_due = False
                    logger.debug("query_keepalive", stream=connection.stream_identity)
                    await client.keepalive()
            except Exception as e:
                logger.warning(
                    "query_poll_failed",
                    nickname=connection.nickname,
                    stream=connection.stream_identity,
                    error=str(e),
                )

    async def _quit(self, client: QueryConnection) -> None:
        try:
            await client.quit()
        except Exception as e:
            logger.warning("query_quit_failed", stream=client.stream_identity, error=str(e))

    async def shutdown(self) -> None:
        logger.debug("connection_pool_shutdown", connections=len(self._connections))
        for connection in self._connections:
            await self._quit(connection.client)
        self._connections = []
        self._nicknames.clear()
