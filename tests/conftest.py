"""Shared fakes for the query transport and bots."""

from __future__ import annotations

import itertools
import time
from collections import deque
from typing import Any, Callable

import pytest

from tsbots.bots.base import Bot
from tsbots.bots.models import BotModel
from tsbots.config import QueryServerConfig
from tsbots.core.manager import BotManager
from tsbots.teamspeak.connections import ConnectionPool
from tsbots.teamspeak.models import QueryEvent

_streams = itertools.count(1)


class FakeQueryClient:
    """In-memory stand-in for a ServerQuery session."""

    def __init__(self, uri: str = ""):
        self.uri = uri
        self.stream_identity = f"stream-{next(_streams)}"
        self.last_activity = time.monotonic()
        self.pending: deque[QueryEvent] = deque()
        self.registered: list[str] = []
        self.sent: list[tuple[int, int, str]] = []
        self.moves: list[tuple[int, int]] = []
        self.keepalives = 0
        self.quit_called = False
        self.channel_resets = 0
        self.client_resets = 0
        self.fail_wait = False
        self.fail_register = False
        self.fail_quit = False
        self.my_client_id = 42
        self._subscribers: dict[str, list[Callable[..., Any]]] = {}

    def subscribe(self, signal: str, callback: Callable[..., Any]) -> None:
        self._subscribers.setdefault(signal, []).append(callback)

    def push(self, event_type: str, **data: Any) -> None:
        self.pending.append(QueryEvent(type=event_type, data={k: str(v) for k, v in data.items()}))

    async def register_notifications(self, category: str) -> None:
        if self.fail_register:
            raise ConnectionError("register failed")
        self.registered.append(category)

    async def wait_for_event(self, timeout: float) -> QueryEvent | None:
        if self.fail_wait:
            raise ConnectionError("connection lost")
        if not self.pending:
            for callback in self._subscribers.get("wait_timeout", []):
                callback(self)
            return None
        event = self.pending.popleft()
        for callback in self._subscribers.get("event", []):
            callback(event, self)
        return event

    async def keepalive(self) -> None:
        self.keepalives += 1
        self.last_activity = time.monotonic()

    async def quit(self) -> None:
        self.quit_called = True
        if self.fail_quit:
            raise ConnectionError("already gone")

    def reset_channel_list(self) -> None:
        self.channel_resets += 1

    def reset_client_list(self) -> None:
        self.client_resets += 1

    async def client_id(self) -> int:
        return self.my_client_id

    async def client_move(self, client_id: int, channel_id: int) -> None:
        self.moves.append((client_id, channel_id))

    async def send_text_message(self, target_mode: int, target: int, msg: str) -> None:
        self.sent.append((target_mode, target, msg))


class FakeConnector:
    def __init__(self) -> None:
        self.uris: list[str] = []
        self.clients: list[FakeQueryClient] = []
        self.fail = False
        self.fail_register = False

    async def __call__(self, uri: str) -> FakeQueryClient:
        self.uris.append(uri)
        if self.fail:
            raise ConnectionRefusedError("connection refused")
        client = FakeQueryClient(uri)
        client.fail_register = self.fail_register
        self.clients.append(client)
        return client


class FakeBot(Bot):
    """Bot without persistence, loading simply takes over the requested id."""

    bot_type = "FakeBot"
    own_nickname: str | None = None
    init_result = True

    def __init__(self, store=None, bot_id: int = 0):
        super().__init__(store)
        self.model = BotModel(id=bot_id, name=f"fake-{bot_id}", active=True)
        self.events: list[QueryEvent] = []
        self.messages: list[str] = []
        self.updates = 0
        self.config_updates = 0
        self.shutdowns = 0
        self.journal: list[str] | None = None

    async def load_data(self, bot_id: int) -> bool:
        self.model = BotModel(id=bot_id, name=f"fake-{bot_id}", active=True)
        return True

    def needs_own_connection(self, nickname: str) -> tuple[bool, str]:
        if self.own_nickname is None:
            return False, nickname
        return True, self.own_nickname

    async def initialize(self) -> bool:
        return self.init_result

    async def update(self) -> None:
        self.updates += 1
        if self.journal is not None:
            self.journal.append(f"update:{self.id}")

    def on_server_event(self, event, host) -> None:
        self.events.append(event)

    async def on_config_update(self) -> None:
        self.config_updates += 1

    def on_received_message(self, text: str) -> None:
        self.messages.append(text)

    async def on_shutdown(self) -> None:
        self.shutdowns += 1
        if self.journal is not None:
            self.journal.append(f"shutdown:{self.id}")


class FakeGreetingBot(FakeBot):
    bot_type = "GreetingBot"


class FakeOwnConnectionBot(FakeBot):
    bot_type = "OwnConnectionBot"
    own_nickname = "Chatty"


@pytest.fixture
def query_config() -> QueryServerConfig:
    return QueryServerConfig(nickname="TestBots", poll_interval=1.0, keepalive_interval=60)


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def pool(query_config: QueryServerConfig, connector: FakeConnector) -> ConnectionPool:
    return ConnectionPool(query_config, connector=connector)


@pytest.fixture
def manager(query_config: QueryServerConfig, pool: ConnectionPool) -> BotManager:
    return BotManager(query_config, pool)
