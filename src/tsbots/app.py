"""Application orchestrator - wires all components and runs the service loop."""

from __future__ import annotations

import asyncio
import importlib

from tsbots.bots.base import Bot
from tsbots.config import AppConfig
from tsbots.core.errors import ConnectFailedError
from tsbots.core.manager import BotManager
from tsbots.log import get_logger
from tsbots.service.control_server import ControlServer
from tsbots.storage.bot_repo import BotStore
from tsbots.storage.database import Database
from tsbots.teamspeak.connections import ConnectionPool

logger = get_logger(__name__)


def resolve_bot_class(name: str) -> type[Bot]:
    """Map a configured bot type to its class.

    Built-in types are referenced by name, others as ``package.module:Class``.
    """
    match name:
        case "GreetingBot":
            from tsbots.bots.greeting import GreetingBot

            return GreetingBot
        case "ChatBot":
            from tsbots.bots.chatbot import ChatBot

            return ChatBot
        case _ if ":" in name:
            module_name, _, class_name = name.partition(":")
            bot_class = getattr(importlib.import_module(module_name), class_name)
            if not (isinstance(bot_class, type) and issubclass(bot_class, Bot)):
                raise ValueError(f"{name} is not a bot class")
            return bot_class
        case _:
            raise ValueError(f"Unknown bot type: {name}")


class BotServiceApp:
    """Top-level application orchestrator."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.db = Database(config.storage.db_path, config.storage.table_prefix)
        self.store = BotStore(self.db)
        self.pool = ConnectionPool(config.query)
        self.manager = BotManager(config.query, self.pool, self.store)
        self.control = ControlServer(config.service, self.manager)
        self._stop_requested = asyncio.Event()

    def request_stop(self) -> None:
        self._stop_requested.set()

    @property
    def stopping(self) -> bool:
        return self._stop_requested.is_set() or self.control.terminate()

    async def start(self) -> None:
        """Initialize and start all components."""
        await self.db.initialize()

        for name in self.config.bot_types:
            self.manager.register_bot_type(resolve_bot_class(name))

        if not await self.manager.initialize():
            raise ConnectFailedError(
                f"Could not connect to query server {self.config.query.host}:{self.config.query.port}"
            )

        await self.manager.load_all_bots()

        if not self.control.initialize():
            logger.warning("control_server_unavailable")

        logger.info(
            "bot_service_started",
            version=self.config.service.version,
            bot_count=len(self.manager.registry),
            connections=self.pool.count_connections(),
        )

    async def tick(self) -> None:
        await self.control.poll()
        await self.manager.update()

    async def run(self) -> None:
        """Run ticks until a stop request arrives."""
        while not self.stopping:
            await self.tick()

    async def stop(self) -> None:
        """Gracefully shut down all components."""
        self.control.shutdown()
        await self.manager.shutdown()
        await self.db.close()
        logger.info("bot_service_stopped")
