"""Bot lifecycle manager: creation, loading, event routing and removal of bots."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tsbots.core.bot_registry import BotRegistry
from tsbots.core.errors import ConnectFailedError, NoTableError
from tsbots.core.types import BotState
from tsbots.log import get_logger
from tsbots.teamspeak.connections import ConnectionPool, QueryConnection

if TYPE_CHECKING:
    from tsbots.bots.base import Bot
    from tsbots.config import QueryServerConfig
    from tsbots.storage.bot_repo import BotStore
    from tsbots.teamspeak.models import QueryEvent

logger = get_logger(__name__)

MIN_POLL_TIMEOUT_MS = 100

_TYPE_CHANNEL = "channel"
_TYPE_CLIENT = "client"


class BotManager:
    """Top-level orchestrator of all bots.

    Owns the bot registry and the connection pool. Everything runs in the
    single service loop: ``update`` ticks every bot once and then polls
    every query connection once.
    """

    def __init__(
        self,
        config: QueryServerConfig,
        pool: ConnectionPool,
        store: BotStore | None = None,
        registry: BotRegistry | None = None,
    ):
        self._config = config
        self._pool = pool
        self._store = store
        self._registry = registry or BotRegistry()
        self._default_connection: QueryConnection | None = None

    @property
    def registry(self) -> BotRegistry:
        return self._registry

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    @property
    def default_connection(self) -> QueryConnection | None:
        return self._default_connection

    async def initialize(self) -> bool:
        """Create the default connection, without it no bot can run."""
        nickname = self._pool.create_unique_nickname(self._config.nickname)
        try:
            self._default_connection = await self._pool.create_connection(
                nickname, self.dispatch_server_event
            )
        except ConnectFailedError as e:
            logger.error("default_connection_failed", nickname=nickname, error=str(e))
            return False
        return True

    def register_bot_type(self, bot_class: type[Bot]) -> bool:
        return self._registry.register_type(bot_class)

    def find_bot(self, bot_type: str, bot_id: int) -> Bot | None:
        return self._registry.find(bot_type, bot_id)

    def add_bot(self, bot: Bot) -> bool:
        if not self._registry.add(bot):
            return False
        bot.state = BotState.ACTIVE
        logger.info("bot_added", bot_type=bot.bot_type, bot_id=bot.id, name=bot.name)
        return True

    async def remove_bot(self, bot: Bot) -> bool:
        """Remove a bot and close its dedicated connection, if it has one."""
        found = self._registry.find(bot.bot_type, bot.id)
        if found is None or not self._registry.remove(found):
            return False
        found.state = BotState.REMOVED
        await self._release_connection(found)
        logger.info("bot_removed", bot_type=found.bot_type, bot_id=found.id)
        return True

    async def _release_connection(self, bot: Bot) -> None:
        if bot.connection is not None and bot.connection is not self._default_connection:
            await self._pool.close_connection(bot.connection)

    async def load_all_bots(self) -> None:
        for bot_class in self._registry.types():
            try:
                ids = await bot_class.get_all_ids(self._store)
            except NoTableError:
                logger.debug("bot_type_not_persisted", bot_type=bot_class.bot_type)
                continue
            except Exception as e:
                logger.warning("bot_ids_failed", bot_type=bot_class.bot_type, error=str(e))
                continue
            for bot_id in ids:
                bot = await self.create_and_load_bot(bot_class, bot_id)
                if bot is not None and not self.add_bot(bot):
                    await self._release_connection(bot)
        logger.info("bots_loaded", bot_count=len(self._registry))

    async def create_and_load_bot(self, bot_class: type[Bot], bot_id: int) -> Bot | None:
        """Create a bot, load its data, give it a connection and initialize it.

        Returns None on any failure; failures are logged, never raised.
        """
        try:
            bot = bot_class.create(self._store)
            if not await bot.load_data(bot_id):
                logger.warning("bot_load_failed", bot_type=bot_class.bot_type, bot_id=bot_id)
                return None
        except Exception as e:
            logger.warning(
                "bot_create_failed",
                bot_type=bot_class.bot_type,
                bot_id=bot_id,
                error=str(e),
            )
            return None
        bot.state = BotState.LOADED

        own, nickname = bot.needs_own_connection(self._config.nickname)
        if own:
            nickname = self._pool.create_unique_nickname(nickname)
            try:
                connection = await self._pool.create_connection(
                    nickname, self.dispatch_server_event
                )
            except ConnectFailedError as e:
                logger.warning(
                    "bot_connection_failed",
                    bot_type=bot.bot_type,
                    bot_id=bot_id,
                    nickname=nickname,
                    error=str(e),
                )
                return None
        elif self._default_connection is not None:
            connection = self._default_connection
        else:
            logger.warning("bot_no_default_connection", bot_type=bot.bot_type, bot_id=bot_id)
            return None

        bot.assign_connection(connection)
        try:
            initialized = await bot.initialize()
        except Exception as e:
            logger.warning(
                "bot_initialize_error", bot_type=bot.bot_type, bot_id=bot_id, error=str(e)
            )
            initialized = False
        if not initialized:
            logger.warning("bot_initialize_failed", bot_type=bot.bot_type, bot_id=bot_id)
            if own:
                await self._pool.close_connection(connection)
            return None

        bot.state = BotState.INITIALIZED
        return bot

    def poll_timeout_ms(self) -> int:
        count = max(1, self._pool.count_connections())
        return max(MIN_POLL_TIMEOUT_MS, int(self._config.poll_interval * 1000 / count))

    async def update(self) -> None:
        """One tick: update every bot once, then poll every connection once."""
        for bot in self._registry.all():
            try:
                await bot.update()
            except Exception as e:
                logger.warning(
                    "bot_update_failed", bot_type=bot.bot_type, bot_id=bot.id, error=str(e)
                )
        await self._pool.poll(self.poll_timeout_ms())

    def dispatch_server_event(
        self, event: QueryEvent, host: QueryConnection, stream_identity: Any
    ) -> None:
        """Route a server notification to the bots pinned to ``stream_identity``."""
        if event.type.startswith(_TYPE_CHANNEL):
            host.reset_channel_list()
        if event.type.startswith(_TYPE_CLIENT):
            host.reset_client_list()

        delivered = False
        for bot in self._registry.all():
            connection = bot.connection
            if connection is None or connection.stream_identity != stream_identity:
                continue
            delivered = True
            try:
                bot.on_server_event(event, host)
            except Exception as e:
                logger.warning(
                    "bot_event_failed",
                    bot_type=bot.bot_type,
                    bot_id=bot.id,
                    event_type=event.type,
                    error=str(e),
                )
        if not delivered:
            logger.debug("server_event_dropped", event_type=event.type, stream=stream_identity)

    # ── notifications from the control socket ───────────────────

    async def notify_bot_add(self, bot_type: str, bot_id: int) -> bool:
        if self.find_bot(bot_type, bot_id) is not None:
            logger.warning("bot_add_duplicate", bot_type=bot_type, bot_id=bot_id)
            return False
        bot_class = self._registry.find_type(bot_type)
        if bot_class is None:
            logger.warning("bot_type_unknown", bot_type=bot_type)
            return False
        # the loose type match may resolve to an already loaded bot
        if self.find_bot(bot_class.bot_type, bot_id) is not None:
            logger.warning("bot_add_duplicate", bot_type=bot_class.bot_type, bot_id=bot_id)
            return False
        bot = await self.create_and_load_bot(bot_class, bot_id)
        if bot is None:
            return False
        if not self.add_bot(bot):
            await self._release_connection(bot)
            return False
        return True

    async def notify_bot_update(self, bot_type: str, bot_id: int) -> bool:
        bot = self.find_bot(bot_type, bot_id)
        if bot is None:
            return False
        bot.state = BotState.LOADED
        try:
            await bot.on_config_update()
        except Exception as e:
            logger.warning("bot_config_update_failed", bot_type=bot_type, bot_id=bot_id, error=str(e))
            return False
        finally:
            bot.state = BotState.ACTIVE
        return True

    async def notify_bot_delete(self, bot_type: str, bot_id: int) -> bool:
        bot = self.find_bot(bot_type, bot_id)
        if bot is None:
            return False
        return await self.remove_bot(bot)

    async def notify_bot_message(self, bot_type: str, bot_id: int, text: str) -> bool:
        bot = self.find_bot(bot_type, bot_id)
        if bot is None:
            return False
        try:
            bot.on_received_message(text)
        except Exception as e:
            logger.warning("bot_message_failed", bot_type=bot_type, bot_id=bot_id, error=str(e))
            return False
        return True

    async def shutdown(self) -> None:
        for bot in self._registry.all():
            bot.state = BotState.SHUTTING_DOWN
            try:
                await bot.on_shutdown()
            except Exception as e:
                logger.warning(
                    "bot_shutdown_failed", bot_type=bot.bot_type, bot_id=bot.id, error=str(e)
                )
            bot.state = BotState.REMOVED
        self._registry.clear()
        await self._pool.shutdown()
        self._default_connection = None
        logger.info("bot_manager_shutdown")
