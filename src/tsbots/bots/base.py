"""Abstract bot interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from tsbots.bots.models import BotModel
from tsbots.core.errors import NoTableError
from tsbots.core.types import BotState
from tsbots.log import get_logger

if TYPE_CHECKING:
    from tsbots.storage.bot_repo import BotStore
    from tsbots.teamspeak.connections import QueryConnection
    from tsbots.teamspeak.models import QueryEvent

logger = get_logger(__name__)


class Bot(ABC):
    """Base class for all bot types.

    To add a new bot type, subclass this, set ``bot_type`` and
    ``model_class`` and implement ``initialize`` and ``update``.

    ``on_server_event`` may be called many times per tick and must only
    queue work; ``update`` runs exactly once per tick and is the place for
    I/O. The server is known to deliver some notifications twice, so state
    changes should be collected in a keyed queue and flushed in ``update``.
    """

    bot_type: ClassVar[str] = ""
    model_class: ClassVar[type[BotModel]] = BotModel

    def __init__(self, store: BotStore | None = None):
        self._store = store
        self.model = self.model_class()
        self.connection: QueryConnection | None = None
        self.state = BotState.UNLOADED

    @classmethod
    async def get_all_ids(cls, store: BotStore | None) -> list[int]:
        """IDs of all persisted bots of this type.

        Raises ``NoTableError`` if the type has no persistence backing.
        """
        if not cls.model_class.table or store is None:
            raise NoTableError(f"Bot type {cls.bot_type} is not persisted")
        return await store.get_all_ids(cls.model_class.table)

    @classmethod
    def create(cls, store: BotStore | None = None) -> Bot:
        return cls(store)

    @property
    def id(self) -> int:
        return self.model.id

    @property
    def name(self) -> str:
        return self.model.name

    @property
    def active(self) -> bool:
        return self.model.active

    async def load_data(self, bot_id: int) -> bool:
        """Populate the model from storage, False if there is no such bot."""
        if self._store is None or not self.model_class.table:
            return False
        logger.debug("bot_loading", bot_type=self.bot_type, bot_id=bot_id)
        fields = await self._store.get_fields(self.model_class.table, bot_id)
        if fields is None:
            logger.warning("bot_not_found", bot_type=self.bot_type, bot_id=bot_id)
            return False
        self.model = self.model_class.from_row(fields)
        return True

    def assign_connection(self, connection: QueryConnection) -> None:
        self.connection = connection

    def needs_own_connection(self, nickname: str) -> tuple[bool, str]:
        """Whether the bot wants a dedicated connection, and its nickname."""
        return False, nickname

    @abstractmethod
    async def initialize(self) -> bool:
        """Validate and derive runtime state, runs after a connection was assigned."""
        ...

    @abstractmethod
    async def update(self) -> None:
        ...

    def on_server_event(self, event: QueryEvent, host: QueryConnection) -> None:
        pass

    async def on_config_update(self) -> None:
        if self.id > 0:
            logger.debug(
                "bot_config_reloading",
                bot_type=self.bot_type,
                bot_id=self.id,
                name=self.name,
            )
            if await self.load_data(self.id):
                await self.initialize()
        else:
            logger.warning("bot_config_update_unloaded", bot_type=self.bot_type)

    def on_received_message(self, text: str) -> None:
        pass

    async def on_shutdown(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} type={self.bot_type!r} id={self.id} name={self.name!r}>"
