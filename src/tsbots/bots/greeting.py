"""Bot greeting every client that connects to the server."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from tsbots.bots.base import Bot
from tsbots.bots.models import GreetingBotModel
from tsbots.log import get_logger
from tsbots.teamspeak.query import TARGET_CLIENT

if TYPE_CHECKING:
    from tsbots.teamspeak.connections import QueryConnection
    from tsbots.teamspeak.models import QueryEvent

logger = get_logger(__name__)

NICK_PLACEHOLDER = "<nick>"


class GreetingBot(Bot):
    bot_type: ClassVar[str] = "GreetingBot"
    model_class = GreetingBotModel

    model: GreetingBotModel

    def __init__(self, store=None):
        super().__init__(store)
        # client id -> nickname, keyed so duplicate notifications greet once
        self._pending: dict[int, str] = {}

    async def initialize(self) -> bool:
        self.model.greeting_text = self.model.greeting_text.strip()
        if not self.model.greeting_text:
            logger.warning("greeting_text_empty", bot_id=self.id)
            self.model.active = False
        return True

    def on_server_event(self, event: QueryEvent, host: QueryConnection) -> None:
        if not self.active or event.type != "cliententerview":
            return
        client_id = event.get_int("clid")
        if client_id:
            self._pending[client_id] = event.get("client_nickname", "") or ""

    def on_received_message(self, text: str) -> None:
        logger.info("greeting_bot_message", bot_id=self.id, text=text)

    async def update(self) -> None:
        if not self.active or not self._pending:
            self._pending.clear()
            return
        pending, self._pending = self._pending, {}
        for client_id, nickname in pending.items():
            text = self.model.greeting_text.replace(NICK_PLACEHOLDER, nickname)
            try:
                await self.connection.send_text_message(TARGET_CLIENT, client_id, text)
            except Exception as e:
                logger.debug("greeting_failed", client_id=client_id, error=str(e))
