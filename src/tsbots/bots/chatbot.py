"""Chat bot living in one channel with its own server connection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, ClassVar

from tsbots.bots.base import Bot
from tsbots.bots.models import ChatBotModel
from tsbots.log import get_logger
from tsbots.teamspeak.query import TARGET_CHANNEL, TARGET_CLIENT, QueryError

if TYPE_CHECKING:
    from tsbots.teamspeak.connections import QueryConnection
    from tsbots.teamspeak.models import QueryEvent

logger = get_logger(__name__)

MAX_TEXT_LEN = 256


@dataclass(frozen=True, slots=True)
class Reply:
    text: str
    target_id: int = 0  # 0 = the whole channel
    partner: str | None = None


def reply_to(message: str) -> str | None:
    """Pick a canned answer for a chat line."""
    text = message[:MAX_TEXT_LEN].lower()
    if "help" in text:
        return "I understand also following commands: date"
    if any(word in text for word in ("hi", "hello", "hey")):
        return "Hi my friend. I am a chat bot, tell me something and I try to sound smart."
    if all(word in text for word in ("how", "are", "you")):
        return "I am well, thank you. How are you?"
    if "date" in text:
        return "It is: " + datetime.now().strftime("%A %d %B %Y, %H:%M:%S")
    return None


class ChatBot(Bot):
    bot_type: ClassVar[str] = "ChatBot"
    model_class = ChatBotModel

    model: ChatBotModel

    def __init__(self, store=None):
        super().__init__(store)
        self._reply_queue: list[Reply] = []
        # client id -> greeting; clientmoved is delivered twice by the server
        self._enter_channel_queue: dict[int, Reply] = {}
        self._initial_greet = False
        self._client_id = 0

    def needs_own_connection(self, nickname: str) -> tuple[bool, str]:
        return True, self.model.nickname.strip() or nickname

    async def initialize(self) -> bool:
        self.model.greeting_text = self.model.greeting_text.strip()
        self.model.nickname = self.model.nickname.strip()
        if not self.model.nickname:
            logger.warning("chatbot_nickname_empty", bot_id=self.id)
            self.model.active = False

        self._initial_greet = bool(self.model.greeting_text)

        try:
            self._client_id = await self.connection.client_id()
            if self.model.channel_id:
                await self.connection.client_move(self._client_id, self.model.channel_id)
                logger.debug("chatbot_moved", bot_id=self.id, channel_id=self.model.channel_id)
        except QueryError as e:
            logger.warning(
                "chatbot_move_failed",
                bot_id=self.id,
                channel_id=self.model.channel_id,
                error=str(e),
            )
        return True

    def on_server_event(self, event: QueryEvent, host: QueryConnection) -> None:
        if not self.active:
            return

        if event.type == "cliententerview":
            if event.get_int("ctid") == self.model.channel_id:
                nickname = event.get("client_nickname", "")
                self._reply_queue.append(Reply(text=f"Hello {nickname}!"))

        elif event.type == "clientmoved":
            client_id = event.get_int("clid")
            if (
                self.model.greeting_text
                and client_id != self._client_id
                and event.get_int("ctid") == self.model.channel_id
            ):
                self._enter_channel_queue[client_id] = Reply(text=self.model.greeting_text)

        elif event.type == "textmessage":
            source = event.get_int("invokerid")
            target = event.get_int("target")
            # skip our own echoes
            if source == target or source == self._client_id:
                return
            answer = reply_to(event.get("msg", "") or "")
            if answer is not None:
                self._reply_queue.append(Reply(text=answer, partner=event.get("invokername")))

    def on_received_message(self, text: str) -> None:
        self._reply_queue.append(Reply(text=text))

    async def update(self) -> None:
        if not self.active:
            return

        if self._initial_greet:
            self._initial_greet = False
            await self._send(Reply(text=self.model.greeting_text.replace("<nick>", "")))

        self._reply_queue.extend(self._enter_channel_queue.values())
        self._enter_channel_queue = {}

        queue, self._reply_queue = self._reply_queue, []
        for reply in queue:
            await self._send(reply)

    async def _send(self, reply: Reply) -> None:
        prefix = self.model.nickname + (f" -> {reply.partner}" if reply.partner else "")
        text = f"[{prefix}]: {reply.text}"
        try:
            if reply.target_id:
                await self.connection.send_text_message(TARGET_CLIENT, reply.target_id, text)
            else:
                await self.connection.send_text_message(
                    TARGET_CHANNEL, self.model.channel_id, text
                )
        except QueryError as e:
            logger.warning("chatbot_send_failed", bot_id=self.id, error=str(e))
