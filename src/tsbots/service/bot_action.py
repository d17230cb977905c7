"""Bot related control requests: add, update, delete and message bots."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable

from tsbots.core.types import ControlCommand
from tsbots.log import get_logger
from tsbots.service.protocol import (
    BotAction,
    ControlRequest,
    bot_action_response,
    parse_bot_action,
)

if TYPE_CHECKING:
    from tsbots.core.manager import BotManager

logger = get_logger(__name__)


class BotActionHandler:
    """Dispatches bot action requests to the bot manager."""

    def __init__(self, manager: BotManager):
        self._manager = manager
        self._commands: dict[str, Callable[[BotAction], Awaitable[bool]]] = {
            ControlCommand.BOT_ADD: lambda a: manager.notify_bot_add(a.bot_type, a.bot_id),
            ControlCommand.BOT_UPDATE: lambda a: manager.notify_bot_update(a.bot_type, a.bot_id),
            ControlCommand.BOT_DELETE: lambda a: manager.notify_bot_delete(a.bot_type, a.bot_id),
            ControlCommand.BOT_MESSAGE: lambda a: manager.notify_bot_message(
                a.bot_type, a.bot_id, a.text
            ),
        }

    def handles(self, request: ControlRequest) -> bool:
        return request.command in self._commands

    async def handle(self, request: ControlRequest) -> dict[str, Any]:
        """Run a bot action. Raises ``MalformedRequestError`` for bad arguments."""
        action = parse_bot_action(request)
        success = await self._commands[request.command](action)
        logger.debug(
            "bot_action_handled",
            command=request.command,
            bot_type=action.bot_type,
            bot_id=action.bot_id,
            success=success,
        )
        return bot_action_response(action, success)
