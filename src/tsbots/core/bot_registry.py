"""Registry of bot types and live bot instances."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tsbots.log import get_logger

if TYPE_CHECKING:
    from tsbots.bots.base import Bot

logger = get_logger(__name__)


class BotRegistry:
    """Tracks registered bot types and all live bots.

    Live bots are kept in insertion order and are unique by (type, id).
    """

    def __init__(self) -> None:
        self._types: dict[str, type[Bot]] = {}
        self._bots: list[Bot] = []

    # ── bot types ───────────────────────────────────────────────

    def register_type(self, bot_class: type[Bot]) -> bool:
        path = f"{bot_class.__module__}.{bot_class.__qualname__}"
        if path in self._types:
            return False
        self._types[path] = bot_class
        logger.info("bot_type_registered", bot_type=bot_class.bot_type, path=path)
        return True

    def find_type(self, bot_type: str) -> type[Bot] | None:
        """Resolve a bot type name to its registered class.

        Loose match: the first registered class whose qualified path
        contains ``bot_type`` wins.
        """
        for path, bot_class in self._types.items():
            if bot_type in path:
                return bot_class
        return None

    def types(self) -> list[type[Bot]]:
        return list(self._types.values())

    # ── bot instances ───────────────────────────────────────────

    def add(self, bot: Bot) -> bool:
        if self.find(bot.bot_type, bot.id) is not None:
            logger.warning("bot_already_exists", bot_type=bot.bot_type, bot_id=bot.id)
            return False
        self._bots.append(bot)
        return True

    def remove(self, bot: Bot) -> bool:
        found = self.find(bot.bot_type, bot.id)
        if found is None:
            return False
        self._bots.remove(found)
        return True

    def find(self, bot_type: str, bot_id: int) -> Bot | None:
        for bot in self._bots:
            if bot.bot_type == bot_type and bot.id == bot_id:
                return bot
        return None

    def all(self) -> list[Bot]:
        return list(self._bots)

    def clear(self) -> None:
        self._bots = []

    def __len__(self) -> int:
        return len(self._bots)
