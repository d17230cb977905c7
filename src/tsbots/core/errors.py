"""Exception hierarchy of the bot service."""

from __future__ import annotations


class TSBotsError(Exception):
    """Base class for all bot service errors."""


class ConnectFailedError(TSBotsError):
    """A query server connection could not be established."""


class NoTableError(TSBotsError):
    """A bot type has no persistence backing."""


class BotCreateError(TSBotsError):
    """A bot could not be instantiated or loaded."""


class UnknownFieldError(BotCreateError):
    """A stored row carries a field the bot model does not know."""

    def __init__(self, model: str, fields: list[str]):
        self.model = model
        self.fields = fields
        super().__init__(f"Unknown field(s) for {model}: {', '.join(fields)}")


class MalformedRequestError(TSBotsError):
    """A control socket request line could not be parsed."""
