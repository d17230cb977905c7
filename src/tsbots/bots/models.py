"""Typed persistence models of the bot types."""

from __future__ import annotations

from typing import Any, ClassVar, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError

from tsbots.core.errors import UnknownFieldError


class BotModel(BaseModel):
    """Fields shared by every persisted bot.

    ``table`` names the storage table (without prefix); an empty name
    means the bot type is not persisted.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    table: ClassVar[str] = ""

    id: int = 0
    name: str = ""
    description: str = ""
    active: bool = False

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> BotModel:
        try:
            return cls.model_validate(dict(row))
        except ValidationError as e:
            unknown = [
                ".".join(str(p) for p in err["loc"])
                for err in e.errors()
                if err["type"] == "extra_forbidden"
            ]
            if unknown:
                raise UnknownFieldError(cls.__name__, unknown) from e
            raise

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(exclude={"id"})


class GreetingBotModel(BotModel):
    table: ClassVar[str] = "greetingbot"

    greeting_text: str = ""


class ChatBotModel(BotModel):
    table: ClassVar[str] = "chatbot"

    nickname: str = ""
    channel_id: int = 0
    greeting_text: str = ""
