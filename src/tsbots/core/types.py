"""Shared types and enumerations."""

from __future__ import annotations

from enum import Enum, IntFlag, StrEnum


class NotifyFlag(IntFlag):
    """Notification categories a query connection can register for."""

    SERVER = 1
    CHANNEL = 2
    TEXT_SERVER = 4
    TEXT_CHANNEL = 8
    TEXT_PRIVATE = 16

    # "server" together with "channel" delivers channel events twice
    DEFAULT = CHANNEL | TEXT_CHANNEL | TEXT_PRIVATE


# ServerQuery event names for servernotifyregister
NOTIFY_EVENT_NAMES: dict[NotifyFlag, str] = {
    NotifyFlag.CHANNEL: "channel",
    NotifyFlag.SERVER: "server",
    NotifyFlag.TEXT_SERVER: "textserver",
    NotifyFlag.TEXT_CHANNEL: "textchannel",
    NotifyFlag.TEXT_PRIVATE: "textprivate",
}


class ControlCommand(StrEnum):
    STATUS = "status"
    VERSION = "version"
    STOP = "stop"
    BOT_ADD = "botadd"
    BOT_UPDATE = "botupdate"
    BOT_DELETE = "botdelete"
    BOT_MESSAGE = "botmsg"


BOT_ACTION_COMMANDS = frozenset(
    {
        ControlCommand.BOT_ADD,
        ControlCommand.BOT_UPDATE,
        ControlCommand.BOT_DELETE,
        ControlCommand.BOT_MESSAGE,
    }
)


class BotState(Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    INITIALIZED = "initialized"
    ACTIVE = "active"
    SHUTTING_DOWN = "shutting_down"
    REMOVED = "removed"
