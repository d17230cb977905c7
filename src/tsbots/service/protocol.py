"""Codec of the control socket protocol.

Requests are single space separated text lines, responses single line
JSON objects. Both are terminated by a carriage return on the wire.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from tsbots.core.errors import MalformedRequestError
from tsbots.core.types import ControlCommand

TERMINATOR = "\r"


@dataclass(frozen=True, slots=True)
class ControlRequest:
    command: str
    args: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class BotAction:
    bot_type: str
    bot_id: int
    text: str = ""


def decode_request(line: str) -> ControlRequest:
    """Split a request line into command and arguments.

    The message text of ``botmsg`` is kept as one argument, spaces included.
    """
    text = line.strip()
    if not text:
        raise MalformedRequestError("Empty request")
    command, _, rest = text.partition(" ")
    if command == ControlCommand.BOT_MESSAGE:
        args = rest.split(None, 2)
    else:
        args = [a for a in rest.split(" ") if a]
    return ControlRequest(command=command, args=args)


def encode_request(request: ControlRequest) -> str:
    return " ".join([request.command, *request.args])


def parse_bot_action(request: ControlRequest) -> BotAction:
    if len(request.args) < 2:
        raise MalformedRequestError(f"Missing bot type or id: {request.command}")
    bot_type = request.args[0].strip()
    try:
        bot_id = int(request.args[1].strip())
    except ValueError as e:
        raise MalformedRequestError(f"Invalid bot id: {request.args[1]!r}") from e
    text = request.args[2] if len(request.args) > 2 else ""
    return BotAction(bot_type=bot_type, bot_id=bot_id, text=text)


def encode_response(data: dict[str, Any]) -> str:
    return json.dumps(data, separators=(",", ":"))


def decode_response(text: str) -> dict[str, Any]:
    return json.loads(text.strip())


def bot_action_response(action: BotAction, success: bool) -> dict[str, Any]:
    return {
        "result": "ok" if success else "nok",
        "id": action.bot_id,
        "botType": action.bot_type,
    }


def version_response(version: str) -> dict[str, Any]:
    return {"version": version}


def status_response(version: str) -> dict[str, Any]:
    return {"version": version, "status": "up"}


def stop_response() -> dict[str, Any]:
    return {"stop": "ok"}
