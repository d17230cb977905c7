"""Value objects exchanged with the ServerQuery interface."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class QueryEvent:
    """A server-originated notification.

    ``type`` is the notification name without its ``notify`` prefix,
    e.g. ``cliententerview`` or ``textmessage``.
    """

    type: str
    data: dict[str, str] = field(default_factory=dict)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.data.get(key, default)

    def get_int(self, key: str, default: int = 0) -> int:
        try:
            return int(self.data[key])
        except (KeyError, ValueError):
            return default


@dataclass(frozen=True, slots=True)
class QueryResponse:
    records: list[dict[str, str]] = field(default_factory=list)
    error_id: int = 0
    message: str = "ok"

    @property
    def first(self) -> dict[str, str]:
        return self.records[0] if self.records else {}
