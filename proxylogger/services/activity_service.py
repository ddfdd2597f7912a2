"""
proxylogger.services.activity_service — Known Servers & Activity Formatting
============================================================================

The proxy reports two kinds of facts to ProxyLogger:

- which backend servers exist (kept in :class:`ServerRegistry`, the list
  that reconciliation walks), and
- what players do on them (turned into :class:`LogEvent` values by
  :class:`ActivityFormatter`).

Bodies are markdown: a bold headline, then a ```diff block whose ``+``
lines render green in Discord.  Player-supplied text has its backticks
neutralised so it cannot break out of the fence.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass

from proxylogger.engine.events import LogCategory, LogEvent

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Known servers
# ---------------------------------------------------------------------------
class ServerRegistry:
    """Thread-safe, insertion-ordered set of backend server names."""

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._names: dict[str, None] = {}
        self.sync(names)

    def register(self, name: str) -> bool:
        """Add *name*.  Returns True if it was not known before."""
        name = name.strip()
        if not name:
            return False
        with self._lock:
            if name in self._names:
                return False
            self._names[name] = None
        logger.info("Registered backend server %s", name)
        return True

    def sync(self, names: Iterable[str]) -> None:
        """Replace the known set with *names*."""
        cleaned = {n.strip(): None for n in names if n and n.strip()}
        with self._lock:
            self._names = cleaned

    def names(self) -> list[str]:
        with self._lock:
            return list(self._names)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._names

    def __len__(self) -> int:
        with self._lock:
            return len(self._names)


# ---------------------------------------------------------------------------
# Activity formatting
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PlayerInfo:
    """What the proxy knows about a connected player."""
    username: str
    uuid: str
    ip: str | None = None
    version: str | None = None
    brand: str | None = None

    @property
    def client(self) -> str:
        version = self.version or "Unknown"
        brand = (self.brand or "Unknown").upper()
        return f"Version: {version}, Brand: {brand}"

    @property
    def address(self) -> str:
        return self.ip or "Unknown"


def escape_backticks(text: str) -> str:
    return text.replace("```", "'''").replace("`", "'")


def format_duration(seconds: float) -> str:
    total = max(0, int(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}h {minutes}m {secs}s"


def _diff_block(*lines: str) -> str:
    return "```diff\n" + "".join(f"+ {line}\n" for line in lines) + "```"


class ActivityFormatter:
    """Builds log events from player activity.

    Tracks each player's join time (by UUID) so the leave event can
    report how long they were connected.
    """

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._join_times: dict[str, float] = {}

    def join(self, player: PlayerInfo, server: str) -> LogEvent:
        with self._lock:
            self._join_times[player.uuid] = self._clock()
        body = f"**{player.username}** joined\n" + _diff_block(
            f"UUID: {player.uuid}",
            f"IP: {player.address}",
            f"Client: {player.client}",
        )
        return LogEvent(server, LogCategory.JOIN_LEAVE, body)

    def leave(self, player: PlayerInfo, server: str) -> LogEvent:
        now = self._clock()
        with self._lock:
            joined = self._join_times.pop(player.uuid, now)
        body = f"**{player.username}** left\n" + _diff_block(
            f"Time Connected: {format_duration(now - joined)}",
            f"Last Server: {server}",
            f"UUID: {player.uuid}",
            f"IP: {player.address}",
            f"Client: {player.client}",
        )
        return LogEvent(server, LogCategory.JOIN_LEAVE, body)

    def chat(self, player: PlayerInfo, server: str, message: str) -> LogEvent:
        body = f"**{player.username}** in {server}\n" + _diff_block(
            f"Message: {escape_backticks(message)}",
            f"UUID: {player.uuid}",
            f"IP: {player.address}",
            f"Client: {player.client}",
        )
        return LogEvent(server, LogCategory.CHAT, body)

    def command(self, player: PlayerInfo, server: str, command: str) -> LogEvent:
        command = escape_backticks(command.lstrip("/"))
        body = f"**{player.username}** executed command\n" + _diff_block(
            f"Command: /{command}",
            f"Server: {server}",
            f"IP: {player.address}",
            f"UUID: {player.uuid}",
            f"Client: {player.client}",
        )
        return LogEvent(server, LogCategory.COMMAND, body)

    @property
    def online(self) -> int:
        with self._lock:
            return len(self._join_times)
