"""
proxylogger.engine.events — LogEvent, LogCategory and ProvisioningState
========================================================================

The event envelope that flows from the activity source to the router,
plus the per-server provisioning states tracked by the channel service.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime

__all__ = ["LogCategory", "LogEvent", "ProvisioningState"]


class LogCategory(enum.StrEnum):
    """Which of a server's three log channels an event belongs in."""
    CHAT = "chat"
    COMMAND = "command"
    JOIN_LEAVE = "join_leave"


class ProvisioningState(enum.StrEnum):
    """Lifecycle of one backend server's category.

    ``UNKNOWN`` is implicit: a name absent from every tracking set.
    """
    UNKNOWN = "unknown"
    CREATING = "creating"
    READY = "ready"


@dataclass(frozen=True, slots=True)
class LogEvent:
    """One rendered activity line destined for a server's log channel.

    ``rendered_body`` is markdown: the first line is the headline, the
    rest is the detail block (usually a ```diff fence).
    """

    server_name: str
    category: LogCategory
    rendered_body: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def headline(self) -> str:
        return self.rendered_body.split("\n", 1)[0]

    @property
    def detail(self) -> str:
        parts = self.rendered_body.split("\n", 1)
        return parts[1] if len(parts) > 1 else ""
