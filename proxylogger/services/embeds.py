"""
proxylogger.services.embeds — Discord embed builder for log events
===================================================================

All embed layout lives here so the router only needs to supply the
event — no presentation concerns.
"""

from __future__ import annotations

import random
from datetime import UTC

import discord

from proxylogger.constants import (
    DIFF_FENCE,
    DIFF_FENCE_DECORATED,
    DIVIDERS,
    FOOTER_TIME_FORMAT,
    JOIN_MARKERS,
)
from proxylogger.engine.events import LogCategory, LogEvent


def is_join(headline: str) -> bool:
    """True when a JOIN_LEAVE headline announces a join rather than a leave."""
    return any(marker in headline for marker in JOIN_MARKERS)


def decorate_detail(detail: str, divider: str | None = None) -> str:
    """Wrap the detail block with the log-details banner and a divider."""
    divider = divider if divider is not None else random.choice(DIVIDERS)
    return "\n✨ " + detail.replace(DIFF_FENCE, DIFF_FENCE_DECORATED) + "\n" + divider


def build_log_embed(
    event: LogEvent,
    icon_url: str | None = None,
    *,
    divider: str | None = None,
) -> discord.Embed:
    """Build the embed posted for *event* in its server's log channel."""
    headline = event.headline
    description = decorate_detail(event.detail, divider)

    if event.category is LogCategory.CHAT:
        title = f"\U0001f4ac {headline}"  # 💬
        color = discord.Color.blue()
    elif event.category is LogCategory.COMMAND:
        title = f"⚡ {headline}"  # ⚡
        color = discord.Color.orange()
        description = "\U0001f527 Command Executed:\n" + description  # 🔧
    elif is_join(headline):
        title = f"\U0001f6aa {headline}"  # 🚪
        color = discord.Color.green()
    else:
        title = f"\U0001f6b6 {headline}"  # 🚶
        color = discord.Color.red()

    embed = discord.Embed(
        title=title[:256],
        description=description[:4096],
        color=color,
        timestamp=event.timestamp,
    )
    embed.set_footer(
        text=(
            f"\U0001f3f0 Server: {event.server_name} • "  # 🏰
            f"⏰ {event.timestamp.astimezone(UTC).strftime(FOOTER_TIME_FORMAT)}"  # ⏰
        ),
        icon_url=icon_url,
    )
    return embed
