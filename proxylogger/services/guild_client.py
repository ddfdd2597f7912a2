"""
proxylogger.services.guild_client — Guild Wire Operations
==========================================================

The only place that talks to :class:`discord.Guild` directly.  The
channel service and the router depend on this small surface so they can
be exercised against a fake in tests.

Lookups read discord.py's gateway cache; creations and sends are REST
calls and may raise :class:`discord.HTTPException` (including
``Forbidden`` and rate-limit exhaustion).  Callers decide what a failure
means; nothing here retries.
"""

from __future__ import annotations

import logging

import discord

from proxylogger.constants import AUDIT_REASON

logger = logging.getLogger(__name__)


def _same_name(a: str, b: str) -> bool:
    return a.casefold() == b.casefold()


class GuildClient:
    """Async wrapper around the single target guild."""

    def __init__(self, guild: discord.Guild) -> None:
        self.guild = guild

    @property
    def guild_id(self) -> int:
        return self.guild.id

    @property
    def icon_url(self) -> str | None:
        return self.guild.icon.url if self.guild.icon else None

    # -------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------
    def find_category(self, name: str) -> discord.CategoryChannel | None:
        """First category whose name equals *name*, ignoring case.

        Duplicates resolve to whichever comes first in the guild's
        category order.
        """
        for category in self.guild.categories:
            if _same_name(category.name, name):
                return category
        return None

    async def create_category(self, name: str) -> discord.CategoryChannel:
        return await self.guild.create_category(name, reason=AUDIT_REASON)

    # -------------------------------------------------------------------
    # Channels
    # -------------------------------------------------------------------
    def list_channels(self, category: discord.CategoryChannel) -> list[discord.TextChannel]:
        return list(category.text_channels)

    def find_channel(
        self, category: discord.CategoryChannel, name: str
    ) -> discord.TextChannel | None:
        for channel in self.list_channels(category):
            if _same_name(channel.name, name):
                return channel
        return None

    async def create_channel(
        self, category: discord.CategoryChannel, name: str, topic: str
    ) -> discord.TextChannel:
        return await category.create_text_channel(name, topic=topic, reason=AUDIT_REASON)

    def is_alive(
        self, channel: discord.abc.Snowflake | None, category_name: str | None = None
    ) -> bool:
        """True while the guild cache still knows *channel*.

        With *category_name*, the live channel must also still sit in a
        category of that name (deleting a category orphans its channels
        rather than deleting them).
        """
        if channel is None:
            return False
        live = self.guild.get_channel(channel.id)
        if live is None:
            return False
        if category_name is None:
            return True
        parent = getattr(live, "category", None)
        return parent is not None and _same_name(parent.name, category_name)

    # -------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------
    async def send_embed(
        self, channel: discord.abc.Messageable, embed: discord.Embed
    ) -> discord.Message:
        return await channel.send(embed=embed)
