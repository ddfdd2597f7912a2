"""
proxylogger.services.log_router — LogEvent → Channel Dispatch
==============================================================

Picks the destination channel for a :class:`LogEvent` and posts its
embed in the background.

Drops are silent on purpose: while the proxy is starting, activity
routinely arrives for servers whose channels are still being created.
Delivery is best effort — a failed send is discarded, never retried.
"""

from __future__ import annotations

import asyncio
import logging

import discord

from proxylogger.engine.events import LogEvent
from proxylogger.services.channel_service import ChannelProvisioner
from proxylogger.services.embeds import build_log_embed
from proxylogger.services.guild_client import GuildClient

logger = logging.getLogger(__name__)


class LogRouter:
    """Routes events to the channel sets owned by a :class:`ChannelProvisioner`."""

    def __init__(self, provisioner: ChannelProvisioner, client: GuildClient | None) -> None:
        self.provisioner = provisioner
        self.client = client
        self._tasks: set[asyncio.Task] = set()

    def resolve(self, event: LogEvent) -> discord.TextChannel | None:
        """Destination channel for *event*, or ``None`` if it should be dropped."""
        if self.client is None or not event.server_name:
            return None
        channel_set = self.provisioner.channels_for(event.server_name)
        if channel_set is None:
            return None
        return channel_set.for_category(event.category)

    def route(self, event: LogEvent) -> asyncio.Task | None:
        """Post *event* to its channel without waiting for delivery.

        Returns the delivery task, or ``None`` when the event was dropped.
        Must be called from within the running event loop.
        """
        channel = self.resolve(event)
        if channel is None:
            return None

        embed = build_log_embed(event, self.client.icon_url if self.client else None)
        task = asyncio.get_running_loop().create_task(
            self._deliver(channel, embed), name=f"log:{event.server_name}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver(self, channel: discord.TextChannel, embed: discord.Embed) -> None:
        assert self.client is not None
        try:
            await self.client.send_embed(channel, embed)
        except Exception as exc:
            logger.debug("Dropped log embed for channel %s: %s", getattr(channel, "id", "?"), exc)
