"""
proxylogger.bot.core — Bot Instance, Guild Resolution & Reload
===============================================================

:class:`ProxyLoggerBot` is a ``commands.Bot`` subclass that:

1. Stores the shared config (``bot.config``), the known-server registry
   (``bot.registry``) and the activity formatter (``bot.formatter``) so
   cogs and the HTTP API reach them through the bot.
2. Loads the admin and task cogs and syncs the slash-command tree.
3. On ``on_ready``, resolves the logger guild and builds the core:
   :class:`GuildClient` → :class:`ChannelProvisioner` →
   :class:`LogRouter`, then starts the reconciliation loop, whose first
   pass provisions every server the proxy already knows.
4. Supports a full reset-and-rebuild (:meth:`ProxyLoggerBot.reload`)
   for operator-triggered config reloads.

If the guild cannot be resolved the core is still built, but without a
client: every provisioning and routing call is then a no-op.  That
condition is logged once per build.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

import discord
from discord.ext import commands

from proxylogger.config import ConfigStore
from proxylogger.engine.events import LogEvent, ProvisioningState
from proxylogger.services.activity_service import ActivityFormatter, ServerRegistry
from proxylogger.services.channel_service import ChannelProvisioner
from proxylogger.services.guild_client import GuildClient
from proxylogger.services.log_router import LogRouter
from proxylogger.services.reconciliation_service import ReconciliationLoop

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "proxylogger.bot.cogs.admin",
    "proxylogger.bot.cogs.tasks",
]


class ProxyLoggerBot(commands.Bot):
    """Custom Bot subclass that owns the provisioning and routing core.

    Parameters
    ----------
    config:
        The loaded :class:`ConfigStore`.
    """

    def __init__(self, config: ConfigStore) -> None:
        # GUILDS (in default()) keeps categories and channels cached;
        # nothing here reads message content or member lists.
        intents = discord.Intents.default()
        intents.presences = False

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            description="ProxyLogger — per-server activity logs",
        )

        self.config = config
        self.registry = ServerRegistry(config.servers)
        self.formatter = ActivityFormatter()

        # Built in on_ready, rebuilt by reload()
        self.guild_client: GuildClient | None = None
        self.provisioner: ChannelProvisioner | None = None
        self.router: LogRouter | None = None
        self.reconciler: ReconciliationLoop | None = None

        self._started_token = config.bot_token
        self._reload_lock = asyncio.Lock()

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load cog extensions.  One broken cog must not stop the bot."""
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the cache is populated.

        May fire again after a reconnect; the core is only built once.
        """
        assert self.user is not None
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        dev_guild_id = os.getenv("DEV_GUILD_ID")
        if dev_guild_id:
            guild = discord.Object(id=int(dev_guild_id))
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info("Synced %d commands to dev guild %s", len(synced), dev_guild_id)
        else:
            synced = await self.tree.sync()
            logger.info("Synced %d commands globally", len(synced))

        if self.provisioner is None:
            await self.build_core()

    async def close(self) -> None:
        """Graceful shutdown — stop reconciliation and background tasks."""
        logger.info("Bot shutting down…")
        await self.teardown_core()
        await super().close()

    # -----------------------------------------------------------------------
    # Core wiring
    # -----------------------------------------------------------------------
    def resolve_guild(self) -> GuildClient | None:
        """Look up the configured logger guild in the client cache."""
        raw_id = self.config.guild_id
        if not raw_id:
            logger.warning("No logger guild configured — channel provisioning disabled")
            return None
        try:
            guild_id = int(raw_id)
        except ValueError:
            logger.warning(
                "Logger guild id %r is not a valid snowflake — channel provisioning disabled",
                raw_id,
            )
            return None

        guild = self.get_guild(guild_id)
        if guild is None:
            logger.warning(
                "Logger guild %d not found — channel provisioning disabled", guild_id,
            )
            return None
        logger.info("Logging to guild %s (ID: %d)", guild.name, guild.id)
        return GuildClient(guild)

    async def build_core(self) -> None:
        """Create provisioner + router and start reconciliation."""
        self.guild_client = self.resolve_guild()
        self.provisioner = ChannelProvisioner(self.guild_client, self.registry.names)
        self.router = LogRouter(self.provisioner, self.guild_client)

        if self.guild_client is not None:
            self.reconciler = ReconciliationLoop(self.provisioner)
            self.reconciler.start()

    async def teardown_core(self) -> None:
        if self.reconciler is not None:
            await self.reconciler.stop()
            self.reconciler = None
        if self.provisioner is not None:
            await self.provisioner.close()
        self.provisioner = None
        self.router = None
        self.guild_client = None

    async def reload(self) -> None:
        """Tear down and rebuild the core from a freshly read config.

        Servers registered by the proxy since startup stay known; servers
        newly listed in the config are added.  The bot token cannot be
        swapped on a live connection, so a change is only reported.
        """
        async with self._reload_lock:
            logger.info("Reloading ProxyLogger…")
            await self.teardown_core()

            self.config.reload()
            if self.config.bot_token != self._started_token:
                logger.warning("Bot token changed — restart ProxyLogger to apply it")
            self.registry.sync([*self.registry.names(), *self.config.servers])

            await self.build_core()
            logger.info("ProxyLogger config and channels reloaded")

    # -----------------------------------------------------------------------
    # Entry points used by the ingestion API
    # -----------------------------------------------------------------------
    def discover(self, server_name: str) -> asyncio.Task | None:
        """Record a backend server and provision it in the background."""
        self.registry.register(server_name)
        if self.provisioner is None:
            return None
        return self.provisioner.on_server_discovered(server_name)

    def route(self, event: LogEvent) -> asyncio.Task | None:
        if self.router is None:
            return None
        return self.router.route(event)

    def status_snapshot(self) -> dict[str, Any]:
        """Snapshot for ``/logger-status`` and the admin API."""
        states = self.provisioner.snapshot() if self.provisioner else {}
        for name in self.registry.names():
            states.setdefault(name, ProvisioningState.UNKNOWN)
        return {
            "guild_id": self.guild_client.guild_id if self.guild_client else None,
            "logging_enabled": self.config.logging_enabled,
            "reconciling": bool(self.reconciler and self.reconciler.running),
            "servers": {name: str(state) for name, state in sorted(states.items())},
        }
