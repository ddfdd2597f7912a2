"""
proxylogger.bot.cogs.tasks — Periodic Background Tasks
========================================================

- **Config reload** — re-reads ``config.yml`` every
  ``reload.interval-minutes`` (default 30) so toggles like
  ``discord.logger`` apply without a restart.  Only the config is
  refreshed here; rebuilding the channel core is ``/reloadconfig``'s job.

Channel reconciliation is not a cog loop: it belongs to the core and is
restarted with it (see :mod:`proxylogger.services.reconciliation_service`).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord.ext import commands, tasks

if TYPE_CHECKING:
    from proxylogger.bot.core import ProxyLoggerBot

logger = logging.getLogger(__name__)


class PeriodicTasks(commands.Cog):
    """Cog for scheduled maintenance tasks."""

    def __init__(self, bot: ProxyLoggerBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        self.config_reload_loop.change_interval(minutes=self.bot.config.reload_interval_minutes)
        self.config_reload_loop.start()

    async def cog_unload(self) -> None:
        self.config_reload_loop.cancel()

    @tasks.loop(minutes=30)
    async def config_reload_loop(self):
        """Re-read the config file; the first iteration is startup, skip it."""
        if self.config_reload_loop.current_loop == 0:
            return
        applied = self.bot.config.reload()
        if applied:
            self.bot.registry.sync([*self.bot.registry.names(), *self.bot.config.servers])

    @config_reload_loop.before_loop
    async def _wait_config_reload(self):
        await self.bot.wait_until_ready()


async def setup(bot: ProxyLoggerBot) -> None:
    await bot.add_cog(PeriodicTasks(bot))
