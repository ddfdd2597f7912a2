"""
proxylogger.bot.cogs.admin — Operator Slash Commands
=====================================================

- /reloadconfig — re-read the config and rebuild the channel core
- /logger-status — show each backend server's provisioning state

Both require the Manage Server permission or the configured
``discord.admin-role-id`` role.  Replies are ephemeral.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

if TYPE_CHECKING:
    from proxylogger.bot.core import ProxyLoggerBot

logger = logging.getLogger(__name__)

STATE_ICONS: dict[str, str] = {
    "ready": "\U0001f7e2",     # 🟢
    "creating": "\U0001f7e1",  # 🟡
    "unknown": "⚪",      # ⚪
}


def is_logger_admin():
    """Decorator: Manage Server permission or the configured admin role."""
    async def predicate(interaction: discord.Interaction) -> bool:
        bot: ProxyLoggerBot = interaction.client  # type: ignore[assignment]
        user = interaction.user
        perms = getattr(user, "guild_permissions", None)
        if perms is not None and perms.manage_guild:
            return True
        admin_role_id = bot.config.admin_role_id
        if admin_role_id is None or not hasattr(user, "roles"):
            return False
        return any(role.id == admin_role_id for role in user.roles)
    return app_commands.check(predicate)


class Admin(commands.Cog, name="Admin"):
    """Operator commands for ProxyLogger."""

    def __init__(self, bot: ProxyLoggerBot) -> None:
        self.bot = bot

    @app_commands.command(name="reloadconfig", description="Reload ProxyLogger's config and channels.")
    @is_logger_admin()
    async def reloadconfig(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message("\U0001f504 Reloading Logger...", ephemeral=True)
        try:
            await self.bot.reload()
        except Exception:
            logger.exception("Reload requested by %s failed", interaction.user)
            await interaction.followup.send("❌ Reload failed — check the logs.", ephemeral=True)
            return
        logger.info("Reload requested by %s completed", interaction.user)
        await interaction.followup.send("✅ Logger reloaded successfully!", ephemeral=True)

    @app_commands.command(name="logger-status", description="Show per-server log channel status.")
    @is_logger_admin()
    async def logger_status(self, interaction: discord.Interaction) -> None:
        status = self.bot.status_snapshot()
        lines = [
            f"{STATE_ICONS.get(state, '⚪')} **{name}** — {state}"
            for name, state in status["servers"].items()
        ] or ["No backend servers known yet."]

        embed = discord.Embed(
            title="\U0001f4cb ProxyLogger Status",
            description="\n".join(lines)[:4096],
            color=discord.Color.blurple() if status["guild_id"] else discord.Color.red(),
        )
        embed.add_field(
            name="Logging",
            value="enabled" if status["logging_enabled"] else "disabled",
        )
        embed.add_field(
            name="Guild",
            value=str(status["guild_id"]) if status["guild_id"] else "not resolved",
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        if isinstance(error, app_commands.CheckFailure):
            await interaction.response.send_message(
                "❌ You do not have permission to use this command.", ephemeral=True,
            )
            return
        raise error


async def setup(bot: ProxyLoggerBot) -> None:
    await bot.add_cog(Admin(bot))
