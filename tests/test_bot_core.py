"""
tests/test_bot_core.py — Guild Resolution, Core Wiring & Reload
================================================================
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
import yaml

from proxylogger.bot.core import ProxyLoggerBot
from proxylogger.config import load_config
from proxylogger.engine.events import LogCategory, LogEvent, ProvisioningState
from proxylogger.services.activity_service import ActivityFormatter
from proxylogger.services.guild_client import GuildClient


def run_async(coro):
    return asyncio.run(coro)


def _write(path, guild_id="123456789012345678", servers=("lobby",), logger=True):
    path.write_text(yaml.safe_dump({
        "discord": {"bot-token": "tok", "logger-guildid": guild_id, "logger": logger},
        "proxy": {"servers": list(servers)},
    }), encoding="utf-8")


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    monkeypatch.delenv("DISCORD_TOKEN", raising=False)
    path = tmp_path / "config.yml"
    _write(path)
    return path


@pytest.fixture
def bot(config_path):
    return ProxyLoggerBot(load_config(config_path))


# ===========================================================================
# Construction
# ===========================================================================
class TestConstruction:
    def test_builds_with_loaded_config(self, bot):
        assert isinstance(bot.formatter, ActivityFormatter)
        assert bot.activity is None
        assert bot.registry.names() == ["lobby"]
        assert bot.provisioner is None and bot.router is None


# ===========================================================================
# Guild resolution
# ===========================================================================
class TestResolveGuild:
    def test_found(self, bot, monkeypatch):
        guild = SimpleNamespace(id=123456789012345678, name="Logs")
        monkeypatch.setattr(bot, "get_guild", lambda gid: guild if gid == guild.id else None)

        client = bot.resolve_guild()
        assert isinstance(client, GuildClient)
        assert client.guild_id == guild.id

    def test_not_found_warns(self, bot, monkeypatch, caplog):
        monkeypatch.setattr(bot, "get_guild", lambda gid: None)
        with caplog.at_level("WARNING"):
            assert bot.resolve_guild() is None
        assert any("not found" in r.getMessage() for r in caplog.records)

    def test_empty_id_warns(self, config_path, monkeypatch, caplog):
        _write(config_path, guild_id="")
        bot = ProxyLoggerBot(load_config(config_path))
        with caplog.at_level("WARNING"):
            assert bot.resolve_guild() is None
        assert any("No logger guild" in r.getMessage() for r in caplog.records)

    def test_non_numeric_id_warns(self, config_path, caplog):
        _write(config_path, guild_id="my-guild")
        bot = ProxyLoggerBot(load_config(config_path))
        with caplog.at_level("WARNING"):
            assert bot.resolve_guild() is None
        assert any("not a valid snowflake" in r.getMessage() for r in caplog.records)


# ===========================================================================
# Core wiring
# ===========================================================================
class TestCore:
    def test_degraded_core_is_noop(self, bot, monkeypatch):
        monkeypatch.setattr(bot, "resolve_guild", lambda: None)

        async def _inner():
            await bot.build_core()
            task = bot.discover("hub")
            routed = bot.route(LogEvent("lobby", LogCategory.CHAT, "x"))
            return task, routed

        task, routed = run_async(_inner())
        assert task is None and routed is None
        assert bot.reconciler is None
        assert "hub" in bot.registry

    def test_discover_provisions_in_background(self, bot, guild_client, monkeypatch):
        monkeypatch.setattr(bot, "resolve_guild", lambda: guild_client)

        async def _inner():
            await bot.build_core()
            await bot.reconciler.stop()
            await bot.discover("hub")
            state = bot.provisioner.state("hub")
            await bot.teardown_core()
            return state

        assert run_async(_inner()) is ProvisioningState.READY
        assert "hub" in guild_client.create_category_calls

    def test_status(self, bot, guild_client, monkeypatch):
        monkeypatch.setattr(bot, "resolve_guild", lambda: guild_client)
        bot.registry.register("hub")

        async def _inner():
            await bot.build_core()
            await bot.provisioner.ensure_server("lobby")
            status = bot.status_snapshot()
            await bot.teardown_core()
            return status

        status = run_async(_inner())
        assert status["guild_id"] == guild_client.guild_id
        assert status["logging_enabled"] is True
        assert status["reconciling"] is True
        assert status["servers"] == {"hub": "unknown", "lobby": "ready"}

    def test_status_before_ready(self, bot):
        status = bot.status_snapshot()
        assert status["guild_id"] is None
        assert status["reconciling"] is False
        assert status["servers"] == {"lobby": "unknown"}


# ===========================================================================
# Reload
# ===========================================================================
class TestReload:
    def test_reload_rebuilds_core_and_merges_servers(self, bot, config_path, guild_client, monkeypatch):
        monkeypatch.setattr(bot, "resolve_guild", lambda: guild_client)
        bot.registry.register("registered-by-proxy")

        async def _inner():
            await bot.build_core()
            old = bot.provisioner
            await old.ensure_server("lobby")

            _write(config_path, servers=("lobby", "hub"), logger=False)
            await bot.reload()
            new = bot.provisioner
            await bot.reconciler.run_once()
            await bot.teardown_core()
            return old, new

        old, new = run_async(_inner())

        assert new is not old
        assert bot.registry.names() == ["lobby", "registered-by-proxy", "hub"]
        assert bot.config.logging_enabled is False
        # existing category is adopted, not recreated
        assert guild_client.create_category_calls.count("lobby") == 1
        assert "hub" in guild_client.create_category_calls

    def test_token_change_only_warned(self, bot, config_path, monkeypatch, caplog):
        monkeypatch.setattr(bot, "resolve_guild", lambda: None)
        config_path.write_text(yaml.safe_dump({
            "discord": {"bot-token": "other", "logger-guildid": "1"},
        }), encoding="utf-8")

        with caplog.at_level("WARNING"):
            run_async(bot.reload())

        assert any("Bot token changed" in r.getMessage() for r in caplog.records)

    def test_reload_during_category_creation_keeps_one_category(self, bot, guild_client, monkeypatch):
        monkeypatch.setattr(bot, "resolve_guild", lambda: guild_client)

        async def _inner():
            guild_client.gate = asyncio.Event()
            await bot.build_core()
            for _ in range(10):
                await asyncio.sleep(0)
            in_flight = list(guild_client.create_category_calls)

            reload_task = asyncio.create_task(bot.reload())
            await asyncio.sleep(0)
            guild_client.gate.set()
            await reload_task
            await bot.reconciler.run_once()
            await bot.teardown_core()
            return in_flight

        assert run_async(_inner()) == ["lobby"]
        assert guild_client.create_category_calls == ["lobby"]
        assert [c.name for c in guild_client.categories] == ["lobby"]
