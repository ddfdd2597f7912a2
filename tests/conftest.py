"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of proxylogger.api.deps which
# validates the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import asyncio  # noqa: E402
import itertools  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import discord  # noqa: E402
import pytest  # noqa: E402

from proxylogger.services.activity_service import ServerRegistry  # noqa: E402
from proxylogger.services.channel_service import ChannelProvisioner  # noqa: E402


def http_error(status: int = 500, text: str = "boom") -> discord.HTTPException:
    """A discord.HTTPException without a real aiohttp response."""
    response = MagicMock(status=status, reason="Error")
    return discord.HTTPException(response, text)


class FakeGuildClient:
    """In-memory stand-in for :class:`GuildClient`.

    Categories and channels are SimpleNamespaces.  ``gate`` (an
    asyncio.Event) holds category creation in flight until set.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1000)
        self.guild_id = 4242
        self.icon_url: str | None = None
        self.categories: list[SimpleNamespace] = []
        self.deleted: set[int] = set()

        self.gate: asyncio.Event | None = None
        self.fail_category = False
        self.fail_channels: set[str] = set()
        self.fail_send = False

        self.create_category_calls: list[str] = []
        self.create_channel_calls: list[tuple[str, str, str]] = []
        self.sent: list[tuple[SimpleNamespace, discord.Embed]] = []

    # --- scenario setup ----------------------------------------------------
    def add_category(self, name: str, channel_names=()) -> SimpleNamespace:
        category = SimpleNamespace(id=next(self._ids), name=name, channels=[])
        for channel_name in channel_names:
            self._add_channel(category, channel_name, "pre-existing")
        self.categories.append(category)
        return category

    def _add_channel(self, category, name: str, topic: str) -> SimpleNamespace:
        channel = SimpleNamespace(id=next(self._ids), name=name, topic=topic, category=category)
        category.channels.append(channel)
        return channel

    def delete_channel(self, channel) -> None:
        self.deleted.add(channel.id)
        channel.category.channels.remove(channel)

    def delete_category(self, category) -> None:
        """Discord orphans the channels of a deleted category."""
        self.deleted.add(category.id)
        self.categories.remove(category)
        for channel in category.channels:
            channel.category = None

    # --- GuildClient surface -----------------------------------------------
    def find_category(self, name: str):
        for category in self.categories:
            if category.name.casefold() == name.casefold():
                return category
        return None

    async def create_category(self, name: str):
        self.create_category_calls.append(name)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_category:
            raise http_error(403, "Missing Permissions")
        return self.add_category(name)

    def list_channels(self, category) -> list:
        return list(category.channels)

    def find_channel(self, category, name: str):
        for channel in category.channels:
            if channel.name.casefold() == name.casefold():
                return channel
        return None

    async def create_channel(self, category, name: str, topic: str):
        self.create_channel_calls.append((category.name, name, topic))
        if name in self.fail_channels:
            raise http_error(429, "rate limited")
        return self._add_channel(category, name, topic)

    def is_alive(self, channel, category_name: str | None = None) -> bool:
        if channel is None or channel.id in self.deleted:
            return False
        if category_name is None:
            return True
        parent = channel.category
        return parent is not None and parent.name.casefold() == category_name.casefold()

    async def send_embed(self, channel, embed: discord.Embed):
        if self.fail_send:
            raise http_error(500, "send failed")
        self.sent.append((channel, embed))


@pytest.fixture
def guild_client() -> FakeGuildClient:
    return FakeGuildClient()


@pytest.fixture
def registry() -> ServerRegistry:
    return ServerRegistry(["lobby"])


@pytest.fixture
def provisioner(guild_client, registry) -> ChannelProvisioner:
    return ChannelProvisioner(guild_client, registry.names)
