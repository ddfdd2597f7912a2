"""
proxylogger.services.channel_service — Per-Server Channel Provisioning
=======================================================================

Every backend server behind the proxy owns one Discord category named
after it, holding three text channels: ``chat-logs``, ``commands`` and
``join-leave``.  :class:`ChannelProvisioner` makes that true, exactly
once per server, no matter how often discovery events and the
reconciliation timer ask for it.

State machine (per server name)::

    UNKNOWN ──(no category found)──▶ CREATING ──(channels resolved)──▶ READY
       ▲                                │                                 │
       └────────(creation failed)───────┘                                 │
       └──────────────(stale references found by reconcile)───────────────┘
    UNKNOWN ──(category already exists)──────────────────────────────▶ READY

The tracking sets live in :class:`ProvisioningTracker`.  Its
:meth:`~ProvisioningTracker.try_claim` is the one place where "is anyone
already handling this server?" and "I am handling it now" happen under
the same lock; everything else in this module relies on it.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass

import discord

from proxylogger.constants import (
    CHANNEL_TOPICS,
    CHAT_CHANNEL,
    COMMANDS_CHANNEL,
    DEFAULT_TOPIC,
    JOIN_LEAVE_CHANNEL,
    SERVER_CHANNELS,
)
from proxylogger.engine.events import LogCategory, ProvisioningState
from proxylogger.services.guild_client import GuildClient

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ServerChannelSet:
    """The three log channels of one backend server.

    A ``None`` reference means that channel could not be created; the
    next reconciliation pass retries it.
    """

    server_name: str
    chat: discord.TextChannel | None
    commands: discord.TextChannel | None
    join_leave: discord.TextChannel | None

    def for_category(self, category: LogCategory) -> discord.TextChannel | None:
        if category is LogCategory.CHAT:
            return self.chat
        if category is LogCategory.COMMAND:
            return self.commands
        if category is LogCategory.JOIN_LEAVE:
            return self.join_leave
        return None

    @property
    def channels(self) -> tuple[discord.TextChannel | None, ...]:
        return (self.chat, self.commands, self.join_leave)

    @property
    def complete(self) -> bool:
        return all(ch is not None for ch in self.channels)


class ProvisioningTracker:
    """Thread-safe bookkeeping of which servers are claimed, creating or ready.

    ``_claimed`` holds every name with a provisioning attempt in flight
    (whether or not a category is being created); ``_creating`` is the
    subset waiting on a category-creation request.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._claimed: set[str] = set()
        self._creating: set[str] = set()
        self._ready: set[str] = set()
        self._channels: dict[str, ServerChannelSet] = {}

    def try_claim(self, name: str) -> bool:
        """Atomically claim *name* unless it is already in flight or ready."""
        with self._lock:
            if name in self._claimed or name in self._ready:
                return False
            self._claimed.add(name)
            return True

    def mark_creating(self, name: str) -> None:
        with self._lock:
            if name in self._claimed:
                self._creating.add(name)

    def mark_ready(self, name: str, channel_set: ServerChannelSet) -> None:
        with self._lock:
            self._channels[name] = channel_set
            self._ready.add(name)
            self._creating.discard(name)
            self._claimed.discard(name)

    def release(self, name: str) -> None:
        """Drop an in-flight claim; the server returns to UNKNOWN."""
        with self._lock:
            self._creating.discard(name)
            self._claimed.discard(name)

    def invalidate(self, name: str) -> bool:
        """Move a READY server back to UNKNOWN.  Returns False if it wasn't ready."""
        with self._lock:
            if name not in self._ready:
                return False
            self._ready.discard(name)
            self._channels.pop(name, None)
            return True

    def get(self, name: str) -> ServerChannelSet | None:
        with self._lock:
            return self._channels.get(name)

    def ready_sets(self) -> list[ServerChannelSet]:
        with self._lock:
            return [self._channels[name] for name in self._ready if name in self._channels]

    def state(self, name: str) -> ProvisioningState:
        with self._lock:
            if name in self._ready:
                return ProvisioningState.READY
            if name in self._creating:
                return ProvisioningState.CREATING
            return ProvisioningState.UNKNOWN

    def snapshot(self) -> dict[str, ProvisioningState]:
        with self._lock:
            states = {name: ProvisioningState.UNKNOWN for name in self._claimed}
            states.update({name: ProvisioningState.CREATING for name in self._creating})
            states.update({name: ProvisioningState.READY for name in self._ready})
            return states


# ---------------------------------------------------------------------------
# Provisioner
# ---------------------------------------------------------------------------
class ChannelProvisioner:
    """Owns the server → :class:`ServerChannelSet` mapping.

    Parameters
    ----------
    client:
        The target guild, or ``None`` when it could not be resolved.
        Without a guild every operation is a silent no-op.
    server_source:
        Returns the backend server names currently known to the proxy;
        :meth:`reconcile` walks them all.
    """

    def __init__(
        self,
        client: GuildClient | None,
        server_source: Callable[[], Iterable[str]],
    ) -> None:
        self.client = client
        self._server_source = server_source
        self._tracker = ProvisioningTracker()
        self._tasks: set[asyncio.Task] = set()
        self._inflight: set[asyncio.Task] = set()

    @property
    def available(self) -> bool:
        return self.client is not None

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------
    def channels_for(self, server_name: str) -> ServerChannelSet | None:
        return self._tracker.get(server_name)

    def state(self, server_name: str) -> ProvisioningState:
        return self._tracker.state(server_name)

    def snapshot(self) -> dict[str, ProvisioningState]:
        """State of every known or tracked server, for status displays."""
        states = {name: ProvisioningState.UNKNOWN for name in self._server_source()}
        states.update(self._tracker.snapshot())
        return states

    # -------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------
    def on_server_discovered(self, server_name: str) -> asyncio.Task | None:
        """Provision *server_name* in the background.  Never blocks.

        Must be called from within the running event loop.  Returns the
        scheduled task, or ``None`` in degraded mode.
        """
        if self.client is None or not server_name:
            return None
        task = asyncio.get_running_loop().create_task(
            self.ensure_server(server_name), name=f"provision:{server_name}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def ensure_server(self, server_name: str) -> ProvisioningState:
        """Make sure *server_name* has its category and three channels.

        No-op (returns the current state) when another attempt is in
        flight or the server is already READY.

        The work runs in its own task.  Cancelling the caller does not
        cancel it: a creation request may already have reached Discord,
        and abandoning it would let the next attempt create a second
        category.  :meth:`close` waits for these tasks.
        """
        if self.client is None or not server_name:
            return ProvisioningState.UNKNOWN

        if not self._tracker.try_claim(server_name):
            return self._tracker.state(server_name)

        try:
            category = self.client.find_category(server_name)
        except Exception:
            self._tracker.release(server_name)
            logger.warning("Failed to look up category for %s", server_name, exc_info=True)
            return ProvisioningState.UNKNOWN
        if category is None:
            self._tracker.mark_creating(server_name)

        task = asyncio.get_running_loop().create_task(
            self._run_claimed(server_name, category), name=f"provision:{server_name}",
        )
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return await asyncio.shield(task)

    async def _run_claimed(
        self, server_name: str, category: discord.CategoryChannel | None
    ) -> ProvisioningState:
        try:
            channel_set = await self._provision(server_name, category)
        except asyncio.CancelledError:
            self._tracker.release(server_name)
            raise
        except discord.HTTPException as exc:
            self._tracker.release(server_name)
            logger.warning("Failed to provision category for %s: %s", server_name, exc)
            return ProvisioningState.UNKNOWN
        except Exception:
            self._tracker.release(server_name)
            logger.warning("Failed to provision category for %s", server_name, exc_info=True)
            return ProvisioningState.UNKNOWN

        self._tracker.mark_ready(server_name, channel_set)
        return ProvisioningState.READY

    async def reconcile(self) -> dict:
        """Re-assert the desired layout for every known server.

        READY servers whose stored channels vanished (or were never
        created) drop back to UNKNOWN first, so the same pass rebuilds
        them.  Healthy READY servers are left alone.

        Returns ``{"checked": N, "healed": [...], "ready": M}``.
        """
        if self.client is None:
            return {"checked": 0, "healed": [], "ready": 0}

        healed = self._invalidate_stale()

        # dict.fromkeys de-duplicates while keeping proxy order
        names = [name for name in dict.fromkeys(self._server_source()) if name]
        results = await asyncio.gather(*(self.ensure_server(name) for name in names))

        ready = sum(1 for state in results if state is ProvisioningState.READY)
        if healed:
            logger.info("Reconciliation re-provisioned stale servers: %s", ", ".join(healed))
        logger.debug("Reconciliation pass: %d servers checked, %d ready", len(names), ready)
        return {"checked": len(names), "healed": healed, "ready": ready}

    async def close(self) -> None:
        """Cancel pending discovery callers and wait for in-flight provisioning.

        Provisioning itself is never cancelled here; once it settles the
        guild holds whatever it created, so a rebuilt provisioner finds
        those categories instead of creating them again.
        """
        callers = list(self._tasks)
        for task in callers:
            task.cancel()
        pending = callers + list(self._inflight)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _invalidate_stale(self) -> list[str]:
        assert self.client is not None
        stale: list[str] = []
        for channel_set in self._tracker.ready_sets():
            name = channel_set.server_name
            if all(self.client.is_alive(ch, name) for ch in channel_set.channels):
                continue
            if self._tracker.invalidate(name):
                stale.append(name)
        return stale

    async def _provision(
        self, server_name: str, category: discord.CategoryChannel | None
    ) -> ServerChannelSet:
        assert self.client is not None
        if category is None:
            category = await self.client.create_category(server_name)
            logger.info("Created category %s", server_name)

        channel_set = ServerChannelSet(
            server_name=server_name,
            chat=await self._get_or_create_channel(category, CHAT_CHANNEL),
            commands=await self._get_or_create_channel(category, COMMANDS_CHANNEL),
            join_leave=await self._get_or_create_channel(category, JOIN_LEAVE_CHANNEL),
        )
        if channel_set.complete:
            logger.info("Channels ready for server %s", server_name)
        else:
            missing = [
                name for name, ch in zip(SERVER_CHANNELS, channel_set.channels) if ch is None
            ]
            logger.warning(
                "Server %s is partially provisioned, missing: %s",
                server_name, ", ".join(missing),
            )
        return channel_set

    async def _get_or_create_channel(
        self, category: discord.CategoryChannel, name: str
    ) -> discord.TextChannel | None:
        assert self.client is not None
        existing = self.client.find_channel(category, name)
        if existing is not None:
            return existing

        try:
            channel = await self.client.create_channel(
                category, name, CHANNEL_TOPICS.get(name, DEFAULT_TOPIC),
            )
        except discord.HTTPException as exc:
            logger.warning("Failed to create #%s in %s: %s", name, category.name, exc)
            return None
        logger.info("Created #%s in category %s", name, category.name)
        return channel
