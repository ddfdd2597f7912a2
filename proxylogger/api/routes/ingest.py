"""
proxylogger.api.routes.ingest — Server registration & player activity
======================================================================

Called by the proxy plugin.  Everything here answers ``202 Accepted``
right away: provisioning and Discord delivery happen in background
tasks, and an event for a server whose channels are not ready yet is
dropped without error.
"""

from __future__ import annotations

import enum
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from proxylogger.api.deps import IngestClient, get_bot
from proxylogger.bot.core import ProxyLoggerBot
from proxylogger.services.activity_service import PlayerInfo

router = APIRouter(tags=["ingest"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ServerRegistration(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class ServerSync(BaseModel):
    names: list[str] = Field(default_factory=list)


class PlayerPayload(BaseModel):
    username: str = Field(min_length=1)
    uuid: str = Field(min_length=1)
    ip: str | None = None
    version: str | None = None
    brand: str | None = None


class ActivityPayload(BaseModel):
    server: str = Field(min_length=1, max_length=100)
    player: PlayerPayload
    message: str | None = None  # chat
    command: str | None = None  # command


class ActivityKind(enum.StrEnum):
    JOIN = "join"
    LEAVE = "leave"
    CHAT = "chat"
    COMMAND = "command"


# ---------------------------------------------------------------------------
# Servers
# ---------------------------------------------------------------------------
@router.post("/servers", status_code=status.HTTP_202_ACCEPTED)
async def register_server(
    body: ServerRegistration,
    client: IngestClient,
    bot: ProxyLoggerBot = Depends(get_bot),
):
    """A backend server registered with the proxy."""
    name = body.name.strip()
    new = name not in bot.registry
    bot.discover(name)
    return {"server": name, "new": new}


@router.put("/servers", status_code=status.HTTP_202_ACCEPTED)
async def sync_servers(
    body: ServerSync,
    client: IngestClient,
    bot: ProxyLoggerBot = Depends(get_bot),
):
    """Replace the known server list (sent by the proxy on startup)."""
    bot.registry.sync(body.names)
    names = bot.registry.names()
    for name in names:
        bot.discover(name)
    logger.info("Server list synced from proxy: %d servers", len(names))
    return {"servers": names}


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------
@router.post("/activity/{kind}", status_code=status.HTTP_202_ACCEPTED)
async def record_activity(
    kind: ActivityKind,
    body: ActivityPayload,
    client: IngestClient,
    bot: ProxyLoggerBot = Depends(get_bot),
):
    """Format one player action and route it to its server's channel."""
    if kind is ActivityKind.CHAT and body.message is None:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, "chat requires 'message'")
    if kind is ActivityKind.COMMAND and body.command is None:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, "command requires 'command'")

    if not bot.config.logging_enabled:
        return {"accepted": False}

    player = PlayerInfo(**body.player.model_dump())
    server = body.server.strip()
    if kind is ActivityKind.JOIN:
        event = bot.formatter.join(player, server)
    elif kind is ActivityKind.LEAVE:
        event = bot.formatter.leave(player, server)
    elif kind is ActivityKind.CHAT:
        event = bot.formatter.chat(player, server, body.message)
    else:
        event = bot.formatter.command(player, server, body.command)

    bot.route(event)
    return {"accepted": True}
