"""
ProxyLogger — Per-Server Discord Activity Logs for a Game Proxy
================================================================
Relays player activity (join/leave, chat, commands) reported by a game
proxy into Discord.  Every backend server behind the proxy gets its own
category holding three log channels, provisioned on demand and
re-verified on a timer.

Package layout::

    proxylogger/
    ├── config.py          # YAML → dotted-path ConfigStore (+ reload)
    ├── constants.py       # Channel names, topics, embed presentation
    ├── engine/
    │   └── events.py      # LogEvent, LogCategory, ProvisioningState
    ├── services/
    │   ├── guild_client.py          # Thin async wrapper over discord.Guild
    │   ├── channel_service.py       # ChannelProvisioner (state machine)
    │   ├── reconciliation_service.py # 2-minute reconcile loop
    │   ├── log_router.py            # LogEvent → channel → embed
    │   ├── embeds.py                # Embed builder
    │   └── activity_service.py      # Known servers + activity formatting
    ├── bot/
    │   ├── core.py        # Bot subclass, guild resolution, reload
    │   └── cogs/
    │       ├── admin.py   # /reloadconfig, /logger-status
    │       └── tasks.py   # Scheduled config reload
    └── api/
        ├── main.py        # FastAPI app, runs the bot in its lifespan
        ├── deps.py        # JWT scopes, bot dependency
        └── routes/        # Ingestion + admin endpoints
"""

__version__ = "0.1.0"
