"""
proxylogger.api.main — FastAPI application entry point
========================================================

The HTTP API and the Discord bot share one event loop: the lifespan
loads the config, starts the bot as a background task and closes it on
shutdown.  Provisioning and delivery tasks scheduled by the routes run
on that same loop.

Run with::

    uvicorn proxylogger.api.main:app --port 8765
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from proxylogger.api.routes.admin import router as admin_router  # noqa: E402
from proxylogger.api.routes.ingest import router as ingest_router  # noqa: E402
from proxylogger.bot.core import ProxyLoggerBot  # noqa: E402
from proxylogger.config import load_config  # noqa: E402

logger = logging.getLogger(__name__)


def start_bot(bot: ProxyLoggerBot, token: str) -> asyncio.Task:
    """Run *bot* in the current event loop; returns immediately."""

    async def _run_bot() -> None:
        try:
            await bot.start(token)
        except asyncio.CancelledError:
            logger.info("Discord bot task cancelled")
        except Exception:  # login and gateway errors end the bot, not the API
            logger.exception("Discord bot stopped with an error")
        finally:
            if not bot.is_closed():
                await bot.close()

    return asyncio.create_task(_run_bot(), name="discord-bot")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — load config and run the bot."""
    config = load_config()
    bot = ProxyLoggerBot(config)
    app.state.bot = bot

    bot_task = None
    if config.bot_token:
        bot_task = start_bot(bot, config.bot_token)
        logger.info("ProxyLogger API started — Discord bot connecting")
    else:
        logger.critical("No Discord bot token configured — log relay is disabled")

    yield

    logger.info("ProxyLogger API shutting down")
    if not bot.is_closed():
        await bot.close()
    if bot_task is not None:
        bot_task.cancel()


app = FastAPI(
    title="ProxyLogger API",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(ingest_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
