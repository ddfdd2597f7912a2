"""
proxylogger.api.routes.admin — Reload & status
================================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from proxylogger.api.deps import Admin, get_bot
from proxylogger.bot.core import ProxyLoggerBot

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


@router.post("/reload")
async def reload_logger(admin: Admin, bot: ProxyLoggerBot = Depends(get_bot)):
    """Re-read the config and rebuild the channel core from scratch."""
    if not bot.is_ready():
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Bot is not connected yet")
    logger.info("Reload requested via API by %s", admin.get("sub", "unknown"))
    await bot.reload()
    return bot.status_snapshot()


@router.get("/status")
def logger_status(admin: Admin, bot: ProxyLoggerBot = Depends(get_bot)):
    return bot.status_snapshot()
