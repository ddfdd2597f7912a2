"""
proxylogger.bot.__main__ — Entry point for ``python -m proxylogger.bot``
=========================================================================

Wiring:
1. Configure logging.
2. Load .env (secrets) and config.yml.
3. Refuse to start without a bot token.
4. Serve the API with uvicorn; its lifespan starts the Discord bot on
   the same event loop (see :mod:`proxylogger.api.main`).
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from dotenv import load_dotenv

from proxylogger.config import load_config

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("proxylogger")


def main() -> None:
    """Bootstrap and run ProxyLogger."""
    load_dotenv()

    cfg = load_config()
    if not cfg.bot_token:
        logger.critical(
            "No Discord bot token.  Set DISCORD_TOKEN in .env "
            "or discord.bot-token in %s.", cfg.path,
        )
        sys.exit(1)

    logger.info("Starting ProxyLogger on %s:%d…", cfg.api_host, cfg.api_port)
    try:
        uvicorn.run(
            "proxylogger.api.main:app",
            host=cfg.api_host,
            port=cfg.api_port,
            log_config=None,
        )
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
