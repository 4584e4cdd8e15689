"""
momentum.bot.__main__ — Entry point for ``python -m momentum.bot``
==================================================================

1. Load .env (secrets).
2. Load config.yaml.
3. Create the engine, ensure tables, seed default settings.
4. Warm the settings cache.
5. Run the bot (blocking).
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from momentum.bot.core import MomentumBot
from momentum.config import load_config
from momentum.database.engine import create_db_engine, init_db
from momentum.engine.cache import ConfigCache

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("momentum")


def main() -> None:
    """Bootstrap and run the Momentum bot."""
    load_dotenv()

    token = os.getenv("DISCORD_TOKEN")
    if not token:
        logger.critical(
            "DISCORD_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)

    cfg = load_config()
    logger.info("Config loaded — Community: %s", cfg.community_name)

    engine = create_db_engine()
    init_db(engine)

    cache = ConfigCache(engine)
    cache.load_all()

    bot = MomentumBot(cfg=cfg, engine=engine, cache=cache)

    logger.info("Starting Momentum bot…")
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
