"""Telegram bot entry point."""

from __future__ import annotations

import os
import sys
import time

import structlog

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

logger = structlog.get_logger()


def main():
    from shared.config import get_settings
    from shared.log import configure_logging

    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)

    if not settings.telegram_token:
        logger.warning("telegram_token_not_set", msg="Set TELEGRAM_TOKEN to enable. Sleeping.")
        # Sleep indefinitely so Docker doesn't restart-loop and spam logs
        while True:
            time.sleep(86400)

    from comms.telegram_bot.bot import StudioTelegramBot

    bot = StudioTelegramBot(settings)
    bot.run()


if __name__ == "__main__":
    main()
