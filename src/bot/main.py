"""Bot process entrypoint."""

from __future__ import annotations

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.types import BotCommand

from src.app import create_app
from src.bot.router import router
from src.config.logging import configure_logging
from src.config.settings import load_settings

logger = logging.getLogger(__name__)

BOT_COMMANDS = [
    BotCommand(command="start", description="What can this bot do?"),
    BotCommand(command="help", description="Show example queries"),
]


async def main() -> None:
    """Run the Telegram bot polling loop."""

    configure_logging()
    settings = load_settings()

    app = create_app(settings)
    if app.pool is not None:
        await app.pool.open(wait=True)

    bot = Bot(token=settings.telegram_bot_token, default=DefaultBotProperties(parse_mode=None))
    dp = Dispatcher()
    dp.include_router(router)

    try:
        await bot.set_my_commands(BOT_COMMANDS)
        logger.info("polling started rate_limit_per_minute=%d", settings.rate_limit_per_minute)
        await dp.start_polling(bot, app=app)
    finally:
        logger.info("shutting down")
        await bot.session.close()
        if app.pool is not None:
            await app.pool.close()


if __name__ == "__main__":
    asyncio.run(main())
