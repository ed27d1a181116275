"""
Bang Gang Bot Main Application

This is the main entry point for the Bang Gang roulette Telegram bot.
It sets up handlers and the command menu, then starts polling.
"""

import asyncio
import sys
from typing import Optional

from telegram import Update, BotCommand
from telegram.ext import Application, CommandHandler

from .handlers.command_handlers import help_command
from .handlers.roulette_handlers import (
    game_manager, start_command, join_command, shoot_command, pass_command,
    status_command, stop_command, games_command,
)
from .handlers.error_handlers import error_handler
from .utils.config import get_settings
from .utils.logging_config import setup_logging, get_logger

# Setup logging first
setup_logging()
logger = get_logger(__name__)

BOT_COMMANDS = [
    BotCommand("start", "Start a new Bang Gang game"),
    BotCommand("join", "Tip in to join the game"),
    BotCommand("status", "Check current game status"),
    BotCommand("shoot", "Pull the trigger (your turn)"),
    BotCommand("pass", "Pass your turn (costs a penalty)"),
    BotCommand("stop", "Stop the current game and refund players"),
    BotCommand("games", "List games you are playing in"),
    BotCommand("help", "Get help with bot commands"),
]


class RouletteBot:
    """
    Main Bang Gang bot application class.

    This handles the bot lifecycle:
    - Handler registration
    - Command menu setup
    - Application startup and shutdown
    """

    def __init__(self):
        """Initialize the bot application."""
        self.settings = get_settings()
        self.application: Optional[Application] = None

    async def setup_bot_commands(self) -> None:
        """Publish the command menu shown when users type '/'."""
        if not self.application:
            raise RuntimeError("Application not initialized")

        try:
            await self.application.bot.set_my_commands(BOT_COMMANDS)
            bot_info = await self.application.bot.get_me()
            logger.info(f"Bot username: @{bot_info.username}")
            logger.info(f"Bot commands menu configured with {len(BOT_COMMANDS)} commands")

        except Exception as e:
            logger.error(f"Failed to set bot commands: {e}")
            # Not critical for bot operation

    def setup_handlers(self) -> None:
        """Register all bot command handlers."""
        if not self.application:
            raise RuntimeError("Application not initialized")

        logger.info("Setting up bot handlers...")

        command_handlers = [
            CommandHandler("start", start_command),
            CommandHandler("join", join_command),
            CommandHandler("status", status_command),
            CommandHandler("shoot", shoot_command),
            CommandHandler("pass", pass_command),
            CommandHandler("stop", stop_command),
            CommandHandler("games", games_command),
            CommandHandler("help", help_command),
        ]

        for handler in command_handlers:
            self.application.add_handler(handler)

        self.application.add_error_handler(error_handler)

        config = game_manager.config
        logger.info("All handlers registered successfully")
        logger.info(
            f"Table rules: {config.min_players}-{config.max_players} players, "
            f"{config.rake_percent}% rake, {config.chambers} chambers, "
            f"turn timer {'on' if config.turn_timeout_enabled else 'off'}"
        )

    async def cleanup(self) -> None:
        """Cancel pending turn timers and stop the application."""
        try:
            logger.info("Shutting down Bang Gang Bot...")

            for channel_id in list(game_manager.games):
                game_manager.end_game(channel_id)

            if self.application:
                if self.application.updater and self.application.updater.running:
                    await self.application.updater.stop()
                if self.application.running:
                    await self.application.stop()
                await self.application.shutdown()

            logger.info("Bot shutdown complete")

        except Exception as e:
            logger.error(f"Error during cleanup: {e}")


async def main() -> None:
    """
    Main entry point for the Bang Gang bot.

    This function creates and starts the bot application,
    handling any startup errors gracefully.
    """
    bot = RouletteBot()

    try:
        logger.info("Starting Bang Gang Bot")

        bot.application = (
            Application.builder()
            .token(bot.settings.telegram_bot_token)
            .build()
        )

        await bot.application.initialize()
        await bot.setup_bot_commands()
        bot.setup_handlers()

        logger.info("Bot initialization complete, starting polling...")
        await bot.application.start()
        await bot.application.updater.start_polling(
            allowed_updates=Update.ALL_TYPES,
            drop_pending_updates=True
        )

        # Keep running until interrupted
        try:
            await asyncio.Event().wait()
        except (KeyboardInterrupt, SystemExit, asyncio.CancelledError):
            logger.info("Received shutdown signal")
        finally:
            await bot.cleanup()

    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
    except Exception as e:
        logger.error(f"Unexpected error in main: {e}")
        sys.exit(1)


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nBot stopped by user")
    except Exception as e:
        print(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
