"""
Bot Command Handlers

General commands that are not tied to a running game.
"""

from telegram import Update
from telegram.ext import ContextTypes

from ..utils.logging_config import log_user_action, get_logger
from .roulette_handlers import game_manager

# Logger setup
logger = get_logger(__name__)


def build_help_text() -> str:
    """Rules text rendered from the active table configuration."""
    config = game_manager.config
    penalty = game_manager.format_amount(config.pass_penalty)
    bonus = game_manager.format_amount(config.bonus_amount)
    if config.turn_timeout_enabled:
        timer_rule = f"• {config.turn_timeout_seconds:g} second timer per turn (auto-shoot on timeout)"
    else:
        timer_rule = "• No turn timer, take your time"

    return (
        "**💀 Bang Gang - Russian Roulette Tipping Game**\n\n"
        "**Commands:**\n"
        "• `/start` - Open a lobby, then start the game\n"
        "• `/join <amount>` - Tip in to join\n"
        "• `/status` - Check game status\n"
        "• `/shoot` - Pull the trigger (your turn)\n"
        f"• `/pass` - Pass your turn (costs {penalty})\n"
        "• `/stop` - Stop the game and refund players\n"
        "• `/games` - Games you are playing in\n\n"
        "**How to Play:**\n"
        "1. Tip any amount to join a game\n"
        "2. Use `/start` when enough players have joined\n"
        "3. Take turns choosing `/shoot` or `/pass`\n"
        "4. Last survivor wins the pot!\n\n"
        "**Rules:**\n"
        f"• Entry tips can be any amount ({config.rake_percent}% house rake)\n"
        f"• Passing costs {penalty} (goes to bonus pool)\n"
        f"• Surviving a shot earns {bonus} from bonus pool\n"
        f"{timer_rule}\n"
        "• Full table passes = forced shoot"
    )


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle the /help command.

    Args:
        update: Telegram update object
        context: Bot context
    """
    user = update.effective_user
    chat_id = update.effective_chat.id

    log_user_action(user.id, "help_command", username=user.username)

    try:
        await context.bot.send_message(chat_id=chat_id, text=build_help_text())
        logger.info(f"Help command processed - user_id={user.id}, chat_id={chat_id}")

    except Exception as e:
        logger.error(f"Error in help command - user_id={user.id}, error={str(e)}")
        await context.bot.send_message(
            chat_id=chat_id,
            text="Sorry, something went wrong. Please try again later."
        )
