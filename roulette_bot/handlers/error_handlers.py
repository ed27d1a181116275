"""
Error Handlers

This module handles errors and exceptions that escape the command handlers.
It logs them with context and sends a user-friendly message to the chat.
"""

import traceback
from telegram import Update
from telegram.ext import ContextTypes

from ..utils.logging_config import get_logger
from ..utils.config import is_development

# Logger setup
logger = get_logger(__name__)


def build_error_text(error_message: str) -> str:
    """Detailed text in development, a generic one elsewhere."""
    if is_development():
        return (
            "🐛 **Development Error**\n\n"
            f"An error occurred: `{error_message}`\n\n"
            "This detailed message is only shown in development mode."
        )
    return (
        "⚠️ **Something went wrong**\n\n"
        "I encountered an error while processing your request.\n"
        "Please try again in a few moments."
    )


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle errors that occur during bot operation.

    Args:
        update: Telegram update object (may be None)
        context: Bot context containing error information
    """
    error = context.error
    error_message = str(error) if error else "Unknown error"

    user_id = None
    chat_id = None

    if isinstance(update, Update):
        if update.effective_user:
            user_id = update.effective_user.id
        if update.effective_chat:
            chat_id = update.effective_chat.id

    update_type = type(update).__name__ if update else None
    tb = "".join(traceback.format_exception(type(error), error, error.__traceback__)) if error else None
    logger.error(
        f"Bot error occurred - error_message={error_message}, user_id={user_id}, "
        f"chat_id={chat_id}, update_type={update_type}, traceback={tb}"
    )

    if chat_id:
        try:
            await context.bot.send_message(chat_id=chat_id, text=build_error_text(error_message))

        except Exception as send_error:
            # If we can't even send an error message, log it
            logger.error(
                f"Failed to send error message to user - original_error={error_message}, "
                f"send_error={str(send_error)}, chat_id={chat_id}"
            )
