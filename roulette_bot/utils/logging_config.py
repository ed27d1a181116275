"""
Logging Configuration

This module sets up logging for the application and provides helpers
for recording user commands and game lifecycle events.
"""

import logging
import sys

from .config import get_settings


def setup_logging() -> None:
    """
    Set up basic logging configuration.

    This function configures standard logging for the application.
    """
    settings = get_settings()

    # Configure standard logging
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Set specific logger levels
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("telegram").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info("Logging configuration initialized")


def get_logger(name: str):
    """
    Get a configured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        logging.Logger: Configured logger instance
    """
    return logging.getLogger(name)


def log_user_action(user_id, action: str, **kwargs) -> None:
    """
    Log user commands for audit.

    Args:
        user_id: Chat user identity
        action: Action description
        **kwargs: Additional context data
    """
    logger = get_logger("user_actions")
    extra_info = " ".join([f"{k}={v}" for k, v in kwargs.items()])
    logger.debug(f"User action: user_id={user_id} action={action} {extra_info}")


def log_game_event(game_id: str, event_type: str, **kwargs) -> None:
    """
    Log game lifecycle events (joins, shots, payouts, refunds).

    Args:
        game_id: Unique game identifier
        event_type: Type of game event
        **kwargs: Additional event data
    """
    logger = get_logger("game_events")
    extra_info = " ".join([f"{k}={v}" for k, v in kwargs.items()])
    logger.info(f"Game event: game_id={game_id} event_type={event_type} {extra_info}")


class GameLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every record with the game it belongs to."""

    def process(self, msg, kwargs):
        return f"[{self.extra['game_id']}] {msg}", kwargs


def get_game_logger(name: str, game_id: str) -> GameLoggerAdapter:
    """
    Get a logger bound to one game.

    Args:
        name: Logger name (usually __name__)
        game_id: Game the records belong to

    Returns:
        GameLoggerAdapter: Logger that tags each message with the game id
    """
    return GameLoggerAdapter(get_logger(name), {"game_id": game_id})
