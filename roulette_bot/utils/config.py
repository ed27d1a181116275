"""
Configuration Management

This module handles all application configuration using environment variables.
Game rules (pool amounts, chamber count, ceilings) are read here too so a
deployment can tune the table without touching code.
"""

import os
from functools import lru_cache
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _read_int(name: str, default: str) -> int:
    """
    Read an integer environment variable.

    Inline comments (``VALUE # note``) are stripped before parsing.

    Raises:
        ValueError: If the value is not a whole number
    """
    raw = os.getenv(name, default)
    try:
        return int(raw.split('#')[0].strip())
    except ValueError as e:
        raise ValueError(f"Invalid {name} value: '{raw}'. Must be a number without comments.") from e


def _read_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).split('#')[0].strip().lower() in ("true", "1", "yes", "on")


class Settings:
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development. Monetary values
    are integers in the smallest currency unit (wei for ETH).
    """

    def __init__(self):
        # Telegram Bot Configuration
        self.telegram_bot_token: str = os.getenv('TELEGRAM_BOT_TOKEN', '')

        # Application Settings
        self.debug: bool = os.getenv('DEBUG', 'false').lower() == 'true'
        self.log_level: str = os.getenv('LOG_LEVEL', 'INFO')
        self.environment: str = os.getenv('ENVIRONMENT', 'development')

        # Table rules
        self.min_players: int = _read_int('MIN_PLAYERS', '2')
        self.max_players: int = _read_int('MAX_PLAYERS', '6')
        self.rake_percent: int = _read_int('RAKE_PERCENT', '10')
        self.pass_penalty: int = _read_int('PASS_PENALTY', '150000000000000')  # 0.00015 ETH
        self.bonus_amount: int = _read_int('BONUS_AMOUNT', '150000000000000')  # 0.00015 ETH
        self.chambers: int = _read_int('CHAMBERS', '6')

        # Turn timer (auto-shoot); off means players must act manually
        self.turn_timeout_seconds: int = _read_int('TURN_TIMEOUT_SECONDS', '10')
        self.turn_timeout_enabled: bool = _read_bool('TURN_TIMEOUT_ENABLED', 'false')

        # Safety ceilings
        self.max_safe_shots: int = _read_int('MAX_SAFE_SHOTS', '18')
        self.max_game_duration_minutes: int = _read_int('MAX_GAME_DURATION_MINUTES', '30')

        # Currency display
        self.currency_decimals: int = _read_int('CURRENCY_DECIMALS', '18')
        self.currency_symbol: str = os.getenv('CURRENCY_SYMBOL', 'ETH')

        # Security Settings
        admin_ids_str = os.getenv('ADMIN_USER_IDS', '')
        self.admin_user_ids: List[int] = []
        if admin_ids_str:
            try:
                self.admin_user_ids = [int(x.strip()) for x in admin_ids_str.split(',') if x.strip()]
            except ValueError:
                self.admin_user_ids = []

        # Optional webhook deployment
        self.telegram_webhook_url: Optional[str] = os.getenv('TELEGRAM_WEBHOOK_URL')


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings with caching.

    Uses LRU cache to avoid reloading settings on every call.
    Cache is cleared when the process restarts.

    Returns:
        Settings: Application configuration settings
    """
    return Settings()


def is_admin_user(user_id: int) -> bool:
    """
    Check if a user ID is in the admin list.

    Args:
        user_id: Telegram user ID to check

    Returns:
        bool: True if user is admin, False otherwise
    """
    settings = get_settings()
    return user_id in settings.admin_user_ids


def is_development() -> bool:
    """
    Check if running in development environment.

    Returns:
        bool: True if in development, False otherwise
    """
    settings = get_settings()
    return settings.environment.lower() in ["development", "dev", "local"]


def is_production() -> bool:
    """
    Check if running in production environment.

    Returns:
        bool: True if in production, False otherwise
    """
    settings = get_settings()
    return settings.environment.lower() in ["production", "prod"]
