"""
Bang Gang Roulette Bot Package

This package contains the Telegram roulette tipping game:
- Command handlers for chat interactions
- The game manager and pooled-economy engine
- Configuration and logging utilities
"""

__version__ = "1.0.0"

# Package imports for easier access
from .main import main
from .utils.config import get_settings

__all__ = ["main", "get_settings"]
