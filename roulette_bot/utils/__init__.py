"""
Utilities Package

Shared helpers used across the bot:
- Environment-driven configuration
- Logging setup and event helpers
- Currency amount formatting
"""
