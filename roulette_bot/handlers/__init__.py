"""
Bot Handlers Package

This package contains all bot command handlers:
- Roulette game commands (/start, /join, /shoot, /pass, /stop, ...)
- General commands (/help)
- Error handlers for exception management
"""
