"""
Tests Package

This package contains all test files for the roulette bot:
- Economy and chamber primitives
- Game manager lifecycle and turn protocol
- Turn timer scheduling and cancellation
- Telegram handlers against a dummy bot
- Configuration parsing

Run tests with: pytest tests/
"""
