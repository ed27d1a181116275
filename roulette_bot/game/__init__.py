"""
Game Engine Package

This package contains the roulette game engine:
- Economy and chamber primitives
- Game, player and config models
- The game manager (registry and turn state machine)
- Rule violation errors
"""
