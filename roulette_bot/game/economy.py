"""
Economy and Chamber Primitives

Pure helpers for the roulette table: splitting entry tips between the
house and the winnings pool, equal-split refunds, and the single-bullet
revolver. All money arithmetic is integer-only.
"""

import random
from typing import Tuple

from ..utils.logging_config import get_logger

logger = get_logger(__name__)


def split_entry(amount: int, rake_percent: int) -> Tuple[int, int]:
    """
    Split an entry tip into house rake and the pool A contribution.

    ``rake + net == amount`` for every non-negative amount.

    Args:
        amount: Entry tip in base units
        rake_percent: House share, 10 means 10%

    Returns:
        Tuple: (rake, net)
    """
    if amount < 0:
        raise ValueError("Entry amount must be non-negative")
    rake = amount * rake_percent // 100
    return rake, amount - rake


def equal_split(total: int, count: int) -> Tuple[int, int]:
    """
    Divide ``total`` equally among ``count`` recipients.

    The integer remainder is not distributed.

    Returns:
        Tuple: (share per recipient, forfeited remainder)
    """
    if count <= 0:
        return 0, total
    share = total // count
    return share, total - share * count


def draw_bullet_position(chambers: int, rng=random) -> int:
    """Pick the bullet chamber uniformly from ``[0, chambers)``."""
    return rng.randrange(chambers)


def chamber_has_bullet(game) -> bool:
    return game.chamber_position == game.bullet_position


def advance_chamber(game, chambers: int) -> None:
    game.chamber_position = (game.chamber_position + 1) % chambers


def reload_gun(game, chambers: int, rng=random) -> None:
    """Spin a fresh cylinder. Called at start and after every elimination."""
    game.chamber_position = 0
    game.bullet_position = draw_bullet_position(chambers, rng)
    logger.debug(f"Gun reloaded - game_id: {game.id}, chambers: {chambers}")


def death_probability(game, chambers: int) -> float:
    """
    Chance that the next pull kills.

    The bullet was not in any chamber already pulled this cylinder, so
    the odds are one over the chambers still ahead.
    """
    remaining = chambers - game.chamber_position
    if remaining <= 0:
        return 1.0
    return 1 / remaining
