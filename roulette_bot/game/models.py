"""
Roulette Game Models

In-memory records for the Bang Gang roulette table: players, the per-channel
game aggregate, the immutable table configuration, and the settlement a
finished game hands back to the chat layer. Nothing here is persisted;
games live for the lifetime of the process.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional


class GameState(Enum):
    """Lifecycle of a game. Transitions only move forward."""
    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"


class PlayerAction(Enum):
    """Actions available to the turn holder."""
    SHOOT = "shoot"
    PASS = "pass"


class SettlementReason(Enum):
    """Why a game paid out."""
    WINNER = "winner"
    SAFE_SHOT_LIMIT = "safe_shot_limit"
    DURATION_LIMIT = "duration_limit"
    STOPPED = "stopped"


class GameConfig(NamedTuple):
    """
    Table rules shared by every game of a manager.

    Amounts are integers in the smallest currency unit.
    """
    min_players: int = 2
    max_players: int = 6
    rake_percent: int = 10
    pass_penalty: int = 150000000000000
    bonus_amount: int = 150000000000000
    turn_timeout_seconds: float = 10
    turn_timeout_enabled: bool = False
    chambers: int = 6
    bullets: int = 1
    max_safe_shots: int = 18
    max_game_duration_minutes: float = 30
    currency_decimals: int = 18
    currency_symbol: str = "ETH"

    @classmethod
    def from_settings(cls, settings) -> "GameConfig":
        """Build a config from environment Settings."""
        return cls(
            min_players=settings.min_players,
            max_players=settings.max_players,
            rake_percent=settings.rake_percent,
            pass_penalty=settings.pass_penalty,
            bonus_amount=settings.bonus_amount,
            turn_timeout_seconds=settings.turn_timeout_seconds,
            turn_timeout_enabled=settings.turn_timeout_enabled,
            chambers=settings.chambers,
            max_safe_shots=settings.max_safe_shots,
            max_game_duration_minutes=settings.max_game_duration_minutes,
            currency_decimals=settings.currency_decimals,
            currency_symbol=settings.currency_symbol,
        )

    def validate(self) -> "GameConfig":
        """
        Check the rules are playable.

        Returns:
            GameConfig: self, for chaining

        Raises:
            ValueError: On the first inconsistent setting
        """
        if self.min_players < 2:
            raise ValueError("min_players must be at least 2")
        if self.max_players < self.min_players:
            raise ValueError("max_players must not be below min_players")
        if not 0 <= self.rake_percent <= 100:
            raise ValueError("rake_percent must be between 0 and 100")
        if self.chambers < 1:
            raise ValueError("chambers must be at least 1")
        # The chamber model tracks a single bullet position
        if self.bullets != 1:
            raise ValueError("only single-bullet revolvers are supported")
        if self.pass_penalty < 0 or self.bonus_amount < 0:
            raise ValueError("pass_penalty and bonus_amount must be non-negative")
        if self.max_safe_shots < 1:
            raise ValueError("max_safe_shots must be at least 1")
        if self.max_game_duration_minutes <= 0:
            raise ValueError("max_game_duration_minutes must be positive")
        if self.turn_timeout_seconds <= 0:
            raise ValueError("turn_timeout_seconds must be positive")
        return self


class Player:
    """A seat at the table, created when the player's entry tip arrives."""

    def __init__(self, identity: str, display_label: str, entry_amount: int):
        self.identity = identity
        self.display_label = display_label or identity
        self.entry_amount = entry_amount
        self.is_alive = True

    def eliminate(self) -> None:
        """Mark the player dead. Players are never revived."""
        self.is_alive = False

    def matches(self, identity: str) -> bool:
        """Case-insensitive identity comparison."""
        return self.identity.lower() == str(identity).lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "display_label": self.display_label,
            "is_alive": self.is_alive,
            "entry_amount": self.entry_amount,
        }

    def __repr__(self) -> str:
        return f"Player({self.identity!r}, alive={self.is_alive})"


class Settlement:
    """
    Payouts recorded when a game finishes.

    The core never moves funds; the chat layer pays each identity in
    ``payouts``. Equal-split remainders are forfeited and reported in
    ``forfeited``.
    """

    def __init__(self, reason: SettlementReason, payouts: Dict[str, int], forfeited: int = 0):
        self.reason = reason
        self.payouts = payouts
        self.forfeited = forfeited

    @property
    def total_paid(self) -> int:
        return sum(self.payouts.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reason": self.reason.value,
            "payouts": dict(self.payouts),
            "forfeited": self.forfeited,
        }


class Game:
    """
    One roulette table, keyed by the channel it is played in.

    ``players`` is the canonical join-ordered list. ``alive_players`` is
    recomputed from it on every read, so the two can never diverge.
    ``current_turn_index`` indexes into ``alive_players``.
    """

    def __init__(self, channel_id: str, space_id: str, bullet_position: int = 0):
        self.id: str = f"game-{uuid.uuid4()}"
        self.channel_id = channel_id
        self.space_id = space_id
        self.state = GameState.WAITING
        self.players: List[Player] = []
        self.current_turn_index = 0

        # Economy
        self.pool_a = 0
        self.pool_b = 0
        self.house_rake = 0

        # Revolver
        self.chamber_position = 0
        self.bullet_position = bullet_position

        # Anti-stall bookkeeping
        self.consecutive_passes = 0
        self.forced_shoot = False
        self.consecutive_safe_shots = 0
        self.turn_number = 0  # actions processed, used to spot stale timers

        self.created_at: datetime = datetime.now(timezone.utc)
        self.last_elimination_time: Optional[datetime] = None
        self.turn_started_at: Optional[datetime] = None
        self.finished_at: Optional[datetime] = None
        self.turn_timer: Optional[asyncio.Task] = None
        self.settlement: Optional[Settlement] = None

    @property
    def alive_players(self) -> List[Player]:
        return [player for player in self.players if player.is_alive]

    @property
    def current_player(self) -> Optional[Player]:
        """The turn holder, or None outside an active rotation."""
        alive = self.alive_players
        if 0 <= self.current_turn_index < len(alive):
            return alive[self.current_turn_index]
        return None

    @property
    def is_active(self) -> bool:
        return self.state == GameState.ACTIVE

    def find_player(self, identity: str) -> Optional[Player]:
        for player in self.players:
            if player.matches(identity):
                return player
        return None

    def has_participant(self, name: str) -> bool:
        """
        Check whether ``name`` matches a player's display label, falling
        back to the raw identity. Comparison is case-insensitive.
        """
        normalized = (name or "").strip().lower()
        if not normalized:
            return False
        for player in self.players:
            label = (player.display_label or "").strip().lower()
            if label and label == normalized:
                return True
            if player.identity.lower() == normalized:
                return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot of the game for the chat layer."""
        current = self.current_player if self.is_active else None
        return {
            "game_id": self.id,
            "channel_id": self.channel_id,
            "space_id": self.space_id,
            "state": self.state.value,
            "players": [player.to_dict() for player in self.players],
            "alive_count": len(self.alive_players),
            "current_turn": current.identity if current else None,
            "pool_a": self.pool_a,
            "pool_b": self.pool_b,
            "house_rake": self.house_rake,
            "chamber_position": self.chamber_position,
            "consecutive_passes": self.consecutive_passes,
            "forced_shoot": self.forced_shoot,
            "consecutive_safe_shots": self.consecutive_safe_shots,
            "created_at": self.created_at.isoformat(),
            "settlement": self.settlement.to_dict() if self.settlement else None,
        }

    def __repr__(self) -> str:
        return f"Game({self.id!r}, channel={self.channel_id!r}, state={self.state.value})"


class ActionResult:
    """
    Outcome of a player-facing manager call.

    Failed results carry the GameError that caused them; the chat layer
    decides how to render ``message``.
    """

    def __init__(
        self,
        success: bool,
        message: str,
        game: Optional[Game] = None,
        error: Optional[Exception] = None,
        settlement: Optional[Settlement] = None,
    ):
        self.success = success
        self.message = message
        self.game = game
        self.error = error
        self.settlement = settlement

    @classmethod
    def failure(cls, error: Exception) -> "ActionResult":
        return cls(False, str(error), error=error)

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "error": type(self.error).__name__ if self.error else None,
            "settlement": self.settlement.to_dict() if self.settlement else None,
        }

    def __repr__(self) -> str:
        return f"ActionResult(success={self.success}, message={self.message!r})"
