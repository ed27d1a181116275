"""
Game Manager

This module owns every roulette table in the process, one per channel.
It is the only component that creates, mutates and removes games:
player admission from entry tips, game start, the shoot/pass turn
protocol with its anti-stall rules, safety ceilings, and refunds.
"""

import asyncio
import inspect
import random
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from .economy import (
    advance_chamber,
    chamber_has_bullet,
    death_probability,
    draw_bullet_position,
    equal_split,
    reload_gun,
    split_entry,
)
from .errors import (
    CapacityError,
    ConflictError,
    DuplicateError,
    EliminatedError,
    ForcedShootError,
    GameError,
    InsufficientPlayersError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
    TurnError,
)
from .models import (
    ActionResult,
    Game,
    GameConfig,
    GameState,
    Player,
    PlayerAction,
    Settlement,
    SettlementReason,
)
from ..utils.config import get_settings
from ..utils.formatting import format_amount, mention_list
from ..utils.logging_config import get_game_logger, get_logger, log_game_event

# Logger setup
logger = get_logger(__name__)

# Called once per state transition with the game and a chat-ready message.
# May be a plain function or a coroutine function.
TransitionCallback = Callable[[Game, str], Any]


class GameManager:
    """
    Registry and state machine for roulette games.

    Games are keyed by channel. Actions on one channel are serialized
    with a per-channel asyncio lock; different channels are independent.
    Player-facing calls never raise rule violations, they return a
    failed ActionResult instead.
    """

    def __init__(self, config: Optional[GameConfig] = None, rng=None):
        """
        Initialize the game manager.

        Args:
            config: Table rules, read from the environment when omitted
            rng: Source with ``randrange``, the ``random`` module by default
        """
        if config is None:
            config = GameConfig.from_settings(get_settings())
        self.config = config.validate()
        self.rng = rng or random
        self.games: Dict[str, Game] = {}  # channel_id -> game
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}  # channel_id -> tasks holding or awaiting the lock

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def create_game(self, channel_id: str, space_id: str = "") -> Game:
        """
        Open a new table in a channel.

        An empty waiting lobby in the same channel is replaced.

        Raises:
            ConflictError: If a game is already active in the channel, or
                a waiting lobby already holds entries (stop it first so
                they are refunded)
        """
        existing = self.games.get(channel_id)
        if existing and existing.state == GameState.ACTIVE:
            raise ConflictError("A game is already active in this channel")
        if existing and existing.players:
            raise ConflictError("A lobby with players is already open in this channel. Use /stop to refund it")

        if existing:
            self._log(existing).warning(f"Replacing empty waiting game - channel_id: {channel_id}")
            self.cancel_turn_timer(existing)

        game = Game(
            channel_id,
            space_id,
            bullet_position=draw_bullet_position(self.config.chambers, self.rng),
        )
        self.games[channel_id] = game

        log_game_event(game.id, "game_created", channel_id=channel_id, space_id=space_id)
        self._log(game).info(f"Game created - channel_id: {channel_id}")
        return game

    def get_game(self, channel_id: str) -> Optional[Game]:
        return self.games.get(channel_id)

    def find_games_by_channel(self, channel_id: str) -> List[Game]:
        game = self.games.get(channel_id)
        return [game] if game else []

    def find_games_by_identity(self, identity: str) -> List[Game]:
        """
        Find every game the given player takes part in.

        Matches display labels first and raw identities second, both
        case-insensitively.
        """
        if not identity or not str(identity).strip():
            return []
        return [game for game in self.games.values() if game.has_participant(str(identity))]

    def end_game(self, channel_id: str) -> None:
        """Drop a game without any refund (shutdown cleanup)."""
        game = self.games.pop(channel_id, None)
        self._forget_lock(channel_id)
        if game:
            self.cancel_turn_timer(game)
            self._log(game).info(f"Game discarded - channel_id: {channel_id}")

    # ------------------------------------------------------------------
    # Lobby
    # ------------------------------------------------------------------

    def add_player(
        self,
        channel_id: str,
        identity: str,
        display_label: str,
        entry_amount: int,
    ) -> ActionResult:
        """
        Seat a player whose entry tip has arrived.

        Args:
            channel_id: Channel the tip was sent in
            identity: Stable player identifier
            display_label: Name shown in chat
            entry_amount: Tip amount in base units

        Returns:
            ActionResult: Carries the updated game on success
        """
        identity = str(identity)
        try:
            game = self._require_game(channel_id)
            if game.state != GameState.WAITING:
                raise InvalidStateError("Game is already in progress")
            if game.find_player(identity):
                raise DuplicateError("You are already in this game")
            if len(game.players) >= self.config.max_players:
                raise CapacityError(f"Game is full (max {self.config.max_players} players)")
            if isinstance(entry_amount, bool) or not isinstance(entry_amount, int) or entry_amount < 0:
                raise InvalidAmountError("Entry amount must be a non-negative whole number of base units")
        except GameError as e:
            logger.info(f"Join rejected - channel_id: {channel_id}, identity: {identity}, reason: {e}")
            return ActionResult.failure(e)

        rake, net = split_entry(entry_amount, self.config.rake_percent)
        player = Player(identity, display_label, entry_amount)
        game.players.append(player)
        game.pool_a += net
        game.house_rake += rake

        log_game_event(
            game.id, "player_joined",
            identity=identity, entry=entry_amount, rake=rake, player_count=len(game.players),
        )
        return ActionResult(True, f"Joined! Pool A: {self._amount(game.pool_a)}", game=game)

    def start_game(self, channel_id: str) -> ActionResult:
        """Move a waiting lobby into play and load the gun."""
        try:
            game = self._require_game(channel_id)
            if game.state == GameState.ACTIVE:
                raise InvalidStateError("Game is already active")
            if len(game.players) < self.config.min_players:
                raise InsufficientPlayersError(
                    f"Need at least {self.config.min_players} players to start"
                )
        except GameError as e:
            return ActionResult.failure(e)

        game.state = GameState.ACTIVE
        game.current_turn_index = 0
        game.consecutive_passes = 0
        game.forced_shoot = False
        game.consecutive_safe_shots = 0
        game.last_elimination_time = None
        reload_gun(game, self.config.chambers, self.rng)

        log_game_event(game.id, "game_started", player_count=len(game.players), pool_a=game.pool_a)
        self._log(game).info(f"Game started - players: {len(game.players)}")
        return ActionResult(True, "Game started!", game=game)

    # ------------------------------------------------------------------
    # Turn protocol
    # ------------------------------------------------------------------

    async def handle_action(
        self,
        channel_id: str,
        identity: str,
        action: Union[PlayerAction, str],
        on_transition: Optional[TransitionCallback] = None,
    ) -> ActionResult:
        """
        Resolve a shoot or pass from the turn holder.

        The whole transition, including the notification callback, runs
        under the channel lock so actions never interleave.

        Args:
            channel_id: Channel of the game
            identity: Player attempting the action
            action: ``shoot`` or ``pass``
            on_transition: Invoked once with the final game and message

        Returns:
            ActionResult: The same message the callback received
        """
        try:
            action = PlayerAction(action)
        except ValueError:
            return ActionResult(False, f"Unknown action: {action}")

        if channel_id not in self.games:
            return ActionResult.failure(NotFoundError("No active game found"))

        async with self._channel_lock(channel_id):
            return await self._process_action(channel_id, str(identity), action, on_transition)

    async def _process_action(
        self,
        channel_id: str,
        identity: str,
        action: PlayerAction,
        on_transition: Optional[TransitionCallback],
    ) -> ActionResult:
        try:
            game, player = self._resolve_turn_holder(channel_id, identity)
            if action == PlayerAction.PASS and game.forced_shoot:
                raise ForcedShootError("⚠️ Full table passed! You must /shoot")
        except GameError as e:
            return ActionResult.failure(e)

        self.cancel_turn_timer(game)
        game.turn_number += 1

        eliminated = False
        if action == PlayerAction.PASS:
            message = self._resolve_pass(game, player)
        else:
            message, eliminated = self._resolve_shot(game, player)

        if game.is_active:
            ceiling_message = self._check_duration_ceiling(game)
            if ceiling_message:
                message = f"{message}\n\n{ceiling_message}"

        if game.is_active:
            # After an elimination the next player already sits at the index
            if not eliminated:
                self._advance_turn(game)
            self.start_turn_timer(game, on_transition)

        await self._notify(on_transition, game, message)
        return ActionResult(True, message, game=game, settlement=game.settlement)

    def _resolve_turn_holder(self, channel_id: str, identity: str) -> Tuple[Game, Player]:
        game = self.games.get(channel_id)
        if not game:
            raise NotFoundError("No active game found")
        if game.state != GameState.ACTIVE:
            raise InvalidStateError("Game is not active")

        current = game.current_player
        if not current or not current.matches(identity):
            expected = self._mention(current) if current else "none"
            raise TurnError(f"It's not your turn. Current turn: {expected}")
        if not current.is_alive:
            raise EliminatedError("You are already eliminated")
        return game, current

    def _resolve_pass(self, game: Game, player: Player) -> str:
        game.pool_b += self.config.pass_penalty
        game.consecutive_passes += 1

        message = (
            f"💨 {self._mention(player)} passed! {self._amount(self.config.pass_penalty)} → Pool B\n"
            f"{self._pools(game)}"
        )
        if game.consecutive_passes >= len(game.alive_players):
            game.forced_shoot = True
            message += "\n⚠️ Full table passed! Next player must /shoot"

        log_game_event(
            game.id, "player_passed",
            identity=player.identity, pool_b=game.pool_b, consecutive_passes=game.consecutive_passes,
        )
        return message

    def _resolve_shot(self, game: Game, player: Player) -> Tuple[str, bool]:
        """
        Pull the trigger for the turn holder.

        Returns:
            Tuple: (message, whether the player was eliminated)
        """
        game.consecutive_passes = 0
        game.forced_shoot = False

        if chamber_has_bullet(game):
            return self._eliminate(game, player), True

        game.consecutive_safe_shots += 1
        log_game_event(
            game.id, "player_survived",
            identity=player.identity, chamber=game.chamber_position,
            safe_shots=game.consecutive_safe_shots,
        )

        if game.consecutive_safe_shots >= self.config.max_safe_shots:
            settlement = self._split_refund(
                game.alive_players, game.pool_a, SettlementReason.SAFE_SHOT_LIMIT
            )
            message = (
                f"🔫 Click! {self._mention(player)} is safe!\n\n"
                f"⚠️ **Game terminated** - Too many safe shots in a row\n"
                f"{self._refund_lines(game.alive_players, settlement)}"
            )
            self._finish(game, settlement)
            return message, False

        message = f"🔫 Click! {self._mention(player)} is safe!"
        if game.pool_b >= self.config.bonus_amount:
            game.pool_b -= self.config.bonus_amount
            game.pool_a += self.config.bonus_amount
            message += f" (+{self._amount(self.config.bonus_amount)} B→A)"
        message += f"\n{self._pools(game)}"

        advance_chamber(game, self.config.chambers)
        return message, False

    def _eliminate(self, game: Game, player: Player) -> str:
        player.eliminate()
        game.consecutive_safe_shots = 0
        game.last_elimination_time = datetime.now(timezone.utc)
        reload_gun(game, self.config.chambers, self.rng)

        alive = game.alive_players
        log_game_event(game.id, "player_eliminated", identity=player.identity, remaining=len(alive))
        message = f"💥 BANG! {self._mention(player)} is out!"

        if len(alive) == 1:
            winner = alive[0]
            settlement = Settlement(SettlementReason.WINNER, {winner.identity: game.pool_a})
            message += f"\n\n🏆 {self._mention(winner)} wins! 💰 {self._amount(game.pool_a)}"
            log_game_event(game.id, "game_won", winner=winner.identity, payout=game.pool_a)
            self._finish(game, settlement)
            return message

        # Compaction moved the next player into the eliminated slot,
        # unless the eliminated player sat at the end of the rotation.
        if game.current_turn_index >= len(alive):
            game.current_turn_index = 0

        message += f"\n\n🔫 Gun reloaded... {len(alive)} players remain"
        return message

    def _check_duration_ceiling(self, game: Game) -> Optional[str]:
        limit = timedelta(minutes=self.config.max_game_duration_minutes)
        if datetime.now(timezone.utc) - game.created_at < limit:
            return None

        alive = game.alive_players
        settlement = self._split_refund(alive, game.pool_a, SettlementReason.DURATION_LIMIT)
        message = (
            f"⏰ **Game terminated** - Maximum duration "
            f"({self.config.max_game_duration_minutes:g} minutes) exceeded\n"
            f"{self._refund_lines(alive, settlement)}"
        )
        self._finish(game, settlement)
        return message

    def _advance_turn(self, game: Game) -> None:
        alive_count = len(game.alive_players)
        if alive_count == 0:
            return
        game.current_turn_index = (game.current_turn_index + 1) % alive_count

    # ------------------------------------------------------------------
    # Turn timer
    # ------------------------------------------------------------------

    def start_turn_timer(self, game: Game, on_transition: Optional[TransitionCallback] = None) -> None:
        """
        Restart the clock for the current turn.

        Any pending timer is cancelled first. When auto-timeout is
        enabled a one-shot task makes the turn holder shoot after
        ``turn_timeout_seconds``; it must be called from a running loop.
        """
        self.cancel_turn_timer(game)
        game.turn_started_at = datetime.now(timezone.utc)

        if not self.config.turn_timeout_enabled or not game.is_active:
            return

        game.turn_timer = asyncio.get_running_loop().create_task(
            self._turn_timeout(game, game.turn_number, on_transition)
        )

    def cancel_turn_timer(self, game: Game) -> None:
        if game.turn_timer is not None:
            game.turn_timer.cancel()
            game.turn_timer = None

    async def _turn_timeout(
        self,
        game: Game,
        turn_number: int,
        on_transition: Optional[TransitionCallback],
    ) -> None:
        await asyncio.sleep(self.config.turn_timeout_seconds)

        # Detach so the shot below does not cancel this task
        if game.turn_timer is asyncio.current_task():
            game.turn_timer = None

        try:
            async with self._channel_lock(game.channel_id):
                if self.games.get(game.channel_id) is not game or game.turn_number != turn_number:
                    return
                current = game.current_player
                if not game.is_active or current is None:
                    return

                log_game_event(game.id, "turn_timeout", identity=current.identity)
                self._log(game).info(f"Turn timed out - identity: {current.identity}")
                await self._process_action(
                    game.channel_id, current.identity, PlayerAction.SHOOT, on_transition
                )
        except Exception as e:
            self._log(game).error(f"Turn timeout failed - error: {e}")

    # ------------------------------------------------------------------
    # Termination
    # ------------------------------------------------------------------

    def stop_game(self, channel_id: str) -> ActionResult:
        """
        Abort a game and refund players.

        Before the start every joined player shares pool A plus the
        house rake; during play only the alive players share pool A.
        Equal-split remainders are forfeited.
        """
        game = self.games.get(channel_id)
        try:
            if not game:
                raise NotFoundError("No active game found")
            if game.state == GameState.FINISHED:
                raise InvalidStateError("Game is already finished")
        except GameError as e:
            return ActionResult.failure(e)

        self.cancel_turn_timer(game)

        if game.state == GameState.WAITING:
            recipients = game.players
            settlement = self._split_refund(
                recipients, game.pool_a + game.house_rake, SettlementReason.STOPPED
            )
        else:
            recipients = game.alive_players
            settlement = self._split_refund(recipients, game.pool_a, SettlementReason.STOPPED)

        message = "🛑 **Game stopped**"
        if settlement.total_paid > 0:
            message += f"\n\n{self._refund_lines(recipients, settlement)}"

        self._finish(game, settlement)
        log_game_event(game.id, "game_stopped", refunded=settlement.total_paid, forfeited=settlement.forfeited)
        return ActionResult(True, message, game=game, settlement=settlement)

    def _split_refund(
        self,
        recipients: Iterable[Player],
        total: int,
        reason: SettlementReason,
    ) -> Settlement:
        recipients = list(recipients)
        share, remainder = equal_split(total, len(recipients))
        return Settlement(reason, {player.identity: share for player in recipients}, remainder)

    def _finish(self, game: Game, settlement: Settlement) -> None:
        game.state = GameState.FINISHED
        game.settlement = settlement
        game.finished_at = datetime.now(timezone.utc)
        self.cancel_turn_timer(game)
        if self.games.get(game.channel_id) is game:
            del self.games[game.channel_id]
        self._forget_lock(game.channel_id)

        log_game_event(
            game.id, "game_terminated",
            reason=settlement.reason.value, paid=settlement.total_paid, forfeited=settlement.forfeited,
        )
        self._log(game).info(f"Game finished - reason: {settlement.reason.value}")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self, channel_id: str) -> str:
        """Human-readable snapshot of the channel's game. Never mutates."""
        game = self.games.get(channel_id)
        if not game:
            return "No active game in this channel. Start one with /start"

        if game.state == GameState.WAITING:
            labels = mention_list(p.display_label for p in game.players) or "none yet"
            return (
                f"💀 Bang Gang - Waiting for players\n\n"
                f"Players ({len(game.players)}/{self.config.max_players}): {labels}\n"
                f"💰 Pool A: {self._amount(game.pool_a)} | House rake: {self._amount(game.house_rake)}\n"
                f"Tip to join! Use /start when ready."
            )

        if game.state == GameState.ACTIVE:
            current = game.current_player
            holder = self._mention(current) if current else "nobody"
            turn_info = f"⚠️ {holder} must /shoot!" if game.forced_shoot else f"{holder} - /shoot or /pass"
            odds = death_probability(game, self.config.chambers) * 100
            return (
                f"💀 Bang Gang - Round Active\n\n"
                f"Players: {len(game.alive_players)}/{len(game.players)} alive\n"
                f"💰 Pool A: {self._amount(game.pool_a)} | 🔥 Pool B: {self._amount(game.pool_b)}\n"
                f"Current turn: {turn_info}\n"
                f"Chamber: {game.chamber_position + 1}/{self.config.chambers} ({odds:.1f}% death chance)\n"
                f"Safe shots: {game.consecutive_safe_shots}/{self.config.max_safe_shots}"
            )

        return "Game finished"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_game(self, channel_id: str) -> Game:
        game = self.games.get(channel_id)
        if not game:
            raise NotFoundError("No game found. Start a game with /start")
        return game

    @asynccontextmanager
    async def _channel_lock(self, channel_id: str):
        """Hold the channel lock, dropping it once unused and the game is gone."""
        lock = self._locks.setdefault(channel_id, asyncio.Lock())
        self._lock_users[channel_id] = self._lock_users.get(channel_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[channel_id] -= 1
            if not self._lock_users[channel_id]:
                del self._lock_users[channel_id]
            self._forget_lock(channel_id)

    def _forget_lock(self, channel_id: str) -> None:
        if channel_id not in self.games and not self._lock_users.get(channel_id):
            self._locks.pop(channel_id, None)

    @staticmethod
    def _log(game: Game):
        return get_game_logger(__name__, game.id)

    async def _notify(self, on_transition: Optional[TransitionCallback], game: Game, message: str) -> None:
        if on_transition is None:
            return
        try:
            outcome = on_transition(game, message)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            self._log(game).error(f"Transition callback failed - error: {e}")

    def format_amount(self, amount: int) -> str:
        """Render a base-unit amount with the table currency."""
        return self._amount(amount)

    def _amount(self, amount: int) -> str:
        return f"{format_amount(amount, self.config.currency_decimals)} {self.config.currency_symbol}"

    def _pools(self, game: Game) -> str:
        return f"💰 A = {self._amount(game.pool_a)} | 🔥 B = {self._amount(game.pool_b)}"

    @staticmethod
    def _mention(player: Player) -> str:
        return f"@{player.display_label}"

    def _refund_lines(self, recipients: List[Player], settlement: Settlement) -> str:
        share = next(iter(settlement.payouts.values()), 0)
        return (
            f"💰 Refunding {self._amount(share)} to each player\n"
            f"Players: {mention_list(p.display_label for p in recipients)}"
        )
