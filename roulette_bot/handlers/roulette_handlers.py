"""
Roulette Command Handlers

This module connects Telegram commands and tip events to the game manager.
It owns no game rules: it resolves who and where, calls the manager, and
posts whatever the manager reports back to the chat.
"""

from typing import Optional

from telegram import Update
from telegram.ext import ContextTypes

from ..game.game_manager import GameManager
from ..game.errors import ConflictError
from ..game.models import Game, GameState, PlayerAction
from ..utils.config import get_settings, is_admin_user
from ..utils.logging_config import get_logger, log_user_action

# Setup logger and manager
logger = get_logger(__name__)
game_manager = GameManager()


def _identity(update: Update) -> str:
    return str(update.effective_user.id)


def _display_label(update: Update) -> str:
    user = update.effective_user
    return user.username or user.first_name or str(user.id)


def _turn_prompt(manager: GameManager, game: Game) -> Optional[str]:
    """Next-turn line for an active game, or None once it is over."""
    if game.state != GameState.ACTIVE or not game.alive_players:
        return None
    current = game.current_player
    seconds = f" ({manager.config.turn_timeout_seconds:g}s)" if manager.config.turn_timeout_enabled else ""
    if game.forced_shoot:
        return f"⚠️ @{current.display_label} must /shoot!{seconds}"
    return f"⏱️ @{current.display_label} your turn!{seconds}\nUse /shoot or /pass"


def make_transition_notifier(bot, chat_id, manager: Optional[GameManager] = None):
    """
    Build the callback the manager invokes after each turn.

    Posts the turn result and, while the game is still running, a
    prompt for the next player.
    """
    manager = manager or game_manager

    async def notify(game: Game, message: str) -> None:
        await bot.send_message(chat_id=chat_id, text=message)
        prompt = _turn_prompt(manager, game)
        if prompt:
            await bot.send_message(chat_id=chat_id, text=prompt)

    return notify


async def handle_tip(
    bot,
    chat_id,
    identity: str,
    display_label: str,
    amount: int,
    manager: Optional[GameManager] = None,
) -> None:
    """
    Treat a received tip as an entry fee.

    Tips arrive already resolved (amount and sender), either from
    the /join command or from an external payment feed.
    """
    manager = manager or game_manager
    channel_id = str(chat_id)

    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        logger.warning(f"Ignoring invalid tip - chat_id: {chat_id}, identity: {identity}, amount: {amount!r}")
        await bot.send_message(chat_id=chat_id, text="❌ Tip amount must be a non-negative whole number")
        return

    game = manager.get_game(channel_id)
    if not game or game.state != GameState.WAITING:
        await bot.send_message(
            chat_id=chat_id,
            text=(
                f"💸 Thanks for the tip of {manager.format_amount(amount)}! "
                f"Start a game with /start to use tips as entry fees."
            ),
        )
        return

    result = manager.add_player(channel_id, identity, display_label, amount)
    if not result.success:
        await bot.send_message(chat_id=chat_id, text=f"❌ {result.message}")
        return

    game = result.game
    config = manager.config
    joined = len(game.players)
    if joined >= config.min_players:
        readiness = "Ready to start! Use /start when all players have joined."
    else:
        readiness = f"Need {config.min_players - joined} more player(s) to start."

    await bot.send_message(
        chat_id=chat_id,
        text=(
            f"💀 @{display_label} joined! ({joined}/{config.max_players})\n"
            f"💰 Pool A: {manager.format_amount(game.pool_a)} | "
            f"House rake: {manager.format_amount(game.house_rake)}\n"
            f"{readiness}"
        ),
    )
    logger.info(f"Tip entry accepted - chat_id: {chat_id}, identity: {identity}, amount: {amount}")


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /start.

    Opens a lobby when the chat has no game, otherwise starts the
    waiting game and announces the first turn.
    """
    if not update.message:
        logger.warning("start_command called without a message object")
        return

    chat_id = update.effective_chat.id
    channel_id = str(chat_id)
    log_user_action(update.effective_user.id, "start_command", chat_id=chat_id)

    if update.effective_chat.type == 'private':
        await update.message.reply_text(
            "❌ Bang Gang must be played in a group chat!\n\n"
            "Add me to a group and use /start there."
        )
        return

    config = game_manager.config
    if not game_manager.get_game(channel_id):
        try:
            game_manager.create_game(channel_id, str(chat_id))
        except ConflictError as e:
            await update.message.reply_text(f"❌ {e}")
            return

        await update.message.reply_text(
            f"💀 **Bang Gang started!**\n\n"
            f"Use /join <amount> to tip in! (min {config.min_players} players, "
            f"max {config.max_players})\n"
            f"House takes {config.rake_percent}% rake. Last survivor wins the pot!"
        )
        return

    result = game_manager.start_game(channel_id)
    if not result.success:
        await update.message.reply_text(f"❌ {result.message}")
        return

    game = result.game
    notifier = make_transition_notifier(context.bot, chat_id)
    await update.message.reply_text(
        f"🔫 **Game started!**\n\n"
        f"Players: {len(game.alive_players)}\n"
        f"💰 Pool A: {game_manager.format_amount(game.pool_a)} | "
        f"🔥 Pool B: {game_manager.format_amount(game.pool_b)}\n"
        f"Gun loaded...\n\n"
        f"{_turn_prompt(game_manager, game)}"
    )
    game_manager.start_turn_timer(game, notifier)


async def join_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /join <amount>, an entry tip in base units."""
    if not update.message:
        return

    log_user_action(update.effective_user.id, "join_command", args=context.args)
    try:
        amount = int(context.args[0])
    except (IndexError, TypeError, ValueError):
        amount = None
    if amount is None or amount < 0:
        await update.message.reply_text("❌ Usage: /join <amount in base units>")
        return

    await handle_tip(
        context.bot,
        update.effective_chat.id,
        _identity(update),
        _display_label(update),
        amount,
    )


async def _action_command(update: Update, context: ContextTypes.DEFAULT_TYPE, action: PlayerAction) -> None:
    if not update.message:
        return

    chat_id = update.effective_chat.id
    log_user_action(update.effective_user.id, f"{action.value}_command", chat_id=chat_id)

    result = await game_manager.handle_action(
        str(chat_id),
        _identity(update),
        action,
        make_transition_notifier(context.bot, chat_id),
    )
    if not result.success:
        await update.message.reply_text(f"❌ {result.message}")


async def shoot_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /shoot."""
    await _action_command(update, context, PlayerAction.SHOOT)


async def pass_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /pass."""
    await _action_command(update, context, PlayerAction.PASS)


async def status_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /status."""
    if not update.message:
        return
    await update.message.reply_text(game_manager.get_status(str(update.effective_chat.id)))


async def stop_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /stop, aborting the game with refunds.

    When admin IDs are configured only admins may stop a game.
    """
    if not update.message:
        return

    user_id = update.effective_user.id
    log_user_action(user_id, "stop_command", chat_id=update.effective_chat.id)

    if get_settings().admin_user_ids and not is_admin_user(user_id):
        await update.message.reply_text("❌ Only bot admins can stop a game")
        return

    result = game_manager.stop_game(str(update.effective_chat.id))
    if not result.success:
        await update.message.reply_text(f"❌ {result.message}")
        return

    await update.message.reply_text(result.message)
    logger.info(
        f"Game stopped by user - user_id: {user_id}, "
        f"refunded: {result.settlement.total_paid}, forfeited: {result.settlement.forfeited}"
    )


async def games_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /games [username], listing chats where a player is seated."""
    if not update.message:
        return

    name = context.args[0].lstrip("@") if context.args else _display_label(update)
    games = game_manager.find_games_by_identity(name)
    if not games:
        await update.message.reply_text(f"@{name} is not in any game")
        return

    lines = [f"• chat {game.channel_id} - {game.state.value}" for game in games]
    await update.message.reply_text(f"🎲 Games for @{name}:\n" + "\n".join(lines))
