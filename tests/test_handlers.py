import random
from types import SimpleNamespace

import pytest

from roulette_bot.game.game_manager import GameManager
from roulette_bot.game.models import GameConfig, GameState
from roulette_bot.handlers import command_handlers, error_handlers
from roulette_bot.handlers import roulette_handlers as handlers

CHAT_ID = -100


# ---- Utilities ------------------------------------------------

class DummyBot:
    def __init__(self):
        self.sent = []

    async def send_message(self, chat_id, text, **kwargs):
        # record instead of hitting Telegram
        self.sent.append((chat_id, text))

    def texts(self):
        return [text for _, text in self.sent]


class DummyMessage:
    def __init__(self):
        self.replies = []

    async def reply_text(self, text, **kwargs):
        self.replies.append(text)


def _update(user_id, username, chat_type="group"):
    return SimpleNamespace(
        effective_chat=SimpleNamespace(id=CHAT_ID, type=chat_type),
        effective_user=SimpleNamespace(id=user_id, username=username, first_name=username.title()),
        message=DummyMessage(),
    )


def _context(bot, *args):
    return SimpleNamespace(bot=bot, args=list(args))


# ---- Fixtures -------------------------------------------------

@pytest.fixture
def manager(monkeypatch):
    config = GameConfig(pass_penalty=50, bonus_amount=50, currency_decimals=0, currency_symbol="units")
    fresh = GameManager(config=config, rng=random.Random(11))
    monkeypatch.setattr(handlers, "game_manager", fresh)
    monkeypatch.setattr(handlers, "get_settings", lambda: SimpleNamespace(admin_user_ids=[]))
    return fresh


# ---- Tests ----------------------------------------------------

@pytest.mark.asyncio
async def test_full_round_through_commands(manager):
    bot = DummyBot()
    alice = _update(1, "alice")
    bob = _update(2, "bob")

    await handlers.start_command(alice, _context(bot))
    assert "Bang Gang started!" in alice.message.replies[-1]

    await handlers.join_command(alice, _context(bot, "1000"))
    assert "@alice joined! (1/6)" in bot.texts()[-1]
    assert "Need 1 more player(s) to start." in bot.texts()[-1]

    await handlers.join_command(bob, _context(bot, "1000"))
    assert "Pool A: 1800 units" in bot.texts()[-1]
    assert "Ready to start!" in bot.texts()[-1]

    await handlers.start_command(alice, _context(bot))
    assert "Game started!" in alice.message.replies[-1]
    assert "@alice your turn!" in alice.message.replies[-1]
    game = manager.get_game(str(CHAT_ID))
    assert game.state == GameState.ACTIVE

    await handlers.pass_command(bob, _context(bot))
    assert bob.message.replies[-1].startswith("❌ It's not your turn")

    await handlers.pass_command(alice, _context(bot))
    assert "@alice passed!" in bot.texts()[-2]
    assert "@bob your turn!" in bot.texts()[-1]

    await handlers.status_command(alice, _context(bot))
    assert "Round Active" in alice.message.replies[-1]

    await handlers.stop_command(alice, _context(bot))
    assert "Game stopped" in alice.message.replies[-1]
    assert "Refunding 900 units" in alice.message.replies[-1]
    assert manager.get_game(str(CHAT_ID)) is None


@pytest.mark.asyncio
async def test_forced_shoot_prompt_after_full_table_pass(manager):
    bot = DummyBot()
    alice = _update(1, "alice")
    bob = _update(2, "bob")
    manager.create_game(str(CHAT_ID), "space")
    manager.add_player(str(CHAT_ID), "1", "alice", 1000)
    manager.add_player(str(CHAT_ID), "2", "bob", 1000)
    manager.start_game(str(CHAT_ID))

    await handlers.pass_command(alice, _context(bot))
    await handlers.pass_command(bob, _context(bot))
    assert bot.texts()[-1].startswith("⚠️ @alice must /shoot!")

    await handlers.pass_command(alice, _context(bot))
    assert "You must /shoot" in alice.message.replies[-1]


@pytest.mark.asyncio
async def test_start_refuses_private_chats(manager):
    update = _update(1, "alice", chat_type="private")
    await handlers.start_command(update, _context(DummyBot()))

    assert "group chat" in update.message.replies[-1]
    assert manager.games == {}


@pytest.mark.asyncio
async def test_join_requires_a_numeric_amount(manager):
    bot = DummyBot()
    update = _update(1, "alice")

    await handlers.join_command(update, _context(bot))
    await handlers.join_command(update, _context(bot, "lots"))

    assert update.message.replies == ["❌ Usage: /join <amount in base units>"] * 2
    assert bot.sent == []


@pytest.mark.asyncio
async def test_join_rejects_negative_amounts(manager):
    bot = DummyBot()
    update = _update(1, "alice")

    await handlers.join_command(update, _context(bot, "-5"))

    assert update.message.replies == ["❌ Usage: /join <amount in base units>"]
    assert bot.sent == []
    assert manager.games == {}


@pytest.mark.asyncio
async def test_negative_tip_is_never_thanked(manager):
    bot = DummyBot()
    await handlers.handle_tip(bot, CHAT_ID, "1", "alice", -5)

    manager.create_game(str(CHAT_ID), "space")
    await handlers.handle_tip(bot, CHAT_ID, "1", "alice", -5)

    assert bot.texts() == ["❌ Tip amount must be a non-negative whole number"] * 2
    assert manager.get_game(str(CHAT_ID)).players == []


@pytest.mark.asyncio
async def test_tip_without_lobby_is_thanked(manager):
    bot = DummyBot()
    await handlers.handle_tip(bot, CHAT_ID, "1", "alice", 500)

    assert "Thanks for the tip of 500 units" in bot.texts()[-1]
    assert manager.games == {}


@pytest.mark.asyncio
async def test_duplicate_tip_is_reported(manager):
    bot = DummyBot()
    manager.create_game(str(CHAT_ID), "space")
    await handlers.handle_tip(bot, CHAT_ID, "1", "alice", 500)
    await handlers.handle_tip(bot, CHAT_ID, "1", "alice", 500)

    assert bot.texts()[-1] == "❌ You are already in this game"


@pytest.mark.asyncio
async def test_stop_is_limited_to_admins_when_configured(manager, monkeypatch):
    monkeypatch.setattr(handlers, "get_settings", lambda: SimpleNamespace(admin_user_ids=[99]))
    monkeypatch.setattr(handlers, "is_admin_user", lambda user_id: user_id == 99)
    manager.create_game(str(CHAT_ID), "space")

    update = _update(1, "alice")
    await handlers.stop_command(update, _context(DummyBot()))
    assert "Only bot admins" in update.message.replies[-1]
    assert manager.get_game(str(CHAT_ID)) is not None

    admin = _update(99, "root")
    await handlers.stop_command(admin, _context(DummyBot()))
    assert manager.get_game(str(CHAT_ID)) is None


@pytest.mark.asyncio
async def test_games_command_lists_seats(manager):
    manager.create_game(str(CHAT_ID), "space")
    manager.add_player(str(CHAT_ID), "1", "alice", 100)

    update = _update(1, "alice")
    await handlers.games_command(update, _context(DummyBot()))
    assert f"chat {CHAT_ID} - waiting" in update.message.replies[-1]

    await handlers.games_command(update, _context(DummyBot(), "@carol"))
    assert update.message.replies[-1] == "@carol is not in any game"


@pytest.mark.asyncio
async def test_help_lists_commands():
    bot = DummyBot()
    await command_handlers.help_command(_update(1, "alice"), _context(bot))

    text = bot.texts()[-1]
    assert "Bang Gang" in text
    assert "/shoot" in text and "/pass" in text


@pytest.mark.asyncio
async def test_error_handler_without_chat_sends_nothing():
    bot = DummyBot()
    await error_handlers.error_handler(None, SimpleNamespace(error=RuntimeError("boom"), bot=bot))
    assert bot.sent == []


def test_error_text_depends_on_environment(monkeypatch):
    monkeypatch.setattr(error_handlers, "is_development", lambda: True)
    assert "boom" in error_handlers.build_error_text("boom")

    monkeypatch.setattr(error_handlers, "is_development", lambda: False)
    assert "boom" not in error_handlers.build_error_text("boom")
