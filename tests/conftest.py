import os

# Set test environment variables before any source imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "test-token")
os.environ.setdefault("CHAT_ID", "1000")

from datetime import date

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.db import Database
from src.periods import Period


@pytest.fixture
def db(tmp_path):
    """Fresh Database instance using temp file (real SQLite, WAL mode)."""
    return Database(tmp_path / "test.db")


@pytest.fixture
def three_cycles():
    """Three recorded periods 28 days apart, each with a user-entered end."""
    return [
        Period(date(2024, 1, 1), date(2024, 1, 5)),
        Period(date(2024, 1, 29), date(2024, 2, 2)),
        Period(date(2024, 2, 26), date(2024, 3, 1)),
    ]


@pytest.fixture
def mock_context(db):
    """Mock Telegram context with bot_data pointing to the test DB and owner chat."""
    context = MagicMock()
    context.bot_data = {"db": db, "chat_id": 1000}
    context.args = []
    context.bot = AsyncMock()
    return context


@pytest.fixture
def make_update():
    """Factory creating mock Telegram Update with given chat_id and text."""
    def _factory(chat_id=1000, text="/start"):
        update = MagicMock()
        update.effective_chat.id = chat_id
        update.message = MagicMock()
        update.message.text = text
        update.message.reply_text = AsyncMock()
        return update
    return _factory
