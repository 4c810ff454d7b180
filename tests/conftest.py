"""
Shared fixtures. Environment is set before any project module is imported:
config.py requires BOT_TOKEN and services.db_service binds its engine at import.
"""
import datetime as dt
import os
import tempfile
from types import SimpleNamespace

_TMP_DIR = tempfile.mkdtemp(prefix="dex-notifier-tests-")
os.environ.setdefault("BOT_TOKEN", "123456:TEST-TOKEN")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ.pop("LOCALES_DIR", None)

import pytest  # noqa: E402


@pytest.fixture
def db():
    from services.db_service import Base, engine, init_db

    Base.metadata.drop_all(bind=engine)
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def now():
    return dt.datetime(2024, 5, 1, 12, 0, 0)


@pytest.fixture
def make_token(db, now):
    from models.token_data import add_token_snapshot

    def _make(**overrides):
        fields = dict(
            base_token_address="FooAddr111",
            base_token_symbol="FOO",
            base_token_name="Foo Token",
            pair_address="FooPair111",
            chain_id="solana",
            group_id="g1",
            rank=1,
            price_usd=1.5,
            price_change_m5=1.2,
            price_change_h1=8.2,
            price_change_h24=40.0,
            market_cap_kusd=1234.4,
            liquidity_usd_kusd=250.0,
            volume_h24_kusd=9876.6,
            lp_locked_percent=0.99,
            top_10_percent=0.2,
            security_risk="low",
            launched_days=3,
            insert_time=now - dt.timedelta(minutes=3),
        )
        fields.update(overrides)
        return add_token_snapshot(**fields)

    return _make


@pytest.fixture
def make_user(db):
    from models.user import add_user

    counter = {"next": 1000}

    def _make(**overrides):
        counter["next"] += 1
        fields = dict(telegram_id=-counter["next"], language="en", subscriptions=["solana"])
        fields.update(overrides)
        return add_user(**fields)

    return _make


class FakeBot:
    """Records Telegram calls. chat_types maps chat id -> type string or exception to raise."""

    def __init__(self, chat_types=None, default_type="group", send_errors=None):
        self.chat_types = chat_types or {}
        self.default_type = default_type
        self.send_errors = send_errors or {}
        self.photos = []
        self.messages = []
        self.get_chat_calls = []

    async def get_chat(self, chat_id):
        self.get_chat_calls.append(chat_id)
        chat_type = self.chat_types.get(chat_id, self.default_type)
        if isinstance(chat_type, Exception):
            raise chat_type
        return SimpleNamespace(id=chat_id, type=chat_type)

    async def send_photo(self, chat_id, photo, caption=None, parse_mode=None, reply_markup=None):
        error = self.send_errors.get(chat_id)
        if error is not None:
            raise error
        self.photos.append(SimpleNamespace(
            chat_id=chat_id, photo=photo, caption=caption, parse_mode=parse_mode, reply_markup=reply_markup,
        ))

    async def send_message(self, chat_id, text, parse_mode=None, reply_markup=None, disable_web_page_preview=None):
        self.messages.append(SimpleNamespace(chat_id=chat_id, text=text, reply_markup=reply_markup))

    def photos_for(self, chat_id):
        return [p for p in self.photos if p.chat_id == chat_id]


@pytest.fixture
def fake_bot():
    return FakeBot()


@pytest.fixture
def make_bot():
    return FakeBot
