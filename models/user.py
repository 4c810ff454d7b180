# models/user.py

import json
import logging
from typing import FrozenSet, List

from sqlalchemy import JSON, BigInteger, Boolean, Column, Integer, String
from services.db_service import Base, get_db
from models.notification import Recipient

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    telegram_id = Column(BigInteger, unique=True, index=True, nullable=False)
    username = Column(String, nullable=True)
    language = Column(String, nullable=True, default=DEFAULT_LANGUAGE)
    # list of chain ids, e.g. ["solana", "base"]
    subscriptions = Column(JSON, nullable=True)
    active = Column(Boolean, nullable=False, default=True)


def parse_subscriptions(value, user_ref=None) -> FrozenSet[str]:
    """
    Validate a stored subscription list.

    Accepts a list/tuple/set of chain id strings or a JSON-encoded list.
    Entries are stripped and lower-cased. Anything else yields an empty set;
    non-string or blank entries are dropped. Every rejection is logged.
    """
    if value is None:
        return frozenset()

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            logger.warning("User %s: subscriptions is not valid JSON: %r", user_ref, value)
            return frozenset()

    if not isinstance(value, (list, tuple, set, frozenset)):
        logger.warning("User %s: subscriptions must be a list, got %s", user_ref, type(value).__name__)
        return frozenset()

    chains = set()
    for entry in value:
        if not isinstance(entry, str) or not entry.strip():
            logger.warning("User %s: dropping invalid subscription entry %r", user_ref, entry)
            continue
        chains.add(entry.strip().lower())
    return frozenset(chains)


def query_active_recipients() -> List[Recipient]:
    """
    Snapshot of all active users for one notification cycle.
    """
    with get_db() as db:
        users = db.query(User).filter(User.active.is_(True)).order_by(User.id).all()

    return [
        Recipient(
            id=u.id,
            external_id=u.telegram_id,
            language_code=(u.language or DEFAULT_LANGUAGE),
            subscribed_chains=parse_subscriptions(u.subscriptions, user_ref=u.telegram_id),
        )
        for u in users
    ]


def add_user(telegram_id, language=DEFAULT_LANGUAGE, subscriptions=None, username=None, active=True) -> User:
    """
    Create a user row. Returns the User instance.
    """
    with get_db() as db:
        user = User(
            telegram_id=telegram_id,
            username=username,
            language=language,
            subscriptions=subscriptions,
            active=active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
