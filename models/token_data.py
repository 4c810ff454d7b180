# models/token_data.py

import datetime as dt
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import Column, DateTime, Float, Integer, String, func

from config import (
    ALLOWED_CHAINS,
    ELIGIBLE_WINDOW_MINUTES,
    PRICE_CHANGE_H1_THRESHOLD,
    TOP_N_PER_GROUP,
)
from services.db_service import Base, get_db
from utils.grid_time import utcnow


class TokenData(Base):
    """One observed market snapshot of a DEX token. Rows are append-only except `sent_time`."""
    __tablename__ = "token_data"

    id = Column(Integer, primary_key=True, index=True)
    base_token_address = Column(String, index=True, nullable=False)
    base_token_symbol = Column(String, index=True, nullable=False)
    base_token_name = Column(String, nullable=True)
    pair_address = Column(String, nullable=True)
    chain_id = Column(String, index=True, nullable=False)
    group_id = Column(String, nullable=False)
    rank = Column(Integer, nullable=False)

    price_usd = Column(Float, nullable=True)
    price_change_m5 = Column(Float, nullable=True)
    price_change_h1 = Column(Float, nullable=True)
    price_change_h24 = Column(Float, nullable=True)
    market_cap_kusd = Column(Float, nullable=True)
    liquidity_usd_kusd = Column(Float, nullable=True)
    volume_h24_kusd = Column(Float, nullable=True)
    lp_locked_percent = Column(Float, nullable=True)
    top_10_percent = Column(Float, nullable=True)
    security_risk = Column(String, nullable=True)
    launched_days = Column(Float, nullable=True)

    website = Column(String, nullable=True)
    twitter = Column(String, nullable=True)
    telegram = Column(String, nullable=True)
    dexscreener = Column(String, nullable=True)

    insert_time = Column(DateTime, index=True, nullable=False, default=utcnow)
    sent_time = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<TokenData id={self.id} {self.base_token_symbol} {self.chain_id}/{self.group_id} rank={self.rank}>"


def add_token_snapshot(**fields) -> TokenData:
    """
    Insert one snapshot row and return it.
    Used by the ingest side; `insert_time` defaults to now (UTC).
    """
    with get_db() as db:
        row = TokenData(**fields)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row


def query_eligible_token_snapshots(
    now: Optional[dt.datetime] = None,
    window_minutes: int = ELIGIBLE_WINDOW_MINUTES,
    chains: Sequence[str] = ALLOWED_CHAINS,
    threshold: float = PRICE_CHANGE_H1_THRESHOLD,
    top_n: int = TOP_N_PER_GROUP,
) -> List[TokenData]:
    """
    Unsent snapshots inserted within the window, on an allowed chain, with a 1h change above threshold.
    At most `top_n` rows per (chain_id, group_id) partition by ascending rank.
    Result is ordered by group_id, then rank. Read-only.
    """
    now = now or utcnow()
    since = now - dt.timedelta(minutes=window_minutes)
    chains = [c.lower() for c in chains]

    with get_db() as db:
        ranked = (
            db.query(
                TokenData.id.label("id"),
                func.row_number().over(
                    partition_by=[TokenData.chain_id, TokenData.group_id],
                    order_by=[TokenData.rank, TokenData.id],
                ).label("row_num"),
            )
            .filter(
                TokenData.sent_time.is_(None),
                TokenData.insert_time >= since,
                TokenData.insert_time <= now,
                func.lower(TokenData.chain_id).in_(chains),
                TokenData.price_change_h1 > threshold,
            )
            .subquery()
        )
        return (
            db.query(TokenData)
            .join(ranked, TokenData.id == ranked.c.id)
            .filter(ranked.c.row_num <= top_n)
            .order_by(TokenData.group_id, TokenData.rank, TokenData.chain_id, TokenData.id)
            .all()
        )


def select_candidates(now: Optional[dt.datetime] = None) -> List[TokenData]:
    """Candidate set for one notification cycle, using the configured window, chains and threshold."""
    return query_eligible_token_snapshots(now=now)


def query_first_snapshot(address: str) -> Optional[TokenData]:
    # Earliest insert_time wins; equal insert times fall back to the lower id
    with get_db() as db:
        return (
            db.query(TokenData)
            .filter(TokenData.base_token_address == address)
            .order_by(TokenData.insert_time.asc(), TokenData.id.asc())
            .first()
        )


def query_historical_count(address: str) -> int:
    with get_db() as db:
        return db.query(func.count(TokenData.id)).filter(TokenData.base_token_address == address).scalar() or 0


def query_recently_sent_by_symbol(symbol: str, since: dt.datetime) -> bool:
    """True if any snapshot with this symbol (any address, any chain) was marked sent at or after `since`."""
    with get_db() as db:
        return (
            db.query(TokenData.id)
            .filter(
                TokenData.base_token_symbol == symbol,
                TokenData.sent_time.isnot(None),
                TokenData.sent_time >= since,
            )
            .first()
            is not None
        )


def query_all_snapshots_for_address(address: str) -> List[TokenData]:
    with get_db() as db:
        return (
            db.query(TokenData)
            .filter(TokenData.base_token_address == address)
            .order_by(TokenData.insert_time.asc(), TokenData.id.asc())
            .all()
        )


def mark_snapshots_sent(ids: Iterable[int], sent_time: Optional[dt.datetime] = None) -> int:
    """
    Set sent_time for the given rows in one UPDATE.
    Rows already marked are left untouched, so a row is marked at most once.
    Returns the number of rows updated.
    """
    ids = list(ids)
    if not ids:
        return 0
    sent_time = sent_time or utcnow()
    with get_db() as db:
        updated = (
            db.query(TokenData)
            .filter(TokenData.id.in_(ids), TokenData.sent_time.is_(None))
            .update({TokenData.sent_time: sent_time}, synchronize_session=False)
        )
        db.commit()
        return updated
