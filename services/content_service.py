# services/content_service.py
"""
Builds the per-language notification content for one cycle.

For each candidate (grouped by chain/group, then by rank):
  1. skip it when a snapshot with the same symbol was marked sent in the last hour
  2. compute the rally since the address' first recorded snapshot
  3. take the chart from the cycle's ChartCache, rendering it on first use
  4. format the localized caption and the mini-app link

A failure on one token is logged and only that token is skipped.
"""
import asyncio
import datetime as dt
import logging
from typing import Callable, Dict, List, Optional, Sequence, Set

from config import RECENT_SENT_WINDOW_MINUTES
from models.notification import NotificationContent
from models.token_data import (
    TokenData,
    query_all_snapshots_for_address,
    query_first_snapshot,
    query_historical_count,
    query_recently_sent_by_symbol,
)
from services.chart_service import render_price_chart
from services.message_service import build_action_url, format_rally_message, format_token_message
from utils.get_data import get_price_history
from utils.grid_time import align_alert_markers, grid_step_for_age, to_epoch_seconds, utcnow
from utils.grouping import group_by
from utils.safe_call import isolation_boundary

logger = logging.getLogger(__name__)


class ChartUnavailable(Exception):
    """The chart for this address already failed to render in the current cycle."""


class ChartCache:
    """
    Chart images for one notification cycle, keyed by token address.

    Created and dropped by the cycle orchestrator. Only the content builder writes
    to it (sequentially); delivery only reads.

    A failed render is remembered too: later lookups for that address raise
    ChartUnavailable without calling the factory again.
    """

    def __init__(self):
        self._charts: Dict[str, bytes] = {}
        self._failed: Set[str] = set()
        self.renders = 0

    def __contains__(self, address: str) -> bool:
        return address in self._charts

    def __len__(self) -> int:
        return len(self._charts)

    def get(self, address: str) -> Optional[bytes]:
        return self._charts.get(address)

    def failed(self, address: str) -> bool:
        return address in self._failed

    async def get_or_create(self, address: str, factory: Callable) -> bytes:
        if address in self._failed:
            raise ChartUnavailable(address)
        chart = self._charts.get(address)
        if chart is None:
            self.renders += 1
            try:
                chart = await factory()
            except Exception:
                self._failed.add(address)
                raise
            self._charts[address] = chart
        return chart


async def build_chart(token: TokenData, now: Optional[dt.datetime] = None) -> bytes:
    """Price line for the token's lifetime (max 30 days) with every past alert for its address."""
    now_ts = to_epoch_seconds(now or utcnow())
    price_points = await asyncio.to_thread(
        get_price_history, token.chain_id, token.base_token_address, token.launched_days, now_ts
    )
    snapshots = await asyncio.to_thread(query_all_snapshots_for_address, token.base_token_address)

    step = grid_step_for_age(token.launched_days)
    markers = align_alert_markers((to_epoch_seconds(s.insert_time) for s in snapshots), price_points, step)
    logger.debug("Chart for %s: %d price points, %d of %d alerts aligned",
                 token.base_token_address, len(price_points), len(markers), len(snapshots))

    return await asyncio.to_thread(
        render_price_chart, price_points, token.base_token_symbol, token.base_token_name, markers
    )


async def _build_rally_message(token: TokenData, lang: str) -> str:
    first_entry = await asyncio.to_thread(query_first_snapshot, token.base_token_address)
    if first_entry is None:
        return ""
    total = await asyncio.to_thread(query_historical_count, token.base_token_address)
    return format_rally_message(first_entry.price_usd, token.price_usd, total == 1, lang)


def _order_candidates(candidates: Sequence[TokenData]) -> List[TokenData]:
    ordered = []
    for group in group_by(candidates, lambda t: (t.chain_id, t.group_id)).values():
        ordered.extend(sorted(group, key=lambda t: t.rank))
    return ordered


async def build_content(
    candidates: Sequence[TokenData],
    language_code: str,
    chart_cache: ChartCache,
    now: Optional[dt.datetime] = None,
) -> List[NotificationContent]:
    now = now or utcnow()
    recent_since = now - dt.timedelta(minutes=RECENT_SENT_WINDOW_MINUTES)
    prepared: List[NotificationContent] = []

    for token in _order_candidates(candidates):
        with isolation_boundary("content for token", token.base_token_address):
            symbol = token.base_token_symbol
            logger.info("Preparing content for token: %s on chain: %s (%s)", symbol, token.chain_id, language_code)

            if await asyncio.to_thread(query_recently_sent_by_symbol, symbol, recent_since):
                logger.info("Skipping %s (recently sent)", symbol)
                continue

            rally_message = await _build_rally_message(token, language_code)

            try:
                chart = await chart_cache.get_or_create(
                    token.base_token_address, lambda token=token: build_chart(token, now)
                )
            except ChartUnavailable:
                logger.info("Skipping %s (chart failed earlier this cycle)", symbol)
                continue

            message = format_token_message(token, language_code)
            if rally_message:
                message = f"{message}\n{rally_message}"

            prepared.append(NotificationContent(
                token=token,
                message=message,
                chart=chart,
                action_url=build_action_url(token),
            ))

    logger.info("Prepared %d of %d tokens for language %s", len(prepared), len(candidates), language_code)
    return prepared
