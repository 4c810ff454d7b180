# utils/grid_time.py
"""
Grid timestamps: integer epoch seconds aligned to the price series' sampling step.

All alert-marker alignment is done in this one representation; datetimes are
converted at the edge with `to_epoch_seconds`.
"""
import datetime as dt
from typing import Iterable, List, Sequence

from models.notification import AlertMarker, PricePoint
from utils.normalize_data import to_float

GRID_5M = 5 * 60
GRID_1H = 60 * 60


def utcnow() -> dt.datetime:
    """Naive UTC now, matching how timestamps are stored."""
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def to_epoch_seconds(value: dt.datetime) -> int:
    # naive datetimes are stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return int(value.timestamp())


def grid_step_for_age(launched_days) -> int:
    """5-minute sampling for tokens younger than one day, hourly otherwise."""
    age = to_float(launched_days)
    if age is not None and age < 1:
        return GRID_5M
    return GRID_1H


def round_down(timestamp, step: int) -> int:
    return int(timestamp) // step * step


def align_alert_markers(
    raw_timestamps: Iterable[int],
    price_points: Sequence[PricePoint],
    step: int,
) -> List[AlertMarker]:
    """
    Pin each raw alert timestamp to the price point at the start of its grid interval.

    Exact match only: a timestamp whose rounded value has no price point is dropped,
    so markers always sit on a price that is actually drawn.
    """
    prices_by_ts = {p.timestamp: p.price for p in price_points}
    if not prices_by_ts:
        return []

    markers = []
    for ts in raw_timestamps:
        grid_ts = round_down(ts, step)
        price = prices_by_ts.get(grid_ts)
        if price is None:
            continue
        markers.append(AlertMarker(timestamp=grid_ts, price=price))
    return markers
