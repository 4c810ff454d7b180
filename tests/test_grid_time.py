import datetime as dt

from models.notification import AlertMarker, PricePoint
from utils.grid_time import (
    GRID_1H,
    GRID_5M,
    align_alert_markers,
    grid_step_for_age,
    round_down,
    to_epoch_seconds,
)

HOUR_START = 1714564800  # 2024-05-01 12:00:00 UTC


def test_round_down_to_hour_and_five_minutes():
    ts = HOUR_START + 37 * 60 + 12
    assert round_down(ts, GRID_1H) == HOUR_START
    assert round_down(ts, GRID_5M) == HOUR_START + 35 * 60
    assert round_down(HOUR_START, GRID_1H) == HOUR_START


def test_grid_step_depends_on_token_age():
    assert grid_step_for_age(0.5) == GRID_5M
    assert grid_step_for_age(1) == GRID_1H
    assert grid_step_for_age(12) == GRID_1H
    assert grid_step_for_age(None) == GRID_1H
    assert grid_step_for_age("n/a") == GRID_1H


def test_to_epoch_seconds_treats_naive_as_utc():
    assert to_epoch_seconds(dt.datetime(2024, 5, 1, 12, 0, 0)) == HOUR_START
    aware = dt.datetime(2024, 5, 1, 14, 0, 0, tzinfo=dt.timezone(dt.timedelta(hours=2)))
    assert to_epoch_seconds(aware) == HOUR_START


def test_align_uses_exact_grid_price():
    prices = [PricePoint(HOUR_START, 1.0), PricePoint(HOUR_START + GRID_1H, 2.0)]
    markers = align_alert_markers([HOUR_START + 1800, HOUR_START + GRID_1H + 59], prices, GRID_1H)
    assert markers == [AlertMarker(HOUR_START, 1.0), AlertMarker(HOUR_START + GRID_1H, 2.0)]


def test_align_drops_markers_without_grid_point():
    prices = [PricePoint(HOUR_START, 1.0), PricePoint(HOUR_START + 2 * GRID_1H, 3.0)]
    # falls into the missing 13:00 bucket; never interpolated
    markers = align_alert_markers([HOUR_START + GRID_1H + 10], prices, GRID_1H)
    assert markers == []


def test_align_with_empty_series_drops_everything():
    assert align_alert_markers([HOUR_START, HOUR_START + 5], [], GRID_1H) == []


def test_align_five_minute_grid():
    prices = [PricePoint(HOUR_START + 5 * 60, 0.5)]
    assert align_alert_markers([HOUR_START + 7 * 60], prices, GRID_5M) == [AlertMarker(HOUR_START + 5 * 60, 0.5)]
    # same timestamp on an hourly grid rounds to 12:00, which is absent
    assert align_alert_markers([HOUR_START + 7 * 60], prices, GRID_1H) == []


def test_align_is_deterministic_and_keeps_input_order():
    prices = [PricePoint(HOUR_START + i * GRID_1H, float(i)) for i in range(5)]
    raw = [HOUR_START + 3 * GRID_1H + 1, HOUR_START + 1, HOUR_START + 3 * GRID_1H + 2]
    first = align_alert_markers(raw, prices, GRID_1H)
    assert first == align_alert_markers(raw, prices, GRID_1H)
    assert [m.price for m in first] == [3.0, 0.0, 3.0]
