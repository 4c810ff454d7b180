import datetime as dt

import pytest

from models.notification import PricePoint
from services import content_service
from services.content_service import ChartCache, build_content
from utils.grid_time import to_epoch_seconds


@pytest.fixture
def fake_chart(monkeypatch):
    """Replaces the provider and renderer; records every render call."""
    calls = []

    def fake_history(chain_id, address, launched_days, now_ts=None):
        hour = now_ts // 3600 * 3600
        return [PricePoint(hour - i * 3600, 1.0 + i) for i in range(48)]

    def fake_render(price_points, symbol, name, markers):
        calls.append((symbol, list(price_points), list(markers)))
        return f"PNG:{symbol}".encode()

    monkeypatch.setattr(content_service, "get_price_history", fake_history)
    monkeypatch.setattr(content_service, "render_price_chart", fake_render)
    return calls


@pytest.mark.asyncio
async def test_builds_message_chart_and_action_url(make_token, fake_chart, now):
    token = make_token()

    contents = await build_content([token], "en", ChartCache(), now=now)

    assert len(contents) == 1
    content = contents[0]
    assert "FOO" in content.message and "8%" in content.message
    assert content.chart == b"PNG:FOO"
    assert content.action_url.endswith("startapp=900-FooPair111")
    assert content.chain_id == "solana"


@pytest.mark.asyncio
async def test_skips_symbol_sent_within_the_hour(make_token, fake_chart, now):
    make_token(base_token_address="OtherChainAddr", chain_id="base", sent_time=now - dt.timedelta(minutes=59))
    candidate = make_token()
    other = make_token(base_token_symbol="BAR", base_token_address="BarAddr", rank=2)

    contents = await build_content([candidate, other], "en", ChartCache(), now=now)

    assert [c.token.base_token_symbol for c in contents] == ["BAR"]


@pytest.mark.asyncio
async def test_symbol_sent_more_than_an_hour_ago_is_not_deduped(make_token, fake_chart, now):
    make_token(base_token_address="OtherChainAddr", sent_time=now - dt.timedelta(minutes=61))
    candidate = make_token()

    contents = await build_content([candidate], "en", ChartCache(), now=now)

    assert len(contents) == 1


@pytest.mark.asyncio
async def test_rally_on_first_ever_record(make_token, fake_chart, now):
    # one historical record in total; its price is the "first entry"
    token = make_token(price_usd=1.0)
    token.price_usd = 1.5

    contents = await build_content([token], "en", ChartCache(), now=now)

    assert "50%" in contents[0].message
    assert "First Signal" in contents[0].message


@pytest.mark.asyncio
async def test_rally_without_first_signal_when_seen_before(make_token, fake_chart, now):
    make_token(price_usd=1.0, insert_time=now - dt.timedelta(days=2))
    token = make_token(price_usd=3.0)

    contents = await build_content([token], "en", ChartCache(), now=now)

    assert "200%" in contents[0].message
    assert "First Signal" not in contents[0].message


@pytest.mark.asyncio
async def test_chart_rendered_once_per_address_across_languages(make_token, fake_chart, now):
    sol = make_token()
    same_address_other_group = make_token(group_id="g2")
    cache = ChartCache()

    en = await build_content([sol, same_address_other_group], "en", cache, now=now)
    ru = await build_content([sol, same_address_other_group], "ru", cache, now=now)

    assert len(en) == 2 and len(ru) == 2
    assert len(fake_chart) == 1
    assert cache.renders == 1
    assert "FooAddr111" in cache


@pytest.mark.asyncio
async def test_failed_chart_is_not_rendered_again_for_other_languages(make_token, fake_chart, monkeypatch, now):
    token = make_token()
    cache = ChartCache()
    attempts = []

    def fails_first_time(price_points, symbol, name, markers):
        attempts.append(symbol)
        if len(attempts) == 1:
            raise RuntimeError("renderer exploded")
        return b"PNG"

    monkeypatch.setattr(content_service, "render_price_chart", fails_first_time)

    en = await build_content([token], "en", cache, now=now)
    ru = await build_content([token], "ru", cache, now=now)

    assert attempts == ["FOO"]
    assert en == [] and ru == []
    assert cache.renders == 1
    assert cache.failed("FooAddr111")
    assert "FooAddr111" not in cache


@pytest.mark.asyncio
async def test_chart_markers_come_from_address_history(make_token, fake_chart, now):
    make_token(insert_time=now - dt.timedelta(hours=5, minutes=20))
    make_token(insert_time=now - dt.timedelta(days=40))  # outside the price series
    token = make_token()

    await build_content([token], "en", ChartCache(), now=now)

    _, _, markers = fake_chart[0]
    expected_hours = {
        to_epoch_seconds(now - dt.timedelta(hours=6)),
        to_epoch_seconds(now - dt.timedelta(hours=1)),
    }
    assert {m.timestamp for m in markers} == expected_hours


@pytest.mark.asyncio
async def test_failing_token_does_not_stop_the_others(make_token, fake_chart, monkeypatch, now):
    bad = make_token(base_token_symbol="BAD", base_token_address="BadAddr")
    good = make_token(base_token_symbol="GOOD", base_token_address="GoodAddr", rank=2)
    real_render = content_service.render_price_chart

    def flaky_render(price_points, symbol, name, markers):
        if symbol == "BAD":
            raise RuntimeError("renderer exploded")
        return real_render(price_points, symbol, name, markers)

    monkeypatch.setattr(content_service, "render_price_chart", flaky_render)

    contents = await build_content([bad, good], "en", ChartCache(), now=now)

    assert [c.token.base_token_symbol for c in contents] == ["GOOD"]


@pytest.mark.asyncio
async def test_candidates_are_grouped_then_ranked(make_token, fake_chart, now):
    a2 = make_token(base_token_symbol="A2", base_token_address="a2", rank=2)
    b1 = make_token(base_token_symbol="B1", base_token_address="b1", chain_id="base", rank=1)
    a1 = make_token(base_token_symbol="A1", base_token_address="a1", rank=1)

    contents = await build_content([a2, b1, a1], "en", ChartCache(), now=now)

    assert [c.token.base_token_symbol for c in contents] == ["A1", "A2", "B1"]
