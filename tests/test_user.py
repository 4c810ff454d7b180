import logging

from sqlalchemy import BigInteger

from models.user import parse_subscriptions, query_active_recipients


def test_parse_subscriptions_accepts_lists_and_json():
    assert parse_subscriptions(["Solana", " BASE "]) == frozenset({"solana", "base"})
    assert parse_subscriptions('["bsc"]') == frozenset({"bsc"})
    assert parse_subscriptions(None) == frozenset()


def test_parse_subscriptions_rejects_malformed_values_with_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="models.user"):
        assert parse_subscriptions({"solana": True}, user_ref=7) == frozenset()
        assert parse_subscriptions("not json", user_ref=7) == frozenset()
        assert parse_subscriptions(42, user_ref=7) == frozenset()
        assert parse_subscriptions(["solana", 3, ""], user_ref=7) == frozenset({"solana"})
    assert len(caplog.records) == 5


def test_active_recipients_snapshot(make_user):
    make_user(telegram_id=-1, language="ru", subscriptions=["Solana"])
    make_user(telegram_id=-2, language=None, subscriptions="garbage")
    make_user(telegram_id=-3, active=False)

    recipients = {r.external_id: r for r in query_active_recipients()}

    assert set(recipients) == {-1, -2}
    assert recipients[-1].language_code == "ru"
    assert recipients[-1].subscribed_chains == frozenset({"solana"})
    assert recipients[-2].language_code == "en"
    assert recipients[-2].subscribed_chains == frozenset()


def test_supergroup_ids_are_stored_as_64_bit(make_user):
    from models.user import User

    make_user(telegram_id=-1001234567890)

    assert isinstance(User.__table__.c.telegram_id.type, BigInteger)
    assert [r.external_id for r in query_active_recipients()] == [-1001234567890]
