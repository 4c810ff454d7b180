# services/message_service.py
"""
HTML captions for DEX rally notifications (Telegram ParseMode.HTML).
"""
import html
import math
from typing import Optional

from config import MINI_APP_URL, SIGNAL_CHANNEL_NAME, SIGNAL_CHANNEL_URL
from services.translation_service import translate
from utils.normalize_data import to_float

NOT_AVAILABLE = "N/A"

# chain name -> GoPlus chain id used by the mini app deep link
GOPLUS_CHAIN_ID_MAP = {
    "ethereum": "1",
    "optimism": "10",
    "cronos": "25",
    "bsc": "56",
    "gnosis": "100",
    "heco": "128",
    "polygon": "137",
    "fantom": "250",
    "kcc": "321",
    "zksync_era": "324",
    "ethw": "10001",
    "fon": "201022",
    "arbitrum": "42161",
    "avalanche": "43114",
    "linea": "59144",
    "base": "8453",
    "tron": "tron",
    "scroll": "534352",
    "opbnb": "204",
    "mantle": "5000",
    "zkfair": "42766",
    "blast": "81457",
    "manta_pacific": "169",
    "berachain_artio_testnet": "80085",
    "merlin": "4200",
    "bitlayer_mainnet": "200901",
    "zklink_nova": "810180",
    "x_layer_mainnet": "196",
    "solana": "900",
}
DEFAULT_GOPLUS_CHAIN_ID = "default_chain_id"

RISK_EMOJI = {
    "low": "🟢",
    "medium": "🟡",
    "high": "🔴",
}
UNKNOWN_RISK_EMOJI = "⚪"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _na(lang: Optional[str]) -> str:
    if lang is None:
        return NOT_AVAILABLE
    return translate(lang, "not_available") or NOT_AVAILABLE


def format_percent(value, multiply: bool = False, lang: Optional[str] = None) -> str:
    """
    Whole-number percent, e.g. 8.2 -> "8%". Fractions (0.42) need multiply=True.
    Missing, non-numeric and zero values render as N/A.
    """
    num = to_float(value)
    if num is None or num == 0:
        return _na(lang)
    if multiply:
        num *= 100
    return f"{_round_half_up(num)}%"


def format_number(value, lang: Optional[str] = None) -> str:
    num = to_float(value)
    if num is None:
        return _na(lang)
    return f"{_round_half_up(num):,}"


def capitalize_first_letter(text: Optional[str]) -> str:
    return text[:1].upper() + text[1:].lower() if text else NOT_AVAILABLE


def risk_label(risk_level: Optional[str], lang: str) -> str:
    """Colored indicator + localized tier: low / medium / high, anything else is unknown."""
    level = (risk_level or "").strip().lower()
    if level in RISK_EMOJI:
        return f"{RISK_EMOJI[level]} {translate(lang, level)}"
    return f"{UNKNOWN_RISK_EMOJI} {translate(lang, 'unknown')}"


def _link(url: Optional[str], label: str) -> str:
    if not url:
        return label
    return f'<a href="{html.escape(url, quote=True)}">{label}</a>'


def generate_links(token) -> str:
    website = _link(token.website, "Web")
    twitter = _link(token.twitter, "X")
    telegram = _link(token.telegram, "TG")
    screener = _link(token.dexscreener, "Screener")
    return f" {website}   |   {twitter}   |   {telegram}   |   {screener}"


def build_action_url(token) -> str:
    chain_key = (token.chain_id or "").lower()
    goplus_chain_id = GOPLUS_CHAIN_ID_MAP.get(chain_key, DEFAULT_GOPLUS_CHAIN_ID)
    return f"{MINI_APP_URL}?startapp={goplus_chain_id}-{token.pair_address or ''}"


def format_rally_message(first_price, current_price, is_first_call: bool, lang: str) -> str:
    """
    Rally since the token's first recorded snapshot, or "" when the price has not risen.
    A token seen for the very first time gets the first-signal marker appended.
    """
    initial = to_float(first_price)
    current = to_float(current_price)
    if initial is None or current is None or initial <= 0 or current <= initial:
        return ""

    rally_percent = (current - initial) / initial * 100
    message = translate(lang, "rally_message", percent=format_percent(rally_percent, lang=lang))
    if is_first_call:
        message += "\n" + translate(lang, "first_signal")
    return message


def format_token_message(token, lang: str = "en") -> str:
    def t(key):
        return translate(lang, key)

    symbol = html.escape((token.base_token_symbol or "").upper())
    chain = html.escape(capitalize_first_letter(token.chain_id))
    channel_link = f'<a href="{html.escape(SIGNAL_CHANNEL_URL, quote=True)}"> {html.escape(SIGNAL_CHANNEL_NAME)}</a>'

    return (
        f"<b>${symbol} {t('on')} {chain} {t('up')} {format_percent(token.price_change_h1, lang=lang)} "
        f"{t('in')} {t('1H')}! 🔥</b>\n"
        f"{t('signal_on')} {channel_link}\n"
        f"\n"
        f"📈 {t('5m')}: {format_percent(token.price_change_m5, lang=lang)} | "
        f"{t('1h')}: {format_percent(token.price_change_h1, lang=lang)} | "
        f"{t('24h')}: {format_percent(token.price_change_h24, lang=lang)}\n"
        f"\n"
        f"💰 {t('fdv')}: {format_number(token.market_cap_kusd, lang=lang)} ({t('thousand_usd')})\n"
        f"💦 {t('liquidity')}: {format_number(token.liquidity_usd_kusd, lang=lang)} ({t('thousand_usd')})\n"
        f"📊 {t('volume24h')}: {format_number(token.volume_h24_kusd, lang=lang)} ({t('thousand_usd')})\n"
        f"\n"
        f"🔥 {t('burn')}: {format_percent(token.lp_locked_percent, multiply=True, lang=lang)} | "
        f"{t('top10')}: {format_percent(token.top_10_percent, multiply=True, lang=lang)}\n"
        f"{risk_label(token.security_risk, lang)} {t('smart_contract_risk')} | "
        f"⏳ {format_number(token.launched_days, lang=lang)}{t('days')}\n"
        f"\n"
        f"{generate_links(token)}"
    )
