# utils/get_data.py

import logging
import time
from typing import List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config import BIRDEYE_API_KEY, BIRDEYE_BASE_URL, PRICE_HISTORY_TIMEOUT
from models.notification import PricePoint
from utils.grid_time import GRID_5M, grid_step_for_age
from utils.normalize_data import normalize_price_history, to_float, to_price_points

logger = logging.getLogger(__name__)

MAX_LOOKBACK_DAYS = 30

# Birdeye history_price "type" per grid step
_BIRDEYE_INTERVAL = {GRID_5M: "5m"}
_BIRDEYE_DEFAULT_INTERVAL = "1H"


def _make_session() -> requests.Session:
    session = requests.Session()
    retries = Retry(total=3, backoff_factor=1, status_forcelist=[429, 500, 502, 503, 504], allowed_methods=["GET"])
    session.mount("https://", HTTPAdapter(max_retries=retries))
    return session


def calculate_time_range(launched_days, now_ts: Optional[int] = None) -> Tuple[int, int]:
    """
    Lookback window for a token's price history: its age, capped at 30 days.
    Unknown age uses the full 30 days.
    """
    now_ts = int(now_ts if now_ts is not None else time.time())
    age = to_float(launched_days)
    days = MAX_LOOKBACK_DAYS if age is None else min(max(age, 0.0), MAX_LOOKBACK_DAYS)
    return now_ts - int(days * 24 * 60 * 60), now_ts


def get_price_history(chain_id: str, address: str, launched_days, now_ts: Optional[int] = None) -> List[PricePoint]:
    """
    Get the price line for a token from Birdeye.
    Sampled every 5 minutes for tokens younger than a day, hourly otherwise.
    Returns [] on any failure.
    """
    time_from, time_to = calculate_time_range(launched_days, now_ts)
    interval = _BIRDEYE_INTERVAL.get(grid_step_for_age(launched_days), _BIRDEYE_DEFAULT_INTERVAL)

    params = {
        "address": address,
        "address_type": "token",
        "type": interval,
        "time_from": time_from,
        "time_to": time_to,
    }
    headers = {
        "accept": "application/json",
        "x-chain": chain_id,
        "X-API-KEY": BIRDEYE_API_KEY,
    }

    session = _make_session()
    try:
        resp = session.get(f"{BIRDEYE_BASE_URL}/defi/history_price", params=params, headers=headers, timeout=PRICE_HISTORY_TIMEOUT)
        resp.raise_for_status()
        data = resp.json()
        payload = data.get("data") if isinstance(data, dict) else None
        items = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            logger.warning("[Birdeye] No price items for %s on %s", address, chain_id)
            return []
        return to_price_points(normalize_price_history(items))
    except (requests.RequestException, ValueError) as e:
        logger.warning("[Birdeye] Price history error for %s on %s: %s", address, chain_id, e)
        return []
    finally:
        session.close()
