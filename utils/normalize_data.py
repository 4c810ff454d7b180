# utils/normalize_data.py

import math
from typing import List, Optional

import pandas as pd

from models.notification import PricePoint


def to_float(value) -> Optional[float]:
    """
    Coerce a stored metric to float.

    Args:
        value: number, numeric string, None, or anything else

    Returns:
        float, or None when the value is missing, non-numeric, NaN or infinite.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(num) or math.isinf(num):
        return None
    return num


def normalize_price_history(items) -> pd.DataFrame:
    """
    Normalize provider price-history items into a DataFrame.
    Drops rows with a missing/non-numeric time or price and duplicate timestamps.

    Args:
        items (list): provider items like {"unixTime": 1700000000, "value": 0.0123}

    Returns:
        pd.DataFrame: columns ['timestamp' (int seconds), 'price' (float)], sorted by timestamp.
    """
    if not items:
        return pd.DataFrame(columns=["timestamp", "price"])

    rows = [i for i in items if isinstance(i, dict)]
    df = pd.DataFrame({
        "timestamp": pd.to_numeric([r.get("unixTime") for r in rows], errors="coerce"),
        "price": pd.to_numeric([r.get("value") for r in rows], errors="coerce"),
    })
    df = df.dropna(subset=["timestamp", "price"])
    df["timestamp"] = df["timestamp"].astype("int64")
    df["price"] = df["price"].astype(float)

    df = df.drop_duplicates(subset="timestamp", keep="last")
    df.sort_values("timestamp", inplace=True)
    df.reset_index(drop=True, inplace=True)
    return df


def to_price_points(df: pd.DataFrame) -> List[PricePoint]:
    if df is None or df.empty:
        return []
    return [PricePoint(timestamp=int(ts), price=float(price)) for ts, price in zip(df["timestamp"], df["price"])]
