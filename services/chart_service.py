import io
import logging
from contextlib import suppress
from typing import Sequence

import pandas as pd

# ===== select the backend before any matplotlib.pyplot import =====
import matplotlib
matplotlib.use("Agg")   # use non-GUI backend so Tkinter is never involved
# ==================================================================
import matplotlib.pyplot as plt
import matplotlib.dates as mdates

from models.notification import AlertMarker, PricePoint

logger = logging.getLogger("services.chart_service")

# ---------- CONFIG ----------
FIGSIZE = (8, 6)                  # inches, at DPI -> 800x600
DPI = 100
BACKGROUND = "black"
LINE_COLOR = (0.0, 1.0, 0.0, 1.0)
MARKER_COLOR = "yellow"
MARKER_SIZE = 90
GRID_COLOR = (1.0, 1.0, 1.0, 0.1)
FONT_FAMILY = "DejaVu Sans"
MAX_X_TICKS = 10
# ---------------------------


def _to_utc_index(timestamps: Sequence[int]) -> pd.DatetimeIndex:
    return pd.to_datetime(list(timestamps), unit="s", utc=True).tz_localize(None)


def _style_axes(ax):
    ax.set_facecolor(BACKGROUND)
    ax.grid(True, color=GRID_COLOR)
    for spine in ax.spines.values():
        spine.set_color((1.0, 1.0, 1.0, 0.3))
    ax.set_xlabel("Date", color=(1.0, 1.0, 1.0, 0.7), fontsize=12 * 1.3, family=FONT_FAMILY)
    ax.set_ylabel("Price (USD)", color="white", fontsize=12 * 1.3, family=FONT_FAMILY)
    ax.tick_params(axis="x", colors=(1.0, 1.0, 1.0, 0.5), labelsize=10)
    ax.tick_params(axis="y", colors="white", labelsize=10)


def render_price_chart(
    price_points: Sequence[PricePoint],
    token_symbol: str,
    token_name: str,
    markers: Sequence[AlertMarker],
) -> bytes:
    """
    Render the token's price line with alert markers layered on top. Returns PNG bytes.

    The line has no point markers; each alert is an upward triangle. An empty price
    series still yields a (blank) chart so a missing provider response never blocks delivery.
    Inputs are only read.
    """
    fig = None
    try:
        fig, ax = plt.subplots(figsize=FIGSIZE, dpi=DPI)
        fig.patch.set_facecolor(BACKGROUND)
        _style_axes(ax)

        label = f"{token_symbol} | {token_name}" if token_name else f"{token_symbol}"

        if price_points:
            x = _to_utc_index(p.timestamp for p in price_points)
            y = [p.price for p in price_points]
            ax.plot(x, y, color=LINE_COLOR, linewidth=2, marker=None, label=label, zorder=1)

            if markers:
                mx = _to_utc_index(m.timestamp for m in markers)
                my = [m.price for m in markers]
                ax.scatter(mx, my, marker="^", s=MARKER_SIZE, color=MARKER_COLOR,
                           edgecolors=MARKER_COLOR, linewidths=1, label="Buy Signal", zorder=2)

            locator = mdates.AutoDateLocator(maxticks=MAX_X_TICKS)
            ax.xaxis.set_major_locator(locator)
            ax.xaxis.set_major_formatter(mdates.ConciseDateFormatter(locator))
        else:
            # keep the legend entry so the chart still names the token
            ax.plot([], [], color=LINE_COLOR, linewidth=2, label=label)
            ax.text(0.5, 0.5, "No price data", transform=ax.transAxes, ha="center", va="center",
                    color=(1.0, 1.0, 1.0, 0.6), fontsize=14, family=FONT_FAMILY)
            ax.set_xticks([])
            ax.set_yticks([])

        legend = ax.legend(loc="upper left", facecolor=BACKGROUND, edgecolor=(1.0, 1.0, 1.0, 0.3),
                           prop={"size": 12, "family": FONT_FAMILY})
        for text in legend.get_texts():
            text.set_color("white")

        fig.subplots_adjust(top=0.95, bottom=0.12, left=0.12, right=0.96)

        buf = io.BytesIO()
        fig.savefig(buf, format="png", dpi=DPI, facecolor=fig.get_facecolor())
        return buf.getvalue()
    finally:
        with suppress(Exception):
            if fig is not None:
                plt.close(fig)
