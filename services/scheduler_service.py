# services/scheduler_service.py
"""
Notification cycle for DEX rally alerts.

- Selects unsent, fast-moving token snapshots (models.token_data.select_candidates).
- Loads the active recipients once for the cycle.
- Builds content once per recipient language, sharing one chart cache for the cycle.
- Fans out to recipients (services.dispatch_service).
- Marks every candidate as sent once the fanout has been attempted.

An unexpected error before the final step ends the cycle without marking, so the
same snapshots are picked up again next cycle.

Usage (python-telegram-bot job queue):
    app.job_queue.run_repeating(dex_notifications_job, interval=NOTIFY_INTERVAL_SECONDS, first=10)
"""
import asyncio
import datetime as dt
import logging
import time
from typing import Dict, List, Optional

from telegram import Bot
from telegram.ext import ContextTypes

from models.notification import DispatchReport, NotificationContent
from models.token_data import mark_snapshots_sent, select_candidates
from models.user import DEFAULT_LANGUAGE, query_active_recipients
from services.content_service import ChartCache, build_content
from services.dispatch_service import dispatch
from utils.grid_time import utcnow
from utils.grouping import group_by

logger = logging.getLogger(__name__)


async def send_dex_notifications(bot: Bot, now: Optional[dt.datetime] = None) -> Optional[DispatchReport]:
    start_time = time.monotonic()
    now = now or utcnow()
    logger.info("Starting sendDexNotifications cycle")
    try:
        candidates = await asyncio.to_thread(select_candidates, now)
        logger.info("Found %d unsent DEX token data", len(candidates))
        if not candidates:
            return None

        recipients = await asyncio.to_thread(query_active_recipients)
        languages = list(group_by(recipients, lambda r: r.language_code or DEFAULT_LANGUAGE))

        chart_cache = ChartCache()
        content_by_language: Dict[str, List[NotificationContent]] = {}
        for lang in languages:
            content_by_language[lang] = await build_content(candidates, lang, chart_cache, now=now)

        report = await dispatch(bot, recipients, content_by_language)
    except Exception as e:
        logger.exception("Error sending DEX notifications: %s", e)
        return None

    # Delivery is best-effort: mark everything selected this cycle, delivered or not
    try:
        marked = await asyncio.to_thread(mark_snapshots_sent, [c.id for c in candidates])
    except Exception as e:
        logger.exception("Failed to mark %d tokens as sent: %s", len(candidates), e)
        return report

    logger.info(
        "sendDexNotifications completed in %.2f seconds: %d tokens marked sent, %d charts rendered",
        time.monotonic() - start_time, marked, chart_cache.renders,
    )
    return report


async def dex_notifications_job(context: ContextTypes.DEFAULT_TYPE):
    await send_dex_notifications(context.bot)
