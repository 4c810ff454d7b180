# services/dispatch_service.py
"""
Recipient fanout for one notification cycle.

    group by language -> shuffle -> batches of BATCH_SIZE
    batches run one after another; recipients inside a batch run concurrently

Every recipient runs inside its own isolation boundary with a timeout, so one
failing or hanging chat never affects the others, and every batch runs inside
a boundary too. Delivery failures are only logged.
"""
import asyncio
import logging
import random
import time
from typing import Dict, List, Optional, Sequence

from telegram import Bot

from config import BATCH_SIZE, PER_RECIPIENT_TIMEOUT
from models.notification import DispatchReport, NotificationContent, Recipient
from models.user import DEFAULT_LANGUAGE
from services.notify_user import is_group_chat, send_token_notification
from utils.grouping import group_by
from utils.safe_call import isolation_boundary, run_isolated

logger = logging.getLogger(__name__)

DELIVERED = "delivered"
FAILED = "failed"
SKIPPED = "skipped"


def shuffled(recipients: Sequence[Recipient], rng: Optional[random.Random] = None) -> List[Recipient]:
    """Uniformly shuffled copy; the input is left untouched."""
    out = list(recipients)
    (rng or random).shuffle(out)
    return out


def make_batches(items: Sequence, batch_size: int) -> List[list]:
    return [list(items[i:i + batch_size]) for i in range(0, len(items), batch_size)]


def content_for_recipient(recipient: Recipient, contents: Sequence[NotificationContent]) -> List[NotificationContent]:
    return [c for c in contents if c.chain_id in recipient.subscribed_chains]


async def deliver_to_recipient(bot: Bot, recipient: Recipient, contents: Sequence[NotificationContent]) -> str:
    """
    Send every content item on a subscribed chain to one group chat.
    Private chats, unsupported chat types and failed lookups are skipped.
    """
    matching = content_for_recipient(recipient, contents)
    if not matching:
        return SKIPPED

    if not await is_group_chat(bot, recipient.external_id):
        return SKIPPED

    sent = 0
    for content in matching:
        if await send_token_notification(bot, recipient.external_id, content, recipient.language_code):
            sent += 1
    return DELIVERED if sent else FAILED


async def _run_batch(bot: Bot, batch: List[Recipient], contents: Sequence[NotificationContent]) -> DispatchReport:
    results = await asyncio.gather(*(
        run_isolated(
            deliver_to_recipient(bot, recipient, contents),
            "delivery to recipient",
            recipient.external_id,
            timeout=PER_RECIPIENT_TIMEOUT,
            default=FAILED,
        )
        for recipient in batch
    ))
    return DispatchReport(
        recipients=len(batch),
        delivered=results.count(DELIVERED),
        failed=results.count(FAILED),
        skipped=results.count(SKIPPED),
    )


async def dispatch(
    bot: Bot,
    recipients: Sequence[Recipient],
    content_by_language: Dict[str, List[NotificationContent]],
    batch_size: int = BATCH_SIZE,
    rng: Optional[random.Random] = None,
) -> DispatchReport:
    start_time = time.monotonic()
    report = DispatchReport()
    by_language = group_by(recipients, lambda r: r.language_code or DEFAULT_LANGUAGE)

    for lang, group in by_language.items():
        contents = content_by_language.get(lang) or []
        if not contents:
            logger.info("No content for language group %s; skipping %d recipients", lang, len(group))
            report.merge(DispatchReport(recipients=len(group), skipped=len(group)))
            continue

        logger.info("Processing language group: %s (%d recipients, %d items)", lang, len(group), len(contents))
        for number, batch in enumerate(make_batches(shuffled(group, rng), batch_size), start=1):
            with isolation_boundary("batch", f"{lang}#{number}"):
                batch_report = await _run_batch(bot, batch, contents)
                report.merge(batch_report)
                logger.info("Completed sending notifications for batch %d for language: %s", number, lang)

    logger.info(
        "Fanout finished in %.2f seconds: %d recipients, %d delivered, %d failed, %d skipped",
        time.monotonic() - start_time, report.recipients, report.delivered, report.failed, report.skipped,
    )
    return report
