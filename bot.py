import logging

from telegram.ext import Application
from config import BOT_TOKEN, LOG_LEVEL, NOTIFY_FIRST_DELAY_SECONDS, NOTIFY_INTERVAL_SECONDS

# db
from services.db_service import init_db
# notification cycle
from services.scheduler_service import dex_notifications_job

# logging
logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", level=LOG_LEVEL)
# the HTTP client logs every request at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def build_application() -> Application:
    app = Application.builder().token(BOT_TOKEN).build()

    # Add job for DEX notifications
    job_queue = app.job_queue
    if job_queue is None:
        raise RuntimeError("JobQueue unavailable; install python-telegram-bot[job-queue]")
    job_queue.run_repeating(
        dex_notifications_job,
        interval=NOTIFY_INTERVAL_SECONDS,
        first=NOTIFY_FIRST_DELAY_SECONDS,
        name="dex_notifications",
    )
    return app


def main():
    init_db()
    app = build_application()

    logger.info("🤖 Bot is running (DEX notifications every %ss)...", NOTIFY_INTERVAL_SECONDS)
    try:
        app.run_polling()
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")


if __name__ == "__main__":
    main()
