# config.py
import os
from dotenv import load_dotenv

# Load .env if present (harmless if env vars come from the process manager instead)
load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Required:
BOT_TOKEN = os.environ["BOT_TOKEN"]

DB_PATH = os.getenv("DB_PATH", "database.db")
# Any SQLAlchemy URL works; defaults to a local SQLite file
DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{DB_PATH}"

# Price history provider
BIRDEYE_API_KEY = os.getenv("BIRDEYE_API_KEY", "")
BIRDEYE_BASE_URL = os.getenv("BIRDEYE_BASE_URL", "https://public-api.birdeye.so")
PRICE_HISTORY_TIMEOUT = float(os.getenv("PRICE_HISTORY_TIMEOUT", "15"))

# Notification cycle
NOTIFY_INTERVAL_SECONDS = int(os.getenv("NOTIFY_INTERVAL_SECONDS", "600"))
NOTIFY_FIRST_DELAY_SECONDS = int(os.getenv("NOTIFY_FIRST_DELAY_SECONDS", "10"))
ALLOWED_CHAINS = [
    c.strip().lower()
    for c in os.getenv("ALLOWED_CHAINS", "solana,bsc,base,ethereum").split(",")
    if c.strip()
]
PRICE_CHANGE_H1_THRESHOLD = float(os.getenv("PRICE_CHANGE_H1_THRESHOLD", "5"))
ELIGIBLE_WINDOW_MINUTES = int(os.getenv("ELIGIBLE_WINDOW_MINUTES", "10"))
TOP_N_PER_GROUP = int(os.getenv("TOP_N_PER_GROUP", "5"))
RECENT_SENT_WINDOW_MINUTES = int(os.getenv("RECENT_SENT_WINDOW_MINUTES", "60"))

# Fanout
BATCH_SIZE = int(os.getenv("BATCH_SIZE", "20"))
PER_RECIPIENT_TIMEOUT = float(os.getenv("PER_RECIPIENT_TIMEOUT", "60"))

# Links embedded in messages and buttons
MINI_APP_URL = os.getenv("MINI_APP_URL", "https://t.me/kaboom_auth_bot/kaboom")
SIGNAL_CHANNEL_URL = os.getenv("SIGNAL_CHANNEL_URL", "https://t.me/kaboom_signal")
SIGNAL_CHANNEL_NAME = os.getenv("SIGNAL_CHANNEL_NAME", "@KaBoomAlpha")

# Optional directory with <lang>.json translation tables
LOCALES_DIR = os.getenv("LOCALES_DIR")
