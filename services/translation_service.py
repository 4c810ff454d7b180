# services/translation_service.py
"""
Localized strings for notification messages.

English is built in and is the fallback for every other language.
Extra languages are read once from LOCALES_DIR/<lang>.json when configured.
"""
import json
import logging
import os
import re
from typing import Dict, Optional

from config import LOCALES_DIR

logger = logging.getLogger(__name__)

FALLBACK_LANGUAGE = "en"

TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "en": {
        "on": "on",
        "up": "up",
        "in": "in",
        "1H": "1H",
        "signal_on": "Signal on",
        "5m": "5m",
        "1h": "1h",
        "24h": "24h",
        "fdv": "FDV",
        "liquidity": "Liquidity",
        "volume24h": "Volume 24h",
        "thousand_usd": "K USD",
        "burn": "Burn",
        "top10": "Top 10",
        "smart_contract_risk": "Smart contract risk",
        "low": "Low",
        "medium": "Medium",
        "high": "High",
        "unknown": "Unknown",
        "days": "d",
        "not_available": "N/A",
        "rally_message": "🚀 Up {percent} since first signal",
        "first_signal": "❗️First Signal❗️",
        "open_mini_app_button": "Trade now",
    },
}

_PLACEHOLDER = re.compile(r"\{(\w+)\}")
_loaded_dirs = set()


def load_locales(directory: Optional[str] = LOCALES_DIR) -> None:
    """
    Merge <lang>.json files from `directory` into TRANSLATIONS. Unreadable files are logged and skipped.
    """
    if not directory or directory in _loaded_dirs:
        return
    _loaded_dirs.add(directory)
    if not os.path.isdir(directory):
        logger.warning("LOCALES_DIR %s does not exist", directory)
        return

    for filename in sorted(os.listdir(directory)):
        if not filename.endswith(".json"):
            continue
        lang = filename[:-5]
        path = os.path.join(directory, filename)
        try:
            with open(path, "r", encoding="utf-8") as f:
                table = json.load(f)
        except (OSError, ValueError):
            logger.exception("load_locales: failed to read %s", path)
            continue
        if not isinstance(table, dict):
            logger.warning("load_locales: %s is not a JSON object", path)
            continue
        TRANSLATIONS.setdefault(lang, {}).update({str(k): str(v) for k, v in table.items()})


def translate(language_code: str, key: str, **params) -> str:
    """
    Look up `key` for the language, falling back to English, then to "".
    `{name}` placeholders are filled from params; unknown placeholders are left as-is.
    Never raises.
    """
    load_locales()
    lang = (language_code or FALLBACK_LANGUAGE).lower()

    text = TRANSLATIONS.get(lang, {}).get(key)
    if text is None:
        if lang != FALLBACK_LANGUAGE:
            logger.warning("Translation for '%s' not found for language: %s", key, lang)
        text = TRANSLATIONS.get(FALLBACK_LANGUAGE, {}).get(key)
    if text is None:
        logger.warning("Translation key '%s' is missing", key)
        return ""

    if params:
        text = _PLACEHOLDER.sub(lambda m: str(params[m.group(1)]) if m.group(1) in params else m.group(0), text)
    return text
