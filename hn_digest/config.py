import os
import re
from dotenv import load_dotenv
from pathlib import Path

import pytz

from .errors import ConfigError

# Go up one level from hn_digest/ to root/
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Credentials
TELEGRAM_TOKEN = os.getenv("TELEGRAM_TOKEN", "")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# Delivery target; 0 means "use whatever /start stored in the settings table"
CHAT_ID = int(os.getenv("CHAT_ID", "0"))
WEBHOOK_URL = os.getenv("WEBHOOK_URL", "")
WEBHOOK_SECRET = os.getenv("WEBHOOK_SECRET", "")

# Schedule
DIGEST_TIME = os.getenv("DIGEST_TIME", "09:00")
TIMEZONE = os.getenv("TIMEZONE", "UTC")
ARTICLE_COUNT = int(os.getenv("ARTICLE_COUNT", "30"))
FETCH_TIMEOUT_SECS = float(os.getenv("FETCH_TIMEOUT_SECS", "10"))

# Preference learning
TAG_DECAY_RATE = float(os.getenv("TAG_DECAY_RATE", "0.02"))
MIN_TAG_WEIGHT = float(os.getenv("MIN_TAG_WEIGHT", "0.1"))
TAG_BOOST_ON_LIKE = float(os.getenv("TAG_BOOST_ON_LIKE", "0.2"))
RECENCY_WINDOW_DAYS = float(os.getenv("RECENCY_WINDOW_DAYS", "7"))

# Ranking mix: learned tag preference vs. raw HN popularity
TAG_SCORE_WEIGHT = float(os.getenv("TAG_SCORE_WEIGHT", "0.7"))
ENGAGEMENT_WEIGHT = float(os.getenv("ENGAGEMENT_WEIGHT", "0.3"))

DB_FILE = os.getenv("DB_FILE", "hn_digest.db")

MAX_ARTICLE_COUNT = 100

_DIGEST_TIME_RE = re.compile(r"^([01][0-9]|2[0-3]):([0-5][0-9])$")


def parse_digest_time(value: str) -> tuple[int, int]:
    """Return (hour, minute) for an "HH:MM" string, raising ConfigError otherwise."""
    m = _DIGEST_TIME_RE.match(value or "")
    if not m:
        raise ConfigError(f"digest time must be HH:MM (00:00-23:59), got {value!r}")
    return int(m.group(1)), int(m.group(2))


def validate_config() -> None:
    """
    Fail fast on startup. Called from the app lifespan before anything touches
    the network or the database.
    """
    if not TELEGRAM_TOKEN:
        raise ConfigError("TELEGRAM_TOKEN is required")
    if not OPENAI_API_KEY:
        raise ConfigError("OPENAI_API_KEY is required")
    parse_digest_time(DIGEST_TIME)
    try:
        pytz.timezone(TIMEZONE)
    except pytz.UnknownTimeZoneError as e:
        raise ConfigError(f"invalid timezone {TIMEZONE!r}") from e
    if not 1 <= ARTICLE_COUNT <= MAX_ARTICLE_COUNT:
        raise ConfigError(f"ARTICLE_COUNT must be between 1 and {MAX_ARTICLE_COUNT}")
    if FETCH_TIMEOUT_SECS <= 0:
        raise ConfigError("FETCH_TIMEOUT_SECS must be positive")
    if not 0 <= TAG_DECAY_RATE < 1:
        raise ConfigError("TAG_DECAY_RATE must be in [0, 1)")
    if MIN_TAG_WEIGHT <= 0:
        raise ConfigError("MIN_TAG_WEIGHT must be positive")
    if TAG_BOOST_ON_LIKE <= 0:
        raise ConfigError("TAG_BOOST_ON_LIKE must be positive")
    if RECENCY_WINDOW_DAYS <= 0:
        raise ConfigError("RECENCY_WINDOW_DAYS must be positive")
