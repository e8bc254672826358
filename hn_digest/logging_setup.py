# hn_digest/logging_setup.py
import logging
from logging.config import dictConfig
from logging import LogRecord
from pathlib import Path
import contextvars
import os

# ---- Correlation IDs ----
# request_id is set by the HTTP middleware, run_id by each digest cycle.
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="-")

class CorrelationFilter(logging.Filter):
    def filter(self, record: LogRecord) -> bool:
        record.request_id = request_id_var.get()
        record.run_id = run_id_var.get()
        return True

# Attributes every LogRecord has; anything else arrived through extra=
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime", "request_id", "run_id"}

class ExtraFieldsFormatter(logging.Formatter):
    """Standard line plus ` | key=value ...` for fields passed via extra=."""

    def format(self, record: LogRecord) -> str:
        line = super().format(record)
        fields = {k: v for k, v in vars(record).items() if k not in _RESERVED and not k.startswith("_")}
        if not fields:
            return line
        rendered = " ".join(f"{k}={v}" for k, v in fields.items())
        head, sep, tail = line.partition("\n")  # keep tracebacks below the fields
        return f"{head} | {rendered}{sep}{tail}"

# ---- Paths & levels ----
BASE_DIR = Path(__file__).resolve().parents[1]  # folder that contains 'hn_digest/'
LOG_DIR = Path(os.getenv("LOG_DIR", BASE_DIR / "logs"))
LOG_FILE = LOG_DIR / "hn_digest.log"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_BACKUP_DAYS = int(os.getenv("LOG_BACKUP_DAYS", "14"))

def setup_logging() -> Path:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,

        "filters": {
            "correlation": {"()": CorrelationFilter},
        },

        "formatters": {
            "pipeline": {
                "()": ExtraFieldsFormatter,
                "format": "%(asctime)s | %(levelname)s | %(name)s | req=%(request_id)s run=%(run_id)s | %(message)s",
            },
            "uvicorn_access": {
                "format": "%(asctime)s | %(levelname)s | %(message)s"
            },
        },

        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "pipeline",
                "filters": ["correlation"],
            },
            "file": {
                "class": "logging.handlers.TimedRotatingFileHandler",
                "formatter": "pipeline",
                "filters": ["correlation"],
                "filename": str(LOG_FILE),
                "when": "midnight",
                "backupCount": LOG_BACKUP_DAYS,
                "encoding": "utf-8",
            },
            "uvicorn_console": {
                "class": "logging.StreamHandler",
                "formatter": "uvicorn_access",
            },
        },

        "loggers": {
            # hn_digest.* loggers inherit these handlers
            "hn_digest": {"handlers": ["console", "file"], "level": LOG_LEVEL, "propagate": False},

            "apscheduler": {"handlers": ["console", "file"], "level": "INFO", "propagate": False},

            # httpx logs every request URL at INFO, and Telegram URLs carry the bot token
            "httpx": {"handlers": ["console", "file"], "level": "WARNING", "propagate": False},
            "httpcore": {"level": "WARNING"},
            "openai": {"level": "WARNING"},
            "trafilatura": {"level": "ERROR"},

            "uvicorn.error":  {"handlers": ["uvicorn_console", "file"], "level": "INFO", "propagate": False},
            "uvicorn.access": {"handlers": ["uvicorn_console", "file"], "level": "INFO", "propagate": False},
        },

        "root": {"handlers": ["console", "file"], "level": LOG_LEVEL},
    })

    logging.getLogger("hn_digest").info("LOGGING_READY", extra={"file": str(LOG_FILE), "level": LOG_LEVEL})
    return LOG_FILE

def get_logger(name: str = "hn_digest") -> logging.Logger:
    return logging.getLogger(name)
