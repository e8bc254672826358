# hn_digest/lifespan.py
from contextlib import asynccontextmanager
from fastapi import FastAPI

from . import config
from .bot import current_digest_time
from .deps import get_store, get_telegram, run_digest_job, shutdown_event
from .logging_setup import get_logger
from .store import init_db
from .scheduler import add_jobs, start_scheduler, shutdown_scheduler

logger = get_logger("hn_digest.lifespan")

@asynccontextmanager
async def lifespan(app: FastAPI):
    # ---- Startup ----
    logger.info("APP STARTUP")
    config.validate_config()
    init_db()
    shutdown_event.clear()

    if config.WEBHOOK_URL:
        try:
            get_telegram().set_webhook(config.WEBHOOK_URL, config.WEBHOOK_SECRET)
        except Exception as e:
            # the bot can still send digests; commands and reactions wait for a restart
            logger.exception("WEBHOOK_SETUP_FAILED", extra={"handled": True, "error": type(e).__name__})

    if not getattr(app.state, "scheduler_started", False):
        logger.info("Registering scheduler jobs")
        # a /settings time change survives restarts through the settings table
        add_jobs(run_digest_job, current_digest_time(get_store()), config.TIMEZONE)
        start_scheduler()
        app.state.scheduler_started = True
        logger.info("Scheduler started")

    # Hand control to the application
    yield

    # ---- Shutdown ----
    logger.info("APP SHUTDOWN")
    shutdown_event.set()
    if getattr(app.state, "scheduler_started", False):
        logger.info("Stopping scheduler")
        shutdown_scheduler(wait=False)
        app.state.scheduler_started = False
    if get_telegram.cache_info().currsize:
        get_telegram().close()
