from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from .. import scheduler as sched
from ..deps import get_store
from ..logging_setup import get_logger
from ..store import Store

logger = get_logger("hn_digest.routes.health")

router = APIRouter()

@router.get("/health")
def health():
    logger.debug("Health check invoked")
    return {"status": "ok"}

@router.get("/health/ready")
def ready(store: Store = Depends(get_store)):
    """Database reachable and when the next digest is due."""
    db_ok = True
    try:
        store.like_count()
    except Exception as e:
        logger.warning("READY_DB_FAILED", extra={"handled": True, "error": type(e).__name__})
        db_ok = False

    job = sched.scheduler.get_job(sched.JOB_ID)
    body = {
        "status": "ok" if db_ok else "degraded",
        "database": "ok" if db_ok else "error",
        "scheduler": "running" if sched.scheduler.running else "stopped",
        "next_digest": str(job.next_run_time) if job is not None and getattr(job, "next_run_time", None) else None,
    }
    return JSONResponse(body, status_code=200 if db_ok else 503)

@router.get("/")
def read_root():
    logger.debug("Root hit")
    return {"status": "ok", "message": "Welcome to the HN Digest API"}
