# hn_digest/routers/digest_admin.py
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, status
import os

from ..bot import current_chat_id
from ..deps import get_pipeline, get_store, get_telegram, run_digest_job
from ..store import Store
from ..telegram import TelegramClient
from ..logging_setup import get_logger

logger = get_logger("hn_digest.routes.digest_admin")

router = APIRouter(prefix="/admin/digest", tags=["Admin Digest"])

# --- Simple API key gate ---
def require_admin(x_api_key: Optional[str] = Header(default=None)) -> None:
    expected = os.getenv("ADMIN_API_KEY", "")
    if not expected:
        # Fail closed if the key was never set
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfigured: ADMIN_API_KEY not set."
        )
    if x_api_key != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")

@router.post("/run-once", summary="Queue a digest cycle now")
def run_once(bg: BackgroundTasks, _: None = Depends(require_admin)):
    """
    Queues one digest cycle and returns immediately. If a cycle is already in
    flight the queued one is rejected by the pipeline and only logged.
    """
    logger.info("Manual run_once invoked")
    bg.add_task(run_digest_job)
    return {"queued": True}

@router.get("/status", summary="Is a digest cycle running right now?")
def digest_status(_: None = Depends(require_admin)):
    return {"running": get_pipeline().running}

@router.post("/send-test", summary="Send a test message to the digest chat")
def send_test_message(
    _: None = Depends(require_admin),
    store: Store = Depends(get_store),
    client: TelegramClient = Depends(get_telegram),
):
    """
    Sends synchronously so a Telegram failure comes back as a 502 instead of
    disappearing into a background task.
    """
    chat_id = current_chat_id(store)
    if not chat_id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No chat yet; send /start to the bot first.")
    message_id = client.send_message(chat_id, "HN Digest: test message ✅")
    return {"sent": True, "message_id": message_id}
