from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from .. import config
from ..bot import CommandHandler
from ..deps import get_command_handler, get_reaction_processor
from ..logging_setup import get_logger
from ..reactions import ReactionProcessor
from ..schema import Update

logger = get_logger("hn_digest.routes.telegram")

router = APIRouter(prefix="/telegram", tags=["Telegram"])


def verify_secret(x_telegram_bot_api_secret_token: Optional[str] = Header(default=None)) -> None:
    if config.WEBHOOK_SECRET and x_telegram_bot_api_secret_token != config.WEBHOOK_SECRET:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")


@router.post("/webhook")
def telegram_webhook(
    update: Update,
    _: None = Depends(verify_secret),
    commands: CommandHandler = Depends(get_command_handler),
    reactions: ReactionProcessor = Depends(get_reaction_processor),
):
    """
    Receives updates pushed by Telegram. Always answers 200 for well-formed
    updates so Telegram does not redeliver them; failures are only logged.
    """
    if update.message is not None and update.message.text:
        try:
            commands.handle(update.message.chat.id, update.message.text)
        except Exception as e:
            logger.exception("COMMAND_FAILED", extra={"handled": True, "update_id": update.update_id, "error": type(e).__name__})

    outcomes = []
    if update.message_reaction is not None:
        mr = update.message_reaction
        for emoji in mr.added_emojis():
            outcomes.append(reactions.handle(mr.message_id, emoji).value)
        logger.info("REACTION_HANDLED", extra={"message_id": mr.message_id, "outcomes": outcomes})

    return {"ok": True, "reactions": outcomes}
