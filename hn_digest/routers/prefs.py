from fastapi import APIRouter, Depends, Query
from ..logging_setup import get_logger
from ..deps import get_store
from ..schema import PrefsOut, TagOut
from ..store import Store

logger = get_logger("hn_digest.routes.prefs")

router = APIRouter(prefix="/prefs")

@router.get("", response_model=PrefsOut)
def read_prefs(limit: int = Query(10, ge=1, le=100), store: Store = Depends(get_store)):
    logger.debug("Reading preferences")
    tags = [TagOut(tag=tw.tag, weight=tw.weight, count=tw.count) for tw in store.top_tags(limit)]
    return PrefsOut(likes=store.like_count(), top_tags=tags)
