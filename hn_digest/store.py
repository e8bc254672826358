"""
store.py
========
This module is the *database gateway* for the app.

It does three things:
1) Creates a connection "engine" to the database.
2) Creates tables (once) based on the SQLModel classes in models.py.
3) Wraps every read/write the digest needs in the `Store` class, one short
   Session (unit of work) per call.

Every Store method touches a single key (one tag, one article, one like, one
setting) or runs a single statement, so concurrent callers (the scheduled
digest and an incoming reaction) only rely on SQLite's per-statement
atomicity. Nothing here takes an in-process lock.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set

from sqlalchemy import case, func, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine, select

from .config import DB_FILE
from .models import Article, Like, Setting, TagWeight, utc_now

# "sqlite:///hn_digest.db" means:
#   - "sqlite" driver
#   - "///" local file path (relative to current working directory)
#   - "hn_digest.db" is the file name
DB_URL = f"sqlite:///{DB_FILE}"

# The engine is the "connection factory" and pool. Create it once and reuse it.
# check_same_thread=False because the scheduler thread and the web workers share it.
engine = create_engine(DB_URL, echo=False, connect_args={"check_same_thread": False})


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Create all tables declared in models.py if they don't exist yet.
    Safe to call on every startup; it never drops data.
    """
    from . import models  # noqa: F401  (import just to register models with SQLModel)

    SQLModel.metadata.create_all(bind or engine)


def get_session(bind: Optional[Engine] = None) -> Session:
    """
    Open a database Session bound to our engine.

    Usage pattern:
      with get_session() as session:
          session.add(obj)
          session.commit()
    """
    return Session(bind or engine)


class Store:
    """Durable owner of delivered articles, likes, tag weights and settings."""

    def __init__(self, bind: Optional[Engine] = None):
        self.engine = bind or engine

    def _session(self) -> Session:
        return get_session(self.engine)

    # ---- Tag weights ----

    def apply_decay(self, rate: float, floor: float) -> int:
        """weight <- max(floor, weight * (1 - rate)) for every tag, in one UPDATE."""
        decayed = TagWeight.weight * (1.0 - rate)
        stmt = update(TagWeight).values(weight=case((decayed < floor, floor), else_=decayed))
        with self._session() as s:
            result = s.connection().execute(stmt)
            s.commit()
            return result.rowcount

    def all_tag_weights(self) -> Dict[str, float]:
        with self._session() as s:
            return {tw.tag: tw.weight for tw in s.exec(select(TagWeight)).all()}

    def boost(self, tag: str, weight_delta: float) -> None:
        """Add weight_delta to a tag (unseen tags start at 1.0) and bump its count."""
        table = TagWeight.__table__
        stmt = sqlite_insert(table).values(tag=tag, weight=1.0 + weight_delta, count=1)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.tag],
            set_={"weight": table.c.weight + weight_delta, "count": table.c.count + 1},
        )
        with self._session() as s:
            s.connection().execute(stmt)
            s.commit()

    def get_tag(self, tag: str) -> Optional[TagWeight]:
        with self._session() as s:
            return s.get(TagWeight, tag)

    def top_tags(self, limit: int = 10) -> List[TagWeight]:
        with self._session() as s:
            stmt = select(TagWeight).order_by(TagWeight.weight.desc(), TagWeight.tag).limit(limit)
            return list(s.exec(stmt).all())

    # ---- Articles ----

    def recently_delivered_ids(self, window: timedelta, now: Optional[datetime] = None) -> Set[int]:
        cutoff = (now or utc_now()) - window
        with self._session() as s:
            return set(s.exec(select(Article.id).where(Article.sent_at > cutoff)).all())

    def save_item(self, item: Article) -> None:
        """Insert or overwrite an article by its HN id."""
        with self._session() as s:
            s.merge(item)
            s.commit()

    def get_item(self, article_id: int) -> Optional[Article]:
        with self._session() as s:
            return s.get(Article, article_id)

    def mark_delivered(self, article_id: int, when: datetime, message_id: int) -> bool:
        with self._session() as s:
            article = s.get(Article, article_id)
            if article is None:
                return False
            article.sent_at = when
            article.telegram_msg_id = message_id
            s.add(article)
            s.commit()
            return True

    def item_by_message_id(self, message_id: int) -> Optional[Article]:
        with self._session() as s:
            return s.exec(select(Article).where(Article.telegram_msg_id == message_id)).first()

    # ---- Likes ----

    def is_liked(self, article_id: int) -> bool:
        with self._session() as s:
            return s.get(Like, article_id) is not None

    def record_like(self, article_id: int, when: Optional[datetime] = None) -> bool:
        """Returns False when the article was already liked."""
        table = Like.__table__
        stmt = sqlite_insert(table).values(article_id=article_id, liked_at=when or utc_now())
        stmt = stmt.on_conflict_do_nothing(index_elements=[table.c.article_id])
        with self._session() as s:
            result = s.connection().execute(stmt)
            s.commit()
            return result.rowcount == 1

    def like_count(self) -> int:
        with self._session() as s:
            return s.exec(select(func.count()).select_from(Like)).one()

    # ---- Settings ----

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with self._session() as s:
            setting = s.get(Setting, key)
            return setting.value if setting is not None else default

    def set_setting(self, key: str, value: str) -> None:
        with self._session() as s:
            s.merge(Setting(key=key, value=value))
            s.commit()
