from typing import Optional, List
from sqlmodel import SQLModel, Field, Column, JSON
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Article(SQLModel, table=True):
    """A Hacker News story. Lives in memory during a cycle and is stored once delivered."""
    __tablename__ = "articles"

    id: int = Field(primary_key=True)  # HN item id, not autoincrement
    title: str
    url: str
    summary: str = ""
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    engagement_score: int = 0  # HN points
    comments: int = 0  # HN "descendants"
    fetched_at: datetime = Field(default_factory=utc_now)
    sent_at: Optional[datetime] = Field(default=None, index=True)
    telegram_msg_id: Optional[int] = Field(default=None, index=True)


class Like(SQLModel, table=True):
    __tablename__ = "likes"

    article_id: int = Field(primary_key=True)
    liked_at: datetime = Field(default_factory=utc_now)


class TagWeight(SQLModel, table=True):
    __tablename__ = "tag_weights"

    tag: str = Field(primary_key=True)
    weight: float = 1.0
    count: int = 0


class Setting(SQLModel, table=True):
    __tablename__ = "settings"

    key: str = Field(primary_key=True)
    value: str
