from __future__ import annotations
from jinja2 import Environment

from .sources import discussion_url

# Telegram's HTML parse mode only knows a handful of tags (b, i, a, code, pre...).
_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)

ARTICLE_TPL = _env.from_string(
    "📰 <b>{{ title }}</b>\n"
    "\n"
    "<i>{{ summary }}</i>\n"
    "\n"
    "⬆️ {{ points }} points | 💬 {{ comments }} comments\n"
    '<a href="{{ url }}">Article</a> | <a href="{{ hn_url }}">HN Discussion</a>'
)


def render_article_message(article) -> str:
    return ARTICLE_TPL.render(
        title=article.title or "",
        summary=article.summary or "",
        points=article.engagement_score,
        comments=article.comments,
        url=article.url or discussion_url(article.id),
        hn_url=discussion_url(article.id),
    )
