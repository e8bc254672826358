# hn_digest/bot.py
"""
Chat commands. One chat, one profile: whoever sends /start becomes the
delivery target.

  /start              remember this chat, show help
  /fetch              run a digest now
  /settings           show digest time and article count
  /settings time HH:MM
  /settings count N   (1-100)
  /stats              top tags and number of liked articles
"""
from __future__ import annotations

from typing import Callable, Optional

from . import config
from .errors import ConfigError
from .logging_setup import get_logger

logger = get_logger("hn_digest.bot")

SETTING_CHAT_ID = "chat_id"
SETTING_DIGEST_TIME = "digest_time"
SETTING_ARTICLE_COUNT = "article_count"

WELCOME = (
    "Welcome to the HN Digest Bot! 🗞️\n\n"
    "Commands:\n"
    "/fetch - Get your personalized digest now\n"
    "/settings - View or update digest settings\n"
    "/stats - View your interests and stats\n\n"
    "React with 👍 to articles you like to train your preferences!"
)
SETTINGS_USAGE = (
    "Usage:\n"
    "/settings - Show current settings\n"
    "/settings time HH:MM - Update digest time\n"
    "/settings count N - Update article count (1-100)"
)


def current_chat_id(store) -> int:
    if config.CHAT_ID:
        return config.CHAT_ID
    raw = store.get_setting(SETTING_CHAT_ID)
    try:
        return int(raw) if raw else 0
    except ValueError:
        return 0


def current_article_count(store) -> int:
    raw = store.get_setting(SETTING_ARTICLE_COUNT)
    try:
        return int(raw) if raw else config.ARTICLE_COUNT
    except ValueError:
        return config.ARTICLE_COUNT


def current_digest_time(store) -> str:
    return store.get_setting(SETTING_DIGEST_TIME) or config.DIGEST_TIME


class CommandHandler:
    def __init__(
        self,
        client,
        store,
        trigger_digest: Callable[[], None],
        reschedule: Optional[Callable[[str], None]] = None,
    ):
        self.client = client
        self.store = store
        self.trigger_digest = trigger_digest
        self.reschedule = reschedule

    def handle(self, chat_id: int, text: str) -> bool:
        """Returns True when the text was a known command."""
        text = (text or "").strip()
        if not text.startswith("/"):
            return False
        command, _, args = text.partition(" ")
        command = command.split("@", 1)[0].lower()  # /fetch@MyBot in groups
        logger.info("COMMAND_RECEIVED", extra={"chat_id": chat_id, "command": command})

        if command == "/start":
            self._remember_chat(chat_id)
            self._reply(chat_id, WELCOME)
        elif command == "/fetch":
            self._remember_chat(chat_id)
            self._reply(chat_id, "Fetching your digest…")
            self.trigger_digest()
        elif command == "/settings":
            self._settings(chat_id, args.strip())
        elif command == "/stats":
            self._stats(chat_id)
        else:
            return False
        return True

    def _reply(self, chat_id: int, text: str) -> None:
        self.client.send_message(chat_id, text)

    def _remember_chat(self, chat_id: int) -> None:
        self.store.set_setting(SETTING_CHAT_ID, str(chat_id))

    def _settings(self, chat_id: int, args: str) -> None:
        if not args:
            self._reply(
                chat_id,
                "Current Settings:\n\n"
                f"📅 Digest Time: {current_digest_time(self.store)}\n"
                f"📰 Articles per Digest: {current_article_count(self.store)}\n\n"
                "Update with:\n/settings time HH:MM\n/settings count N",
            )
            return

        sub, _, value = args.partition(" ")
        sub, value = sub.lower(), value.strip()
        if sub == "time" and value:
            try:
                config.parse_digest_time(value)
            except ConfigError:
                self._reply(chat_id, "Invalid time format. Use HH:MM (e.g., 09:00, 18:30)")
                return
            self.store.set_setting(SETTING_DIGEST_TIME, value)
            if self.reschedule is not None:
                self.reschedule(value)
            self._reply(chat_id, f"✅ Digest time updated to {value}")
        elif sub == "count" and value:
            try:
                count = int(value)
            except ValueError:
                count = 0
            if not 1 <= count <= config.MAX_ARTICLE_COUNT:
                self._reply(chat_id, f"Invalid count. Must be a number between 1 and {config.MAX_ARTICLE_COUNT}.")
                return
            self.store.set_setting(SETTING_ARTICLE_COUNT, str(count))
            self._reply(chat_id, f"✅ Article count updated to {count}")
        else:
            self._reply(chat_id, SETTINGS_USAGE)

    def _stats(self, chat_id: int) -> None:
        likes = self.store.like_count()
        if likes == 0:
            self._reply(chat_id, "No likes yet! React with 👍 to articles to train your preferences.")
            return
        lines = ["📊 Your Interests:", ""]
        for i, tw in enumerate(self.store.top_tags(10), start=1):
            lines.append(f"{i}. {tw.tag} ({tw.weight:.2f})")
        lines += ["", f"Total articles liked: {likes}"]
        self._reply(chat_id, "\n".join(lines))
