from pydantic import BaseModel, Field
from typing import List, Optional

# ---- Telegram updates (only the fields the bot reads) ----

class Chat(BaseModel):
    id: int

class Message(BaseModel):
    message_id: int
    chat: Chat
    text: Optional[str] = None

class ReactionType(BaseModel):
    type: str
    emoji: Optional[str] = None  # only set for type == "emoji"

class MessageReactionUpdated(BaseModel):
    chat: Chat
    message_id: int
    old_reaction: List[ReactionType] = Field(default_factory=list)
    new_reaction: List[ReactionType] = Field(default_factory=list)

    def added_emojis(self) -> List[str]:
        """Emojis present now that were not there before the update."""
        before = {r.emoji for r in self.old_reaction if r.emoji}
        return [r.emoji for r in self.new_reaction if r.emoji and r.emoji not in before]

class Update(BaseModel):
    update_id: int
    message: Optional[Message] = None
    message_reaction: Optional[MessageReactionUpdated] = None

# ---- API responses ----

class TagOut(BaseModel):
    tag: str
    weight: float
    count: int

class PrefsOut(BaseModel):
    likes: int
    top_tags: List[TagOut]
