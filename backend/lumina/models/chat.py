"""
Chat Log Models

The session's conversation log holds two kinds of entries:
- ChatMessage: real user/assistant turns, fed back to the designer model
- DisplayOnlyNotice: transient status lines shown in the UI only
"""

import uuid
from typing import Literal, Union

from pydantic import BaseModel, Field, field_validator


Role = Literal["user", "assistant"]


def _new_id() -> str:
    return uuid.uuid4().hex


class ChatMessage(BaseModel):
    role: Role
    text: str = Field(..., min_length=1)
    id: str = Field(default_factory=_new_id)

    model_config = {"frozen": True}

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Chat log entries must have non-empty text")
        return v

    @classmethod
    def user(cls, text: str) -> "ChatMessage":
        return cls(role="user", text=text)

    @classmethod
    def assistant(cls, text: str) -> "ChatMessage":
        return cls(role="assistant", text=text)


class DisplayOnlyNotice(BaseModel):
    """Status entry such as "applying changes now". Never part of prompting history."""
    text: str = Field(..., min_length=1)
    id: str = Field(default_factory=_new_id)
    role: Role = "assistant"

    model_config = {"frozen": True}

    @classmethod
    def of(cls, text: str) -> "DisplayOnlyNotice":
        return cls(text=text)


LogEntry = Union[ChatMessage, DisplayOnlyNotice]


class HistoryEntry(BaseModel):
    """A ChatMessage as serialized for the designer model. Text may be clipped."""
    role: Role
    text: str

    model_config = {"frozen": True}

    def render(self) -> str:
        return f"{self.role}: {self.text}"
