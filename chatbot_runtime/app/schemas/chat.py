"""Public chat request/response schemas (POST /public/chat)."""
import re
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator, model_validator

MAX_MESSAGE_LENGTH = 1000
MAX_DOMAIN_LENGTH = 255
MAX_HISTORY_MESSAGES = 20
MAX_HISTORY_CONTENT_LENGTH = 1000

_DOMAIN_RE = re.compile(r"^\S+\.\S+$")


class ChatHistoryMessage(BaseModel):
    """One previous turn. Never treated as a system instruction."""

    role: Literal["user", "assistant"]
    content: str

    @field_validator("content", mode="before")
    @classmethod
    def _normalize_content(cls, v: object) -> object:
        if not isinstance(v, str):
            return v
        v = v.strip()
        if not v:
            raise ValueError("EMPTY")
        if len(v) > MAX_HISTORY_CONTENT_LENGTH:
            raise ValueError("TOO_LONG")
        return v


class ChatRequest(BaseModel):
    """
    Body for POST /public/chat.
    chatbotId (dashboard mode) or domain (widget mode): at least one is required.
    """

    model_config = ConfigDict(populate_by_name=True)

    chatbot_id: Optional[StrictInt] = Field(None, alias="chatbotId", gt=0)
    domain: Optional[str] = None
    message: str
    history: Optional[List[ChatHistoryMessage]] = None

    @field_validator("domain", mode="before")
    @classmethod
    def _normalize_domain(cls, v: object) -> object:
        if v is None or not isinstance(v, str):
            return v
        v = v.strip().lower()
        if not v:
            raise ValueError("EMPTY")
        if len(v) > MAX_DOMAIN_LENGTH:
            raise ValueError("TOO_LONG")
        if not _DOMAIN_RE.match(v):
            raise ValueError("INVALID_FORMAT")
        return v

    @field_validator("message", mode="before")
    @classmethod
    def _normalize_message(cls, v: object) -> object:
        if not isinstance(v, str):
            return v
        v = v.strip()
        if not v:
            raise ValueError("EMPTY")
        if len(v) > MAX_MESSAGE_LENGTH:
            raise ValueError("TOO_LONG")
        return v

    @field_validator("history")
    @classmethod
    def _limit_history(cls, v: Optional[List[ChatHistoryMessage]]) -> Optional[List[ChatHistoryMessage]]:
        if v is not None and len(v) > MAX_HISTORY_MESSAGES:
            raise ValueError("TOO_MANY_MESSAGES")
        return v

    @model_validator(mode="after")
    def _require_tenant_key(self) -> "ChatRequest":
        if self.chatbot_id is None and self.domain is None:
            raise ValueError("ONE_REQUIRED")
        return self


class ChatSourceItem(BaseModel):
    """Attribution for one knowledge item used in the prompt."""

    entity_id: int
    entity_type: str
    tags: List[str]


class ChatResponseData(BaseModel):
    """data part of a successful chat response."""

    model_config = ConfigDict(populate_by_name=True)

    answer: str
    source_items: List[ChatSourceItem] = Field(default_factory=list, alias="sourceItems")
