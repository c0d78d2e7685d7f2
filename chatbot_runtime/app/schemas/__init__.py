"""Pydantic request/response schemas."""
from app.schemas.common import Envelope, ErrorBody
from app.schemas.chat import (
    ChatHistoryMessage,
    ChatRequest,
    ChatResponseData,
    ChatSourceItem,
)

__all__ = [
    "Envelope",
    "ErrorBody",
    "ChatHistoryMessage",
    "ChatRequest",
    "ChatResponseData",
    "ChatSourceItem",
]
