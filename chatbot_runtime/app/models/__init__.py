"""SQLAlchemy models read by the chat runtime."""
from app.models.chatbot import Chatbot
from app.models.tag import Tag
from app.models.chatbot_item import ChatbotItem, ChatbotItemTag
from app.models.bb_entity import (
    ENTITY_TYPE_CONTACT,
    ENTITY_TYPE_SCHEDULE,
    BbContact,
    BbEntity,
    BbSchedule,
    BlockType,
)

__all__ = [
    "Chatbot",
    "Tag",
    "ChatbotItem",
    "ChatbotItemTag",
    "BbEntity",
    "BbContact",
    "BbSchedule",
    "BlockType",
    "ENTITY_TYPE_CONTACT",
    "ENTITY_TYPE_SCHEDULE",
]
