"""Tenant resolution: the multi-tenant boundary of the chat runtime."""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import CHATBOT_NOT_FOUND, AppError
from app.logging_config import get_logger
from app.models import Chatbot

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedChatbot:
    """Every downstream query is scoped with this chatbot_id."""

    chatbot_id: int
    display_name: str


async def resolve_chatbot(
    db: AsyncSession,
    chatbot_id: Optional[int] = None,
    domain: Optional[str] = None,
) -> ResolvedChatbot:
    """
    Resolve by primary key when chatbot_id is given, otherwise by lowercased domain.
    Raises AppError CHATBOT_NOT_FOUND (404) when neither path matches.
    """
    chatbot: Optional[Chatbot] = None
    if chatbot_id is not None:
        chatbot = await db.get(Chatbot, chatbot_id)
    elif domain and domain.strip():
        r = await db.execute(select(Chatbot).where(Chatbot.domain == domain.strip().lower()))
        chatbot = r.scalar_one_or_none()

    if chatbot is None:
        logger.info("chat.chatbot_not_found", chatbot_id=chatbot_id, domain=domain)
        raise AppError("Chatbot not found", 404, CHATBOT_NOT_FOUND)

    return ResolvedChatbot(
        chatbot_id=int(chatbot.chatbot_id),
        display_name=chatbot.display_name,
    )
