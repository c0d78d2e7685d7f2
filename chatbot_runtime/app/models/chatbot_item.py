"""Chatbot items (tenant -> entity ownership) and their tag links."""
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


class ChatbotItem(Base):
    """Attaches one bb_entities row to one chatbot. Tenant scoping goes through chatbot_id."""

    __tablename__ = "chatbot_items"

    item_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    chatbot_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("chatbots.chatbot_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    entity_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("bb_entities.entity_id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    chatbot = relationship("Chatbot", back_populates="items")
    tag_links = relationship("ChatbotItemTag", back_populates="item")


class ChatbotItemTag(Base):
    """Many-to-many item <-> tag. Composite key, no ordering semantics."""

    __tablename__ = "chatbot_item_tags"

    item_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("chatbot_items.item_id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("tags.tag_id"),
        primary_key=True,
        index=True,
    )

    item = relationship("ChatbotItem", back_populates="tag_links")
