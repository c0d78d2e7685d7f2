"""Building-block entities: generic row + static CONTACT / SCHEDULE tables + dynamic block types."""
from datetime import datetime, time

from sqlalchemy import JSON, BigInteger, DateTime, ForeignKey, String, Text, Time, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db import Base

ENTITY_TYPE_CONTACT = "CONTACT"
ENTITY_TYPE_SCHEDULE = "SCHEDULE"


class BbEntity(Base):
    """
    One business record owned by a chatbot (through chatbot_items).
    entity_type = CONTACT | SCHEDULE for static blocks; dynamic blocks carry type_id + data.
    """

    __tablename__ = "bb_entities"

    entity_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    entity_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    type_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("block_types.type_id"),
        nullable=True,
    )
    data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class BbContact(Base):
    """Contact details; at most one row per entity."""

    __tablename__ = "bb_contacts"

    entity_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("bb_entities.entity_id", ondelete="CASCADE"),
        primary_key=True,
    )
    org_name: Mapped[str] = mapped_column(String(120), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(190), nullable=True)
    address_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    country: Mapped[str | None] = mapped_column(String(120), nullable=True)
    hours_text: Mapped[str | None] = mapped_column(String(255), nullable=True)


class BbSchedule(Base):
    """One opening-hours row; a SCHEDULE entity owns many."""

    __tablename__ = "bb_schedules"

    schedule_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    entity_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("bb_entities.entity_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    day_of_week: Mapped[str] = mapped_column(String(20), nullable=False)
    open_time: Mapped[time] = mapped_column(Time, nullable=False)
    close_time: Mapped[time] = mapped_column(Time, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class BlockType(Base):
    """Admin-defined schema for dynamic blocks (only type_name matters to the chat runtime)."""

    __tablename__ = "block_types"

    type_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    type_name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    schema_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
