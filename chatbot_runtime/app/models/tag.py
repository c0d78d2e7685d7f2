"""Tag model: classification label + synonyms used by the intent classifier."""
from sqlalchemy import JSON, BigInteger, Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db import Base


class Tag(Base):
    """
    Global tag (not tenant-owned). tag_code is unique and uppercase.
    synonyms_json: list of trigger phrases, e.g. ["address", "location"].
    """

    __tablename__ = "tags"

    tag_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    tag_code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    synonyms_json: Mapped[list | None] = mapped_column(JSON, nullable=True)
