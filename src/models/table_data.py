"""Row storage for user tables."""
from typing import Any

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin


class TableData(Base, TimestampMixin):
    """
    One row of a user table.

    The payload is an untyped JSON object whose field names are defined per table
    by its owner; filters extract fields with `data ->> :column`.
    """

    __tablename__ = "table_data"
    __table_args__ = (
        Index("ix_table_data_table_id_updated_at", "table_id", "updated_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    table_id: Mapped[str] = mapped_column(
        ForeignKey("user_tables.id", ondelete="CASCADE"),
        index=True,
    )
    data: Mapped[Any] = mapped_column(JSONB, default=dict)
