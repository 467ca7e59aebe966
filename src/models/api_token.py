"""API Token model for public API bearer tokens."""
from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin


class ApiToken(Base, TimestampMixin):
    """
    Bearer token granting read access to the public table API.

    `table_access` holds a JSON-encoded list of table ids the token may read.
    A null value grants no tables. The reserved ids `admin-token` and
    `frontend-token` ignore `table_access` and see every public/shared table.
    """

    __tablename__ = "api_tokens"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(
        String(100),
        comment="Human-readable name, e.g., 'Storefront', 'Partner feed'",
    )
    token: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
    )
    table_access: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="JSON list of table ids, e.g., '[\"tbl_1\", \"tbl_2\"]'",
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Optional expiration date",
    )
