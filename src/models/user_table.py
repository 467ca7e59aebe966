"""User-defined table and column metadata models."""
from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin

# Table types exposed through the public API; 'default' tables stay internal
SUPPORTED_TABLE_TYPES = ("sale", "rent")
# Visibilities included in the unrestricted catalog
CATALOG_VISIBILITIES = ("public", "shared")


class UserTable(Base, TimestampMixin):
    """A caller-defined table whose rows live in `table_data` as JSON payloads."""

    __tablename__ = "user_tables"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    visibility: Mapped[str] = mapped_column(
        String(20),
        default="private",
        server_default="private",
        index=True,
        comment="private | public | shared",
    )
    table_type: Mapped[str] = mapped_column(
        String(20),
        default="default",
        server_default="default",
        index=True,
        comment="default | sale | rent",
    )

    columns: Mapped[list["TableColumn"]] = relationship(
        back_populates="table",
        cascade="all, delete-orphan",
        order_by="TableColumn.position",
    )


class TableColumn(Base):
    """Declared column of a user table (name and display type)."""

    __tablename__ = "table_columns"
    __table_args__ = (UniqueConstraint("table_id", "name"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    table_id: Mapped[str] = mapped_column(
        ForeignKey("user_tables.id", ondelete="CASCADE"),
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(String(50))
    position: Mapped[int] = mapped_column(Integer, default=0)

    table: Mapped[UserTable] = relationship(back_populates="columns")
