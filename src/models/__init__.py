"""SQLAlchemy models."""
from models.api_token import ApiToken
from models.base import Base, TimestampMixin
from models.user_table import TableColumn, UserTable  # Must be before table_data due to FK
from models.table_data import TableData

__all__ = ["ApiToken", "Base", "TableColumn", "TableData", "TimestampMixin", "UserTable"]
