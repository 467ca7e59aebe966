"""
Row store queries for tables, columns, rows, and tokens.

All filter predicates are built with bound parameters: both the JSON field name
and the compared value travel as query parameters (`data ->> $1 ...`), so
caller-supplied column names are never interpolated into SQL text.
"""
from collections.abc import Mapping
from typing import Any

from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.table_data import TableData
from models.user_table import CATALOG_VISIBILITIES, SUPPORTED_TABLE_TYPES, TableColumn, UserTable
from schemas.cached_token import TokenIdentity
from schemas.public import ColumnInfo, TableSummary
from services import token_service

# Safety cap on distinct-value scans
DISTINCT_VALUES_LIMIT = 10_000


def build_predicates(predicates: Mapping[str, str]) -> list[ColumnElement[bool]]:
    """
    Build case-insensitive equality tests against payload fields.

    Each `column=value` pair becomes `lower(data ->> :column) = :lowered_value`.
    A column absent from a row's payload extracts as NULL and never matches.
    """
    return [
        func.lower(TableData.data[column].astext) == value.lower()
        for column, value in predicates.items()
    ]


def _table_summary_query() -> Select:
    """Select tables with their row counts, ordered by name then id."""
    return (
        select(UserTable, func.count(TableData.id).label("row_count"))
        .outerjoin(TableData, TableData.table_id == UserTable.id)
        .group_by(UserTable.id)
        .order_by(UserTable.name, UserTable.id)
    )


def _to_summary(table: UserTable, row_count: int) -> TableSummary:
    return TableSummary(
        id=table.id,
        name=table.name,
        description=table.description,
        table_type=table.table_type,
        visibility=table.visibility,
        row_count=row_count,
        created_at=table.created_at,
        updated_at=table.updated_at,
    )


class RowStore:
    """Parameterized queries against the relational store, scoped to one session."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_active_token(self, token: str) -> TokenIdentity | None:
        """Look up a non-expired token and return its identity."""
        api_token = await token_service.find_active_token(self._db, token)
        if api_token is None:
            return None
        return token_service.to_identity(api_token)

    async def find_catalog_tables(self) -> list[TableSummary]:
        """Get all public/shared sale and rent tables."""
        result = await self._db.execute(
            _table_summary_query().where(
                UserTable.visibility.in_(CATALOG_VISIBILITIES),
                UserTable.table_type.in_(SUPPORTED_TABLE_TYPES),
            ),
        )
        return [_to_summary(table, row_count) for table, row_count in result.all()]

    async def find_tables_by_ids(self, table_ids: list[str]) -> list[TableSummary]:
        """
        Get sale and rent tables among the given ids.

        Visibility is not checked: an explicit grant overrides it.
        """
        if not table_ids:
            return []
        result = await self._db.execute(
            _table_summary_query().where(
                UserTable.id.in_(table_ids),
                UserTable.table_type.in_(SUPPORTED_TABLE_TYPES),
            ),
        )
        return [_to_summary(table, row_count) for table, row_count in result.all()]

    async def get_table(self, table_id: str) -> TableSummary | None:
        """Get a single table of any type, or None if it does not exist."""
        result = await self._db.execute(
            _table_summary_query().where(UserTable.id == table_id),
        )
        row = result.one_or_none()
        if row is None:
            return None
        table, row_count = row
        return _to_summary(table, row_count)

    async def get_columns(self, table_ids: list[str]) -> dict[str, list[ColumnInfo]]:
        """Get declared columns per table, in column position order."""
        columns: dict[str, list[ColumnInfo]] = {table_id: [] for table_id in table_ids}
        if not table_ids:
            return columns
        result = await self._db.execute(
            select(TableColumn)
            .where(TableColumn.table_id.in_(table_ids))
            .order_by(TableColumn.table_id, TableColumn.position),
        )
        for column in result.scalars():
            columns[column.table_id].append(ColumnInfo(name=column.name, type=column.type))
        return columns

    async def count_rows(self, table_ids: list[str], predicates: Mapping[str, str]) -> int:
        """Count rows matching the predicates, without pagination."""
        result = await self._db.execute(
            select(func.count())
            .select_from(TableData)
            .where(TableData.table_id.in_(table_ids), *build_predicates(predicates)),
        )
        return int(result.scalar_one())

    async def fetch_rows(
        self,
        table_ids: list[str],
        predicates: Mapping[str, str],
        limit: int,
        offset: int,
    ) -> list[TableData]:
        """Fetch one page of matching rows, most recently updated first."""
        result = await self._db.execute(
            select(TableData)
            .where(TableData.table_id.in_(table_ids), *build_predicates(predicates))
            .order_by(TableData.updated_at.desc(), TableData.id)
            .limit(limit)
            .offset(offset),
        )
        return list(result.scalars().all())

    async def fetch_table_rows(self, table_id: str) -> list[TableData]:
        """Fetch every row of one table, most recently created first."""
        result = await self._db.execute(
            select(TableData)
            .where(TableData.table_id == table_id)
            .order_by(TableData.created_at.desc(), TableData.id),
        )
        return list(result.scalars().all())

    async def get_row(self, table_id: str, item_id: str) -> TableData | None:
        """Get a single row of a table."""
        result = await self._db.execute(
            select(TableData).where(
                TableData.table_id == table_id,
                TableData.id == item_id,
            ),
        )
        return result.scalar_one_or_none()

    async def distinct_values(
        self,
        table_ids: list[str],
        column: str,
        predicates: Mapping[str, str],
    ) -> list[Any]:
        """
        Get distinct non-null values of a payload field across tables.

        Values keep their JSON type (numbers stay numbers); empty strings are kept.
        """
        field = TableData.data[column]
        result = await self._db.execute(
            select(field)
            .distinct()
            .where(
                TableData.table_id.in_(table_ids),
                field.astext.is_not(None),
                *build_predicates(predicates),
            )
            .limit(DISTINCT_VALUES_LIMIT),
        )
        return [value for value in result.scalars().all() if value is not None]
