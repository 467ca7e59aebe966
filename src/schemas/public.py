"""Pydantic schemas for the public table API."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema that serializes field names as camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class TableSummary(CamelModel):
    """A sale/rent table as exposed through the public API."""

    id: str
    name: str
    description: str | None = None
    table_type: str
    visibility: str
    row_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ColumnInfo(CamelModel):
    """Declared column of a table."""

    name: str
    type: str


class TableWithColumns(TableSummary):
    """Table search result including its declared columns."""

    columns: list[ColumnInfo]


class TableListResponse(CamelModel):
    """Schema for the table list response."""

    tables: list[TableSummary]
    count: int


class TableSearchResponse(CamelModel):
    """Schema for the table search-by-columns response."""

    tables: list[TableWithColumns]
    count: int
    searched_columns: list[str]


class Pagination(CamelModel):
    """Pagination window of a record listing."""

    limit: int
    offset: int
    page: int
    has_more: bool


class RecordListResponse(CamelModel):
    """
    Schema for record listings.

    Records are free-form dicts: reserved fields (id, tableId, tableName,
    tableType) merged with the caller-defined payload fields.
    """

    records: list[dict[str, Any]]
    count: int
    total: int
    pagination: Pagination
    filters: dict[str, str] | None = None


class ItemListResponse(CamelModel):
    """Schema for the per-table item listing."""

    table: TableSummary
    items: list[dict[str, Any]]
    count: int


class AvailabilityResponse(CamelModel):
    """Schema for an item availability check."""

    table_id: str
    item_id: str
    table_type: str
    available: bool
    available_qty: int | float
    requested_qty: int


class ValuesResponse(CamelModel):
    """Schema for the distinct column values response."""

    column: str
    values: list[Any]
    count: int
    filters: dict[str, str] | None = None
    tables_sampled: list[str]
