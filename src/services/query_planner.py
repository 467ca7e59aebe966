"""
Access-scoped table and record queries with tiered caching.

The planner turns a request's visibility policy into the concrete set of
tables it may read, then serves listings either from the cache or from the row
store. Two cache tiers apply, and only to unrestricted callers:

- the table catalog (all public/shared sale and rent tables), TTL 5 minutes,
  read only by the table listing; every other operation resolves tables live
- pages of flattened records keyed by (tables, predicates, limit, offset),
  TTL 60 seconds, and only for requests without a column projection

Restricted callers always read live data; their table sets are per-token and
caching them would risk serving one token's results to another.
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from numbers import Number
from typing import TYPE_CHECKING, Any

from core import cache_keys
from core.access_policy import VisibilityPolicy
from models.user_table import SUPPORTED_TABLE_TYPES
from schemas.public import ColumnInfo, TableSummary, TableWithColumns
from services.exceptions import ForbiddenError, InvalidArgumentError, NotFoundError
from services.record_projector import flatten_record, parse_payload, project_columns, raw_record

if TYPE_CHECKING:
    from core.tiered_cache import TieredCache
    from services.row_store import RowStore

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000

# Placeholder metadata for rows whose table vanished between the two queries
_UNKNOWN_TABLE = TableSummary(id="", name="Unknown", table_type="unknown", visibility="")


@dataclass
class RecordPage:
    """One page of records plus the pagination window it was computed for."""

    records: list[dict[str, Any]]
    total: int
    limit: int
    offset: int

    @property
    def page(self) -> int:
        """1-based page number of this window."""
        return self.offset // self.limit + 1

    @property
    def has_more(self) -> bool:
        """Whether rows exist beyond this window."""
        return self.offset + self.limit < self.total


@dataclass
class TableItems:
    """All items of a single table."""

    table: TableSummary
    items: list[dict[str, Any]]


@dataclass
class Availability:
    """Result of an availability check for one item."""

    table_id: str
    item_id: str
    table_type: str
    available_qty: int
    requested_qty: int

    @property
    def available(self) -> bool:
        """Whether the requested quantity can be served."""
        return self.available_qty >= self.requested_qty


@dataclass
class DistinctValues:
    """Distinct values of one column across the sampled tables."""

    column: str
    values: list[Any]
    tables_sampled: list[str] = field(default_factory=list)


def _sort_key(value: Any) -> tuple[int, Any]:
    """Order numbers numerically first, then everything else by its string form."""
    if isinstance(value, Number) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))


def _to_quantity(value: Any) -> int:
    """Read a sale quantity; anything but an integer counts as 0."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return 0
    if isinstance(value, int | float):
        return value
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return 0
        return int(number) if number.is_integer() else number
    return 0


class QueryPlanner:
    """Resolves accessible tables and runs filtered, paginated reads."""

    def __init__(
        self,
        row_store: "RowStore",
        cache: "TieredCache | None" = None,
        max_limit: int = MAX_LIMIT,
    ) -> None:
        """
        Initialize the planner.

        Args:
            row_store: Row store for live queries.
            cache: Tiered cache, or None to always read live (e.g. Redis disabled).
            max_limit: Upper bound applied to requested page sizes.
        """
        self._row_store = row_store
        self._cache = cache
        self._max_limit = max_limit

    # Table resolution ------------------------------------------------------

    async def _catalog(self) -> list[TableSummary]:
        """Get the unrestricted catalog, from cache when possible."""
        if self._cache is not None:
            cached = await self._cache.get_catalog()
            if cached is not None:
                return [TableSummary.model_validate(table) for table in cached]

        tables = await self._row_store.find_catalog_tables()
        # An empty catalog is not cached so newly published tables show up immediately
        if self._cache is not None and tables:
            await self._cache.set_catalog(
                [table.model_dump(mode="json", by_alias=True) for table in tables],
            )
        return tables

    async def resolve_tables(self, policy: VisibilityPolicy) -> list[TableSummary]:
        """
        Resolve the sale/rent tables a policy may read, ordered by name.

        Always live: only the plain table listing reads the cached catalog, so
        a table that stops being public drops out of record queries at once.
        An empty restricted policy returns immediately without a query.
        """
        if policy.unrestricted:
            return await self._row_store.find_catalog_tables()
        if policy.is_empty:
            return []
        return await self._row_store.find_tables_by_ids(sorted(policy.table_ids))

    async def _accessible_table(self, policy: VisibilityPolicy, table_id: str) -> TableSummary:
        """
        Get one table the policy may read.

        Raises:
            NotFoundError: If the table does not exist.
            ForbiddenError: If its type is not exposed or the policy excludes it.
        """
        table = await self._row_store.get_table(table_id)
        if table is None:
            raise NotFoundError("table", table_id)
        if table.table_type not in SUPPORTED_TABLE_TYPES:
            raise ForbiddenError(f"Table type '{table.table_type}' is not available")
        if not policy.allows(table.id, table.visibility):
            raise ForbiddenError(f"Token does not have access to table '{table_id}'")
        return table

    def _window(self, limit: int, offset: int) -> tuple[int, int]:
        """Validate and clamp a pagination window."""
        if limit < 1:
            raise InvalidArgumentError("limit must be at least 1")
        if offset < 0:
            raise InvalidArgumentError("offset must not be negative")
        return min(limit, self._max_limit), offset

    # Table listings --------------------------------------------------------

    async def list_tables(
        self,
        policy: VisibilityPolicy,
        table_type: str | None = None,
    ) -> list[TableSummary]:
        """
        List readable tables, optionally narrowed to one table type.

        The unrestricted listing is the only read served from the cached catalog.
        """
        if policy.unrestricted:
            tables = await self._catalog()
        else:
            tables = await self.resolve_tables(policy)
        if table_type:
            tables = [table for table in tables if table.table_type == table_type]
        return tables

    async def search_tables_by_columns(
        self,
        policy: VisibilityPolicy,
        column_names: list[str],
    ) -> tuple[list[TableWithColumns], list[str]]:
        """
        Find readable tables that declare every requested column.

        Column names are compared case-insensitively.

        Returns:
            Tuple of (matching tables with their columns, normalized searched names).
        """
        required = [name.strip().lower() for name in column_names if name.strip()]
        if not required:
            raise InvalidArgumentError("At least one column name is required")

        tables = await self.resolve_tables(policy)
        if not tables:
            return [], required

        columns_by_table = await self._row_store.get_columns([table.id for table in tables])
        matches = []
        for table in tables:
            columns: list[ColumnInfo] = columns_by_table.get(table.id, [])
            names = {column.name.lower() for column in columns}
            if all(name in names for name in required):
                matches.append(
                    TableWithColumns(**table.model_dump(), columns=columns),
                )
        return matches, required

    # Record listings -------------------------------------------------------

    async def query_records(
        self,
        policy: VisibilityPolicy,
        predicates: Mapping[str, str],
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        columns: list[str] | None = None,
    ) -> RecordPage:
        """
        Query flattened records across every readable table.

        Args:
            policy: Visibility policy of the caller.
            predicates: column=value filters, ANDed, matched case-insensitively
                against payload fields.
            limit: Page size (capped at the configured maximum).
            offset: Rows to skip.
            columns: Optional allow-list of payload fields to return. Reserved
                fields are always included.

        Returns:
            RecordPage with the (projected) records and the unpaginated total.
        """
        limit, offset = self._window(limit, offset)
        tables = await self.resolve_tables(policy)
        if not tables:
            return RecordPage(records=[], total=0, limit=limit, offset=offset)

        table_ids = [table.id for table in tables]
        use_cache = self._cache is not None and policy.unrestricted and columns is None
        cache_key = cache_keys.query_page_key(sorted(table_ids), predicates, limit, offset)

        if use_cache:
            cached = await self._cache.get_query_page(cache_key)
            if cached is not None:
                logger.debug("query_page_cache_hit key=%s", cache_key)
                return RecordPage(
                    records=cached.records,
                    total=cached.total,
                    limit=limit,
                    offset=offset,
                )

        # Count and page are separate reads; the total may drift from the page
        # if rows are written in between.
        total = await self._row_store.count_rows(table_ids, predicates)
        rows = await self._row_store.fetch_rows(table_ids, predicates, limit, offset)

        tables_by_id = {table.id: table for table in tables}
        records = [
            flatten_record(
                row,
                tables_by_id.get(row.table_id)
                or _UNKNOWN_TABLE.model_copy(update={"id": row.table_id}),
            )
            for row in rows
        ]

        if use_cache:
            await self._cache.set_query_page(cache_key, records, total)

        if columns is not None:
            records = [project_columns(record, columns) for record in records]

        return RecordPage(records=records, total=total, limit=limit, offset=offset)

    async def list_table_items(
        self,
        policy: VisibilityPolicy,
        table_id: str,
        flat: bool = False,
    ) -> TableItems:
        """
        List every row of one table, most recently created first.

        Args:
            flat: Return flattened records instead of rows with a nested `data` payload.
        """
        table = await self._accessible_table(policy, table_id)

        rows = await self._row_store.fetch_table_rows(table.id)
        if flat:
            items = [flatten_record(row, table) for row in rows]
        else:
            items = [raw_record(row) for row in rows]
        return TableItems(table=table, items=items)

    # Per-item lookups (never cached) -----------------------------------------

    async def get_item(self, policy: VisibilityPolicy, table_id: str, item_id: str) -> dict[str, Any]:
        """Get one flattened item."""
        table = await self._accessible_table(policy, table_id)
        row = await self._row_store.get_row(table.id, item_id)
        if row is None:
            raise NotFoundError("item", item_id)
        return flatten_record(row, table)

    async def get_availability(
        self,
        policy: VisibilityPolicy,
        table_id: str,
        item_id: str,
        quantity: int = 1,
    ) -> Availability:
        """
        Check whether an item can satisfy a requested quantity.

        Sale items have a stock count in the payload's integer `qty` field; a
        missing or non-integer value means 0. Rent items are single units: 1
        available unless the payload's `used` field is literally true.
        Either way the item is available iff available >= requested.
        """
        if quantity < 1:
            raise InvalidArgumentError("quantity must be at least 1")
        table = await self._accessible_table(policy, table_id)
        row = await self._row_store.get_row(table.id, item_id)
        if row is None:
            raise NotFoundError("item", item_id)

        payload = parse_payload(row.data)
        if table.table_type == "rent":
            available_qty = 0 if payload.get("used") is True else 1
        else:
            available_qty = _to_quantity(payload.get("qty", 0))
        return Availability(
            table_id=table.id,
            item_id=row.id,
            table_type=table.table_type,
            available_qty=available_qty,
            requested_qty=quantity,
        )

    # Distinct values -------------------------------------------------------

    async def list_distinct_values(
        self,
        policy: VisibilityPolicy,
        column_name: str,
        predicates: Mapping[str, str],
    ) -> DistinctValues:
        """
        Get distinct values of a payload field across readable tables.

        Only tables that declare the column are sampled; predicates on fields a
        table lacks simply match none of its rows. Numbers sort before strings.
        """
        column_name = column_name.strip()
        if not column_name:
            raise InvalidArgumentError("Column name is required")

        tables = await self.resolve_tables(policy)
        if not tables:
            return DistinctValues(column=column_name, values=[])

        columns_by_table = await self._row_store.get_columns([table.id for table in tables])
        wanted = column_name.lower()
        eligible = [
            table
            for table in tables
            if any(column.name.lower() == wanted for column in columns_by_table.get(table.id, []))
        ]
        if not eligible:
            return DistinctValues(column=column_name, values=[])

        values = await self._row_store.distinct_values(
            [table.id for table in eligible], column_name, predicates,
        )
        return DistinctValues(
            column=column_name,
            values=sorted(values, key=_sort_key),
            tables_sampled=[table.name for table in eligible],
        )
