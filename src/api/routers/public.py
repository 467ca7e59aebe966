"""Public read endpoints for sale and rent tables."""
from fastapi import APIRouter, Depends, Request

from api.dependencies import get_query_planner, get_visibility_policy
from api.helpers.query_params import parse_csv_param, parse_where_params
from core.access_policy import VisibilityPolicy
from schemas.public import (
    AvailabilityResponse,
    ItemListResponse,
    Pagination,
    RecordListResponse,
    TableListResponse,
    TableSearchResponse,
    ValuesResponse,
)
from services.exceptions import InvalidArgumentError
from services.query_planner import DEFAULT_LIMIT, QueryPlanner, RecordPage

router = APIRouter(prefix="/api/public", tags=["public"])


def _pagination(page: RecordPage) -> Pagination:
    return Pagination(
        limit=page.limit,
        offset=page.offset,
        page=page.page,
        has_more=page.has_more,
    )


@router.get("/tables", response_model=TableListResponse)
async def list_tables(
    type: str | None = None,  # noqa: A002
    policy: VisibilityPolicy = Depends(get_visibility_policy),
    planner: QueryPlanner = Depends(get_query_planner),
) -> TableListResponse:
    """
    List the sale and rent tables visible to the token.

    Use `type=sale` or `type=rent` to narrow the list.
    """
    tables = await planner.list_tables(policy, type)
    return TableListResponse(tables=tables, count=len(tables))


@router.get("/tables/search", response_model=TableSearchResponse)
async def search_tables(
    columns: str | None = None,
    policy: VisibilityPolicy = Depends(get_visibility_policy),
    planner: QueryPlanner = Depends(get_query_planner),
) -> TableSearchResponse:
    """
    Find tables that declare all of the given columns.

    Example: `/api/public/tables/search?columns=number,country`.
    Returns 400 if `columns` is missing.
    """
    if columns is None:
        raise InvalidArgumentError('Query parameter "columns" is required')
    tables, searched = await planner.search_tables_by_columns(policy, columns.split(","))
    return TableSearchResponse(tables=tables, count=len(tables), searched_columns=searched)


@router.get("/tables/{table_id}/items", response_model=ItemListResponse)
async def list_table_items(
    table_id: str,
    flat: bool = False,
    policy: VisibilityPolicy = Depends(get_visibility_policy),
    planner: QueryPlanner = Depends(get_query_planner),
) -> ItemListResponse:
    """
    List every item of one table, most recently created first.

    With `flat=true` each item is a flat record; otherwise the payload is nested
    under `data`. Returns 404 if the table doesn't exist and 403 if the token
    may not read it.
    """
    result = await planner.list_table_items(policy, table_id, flat=flat)
    return ItemListResponse(table=result.table, items=result.items, count=len(result.items))


@router.get("/tables/{table_id}/items/{item_id}")
async def get_item(
    table_id: str,
    item_id: str,
    policy: VisibilityPolicy = Depends(get_visibility_policy),
    planner: QueryPlanner = Depends(get_query_planner),
) -> dict:
    """Get one item as a flat record. Always read live, never cached."""
    return await planner.get_item(policy, table_id, item_id)


@router.get(
    "/tables/{table_id}/items/{item_id}/availability",
    response_model=AvailabilityResponse,
)
async def get_availability(
    table_id: str,
    item_id: str,
    quantity: int = 1,
    policy: VisibilityPolicy = Depends(get_visibility_policy),
    planner: QueryPlanner = Depends(get_query_planner),
) -> AvailabilityResponse:
    """
    Check whether an item can serve the requested quantity.

    Sale items compare against their `qty`; rent items are available (1) unless used.
    """
    availability = await planner.get_availability(policy, table_id, item_id, quantity)
    return AvailabilityResponse(
        table_id=availability.table_id,
        item_id=availability.item_id,
        table_type=availability.table_type,
        available=availability.available,
        available_qty=availability.available_qty,
        requested_qty=availability.requested_qty,
    )


@router.get("/records", response_model=RecordListResponse)
async def query_records(
    request: Request,
    columns: str | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
    policy: VisibilityPolicy = Depends(get_visibility_policy),
    planner: QueryPlanner = Depends(get_query_planner),
) -> RecordListResponse:
    """
    Get flat records across every visible table.

    Filters use `where[column]=value` (ANDed, case-insensitive). `columns`
    limits the returned payload fields; id, tableId, tableName and tableType
    are always included. `limit` is capped at 1000.
    """
    predicates = parse_where_params(request.query_params)
    page = await planner.query_records(
        policy,
        predicates,
        limit=limit,
        offset=offset,
        columns=parse_csv_param(columns),
    )
    return RecordListResponse(
        records=page.records,
        count=len(page.records),
        total=page.total,
        pagination=_pagination(page),
        filters=predicates or None,
    )


@router.get("/values/{column_name}", response_model=ValuesResponse)
async def list_values(
    column_name: str,
    request: Request,
    policy: VisibilityPolicy = Depends(get_visibility_policy),
    planner: QueryPlanner = Depends(get_query_planner),
) -> ValuesResponse:
    """
    Get the distinct values of a column across visible tables.

    Accepts the same `where[column]=value` filters as `/records`, e.g.
    `/api/public/values/area?where[country]=UK`.
    """
    predicates = parse_where_params(request.query_params)
    result = await planner.list_distinct_values(policy, column_name, predicates)
    return ValuesResponse(
        column=result.column,
        values=result.values,
        count=len(result.values),
        filters=predicates or None,
        tables_sampled=result.tables_sampled,
    )
