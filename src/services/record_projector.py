"""
Flattening of stored rows into client-facing records.

A flat record is built in a fixed order: the reserved fields (id, tableId,
tableName, tableType) first, then every top-level payload field, then the row
timestamps. Payload fields are overlaid on the reserved ones, so a payload key
such as "tableType" replaces the table's type in the output. Clients depend on
this, so it is kept as-is.
"""
import json
import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol

logger = logging.getLogger(__name__)

RESERVED_FIELDS = ("id", "tableId", "tableName", "tableType")

_MULTISELECT_GROUPS = ("personal", "business")


class TableInfo(Protocol):
    """Table attributes a flat record needs."""

    id: str
    name: str
    table_type: str


class StoredRow(Protocol):
    """Row attributes a flat record needs."""

    id: str
    table_id: str
    data: Any
    created_at: datetime | None
    updated_at: datetime | None


def parse_payload(data: Any) -> dict[str, Any]:
    """
    Normalize a stored payload to a dict.

    Strings are JSON-decoded. Anything that does not yield a JSON object
    (invalid JSON, arrays, scalars, None) degrades to an empty dict so one
    malformed row cannot break a whole listing.
    """
    if isinstance(data, str | bytes):
        try:
            data = json.loads(data)
        except ValueError:
            logger.warning("row_payload_unparsable")
            return {}
    if not isinstance(data, dict):
        return {}
    return data


def is_grouped_multiselect(value: Any) -> bool:
    """Check whether a value is a grouped multiselect string, e.g. 'address:personal,vat:business'."""
    if not isinstance(value, str) or not value:
        return False
    return ":personal" in value or ":business" in value


def parse_grouped_multiselect(value: str) -> dict[str, list[str]]:
    """
    Split a grouped multiselect string into its groups.

    'address:personal,name:business,city:business'
    -> {"personal": ["address"], "business": ["name", "city"]}

    Items without a group suffix are treated as personal.
    """
    groups: dict[str, list[str]] = {group: [] for group in _MULTISELECT_GROUPS}
    for item in (part.strip() for part in value.split(",")):
        if not item:
            continue
        for group in _MULTISELECT_GROUPS:
            suffix = f":{group}"
            if item.endswith(suffix):
                groups[group].append(item[: -len(suffix)])
                break
        else:
            groups["personal"].append(item)
    return groups


def _isoformat(value: datetime | str | None) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return value.isoformat()


def flatten_record(row: StoredRow, table: TableInfo) -> dict[str, Any]:
    """
    Merge a row's payload with its table metadata into one flat dict.

    Pure function: the same row and table always produce the same output, and
    the output contains only JSON-native values so it can be cached verbatim.
    """
    record: dict[str, Any] = {
        "id": row.id,
        "tableId": table.id,
        "tableName": table.name,
        "tableType": table.table_type,
    }
    for key, value in parse_payload(row.data).items():
        if is_grouped_multiselect(value):
            record[key] = parse_grouped_multiselect(value)
        else:
            record[key] = value
    created_at = _isoformat(row.created_at)
    if created_at is not None:
        record["createdAt"] = created_at
    updated_at = _isoformat(row.updated_at)
    if updated_at is not None:
        record["updatedAt"] = updated_at
    return record


def raw_record(row: StoredRow) -> dict[str, Any]:
    """Represent a row without flattening: payload nested under `data`."""
    return {
        "id": row.id,
        "tableId": row.table_id,
        "data": parse_payload(row.data),
        "createdAt": _isoformat(row.created_at),
        "updatedAt": _isoformat(row.updated_at),
    }


def project_columns(record: dict[str, Any], columns: Iterable[str]) -> dict[str, Any]:
    """
    Keep only the requested columns of a flat record.

    Reserved fields are always kept. Requested columns missing from the record
    are skipped rather than emitted as null.
    """
    projected = {field: record[field] for field in RESERVED_FIELDS if field in record}
    for column in columns:
        if column in record:
            projected[column] = record[column]
    return projected
