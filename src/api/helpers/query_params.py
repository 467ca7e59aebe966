"""Query string parsing helpers for public endpoints."""
import re
from collections.abc import Mapping

# Filters arrive as where[column]=value, e.g. ?where[country]=UK&where[area]=London
WHERE_PARAM_PATTERN = re.compile(r"^where\[(.+)\]$")


def parse_where_params(query_params: Mapping[str, str]) -> dict[str, str]:
    """
    Extract `where[column]=value` filters from query parameters.

    If a column is given more than once, the last value wins.
    """
    predicates: dict[str, str] = {}
    for key, value in query_params.items():
        match = WHERE_PARAM_PATTERN.match(key)
        if match:
            predicates[match.group(1)] = value
    return predicates


def parse_csv_param(value: str | None) -> list[str] | None:
    """
    Split a comma-separated parameter into trimmed, non-empty items.

    Returns None when the parameter was not provided at all.
    """
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]
