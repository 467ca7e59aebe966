"""API helper utilities."""
from api.helpers.query_params import WHERE_PARAM_PATTERN, parse_csv_param, parse_where_params

__all__ = [
    "WHERE_PARAM_PATTERN",
    "parse_csv_param",
    "parse_where_params",
]
