"""
Search Engine Adapter
"""

from .client import ImportResult, SearchParams, SearchResponse, TypesenseClient
from .schema import (
    PROPERTIES_COLLECTION_SCHEMA,
    PROPERTIES_QUERY_BY,
    SchemaChange,
    missing_fields,
    reconcile_schema,
)

__all__ = [
    "TypesenseClient",
    "SearchParams",
    "SearchResponse",
    "ImportResult",
    "PROPERTIES_COLLECTION_SCHEMA",
    "PROPERTIES_QUERY_BY",
    "SchemaChange",
    "missing_fields",
    "reconcile_schema",
]
