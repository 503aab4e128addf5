"""
API Models
Pydantic models for request/response validation.
"""

from .search import (
    CountResponse,
    ListingResult,
    PreferenceProfileModel,
    SearchRequest,
    SearchResponse,
    StructuredFilters,
)
from .sync import SyncResponse

__all__ = [
    "SearchRequest",
    "SearchResponse",
    "CountResponse",
    "ListingResult",
    "StructuredFilters",
    "PreferenceProfileModel",
    "SyncResponse",
]
