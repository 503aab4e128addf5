"""
Search Pipeline
"""

from .filters import FilterState, build_filter_by, build_search_query
from .nl_parser import QueryHints, merge_hints, parse_query
from .pagination import BlendCase, BlendPlan, blend, paginate
from .personalization import PreferenceProfile, plan_personalization, rerank_documents
from .search_service import SearchPage, SearchQuery, SearchService

__all__ = [
    "FilterState",
    "build_filter_by",
    "build_search_query",
    "QueryHints",
    "parse_query",
    "merge_hints",
    "BlendCase",
    "BlendPlan",
    "blend",
    "paginate",
    "PreferenceProfile",
    "plan_personalization",
    "rerank_documents",
    "SearchQuery",
    "SearchPage",
    "SearchService",
]
