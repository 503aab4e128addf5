"""
Search Service
Query entry point: free text + filters -> ranked, paginated listings.

Read path:
    free text -> parse_query -> merge_hints -> filter/query build
    -> personalization plan -> tiered (featured + rest) or single-tier search
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..engine.client import SearchParams, TypesenseClient
from ..engine.schema import PROPERTIES_COLLECTION, PROPERTIES_QUERY_BY
from .bucketing import PURPOSE_FOR_SALE
from .filters import (
    FilterState,
    build_filter_by,
    build_search_query,
    combine_filter_by,
    normalize_purpose,
    strip_stopwords,
)
from .nl_parser import merge_hints, parse_query
from .pagination import BlendCase, blend, total_pages
from .personalization import (
    FEATURED_TIER_SORT,
    PersonalizationPlan,
    PreferenceProfile,
    RankingStrategy,
    plan_personalization,
    rerank_documents,
)

logger = logging.getLogger(__name__)

FEATURED_TIER_FILTER = "is_featured:=true"
REST_TIER_FILTER = "is_featured:=false"


@dataclass
class SearchQuery:
    """One search request."""

    purpose: Optional[str] = None
    country_id: Optional[int] = None
    free_text: Optional[str] = None
    filters: FilterState = field(default_factory=FilterState)
    page: int = 1
    page_size: int = 25
    preference_profile: Optional[PreferenceProfile] = None
    featured_first: bool = True


@dataclass
class SearchPage:
    """One page of ranked results."""

    items: List[Dict[str, Any]]
    total_found: int
    page: int
    page_size: int
    strategy: RankingStrategy = RankingStrategy.DEFAULT
    featured_count: Optional[int] = None
    blend_case: Optional[BlendCase] = None
    search_time_ms: float = 0.0

    @property
    def total_pages(self) -> int:
        return total_pages(self.total_found, self.page_size)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": self.items,
            "totalFound": self.total_found,
            "page": self.page,
            "pageSize": self.page_size,
        }


@dataclass
class PreparedQuery:
    """Filters and query string after parsing, merging and defaults."""

    state: FilterState
    filter_by: Optional[str]
    q: str


class SearchService:
    """
    Runs searches against the properties collection.

    Engine failures propagate as UpstreamError; nothing is retried here.
    """

    def __init__(
        self,
        client: TypesenseClient,
        collection: str = PROPERTIES_COLLECTION,
        default_purpose: str = PURPOSE_FOR_SALE,
        default_country_id: int = 1,
        max_page_size: int = 100,
    ):
        self.client = client
        self.collection = collection
        self.default_purpose = default_purpose
        self.default_country_id = default_country_id
        self.max_page_size = max_page_size

    def _validate(self, query: SearchQuery) -> None:
        if query.page < 1:
            raise ValueError(f"page must be >= 1, got {query.page}")
        if query.page_size < 1 or query.page_size > self.max_page_size:
            raise ValueError(
                f"page_size must be between 1 and {self.max_page_size}, got {query.page_size}"
            )

    def prepare(self, query: SearchQuery) -> PreparedQuery:
        """
        Build the engine filter and query string for a request.

        Explicit purpose/country on the query win over the filter state;
        parsed hints only fill what is still unset.
        """
        state = query.filters.copy()
        if query.purpose:
            state.purpose = query.purpose
        if query.country_id is not None:
            state.country_id = query.country_id

        hints = parse_query(query.free_text)
        state = merge_hints(state, hints)

        state.purpose = normalize_purpose(state.purpose) or self.default_purpose
        if state.country_id is None:
            state.country_id = self.default_country_id

        state.location = strip_stopwords(state.location)
        state.keyword = strip_stopwords(state.keyword)

        return PreparedQuery(state=state, filter_by=build_filter_by(state), q=build_search_query(state))

    def _params(self, prepared: PreparedQuery, filter_by: Optional[str], **kwargs) -> SearchParams:
        return SearchParams(q=prepared.q, query_by=PROPERTIES_QUERY_BY, filter_by=filter_by, **kwargs)

    def count(self, query: SearchQuery) -> int:
        """Total number of listings matching the request."""
        prepared = self.prepare(query)
        response = self.client.search(
            self.collection, self._params(prepared, prepared.filter_by, per_page=0)
        )
        return response.found

    def search(self, query: SearchQuery) -> SearchPage:
        """
        Run a search and return one page.

        Args:
            query: Search request

        Returns:
            SearchPage

        Raises:
            ValueError: Invalid page or page size
            UpstreamError: Search engine failure
        """
        self._validate(query)
        started = time.time()

        prepared = self.prepare(query)
        plan = plan_personalization(query.preference_profile)

        if query.featured_first:
            page = self._search_tiered(query, prepared, plan)
        else:
            page = self._search_single(query, prepared, plan)

        page.search_time_ms = (time.time() - started) * 1000
        logger.info(
            f"Search q={prepared.q!r} strategy={plan.strategy.value} "
            f"page={query.page} found={page.total_found} ({page.search_time_ms:.1f}ms)"
        )
        return page

    def _search_single(
        self, query: SearchQuery, prepared: PreparedQuery, plan: PersonalizationPlan
    ) -> SearchPage:
        response = self.client.search(
            self.collection,
            self._params(
                prepared,
                prepared.filter_by,
                sort_by=plan.sort_by,
                page=query.page,
                per_page=query.page_size,
            ),
        )
        items = response.documents
        if plan.rerank:
            items = rerank_documents(items, plan.histograms)

        return SearchPage(
            items=items,
            total_found=response.found,
            page=query.page,
            page_size=query.page_size,
            strategy=plan.strategy,
        )

    def _tier_counts(self, prepared: PreparedQuery) -> Tuple[int, int]:
        featured = self.client.search(
            self.collection,
            self._params(prepared, combine_filter_by(prepared.filter_by, FEATURED_TIER_FILTER), per_page=0),
        )
        rest = self.client.search(
            self.collection,
            self._params(prepared, combine_filter_by(prepared.filter_by, REST_TIER_FILTER), per_page=0),
        )
        return featured.found, rest.found

    def _search_tiered(
        self, query: SearchQuery, prepared: PreparedQuery, plan: PersonalizationPlan
    ) -> SearchPage:
        featured_count, rest_count = self._tier_counts(prepared)
        blend_plan = blend(featured_count, rest_count, query.page_size, query.page)

        featured_items: List[Dict[str, Any]] = []
        if blend_plan.featured:
            featured_filter = combine_filter_by(prepared.filter_by, FEATURED_TIER_FILTER)
            if blend_plan.case == BlendCase.FEATURED_ONLY:
                params = self._params(
                    prepared,
                    featured_filter,
                    sort_by=FEATURED_TIER_SORT,
                    page=blend_plan.featured_page,
                    per_page=query.page_size,
                )
            else:
                params = self._params(
                    prepared,
                    featured_filter,
                    sort_by=FEATURED_TIER_SORT,
                    offset=blend_plan.featured.start,
                    limit=len(blend_plan.featured),
                )
            featured_items = self.client.search(self.collection, params).documents

        rest_items: List[Dict[str, Any]] = []
        if blend_plan.rest:
            params = self._params(
                prepared,
                combine_filter_by(prepared.filter_by, REST_TIER_FILTER),
                sort_by=plan.rest_sort_by,
                offset=blend_plan.rest.start,
                limit=len(blend_plan.rest),
            )
            rest_items = self.client.search(self.collection, params).documents
            if plan.rerank:
                rest_items = rerank_documents(rest_items, plan.histograms)

        return SearchPage(
            items=featured_items + rest_items,
            total_found=featured_count + rest_count,
            page=query.page,
            page_size=query.page_size,
            strategy=plan.strategy,
            featured_count=featured_count,
            blend_case=blend_plan.case,
        )
