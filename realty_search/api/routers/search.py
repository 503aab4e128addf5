"""
Search Endpoints
Query entry point over the search service.
"""

import logging

from fastapi import APIRouter, Depends, status

from ..dependencies import get_api_settings, get_search_service
from ..errors import InvalidRequestError
from ..models.search import CountResponse, ListingResult, SearchRequest, SearchResponse
from ...config import Settings
from ...search.filters import FilterState
from ...search.search_service import SearchQuery, SearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["search"])


def _to_query(request: SearchRequest, settings: Settings) -> SearchQuery:
    if request.page_size is not None and request.page_size > settings.max_page_size:
        raise InvalidRequestError(
            f"pageSize must be at most {settings.max_page_size}",
            details={"pageSize": request.page_size, "maxPageSize": settings.max_page_size},
        )
    return SearchQuery(
        purpose=request.purpose,
        country_id=request.country_id,
        free_text=request.free_text,
        filters=request.filters.to_filter_state() if request.filters else FilterState(),
        page=request.page,
        page_size=request.page_size or settings.default_page_size,
        preference_profile=(
            request.preference_profile.to_profile() if request.preference_profile else None
        ),
        featured_first=(
            settings.featured_first if request.featured_first is None else request.featured_first
        ),
    )


@router.post("/search", response_model=SearchResponse, status_code=status.HTTP_200_OK)
def search(
    request: SearchRequest,
    service: SearchService = Depends(get_search_service),
    settings: Settings = Depends(get_api_settings),
) -> SearchResponse:
    """
    Search listings.

    Free text is parsed into hints (bedrooms, price, location, ...) that fill
    filters left unset. Results are featured-first unless disabled, and
    personalized when a ready preference profile is supplied.

    Raises:
        400 on an invalid page size, 502 when the search engine fails
    """
    page = service.search(_to_query(request, settings))

    return SearchResponse(
        items=[ListingResult.from_document(doc, lang=request.lang) for doc in page.items],
        total_found=page.total_found,
        page=page.page,
        page_size=page.page_size,
        total_pages=page.total_pages,
        strategy=page.strategy.value,
        search_time_ms=page.search_time_ms,
    )


@router.post("/search/count", response_model=CountResponse, status_code=status.HTTP_200_OK)
def count(
    request: SearchRequest,
    service: SearchService = Depends(get_search_service),
    settings: Settings = Depends(get_api_settings),
) -> CountResponse:
    """Number of listings matching the request."""
    return CountResponse(total_found=service.count(_to_query(request, settings)))
