"""
Tests for the search service against an in-memory engine.
"""

import pytest

from realty_search.errors import UpstreamError
from realty_search.search.filters import FilterState
from realty_search.search.pagination import BlendCase
from realty_search.search.personalization import (
    Histograms,
    PreferenceProfile,
    RankingStrategy,
)
from realty_search.search.search_service import SearchQuery, SearchService

COLLECTION = "properties"


@pytest.fixture
def populated_engine(fake_engine, doc_factory):
    """7 featured listings (rank 1..7) and 50 regular listings."""
    featured = [doc_factory(100 + i, updated_at=1000 + i, featured=True, rank=i + 1) for i in range(7)]
    rest = [doc_factory(i, updated_at=i) for i in range(1, 51)]
    fake_engine.add(COLLECTION, featured + rest)
    return fake_engine


@pytest.fixture
def service(populated_engine):
    return SearchService(populated_engine, collection=COLLECTION)


def _ids(page):
    return [d["id"] for d in page.items]


class TestFeaturedFirstPagination:
    def test_first_page_featured_then_rest(self, service):
        page = service.search(SearchQuery(page=1, page_size=10))

        assert _ids(page) == [str(100 + i) for i in range(7)] + ["50", "49", "48"]
        assert page.total_found == 57
        assert page.featured_count == 7
        assert page.blend_case == BlendCase.STRADDLE
        assert page.total_pages == 6

    def test_second_page_continues_rest_tier(self, service, populated_engine):
        page = service.search(SearchQuery(page=2, page_size=10))

        assert _ids(page) == [str(i) for i in range(47, 37, -1)]
        assert page.blend_case == BlendCase.REST_ONLY
        rest_call = populated_engine.search_calls[-1]
        assert rest_call.offset == 3
        assert rest_call.limit == 10
        assert "is_featured:=false" in rest_call.filter_by

    def test_all_pages_cover_every_listing_once(self, service):
        seen = []
        for number in range(1, 7):
            seen.extend(_ids(service.search(SearchQuery(page=number, page_size=10))))

        assert len(seen) == 57
        assert len(set(seen)) == 57

    def test_featured_only_page_uses_page_params(self, service, populated_engine):
        page = service.search(SearchQuery(page=2, page_size=3))

        assert _ids(page) == ["103", "104", "105"]
        assert page.blend_case == BlendCase.FEATURED_ONLY
        featured_call = populated_engine.search_calls[-1]
        assert featured_call.page == 2
        assert featured_call.per_page == 3
        assert featured_call.sort_by == "featured_rank:asc,updated_at:desc"


class TestFilters:
    def test_defaults_are_applied(self, service, populated_engine):
        service.search(SearchQuery())

        filter_by = populated_engine.search_calls[0].filter_by
        assert filter_by.startswith("purpose_key:=`for_sale` && country_id:=1")

    def test_explicit_purpose_and_country(self, service):
        prepared = service.prepare(SearchQuery(purpose="For Rent", country_id=4))

        assert prepared.state.purpose == "for_rent"
        assert prepared.filter_by.startswith("purpose_key:=`for_rent` && country_id:=4")

    def test_free_text_hints_fill_unset_filters(self, service):
        prepared = service.prepare(
            SearchQuery(free_text="3 bed villa in Dubai Hills under 2m", filters=FilterState(bedrooms=[2]))
        )

        assert prepared.state.bedrooms == [2]
        assert prepared.state.property_type_ids == [1]
        assert prepared.state.price_max == 2_000_000
        assert "price:<=2000000" in prepared.filter_by
        assert prepared.q == "Dubai Hills"

    def test_wildcard_when_no_text(self, service):
        assert service.prepare(SearchQuery()).q == "*"

    def test_caller_filters_are_not_modified(self, service):
        filters = FilterState()
        service.prepare(SearchQuery(free_text="villa with pool", filters=filters))
        assert filters == FilterState()


class TestPersonalization:
    def test_rerank_applies_to_rest_slice_only(self, service):
        # Zero histogram weights for the engine expression force client rerank
        profile = PreferenceProfile(ready=True, histograms=Histograms(bedrooms={"2": 0}))

        page = service.search(SearchQuery(page=1, page_size=10, preference_profile=profile))

        assert page.strategy == RankingStrategy.CLIENT_RERANK
        assert _ids(page)[:7] == [str(100 + i) for i in range(7)]

    def test_precomputed_expression_is_sent_for_rest_tier(self, service, populated_engine):
        expression = "_eval([(bedrooms:=2):3]):desc,updated_at:desc"
        profile = PreferenceProfile(ready=True, precomputed_boost_expression=expression)

        page = service.search(SearchQuery(page=2, page_size=10, preference_profile=profile))

        assert page.strategy == RankingStrategy.PRECOMPUTED_BOOST
        assert populated_engine.search_calls[-1].sort_by == expression

    def test_single_tier_uses_plan_sort(self, service, populated_engine):
        profile = PreferenceProfile(ready=True, histograms=Histograms(bedrooms={"2": 4}))

        page = service.search(
            SearchQuery(page=1, page_size=5, preference_profile=profile, featured_first=False)
        )

        call = populated_engine.search_calls[-1]
        assert call.sort_by == "_eval([(bedrooms:=2):4]):desc,updated_at:desc"
        assert call.page == 1
        assert call.per_page == 5
        assert page.featured_count is None
        assert page.total_found == 57


def test_count(service, populated_engine):
    assert service.count(SearchQuery()) == 57
    assert populated_engine.search_calls[-1].per_page == 0


@pytest.mark.parametrize("page,page_size", [(0, 10), (1, 0), (1, 101)])
def test_invalid_pagination(service, page, page_size):
    with pytest.raises(ValueError):
        service.search(SearchQuery(page=page, page_size=page_size))


def test_engine_failure_propagates(service, populated_engine):
    populated_engine.fail_search = True

    with pytest.raises(UpstreamError) as exc_info:
        service.search(SearchQuery())

    assert exc_info.value.service == "search_engine"
    assert exc_info.value.retryable is True


def test_to_dict(service):
    data = service.search(SearchQuery(page=6, page_size=10)).to_dict()

    assert data["totalFound"] == 57
    assert data["page"] == 6
    assert data["pageSize"] == 10
    assert [d["id"] for d in data["items"]] == [str(i) for i in range(7, 0, -1)]
