"""
Tests for featured-first pagination blending.
"""

import pytest

from realty_search.search.pagination import BlendCase, blend, paginate, total_pages


class TestBlend:
    """7 featured, 50 rest, 10 per page."""

    def test_first_page_straddles(self):
        plan = blend(7, 50, 10, 1)

        assert plan.case == BlendCase.STRADDLE
        assert plan.featured == range(0, 7)
        assert plan.rest == range(0, 3)

    def test_second_page_continues_rest(self):
        plan = blend(7, 50, 10, 2)

        assert plan.case == BlendCase.REST_ONLY
        assert plan.featured == range(0)
        assert plan.rest_offset == 3
        assert plan.rest == range(3, 13)

    def test_pages_reproduce_the_sequence(self):
        featured = [f"f{i}" for i in range(7)]
        rest = [f"r{i}" for i in range(50)]

        pages = [paginate(featured, rest, 10, p) for p in range(1, 7)]

        assert [len(p) for p in pages] == [10, 10, 10, 10, 10, 7]
        assert [item for page in pages for item in page] == featured + rest

    def test_featured_only_page(self):
        plan = blend(25, 4, 10, 2)

        assert plan.case == BlendCase.FEATURED_ONLY
        assert plan.featured == range(10, 20)
        assert plan.featured_page == 2
        assert plan.size == 10

    def test_past_the_end_is_empty(self):
        plan = blend(3, 4, 5, 9)

        assert plan.case == BlendCase.REST_ONLY
        assert plan.size == 0

    def test_no_featured(self):
        plan = blend(0, 12, 5, 1)

        assert plan.case == BlendCase.REST_ONLY
        assert plan.rest == range(0, 5)

    def test_exhaustive_small_domains(self):
        for f in range(0, 7):
            for r in range(0, 7):
                featured = [("f", i) for i in range(f)]
                rest = [("r", i) for i in range(r)]
                for size in range(1, 5):
                    pages = total_pages(f + r, size)
                    seen = []
                    for page in range(1, pages + 2):
                        items = paginate(featured, rest, size, page)
                        assert len(items) <= size
                        if page <= pages - 1:
                            assert len(items) == size
                        seen.extend(items)
                    assert seen == featured + rest

    @pytest.mark.parametrize(
        "args",
        [(-1, 0, 10, 1), (0, -1, 10, 1), (1, 1, 0, 1), (1, 1, 10, 0)],
    )
    def test_invalid_arguments(self, args):
        with pytest.raises(ValueError):
            blend(*args)


def test_total_pages():
    assert total_pages(57, 10) == 6
    assert total_pages(60, 10) == 6
    assert total_pages(0, 10) == 0
    with pytest.raises(ValueError):
        total_pages(5, 0)
