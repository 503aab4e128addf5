"""
Tests for ranking strategy selection, boost synthesis and client rerank.
"""

from realty_search.search.personalization import (
    DEFAULT_SORT,
    RECENCY_SORT,
    Histograms,
    PreferenceProfile,
    RankingStrategy,
    ViewEvent,
    build_profile,
    plan_personalization,
    rerank_documents,
    score_document,
    synthesize_boost_expression,
)


class TestPlanPersonalization:
    def test_no_profile_uses_default_order(self):
        plan = plan_personalization(None)

        assert plan.strategy == RankingStrategy.DEFAULT
        assert plan.sort_by == DEFAULT_SORT
        assert plan.rest_sort_by == RECENCY_SORT
        assert plan.rerank is False

    def test_not_ready_profile_is_ignored(self):
        profile = PreferenceProfile(
            ready=False,
            histograms=Histograms(bedrooms={"3": 9}),
            precomputed_boost_expression="_eval([(bedrooms:=3):9]):desc",
        )

        assert plan_personalization(profile).strategy == RankingStrategy.DEFAULT

    def test_precomputed_expression_wins_verbatim(self):
        # Deliberately disagrees with the histograms
        expression = "_eval([(bedrooms:=1):2]):desc,updated_at:desc"
        profile = PreferenceProfile(
            ready=True,
            histograms=Histograms(bedrooms={"4": 50}),
            precomputed_boost_expression=expression,
        )

        plan = plan_personalization(profile)

        assert plan.strategy == RankingStrategy.PRECOMPUTED_BOOST
        assert plan.sort_by == expression
        assert plan.rest_sort_by == expression

    def test_blank_precomputed_expression_falls_through(self):
        profile = PreferenceProfile(
            ready=True,
            histograms=Histograms(bedrooms={"3": 4}),
            precomputed_boost_expression="   ",
        )

        assert plan_personalization(profile).strategy == RankingStrategy.SYNTHESIZED_BOOST

    def test_synthesized_from_histograms(self):
        profile = PreferenceProfile(ready=True, histograms=Histograms(bedrooms={"3": 4}))

        plan = plan_personalization(profile)

        assert plan.strategy == RankingStrategy.SYNTHESIZED_BOOST
        assert plan.sort_by == "_eval([(bedrooms:=3):4]):desc,updated_at:desc"

    def test_all_zero_weights_falls_back_to_client_rerank(self):
        profile = PreferenceProfile(ready=True, histograms=Histograms(bedrooms={"3": 0}))

        plan = plan_personalization(profile)

        assert plan.strategy == RankingStrategy.CLIENT_RERANK
        assert plan.rerank is True
        assert plan.sort_by == RECENCY_SORT


class TestSynthesizeBoostExpression:
    def test_all_attribute_classes(self):
        histograms = Histograms(
            bedrooms={"3": 4},
            bathrooms={"2": 1},
            price_buckets={"1000000-2000000": 2},
            property_types={"1": 3},
            features={"pool": 5},
        )

        assert synthesize_boost_expression(histograms) == (
            "_eval(["
            "(bedrooms:=3):4,"
            "(bathrooms:=2):1,"
            "(price:>=1000000 && price:<2000000):2,"
            "(property_type_id:=1):3,"
            "(features:=`pool`):5"
            "]):desc,updated_at:desc"
        )

    def test_zero_weights_and_unknown_buckets_are_omitted(self):
        histograms = Histograms(
            bedrooms={"2": 0, "3": 1},
            price_buckets={"cheap": 9},
            property_types={"villa": 4},
        )

        assert synthesize_boost_expression(histograms) == (
            "_eval([(bedrooms:=3):1]):desc,updated_at:desc"
        )

    def test_weights_are_clamped(self):
        expression = synthesize_boost_expression(Histograms(bedrooms={"3": 1000, "4": -5}))

        assert expression == "_eval([(bedrooms:=3):127]):desc,updated_at:desc"

    def test_feature_keys_are_quoted(self):
        expression = synthesize_boost_expression(Histograms(features={"sea`view || x": 2}))

        assert "(features:=`seaview || x`):2" in expression

    def test_empty_histograms(self):
        assert synthesize_boost_expression(Histograms()) is None


class TestRerank:
    HISTOGRAMS = Histograms(bedrooms={"3": 4}, features={"pool": 2})

    def test_score_document(self):
        doc = {"bedrooms": 3, "features": ["pool", "gym"], "price": 900_000}
        assert score_document(doc, self.HISTOGRAMS) == 6
        assert score_document({}, self.HISTOGRAMS) == 0

    def test_orders_by_score_then_recency_then_id(self):
        docs = [
            {"id": "1", "bedrooms": 2, "updated_at": 500},
            {"id": "2", "bedrooms": 3, "updated_at": 100},
            {"id": "3", "bedrooms": 3, "updated_at": 200},
            {"id": "9", "bedrooms": 2, "updated_at": 500},
            {"id": "4", "bedrooms": 2, "features": ["pool"], "updated_at": 50},
        ]

        ranked = rerank_documents(docs, self.HISTOGRAMS)

        assert [d["id"] for d in ranked] == ["3", "2", "4", "9", "1"]

    def test_input_is_not_modified(self):
        docs = [{"id": "1", "updated_at": 1}, {"id": "2", "bedrooms": 3, "updated_at": 1}]
        rerank_documents(docs, self.HISTOGRAMS)
        assert [d["id"] for d in docs] == ["1", "2"]


def test_histograms_accept_both_key_styles():
    camel = Histograms.from_dict({"priceBuckets": {"5000000+": 2}, "propertyTypes": {1: 3}})
    snake = Histograms.from_dict({"price_buckets": {"5000000+": 2}, "property_types": {"1": 3}})

    assert camel == snake
    assert camel.to_dict()["propertyTypes"] == {"1": 3}


def test_profile_from_dict_accepts_both_key_styles():
    camel = PreferenceProfile.from_dict(
        {"ready": True, "histograms": {"bedrooms": {"2": 4}}, "precomputedBoostExpression": "x"}
    )
    snake = PreferenceProfile.from_dict(
        {
            "is_ready_for_recommendations": True,
            "histograms": {"bedrooms": {"2": 4}},
            "precomputed_boost_expression": "x",
        }
    )

    assert camel == snake
    assert camel.histograms.bedrooms == {"2": 4}
    assert PreferenceProfile.from_dict(None) is None
    assert PreferenceProfile.from_dict({"ready": False}).precomputed_boost_expression is None


class TestBuildProfile:
    @staticmethod
    def _event(bedrooms=3, liked=False, disliked=False, **kwargs):
        listing = {"bedrooms": bedrooms, "bathrooms": 2, "price": 1_500_000, "property_type_id": 1}
        listing.update(kwargs)
        return ViewEvent(listing=listing, liked=liked, disliked=disliked)

    def test_not_ready_below_threshold(self):
        profile = build_profile([self._event() for _ in range(4)], ready_threshold=5)

        assert profile.ready is False
        assert profile.precomputed_boost_expression is None
        assert profile.histograms.bedrooms == {"3": 4}

    def test_ready_with_precomputed_expression(self):
        profile = build_profile([self._event() for _ in range(5)], ready_threshold=5)

        assert profile.ready is True
        assert profile.histograms.price_buckets == {"1000000-2000000": 5}
        assert profile.precomputed_boost_expression == synthesize_boost_expression(
            profile.histograms
        )
        assert plan_personalization(profile).strategy == RankingStrategy.PRECOMPUTED_BOOST

    def test_liked_and_disliked_views(self):
        events = [
            self._event(bedrooms=2, liked=True),
            self._event(bedrooms=4, disliked=True),
            self._event(bedrooms=3, features=["pool"]),
        ]

        profile = build_profile(events, ready_threshold=2, precompute=False)

        assert profile.ready is True
        assert profile.histograms.bedrooms == {"2": 3, "3": 1}
        assert profile.histograms.features == {"pool": 1}
        assert profile.precomputed_boost_expression is None
        assert plan_personalization(profile).strategy == RankingStrategy.SYNTHESIZED_BOOST
