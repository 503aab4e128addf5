"""
Personalization Engine
Turn a session preference profile into a ranking strategy.

Strategy precedence for a ready profile:
1. precomputed boost expression, passed through unchanged
2. boost expression synthesized from the histograms
3. client-side rerank of the returned page
A profile that is absent or not ready keeps the engine's featured-then-recency order.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .bucketing import bucket_filter, clamp_weight, price_bucket
from .filters import escape_filter_value

logger = logging.getLogger(__name__)

DEFAULT_SORT = "featured_rank:asc,updated_at:desc"
RECENCY_SORT = "updated_at:desc"
FEATURED_TIER_SORT = "featured_rank:asc,updated_at:desc"

# Views needed before a profile is used for ranking
DEFAULT_READY_THRESHOLD = 5
LIKED_VIEW_WEIGHT = 3


class RankingStrategy(Enum):
    DEFAULT = "default"
    PRECOMPUTED_BOOST = "precomputed_boost"
    SYNTHESIZED_BOOST = "synthesized_boost"
    CLIENT_RERANK = "client_rerank"


@dataclass
class Histograms:
    """Occurrence counts per attribute class. Keys are stringified values."""

    bedrooms: Dict[str, int] = field(default_factory=dict)
    bathrooms: Dict[str, int] = field(default_factory=dict)
    price_buckets: Dict[str, int] = field(default_factory=dict)
    property_types: Dict[str, int] = field(default_factory=dict)
    features: Dict[str, int] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not any(
            clamp_weight(w) > 0
            for hist in (
                self.bedrooms,
                self.bathrooms,
                self.price_buckets,
                self.property_types,
                self.features,
            )
            for w in hist.values()
        )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Histograms":
        """Accept both camelCase contract keys and snake_case counter keys."""
        data = data or {}

        def pick(*keys: str) -> Dict[str, int]:
            for key in keys:
                value = data.get(key)
                if isinstance(value, dict):
                    return {str(k): v for k, v in value.items()}
            return {}

        return cls(
            bedrooms=pick("bedrooms"),
            bathrooms=pick("bathrooms"),
            price_buckets=pick("priceBuckets", "price_buckets"),
            property_types=pick("propertyTypes", "property_types"),
            features=pick("features"),
        )

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {
            "bedrooms": dict(self.bedrooms),
            "bathrooms": dict(self.bathrooms),
            "priceBuckets": dict(self.price_buckets),
            "propertyTypes": dict(self.property_types),
            "features": dict(self.features),
        }


@dataclass
class PreferenceProfile:
    """Per-session preference profile (maintained externally, read-only here)."""

    ready: bool = False
    histograms: Histograms = field(default_factory=Histograms)
    precomputed_boost_expression: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["PreferenceProfile"]:
        if not data:
            return None
        expression = data.get("precomputedBoostExpression")
        if expression is None:
            expression = data.get("precomputed_boost_expression")
        ready = data.get("ready", data.get("is_ready_for_recommendations", False))
        return cls(
            ready=bool(ready),
            histograms=Histograms.from_dict(data.get("histograms")),
            precomputed_boost_expression=expression or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"ready": self.ready, "histograms": self.histograms.to_dict()}
        if self.precomputed_boost_expression:
            data["precomputedBoostExpression"] = self.precomputed_boost_expression
        return data


@dataclass
class PersonalizationPlan:
    """
    How to order results for one request.

    sort_by orders a single-tier search; rest_sort_by orders the rest tier of
    a featured-first search. When rerank is set the caller reorders the
    returned documents with rerank_documents().
    """

    strategy: RankingStrategy
    sort_by: str
    rest_sort_by: str
    rerank: bool = False
    histograms: Optional[Histograms] = None


def _int_key(value: str) -> Optional[int]:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _boost_clauses(histograms: Histograms) -> List[str]:
    clauses: List[str] = []

    for field_name, hist in (("bedrooms", histograms.bedrooms), ("bathrooms", histograms.bathrooms)):
        for value, count in hist.items():
            weight = clamp_weight(count)
            number = _int_key(value)
            if weight > 0 and number is not None:
                clauses.append(f"({field_name}:={number}):{weight}")

    for key, count in histograms.price_buckets.items():
        weight = clamp_weight(count)
        condition = bucket_filter(key)
        if weight > 0 and condition:
            clauses.append(f"({condition}):{weight}")

    for value, count in histograms.property_types.items():
        weight = clamp_weight(count)
        number = _int_key(value)
        if weight > 0 and number is not None:
            clauses.append(f"(property_type_id:={number}):{weight}")

    for key, count in histograms.features.items():
        weight = clamp_weight(count)
        if weight > 0 and key:
            clauses.append(f"(features:={escape_filter_value(key)}):{weight}")

    return clauses


def synthesize_boost_expression(histograms: Histograms) -> Optional[str]:
    """
    Build an _eval sort expression from histogram weights.

    Example:
        {"bedrooms": {"3": 4}} -> "_eval([(bedrooms:=3):4]):desc,updated_at:desc"

    Returns:
        Sort expression, or None when every weight is zero
    """
    clauses = _boost_clauses(histograms)
    if not clauses:
        return None
    return f"_eval([{','.join(clauses)}]):desc,{RECENCY_SORT}"


def _doc_int(doc: Dict[str, Any], key: str) -> Optional[int]:
    value = doc.get(key)
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def score_document(doc: Dict[str, Any], histograms: Histograms) -> int:
    """
    Sum of clamped histogram weights for every attribute the document matches.
    """
    score = 0

    bedrooms = _doc_int(doc, "bedrooms")
    if bedrooms is not None:
        score += clamp_weight(histograms.bedrooms.get(str(bedrooms), 0))

    bathrooms = _doc_int(doc, "bathrooms")
    if bathrooms is not None:
        score += clamp_weight(histograms.bathrooms.get(str(bathrooms), 0))

    price = doc.get("price")
    if isinstance(price, (int, float)) and not isinstance(price, bool):
        bucket = price_bucket(price)
        score += clamp_weight(histograms.price_buckets.get(bucket, 0))

    property_type = _doc_int(doc, "property_type_id")
    if property_type is not None:
        score += clamp_weight(histograms.property_types.get(str(property_type), 0))

    for feature in doc.get("features") or []:
        score += clamp_weight(histograms.features.get(str(feature), 0))

    return score


def _id_rank(doc: Dict[str, Any]) -> int:
    try:
        return int(doc.get("id"))
    except (TypeError, ValueError):
        return 0


def rerank_documents(docs: Iterable[Dict[str, Any]], histograms: Histograms) -> List[Dict[str, Any]]:
    """
    Client-side rerank: score desc, then updated_at desc, then id desc.

    Args:
        docs: Engine documents of one page/tier
        histograms: Profile histograms

    Returns:
        New list in ranked order
    """
    return sorted(
        docs,
        key=lambda d: (
            -score_document(d, histograms),
            -(_doc_int(d, "updated_at") or 0),
            -_id_rank(d),
        ),
    )


def plan_personalization(profile: Optional[PreferenceProfile]) -> PersonalizationPlan:
    """
    Choose a ranking strategy for a profile.

    Args:
        profile: Session preference profile (None when the session has none)

    Returns:
        PersonalizationPlan
    """
    if profile is None or not profile.ready:
        return PersonalizationPlan(
            strategy=RankingStrategy.DEFAULT,
            sort_by=DEFAULT_SORT,
            rest_sort_by=RECENCY_SORT,
        )

    if profile.precomputed_boost_expression and profile.precomputed_boost_expression.strip():
        expression = profile.precomputed_boost_expression
        return PersonalizationPlan(
            strategy=RankingStrategy.PRECOMPUTED_BOOST,
            sort_by=expression,
            rest_sort_by=expression,
        )

    expression = synthesize_boost_expression(profile.histograms)
    if expression:
        return PersonalizationPlan(
            strategy=RankingStrategy.SYNTHESIZED_BOOST,
            sort_by=expression,
            rest_sort_by=expression,
        )

    logger.debug("Profile ready but no boost clauses; falling back to client rerank")
    return PersonalizationPlan(
        strategy=RankingStrategy.CLIENT_RERANK,
        sort_by=RECENCY_SORT,
        rest_sort_by=RECENCY_SORT,
        rerank=True,
        histograms=profile.histograms,
    )


@dataclass
class ViewEvent:
    """One listing view of a session, with the listing's indexed attributes."""

    listing: Dict[str, Any]
    liked: bool = False
    disliked: bool = False


def build_profile(
    events: Iterable[ViewEvent],
    ready_threshold: int = DEFAULT_READY_THRESHOLD,
    precompute: bool = True,
) -> PreferenceProfile:
    """
    Accumulate view events into a preference profile.

    Disliked views are ignored, liked views count LIKED_VIEW_WEIGHT times.
    The profile becomes ready once the number of counted views reaches
    ready_threshold.

    Args:
        events: View events of one session
        ready_threshold: Views required before the profile is ready
        precompute: Store the synthesized boost expression on the profile

    Returns:
        PreferenceProfile
    """
    bedrooms: Counter = Counter()
    bathrooms: Counter = Counter()
    price_buckets: Counter = Counter()
    property_types: Counter = Counter()
    features: Counter = Counter()
    views = 0

    for event in events:
        if event.disliked:
            continue
        views += 1
        weight = LIKED_VIEW_WEIGHT if event.liked else 1
        listing = event.listing

        value = _doc_int(listing, "bedrooms")
        if value is not None:
            bedrooms[str(value)] += weight
        value = _doc_int(listing, "bathrooms")
        if value is not None:
            bathrooms[str(value)] += weight
        price = listing.get("price")
        if isinstance(price, (int, float)) and not isinstance(price, bool):
            price_buckets[price_bucket(price)] += weight
        value = _doc_int(listing, "property_type_id")
        if value is not None:
            property_types[str(value)] += weight
        for feature in listing.get("features") or []:
            features[str(feature)] += weight

    histograms = Histograms(
        bedrooms=dict(bedrooms),
        bathrooms=dict(bathrooms),
        price_buckets=dict(price_buckets),
        property_types=dict(property_types),
        features=dict(features),
    )
    ready = views >= ready_threshold

    expression = None
    if ready and precompute:
        expression = synthesize_boost_expression(histograms)

    logger.info(f"Built preference profile from {views} views (ready={ready})")
    return PreferenceProfile(
        ready=ready, histograms=histograms, precomputed_boost_expression=expression
    )
