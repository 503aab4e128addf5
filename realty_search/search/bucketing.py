"""
Price/Attribute Bucketing
Canonical price buckets, boost weight clamping and word → key lookup tables.

Every consumer that needs to know which bucket a price falls into (profile
scoring, boost clause synthesis, preference analysis) goes through this module.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

# Upper bound for a single boost clause weight
MAX_BOOST_WEIGHT = 127


@dataclass(frozen=True)
class PriceBucket:
    """Half-open price interval [low, high). high=None means unbounded."""

    key: str
    low: float
    high: Optional[float]

    def contains(self, price: float) -> bool:
        if price < self.low:
            return False
        return self.high is None or price < self.high


PRICE_BUCKETS: Tuple[PriceBucket, ...] = (
    PriceBucket("0-1000000", 0, 1_000_000),
    PriceBucket("1000000-2000000", 1_000_000, 2_000_000),
    PriceBucket("2000000-5000000", 2_000_000, 5_000_000),
    PriceBucket("5000000+", 5_000_000, None),
)

_BUCKETS_BY_KEY: Dict[str, PriceBucket] = {b.key: b for b in PRICE_BUCKETS}


def price_bucket(price: Optional[float]) -> Optional[str]:
    """
    Map a price to its canonical bucket key.

    Negative prices fall into the lowest bucket so the mapping stays total.

    Args:
        price: Listing price (None when unknown)

    Returns:
        Bucket key or None if price is None
    """
    if price is None:
        return None
    for bucket in PRICE_BUCKETS:
        if bucket.contains(price):
            return bucket.key
    return PRICE_BUCKETS[0].key


def bucket_filter(key: str) -> Optional[str]:
    """
    Engine filter clause selecting exactly the prices of a bucket.

    Args:
        key: Bucket key as produced by price_bucket()

    Returns:
        Filter clause, or None for an unknown key
    """
    bucket = _BUCKETS_BY_KEY.get(key)
    if bucket is None:
        return None
    if bucket.high is None:
        return f"price:>={int(bucket.low)}"
    return f"price:>={int(bucket.low)} && price:<{int(bucket.high)}"


def clamp_weight(value: Any) -> int:
    """Clamp a histogram count to [0, MAX_BOOST_WEIGHT]. Non-numeric → 0."""
    try:
        weight = int(float(value))
    except (TypeError, ValueError):
        return 0
    return max(0, min(MAX_BOOST_WEIGHT, weight))


# Feature words/phrases → canonical feature key
FEATURE_SYNONYMS: Dict[str, str] = {
    "pool": "pool",
    "pools": "pool",
    "swimming": "pool",
    "swimming pool": "pool",
    "swimming pools": "pool",
    "garden": "garden",
    "gardens": "garden",
    "garage": "garage",
    "garages": "garage",
    "parking": "garage",
    "balcony": "balcony",
    "balconies": "balcony",
    "elevator": "elevator",
    "lift": "elevator",
    "lifts": "elevator",
    "air conditioning": "ac",
    "ac": "ac",
    "a/c": "ac",
    "fireplace": "fireplace",
    "fireplaces": "fireplace",
    "security": "security",
    "security system": "security",
}

# Property type words → canonical type key
PROPERTY_TYPE_SYNONYMS: Dict[str, str] = {
    "villa": "villa",
    "villas": "villa",
    "apartment": "apartment",
    "apartments": "apartment",
    "flat": "apartment",
    "flats": "apartment",
    "townhouse": "townhouse",
    "townhouses": "townhouse",
    "penthouse": "penthouse",
    "penthouses": "penthouse",
    "house": "house",
    "houses": "house",
    "office": "office",
    "offices": "office",
    "retail": "retail",
    "warehouse": "warehouse",
    "land": "land",
    "residential": "residential",
    "commercial": "commercial",
    "studio": "studio",
    "studios": "studio",
}

# Canonical type key → property_type_id (seed order). Other keys stay unmapped.
PROPERTY_TYPE_IDS: Dict[str, int] = {
    "villa": 1,
    "apartment": 2,
    "townhouse": 3,
    "penthouse": 4,
    "studio": 5,
}

PURPOSE_FOR_SALE = "for_sale"
PURPOSE_FOR_RENT = "for_rent"

# Purpose vocabulary → purpose key
PURPOSE_SYNONYMS: Dict[str, str] = {
    "selling": PURPOSE_FOR_SALE,
    "sale": PURPOSE_FOR_SALE,
    "buy": PURPOSE_FOR_SALE,
    "buying": PURPOSE_FOR_SALE,
    "purchase": PURPOSE_FOR_SALE,
    "sold": PURPOSE_FOR_SALE,
    "for_sale": PURPOSE_FOR_SALE,
    "for sale": PURPOSE_FOR_SALE,
    "rent": PURPOSE_FOR_RENT,
    "renting": PURPOSE_FOR_RENT,
    "rental": PURPOSE_FOR_RENT,
    "lease": PURPOSE_FOR_RENT,
    "leasing": PURPOSE_FOR_RENT,
    "let": PURPOSE_FOR_RENT,
    "for_rent": PURPOSE_FOR_RENT,
    "for rent": PURPOSE_FOR_RENT,
}

# Generic intent words and connectors that rarely appear in listing text
SEARCH_STOPWORDS = frozenset(
    {
        "properties",
        "property",
        "listings",
        "listing",
        "list",
        "agent",
        "with",
        "and",
        "for",
        "a",
        "an",
        "the",
        "of",
        "to",
    }
)


def lookup_feature(word: str) -> Optional[str]:
    return FEATURE_SYNONYMS.get(word.lower())


def lookup_property_type(word: str) -> Optional[str]:
    return PROPERTY_TYPE_SYNONYMS.get(word.lower())


def lookup_purpose(word: str) -> Optional[str]:
    return PURPOSE_SYNONYMS.get(word.lower())


def is_vocabulary_word(word: str) -> bool:
    """True for any word the tables above give a meaning to."""
    lower = word.lower()
    return (
        lower in FEATURE_SYNONYMS
        or lower in PROPERTY_TYPE_SYNONYMS
        or lower in PURPOSE_SYNONYMS
        or lower in SEARCH_STOPWORDS
    )
