"""
Natural-Language Query Parser
Extract structured search hints from free text.

Each extractor looks at the original text and returns (hint, consumed_spans).
The residual keyword is computed once from the union of all consumed spans,
so the order in which extractors run never changes the result.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Pattern, Tuple

from .bucketing import (
    FEATURE_SYNONYMS,
    PROPERTY_TYPE_IDS,
    PROPERTY_TYPE_SYNONYMS,
    PURPOSE_SYNONYMS,
    SEARCH_STOPWORDS,
    is_vocabulary_word,
)
from .filters import FilterState

logger = logging.getLogger(__name__)

Span = Tuple[int, int]

_NUMBER = r"(?<![\w.,])\d{1,3}(?:,\d{3})+(?:\.\d+)?|(?<![\w.,])\d+(?:\.\d+)?"
_SUFFIX = r"k|m|mn|million"
_CURRENCY = r"(?:aed|usd|eur|gbp|[$€£])?\s*"

_MULTIPLIERS = {"k": 1_000, "m": 1_000_000, "mn": 1_000_000, "million": 1_000_000}

_BED_WORDS = r"bed|beds|bedroom|bedrooms|br|brs|bd|bds"
_BATH_WORDS = r"bath|baths|bathroom|bathrooms"

_BEDROOMS_RE = re.compile(
    rf"(?<!\w)(?P<lo>\d+)(?:\s*(?:-|to)\s*(?P<hi>\d+))?\s*(?P<plus>\+)?\s*(?:{_BED_WORDS})\b",
    re.IGNORECASE,
)
_BATHROOMS_RE = re.compile(
    rf"(?<!\w)(?P<lo>\d+)(?:\s*(?:-|to)\s*(?P<hi>\d+))?\s*(?P<plus>\+)?\s*(?:{_BATH_WORDS})\b",
    re.IGNORECASE,
)
_STUDIO_RE = re.compile(r"\bstudios?\b", re.IGNORECASE)

# Location phrase stops before a price/feature keyword, a number, a comma or the end
_LOCATION_RE = re.compile(
    r"\b(?:in|near|at)\s+(?!least\b)(?P<place>[^,]+?)"
    r"(?=\s+(?:under|below|over|above|max|min|maximum|minimum|less|more|between|"
    r"with|for|from|up)\b|\s+\d|\s*,|\s*$)",
    re.IGNORECASE,
)

_PRICE_MAX_RE = re.compile(
    rf"\b(?:under|below|max|maximum|less\s+than|up\s+to)\s+{_CURRENCY}"
    rf"(?P<num>{_NUMBER})\s*(?P<suffix>{_SUFFIX})?\b",
    re.IGNORECASE,
)
_PRICE_MIN_RE = re.compile(
    rf"\b(?:over|above|min|minimum|more\s+than|at\s+least)\s+{_CURRENCY}"
    rf"(?P<num>{_NUMBER})\s*(?P<suffix>{_SUFFIX})?\b",
    re.IGNORECASE,
)

# Trailing guards keep "3-4 bed" and "1000-2000 sqft" from reading as price ranges
_NOT_COUNT = rf"(?!\s*\+?\s*(?:{_BED_WORDS}|{_BATH_WORDS})\b)"
_AREA_WORDS = r"sqft|sq\.?\s*ft|sqm|sq\.?\s*m|m2|square\s+(?:feet|foot|meters|metres)"
_NOT_AREA = rf"(?!\s*(?:{_AREA_WORDS})\b)"
# "24-7 security" is an amenity, not a price range
_NOT_ROUND_THE_CLOCK = r"(?!24\s*(?:-|–|—|/)\s*7(?![\d.,]|\s*(?:k|m|mn|million)\b))"

_PRICE_BETWEEN_RE = re.compile(
    rf"\bbetween\s+{_CURRENCY}(?P<lo>{_NUMBER})\s*(?P<lo_suffix>{_SUFFIX})?\s+and\s+"
    rf"{_CURRENCY}(?P<hi>{_NUMBER})\s*(?P<hi_suffix>{_SUFFIX})?\b{_NOT_COUNT}{_NOT_AREA}",
    re.IGNORECASE,
)
_PRICE_RANGE_RE = re.compile(
    rf"{_CURRENCY}{_NOT_ROUND_THE_CLOCK}(?P<lo>{_NUMBER})\s*(?P<lo_suffix>{_SUFFIX})?"
    rf"\s*(?:-|–|—|\bto\b)\s*"
    rf"{_CURRENCY}(?P<hi>{_NUMBER})\s*(?P<hi_suffix>{_SUFFIX})?\b{_NOT_COUNT}{_NOT_AREA}",
    re.IGNORECASE,
)


def _phrase_pattern(phrases: Iterable[str]) -> Pattern:
    # Longest phrases first so "swimming pool" wins over "pool"
    ordered = sorted(set(phrases), key=len, reverse=True)
    alternation = "|".join(re.escape(p) for p in ordered)
    return re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE)


_FEATURE_RE = _phrase_pattern(FEATURE_SYNONYMS)
_PROPERTY_TYPE_RE = _phrase_pattern(PROPERTY_TYPE_SYNONYMS)
_PURPOSE_RE = _phrase_pattern(p for p in PURPOSE_SYNONYMS if "_" not in p)

_TOKEN_RE = re.compile(r"\S+")
_PUNCTUATION = ".,;:!?\"'()"


@dataclass
class QueryHints:
    """Structured hints parsed from free text. Empty fields mean "no hint"."""

    bedrooms: Optional[List[Optional[int]]] = None  # [min, max], max None = "or more"
    bathrooms: Optional[List[Optional[int]]] = None
    studio: bool = False
    location: Optional[str] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    feature_keys: List[str] = field(default_factory=list)
    property_type_keys: List[str] = field(default_factory=list)
    property_type_ids: List[int] = field(default_factory=list)
    purpose: Optional[str] = None
    keyword: Optional[str] = None

    def is_empty(self) -> bool:
        return (
            self.bedrooms is None
            and self.bathrooms is None
            and not self.studio
            and self.location is None
            and self.price_min is None
            and self.price_max is None
            and not self.feature_keys
            and not self.property_type_keys
            and self.purpose is None
            and self.keyword is None
        )


def _to_amount(number: str, suffix: Optional[str]) -> float:
    value = float(number.replace(",", ""))
    if suffix:
        value *= _MULTIPLIERS[suffix.lower()]
    return value


def _count_range(match) -> List[Optional[int]]:
    lo = int(match.group("lo"))
    if match.group("plus"):
        return [lo, None]
    hi = int(match.group("hi")) if match.group("hi") else lo
    return [min(lo, hi), max(lo, hi)]


def extract_bedrooms(text: str) -> Tuple[Optional[List[Optional[int]]], List[Span]]:
    match = _BEDROOMS_RE.search(text)
    if not match:
        return None, []
    return _count_range(match), [match.span()]


def extract_bathrooms(text: str) -> Tuple[Optional[List[Optional[int]]], List[Span]]:
    match = _BATHROOMS_RE.search(text)
    if not match:
        return None, []
    return _count_range(match), [match.span()]


def extract_studio(text: str) -> Tuple[bool, List[Span]]:
    spans = [m.span() for m in _STUDIO_RE.finditer(text)]
    return bool(spans), spans


def extract_location(text: str) -> Tuple[Optional[str], List[Span]]:
    """Explicit "in/near/at <phrase>" construct."""
    match = _LOCATION_RE.search(text)
    if not match:
        return None, []

    words = [
        w.strip(_PUNCTUATION)
        for w in match.group("place").split()
        if w.lower() not in PURPOSE_SYNONYMS and w.lower() not in SEARCH_STOPWORDS
    ]
    place = " ".join(w for w in words if w).strip()
    return (place or None), [match.span()]


def extract_price_max(text: str) -> Tuple[Optional[float], List[Span]]:
    match = _PRICE_MAX_RE.search(text)
    if not match:
        return None, []
    return _to_amount(match.group("num"), match.group("suffix")), [match.span()]


def extract_price_min(text: str) -> Tuple[Optional[float], List[Span]]:
    match = _PRICE_MIN_RE.search(text)
    if not match:
        return None, []
    return _to_amount(match.group("num"), match.group("suffix")), [match.span()]


def extract_price_range(text: str) -> Tuple[Optional[Tuple[float, float]], List[Span]]:
    """
    "between X and Y", "X-Y" or "X to Y".

    A suffix on one side only applies to both ("1-2m" is 1m to 2m).
    """
    match = _PRICE_BETWEEN_RE.search(text) or _PRICE_RANGE_RE.search(text)
    if not match:
        return None, []

    lo_suffix = match.group("lo_suffix") or match.group("hi_suffix")
    hi_suffix = match.group("hi_suffix") or match.group("lo_suffix")
    lo = _to_amount(match.group("lo"), lo_suffix)
    hi = _to_amount(match.group("hi"), hi_suffix)
    if lo > hi:
        lo, hi = hi, lo
    return (lo, hi), [match.span()]


def extract_features(text: str) -> Tuple[List[str], List[Span]]:
    keys: List[str] = []
    spans: List[Span] = []
    for match in _FEATURE_RE.finditer(text):
        key = FEATURE_SYNONYMS[match.group(0).lower()]
        if key not in keys:
            keys.append(key)
        spans.append(match.span())
    return keys, spans


def extract_property_types(text: str) -> Tuple[List[str], List[Span]]:
    keys: List[str] = []
    spans: List[Span] = []
    for match in _PROPERTY_TYPE_RE.finditer(text):
        key = PROPERTY_TYPE_SYNONYMS[match.group(0).lower()]
        if key not in keys:
            keys.append(key)
        spans.append(match.span())
    return keys, spans


def extract_purpose(text: str) -> Tuple[Optional[str], List[Span]]:
    """First purpose word wins."""
    purpose = None
    spans: List[Span] = []
    for match in _PURPOSE_RE.finditer(text):
        phrase = re.sub(r"\s+", " ", match.group(0).lower())
        if purpose is None:
            purpose = PURPOSE_SYNONYMS[phrase]
        spans.append(match.span())
    return purpose, spans


def _covered(start: int, end: int, spans: List[Span]) -> bool:
    return any(start < s_end and s_start < end for s_start, s_end in spans)


def extract_trailing_location(text: str, consumed: List[Span]) -> Tuple[Optional[str], List[Span]]:
    """
    Fallback location: the trailing one or two tokens of the input.

    Tokens already consumed by another extractor or carrying a vocabulary
    meaning (property type, feature, purpose, stopword) never qualify.
    """
    tokens = [(m.start(), m.end(), m.group(0)) for m in _TOKEN_RE.finditer(text)]
    if len(tokens) < 2:
        return None, []

    def usable(token) -> bool:
        start, end, raw = token
        word = raw.strip(_PUNCTUATION)
        if not word or not word[0].isalpha():
            return False
        if _covered(start, end, consumed):
            return False
        return not is_vocabulary_word(word)

    if not usable(tokens[-1]):
        return None, []

    picked = [tokens[-1]]
    if usable(tokens[-2]):
        picked.insert(0, tokens[-2])

    place = " ".join(raw.strip(_PUNCTUATION) for _, _, raw in picked)
    return place, [(picked[0][0], picked[-1][1])]


def residual_keyword(text: str, consumed: List[Span]) -> Optional[str]:
    """
    Text left after removing consumed spans, purpose words and stopwords.

    Returns:
        Keyword string, or None if nothing meaningful remains
    """
    mask = [False] * len(text)
    for start, end in consumed:
        for i in range(max(start, 0), min(end, len(text))):
            mask[i] = True
    remaining = "".join(" " if mask[i] else ch for i, ch in enumerate(text))

    words = []
    for raw in remaining.split():
        word = raw.strip(_PUNCTUATION)
        if not word:
            continue
        lower = word.lower()
        if lower in PURPOSE_SYNONYMS or lower in SEARCH_STOPWORDS:
            continue
        words.append(word)

    keyword = " ".join(words).strip()
    if len(keyword) <= 1:
        return None
    return keyword


def parse_query(text: Optional[str]) -> QueryHints:
    """
    Parse free text into structured hints.

    Never raises on string input; empty or unrecognised text yields an
    empty QueryHints.

    Args:
        text: Free-text search input

    Returns:
        QueryHints
    """
    hints = QueryHints()
    if not isinstance(text, str) or not text.strip():
        return hints

    consumed: List[Span] = []

    def run(extractor: Callable[[str], Tuple]):
        value, spans = extractor(text)
        consumed.extend(spans)
        return value

    hints.bedrooms = run(extract_bedrooms)
    hints.bathrooms = run(extract_bathrooms)

    hints.studio = run(extract_studio)
    if hints.studio and hints.bedrooms is None:
        hints.bedrooms = [0, 0]

    hints.location = run(extract_location)

    hints.price_max = run(extract_price_max)
    hints.price_min = run(extract_price_min)
    price_range = run(extract_price_range)
    if price_range:
        if hints.price_min is None:
            hints.price_min = price_range[0]
        if hints.price_max is None:
            hints.price_max = price_range[1]

    hints.feature_keys = run(extract_features)
    hints.property_type_keys = run(extract_property_types)
    hints.property_type_ids = [
        PROPERTY_TYPE_IDS[k] for k in hints.property_type_keys if k in PROPERTY_TYPE_IDS
    ]
    hints.purpose = run(extract_purpose)

    if hints.location is None:
        place, spans = extract_trailing_location(text, consumed)
        hints.location = place
        consumed.extend(spans)

    hints.keyword = residual_keyword(text, consumed)

    logger.debug(f"Parsed query {text!r}: {hints}")
    return hints


# Wider ranges collapse to "lo or more" instead of listing every value
MAX_COUNT_RANGE_SPAN = 10


def _count_filter(bounds: List[Optional[int]]) -> List:
    lo, hi = bounds
    if hi is None or hi - lo > MAX_COUNT_RANGE_SPAN:
        return [f"{lo}+"]
    return list(range(lo, hi + 1))


def merge_hints(state: FilterState, hints: QueryHints) -> FilterState:
    """
    Merge parsed hints into caller-supplied filters.

    Explicit fields always win; hints only fill fields left unset.
    A keyword hint is appended to any existing keyword.

    Args:
        state: Filters supplied by the caller
        hints: Parsed hints

    Returns:
        New FilterState (the input is not modified)
    """
    merged = state.copy()

    if merged.location is None and hints.location:
        merged.location = hints.location

    if hints.keyword:
        if merged.keyword and merged.keyword.strip():
            merged.keyword = f"{merged.keyword.strip()} {hints.keyword}"
        else:
            merged.keyword = hints.keyword

    if not merged.bedrooms and hints.bedrooms:
        merged.bedrooms = _count_filter(hints.bedrooms)
    if not merged.bathrooms and hints.bathrooms:
        merged.bathrooms = _count_filter(hints.bathrooms)

    if merged.price_min is None and hints.price_min is not None:
        merged.price_min = hints.price_min
    if merged.price_max is None and hints.price_max is not None:
        merged.price_max = hints.price_max

    if not merged.feature_keys and hints.feature_keys:
        merged.feature_keys = list(hints.feature_keys)
    if not merged.property_type_ids and hints.property_type_ids:
        merged.property_type_ids = list(hints.property_type_ids)

    if not merged.purpose and hints.purpose:
        merged.purpose = hints.purpose

    return merged
