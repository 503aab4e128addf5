"""
Listing Filtering
Turn structured filter state into a Typesense filter_by expression and a full-text query.
"""

import logging
import math
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from .bucketing import PURPOSE_SYNONYMS, SEARCH_STOPWORDS

logger = logging.getLogger(__name__)

# Sentinel query that matches every document
WILDCARD_QUERY = "*"

# "6+" style open-ended discrete values (6 or more)
_OPEN_ENDED = re.compile(r"^\s*(\d+)\s*\+\s*$")

DiscreteValue = Union[int, str]


class FilterOperator(Enum):
    """Comparison operators of the filter_by syntax."""

    EQ = ":="
    GTE = ":>="
    LTE = ":<="
    IN = ":="  # same token, list operand


def escape_filter_value(value: Any) -> str:
    """
    Quote a string value for filter_by.

    Backtick quoting makes `&&`, `||`, `:`, brackets, parentheses and commas
    literal. Backticks themselves cannot be escaped inside a quoted token, so
    they are removed.

    Args:
        value: Raw value

    Returns:
        Backtick-quoted literal
    """
    text = str(value).replace("`", "")
    return f"`{text}`"


def format_number(value: Any) -> str:
    """
    Render a number for filter_by.

    Raises:
        ValueError: If value is not a finite number
    """
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"Filter bound must be finite, got {value!r}")
    if number.is_integer():
        return str(int(number))
    return repr(number)


@dataclass
class FilterClause:
    """
    Single filter condition.

    Example:
        FilterClause("price", FilterOperator.LTE, 1_500_000)  # price:<=1500000
        FilterClause("bedrooms", FilterOperator.IN, [2, 3])   # bedrooms:=[2,3]
    """

    field: str
    operator: FilterOperator
    value: Any

    def to_filter_by(self) -> str:
        if isinstance(self.value, (list, tuple)):
            rendered = ",".join(_render_scalar(v) for v in self.value)
            return f"{self.field}{self.operator.value}[{rendered}]"
        return f"{self.field}{self.operator.value}{_render_scalar(self.value)}"


def _render_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    return escape_filter_value(value)


def split_discrete_values(values: List[DiscreteValue]) -> Tuple[List[int], Optional[int]]:
    """
    Split discrete filter values into exact values and an open-ended minimum.

    Example:
        [1, 2, "6+"] -> ([1, 2], 6)

    Invalid entries are dropped.
    """
    exact: List[int] = []
    seen = set()
    minimum: Optional[int] = None

    for v in values:
        if isinstance(v, str):
            match = _OPEN_ENDED.match(v)
            if match:
                n = int(match.group(1))
                minimum = n if minimum is None else min(minimum, n)
                continue
            if v.strip().isdigit():
                v = int(v.strip())
            else:
                logger.debug(f"Ignoring invalid discrete filter value: {v!r}")
                continue
        n = int(v)
        if n >= 0 and n not in seen:
            seen.add(n)
            exact.append(n)

    if minimum is not None:
        exact = [n for n in exact if n < minimum]

    return exact, minimum


@dataclass
class FilterState:
    """
    Structured search filters.

    None means "not set" so parsed hints can tell explicit values apart from
    missing ones.
    """

    purpose: Optional[str] = None
    country_id: Optional[int] = None

    # Ranges (inclusive)
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    area_min: Optional[float] = None  # sqm
    area_max: Optional[float] = None

    # Discrete values (ints, or "N+" for N or more)
    bedrooms: Optional[List[DiscreteValue]] = None
    bathrooms: Optional[List[DiscreteValue]] = None

    property_type_ids: Optional[List[int]] = None
    main_property_type_ids: Optional[List[int]] = None
    feature_ids: Optional[List[int]] = None
    feature_keys: Optional[List[str]] = None
    agent_ids: Optional[List[int]] = None

    # "all" means no completion filter
    completion_status: Optional[str] = None
    completion_statuses: Optional[List[str]] = None

    # Free text
    location: Optional[str] = None
    keyword: Optional[str] = None

    def copy(self) -> "FilterState":
        return replace(
            self,
            bedrooms=list(self.bedrooms) if self.bedrooms is not None else None,
            bathrooms=list(self.bathrooms) if self.bathrooms is not None else None,
            property_type_ids=_copy_list(self.property_type_ids),
            main_property_type_ids=_copy_list(self.main_property_type_ids),
            feature_ids=_copy_list(self.feature_ids),
            feature_keys=_copy_list(self.feature_keys),
            agent_ids=_copy_list(self.agent_ids),
            completion_statuses=_copy_list(self.completion_statuses),
        )

    def build_clauses(self) -> List[str]:
        """
        Build the list of conjoined filter_by parts.

        Returns:
            Filter expressions, one per active filter
        """
        parts: List[str] = []

        if self.purpose:
            parts.append(FilterClause("purpose_key", FilterOperator.EQ, self.purpose).to_filter_by())
        if self.country_id is not None:
            parts.append(
                FilterClause("country_id", FilterOperator.EQ, int(self.country_id)).to_filter_by()
            )

        # Completion status
        if self.completion_statuses:
            statuses = [
                FilterClause("completion_status", FilterOperator.EQ, s).to_filter_by()
                for s in self.completion_statuses
            ]
            parts.append(f"({' || '.join(statuses)})")
        elif self.completion_status and self.completion_status != "all":
            parts.append(
                FilterClause(
                    "completion_status", FilterOperator.EQ, self.completion_status
                ).to_filter_by()
            )

        # Membership filters
        for field_name, values in (
            ("main_property_type_ids", self.main_property_type_ids),
            ("property_type_id", self.property_type_ids),
            ("agent_id", self.agent_ids),
            ("feature_ids", self.feature_ids),
        ):
            if values:
                ids = [int(v) for v in values]
                parts.append(FilterClause(field_name, FilterOperator.IN, ids).to_filter_by())

        if self.feature_keys:
            keys = [str(k) for k in self.feature_keys]
            parts.append(FilterClause("features", FilterOperator.IN, keys).to_filter_by())

        # Discrete counts with optional "N+"
        for field_name, values in (("bedrooms", self.bedrooms), ("bathrooms", self.bathrooms)):
            if values:
                clause = _discrete_clause(field_name, values)
                if clause:
                    parts.append(clause)

        # Ranges
        parts.extend(_range_clauses("price", self.price_min, self.price_max))
        parts.extend(_range_clauses("area_sqm", self.area_min, self.area_max))

        return parts

    def to_filter_by(self) -> Optional[str]:
        parts = self.build_clauses()
        if not parts:
            return None
        return " && ".join(parts)


def _copy_list(values):
    return list(values) if values is not None else None


def _discrete_clause(field_name: str, values: List[DiscreteValue]) -> Optional[str]:
    exact, minimum = split_discrete_values(values)
    pieces = []
    if exact:
        pieces.append(FilterClause(field_name, FilterOperator.IN, exact).to_filter_by())
    if minimum is not None:
        pieces.append(FilterClause(field_name, FilterOperator.GTE, minimum).to_filter_by())

    if not pieces:
        return None
    if len(pieces) == 1:
        return pieces[0]
    return f"({' || '.join(pieces)})"


def _range_clauses(field_name: str, low: Optional[float], high: Optional[float]) -> List[str]:
    clauses = []
    if low is not None:
        clauses.append(FilterClause(field_name, FilterOperator.GTE, low).to_filter_by())
    if high is not None:
        clauses.append(FilterClause(field_name, FilterOperator.LTE, high).to_filter_by())
    return clauses


def build_filter_by(state: FilterState) -> Optional[str]:
    """
    Build filter_by expression from filter state.

    Returns:
        Expression, or None when no filter is active
    """
    return state.to_filter_by()


def build_search_query(state: FilterState) -> str:
    """
    Build full-text q from location + keyword.

    Returns:
        Query string, or the wildcard sentinel when nothing to search
    """
    terms = []
    if state.location and state.location.strip():
        terms.append(state.location.strip())
    if state.keyword and state.keyword.strip():
        terms.append(state.keyword.strip())
    if not terms:
        return WILDCARD_QUERY
    return " ".join(terms)


def combine_filter_by(*expressions: Optional[str]) -> Optional[str]:
    """Conjoin several filter_by expressions, skipping empty ones."""
    parts = [e for e in expressions if e]
    if not parts:
        return None
    return " && ".join(parts)


def strip_stopwords(text: Optional[str]) -> Optional[str]:
    """
    Remove purpose words and generic stopwords from free text.

    Returns:
        Cleaned text, or None if nothing is left
    """
    if text is None or not text.strip():
        return None
    words = [
        w
        for w in text.split()
        if w.lower() not in PURPOSE_SYNONYMS and w.lower() not in SEARCH_STOPWORDS
    ]
    cleaned = " ".join(words).strip()
    return cleaned or None


def normalize_purpose(value: Optional[str]) -> Optional[str]:
    """Normalize a purpose label ("For Sale" → "for_sale")."""
    if value is None:
        return None
    normalized = re.sub(r"\s+", "_", value.strip().lower())
    return normalized or None
