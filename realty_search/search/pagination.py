"""
Pagination Blender
Page through [featured tier] + [rest tier] as one ordered sequence.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, TypeVar

T = TypeVar("T")


class BlendCase(Enum):
    FEATURED_ONLY = "A"  # whole page inside the featured tier
    REST_ONLY = "B"  # whole page inside the rest tier
    STRADDLE = "C"  # featured tail followed by rest head


@dataclass(frozen=True)
class BlendPlan:
    """
    Slices of each tier that make up one page.

    featured and rest are half-open index ranges into their tier.
    """

    case: BlendCase
    featured: range
    rest: range
    offset: int

    @property
    def size(self) -> int:
        return len(self.featured) + len(self.rest)

    @property
    def rest_offset(self) -> int:
        return self.rest.start

    @property
    def featured_page(self) -> int:
        """1-based page of the featured tier (case A only)."""
        if not len(self.featured):
            return 1
        return self.featured.start // len(self.featured) + 1


def _validate(featured_count: int, rest_count: int, page_size: int, page: int) -> None:
    if featured_count < 0 or rest_count < 0:
        raise ValueError("Tier counts must be non-negative")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")


def blend(featured_count: int, rest_count: int, page_size: int, page: int) -> BlendPlan:
    """
    Work out which items of each tier belong on a page.

    Args:
        featured_count: Items in the featured tier
        rest_count: Items in the rest tier
        page_size: Items per page
        page: 1-based page number

    Returns:
        BlendPlan (ranges are empty past the end of the sequence)

    Raises:
        ValueError: On negative counts, page_size < 1 or page < 1
    """
    _validate(featured_count, rest_count, page_size, page)

    offset = (page - 1) * page_size

    if offset + page_size <= featured_count:
        return BlendPlan(
            case=BlendCase.FEATURED_ONLY,
            featured=range(offset, offset + page_size),
            rest=range(0),
            offset=offset,
        )

    if offset >= featured_count:
        start = min(offset - featured_count, rest_count)
        stop = min(start + page_size, rest_count)
        return BlendPlan(
            case=BlendCase.REST_ONLY,
            featured=range(0),
            rest=range(start, stop),
            offset=offset,
        )

    featured_take = featured_count - offset
    rest_take = min(page_size - featured_take, rest_count)
    return BlendPlan(
        case=BlendCase.STRADDLE,
        featured=range(offset, featured_count),
        rest=range(0, rest_take),
        offset=offset,
    )


def paginate(featured: Sequence[T], rest: Sequence[T], page_size: int, page: int) -> List[T]:
    """Apply blend() to materialised tiers."""
    plan = blend(len(featured), len(rest), page_size, page)
    return [featured[i] for i in plan.featured] + [rest[i] for i in plan.rest]


def total_pages(total: int, page_size: int) -> int:
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    if total <= 0:
        return 0
    return (total + page_size - 1) // page_size
