"""
Primary Store Reader
Reads listings changed since a cursor, with their denormalized attributes.
"""

import logging
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..errors import UpstreamError
from .cursor import SyncCursor

logger = logging.getLogger(__name__)


@dataclass
class ListingRow:
    """
    One listing as read from the primary store.

    change_epoch is the greatest last-modified time (epoch seconds) of the
    listing and every joined details/location/agent/image row.
    """

    property_id: int
    change_epoch: int
    country_id: int = 1
    purpose_id: Optional[int] = None
    purpose_key: Optional[str] = None
    property_type_id: Optional[int] = None
    property_type_ids: Optional[List[int]] = None
    main_property_type_ids: Optional[List[int]] = None
    price: Optional[float] = None
    currency_id: Optional[int] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    area_sqft: Optional[float] = None
    area_sqm: Optional[float] = None
    address: Optional[str] = None
    feature_ids: Optional[List[int]] = None
    features: Optional[List[str]] = None
    agent_id: Optional[int] = None
    agent_name: Optional[str] = None
    agent_email: Optional[str] = None
    agent_phone: Optional[str] = None
    agent_whatsapp: Optional[str] = None
    status: Optional[str] = None
    completion_status: Optional[str] = None
    is_off_plan: Optional[bool] = None
    is_featured: bool = False
    featured_rank: Optional[int] = None
    created_at: Optional[Any] = None  # datetime or epoch seconds
    title_en: Optional[str] = None
    title_ar: Optional[str] = None
    city_en: Optional[str] = None
    area_en: Optional[str] = None
    community_en: Optional[str] = None
    primary_image_url: Optional[str] = None
    additional_image_urls: Optional[List[str]] = field(default=None)

    @classmethod
    def from_mapping(cls, row: Dict[str, Any]) -> "ListingRow":
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in row.items() if k in known}
        data["property_id"] = int(row["property_id"])
        data["change_epoch"] = int(row["change_epoch"])
        return cls(**data)


class PrimaryStore:
    """Read contract for changed listings."""

    def fetch_changed(self, cursor: SyncCursor, limit: int) -> List[ListingRow]:
        """
        Rows not yet seen by cursor, ordered by (change_epoch, property_id).
        """
        raise NotImplementedError


# Change time covers the listing and every row feeding the projection
CHANGED_LISTINGS_SQL = """
WITH base AS (
    SELECT
        p.property_id,
        COALESCE(l.country_id, 1) AS country_id,
        p.purpose_id,
        pur.purpose_key,
        (p.property_type_ids)[1] AS property_type_id,
        p.property_type_ids,
        p.main_property_type_ids,
        p.price,
        p.currency_id,
        pd.bedrooms,
        pd.bathrooms,
        pd.area_sqft,
        pd.area_sqm,
        p.address,
        pd.feature_ids,
        a.agent_id,
        a.agent_name,
        a.email AS agent_email,
        a.phone AS agent_phone,
        a.whatsapp AS agent_whatsapp,
        p.status,
        p.completion_status,
        p.is_off_plan,
        COALESCE(p.is_featured, FALSE) AS is_featured,
        p.featured_rank,
        p.created_at,
        p.title_translations->>'en' AS title_en,
        p.title_translations->>'ar' AS title_ar,
        l.translations->'en'->>'city' AS city_en,
        l.translations->'en'->>'area' AS area_en,
        l.translations->'en'->>'community' AS community_en,
        EXTRACT(EPOCH FROM GREATEST(
            p.updated_at,
            COALESCE(pd.updated_at, p.updated_at),
            COALESCE(l.updated_at, p.updated_at),
            COALESCE(a.updated_at, p.updated_at),
            COALESCE(img_times.last_image_change, p.updated_at)
        ))::bigint AS change_epoch
    FROM property.properties p
    LEFT JOIN property.locations l ON l.location_id = p.location_id
    LEFT JOIN property.property_details pd ON pd.property_id = p.property_id
    LEFT JOIN property.purposes pur ON pur.purpose_id = p.purpose_id
    LEFT JOIN business.agents a ON a.agent_id = p.agent_id
    LEFT JOIN LATERAL (
        SELECT MAX(GREATEST(pi.created_at, COALESCE(pi.last_compressed_at, pi.created_at)))
            AS last_image_change
        FROM property.property_images pi
        WHERE pi.property_id = p.property_id
    ) img_times ON TRUE
)
SELECT
    b.*,
    img.image_url AS primary_image_url,
    feats.features,
    add_imgs.additional_image_urls
FROM base b
LEFT JOIN LATERAL (
    SELECT COALESCE(pi.compressed_image_url, pi.image_url) AS image_url
    FROM property.property_images pi
    WHERE pi.property_id = b.property_id
    ORDER BY pi.is_primary DESC, pi.display_order ASC, pi.image_id ASC
    LIMIT 1
) img ON TRUE
LEFT JOIN LATERAL (
    SELECT ARRAY(
        SELECT f.feature_key
        FROM unnest(COALESCE(b.feature_ids, '{}')) AS fid
        JOIN property.features f ON f.feature_id = fid
    ) AS features
) feats ON TRUE
LEFT JOIN LATERAL (
    SELECT ARRAY(
        SELECT COALESCE(pi.compressed_image_url, pi.image_url)
        FROM property.property_images pi
        WHERE pi.property_id = b.property_id
          AND COALESCE(pi.compressed_image_url, pi.image_url) IS DISTINCT FROM img.image_url
        ORDER BY pi.display_order ASC, pi.image_id ASC
        LIMIT 5
    ) AS additional_image_urls
) add_imgs ON TRUE
WHERE b.change_epoch > :cursor_time
   OR (b.change_epoch = :cursor_time AND b.property_id > :cursor_id)
ORDER BY b.change_epoch ASC, b.property_id ASC
LIMIT :limit
"""


class SqlPrimaryStore(PrimaryStore):
    """PostgreSQL primary store."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def fetch_changed(self, cursor: SyncCursor, limit: int) -> List[ListingRow]:
        session = self.session_factory()
        try:
            result = session.execute(
                text(CHANGED_LISTINGS_SQL),
                {
                    "cursor_time": cursor.watermark_time,
                    "cursor_id": cursor.watermark_id,
                    "limit": limit,
                },
            )
            rows = [ListingRow.from_mapping(dict(r)) for r in result.mappings().all()]
        except SQLAlchemyError as e:
            logger.error(f"Changed-listings query failed: {e}")
            raise UpstreamError(f"Primary store query failed: {e}", service="primary_store") from e
        finally:
            session.close()

        logger.debug(f"Fetched {len(rows)} changed listings after {cursor}")
        return rows


def epoch_seconds(value: Any) -> Optional[int]:
    """datetime or number → epoch seconds."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return int(value.timestamp())
    return int(value)
