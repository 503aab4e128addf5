"""
Search Document Builder
Flatten a primary-store listing into an engine document.
"""

from typing import Any, Dict, Optional

from .primary_store import ListingRow, epoch_seconds

# Sorts unranked listings after every ranked one
UNRANKED_FEATURED_RANK = 2_147_483_647


def _float_or_none(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def build_document(row: ListingRow) -> Dict[str, Any]:
    """
    Build the engine document for one listing.

    updated_at is the row's change epoch, so a later write of the same id
    never carries an older version stamp.

    Args:
        row: Listing read from the primary store

    Returns:
        Flat document keyed by string id
    """
    created_at = epoch_seconds(row.created_at)

    doc: Dict[str, Any] = {
        "id": str(row.property_id),
        "property_id": str(row.property_id),
        "country_id": int(row.country_id if row.country_id is not None else 1),
        "purpose_id": row.purpose_id,
        "purpose_key": row.purpose_key,
        "property_type_id": row.property_type_id,
        "property_type_ids": list(row.property_type_ids) if row.property_type_ids else None,
        "main_property_type_ids": (
            list(row.main_property_type_ids) if row.main_property_type_ids else None
        ),
        "price": _float_or_none(row.price),
        "currency_id": row.currency_id,
        "bedrooms": row.bedrooms,
        "bathrooms": row.bathrooms,
        "area_sqft": _float_or_none(row.area_sqft),
        "area_sqm": _float_or_none(row.area_sqm),
        "address": row.address,
        "feature_ids": list(row.feature_ids) if row.feature_ids else None,
        "features": list(row.features) if row.features else None,
        "agent_id": row.agent_id,
        "agent_name": row.agent_name,
        "agent_email": row.agent_email,
        "agent_phone": row.agent_phone,
        "agent_whatsapp": row.agent_whatsapp,
        "status": row.status,
        "completion_status": row.completion_status,
        "is_off_plan": row.is_off_plan,
        "is_featured": bool(row.is_featured),
        "featured_rank": (
            int(row.featured_rank) if row.featured_rank is not None else UNRANKED_FEATURED_RANK
        ),
        "created_at": created_at if created_at is not None else int(row.change_epoch),
        "updated_at": int(row.change_epoch),
        "title_en": row.title_en,
        "title_ar": row.title_ar,
        "city_en": row.city_en,
        "area_en": row.area_en,
        "community_en": row.community_en,
        "primary_image_url": row.primary_image_url,
        "additional_image_urls": (
            list(row.additional_image_urls) if row.additional_image_urls else None
        ),
    }
    # Optional fields are left out rather than sent as null
    return {k: v for k, v in doc.items() if v is not None}
