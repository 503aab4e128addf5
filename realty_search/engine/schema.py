"""
Properties Collection Schema
Required engine schema and additive reconciliation against the live collection.
"""

import logging
from enum import Enum
from typing import Any, Dict, List

from ..errors import SchemaPatchError, UpstreamError

logger = logging.getLogger(__name__)

PROPERTIES_COLLECTION = "properties"

# Fields searched by full-text queries, in weight order
PROPERTIES_QUERY_BY = "title_en,title_ar,address,city_en,area_en,community_en,agent_name"

# Reserved by the engine, never patched
RESERVED_FIELDS = frozenset({"id"})


def _field(name: str, type_: str, facet: bool = False, optional: bool = True, sort: bool = False):
    definition: Dict[str, Any] = {"name": name, "type": type_}
    if facet:
        definition["facet"] = True
    if optional:
        definition["optional"] = True
    if sort:
        definition["sort"] = True
    return definition


PROPERTIES_COLLECTION_SCHEMA: Dict[str, Any] = {
    "name": PROPERTIES_COLLECTION,
    "default_sorting_field": "updated_at",
    "fields": [
        _field("property_id", "string", optional=False),
        _field("country_id", "int32", facet=True, optional=False),
        _field("purpose_id", "int32", facet=True),
        _field("purpose_key", "string", facet=True),
        _field("property_type_id", "int32", facet=True),
        _field("property_type_ids", "int32[]", facet=True),
        _field("main_property_type_ids", "int32[]", facet=True),
        _field("price", "float", facet=True),
        _field("currency_id", "int32", facet=True),
        _field("bedrooms", "int32", facet=True),
        _field("bathrooms", "int32", facet=True),
        _field("area_sqft", "float", facet=True),
        _field("area_sqm", "float", facet=True),
        _field("address", "string"),
        _field("feature_ids", "int32[]", facet=True),
        _field("features", "string[]", facet=True),
        _field("agent_id", "int32", facet=True),
        _field("status", "string", facet=True),
        _field("completion_status", "string", facet=True),
        _field("is_off_plan", "bool", facet=True),
        _field("is_featured", "bool", facet=True),
        _field("featured_rank", "int32"),
        _field("created_at", "int64", sort=True),
        # default_sorting_field cannot be optional
        _field("updated_at", "int64", optional=False, sort=True),
        _field("title_en", "string"),
        _field("title_ar", "string"),
        _field("city_en", "string"),
        _field("area_en", "string"),
        _field("community_en", "string"),
        _field("agent_name", "string"),
        _field("agent_email", "string"),
        _field("agent_phone", "string"),
        _field("agent_whatsapp", "string"),
        _field("primary_image_url", "string"),
        _field("additional_image_urls", "string[]"),
        _field("geo", "geopoint"),
    ],
}


class SchemaChange(Enum):
    CREATED = "created"
    PATCHED = "patched"
    UNCHANGED = "unchanged"


def schema_for(collection: str) -> Dict[str, Any]:
    """Copy of the properties schema under another collection name."""
    schema = dict(PROPERTIES_COLLECTION_SCHEMA)
    schema["fields"] = [dict(f) for f in PROPERTIES_COLLECTION_SCHEMA["fields"]]
    schema["name"] = collection
    return schema


def missing_fields(current: Dict[str, Any], required: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Required fields absent from the current collection.

    Only names are compared: an existing field is never redefined.

    Args:
        current: Collection description returned by the engine
        required: Required schema

    Returns:
        Field definitions to add, in schema order
    """
    present = {f.get("name") for f in current.get("fields") or []}
    return [
        f
        for f in required.get("fields") or []
        if f["name"] not in RESERVED_FIELDS and f["name"] not in present
    ]


def reconcile_schema(client, schema: Dict[str, Any]) -> SchemaChange:
    """
    Make sure the collection exists and has every required field.

    A missing collection is created in full; otherwise missing fields are
    added with one additive patch. Existing fields are left untouched.

    Args:
        client: TypesenseClient
        schema: Required collection schema

    Returns:
        SchemaChange describing what was done

    Raises:
        SchemaPatchError: If the engine rejects the create or the patch
        UpstreamError: If the collection cannot be described
    """
    name = schema["name"]
    current = client.retrieve_collection(name)

    if current is None:
        logger.info(f"Collection '{name}' not found, creating it")
        client.create_collection(schema)
        return SchemaChange.CREATED

    to_add = missing_fields(current, schema)
    if not to_add:
        logger.debug(f"Collection '{name}' schema is up to date")
        return SchemaChange.UNCHANGED

    logger.info(f"Patching collection '{name}' with missing fields: {[f['name'] for f in to_add]}")
    try:
        client.patch_collection(name, {"fields": to_add})
    except SchemaPatchError:
        raise
    except UpstreamError as e:
        raise SchemaPatchError(name, f"Schema patch failed: {e.message}", e.status_code) from e
    return SchemaChange.PATCHED
