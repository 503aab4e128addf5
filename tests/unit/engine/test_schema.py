"""
Tests for collection schema reconciliation.
"""

import pytest

from realty_search.engine.schema import (
    PROPERTIES_COLLECTION_SCHEMA,
    SchemaChange,
    missing_fields,
    reconcile_schema,
    schema_for,
)
from realty_search.errors import SchemaPatchError, UpstreamError


def test_creates_missing_collection(fake_engine):
    change = reconcile_schema(fake_engine, schema_for("properties_test"))

    assert change == SchemaChange.CREATED
    assert "properties_test" in fake_engine.collections


def test_patches_only_missing_fields(fake_engine):
    schema = schema_for("properties")
    existing = [f for f in schema["fields"] if f["name"] not in ("featured_rank", "agent_whatsapp")]
    fake_engine.collections["properties"] = {
        "name": "properties",
        "fields": [{"name": "id", "type": "string"}] + [dict(f) for f in existing],
    }

    change = reconcile_schema(fake_engine, schema)

    assert change == SchemaChange.PATCHED
    assert len(fake_engine.patches) == 1
    _, body = fake_engine.patches[0]
    assert [f["name"] for f in body["fields"]] == ["featured_rank", "agent_whatsapp"]


def test_unchanged_when_complete(fake_engine):
    schema = schema_for("properties")
    reconcile_schema(fake_engine, schema)

    assert reconcile_schema(fake_engine, schema) == SchemaChange.UNCHANGED
    assert fake_engine.patches == []


def test_reserved_id_is_never_patched():
    required = {"fields": [{"name": "id", "type": "string"}, {"name": "price", "type": "float"}]}
    assert missing_fields({"fields": []}, required) == [{"name": "price", "type": "float"}]


def test_existing_fields_are_not_redefined():
    required = {"fields": [{"name": "price", "type": "float"}]}
    # Type differs but the name exists
    assert missing_fields({"fields": [{"name": "price", "type": "int32"}]}, required) == []


def test_patch_rejection_is_reported(fake_engine):
    fake_engine.collections["properties"] = {"name": "properties", "fields": []}

    def reject(name, body):
        raise UpstreamError("bad request", service="search_engine", status_code=400)

    fake_engine.patch_collection = reject

    with pytest.raises(SchemaPatchError) as exc_info:
        reconcile_schema(fake_engine, schema_for("properties"))

    assert exc_info.value.collection == "properties"
    assert exc_info.value.status_code == 400


def test_schema_for_copies():
    schema = schema_for("other")
    schema["fields"][0]["name"] = "changed"

    assert PROPERTIES_COLLECTION_SCHEMA["name"] == "properties"
    assert PROPERTIES_COLLECTION_SCHEMA["fields"][0]["name"] == "property_id"


def test_default_sorting_field_is_required():
    fields = {f["name"]: f for f in PROPERTIES_COLLECTION_SCHEMA["fields"]}
    sort_field = PROPERTIES_COLLECTION_SCHEMA["default_sorting_field"]

    assert not fields[sort_field].get("optional", False)
