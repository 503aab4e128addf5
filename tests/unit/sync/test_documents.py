"""
Tests for listing -> engine document projection.
"""

from datetime import datetime, timezone

from realty_search.sync.documents import UNRANKED_FEATURED_RANK, build_document
from realty_search.sync.primary_store import ListingRow, epoch_seconds


def test_document_fields(row_factory):
    row = row_factory(
        42,
        1_700_000_500,
        price=1_250_000,
        area_sqm=120,
        features=["pool", "gym"],
        is_featured=True,
        featured_rank=3,
    )

    doc = build_document(row)

    assert doc["id"] == "42"
    assert doc["property_id"] == "42"
    assert doc["updated_at"] == 1_700_000_500
    assert doc["created_at"] == 1_700_000_400
    assert doc["price"] == 1_250_000.0
    assert isinstance(doc["price"], float)
    assert doc["area_sqm"] == 120.0
    assert doc["features"] == ["pool", "gym"]
    assert doc["is_featured"] is True
    assert doc["featured_rank"] == 3


def test_null_fields_are_omitted():
    doc = build_document(ListingRow(property_id=7, change_epoch=10))

    assert "price" not in doc
    assert "agent_name" not in doc
    assert "features" not in doc
    assert doc["is_featured"] is False
    assert doc["featured_rank"] == UNRANKED_FEATURED_RANK
    assert doc["created_at"] == 10
    assert doc["country_id"] == 1


def test_datetime_created_at():
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    doc = build_document(ListingRow(property_id=1, change_epoch=1_800_000_000, created_at=created))

    assert doc["created_at"] == 1_704_067_200


def test_from_mapping_ignores_unknown_columns():
    row = ListingRow.from_mapping(
        {"property_id": "9", "change_epoch": 123.0, "bedrooms": 3, "unknown_column": "x"}
    )

    assert row.property_id == 9
    assert row.change_epoch == 123
    assert row.bedrooms == 3


def test_epoch_seconds():
    assert epoch_seconds(None) is None
    assert epoch_seconds(12.9) == 12
