"""
Search Models
Pydantic models for the search endpoints.
"""

import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...search.filters import FilterState
from ...search.personalization import PreferenceProfile

_COUNT_VALUE = re.compile(r"^\d+\+?$")


class StructuredFilters(BaseModel):
    """
    Explicit filters. Every field is optional; unset fields may be filled
    from the free text.
    """

    model_config = ConfigDict(populate_by_name=True)

    price_min: Optional[float] = Field(None, ge=0, alias="priceMin")
    price_max: Optional[float] = Field(None, ge=0, alias="priceMax")
    area_min: Optional[float] = Field(None, ge=0, alias="areaMin", description="Minimum area (sqm)")
    area_max: Optional[float] = Field(None, ge=0, alias="areaMax", description="Maximum area (sqm)")

    bedrooms: Optional[List[Union[int, str]]] = Field(None, description='Counts, or "N+"')
    bathrooms: Optional[List[Union[int, str]]] = Field(None, description='Counts, or "N+"')

    property_type_ids: Optional[List[int]] = Field(None, alias="propertyTypeIds")
    main_property_type_ids: Optional[List[int]] = Field(None, alias="mainPropertyTypeIds")
    feature_ids: Optional[List[int]] = Field(None, alias="featureIds")
    feature_keys: Optional[List[str]] = Field(None, alias="featureKeys")
    agent_ids: Optional[List[int]] = Field(None, alias="agentIds")

    completion_status: Optional[str] = Field(None, alias="completionStatus")
    completion_statuses: Optional[List[str]] = Field(None, alias="completionStatuses")

    location: Optional[str] = Field(None, max_length=200)
    keyword: Optional[str] = Field(None, max_length=200)

    @field_validator("bedrooms", "bathrooms")
    @classmethod
    def validate_counts(cls, v):
        if v is None:
            return v
        for item in v:
            if isinstance(item, int):
                if item < 0:
                    raise ValueError("counts must be non-negative")
            elif not _COUNT_VALUE.match(str(item).strip()):
                raise ValueError(f"invalid count value: {item!r}")
        return v

    def to_filter_state(self) -> FilterState:
        return FilterState(
            price_min=self.price_min,
            price_max=self.price_max,
            area_min=self.area_min,
            area_max=self.area_max,
            bedrooms=self.bedrooms,
            bathrooms=self.bathrooms,
            property_type_ids=self.property_type_ids,
            main_property_type_ids=self.main_property_type_ids,
            feature_ids=self.feature_ids,
            feature_keys=self.feature_keys,
            agent_ids=self.agent_ids,
            completion_status=self.completion_status,
            completion_statuses=self.completion_statuses,
            location=self.location,
            keyword=self.keyword,
        )


class HistogramsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bedrooms: Dict[str, int] = Field(default_factory=dict)
    bathrooms: Dict[str, int] = Field(default_factory=dict)
    price_buckets: Dict[str, int] = Field(default_factory=dict, alias="priceBuckets")
    property_types: Dict[str, int] = Field(default_factory=dict, alias="propertyTypes")
    features: Dict[str, int] = Field(default_factory=dict)


class PreferenceProfileModel(BaseModel):
    """Preference profile produced by the session tracker."""

    model_config = ConfigDict(populate_by_name=True)

    ready: bool = False
    histograms: HistogramsModel = Field(default_factory=HistogramsModel)
    precomputed_boost_expression: Optional[str] = Field(
        None, alias="precomputedBoostExpression", max_length=4000
    )

    def to_profile(self) -> PreferenceProfile:
        return PreferenceProfile.from_dict(self.model_dump(by_alias=True))


class SearchRequest(BaseModel):
    """
    Search request model.

    Free text is parsed into hints that only fill filters left unset.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "purpose": "for_sale",
                "countryId": 1,
                "freeText": "3 bed villa with pool in Arabian Ranches under 5m",
                "structuredFilters": {"bathrooms": [3, "4+"]},
                "page": 1,
                "pageSize": 25,
            }
        },
    )

    purpose: Optional[str] = Field(None, max_length=50, description="for_sale or for_rent")
    country_id: Optional[int] = Field(None, ge=1, alias="countryId")
    free_text: Optional[str] = Field(None, max_length=500, alias="freeText")
    filters: Optional[StructuredFilters] = Field(None, alias="structuredFilters")

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    page_size: Optional[int] = Field(None, ge=1, alias="pageSize")

    preference_profile: Optional[PreferenceProfileModel] = Field(None, alias="preferenceProfile")
    featured_first: Optional[bool] = Field(None, alias="featuredFirst")
    lang: str = Field(default="en", pattern="^(en|ar)$", description="Display language")


class ListingResult(BaseModel):
    """Single listing result."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: Optional[str] = None
    purpose_key: Optional[str] = Field(None, alias="purposeKey")
    property_type_id: Optional[int] = Field(None, alias="propertyTypeId")
    price: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    area_sqm: Optional[float] = Field(None, alias="areaSqm")
    address: Optional[str] = None
    city: Optional[str] = None
    community: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    completion_status: Optional[str] = Field(None, alias="completionStatus")
    is_featured: bool = Field(False, alias="isFeatured")
    agent_name: Optional[str] = Field(None, alias="agentName")
    primary_image_url: Optional[str] = Field(None, alias="primaryImageUrl")
    additional_image_urls: List[str] = Field(default_factory=list, alias="additionalImageUrls")
    updated_at: Optional[int] = Field(None, alias="updatedAt")

    @classmethod
    def from_document(cls, doc: Dict[str, Any], lang: str = "en") -> "ListingResult":
        if lang == "ar":
            title = doc.get("title_ar") or doc.get("title_en")
        else:
            title = doc.get("title_en") or doc.get("title_ar")
        return cls(
            id=str(doc.get("id")),
            title=title,
            purpose_key=doc.get("purpose_key"),
            property_type_id=doc.get("property_type_id"),
            price=doc.get("price"),
            bedrooms=doc.get("bedrooms"),
            bathrooms=doc.get("bathrooms"),
            area_sqm=doc.get("area_sqm"),
            address=doc.get("address"),
            city=doc.get("city_en"),
            community=doc.get("community_en"),
            features=list(doc.get("features") or []),
            completion_status=doc.get("completion_status"),
            is_featured=bool(doc.get("is_featured", False)),
            agent_name=doc.get("agent_name"),
            primary_image_url=doc.get("primary_image_url"),
            additional_image_urls=list(doc.get("additional_image_urls") or []),
            updated_at=doc.get("updated_at"),
        )


class SearchResponse(BaseModel):
    """Search response model."""

    model_config = ConfigDict(populate_by_name=True)

    items: List[ListingResult]
    total_found: int = Field(..., alias="totalFound")
    page: int
    page_size: int = Field(..., alias="pageSize")
    total_pages: int = Field(..., alias="totalPages")
    strategy: str = Field(..., description="Ranking strategy used")
    search_time_ms: float = Field(..., alias="searchTimeMs")


class CountResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_found: int = Field(..., alias="totalFound")
