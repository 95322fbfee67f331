"""
Property API schemas.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PropertyStatus(str, Enum):
    OFF_PLAN = "Off Plan"
    READY = "Ready"
    SOLD = "Sold"


class ListingType(str, Enum):
    SALE = "Sale"
    RENT = "Rent"


class AgentRef(BaseModel):
    id: str = ""
    name: str = ""


class PropertyFields(BaseModel):
    """
    Every writable column except `reference`.
    """

    model_config = ConfigDict(use_enum_values=True)

    listing_type: ListingType = ListingType.SALE
    property_type: str = Field(default="Apartment", min_length=1, max_length=100)
    sub_community: str | None = None
    community: str = ""
    region: str = "Dubai"
    country: str = "UAE"
    agent: list[AgentRef] | None = None
    price: int = Field(default=0, ge=0)
    currency: str = Field(default="AED", min_length=1, max_length=10)
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: int | None = Field(default=None, ge=0)
    property_status: PropertyStatus = PropertyStatus.OFF_PLAN
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    sqfeet_area: int | None = Field(default=None, ge=0)
    sqfeet_builtup: int | None = Field(default=None, ge=0)
    is_exclusive: bool = False
    amenities: str | None = None
    is_featured: bool = False
    is_fitted: bool = False
    is_furnished: bool = False
    lifestyle: str | None = None
    permit: str | None = None
    brochure: str | None = None
    images: list[str] = Field(default_factory=list)
    is_disabled: bool = False
    development: str | None = None
    neighbourhood: str | None = None
    sold: bool = False


class PropertyCreate(PropertyFields):
    reference: str = Field(..., min_length=1, max_length=100)


class PropertyUpdate(BaseModel):
    """
    Partial update; only fields present in the request body are written.
    """

    model_config = ConfigDict(use_enum_values=True)

    reference: str | None = Field(default=None, min_length=1, max_length=100)
    listing_type: ListingType | None = None
    property_type: str | None = Field(default=None, min_length=1, max_length=100)
    sub_community: str | None = None
    community: str | None = None
    region: str | None = None
    country: str | None = None
    agent: list[AgentRef] | None = None
    price: int | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=1, max_length=10)
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: int | None = Field(default=None, ge=0)
    property_status: PropertyStatus | None = None
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    sqfeet_area: int | None = Field(default=None, ge=0)
    sqfeet_builtup: int | None = Field(default=None, ge=0)
    is_exclusive: bool | None = None
    amenities: str | None = None
    is_featured: bool | None = None
    is_fitted: bool | None = None
    is_furnished: bool | None = None
    lifestyle: str | None = None
    permit: str | None = None
    brochure: str | None = None
    images: list[str] | None = None
    is_disabled: bool | None = None
    development: str | None = None
    neighbourhood: str | None = None
    sold: bool | None = None


class PropertyFilters(BaseModel):
    reference: str | None = None
    listing_type: ListingType | None = None
    property_type: str | None = None
    community: str | None = None
    property_status: PropertyStatus | None = None
    is_featured: bool | None = None
    is_disabled: bool | None = None
    min_price: int | None = Field(default=None, ge=0)
    max_price: int | None = Field(default=None, ge=0)
    bedrooms: int | None = Field(default=None, ge=0)


class PropertyResponse(PropertyCreate):
    id: int
    created_at: datetime
    updated_at: datetime


class PropertyPage(BaseModel):
    items: list[PropertyResponse]
    page: int
    page_size: int
    total: int
