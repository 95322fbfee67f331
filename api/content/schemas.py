"""
Request schemas for the website content resources.

Each resource has a `*Create` model; the matching update model is derived
with `partial()` so a PUT only writes the fields present in the body.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, create_model

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class FooterSection(str, Enum):
    SEARCH_PROPERTIES_IN = "Search Properties In"
    NEIGHBOURHOOD_GUIDES = "Neighbourhood Guides"
    EXPLORE = "Explore"
    COMPANY = "Company"


class ContentModel(BaseModel):
    model_config = ConfigDict(use_enum_values=True, extra="ignore")


class AgentCreate(ContentModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=320)
    job_title: str | None = None
    languages: str | None = None
    license_number: str | None = None
    location: str | None = None
    head_shot: str | None = None
    photo: str | None = None
    phone: str | None = None
    introduction: str | None = None
    linkedin: str | None = None
    experience: int | None = Field(default=None, ge=0)


class InlineImage(BaseModel):
    url: str
    alt: str | None = None
    caption: str | None = None


class ArticleCreate(ContentModel):
    slug: str = Field(..., min_length=1, max_length=300)
    title: str = Field(..., min_length=1, max_length=500)
    author: str | None = None
    category: str | None = None
    excerpt: str | None = None
    date_published: str | None = None
    reading_time: int | None = Field(default=None, ge=0)
    external_id: str | None = None
    tile_image: str | None = None
    inline_images: list[InlineImage] | None = None
    body_start: str | None = None
    body_end: str | None = None
    is_disabled: bool = False
    is_featured: bool = False
    super_feature: bool = False


class NeighborhoodCreate(ContentModel):
    url_slug: str = Field(..., min_length=1, max_length=300)
    title: str = Field(..., min_length=1, max_length=300)
    subtitle: str | None = None
    region: str | None = None
    banner_image: str | None = None
    description: str | None = None
    location_attributes: str | None = None
    address: str | None = None
    available_properties: int | None = Field(default=None, ge=0)
    images: list[str] | None = None
    neighbour_image: str | None = None
    neighbours_text: str | None = None
    property_offers: str | None = None
    subtitle_blurb: str | None = None
    neighbourhood_details: str | None = None
    neighbourhood_expectation: str | None = None
    brochure: str | None = None
    show_on_footer: bool = False


class DeveloperCreate(ContentModel):
    title: str = Field(..., min_length=1, max_length=300)
    url_slug: str = Field(..., min_length=1, max_length=300)
    description: str | None = None
    country: str | None = None
    established_since: str | None = None
    logo: str | None = None


class DevelopmentCreate(ContentModel):
    title: str = Field(..., min_length=1, max_length=300)
    url_slug: str = Field(..., min_length=1, max_length=300)
    description: str | None = None
    area: str | None = None
    property_type: str | None = None
    property_description: str | None = None
    price: int | None = Field(default=None, ge=0)
    images: list[str] | None = None
    max_bedrooms: int | None = Field(default=None, ge=0)
    min_bedrooms: int | None = Field(default=None, ge=0)
    floors: int | None = Field(default=None, ge=0)
    total_units: int | None = Field(default=None, ge=0)
    min_area: int | None = Field(default=None, ge=0)
    max_area: int | None = Field(default=None, ge=0)
    address: str | None = None
    address_description: str | None = None
    currency: str | None = None
    amenities: str | None = None
    subtitle: str | None = None
    developer_link: str | None = None
    neighbourhood_link: str | None = None
    feature_on_homepage: bool = False


class BannerHighlightCreate(ContentModel):
    title: str = Field(..., min_length=1, max_length=300)
    headline: str = Field(..., min_length=1, max_length=500)
    subheading: str | None = None
    cta: str | None = None
    cta_link: str | None = None
    image: str | None = None
    is_active: bool = True


class FooterLinkCreate(ContentModel):
    url: str = Field(..., min_length=1, max_length=2000)
    heading: str = Field(..., min_length=1, max_length=300)
    priority: int = Field(default=1, ge=1)
    section: FooterSection


class SitemapEntryCreate(ContentModel):
    complete_url: str = Field(..., min_length=1, max_length=2000)
    link_label: str = Field(..., min_length=1, max_length=300)
    section: str | None = None


class EnquiryCreate(ContentModel):
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=320)
    name: str | None = Field(default=None, max_length=200)
    phone: str | None = Field(default=None, max_length=50)
    subject: str | None = Field(default=None, max_length=300)
    message: str | None = Field(default=None, max_length=10000)
    property_reference: str | None = Field(default=None, max_length=100)


class EnquiryUpdate(ContentModel):
    is_read: bool | None = None


def partial(model: type[BaseModel], name: str | None = None) -> type[BaseModel]:
    """
    Build a copy of `model` where every field is optional and defaults to None.
    """
    fields: dict[str, Any] = {}
    for field_name, info in model.model_fields.items():
        annotation: Any = info.annotation
        if info.metadata:
            # Keep length/range/pattern constraints on the inner type.
            annotation = Annotated[(annotation, *info.metadata)]
        fields[field_name] = (Optional[annotation], None)
    return create_model(
        name or model.__name__.replace("Create", "Update"),
        __base__=ContentModel,
        **fields,
    )


AgentUpdate = partial(AgentCreate)
ArticleUpdate = partial(ArticleCreate)
NeighborhoodUpdate = partial(NeighborhoodCreate)
DeveloperUpdate = partial(DeveloperCreate)
DevelopmentUpdate = partial(DevelopmentCreate)
BannerHighlightUpdate = partial(BannerHighlightCreate)
FooterLinkUpdate = partial(FooterLinkCreate)
SitemapEntryUpdate = partial(SitemapEntryCreate)
