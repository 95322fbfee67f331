"""
Content resource definitions: one entry per admin CRUD screen.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel

from . import schemas


@dataclass(frozen=True)
class Resource:
    path: str
    table: str
    label: str
    create_model: type[BaseModel]
    update_model: type[BaseModel]
    search_columns: tuple[str, ...] = ()
    filter_columns: tuple[str, ...] = ()
    # Query parameter that returns a single row instead of a list (?slug=...).
    lookup_column: str | None = None
    order_by: str = "id DESC"
    public_read: bool = True
    public_create: bool = False
    unique_columns: tuple[str, ...] = ()

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(self.create_model.model_fields) + tuple(
            name for name in self.update_model.model_fields if name not in self.create_model.model_fields
        )


AGENTS = Resource(
    path="/agents",
    table="agents",
    label="Agent",
    create_model=schemas.AgentCreate,
    update_model=schemas.AgentUpdate,
    search_columns=("name", "email", "job_title", "location"),
    order_by="name ASC, id ASC",
)

ARTICLES = Resource(
    path="/articles",
    table="articles",
    label="Article",
    create_model=schemas.ArticleCreate,
    update_model=schemas.ArticleUpdate,
    search_columns=("title", "excerpt", "author", "category"),
    filter_columns=("category", "author"),
    lookup_column="slug",
    unique_columns=("slug",),
)

NEIGHBORHOODS = Resource(
    path="/neighborhoods",
    table="neighborhoods",
    label="Neighborhood",
    create_model=schemas.NeighborhoodCreate,
    update_model=schemas.NeighborhoodUpdate,
    search_columns=("title", "region", "subtitle"),
    filter_columns=("region",),
    lookup_column="url_slug",
)

DEVELOPERS = Resource(
    path="/developers",
    table="developers",
    label="Developer",
    create_model=schemas.DeveloperCreate,
    update_model=schemas.DeveloperUpdate,
    search_columns=("title", "country"),
    lookup_column="url_slug",
)

DEVELOPMENTS = Resource(
    path="/developments",
    table="developments",
    label="Development",
    create_model=schemas.DevelopmentCreate,
    update_model=schemas.DevelopmentUpdate,
    search_columns=("title", "area", "property_type"),
    filter_columns=("area", "property_type"),
    lookup_column="url_slug",
)

BANNER_HIGHLIGHTS = Resource(
    path="/banner-highlights",
    table="banner_highlights",
    label="Banner highlight",
    create_model=schemas.BannerHighlightCreate,
    update_model=schemas.BannerHighlightUpdate,
    search_columns=("title", "headline"),
)

FOOTER_LINKS = Resource(
    path="/footer-links",
    table="footer_links",
    label="Footer link",
    create_model=schemas.FooterLinkCreate,
    update_model=schemas.FooterLinkUpdate,
    search_columns=("heading", "url"),
    filter_columns=("section",),
    order_by="section ASC, priority ASC, id ASC",
)

SITEMAP = Resource(
    path="/sitemap",
    table="sitemap",
    label="Sitemap entry",
    create_model=schemas.SitemapEntryCreate,
    update_model=schemas.SitemapEntryUpdate,
    search_columns=("link_label", "complete_url"),
    filter_columns=("section",),
    order_by="section ASC NULLS LAST, id ASC",
)

ENQUIRIES = Resource(
    path="/enquiries",
    table="enquiries",
    label="Enquiry",
    create_model=schemas.EnquiryCreate,
    update_model=schemas.EnquiryUpdate,
    search_columns=("email", "name", "subject", "property_reference"),
    filter_columns=("property_reference",),
    public_read=False,
    public_create=True,
)

RESOURCES: tuple[Resource, ...] = (
    AGENTS,
    ARTICLES,
    NEIGHBORHOODS,
    DEVELOPERS,
    DEVELOPMENTS,
    BANNER_HIGHLIGHTS,
    FOOTER_LINKS,
    SITEMAP,
    ENQUIRIES,
)
