"""Pydantic models for bookstack-mcp.

Three groups of models live here:
- Tool input: sections, tags, metadata and the create/update request types
- BookStack API responses (pages, books, shelves, search hits)
- BookStack API payloads and duplicate-detection results
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .config import DEFAULT_SEARCH_COUNT, DEFAULT_SIMILARITY_THRESHOLD, MAX_SEARCH_COUNT


# ─────────────────────────────────────────────────────────────────────────────
# Tool input
# ─────────────────────────────────────────────────────────────────────────────


class SectionKind(str, Enum):
    """Section styles. info/warning/normal is the legacy subset."""

    NORMAL = "normal"
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    DANGER = "danger"


class Section(BaseModel):
    """One titled, typed block of page content."""

    title: str = Field(default="", description="Section heading. Empty suppresses the heading line.")
    content: str = Field(description="Section body, Markdown formatted.")
    kind: SectionKind = Field(
        default=SectionKind.NORMAL,
        description="Style of the section: normal, info, warning, success or danger.",
    )

    @model_validator(mode="before")
    @classmethod
    def _accept_type_alias(cls, data: Any) -> Any:
        # Older clients send the style as "type"
        if isinstance(data, dict) and "type" in data and "kind" not in data:
            data = dict(data)
            data["kind"] = data.pop("type")
        return data


class Tag(BaseModel):
    """A BookStack tag. Names are compared case-insensitively."""

    name: str = Field(min_length=1, description="Tag name")
    value: str | None = Field(default=None, description="Optional tag value")

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Tag name must not be blank")
        return v


class PageMetadata(BaseModel):
    """Provenance shown in the footer line of a page."""

    created_by: str | None = None  # User who asked for the change
    client: str | None = None  # Client or machine name
    ai_model: str | None = None  # Model that produced the content


class PageContent(BaseModel):
    """Fields shared by create and update requests."""

    sections: list[Section] = Field(min_length=1)
    tags: list[Tag] = Field(default_factory=list)
    include_logo: bool = False
    metadata: PageMetadata = Field(default_factory=PageMetadata)


class CreatePageRequest(PageContent):
    book_id: int = Field(gt=0)
    title: str = Field(min_length=1)
    chapter_id: int | None = Field(default=None, gt=0)
    check_similar: bool = True
    similarity_threshold: float = Field(default=DEFAULT_SIMILARITY_THRESHOLD, ge=0.0, le=1.0)
    template_id: int | None = Field(default=None, gt=0)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Page title must not be blank")
        return v


class UpdatePageRequest(PageContent):
    page_id: int = Field(gt=0)
    title: str | None = None
    check_similar: bool = False
    similarity_threshold: float = Field(default=DEFAULT_SIMILARITY_THRESHOLD, ge=0.0, le=1.0)


class CreateBookRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    tags: list[Tag] = Field(default_factory=list)
    check_similar: bool = True
    similarity_threshold: float = Field(default=DEFAULT_SIMILARITY_THRESHOLD, ge=0.0, le=1.0)


class SearchRequest(BaseModel):
    query: str = ""
    page: int = Field(default=1, ge=1)
    count: int = Field(default=DEFAULT_SEARCH_COUNT, ge=1, le=MAX_SEARCH_COUNT)


# ─────────────────────────────────────────────────────────────────────────────
# BookStack API responses
# ─────────────────────────────────────────────────────────────────────────────


class ApiModel(BaseModel):
    """Base for response models: BookStack adds fields between releases."""

    model_config = ConfigDict(extra="ignore")


class ApiTag(ApiModel):
    name: str
    value: str | None = None
    order: int | None = None


class BookRef(ApiModel):
    id: int
    name: str
    slug: str | None = None


class PreviewHtml(ApiModel):
    name: str | None = None
    content: str | None = None


class ContentSummary(ApiModel):
    """A search hit or list entry (page, chapter, book or shelf)."""

    id: int
    name: str
    slug: str | None = None
    type: str | None = None  # bookshelf, book, chapter, page
    url: str | None = None
    book_id: int | None = None
    book: BookRef | None = None
    preview_html: PreviewHtml | None = None
    tags: list[ApiTag] | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def parent_id(self) -> int | None:
        """Book id for pages and chapters, None for books and shelves."""
        if self.book_id is not None:
            return self.book_id
        return self.book.id if self.book else None

    @property
    def preview(self) -> str:
        if self.preview_html and self.preview_html.content:
            return self.preview_html.content
        return self.description or ""


class ContentList(ApiModel):
    """Response of /api/search, /api/books and /api/shelves."""

    data: list[ContentSummary]
    total: int | None = None


class UserRef(ApiModel):
    id: int
    name: str
    slug: str | None = None


class PageDetail(ApiModel):
    id: int
    book_id: int
    chapter_id: int | None = None
    name: str
    slug: str | None = None
    html: str | None = None
    raw_html: str | None = None
    markdown: str | None = None
    priority: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: UserRef | int | None = None
    updated_by: UserRef | int | None = None
    draft: bool | None = None
    template: bool | None = None
    tags: list[ApiTag] | None = None
    url: str | None = None


class BookDetail(ApiModel):
    id: int
    name: str
    slug: str | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    tags: list[ApiTag] | None = None
    url: str | None = None


# ─────────────────────────────────────────────────────────────────────────────
# BookStack API payloads
# ─────────────────────────────────────────────────────────────────────────────


class PayloadTag(BaseModel):
    name: str
    value: str | None = None


class CreatePagePayload(BaseModel):
    book_id: int
    name: str
    markdown: str
    tags: list[PayloadTag] | None = None
    chapter_id: int | None = None


class UpdatePagePayload(BaseModel):
    name: str | None = None  # Omitted keeps the existing page name
    markdown: str
    tags: list[PayloadTag] | None = None  # Omitted keeps the existing tags


class CreateBookPayload(BaseModel):
    name: str
    description: str | None = None
    tags: list[PayloadTag] | None = None


# ─────────────────────────────────────────────────────────────────────────────
# Duplicate detection
# ─────────────────────────────────────────────────────────────────────────────


class DuplicateCandidate(BaseModel):
    """An existing item whose title is similar to a proposed one."""

    item: ContentSummary
    score: float  # Title similarity (0-1)


class DuplicateCheck(BaseModel):
    """Outcome of a duplicate check.

    error is set when the remote lookup failed; candidates is then empty.
    Callers treat a failed check the same as "no duplicates".
    """

    candidates: list[DuplicateCandidate] = Field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
