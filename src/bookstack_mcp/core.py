"""Core business logic for bookstack-mcp.

This module implements every tool; server.py and cli.py only adapt arguments
and output. Functions take the RemoteContentService explicitly and return the
human-readable text sent back to the caller.

Design principles:
- All functions are async; they suspend only at remote calls
- Caller arguments are validated before any remote call
- Style configuration is read per call and passed down explicitly
- Duplicate checks never fail a write: a failed check counts as "no duplicates"
"""

import json
import logging
import math
from datetime import datetime
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ValidationError

from .assembler import assemble_document
from .client import RemoteContentService
from .config import (
    DEFAULT_SEARCH_COUNT,
    DEFAULT_SIMILARITY_THRESHOLD,
    DUPLICATE_PREVIEW_LENGTH,
    SEARCH_PREVIEW_LENGTH,
    StyleConfig,
    get_template_tag,
)
from .duplicates import check_similar_books, check_similar_pages, check_similar_shelves
from .errors import BookStackError, ErrorCode
from .models import (
    ApiTag,
    ContentSummary,
    CreateBookPayload,
    CreateBookRequest,
    CreatePagePayload,
    CreatePageRequest,
    DuplicateCandidate,
    DuplicateCheck,
    PayloadTag,
    SearchRequest,
    Tag,
    UpdatePagePayload,
    UpdatePageRequest,
)
from .tags import generate_auto_tags, merge_tags
from .text import html_to_plain_text, truncate

log = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)

ContentKind = Literal["page", "book", "shelf"]

_TYPE_LABELS = {
    "bookshelf": "Shelf",
    "book": "Book",
    "chapter": "Chapter",
    "page": "Page",
}


def _parse(model: type[RequestT], data: RequestT | dict[str, Any], what: str) -> RequestT:
    """Validate caller arguments, raising VALIDATION_ERROR on failure."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise BookStackError.from_validation_error(e, what) from e


def _payload_tags(tags: list[Tag]) -> list[PayloadTag] | None:
    """Tags for an API payload; None (field omitted) when there are none."""
    if not tags:
        return None
    return [PayloadTag(name=t.name, value=t.value) for t in tags]


def _format_tags(tags: list[ApiTag] | None, separator: str = ":") -> str:
    return ", ".join(f"{t.name}{separator}{t.value}" if t.value else t.name for t in tags or [])


def _format_date(value: datetime | None) -> str:
    return value.date().isoformat() if value else "unknown"


def _preview_text(item: ContentSummary, limit: int) -> str:
    return truncate(html_to_plain_text(item.preview), limit)


# ─────────────────────────────────────────────────────────────────────────────
# Duplicate reports
# ─────────────────────────────────────────────────────────────────────────────


def format_duplicate_report(candidates: list[DuplicateCandidate], kind: ContentKind = "page") -> str:
    """Describe duplicate candidates and how to proceed."""
    lines = [f"Found {len(candidates)} similar {kind}(s):", ""]

    for index, candidate in enumerate(candidates, start=1):
        item = candidate.item
        lines.append(f"{index}. **{item.name}** (ID: {item.id})")
        lines.append(f"   Similarity: {candidate.score:.0%}")
        if item.book:
            lines.append(f"   Book: {item.book.name} (ID: {item.book.id})")
        preview = _preview_text(item, DUPLICATE_PREVIEW_LENGTH)
        if preview:
            lines.append(f"   Preview: {preview}")
        if item.url:
            lines.append(f"   URL: {item.url}")
        lines.append("")

    if kind == "page":
        lines.append("To update an existing page, use the 'update_page' tool with its page ID.")
    elif kind == "book":
        lines.append("To add pages to an existing book, pass its ID as 'book_id' to 'create_page'.")
    lines.append("To continue anyway, set 'check_similar: false' in the arguments.")
    return "\n".join(lines)


async def check_similar_content(
    title: str,
    kind: ContentKind,
    service: RemoteContentService,
    book_id: int | None = None,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> str:
    """Report existing pages, books or shelves with a title similar to title."""
    if not title.strip():
        raise BookStackError(ErrorCode.VALIDATION_ERROR, "Title must not be empty")
    if not 0.0 <= threshold <= 1.0:
        raise BookStackError(ErrorCode.VALIDATION_ERROR, "Threshold must be between 0 and 1")

    if kind == "page":
        check = await check_similar_pages(title, book_id, service, threshold)
    elif kind == "book":
        check = await check_similar_books(title, service, threshold)
    else:
        check = await check_similar_shelves(title, service, threshold)

    if not check.ok:
        return f"Duplicate check unavailable: {check.error}"
    if not check.candidates:
        return f"No similar {kind}s found for '{title}'."
    return format_duplicate_report(check.candidates, kind)


def _collapse(check: DuplicateCheck) -> list[DuplicateCandidate]:
    """A failed check is treated as "no duplicates"."""
    if not check.ok:
        log.info("Continuing without duplicate check: %s", check.error)
    return check.candidates


# ─────────────────────────────────────────────────────────────────────────────
# Page and book writes
# ─────────────────────────────────────────────────────────────────────────────


async def _load_template(template_id: int, service: RemoteContentService) -> str:
    try:
        template = await service.get_page(template_id)
    except BookStackError as e:
        raise BookStackError(
            e.code,
            f"Failed to load template (ID: {template_id}): {e.message}",
            e.details,
        ) from e
    if not template.markdown or not template.markdown.strip():
        raise BookStackError(
            ErrorCode.NOT_FOUND,
            f"Failed to load template (ID: {template_id}): template page has no markdown content",
        )
    return template.markdown


async def create_page(
    request: CreatePageRequest | dict[str, Any],
    service: RemoteContentService,
    style: StyleConfig | None = None,
    now: datetime | None = None,
) -> str:
    """Create a styled page, unless similar pages already exist.

    Flow: duplicate check -> template load -> assemble -> tags -> create.
    When the duplicate check finds candidates, a report is returned and
    nothing is written.
    """
    args = _parse(CreatePageRequest, request, "create_page")
    style = style or StyleConfig.from_env()

    if args.check_similar:
        check = await check_similar_pages(args.title, args.book_id, service, args.similarity_threshold)
        candidates = _collapse(check)
        if candidates:
            return format_duplicate_report(candidates, "page")

    base_document = ""
    if args.template_id is not None:
        base_document = await _load_template(args.template_id, service)

    markdown = assemble_document(
        args.title,
        args.sections,
        style,
        base_document=base_document,
        metadata=args.metadata,
        include_logo=args.include_logo,
        now=now,
    )
    tags = merge_tags(args.tags, generate_auto_tags(args.title, markdown, style))

    payload = CreatePagePayload(
        book_id=args.book_id,
        name=args.title,
        markdown=markdown,
        tags=_payload_tags(tags),
        chapter_id=args.chapter_id,
    )
    page = await service.create_page(payload)
    log.info("Created page %s (%r) in book %s", page.id, page.name, page.book_id)

    return (
        f"Page created successfully in book {page.book_id}.\n"
        f"ID: {page.id}\n"
        f"Name: {page.name}\n"
        f"URL: {page.url or 'N/A'}"
    )


async def update_page(
    request: UpdatePageRequest | dict[str, Any],
    service: RemoteContentService,
    style: StyleConfig | None = None,
    now: datetime | None = None,
) -> str:
    """Replace the content of an existing page.

    The name is only sent when a title is given. Tags (manual plus automatic)
    replace the page's tags, but only when there are any: an empty tag list
    leaves the existing tags untouched.
    """
    args = _parse(UpdatePageRequest, request, "update_page")
    style = style or StyleConfig.from_env()
    title = args.title.strip() if args.title and args.title.strip() else None

    if args.check_similar and title:
        check = await check_similar_pages(
            title, None, service, args.similarity_threshold, exclude_id=args.page_id
        )
        candidates = _collapse(check)
        if candidates:
            return format_duplicate_report(candidates, "page")

    markdown = assemble_document(
        title,
        args.sections,
        style,
        metadata=args.metadata,
        include_logo=args.include_logo,
        now=now,
    )
    tags = merge_tags(args.tags, generate_auto_tags(title, markdown, style))

    payload = UpdatePagePayload(
        name=title,
        markdown=markdown,
        tags=_payload_tags(tags),
    )
    page = await service.update_page(args.page_id, payload)
    log.info("Updated page %s (%r)", page.id, page.name)

    return f"Page {page.id} updated successfully.\nName: {page.name}\nURL: {page.url or 'N/A'}"


async def create_book(
    request: CreateBookRequest | dict[str, Any],
    service: RemoteContentService,
) -> str:
    """Create a book, unless books with a similar name already exist."""
    args = _parse(CreateBookRequest, request, "create_book")

    if args.check_similar:
        check = await check_similar_books(args.name, service, args.similarity_threshold)
        candidates = _collapse(check)
        if candidates:
            return format_duplicate_report(candidates, "book")

    payload = CreateBookPayload(
        name=args.name,
        description=args.description,
        tags=_payload_tags(merge_tags(args.tags)),
    )
    book = await service.create_book(payload)
    log.info("Created book %s (%r)", book.id, book.name)

    return f"Book created successfully.\nID: {book.id}\nName: {book.name}\nURL: {book.url or 'N/A'}"


# ─────────────────────────────────────────────────────────────────────────────
# Reads and searches
# ─────────────────────────────────────────────────────────────────────────────


def _search_args(query: str, page: int, count: int, what: str) -> SearchRequest:
    return _parse(SearchRequest, {"query": query, "page": page, "count": count}, what)


async def search_pages(
    query: str,
    service: RemoteContentService,
    page: int = 1,
    count: int = DEFAULT_SEARCH_COUNT,
) -> str:
    """Search pages and list title, book, URL and a preview for each hit."""
    args = _search_args(query, page, count, "search_pages")
    result = await service.search_pages(args.query, args.page, args.count)
    if not result.data:
        return "No pages found matching the query."

    blocks = []
    for item in result.data:
        preview = _preview_text(item, SEARCH_PREVIEW_LENGTH) or "(no preview)"
        blocks.append(
            f"### {item.name} (ID: {item.id})\n"
            f"**Book:** {item.book.name if item.book else 'Unknown'}\n"
            f"**URL:** {item.url or 'N/A'}\n"
            f"**Preview:** {preview}\n"
            "---"
        )
    return "\n\n".join(blocks)


def _format_collection(item: ContentSummary) -> str:
    lines = [f"### {item.name} (ID: {item.id})"]
    if item.description:
        lines.append(f"**Description:** {item.description}")
    if item.url:
        lines.append(f"**URL:** {item.url}")
    if item.tags:
        lines.append(f"**Tags:** {_format_tags(item.tags)}")
    if item.created_at:
        lines.append(f"**Created:** {_format_date(item.created_at)}")
    if item.updated_at:
        lines.append(f"**Updated:** {_format_date(item.updated_at)}")
    lines.append("---")
    return "\n".join(lines)


async def search_books(
    query: str,
    service: RemoteContentService,
    page: int = 1,
    count: int = DEFAULT_SEARCH_COUNT,
) -> str:
    """Search books by query, or list all books when the query is empty."""
    args = _search_args(query, page, count, "search_books")
    if args.query.strip():
        result = await service.search_books(args.query, args.page, args.count)
    else:
        result = await service.list_books()
    if not result.data:
        return "No books found matching the query."

    text = "\n\n".join(_format_collection(item) for item in result.data)
    if result.total:
        text += f"\n\nTotal: {result.total} books found."
    return text


async def search_shelves(
    query: str,
    service: RemoteContentService,
    page: int = 1,
    count: int = DEFAULT_SEARCH_COUNT,
) -> str:
    """Search shelves by query, or list all shelves when the query is empty."""
    args = _search_args(query, page, count, "search_shelves")
    if args.query.strip():
        result = await service.search_shelves(args.query, args.page, args.count)
    else:
        result = await service.list_shelves()
    if not result.data:
        return "No shelves found matching the query."

    text = "\n\n".join(_format_collection(item) for item in result.data)
    if result.total:
        text += f"\n\nTotal: {result.total} shelves found."
    return text


async def search_all(
    query: str,
    service: RemoteContentService,
    page: int = 1,
    count: int = DEFAULT_SEARCH_COUNT,
) -> str:
    """Search shelves, books, chapters and pages at once."""
    args = _search_args(query, page, count, "search_all")
    result = await service.search(args.query, args.page, args.count)
    if not result.data:
        return "No content found matching the query."

    blocks = []
    for item in result.data:
        lines = [
            f"### {item.name} (ID: {item.id})",
            f"**Type:** {_TYPE_LABELS.get(item.type or '', item.type or 'Unknown')}",
            f"**URL:** {item.url or 'N/A'}",
        ]
        if item.type == "page" and item.book:
            lines.append(f"**Book:** {item.book.name}")
        preview = _preview_text(item, SEARCH_PREVIEW_LENGTH)
        if preview:
            lines.append(f"**Preview:** {preview}")
        lines.append("---")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


async def search_templates(
    query: str,
    service: RemoteContentService,
    page: int = 1,
    count: int = DEFAULT_SEARCH_COUNT,
    template_tag: str | None = None,
) -> str:
    """Search pages tagged as templates (usable as create_page template_id)."""
    args = _search_args(query, page, count, "search_templates")
    tag_filter = f"[tag={template_tag or get_template_tag()}]"
    search_query = args.query.strip()
    if tag_filter not in search_query:
        search_query = f"{search_query} {tag_filter}".strip()

    result = await service.search_pages(search_query, args.page, args.count)
    if not result.data:
        return "No templates found."

    total = result.total if result.total is not None else len(result.data)
    lines = [f"{total} template(s) found:", ""]
    for index, item in enumerate(result.data, start=1):
        lines.append(f"{index}. **{item.name}** (ID: {item.id})")
        if item.tags:
            lines.append(f"   Tags: {_format_tags(item.tags, separator='=')}")
        preview = _preview_text(item, DUPLICATE_PREVIEW_LENGTH)
        if preview:
            lines.append(f"   Preview: {preview}")
        lines.append("")

    if total > len(result.data):
        pages = math.ceil(total / args.count)
        lines.append(f"More results available. Current page: {args.page} of {pages}")
    return "\n".join(lines).rstrip()


async def get_page_content(page_id: int, service: RemoteContentService) -> str:
    """Return a page's content as JSON text (Markdown preferred, else plain text)."""
    if page_id < 1:
        raise BookStackError(ErrorCode.VALIDATION_ERROR, "page_id must be a positive integer")

    page = await service.get_page(page_id)
    if page.markdown:
        content, content_format = page.markdown, "markdown"
    else:
        content, content_format = html_to_plain_text(page.html or page.raw_html), "plaintext"

    return json.dumps(
        {
            "page_id": page_id,
            "format": content_format,
            "content": content,
            "name": page.name,
            "url": page.url or "N/A",
        },
        ensure_ascii=False,
    )
