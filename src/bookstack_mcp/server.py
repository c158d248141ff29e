"""FastMCP server for bookstack-mcp.

This module provides MCP protocol wrappers around the core business logic.
All actual logic lives in core.py - this file just handles argument mapping
and turns failures into MCP tool errors.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Literal

from dotenv import load_dotenv
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from . import core
from .client import BookStackClient, RemoteContentService
from .config import (
    DEFAULT_SEARCH_COUNT,
    DEFAULT_SIMILARITY_THRESHOLD,
    ConfigurationError,
    get_api_settings,
)
from .errors import BookStackError, ErrorCode, format_error_json
from .models import PageMetadata, Section, Tag

log = logging.getLogger(__name__)

mcp = FastMCP(
    name="bookstack",
    instructions=(
        "BookStack wiki access. Search before writing: create_page and create_book "
        "report similar existing content instead of creating duplicates. "
        "Use update_page to change an existing page."
    ),
)

_client: RemoteContentService | None = None


def get_client() -> RemoteContentService:
    """Return the process-wide BookStack client, creating it on first use."""
    global _client
    if _client is None:
        _client = BookStackClient.from_settings(get_api_settings())
    return _client


async def _run(tool: str, call: Callable[[RemoteContentService], Awaitable[str]]) -> str:
    log.info("Tool call: %s", tool)
    try:
        return await call(get_client())
    except BookStackError as e:
        raise ToolError(e.to_json()) from e
    except ConfigurationError as e:
        raise ToolError(format_error_json(ErrorCode.INTERNAL_ERROR, str(e))) from e
    except Exception as e:
        log.exception("Unexpected error in %s", tool)
        raise ToolError(
            format_error_json(ErrorCode.INTERNAL_ERROR, f"Unexpected error in {tool}: {e}")
        ) from e


def _without_none(**fields: Any) -> dict[str, Any]:
    """Drop unset optional arguments so request-model defaults apply."""
    return {key: value for key, value in fields.items() if value is not None}


# ─────────────────────────────────────────────────────────────────────────────
# Write tools
# ─────────────────────────────────────────────────────────────────────────────


@mcp.tool(
    name="create_page",
    description=(
        "Create a styled page in a book from ordered sections. "
        "Checks for pages with similar titles first; if any are found, they are "
        "listed and nothing is created. Set check_similar=false to bypass. "
        "template_id seeds the page with the content of a template page."
    ),
)
async def create_page_tool(
    book_id: int,
    title: str,
    sections: list[Section],
    tags: list[Tag] | None = None,
    chapter_id: int | None = None,
    include_logo: bool = False,
    check_similar: bool = True,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    template_id: int | None = None,
    metadata: PageMetadata | None = None,
) -> str:
    """Create a page with duplicate detection."""
    request = _without_none(
        book_id=book_id,
        title=title,
        sections=sections,
        tags=tags,
        chapter_id=chapter_id,
        include_logo=include_logo,
        check_similar=check_similar,
        similarity_threshold=similarity_threshold,
        template_id=template_id,
        metadata=metadata,
    )
    return await _run("create_page", lambda service: core.create_page(request, service))


@mcp.tool(
    name="update_page",
    description=(
        "Replace the content of an existing page with styled sections. "
        "The page is renamed only when title is given. "
        "Tags replace the existing tags only when at least one tag results."
    ),
)
async def update_page_tool(
    page_id: int,
    sections: list[Section],
    title: str | None = None,
    tags: list[Tag] | None = None,
    include_logo: bool = False,
    check_similar: bool = False,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    metadata: PageMetadata | None = None,
) -> str:
    """Update an existing page."""
    request = _without_none(
        page_id=page_id,
        sections=sections,
        title=title,
        tags=tags,
        include_logo=include_logo,
        check_similar=check_similar,
        similarity_threshold=similarity_threshold,
        metadata=metadata,
    )
    return await _run("update_page", lambda service: core.update_page(request, service))


@mcp.tool(
    name="create_book",
    description=(
        "Create a book. Checks for books with similar names first; "
        "set check_similar=false to bypass."
    ),
)
async def create_book_tool(
    name: str,
    description: str | None = None,
    tags: list[Tag] | None = None,
    check_similar: bool = True,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> str:
    """Create a book with duplicate detection."""
    request = _without_none(
        name=name,
        description=description,
        tags=tags,
        check_similar=check_similar,
        similarity_threshold=similarity_threshold,
    )
    return await _run("create_book", lambda service: core.create_book(request, service))


# ─────────────────────────────────────────────────────────────────────────────
# Read tools
# ─────────────────────────────────────────────────────────────────────────────


@mcp.tool(
    name="search_pages",
    description="Search pages. Returns title, book, URL and a short preview for each match.",
)
async def search_pages_tool(query: str, page: int = 1, count: int = DEFAULT_SEARCH_COUNT) -> str:
    return await _run("search_pages", lambda service: core.search_pages(query, service, page, count))


@mcp.tool(
    name="search_books",
    description="Search books. Lists all books when query is empty.",
)
async def search_books_tool(query: str = "", page: int = 1, count: int = DEFAULT_SEARCH_COUNT) -> str:
    return await _run("search_books", lambda service: core.search_books(query, service, page, count))


@mcp.tool(
    name="search_shelves",
    description="Search shelves. Lists all shelves when query is empty.",
)
async def search_shelves_tool(query: str = "", page: int = 1, count: int = DEFAULT_SEARCH_COUNT) -> str:
    return await _run("search_shelves", lambda service: core.search_shelves(query, service, page, count))


@mcp.tool(
    name="search_all",
    description="Search shelves, books, chapters and pages at once.",
)
async def search_all_tool(query: str, page: int = 1, count: int = DEFAULT_SEARCH_COUNT) -> str:
    return await _run("search_all", lambda service: core.search_all(query, service, page, count))


@mcp.tool(
    name="search_templates",
    description=(
        "Find template pages (pages carrying the template tag). "
        "Pass a result's ID as template_id to create_page."
    ),
)
async def search_templates_tool(query: str = "", page: int = 1, count: int = DEFAULT_SEARCH_COUNT) -> str:
    return await _run(
        "search_templates", lambda service: core.search_templates(query, service, page, count)
    )


@mcp.tool(
    name="get_page_content",
    description="Get the content of a page as Markdown, or plain text when no Markdown is stored.",
)
async def get_page_content_tool(page_id: int) -> str:
    return await _run("get_page_content", lambda service: core.get_page_content(page_id, service))


@mcp.tool(
    name="check_similar_content",
    description=(
        "List existing pages, books or shelves whose title is similar to the given one. "
        "For pages, book_id restricts the check to one book."
    ),
)
async def check_similar_content_tool(
    title: str,
    kind: Literal["page", "book", "shelf"] = "page",
    book_id: int | None = None,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> str:
    return await _run(
        "check_similar_content",
        lambda service: core.check_similar_content(title, kind, service, book_id, threshold),
    )


def main():
    """Run the MCP server."""
    from ._logging import configure_logging

    load_dotenv()
    configure_logging()
    mcp.run()


if __name__ == "__main__":
    main()
