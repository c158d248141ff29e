"""Shared test fixtures for the bookstack-mcp test suite.

Design:
- FakeService: in-memory RemoteContentService with call counters and
  injectable failures, so orchestrator tests never touch the network
- clean_env (autouse): removes style and API variables from the environment
- runner: CliRunner with .env loading and log handlers disabled
"""

from collections import Counter

import pytest
from click.testing import CliRunner

from bookstack_mcp.errors import BookStackError, ErrorCode
from bookstack_mcp.models import (
    BookDetail,
    BookRef,
    ContentList,
    ContentSummary,
    CreateBookPayload,
    CreatePagePayload,
    PageDetail,
    PreviewHtml,
    UpdatePagePayload,
)

ENV_PREFIXES = ("STYLEGUIDE_", "AUTO_", "BOOKSTACK_")


# ─────────────────────────────────────────────────────────────────────────────
# Content builders
# ─────────────────────────────────────────────────────────────────────────────


def page_hit(
    id: int,
    name: str,
    book_id: int | None = 1,
    book_name: str = "Operations",
    preview: str = "",
) -> ContentSummary:
    return ContentSummary(
        id=id,
        name=name,
        type="page",
        url=f"https://wiki.example.com/books/ops/page/{id}",
        book_id=book_id,
        book=BookRef(id=book_id, name=book_name) if book_id is not None else None,
        preview_html=PreviewHtml(content=preview) if preview else None,
    )


def book_hit(id: int, name: str, description: str = "") -> ContentSummary:
    return ContentSummary(
        id=id,
        name=name,
        type="book",
        url=f"https://wiki.example.com/books/{id}",
        description=description or None,
    )


def shelf_hit(id: int, name: str) -> ContentSummary:
    return ContentSummary(
        id=id,
        name=name,
        type="bookshelf",
        url=f"https://wiki.example.com/shelves/{id}",
    )


# ─────────────────────────────────────────────────────────────────────────────
# Fake remote service
# ─────────────────────────────────────────────────────────────────────────────


class FakeService:
    """In-memory stand-in for BookStackClient.

    Set ``fail[<method name>]`` to an exception to make that method raise.
    """

    def __init__(self):
        self.hits: list[ContentSummary] = []
        self.books: list[ContentSummary] = []
        self.shelves: list[ContentSummary] = []
        self.pages: dict[int, PageDetail] = {}
        self.total: int | None = None

        self.calls: Counter[str] = Counter()
        self.fail: dict[str, Exception] = {}
        self.queries: list[str] = []
        self.created_pages: list[CreatePagePayload] = []
        self.updated_pages: list[tuple[int, UpdatePagePayload]] = []
        self.created_books: list[CreateBookPayload] = []
        self._next_id = 100

    def _enter(self, method: str) -> None:
        self.calls[method] += 1
        if method in self.fail:
            raise self.fail[method]

    def _results(self, items: list[ContentSummary]) -> ContentList:
        total = self.total if self.total is not None else len(items)
        return ContentList(data=items, total=total)

    def _hits(self, *types: str) -> list[ContentSummary]:
        return [hit for hit in self.hits if not types or hit.type in types]

    async def search(self, query: str, page: int = 1, count: int = 10) -> ContentList:
        self._enter("search")
        self.queries.append(query)
        return self._results(self._hits())

    async def search_pages(self, query: str, page: int = 1, count: int = 10) -> ContentList:
        self._enter("search_pages")
        self.queries.append(query)
        return self._results(self._hits("page"))

    async def search_books(self, query: str, page: int = 1, count: int = 10) -> ContentList:
        self._enter("search_books")
        self.queries.append(query)
        return self._results(self._hits("book"))

    async def search_shelves(self, query: str, page: int = 1, count: int = 10) -> ContentList:
        self._enter("search_shelves")
        self.queries.append(query)
        return self._results(self._hits("bookshelf"))

    async def get_page(self, page_id: int) -> PageDetail:
        self._enter("get_page")
        if page_id not in self.pages:
            raise BookStackError(
                ErrorCode.NOT_FOUND,
                f"Failed to read page {page_id} (Status: 404)",
                {"status": 404},
            )
        return self.pages[page_id]

    async def list_books(self) -> ContentList:
        self._enter("list_books")
        return self._results(self.books)

    async def list_shelves(self) -> ContentList:
        self._enter("list_shelves")
        return self._results(self.shelves)

    async def create_page(self, payload: CreatePagePayload) -> PageDetail:
        self._enter("create_page")
        self.created_pages.append(payload)
        self._next_id += 1
        return PageDetail(
            id=self._next_id,
            book_id=payload.book_id,
            chapter_id=payload.chapter_id,
            name=payload.name,
            markdown=payload.markdown,
            url=f"https://wiki.example.com/books/ops/page/{self._next_id}",
        )

    async def update_page(self, page_id: int, payload: UpdatePagePayload) -> PageDetail:
        self._enter("update_page")
        self.updated_pages.append((page_id, payload))
        return PageDetail(
            id=page_id,
            book_id=1,
            name=payload.name or "Existing page",
            markdown=payload.markdown,
            url=f"https://wiki.example.com/books/ops/page/{page_id}",
        )

    async def create_book(self, payload: CreateBookPayload) -> BookDetail:
        self._enter("create_book")
        self.created_books.append(payload)
        self._next_id += 1
        return BookDetail(
            id=self._next_id,
            name=payload.name,
            description=payload.description,
            url=f"https://wiki.example.com/books/{self._next_id}",
        )


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without style or API variables from the host."""
    import os

    for name in list(os.environ):
        if name.startswith(ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def runner(monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    """CLI runner that ignores .env files and leaves logging unconfigured."""
    monkeypatch.setattr("bookstack_mcp.cli.load_dotenv", lambda *args, **kwargs: False)
    monkeypatch.setattr("bookstack_mcp._logging.configure_logging", lambda level=None: None)
    return CliRunner()
