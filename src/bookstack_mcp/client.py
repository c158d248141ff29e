"""Async client for the BookStack REST API.

BookStackClient implements the RemoteContentService protocol that the rest of
the package depends on. Tests substitute an in-memory implementation of the
same protocol, or pass an httpx transport to the real client.

Every failure is raised as a BookStackError whose message names the attempted
action:

    401/403                -> UNAUTHORIZED
    404                    -> NOT_FOUND
    other non-2xx          -> REMOTE_ERROR
    timeouts/connect errors-> REMOTE_UNAVAILABLE
    unexpected body shape  -> SCHEMA_MISMATCH
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from . import __version__
from .config import LIST_ALL_COUNT, ApiSettings
from .errors import BookStackError, ErrorCode
from .models import (
    BookDetail,
    ContentList,
    CreateBookPayload,
    CreatePagePayload,
    PageDetail,
    UpdatePagePayload,
)

log = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class RemoteContentService(Protocol):
    """The BookStack operations used by the tools."""

    async def search(self, query: str, page: int = ..., count: int = ...) -> ContentList: ...

    async def search_pages(self, query: str, page: int = ..., count: int = ...) -> ContentList: ...

    async def search_books(self, query: str, page: int = ..., count: int = ...) -> ContentList: ...

    async def search_shelves(self, query: str, page: int = ..., count: int = ...) -> ContentList: ...

    async def get_page(self, page_id: int) -> PageDetail: ...

    async def list_books(self) -> ContentList: ...

    async def list_shelves(self) -> ContentList: ...

    async def create_page(self, payload: CreatePagePayload) -> PageDetail: ...

    async def update_page(self, page_id: int, payload: UpdatePagePayload) -> PageDetail: ...

    async def create_book(self, payload: CreateBookPayload) -> BookDetail: ...


def _typed_query(query: str, content_type: str) -> str:
    """Restrict a search query to one content type using BookStack filter syntax."""
    type_filter = f"{{type:{content_type}}}"
    query = query.strip()
    return f"{query} {type_filter}" if query else type_filter


class BookStackClient:
    """httpx-based implementation of RemoteContentService.

    The underlying ``httpx.AsyncClient`` is created lazily on the first request
    so the client can be built outside a running event loop.

    Args:
        base_url: BookStack instance URL. Trailing slashes are stripped.
        token_id: API token id.
        token_secret: API token secret.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        base_url: str,
        token_id: str,
        token_secret: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token_id = token_id
        self._token_secret = token_secret
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: ApiSettings) -> BookStackClient:
        return cls(
            base_url=settings.base_url,
            token_id=settings.token_id,
            token_secret=settings.token_secret,
            timeout=settings.timeout,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Accept": "application/json",
                    "Cache-Control": "no-cache",
                    "User-Agent": f"bookstack-mcp/{__version__}",
                    "Authorization": f"Token {self._token_id}:{self._token_secret}",
                },
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client. Safe to call more than once."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> BookStackClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ─────────────────────────────────────────────────────────────────────────
    # Request plumbing
    # ─────────────────────────────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        model: type[ModelT],
        params: dict[str, Any] | None = None,
        payload: BaseModel | None = None,
    ) -> ModelT:
        body = payload.model_dump(exclude_none=True) if payload is not None else None
        log.debug("%s %s%s params=%s", method, self.base_url, path, params)

        try:
            response = await self._get_client().request(method, path, params=params, json=body)
        except httpx.TimeoutException as e:
            raise BookStackError(
                ErrorCode.REMOTE_UNAVAILABLE,
                f"Failed to {action}: request timed out after {self._timeout}s",
            ) from e
        except httpx.RequestError as e:
            raise BookStackError(
                ErrorCode.REMOTE_UNAVAILABLE,
                f"Failed to {action}: {e}",
            ) from e

        if response.is_error:
            raise self._status_error(response, action)

        try:
            data = response.json()
        except ValueError as e:
            raise BookStackError(
                ErrorCode.SCHEMA_MISMATCH,
                f"Failed to parse API response for {action}: body is not JSON",
            ) from e

        try:
            return model.model_validate(data)
        except ValidationError as e:
            message = f"Failed to parse API response for {action}. Details: {e}"
            log.error(message)
            raise BookStackError(ErrorCode.SCHEMA_MISMATCH, message) from e

    def _status_error(self, response: httpx.Response, action: str) -> BookStackError:
        status = response.status_code
        message = f"Failed to {action} (Status: {status})"

        api_message: str | None = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict):
                api_message = error.get("message")
            elif error:
                api_message = str(error)
        if not api_message and response.text:
            api_message = response.text[:200]
        if api_message:
            message += f" - API Error: {api_message}"

        log.error("BookStack API error: %s (%s)", message, response.request.url)

        if status in (401, 403):
            code = ErrorCode.UNAUTHORIZED
        elif status == 404:
            code = ErrorCode.NOT_FOUND
        else:
            code = ErrorCode.REMOTE_ERROR
        return BookStackError(code, message, {"status": status})

    # ─────────────────────────────────────────────────────────────────────────
    # Read operations
    # ─────────────────────────────────────────────────────────────────────────

    async def search(self, query: str, page: int = 1, count: int = 10) -> ContentList:
        return await self._request(
            "GET",
            "/api/search",
            f'search with query "{query}"',
            ContentList,
            params={"query": query, "page": page, "count": count},
        )

    async def search_pages(self, query: str, page: int = 1, count: int = 10) -> ContentList:
        return await self.search(_typed_query(query, "page"), page, count)

    async def search_books(self, query: str, page: int = 1, count: int = 10) -> ContentList:
        return await self.search(_typed_query(query, "book"), page, count)

    async def search_shelves(self, query: str, page: int = 1, count: int = 10) -> ContentList:
        return await self.search(_typed_query(query, "bookshelf"), page, count)

    async def get_page(self, page_id: int) -> PageDetail:
        return await self._request("GET", f"/api/pages/{page_id}", f"read page {page_id}", PageDetail)

    async def list_books(self) -> ContentList:
        return await self._request(
            "GET", "/api/books", "list books", ContentList, params={"count": LIST_ALL_COUNT}
        )

    async def list_shelves(self) -> ContentList:
        return await self._request(
            "GET", "/api/shelves", "list shelves", ContentList, params={"count": LIST_ALL_COUNT}
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Write operations
    # ─────────────────────────────────────────────────────────────────────────

    async def create_page(self, payload: CreatePagePayload) -> PageDetail:
        action = f'create page "{payload.name}" in book {payload.book_id}'
        return await self._request("POST", "/api/pages", action, PageDetail, payload=payload)

    async def update_page(self, page_id: int, payload: UpdatePagePayload) -> PageDetail:
        return await self._request(
            "PUT", f"/api/pages/{page_id}", f"update page {page_id}", PageDetail, payload=payload
        )

    async def create_book(self, payload: CreateBookPayload) -> BookDetail:
        return await self._request(
            "POST", "/api/books", f'create book "{payload.name}"', BookDetail, payload=payload
        )
