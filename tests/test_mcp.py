"""Tests for MCP server tool wrappers.

Tests the MCP layer behavior: argument mapping, response text and the
conversion of failures into ToolError payloads. Core logic is tested in
test_core.py - this file tests the wrapper layer.
"""

import json

import pytest
from fastmcp.exceptions import ToolError

from conftest import FakeService, page_hit
from bookstack_mcp import server
from bookstack_mcp.errors import BookStackError, ErrorCode
from bookstack_mcp.models import PageDetail, Section, Tag


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


async def _call_tool(tool_obj, /, *args, **kwargs):
    """Invoke the coroutine behind an MCP tool."""
    fn = getattr(tool_obj, "fn", tool_obj)
    return await fn(*args, **kwargs)


def _error(exc_info) -> dict:
    return json.loads(str(exc_info.value))["error"]


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def fake_service(monkeypatch) -> FakeService:
    fake = FakeService()
    monkeypatch.setattr(server, "_client", fake)
    return fake


# ─────────────────────────────────────────────────────────────────────────────
# Write tools
# ─────────────────────────────────────────────────────────────────────────────


class TestCreatePageTool:
    @pytest.mark.asyncio
    async def test_creates_page(self, fake_service):
        result = await _call_tool(
            server.create_page_tool,
            book_id=1,
            title="Runbook",
            sections=[Section(title="Steps", content="Do it.")],
            tags=[Tag(name="ops")],
        )
        assert result.startswith("Page created successfully in book 1.")
        payload = fake_service.created_pages[0]
        assert payload.markdown == "## Runbook\n\n### Steps\n\nDo it."
        assert [t.name for t in payload.tags] == ["ops"]

    @pytest.mark.asyncio
    async def test_reports_duplicates(self, fake_service):
        fake_service.hits = [page_hit(7, "Runbook")]
        result = await _call_tool(
            server.create_page_tool,
            book_id=1,
            title="Runbook",
            sections=[Section(content="x")],
        )
        assert result.startswith("Found 1 similar page(s):")
        assert fake_service.calls["create_page"] == 0

    @pytest.mark.asyncio
    async def test_style_is_read_per_call(self, fake_service, monkeypatch):
        monkeypatch.setenv("STYLEGUIDE_HEADING_LEVEL_1", "#")
        await _call_tool(
            server.create_page_tool, book_id=1, title="First", sections=[Section(content="x")]
        )
        monkeypatch.setenv("STYLEGUIDE_HEADING_LEVEL_1", "##")
        await _call_tool(
            server.create_page_tool, book_id=1, title="Second", sections=[Section(content="x")]
        )
        assert fake_service.created_pages[0].markdown == "# First\n\nx"
        assert fake_service.created_pages[1].markdown == "## Second\n\nx"

    @pytest.mark.asyncio
    async def test_validation_error(self, fake_service):
        with pytest.raises(ToolError) as exc_info:
            await _call_tool(server.create_page_tool, book_id=1, title="Runbook", sections=[])
        error = _error(exc_info)
        assert error["code"] == ErrorCode.VALIDATION_ERROR.value
        assert "create_page" in error["message"]
        assert sum(fake_service.calls.values()) == 0

    @pytest.mark.asyncio
    async def test_remote_error_keeps_code(self, fake_service):
        fake_service.fail["create_page"] = BookStackError(
            ErrorCode.UNAUTHORIZED, "Failed to create page (Status: 403)", {"status": 403}
        )
        with pytest.raises(ToolError) as exc_info:
            await _call_tool(
                server.create_page_tool,
                book_id=1,
                title="Runbook",
                sections=[Section(content="x")],
                check_similar=False,
            )
        error = _error(exc_info)
        assert error["code"] == "UNAUTHORIZED"
        assert error["details"] == {"status": 403}


class TestUpdatePageTool:
    @pytest.mark.asyncio
    async def test_updates_without_rename(self, fake_service):
        result = await _call_tool(server.update_page_tool, page_id=5, sections=[Section(content="New")])
        assert result.startswith("Page 5 updated successfully.")
        _, payload = fake_service.updated_pages[0]
        assert payload.name is None
        assert payload.tags is None


class TestCreateBookTool:
    @pytest.mark.asyncio
    async def test_creates_book(self, fake_service):
        result = await _call_tool(server.create_book_tool, name="Handbook", description="How we work")
        assert result.startswith("Book created successfully.")
        assert fake_service.created_books[0].description == "How we work"


# ─────────────────────────────────────────────────────────────────────────────
# Read tools
# ─────────────────────────────────────────────────────────────────────────────


class TestReadTools:
    @pytest.mark.asyncio
    async def test_search_pages(self, fake_service):
        fake_service.hits = [page_hit(1, "Deployment Guide")]
        result = await _call_tool(server.search_pages_tool, query="deploy")
        assert "### Deployment Guide (ID: 1)" in result

    @pytest.mark.asyncio
    async def test_search_books_defaults_to_listing(self, fake_service):
        await _call_tool(server.search_books_tool)
        assert fake_service.calls["list_books"] == 1

    @pytest.mark.asyncio
    async def test_search_shelves_and_all(self, fake_service):
        assert await _call_tool(server.search_shelves_tool) == "No shelves found matching the query."
        assert await _call_tool(server.search_all_tool, query="x") == "No content found matching the query."

    @pytest.mark.asyncio
    async def test_search_templates(self, fake_service):
        await _call_tool(server.search_templates_tool, query="deploy")
        assert fake_service.queries == ["deploy [tag=template]"]

    @pytest.mark.asyncio
    async def test_get_page_content(self, fake_service):
        fake_service.pages[3] = PageDetail(id=3, book_id=1, name="Doc", markdown="Body")
        data = json.loads(await _call_tool(server.get_page_content_tool, page_id=3))
        assert data["content"] == "Body"

    @pytest.mark.asyncio
    async def test_get_page_content_not_found(self, fake_service):
        with pytest.raises(ToolError) as exc_info:
            await _call_tool(server.get_page_content_tool, page_id=3)
        assert _error(exc_info)["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_check_similar_content(self, fake_service):
        fake_service.hits = [page_hit(1, "Deployment Guide")]
        result = await _call_tool(server.check_similar_content_tool, title="Deployment guide")
        assert result.startswith("Found 1 similar page(s):")


# ─────────────────────────────────────────────────────────────────────────────
# Failures outside BookStackError
# ─────────────────────────────────────────────────────────────────────────────


class TestUnexpectedFailures:
    @pytest.mark.asyncio
    async def test_unexpected_exception_is_internal_error(self, fake_service):
        fake_service.fail["search_pages"] = RuntimeError("kaboom")
        with pytest.raises(ToolError) as exc_info:
            await _call_tool(server.search_pages_tool, query="x")
        error = _error(exc_info)
        assert error["code"] == "INTERNAL_ERROR"
        assert "kaboom" in error["message"]

    @pytest.mark.asyncio
    async def test_missing_configuration(self, monkeypatch):
        monkeypatch.setattr(server, "_client", None)
        with pytest.raises(ToolError) as exc_info:
            await _call_tool(server.search_pages_tool, query="x")
        error = _error(exc_info)
        assert error["code"] == "INTERNAL_ERROR"
        assert "BOOKSTACK_API_URL" in error["message"]
        assert server._client is None

    def test_client_is_created_once(self, monkeypatch):
        monkeypatch.setattr(server, "_client", None)
        monkeypatch.setenv("BOOKSTACK_API_URL", "https://wiki.example.com")
        monkeypatch.setenv("BOOKSTACK_API_TOKEN", "id")
        monkeypatch.setenv("BOOKSTACK_API_KEY", "secret")
        first = server.get_client()
        assert server.get_client() is first
        assert first.base_url == "https://wiki.example.com"
