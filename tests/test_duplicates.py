"""Tests for duplicate detection.

Every check issues exactly one remote call and never raises: remote failures
come back as DuplicateCheck.error and the find_* helpers return [].
"""

import pytest

from conftest import book_hit, page_hit, shelf_hit
from bookstack_mcp.duplicates import (
    check_similar_books,
    check_similar_pages,
    check_similar_shelves,
    find_similar_books,
    find_similar_pages,
    find_similar_shelves,
    score_candidates,
)
from bookstack_mcp.errors import BookStackError, ErrorCode


class TestScoreCandidates:
    def test_keeps_scores_at_or_above_threshold(self):
        items = [page_hit(1, "Deployment Guide"), page_hit(2, "Cooking Recipes")]
        candidates = score_candidates("Deployment Guide", items, 0.7)
        assert [c.item.id for c in candidates] == [1]
        assert candidates[0].score == 1.0

    def test_threshold_is_inclusive(self):
        items = [page_hit(1, "Alps Overview")]
        assert score_candidates("Alps", items, 4 / 13)
        assert not score_candidates("Alps", items, 0.31)

    def test_parent_scope(self):
        items = [
            page_hit(1, "Deployment Guide", book_id=1),
            page_hit(2, "Deployment Guide", book_id=2),
            page_hit(3, "Deployment Guide", book_id=None),
        ]
        candidates = score_candidates("Deployment Guide", items, 0.7, parent_id=1)
        assert [c.item.id for c in candidates] == [1, 3]

    def test_excluded_id_is_skipped(self):
        items = [page_hit(5, "Deployment Guide"), page_hit(6, "Deployment Guides")]
        candidates = score_candidates("Deployment Guide", items, 0.7, exclude_id=5)
        assert [c.item.id for c in candidates] == [6]

    def test_keeps_remote_order(self):
        items = [page_hit(1, "Deployment Guides"), page_hit(2, "Deployment Guide")]
        candidates = score_candidates("Deployment Guide", items, 0.7)
        assert [c.item.id for c in candidates] == [1, 2]
        assert candidates[0].score < candidates[1].score


class TestCheckSimilarPages:
    @pytest.mark.asyncio
    async def test_single_search_for_title(self, service):
        service.hits = [page_hit(1, "Deployment Guide")]
        check = await check_similar_pages("Deployment Guide", 1, service)
        assert check.ok
        assert [c.item.id for c in check.candidates] == [1]
        assert service.calls["search_pages"] == 1
        assert service.queries == ["Deployment Guide"]

    @pytest.mark.asyncio
    async def test_scoped_to_book(self, service):
        service.hits = [page_hit(1, "Deployment Guide", book_id=2)]
        check = await check_similar_pages("Deployment Guide", 1, service)
        assert check.candidates == []

    @pytest.mark.asyncio
    async def test_unscoped_sees_all_books(self, service):
        service.hits = [page_hit(1, "Deployment Guide", book_id=2)]
        assert await find_similar_pages("Deployment Guide", None, service)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            BookStackError(ErrorCode.REMOTE_UNAVAILABLE, "Failed to search: timed out"),
            RuntimeError("socket closed"),
        ],
    )
    async def test_remote_failure_is_reported_not_raised(self, service, error):
        service.fail["search_pages"] = error
        check = await check_similar_pages("Deployment Guide", 1, service)
        assert not check.ok
        assert check.candidates == []
        assert str(error) in check.error

    @pytest.mark.asyncio
    async def test_find_returns_empty_list_on_failure(self, service):
        service.fail["search_pages"] = RuntimeError("boom")
        assert await find_similar_pages("Deployment Guide", 1, service) == []


class TestCheckSimilarBooksAndShelves:
    @pytest.mark.asyncio
    async def test_books_use_one_full_listing(self, service):
        service.books = [book_hit(1, "Operations Handbook"), book_hit(2, "Recipes")]
        candidates = await find_similar_books("Operations handbook", service)
        assert [c.item.id for c in candidates] == [1]
        assert service.calls["list_books"] == 1
        assert service.calls["search_books"] == 0

    @pytest.mark.asyncio
    async def test_book_listing_failure(self, service):
        service.fail["list_books"] = BookStackError(ErrorCode.UNAUTHORIZED, "Failed to list books")
        check = await check_similar_books("Operations", service)
        assert check.error == "Failed to list books"
        assert await find_similar_books("Operations", service) == []

    @pytest.mark.asyncio
    async def test_shelves(self, service):
        service.shelves = [shelf_hit(3, "Engineering"), shelf_hit(4, "Marketing")]
        check = await check_similar_shelves("Engineering!", service)
        assert [c.item.id for c in check.candidates] == [3]
        assert await find_similar_shelves("Sales", service) == []
        assert service.calls["list_shelves"] == 2

    @pytest.mark.asyncio
    async def test_custom_threshold(self, service):
        service.books = [book_hit(1, "Operations Handbook")]
        assert await find_similar_books("Operations", service, threshold=0.6) == []
        # "operations" covers 10 of 19 characters
        assert await find_similar_books("Operations", service, threshold=0.5)
