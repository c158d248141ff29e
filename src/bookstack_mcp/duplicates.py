"""Duplicate detection for pages, books and shelves.

Each check makes exactly one remote call (a search for pages, a full listing
for books and shelves) and scores every returned title against the proposed
one. Duplicate detection is advisory: when the remote call fails, the check
reports the error in DuplicateCheck.error instead of raising, and the
find_* helpers return an empty list.
"""

import logging
from collections.abc import Awaitable, Callable, Iterable

from .client import RemoteContentService
from .config import DEFAULT_SIMILARITY_THRESHOLD, DUPLICATE_SEARCH_COUNT
from .models import ContentList, ContentSummary, DuplicateCandidate, DuplicateCheck
from .similarity import similarity

log = logging.getLogger(__name__)


def score_candidates(
    title: str,
    items: Iterable[ContentSummary],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    parent_id: int | None = None,
    exclude_id: int | None = None,
) -> list[DuplicateCandidate]:
    """Keep items whose name scores at least threshold against title.

    When parent_id is given, items that carry a parent (book) id must match it.
    Items keep the order they were returned in.
    """
    candidates = []
    for item in items:
        if exclude_id is not None and item.id == exclude_id:
            continue
        if parent_id is not None and item.parent_id is not None and item.parent_id != parent_id:
            continue
        score = similarity(item.name, title)
        if score >= threshold:
            candidates.append(DuplicateCandidate(item=item, score=score))
    return candidates


async def _check(
    what: str,
    title: str,
    lookup: Callable[[], Awaitable[ContentList]],
    threshold: float,
    parent_id: int | None = None,
    exclude_id: int | None = None,
) -> DuplicateCheck:
    try:
        result = await lookup()
    except Exception as e:
        log.warning("Duplicate check for %s %r failed: %s", what, title, e)
        return DuplicateCheck(error=str(e))

    candidates = score_candidates(
        title, result.data, threshold, parent_id=parent_id, exclude_id=exclude_id
    )
    if candidates:
        log.info("Found %d similar %s(s) for %r", len(candidates), what, title)
    return DuplicateCheck(candidates=candidates)


async def check_similar_pages(
    title: str,
    book_id: int | None,
    service: RemoteContentService,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    exclude_id: int | None = None,
) -> DuplicateCheck:
    """Search pages by title and score the hits, optionally within one book."""
    return await _check(
        "page",
        title,
        lambda: service.search_pages(title, 1, DUPLICATE_SEARCH_COUNT),
        threshold,
        parent_id=book_id,
        exclude_id=exclude_id,
    )


async def check_similar_books(
    name: str,
    service: RemoteContentService,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> DuplicateCheck:
    """Score the names of all books against name."""
    return await _check("book", name, service.list_books, threshold)


async def check_similar_shelves(
    name: str,
    service: RemoteContentService,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> DuplicateCheck:
    """Score the names of all shelves against name."""
    return await _check("shelf", name, service.list_shelves, threshold)


async def find_similar_pages(
    title: str,
    book_id: int | None,
    service: RemoteContentService,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[DuplicateCandidate]:
    check = await check_similar_pages(title, book_id, service, threshold)
    return check.candidates


async def find_similar_books(
    name: str,
    service: RemoteContentService,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[DuplicateCandidate]:
    check = await check_similar_books(name, service, threshold)
    return check.candidates


async def find_similar_shelves(
    name: str,
    service: RemoteContentService,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[DuplicateCandidate]:
    check = await check_similar_shelves(name, service, threshold)
    return check.candidates
