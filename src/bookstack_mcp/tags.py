"""Automatic tagging and tag merging."""

from collections.abc import Iterable

from .config import StyleConfig
from .models import Tag


def generate_auto_tags(title: str | None, content: str, config: StyleConfig) -> list[Tag]:
    """Derive tags from the configured keyword list.

    A keyword matches when it occurs anywhere in the title or content,
    ignoring case. Tags keep the keyword's configured casing and follow the
    configured keyword order. Returns an empty list when auto-tagging is off.
    """
    if not config.auto_tags_enabled or not config.auto_tags_keywords:
        return []

    search_text = f"{(title or '').lower()} {content.lower()}"

    return [
        Tag(name=keyword)
        for keyword in config.auto_tags_keywords
        if keyword.lower() in search_text
    ]


def merge_tags(*groups: Iterable[Tag]) -> list[Tag]:
    """Concatenate tag groups, dropping later tags whose name was already seen.

    Names are compared case-insensitively and the first occurrence wins, so
    pass manual tags before generated ones.
    """
    merged: dict[str, Tag] = {}
    for group in groups:
        for tag in group:
            key = tag.name.strip().lower()
            if key not in merged:
                merged[key] = tag
    return list(merged.values())
