"""Plain-text helpers for BookStack content."""

import re

# Applied in order. Block-level closing tags become line breaks before the
# remaining tags are stripped.
_HTML_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"<style[\s\S]*?</style>", re.IGNORECASE), ""),
    (re.compile(r"<script[\s\S]*?</script>", re.IGNORECASE), ""),
    (re.compile(r"\s+"), " "),
    (re.compile(r"<br\s*/?>", re.IGNORECASE), "\n"),
    (re.compile(r"</p>", re.IGNORECASE), "\n\n"),
    (re.compile(r"</div>", re.IGNORECASE), "\n"),
    (re.compile(r"</h[1-6]>", re.IGNORECASE), "\n\n"),
    (re.compile(r"</li>", re.IGNORECASE), "\n"),
    (re.compile(r"<li[^>]*>", re.IGNORECASE), "• "),
    (re.compile(r"<[^>]+>"), ""),
]

_ENTITIES = [
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&amp;", "&"),  # last, so "&amp;lt;" stays "&lt;"
]


def html_to_plain_text(html: str | None) -> str:
    """Convert simple BookStack HTML into readable plain text."""
    if not html:
        return ""

    text = html
    for pattern, replacement in _HTML_RULES:
        text = pattern.sub(replacement, text)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)

    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def truncate(text: str, limit: int) -> str:
    """Cut text to limit characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
