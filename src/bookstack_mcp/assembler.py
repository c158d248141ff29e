"""Styled Markdown generation for BookStack pages.

A page is assembled from blocks, each separated by a blank line:

    logo            (include_logo and a configured logo)
    title heading   (heading_level_1)
    template body   (when a template page was given)
    section heading (heading_level_2, prefix by section kind)
    section content
    ...
    legal footer    (auto_legal_footer_enabled)
    > Last modified/created: ...

Assembly is deterministic: the only time-dependent part is the footer line,
and its timestamp can be pinned with ``now``.
"""

from collections.abc import Sequence
from datetime import datetime

from .config import StyleConfig
from .models import PageMetadata, Section, SectionKind


def section_prefix(kind: SectionKind, config: StyleConfig) -> str:
    """Heading prefix for a section kind. Normal sections have none."""
    prefixes = {
        SectionKind.INFO: config.info_prefix,
        SectionKind.WARNING: config.warning_prefix,
        SectionKind.SUCCESS: config.success_prefix,
        SectionKind.DANGER: config.danger_prefix,
    }
    return prefixes.get(kind, "")


def format_footer_line(
    metadata: PageMetadata | None,
    config: StyleConfig,
    now: datetime | None = None,
) -> str:
    """Build the provenance line appended below the legal footer."""
    timestamp = (now or datetime.now().astimezone()).strftime(config.timestamp_format)
    line = f"> Last modified/created: {timestamp}"
    if metadata is not None:
        if metadata.created_by:
            line += f" by {metadata.created_by}"
        if metadata.client:
            line += f" (client: {metadata.client})"
        if metadata.ai_model:
            line += f" (AI: {metadata.ai_model})"
    return line


def assemble_document(
    title: str | None,
    sections: Sequence[Section],
    config: StyleConfig,
    base_document: str = "",
    metadata: PageMetadata | None = None,
    include_logo: bool = False,
    now: datetime | None = None,
) -> str:
    """Assemble the Markdown body of a page.

    Args:
        title: Page title rendered as the top heading. None or empty skips it.
        sections: Ordered page sections.
        config: Style rules (heading markers, prefixes, logo, footer).
        base_document: Template body placed between the title and the sections.
        metadata: Provenance for the footer line.
        include_logo: Emit the configured logo block first.
        now: Timestamp for the footer line (defaults to the current local time).

    Returns:
        The page Markdown with surrounding whitespace stripped.
    """
    markdown = ""

    if include_logo and config.logo_markdown:
        markdown += config.logo_markdown + "\n\n"

    if title:
        markdown += f"{config.heading_level_1} {title}\n\n"

    if base_document.strip():
        markdown += base_document.strip() + "\n\n"

    for section in sections:
        heading = section.title.strip()
        if heading:
            prefix = section_prefix(section.kind, config)
            markdown += f"{config.heading_level_2} {prefix}{heading}\n\n"
        markdown += section.content + "\n\n"

    if config.auto_legal_footer_enabled:
        if markdown and not markdown.endswith("\n\n"):
            markdown += "\n\n"
        if config.legal_footer_markdown:
            markdown += config.legal_footer_markdown + "\n\n"
        markdown += format_footer_line(metadata, config, now) + "\n"

    return markdown.strip()
