"""Command line interface for bookstack-mcp.

The CLI runs the MCP server and exposes a few of its operations for use from
a shell: offline page previews, duplicate checks and searches.
"""

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, NoReturn

import click
from click.exceptions import ClickException
from dotenv import load_dotenv
from pydantic import ValidationError

from . import __version__, core
from .assembler import assemble_document
from .client import BookStackClient
from .config import (
    DEFAULT_SEARCH_COUNT,
    DEFAULT_SIMILARITY_THRESHOLD,
    ConfigurationError,
    StyleConfig,
    get_api_settings,
    get_template_tag,
)
from .errors import BookStackError, ErrorCode, format_error_json
from .models import PageContent
from .tags import generate_auto_tags, merge_tags


def run_async(coro):
    """Run async function synchronously."""
    return asyncio.run(coro)


async def _with_client(call: Callable[[BookStackClient], Awaitable[str]]) -> str:
    async with BookStackClient.from_settings(get_api_settings()) as client:
        return await call(client)


def _handle_error(ctx: click.Context, error: Exception) -> NoReturn:
    """Report an error as text, or as JSON when --json-errors is set."""
    json_errors = ctx.obj.get("json_errors", False) if ctx.obj else False

    if isinstance(error, BookStackError):
        click.echo(error.to_json() if json_errors else f"Error: {error.message}", err=True)
    else:
        code = ErrorCode.VALIDATION_ERROR if isinstance(error, ConfigurationError) else ErrorCode.INTERNAL_ERROR
        if json_errors:
            click.echo(format_error_json(code, str(error)), err=True)
        else:
            click.echo(f"Error: {error}", err=True)

    sys.exit(1)


class JsonErrorGroup(click.Group):
    """Click group that formats usage errors as JSON when --json-errors is set."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except ClickException as e:
            if ctx.params.get("json_errors"):
                click.echo(format_error_json(ErrorCode.VALIDATION_ERROR, e.format_message()), err=True)
                raise SystemExit(1)
            raise


# ─────────────────────────────────────────────────────────────────────────────
# Main CLI Group
# ─────────────────────────────────────────────────────────────────────────────


@click.group(cls=JsonErrorGroup)
@click.version_option(version=__version__, prog_name="bookstack-mcp")
@click.option(
    "--json-errors",
    "json_errors",
    is_flag=True,
    help="Output errors as JSON (for programmatic use)",
)
@click.option("--log-level", default=None, help="Override BOOKSTACK_MCP_LOG_LEVEL")
@click.pass_context
def cli(ctx: click.Context, json_errors: bool, log_level: str | None):
    """bookstack-mcp: MCP server and tools for a BookStack wiki.

    \b
    Quick start:
      bookstack-mcp doctor                  # Check configuration
      bookstack-mcp serve                   # Run the MCP server on stdio
      bookstack-mcp preview page.json       # Render a page without uploading
      bookstack-mcp similar "Deployment"    # Find pages with similar titles

    Settings are read from the environment and from a .env file in the
    working directory.
    """
    from ._logging import configure_logging

    load_dotenv()
    configure_logging(log_level)

    ctx.ensure_object(dict)
    ctx.obj["json_errors"] = json_errors


@cli.command()
def serve():
    """Run the MCP server over stdio."""
    from .server import mcp

    mcp.run()


@cli.command()
@click.argument("page_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--template",
    "template_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Markdown file used as the template body",
)
@click.option("--show-tags", is_flag=True, help="Also print the tags the page would get")
@click.pass_context
def preview(ctx: click.Context, page_file: Path, template_file: Path | None, show_tags: bool):
    """Render a page description (JSON) to Markdown without contacting BookStack.

    \b
    The file holds the create_page arguments, for example:
      {"title": "Runbook", "sections": [{"title": "Steps", "content": "...", "kind": "info"}]}
    """
    try:
        data: dict[str, Any] = json.loads(page_file.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise BookStackError(ErrorCode.VALIDATION_ERROR, "Page file must contain a JSON object")
        title = data.get("title")
        content = PageContent.model_validate(
            {key: value for key, value in data.items() if key in PageContent.model_fields}
        )
    except json.JSONDecodeError as e:
        _handle_error(ctx, BookStackError(ErrorCode.VALIDATION_ERROR, f"Invalid JSON in {page_file}: {e}"))
    except ValidationError as e:
        _handle_error(ctx, BookStackError.from_validation_error(e, "page file"))
    except BookStackError as e:
        _handle_error(ctx, e)

    style = StyleConfig.from_env()
    base_document = template_file.read_text(encoding="utf-8") if template_file else ""
    markdown = assemble_document(
        title,
        content.sections,
        style,
        base_document=base_document,
        metadata=content.metadata,
        include_logo=content.include_logo,
    )
    click.echo(markdown)

    if show_tags:
        tags = merge_tags(content.tags, generate_auto_tags(title, markdown, style))
        click.echo("")
        click.echo("Tags: " + (", ".join(t.name if not t.value else f"{t.name}={t.value}" for t in tags) or "(none)"))


@cli.command()
@click.argument("title")
@click.option(
    "--kind",
    type=click.Choice(["page", "book", "shelf"]),
    default="page",
    show_default=True,
    help="Kind of content to compare against",
)
@click.option("--book-id", type=int, default=None, help="Only compare pages in this book")
@click.option(
    "--threshold",
    type=click.FloatRange(0.0, 1.0),
    default=DEFAULT_SIMILARITY_THRESHOLD,
    show_default=True,
    help="Minimum similarity (0-1)",
)
@click.pass_context
def similar(ctx: click.Context, title: str, kind: str, book_id: int | None, threshold: float):
    """List existing content with a title similar to TITLE."""
    try:
        result = run_async(
            _with_client(lambda client: core.check_similar_content(title, kind, client, book_id, threshold))
        )
    except (BookStackError, ConfigurationError) as e:
        _handle_error(ctx, e)
    click.echo(result)


_SEARCHES = {
    "pages": core.search_pages,
    "books": core.search_books,
    "shelves": core.search_shelves,
    "all": core.search_all,
    "templates": core.search_templates,
}


@cli.command()
@click.argument("query", default="")
@click.option(
    "--type",
    "content_type",
    type=click.Choice(list(_SEARCHES)),
    default="pages",
    show_default=True,
    help="What to search",
)
@click.option("--page", type=click.IntRange(min=1), default=1, help="Result page")
@click.option(
    "--count",
    type=click.IntRange(1, 100),
    default=DEFAULT_SEARCH_COUNT,
    show_default=True,
    help="Results per page",
)
@click.pass_context
def search(ctx: click.Context, query: str, content_type: str, page: int, count: int):
    """Search BookStack content."""
    search_fn = _SEARCHES[content_type]
    try:
        result = run_async(_with_client(lambda client: search_fn(query, client, page, count)))
    except (BookStackError, ConfigurationError) as e:
        _handle_error(ctx, e)
    click.echo(result)


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def doctor(as_json: bool):
    """Show configuration status (credentials are never printed)."""
    api_url = None
    problem = None
    missing: list[str] = []
    try:
        api_url = get_api_settings().base_url
    except ConfigurationError as e:
        problem = str(e)
        missing = e.missing

    style = StyleConfig.from_env()
    data = {
        "version": __version__,
        "python": sys.executable,
        "api_configured": api_url is not None,
        "api_url": api_url,
        "missing": missing,
        "problem": problem,
        "template_tag": get_template_tag(),
        "auto_tags_enabled": style.auto_tags_enabled,
        "auto_tags_keywords": list(style.auto_tags_keywords),
        "auto_legal_footer_enabled": style.auto_legal_footer_enabled,
    }

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo("bookstack-mcp doctor")
    click.echo("=" * 40)
    click.echo(f"version:      {__version__}")
    click.echo(f"python:       {sys.executable}")
    click.echo(f"api:          {api_url if api_url else '(not configured)'}")
    if problem:
        click.echo(f"problem:      {problem}")
    click.echo(f"template tag: {data['template_tag']}")
    keywords = ", ".join(style.auto_tags_keywords) or "(none)"
    click.echo(f"auto tags:    {'on' if style.auto_tags_enabled else 'off'} [{keywords}]")
    click.echo(f"legal footer: {'on' if style.auto_legal_footer_enabled else 'off'}")


if __name__ == "__main__":
    cli()
