#!/usr/bin/env python3
"""CLI interface for discord-chat-exporter."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from .collector import ScrollSurface
from .converter import ExportContext, export_to_markdown, export_to_pdf, get_file_extension
from .models import ExportOptions, ExportResult, SelectionRange
from .settings import ExportSettings
from .snapshot import StaticSurface
from .utils import export_filename

DEFAULT_USER_DATA_DIR = Path.home() / ".discord-chat-exporter" / "profile"


def _echo_progress(percent: int, label: str) -> None:
    click.echo(f"[{percent:3d}%] {label}", err=True)


async def _run_export(
    surface: ScrollSurface,
    output_format: str,
    options: ExportOptions,
    selection: SelectionRange,
    context: ExportContext,
) -> ExportResult:
    if output_format in ("md", "markdown"):
        return await export_to_markdown(surface, options, selection, context)
    return await export_to_pdf(surface, options, selection, context)


async def _export_live(
    url: str,
    output_format: str,
    output_path: Path,
    options: ExportOptions,
    selection: SelectionRange,
    context: ExportContext,
    user_data_dir: Path,
    headless: bool,
) -> ExportResult:
    from .browser import PlaywrightSurface, open_channel, print_to_pdf

    async with open_channel(url, user_data_dir, headless) as (browser_context, page):
        result = await _run_export(
            PlaywrightSurface(page), output_format, options, selection, context
        )
        if result.success and output_format == "pdf":
            await print_to_pdf(browser_context, result.output or "", output_path)
    return result


async def _export_saved_page(
    html_path: Path,
    url: str,
    output_format: str,
    output_path: Path,
    options: ExportOptions,
    selection: SelectionRange,
    context: ExportContext,
) -> ExportResult:
    surface = StaticSurface.from_file(html_path, url)
    result = await _run_export(surface, output_format, options, selection, context)
    if result.success and output_format == "pdf":
        from .browser import pdf_printer, print_to_pdf

        async with pdf_printer() as browser_context:
            await print_to_pdf(browser_context, result.output or "", output_path)
    return result


@click.command()
@click.argument("url", required=False)
@click.option(
    "-f",
    "--format",
    "output_format",
    type=click.Choice(["pdf", "html", "md", "markdown"]),
    default="pdf",
    help="Output format (default: pdf). html writes the print-ready document without printing it.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    help="Output file path (default: discord-export-<timestamp>.<format> in the current directory)",
)
@click.option("--start-id", type=str, help="Element id of the first message to export (inclusive)")
@click.option("--end-id", type=str, help="Element id of the last message to export (inclusive)")
@click.option("--no-images", is_flag=True, help="Leave out image attachments")
@click.option("--no-avatars", is_flag=True, help="Leave out avatars")
@click.option("--no-timestamps", is_flag=True, help="Leave out timestamps")
@click.option("--no-reactions", is_flag=True, help="Leave out reactions")
@click.option(
    "--user-data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_USER_DATA_DIR,
    show_default=True,
    help="Chromium profile directory; keeps the Discord login between runs",
)
@click.option("--headless", is_flag=True, help="Run the browser without a window")
@click.option(
    "--from-html",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Export from a saved channel page instead of a live browser",
)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Verbose logging and full traceback on errors.",
)
def main(
    url: Optional[str],
    output_format: str,
    output: Optional[Path],
    start_id: Optional[str],
    end_id: Optional[str],
    no_images: bool,
    no_avatars: bool,
    no_timestamps: bool,
    no_reactions: bool,
    user_data_dir: Path,
    headless: bool,
    from_html: Optional[Path],
    debug: bool,
) -> None:
    """Export a Discord channel to PDF, HTML or Markdown.

    URL: Channel URL (https://discord.com/channels/<guild>/<channel>). Optional
    with --from-html, where it is only used to name the channel.
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    if not url and from_html is None:
        raise click.UsageError("Provide a channel URL or --from-html FILE")

    options = ExportOptions(
        include_images=not no_images,
        include_avatars=not no_avatars,
        include_timestamps=not no_timestamps,
        include_reactions=not no_reactions,
    )
    selection = SelectionRange(start_id=start_id, end_id=end_id)
    settings = ExportSettings.from_env()
    if from_html is not None:
        # A saved page never loads more history
        settings = settings.model_copy(update={"scroll_delay": 0.0})
    context = ExportContext.create(settings, _echo_progress)
    output_path = output or Path(export_filename(get_file_extension(output_format)))

    try:
        if from_html is not None:
            result = asyncio.run(
                _export_saved_page(
                    from_html, url or "", output_format, output_path, options, selection, context
                )
            )
        else:
            result = asyncio.run(
                _export_live(
                    url or "",
                    output_format,
                    output_path,
                    options,
                    selection,
                    context,
                    user_data_dir,
                    headless,
                )
            )

        if not result.success:
            click.echo(f"Error: {result.error}", err=True)
            sys.exit(1)

        if output_format != "pdf":
            output_path.write_text(result.output or "", encoding="utf-8")
        click.echo(f"Exported {result.message_count} messages to {output_path}")

    except Exception as e:
        click.echo(f"Error exporting channel: {e}", err=True)
        if debug:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
