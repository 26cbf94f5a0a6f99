"""Export pipelines: collect from a surface, render, report.

Both pipelines return an ExportResult instead of raising and always call
the completion sink, so a caller driving a UI gets exactly one final
notification per run.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from .collector import CollectionController, ScrollSurface
from .exceptions import EmptyResult, ExportError
from .image_cache import ImageCache, ImageResolver
from .models import ExportOptions, ExportResult, Message, SelectionRange
from .progress import CompletionSink, ProgressReporter, ProgressSink
from .renderer import get_renderer
from .settings import DEFAULT_SETTINGS, ExportSettings
from .user_cache import UserContextCache

logger = logging.getLogger(__name__)


def get_file_extension(format: str) -> str:
    """Get the file extension for a format.

    Normalizes 'markdown' to 'md'.
    """
    return "md" if format in ("md", "markdown") else format


@dataclass
class ExportContext:
    """Per-run state handed through the pipeline."""

    settings: ExportSettings = field(default_factory=lambda: DEFAULT_SETTINGS)
    user_cache: UserContextCache = field(default_factory=UserContextCache)
    image_cache: Optional[ImageCache] = None
    progress: ProgressReporter = field(default_factory=ProgressReporter)

    def __post_init__(self) -> None:
        if self.image_cache is None:
            self.image_cache = ImageCache(self.settings.image_cache_size)

    @classmethod
    def create(
        cls,
        settings: ExportSettings = DEFAULT_SETTINGS,
        progress: Optional[ProgressSink] = None,
    ) -> "ExportContext":
        return cls(settings=settings, progress=ProgressReporter(progress))


async def collect_messages(
    surface: ScrollSurface,
    context: ExportContext,
    options: ExportOptions,
    selection: Optional[SelectionRange] = None,
) -> list[Message]:
    """Run the collection loop.

    Raises:
        ContainerNotFound: if the surface has no message list.
        EmptyResult: if nothing was collected.
    """
    controller = CollectionController(
        surface, context.settings, context.progress, context.user_cache
    )
    messages = await controller.collect_range(selection, options)
    if not messages:
        raise EmptyResult()
    return messages


def _complete(completion: Optional[CompletionSink], result: ExportResult) -> ExportResult:
    if completion is not None:
        completion(result)
    return result


async def export_to_pdf(
    surface: ScrollSurface,
    options: Optional[ExportOptions] = None,
    selection: Optional[SelectionRange] = None,
    context: Optional[ExportContext] = None,
    completion: Optional[CompletionSink] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> ExportResult:
    """Collect and render the print-ready HTML document.

    On success `result.output` holds the HTML; printing it to a PDF file is
    left to the caller (see browser.print_to_pdf).
    """
    options = options or ExportOptions()
    context = context or ExportContext()
    progress = context.progress

    try:
        progress.report(10, "Starting export...")
        messages = await collect_messages(surface, context, options, selection)

        progress.report(60, f"Processing {len(messages)} messages...")
        channel_name = await surface.channel_name()
        async with ImageResolver(context.image_cache, client, context.settings) as resolver:
            renderer = get_renderer(
                "pdf",
                options,
                context.settings,
                image_resolver=resolver,
                progress=progress,
            )
            document = await renderer.generate(messages, channel_name)

        progress.report(90, "Generating PDF...")
        result = ExportResult.ok(len(messages), document)
    except ExportError as e:
        logger.error("Error exporting to PDF: %s", e)
        result = ExportResult.failed(str(e))
    except Exception as e:
        logger.exception("Error exporting to PDF")
        result = ExportResult.failed(str(e) or type(e).__name__)

    return _complete(completion, result)


async def export_to_markdown(
    surface: ScrollSurface,
    options: Optional[ExportOptions] = None,
    selection: Optional[SelectionRange] = None,
    context: Optional[ExportContext] = None,
    completion: Optional[CompletionSink] = None,
) -> ExportResult:
    """Collect and render a Markdown document (`result.output` on success)."""
    options = options or ExportOptions()
    context = context or ExportContext()
    progress = context.progress

    try:
        progress.report(10, "Starting export...")
        messages = await collect_messages(surface, context, options, selection)

        progress.report(70, f"Processing {len(messages)} messages...")
        channel_name = await surface.channel_name()
        renderer = get_renderer("md", options, context.settings)
        document = await renderer.generate(messages, channel_name)

        progress.report(90, "Saving file...")
        result = ExportResult.ok(len(messages), document)
    except ExportError as e:
        logger.error("Error exporting to Markdown: %s", e)
        result = ExportResult.failed(str(e))
    except Exception as e:
        logger.exception("Error exporting to Markdown")
        result = ExportResult.failed(str(e) or type(e).__name__)

    return _complete(completion, result)
