"""Error taxonomy for the export pipeline.

Fatal conditions (ContainerNotFound, EmptyResult) abort a run and are turned
into a failed ExportResult by the converter. AssetFetchFailure is raised by
the image fetcher and always caught by the resolver. ExtractionAmbiguity is
not an exception at all: it is a diagnostic record that the extractor logs.
"""

from dataclasses import dataclass


class ExportError(Exception):
    """Base class for errors that abort an export run."""


class ContainerNotFound(ExportError):
    """No scrollable message list could be located on the page."""

    def __init__(self, message: str = "Could not find messages scroller"):
        super().__init__(message)


class EmptyResult(ExportError):
    """The collection loop finished without a single message."""

    def __init__(self, message: str = "No messages found to export"):
        super().__init__(message)


class AssetFetchFailure(Exception):
    """A single image could not be downloaded or encoded."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


@dataclass(frozen=True)
class ExtractionAmbiguity:
    """An author or avatar that stayed unresolved after every fallback."""

    message_id: str
    field: str  # "author" or "avatar"

    def __str__(self) -> str:
        return f"{self.message_id}: {self.field} unresolved after all fallbacks"
