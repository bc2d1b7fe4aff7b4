"""Exception hierarchy for the newsletter exporter.

Aggregation and chart materialization absorb missing data; only rendering and
pagination raise, and they raise exactly one ``ExportFailure`` per attempt.
"""

from __future__ import annotations


class NewsletterError(Exception):
    """Base exception for market newsletter errors."""

    pass


class ConfigurationError(NewsletterError):
    """Settings or branding configuration is invalid."""

    pass


class PartialDataUnavailable(NewsletterError):
    """A metrics or listings fetch failed or returned nothing usable.

    Raised by data sources; the aggregator recovers by using an empty sequence.
    """

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class ImageLoadTimeout(NewsletterError):
    """An embedded image did not finish loading within its bound."""

    def __init__(self, source: str, timeout: float) -> None:
        super().__init__(f"Image '{source}' did not load within {timeout:.1f}s")
        self.source = source
        self.timeout = timeout


class ExportFailure(NewsletterError):
    """Fatal failure of one export attempt."""

    user_message = "The newsletter could not be generated. Please try again."


class CaptureFailure(ExportFailure):
    """The raster snapshot of the render tree could not be taken."""

    user_message = "The newsletter preview could not be captured. Please try again."


class PaginationFailure(ExportFailure):
    """The raster could not be split into pages or packaged as a document."""

    user_message = "The newsletter pages could not be assembled. Please try again."
