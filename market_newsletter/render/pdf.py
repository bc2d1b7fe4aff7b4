"""PDF export utilities for paginated newsletters.

Paged HTML (one clipped window onto the newsletter raster per page) is
converted to PDF with WeasyPrint.

Usage:
    from market_newsletter.render.pdf import PDFExporter

    exporter = PDFExporter()
    pdf_bytes = exporter.html_to_pdf(html_content)

System Dependencies:
    WeasyPrint requires system libraries:
    - macOS: brew install pango libffi
    - Ubuntu: apt-get install libpango-1.0-0 libpangoft2-1.0-0
    - Other systems: See WeasyPrint documentation
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from ..core.logging_config import get_logger

logger = get_logger(__name__)


class PDFTimeoutError(Exception):
    """Exception raised when PDF generation exceeds timeout."""

    pass


def _load_weasyprint() -> Any:
    import weasyprint  # type: ignore

    return weasyprint


def _run_with_timeout(func: Any, args: tuple[Any, ...], timeout_seconds: float) -> Any:
    """Run a function with a timeout.

    Args:
        func: Function to run
        args: Arguments to pass to function
        timeout_seconds: Maximum time to allow in seconds

    Returns:
        Function result

    Raises:
        PDFTimeoutError: If function exceeds timeout
    """
    result: list[Any] = []
    exception: list[Exception] = []

    def target() -> None:
        try:
            result.append(func(*args))
        except Exception as e:
            exception.append(e)

    thread = threading.Thread(target=target)
    thread.daemon = True
    thread.start()
    thread.join(timeout=timeout_seconds)

    if thread.is_alive():
        raise PDFTimeoutError(f"PDF generation exceeded {timeout_seconds}s timeout")

    if exception:
        raise exception[0]

    return result[0] if result else None


class PDFExporter:
    """Export paged HTML to PDF format using WeasyPrint."""

    def __init__(self, timeout_seconds: float = 60) -> None:
        self.timeout_seconds = timeout_seconds
        self._weasyprint = self._check_weasyprint()

    def _check_weasyprint(self) -> Any | None:
        """Load WeasyPrint, logging which dependency is missing when it cannot be used."""
        try:
            return _load_weasyprint()
        except ImportError as e:
            logger.error(
                "WeasyPrint not installed. Install with: pip install weasyprint",
                extra={"error": str(e)},
            )
            return None
        except OSError as e:
            logger.error(
                "WeasyPrint system dependencies missing. "
                "On macOS: brew install pango libffi. "
                "On Ubuntu: apt-get install libpango-1.0-0 libpangoft2-1.0-0",
                extra={"error": str(e)},
            )
            return None

    def is_available(self) -> bool:
        return self._weasyprint is not None

    def html_to_pdf(self, html_content: str, base_url: str | None = None) -> bytes:
        """Convert HTML content to PDF with timeout protection.

        Raises:
            RuntimeError: If WeasyPrint is not available, conversion fails or
                times out
        """
        if self._weasyprint is None:
            raise RuntimeError(
                "WeasyPrint is not available. Please install system dependencies and "
                "reinstall weasyprint."
            )
        weasyprint = self._weasyprint

        logger.debug("Converting HTML to PDF", extra={"html_length": len(html_content)})

        def _generate_pdf() -> bytes:
            document: bytes = weasyprint.HTML(string=html_content, base_url=base_url).write_pdf()
            return document

        try:
            pdf_bytes: bytes = _run_with_timeout(_generate_pdf, (), self.timeout_seconds)
        except PDFTimeoutError as e:
            logger.error(
                f"PDF generation exceeded {self.timeout_seconds}s timeout",
                extra={"html_size": len(html_content), "timeout": self.timeout_seconds},
            )
            raise RuntimeError(
                f"PDF generation timed out after {self.timeout_seconds}s."
            ) from e
        except Exception as e:
            logger.error(
                "Failed to convert HTML to PDF",
                extra={"error": str(e), "error_type": type(e).__name__},
                exc_info=True,
            )
            raise RuntimeError(f"PDF conversion failed: {e}") from e

        logger.info(
            "PDF generated successfully",
            extra={"pdf_size": len(pdf_bytes), "html_size": len(html_content)},
        )
        return pdf_bytes


def write_pdf(path: str | Path, pdf_bytes: bytes) -> Path:
    """Write PDF bytes to file, creating parent directories.

    Raises:
        OSError: If file writing fails
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    try:
        p.write_bytes(pdf_bytes)
        logger.info(f"PDF written to {p}", extra={"size": len(pdf_bytes)})
    except OSError as e:
        logger.error(f"Failed to write PDF to {p}", extra={"error": str(e)}, exc_info=True)
        raise
    return p
