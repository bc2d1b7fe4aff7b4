"""Slicing a newsletter raster into fixed-size pages and packaging them as PDF.

The raster is scaled to the page's content width; its scaled height is then
cut into consecutive windows of the content height. Every page embeds the same
image, shifted up by one content height per page, with the window clipping
everything outside its own slice. The final page may be partially empty.
"""

from __future__ import annotations

import base64
import math
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from ..core.constants import PAGE_HEIGHT_MM, PAGE_MARGIN_MM, PAGE_WIDTH_MM
from ..core.enums import Region
from ..core.errors import PaginationFailure
from ..core.logging_config import get_logger
from ..core.models import Period
from .pdf import PDFExporter
from .rasterizer import Raster

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
PAGES_TEMPLATE = "pages.html.j2"


@dataclass(frozen=True)
class PageFormat:
    """Physical page geometry in millimetres."""

    width: float = PAGE_WIDTH_MM
    height: float = PAGE_HEIGHT_MM
    margin: float = PAGE_MARGIN_MM

    @property
    def content_width(self) -> float:
        return self.width - 2 * self.margin

    @property
    def content_height(self) -> float:
        return self.height - 2 * self.margin


A4 = PageFormat()


@dataclass(frozen=True)
class Page:
    index: int
    offset: float


@dataclass(frozen=True)
class OutputDocument:
    page_format: PageFormat
    scaled_height: float
    pages: tuple[Page, ...]

    @property
    def page_count(self) -> int:
        return len(self.pages)


def paginate(raster: Raster, page_format: PageFormat = A4) -> OutputDocument:
    """Compute page windows for a raster.

    Raises:
        PaginationFailure: If the raster is empty or the margins leave no
            content area
    """
    if raster.width <= 0 or raster.height <= 0:
        raise PaginationFailure(f"Cannot paginate an empty raster ({raster.width}x{raster.height})")
    content_width = page_format.content_width
    content_height = page_format.content_height
    if content_width <= 0 or content_height <= 0:
        raise PaginationFailure(
            f"Page margins of {page_format.margin}mm leave no content area on a "
            f"{page_format.width}x{page_format.height}mm page"
        )

    scaled_height = raster.height * content_width / raster.width
    page_count = max(1, math.ceil(scaled_height / content_height))
    pages = tuple(Page(index=i, offset=-i * content_height) for i in range(page_count))

    logger.debug(
        "Paginated raster",
        extra={
            "raster_width": raster.width,
            "raster_height": raster.height,
            "scaled_height_mm": round(scaled_height, 2),
            "pages": page_count,
        },
    )
    return OutputDocument(page_format=page_format, scaled_height=scaled_height, pages=pages)


def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=lambda name: name is not None and name.endswith(".html.j2"),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_pages_html(document: OutputDocument, raster: Raster, title: str = "Newsletter") -> str:
    """Render the paged HTML that embeds the raster once per page."""
    image_uri = "data:image/png;base64," + base64.b64encode(raster.to_png()).decode("ascii")
    template = _environment().get_template(PAGES_TEMPLATE)
    fmt = document.page_format
    return template.render(
        title=title,
        page=fmt,
        content_width=fmt.content_width,
        content_height=fmt.content_height,
        scaled_height=document.scaled_height,
        pages=document.pages,
        image_uri=image_uri,
    )


def package(
    document: OutputDocument,
    raster: Raster,
    exporter: PDFExporter | None = None,
    title: str = "Newsletter",
) -> bytes:
    """Assemble the pages into PDF bytes.

    Raises:
        PaginationFailure: If templating or PDF conversion fails
    """
    exporter = exporter or PDFExporter()
    try:
        html = render_pages_html(document, raster, title)
        return exporter.html_to_pdf(html, base_url=str(TEMPLATES_DIR))
    except Exception as e:
        logger.error(
            "Failed to package newsletter pages",
            extra={"pages": document.page_count, "error": str(e), "error_type": type(e).__name__},
            exc_info=True,
        )
        raise PaginationFailure(f"Page packaging failed: {e}") from e


def newsletter_filename(region: Region, period: Period) -> str:
    """File name for the downloaded document, e.g. ``Anza-Newsletter-March-2024.pdf``."""
    return f"{region.display_name}-Newsletter-{period.month_name}-{period.year}.pdf"
