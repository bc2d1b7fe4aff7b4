"""End-to-end newsletter export.

One export runs four stages in order: aggregate data, materialize chart specs,
render to a raster, then paginate and package. The first two stages absorb
missing data; a failure in rendering or pagination aborts the attempt with no
partial document.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from ..adapters.base import MarketDataSource
from ..core.branding import Branding, get_branding
from ..core.config import Settings, get_settings
from ..core.enums import Region
from ..core.errors import ExportFailure
from ..core.logging_config import get_logger
from ..core.models import Narrative, OverrideKey, Period, ReportRequest
from ..render.paginator import A4, PageFormat, newsletter_filename, package, paginate
from ..render.pdf import PDFExporter
from ..render.rasterizer import ImageLoader, OffscreenRenderer
from .aggregator import aggregate, synthesize_narrative
from .materializer import materialize

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExportResult:
    filename: str
    pdf_bytes: bytes
    page_count: int
    charts: tuple[str, ...]


class ReportExporter:
    """Produces newsletter PDFs.

    The exporter holds configuration only. Each call builds its own tree and
    raster, so separate exports may run concurrently.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        branding: Branding | None = None,
        *,
        renderer: OffscreenRenderer | None = None,
        pdf_exporter: PDFExporter | None = None,
        page_format: PageFormat = A4,
    ):
        self.settings = settings or get_settings()
        self.branding = branding or get_branding()
        self.renderer = renderer or OffscreenRenderer(
            self.branding,
            logo_source=self.settings.logo_source,
            image_loader=ImageLoader(timeout=self.settings.image_timeout),
        )
        self.pdf_exporter = pdf_exporter
        self.page_format = page_format

    async def export(
        self,
        region: Region,
        period: Period,
        *,
        metrics_source: MarketDataSource,
        listings_source: MarketDataSource | None = None,
        narrative: Narrative | None = None,
        overrides: Mapping[OverrideKey, Any] | None = None,
    ) -> ExportResult:
        """Fetch data for a region and month, then export it."""
        request = await aggregate(
            region,
            period,
            metrics_source=metrics_source,
            listings_source=listings_source,
            narrative=narrative,
            overrides=overrides,
        )
        return await self.export_request(request)

    async def export_request(self, request: ReportRequest) -> ExportResult:
        """Render an already-aggregated request into a PDF.

        Raises:
            CaptureFailure: If the raster snapshot fails
            PaginationFailure: If the raster cannot be paged or packaged
        """
        if request.narrative is None:
            request = replace(
                request,
                narrative=synthesize_narrative(
                    request.region,
                    request.period,
                    request.price_per_area,
                    request.days_on_market,
                    request.listings,
                ),
            )
        context = {
            "region": request.region.value,
            "month": request.period.month,
            "year": request.period.year,
        }
        charts = materialize(request)

        raster = None
        try:
            raster = await self.renderer.render(request, charts)
            document = paginate(raster, self.page_format)
            pdf_bytes = package(
                document,
                raster,
                self.pdf_exporter,
                title=f"{request.region.display_name} Market Report",
            )
        except ExportFailure as e:
            logger.error(
                "Newsletter export failed",
                extra={**context, "error": str(e), "error_type": type(e).__name__},
            )
            raise
        finally:
            if raster is not None:
                raster.release()

        filename = newsletter_filename(request.region, request.period)
        logger.info(
            "Newsletter exported",
            extra={**context, "output_filename": filename, "pages": document.page_count, "size": len(pdf_bytes)},
        )
        return ExportResult(
            filename=filename,
            pdf_bytes=pdf_bytes,
            page_count=document.page_count,
            charts=tuple(charts),
        )
