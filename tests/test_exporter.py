"""End-to-end export tests with the PDF step mocked."""

from __future__ import annotations

import asyncio
import dataclasses
import json
from unittest.mock import MagicMock, patch

import pytest

from market_newsletter.core.branding import Branding
from market_newsletter.core.config import Settings
from market_newsletter.core.enums import Region
from market_newsletter.core.errors import CaptureFailure, PaginationFailure
from market_newsletter.core.logging_config import LOG_FILE, setup_logging
from market_newsletter.render.pdf import PDFExporter
from market_newsletter.render.tree import TextBlock, build_tree
from market_newsletter.report.exporter import ReportExporter
from market_newsletter.report.materializer import (
    DAYS_ON_MARKET_CHART,
    MARKET_TEMPERATURE_CHART,
    PRICE_PER_AREA_CHART,
)


@pytest.fixture
def pdf_exporter() -> MagicMock:
    exporter = MagicMock(spec=PDFExporter)
    exporter.html_to_pdf.return_value = b"%PDF-1.7 newsletter"
    return exporter


@pytest.fixture
def exporter(pdf_exporter) -> ReportExporter:
    return ReportExporter(
        Settings(api_base_url=None, api_token=None),
        Branding(),
        pdf_exporter=pdf_exporter,
    )


@pytest.mark.asyncio
async def test_export_anza_scenario(exporter, static_source, price_points, anza_listings, period) -> None:
    source = static_source(price_per_area=price_points, listings=anza_listings)

    result = await exporter.export(Region.ANZA, period, metrics_source=source)

    assert result.filename == "Anza-Newsletter-March-2024.pdf"
    assert result.pdf_bytes == b"%PDF-1.7 newsletter"
    assert result.page_count >= 1
    assert PRICE_PER_AREA_CHART in result.charts
    assert DAYS_ON_MARKET_CHART not in result.charts
    assert MARKET_TEMPERATURE_CHART in result.charts


@pytest.mark.asyncio
async def test_export_with_no_data_still_produces_document(exporter, static_source, period, unavailable) -> None:
    source = static_source(metrics_error=unavailable, listings_error=unavailable)

    result = await exporter.export(Region.AGUANGA, period, metrics_source=source)

    assert result.charts == ()
    assert result.page_count == 1
    assert result.filename == "Aguanga-Newsletter-March-2024.pdf"


@pytest.mark.asyncio
async def test_repeat_export_is_identical(exporter, pdf_exporter, full_request) -> None:
    first = await exporter.export_request(full_request)
    second = await exporter.export_request(full_request)

    assert first == second
    first_html, second_html = (call.args[0] for call in pdf_exporter.html_to_pdf.call_args_list)
    assert first_html == second_html


@pytest.mark.asyncio
async def test_concurrent_exports_are_independent(exporter, pdf_exporter, full_request, anza_request) -> None:
    a, b = await asyncio.gather(
        exporter.export_request(full_request),
        exporter.export_request(anza_request),
    )
    assert DAYS_ON_MARKET_CHART in a.charts
    assert DAYS_ON_MARKET_CHART not in b.charts
    assert pdf_exporter.html_to_pdf.call_count == 2


@pytest.mark.asyncio
async def test_capture_failure_propagates_without_document(exporter, pdf_exporter, full_request) -> None:
    with patch.object(exporter.renderer, "capture", side_effect=CaptureFailure("Raster capture failed: tainted")):
        with pytest.raises(CaptureFailure):
            await exporter.export_request(full_request)
    pdf_exporter.html_to_pdf.assert_not_called()


@pytest.mark.asyncio
async def test_packaging_failure_propagates(exporter, pdf_exporter, full_request) -> None:
    pdf_exporter.html_to_pdf.side_effect = RuntimeError("PDF generation timed out after 60s.")
    with pytest.raises(PaginationFailure, match="timed out"):
        await exporter.export_request(full_request)


@pytest.mark.asyncio
async def test_export_with_logging_configured(exporter, full_request, tmp_path, monkeypatch) -> None:
    """Structured log fields must not collide with LogRecord attributes."""
    monkeypatch.chdir(tmp_path)
    log_dir = tmp_path / "export-logs"
    setup_logging(json_output=True, log_level="debug", log_dir=str(log_dir))
    try:
        result = await exporter.export_request(full_request)
    finally:
        setup_logging()

    assert result.filename == "Anza-Newsletter-March-2024.pdf"
    records = [
        json.loads(line)
        for line in (log_dir / LOG_FILE).read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]
    exported = [r for r in records if r["message"] == "Newsletter exported"]
    assert len(exported) == 1
    assert exported[0]["output_filename"] == "Anza-Newsletter-March-2024.pdf"
    assert exported[0]["pages"] == result.page_count


@pytest.mark.asyncio
async def test_missing_narrative_is_synthesized(exporter, full_request) -> None:
    request = dataclasses.replace(full_request, narrative=None)

    with patch("market_newsletter.render.rasterizer.build_tree", wraps=build_tree) as spy:
        await exporter.export_request(request)

    rendered = spy.call_args.args[0]
    assert rendered.narrative is not None
    assert "Market activity in Anza" in rendered.narrative.analysis
    assert "Price per square foot is up" in rendered.narrative.summary
    tree = build_tree(rendered, {}, Branding())
    headings = [block.heading for block in tree.find(TextBlock)]
    assert headings == ["Market Analysis", "Summary"]


@pytest.mark.asyncio
async def test_layout_failure_is_capture_failure(exporter, pdf_exporter, full_request) -> None:
    with patch(
        "market_newsletter.render.rasterizer.build_tree",
        side_effect=TypeError("'<' not supported between instances of 'str' and 'int'"),
    ):
        with pytest.raises(CaptureFailure, match="Layout failed") as exc_info:
            await exporter.export_request(full_request)

    assert exc_info.value.user_message == CaptureFailure.user_message
    pdf_exporter.html_to_pdf.assert_not_called()
