from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import typer

from .. import __version__
from ..adapters import JsonFileAdapter, MarketApiAdapter, MlsCsvAdapter, load_request
from ..adapters.base import MarketDataSource
from ..adapters.mls_csv import parse_csv
from ..core.config import get_settings
from ..core.enums import Region
from ..core.errors import ConfigurationError, ExportFailure
from ..core.logging_config import LOG_DIR, get_logger, setup_logging
from ..core.models import Narrative, OverrideKey, Period, ReportRequest
from ..render.fonts import register_fonts
from ..render.pdf import write_pdf
from ..report.aggregator import aggregate
from ..report.exporter import ReportExporter
from ..report.materializer import materialize
from . import output as cli_output

app = typer.Typer(help="Market newsletter PDF exporter")

logger = get_logger(__name__)


@app.callback()
def callback(
    json_logs: bool = typer.Option(False, "--json-logs", help="Output logs in JSON format"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)"),
    log_dir: str = typer.Option(LOG_DIR, "--log-dir", help="Directory for the JSON export log"),
) -> None:
    """Configure global CLI options."""
    setup_logging(json_output=json_logs, log_level=log_level, log_dir=log_dir)
    register_fonts()
    logger.debug("CLI initialized", extra={"json_logs": json_logs, "log_level": log_level})


@app.command()
def version() -> None:
    """Print version."""
    typer.echo(__version__)


def parse_override(text: str) -> tuple[OverrideKey, float]:
    """Parse ``series:row:field=value`` into an override entry."""
    key_part, sep, value_part = text.partition("=")
    parts = key_part.split(":")
    if not sep or len(parts) != 3:
        raise typer.BadParameter(f"Override '{text}' must look like series:row:field=value")
    series, row, field_name = (p.strip() for p in parts)
    try:
        return OverrideKey(series=series, row=int(row), field=field_name), float(value_part)
    except ValueError:
        raise typer.BadParameter(
            f"Override '{text}' needs an integer row and a numeric value"
        ) from None


def _parse_overrides(values: list[str] | None) -> dict[OverrideKey, Any]:
    return dict(parse_override(v) for v in values or [])


def _narrative(analysis: str | None, summary: str | None, base: Narrative | None) -> Narrative | None:
    if analysis is None and summary is None:
        return base
    return Narrative(
        analysis=analysis if analysis is not None else (base.analysis if base else ""),
        summary=summary if summary is not None else (base.summary if base else ""),
    )


def _resolve_period(month: int | None, year: int | None) -> Period:
    if month is None or year is None:
        cli_output.error("--month and --year are required unless --input is given")
        raise typer.Exit(code=1)
    try:
        return Period(month=month, year=year)
    except ValueError as e:
        cli_output.error(str(e))
        raise typer.Exit(code=1) from None


def _build_request(
    region: str | None,
    month: int | None,
    year: int | None,
    input_path: str | None,
    listings_csv: str | None,
    analysis: str | None,
    summary: str | None,
    overrides: list[str] | None,
) -> ReportRequest:
    """Assemble a ReportRequest from a saved JSON document or the market API."""
    override_map = _parse_overrides(overrides)

    if input_path:
        try:
            saved = load_request(input_path)
        except FileNotFoundError:
            cli_output.error(f"Input file not found: {input_path}")
            raise typer.Exit(code=1) from None
        except (ValueError, KeyError, TypeError) as e:
            cli_output.error(f"Invalid report input {input_path}: {e}")
            raise typer.Exit(code=1) from None
        metrics_source: MarketDataSource = JsonFileAdapter(input_path)
        region_value = saved.region
        period = saved.period
        narrative = _narrative(analysis, summary, saved.narrative)
        override_map = {**saved.overrides, **override_map}
    else:
        if not region:
            cli_output.error("--region is required unless --input is given")
            raise typer.Exit(code=1)
        try:
            settings = get_settings()
        except ConfigurationError as e:
            cli_output.error(f"Configuration error: {e}")
            raise typer.Exit(code=1) from None
        if not settings.api_base_url:
            cli_output.error("Market API URL not configured. Set MNL_API_URL or pass --input.")
            raise typer.Exit(code=1)
        metrics_source = MarketApiAdapter(
            settings.api_base_url,
            api_token=settings.api_token,
            timeout=settings.request_timeout,
        )
        try:
            region_value = Region.parse(region)
        except ValueError as e:
            cli_output.error(str(e))
            raise typer.Exit(code=1) from None
        period = _resolve_period(month, year)
        narrative = _narrative(analysis, summary, None)

    listings_source = MlsCsvAdapter(listings_csv) if listings_csv else None
    return asyncio.run(
        aggregate(
            region_value,
            period,
            metrics_source=metrics_source,
            listings_source=listings_source,
            narrative=narrative,
            overrides=override_map,
        )
    )


@app.command("export")
def export(
    region: str | None = typer.Option(None, help="Region: anza, aguanga, idyllwild, mountain_center"),
    month: int | None = typer.Option(None, help="Report month (1-12)"),
    year: int | None = typer.Option(None, help="Report year"),
    input_path: str | None = typer.Option(
        None, "--input", help="Saved report request JSON to export instead of calling the market API"
    ),
    listings_csv: str | None = typer.Option(
        None, "--listings-csv", help="MLS export CSV to use for listings"
    ),
    analysis: str | None = typer.Option(None, help="Market analysis paragraph"),
    summary: str | None = typer.Option(None, help="Summary paragraph"),
    override: list[str] | None = typer.Option(  # noqa: B008
        None,
        help="Metric override as series:row:field=value, e.g. pricePerArea:5:value=312 (repeatable)",
    ),
    output_dir: str | None = typer.Option(None, "--output-dir", help="Directory to write the PDF to"),
) -> None:
    """Export a newsletter PDF for one region and month."""
    request = _build_request(region, month, year, input_path, listings_csv, analysis, summary, override)

    logger.info(
        "Starting newsletter export",
        extra={
            "region": request.region.value,
            "month": request.period.month,
            "year": request.period.year,
            "input": input_path,
        },
    )

    try:
        settings = get_settings()
        exporter = ReportExporter(settings)
        result = asyncio.run(exporter.export_request(request))
    except ConfigurationError as e:
        cli_output.error(f"Configuration error: {e}")
        raise typer.Exit(code=1) from None
    except ExportFailure as e:
        cli_output.error(e.user_message)
        cli_output.warning(str(e))
        raise typer.Exit(code=1) from None

    target_dir = Path(output_dir or settings.output_dir)
    path = write_pdf(target_dir / result.filename, result.pdf_bytes)
    cli_output.success(f"Newsletter written to {path}")
    cli_output.info(f"{result.page_count} page(s), {len(result.charts)} chart(s)")


@app.command("charts")
def charts(
    region: str | None = typer.Option(None, help="Region: anza, aguanga, idyllwild, mountain_center"),
    month: int | None = typer.Option(None, help="Report month (1-12)"),
    year: int | None = typer.Option(None, help="Report year"),
    input_path: str | None = typer.Option(None, "--input", help="Saved report request JSON"),
    listings_csv: str | None = typer.Option(None, "--listings-csv", help="MLS export CSV to use for listings"),
) -> None:
    """List the charts a newsletter would contain, without rendering it."""
    request = _build_request(region, month, year, input_path, listings_csv, None, None, None)
    specs = materialize(request)
    if not specs:
        cli_output.warning("No charts have data for this report")
        return
    for name, spec in specs.items():
        cli_output.chart(f"{name} ({spec.kind.value}): {spec.title}")
        cli_output.plain(f"    {len(spec.labels)} point(s): {', '.join(spec.labels)}")


@app.command("import-csv")
def import_csv(
    csv_path: str = typer.Argument(..., help="MLS export CSV"),
    output: str | None = typer.Option(None, help="Write listings JSON here instead of stdout"),
) -> None:
    """Convert an MLS export CSV into listings JSON."""
    try:
        text = Path(csv_path).read_text(encoding="utf-8-sig")
    except FileNotFoundError:
        cli_output.error(f"CSV file not found: {csv_path}")
        raise typer.Exit(code=1) from None

    listings, skipped = parse_csv(text)
    payload = [item.to_dict() for item in listings]
    logger.info("Imported MLS CSV", extra={"path": csv_path, "listings": len(listings), "skipped": skipped})

    document = json.dumps(payload, indent=2)
    if output:
        out = Path(output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(document, encoding="utf-8")
        cli_output.success(f"Wrote {len(listings)} listing(s) to {output}")
    else:
        typer.echo(document)
    if skipped:
        cli_output.warning(f"Skipped {skipped} row(s) without an MLS number or address")


if __name__ == "__main__":
    app()
